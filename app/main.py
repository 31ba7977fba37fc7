from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
import logging

# Import database components
from app.database.database import engine, Base
from app.common.exceptions import InvoicingError

# Import routers
from app.modules.clients.router import router as clients_router
from app.modules.products.router import product_router
from app.modules.invoices.router import router as invoices_router

# Import models for table creation
import app.modules.clients.models
import app.modules.products.models
import app.modules.invoices.models

from app.core.config import settings

# Configure logging
logging.basicConfig(
    level=logging.INFO if settings.ENVIRONMENT == "production" else logging.DEBUG,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

# FastAPI app
app = FastAPI(
    title="Facturation API",
    description="Facturación para pequeños negocios: clientes, productos, facturas, stock y pagos",
    version="1.0.0",
    docs_url="/docs" if settings.ENVIRONMENT != "production" else None,
    redoc_url="/redoc" if settings.ENVIRONMENT != "production" else None
)

# Add middleware
app.add_middleware(GZipMiddleware, minimum_size=1000)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Add your frontend URLs
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(InvoicingError)
async def invoicing_error_handler(request: Request, exc: InvoicingError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    else:
        logger.info(f"{request.method} {request.url.path} rejected ({exc.status_code}): {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"message": exc.message})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = [
        {"field": ".".join(str(p) for p in err.get("loc", []) if p != "body"), "error": err.get("msg")}
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"message": "Algunos campos son inválidos. Revise los datos enviados.", "errors": errors}
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"message": "Ocurrió un error inesperado. Intente nuevamente."}
    )


# Include routers
app.include_router(clients_router)
app.include_router(product_router)
app.include_router(invoices_router)

# Create database tables (only for development - use migrations in production)
if settings.ENVIRONMENT == "development":
    Base.metadata.create_all(bind=engine)


@app.get("/")
async def read_root():
    return {
        "message": "Facturation API is running",
        "version": "1.0.0",
        "environment": settings.ENVIRONMENT
    }


@app.get("/health")
async def health_check():
    return {"status": "healthy", "environment": settings.ENVIRONMENT}


@app.on_event("startup")
async def startup_event():
    logger.info("Facturation API starting up...")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"Debug mode: {settings.DEBUG}")
    logger.info(f"Invoice prefix: {settings.INVOICE_NUMBER_PREFIX}")


@app.on_event("shutdown")
async def shutdown_event():
    logger.info("Facturation API shutting down...")
