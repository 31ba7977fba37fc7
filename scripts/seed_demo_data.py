"""
Seed script: llena la base con datos de demostración para la facturación.

Qué crea:
- Clientes (~40) con datos de contacto.
- Productos (default 60) con referencias únicas, precios y stock inicial.
- Facturas (default 150): descuentan stock a través de InvoiceService; algunas
  reciben pagos parciales o completos a través de PaymentLedger.

Uso:
    python scripts/seed_demo_data.py --clients 40 --products 60 --invoices 150

Note: This is intended for development environments only.
"""

# Add project root to sys.path so `app.*` imports work even if CWD changes
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

import argparse
import random
from datetime import date, timedelta
from decimal import Decimal

from app.common.exceptions import InvoicingError
from app.database.database import SessionLocal, Base, engine
from app.modules.clients.models import Client
from app.modules.products.models import Product
from app.modules.invoices.models import PaymentMethod
from app.modules.invoices.payments import PaymentLedger
from app.modules.invoices.schemas import InvoiceCreate, InvoiceItemCreate, PaymentCreate
from app.modules.invoices.service import InvoiceService

FIRST_NAMES = ["Ana", "Luis", "María", "Carlos", "Lucía", "Jorge", "Elena", "Pedro", "Sofía", "Andrés"]
LAST_NAMES = ["García", "Martínez", "López", "Rodríguez", "Pérez", "Gómez", "Díaz", "Torres"]
CITIES = ["Madrid", "Bogotá", "Lima", "Dakar", "Lyon", "Quito"]
CATALOG = ["Cuaderno", "Bolígrafo", "Carpeta", "Grapadora", "Calculadora", "Archivador", "Marcador", "Resma"]


def pick(seq):
    return random.choice(seq)


def generate_reference(name: str, idx: int) -> str:
    prefix = ''.join([ch for ch in name.upper() if ch.isalpha()])[:3]
    return f"{prefix}-{idx:04d}"


def create_clients(db, count=40):
    clients = []
    for i in range(count):
        name = f"{pick(FIRST_NAMES)} {pick(LAST_NAMES)}"
        client = Client(
            name=name,
            email=f"cliente{i:03d}@demo.com",
            phone=f"600{random.randint(100000, 999999)}",
            address=f"Calle {random.randint(1, 120)} # {random.randint(1, 99)}",
            city=pick(CITIES),
            tax_id=str(random.randint(100000000, 999999999)),
        )
        db.add(client)
        clients.append(client)
    db.commit()
    return clients


def create_products(db, count=60):
    products = []
    for i in range(count):
        name = f"{pick(CATALOG)} {random.randint(1, 99)}"
        reference = generate_reference(name, i)
        # Idempotent re-run
        existing = db.query(Product).filter(Product.reference == reference).first()
        if existing:
            products.append(existing)
            continue
        product = Product(
            name=name,
            reference=reference,
            description=f"{name} de oficina",
            unit_price=(Decimal(random.randint(100, 20000)) / Decimal(100)).quantize(Decimal('0.01')),
            quantity_in_stock=random.randint(5, 150),
        )
        db.add(product)
        products.append(product)
    db.commit()
    return products


def create_invoices(db, clients, products, invoices_count):
    service = InvoiceService(db)
    ledger = PaymentLedger(db)
    created = 0
    rejected = 0
    for i in range(invoices_count):
        customer = pick(clients)
        issue_date = date.today() - timedelta(days=random.randint(0, 60))
        items = [
            InvoiceItemCreate(product_id=pick(products).id, quantity=random.randint(1, 5))
            for _ in range(random.randint(1, 5))
        ]
        inv_in = InvoiceCreate(
            client_id=customer.id,
            issue_date=issue_date,
            due_date=issue_date + timedelta(days=random.choice([15, 30, 60])),
            discount=Decimal(random.choice([0, 0, 5, 10])),
            vat=Decimal(random.choice([0, 10, 19, 21])),
            items=items
        )
        try:
            invoice = service.create_invoice(inv_in)
        except InvoicingError as e:
            # Stock agotado: la factura se descarta completa
            rejected += 1
            print(f"  Invoice {i} skipped: {e.message}")
            continue
        created += 1

        roll = random.random()
        if roll < 0.6 and invoice.total_amount > 0:
            amount = invoice.total_amount if roll < 0.35 else (invoice.total_amount / 2).quantize(Decimal('0.01'))
            if amount > 0:
                ledger.record_payment(invoice.id, PaymentCreate(
                    amount=amount,
                    method=pick(list(PaymentMethod)),
                    payment_date=issue_date + timedelta(days=random.randint(0, 10)),
                ))
        if created % 50 == 0:
            print(f"  Invoices created: {created}")
    return created, rejected


def main():
    parser = argparse.ArgumentParser(description="Seed invoicing demo data")
    parser.add_argument("--clients", type=int, default=40)
    parser.add_argument("--products", type=int, default=60)
    parser.add_argument("--invoices", type=int, default=150)
    parser.add_argument("--seed", type=int, default=None, help="Semilla aleatoria para resultados reproducibles")
    args = parser.parse_args()

    if args.seed is not None:
        random.seed(args.seed)

    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        print("Creating clients...")
        clients = create_clients(db, args.clients)
        print(f"Clients created: {len(clients)}")

        print("Creating products...")
        products = create_products(db, args.products)
        print(f"Products available: {len(products)}")

        print("Creating invoices (affect stock)...")
        created, rejected = create_invoices(db, clients, products, args.invoices)
        print(f"Invoices created: {created}, rejected for stock: {rejected}")

        print("\nSeed completed.")
    finally:
        db.close()


if __name__ == "__main__":
    main()
