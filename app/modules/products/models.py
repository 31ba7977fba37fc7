from app.database.database import Base
from sqlalchemy import Column, Integer, String, Numeric, CheckConstraint, UniqueConstraint
from app.common.mixins import BaseMixin


class Product(Base, BaseMixin):
    __tablename__ = "products"

    name = Column(String(200), nullable=False)
    reference = Column(String(50), nullable=False)
    description = Column(String(255), nullable=True)
    unit_price = Column(Numeric(15, 2), nullable=False, default=0)  # Precio vigente al crear facturas
    quantity_in_stock = Column(Integer, nullable=False, default=0)  # Solo lo muta la reconciliación de stock

    # Control de concurrencia optimista: cada UPDATE exige la versión leída
    version = Column(Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        UniqueConstraint("reference", name="uq_product_reference"),
        CheckConstraint("quantity_in_stock >= 0", name="ck_product_stock_non_negative"),
        CheckConstraint("unit_price >= 0", name="ck_product_price_non_negative"),
    )
