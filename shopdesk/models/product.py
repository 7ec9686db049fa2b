from sqlalchemy import CheckConstraint, Column, Index, Integer, String

from shopdesk.core.dates import utcnow
from shopdesk.database.base import Base
from shopdesk.database.types import Money, UtcDateTime


class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True)

    name = Column(String, nullable=False)
    description = Column(String, nullable=False)
    category = Column(String, nullable=False)

    price = Column(Money, nullable=False)
    stock = Column(Integer, nullable=False, default=0)
    min_stock = Column(Integer)
    sku = Column(String)

    updated_at = Column(
        UtcDateTime,
        nullable=False,
        default=utcnow,
    )

    __table_args__ = (
        CheckConstraint("stock >= 0", name="ck_products_stock_non_negative"),
        Index("idx_products_sku", "sku"),
        Index("idx_products_category", "category"),
    )


__all__ = ["Product"]
