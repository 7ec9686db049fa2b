from sqlalchemy import CheckConstraint, Column, ForeignKey, Index, Integer, String

from shopdesk.core.dates import utcnow
from shopdesk.database.base import Base
from shopdesk.database.types import Money, UtcDateTime


class Sale(Base):
    __tablename__ = "sales"

    id = Column(Integer, primary_key=True)
    client_id = Column(Integer, ForeignKey("clients.id", ondelete="SET NULL"))

    date = Column(
        UtcDateTime,
        nullable=False,
        default=utcnow,
    )
    total = Column(Money, nullable=False, default=0)
    notes = Column(String)

    __table_args__ = (
        Index("idx_sales_date", "date"),
        Index("idx_sales_client", "client_id"),
    )


class SaleItem(Base):
    __tablename__ = "sale_items"

    id = Column(Integer, primary_key=True)
    sale_id = Column(Integer, ForeignKey("sales.id", ondelete="CASCADE"), nullable=False)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)

    quantity = Column(Integer, nullable=False)
    # Price at sale time; later product price edits never touch it.
    unit_price = Column(Money, nullable=False)
    total = Column(Money, nullable=False)

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_sale_items_quantity_positive"),
        Index("idx_sale_items_sale", "sale_id"),
        Index("idx_sale_items_product", "product_id"),
    )


__all__ = ["Sale", "SaleItem"]
