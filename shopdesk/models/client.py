from sqlalchemy import Column, Index, Integer, String

from shopdesk.database.base import Base
from shopdesk.database.types import UtcDateTime


class Client(Base):
    __tablename__ = "clients"

    id = Column(Integer, primary_key=True)

    name = Column(String, nullable=False)
    email = Column(String, nullable=False)
    phone = Column(String, nullable=False)
    address = Column(String, nullable=False)
    city = Column(String, nullable=False)
    state = Column(String, nullable=False)

    last_order_date = Column(UtcDateTime)

    __table_args__ = (
        Index("idx_clients_name", "name"),
    )


__all__ = ["Client"]
