"""
Storage port shared by the in-memory and SQL stores.

Each store exposes ``clients``, ``products`` and ``sales`` repositories.
Client and product repositories share the ``EntityRepository`` capability
set; the sale repository owns the transactional ``create_sale`` and the
reads that reporting is built on.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from shopdesk.core.constants import DEFAULT_MIN_STOCK
from shopdesk.core.errors import InvalidArgument
from shopdesk.core.money import line_total, to_money

CLIENT_FIELDS = ("name", "email", "phone", "address", "city", "state")
PRODUCT_FIELDS = ("name", "description", "category", "price", "stock", "min_stock", "sku")


@dataclass
class SaleHeader:
    client_id: Optional[int] = None
    date: Optional[datetime] = None
    total: Optional[Decimal] = None
    notes: Optional[str] = None


@dataclass
class SaleLine:
    product_id: int
    quantity: int
    unit_price: Decimal
    total: Optional[Decimal] = None


@dataclass
class DailySummary:
    date: date
    total: Decimal
    count: int


@dataclass
class SaleItemRow:
    id: int
    sale_id: int
    product_id: int
    quantity: int
    unit_price: Decimal
    total: Decimal
    product_name: Optional[str]
    product_price: Optional[Decimal]
    sale_date: Optional[datetime] = None


def client_values(fields: dict) -> dict:
    return {name: fields.get(name) for name in CLIENT_FIELDS}


def product_values(fields: dict) -> dict:
    values = {name: fields.get(name) for name in PRODUCT_FIELDS}
    values["price"] = to_money(values["price"])
    if values["stock"] is None:
        values["stock"] = 0
    if values["stock"] < 0:
        raise InvalidArgument("stock must be a non-negative integer.")
    return values


def normalize_search(search: Optional[str]) -> Optional[str]:
    if search is None:
        return None
    search = str(search).strip().lower()
    return search or None


def prepare_lines(lines) -> list[SaleLine]:
    """Validate sale lines and fill in missing line totals."""
    lines = list(lines or [])
    if not lines:
        raise InvalidArgument("Sale must have at least one item")
    prepared = []
    for index, line in enumerate(lines):
        if line.quantity is None or int(line.quantity) <= 0:
            raise InvalidArgument(
                "Item quantity must be a positive integer.",
                details={"index": index, "product_id": line.product_id},
            )
        unit_price = to_money(line.unit_price)
        if unit_price is None or unit_price < 0:
            raise InvalidArgument(
                "Item unit price must be a non-negative amount.",
                details={"index": index, "product_id": line.product_id},
            )
        total = to_money(line.total)
        if total is None:
            total = line_total(line.quantity, unit_price)
        prepared.append(
            SaleLine(
                product_id=int(line.product_id),
                quantity=int(line.quantity),
                unit_price=unit_price,
                total=total,
            )
        )
    return prepared


def min_stock_for(product, default=DEFAULT_MIN_STOCK) -> int:
    return product.min_stock if product.min_stock is not None else default


def is_low_stock(product, default=DEFAULT_MIN_STOCK) -> bool:
    return product.stock <= min_stock_for(product, default)


class EntityRepository(ABC):
    @abstractmethod
    def list(self, search=None):
        """All rows in insertion order, optionally filtered by a substring."""

    @abstractmethod
    def get(self, entity_id):
        """The row with ``entity_id`` or ``None``."""

    @abstractmethod
    def create(self, fields):
        pass

    @abstractmethod
    def update(self, entity_id, fields):
        """Replace mutable fields; ``None`` when ``entity_id`` does not exist."""

    @abstractmethod
    def delete(self, entity_id) -> bool:
        pass


class ClientRepository(EntityRepository):
    pass


class ProductRepository(EntityRepository):
    @abstractmethod
    def low_stock(self, default_min_stock=DEFAULT_MIN_STOCK):
        pass


class SaleRepository(ABC):
    @abstractmethod
    def create_sale(self, header: SaleHeader, lines):
        """
        Persist a sale, its items, the stock decrements and the client's
        last order date as a single all-or-nothing unit.
        """

    @abstractmethod
    def list_sales(self, start=None, end=None):
        pass

    @abstractmethod
    def get_sale_with_items(self, sale_id):
        pass

    @abstractmethod
    def sale_items_between(self, start, end) -> list[SaleItemRow]:
        pass

    @abstractmethod
    def summarize_by_day(self, start, end) -> list[DailySummary]:
        pass


class Storage(ABC):
    name = "abstract"

    clients: ClientRepository
    products: ProductRepository
    sales: SaleRepository

    def initialize(self) -> None:
        pass

    def close(self) -> None:
        pass


__all__ = [
    "CLIENT_FIELDS",
    "PRODUCT_FIELDS",
    "ClientRepository",
    "DailySummary",
    "EntityRepository",
    "ProductRepository",
    "SaleHeader",
    "SaleItemRow",
    "SaleLine",
    "SaleRepository",
    "Storage",
    "client_values",
    "is_low_stock",
    "min_stock_for",
    "normalize_search",
    "prepare_lines",
    "product_values",
]
