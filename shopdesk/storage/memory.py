import logging
import threading
from collections import defaultdict

from shopdesk.core.constants import CLIENT_SEARCH_FIELDS, DEFAULT_MIN_STOCK, PRODUCT_SEARCH_FIELDS, ZERO
from shopdesk.core.dates import ensure_utc, normalize_date, utcnow
from shopdesk.core.errors import InsufficientStock, NotFound, ReferentialConflict
from shopdesk.core.money import to_money
from shopdesk.models.client import Client
from shopdesk.models.product import Product
from shopdesk.models.sale import Sale, SaleItem
from shopdesk.storage.base import (
    ClientRepository,
    DailySummary,
    ProductRepository,
    SaleItemRow,
    SaleRepository,
    Storage,
    client_values,
    is_low_stock,
    normalize_search,
    prepare_lines,
    product_values,
)

logger = logging.getLogger(__name__)


def _clone(row):
    """Detached copy so callers never mutate stored rows."""
    if row is None:
        return None
    values = {column.key: getattr(row, column.key) for column in row.__table__.columns}
    return type(row)(**values)


def _sale_total(header):
    total = to_money(header.total)
    return ZERO if total is None else total


def _in_window(value, start, end):
    value = ensure_utc(value)
    start = ensure_utc(start)
    end = ensure_utc(end)
    if start is not None and value < start:
        return False
    if end is not None and value > end:
        return False
    return True


class _Table:
    def __init__(self):
        self.rows = {}
        self._next_id = 1

    def insert(self, row):
        row.id = self._next_id
        self._next_id += 1
        self.rows[row.id] = row
        return row

    def remove(self, row_id):
        return self.rows.pop(row_id, None)

    def values(self):
        return [self.rows[row_id] for row_id in sorted(self.rows)]


class _MemoryEntityRepository:
    model = None
    search_fields = ()

    def __init__(self, storage):
        self._storage = storage

    @property
    def _table(self) -> _Table:
        return self._storage.tables[self.model.__tablename__]

    def list(self, search=None):
        term = normalize_search(search)
        with self._storage.lock:
            rows = self._table.values()
            if term is not None:
                rows = [row for row in rows if self._matches(row, term)]
            return [_clone(row) for row in rows]

    def _matches(self, row, term):
        for field in self.search_fields:
            value = getattr(row, field)
            if value and term in str(value).lower():
                return True
        return False

    def get(self, entity_id):
        with self._storage.lock:
            return _clone(self._table.rows.get(entity_id))

    def _insert(self, values):
        with self._storage.lock:
            row = self._table.insert(self.model(**values))
            return _clone(row)

    def _replace(self, entity_id, values):
        with self._storage.lock:
            row = self._table.rows.get(entity_id)
            if row is None:
                return None
            for key, value in values.items():
                setattr(row, key, value)
            return _clone(row)


class MemoryClientRepository(_MemoryEntityRepository, ClientRepository):
    model = Client
    search_fields = CLIENT_SEARCH_FIELDS

    def __init__(self, storage, stamp_order_on_create=True):
        super().__init__(storage)
        self._stamp_order_on_create = stamp_order_on_create

    def create(self, fields):
        values = client_values(fields)
        values["last_order_date"] = utcnow() if self._stamp_order_on_create else None
        return self._insert(values)

    def update(self, entity_id, fields):
        return self._replace(entity_id, client_values(fields))

    def delete(self, entity_id) -> bool:
        with self._storage.lock:
            if self._table.remove(entity_id) is None:
                return False
            for sale in self._storage.tables["sales"].rows.values():
                if sale.client_id == entity_id:
                    sale.client_id = None
            return True


class MemoryProductRepository(_MemoryEntityRepository, ProductRepository):
    model = Product
    search_fields = PRODUCT_SEARCH_FIELDS

    def create(self, fields):
        values = product_values(fields)
        values["updated_at"] = utcnow()
        return self._insert(values)

    def update(self, entity_id, fields):
        values = product_values(fields)
        values["updated_at"] = utcnow()
        return self._replace(entity_id, values)

    def delete(self, entity_id) -> bool:
        with self._storage.lock:
            if entity_id not in self._table.rows:
                return False
            referenced = sum(
                1
                for item in self._storage.tables["sale_items"].rows.values()
                if item.product_id == entity_id
            )
            if referenced:
                raise ReferentialConflict(
                    "Product is referenced by recorded sales.",
                    details={"product_id": entity_id, "sale_items": referenced},
                )
            self._table.remove(entity_id)
            return True

    def low_stock(self, default_min_stock=DEFAULT_MIN_STOCK):
        with self._storage.lock:
            return [
                _clone(row)
                for row in self._table.values()
                if is_low_stock(row, default_min_stock)
            ]


class MemorySaleRepository(SaleRepository):
    def __init__(self, storage):
        self._storage = storage

    @property
    def _sales(self) -> _Table:
        return self._storage.tables["sales"]

    @property
    def _items(self) -> _Table:
        return self._storage.tables["sale_items"]

    def create_sale(self, header, lines):
        lines = prepare_lines(lines)
        tables = self._storage.tables
        undo = []
        with self._storage.lock:
            try:
                if header.client_id is not None and header.client_id not in tables["clients"].rows:
                    raise NotFound(
                        "Client {} not found".format(header.client_id),
                        details={"client_id": header.client_id},
                    )

                sale = self._sales.insert(
                    Sale(
                        client_id=header.client_id,
                        date=ensure_utc(header.date) or utcnow(),
                        total=_sale_total(header),
                        notes=header.notes,
                    )
                )
                undo.append(lambda: self._sales.remove(sale.id))

                for line in lines:
                    item = self._items.insert(
                        SaleItem(
                            sale_id=sale.id,
                            product_id=line.product_id,
                            quantity=line.quantity,
                            unit_price=line.unit_price,
                            total=line.total,
                        )
                    )
                    undo.append(lambda item_id=item.id: self._items.remove(item_id))

                for line in lines:
                    self._decrement_stock(line, undo)

                if sale.client_id is not None:
                    self._stamp_client(sale.client_id, sale.date, undo)
            except Exception:
                for action in reversed(undo):
                    action()
                raise
            logger.info("Recorded sale %s with %s item(s).", sale.id, len(lines))
            return _clone(sale)

    def _decrement_stock(self, line, undo):
        product = self._storage.tables["products"].rows.get(line.product_id)
        if product is None:
            raise NotFound(
                "Product {} not found".format(line.product_id),
                details={"product_id": line.product_id},
            )
        if product.stock < line.quantity:
            raise InsufficientStock(
                "Insufficient stock for product {}".format(line.product_id),
                details={
                    "product_id": line.product_id,
                    "requested_quantity": line.quantity,
                    "on_hand": product.stock,
                },
            )
        previous = product.stock
        product.stock = previous - line.quantity
        undo.append(lambda: setattr(product, "stock", previous))

    def _stamp_client(self, client_id, when, undo):
        client = self._storage.tables["clients"].rows.get(client_id)
        previous = client.last_order_date
        client.last_order_date = when
        undo.append(lambda: setattr(client, "last_order_date", previous))

    def list_sales(self, start=None, end=None):
        with self._storage.lock:
            sales = [sale for sale in self._sales.values() if _in_window(sale.date, start, end)]
            sales.sort(key=lambda sale: (sale.date, sale.id), reverse=True)
            return [_clone(sale) for sale in sales]

    def get_sale_with_items(self, sale_id):
        with self._storage.lock:
            sale = self._sales.rows.get(sale_id)
            if sale is None:
                return None
            products = self._storage.tables["products"].rows
            items = [
                (_clone(item), _clone(products.get(item.product_id)))
                for item in self._items.values()
                if item.sale_id == sale_id
            ]
            return _clone(sale), items

    def sale_items_between(self, start, end):
        with self._storage.lock:
            sales = {
                sale.id: sale
                for sale in self._sales.values()
                if _in_window(sale.date, start, end)
            }
            products = self._storage.tables["products"].rows
            rows = []
            for item in self._items.values():
                sale = sales.get(item.sale_id)
                if sale is None:
                    continue
                product = products.get(item.product_id)
                rows.append(
                    SaleItemRow(
                        id=item.id,
                        sale_id=item.sale_id,
                        product_id=item.product_id,
                        quantity=item.quantity,
                        unit_price=item.unit_price,
                        total=item.total,
                        product_name=product.name if product else None,
                        product_price=product.price if product else None,
                        sale_date=sale.date,
                    )
                )
            rows.sort(key=lambda row: (row.sale_date, row.id))
            return rows

    def summarize_by_day(self, start, end):
        totals = defaultdict(lambda: [ZERO, 0])
        with self._storage.lock:
            for sale in self._sales.values():
                if not _in_window(sale.date, start, end):
                    continue
                bucket = totals[normalize_date(sale.date)]
                bucket[0] += sale.total
                bucket[1] += 1
        return [
            DailySummary(date=day, total=total, count=count)
            for day, (total, count) in sorted(totals.items())
        ]


class InMemoryStorage(Storage):
    """Dict-backed store; one re-entrant lock serializes every operation."""

    name = "memory"

    def __init__(self, stamp_order_on_create=True):
        self.lock = threading.RLock()
        self.tables = {
            "clients": _Table(),
            "products": _Table(),
            "sales": _Table(),
            "sale_items": _Table(),
        }
        self.clients = MemoryClientRepository(self, stamp_order_on_create=stamp_order_on_create)
        self.products = MemoryProductRepository(self)
        self.sales = MemorySaleRepository(self)


__all__ = ["InMemoryStorage"]
