import logging
from contextlib import contextmanager

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from shopdesk.core.constants import CLIENT_SEARCH_FIELDS, DEFAULT_MIN_STOCK, PRODUCT_SEARCH_FIELDS, ZERO
from shopdesk.core.dates import ensure_utc, normalize_date, utcnow
from shopdesk.core.errors import InsufficientStock, NotFound, ReferentialConflict, StorageError
from shopdesk.core.money import to_money
from shopdesk.database.base import Base
from shopdesk.database.engine import create_db_engine, ensure_sqlite_schema
from shopdesk.database.session import build_session_factory
from shopdesk.models import import_all_models
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
    normalize_search,
    prepare_lines,
    product_values,
)

logger = logging.getLogger(__name__)


def _like_pattern(term):
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return "%{}%".format(escaped)


def _window(stmt, column, start, end):
    if start is not None:
        stmt = stmt.where(column >= start)
    if end is not None:
        stmt = stmt.where(column <= end)
    return stmt


class _SqlEntityRepository:
    model = None
    search_fields = ()

    def __init__(self, storage):
        self._storage = storage

    def list(self, search=None):
        term = normalize_search(search)
        stmt = select(self.model)
        if term is not None:
            pattern = _like_pattern(term)
            stmt = stmt.where(
                or_(
                    *(
                        func.lower(getattr(self.model, field)).like(pattern, escape="\\")
                        for field in self.search_fields
                    )
                )
            )
        stmt = stmt.order_by(self.model.id)
        with self._storage.session_scope() as session:
            return list(session.execute(stmt).scalars().all())

    def get(self, entity_id):
        with self._storage.session_scope() as session:
            return session.get(self.model, entity_id)

    def _insert(self, values):
        with self._storage.session_scope() as session:
            row = self.model(**values)
            session.add(row)
            session.flush()
            return row

    def _replace(self, entity_id, values):
        with self._storage.session_scope() as session:
            row = session.get(self.model, entity_id)
            if row is None:
                return None
            for key, value in values.items():
                setattr(row, key, value)
            session.flush()
            return row


class SqlClientRepository(_SqlEntityRepository, ClientRepository):
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
        with self._storage.session_scope() as session:
            # Sales stay on record as anonymous sales.
            session.execute(
                update(Sale).where(Sale.client_id == entity_id).values(client_id=None)
            )
            result = session.execute(delete(Client).where(Client.id == entity_id))
            return result.rowcount > 0


class SqlProductRepository(_SqlEntityRepository, ProductRepository):
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
        with self._storage.session_scope() as session:
            referenced = session.execute(
                select(func.count(SaleItem.id)).where(SaleItem.product_id == entity_id)
            ).scalar_one()
            if referenced:
                raise ReferentialConflict(
                    "Product is referenced by recorded sales.",
                    details={"product_id": entity_id, "sale_items": referenced},
                )
            try:
                result = session.execute(delete(Product).where(Product.id == entity_id))
                session.flush()
            except IntegrityError as exc:
                raise ReferentialConflict(
                    "Product is referenced by recorded sales.",
                    details={"product_id": entity_id},
                ) from exc
            return result.rowcount > 0

    def low_stock(self, default_min_stock=DEFAULT_MIN_STOCK):
        threshold = func.coalesce(Product.min_stock, default_min_stock)
        stmt = select(Product).where(Product.stock <= threshold).order_by(Product.id)
        with self._storage.session_scope() as session:
            return list(session.execute(stmt).scalars().all())


class SqlSaleRepository(SaleRepository):
    def __init__(self, storage):
        self._storage = storage

    def create_sale(self, header, lines):
        lines = prepare_lines(lines)
        with self._storage.session_scope() as session:
            if header.client_id is not None and session.get(Client, header.client_id) is None:
                raise NotFound(
                    "Client {} not found".format(header.client_id),
                    details={"client_id": header.client_id},
                )

            total = to_money(header.total)
            sale = Sale(
                client_id=header.client_id,
                date=ensure_utc(header.date) or utcnow(),
                total=ZERO if total is None else total,
                notes=header.notes,
            )
            session.add(sale)
            session.flush()

            session.add_all(
                [
                    SaleItem(
                        sale_id=sale.id,
                        product_id=line.product_id,
                        quantity=line.quantity,
                        unit_price=line.unit_price,
                        total=line.total,
                    )
                    for line in lines
                ]
            )

            for line in lines:
                self._decrement_stock(session, line)
            session.flush()

            if sale.client_id is not None:
                self._stamp_client(session, sale.client_id, sale.date)

        logger.info("Recorded sale %s with %s item(s).", sale.id, len(lines))
        return sale

    @staticmethod
    def _decrement_stock(session, line):
        # Relative update evaluated by the store; the guard keeps stock >= 0
        # under concurrent sales of the same product.
        result = session.execute(
            update(Product)
            .where(Product.id == line.product_id, Product.stock >= line.quantity)
            .values(stock=Product.stock - line.quantity)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 1:
            return
        on_hand = session.execute(
            select(Product.stock).where(Product.id == line.product_id)
        ).scalar_one_or_none()
        if on_hand is None:
            raise NotFound(
                "Product {} not found".format(line.product_id),
                details={"product_id": line.product_id},
            )
        raise InsufficientStock(
            "Insufficient stock for product {}".format(line.product_id),
            details={
                "product_id": line.product_id,
                "requested_quantity": line.quantity,
                "on_hand": on_hand,
            },
        )

    @staticmethod
    def _stamp_client(session, client_id, when):
        session.execute(
            update(Client)
            .where(Client.id == client_id)
            .values(last_order_date=when)
            .execution_options(synchronize_session=False)
        )

    def list_sales(self, start=None, end=None):
        stmt = _window(select(Sale), Sale.date, start, end)
        stmt = stmt.order_by(Sale.date.desc(), Sale.id.desc())
        with self._storage.session_scope() as session:
            return list(session.execute(stmt).scalars().all())

    def get_sale_with_items(self, sale_id):
        with self._storage.session_scope() as session:
            sale = session.get(Sale, sale_id)
            if sale is None:
                return None
            rows = session.execute(
                select(SaleItem, Product)
                .outerjoin(Product, Product.id == SaleItem.product_id)
                .where(SaleItem.sale_id == sale_id)
                .order_by(SaleItem.id)
            ).all()
            return sale, [(row.SaleItem, row.Product) for row in rows]

    def sale_items_between(self, start, end):
        stmt = (
            select(
                SaleItem.id,
                SaleItem.sale_id,
                SaleItem.product_id,
                SaleItem.quantity,
                SaleItem.unit_price,
                SaleItem.total,
                Product.name.label("product_name"),
                Product.price.label("product_price"),
                Sale.date.label("sale_date"),
            )
            .join(Sale, Sale.id == SaleItem.sale_id)
            .outerjoin(Product, Product.id == SaleItem.product_id)
        )
        stmt = _window(stmt, Sale.date, start, end).order_by(Sale.date, SaleItem.id)
        with self._storage.session_scope() as session:
            return [SaleItemRow(**row._asdict()) for row in session.execute(stmt).all()]

    def summarize_by_day(self, start, end):
        day = func.date(Sale.date)
        stmt = (
            select(
                day.label("day"),
                func.sum(Sale.total).label("total"),
                func.count(Sale.id).label("count"),
            )
            .group_by(day)
            .order_by(day)
        )
        stmt = _window(stmt, Sale.date, start, end)
        with self._storage.session_scope() as session:
            rows = session.execute(stmt).all()
        return [
            DailySummary(
                date=normalize_date(row.day),
                total=to_money(row.total) if row.total is not None else ZERO,
                count=int(row.count),
            )
            for row in rows
        ]


class SqlStorage(Storage):
    """Relational store; the engine is injected or built from a URL."""

    name = "database"

    def __init__(self, engine=None, *, database_url=None, stamp_order_on_create=True):
        if engine is None:
            if database_url is None:
                raise ValueError("SqlStorage needs an engine or a database_url.")
            engine = create_db_engine(database_url)
        self.engine = engine
        self._session_factory = build_session_factory(engine)
        self.clients = SqlClientRepository(self, stamp_order_on_create=stamp_order_on_create)
        self.products = SqlProductRepository(self)
        self.sales = SqlSaleRepository(self)

    def initialize(self) -> None:
        import_all_models()
        Base.metadata.create_all(bind=self.engine)
        ensure_sqlite_schema(self.engine)

    def close(self) -> None:
        self.engine.dispose()

    @contextmanager
    def session_scope(self):
        """Commit on success; roll back and translate store failures otherwise."""
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            raise StorageError(
                "Storage operation failed",
                details={"error": exc.__class__.__name__},
            ) from exc
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()


__all__ = ["SqlStorage"]
