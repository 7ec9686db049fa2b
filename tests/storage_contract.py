from datetime import datetime, timedelta, timezone
from decimal import Decimal
from unittest.mock import patch

from shopdesk.core.dates import ensure_utc
from shopdesk.core.errors import (
    InsufficientStock,
    InvalidArgument,
    NotFound,
    ReferentialConflict,
    StorageError,
)
from shopdesk.storage.base import SaleHeader, SaleLine

MAY_FIRST = datetime(2024, 5, 1, 10, 0, tzinfo=timezone.utc)


def client_fields(**overrides):
    fields = {
        "name": "Maria Souza",
        "email": "maria@example.com",
        "phone": "11987654321",
        "address": "Rua das Flores, 120",
        "city": "Campinas",
        "state": "SP",
    }
    fields.update(overrides)
    return fields


def product_fields(**overrides):
    fields = {
        "name": "Arabica Coffee",
        "description": "Medium roast ground coffee",
        "category": "Groceries",
        "price": Decimal("24.90"),
        "stock": 10,
        "min_stock": None,
        "sku": "COF-500",
    }
    fields.update(overrides)
    return fields


class StorageContract:
    """Behaviour every store must share; mixed into ``unittest.TestCase``."""

    def make_storage(self):
        raise NotImplementedError

    def setUp(self):
        self.storage = self.make_storage()
        self.storage.initialize()

    def tearDown(self):
        self.storage.close()

    def _sell(self, product, quantity, *, client=None, when=MAY_FIRST, unit_price=None, total=None):
        return self.storage.sales.create_sale(
            SaleHeader(
                client_id=client.id if client is not None else None,
                date=when,
                total=total,
            ),
            [
                SaleLine(
                    product_id=product.id,
                    quantity=quantity,
                    unit_price=unit_price if unit_price is not None else product.price,
                )
            ],
        )

    def _stock(self, product):
        return self.storage.products.get(product.id).stock

    # ------------------------------------------------------------------
    # Client and product CRUD
    # ------------------------------------------------------------------

    def test_list_returns_rows_in_insertion_order(self):
        first = self.storage.clients.create(client_fields(name="Ana"))
        second = self.storage.clients.create(client_fields(name="Bruno"))

        rows = self.storage.clients.list()

        self.assertEqual([row.id for row in rows], [first.id, second.id])

    def test_blank_search_matches_no_search(self):
        self.storage.products.create(product_fields())
        self.storage.products.create(product_fields(name="Olive Oil", sku=None))

        all_ids = [row.id for row in self.storage.products.list()]

        self.assertEqual([row.id for row in self.storage.products.list("")], all_ids)
        self.assertEqual([row.id for row in self.storage.products.list("   ")], all_ids)

    def test_client_search_is_case_insensitive_substring(self):
        self.storage.clients.create(client_fields(name="Ana Paula", city="Campinas"))
        joao = self.storage.clients.create(
            client_fields(name="Joao Lima", email="joao@shop.test", city="Rio de Janeiro")
        )

        by_city = self.storage.clients.list("JANEIRO")
        by_email = self.storage.clients.list("shop.TEST")

        self.assertEqual([row.id for row in by_city], [joao.id])
        self.assertEqual([row.id for row in by_email], [joao.id])
        all_ids = {row.id for row in self.storage.clients.list()}
        self.assertTrue({row.id for row in self.storage.clients.list("a")} <= all_ids)

    def test_search_folds_accented_text(self):
        erica = self.storage.clients.create(client_fields(name="ÉRICA ÁVILA", city="SÃO PAULO"))
        self.storage.clients.create(client_fields(name="Joao Lima", city="Santos"))

        self.assertEqual([row.id for row in self.storage.clients.list("érica")], [erica.id])
        self.assertEqual([row.id for row in self.storage.clients.list("são")], [erica.id])
        self.assertEqual([row.id for row in self.storage.clients.list("Ávila")], [erica.id])

    def test_product_search_covers_sku_and_skips_missing_sku(self):
        coffee = self.storage.products.create(product_fields(sku="COF-500"))
        self.storage.products.create(product_fields(name="Olive Oil", description="Extra virgin", sku=None))

        rows = self.storage.products.list("cof-5")

        self.assertEqual([row.id for row in rows], [coffee.id])

    def test_search_treats_wildcards_literally(self):
        self.storage.products.create(product_fields(name="Discount 50% pack"))
        self.storage.products.create(product_fields(name="Plain pack", sku="PLN"))

        rows = self.storage.products.list("50%")

        self.assertEqual([row.name for row in rows], ["Discount 50% pack"])

    def test_get_missing_returns_none(self):
        self.assertIsNone(self.storage.clients.get(999))
        self.assertIsNone(self.storage.products.get(999))

    def test_create_client_stamps_last_order_date(self):
        client = self.storage.clients.create(client_fields())

        self.assertIsNotNone(client.id)
        self.assertIsNotNone(client.last_order_date)

    def test_create_product_keeps_two_decimal_price(self):
        product = self.storage.products.create(product_fields(price=Decimal("10.5")))

        stored = self.storage.products.get(product.id)
        self.assertEqual(stored.price, Decimal("10.50"))
        self.assertIsNotNone(stored.updated_at)

    def test_update_replaces_fields(self):
        client = self.storage.clients.create(client_fields())

        updated = self.storage.clients.update(client.id, client_fields(city="Santos"))

        self.assertEqual(updated.city, "Santos")
        self.assertEqual(self.storage.clients.get(client.id).city, "Santos")

    def test_update_missing_returns_none(self):
        self.assertIsNone(self.storage.clients.update(404, client_fields()))
        self.assertIsNone(self.storage.products.update(404, product_fields()))

    def test_update_product_restamps_updated_at(self):
        product = self.storage.products.create(product_fields())

        updated = self.storage.products.update(product.id, product_fields(stock=3))

        self.assertEqual(updated.stock, 3)
        self.assertGreaterEqual(ensure_utc(updated.updated_at), ensure_utc(product.updated_at))

    def test_delete_reports_whether_a_row_was_removed(self):
        client = self.storage.clients.create(client_fields())

        self.assertTrue(self.storage.clients.delete(client.id))
        self.assertFalse(self.storage.clients.delete(client.id))
        self.assertFalse(self.storage.clients.delete(12345))
        self.assertIsNone(self.storage.clients.get(client.id))

    def test_delete_product_referenced_by_sale_is_refused(self):
        product = self.storage.products.create(product_fields())
        self._sell(product, 1)

        with self.assertRaises(ReferentialConflict):
            self.storage.products.delete(product.id)
        self.assertIsNotNone(self.storage.products.get(product.id))

    def test_delete_client_keeps_sales_as_anonymous(self):
        client = self.storage.clients.create(client_fields())
        product = self.storage.products.create(product_fields())
        sale = self._sell(product, 1, client=client)

        self.assertTrue(self.storage.clients.delete(client.id))

        stored, _items = self.storage.sales.get_sale_with_items(sale.id)
        self.assertIsNone(stored.client_id)

    def test_low_stock_uses_product_threshold_or_default(self):
        self.storage.products.create(product_fields(name="Plenty", stock=50))
        at_default = self.storage.products.create(product_fields(name="At default", stock=5))
        custom = self.storage.products.create(product_fields(name="Custom", stock=8, min_stock=10))
        self.storage.products.create(product_fields(name="Above custom", stock=3, min_stock=2))

        rows = self.storage.products.low_stock(default_min_stock=5)

        self.assertEqual([row.id for row in rows], [at_default.id, custom.id])

    # ------------------------------------------------------------------
    # Sale creation
    # ------------------------------------------------------------------

    def test_create_sale_records_items_stock_and_client_date(self):
        client = self.storage.clients.create(client_fields())
        coffee = self.storage.products.create(product_fields(stock=10))
        oil = self.storage.products.create(product_fields(name="Olive Oil", price=Decimal("49.50"), stock=4))

        sale = self.storage.sales.create_sale(
            SaleHeader(client_id=client.id, date=MAY_FIRST, total=Decimal("148.80")),
            [
                SaleLine(product_id=coffee.id, quantity=2, unit_price=Decimal("24.90")),
                SaleLine(product_id=oil.id, quantity=2, unit_price=Decimal("49.50")),
            ],
        )

        self.assertIsNotNone(sale.id)
        self.assertEqual(sale.total, Decimal("148.80"))
        self.assertEqual(self._stock(coffee), 8)
        self.assertEqual(self._stock(oil), 2)
        self.assertEqual(ensure_utc(self.storage.clients.get(client.id).last_order_date), MAY_FIRST)

        stored, items = self.storage.sales.get_sale_with_items(sale.id)
        self.assertEqual(stored.id, sale.id)
        self.assertEqual([item.quantity for item, _product in items], [2, 2])
        self.assertEqual(items[0][0].total, Decimal("49.80"))
        self.assertEqual(items[1][1].name, "Olive Oil")

    def test_sale_total_defaults_to_zero(self):
        product = self.storage.products.create(product_fields())

        sale = self._sell(product, 1)

        self.assertEqual(sale.total, Decimal("0.00"))

    def test_sale_date_defaults_to_now(self):
        product = self.storage.products.create(product_fields())
        before = datetime.now(timezone.utc) - timedelta(seconds=5)

        sale = self.storage.sales.create_sale(
            SaleHeader(),
            [SaleLine(product_id=product.id, quantity=1, unit_price=product.price)],
        )

        self.assertGreaterEqual(ensure_utc(sale.date), before)

    def test_create_sale_rejects_empty_items(self):
        with self.assertRaises(InvalidArgument):
            self.storage.sales.create_sale(SaleHeader(), [])
        self.assertEqual(self.storage.sales.list_sales(), [])

    def test_create_sale_rejects_non_positive_quantity(self):
        product = self.storage.products.create(product_fields())

        with self.assertRaises(InvalidArgument):
            self._sell(product, 0)
        self.assertEqual(self._stock(product), 10)

    def test_stock_never_goes_negative(self):
        product = self.storage.products.create(product_fields(stock=3))

        self._sell(product, 2)
        with self.assertRaises(InsufficientStock) as ctx:
            self._sell(product, 2)

        self.assertEqual(self._stock(product), 1)
        self.assertEqual(ctx.exception.details["on_hand"], 1)
        self.assertEqual(len(self.storage.sales.list_sales()), 1)

    def test_failed_line_rolls_back_whole_sale(self):
        client = self.storage.clients.create(client_fields())
        original_date = self.storage.clients.get(client.id).last_order_date
        coffee = self.storage.products.create(product_fields(stock=10))
        oil = self.storage.products.create(product_fields(name="Olive Oil", stock=1))

        with self.assertRaises(InsufficientStock):
            self.storage.sales.create_sale(
                SaleHeader(client_id=client.id, date=MAY_FIRST),
                [
                    SaleLine(product_id=coffee.id, quantity=4, unit_price=Decimal("24.90")),
                    SaleLine(product_id=oil.id, quantity=2, unit_price=Decimal("49.50")),
                ],
            )

        self.assertEqual(self._stock(coffee), 10)
        self.assertEqual(self._stock(oil), 1)
        self.assertEqual(self.storage.sales.list_sales(), [])
        self.assertEqual(self.storage.sales.sale_items_between(None, None), [])
        self.assertEqual(self.storage.clients.get(client.id).last_order_date, original_date)

    def test_failure_after_stock_update_leaves_no_trace(self):
        client = self.storage.clients.create(client_fields())
        product = self.storage.products.create(product_fields(stock=10))
        repository_class = type(self.storage.sales)

        with patch.object(repository_class, "_stamp_client", side_effect=StorageError("connection lost")):
            with self.assertRaises(StorageError):
                self._sell(product, 3, client=client)

        self.assertEqual(self._stock(product), 10)
        self.assertEqual(self.storage.sales.list_sales(), [])
        self.assertEqual(self.storage.sales.sale_items_between(None, None), [])

    def test_unknown_product_raises_not_found(self):
        product = self.storage.products.create(product_fields(stock=10))

        with self.assertRaises(NotFound):
            self.storage.sales.create_sale(
                SaleHeader(date=MAY_FIRST),
                [
                    SaleLine(product_id=product.id, quantity=1, unit_price=Decimal("24.90")),
                    SaleLine(product_id=9999, quantity=1, unit_price=Decimal("1.00")),
                ],
            )

        self.assertEqual(self._stock(product), 10)
        self.assertEqual(self.storage.sales.list_sales(), [])

    def test_unknown_client_raises_not_found(self):
        product = self.storage.products.create(product_fields())

        with self.assertRaises(NotFound):
            self.storage.sales.create_sale(
                SaleHeader(client_id=777),
                [SaleLine(product_id=product.id, quantity=1, unit_price=product.price)],
            )
        self.assertEqual(self._stock(product), 10)

    def test_unit_price_is_a_snapshot(self):
        product = self.storage.products.create(product_fields(price=Decimal("24.90")))
        sale = self._sell(product, 1, unit_price=Decimal("24.90"))

        self.storage.products.update(product.id, product_fields(price=Decimal("99.00"), stock=9))

        _sale, items = self.storage.sales.get_sale_with_items(sale.id)
        item, current = items[0]
        self.assertEqual(item.unit_price, Decimal("24.90"))
        self.assertEqual(current.price, Decimal("99.00"))

    # ------------------------------------------------------------------
    # Sale reads and aggregation
    # ------------------------------------------------------------------

    def test_list_sales_newest_first_within_window(self):
        product = self.storage.products.create(product_fields(stock=10))
        older = self._sell(product, 1, when=MAY_FIRST)
        newer = self._sell(product, 1, when=MAY_FIRST + timedelta(days=1))
        self._sell(product, 1, when=MAY_FIRST + timedelta(days=10))

        rows = self.storage.sales.list_sales(MAY_FIRST - timedelta(hours=1), MAY_FIRST + timedelta(days=2))

        self.assertEqual([row.id for row in rows], [newer.id, older.id])

    def test_get_sale_with_items_missing_returns_none(self):
        self.assertIsNone(self.storage.sales.get_sale_with_items(4242))

    def test_summarize_by_day_sums_exactly(self):
        product = self.storage.products.create(product_fields(stock=100))
        for hour, total in ((9, "10.00"), (12, "20.50"), (18, "5.25")):
            self._sell(product, 1, when=MAY_FIRST.replace(hour=hour), total=Decimal(total))
        self._sell(product, 1, when=MAY_FIRST + timedelta(days=2), total=Decimal("1.10"))
        self._sell(product, 1, when=MAY_FIRST + timedelta(days=30), total=Decimal("99.99"))

        summary = self.storage.sales.summarize_by_day(
            datetime(2024, 5, 1, tzinfo=timezone.utc),
            datetime(2024, 5, 10, tzinfo=timezone.utc),
        )

        self.assertEqual([entry.date.isoformat() for entry in summary], ["2024-05-01", "2024-05-03"])
        self.assertEqual(summary[0].total, Decimal("35.75"))
        self.assertEqual(summary[0].count, 3)
        self.assertEqual(summary[1].total, Decimal("1.10"))
        self.assertEqual(summary[1].count, 1)

    def test_windows_accept_naive_bounds_as_utc(self):
        product = self.storage.products.create(product_fields(stock=10))
        self._sell(product, 2)
        start = datetime(2024, 5, 1)
        end = datetime(2024, 5, 1, 23, 59, 59)

        self.assertEqual(len(self.storage.sales.list_sales(start, end)), 1)
        self.assertEqual(len(self.storage.sales.sale_items_between(start, end)), 1)
        summary = self.storage.sales.summarize_by_day(start, end)
        self.assertEqual([(entry.date.isoformat(), entry.count) for entry in summary], [("2024-05-01", 1)])
        self.assertEqual(self.storage.sales.list_sales(datetime(2024, 5, 2), None), [])

    def test_sale_items_between_joins_product_fields(self):
        product = self.storage.products.create(product_fields(stock=10))
        sale = self._sell(product, 3, unit_price=Decimal("20.00"))
        self._sell(product, 1, when=MAY_FIRST + timedelta(days=40))

        rows = self.storage.sales.sale_items_between(
            MAY_FIRST - timedelta(days=1), MAY_FIRST + timedelta(days=1)
        )

        self.assertEqual(len(rows), 1)
        row = rows[0]
        self.assertEqual(row.sale_id, sale.id)
        self.assertEqual(row.quantity, 3)
        self.assertEqual(row.unit_price, Decimal("20.00"))
        self.assertEqual(row.total, Decimal("60.00"))
        self.assertEqual(row.product_name, "Arabica Coffee")
        self.assertEqual(row.product_price, Decimal("24.90"))
