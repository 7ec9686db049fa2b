import argparse
from datetime import timedelta
from decimal import Decimal

from shopdesk.config import get_settings
from shopdesk.core.dates import utcnow
from shopdesk.core.logging import setup_logging
from shopdesk.database.base import Base
from shopdesk.storage import SaleHeader, SaleLine, SqlStorage


def parse_args():
    parser = argparse.ArgumentParser(description="Seed sample clients, products and sales.")
    parser.add_argument(
        "--reset",
        action="store_true",
        help="Drop and recreate all tables before seeding.",
    )
    parser.add_argument(
        "--database-url",
        default=None,
        help="Override DATABASE_URL from the environment.",
    )
    return parser.parse_args()


def main():
    setup_logging()
    args = parse_args()
    settings = get_settings()

    storage = SqlStorage(database_url=args.database_url or settings.DATABASE_URL)
    try:
        if args.reset:
            Base.metadata.drop_all(bind=storage.engine)
        storage.initialize()

        if storage.products.list():
            print("Seed skipped: products already exist.")
            return

        clients = [
            storage.clients.create(
                {
                    "name": "Maria Souza",
                    "email": "maria@example.com",
                    "phone": "11987654321",
                    "address": "Rua das Flores, 120",
                    "city": "Campinas",
                    "state": "SP",
                }
            ),
            storage.clients.create(
                {
                    "name": "Joao Lima",
                    "email": "joao@example.com",
                    "phone": "21998765432",
                    "address": "Av. Atlantica, 45",
                    "city": "Rio de Janeiro",
                    "state": "RJ",
                }
            ),
        ]

        products = [
            storage.products.create(
                {
                    "name": "Arabica Coffee 500g",
                    "description": "Medium roast ground coffee",
                    "category": "Groceries",
                    "price": Decimal("24.90"),
                    "stock": 40,
                    "sku": "COF-500",
                }
            ),
            storage.products.create(
                {
                    "name": "Olive Oil 1L",
                    "description": "Extra virgin olive oil",
                    "category": "Groceries",
                    "price": Decimal("49.50"),
                    "stock": 12,
                    "min_stock": 10,
                    "sku": "OIL-1000",
                }
            ),
            storage.products.create(
                {
                    "name": "Dish Soap",
                    "description": "Lemon dish soap, 500ml",
                    "category": "Cleaning",
                    "price": Decimal("3.75"),
                    "stock": 4,
                    "sku": "SOAP-500",
                }
            ),
        ]

        now = utcnow()
        storage.sales.create_sale(
            SaleHeader(client_id=clients[0].id, date=now - timedelta(days=2), total=Decimal("74.40")),
            [
                SaleLine(product_id=products[0].id, quantity=1, unit_price=Decimal("24.90")),
                SaleLine(product_id=products[1].id, quantity=1, unit_price=Decimal("49.50")),
            ],
        )
        storage.sales.create_sale(
            SaleHeader(client_id=None, date=now, total=Decimal("7.50")),
            [SaleLine(product_id=products[2].id, quantity=2, unit_price=Decimal("3.75"))],
        )
        print("Seed data created.")
    finally:
        storage.close()


if __name__ == "__main__":
    main()
