import importlib

from shopdesk.models.client import Client
from shopdesk.models.product import Product
from shopdesk.models.sale import Sale, SaleItem


def import_all_models() -> None:
    for module_name in (
        "shopdesk.models.client",
        "shopdesk.models.product",
        "shopdesk.models.sale",
    ):
        importlib.import_module(module_name)


__all__ = [
    "Client",
    "Product",
    "Sale",
    "SaleItem",
    "import_all_models",
]
