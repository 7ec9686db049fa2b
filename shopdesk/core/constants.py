from decimal import Decimal

DEFAULT_MIN_STOCK = 5
UNKNOWN_PRODUCT_NAME = "Unknown product"

CLIENT_SEARCH_FIELDS = ("name", "email", "phone", "address", "city")
PRODUCT_SEARCH_FIELDS = ("name", "description", "category", "sku")

SUMMARY_PERIODS = ("day", "week", "month")
SALE_TOTAL_POLICIES = ("verify", "trust")

CENT = Decimal("0.01")
ZERO = Decimal("0.00")

API_PREFIX = "/api"
