import datetime as dt
from decimal import Decimal
from typing import List

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from shopdesk.schemas.product import ProductRead

_CAMEL_READ = ConfigDict(from_attributes=True, alias_generator=to_camel, populate_by_name=True)


class DailySummaryRead(BaseModel):
    date: dt.date
    total: Decimal
    count: int

    model_config = _CAMEL_READ


class PeriodSummaryRead(DailySummaryRead):
    period: str


class TopProductRead(BaseModel):
    product_id: int
    name: str
    quantity_sold: int
    total_amount: Decimal

    model_config = _CAMEL_READ


class InventoryReportRead(BaseModel):
    total_value: Decimal
    product_count: int
    out_of_stock_count: int
    low_stock_count: int
    low_stock: List[ProductRead] = Field(default_factory=list)

    model_config = _CAMEL_READ


class DashboardRead(BaseModel):
    client_count: int
    product_count: int
    low_stock_count: int
    out_of_stock_count: int
    inventory_value: Decimal
    sales_today_total: Decimal
    sales_today_count: int

    model_config = _CAMEL_READ
