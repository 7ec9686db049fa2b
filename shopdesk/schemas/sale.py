import datetime as dt
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from shopdesk.schemas.product import ProductRead

_CAMEL = ConfigDict(alias_generator=to_camel, populate_by_name=True)
_CAMEL_READ = ConfigDict(from_attributes=True, alias_generator=to_camel, populate_by_name=True)


class SaleItemIn(BaseModel):
    product_id: int
    quantity: int = Field(gt=0)
    unit_price: Decimal = Field(ge=0)
    total: Optional[Decimal] = None

    model_config = _CAMEL


class SaleHeaderIn(BaseModel):
    client_id: Optional[int] = None
    date: Optional[dt.datetime] = None
    total: Optional[Decimal] = None
    notes: Optional[str] = None

    model_config = _CAMEL


class SaleIn(SaleHeaderIn):
    items: List[SaleItemIn] = Field(default_factory=list)


class NestedSaleIn(BaseModel):
    sale: SaleHeaderIn
    items: List[SaleItemIn] = Field(default_factory=list)

    model_config = _CAMEL


class SaleRead(BaseModel):
    id: int
    client_id: Optional[int] = None
    date: dt.datetime
    total: Decimal
    notes: Optional[str] = None

    model_config = _CAMEL_READ


class SaleItemRead(BaseModel):
    id: int
    sale_id: int
    product_id: int
    quantity: int
    unit_price: Decimal
    total: Decimal

    model_config = _CAMEL_READ


class SaleItemWithProduct(SaleItemRead):
    product: Optional[ProductRead] = None


class SaleDetail(BaseModel):
    sale: SaleRead
    items: List[SaleItemWithProduct] = Field(default_factory=list)

    model_config = _CAMEL


class SaleItemRowRead(SaleItemRead):
    product_name: Optional[str] = None
    product_price: Optional[Decimal] = None
    sale_date: Optional[dt.datetime] = None
