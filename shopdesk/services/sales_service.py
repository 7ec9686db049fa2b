"""
Sale submission handling.

Turns loosely-typed request bodies into a ``create_sale`` call. Two payload
shapes are accepted and normalize to the same call:

* flat: ``{"clientId", "date", "total", "notes", "items": [...]}``
* nested: ``{"sale": {"clientId", "date", "total", "notes"}, "items": [...]}``
"""

import logging

from pydantic import ValidationError

from shopdesk.core.constants import SALE_TOTAL_POLICIES
from shopdesk.core.errors import InvalidArgument
from shopdesk.core.money import line_total, to_money
from shopdesk.schemas.sale import NestedSaleIn, SaleIn
from shopdesk.storage.base import SaleHeader, SaleLine

logger = logging.getLogger(__name__)


def _validation_details(exc: ValidationError):
    return {
        "errors": [
            {
                "loc": [str(part) for part in error.get("loc", ())],
                "msg": error.get("msg"),
            }
            for error in exc.errors()
        ]
    }


def parse_sale_payload(body):
    """Validate either payload shape; returns ``(SaleHeader, [SaleLine])``."""
    if not isinstance(body, dict):
        raise InvalidArgument("Invalid sale data format")

    try:
        if isinstance(body.get("sale"), dict):
            nested = NestedSaleIn.model_validate(body)
            header_in, items_in = nested.sale, nested.items
        elif isinstance(body.get("items"), list):
            header_in = SaleIn.model_validate(body)
            items_in = header_in.items
        else:
            raise InvalidArgument("Invalid sale data format")
    except ValidationError as exc:
        raise InvalidArgument("Invalid sale data", details=_validation_details(exc)) from exc

    if not items_in:
        raise InvalidArgument("Sale must have at least one item")

    header = SaleHeader(
        client_id=header_in.client_id,
        date=header_in.date,
        total=to_money(header_in.total),
        notes=header_in.notes,
    )
    lines = [
        SaleLine(
            product_id=item.product_id,
            quantity=item.quantity,
            unit_price=to_money(item.unit_price),
            total=to_money(item.total),
        )
        for item in items_in
    ]
    return header, lines


def apply_total_policy(header, lines, policy="verify"):
    """
    ``verify`` recomputes every line total from quantity and unit price,
    fills a missing sale total with their sum and rejects caller totals that
    disagree. ``trust`` stores caller totals as given.
    """
    policy = (policy or "").strip().lower()
    if policy not in SALE_TOTAL_POLICIES:
        raise ValueError("Unknown sale total policy: {}".format(policy))
    if policy == "trust":
        return header, lines

    checked = []
    for index, line in enumerate(lines):
        expected = line_total(line.quantity, line.unit_price)
        if line.total is not None and to_money(line.total) != expected:
            raise InvalidArgument(
                "Item total does not match quantity x unit price.",
                details={
                    "index": index,
                    "product_id": line.product_id,
                    "expected": str(expected),
                    "received": str(to_money(line.total)),
                },
            )
        checked.append(
            SaleLine(
                product_id=line.product_id,
                quantity=line.quantity,
                unit_price=line.unit_price,
                total=expected,
            )
        )

    computed = sum((line.total for line in checked), to_money(0))
    if header.total is not None and to_money(header.total) != computed:
        raise InvalidArgument(
            "Sale total does not match the sum of its items.",
            details={"expected": str(computed), "received": str(to_money(header.total))},
        )
    return (
        SaleHeader(
            client_id=header.client_id,
            date=header.date,
            total=computed,
            notes=header.notes,
        ),
        checked,
    )


def record_sale(storage, body, policy="verify"):
    header, lines = parse_sale_payload(body)
    header, lines = apply_total_policy(header, lines, policy)
    logger.info(
        "Creating sale for client %s with %s item(s), total %s.",
        header.client_id,
        len(lines),
        header.total,
    )
    return storage.sales.create_sale(header, lines)


__all__ = ["apply_total_policy", "parse_sale_payload", "record_sale"]
