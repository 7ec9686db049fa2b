from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from shopdesk.core.constants import CENT


def to_money(value):
    """Coerce ``value`` to a two-place ``Decimal``; ``None`` stays ``None``."""
    if value is None:
        return None
    if isinstance(value, Decimal):
        amount = value
    else:
        try:
            amount = Decimal(str(value).strip())
        except InvalidOperation as exc:
            raise ValueError("Invalid money amount: {!r}".format(value)) from exc
    if not amount.is_finite():
        raise ValueError("Invalid money amount: {!r}".format(value))
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def to_cents(value):
    if value is None:
        return None
    return int(to_money(value) * 100)


def from_cents(cents):
    if cents is None:
        return None
    return (Decimal(int(cents)) / 100).quantize(CENT)


def line_total(quantity, unit_price):
    return to_money(Decimal(int(quantity)) * to_money(unit_price))
