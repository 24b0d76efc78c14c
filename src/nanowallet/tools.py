from decimal import ROUND_DOWN, ROUND_HALF_UP, Decimal, InvalidOperation, localcontext

import nanowallet.constants as C
from nanowallet.errors import InvalidAmountError

# 2^128 raw has 39 digits; leave room for the fractional part
_PRECISION = 80


class Tools:
    """Convert between raw units and the whole-coin ("mega") unit."""

    def __init__(self, decimal_places: int = C.DEFAULT_DECIMAL_PLACES):
        self.decimal_places = decimal_places

    def mega_to_raw(self, amount: str | int | float | Decimal) -> str:
        value = _to_decimal(amount)
        with localcontext() as ctx:
            ctx.prec = _PRECISION
            raw = value.scaleb(self.decimal_places).quantize(Decimal(1), rounding=ROUND_HALF_UP)
        return format(raw, "f")

    def raw_to_mega(self, amount: str | int | Decimal) -> str:
        value = _to_decimal(amount)
        with localcontext() as ctx:
            ctx.prec = _PRECISION
            mega = value.scaleb(-self.decimal_places).quantize(Decimal(1).scaleb(-self.decimal_places), rounding=ROUND_DOWN)
        return format(mega, "f")


def _to_decimal(amount) -> Decimal:
    try:
        # str() first so floats convert by their shortest repr, not their binary value
        value = Decimal(str(amount))
    except InvalidOperation as e:
        raise InvalidAmountError(str(amount)) from e
    if not value.is_finite():
        raise InvalidAmountError(str(amount))
    return value
