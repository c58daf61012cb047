from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

import bleach

# Business rule: money and ratings are kept rounded to 2 decimals, half up
TWO_PLACES = Decimal("0.01")


def round_amount(value: Decimal) -> Decimal:
    return Decimal(value).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def clean_text(value: Optional[str]) -> Optional[str]:
    """Strip markup from user-supplied free text before it is stored.

    - Removes NUL bytes
    - Strips HTML tags using bleach.clean(..., strip=True)
    - Trims whitespace
    """
    if value is None:
        return None
    val = value.replace("\x00", "")
    val = bleach.clean(val, tags=set(), strip=True)
    return val.strip()
