"""
Pricing Rule
price = (volume_ml / 10) * brand.price_per_ten_ml

Totals are never rounded; rounding happens only when formatting for display.
"""

import math
import re
from typing import Optional

from greenfill.core.catalog import Brand
from greenfill.core.errors import InvalidVolume


# Digits with at most one decimal point ("150", "150.", "150.5")
VOLUME_PATTERN = re.compile(r"^\d+\.?\d*$")

CURRENCY = "RM"


def price(brand: Brand, volume_ml: float) -> float:
    """Amount due for a volume of a brand. Raises InvalidVolume for v <= 0."""
    if not isinstance(volume_ml, (int, float)) or isinstance(volume_ml, bool):
        raise InvalidVolume(f"Volume must be a number, got {volume_ml!r}")
    if not math.isfinite(volume_ml) or volume_ml <= 0:
        raise InvalidVolume(f"Volume must be a positive number of ml, got {volume_ml}")
    return (volume_ml / 10) * brand.price_per_ten_ml


def accepts_volume_input(text: str) -> bool:
    """Keystroke filter for the volume field: empty or a decimal number"""
    return text == "" or bool(VOLUME_PATTERN.match(text))


def parse_volume(text: str) -> Optional[float]:
    """Volume in ml when the input is a positive number, else None"""
    if not text or not VOLUME_PATTERN.match(text):
        return None
    volume = float(text)
    if not math.isfinite(volume) or volume <= 0:
        return None
    return volume


def quote(brand: Optional[Brand], volume_text: str) -> float:
    """Live total shown under the volume field; 0 while input is incomplete"""
    if brand is None:
        return 0.0
    volume = parse_volume(volume_text)
    if volume is None:
        return 0.0
    return price(brand, volume)


def format_money(amount: float) -> str:
    return f"{CURRENCY} {amount:.2f}"
