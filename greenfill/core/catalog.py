"""
Kiosk Catalog
Static reference data: brands, dispenser locations, vouchers, payment methods
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


@dataclass(frozen=True)
class Brand:
    id: str
    name: str
    price_per_ten_ml: float  # RM per 10 ml


@dataclass(frozen=True)
class Voucher:
    id: str
    name: str
    description: str
    points_required: int
    discount_value: float  # percent or RM, depending on the voucher


class PaymentMethod(str, Enum):
    ONLINE_TRANSFER = "online-transfer"  # FPX, credit/debit card
    E_WALLET = "e-wallet"                # Touch 'n Go, GrabPay, Boost, ShopeePay


# Display order matters: the kiosk lists brands in this order
BRANDS = (
    Brand("lifebuoy", "Lifebuoy", 0.50),
    Brand("shokubutsu", "Shokubutsu", 0.45),
    Brand("summerie", "Summerie", 0.55),
    Brand("pureen", "Pureen", 0.60),
    Brand("antabax", "Antabax", 0.52),
)

LOCATIONS = tuple(f"KK{n}" for n in range(1, 14))

VOUCHERS = (
    Voucher("1", "10% Off Next Purchase", "Get 10% discount on your next refill", 50, 10),
    Voucher("2", "RM5 Off", "RM5 discount on purchases above RM20", 100, 5),
    Voucher("3", "Free 50ml Refill", "Get 50ml refill of any brand for free", 150, 0),
    Voucher("4", "20% Off Premium Brands", "20% off on Pureen and Antabax brands", 200, 20),
)

_BRANDS_BY_ID = {b.id: b for b in BRANDS}
_BRANDS_BY_NAME = {b.name: b for b in BRANDS}
_VOUCHERS_BY_ID = {v.id: v for v in VOUCHERS}
_LOCATION_SET = frozenset(LOCATIONS)


def brands() -> tuple[Brand, ...]:
    return BRANDS


def locations() -> frozenset[str]:
    return _LOCATION_SET


def vouchers() -> tuple[Voucher, ...]:
    return VOUCHERS


def brand_by_id(brand_id: str) -> Optional[Brand]:
    return _BRANDS_BY_ID.get(brand_id)


def brand_by_name(name: str) -> Optional[Brand]:
    return _BRANDS_BY_NAME.get(name)


def voucher_by_id(voucher_id: str) -> Optional[Voucher]:
    return _VOUCHERS_BY_ID.get(voucher_id)


def is_catalog_brand(brand: Optional[Brand]) -> bool:
    return brand is not None and _BRANDS_BY_ID.get(brand.id) == brand


def is_location(code: Optional[str]) -> bool:
    return code in _LOCATION_SET

