"""
Points/Rewards Rule
===================
One point per whole RM spent; the fractional remainder is discarded.

This is the only place points are computed. The ledger service, the
profile statistics and the kiosk all call into here.
"""

import math
from dataclasses import dataclass

from greenfill.core.catalog import Voucher
from greenfill.core.errors import InvalidAmount


def points_earned(total_price: float) -> int:
    if not math.isfinite(total_price) or total_price < 0:
        raise InvalidAmount(f"Total price must be a non-negative amount, got {total_price}")
    return math.floor(total_price)


def can_redeem(balance: int, voucher: Voucher) -> bool:
    return balance >= voucher.points_required


def shortfall(balance: int, voucher: Voucher) -> int:
    """Points still missing before the voucher can be redeemed (0 if none)"""
    return max(voucher.points_required - balance, 0)


@dataclass(frozen=True)
class Redemption:
    """Outcome of a redemption attempt"""
    voucher: Voucher
    accepted: bool
    balance: int        # balance after the attempt
    shortfall: int = 0  # only set when rejected

    @property
    def message(self) -> str:
        if self.accepted:
            return (
                f"Successfully redeemed: {self.voucher.name}. "
                f"Points used: {self.voucher.points_required}. "
                f"Remaining points: {self.balance}"
            )
        return (
            f"Insufficient points! You need {self.shortfall} more points "
            f"to redeem this voucher."
        )


def redeem(balance: int, voucher: Voucher) -> Redemption:
    """Deduct the voucher's cost. The balance never goes negative."""
    if not can_redeem(balance, voucher):
        return Redemption(
            voucher=voucher,
            accepted=False,
            balance=balance,
            shortfall=shortfall(balance, voucher),
        )
    return Redemption(
        voucher=voucher,
        accepted=True,
        balance=balance - voucher.points_required,
    )
