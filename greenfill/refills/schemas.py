"""
Request/Response Models
=======================
Every JSON body crossing the HTTP boundary is parsed here first.
Kiosk-facing bodies are camelCase; ledger rows keep their column names.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from greenfill.core.catalog import PaymentMethod, brand_by_name, is_location


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ── /signup ───────────────────────────────────────────────────────────────────

class SignupRequest(BaseModel):
    # Optional so that missing fields get our own 400 message
    email: Optional[str] = None
    phone: Optional[str] = None
    password: Optional[str] = None


class SignupUser(BaseModel):
    id: str
    email: str


class SignupResponse(BaseModel):
    success: bool = True
    user: SignupUser


# ── /add-refill ───────────────────────────────────────────────────────────────

class AddRefillRequest(CamelModel):
    brand: str
    volume: float = Field(gt=0, allow_inf_nan=False)
    total_price: float = Field(ge=0, allow_inf_nan=False)
    location: str
    payment_method: PaymentMethod

    @field_validator("brand")
    @classmethod
    def brand_in_catalog(cls, value: str) -> str:
        if brand_by_name(value) is None:
            raise ValueError(f"unknown brand {value!r}")
        return value

    @field_validator("location")
    @classmethod
    def location_in_catalog(cls, value: str) -> str:
        if not is_location(value):
            raise ValueError(f"unknown location {value!r}")
        return value


class AddRefillResponse(CamelModel):
    success: bool = True
    points_earned: int


# ── /refill-history ───────────────────────────────────────────────────────────

class RefillRecordOut(BaseModel):
    id: str
    brand: str
    volume: float
    total_price: float
    location: str
    payment_method: str
    reward_points: int
    created_at: str


class HistoryResponse(CamelModel):
    history: list[RefillRecordOut]
    total_points: int


# ── /profile ──────────────────────────────────────────────────────────────────

class ProfileOut(BaseModel):
    user_id: str
    email: str
    phone: Optional[str] = None
    created_at: str
    total_refills: int = 0
    total_volume: float = 0.0
    total_spent: float = 0.0
    total_points: int = 0
    points_redeemed: int = 0
    points_balance: int = 0


class ProfileResponse(BaseModel):
    profile: ProfileOut


# ── /redeem-voucher ───────────────────────────────────────────────────────────

class RedeemVoucherRequest(CamelModel):
    voucher_id: str
    points_used: Optional[int] = Field(default=None, ge=0)


class RedeemVoucherResponse(CamelModel):
    success: bool = True
    message: str
    remaining_points: int
