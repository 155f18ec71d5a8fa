"""Refill Ledger Client.

Kiosk-side adapter for the backend's refill endpoints. The backend owns
the ledger and computes reward points; this client never sends any.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

import httpx

from greenfill.client.auth import json_body
from greenfill.core.catalog import Voucher
from greenfill.core.errors import Unauthorized, UpstreamFailure

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RefillRecord:
    id: str
    brand: str
    volume: float
    total_price: float
    location: str
    payment_method: str
    reward_points: int
    created_at: str

    @classmethod
    def from_payload(cls, data: dict[str, Any]) -> RefillRecord:
        return cls(
            id=str(data["id"]),
            brand=data["brand"],
            volume=float(data["volume"]),
            total_price=float(data["total_price"]),
            location=data["location"],
            payment_method=data["payment_method"],
            reward_points=int(data.get("reward_points") or 0),
            created_at=data["created_at"],
        )


@dataclass(frozen=True)
class RefillHistory:
    records: list[RefillRecord]  # newest first
    total_points: int


class RefillLedgerClient:
    """Talks to /add-refill, /refill-history, /profile and /redeem-voucher."""

    def __init__(self, api: httpx.AsyncClient) -> None:
        self._api = api

    async def record_refill(
        self,
        credential: str,
        brand: str,
        volume: float,
        total_price: float,
        location: str,
        payment_method: str,
        idempotency_key: Optional[str] = None,
    ) -> int:
        """Persist one completed dispense; returns the points the server awarded."""
        headers = _bearer(credential)
        if idempotency_key:
            headers["Idempotency-Key"] = idempotency_key

        resp = await self._api.post(
            "add-refill",
            headers=headers,
            json={
                "brand": brand,
                "volume": volume,
                "totalPrice": total_price,
                "location": location,
                "paymentMethod": payment_method,
            },
        )
        data = _checked(resp)
        logger.info("Refill recorded. Points earned: %s", data.get("pointsEarned"))
        return int(data["pointsEarned"])

    async def list_history(self, credential: str) -> RefillHistory:
        data = _checked(await self._api.get("refill-history", headers=_bearer(credential)))
        return RefillHistory(
            records=[RefillRecord.from_payload(r) for r in data.get("history") or []],
            total_points=int(data.get("totalPoints") or 0),
        )

    async def get_profile(self, credential: str) -> dict[str, Any]:
        data = _checked(await self._api.get("profile", headers=_bearer(credential)))
        return data["profile"]

    async def redeem_voucher(self, credential: str, voucher: Voucher) -> int:
        """Spend points on a voucher; returns the remaining balance."""
        resp = await self._api.post(
            "redeem-voucher",
            headers=_bearer(credential),
            json={"voucherId": voucher.id, "pointsUsed": voucher.points_required},
        )
        data = _checked(resp)
        return int(data["remainingPoints"])


def _bearer(credential: str) -> dict[str, str]:
    if not credential:
        raise Unauthorized("No credential")
    return {"Authorization": f"Bearer {credential}"}


def _checked(resp: httpx.Response) -> dict[str, Any]:
    data = json_body(resp)
    if resp.status_code == 401:
        raise Unauthorized(data.get("error") or "Unauthorized")
    if resp.status_code >= 400:
        message = data.get("error") or f"HTTP {resp.status_code}"
        logger.warning("%s %s failed: %s", resp.request.method, resp.request.url.path, message)
        raise UpstreamFailure(message)
    return data
