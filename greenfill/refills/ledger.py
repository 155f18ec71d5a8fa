"""
Refill Ledger
=============
Records completed dispenses, reads history back, keeps the points
balance and spends points on vouchers. Points always come from
greenfill.core.rewards, never from the request.
"""

import logging
import uuid as _uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError

from greenfill.auth.provider import AuthUser
from greenfill.core.catalog import Voucher
from greenfill.core.rewards import Redemption, points_earned, redeem
from greenfill.db.models import RefillRecord, UserProfile, VoucherRedemption, utcnow
from greenfill.refills.schemas import AddRefillRequest


logger = logging.getLogger(__name__)


@dataclass
class RecordedRefill:
    record_id: str
    points_earned: int
    duplicate: bool = False  # True when an Idempotency-Key was replayed


class RefillLedger:
    """Ledger operations for one request; stateless between requests"""

    def __init__(self, session_factory, now: Callable[[], datetime] = utcnow):
        self.session_factory = session_factory
        self.now = now

    # ── Profiles ──────────────────────────────────────────────────────────────

    async def create_profile(self, user: AuthUser, phone: Optional[str] = None) -> None:
        async with self.session_factory() as session:
            existing = await session.get(UserProfile, user.id)
            if existing:
                return
            session.add(UserProfile(
                user_id=user.id,
                email=user.email,
                phone=phone,
                created_at=self.now(),
            ))
            await session.commit()

    async def profile(self, user_id: str) -> Optional[dict]:
        """Profile row plus lifetime statistics, or None if never created"""
        async with self.session_factory() as session:
            row = await session.get(UserProfile, user_id)
            if row is None:
                return None

            totals = await session.execute(
                select(
                    func.count(RefillRecord.id),
                    func.coalesce(func.sum(RefillRecord.volume), 0.0),
                    func.coalesce(func.sum(RefillRecord.total_price), 0.0),
                    func.coalesce(func.sum(RefillRecord.reward_points), 0),
                ).where(RefillRecord.user_id == user_id)
            )
            count, volume, spent, earned = totals.one()
            redeemed = row.points_redeemed or 0

        return {
            "user_id": row.user_id,
            "email": row.email,
            "phone": row.phone,
            "created_at": row.created_at.isoformat(),
            "total_refills": count,
            "total_volume": float(volume),
            "total_spent": float(spent),
            "total_points": int(earned),
            "points_redeemed": redeemed,
            "points_balance": int(earned) - redeemed,
        }

    # ── Refills ───────────────────────────────────────────────────────────────

    async def record_refill(
        self,
        user: AuthUser,
        refill: AddRefillRequest,
        idempotency_key: Optional[str] = None,
    ) -> RecordedRefill:
        """Insert one refill row; points are computed here from total_price"""

        if idempotency_key:
            replay = await self._find_by_key(user.id, idempotency_key)
            if replay:
                logger.info("Replayed refill %s for user %s", idempotency_key, user.id)
                return replay

        points = points_earned(refill.total_price)
        record = RefillRecord(
            id=_uuid.uuid4(),
            user_id=user.id,
            email=user.email,
            brand=refill.brand,
            volume=refill.volume,
            location=refill.location,
            total_price=refill.total_price,
            payment_method=refill.payment_method.value,
            reward_points=points,
            idempotency_key=idempotency_key,
            created_at=self.now(),
        )

        async with self.session_factory() as session:
            session.add(record)
            try:
                await session.commit()
            except IntegrityError:
                # Same key committed concurrently; the other insert wins
                await session.rollback()
                replay = await self._find_by_key(user.id, idempotency_key) if idempotency_key else None
                if replay is None:
                    raise
                return replay

        logger.info(
            "Recorded refill %s: %s %.0fml at %s, %d points",
            record.id, refill.brand, refill.volume, refill.location, points,
        )
        return RecordedRefill(record_id=str(record.id), points_earned=points)

    async def _find_by_key(self, user_id: str, key: str) -> Optional[RecordedRefill]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(RefillRecord).where(
                    RefillRecord.user_id == user_id,
                    RefillRecord.idempotency_key == key,
                )
            )
            existing = result.scalar_one_or_none()
        if existing is None:
            return None
        return RecordedRefill(
            record_id=str(existing.id),
            points_earned=existing.reward_points,
            duplicate=True,
        )

    async def history(self, user_id: str) -> tuple[list[dict], int]:
        """All refills newest-first, and the sum of their reward points"""
        async with self.session_factory() as session:
            result = await session.execute(
                select(RefillRecord)
                .where(RefillRecord.user_id == user_id)
                .order_by(RefillRecord.created_at.desc())
            )
            records = result.scalars().all()

        total_points = sum(r.reward_points or 0 for r in records)
        return [r.to_dict() for r in records], total_points

    # ── Vouchers ──────────────────────────────────────────────────────────────

    async def redeem_voucher(self, user: AuthUser, voucher: Voucher) -> Redemption:
        """
        Spend points if the balance covers the voucher; nothing is written otherwise.

        The profile row is locked for the whole check-then-spend, and the
        counter update repeats the same check, so concurrent redemptions
        for one user never take the balance below zero.
        """
        while True:
            outcome = await self._try_redeem(user, voucher)
            if outcome is not None:
                return outcome
            logger.info("Redemption for user %s raced another; re-checking balance", user.id)

    async def _try_redeem(self, user: AuthUser, voucher: Voucher) -> Optional[Redemption]:
        """One locked attempt; None when a concurrent redemption changed the balance first"""
        cost = voucher.points_required

        async with self.session_factory() as session:
            # 1. Lock the user's profile row (created here if sign-up missed it)
            result = await session.execute(
                select(UserProfile).where(UserProfile.user_id == user.id).with_for_update()
            )
            profile = result.scalar_one_or_none()
            if profile is None:
                profile = UserProfile(
                    user_id=user.id,
                    email=user.email,
                    phone=user.phone,
                    points_redeemed=0,
                    created_at=self.now(),
                )
                session.add(profile)
                try:
                    await session.flush()
                except IntegrityError:
                    # Created by a concurrent request; lock that row instead
                    await session.rollback()
                    return None

            # 2. Check the balance
            earned = await self._points_earned(session, user.id)
            outcome = redeem(earned - (profile.points_redeemed or 0), voucher)
            if not outcome.accepted:
                await session.rollback()
                logger.info(
                    "User %s is %d points short for voucher %s",
                    user.id, outcome.shortfall, voucher.id,
                )
                return outcome

            # 3. Spend; matches no row if the counter moved since step 2
            claimed = await session.execute(
                update(UserProfile)
                .where(
                    UserProfile.user_id == user.id,
                    UserProfile.points_redeemed + cost <= earned,
                )
                .values(points_redeemed=UserProfile.points_redeemed + cost)
                .execution_options(synchronize_session=False)
            )
            if claimed.rowcount != 1:
                await session.rollback()
                return None

            session.add(VoucherRedemption(
                id=_uuid.uuid4(),
                user_id=user.id,
                email=user.email,
                voucher_id=voucher.id,
                points_used=cost,
                redeemed_at=self.now(),
            ))
            await session.commit()

        logger.info("User %s redeemed voucher %s", user.id, voucher.id)
        return outcome

    @staticmethod
    async def _points_earned(session, user_id: str) -> int:
        earned = await session.scalar(
            select(func.coalesce(func.sum(RefillRecord.reward_points), 0))
            .where(RefillRecord.user_id == user_id)
        )
        return int(earned)
