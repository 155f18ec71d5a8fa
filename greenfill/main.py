"""
Greenfill Hub - API
===================
FastAPI facade for the soap-refill kiosk: sign-up, profile, refill ledger, vouchers
"""

import logging
import time
from functools import lru_cache
from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, Header, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from greenfill.auth.provider import AuthProvider, AuthUser, GoTrueAuthProvider
from greenfill.config import configure_logging, get_settings
from greenfill.core.catalog import voucher_by_id
from greenfill.core.errors import AuthProviderError, Unauthorized
from greenfill.db.database import get_session_factory
from greenfill.refills.ledger import RefillLedger
from greenfill.refills.schemas import (
    AddRefillRequest,
    AddRefillResponse,
    HistoryResponse,
    ProfileResponse,
    RedeemVoucherRequest,
    RedeemVoucherResponse,
    SignupRequest,
    SignupResponse,
)


logger = logging.getLogger(__name__)

settings = get_settings()
configure_logging(settings.log_level)


# ── Dependencies ──────────────────────────────────────────────────────────────

@lru_cache
def get_auth_provider() -> AuthProvider:
    return GoTrueAuthProvider(
        base_url=settings.auth_url,
        anon_key=settings.auth_anon_key,
        service_key=settings.auth_service_key,
        timeout=settings.http_timeout_seconds,
    )


def get_ledger(session_factory=Depends(get_session_factory)) -> RefillLedger:
    return RefillLedger(session_factory)


async def current_user(
    request: Request,
    authorization: Optional[str] = Header(None),
    provider: AuthProvider = Depends(get_auth_provider),
) -> AuthUser:
    """Resolve 'Authorization: Bearer <token>' to a user, or 401"""
    parts = (authorization or "").split(" ")
    access_token = parts[1] if len(parts) > 1 else None
    if not access_token:
        raise HTTPException(status_code=401, detail="No authorization token provided")

    try:
        return await provider.get_user(access_token)
    except Unauthorized as exc:
        logger.warning("Authorization error on %s: %s", request.url.path, exc)
        raise HTTPException(status_code=401, detail="Unauthorized")


# ── Endpoints ─────────────────────────────────────────────────────────────────

router = APIRouter(prefix=settings.service_prefix)


@router.get("/health")
async def health():
    """Health check endpoint"""
    return {"status": "ok"}


@router.post("/signup", response_model=SignupResponse)
async def signup(
    body: SignupRequest,
    provider: AuthProvider = Depends(get_auth_provider),
    ledger: RefillLedger = Depends(get_ledger),
):
    """
    Register a user with the auth provider.

    The account is confirmed immediately (no verification mail), and a
    profile row is created for it. Provider refusals come back as 400
    with the provider's own message.
    """
    if not body.email or not body.password:
        raise HTTPException(status_code=400, detail="Email and password are required")

    try:
        user = await provider.create_user(body.email, body.password, phone=body.phone)
    except AuthProviderError as exc:
        logger.warning("Auth error during signup: %s", exc)
        raise HTTPException(status_code=400, detail=str(exc))

    try:
        await ledger.create_profile(user, phone=body.phone)
    except SQLAlchemyError:
        # /profile recreates it on first read
        logger.warning("Could not create profile for %s", user.id, exc_info=True)

    return SignupResponse(user={"id": user.id, "email": body.email})


@router.get("/profile", response_model=ProfileResponse)
async def get_profile(
    user: AuthUser = Depends(current_user),
    ledger: RefillLedger = Depends(get_ledger),
):
    """Profile with lifetime refill statistics and points balance"""
    try:
        profile = await ledger.profile(user.id)
        if profile is None:
            await ledger.create_profile(user, phone=user.phone)
            profile = await ledger.profile(user.id)
    except SQLAlchemyError:
        logger.exception("Error fetching profile for user %s", user.id)
        raise HTTPException(status_code=500, detail="Failed to fetch profile")

    if profile is None:
        raise HTTPException(status_code=500, detail="Failed to fetch profile")
    return {"profile": profile}


@router.post("/add-refill", response_model=AddRefillResponse)
async def add_refill(
    body: AddRefillRequest,
    user: AuthUser = Depends(current_user),
    ledger: RefillLedger = Depends(get_ledger),
    idempotency_key: Optional[str] = Header(None),
):
    """
    Record a completed dispense.

    Reward points are computed here from totalPrice (1 point per whole RM).
    An Idempotency-Key header makes retries safe; without one, every call
    inserts a new record.
    """
    try:
        recorded = await ledger.record_refill(user, body, idempotency_key=idempotency_key)
    except SQLAlchemyError:
        logger.exception("Error inserting refill history for user %s", user.id)
        raise HTTPException(status_code=500, detail="Failed to record refill")

    return AddRefillResponse(points_earned=recorded.points_earned)


@router.get("/refill-history", response_model=HistoryResponse)
async def refill_history(
    user: AuthUser = Depends(current_user),
    ledger: RefillLedger = Depends(get_ledger),
):
    """Refill history newest-first, with the sum of earned points"""
    try:
        history, total_points = await ledger.history(user.id)
    except SQLAlchemyError:
        logger.exception("Error fetching refill history for user %s", user.id)
        raise HTTPException(status_code=500, detail="Failed to fetch refill history")

    return HistoryResponse(history=history, total_points=total_points)


@router.post("/redeem-voucher", response_model=RedeemVoucherResponse)
async def redeem_voucher(
    body: RedeemVoucherRequest,
    user: AuthUser = Depends(current_user),
    ledger: RefillLedger = Depends(get_ledger),
):
    """Spend points on a catalog voucher"""
    voucher = voucher_by_id(body.voucher_id)
    if voucher is None:
        raise HTTPException(status_code=400, detail=f"Unknown voucher: {body.voucher_id}")
    if body.points_used is not None and body.points_used != voucher.points_required:
        raise HTTPException(status_code=400, detail="pointsUsed does not match the voucher")

    try:
        outcome = await ledger.redeem_voucher(user, voucher)
    except SQLAlchemyError:
        logger.exception("Error inserting voucher redemption for user %s", user.id)
        raise HTTPException(status_code=500, detail="Failed to redeem voucher")

    if not outcome.accepted:
        return JSONResponse(
            status_code=400,
            content={"error": "Insufficient points", "shortfall": outcome.shortfall},
        )

    return RedeemVoucherResponse(
        message="Voucher redeemed successfully",
        remaining_points=outcome.balance,
    )


# ── Application ───────────────────────────────────────────────────────────────

def create_app() -> FastAPI:
    app = FastAPI(
        title="Greenfill Hub",
        description="Soap refill kiosk: sign-up, refill ledger and rewards",
        version="1.0.0",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "Idempotency-Key"],
        expose_headers=["Content-Length"],
        max_age=600,
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        logger.info(
            "%s %s %d (%.1fms)",
            request.method, request.url.path, response.status_code,
            (time.perf_counter() - started) * 1000,
        )
        return response

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException):
        return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)})

    @app.exception_handler(RequestValidationError)
    async def invalid_body(request: Request, exc: RequestValidationError):
        first = exc.errors()[0] if exc.errors() else {}
        field = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
        message = first.get("msg", "Invalid request")
        return JSONResponse(
            status_code=400,
            content={"error": f"{field}: {message}" if field else message},
        )

    @app.exception_handler(Exception)
    async def unexpected(request: Request, exc: Exception):
        logger.error("Unexpected error on %s", request.url.path, exc_info=exc)
        return JSONResponse(status_code=500, content={"error": "Internal server error"})

    @app.get("/")
    async def root():
        return {
            "service": "Greenfill Hub",
            "version": "1.0.0",
            "status": "running",
        }

    app.include_router(router)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
