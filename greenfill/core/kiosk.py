"""
Kiosk Driver
============
Owns the one KioskState and runs the steps that wait on something:
sign-in/sign-up, the simulated payment delay, the dispensing clock,
the ledger write after dispensing, and the profile screen.

Pure order rules live in order_fsm; this class only sequences them
around I/O and the clock.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Optional

import httpx

from greenfill.auth.provider import AuthProvider
from greenfill.client.auth import AuthAdapter
from greenfill.client.ledger import RefillLedgerClient, RefillRecord
from greenfill.config import Settings
from greenfill.core import order_fsm as fsm
from greenfill.core.catalog import Brand, PaymentMethod, voucher_by_id
from greenfill.core.clock import Clock, WallClock
from greenfill.core.errors import (
    GreenfillError,
    InvalidCredentials,
    Unauthorized,
    UpstreamFailure,
    ValidationError,
)
from greenfill.core.kiosk_states import Screen
from greenfill.core.order_fsm import KioskState, PROGRESS_DONE
from greenfill.core.rewards import Redemption, redeem
from greenfill.core.validation import LoginForm, RegistrationForm, validate_login, validate_registration


logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid credentials!"
LOGIN_FAILED = "Login failed. Please try again."
REGISTRATION_OK = "Registration successful! Please sign in."
REGISTRATION_FAILED = "Registration failed. Please try again."
SIGN_IN_AGAIN = "Your session has expired. Please sign in again."

# Below this, remaining dispense time is float noise
_TIME_EPSILON = 1e-9


@dataclass
class ProfileView:
    """What the profile screen shows"""
    history: list[RefillRecord] = field(default_factory=list)
    total_points: int = 0
    points_balance: int = 0

    @property
    def total_refills(self) -> int:
        return len(self.history)

    @property
    def total_volume(self) -> float:
        return sum(r.volume for r in self.history)

    @property
    def total_spent(self) -> float:
        return sum(r.total_price for r in self.history)


class Kiosk:
    """
    One kiosk session. Every public method returns (or leaves) the new
    state in self.state; guarded moves that don't apply change nothing.
    """

    def __init__(
        self,
        auth: AuthAdapter,
        ledger: RefillLedgerClient,
        clock: Optional[Clock] = None,
        payment_delay: float = 2.0,
        dispense_duration: float = 5.0,
        dispense_tick: float = 0.05,
    ):
        if min(payment_delay, dispense_duration, dispense_tick) <= 0:
            raise ValueError("Kiosk timings must be positive")
        self.auth = auth
        self.ledger = ledger
        self.clock = clock or WallClock()
        self.payment_delay = payment_delay
        self.dispense_duration = dispense_duration
        self.dispense_tick = dispense_tick

        self.state = KioskState()
        self.profile: Optional[ProfileView] = None
        self._dispensing = False
        self._api: Optional[httpx.AsyncClient] = None  # set when the kiosk owns its client

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        auth_provider: AuthProvider,
        clock: Optional[Clock] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "Kiosk":
        """Kiosk talking to the backend at settings.api_base_url; close() releases its HTTP client"""
        api = httpx.AsyncClient(
            base_url=settings.api_base_url,
            timeout=httpx.Timeout(settings.http_timeout_seconds),
            transport=transport,
        )
        kiosk = cls(
            auth=AuthAdapter(auth_provider, api, anon_key=settings.auth_anon_key),
            ledger=RefillLedgerClient(api),
            clock=clock,
            payment_delay=settings.payment_delay_seconds,
            dispense_duration=settings.dispense_duration_seconds,
            dispense_tick=settings.dispense_tick_seconds,
        )
        kiosk._api = api
        return kiosk

    async def close(self) -> None:
        if self._api is not None:
            await self._api.aclose()

    async def __aenter__(self) -> "Kiosk":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.close()

    @property
    def screen(self) -> Screen:
        return self.state.screen

    # ── Identity ──────────────────────────────────────────────────────────────

    def start(self) -> KioskState:
        """Skip the login form when a session is already held"""
        session = self.auth.current_session()
        if session is not None:
            self.state = fsm.restore_session(self.state, session.email)
        return self.state

    def show_register(self) -> KioskState:
        self.state = fsm.show_register(self.state)
        return self.state

    def show_login(self) -> KioskState:
        self.state = fsm.show_login(self.state)
        return self.state

    async def login(self, email: str, password: str, remember_me: bool = False) -> KioskState:
        if self.state.screen != Screen.LOGGED_OUT:
            return self.state

        try:
            validate_login(LoginForm(email, password, remember_me))
        except ValidationError as exc:
            self.state = fsm.with_message(self.state, exc.message)
            return self.state

        self.state = fsm.submit_credentials(self.state)
        try:
            session = await self.auth.sign_in(email, password)
        except InvalidCredentials:
            self.state = fsm.login_failed(self.state, INVALID_CREDENTIALS)
        except (UpstreamFailure, httpx.HTTPError) as exc:
            logger.warning("Login error: %s", exc)
            self.state = fsm.login_failed(self.state, LOGIN_FAILED)
        else:
            self.state = fsm.login_succeeded(self.state, session.email)
        return self.state

    async def register(self, email: str, phone: str, password: str, confirm_password: str) -> KioskState:
        if self.state.screen != Screen.REGISTERING:
            return self.state

        try:
            validate_registration(RegistrationForm(email, phone, password, confirm_password))
        except ValidationError as exc:
            self.state = fsm.with_message(self.state, exc.message)
            return self.state

        try:
            await self.auth.sign_up(email, phone, password)
        except UpstreamFailure as exc:
            # Provider's own reason (e.g. "already registered")
            self.state = fsm.with_message(self.state, str(exc))
        except httpx.HTTPError as exc:
            logger.warning("Registration error: %s", exc)
            self.state = fsm.with_message(self.state, REGISTRATION_FAILED)
        else:
            self.state = fsm.registered(self.state, REGISTRATION_OK)
        return self.state

    async def logout(self) -> KioskState:
        next_state = fsm.logout(self.state)
        if next_state is self.state:
            return self.state
        await self.auth.sign_out()
        self.profile = None
        self.state = next_state
        return self.state

    def _session_expired(self) -> None:
        self.auth.forget()
        self.profile = None
        self.state = fsm.with_message(fsm.logout(self.state), SIGN_IN_AGAIN)

    # ── Order building ────────────────────────────────────────────────────────

    def select_location(self, location: str) -> KioskState:
        self.state = fsm.select_location(self.state, location)
        return self.state

    def select_brand(self, brand: Brand) -> KioskState:
        self.state = fsm.select_brand(self.state, brand)
        return self.state

    def enter_volume(self, text: str) -> KioskState:
        self.state = fsm.enter_volume(self.state, text)
        return self.state

    def type_volume(self, keys: str) -> KioskState:
        """Feed the volume field one keystroke at a time"""
        for key in keys:
            self.enter_volume(self.state.volume_text + key)
        return self.state

    def proceed_to_payment(self) -> KioskState:
        self.state = fsm.proceed_to_payment(self.state)
        return self.state

    def cancel(self) -> KioskState:
        self.state = fsm.cancel(self.state)
        return self.state

    # ── Payment ───────────────────────────────────────────────────────────────

    def choose_payment_method(self, method) -> KioskState:
        self.state = fsm.choose_payment_method(self.state, method)
        return self.state

    async def confirm_payment(self) -> Optional[PaymentMethod]:
        """
        Press 'Pay'. Waits out the simulated processing delay, then moves
        to dispensing and returns the method. A second press while the
        first is processing returns None and changes nothing.
        """
        next_state = fsm.begin_payment(self.state)
        if next_state is self.state:
            return None
        self.state = next_state

        await self.clock.sleep(self.payment_delay)

        self.state = fsm.confirm_payment(self.state)
        method = self.state.order.payment_method
        logger.info("Payment confirmed via %s for order %s", method.value, self.state.order.id)
        return method

    # ── Dispensing ────────────────────────────────────────────────────────────

    async def dispense(self, on_progress: Optional[Callable[[float], None]] = None) -> KioskState:
        """
        Run the dispensing clock to completion. Not cancellable; a second
        call while running does nothing.
        """
        if self.state.screen != Screen.DISPENSING or self._dispensing:
            return self.state

        self._dispensing = True
        started = self.clock.monotonic()
        try:
            while self.state.screen == Screen.DISPENSING:
                remaining = self.dispense_duration - (self.clock.monotonic() - started)
                if remaining > _TIME_EPSILON:
                    await self.clock.sleep(min(self.dispense_tick, remaining))
                    remaining = self.dispense_duration - (self.clock.monotonic() - started)

                if remaining <= _TIME_EPSILON:
                    progress = PROGRESS_DONE
                else:
                    progress = (1 - remaining / self.dispense_duration) * PROGRESS_DONE
                self.state = fsm.advance_dispense(self.state, progress)
                if on_progress:
                    on_progress(self.state.progress)
        finally:
            self._dispensing = False

        logger.info("Dispensed %.0fml of %s", self.state.order.volume, self.state.order.brand.name)
        return self.state

    async def return_to_dashboard(self) -> Optional[int]:
        """
        Persist the finished order, then drop it and go back to the
        dashboard. A failed write is logged and does not block the user.
        Returns the points earned, or None if nothing was recorded.
        """
        if self.state.screen != Screen.COMPLETE:
            return None

        order = self.state.order
        session = self.auth.current_session()
        points = None
        if order is not None and session is not None:
            try:
                points = await self.ledger.record_refill(
                    session.access_token,
                    brand=order.brand.name,
                    volume=order.volume,
                    total_price=order.total_price,
                    location=order.location,
                    payment_method=order.payment_method.value if order.payment_method else "unknown",
                    idempotency_key=order.id,
                )
            except (GreenfillError, httpx.HTTPError) as exc:
                logger.warning("Error recording refill for order %s: %s", order.id, exc)

        self.state = fsm.return_to_dashboard(self.state)
        return points

    # ── Loyalty ───────────────────────────────────────────────────────────────

    async def show_profile(self) -> Optional[ProfileView]:
        next_state = fsm.show_profile(self.state)
        if next_state is self.state:
            return None
        self.state = next_state
        return await self.refresh_profile()

    async def refresh_profile(self) -> Optional[ProfileView]:
        session = self.auth.current_session()
        if self.state.screen != Screen.VIEWING_PROFILE or session is None:
            return None

        try:
            history = await self.ledger.list_history(session.access_token)
            profile = await self.ledger.get_profile(session.access_token)
        except Unauthorized:
            self._session_expired()
            return None
        except (UpstreamFailure, httpx.HTTPError) as exc:
            logger.warning("Could not load profile: %s", exc)
            self.state = fsm.with_message(self.state, "Could not load your profile. Please try again.")
            return None

        self.profile = ProfileView(
            history=history.records,
            total_points=history.total_points,
            points_balance=int(profile.get("points_balance", history.total_points)),
        )
        return self.profile

    def close_profile(self) -> KioskState:
        self.state = fsm.close_profile(self.state)
        if self.state.screen != Screen.VIEWING_PROFILE:
            self.profile = None
        return self.state

    async def redeem(self, voucher_id: str) -> Optional[Redemption]:
        """
        Redeem a voucher from the profile screen. Insufficient balance is
        rejected locally with the shortfall; nothing is sent.
        """
        voucher = voucher_by_id(voucher_id)
        session = self.auth.current_session()
        if voucher is None or self.profile is None or session is None:
            return None

        outcome = redeem(self.profile.points_balance, voucher)
        if not outcome.accepted:
            self.state = fsm.with_message(self.state, outcome.message)
            return outcome

        try:
            remaining = await self.ledger.redeem_voucher(session.access_token, voucher)
        except Unauthorized:
            self._session_expired()
            return None
        except (UpstreamFailure, httpx.HTTPError) as exc:
            logger.warning("Voucher %s redemption failed: %s", voucher.id, exc)
            self.state = fsm.with_message(self.state, "Could not redeem voucher. Please try again.")
            return None

        self.profile.points_balance = remaining
        self.state = fsm.with_message(self.state, outcome.message)
        return outcome
