"""
Order State Machine
===================
One immutable KioskState, moved forward by pure transition functions.

Every function takes a state and returns a state. When a guard refuses
the move (missing location, bad volume, payment already processing...)
the SAME object comes back, so callers detect a no-op with `is`.
Nothing here raises for bad input; nothing here sleeps or does I/O.
"""

import logging
import uuid
from dataclasses import dataclass, field, replace
from typing import Optional

from greenfill.core.catalog import Brand, PaymentMethod, is_catalog_brand, is_location
from greenfill.core.errors import IllegalOrder
from greenfill.core.kiosk_states import Screen, KioskEvent, TRANSITIONS, CANCELLABLE_SCREENS
from greenfill.core.pricing import accepts_volume_input, parse_volume, price, quote


logger = logging.getLogger(__name__)

PROGRESS_DONE = 100.0


@dataclass(frozen=True)
class Order:
    """
    One in-progress purchase.
    Only constructible from a catalog brand, a known location and volume > 0.
    """
    brand: Brand
    volume: float
    total_price: float
    location: str
    payment_method: Optional[PaymentMethod] = None
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def __post_init__(self):
        if not is_catalog_brand(self.brand):
            raise IllegalOrder(f"Unknown brand: {self.brand!r}")
        if not is_location(self.location):
            raise IllegalOrder(f"Unknown location: {self.location!r}")
        if not self.volume > 0:
            raise IllegalOrder(f"Volume must be positive, got {self.volume}")

    @classmethod
    def build(cls, brand: Brand, volume: float, location: str, order_id: Optional[str] = None) -> "Order":
        total = price(brand, volume)
        if order_id is None:
            return cls(brand=brand, volume=volume, total_price=total, location=location)
        return cls(brand=brand, volume=volume, total_price=total, location=location, id=order_id)


@dataclass(frozen=True)
class KioskState:
    screen: Screen = Screen.LOGGED_OUT
    user_email: Optional[str] = None

    # Dashboard selections
    location: Optional[str] = None
    brand: Optional[Brand] = None
    volume_text: str = ""

    # At most one order in flight
    order: Optional[Order] = None
    payment_method: Optional[PaymentMethod] = None
    processing: bool = False
    progress: float = 0.0

    # Last user-visible notice (login failure, registration result...)
    message: Optional[str] = None

    # Screen changes only: (from, event, to)
    history: tuple = ()

    @property
    def amount_due(self) -> float:
        """Live total for the dashboard, or the order total once built"""
        if self.order is not None:
            return self.order.total_price
        return quote(self.brand, self.volume_text)


_DASHBOARD_RESET = dict(
    location=None,
    brand=None,
    volume_text="",
    order=None,
    payment_method=None,
    processing=False,
    progress=0.0,
)


def apply_event(state: KioskState, event: KioskEvent, **changes) -> KioskState:
    """Look the move up in the transition table; illegal moves leave state alone"""
    next_screen = TRANSITIONS.get((state.screen, event))
    if next_screen is None:
        logger.debug("Ignored %s on %s", event.value, state.screen.value)
        return state

    history = state.history
    if next_screen != state.screen:
        history = history + ((state.screen.value, event.value, next_screen.value),)
        logger.debug("%s + %s → %s", state.screen.value, event.value, next_screen.value)

    return replace(state, screen=next_screen, history=history, **changes)


# ── Identity ──────────────────────────────────────────────────────────────────

def submit_credentials(state: KioskState) -> KioskState:
    return apply_event(state, KioskEvent.SUBMIT_CREDENTIALS, message=None)


def login_succeeded(state: KioskState, email: str) -> KioskState:
    return apply_event(state, KioskEvent.LOGIN_SUCCEEDED, user_email=email, message=None)


def login_failed(state: KioskState, message: str) -> KioskState:
    return apply_event(state, KioskEvent.LOGIN_FAILED, message=message)


def restore_session(state: KioskState, email: str) -> KioskState:
    return apply_event(state, KioskEvent.SESSION_RESTORED, user_email=email)


def show_register(state: KioskState) -> KioskState:
    return apply_event(state, KioskEvent.SHOW_REGISTER, message=None)


def show_login(state: KioskState) -> KioskState:
    return apply_event(state, KioskEvent.SHOW_LOGIN, message=None)


def registered(state: KioskState, message: str) -> KioskState:
    return apply_event(state, KioskEvent.REGISTERED, message=message)


def with_message(state: KioskState, message: Optional[str]) -> KioskState:
    """Show a notice without moving (form validation errors)"""
    return replace(state, message=message)


def logout(state: KioskState) -> KioskState:
    return apply_event(state, KioskEvent.LOGOUT, user_email=None, message=None, **_DASHBOARD_RESET)


# ── Order building ────────────────────────────────────────────────────────────

def select_location(state: KioskState, location: str) -> KioskState:
    if not is_location(location):
        return state
    return apply_event(state, KioskEvent.SELECT_LOCATION, location=location)


def select_brand(state: KioskState, brand: Brand) -> KioskState:
    # Brand choice only exists once a location is picked
    if not state.location or not is_catalog_brand(brand):
        return state
    return apply_event(state, KioskEvent.SELECT_BRAND, brand=brand)


def enter_volume(state: KioskState, text: str) -> KioskState:
    """Keystroke handler: anything that is not a decimal number is dropped"""
    if not accepts_volume_input(text):
        return state
    if not state.location or state.brand is None:
        return state
    return apply_event(state, KioskEvent.ENTER_VOLUME, volume_text=text)


def proceed_to_payment(state: KioskState, order_id: Optional[str] = None) -> KioskState:
    volume = parse_volume(state.volume_text)
    if volume is None or not state.location or state.brand is None:
        return state
    if state.screen != Screen.ENTERING_VOLUME:
        return state

    order = Order.build(state.brand, volume, state.location, order_id=order_id)
    return apply_event(
        state,
        KioskEvent.PROCEED_TO_PAYMENT,
        order=order,
        payment_method=None,
        processing=False,
    )


def cancel(state: KioskState) -> KioskState:
    """Back/cancel before dispensing: drop the order, nothing is persisted"""
    if state.processing or state.screen not in CANCELLABLE_SCREENS:
        return state
    return apply_event(state, KioskEvent.CANCEL, **_DASHBOARD_RESET)


# ── Payment ───────────────────────────────────────────────────────────────────

def choose_payment_method(state: KioskState, method) -> KioskState:
    """Pick (or re-pick) one of the two method tags. Locked while paying."""
    try:
        method = PaymentMethod(method)
    except ValueError:
        return state
    if state.processing or state.order is None:
        return state
    return apply_event(state, KioskEvent.CHOOSE_PAYMENT_METHOD, payment_method=method)


def begin_payment(state: KioskState) -> KioskState:
    """Press 'Pay': disables the pay control until confirm_payment()"""
    if state.processing or state.payment_method is None or state.order is None:
        return state
    return apply_event(state, KioskEvent.PAYMENT_STARTED, processing=True)


def confirm_payment(state: KioskState) -> KioskState:
    """Payment cleared: attach the method to the order and start dispensing"""
    if not state.processing or state.payment_method is None:
        return state
    order = replace(state.order, payment_method=state.payment_method)
    return apply_event(
        state,
        KioskEvent.PAYMENT_CONFIRMED,
        order=order,
        processing=False,
        progress=0.0,
    )


# ── Dispensing ────────────────────────────────────────────────────────────────

def advance_dispense(state: KioskState, progress: float) -> KioskState:
    """Move the progress bar; at 100 the dispense is complete (pinned at 100)"""
    progress = max(progress, state.progress)
    if progress >= PROGRESS_DONE:
        return apply_event(state, KioskEvent.DISPENSE_FINISHED, progress=PROGRESS_DONE)
    return apply_event(state, KioskEvent.DISPENSE_TICK, progress=progress)


def return_to_dashboard(state: KioskState) -> KioskState:
    return apply_event(state, KioskEvent.RETURN_TO_DASHBOARD, **_DASHBOARD_RESET)


# ── Loyalty ───────────────────────────────────────────────────────────────────

def show_profile(state: KioskState) -> KioskState:
    return apply_event(state, KioskEvent.SHOW_PROFILE, **_DASHBOARD_RESET)


def close_profile(state: KioskState) -> KioskState:
    return apply_event(state, KioskEvent.CLOSE_PROFILE)


# Demo: one refill, start to finish
if __name__ == "__main__":
    from greenfill.core.catalog import brand_by_id
    from greenfill.core.pricing import format_money

    state = KioskState()
    state = submit_credentials(state)
    state = login_succeeded(state, "aina@example.com")

    # Can't pick a brand before a location
    if select_brand(state, brand_by_id("lifebuoy")) is state:
        print(f"Ignored: brand selection on {state.screen.value}")

    state = select_location(state, "KK3")
    state = select_brand(state, brand_by_id("lifebuoy"))
    for text in ("1", "15", "150"):
        state = enter_volume(state, text)
    print(f"Amount due: {format_money(state.amount_due)}")

    state = proceed_to_payment(state)
    state = choose_payment_method(state, "e-wallet")
    state = confirm_payment(begin_payment(state))
    state = advance_dispense(state, 100)

    print(f"Final screen: {state.screen.value}")
    for step in state.history:
        print(f"   {step[0]:24} → {step[2]:24} via {step[1]}")
