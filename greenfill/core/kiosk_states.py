"""
Kiosk Screen States
The kiosk shows exactly ONE of these screens at any time
"""

from enum import Enum


class Screen(str, Enum):
    # Identity
    LOGGED_OUT = "LOGGED_OUT"                            # Login form
    REGISTERING = "REGISTERING"                          # Registration form
    AUTHENTICATING = "AUTHENTICATING"                    # Sign-in request in flight

    # Dashboard (order building)
    SELECTING_LOCATION = "SELECTING_LOCATION"            # Pick a dispenser
    SELECTING_BRAND = "SELECTING_BRAND"                  # Location set, pick a brand
    ENTERING_VOLUME = "ENTERING_VOLUME"                  # Brand set, type the ml

    # Payment
    AWAITING_PAYMENT = "AWAITING_PAYMENT"                # Order built, no method yet
    CHOOSING_PAYMENT_METHOD = "CHOOSING_PAYMENT_METHOD"  # Method picked, pay enabled

    # Dispensing
    DISPENSING = "DISPENSING"                            # Progress clock running
    COMPLETE = "COMPLETE"                                # Waiting for "return to dashboard"

    # Loyalty
    VIEWING_PROFILE = "VIEWING_PROFILE"                  # History + vouchers


class KioskEvent(str, Enum):
    # Identity
    SUBMIT_CREDENTIALS = "SUBMIT_CREDENTIALS"
    LOGIN_SUCCEEDED = "LOGIN_SUCCEEDED"
    LOGIN_FAILED = "LOGIN_FAILED"
    SESSION_RESTORED = "SESSION_RESTORED"
    SHOW_REGISTER = "SHOW_REGISTER"
    SHOW_LOGIN = "SHOW_LOGIN"
    REGISTERED = "REGISTERED"
    LOGOUT = "LOGOUT"

    # Order building
    SELECT_LOCATION = "SELECT_LOCATION"
    SELECT_BRAND = "SELECT_BRAND"
    ENTER_VOLUME = "ENTER_VOLUME"
    PROCEED_TO_PAYMENT = "PROCEED_TO_PAYMENT"
    CANCEL = "CANCEL"

    # Payment
    CHOOSE_PAYMENT_METHOD = "CHOOSE_PAYMENT_METHOD"
    PAYMENT_STARTED = "PAYMENT_STARTED"
    PAYMENT_CONFIRMED = "PAYMENT_CONFIRMED"

    # Dispensing
    DISPENSE_TICK = "DISPENSE_TICK"
    DISPENSE_FINISHED = "DISPENSE_FINISHED"
    RETURN_TO_DASHBOARD = "RETURN_TO_DASHBOARD"

    # Loyalty
    SHOW_PROFILE = "SHOW_PROFILE"
    CLOSE_PROFILE = "CLOSE_PROFILE"


# Screens that make up the dashboard (a user is signed in, nothing paid)
DASHBOARD_SCREENS = {
    Screen.SELECTING_LOCATION,
    Screen.SELECTING_BRAND,
    Screen.ENTERING_VOLUME,
}

# Cancel/back discards the order without persisting anything
CANCELLABLE_SCREENS = DASHBOARD_SCREENS | {
    Screen.AWAITING_PAYMENT,
    Screen.CHOOSING_PAYMENT_METHOD,
}


TRANSITIONS = {
    # Identity
    (Screen.LOGGED_OUT, KioskEvent.SUBMIT_CREDENTIALS): Screen.AUTHENTICATING,
    (Screen.LOGGED_OUT, KioskEvent.SESSION_RESTORED): Screen.SELECTING_LOCATION,
    (Screen.LOGGED_OUT, KioskEvent.SHOW_REGISTER): Screen.REGISTERING,
    (Screen.REGISTERING, KioskEvent.SHOW_LOGIN): Screen.LOGGED_OUT,
    (Screen.REGISTERING, KioskEvent.REGISTERED): Screen.LOGGED_OUT,
    (Screen.AUTHENTICATING, KioskEvent.LOGIN_SUCCEEDED): Screen.SELECTING_LOCATION,
    (Screen.AUTHENTICATING, KioskEvent.LOGIN_FAILED): Screen.LOGGED_OUT,

    # Order building; re-selecting on a later screen keeps the user there
    (Screen.SELECTING_LOCATION, KioskEvent.SELECT_LOCATION): Screen.SELECTING_BRAND,
    (Screen.SELECTING_BRAND, KioskEvent.SELECT_LOCATION): Screen.SELECTING_BRAND,
    (Screen.SELECTING_BRAND, KioskEvent.SELECT_BRAND): Screen.ENTERING_VOLUME,
    (Screen.ENTERING_VOLUME, KioskEvent.SELECT_LOCATION): Screen.ENTERING_VOLUME,
    (Screen.ENTERING_VOLUME, KioskEvent.SELECT_BRAND): Screen.ENTERING_VOLUME,
    (Screen.ENTERING_VOLUME, KioskEvent.ENTER_VOLUME): Screen.ENTERING_VOLUME,
    (Screen.ENTERING_VOLUME, KioskEvent.PROCEED_TO_PAYMENT): Screen.AWAITING_PAYMENT,

    # Payment
    (Screen.AWAITING_PAYMENT, KioskEvent.CHOOSE_PAYMENT_METHOD): Screen.CHOOSING_PAYMENT_METHOD,
    (Screen.CHOOSING_PAYMENT_METHOD, KioskEvent.CHOOSE_PAYMENT_METHOD): Screen.CHOOSING_PAYMENT_METHOD,
    (Screen.CHOOSING_PAYMENT_METHOD, KioskEvent.PAYMENT_STARTED): Screen.CHOOSING_PAYMENT_METHOD,
    (Screen.CHOOSING_PAYMENT_METHOD, KioskEvent.PAYMENT_CONFIRMED): Screen.DISPENSING,

    # Dispensing
    (Screen.DISPENSING, KioskEvent.DISPENSE_TICK): Screen.DISPENSING,
    (Screen.DISPENSING, KioskEvent.DISPENSE_FINISHED): Screen.COMPLETE,
    (Screen.COMPLETE, KioskEvent.RETURN_TO_DASHBOARD): Screen.SELECTING_LOCATION,

    # Loyalty
    (Screen.VIEWING_PROFILE, KioskEvent.CLOSE_PROFILE): Screen.SELECTING_LOCATION,
}

TRANSITIONS.update({
    (screen, KioskEvent.CANCEL): Screen.SELECTING_LOCATION
    for screen in CANCELLABLE_SCREENS
})
TRANSITIONS.update({
    (screen, KioskEvent.SHOW_PROFILE): Screen.VIEWING_PROFILE
    for screen in DASHBOARD_SCREENS
})
TRANSITIONS.update({
    (screen, KioskEvent.LOGOUT): Screen.LOGGED_OUT
    for screen in DASHBOARD_SCREENS | {Screen.VIEWING_PROFILE}
})
