"""
Form Validation
===============
Login and registration checks that run before anything hits the network.
Each failure raises ValidationError carrying the message shown on the form.
"""

import re
from dataclasses import dataclass

from greenfill.core.errors import ValidationError


PHONE_REGEX = re.compile(r"^[0-9+\-\s()]+$")
MIN_PASSWORD_LENGTH = 6


@dataclass
class LoginForm:
    email: str = ""
    password: str = ""
    remember_me: bool = False


@dataclass
class RegistrationForm:
    email: str = ""
    phone: str = ""
    password: str = ""
    confirm_password: str = ""


def validate_login(form: LoginForm) -> LoginForm:
    if not form.email or not form.password:
        raise ValidationError("Please fill in all fields")

    if "@" not in form.email:
        raise ValidationError("Please enter a valid email")

    return form


def validate_registration(form: RegistrationForm) -> RegistrationForm:
    if not (form.email and form.phone and form.password and form.confirm_password):
        raise ValidationError("Please fill in all fields")

    if "@" not in form.email:
        raise ValidationError("Please enter a valid email address")

    if not PHONE_REGEX.match(form.phone):
        raise ValidationError("Please enter a valid phone number")

    if len(form.password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")

    if form.password != form.confirm_password:
        raise ValidationError("Passwords do not match")

    return form
