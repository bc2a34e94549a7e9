"""Input cleaners shared by the onboarding flows."""

import re

from serene_bot.flows.gate import GateValidationError

PHONE_RE = re.compile(r"^\+?\d{10,15}$")
EMAIL_RE = re.compile(r"^[a-zA-Z0-9_.+-]+@[a-zA-Z0-9-]+\.[a-zA-Z0-9-.]+$")
PAN_RE = re.compile(r"^[A-Z]{5}\d{4}[A-Z]$")
URL_RE = re.compile(r"^https?://\S+$")

PASSWORD_MIN_LENGTH = 8


def clean_name(text: str) -> str:
    if len(text) < 2 or len(text) > 100:
        raise GateValidationError("Name must be between 2 and 100 characters.")
    return text


def clean_email(text: str) -> str:
    if not EMAIL_RE.match(text):
        raise GateValidationError("That doesn't look like a valid email address.")
    return text.lower()


def clean_phone(text: str) -> str:
    phone = re.sub(r"[\s\-()]", "", text)
    if not PHONE_RE.match(phone):
        raise GateValidationError("Please enter a valid phone number (10-15 digits, optional +).")
    return phone


def clean_pan(text: str) -> str:
    pan = text.upper().replace(" ", "")
    if not PAN_RE.match(pan):
        raise GateValidationError("PAN should look like ABCDE1234F.")
    return pan


def clean_url(text: str) -> str:
    if not URL_RE.match(text):
        raise GateValidationError("Please send a full link starting with http:// or https://")
    return text


def clean_password(text: str) -> str:
    if len(text) < PASSWORD_MIN_LENGTH:
        raise GateValidationError(f"Password must be at least {PASSWORD_MIN_LENGTH} characters.")
    return text


def positive_number(label: str, maximum: float | None = None):
    """Cleaner for numeric answers such as rates and budgets."""

    def clean(text: str) -> float:
        try:
            value = float(text.replace(",", ""))
        except ValueError:
            raise GateValidationError(f"{label} must be a number.")
        if value <= 0:
            raise GateValidationError(f"{label} must be greater than 0.")
        if maximum is not None and value > maximum:
            raise GateValidationError(f"{label} cannot exceed {maximum:g}.")
        return int(value) if value.is_integer() else value

    return clean


def whole_years(text: str) -> int:
    if not text.isdigit() or int(text) > 60:
        raise GateValidationError("Years of experience must be a whole number between 0 and 60.")
    return int(text)


def min_length(label: str, minimum: int, maximum: int = 2000):
    def clean(text: str) -> str:
        if len(text) < minimum:
            raise GateValidationError(f"{label} should be at least {minimum} characters ({len(text)} so far).")
        if len(text) > maximum:
            raise GateValidationError(f"{label} cannot exceed {maximum} characters.")
        return text

    return clean
