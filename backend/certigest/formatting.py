from __future__ import annotations

from datetime import date, datetime, timezone
import re


CYCLE_PATTERN = re.compile(r"^(\d{4})-(0[1-9]|1[0-2])$")
CNPJ_DIGITS = 14


class InvalidCycleError(ValueError):
    """Raised when a cycle string is not a valid ``YYYY-MM`` month."""


class InvalidCnpjError(ValueError):
    """Raised when a CNPJ does not contain exactly 14 digits."""


def normalize_cycle(value: str) -> str:
    cycle = str(value or "").strip()
    if not CYCLE_PATTERN.fullmatch(cycle):
        raise InvalidCycleError(f"Invalid cycle '{value}'. Expected YYYY-MM.")
    return cycle


def current_cycle(today: date | None = None) -> str:
    reference = today or datetime.now(timezone.utc).date()
    return f"{reference.year:04d}-{reference.month:02d}"


def format_cycle_display(cycle: str) -> str:
    year, month = normalize_cycle(cycle).split("-")
    return f"{month}/{year}"


def cnpj_digits(value: str) -> str:
    return re.sub(r"\D", "", value or "")


def normalize_cnpj(value: str) -> str:
    digits = cnpj_digits(value)
    if len(digits) != CNPJ_DIGITS:
        raise InvalidCnpjError("CNPJ must contain exactly 14 digits.")
    return digits


def format_cnpj(value: str) -> str:
    """Render ``12345678000195`` as ``12.345.678/0001-95``; partial input is formatted as far as it goes."""
    digits = cnpj_digits(value)[:CNPJ_DIGITS]
    formatted = digits[:2]
    if len(digits) > 2:
        formatted += f".{digits[2:5]}"
    if len(digits) > 5:
        formatted += f".{digits[5:8]}"
    if len(digits) > 8:
        formatted += f"/{digits[8:12]}"
    if len(digits) > 12:
        formatted += f"-{digits[12:14]}"
    return formatted


def dossier_file_name(entity_label: str, cycle: str) -> str:
    # Separators in legal names such as "S/A" must not become path components.
    label = re.sub(r"[\\/]", "-", entity_label.strip())
    label = re.sub(r"\s+", "_", label)
    return f"Dossie_{label}_{cycle}.pdf"
