from __future__ import annotations

import math
from typing import Any


class ValidationError(ValueError):
    """400-level input problem, raised before any remote call."""


class ConfirmationRequired(ValueError):
    """409-level: a destructive action was submitted without confirmation."""


def require_text(value: Any, message: str) -> str:
    text = "" if value is None else str(value).strip()
    if not text:
        raise ValidationError(message)
    return text


def parse_non_negative_number(value: Any) -> int | float | None:
    """
    Parse a currency amount. Returns None when the input is not a finite
    non-negative number; integral values come back as ints.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        num = value
    else:
        text = str(value).strip().replace(",", "")
        if not text:
            return None
        try:
            num = float(text)
        except ValueError:
            return None
    if isinstance(num, float):
        if not math.isfinite(num):
            return None
        if num.is_integer():
            num = int(num)
    if num < 0:
        return None
    return num


def parse_quantity(value: Any) -> int:
    """Gift quantity: missing means 1; otherwise a positive whole number."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return 1
    if isinstance(value, bool):
        raise ValidationError("수량은 1 이상의 정수여야 합니다.")
    if isinstance(value, float):
        if not value.is_integer():
            raise ValidationError("수량은 1 이상의 정수여야 합니다.")
        value = int(value)
    try:
        qty = int(str(value).strip())
    except ValueError:
        raise ValidationError("수량은 1 이상의 정수여야 합니다.")
    if qty < 1:
        raise ValidationError("수량은 1 이상의 정수여야 합니다.")
    return qty


def require_choice(value: Any, choices: tuple[str, ...], field: str, default: str | None = None) -> str:
    text = "" if value is None else str(value).strip()
    if not text and default is not None:
        return default
    if text not in choices:
        raise ValidationError(f"{field} must be one of: {', '.join(choices)}")
    return text


def require_confirmation(confirmed: bool, message: str) -> None:
    if not confirmed:
        raise ConfirmationRequired(message)


def require_object(value: Any, field: str = "request body") -> dict:
    """JSON object input; a missing body counts as empty."""
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ValidationError(f"{field} must be a JSON object")
    return value
