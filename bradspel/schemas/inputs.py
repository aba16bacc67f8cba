"""
Bradspel Backend — Input Normalization Helpers
===============================================

What:  The one place where loosely-typed request values become typed values.
Why:   Web forms and the admin frontend send the same field as `true`, `"true"`,
       `1`, `"1"` or `"on"`; ids arrive as numbers or numeric strings. Every
       request schema funnels through these helpers instead of re-checking.
How:   Each helper returns the normalized value or raises the application's
       ValidationError (→ 400) naming the offending field. Request models call
       them from `mode="before"` field validators through `as_value_error`, so
       the typed, bounded pydantic fields see normalized values.
"""

from typing import Any, Callable, Optional

from pydantic import ValidationInfo

from bradspel.exceptions import ValidationError

TRUE_STRINGS = {"true", "1", "yes", "y", "on", "ja"}
FALSE_STRINGS = {"false", "0", "no", "n", "off", "nej", ""}

# Integer columns are 32-bit on PostgreSQL
MAX_INT = 2**31 - 1
MAX_ID = MAX_INT

NOTE_MAX_LENGTH = 2000


def coerce_bool(value: Any, field: str = "value", default: bool = False) -> bool:
    """
    Convert a form-style flag to bool.

    >>> coerce_bool("on")
    True
    >>> coerce_bool(0)
    False
    >>> coerce_bool(None, default=True)
    True
    """
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in TRUE_STRINGS:
            return True
        if lowered in FALSE_STRINGS:
            return False
    raise ValidationError(
        message=f"{field} must be a boolean (true/false)",
        field=field,
        context={"received": repr(value)[:50]},
    )


def coerce_id(value: Any, field: str) -> int:
    """
    Convert a positive integer id given as int or numeric string. Ids above
    MAX_ID cannot exist in the database and are rejected here.

    Booleans are rejected even though bool is an int subclass.
    """
    if value is None or isinstance(value, bool):
        raise ValidationError(message=f"{field} is required and must be a numeric id", field=field)
    parsed = None
    if isinstance(value, int):
        parsed = value
    elif isinstance(value, str) and value.strip().isascii() and value.strip().isdigit():
        try:
            parsed = int(value.strip())
        except ValueError:
            # longer than the interpreter will convert
            parsed = None
    if parsed is None:
        raise ValidationError(
            message=f"{field} must be a numeric id",
            field=field,
            context={"received": repr(value)[:50]},
        )
    if parsed <= 0:
        raise ValidationError(message=f"{field} must be a positive id", field=field)
    if parsed > MAX_ID:
        raise ValidationError(
            message=f"{field} is out of range",
            field=field,
            context={"received": repr(value)[:50]},
        )
    return parsed


def coerce_optional_int(value: Any, field: str) -> Optional[int]:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValidationError(message=f"{field} must be a number", field=field)
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(
            message=f"{field} must be a number",
            field=field,
            context={"received": repr(value)[:50]},
        )


def clean_text(value: Any, field: str, required: bool = False) -> Optional[str]:
    """
    Strip a free-text field. Numbers are accepted and stringified (table ids
    are often sent as numbers). Empty strings count as missing.
    """
    if value is None:
        text = ""
    elif isinstance(value, bool):
        raise ValidationError(message=f"{field} must be text", field=field)
    elif isinstance(value, (str, int, float)):
        text = str(value).strip()
    else:
        raise ValidationError(message=f"{field} must be text", field=field)

    if not text:
        if required:
            raise ValidationError(message=f"{field} is required", field=field)
        return None
    return text


def field_label(model: type, info: ValidationInfo) -> str:
    """The key the client sent a field under: its alias, else its name."""
    field = model.model_fields[info.field_name]
    return field.alias or info.field_name


def as_value_error(helper: Callable[..., Any], value: Any, field: str, **kwargs: Any) -> Any:
    """
    Run a coerce_* helper inside a pydantic field validator.

    pydantic only collects ValueError, so the helper's ValidationError is
    re-raised as one. FastAPI reports it as a RequestValidationError (→ 400).
    """
    try:
        return helper(value, field, **kwargs)
    except ValidationError as exc:
        raise ValueError(exc.message) from exc
