"""
Cell-level sanitizing and validation for uploaded spreadsheets.

Spreadsheet tools evaluate cells starting with =, +, -, @ (and some control
characters) as formulas, so any text we store from an upload and may later
export is neutralised here. Numeric cells are parsed strictly and bounded.

All functions are pure; sanitize raw input exactly once, the text transform
is not idempotent.
"""
from decimal import Decimal, InvalidOperation
from typing import Any, Union
import re

FORMULA_PREFIXES = ("=", "+", "-", "@", "\t", "\r", "\n")

# Plain decimal notation only; no digit separators, NaN or Infinity
NUMBER_PATTERN = re.compile(r"[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?")

Number = Union[int, float, Decimal, str]


class FieldValidationError(ValueError):
    """A single cell failed validation"""

    def __init__(self, field_name: str, message: str):
        self.field_name = field_name
        super().__init__(message)


def sanitize_csv_field(field: Any) -> str:
    """Neutralise formula-looking text; otherwise double embedded quotes"""
    if field is None:
        return ""

    value = str(field)

    if value.startswith(FORMULA_PREFIXES):
        # Prefix with a single quote so spreadsheets render it as text
        return f"'{value}"

    return value.replace("'", "''")


def _to_decimal(value: Number) -> Decimal:
    if isinstance(value, bool):
        raise InvalidOperation
    if isinstance(value, Decimal):
        parsed = value
    elif isinstance(value, (int, float)):
        parsed = Decimal(str(value))
    else:
        text = str(value).strip()
        if not NUMBER_PATTERN.fullmatch(text):
            raise InvalidOperation
        parsed = Decimal(text)
    if not parsed.is_finite():
        raise InvalidOperation
    return parsed


def parse_numeric_field(
    value: Number,
    field_name: str,
    min_value: Number,
    max_value: Number
) -> Decimal:
    """Parse a decimal within [min_value, max_value] inclusive"""
    try:
        parsed = _to_decimal(value)
    except (InvalidOperation, ValueError, TypeError):
        raise FieldValidationError(field_name, f"{field_name} must be a valid number") from None

    if parsed < Decimal(str(min_value)) or parsed > Decimal(str(max_value)):
        raise FieldValidationError(field_name, f"{field_name} must be between {min_value} and {max_value}")

    return parsed


def parse_integer_field(
    value: Number,
    field_name: str,
    min_value: int,
    max_value: int
) -> int:
    """Parse an integer within [min_value, max_value] inclusive.

    Integral decimals such as "5.0" are accepted; "5.5" is not.
    """
    try:
        parsed = _to_decimal(value)
    except (InvalidOperation, ValueError, TypeError):
        raise FieldValidationError(field_name, f"{field_name} must be a valid integer") from None

    if parsed != parsed.to_integral_value():
        raise FieldValidationError(field_name, f"{field_name} must be a valid integer")

    if parsed < min_value or parsed > max_value:
        raise FieldValidationError(field_name, f"{field_name} must be between {min_value} and {max_value}")

    return int(parsed)
