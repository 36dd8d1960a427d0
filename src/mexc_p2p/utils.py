"""
Utility functions for the MEXC P2P client.

Helper functions and utilities following functional programming principles.
"""

import math
import time
from decimal import Decimal
from typing import Any, Dict


def sanitize_dict(data: Dict[str, Any]) -> Dict[str, Any]:
    """Remove None values and empty strings from dictionary."""
    return {
        key: value for key, value in data.items()
        if value is not None and value != ""
    }


def current_millis() -> int:
    """Current epoch time in milliseconds."""
    return int(time.time() * 1000)


def format_param_value(value: Any) -> str:
    """
    Render a scalar parameter the way the exchange expects it in a query string.

    Booleans become lowercase literals, Decimals keep their plain notation and
    floats render like JavaScript numbers (`1.0` -> `1`, never exponent form).
    Anything that is not a finite scalar is rejected.
    """
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Decimal):
        return format(value, "f")
    if isinstance(value, float):
        if not math.isfinite(value):
            raise TypeError(f"Cannot serialize non-finite number {value}")
        if value.is_integer():
            return str(int(value))
        return format(Decimal(repr(value)).normalize(), "f")
    if isinstance(value, (str, int)):
        return str(value)
    raise TypeError(f"Cannot serialize parameter value of type {type(value).__name__}")
