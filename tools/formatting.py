"""
Dose Formatting
Human-readable amounts for quick-log rows and adherence summaries
"""

from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Any, Optional

from config import engine_config


def format_decimal(value: Any, places: Optional[int] = None) -> Optional[str]:
    """Render a number with at most `places` fraction digits and no trailing zeros"""
    if value is None:
        return None
    if places is None:
        places = engine_config.DOSE_DECIMAL_PLACES
    try:
        number = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None

    quantum = Decimal(1).scaleb(-places)
    rounded = number.quantize(quantum, rounding=ROUND_HALF_UP)
    text = format(rounded, "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    if text in ("-0", ""):
        text = "0"
    return text


def format_dose(amount: Any, unit: Optional[str], places: Optional[int] = None) -> Optional[str]:
    """e.g. Decimal("12.500"), "mg" -> "12.5 mg"; a lone unit is returned as-is"""
    text = format_decimal(amount, places)
    unit = unit.strip() if unit else None
    if text is None:
        return unit or None
    return f"{text} {unit}" if unit else text
