import datetime
import math
import uuid
from typing import Iterable, List, Optional, TypeVar

T = TypeVar("T")


class MathTools:
    """Provides essential mathematical utilities for workout calculations."""

    @staticmethod
    def clamp(value: float, min_value: float, max_value: float) -> float:
        """Clamp ``value`` to the inclusive range [min_value, max_value]."""
        if min_value > max_value:
            raise ValueError("min_value must not exceed max_value")
        return max(min_value, min(value, max_value))

    @classmethod
    def clamp_int(cls, value: float, min_value: int, max_value: int) -> int:
        """Round half up, then clamp to [min_value, max_value]."""
        if math.isnan(value):
            return min_value
        return int(cls.clamp(math.floor(value + 0.5), min_value, max_value))


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def parse_number_or_null(value: Optional[str]) -> Optional[float | int]:
    """Parse user-typed numeric text; blank or non-numeric text yields ``None``.

    A comma decimal separator is accepted ("62,5" -> 62.5). Integral input is
    returned as ``int`` so reps stay whole numbers.
    """
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    text = text.replace(",", ".", 1)
    try:
        num = float(text)
    except ValueError:
        return None
    if not math.isfinite(num):
        return None
    if num.is_integer() and "." not in text and "e" not in text.lower():
        return int(num)
    return num


def format_kg(value: Optional[float]) -> str:
    """Show up to two decimals and trim trailing zeros."""
    if value is None:
        return ""
    if float(value).is_integer():
        return str(int(value))
    text = f"{value:.2f}"
    if text.endswith(".00"):
        return text[:-3]
    if text.endswith("0"):
        return text[:-1]
    return text


def format_number(value: Optional[float]) -> str:
    """Render a number the way it reads in exports: ``100.0`` becomes ``100``."""
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def now_iso() -> str:
    """UTC timestamp with millisecond precision, e.g. ``2024-01-01T10:00:00.000Z``."""
    now = datetime.datetime.now(datetime.timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def today_iso_date() -> str:
    return datetime.date.today().isoformat()


def uid() -> str:
    return str(uuid.uuid4())


def sort_by_name(items: Iterable[T]) -> List[T]:
    return sorted(items, key=lambda item: item.name.casefold())
