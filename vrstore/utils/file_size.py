"""
File size parsing and formatting.

Sizes use binary multiples (1 KB = 1024 B). ``format_file_size`` is the
inverse of ``parse_file_size`` for canonical strings, i.e. a value below
1024 of its unit with at most two decimals.
"""
import math
import re
from typing import Optional

UNITS = ["B", "KB", "MB", "GB"]
UNIT_FACTORS = {unit: 1024 ** power for power, unit in enumerate(UNITS)}

SIZE_PATTERN = re.compile(r"^(\d+(?:\.\d+)?)\s*([KMG]?B)$", re.IGNORECASE)
SIZE_SEARCH_PATTERN = re.compile(r"(\d[\d,]*(?:\.\d+)?)\s*([KMG]B|B)\b", re.IGNORECASE)


def parse_file_size(size_str: Optional[str]) -> Optional[int]:
    """
    Parse a size string such as "150 MB" or "1.2 GB" into bytes.

    Returns None for anything that is not ``<number> <B|KB|MB|GB>``.
    """
    if not size_str or not isinstance(size_str, str):
        return None

    match = SIZE_PATTERN.match(size_str.strip().replace(",", ""))
    if not match:
        return None

    value = float(match.group(1))
    unit = match.group(2).upper()
    return int(round(value * UNIT_FACTORS[unit]))


def find_file_size(text: Optional[str]) -> Optional[int]:
    """Find the first size token inside free text and parse it."""
    if not text:
        return None
    match = SIZE_SEARCH_PATTERN.search(text)
    if not match:
        return None
    return parse_file_size(f"{match.group(1)} {match.group(2)}")


def format_file_size(size_bytes: Optional[int]) -> str:
    """
    Format a byte count as "{value} {unit}".

    The unit is picked by floor(log_1024(bytes)) and capped at GB; the
    value is rounded to two decimals with trailing zeros dropped. A value
    that rounds up to 1024 moves to the next unit.
    """
    if not size_bytes or size_bytes <= 0:
        return "0 B"

    power = min(int(math.floor(math.log(size_bytes, 1024))), len(UNITS) - 1)
    # float log can land on the wrong side of an exact power of 1024
    if power + 1 < len(UNITS) and size_bytes >= 1024 ** (power + 1):
        power += 1
    elif power > 0 and size_bytes < 1024 ** power:
        power -= 1

    value = round(size_bytes / 1024 ** power, 2)
    if value >= 1024 and power + 1 < len(UNITS):
        power += 1
        value = round(size_bytes / 1024 ** power, 2)
    text = f"{value:.2f}".rstrip("0").rstrip(".")
    return f"{text} {UNITS[power]}"
