"""Small input-parsing helpers shared by both engines.

Caller input (entry fields, spinboxes) arrives as strings or ints. Anything
that does not parse is reported as None so setters can turn into no-ops.
"""
import re
from typing import Optional

# memory operand form used by LOAD/STORE, e.g. "M[100]"
MEMORY_OPERAND = re.compile(r'M\[(\d+)\]')


def parse_int(value) -> Optional[int]:
    """Return `value` as an int, or None when it is not an integer.

    Accepts ints and decimal strings (surrounding whitespace is fine).
    bools and non-integral floats are rejected.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    if isinstance(value, str):
        try:
            return int(value.strip(), 10)
        except ValueError:
            return None
    return None


def parse_memory_operand(operand: str) -> Optional[str]:
    """Extract the address string from an "M[addr]" operand, or None."""
    if not isinstance(operand, str):
        return None
    m = MEMORY_OPERAND.search(operand)
    if not m:
        return None
    return m.group(1)
