"""
Common helpers for felt values, u256 words and log formatting.
"""

from typing import Any, Optional, Tuple, Union

U128_MASK = (1 << 128) - 1
U256_LIMIT = 1 << 256


def parse_felt(value: Union[int, str]) -> int:
    """
    Parse an integer that may arrive as an int, a decimal string or a
    0x-prefixed hex string.

    Raises:
        ValueError: If the value is not an integer representation or is negative
    """
    if isinstance(value, bool):
        raise ValueError(f"Expected integer, got bool: {value!r}")
    if isinstance(value, int):
        result = value
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            raise ValueError("Empty integer string")
        if text.lower().startswith("0x"):
            result = int(text, 16)
        else:
            result = int(text, 10)
    else:
        raise ValueError(f"Expected integer or string, got {type(value).__name__}")

    if result < 0:
        raise ValueError(f"Negative value not allowed: {value!r}")
    return result


def to_hex(value: int) -> str:
    """Format a non-negative integer the way Starknet tooling prints felts."""
    return hex(value)


def split_u256(value: int) -> Tuple[int, int]:
    """Split an unsigned 256-bit integer into (low, high) 128-bit words."""
    if value < 0 or value >= U256_LIMIT:
        raise ValueError(f"Value out of u256 range: {value}")
    return value & U128_MASK, value >> 128


def join_u256(low: int, high: int) -> int:
    """Inverse of split_u256."""
    return (high << 128) | low


def mask_secret(secret: Optional[Any], visible: int = 4) -> Optional[str]:
    """Mask all but the first and last few characters of a secret."""
    if secret is None:
        return None
    text = str(secret)
    if len(text) <= visible * 2:
        return "*" * len(text)
    return f"{text[:visible + 2]}...{text[-visible:]}"


def format_duration(seconds: float) -> str:
    """Format duration in seconds to human-readable string."""
    if seconds < 60:
        return f"{seconds:.2f}s"
    elif seconds < 3600:
        minutes = seconds / 60
        return f"{minutes:.1f}m"
    else:
        hours = seconds / 3600
        return f"{hours:.1f}h"
