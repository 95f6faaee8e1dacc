"""Identifier helpers shared by the domain packages."""

import secrets
from datetime import date


def random_hex(length: int = 8) -> str:
    """Uppercase hex string of exactly ``length`` characters."""
    return secrets.token_hex((length + 1) // 2)[:length].upper()


def generate_id(prefix: str, length: int = 12) -> str:
    """``PREFIX-<hex>``, e.g. ``DSB-1A2B3C4D5E6F``."""
    return f"{prefix}-{random_hex(length)}"


def generate_dated_id(prefix: str, on: date, length: int = 8) -> str:
    """``PREFIX-YYYYMMDD-<hex>``, e.g. ``SAR-20240101-1A2B3C4D``."""
    return f"{prefix}-{on:%Y%m%d}-{random_hex(length)}"
