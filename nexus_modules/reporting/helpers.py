"""
Reporting Helpers (``nexus_modules.reporting.helpers``).

Plain-data rendering and canonical JSON for report content. Canonical
form (sorted keys, no whitespace, decimals as strings) makes checksums
reproducible across runs.
"""

from __future__ import annotations

import dataclasses
import hashlib
import json
from datetime import date
from decimal import Decimal
from enum import Enum

from nexus_kernel.values import Money


def render_to_dict(obj: object) -> dict | list | str | int | float | bool | None:
    """
    Convert report data to JSON-compatible values.

    Decimal -> str, Money -> {"amount", "currency"}, date/datetime -> ISO,
    Enum -> value, dataclasses -> dicts, tuples -> lists.
    """
    if isinstance(obj, Enum):
        return obj.value
    if obj is None or isinstance(obj, (bool, int, float, str)):
        return obj
    if isinstance(obj, Decimal):
        return str(obj)
    if isinstance(obj, Money):
        return {"amount": str(obj.amount), "currency": obj.currency.code}
    if isinstance(obj, date):
        return obj.isoformat()
    if isinstance(obj, (list, tuple)):
        return [render_to_dict(item) for item in obj]
    if isinstance(obj, dict):
        return {str(k): render_to_dict(v) for k, v in obj.items()}
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return {f.name: render_to_dict(getattr(obj, f.name)) for f in dataclasses.fields(obj)}
    return str(obj)


def canonical_json(data: object) -> str:
    return json.dumps(render_to_dict(data), sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def content_checksum(content: str) -> str:
    return hashlib.sha256(content.encode("utf-8")).hexdigest()
