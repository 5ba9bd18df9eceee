"""Flatten the per-response fusion trace for download.

Each event is one (item, dimension) fusion step as recorded by the session.
Exports always carry the same columns in the same order; missing or
unreadable values become 0 / 0.0 / "" rather than failing the download.
"""
from __future__ import annotations

import csv
import io
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional


def _as_int(val: Any) -> int:
    try:
        return int(val)
    except (TypeError, ValueError):
        return 0


def _as_float(val: Any) -> float:
    try:
        return round(float(val), 4)
    except (TypeError, ValueError):
        return 0.0


def _as_text(val: Any) -> str:
    return "" if val is None else str(val)


COLUMNS: tuple[tuple[str, Callable[[Any], Any]], ...] = (
    ("t", _as_text),
    ("round", _as_int),
    ("item_id", _as_text),
    ("dimension", _as_text),
    ("type", _as_text),
    ("reliability", _as_float),
    ("contribution", _as_float),
    ("score_before", _as_float),
    ("score_after", _as_float),
    ("confidence_after", _as_float),
    ("uncertainty_after", _as_float),
    ("latency_ms", _as_int),
)
HEADER = [name for name, _ in COLUMNS]


def rows(events: Iterable[Optional[Mapping[str, Any]]]) -> List[Dict[str, Any]]:
    return [{name: conv((evt or {}).get(name)) for name, conv in COLUMNS} for evt in events]


def to_json(events: Iterable[Optional[Mapping[str, Any]]]) -> Dict[str, Any]:
    return {"events": rows(events)}


def to_csv(events: Iterable[Optional[Mapping[str, Any]]]) -> str:
    buf = io.StringIO()
    writer = csv.DictWriter(buf, fieldnames=HEADER)
    writer.writeheader()
    writer.writerows(rows(events))
    return buf.getvalue()
