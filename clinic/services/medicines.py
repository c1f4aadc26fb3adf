"""
Canonical shape of ``Prescription.medicines``.

Older rows stored medicines as a JSON-encoded string, as a single object,
as null, or with ``medicineName``/``frequency`` keys.  Everything written
now passes through :func:`normalize_medicines`, and the
``normalize_medicines`` management command rewrites legacy rows once, so
read paths can rely on a list of dicts with the keys in ``MEDICINE_FIELDS``.
"""
from __future__ import annotations

import json
import re
from datetime import date, timedelta
from typing import Any

MEDICINE_FIELDS = ('name', 'dosage', 'duration', 'instructions', 'timing')

_ALIASES = {
    'medicineName': 'name',
    'medicine': 'name',
    'frequency': 'timing',
    'advice': 'instructions',
}

# Reminder clock times for the morning-noon-night dosage pattern, e.g. "1-0-1"
SLOT_TIMES = ('09:00', '14:00', '20:00')
_DOSAGE_PATTERN = re.compile(r'^\s*(\d+(?:\.\d+)?|½)\s*-\s*(\d+(?:\.\d+)?|½)\s*-\s*(\d+(?:\.\d+)?|½)\s*$')
_LEADING_NUMBER = re.compile(r'(\d+)')
DEFAULT_REMINDER_DAYS = 5


def _normalize_entry(entry: Any) -> dict | None:
    if isinstance(entry, str):
        name = entry.strip()
        return {**dict.fromkeys(MEDICINE_FIELDS, ''), 'name': name} if name else None
    if not isinstance(entry, dict):
        return None
    item = dict.fromkeys(MEDICINE_FIELDS, '')
    for key, value in entry.items():
        field = _ALIASES.get(key, key)
        if field in item and value is not None and not item[field]:
            item[field] = str(value).strip()
    return item if item['name'] else None


def _split_free_text(text: str) -> list[str]:
    """One medicine per line or per ``;``."""
    return [part for part in re.split(r'[\n;]', text) if part.strip()]


def normalize_medicines(value: Any) -> list[dict]:
    """Coerce any stored or submitted medicines value to the canonical list."""
    if value is None or value == '':
        return []
    if isinstance(value, str):
        try:
            decoded = json.loads(value)
        except ValueError:
            decoded = value
        if isinstance(decoded, (list, tuple, dict)) or decoded is None:
            value = decoded
        else:
            # Free text, bare or JSON-encoded
            value = _split_free_text(decoded if isinstance(decoded, str) else value)
    if isinstance(value, dict):
        if 'medicines' in value:
            return normalize_medicines(value['medicines'])
        value = [value]
    if not isinstance(value, (list, tuple)):
        return []
    return [item for item in (_normalize_entry(e) for e in value) if item]


def reminder_times(dosage: str) -> list[str]:
    """Map a ``1-0-1`` style dosage to reminder clock times."""
    match = _DOSAGE_PATTERN.match(dosage or '')
    if not match:
        return [SLOT_TIMES[0]]
    times = [t for t, qty in zip(SLOT_TIMES, match.groups()) if qty not in ('0', '0.0')]
    return times or [SLOT_TIMES[0]]


def reminder_window(duration: str, start: date) -> tuple[date, date]:
    match = _LEADING_NUMBER.search(duration or '')
    days = int(match.group(1)) if match else DEFAULT_REMINDER_DAYS
    days = max(days, 1)
    if 'week' in (duration or '').lower():
        days *= 7
    return start, start + timedelta(days=days - 1)
