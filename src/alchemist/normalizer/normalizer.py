# src/alchemist/normalizer/normalizer.py
"""
@brief
Total conversion functions from raw spreadsheet values to canonical forms.

@details
Every function here is deterministic (apart from the auto-conversion
timestamp), has no external state and never raises on bad data: it degrades
to an empty or default canonical value. Deciding whether that best guess is
acceptable is the validation layer's job.

Raw rows are plain mappings keyed by spreadsheet column names. The
normalize_client / normalize_worker / normalize_task helpers are the only
place where raw rows become canonical records.
"""

from __future__ import annotations

import json
import math
import re
from collections.abc import Iterable, Mapping
from datetime import datetime, timezone
from typing import Any

from alchemist.normalizer.types import (
    NormalizedClient,
    NormalizedTask,
    NormalizedWorker,
    TaskIdPartition,
)
from alchemist.schemas.models import QualificationLevel

MIN_PHASE = 1
MAX_PHASE = 10

_QUALIFICATION_BY_NUMBER: dict[int, QualificationLevel] = {
    1: QualificationLevel.JUNIOR,
    2: QualificationLevel.JUNIOR,
    3: QualificationLevel.MID,
    4: QualificationLevel.SENIOR,
    5: QualificationLevel.EXPERT,
}

SKILL_SYNONYMS: dict[str, str] = {
    "ui/ux": "ui-ux",
    "ml": "machine-learning",
    "ai": "artificial-intelligence",
    "devops": "dev-ops",
}

# Digit runs are bounded: int() refuses strings past sys.get_int_max_str_digits().
_RANGE_RE = re.compile(r"^(\d{1,9})\s*-\s*(\d{1,9})$")
_UINT_RE = re.compile(r"^\d{1,9}$")


# ----------------------------
# SCALAR COERCIONS
# ----------------------------
def coerce_int(value: Any) -> int | None:
    """
    @brief
    Best-effort integer reading of a spreadsheet cell.

    @details
    Accepts ints, integral floats (pandas hands integer columns with gaps
    over as floats) and numeric text. Booleans, NaN, fractional numbers and
    anything else yield None.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if math.isfinite(value) and value.is_integer():
            return int(value)
        return None
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            return int(text)
        except ValueError:
            pass
        try:
            number = float(text)
        except ValueError:
            return None
        if math.isfinite(number) and number.is_integer():
            return int(number)
    return None


def as_text(value: Any) -> str:
    """Cell value as stripped text; missing values become ''."""
    if value is None:
        return ""
    if isinstance(value, float):
        if not math.isfinite(value):
            return ""
        if value.is_integer():
            return str(int(value))
    return str(value).strip()


def split_list(value: Any) -> list[str]:
    """Comma-separated cell (or already split list) as trimmed, non-empty entries."""
    if isinstance(value, (list, tuple)):
        items = [as_text(v) for v in value]
    elif isinstance(value, str):
        items = [part.strip() for part in value.split(",")]
    else:
        return []
    return [item for item in items if item]


def _integral_entries(items: Iterable[Any]) -> list[int]:
    # JSON numbers arrive as int or float; booleans are not numbers here
    out: list[int] = []
    for item in items:
        if isinstance(item, bool):
            continue
        if isinstance(item, int):
            out.append(item)
        elif isinstance(item, float) and math.isfinite(item) and item.is_integer():
            out.append(int(item))
    return out


def _reject_constant(name: str) -> Any:
    raise ValueError(f"non-standard JSON constant: {name}")


def _loads_strict(text: str) -> tuple[bool, Any]:
    """
    Parse JSON the way a browser would: NaN/Infinity are not JSON.

    Nesting deeper than the interpreter stack counts as unparseable.
    """
    try:
        return True, json.loads(text, parse_constant=_reject_constant)
    except (ValueError, RecursionError):
        return False, None


def _looks_like_json_array(text: str) -> bool:
    return text.startswith("[") and text.endswith("]")


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


# ----------------------------
# FIELD NORMALIZERS
# ----------------------------
def normalize_qualification_level(value: Any) -> QualificationLevel:
    """
    @brief
    Map a numeric or textual qualification onto the canonical enum.

    @details
    Numbers follow the legacy table 1-2 -> Junior, 3 -> Mid, 4 -> Senior,
    5 -> Expert. Text is matched case-insensitively against the enum names;
    numeric text is read as a number because CSV cells always arrive as
    text. Anything unmapped becomes Mid. Idempotent on its own output.

    @params
        value : str | int | float | QualificationLevel
            Raw QualificationLevel cell.

    @returns
        A QualificationLevel member, never None.
    """
    if isinstance(value, bool):
        return QualificationLevel.MID
    if isinstance(value, QualificationLevel):
        return value
    if isinstance(value, (int, float)):
        number = coerce_int(value)
        if number is None:
            return QualificationLevel.MID
        return _QUALIFICATION_BY_NUMBER.get(number, QualificationLevel.MID)
    if isinstance(value, str):
        text = value.strip()
        if _UINT_RE.match(text):
            return _QUALIFICATION_BY_NUMBER.get(int(text), QualificationLevel.MID)
        for level in QualificationLevel:
            if level.value.lower() == text.lower():
                return level
    return QualificationLevel.MID


def normalize_preferred_phases(value: Any) -> list[int]:
    """
    @brief
    Read PreferredPhases into an ascending list of distinct phase numbers.

    @details
    Encodings are tried in priority order:
      (1) JSON array "[1,2,3]": positive integral entries are kept;
      (2) range "start - end" with any whitespace: expanded inclusively only
          when 1 <= start <= end <= 10, otherwise rejected (no clamping);
      (3) comma-separated integers, each kept only inside 1..10.
    Unreadable input yields [].

    @params
        value : str
            Raw PreferredPhases cell (numbers and lists are tolerated).

    @returns
        Sorted distinct phase numbers; [] if nothing could be read.
    """
    if isinstance(value, (list, tuple)):
        return sorted({p for p in _integral_entries(value) if p >= MIN_PHASE})
    if isinstance(value, int) and not isinstance(value, bool):
        value = str(value)
    if not isinstance(value, str):
        return []

    text = value.strip()
    if not text:
        return []

    # (1) JSON array
    if _looks_like_json_array(text):
        ok, parsed = _loads_strict(text)
        if not ok or not isinstance(parsed, list):
            return []
        return sorted({p for p in _integral_entries(parsed) if p >= MIN_PHASE})

    # (2) Range "1 - 3"
    match = _RANGE_RE.match(text)
    if match:
        start, end = int(match.group(1)), int(match.group(2))
        if MIN_PHASE <= start <= end <= MAX_PHASE:
            return list(range(start, end + 1))
        return []

    # (3) Comma-separated "1,2,3"
    phases: set[int] = set()
    for token in text.split(","):
        token = token.strip()
        if _UINT_RE.match(token) and MIN_PHASE <= int(token) <= MAX_PHASE:
            phases.add(int(token))
    return sorted(phases)


def normalize_available_slots(value: Any) -> list[int]:
    """
    @brief
    Read AvailableSlots into a list of phase indexes.

    @details
    A bare number becomes a one-element list; a JSON array string keeps its
    integral entries; a comma-separated string keeps its non-negative
    integers (a bare numeric string is the one-token case). Order and
    repetitions are preserved.
    """
    if isinstance(value, bool):
        return []
    if isinstance(value, (int, float)):
        number = coerce_int(value)
        return [number] if number is not None else []
    if isinstance(value, (list, tuple)):
        return _integral_entries(value)
    if not isinstance(value, str):
        return []

    text = value.strip()
    if not text:
        return []

    if _looks_like_json_array(text):
        ok, parsed = _loads_strict(text)
        if not ok or not isinstance(parsed, list):
            return []
        return _integral_entries(parsed)

    return [int(tok.strip()) for tok in text.split(",") if _UINT_RE.match(tok.strip())]


def normalize_attributes_json(value: Any) -> str:
    """
    @brief
    Guarantee that AttributesJSON is valid JSON text.

    @details
    Valid JSON is returned unchanged. Empty cells become "{}". Anything else
    is wrapped into {"message": <text>, "source": "auto-converted",
    "timestamp": <UTC ISO-8601>} so the original text is preserved in a
    structured, inspectable form.
    """
    if value is None:
        return "{}"
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False)
    if isinstance(value, float) and not math.isfinite(value):
        return "{}"
    text = value if isinstance(value, str) else as_text(value)
    if not text.strip():
        return "{}"

    ok, _ = _loads_strict(text)
    if ok:
        return text
    return json.dumps(
        {"message": text.strip(), "source": "auto-converted", "timestamp": _utc_now_iso()},
        ensure_ascii=False,
    )


def is_json_text(value: Any) -> bool:
    """True for text that parses as strict JSON."""
    return isinstance(value, str) and _loads_strict(value)[0]


def normalize_skills(value: Any) -> list[str]:
    """Comma list -> lower-cased tokens with synonyms applied (not deduplicated)."""
    tokens = [token.lower() for token in split_list(value)]
    return [SKILL_SYNONYMS.get(token, token) for token in tokens]


def validate_task_ids(task_ids: Any, valid_ids: set[str] | frozenset[str]) -> TaskIdPartition:
    """
    @brief
    Partition a RequestedTaskIDs cell against the known TaskIDs.

    @details
    Pure: the caller decides whether invalid entries are errors or should be
    stripped. Entries are trimmed; blanks are dropped.
    """
    valid: list[str] = []
    invalid: list[str] = []
    for task_id in split_list(task_ids):
        (valid if task_id in valid_ids else invalid).append(task_id)
    return TaskIdPartition(valid=valid, invalid=invalid)


# ----------------------------
# RECORD NORMALIZERS
# ----------------------------
def normalize_client(row: Mapping[str, Any]) -> NormalizedClient:
    raw_attributes = row.get("AttributesJSON")
    has_text = bool(as_text(raw_attributes)) if not isinstance(raw_attributes, (dict, list)) else False
    return NormalizedClient(
        client_id=as_text(row.get("ClientID")),
        client_name=as_text(row.get("ClientName")),
        priority_level=coerce_int(row.get("PriorityLevel")),
        requested_task_ids=split_list(row.get("RequestedTaskIDs")),
        group_tag=as_text(row.get("GroupTag")),
        attributes_json=normalize_attributes_json(raw_attributes),
        attributes_converted=has_text and not is_json_text(raw_attributes),
    )


def normalize_worker(row: Mapping[str, Any]) -> NormalizedWorker:
    return NormalizedWorker(
        worker_id=as_text(row.get("WorkerID")),
        worker_name=as_text(row.get("WorkerName")),
        skills=normalize_skills(row.get("Skills")),
        available_slots=normalize_available_slots(row.get("AvailableSlots")),
        max_load_per_phase=coerce_int(row.get("MaxLoadPerPhase")),
        worker_group=as_text(row.get("WorkerGroup")),
        qualification_level=normalize_qualification_level(row.get("QualificationLevel")),
    )


def normalize_task(row: Mapping[str, Any]) -> NormalizedTask:
    raw_phases = row.get("PreferredPhases")
    phases = normalize_preferred_phases(raw_phases)
    # blank MaxConcurrent falls back to the schema default of 1
    raw_concurrent = row.get("MaxConcurrent")
    return NormalizedTask(
        task_id=as_text(row.get("TaskID")),
        task_name=as_text(row.get("TaskName")),
        category=as_text(row.get("Category")),
        duration=coerce_int(row.get("Duration")),
        required_skills=normalize_skills(row.get("RequiredSkills")),
        preferred_phases=phases,
        max_concurrent=coerce_int(raw_concurrent) if as_text(raw_concurrent) else 1,
        phases_unrecognized=bool(as_text(raw_phases)) and not phases,
    )


def normalize_clients(rows: Iterable[Mapping[str, Any]]) -> list[NormalizedClient]:
    return [normalize_client(r) for r in rows]


def normalize_workers(rows: Iterable[Mapping[str, Any]]) -> list[NormalizedWorker]:
    return [normalize_worker(r) for r in rows]


def normalize_tasks(rows: Iterable[Mapping[str, Any]]) -> list[NormalizedTask]:
    return [normalize_task(r) for r in rows]
