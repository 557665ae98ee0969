"""Load, validate and save school data as JSON."""

from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Any, Union

from pydantic import ValidationError

from ..errors import DataValidationError
from .store import SchoolData


# Older exports name a few fields differently; map them after snake-casing.
LEGACY_FIELD_NAMES = {
    "schedule_item_id": "lesson_id",
    "replacement_teacher_id": "replacement",
    "replacement_class_id": "override_class_id",
    "replacement_subject_id": "override_subject_id",
    "lesson_absence_reason": "absence_reason",
    "is_merger": "merger",
    "refusals": "declined_teacher_ids",
    "students_count": "student_count",
    "included_rooms": "rooms",
    "direction": "track",
    "telegram_chat_id": "notify_address",
    "schedule": "first_half",
    "schedule2": "second_half",
    "duty_schedule": "duty_records",
}

# Keys whose values are maps keyed by data (dates), not by field names.
_OPAQUE_KEYS = {"absence_reasons"}

_LEGACY_DAYS = {"Пн": 0, "Вт": 1, "Ср": 2, "Чт": 3, "Пт": 4}
_LEGACY_SHIFTS = {"1 смена": "first", "2 смена": "second"}
_LEGACY_ROOM_TYPES = {
    "Обычный": "general",
    "Спортзал": "gym",
    "Химия/Биология": "science_lab",
    "Физика": "physics_lab",
    "Информатика": "computer_lab",
    "Музыка": "music_room",
    "Технология": "workshop",
    "Актовый зал": "assembly_hall",
}

# Older exports store weekdays, shifts and room types as display labels.
LEGACY_FIELD_VALUES = {
    "day": _LEGACY_DAYS,
    "shift": _LEGACY_SHIFTS,
    "shifts": _LEGACY_SHIFTS,
    "type": _LEGACY_ROOM_TYPES,
    "required_room_type": _LEGACY_ROOM_TYPES,
}


def load_school_data(path: Union[str, Path]) -> SchoolData:
    """
    Load school data from a JSON file.

    Accepts camelCase or snake_case keys.

    Args:
        path: Path to the JSON file

    Returns:
        Validated SchoolData

    Raises:
        FileNotFoundError: If the file doesn't exist
        json.JSONDecodeError: If the file isn't valid JSON
        DataValidationError: If the file isn't UTF-8 text or the data fails validation
    """
    path = Path(path)

    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except UnicodeDecodeError as e:
        raise DataValidationError(f"{path} is not valid UTF-8 text: {e.reason} at byte {e.start}") from e

    return validate_school_data(data)


def validate_school_data(data: dict) -> SchoolData:
    """
    Validate a raw school data dictionary.

    Args:
        data: Parsed JSON object

    Raises:
        DataValidationError: If validation fails
    """
    if not isinstance(data, dict):
        raise DataValidationError("School data must be a JSON object")

    converted = _normalize_keys(data)
    try:
        return SchoolData.model_validate(converted)
    except ValidationError as e:
        raise DataValidationError(_format_validation_error(e)) from e


def save_school_data(school: SchoolData, path: Union[str, Path]) -> Path:
    """Write school data as JSON and return the path written."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        f.write(school.model_dump_json(indent=2))
    return path


def _to_snake_case(name: str) -> str:
    name = re.sub(r'([A-Z]+)([A-Z][a-z])', r'\1_\2', name)
    name = re.sub(r'([a-z\d])([A-Z])', r'\1_\2', name)
    return name.lower()


def _normalize_keys(obj: Any) -> Any:
    """Recursively snake_case dictionary keys and apply legacy field names and values."""
    if isinstance(obj, dict):
        result = {}
        for key, value in obj.items():
            name = _to_snake_case(key)
            name = LEGACY_FIELD_NAMES.get(name, name)
            if name in _OPAQUE_KEYS:
                result[name] = value
                continue
            value = _normalize_keys(value)
            if name in LEGACY_FIELD_VALUES:
                value = _legacy_value(value, LEGACY_FIELD_VALUES[name])
            result[name] = value
        return result
    elif isinstance(obj, list):
        return [_normalize_keys(item) for item in obj]
    else:
        return obj


def _legacy_value(value: Any, labels: dict) -> Any:
    if isinstance(value, list):
        return [_legacy_value(item, labels) for item in value]
    if isinstance(value, str):
        return labels.get(value, value)
    return value


def _format_validation_error(error: ValidationError) -> str:
    lines = []
    for item in error.errors():
        location = ".".join(str(part) for part in item["loc"]) or "data"
        lines.append(f"{location}: {item['msg']}")
    return "; ".join(lines)
