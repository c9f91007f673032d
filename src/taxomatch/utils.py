from typing import Any, Dict, Mapping, Optional

from taxomatch.constants import FIELD_NAME_PREFIXES, INVALID_VALUES


def strip_field_prefix(field_name: str) -> str:
    """Remove the Darwin Core namespace prefix from a field name.

    ``details.dwc:genus`` and ``dwc:genus`` both become ``genus``.
    """
    for prefix in FIELD_NAME_PREFIXES:
        if field_name.startswith(prefix):
            return field_name[len(prefix):]
    return field_name


def flatten_fields(payload: Mapping[str, Any], parent: str = "") -> Dict[str, Any]:
    """Flatten nested mappings into dotted keys, e.g. ``details.dwc:genus``."""
    flat: Dict[str, Any] = {}
    for key, value in payload.items():
        full_key = f"{parent}.{key}" if parent else str(key)
        if isinstance(value, Mapping):
            flat.update(flatten_fields(value, full_key))
        else:
            flat[full_key] = value
    return flat


def normalize_fields(payload: Mapping[str, Any]) -> Dict[str, Any]:
    """Flatten a payload and strip namespace prefixes from its field names.

    When two fields collapse to the same name, the first one wins.
    """
    normalized: Dict[str, Any] = {}
    for key, value in flatten_fields(payload).items():
        normalized.setdefault(strip_field_prefix(key), value)
    return normalized


def clean_value(value: Any) -> Optional[Any]:
    """Return None for missing-looking values, the value otherwise.

    Strings are stripped; empty strings and placeholders such as ``NA`` count
    as missing.
    """
    if value is None:
        return None
    if isinstance(value, float) and value != value:  # NaN
        return None
    if isinstance(value, str):
        value = value.strip()
        if value.lower() in INVALID_VALUES:
            return None
    return value


def clean_text(value: Any) -> Optional[str]:
    """Return ``value`` as a cleaned string, or None when missing."""
    value = clean_value(value)
    if value is None:
        return None
    return str(value)
