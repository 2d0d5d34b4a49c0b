"""
Response generator for successful dispatch results.

Turns the opaque payload returned by the automation webhook into text for the
transcript. Every rule tolerates missing or malformed fields and falls through
to the next one, ending with the dispatch message itself.
"""

import logging
from typing import Any, List, Mapping, Optional, Sequence

from ops_assistant.models import DispatchResult

logger = logging.getLogger(__name__)

NO_APPOINTMENTS_TEXT = "You have no appointments scheduled."
DEFAULT_SUCCESS_TEXT = "Request processed successfully"

# Each appointment field accepts alternative keys; the first present one wins
APPOINTMENT_FIELDS: Sequence[Sequence[str]] = (
    ("time", "date"),
    ("customer", "name"),
    ("service", "type"),
)


def _resolve_payload(data: Any) -> Optional[Mapping[str, Any]]:
    """Return the mapping carrying appointments/confirmation, if any"""
    if not isinstance(data, Mapping):
        return None
    if "appointments" in data or "confirmation" in data:
        return data
    nested = data.get("data")
    if isinstance(nested, Mapping):
        return nested
    return data


def _first_present(entry: Mapping[str, Any], keys: Sequence[str]) -> Optional[str]:
    for key in keys:
        value = entry.get(key)
        if value not in (None, ""):
            return str(value)
    return None


def format_appointment_line(index: int, appointment: Any) -> str:
    """Format one 1-based summary line for an appointment entry"""
    if not isinstance(appointment, Mapping):
        return f"{index}. {appointment}"

    parts = [_first_present(appointment, keys) for keys in APPOINTMENT_FIELDS]
    parts = [part for part in parts if part]
    return f"{index}. {' - '.join(parts) if parts else 'Appointment'}"


def format_appointments(appointments: List[Any]) -> str:
    count = len(appointments)
    lines = [f"You have {count} appointment{'s' if count > 1 else ''}:", ""]
    for index, appointment in enumerate(appointments, start=1):
        lines.append(format_appointment_line(index, appointment))
    return "\n".join(lines)


def format_success_response(result: Any, fallback_message: Optional[str] = None) -> str:
    """
    Build user-facing text from a successful dispatch.

    Args:
        result: a DispatchResult, or its raw ``data`` payload
        fallback_message: text used when no payload rule applies and
            ``result`` is a bare payload

    Returns:
        Text for the assistant message. Never raises.
    """
    if isinstance(result, DispatchResult):
        data = result.data
        fallback = result.message
    else:
        data = result
        fallback = fallback_message

    try:
        payload = _resolve_payload(data)
        if payload is not None:
            appointments = payload.get("appointments")
            if appointments is not None:
                if isinstance(appointments, list) and appointments:
                    return format_appointments(appointments)
                return NO_APPOINTMENTS_TEXT

            confirmation = payload.get("confirmation")
            if confirmation:
                return str(confirmation)
    except Exception as e:
        logger.warning(f"⚠️ Could not format dispatch payload, using message: {e}")

    return fallback or DEFAULT_SUCCESS_TEXT
