"""
Draft state for the record forms.
Seeds drafts from schema defaults or fetched records and applies field edits.
"""

from datetime import date, datetime, timezone
from typing import Dict, Any, Optional
import logging

from .schema_loader import RecordSchema

logger = logging.getLogger(__name__)

Draft = Dict[str, Any]


def normalize_date(value: Any) -> str:
    """
    Reduce a date-ish value to its calendar date in yyyy-mm-dd form.

    Accepts ISO timestamps ("2024-03-05T00:00:00Z"), plain ISO dates and
    date/datetime objects. Timestamps with an offset yield the UTC date.
    Anything else, including None, yields "".

    Args:
        value: Raw value from the API or a widget

    Returns:
        Date string or empty string
    """
    if value is None or value == "":
        return ""

    if isinstance(value, datetime):
        return _utc_date(value)
    if isinstance(value, date):
        return value.isoformat()
    if not isinstance(value, str):
        return ""

    text = value.strip()
    try:
        return _utc_date(datetime.fromisoformat(text.replace('Z', '+00:00')))
    except ValueError:
        pass

    # Timestamps with a date prefix that fromisoformat rejects (e.g. fractional
    # seconds with more than six digits) still carry a usable date
    try:
        return date.fromisoformat(text[:10]).isoformat()
    except ValueError:
        logger.debug(f"Unparsable date value: {value!r}")
        return ""


def _utc_date(moment: datetime) -> str:
    # Offset timestamps resolve to the UTC calendar date; naive ones are taken as UTC
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc)
    return moment.date().isoformat()


def initialize_draft(schema: RecordSchema, seed: Optional[Dict[str, Any]] = None) -> Draft:
    """
    Create a draft for a create or edit form.

    Create mode (no seed) starts every field at its schema default. Edit
    mode copies values from the fetched record; missing or null values
    become "", and date fields are normalized to yyyy-mm-dd.

    Args:
        schema: Record type schema
        seed: Fetched record for edit mode

    Returns:
        New draft mapping
    """
    draft: Draft = {}
    date_fields = set(schema.date_fields())

    for name, spec in schema.fields.items():
        if seed is None:
            value = spec.initial_value()
        else:
            value = seed.get(name)
            if spec.type == 'boolean':
                value = bool(value)
            elif value is None:
                value = ""

        if name in date_fields:
            value = normalize_date(value)

        draft[name] = value

    return draft


def set_field(draft: Draft, name: str, value: Any) -> Draft:
    """
    Return a copy of the draft with one field replaced.

    Raises:
        KeyError: If the field is not part of the draft
    """
    if name not in draft:
        raise KeyError(f"Unknown field: {name}")

    updated = dict(draft)
    updated[name] = value
    return updated
