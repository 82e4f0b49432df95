"""
Presence validation for record form steps.
Format and range checks are the API's job; only required fields are checked here.
"""

from typing import Dict, Any, Optional
import logging

from .schema_loader import RecordSchema

logger = logging.getLogger(__name__)

ErrorSet = Dict[str, str]


def is_empty(value: Any) -> bool:
    """Check whether a field value counts as not filled in."""
    if value is None:
        return True
    if isinstance(value, bool):
        return value is False
    if isinstance(value, (int, float)):
        return False
    if isinstance(value, str):
        return value.strip() == ""
    if isinstance(value, (list, tuple, dict, set)):
        return len(value) == 0
    return False


def validate_step(schema: RecordSchema, step: int, draft: Dict[str, Any]) -> ErrorSet:
    """
    Validate the required fields of one step.

    Args:
        schema: Record type schema
        step: Step number (1-based)
        draft: Current draft values

    Returns:
        Mapping of field name to message; empty when the step is complete
    """
    errors: ErrorSet = {}
    for spec in schema.required_fields(step):
        if is_empty(draft.get(spec.name)):
            errors[spec.name] = spec.missing_message

    if errors:
        logger.debug(f"Step {step} of {schema.record_type} has {len(errors)} missing fields")
    return errors


def validate_all(schema: RecordSchema, draft: Dict[str, Any]) -> ErrorSet:
    """Validate every step of the schema."""
    errors: ErrorSet = {}
    for step in range(1, schema.total_steps + 1):
        errors.update(validate_step(schema, step, draft))
    return errors


def first_error_step(schema: RecordSchema, errors: ErrorSet) -> Optional[int]:
    """Lowest step that holds one of the given errors, if any."""
    steps = [
        schema.fields[name].step for name in errors
        if name in schema.fields
    ]
    return min(steps) if steps else None


def merge_server_errors(current: ErrorSet, server_errors: Optional[Dict[str, Any]]) -> ErrorSet:
    """
    Merge field errors returned by the API into the error set.

    The API reports each field as a message or a list of messages; the
    first message of a list is kept.
    """
    merged = dict(current)
    for field_name, messages in (server_errors or {}).items():
        if isinstance(messages, (list, tuple)):
            if not messages:
                continue
            message = messages[0]
        else:
            message = messages
        merged[str(field_name)] = str(message)
    return merged
