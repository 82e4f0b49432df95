"""
Record actions for the records desk webapp.
Handles password-confirmed archiving and approve/reject reviews, driving the
dialog state and producing the message and redirect for the view.
"""

from dataclasses import dataclass
from typing import Dict, Any, Optional
import logging

from .api_client import ApiClient, ApiError
from .dialog_state import DialogController
from .navigation import Route, list_route
from .schema_loader import RecordSchema

logger = logging.getLogger(__name__)

PASSWORD_REQUIRED_MESSAGE = "Please enter your password to confirm."
ARCHIVE_FAILED_MESSAGE = "Deletion failed. Please try again."
REMARKS_REQUIRED_MESSAGE = "Remarks are required when rejecting."
REVIEW_FAILED_MESSAGE = "Failed to submit review"

REVIEW_STATUSES = ('approved', 'rejected')
QUEUE_NOTE_FIELD = 'review_notes'


@dataclass
class ActionResult:
    success: bool
    message: str
    redirect: Optional[Route] = None


def resolve_path(record: Dict[str, Any], dotted: str) -> Any:
    """Follow a dotted path ('tech_transfer.college') through nested dicts."""
    value: Any = record
    for part in dotted.split('.'):
        if not isinstance(value, dict):
            return None
        value = value.get(part)
    return value


def parent_filters(schema: RecordSchema, record: Dict[str, Any]) -> Dict[str, Any]:
    """
    Campus/college filters of the list a record belongs to.

    The owning college is looked up through the schema's parent_path; records
    without one (users, colleges) carry campus_id/college_id directly.
    """
    parent = resolve_path(record, schema.parent_path) if schema.parent_path else None
    if isinstance(parent, dict):
        campus = parent.get('campus_id')
        college = parent.get('id') or record.get('college_id')
    else:
        campus = record.get('campus_id')
        college = record.get('college_id')

    filters = {}
    if campus not in (None, ""):
        filters['campus'] = campus
    if college not in (None, ""):
        filters['college'] = college
    return filters


def archive_record(
    client: ApiClient,
    schema: RecordSchema,
    record: Dict[str, Any],
    password: str,
    dialog: Optional[DialogController] = None
) -> ActionResult:
    """
    Archive (soft delete) a record after password confirmation.

    An empty password is rejected without contacting the API. API failures
    surface the server's password or general message, or a generic notice.

    Args:
        client: API client carrying the auth context
        schema: Record type schema
        record: The record being archived (must contain 'id')
        password: The user's password
        dialog: Dialog to drive through its states, if any

    Returns:
        ActionResult; on success the redirect is the filtered list
    """
    if not password or not password.strip():
        if dialog:
            dialog.fail(PASSWORD_REQUIRED_MESSAGE)
        return ActionResult(False, PASSWORD_REQUIRED_MESSAGE)

    if dialog:
        dialog.submit()

    try:
        client.archive(schema.resource, record['id'], password)
    except ApiError as e:
        logger.error(f"Failed to archive {schema.record_type} {record.get('id')}: {e}", exc_info=True)
        password_errors = e.field_errors.get('password')
        if isinstance(password_errors, list):
            password_errors = password_errors[0] if password_errors else None
        message = (
            e.payload_value('password')
            or (str(password_errors) if password_errors else None)
            or e.payload_value('message')
            or ARCHIVE_FAILED_MESSAGE
        )
        if dialog:
            dialog.fail(message)
        return ActionResult(False, message)

    if dialog:
        dialog.succeed()
    logger.info(f"Archived {schema.record_type} {record['id']}")
    return ActionResult(
        True,
        schema.messages.archived,
        list_route(schema.record_type, **parent_filters(schema, record)),
    )


def review_record(
    client: ApiClient,
    schema: RecordSchema,
    record: Dict[str, Any],
    status: str,
    remarks: str = "",
    dialog: Optional[DialogController] = None,
    note_field: Optional[str] = None
) -> ActionResult:
    """
    Approve or reject a submitted record.

    Remarks are mandatory only when rejecting; a rejection without remarks
    is refused before any request is made. They are sent under note_field,
    or the schema's review_note_field when not given.

    Raises:
        ValueError: If the record type is not reviewable or status is unknown
    """
    if not schema.reviewable:
        raise ValueError(f"{schema.title} records cannot be reviewed")
    if status not in REVIEW_STATUSES:
        raise ValueError(f"Unknown review status: {status}")

    remarks = (remarks or "").strip()
    if status == 'rejected' and not remarks:
        if dialog:
            dialog.fail(REMARKS_REQUIRED_MESSAGE)
        return ActionResult(False, REMARKS_REQUIRED_MESSAGE)

    if dialog:
        dialog.submit()

    try:
        client.review(schema.review_resource, record['id'], status, remarks, note_field or schema.review_note_field)
    except ApiError as e:
        logger.error(f"Failed to submit review for {schema.record_type} {record.get('id')}: {e}", exc_info=True)
        if dialog:
            dialog.fail(REVIEW_FAILED_MESSAGE)
        return ActionResult(False, REVIEW_FAILED_MESSAGE)

    if dialog:
        dialog.succeed()
    return ActionResult(
        True,
        f"{schema.title} {status} successfully",
        list_route(schema.record_type, **parent_filters(schema, record)),
    )


def review_submission(
    client: ApiClient,
    schemas: Dict[str, RecordSchema],
    submission: Dict[str, Any],
    status: str,
    remarks: str = "",
    dialog: Optional[DialogController] = None
) -> ActionResult:
    """
    Review a pending submission straight from the review queue.

    The queue lists submissions by review resource ('award', 'modality', ...),
    and its reviews carry the reviewer's text as review_notes.

    Args:
        client: API client carrying the auth context
        schemas: Loaded schemas keyed by record type
        submission: Queue entry with 'type' and 'id'
        status: 'approved' or 'rejected'
        remarks: Reviewer notes, required when rejecting
        dialog: Dialog to drive through its states, if any

    Raises:
        ValueError: If no reviewable schema matches the submission type
    """
    schema = next(
        (s for s in schemas.values() if s.reviewable and s.review_resource == submission.get('type')),
        None
    )
    if schema is None:
        raise ValueError(f"No reviewable record type for submission type {submission.get('type')!r}")
    return review_record(client, schema, submission, status, remarks, dialog=dialog, note_field=QUEUE_NOTE_FIELD)
