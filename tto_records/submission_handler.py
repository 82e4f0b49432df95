"""
Submission handler for the records desk webapp.
Builds create/update requests from a draft and its staged files, sends them,
and turns the outcome into messages, field errors and a redirect.
"""

from dataclasses import dataclass, field
from typing import Dict, Any, List, Optional, Tuple
import logging

from .api_client import ApiClient, ApiError, unwrap_data
from .attachment_stager import StagedAttachment
from .field_validator import ErrorSet, merge_server_errors, validate_all
from .navigation import Route, detail_route, list_route
from .schema_loader import RecordSchema

logger = logging.getLogger(__name__)

MODE_CREATE = "create"
MODE_UPDATE = "update"

FORM_ERROR_MESSAGE = "Check the form for errors."
GENERIC_FAILURE_MESSAGE = "Something went wrong while saving. Please try again."


@dataclass
class SubmissionRequest:
    """Method, path and body of one create/update call."""
    method: str
    path: str
    json: Optional[Dict[str, Any]] = None
    data: Optional[Dict[str, str]] = None
    files: List[Tuple[str, Tuple[str, bytes, str]]] = field(default_factory=list)

    @property
    def is_multipart(self) -> bool:
        return self.data is not None


@dataclass
class SubmissionResult:
    success: bool
    record: Dict[str, Any] = field(default_factory=dict)
    errors: ErrorSet = field(default_factory=dict)
    message: str = ""
    redirect: Optional[Route] = None


def _form_value(value: Any) -> Optional[str]:
    """Stringify a draft value for a multipart form field."""
    if value is None:
        return None
    if isinstance(value, bool):
        return "1" if value else "0"
    return str(value)


def build_request(
    schema: RecordSchema,
    draft: Dict[str, Any],
    staged: List[StagedAttachment],
    mode: str,
    record_id: Any = None
) -> SubmissionRequest:
    """
    Build the request for a create or update submission.

    With staged files the body is multipart: every scalar field plus one
    file part per staged file. Updates then go out as POST with a
    _method=PUT override. Without staged files the body is JSON of the
    scalar fields only, sent with POST (create) or PUT (update).

    Args:
        schema: Record type schema
        draft: Current draft values
        staged: Staged files (may be empty)
        mode: MODE_CREATE or MODE_UPDATE
        record_id: Id of the record being edited

    Returns:
        SubmissionRequest ready to send
    """
    if mode not in (MODE_CREATE, MODE_UPDATE):
        raise ValueError(f"Unknown submission mode: {mode}")
    if mode == MODE_UPDATE and record_id in (None, ""):
        raise ValueError("record_id is required for updates")

    scalars = {name: draft.get(name) for name in schema.scalar_field_names()}
    collection = f"/{schema.resource}"
    member = f"/{schema.resource}/{record_id}"

    if not staged:
        if mode == MODE_CREATE:
            return SubmissionRequest('POST', collection, json=scalars)
        return SubmissionRequest('PUT', member, json=scalars)

    data: Dict[str, str] = {}
    for name, value in scalars.items():
        form_value = _form_value(value)
        if form_value is not None:
            data[name] = form_value

    upload_field = schema.upload.field if schema.upload else 'attachments'
    multiple = schema.upload.multiple if schema.upload else True
    part_name = f"{upload_field}[]" if multiple else upload_field
    files = [(part_name, staged_file.as_upload()) for staged_file in staged]

    if mode == MODE_CREATE:
        return SubmissionRequest('POST', collection, data=data, files=files)

    data['_method'] = 'PUT'
    return SubmissionRequest('POST', member, data=data, files=files)


class SubmissionHandler:
    """Handles the submit step of the record forms."""

    @staticmethod
    def submit(
        client: ApiClient,
        schema: RecordSchema,
        draft: Dict[str, Any],
        staged: List[StagedAttachment],
        mode: str,
        record_id: Any = None,
        validate: bool = True
    ) -> SubmissionResult:
        """
        Validate the draft and send it to the API.

        The draft is never modified; on failure the caller keeps it so the
        user can correct and resubmit.

        Returns:
            SubmissionResult describing the outcome
        """
        if validate:
            errors = validate_all(schema, draft)
            if errors:
                logger.warning(f"Validation failed for {schema.record_type}: {len(errors)} errors")
                return SubmissionResult(False, errors=errors, message=FORM_ERROR_MESSAGE)

        request = build_request(schema, draft, staged, mode, record_id)
        logger.info(
            f"Submitting {schema.record_type} ({mode}) as "
            f"{'multipart' if request.is_multipart else 'JSON'} {request.method} {request.path}"
        )

        try:
            payload = client.request_json(
                request.method,
                request.path,
                json=request.json,
                data=request.data,
                files=request.files or None,
            )
        except ApiError as e:
            logger.error(f"Submission of {schema.record_type} failed: {e}", exc_info=True)
            field_errors = e.field_errors
            if field_errors:
                return SubmissionResult(
                    False,
                    errors=merge_server_errors({}, field_errors),
                    message=FORM_ERROR_MESSAGE,
                )
            return SubmissionResult(False, message=e.payload_value('message') or GENERIC_FAILURE_MESSAGE)

        record = unwrap_data(payload)
        if not isinstance(record, dict):
            record = {}

        if mode == MODE_CREATE:
            return SubmissionResult(
                True,
                record=record,
                message=schema.messages.created,
                redirect=list_route(schema.record_type),
            )
        return SubmissionResult(
            True,
            record=record,
            message=schema.messages.updated,
            redirect=detail_route(schema.record_type, record_id),
        )
