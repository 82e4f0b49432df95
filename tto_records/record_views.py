"""
Record pages for the records desk webapp.
One generic list, form (create/edit) and detail view, each driven by the
record type schema.
"""

import streamlit as st
import pandas as pd
from typing import Dict, Any, List, Optional, Tuple
import logging

from .api_client import ApiClient, ApiError, RecordNotFoundError, build_client
from .attachment_stager import AttachmentStager, policy_for
from .config_loader import get_config_value
from .diff_utils import calculate_changes, format_changes, has_changes
from .error_handler import ErrorHandler, ErrorType
from .field_validator import first_error_step
from .form_generator import FormGenerator, RecordDetailRenderer
from .form_state import initialize_draft, set_field
from .navigation import Route, PAGE_CREATE, create_route, detail_route, edit_route, list_route
from .record_actions import archive_record, review_record, review_submission, REVIEW_STATUSES
from .schema_loader import RecordSchema
from .session_manager import FormSession, SessionManager
from .step_sequencer import advance, is_final_step, prev_step
from .submission_handler import MODE_CREATE, MODE_UPDATE, SubmissionHandler
from .ui_feedback import show_loading, status_badge

logger = logging.getLogger(__name__)


def get_client() -> ApiClient:
    """API client bound to the signed-in user's auth context."""
    return build_client(SessionManager.get_auth())


def go(route: Route) -> None:
    SessionManager.navigate(route)
    st.rerun()


def _make_stager(schema: RecordSchema) -> AttachmentStager:
    policy = policy_for(
        schema.upload.policy if schema.upload else None,
        attachment_max_mb=get_config_value('uploads', 'attachment_max_mb', 10),
        logo_max_mb=get_config_value('uploads', 'logo_max_mb', 2),
    )
    multiple = schema.upload.multiple if schema.upload else True
    return AttachmentStager(policy, multiple=multiple)


def load_reference_options(client: ApiClient, schema: RecordSchema) -> Dict[str, List[Tuple[Any, str]]]:
    """(id, label) choices for every reference field of the schema."""
    options: Dict[str, List[Tuple[Any, str]]] = {}
    for spec in schema.fields.values():
        if spec.type != 'reference':
            continue
        records = ErrorHandler.with_error_handling(
            lambda: client.list_records(spec.reference),
            context=f"loading {spec.reference} options",
            error_type=ErrorType.API,
            default_return=[],
        )
        options[spec.name] = [
            (record.get('id'), str(record.get(spec.reference_label) or record.get('id')))
            for record in records
        ]
    return options


def fetch_record(client: ApiClient, schema: RecordSchema, record_id: Any) -> Optional[Dict[str, Any]]:
    """Fetch one record; None (with a placeholder shown) when it cannot be loaded."""
    try:
        with show_loading(f"Loading {schema.title.lower()}..."):
            return client.get_record(schema.resource, record_id)
    except RecordNotFoundError:
        logger.warning(f"{schema.record_type} {record_id} not found")
        st.warning(f"🔎 {schema.title} not found.")
        if st.button(f"Back to {schema.title} list", key=f"notfound_back_{schema.record_type}"):
            go(list_route(schema.record_type))
        return None
    except ApiError as e:
        ErrorHandler.handle_error(
            e, f"fetching {schema.record_type} {record_id}", ErrorType.API,
            recovery_options=ErrorHandler.create_recovery_options("fetch")
        )
        return None


class RecordListView:
    """Filterable table of records of one type."""

    @staticmethod
    def render(schema: RecordSchema, route: Route) -> None:
        st.header(f"📚 {schema.title} Records")
        client = get_client()

        campus = route.params.get('campus', '')
        college = route.params.get('college', '')
        params = {key: value for key, value in (('campus_id', campus), ('college_id', college)) if value}

        col1, col2 = st.columns([3, 1])
        with col1:
            search = st.text_input("Search", key=f"list_search_{schema.record_type}")
        with col2:
            if st.button(f"➕ New {schema.title}", type="primary", key=f"new_{schema.record_type}"):
                go(create_route(schema.record_type))

        records = ErrorHandler.with_error_handling(
            lambda: client.list_records(schema.resource, params or None),
            context=f"loading {schema.record_type} list",
            error_type=ErrorType.API,
            recovery_options=ErrorHandler.create_recovery_options("load"),
            default_return=None,
        )
        if records is None:
            return

        if search:
            needle = search.lower()
            records = [
                record for record in records
                if any(needle in str(record.get(column, '')).lower() for column in schema.columns())
            ]

        if not records:
            st.info(f"No {schema.title.lower()} records found.")
            return

        frame = RecordListView.to_frame(schema, records)
        st.dataframe(frame, use_container_width=True, hide_index=True)

        labels = {
            record['id']: f"#{record['id']} {record.get(schema.columns()[0], '')}"
            for record in records if 'id' in record
        }
        selected = st.selectbox(
            "Open record", options=list(labels.keys()),
            format_func=lambda record_id: labels[record_id],
            key=f"open_{schema.record_type}"
        )
        if st.button("Open", key=f"open_btn_{schema.record_type}") and selected is not None:
            go(detail_route(schema.record_type, selected))

    @staticmethod
    def to_frame(schema: RecordSchema, records: List[Dict[str, Any]]) -> pd.DataFrame:
        """Table of the schema's list columns, headed by field labels."""
        columns = schema.columns()
        frame = pd.DataFrame([{column: record.get(column) for column in columns} for record in records], columns=columns)
        headers = {
            column: schema.fields[column].display_label if column in schema.fields else column.replace('_', ' ').title()
            for column in columns
        }
        return frame.rename(columns=headers)


class RecordFormView:
    """Create and edit forms, multi-step when the schema has several steps."""

    @staticmethod
    def _start_form(schema: RecordSchema, route: Route, client: ApiClient) -> Optional[FormSession]:
        if route.page == PAGE_CREATE:
            draft = initialize_draft(schema)
            form = FormSession(
                record_type=schema.record_type, mode=MODE_CREATE,
                draft=draft, original=dict(draft), stager=_make_stager(schema),
            )
        else:
            record = fetch_record(client, schema, route.record_id)
            if record is None:
                return None
            draft = initialize_draft(schema, record)
            form = FormSession(
                record_type=schema.record_type, mode=MODE_UPDATE,
                draft=draft, original=dict(draft), stager=_make_stager(schema),
                record_id=route.record_id, record=record,
            )
        SessionManager.start_form(route.form_key, form)
        return form

    @staticmethod
    def render(schema: RecordSchema, route: Route) -> None:
        client = get_client()
        form = SessionManager.get_form(route.form_key)
        if form is None:
            form = RecordFormView._start_form(schema, route, client)
            if form is None:
                return

        verb = "Create" if form.mode == MODE_CREATE else "Edit"
        st.header(f"📝 {verb} {schema.title}")

        if schema.total_steps > 1:
            st.progress(form.step / schema.total_steps)
            st.caption(f"Step {form.step} of {schema.total_steps}: {schema.steps[form.step - 1]}")

        options = load_reference_options(client, schema)
        values = FormGenerator.render_step(schema, form.step, form.draft, form.errors, route.form_key, options)
        for name, value in values.items():
            form.draft = set_field(form.draft, name, value)

        final = is_final_step(form.step, schema.total_steps)
        if final:
            FormGenerator.render_uploads(schema, form.stager, route.form_key)

        if form.mode == MODE_UPDATE:
            RecordFormView._render_changes(schema, form)

        RecordFormView._render_actions(schema, route, form, client, final)

    @staticmethod
    def _render_changes(schema: RecordSchema, form: FormSession) -> None:
        changes = calculate_changes(form.original, form.draft)
        if not has_changes(changes) and not form.stager:
            return
        with st.expander(f"🔍 Unsaved changes ({len(changes)})"):
            rows = format_changes(changes, schema)
            if rows:
                st.table(pd.DataFrame(rows))
            if form.stager:
                st.caption(f"{len(form.stager)} new file(s) will be uploaded")

    @staticmethod
    def _render_actions(schema: RecordSchema, route: Route, form: FormSession, client: ApiClient, final: bool) -> None:
        col1, col2, col3 = st.columns(3)

        with col1:
            if form.step > 1 and st.button("⬅️ Back", key=f"{route.form_key}:back"):
                form.step = prev_step(form.step)
                st.rerun()

        with col2:
            if not final and st.button("Next ➡️", type="primary", key=f"{route.form_key}:next"):
                result = advance(schema, form.draft, form.step)
                form.errors = result.errors
                if result.advanced:
                    form.step = result.step
                else:
                    SessionManager.push_flash("Please fill in the required fields.", 'error')
                st.rerun()

            if final and st.button("💾 Save", type="primary", key=f"{route.form_key}:submit", disabled=form.submitting):
                RecordFormView._submit(schema, route, form, client)

        with col3:
            if st.button("Cancel", key=f"{route.form_key}:cancel"):
                if form.mode == MODE_UPDATE:
                    go(detail_route(schema.record_type, form.record_id))
                else:
                    go(list_route(schema.record_type))

    @staticmethod
    def _submit(schema: RecordSchema, route: Route, form: FormSession, client: ApiClient) -> None:
        form.submitting = True
        try:
            with show_loading("Saving..."):
                result = SubmissionHandler.submit(
                    client, schema, form.draft, form.stager.files, form.mode, form.record_id
                )
        finally:
            form.submitting = False

        if result.success:
            SessionManager.push_flash(result.message, 'success')
            go(result.redirect)
            return

        form.errors = result.errors
        step = first_error_step(schema, result.errors)
        if step is not None:
            form.step = step
        SessionManager.push_flash(result.message, 'error')
        st.rerun()


class RecordDetailView:
    """Read-only record page with archive and review actions."""

    @staticmethod
    def render(schema: RecordSchema, route: Route) -> None:
        client = get_client()
        record = fetch_record(client, schema, route.record_id)
        if record is None:
            return

        st.header(f"{schema.title} #{record.get('id', route.record_id)}")
        if record.get('status'):
            st.markdown(status_badge(record['status']))

        RecordDetailRenderer.render(schema, record)
        RecordDetailRenderer.render_attachments(record, get_config_value('api', 'asset_base_url', ''))

        st.divider()
        col1, col2, col3 = st.columns(3)
        with col1:
            if st.button("✏️ Edit", key=f"edit_{route.form_key}"):
                go(edit_route(schema.record_type, route.record_id))
        with col2:
            if schema.archivable:
                RecordDetailView._render_archive(schema, route, record, client)
        with col3:
            if schema.reviewable and SessionManager.get_auth().is_admin:
                RecordDetailView._render_review(schema, route, record, client)

    @staticmethod
    def _render_archive(schema: RecordSchema, route: Route, record: Dict[str, Any], client: ApiClient) -> None:
        dialog = SessionManager.get_dialog(f"{route.form_key}:archive")

        if not dialog.is_open:
            if st.button("🗑️ Archive", key=f"archive_open_{route.form_key}"):
                dialog.open()
                st.rerun()
            return

        with st.container(border=True):
            st.warning(f"Archive this {schema.title.lower()}? Enter your password to confirm.")
            password = st.text_input("Password", type="password", key=f"archive_password_{route.form_key}")
            if dialog.error_message:
                st.error(dialog.error_message)

            confirm, cancel = st.columns(2)
            with confirm:
                if st.button("Confirm", type="primary", key=f"archive_confirm_{route.form_key}", disabled=dialog.is_submitting):
                    result = archive_record(client, schema, record, password, dialog=dialog)
                    if result.success:
                        SessionManager.push_flash(result.message, 'success')
                        go(result.redirect)
                    st.rerun()
            with cancel:
                if st.button("Cancel", key=f"archive_cancel_{route.form_key}", disabled=dialog.is_submitting):
                    dialog.close()
                    st.rerun()

    @staticmethod
    def _render_review(schema: RecordSchema, route: Route, record: Dict[str, Any], client: ApiClient) -> None:
        dialog = SessionManager.get_dialog(f"{route.form_key}:review")

        if not dialog.is_open:
            if st.button("🧾 Review", key=f"review_open_{route.form_key}"):
                dialog.open()
                st.rerun()
            return

        with st.container(border=True):
            status = st.radio(
                "Decision", options=list(REVIEW_STATUSES), horizontal=True,
                format_func=str.title, key=f"review_status_{route.form_key}"
            )
            remarks = st.text_area(
                "Remarks (required when rejecting)",
                key=f"review_remarks_{route.form_key}"
            )
            if dialog.error_message:
                st.error(dialog.error_message)

            confirm, cancel = st.columns(2)
            with confirm:
                if st.button("Submit review", type="primary", key=f"review_confirm_{route.form_key}", disabled=dialog.is_submitting):
                    result = review_record(client, schema, record, status, remarks, dialog=dialog)
                    if result.success:
                        SessionManager.push_flash(result.message, 'success')
                        go(result.redirect)
                    st.rerun()
            with cancel:
                if st.button("Cancel", key=f"review_cancel_{route.form_key}", disabled=dialog.is_submitting):
                    dialog.close()
                    st.rerun()


class ReviewQueueView:
    """Pending submissions across reviewable record types."""

    @staticmethod
    def render(schemas: Dict[str, RecordSchema]) -> None:
        st.header("🧾 Review Queue")
        client = get_client()

        by_review_resource = {
            schema.review_resource: schema for schema in schemas.values() if schema.reviewable
        }
        choices = ['all'] + sorted(by_review_resource)
        submission_type = st.selectbox(
            "Type", options=choices,
            format_func=lambda c: "All" if c == 'all' else by_review_resource[c].title,
            key="review_queue_type"
        )

        payload = ErrorHandler.with_error_handling(
            lambda: client.review_queue(submission_type),
            context="loading review queue",
            error_type=ErrorType.API,
            recovery_options=ErrorHandler.create_recovery_options("load"),
            default_return=None,
        )
        if payload is None:
            return

        stats = payload.get('stats') or {}
        if stats:
            columns = st.columns(len(stats))
            for column, (name, count) in zip(columns, stats.items()):
                column.metric(name.replace('_', ' ').title(), count)

        submissions = payload.get('data') or []
        if not submissions:
            st.info("No submissions waiting for review.")
            return

        ReviewQueueView._render_review_dialog(client, schemas)

        for submission in submissions:
            schema = by_review_resource.get(submission.get('type'))
            title = schema.title if schema else str(submission.get('type', '')).title()
            key = f"{submission.get('type')}_{submission.get('id')}"
            with st.container(border=True):
                st.markdown(f"**{title}** · {submission.get('name') or submission.get('id')}")
                college = (submission.get('college') or {}).get('name')
                if college:
                    st.caption(college)
                if schema is None:
                    continue

                open_col, approve_col, reject_col = st.columns(3)
                with open_col:
                    if st.button("Open", key=f"review_open_{key}"):
                        go(detail_route(schema.record_type, submission.get('id')))
                for column, status, label in ((approve_col, 'approved', "✅ Approve"), (reject_col, 'rejected', "❌ Reject")):
                    with column:
                        if st.button(label, key=f"review_{status}_{key}"):
                            ReviewQueueView._start_review(submission, status)

    @staticmethod
    def _start_review(submission: Dict[str, Any], status: str) -> None:
        dialog = SessionManager.get_dialog("review_queue")
        dialog.close()
        dialog.open()
        SessionManager.set_review_selection({'submission': submission, 'status': status})
        st.rerun()

    @staticmethod
    def _render_review_dialog(client: ApiClient, schemas: Dict[str, RecordSchema]) -> None:
        dialog = SessionManager.get_dialog("review_queue")
        selection = SessionManager.get_review_selection()
        if not dialog.is_open or not selection:
            return

        submission, status = selection['submission'], selection['status']
        verb = "Approve" if status == 'approved' else "Reject"
        with st.container(border=True):
            st.subheader(f"{verb} submission")
            st.caption(str(submission.get('name') or submission.get('id')))
            remarks = st.text_area(
                "Review notes" + (" (required)" if status == 'rejected' else " (optional)"),
                key=f"review_queue_notes_{submission.get('type')}_{submission.get('id')}"
            )
            if dialog.error_message:
                st.error(dialog.error_message)

            confirm, cancel = st.columns(2)
            with confirm:
                label = "Confirm Approval" if status == 'approved' else "Confirm Rejection"
                if st.button(label, type="primary", key="review_queue_confirm", disabled=dialog.is_submitting):
                    result = review_submission(client, schemas, submission, status, remarks, dialog=dialog)
                    if result.success:
                        SessionManager.set_review_selection(None)
                        SessionManager.push_flash(result.message, 'success')
                    st.rerun()
            with cancel:
                if st.button("Cancel", key="review_queue_cancel", disabled=dialog.is_submitting):
                    dialog.close()
                    SessionManager.set_review_selection(None)
                    st.rerun()
