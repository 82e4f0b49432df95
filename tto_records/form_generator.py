"""
Dynamic form generator for the records desk webapp.
Renders the fields of one form step from a record schema, with inline
errors, and the file upload slot backed by the attachment stager.
"""

import streamlit as st
from datetime import date
from typing import Dict, Any, List, Optional, Tuple
import logging

from .attachment_stager import AttachmentStager, StagedAttachment
from .form_state import normalize_date
from .schema_loader import FieldSpec, RecordSchema
from .ui_feedback import Notify

logger = logging.getLogger(__name__)

ReferenceOptions = Dict[str, List[Tuple[Any, str]]]


class FormGenerator:
    """Generates record forms based on schemas."""

    @staticmethod
    def render_step(
        schema: RecordSchema,
        step: int,
        draft: Dict[str, Any],
        errors: Dict[str, str],
        form_key: str,
        reference_options: Optional[ReferenceOptions] = None
    ) -> Dict[str, Any]:
        """
        Render the fields of one step.

        Args:
            schema: Record type schema
            step: Step to render
            draft: Current draft values
            errors: Current error set, shown under each field
            form_key: Namespace for widget keys
            reference_options: (id, label) choices for reference fields

        Returns:
            Values entered for the step's fields
        """
        values: Dict[str, Any] = {}
        for spec in schema.fields_for_step(step):
            options = (reference_options or {}).get(spec.name, [])
            values[spec.name] = FormGenerator._render_field(spec, draft.get(spec.name), form_key, options)
            if spec.name in errors:
                st.error(errors[spec.name])
        return values

    @staticmethod
    def _label(spec: FieldSpec) -> str:
        return f"{spec.display_label} *" if spec.required else spec.display_label

    @staticmethod
    def _render_field(spec: FieldSpec, current_value: Any, form_key: str, options: List[Tuple[Any, str]]) -> Any:
        """Render a single form field based on its type."""
        kwargs = {
            'label': FormGenerator._label(spec),
            'key': f"{form_key}:field_{spec.name}",
            'help': spec.help,
        }

        if spec.type == 'text':
            return st.text_area(value=str(current_value or ""), height=120, **kwargs)
        if spec.type == 'date':
            return FormGenerator._render_date_input(current_value, kwargs)
        if spec.type in ('number', 'integer'):
            return FormGenerator._render_number_input(spec, current_value, kwargs)
        if spec.type == 'boolean':
            return st.checkbox(value=bool(current_value), **kwargs)
        if spec.type == 'enum':
            return FormGenerator._render_selectbox(spec, current_value, [(c, choice_label(c)) for c in spec.choices], kwargs)
        if spec.type == 'reference':
            return FormGenerator._render_selectbox(spec, current_value, options, kwargs)
        if spec.type == 'email':
            return st.text_input(value=str(current_value or ""), placeholder="name@example.com", **kwargs)
        if spec.type == 'url':
            return st.text_input(value=str(current_value or ""), placeholder="https://", **kwargs)
        return st.text_input(value=str(current_value or ""), **kwargs)

    @staticmethod
    def _render_date_input(current_value: Any, kwargs: Dict[str, Any]) -> str:
        """Render date input field and return it as yyyy-mm-dd (or "")."""
        text = normalize_date(current_value)
        value = date.fromisoformat(text) if text else None
        result = st.date_input(value=value, format="YYYY-MM-DD", **kwargs)
        return normalize_date(result)

    @staticmethod
    def _render_number_input(spec: FieldSpec, current_value: Any, kwargs: Dict[str, Any]) -> Any:
        """Render number input field; an untouched empty input stays ""."""
        caster = int if spec.type == 'integer' else float
        try:
            value = caster(current_value) if current_value not in (None, "") else None
        except (TypeError, ValueError):
            logger.warning(f"Non-numeric value for {spec.name}: {current_value!r}")
            value = None

        if spec.type == 'integer':
            result = st.number_input(value=value, min_value=0, step=1, format="%d", **kwargs)
        else:
            result = st.number_input(value=value, step=0.01, format="%.2f", **kwargs)
        return "" if result is None else caster(result)

    @staticmethod
    def _render_selectbox(spec: FieldSpec, current_value: Any, options: List[Tuple[Any, str]], kwargs: Dict[str, Any]) -> Any:
        """Render selectbox field over (value, label) options."""
        labels = {value: label for value, label in options}
        values: List[Any] = [value for value, _ in options]
        if not spec.required or current_value in (None, ""):
            values = [""] + values

        index = 0
        for i, value in enumerate(values):
            if str(value) == str(current_value):
                index = i
                break

        return st.selectbox(
            options=values,
            index=index,
            format_func=lambda v: "-- Select --" if v == "" else labels.get(v, str(v)),
            **kwargs
        )

    @staticmethod
    def render_uploads(schema: RecordSchema, stager: AttachmentStager, form_key: str) -> None:
        """
        Render the file picker and the staged file list.

        A new selection replaces whatever was staged before; rejected files
        are reported one notification each.
        """
        if not schema.upload:
            return

        policy = stager.policy
        label = schema.upload.label or ("Logo" if policy.name == 'logo' else "Attachments")
        widget_key = stager.widget_key(form_key)

        st.file_uploader(
            f"{label} (max {policy.max_bytes // (1024 * 1024)}MB each)",
            type=list(policy.extensions) or None,
            accept_multiple_files=stager.multiple,
            key=widget_key,
            on_change=FormGenerator._on_files_selected,
            args=(stager, widget_key),
        )

        if stager:
            st.caption(f"{len(stager)} file(s) staged")
            for staged in stager.files:
                icon = "🖼️" if staged.is_image else "📄"
                st.write(f"{icon} {staged.name} · {staged.display_size}")
            if st.button("Clear files", key=f"{form_key}:clear_files"):
                stager.clear()
                st.rerun()

    @staticmethod
    def _on_files_selected(stager: AttachmentStager, widget_key: str) -> None:
        selection = st.session_state.get(widget_key)
        if selection is None:
            selection = []
        elif not isinstance(selection, list):
            selection = [selection]

        rejected = stager.stage(StagedAttachment.from_uploaded_file(f) for f in selection)
        logger.info(f"Staged {len(stager)} file(s), rejected {len(rejected)}")
        Notify.many(rejected, 'error')


class RecordDetailRenderer:
    """Read-only rendering of a record through its schema."""

    @staticmethod
    def render(schema: RecordSchema, record: Dict[str, Any], reference_labels: Optional[Dict[str, Dict[Any, str]]] = None) -> None:
        for step_number, step_title in enumerate(schema.steps, start=1):
            if schema.total_steps > 1:
                st.markdown(f"#### {step_title}")
            col1, col2 = st.columns(2)
            for i, spec in enumerate(schema.fields_for_step(step_number)):
                target = col1 if i % 2 == 0 else col2
                with target:
                    st.markdown(f"**{spec.display_label}**")
                    st.write(format_value(spec, record.get(spec.name), reference_labels))

    @staticmethod
    def render_attachments(record: Dict[str, Any], asset_base_url: str = "") -> None:
        attachments = record.get('attachment_paths') or record.get('attachments') or []
        link = record.get('attachment_link')
        if not attachments and not link:
            return

        st.markdown("#### Attachments")
        for path in attachments:
            path = path.get('path', '') if isinstance(path, dict) else str(path)
            name = path.rsplit('/', 1)[-1]
            if asset_base_url:
                st.markdown(f"- [{name}]({asset_base_url.rstrip('/')}/{path})")
            else:
                st.markdown(f"- {name}")
        if link:
            st.markdown(f"- [External link]({link})")


def format_value(spec: FieldSpec, value: Any, reference_labels: Optional[Dict[str, Dict[Any, str]]] = None) -> str:
    """Display text for a field value."""
    if spec.type == 'boolean':
        return "Yes" if value else "No"
    if value is None or value == "":
        return "—"
    if spec.type == 'date':
        return normalize_date(value) or str(value)
    if spec.type == 'enum':
        return choice_label(str(value))
    if spec.type == 'reference' and reference_labels:
        return reference_labels.get(spec.name, {}).get(value, str(value))
    return str(value)


def choice_label(choice: str) -> str:
    """Display label for an enum choice; lower-case codes are title-cased."""
    if choice.islower():
        return choice.replace('_', ' ').title()
    return choice
