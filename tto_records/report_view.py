"""
Report pages for the records desk webapp.
Shows a filtered report table and generates its PDF on demand.
"""

import streamlit as st
import pandas as pd
from datetime import date
from typing import Dict, Any, List
import logging

from .api_client import ApiClient, ApiError
from .error_handler import ErrorHandler, ErrorType
from .reports import (
    ALL, ReportDefinition, ReportFilters, extract_pagination, extract_rows,
    filter_by_date_range, get_report_definition
)
from .report_viewer import ReportViewer, report_filename
from .session_manager import SessionManager
from .ui_feedback import Notify, show_loading

logger = logging.getLogger(__name__)


def _option_list(data: Any, key: str) -> List[Dict[str, Any]]:
    if isinstance(data, dict) and isinstance(data.get(key), list):
        return data[key]
    return []


class ReportView:
    """Filterable report with PDF export."""

    @staticmethod
    def render(report_type: str, client: ApiClient) -> None:
        definition = get_report_definition(report_type)
        st.header(f"📊 {definition.title} Report")

        applied = ReportFilters.from_params(SessionManager.get_report_filters(report_type))
        data = ErrorHandler.with_error_handling(
            lambda: client.get_report(report_type, applied.to_query_params(definition.filters)),
            context=f"loading {report_type} report",
            error_type=ErrorType.API,
            recovery_options=ErrorHandler.create_recovery_options("load"),
            default_return=None,
        )

        # Filter widget edits take effect only once applied
        pending = ReportView._render_filters(definition, applied, data)
        for problem in pending.validate():
            st.error(problem)

        if data is None:
            return

        problems = applied.validate()
        rows = extract_rows(definition, data)
        if report_type == 'audit-trail' and not problems:
            # The audit log is also narrowed client side so the preview matches the PDF range
            rows = filter_by_date_range(rows, applied.date_from, applied.date_to)

        ReportView._render_table(definition, rows)
        ReportView._render_pagination(definition, applied, data)
        ReportView._render_pdf(definition, applied, client, disabled=bool(problems))

    @staticmethod
    def _render_filters(definition: ReportDefinition, filters: ReportFilters, data: Any) -> ReportFilters:
        values = filters.to_dict()
        with st.expander("🔎 Filters", expanded=True):
            col1, col2 = st.columns(2)
            with col1:
                if 'search' in definition.filters:
                    values['search'] = st.text_input("Search", value=filters.search, key=f"{definition.report_type}_search")
                if 'campus_id' in definition.filters:
                    values['campus_id'] = ReportView._select_option(
                        "Campus", _option_list(data, 'campuses'), filters.campus_id, f"{definition.report_type}_campus"
                    )
                if 'college_id' in definition.filters:
                    values['college_id'] = ReportView._select_option(
                        "College", _option_list(data, 'colleges'), filters.college_id, f"{definition.report_type}_college"
                    )
                if 'action' in definition.filters:
                    actions = data.get('actions', []) if isinstance(data, dict) else []
                    values['action'] = ReportView._select_value("Action", actions, filters.action, f"{definition.report_type}_action")
                if 'auditable_type' in definition.filters:
                    types = data.get('auditableTypes', []) if isinstance(data, dict) else []
                    values['auditable_type'] = ReportView._select_value(
                        "Record type", types, filters.auditable_type, f"{definition.report_type}_auditable_type"
                    )
            with col2:
                if 'date_from' in definition.filters:
                    values['date_from'] = ReportView._date_input("From", filters.date_from, f"{definition.report_type}_from")
                if 'date_to' in definition.filters:
                    values['date_to'] = ReportView._date_input("To", filters.date_to, f"{definition.report_type}_to")
                if 'sort_order' in definition.filters:
                    values['sort_order'] = st.selectbox(
                        "Sort order", options=['desc', 'asc'],
                        index=0 if filters.sort_order == 'desc' else 1,
                        format_func=lambda v: "Newest first" if v == 'desc' else "Oldest first",
                        key=f"{definition.report_type}_sort_order"
                    )

            apply_col, clear_col = st.columns(2)
            with apply_col:
                if st.button("Apply filters", type="primary", key=f"{definition.report_type}_apply"):
                    values['page'] = 1
                    SessionManager.set_report_filters(definition.report_type, values)
                    st.rerun()
            with clear_col:
                if st.button("Clear filters", key=f"{definition.report_type}_clear"):
                    SessionManager.set_report_filters(definition.report_type, filters.cleared().to_dict())
                    st.rerun()

        return ReportFilters.from_params(values)

    @staticmethod
    def _select_option(label: str, options: List[Dict[str, Any]], current: str, key: str) -> str:
        values = [ALL] + [str(option.get('id')) for option in options]
        names = {str(option.get('id')): str(option.get('name', option.get('id'))) for option in options}
        index = values.index(str(current)) if str(current) in values else 0
        return st.selectbox(
            label, options=values, index=index,
            format_func=lambda v: f"All {label.lower()}s" if v == ALL else names.get(v, v),
            key=key
        )

    @staticmethod
    def _select_value(label: str, options: List[str], current: str, key: str) -> str:
        values = [ALL] + [str(option) for option in options]
        index = values.index(current) if current in values else 0
        return st.selectbox(
            label, options=values, index=index,
            format_func=lambda v: "All" if v == ALL else v.replace('_', ' ').title(),
            key=key
        )

    @staticmethod
    def _date_input(label: str, current: str, key: str) -> str:
        value = date.fromisoformat(current) if current else None
        result = st.date_input(label, value=value, format="YYYY-MM-DD", key=key)
        return result.isoformat() if isinstance(result, date) else ""

    @staticmethod
    def _render_table(definition: ReportDefinition, rows: List[Dict[str, Any]]) -> None:
        if not rows:
            st.info("No entries match the current filters.")
            return

        frame = pd.DataFrame(
            [{column: row.get(column) for column in definition.columns} for row in rows],
            columns=list(definition.columns),
        )
        frame.columns = [column.replace('_', ' ').title() for column in definition.columns]
        st.dataframe(frame, use_container_width=True, hide_index=True)
        st.caption(f"{len(rows)} row(s)")

    @staticmethod
    def _render_pagination(definition: ReportDefinition, filters: ReportFilters, data: Any) -> None:
        pagination = extract_pagination(definition, data)
        last_page = pagination.get('last_page', 1)
        if last_page <= 1:
            return

        current = pagination.get('current_page', filters.page)
        page = st.number_input(
            f"Page (of {last_page})", min_value=1, max_value=last_page, value=current, step=1,
            key=f"{definition.report_type}_page"
        )
        if page != current:
            values = filters.to_dict()
            values['page'] = int(page)
            SessionManager.set_report_filters(definition.report_type, values)
            st.rerun()

    @staticmethod
    def _render_pdf(definition: ReportDefinition, filters: ReportFilters, client: ApiClient, disabled: bool = False) -> None:
        if not st.button("📄 Generate PDF", key=f"{definition.report_type}_pdf", disabled=disabled):
            return

        params = filters.to_query_params(definition.filters)
        params.pop('page', None)
        try:
            with show_loading("Generating PDF..."):
                pdf_bytes = client.download_report_pdf(definition.report_type, params)
        except ApiError as e:
            ErrorHandler.handle_error(e, f"generating {definition.report_type} PDF", ErrorType.PDF)
            return

        Notify.success("Report generated")
        ReportViewer.render(pdf_bytes, report_filename(definition.report_type))
