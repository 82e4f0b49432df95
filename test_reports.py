"""
Unit tests for reports module.
"""

from datetime import date
import pytest

from tto_records.reports import (
    ALL, REPORTS, ReportFilters, extract_pagination, extract_rows,
    filter_by_date_range, get_report_definition
)


class TestReportDefinitions:
    """Test cases for the report catalogue."""

    def test_known_reports(self):
        assert set(REPORTS) == {
            'technology-transfers', 'engagements', 'impact-assessments', 'modalities',
            'resolutions', 'users', 'audit-trail',
        }
        assert get_report_definition('audit-trail').rows_key == 'auditLogs'

    def test_unknown_report(self):
        with pytest.raises(KeyError):
            get_report_definition('payroll')


class TestReportFilters:
    """Test cases for ReportFilters."""

    def test_defaults_produce_no_params(self):
        assert ReportFilters().to_query_params() == {'sort_by': 'created_at', 'sort_order': 'desc'}

    def test_empty_and_all_values_are_dropped(self):
        filters = ReportFilters(campus_id=ALL, college_id='3', search='', date_from='2024-01-01')

        params = filters.to_query_params(('campus_id', 'college_id', 'search', 'date_from'))

        assert params == {'college_id': '3', 'date_from': '2024-01-01'}

    def test_only_allowed_filters_are_sent(self):
        filters = ReportFilters(action='created', search='grant', page=3)

        params = filters.to_query_params(('search',))

        assert params == {'search': 'grant', 'page': '3'}

    def test_post_init_normalization(self):
        filters = ReportFilters(date_from='2024-05-01T08:00:00Z', sort_order='sideways', page='x')

        assert filters.date_from == '2024-05-01'
        assert filters.sort_order == 'desc'
        assert filters.page == 1

    def test_from_params_ignores_unknown_keys(self):
        filters = ReportFilters.from_params({'search': 'x', 'bogus': 1, 'campus_id': None})

        assert filters.search == 'x'
        assert filters.campus_id == ALL

    def test_validate_date_range(self):
        assert ReportFilters(date_from='2024-02-01', date_to='2024-01-01').validate()
        assert ReportFilters(date_from='2024-01-01', date_to='2024-01-01').validate() == []

    def test_cleared(self):
        assert ReportFilters(search='x').cleared() == ReportFilters()


class TestExtractRows:
    """Test cases for report payload helpers."""

    def test_paginated_section(self):
        definition = get_report_definition('technology-transfers')
        data = {'projects': {'data': [{'id': 1}], 'current_page': 2, 'last_page': 5, 'total': 48}}

        assert extract_rows(definition, data) == [{'id': 1}]
        assert extract_pagination(definition, data) == {'current_page': 2, 'last_page': 5, 'total': 48}

    def test_plain_list(self):
        definition = get_report_definition('users')

        assert extract_rows(definition, [{'id': 1}]) == [{'id': 1}]
        assert extract_pagination(definition, [{'id': 1}]) == {}

    def test_unexpected_payload(self):
        definition = get_report_definition('users')

        assert extract_rows(definition, None) == []
        assert extract_rows(definition, {'users': 'oops'}) == []


class TestFilterByDateRange:
    """Test cases for filter_by_date_range."""

    def _entries(self):
        return [
            {'id': 1, 'created_at': '2024-01-01T00:00:00Z'},
            {'id': 2, 'created_at': '2024-01-15T23:59:59Z'},
            {'id': 3, 'created_at': '2024-02-01T12:00:00+00:00'},
            {'id': 4, 'created_at': None},
            {'id': 5, 'created_at': 'garbage'},
        ]

    def test_no_range_returns_everything(self):
        entries = self._entries()

        assert filter_by_date_range(entries) is entries

    def test_inclusive_range(self):
        result = filter_by_date_range(self._entries(), '2024-01-01', '2024-01-15')

        assert [entry['id'] for entry in result] == [1, 2, 5]

    def test_open_ended_ranges(self):
        assert [e['id'] for e in filter_by_date_range(self._entries(), date_from=date(2024, 1, 16))] == [3, 5]
        assert [e['id'] for e in filter_by_date_range(self._entries(), date_to='2024-01-01')] == [1, 5]

    def test_inverted_range_matches_nothing(self):
        assert filter_by_date_range(self._entries(), '2024-03-01', '2024-01-01') == []
