"""
Unit tests for diff_utils module.
"""

from tto_records.diff_utils import calculate_changes, format_changes, has_changes
from test_fixtures import SchemaFixtures


class TestCalculateChanges:
    """Test cases for calculate_changes."""

    def test_no_changes(self):
        draft = {'award_name': 'Gold', 'description': ''}

        changes = calculate_changes(draft, dict(draft))

        assert changes == {}
        assert not has_changes(changes)

    def test_value_changed(self):
        changes = calculate_changes({'award_name': 'Gold'}, {'award_name': 'Silver'})

        assert changes == {'award_name': {'old': 'Gold', 'new': 'Silver'}}
        assert has_changes(changes)

    def test_blank_and_none_are_equal(self):
        changes = calculate_changes({'description': None}, {'description': '  '})

        assert changes == {}

    def test_type_change(self):
        changes = calculate_changes({'number_of_participants': '12'}, {'number_of_participants': 12})

        assert changes == {'number_of_participants': {'old': '12', 'new': 12}}

    def test_added_and_removed_fields(self):
        changes = calculate_changes({'a': '1'}, {'b': '2'})

        assert changes == {'a': {'old': '1', 'new': None}, 'b': {'old': None, 'new': '2'}}

    def test_mostly_disjoint_drafts_report_every_field(self):
        original = {'award_name': 'Gold', 'location': 'Manila', 'event_details': 'Gala'}
        modified = {'award_name': 'Gold', 'narrative': 'Text', 'faculty_involved': 'Dr. Cruz'}

        changes = calculate_changes(original, modified)

        assert changes == {
            'location': {'old': 'Manila', 'new': None},
            'event_details': {'old': 'Gala', 'new': None},
            'narrative': {'old': None, 'new': 'Text'},
            'faculty_involved': {'old': None, 'new': 'Dr. Cruz'},
        }

    def test_filled_in_blank_field(self):
        changes = calculate_changes({'description': ''}, {'description': 'New text'})

        assert changes == {'description': {'old': None, 'new': 'New text'}}


class TestFormatChanges:
    """Test cases for format_changes."""

    def test_rows_follow_schema_order_and_labels(self):
        changes = {
            'awarding_body': {'old': 'DOST', 'new': 'CHED'},
            'award_name': {'old': None, 'new': 'Gold'},
            'not_in_schema': {'old': 1, 'new': 2},
        }

        rows = format_changes(changes, SchemaFixtures.award())

        assert rows == [
            {'Field': 'Award name', 'Before': '', 'After': 'Gold'},
            {'Field': 'Awarding body', 'Before': 'DOST', 'After': 'CHED'},
        ]
