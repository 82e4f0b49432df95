"""
Unit tests for record_actions and dialog_state modules.
"""

import pytest

from tto_records.dialog_state import DialogController, DialogState, InvalidTransition
from tto_records.navigation import PAGE_LIST
from tto_records.record_actions import (
    ARCHIVE_FAILED_MESSAGE, PASSWORD_REQUIRED_MESSAGE, REMARKS_REQUIRED_MESSAGE, REVIEW_FAILED_MESSAGE,
    archive_record, parent_filters, resolve_path, review_record, review_submission
)
from test_fixtures import ApiFixtures, SchemaFixtures


def _award_record():
    return {
        'id': 3,
        'award_name': 'Gold',
        'college_id': 11,
        'college': {'id': 11, 'campus_id': 2, 'name': 'College of Science'},
    }


def _open_dialog(name="archive"):
    dialog = DialogController(name)
    dialog.open()
    return dialog


class TestDialogController:
    """Test cases for the dialog state machine."""

    def test_happy_path(self):
        dialog = DialogController("archive")
        assert dialog.state == DialogState.CLOSED
        assert not dialog.is_open

        dialog.open()
        dialog.submit()
        assert dialog.is_submitting

        dialog.succeed()
        assert dialog.state == DialogState.CLOSED

    def test_failure_keeps_message_until_retry(self):
        dialog = _open_dialog()
        dialog.submit()
        dialog.fail("Incorrect password.")

        assert dialog.state == DialogState.ERROR
        assert dialog.error_message == "Incorrect password."
        assert dialog.is_open

        dialog.submit()
        dialog.succeed()
        assert dialog.error_message is None

    def test_repeated_failure(self):
        dialog = _open_dialog()
        dialog.fail("first")
        dialog.fail("second")

        assert dialog.error_message == "second"

    def test_invalid_transitions(self):
        dialog = DialogController("review")
        with pytest.raises(InvalidTransition):
            dialog.submit()
        with pytest.raises(InvalidTransition):
            dialog.succeed()

    def test_close_rules(self):
        dialog = DialogController("review")
        dialog.close()
        assert dialog.state == DialogState.CLOSED

        dialog.open()
        dialog.submit()
        with pytest.raises(InvalidTransition):
            dialog.close()

        dialog.fail("boom")
        dialog.close()
        assert dialog.state == DialogState.CLOSED
        assert dialog.error_message is None


class TestParentFilters:
    """Test cases for list filters derived from a record's owner."""

    def test_college_parent(self):
        assert parent_filters(SchemaFixtures.award(), _award_record()) == {'campus': 2, 'college': 11}

    def test_nested_parent_path(self):
        record = {'id': 1, 'tech_transfer': {'college': {'id': 4, 'campus_id': 9}}}

        assert parent_filters(SchemaFixtures.modality(), record) == {'campus': 9, 'college': 4}

    def test_record_without_parent(self):
        record = {'id': 1, 'campus_id': 5, 'college_id': None}

        assert parent_filters(SchemaFixtures.college(), record) == {'campus': 5}

    def test_resolve_path(self):
        assert resolve_path({'a': {'b': 1}}, 'a.b') == 1
        assert resolve_path({'a': 'x'}, 'a.b') is None


class TestArchiveRecord:
    """Test cases for archive_record."""

    @pytest.mark.parametrize("password", ["", "   ", None])
    def test_empty_password_never_calls_api(self, password):
        client, session = ApiFixtures.client([])
        dialog = _open_dialog()

        result = archive_record(client, SchemaFixtures.award(), _award_record(), password, dialog)

        session.request.assert_not_called()
        assert not result.success
        assert result.message == PASSWORD_REQUIRED_MESSAGE
        assert dialog.state == DialogState.ERROR
        assert dialog.error_message == PASSWORD_REQUIRED_MESSAGE

    def test_success_redirects_to_filtered_list(self):
        client, session = ApiFixtures.client([ApiFixtures.response(200, {'message': 'Archived'})])
        dialog = _open_dialog()

        result = archive_record(client, SchemaFixtures.award(), _award_record(), "secret", dialog)

        method, url, kwargs = ApiFixtures.sent(session)
        assert (method, url) == ('PATCH', 'http://api.test/api/awards/3/archive')
        assert kwargs['json'] == {'password': 'secret'}
        assert result.success
        assert result.message == 'Award archived successfully.'
        assert result.redirect.page == PAGE_LIST
        assert result.redirect.params == {'campus': 2, 'college': 11}
        assert dialog.state == DialogState.CLOSED

    def test_password_error_from_body(self):
        client, _ = ApiFixtures.client([ApiFixtures.response(422, {'password': 'The password is incorrect.'})])
        dialog = _open_dialog()

        result = archive_record(client, SchemaFixtures.award(), _award_record(), "wrong", dialog)

        assert result.message == 'The password is incorrect.'
        assert dialog.error_message == 'The password is incorrect.'

    def test_password_error_from_errors_map(self):
        client, _ = ApiFixtures.client([
            ApiFixtures.response(422, {'message': 'Invalid data', 'errors': {'password': ['Wrong password.']}})
        ])

        result = archive_record(client, SchemaFixtures.award(), _award_record(), "wrong")

        assert result.message == 'Wrong password.'

    def test_general_message(self):
        client, _ = ApiFixtures.client([ApiFixtures.response(403, {'message': 'Forbidden'})])

        result = archive_record(client, SchemaFixtures.award(), _award_record(), "pw")

        assert result.message == 'Forbidden'

    def test_fallback_message(self):
        client, _ = ApiFixtures.client([ApiFixtures.response(500)])

        result = archive_record(client, SchemaFixtures.award(), _award_record(), "pw")

        assert result.message == ARCHIVE_FAILED_MESSAGE


class TestReviewRecord:
    """Test cases for review_record."""

    def test_approve_without_remarks(self):
        client, session = ApiFixtures.client([ApiFixtures.response(200, {'success': True})])
        record = {'id': 8, 'tech_transfer': {'college': {'id': 4, 'campus_id': 9}}}
        dialog = _open_dialog("review")

        result = review_record(client, SchemaFixtures.modality(), record, 'approved', '', dialog)

        method, url, kwargs = ApiFixtures.sent(session)
        assert (method, url) == ('POST', 'http://api.test/api/review/modality/8')
        assert kwargs['json'] == {'status': 'approved', 'remarks': ''}
        assert result.success
        assert result.message == 'Modality approved successfully'
        assert result.redirect.params == {'campus': 9, 'college': 4}
        assert dialog.state == DialogState.CLOSED

    def test_reject_requires_remarks(self):
        client, session = ApiFixtures.client([])
        dialog = _open_dialog("review")

        result = review_record(client, SchemaFixtures.modality(), {'id': 8}, 'rejected', '  ', dialog)

        session.request.assert_not_called()
        assert result.message == REMARKS_REQUIRED_MESSAGE
        assert dialog.state == DialogState.ERROR

    def test_award_uses_notes_field(self):
        client, session = ApiFixtures.client([ApiFixtures.response(200, {})])

        review_record(client, SchemaFixtures.award(), _award_record(), 'rejected', 'Missing certificate')

        _, url, kwargs = ApiFixtures.sent(session)
        assert url == 'http://api.test/api/review/award/3'
        assert kwargs['json'] == {'status': 'rejected', 'notes': 'Missing certificate'}

    def test_api_failure(self):
        client, _ = ApiFixtures.client([ApiFixtures.response(500, {'message': 'nope'})])
        dialog = _open_dialog("review")

        result = review_record(client, SchemaFixtures.modality(), {'id': 8}, 'approved', '', dialog)

        assert not result.success
        assert result.message == REVIEW_FAILED_MESSAGE
        assert dialog.error_message == REVIEW_FAILED_MESSAGE

    def test_not_reviewable_and_bad_status(self):
        client, _ = ApiFixtures.client([])
        with pytest.raises(ValueError):
            review_record(client, SchemaFixtures.college(), {'id': 1}, 'approved')
        with pytest.raises(ValueError):
            review_record(client, SchemaFixtures.modality(), {'id': 1}, 'maybe')


class TestReviewSubmission:
    """Test cases for reviewing from the review queue."""

    def _schemas(self):
        return {
            'awards': SchemaFixtures.award(),
            'modalities': SchemaFixtures.modality(),
            'colleges': SchemaFixtures.college(),
        }

    def test_queue_review_sends_review_notes(self):
        client, session = ApiFixtures.client([ApiFixtures.response(200, {'success': True})])
        submission = {'id': 3, 'type': 'award', 'name': 'Gold', 'college': {'id': 11, 'campus_id': 2}}
        dialog = _open_dialog("review_queue")

        result = review_submission(client, self._schemas(), submission, 'rejected', 'Missing certificate', dialog)

        method, url, kwargs = ApiFixtures.sent(session)
        assert (method, url) == ('POST', 'http://api.test/api/review/award/3')
        assert kwargs['json'] == {'status': 'rejected', 'review_notes': 'Missing certificate'}
        assert result.success
        assert result.message == 'Award rejected successfully'
        assert dialog.state == DialogState.CLOSED

    def test_queue_reject_without_notes_is_refused(self):
        client, session = ApiFixtures.client([])
        dialog = _open_dialog("review_queue")

        result = review_submission(client, self._schemas(), {'id': 8, 'type': 'modality'}, 'rejected', '', dialog)

        session.request.assert_not_called()
        assert result.message == REMARKS_REQUIRED_MESSAGE
        assert dialog.state == DialogState.ERROR

    def test_unknown_submission_type(self):
        client, _ = ApiFixtures.client([])

        with pytest.raises(ValueError):
            review_submission(client, self._schemas(), {'id': 1, 'type': 'impact-assessment'}, 'approved')
