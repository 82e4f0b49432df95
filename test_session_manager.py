"""
Unit tests for session_manager module.
"""

from unittest.mock import patch
import pytest

from tto_records.api_client import AuthContext
from tto_records.attachment_stager import ATTACHMENT_POLICY, AttachmentStager
from tto_records.dialog_state import DialogState
from tto_records.navigation import create_route, dashboard, detail_route, edit_route, list_route
from tto_records.session_manager import FormSession, SessionManager
from test_fixtures import FakeSessionState, FileFixtures


@pytest.fixture
def session_state():
    state = FakeSessionState()
    with patch('streamlit.session_state', state):
        SessionManager.initialize()
        yield state


def _form(record_type='awards', draft=None):
    draft = draft if draft is not None else {'award_name': ''}
    return FormSession(
        record_type=record_type, mode='create', draft=dict(draft), original=dict(draft),
        stager=AttachmentStager(ATTACHMENT_POLICY),
    )


class TestInitialize:
    """Test cases for session initialization."""

    def test_defaults(self, session_state):
        assert session_state['route'] == dashboard()
        assert not session_state['auth'].is_authenticated
        assert session_state['forms'] == {}
        assert session_state['session_id'].startswith('session_')

    def test_initialize_keeps_existing_values(self, session_state):
        session_state['forms'] = {'x': 1}

        SessionManager.initialize()

        assert session_state['forms'] == {'x': 1}


class TestNavigation:
    """Test cases for route changes."""

    def test_navigate_sets_route(self, session_state):
        SessionManager.navigate(list_route('awards'))

        assert SessionManager.get_route() == list_route('awards')

    def test_leaving_form_discards_draft(self, session_state):
        route = create_route('awards')
        SessionManager.navigate(route)
        SessionManager.start_form(route.form_key, _form())

        SessionManager.navigate(list_route('awards'))

        assert SessionManager.get_form(route.form_key) is None

    def test_same_route_keeps_form(self, session_state):
        route = edit_route('awards', 3)
        SessionManager.navigate(route)
        SessionManager.start_form(route.form_key, _form())

        SessionManager.navigate(edit_route('awards', '3'))

        assert SessionManager.get_form(route.form_key) is not None

    def test_leaving_page_drops_its_dialogs(self, session_state):
        route = detail_route('awards', 3)
        SessionManager.navigate(route)
        dialog = SessionManager.get_dialog(f"{route.form_key}:archive")
        dialog.open()

        SessionManager.navigate(list_route('awards'))
        SessionManager.navigate(route)

        assert SessionManager.get_dialog(f"{route.form_key}:archive").state == DialogState.CLOSED


class TestFormSession:
    """Test cases for FormSession."""

    def test_unsaved_changes(self):
        form = _form()
        assert not form.has_unsaved_changes

        form.draft['award_name'] = 'Gold'
        assert form.has_unsaved_changes

    def test_staged_files_count_as_changes(self):
        form = _form()
        form.stager.stage([FileFixtures.pdf()])

        assert form.has_unsaved_changes


class TestAuthAndMessages:
    """Test cases for auth and flash messages."""

    def test_set_and_clear_auth(self, session_state):
        SessionManager.set_auth(AuthContext(token='t', user={'role': 'admin'}))
        route = create_route('awards')
        SessionManager.navigate(route)
        SessionManager.start_form(route.form_key, _form())

        assert SessionManager.get_auth().is_admin

        SessionManager.clear_auth()

        assert not SessionManager.get_auth().is_authenticated
        assert session_state['forms'] == {}
        assert SessionManager.get_route() == dashboard()

    def test_flash_messages_survive_until_popped(self, session_state):
        SessionManager.push_flash("Award created successfully!")
        SessionManager.push_flash("Check the form for errors.", 'error')

        assert SessionManager.pop_flash() == [
            ("Award created successfully!", 'success'),
            ("Check the form for errors.", 'error'),
        ]
        assert SessionManager.pop_flash() == []

    def test_report_filters(self, session_state):
        SessionManager.set_report_filters('users', {'search': 'ana'})

        assert SessionManager.get_report_filters('users') == {'search': 'ana'}
        assert SessionManager.get_report_filters('engagements') == {}

    def test_reset_session_keeps_auth(self, session_state):
        SessionManager.set_auth(AuthContext(token='t'))
        SessionManager.push_flash("hello")

        SessionManager.reset_session()

        assert SessionManager.get_auth().token == 't'
        assert session_state['flash_messages'] == []


class TestReviewSelection:
    """Test cases for the review queue selection."""

    def test_selection_round_trip(self, session_state):
        assert SessionManager.get_review_selection() is None

        SessionManager.set_review_selection({'submission': {'id': 3, 'type': 'award'}, 'status': 'approved'})
        assert SessionManager.get_review_selection()['status'] == 'approved'

        SessionManager.set_review_selection(None)
        assert SessionManager.get_review_selection() is None
