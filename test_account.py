"""
Unit tests for account module.
"""

from tto_records.account import (
    GENERIC_ERROR_MESSAGE, PASSWORD_FAILED_MESSAGE, PASSWORD_RESET_MESSAGE, PASSWORD_UPDATED_MESSAGE,
    PROFILE_FAILED_MESSAGE, PROFILE_UPDATED_MESSAGE, RESET_LINK_SENT_MESSAGE,
    change_password, request_password_reset, reset_password, update_profile
)
from test_fixtures import ApiFixtures

USER = {'id': 7, 'role': 'admin', 'first_name': 'Ana', 'last_name': 'Cruz', 'email': 'ana@example.edu'}


class TestUpdateProfile:
    """Test cases for update_profile."""

    def test_success_merges_user_into_auth(self):
        client, session = ApiFixtures.client([
            ApiFixtures.response(200, {'data': {'first_name': 'Anna', 'last_name': 'Cruz', 'email': 'anna@example.edu'}})
        ], user=USER)

        result = update_profile(client, {
            'first_name': ' Anna ', 'last_name': 'Cruz', 'email': 'anna@example.edu', 'role': 'super-admin'
        })

        assert result.success
        assert result.message == PROFILE_UPDATED_MESSAGE
        assert result.auth.token == 'test-token'
        assert result.auth.user['first_name'] == 'Anna'
        assert result.auth.user['role'] == 'admin'
        _, _, kwargs = ApiFixtures.sent(session)
        assert kwargs['json'] == {'first_name': 'Anna', 'last_name': 'Cruz', 'email': 'anna@example.edu'}

    def test_bare_success_keeps_submitted_values(self):
        client, _ = ApiFixtures.client([ApiFixtures.response(200, {'message': 'Saved'})], user=USER)

        result = update_profile(client, {'first_name': 'Ana', 'last_name': 'Reyes', 'email': 'ana@example.edu'})

        assert result.auth.user['last_name'] == 'Reyes'
        assert result.auth.display_name == 'Ana Reyes'

    def test_validation_errors(self):
        client, _ = ApiFixtures.client([
            ApiFixtures.response(422, {'errors': {'email': ['The email has already been taken.']}})
        ], user=USER)

        result = update_profile(client, {'first_name': 'Ana', 'last_name': 'Cruz', 'email': 'taken@example.edu'})

        assert not result.success
        assert result.auth is None
        assert result.message == PROFILE_FAILED_MESSAGE
        assert result.errors == {'email': 'The email has already been taken.'}


class TestChangePassword:
    """Test cases for change_password."""

    def test_success(self):
        client, session = ApiFixtures.client([ApiFixtures.response(200, {})])

        result = change_password(client, 'old', 'new-secret', 'new-secret')

        assert result.success
        assert result.message == PASSWORD_UPDATED_MESSAGE
        assert ApiFixtures.sent(session)[0] == 'PUT'

    def test_wrong_current_password(self):
        client, _ = ApiFixtures.client([ApiFixtures.response(422, {
            'message': 'The password is incorrect.',
            'errors': {'current_password': ['The password is incorrect.']},
        })])

        result = change_password(client, 'wrong', 'new-secret', 'new-secret')

        assert not result.success
        assert result.message == 'The password is incorrect.'
        assert result.errors == {'current_password': 'The password is incorrect.'}

    def test_failure_without_body(self):
        client, _ = ApiFixtures.client([ApiFixtures.response(500)])

        result = change_password(client, 'old', 'new', 'new')

        assert result.message == PASSWORD_FAILED_MESSAGE
        assert result.errors == {}


class TestPasswordRecovery:
    """Test cases for request_password_reset and reset_password."""

    def test_reset_link_uses_server_message(self):
        client, session = ApiFixtures.client([
            ApiFixtures.response(200, {'message': 'We have emailed your password reset link.'})
        ], token=None)

        result = request_password_reset(client, ' ana@example.edu ')

        assert result.success
        assert result.message == 'We have emailed your password reset link.'
        assert ApiFixtures.sent(session)[2]['json'] == {'email': 'ana@example.edu'}

    def test_reset_link_default_message(self):
        client, _ = ApiFixtures.client([ApiFixtures.response(200, {})], token=None)

        assert request_password_reset(client, 'ana@example.edu').message == RESET_LINK_SENT_MESSAGE

    def test_unknown_email_message_goes_under_email(self):
        client, _ = ApiFixtures.client([
            ApiFixtures.response(400, {'message': "We can't find a user with that email address."})
        ], token=None)

        result = request_password_reset(client, 'nobody@example.edu')

        assert not result.success
        assert result.errors == {'email': "We can't find a user with that email address."}

    def test_failure_without_message(self):
        client, _ = ApiFixtures.client([ApiFixtures.response(500)], token=None)

        result = request_password_reset(client, 'ana@example.edu')

        assert result.errors == {'email': GENERIC_ERROR_MESSAGE}

    def test_reset_success(self):
        client, session = ApiFixtures.client([ApiFixtures.response(200, {})], token=None)

        result = reset_password(client, 'reset-tok', 'ana@example.edu', 'new-secret', 'new-secret')

        assert result.success
        assert result.message == PASSWORD_RESET_MESSAGE
        assert ApiFixtures.sent(session)[2]['json']['token'] == 'reset-tok'

    def test_reset_field_errors(self):
        client, _ = ApiFixtures.client([ApiFixtures.response(422, {
            'message': 'The given data was invalid.',
            'errors': {'password': ['The password confirmation does not match.']},
        })], token=None)

        result = reset_password(client, 'reset-tok', 'ana@example.edu', 'a', 'b')

        assert not result.success
        assert result.errors == {'password': 'The password confirmation does not match.'}
