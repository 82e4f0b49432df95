"""
Account actions for the records desk webapp.
Handles profile and password changes for the signed-in user, plus the
forgotten-password and reset-password flows used before sign-in.
"""

from dataclasses import dataclass, field
from typing import Dict, Any, Optional
import logging

from .api_client import ApiClient, ApiError, AuthContext, unwrap_data
from .field_validator import ErrorSet, merge_server_errors

logger = logging.getLogger(__name__)

PROFILE_UPDATED_MESSAGE = "Profile updated successfully"
PROFILE_FAILED_MESSAGE = "Failed to update profile"
PASSWORD_UPDATED_MESSAGE = "Password updated successfully"
PASSWORD_FAILED_MESSAGE = "Failed to update password"
RESET_LINK_SENT_MESSAGE = "Password reset link has been sent to your email!"
PASSWORD_RESET_MESSAGE = "Password has been reset successfully!"
GENERIC_ERROR_MESSAGE = "An error occurred. Please try again."

PROFILE_FIELDS = ('first_name', 'last_name', 'email')


@dataclass
class AccountResult:
    success: bool
    message: str
    errors: ErrorSet = field(default_factory=dict)
    auth: Optional[AuthContext] = None


def _public_flow_failure(e: ApiError) -> AccountResult:
    # Signed-out forms show a bare server message under the email field
    if e.field_errors:
        return AccountResult(False, GENERIC_ERROR_MESSAGE, merge_server_errors({}, e.field_errors))
    message = e.payload_value('message') or GENERIC_ERROR_MESSAGE
    return AccountResult(False, message, {'email': message})


def update_profile(client: ApiClient, profile: Dict[str, Any]) -> AccountResult:
    """
    Save the signed-in user's name and email.

    On success the returned auth context carries the updated user, so the
    sidebar shows the new name without signing in again.

    Args:
        client: API client carrying the auth context
        profile: first_name, last_name and email (other keys are ignored)

    Returns:
        AccountResult with field errors on failure
    """
    body = {name: (profile.get(name) or '').strip() for name in PROFILE_FIELDS}
    try:
        payload = client.update_profile(body)
    except ApiError as e:
        logger.error(f"Profile update failed: {e}", exc_info=True)
        return AccountResult(
            False,
            e.payload_value('message') or PROFILE_FAILED_MESSAGE,
            merge_server_errors({}, e.field_errors),
        )

    # The updated user arrives as {data: ...} or {user: ...}; a bare message keeps the submitted values
    user = None
    if isinstance(payload, dict):
        user = unwrap_data(payload) if 'data' in payload else payload.get('user')
        if isinstance(user, dict) and isinstance(user.get('user'), dict):
            user = user['user']
    if not isinstance(user, dict) or not user:
        user = body
    auth = AuthContext(token=client.auth.token, user={**client.auth.user, **user})
    logger.info(f"Profile updated for {auth.user.get('email')}")
    return AccountResult(True, PROFILE_UPDATED_MESSAGE, auth=auth)


def change_password(
    client: ApiClient,
    current_password: str,
    password: str,
    password_confirmation: str
) -> AccountResult:
    """Change the signed-in user's password; mismatches are left to the API."""
    try:
        client.update_password(current_password, password, password_confirmation)
    except ApiError as e:
        logger.error(f"Password update failed: {e}", exc_info=True)
        return AccountResult(
            False,
            e.payload_value('message') or PASSWORD_FAILED_MESSAGE,
            merge_server_errors({}, e.field_errors),
        )
    return AccountResult(True, PASSWORD_UPDATED_MESSAGE)


def request_password_reset(client: ApiClient, email: str) -> AccountResult:
    """Request a reset link for the given email address."""
    try:
        payload = client.forgot_password(email.strip())
    except ApiError as e:
        logger.warning(f"Password reset request failed: {e}")
        return _public_flow_failure(e)

    message = payload.get('message') if isinstance(payload, dict) else None
    return AccountResult(True, message or RESET_LINK_SENT_MESSAGE)


def reset_password(
    client: ApiClient,
    token: str,
    email: str,
    password: str,
    password_confirmation: str
) -> AccountResult:
    """
    Set a new password using the token from a reset link.

    Returns:
        AccountResult; on success the user should sign in again
    """
    try:
        payload = client.reset_password(token, email.strip(), password, password_confirmation)
    except ApiError as e:
        logger.warning(f"Password reset failed: {e}")
        return _public_flow_failure(e)

    message = payload.get('message') if isinstance(payload, dict) else None
    return AccountResult(True, message or PASSWORD_RESET_MESSAGE)
