"""
Account pages for the records desk webapp.
Profile and password settings for the signed-in user, and the forgotten
password and reset forms shown on the sign-in screen.
"""

import streamlit as st
from typing import Dict
import logging

from .account import change_password, request_password_reset, reset_password, update_profile
from .api_client import build_client
from .session_manager import SessionManager
from .ui_feedback import Notify, show_loading

logger = logging.getLogger(__name__)


def _show_field_errors(errors: Dict[str, str]) -> None:
    for field_name, message in errors.items():
        st.error(f"**{field_name.replace('_', ' ').title()}:** {message}")


class AccountView:
    """Settings pages reached from the sidebar."""

    @staticmethod
    def render_profile():
        auth = SessionManager.get_auth()
        st.header("👤 Profile")
        st.caption("Update your name and email address.")

        with st.form("profile_form"):
            first_name = st.text_input("First name", value=auth.user.get('first_name') or '')
            last_name = st.text_input("Last name", value=auth.user.get('last_name') or '')
            email = st.text_input("Email", value=auth.user.get('email') or '')
            submitted = st.form_submit_button("Save", type="primary")

        if not submitted:
            return

        with show_loading("Saving profile..."):
            result = update_profile(build_client(auth), {
                'first_name': first_name, 'last_name': last_name, 'email': email,
            })

        if result.success:
            SessionManager.set_auth(result.auth)
            SessionManager.push_flash(result.message, 'success')
            st.rerun()
        else:
            Notify.error(result.message)
            _show_field_errors(result.errors)

    @staticmethod
    def render_password():
        st.header("🔑 Password")
        st.caption("Use a long, random password to keep your account secure.")

        with st.form("password_form", clear_on_submit=True):
            current = st.text_input("Current password", type="password")
            password = st.text_input("New password", type="password")
            confirmation = st.text_input("Confirm password", type="password")
            submitted = st.form_submit_button("Save password", type="primary")

        if not submitted:
            return

        with show_loading("Updating password..."):
            result = change_password(build_client(SessionManager.get_auth()), current, password, confirmation)

        if result.success:
            Notify.success(result.message)
        else:
            Notify.error(result.message)
            _show_field_errors(result.errors)


class PasswordRecoveryView:
    """Forgotten password and reset forms for signed-out users."""

    @staticmethod
    def render_forgot_password():
        with st.expander("Forgot password?"):
            with st.form("forgot_password_form"):
                email = st.text_input("Email", key="forgot_email")
                submitted = st.form_submit_button("Email password reset link")

            if not submitted:
                return
            if not email:
                st.error("Email is required.")
                return

            with show_loading("Sending reset link..."):
                result = request_password_reset(build_client(), email)

            if result.success:
                st.success(result.message)
            else:
                _show_field_errors(result.errors)

    @staticmethod
    def render_reset_password(token: str, email: str):
        """Reset form opened from the emailed link (?token=...&email=...)."""
        st.subheader("🔑 Reset password")

        with st.form("reset_password_form"):
            email = st.text_input("Email", value=email or '')
            password = st.text_input("Password", type="password")
            confirmation = st.text_input("Confirm password", type="password")
            submitted = st.form_submit_button("Reset password", type="primary")

        if not submitted:
            return

        with show_loading("Resetting password..."):
            result = reset_password(build_client(), token, email, password, confirmation)

        if not result.success:
            _show_field_errors(result.errors)
            return

        logger.info(f"Password reset completed for {email}")
        st.query_params.clear()
        SessionManager.push_flash(result.message, 'success')
        st.rerun()
