"""
Main Streamlit application for the tech transfer records desk.
Schema-driven submission, review and reporting front-end for the university
technology transfer office records API.
"""

import streamlit as st
import os
import logging

from tto_records.config_loader import get_config, get_config_summary, get_config_value, get_logging_level, validate_config

# Configure logging dynamically from config
try:
    log_level_str = get_config_value('logging', 'level', 'INFO')
    logging.basicConfig(
        level=get_logging_level(log_level_str),
        format=get_config_value('logging', 'format', '%(asctime)s %(levelname)s %(name)s: %(message)s')
    )
    logger = logging.getLogger(__name__)
    logger.info(f"Logging configured to level: {log_level_str}")
except Exception as e:
    logging.basicConfig(level=logging.INFO)
    logger = logging.getLogger(__name__)
    logger.error(f"Failed to configure logging from config: {e}, using INFO level")

from tto_records.account_views import AccountView, PasswordRecoveryView
from tto_records.api_client import ApiError, AuthContext, build_client
from tto_records.error_handler import ErrorHandler, ErrorType
from tto_records.navigation import (
    PAGE_CREATE, PAGE_DASHBOARD, PAGE_EDIT, PAGE_LIST, PAGE_LOGIN, PAGE_PASSWORD, PAGE_PROFILE, PAGE_REPORT,
    PAGE_REVIEW, PAGE_SHOW,
    Route, dashboard, list_route, report_route
)
from tto_records.record_views import RecordDetailView, RecordFormView, RecordListView, ReviewQueueView
from tto_records.report_view import ReportView
from tto_records.reports import REPORTS
from tto_records.schema_loader import load_all_schemas
from tto_records.session_manager import SessionManager
from tto_records.ui_feedback import Notify, show_loading

page_title = get_config_value('ui', 'page_title', 'Tech Transfer Records')

st.set_page_config(
    page_title=page_title,
    page_icon="🎓",
    layout="wide",
    initial_sidebar_state="expanded"
)


def main():
    """Main application entry point."""
    try:
        with show_loading("Initializing application..."):
            SessionManager.initialize()
            restore_auth_from_env()
            schemas = load_all_schemas()

        config = get_config()
        logger.info(f"Configuration: {get_config_summary(config)}")
        if not validate_config(config):
            st.warning("⚠️ Configuration issues detected; defaults are in use. Check config.yaml and the logs.")

        for message, notification_type in SessionManager.pop_flash():
            getattr(Notify, 'warn' if notification_type == 'warning' else notification_type)(message)

        if not SessionManager.get_auth().is_authenticated:
            render_login()
            return

        render_sidebar(schemas)
        render_main_content(schemas)

    except Exception as e:
        ErrorHandler.handle_error(
            e,
            "application startup",
            ErrorType.SYSTEM,
            recovery_options=ErrorHandler.create_recovery_options("system")
        )


def restore_auth_from_env():
    """Sign in with TTO_API_TOKEN when set and no one is signed in yet."""
    token = os.environ.get('TTO_API_TOKEN')
    if not token or SessionManager.get_auth().is_authenticated:
        return

    client = build_client(AuthContext(token=token))
    try:
        user = client.current_user()
    except ApiError as e:
        logger.warning(f"TTO_API_TOKEN was rejected: {e}")
        return
    SessionManager.set_auth(AuthContext(token=token, user=user))


def render_login():
    """Render the sign-in form."""
    st.title(get_config_value('app', 'name', 'Tech Transfer Records Desk'))

    token = st.query_params.get("token")
    if token:
        PasswordRecoveryView.render_reset_password(token, st.query_params.get("email", ""))
        return

    st.subheader("🔐 Sign in")

    with st.form("login_form"):
        email = st.text_input("Email")
        password = st.text_input("Password", type="password")
        submitted = st.form_submit_button("Sign in", type="primary")

    PasswordRecoveryView.render_forgot_password()

    if not submitted:
        return
    if not email or not password:
        st.error("Email and password are required.")
        return

    client = build_client()
    try:
        with show_loading("Signing in..."):
            auth = client.login(email, password)
    except ApiError as e:
        logger.warning(f"Sign-in failed for {email}: {e}")
        st.error(e.payload_value('message') or "Invalid email or password.")
        return

    SessionManager.set_auth(auth)
    SessionManager.navigate(dashboard())
    SessionManager.push_flash(f"Welcome, {auth.display_name}!", 'success')
    st.rerun()


def visible_schemas(schemas):
    """Record types the signed-in user may open."""
    is_admin = SessionManager.get_auth().is_admin
    return {name: schema for name, schema in schemas.items() if is_admin or not schema.admin_only}


def render_sidebar(schemas):
    """Render sidebar navigation."""
    auth = SessionManager.get_auth()
    route = SessionManager.get_route()

    with st.sidebar:
        st.title(get_config_value('ui', 'sidebar_title', 'Navigation'))
        st.caption(f"Signed in as **{auth.display_name}** ({auth.role})")

        if st.button("🏠 Dashboard", use_container_width=True):
            SessionManager.navigate(dashboard())
            st.rerun()

        st.markdown("**Records**")
        for name, schema in visible_schemas(schemas).items():
            current = route.record_type == name and route.page != PAGE_REPORT
            if st.button(schema.title, key=f"nav_{name}", use_container_width=True, type="primary" if current else "secondary"):
                SessionManager.navigate(list_route(name))
                st.rerun()

        if auth.is_admin:
            st.markdown("**Administration**")
            if st.button("🧾 Review Queue", use_container_width=True):
                SessionManager.navigate(Route(PAGE_REVIEW))
                st.rerun()

            report_type = st.selectbox(
                "Reports", options=[''] + list(REPORTS),
                format_func=lambda r: "-- Select report --" if not r else REPORTS[r].title,
                key="nav_report"
            )
            if report_type and st.button("Open report", use_container_width=True):
                SessionManager.navigate(report_route(report_type))
                st.rerun()

        st.markdown("**Settings**")
        if st.button("👤 Profile", use_container_width=True):
            SessionManager.navigate(Route(PAGE_PROFILE))
            st.rerun()
        if st.button("🔑 Password", use_container_width=True):
            SessionManager.navigate(Route(PAGE_PASSWORD))
            st.rerun()

        st.divider()
        if st.button("🚪 Sign out", use_container_width=True):
            build_client(auth).logout()
            SessionManager.clear_auth()
            st.rerun()

        st.caption(f"`{route.path}`")


def render_main_content(schemas):
    """Dispatch the current route to its page."""
    route = SessionManager.get_route()
    available = visible_schemas(schemas)

    if route.page == PAGE_DASHBOARD or route.page == PAGE_LOGIN:
        render_dashboard(available)
        return

    if route.page == PAGE_REVIEW:
        ReviewQueueView.render(schemas)
        return

    if route.page == PAGE_PROFILE:
        AccountView.render_profile()
        return

    if route.page == PAGE_PASSWORD:
        AccountView.render_password()
        return

    if route.page == PAGE_REPORT:
        ReportView.render(route.record_type, build_client(SessionManager.get_auth()))
        return

    schema = available.get(route.record_type)
    if schema is None:
        st.error(f"Unknown record type: {route.record_type}")
        return

    if route.page == PAGE_LIST:
        RecordListView.render(schema, route)
    elif route.page in (PAGE_CREATE, PAGE_EDIT):
        RecordFormView.render(schema, route)
    elif route.page == PAGE_SHOW:
        RecordDetailView.render(schema, route)
    else:
        st.error(f"Unknown page: {route.page}")


def render_dashboard(schemas):
    """Render the landing page with a shortcut per record type."""
    auth = SessionManager.get_auth()
    st.title(f"👋 Welcome, {auth.display_name}")
    st.write("Choose a record type to view, create or update records.")

    columns = st.columns(3)
    for i, (name, schema) in enumerate(schemas.items()):
        with columns[i % 3]:
            with st.container(border=True):
                st.markdown(f"**{schema.title}**")
                st.caption(f"{len(schema.fields)} fields · {schema.total_steps} step(s)")
                if st.button("Open", key=f"dash_{name}"):
                    SessionManager.navigate(list_route(name))
                    st.rerun()


if __name__ == "__main__":
    main()
