"""
Session state management for the records desk webapp.
Handles the current route, the auth context, per-form drafts and dialog state.
"""

import streamlit as st
from dataclasses import dataclass, field
from typing import Dict, Any, Optional, List, Tuple
from datetime import datetime
import logging

from .api_client import AuthContext
from .attachment_stager import AttachmentStager
from .dialog_state import DialogController
from .navigation import Route, dashboard
from .step_sequencer import FIRST_STEP

logger = logging.getLogger(__name__)


@dataclass
class FormSession:
    """Everything one create/edit form owns; discarded when the user leaves."""
    record_type: str
    mode: str
    draft: Dict[str, Any]
    original: Dict[str, Any]
    stager: AttachmentStager
    record_id: Optional[str] = None
    record: Dict[str, Any] = field(default_factory=dict)
    step: int = FIRST_STEP
    errors: Dict[str, str] = field(default_factory=dict)
    submitting: bool = False

    @property
    def has_unsaved_changes(self) -> bool:
        return self.draft != self.original or bool(self.stager)


class SessionManager:
    """Manages Streamlit session state for the records desk webapp."""

    @staticmethod
    def initialize():
        """Initialize all session state variables with default values."""
        defaults = {
            'route': dashboard(),
            'auth': AuthContext(),
            'forms': {},
            'dialogs': {},
            'report_filters': {},
            'flash_messages': [],
            'last_activity': datetime.now(),
            'session_id': None,
        }

        for key, default_value in defaults.items():
            if key not in st.session_state:
                st.session_state[key] = default_value

        if not st.session_state.session_id:
            st.session_state.session_id = f"session_{datetime.now().strftime('%Y%m%d_%H%M%S')}"
            logger.info(f"Session initialized: {st.session_state.session_id}")

    # Navigation

    @staticmethod
    def get_route() -> Route:
        return st.session_state.get('route', dashboard())

    @staticmethod
    def navigate(route: Route):
        """Move to a route; leaving a form discards that form's state."""
        old_route = SessionManager.get_route()
        if old_route == route:
            return

        logger.info(f"Route transition: {old_route.path} -> {route.path}")
        if old_route.form_key != route.form_key:
            if old_route.is_form:
                SessionManager.discard_form(old_route.form_key)
            SessionManager._drop_dialogs(old_route.form_key)

        st.session_state.route = route
        SessionManager.update_activity()

    # Authentication

    @staticmethod
    def get_auth() -> AuthContext:
        return st.session_state.get('auth', AuthContext())

    @staticmethod
    def set_auth(auth: AuthContext):
        st.session_state.auth = auth
        SessionManager.update_activity()

    @staticmethod
    def clear_auth():
        """Forget the signed-in user along with all of their working state."""
        st.session_state.auth = AuthContext()
        st.session_state.forms = {}
        st.session_state.dialogs = {}
        st.session_state.route = dashboard()

    # Forms

    @staticmethod
    def get_form(form_key: str) -> Optional[FormSession]:
        return st.session_state.get('forms', {}).get(form_key)

    @staticmethod
    def start_form(form_key: str, form: FormSession):
        if 'forms' not in st.session_state:
            st.session_state.forms = {}
        st.session_state.forms[form_key] = form
        logger.debug(f"Form session started: {form_key}")

    @staticmethod
    def discard_form(form_key: str):
        form = st.session_state.get('forms', {}).pop(form_key, None)
        if form is None:
            return
        if form.has_unsaved_changes:
            logger.warning(f"Discarding form {form_key} with unsaved changes")

    @staticmethod
    def _drop_dialogs(route_key: str):
        """Forget the dialogs that belong to a page being left."""
        dialogs = st.session_state.get('dialogs', {})
        for name in list(dialogs):
            if name.startswith(f"{route_key}:"):
                del dialogs[name]

    # Dialogs

    @staticmethod
    def get_dialog(name: str) -> DialogController:
        """Dialog controller for the given name, created closed on first use."""
        if 'dialogs' not in st.session_state:
            st.session_state.dialogs = {}
        if name not in st.session_state.dialogs:
            st.session_state.dialogs[name] = DialogController(name)
        return st.session_state.dialogs[name]

    # Report filters

    @staticmethod
    def get_report_filters(report_type: str) -> Dict[str, Any]:
        return st.session_state.get('report_filters', {}).get(report_type, {})

    @staticmethod
    def set_report_filters(report_type: str, filters: Dict[str, Any]):
        if 'report_filters' not in st.session_state:
            st.session_state.report_filters = {}
        st.session_state.report_filters[report_type] = filters

    # Review queue

    @staticmethod
    def get_review_selection() -> Optional[Dict[str, Any]]:
        """Submission and decision picked in the review queue, if any."""
        return st.session_state.get('review_selection')

    @staticmethod
    def set_review_selection(selection: Optional[Dict[str, Any]]):
        st.session_state.review_selection = selection

    # Messages that must survive a rerun

    @staticmethod
    def push_flash(message: str, notification_type: str = 'success'):
        if 'flash_messages' not in st.session_state:
            st.session_state.flash_messages = []
        st.session_state.flash_messages.append((message, notification_type))

    @staticmethod
    def pop_flash() -> List[Tuple[str, str]]:
        messages = list(st.session_state.get('flash_messages', []))
        st.session_state.flash_messages = []
        return messages

    @staticmethod
    def update_activity():
        """Update last activity timestamp."""
        st.session_state.last_activity = datetime.now()

    @staticmethod
    def get_session_id() -> str:
        return st.session_state.get('session_id', 'unknown')

    @staticmethod
    def reset_session():
        """Reset the entire session state, keeping the signed-in user."""
        logger.info(f"Resetting session: {SessionManager.get_session_id()}")
        auth = SessionManager.get_auth()

        for key in list(st.session_state.keys()):
            del st.session_state[key]

        SessionManager.initialize()
        SessionManager.set_auth(auth)

