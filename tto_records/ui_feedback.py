"""
UI feedback utilities for the records desk webapp.
Provides loading indicators, toast notifications and status badges.
"""

import streamlit as st
from typing import List
from contextlib import contextmanager
import logging

logger = logging.getLogger(__name__)

STATUS_BADGES = {
    'pending': '🟡',
    'approved': '🟢',
    'rejected': '🔴',
    'archived': '⚫',
}


class LoadingIndicator:
    """Loading indicator utilities."""

    @staticmethod
    @contextmanager
    def spinner(message: str = "Loading..."):
        """Context manager for spinner loading indicator."""
        with st.spinner(message):
            yield


class Notify:
    """
    Toast notification helper; toasts do not block the page.

    Usage:
    Notify.success("Award created successfully!")
    Notify.error("Check the form for errors.")
    """

    ICONS = {
        'success': '✅',
        'info': 'ℹ️',
        'warning': '⚠️',
        'error': '❌'
    }

    @staticmethod
    def _display_notification(message: str, notification_type: str = 'info') -> None:
        """Internal method to display notification based on type."""
        st.toast(message, icon=Notify.ICONS.get(notification_type, 'ℹ️'))

    @staticmethod
    def success(message: str) -> None:
        """Show success notification."""
        Notify._display_notification(message, 'success')

    @staticmethod
    def info(message: str) -> None:
        """Show info notification."""
        Notify._display_notification(message, 'info')

    @staticmethod
    def warn(message: str) -> None:
        """Show warning notification."""
        Notify._display_notification(message, 'warning')

    @staticmethod
    def error(message: str) -> None:
        """Show error notification."""
        Notify._display_notification(message, 'error')

    @staticmethod
    def many(messages: List[str], notification_type: str = 'error') -> None:
        """Show one notification per message (e.g. rejected uploads)."""
        for message in messages:
            Notify._display_notification(message, notification_type)


def status_badge(status: str) -> str:
    """Review status with its colored marker."""
    status = (status or 'pending').lower()
    return f"{STATUS_BADGES.get(status, '⚪')} {status.title()}"


def show_loading(message: str = "Loading..."):
    """Show loading spinner."""
    return LoadingIndicator.spinner(message)
