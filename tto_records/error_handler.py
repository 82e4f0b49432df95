"""
Error handling utilities for the records desk webapp.
Provides user-friendly messages for API, schema and UI failures, plus a
wrapper that keeps one failing panel from taking down the page.
"""

import streamlit as st
import logging
import traceback
from typing import Dict, Any, Optional, Callable, List
from datetime import datetime
from pathlib import Path
import json

from .api_client import ApiError, AuthRequiredError, ConnectionFailedError, RecordNotFoundError
from .schema_loader import SchemaError
from .session_manager import SessionManager

logger = logging.getLogger(__name__)

ANALYTICS_LOG = Path("logs/error_analytics.jsonl")


class ErrorType:
    """Error type constants."""
    API = "api"
    NETWORK = "network"
    NOT_FOUND = "not_found"
    PERMISSION = "permission"
    SCHEMA = "schema"
    VALIDATION = "validation"
    PDF = "pdf"
    SYSTEM = "system"


class ErrorHandler:
    """Error handling for the records desk webapp."""

    @staticmethod
    def handle_error(
        error: Exception,
        context: str,
        error_type: str = ErrorType.SYSTEM,
        user_message: Optional[str] = None,
        recovery_options: Optional[List[Dict[str, Any]]] = None,
        show_details: bool = False
    ) -> None:
        """
        Handle errors with user-friendly messages and recovery options.

        Args:
            error: The exception that occurred
            context: Context where the error occurred
            error_type: Type of error (from ErrorType constants)
            user_message: Custom user-friendly message
            recovery_options: List of recovery actions
            show_details: Whether to show technical details
        """
        logger.error(f"Error in {context}: {str(error)}", exc_info=True)

        if not user_message:
            user_message = ErrorHandler._get_user_friendly_message(error, error_type)

        ErrorHandler._display_error(user_message, error, context, recovery_options, show_details)
        ErrorHandler._log_error_analytics(error, context, error_type)

    @staticmethod
    def _get_user_friendly_message(error: Exception, error_type: str) -> str:
        """Generate user-friendly error messages based on error type."""
        error_messages = {
            ErrorType.API: {
                RecordNotFoundError: "🔎 The requested record could not be found. It may have been archived.",
                ConnectionFailedError: "🌐 The records server could not be reached. Please try again.",
                AuthRequiredError: "🔐 Your session has expired. Please sign in again.",
                ApiError: "⚠️ The server rejected the request. Please try again.",
                "default": "⚠️ The request could not be completed. Please try again."
            },

            ErrorType.NETWORK: {
                ConnectionFailedError: "🌐 The records server could not be reached. Please try again.",
                TimeoutError: "⏱️ Request timed out. Please try again.",
                "default": "🌐 Network error occurred. Please check your connection and try again."
            },

            ErrorType.NOT_FOUND: {
                "default": "🔎 The requested record could not be found."
            },

            ErrorType.PERMISSION: {
                AuthRequiredError: "🔐 Please sign in to continue.",
                "default": "🔐 You don't have permission to perform this action."
            },

            ErrorType.SCHEMA: {
                SchemaError: "📋 A record type definition is invalid. Please check the schema files.",
                KeyError: "📋 Required schema field is missing. Please verify the schema configuration.",
                "default": "📋 Schema error occurred. Please check your schema files."
            },

            ErrorType.VALIDATION: {
                ValueError: "✅ Data validation failed. Please check your input and try again.",
                "default": "✅ Validation error occurred. Please review your data and try again."
            },

            ErrorType.PDF: {
                AuthRequiredError: "🔐 You must be signed in to download reports.",
                ApiError: "📄 The report could not be generated. Please try again.",
                "default": "📄 PDF error. The report may be unavailable."
            },

            ErrorType.SYSTEM: {
                MemoryError: "💻 System is running low on memory. Please try again or contact support.",
                "default": "💻 System error occurred. Please try again or contact support."
            }
        }

        error_type_messages = error_messages.get(error_type, error_messages[ErrorType.SYSTEM])

        for exception_type, message in error_type_messages.items():
            if exception_type != "default" and isinstance(error, exception_type):
                return message

        return error_type_messages.get("default", "An unexpected error occurred.")

    @staticmethod
    def _display_error(
        user_message: str,
        error: Exception,
        context: str,
        recovery_options: Optional[List[Dict[str, Any]]] = None,
        show_details: bool = False
    ) -> None:
        """Display error message to user with recovery options."""
        st.error(user_message)

        if recovery_options:
            for i, option in enumerate(recovery_options):
                col1, col2 = st.columns([3, 1])

                with col1:
                    st.write(f"**{option['title']}**")
                    st.caption(option['description'])

                with col2:
                    if st.button(option['button_text'], key=f"recovery_{context}_{i}"):
                        if 'action' in option and callable(option['action']):
                            option['action']()

        if show_details:
            with st.expander("🔍 Technical Details"):
                st.write(f"**Error Type:** {type(error).__name__}")
                st.write(f"**Context:** {context}")
                st.write(f"**Error Message:** {str(error)}")
                st.code(traceback.format_exc())

    @staticmethod
    def _log_error_analytics(error: Exception, context: str, error_type: str) -> None:
        """Log error for analytics and monitoring."""
        try:
            error_data = {
                'timestamp': datetime.now().isoformat(),
                'error_type': error_type,
                'exception_type': type(error).__name__,
                'status_code': getattr(error, 'status_code', None),
                'context': context,
                'message': str(error),
                'session_id': SessionManager.get_session_id(),
            }

            ANALYTICS_LOG.parent.mkdir(exist_ok=True)
            with open(ANALYTICS_LOG, 'a', encoding='utf-8') as f:
                json.dump(error_data, f)
                f.write('\n')

        except OSError as e:
            logger.error(f"Failed to log error analytics: {e}")

    @staticmethod
    def with_error_handling(
        func: Callable,
        context: str,
        error_type: str = ErrorType.SYSTEM,
        user_message: Optional[str] = None,
        recovery_options: Optional[List[Dict[str, Any]]] = None,
        show_details: bool = False,
        default_return: Any = None
    ) -> Any:
        """
        Decorator-like function to wrap operations with error handling.

        Args:
            func: Function to execute
            context: Context description
            error_type: Type of error expected
            user_message: Custom user message
            recovery_options: Recovery actions
            show_details: Show technical details
            default_return: Value to return on error

        Returns:
            Function result or default_return on error
        """
        try:
            return func()
        except Exception as e:
            ErrorHandler.handle_error(
                e, context, error_type, user_message, recovery_options, show_details
            )
            return default_return

    @staticmethod
    def create_recovery_options(context: str) -> List[Dict[str, Any]]:
        """Create context-specific recovery options."""
        recovery_options: List[Dict[str, Any]] = []

        if "load" in context.lower() or "fetch" in context.lower():
            recovery_options.append({
                'title': 'Retry',
                'description': 'Fetch the data from the server again',
                'button_text': '🔄 Retry',
                'action': lambda: st.rerun()
            })

        if "auth" in context.lower() or "sign" in context.lower():
            recovery_options.append({
                'title': 'Sign In Again',
                'description': 'Clear the current session and sign in again',
                'button_text': '🔐 Sign In',
                'action': lambda: ErrorHandler._sign_in_again()
            })

        recovery_options.append({
            'title': 'Restart Session',
            'description': 'Clear all session data and start fresh',
            'button_text': '🔄 Restart',
            'action': lambda: ErrorHandler._restart_session()
        })

        return recovery_options

    @staticmethod
    def _sign_in_again() -> None:
        SessionManager.clear_auth()
        st.rerun()

    @staticmethod
    def _restart_session() -> None:
        """Restart the user session."""
        SessionManager.reset_session()
        st.success("🔄 Session restarted successfully")
        st.rerun()


# Convenience functions
def handle_error(error: Exception, context: str, error_type: str = ErrorType.SYSTEM) -> None:
    """Convenience function for error handling."""
    ErrorHandler.handle_error(error, context, error_type)


def with_error_handling(func: Callable, context: str, **kwargs) -> Any:
    """Convenience function for wrapping operations with error handling."""
    return ErrorHandler.with_error_handling(func, context, **kwargs)
