"""
REST API client for the records desk webapp.
Wraps requests with bearer authentication, JSON unwrapping and typed errors.
"""

from dataclasses import dataclass, field
from typing import Dict, Any, Optional, List
import logging

import requests

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30


class ApiError(Exception):
    """Non-success response (or transport failure) from the API."""

    def __init__(self, message: str, status_code: Optional[int] = None, payload: Any = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload if payload is not None else {}

    @property
    def field_errors(self) -> Dict[str, Any]:
        """Field error map from a validation failure body ({errors: {...}})."""
        if isinstance(self.payload, dict) and isinstance(self.payload.get('errors'), dict):
            return self.payload['errors']
        return {}

    def payload_value(self, key: str) -> Optional[str]:
        """Top level string value of the error body, if any."""
        if isinstance(self.payload, dict):
            value = self.payload.get(key)
            if isinstance(value, list):
                value = value[0] if value else None
            if value:
                return str(value)
        return None


class RecordNotFoundError(ApiError):
    """The requested record does not exist (HTTP 404)."""


class ConnectionFailedError(ApiError):
    """The API could not be reached."""


class AuthRequiredError(ApiError):
    """The operation needs a bearer token and none is available."""


@dataclass
class AuthContext:
    """Bearer token and signed-in user, passed explicitly to API consumers."""
    token: Optional[str] = None
    user: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_authenticated(self) -> bool:
        return bool(self.token)

    @property
    def role(self) -> str:
        return str(self.user.get('role') or 'user')

    @property
    def is_admin(self) -> bool:
        return self.role in ('admin', 'super-admin')

    @property
    def display_name(self) -> str:
        name = f"{self.user.get('first_name', '')} {self.user.get('last_name', '')}".strip()
        return name or self.user.get('email', '') or 'Guest'

    def headers(self) -> Dict[str, str]:
        if not self.token:
            return {}
        return {'Authorization': f"Bearer {self.token}"}


def unwrap_data(payload: Any) -> Any:
    """Return payload['data'] when the API wrapped its result, else the payload."""
    if isinstance(payload, dict) and 'data' in payload:
        return payload['data']
    return payload


class ApiClient:
    """Thin client over requests.Session for the records API."""

    def __init__(
        self,
        base_url: str,
        auth: Optional[AuthContext] = None,
        timeout: float = DEFAULT_TIMEOUT,
        session: Optional[requests.Session] = None
    ):
        self.base_url = base_url.rstrip('/')
        self.auth = auth or AuthContext()
        self.timeout = float(timeout)
        self.session = session or requests.Session()

    def url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    def request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        json: Any = None,
        data: Optional[Dict[str, Any]] = None,
        files: Optional[List[Any]] = None,
        accept: str = 'application/json'
    ) -> requests.Response:
        """
        Send a request and raise on any non-success status.

        Args:
            method: HTTP method
            path: Path relative to the API base URL
            params: Query parameters
            json: JSON body
            data: Form fields for a multipart body
            files: File parts for a multipart body
            accept: Accept header value

        Returns:
            The successful response

        Raises:
            ConnectionFailedError: On transport failure
            RecordNotFoundError: On HTTP 404
            ApiError: On any other non-2xx status
        """
        headers = {'Accept': accept}
        headers.update(self.auth.headers())
        url = self.url(path)

        logger.debug(f"{method} {url}")
        try:
            response = self.session.request(
                method,
                url,
                params=params,
                json=json,
                data=data,
                files=files,
                headers=headers,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.error(f"{method} {url} failed: {e}")
            raise ConnectionFailedError(f"Could not reach the server: {e}") from e

        if response.ok:
            return response

        payload = self._payload(response)
        message = None
        if isinstance(payload, dict):
            message = payload.get('message')
        message = message or f"Request failed with status {response.status_code}"
        logger.warning(f"{method} {url} returned {response.status_code}: {message}")

        if response.status_code == 404:
            raise RecordNotFoundError(message, response.status_code, payload)
        raise ApiError(message, response.status_code, payload)

    @staticmethod
    def _payload(response: requests.Response) -> Any:
        try:
            return response.json()
        except ValueError:
            return {}

    def request_json(self, method: str, path: str, **kwargs) -> Any:
        """Send a request and return the decoded JSON body."""
        return self._payload(self.request(method, path, **kwargs))

    # Records

    def get_record(self, resource: str, record_id: Any) -> Dict[str, Any]:
        return unwrap_data(self.request_json('GET', f"/{resource}/{record_id}"))

    def list_records(self, resource: str, params: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        """List records of a resource; paginated envelopes are unwrapped."""
        records = unwrap_data(self.request_json('GET', f"/{resource}", params=params))
        # Paginated responses nest the rows one level deeper
        if isinstance(records, dict):
            records = unwrap_data(records)
        return records if isinstance(records, list) else []

    def archive(self, resource: str, record_id: Any, password: str) -> Any:
        return self.request_json('PATCH', f"/{resource}/{record_id}/archive", json={'password': password})

    def review(
        self,
        review_resource: str,
        record_id: Any,
        status: str,
        remarks: str,
        note_field: str = 'remarks'
    ) -> Any:
        return self.request_json(
            'POST', f"/review/{review_resource}/{record_id}",
            json={'status': status, note_field: remarks}
        )

    def review_queue(self, submission_type: str = 'all') -> Dict[str, Any]:
        """Pending submissions and per-type counts ({data: [...], stats: {...}})."""
        payload = self.request_json('GET', '/review', params={'type': submission_type})
        return payload if isinstance(payload, dict) else {}

    # Reports

    def get_report(self, report_type: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """Report envelope: the paginated rows plus the filter option lists."""
        return unwrap_data(self.request_json('GET', f"/reports/{report_type}", params=params))

    def download_report_pdf(self, report_type: str, params: Optional[Dict[str, Any]] = None) -> bytes:
        """
        Download a rendered report.

        Raises:
            AuthRequiredError: If no bearer token is available
        """
        if not self.auth.is_authenticated:
            raise AuthRequiredError("You must be signed in to download reports.")
        response = self.request('GET', f"/reports/{report_type}/pdf", params=params, accept='application/pdf')
        return response.content

    # Authentication

    def login(self, email: str, password: str) -> AuthContext:
        payload = self.request_json('POST', 'auth/login', json={'email': email, 'password': password})
        if not isinstance(payload, dict) or not payload.get('token'):
            raise ApiError("Login response did not include a token.", payload=payload)
        self.auth = AuthContext(token=payload.get('token'), user=payload.get('user') or {})
        logger.info(f"Signed in as {email}")
        return self.auth

    def current_user(self) -> Dict[str, Any]:
        payload = self.request_json('GET', '/auth/user')
        if not isinstance(payload, dict):
            return {}
        return payload.get('user') or {}

    # Account

    def update_profile(self, profile: Dict[str, Any]) -> Any:
        return self.request_json('PUT', '/auth/profile', json=profile)

    def update_password(self, current_password: str, password: str, password_confirmation: str) -> Any:
        return self.request_json('PUT', '/auth/password', json={
            'current_password': current_password,
            'password': password,
            'password_confirmation': password_confirmation,
        })

    def forgot_password(self, email: str) -> Any:
        """Ask the API to email a password reset link; no sign-in needed."""
        return self.request_json('POST', '/forgot-password', json={'email': email})

    def reset_password(self, token: str, email: str, password: str, password_confirmation: str) -> Any:
        return self.request_json('POST', '/reset-password', json={
            'token': token,
            'email': email,
            'password': password,
            'password_confirmation': password_confirmation,
        })

    def logout(self) -> AuthContext:
        """Sign out; the local auth context is cleared even if the API call fails."""
        try:
            self.request('POST', '/auth/logout')
        except ApiError as e:
            logger.error(f"Logout failed: {e}")
        self.auth = AuthContext()
        return self.auth


def build_client(auth: Optional[AuthContext] = None, session: Optional[requests.Session] = None) -> ApiClient:
    """Create a client from the configured base URL and timeout."""
    from .config_loader import get_config_value

    return ApiClient(
        base_url=get_config_value('api', 'base_url', 'http://localhost:8000/api'),
        auth=auth,
        timeout=get_config_value('api', 'timeout', DEFAULT_TIMEOUT),
        session=session,
    )
