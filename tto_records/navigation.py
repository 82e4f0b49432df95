"""
Routing for the records desk webapp.
Routes are plain values kept in session state; the sidebar and the record
workflow navigate by replacing the current route.
"""

from dataclasses import dataclass, field
from typing import Dict, Any, Optional
from urllib.parse import urlencode

PAGE_DASHBOARD = "dashboard"
PAGE_LIST = "list"
PAGE_CREATE = "create"
PAGE_EDIT = "edit"
PAGE_SHOW = "show"
PAGE_REPORT = "report"
PAGE_REVIEW = "review"
PAGE_LOGIN = "login"
PAGE_PROFILE = "profile"
PAGE_PASSWORD = "password"

FORM_PAGES = {PAGE_CREATE, PAGE_EDIT}


@dataclass(frozen=True)
class Route:
    page: str
    record_type: Optional[str] = None
    record_id: Optional[str] = None
    params: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_form(self) -> bool:
        return self.page in FORM_PAGES

    @property
    def form_key(self) -> str:
        """Namespace for the form session this route owns."""
        return f"{self.page}:{self.record_type}:{self.record_id or 'new'}"

    @property
    def path(self) -> str:
        if self.page == PAGE_DASHBOARD:
            base = "/"
        elif self.page in (PAGE_LOGIN, PAGE_REVIEW):
            base = f"/{self.page}"
        elif self.page in (PAGE_PROFILE, PAGE_PASSWORD):
            base = f"/settings/{self.page}"
        elif self.page == PAGE_REPORT:
            base = f"/reports/{self.record_type}"
        else:
            slug = (self.record_type or "").replace('_', '-')
            if self.page == PAGE_LIST:
                base = f"/{slug}"
            elif self.page == PAGE_CREATE:
                base = f"/{slug}/create"
            elif self.page == PAGE_EDIT:
                base = f"/{slug}/{self.record_id}/edit"
            else:
                base = f"/{slug}/{self.record_id}"

        query = {k: v for k, v in self.params.items() if v not in (None, "")}
        if query:
            return f"{base}?{urlencode(query)}"
        return base


def dashboard() -> Route:
    return Route(PAGE_DASHBOARD)


def list_route(record_type: str, **params: Any) -> Route:
    return Route(PAGE_LIST, record_type, params=params)


def create_route(record_type: str) -> Route:
    return Route(PAGE_CREATE, record_type)


def edit_route(record_type: str, record_id: Any) -> Route:
    return Route(PAGE_EDIT, record_type, str(record_id))


def detail_route(record_type: str, record_id: Any) -> Route:
    return Route(PAGE_SHOW, record_type, str(record_id))


def report_route(report_type: str) -> Route:
    return Route(PAGE_REPORT, report_type)
