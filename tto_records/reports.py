"""
Report definitions and filter handling for the records desk webapp.
"""

from dataclasses import dataclass, field, fields, asdict
from datetime import datetime, date, time, timezone
from typing import Dict, Any, List, Optional, Tuple
import logging

from .form_state import normalize_date

logger = logging.getLogger(__name__)

ALL = "all"


@dataclass(frozen=True)
class ReportDefinition:
    """Server report: endpoint segment, where its rows live, and its filters."""
    report_type: str
    title: str
    rows_key: str
    filters: Tuple[str, ...]
    columns: Tuple[str, ...]


REPORTS: Dict[str, ReportDefinition] = {
    definition.report_type: definition for definition in (
        ReportDefinition(
            'technology-transfers', 'Technology Transfers', 'projects',
            ('campus_id', 'college_id', 'date_from', 'date_to', 'search', 'sort_by', 'sort_order'),
            ('name', 'category', 'leader', 'start_date', 'end_date', 'created_at'),
        ),
        ReportDefinition(
            'engagements', 'Engagements', 'engagements',
            ('campus_id', 'college_id', 'date_from', 'date_to', 'search'),
            ('agency_partner', 'location', 'activity_conducted', 'start_date', 'end_date'),
        ),
        ReportDefinition(
            'impact-assessments', 'Impact Assessments', 'assessments',
            ('campus_id', 'college_id', 'date_from', 'date_to', 'search'),
            ('beneficiary', 'geographic_coverage', 'num_direct_beneficiary', 'num_indirect_beneficiary'),
        ),
        ReportDefinition(
            'modalities', 'Modalities', 'modalities',
            ('campus_id', 'college_id', 'date_from', 'date_to', 'search'),
            ('modality', 'partner_agency', 'hosted_by', 'period', 'created_at'),
        ),
        ReportDefinition(
            'resolutions', 'Resolutions', 'resolutions',
            ('date_from', 'date_to', 'search', 'sort_by', 'sort_order'),
            ('resolution_number', 'partner_agency', 'effectivity', 'expiration'),
        ),
        ReportDefinition(
            'users', 'Users', 'users',
            ('campus_id', 'college_id', 'user_type', 'status', 'search', 'sort_by', 'sort_order'),
            ('first_name', 'last_name', 'email', 'role', 'is_active'),
        ),
        ReportDefinition(
            'audit-trail', 'Audit Trail', 'auditLogs',
            ('search', 'action', 'auditable_type', 'date_from', 'date_to'),
            ('created_at', 'action', 'auditable_type', 'auditable_id', 'description'),
        ),
    )
}


def get_report_definition(report_type: str) -> ReportDefinition:
    """
    Raises:
        KeyError: If the report type is unknown
    """
    if report_type not in REPORTS:
        raise KeyError(f"Unknown report type: {report_type}")
    return REPORTS[report_type]


@dataclass
class ReportFilters:
    """Filter state shared by the report pages."""
    campus_id: str = ALL
    college_id: str = ALL
    date_from: str = ""
    date_to: str = ""
    search: str = ""
    action: str = ALL
    auditable_type: str = ALL
    user_type: str = ALL
    status: str = ALL
    sort_by: str = "created_at"
    sort_order: str = "desc"
    page: int = 1

    def __post_init__(self):
        self.date_from = normalize_date(self.date_from)
        self.date_to = normalize_date(self.date_to)
        if self.sort_order not in ('asc', 'desc'):
            logger.warning(f"Invalid sort order '{self.sort_order}', using 'desc'")
            self.sort_order = 'desc'
        try:
            self.page = max(1, int(self.page))
        except (TypeError, ValueError):
            self.page = 1

    @classmethod
    def from_params(cls, params: Dict[str, Any]) -> "ReportFilters":
        """Build from query/session params, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        return cls(**{key: value for key, value in params.items() if key in known and value is not None})

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def to_query_params(self, allowed: Optional[Tuple[str, ...]] = None) -> Dict[str, str]:
        """
        Query parameters for the API: empty and 'all' values are dropped.

        Args:
            allowed: Filter names the report accepts (all filters if None)
        """
        params: Dict[str, str] = {}
        for key, value in self.to_dict().items():
            if allowed is not None and key not in allowed and key != 'page':
                continue
            if key == 'page' and value == 1:
                continue
            if value is None or value == "" or value == ALL:
                continue
            params[key] = str(value)
        return params

    def validate(self) -> List[str]:
        """Problems with the current filter values."""
        problems = []
        if self.date_from and self.date_to and self.date_from > self.date_to:
            problems.append("Invalid date range: start date must be on or before the end date.")
        return problems

    def cleared(self) -> "ReportFilters":
        return ReportFilters()


def extract_rows(definition: ReportDefinition, data: Any) -> List[Dict[str, Any]]:
    """
    Rows of a report response.

    Report payloads nest a paginator under a report specific key
    ({projects: {data: [...], ...}}); plain lists are accepted as-is.
    """
    if isinstance(data, list):
        return data
    if not isinstance(data, dict):
        return []

    section = data.get(definition.rows_key, data)
    if isinstance(section, dict):
        section = section.get('data', [])
    return section if isinstance(section, list) else []


def extract_pagination(definition: ReportDefinition, data: Any) -> Dict[str, int]:
    """current_page/last_page/total of a paginated report, when present."""
    if not isinstance(data, dict):
        return {}
    section = data.get(definition.rows_key)
    if not isinstance(section, dict):
        return {}
    return {
        key: section[key]
        for key in ('current_page', 'last_page', 'total')
        if isinstance(section.get(key), int)
    }


def _parse_timestamp(value: str) -> datetime:
    parsed = datetime.fromisoformat(value.replace('Z', '+00:00'))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def filter_by_date_range(
    entries: List[Dict[str, Any]],
    date_from: Any = None,
    date_to: Any = None,
    key: str = 'created_at'
) -> List[Dict[str, Any]]:
    """
    Filter entries to a calendar date range (inclusive on both ends).

    Entries without a timestamp are dropped; entries whose timestamp cannot
    be parsed are kept so nothing silently disappears. An inverted range
    matches nothing.

    Args:
        entries: Rows with an ISO timestamp under key
        date_from: Start date (date or yyyy-mm-dd), open if empty
        date_to: End date (date or yyyy-mm-dd), open if empty
        key: Timestamp field name

    Returns:
        Filtered list
    """
    start_text = normalize_date(date_from)
    end_text = normalize_date(date_to)
    if not start_text and not end_text:
        return entries

    start = datetime.combine(date.fromisoformat(start_text), time.min, tzinfo=timezone.utc) if start_text else None
    end = datetime.combine(date.fromisoformat(end_text), time.max, tzinfo=timezone.utc) if end_text else None

    if start and end and start > end:
        logger.warning(f"Date filter will match nothing due to invalid range: {start_text} > {end_text}")
        return []

    filtered = []
    for entry in entries:
        timestamp = entry.get(key)
        if not timestamp:
            logger.debug(f"Skipping entry with no {key}: {entry.get('id', 'unknown')}")
            continue
        try:
            moment = _parse_timestamp(str(timestamp))
        except ValueError as e:
            logger.warning(f"Invalid timestamp for entry {entry.get('id', 'unknown')}: {e}")
            filtered.append(entry)
            continue
        if start and moment < start:
            continue
        if end and moment > end:
            continue
        filtered.append(entry)

    logger.info(f"Date filter matched {len(filtered)} out of {len(entries)} entries")
    return filtered
