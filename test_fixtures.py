"""
Test fixtures and mock objects for the records desk tests.

Provides reusable schemas, fake API responses and a stand-in for
Streamlit's session state.
"""

from typing import Dict, Any, List, Optional
from unittest.mock import MagicMock

import requests

from tto_records.api_client import ApiClient, AuthContext
from tto_records.attachment_stager import StagedAttachment
from tto_records.schema_loader import RecordSchema, parse_schema


class SchemaFixtures:
    """Record type schemas used across the tests."""

    @staticmethod
    def award_raw() -> Dict[str, Any]:
        return {
            'record_type': 'awards',
            'title': 'Award',
            'resource': 'awards',
            'reviewable': True,
            'review_resource': 'award',
            'review_note_field': 'notes',
            'upload': {'field': 'attachments', 'policy': 'attachment', 'multiple': True},
            'fields': {
                'award_name': {'type': 'string', 'label': 'Award name', 'required': True},
                'date_received': {'type': 'date', 'required': True},
                'awarding_body': {'type': 'string', 'required': True},
                'description': {'type': 'text'},
                'attachment_link': {'type': 'url'},
            },
        }

    @staticmethod
    def award() -> RecordSchema:
        return parse_schema(SchemaFixtures.award_raw(), 'award fixture')

    @staticmethod
    def engagement() -> RecordSchema:
        return parse_schema({
            'record_type': 'engagements',
            'title': 'Engagement',
            'resource': 'engagements',
            'reviewable': True,
            'review_resource': 'engagement',
            'steps': ['Engagement Details', 'Upload Files'],
            'upload': {'field': 'attachments', 'policy': 'attachment'},
            'fields': {
                'agency_partner': {'required': True, 'required_message': 'Agency partner is required.'},
                'location': {'required': True, 'required_message': 'Location is required.'},
                'start_date': {'type': 'date', 'required': True, 'required_message': 'Start date is required.'},
                'number_of_participants': {
                    'type': 'integer', 'required': True,
                    'required_message': 'Number of participants is required.',
                },
                'narrative': {'type': 'text', 'required': True, 'required_message': 'Narrative is required.'},
                'attachment_link': {'type': 'url', 'step': 2},
            },
        }, 'engagement fixture')

    @staticmethod
    def modality() -> RecordSchema:
        return parse_schema({
            'record_type': 'modalities',
            'title': 'Modality',
            'resource': 'modalities',
            'reviewable': True,
            'review_resource': 'modality',
            'parent_path': 'tech_transfer.college',
            'fields': {
                'tech_transfer_id': {'type': 'reference', 'reference': 'tech-transfers', 'required': True},
                'modality': {'type': 'enum', 'choices': ['TV', 'Radio', 'Online'], 'required': True},
                'partner_agency': {},
            },
        }, 'modality fixture')

    @staticmethod
    def college() -> RecordSchema:
        return parse_schema({
            'record_type': 'colleges',
            'title': 'College',
            'resource': 'colleges',
            'parent_path': '',
            'admin_only': True,
            'upload': {'field': 'logo', 'policy': 'logo', 'multiple': False},
            'fields': {
                'campus_id': {'type': 'reference', 'reference': 'campuses', 'required': True},
                'name': {'required': True},
                'code': {'required': True},
            },
        }, 'college fixture')


class FileFixtures:
    """Staged files of various types and sizes."""

    @staticmethod
    def pdf(name: str = "report.pdf", size: int = 2048) -> StagedAttachment:
        return StagedAttachment(name=name, size=size, mime_type='application/pdf', content=b"%PDF-1.4")

    @staticmethod
    def png(name: str = "logo.png", size: int = 1024) -> StagedAttachment:
        return StagedAttachment(name=name, size=size, mime_type='image/png', content=b"\x89PNG")

    @staticmethod
    def exe(name: str = "setup.exe", size: int = 512) -> StagedAttachment:
        return StagedAttachment(name=name, size=size, mime_type='application/x-msdownload', content=b"MZ")

    @staticmethod
    def uploaded(name: str, mime_type: str, content: bytes) -> MagicMock:
        """Object shaped like Streamlit's UploadedFile."""
        uploaded = MagicMock()
        uploaded.name = name
        uploaded.type = mime_type
        uploaded.size = len(content)
        uploaded.getvalue.return_value = content
        return uploaded


class ApiFixtures:
    """Fake HTTP responses and clients wired to a mocked requests session."""

    @staticmethod
    def response(status_code: int = 200, payload: Any = None, content: bytes = b"") -> MagicMock:
        response = MagicMock()
        response.status_code = status_code
        response.ok = 200 <= status_code < 300
        response.content = content
        if payload is None:
            response.json.side_effect = ValueError("No JSON")
        else:
            response.json.return_value = payload
        return response

    @staticmethod
    def client(
        responses: Optional[List[Any]] = None,
        token: Optional[str] = "test-token",
        user: Optional[Dict[str, Any]] = None
    ):
        """ApiClient over a MagicMock session; returns (client, session)."""
        session = MagicMock(spec=requests.Session)
        if responses is not None:
            session.request.side_effect = responses
        auth = AuthContext(token=token, user=user or {'role': 'user', 'email': 'user@example.edu'})
        return ApiClient('http://api.test/api', auth=auth, session=session), session

    @staticmethod
    def sent(session: MagicMock, index: int = -1):
        """(method, url, kwargs) of a request made through the mocked session."""
        call = session.request.call_args_list[index]
        method, url = call.args[:2]
        return method, url, call.kwargs


class FakeSessionState(dict):
    """Dict with attribute access, standing in for st.session_state."""

    def __getattr__(self, name):
        try:
            return self[name]
        except KeyError as e:
            raise AttributeError(name) from e

    def __setattr__(self, name, value):
        self[name] = value

    def __delattr__(self, name):
        del self[name]
