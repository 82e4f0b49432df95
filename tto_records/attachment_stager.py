"""
Attachment staging for record forms.
Filters user-selected files against an upload policy and holds the staged set
until the form is submitted.
"""

from dataclasses import dataclass, field
from typing import Any, Iterable, List, Optional, Tuple
import logging

logger = logging.getLogger(__name__)

MB = 1024 * 1024

SIZE_UNITS = ['Bytes', 'KB', 'MB', 'GB']

DOCUMENT_TYPES = (
    'image/jpeg',
    'image/jpg',
    'image/png',
    'application/pdf',
    'application/msword',
    'application/vnd.openxmlformats-officedocument.wordprocessingml.document',
)

IMAGE_TYPES = (
    'image/jpeg',
    'image/jpg',
    'image/png',
)


@dataclass(frozen=True)
class UploadPolicy:
    """MIME allow-list and size ceiling for one kind of upload."""
    name: str
    allowed_types: Tuple[str, ...]
    max_bytes: int
    type_message: str
    size_message: str
    extensions: Tuple[str, ...] = ()

    def type_notice(self, filename: str) -> str:
        return self.type_message.format(name=filename)

    def size_notice(self, filename: str) -> str:
        return self.size_message.format(name=filename, limit=format_file_size(self.max_bytes))


def attachment_policy(max_mb: float = 10) -> UploadPolicy:
    """Policy for record attachments (documents and images)."""
    return UploadPolicy(
        name='attachment',
        allowed_types=DOCUMENT_TYPES,
        max_bytes=int(max_mb * MB),
        type_message="Invalid file type: {name}",
        size_message="{name} exceeds " + f"{max_mb:g}MB limit",
        extensions=('jpg', 'jpeg', 'png', 'pdf', 'doc', 'docx'),
    )


def logo_policy(max_mb: float = 2) -> UploadPolicy:
    """Policy for campus and college logos."""
    return UploadPolicy(
        name='logo',
        allowed_types=IMAGE_TYPES,
        max_bytes=int(max_mb * MB),
        type_message="Invalid file type. Please upload JPG, JPEG, or PNG.",
        size_message=f"File is too large. Maximum size is {max_mb:g}MB.",
        extensions=('jpg', 'jpeg', 'png'),
    )


ATTACHMENT_POLICY = attachment_policy()
LOGO_POLICY = logo_policy()


@dataclass(frozen=True)
class StagedAttachment:
    """A file accepted for upload with the next submission."""
    name: str
    size: int
    mime_type: str
    content: bytes = field(default=b"", repr=False)

    @classmethod
    def from_uploaded_file(cls, uploaded: Any) -> "StagedAttachment":
        """Build from a Streamlit UploadedFile (name, size, type, getvalue())."""
        content = uploaded.getvalue()
        size = getattr(uploaded, 'size', None)
        if size is None:
            size = len(content)
        return cls(
            name=uploaded.name,
            size=int(size),
            mime_type=uploaded.type or "",
            content=content,
        )

    @property
    def is_image(self) -> bool:
        return self.mime_type.startswith('image/')

    @property
    def display_size(self) -> str:
        return format_file_size(self.size)

    def as_upload(self) -> Tuple[str, bytes, str]:
        """(filename, content, content_type) tuple for a multipart request."""
        return (self.name, self.content, self.mime_type)


@dataclass
class StagingResult:
    accepted: List[StagedAttachment] = field(default_factory=list)
    rejected: List[str] = field(default_factory=list)


def stage(files: Iterable[StagedAttachment], policy: UploadPolicy) -> StagingResult:
    """
    Filter a selection of files against a policy.

    Files with a disallowed MIME type or over the size ceiling are dropped
    with a notice each; the accepted list is the new staged set.

    Args:
        files: The user's current selection
        policy: Upload policy to apply

    Returns:
        StagingResult with accepted files and rejection notices
    """
    result = StagingResult()
    for staged in files:
        if staged.mime_type not in policy.allowed_types:
            logger.info(f"Rejected {staged.name}: type {staged.mime_type!r} not allowed for {policy.name}")
            result.rejected.append(policy.type_notice(staged.name))
            continue
        if staged.size > policy.max_bytes:
            logger.info(f"Rejected {staged.name}: {staged.size} bytes exceeds {policy.max_bytes}")
            result.rejected.append(policy.size_notice(staged.name))
            continue
        result.accepted.append(staged)
    return result


class AttachmentStager:
    """Staged file set for one form session."""

    def __init__(self, policy: UploadPolicy, multiple: bool = True):
        self.policy = policy
        self.multiple = multiple
        self._files: List[StagedAttachment] = []
        # Bumped on clear so the file picker widget gets a fresh key
        self.nonce = 0

    @property
    def files(self) -> List[StagedAttachment]:
        return list(self._files)

    @property
    def total_size(self) -> int:
        return sum(staged.size for staged in self._files)

    def __len__(self) -> int:
        return len(self._files)

    def __bool__(self) -> bool:
        return bool(self._files)

    def stage(self, files: Iterable[StagedAttachment]) -> List[str]:
        """
        Replace the staged set with the valid files of a new selection.

        Returns:
            Rejection notices for the files that were dropped
        """
        result = stage(files, self.policy)
        accepted = result.accepted
        if not self.multiple:
            accepted = accepted[-1:]
        self._files = accepted
        return result.rejected

    def clear(self) -> None:
        self._files = []
        self.nonce += 1

    def widget_key(self, prefix: str) -> str:
        return f"{prefix}_uploader_{self.nonce}"


def format_file_size(num_bytes: int) -> str:
    """
    Format a byte count for display.

    Uses base-1024 units with up to two decimals, trailing zeros dropped:
    0 -> "0 Bytes", 1536 -> "1.5 KB", 1048576 -> "1 MB".
    """
    if num_bytes <= 0:
        return '0 Bytes'

    value = float(num_bytes)
    index = 0
    while value >= 1024 and index < len(SIZE_UNITS) - 1:
        value /= 1024
        index += 1
    return f"{round(value, 2):g} {SIZE_UNITS[index]}"


def policy_for(kind: Optional[str], attachment_max_mb: float = 10, logo_max_mb: float = 2) -> UploadPolicy:
    """Upload policy for a schema's upload kind."""
    if kind == 'logo':
        return logo_policy(float(logo_max_mb))
    return attachment_policy(float(attachment_max_mb))
