"""
Schema loader for the records desk webapp.
Handles loading and validation of the YAML record type schemas that drive
the generic form, detail and list views.
"""

import yaml
from pathlib import Path
from typing import Dict, Any, Optional, List, Literal, Tuple
import logging

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from .config_loader import get_config_value

logger = logging.getLogger(__name__)

# Supported field types
SUPPORTED_FIELD_TYPES = {
    'string', 'text', 'date', 'number', 'integer',
    'enum', 'boolean', 'email', 'url', 'reference'
}

# Parsed schema cache keyed by file path, invalidated on mtime change
_schema_cache: Dict[str, Tuple[float, "RecordSchema"]] = {}


class SchemaError(Exception):
    """Raised when a record type schema is missing or malformed."""


class FieldSpec(BaseModel):
    """One scalar field of a record type."""

    name: str
    type: str = 'string'
    label: Optional[str] = None
    step: int = 1
    required: bool = False
    required_message: Optional[str] = None
    choices: List[str] = Field(default_factory=list)
    default: Any = None
    help: Optional[str] = None
    reference: Optional[str] = None
    reference_label: str = 'name'

    @field_validator('type')
    @classmethod
    def _check_type(cls, value: str) -> str:
        if value not in SUPPORTED_FIELD_TYPES:
            raise ValueError(f"unsupported field type '{value}'")
        return value

    @model_validator(mode='after')
    def _check_type_options(self) -> "FieldSpec":
        if self.type == 'enum' and not self.choices:
            raise ValueError(f"enum field '{self.name}' must declare choices")
        if self.type == 'reference' and not self.reference:
            raise ValueError(f"reference field '{self.name}' must name the resource it references")
        return self

    @property
    def display_label(self) -> str:
        """Human readable label, derived from the field name when not given."""
        if self.label:
            return self.label
        return self.name.replace('_', ' ').capitalize()

    @property
    def missing_message(self) -> str:
        """Message shown when this required field is left empty."""
        if self.required_message:
            return self.required_message
        return f"{self.display_label} is required."

    def initial_value(self) -> Any:
        """Value a fresh draft starts with for this field."""
        if self.default is not None:
            return self.default
        if self.type == 'boolean':
            return False
        return ""


class UploadSpec(BaseModel):
    """File upload slot of a record type."""

    field: str = 'attachments'
    policy: Literal['attachment', 'logo'] = 'attachment'
    multiple: bool = True
    label: Optional[str] = None


class RecordMessages(BaseModel):
    created: Optional[str] = None
    updated: Optional[str] = None
    archived: Optional[str] = None


class RecordSchema(BaseModel):
    """Complete description of one record type."""

    record_type: str
    title: str
    resource: str
    review_resource: Optional[str] = None
    review_note_field: str = 'remarks'
    steps: List[str] = Field(default_factory=lambda: ['Details'])
    fields: Dict[str, FieldSpec]
    upload: Optional[UploadSpec] = None
    parent_path: str = 'college'
    reviewable: bool = False
    archivable: bool = True
    admin_only: bool = False
    messages: RecordMessages = Field(default_factory=RecordMessages)
    list_columns: List[str] = Field(default_factory=list)

    @model_validator(mode='before')
    @classmethod
    def _inject_field_names(cls, data: Any) -> Any:
        if isinstance(data, dict) and isinstance(data.get('fields'), dict):
            fields = {}
            for name, spec in data['fields'].items():
                spec = dict(spec or {})
                spec.setdefault('name', name)
                fields[name] = spec
            data = {**data, 'fields': fields}
        return data

    @model_validator(mode='after')
    def _check_structure(self) -> "RecordSchema":
        if not self.fields:
            raise ValueError("schema must declare at least one field")
        if not self.steps:
            raise ValueError("schema must declare at least one step")

        for spec in self.fields.values():
            if spec.step < 1 or spec.step > len(self.steps):
                raise ValueError(
                    f"field '{spec.name}' is on step {spec.step}, schema has {len(self.steps)} steps"
                )

        if self.upload and self.upload.field in self.fields:
            raise ValueError(f"upload field '{self.upload.field}' collides with a scalar field")

        for column in self.list_columns:
            if column not in self.fields and column not in ('id', 'status', 'created_at'):
                raise ValueError(f"list column '{column}' is not a declared field")

        if self.reviewable and not self.review_resource:
            self.review_resource = self.record_type

        if not self.messages.created:
            self.messages.created = f"{self.title} created successfully!"
        if not self.messages.updated:
            self.messages.updated = f"{self.title} updated successfully!"
        if not self.messages.archived:
            self.messages.archived = f"{self.title} archived successfully."
        return self

    @property
    def total_steps(self) -> int:
        return len(self.steps)

    def fields_for_step(self, step: int) -> List[FieldSpec]:
        """Fields shown on the given step, in declaration order."""
        return [spec for spec in self.fields.values() if spec.step == step]

    def required_fields(self, step: Optional[int] = None) -> List[FieldSpec]:
        """Required fields, optionally restricted to one step."""
        return [
            spec for spec in self.fields.values()
            if spec.required and (step is None or spec.step == step)
        ]

    def date_fields(self) -> List[str]:
        return [name for name, spec in self.fields.items() if spec.type == 'date']

    def scalar_field_names(self) -> List[str]:
        return list(self.fields.keys())

    def columns(self) -> List[str]:
        """Columns for the list view, falling back to the first few fields."""
        if self.list_columns:
            return list(self.list_columns)
        return self.scalar_field_names()[:4]


def get_schemas_dir() -> Path:
    """Directory holding the record type schemas, from configuration."""
    return Path(get_config_value('schemas', 'directory', 'schemas'))


def list_available_schemas(schemas_dir: Optional[Path] = None) -> List[str]:
    """
    List schema names (file stems) available in the schemas directory.

    Args:
        schemas_dir: Directory to scan (defaults to the configured one)

    Returns:
        Sorted list of schema names
    """
    directory = schemas_dir or get_schemas_dir()
    if not directory.exists():
        logger.warning(f"Schemas directory not found: {directory}")
        return []

    names = {path.stem for path in directory.glob("*.yaml")}
    names.update(path.stem for path in directory.glob("*.yml"))
    return sorted(names)


def parse_schema(raw: Dict[str, Any], source: str = "<memory>") -> RecordSchema:
    """
    Build a RecordSchema from a raw dictionary.

    Args:
        raw: Parsed YAML content
        source: Description of where the content came from, for messages

    Returns:
        Validated RecordSchema

    Raises:
        SchemaError: If the content is not a valid schema
    """
    if not isinstance(raw, dict):
        raise SchemaError(f"Schema {source} must be a mapping")

    try:
        return RecordSchema.model_validate(raw)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in err['loc']) or 'schema'}: {err['msg']}"
            for err in e.errors()
        )
        raise SchemaError(f"Invalid schema {source}: {problems}") from e


def load_schema(name: str, schemas_dir: Optional[Path] = None) -> RecordSchema:
    """
    Load a record type schema by name.

    Args:
        name: Schema name (file stem, e.g. 'awards')
        schemas_dir: Directory to load from (defaults to the configured one)

    Returns:
        Validated RecordSchema

    Raises:
        SchemaError: If the schema file is missing or invalid
    """
    directory = schemas_dir or get_schemas_dir()
    path = directory / f"{name}.yaml"
    if not path.exists():
        alt_path = directory / f"{name}.yml"
        if not alt_path.exists():
            raise SchemaError(f"Schema file not found: {path}")
        path = alt_path

    mtime = path.stat().st_mtime
    cached = _schema_cache.get(str(path))
    if cached and cached[0] == mtime:
        return cached[1]

    try:
        with open(path, 'r', encoding='utf-8') as f:
            raw = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise SchemaError(f"YAML parsing error in {path}: {e}") from e

    schema = parse_schema(raw, str(path))
    _schema_cache[str(path)] = (mtime, schema)
    logger.info(f"Loaded schema '{schema.record_type}' from {path}")
    return schema


def load_all_schemas(schemas_dir: Optional[Path] = None) -> Dict[str, RecordSchema]:
    """
    Load every schema in the schemas directory, skipping invalid ones.

    Returns:
        Mapping of record_type to RecordSchema
    """
    schemas: Dict[str, RecordSchema] = {}
    for name in list_available_schemas(schemas_dir):
        try:
            schema = load_schema(name, schemas_dir)
        except SchemaError as e:
            logger.error(f"Skipping schema '{name}': {e}")
            continue
        schemas[schema.record_type] = schema
    return schemas


def clear_schema_cache() -> None:
    """Forget all cached schemas."""
    _schema_cache.clear()
