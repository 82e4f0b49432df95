"""
Diff utilities for the records desk webapp.
Summarizes what an edit form changed relative to the fetched record using DeepDiff.
"""

from typing import Dict, Any, List, Optional
import re
import logging

from deepdiff import DeepDiff

from .schema_loader import RecordSchema

logger = logging.getLogger(__name__)

_ROOT_KEY = re.compile(r"^root\['(?P<field>[^']+)'\]")


def _normalize(value: Any) -> Any:
    """Treat empty strings and None alike so untouched blank fields do not show up."""
    if value is None:
        return None
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return value


def _field_from_path(path: str) -> Optional[str]:
    match = _ROOT_KEY.match(path)
    return match.group('field') if match else None


def _key_changes(orig: Dict[str, Any], mod: Dict[str, Any]) -> Dict[str, Dict[str, Any]]:
    return {
        key: {'old': orig.get(key), 'new': mod.get(key)}
        for key in list(orig) + [key for key in mod if key not in orig]
        if orig.get(key) != mod.get(key)
    }


def calculate_changes(original: Dict[str, Any], modified: Dict[str, Any]) -> Dict[str, Dict[str, Any]]:
    """
    Field level changes between the seeded draft and the current draft.

    Args:
        original: Draft as seeded from the record
        modified: Current draft

    Returns:
        Mapping of field name to {'old': ..., 'new': ...}
    """
    orig = {key: _normalize(value) for key, value in original.items()}
    mod = {key: _normalize(value) for key, value in modified.items()}

    diff = DeepDiff(orig, mod, ignore_order=True)
    changes: Dict[str, Dict[str, Any]] = {}

    for section in ('values_changed', 'type_changes'):
        for path, detail in diff.get(section, {}).items():
            if path == 'root':
                # Newer DeepDiff reports dicts sharing no keys as one root replacement
                changes.update(_key_changes(orig, mod))
                continue
            field_name = _field_from_path(path)
            if field_name:
                changes[field_name] = {'old': detail.get('old_value'), 'new': detail.get('new_value')}

    for path in diff.get('dictionary_item_added', []):
        field_name = _field_from_path(path)
        if field_name:
            changes[field_name] = {'old': None, 'new': mod.get(field_name)}

    for path in diff.get('dictionary_item_removed', []):
        field_name = _field_from_path(path)
        if field_name:
            changes[field_name] = {'old': orig.get(field_name), 'new': None}

    logger.debug(f"Calculated {len(changes)} field changes")
    return changes


def has_changes(changes: Dict[str, Dict[str, Any]]) -> bool:
    return bool(changes)


def format_changes(changes: Dict[str, Dict[str, Any]], schema: RecordSchema) -> List[Dict[str, str]]:
    """Rows for the changes preview table, in schema field order."""
    rows = []
    for name, spec in schema.fields.items():
        if name not in changes:
            continue
        change = changes[name]
        rows.append({
            'Field': spec.display_label,
            'Before': '' if change['old'] is None else str(change['old']),
            'After': '' if change['new'] is None else str(change['new']),
        })
    return rows
