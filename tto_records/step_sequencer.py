"""
Step sequencing for multi-step record forms.
"""

from dataclasses import dataclass, field
from typing import Dict, Any

from .schema_loader import RecordSchema
from .field_validator import ErrorSet, validate_step

FIRST_STEP = 1


@dataclass
class StepResult:
    """Outcome of an attempt to leave a step."""
    step: int
    errors: ErrorSet = field(default_factory=dict)

    @property
    def advanced(self) -> bool:
        return not self.errors


def next_step(current: int, total: int) -> int:
    return min(current + 1, total)


def prev_step(current: int) -> int:
    return max(current - 1, FIRST_STEP)


def is_final_step(current: int, total: int) -> bool:
    return current >= total


def advance(schema: RecordSchema, draft: Dict[str, Any], current: int) -> StepResult:
    """
    Validate the current step and move forward only when it is complete.

    Args:
        schema: Record type schema
        draft: Current draft values
        current: Step being left

    Returns:
        StepResult with the resulting step and the step's error set
    """
    errors = validate_step(schema, current, draft)
    if errors:
        return StepResult(step=current, errors=errors)
    return StepResult(step=next_step(current, schema.total_steps))
