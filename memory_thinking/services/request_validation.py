"""
Validation of untyped `memory_thinking` tool arguments.
"""

from typing import Any, Mapping

from ..models.core import Thought, ThoughtRequest


class ValidationError(Exception):
    """Raised when a request does not match the tool's parameter shape."""

    def __init__(self, field: str, message: str):
        super().__init__(f'Invalid {field}: {message}')
        self.field = field


def _is_int(value: Any) -> bool:
    # bool is an int subclass but never a valid count
    return isinstance(value, int) and not isinstance(value, bool)


def _require_positive_int(arguments: Mapping[str, Any], field: str, required: bool = True):
    value = arguments.get(field)
    if value is None:
        if required:
            raise ValidationError(field, 'must be a positive integer')
        return None
    if not _is_int(value) or value < 1:
        raise ValidationError(field, 'must be a positive integer')
    return value


def _require_bool(arguments: Mapping[str, Any], field: str, required: bool = True):
    value = arguments.get(field)
    if value is None:
        if required:
            raise ValidationError(field, 'must be a boolean')
        return None
    if not isinstance(value, bool):
        raise ValidationError(field, 'must be a boolean')
    return value


def _optional_str(arguments: Mapping[str, Any], field: str):
    value = arguments.get(field)
    if value is not None and not isinstance(value, str):
        raise ValidationError(field, 'must be a string')
    return value


def validate_thought_request(arguments: Any) -> ThoughtRequest:
    """Check a raw argument mapping and build a typed request.

    Required: `thought` (non-empty string), `thoughtNumber` and `totalThoughts`
    (positive integers), `nextThoughtNeeded` (boolean). Optional fields are
    type-checked when present; `null` counts as absent. Unknown keys are ignored.

    Args:
        arguments: Decoded JSON arguments of a tool call

    Returns:
        ThoughtRequest with the thought exactly as requested (not yet normalized)

    Raises:
        ValidationError: Naming the first offending field
    """
    if not isinstance(arguments, Mapping):
        raise ValidationError('arguments', 'must be an object')

    thought = arguments.get('thought')
    if not isinstance(thought, str) or not thought:
        raise ValidationError('thought', 'must be a non-empty string')

    thought_number = _require_positive_int(arguments, 'thoughtNumber')
    total_thoughts = _require_positive_int(arguments, 'totalThoughts')
    next_thought_needed = _require_bool(arguments, 'nextThoughtNeeded')

    return ThoughtRequest(thought=Thought(thought=thought,
                                          thought_number=thought_number,
                                          total_thoughts=total_thoughts,
                                          next_thought_needed=next_thought_needed,
                                          is_revision=_require_bool(arguments, 'isRevision', required=False),
                                          revises_thought=_require_positive_int(arguments, 'revisesThought', required=False),
                                          branch_from_thought=_require_positive_int(arguments,
                                                                                    'branchFromThought',
                                                                                    required=False),
                                          branch_id=_optional_str(arguments, 'branchId'),
                                          needs_more_thoughts=_require_bool(arguments, 'needsMoreThoughts', required=False),
                                          context=_optional_str(arguments, 'context')),
                          store_in_memory=bool(_require_bool(arguments, 'storeInMemory', required=False)),
                          retrieve_from_memory=bool(_require_bool(arguments, 'retrieveFromMemory', required=False)))
