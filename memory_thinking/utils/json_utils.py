"""
JSON utilities for shaping tool responses.
"""

import json
from typing import Any, Dict


def to_json_text(payload: Any) -> str:
    """Render a payload the way tool responses carry it: two-space indented JSON.

    Args:
        payload: JSON-serialisable object

    Returns:
        JSON string
    """
    return json.dumps(payload, indent=2, ensure_ascii=False)


def text_response(payload: Any) -> Dict[str, Any]:
    """Wrap a successful result in the tool response envelope."""
    return {'content': [{'type': 'text', 'text': to_json_text(payload)}]}


def error_response(error: BaseException) -> Dict[str, Any]:
    """Wrap an error in the tool response envelope.

    Args:
        error: The exception that ended the request

    Returns:
        Response with `{error, status: "failed"}` text and `isError: True`
    """
    message = str(error) or error.__class__.__name__
    return {'content': [{'type': 'text', 'text': to_json_text({'error': message, 'status': 'failed'})}], 'isError': True}
