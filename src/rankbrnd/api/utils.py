"""
Shared router helpers.

- ``_dc()``: convert a dataclass or dict to a plain dict
- ``_handle_error()``: turn a failed OperationResult into a problem response
"""

from __future__ import annotations

from dataclasses import asdict
from typing import Any

from rankbrnd.api.middleware.errors import problem_response, status_for_error_code
from rankbrnd.api.schemas.common import PageMeta


def _dc(obj: Any) -> dict[str, Any]:
    """Convert a dataclass (or dict) to a plain dict.

    Returns an empty dict for anything else.
    """
    if hasattr(obj, "__dataclass_fields__"):
        return asdict(obj)
    return obj if isinstance(obj, dict) else {}


def _handle_error(result):
    """Convert a failed ``OperationResult`` into a Problem Details response."""
    code = result.error.code if result.error else "INTERNAL"
    return problem_response(
        status=status_for_error_code(code),
        title=result.error.message if result.error else "Operation failed",
        detail=code,
    )


def _page(result) -> PageMeta:
    return PageMeta.from_result(total=result.total, limit=result.limit, offset=result.offset)
