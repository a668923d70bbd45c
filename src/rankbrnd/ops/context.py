"""
Request-scoped context for operations.

Every operation function receives an :class:`OperationContext` as its
first argument: the database connection, who is calling, a dry-run flag
and a clock.
"""

from __future__ import annotations

import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from rankbrnd.core.protocols import Connection
from rankbrnd.core.timestamps import utc_now


@dataclass
class OperationContext:
    """Context passed to every operation function.

    Attributes:
        conn: Database connection satisfying :class:`Connection`.
        request_id: Unique ID for this invocation.
        caller: ``"api"``, ``"cli"``, ``"worker"`` or ``"sdk"``.
        user: Identifier of the acting user. ``None`` means a system caller,
            which skips organization role checks.
        dry_run: Return a preview without side effects.
        clock: Source of "now" (UTC-aware); tests pin it.
        metadata: Arbitrary key/value pairs forwarded to logging.
    """

    conn: Connection
    request_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    caller: str = "sdk"
    user: str | None = None
    dry_run: bool = False
    clock: Callable[[], datetime] = utc_now
    metadata: dict[str, Any] = field(default_factory=dict)

    def now(self) -> datetime:
        return self.clock()
