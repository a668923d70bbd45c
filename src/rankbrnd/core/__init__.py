"""Infrastructure shared by every rankbrnd layer.

Errors, structured logging, settings, timestamps, the ``Connection``
protocol and its backends, and the repositories built on top of them.
"""

from rankbrnd.core.errors import ErrorCategory, RankBrndError
from rankbrnd.core.logging import configure_logging, get_logger
from rankbrnd.core.protocols import Connection
from rankbrnd.core.settings import RankBrndSettings, get_settings
from rankbrnd.core.timestamps import generate_ulid, to_iso8601, utc_now

__all__ = [
    "Connection",
    "ErrorCategory",
    "RankBrndError",
    "RankBrndSettings",
    "configure_logging",
    "generate_ulid",
    "get_logger",
    "get_settings",
    "to_iso8601",
    "utc_now",
]
