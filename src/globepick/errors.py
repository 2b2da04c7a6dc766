"""Error taxonomy for load-time failures.

Query-time misses (sentinel pixel, unknown id or name) are not errors;
the query methods return ``None`` for them.
"""

from __future__ import annotations

from typing import Optional


class GlobePickError(Exception):
    """Base class for every error raised by globepick."""


class TopologyParseError(GlobePickError, ValueError):
    """Malformed or inconsistent boundary payload.

    Parameters
    ----------
    message : str
        What went wrong.
    record : int, optional
        Zero-based input position of the offending record.
    feature_id : int, optional
        Id of the offending record, when it got far enough to have one.
    """

    def __init__(
        self,
        message: str,
        *,
        record: Optional[int] = None,
        feature_id: Optional[int] = None,
    ) -> None:
        self.record = record
        self.feature_id = feature_id
        super().__init__(self._format(message))

    def _format(self, message: str) -> str:
        where = []
        if self.record is not None:
            where.append(f"record {self.record}")
        if self.feature_id is not None:
            where.append(f"id {self.feature_id}")
        if not where:
            return message
        return f"{message} ({', '.join(where)})"


class DuplicateIdError(TopologyParseError):
    """Two features share the same id."""
