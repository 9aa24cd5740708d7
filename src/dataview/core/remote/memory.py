"""
In-memory remote source.

Keeps records in a dict keyed by the key field and answers the same
parameters as the HTTP source. Useful for tests, demos and offline work.
Every call is appended to ``calls`` so callers can check what was sent.
"""

from __future__ import annotations

import copy
import logging
from typing import Any

from dataview.core.exceptions import RemoteOperationError

from .source import register_source

logger = logging.getLogger(__name__)

_RESERVED = ("order_by", "limit", "offset")


@register_source("memory")
class MemoryRemoteSource:
    """
    Remote source backed by a dict.

    Integer keys are assigned on create when the record has none.

    Example:
        >>> source = MemoryRemoteSource([{"id": 1, "name": "Ada"}])
        >>> await source.fetch({"name": "Ada"})
        [{'id': 1, 'name': 'Ada'}]
    """

    def __init__(
        self,
        records: list[dict[str, Any]] | None = None,
        key_field: str = "id",
    ) -> None:
        self.key_field = key_field
        self._records: dict[Any, dict[str, Any]] = {}
        self.calls: list[tuple[str, Any]] = []
        for record in records or []:
            self._records[record[key_field]] = copy.deepcopy(record)

    @property
    def source_name(self) -> str:
        return "memory"

    @property
    def records(self) -> list[dict[str, Any]]:
        """Snapshot of the stored records."""
        return copy.deepcopy(list(self._records.values()))

    def _next_key(self) -> int:
        numeric = [k for k in self._records if isinstance(k, int)]
        return max(numeric, default=0) + 1

    async def fetch(self, params: dict[str, Any]) -> list[dict[str, Any]]:
        self.calls.append(("fetch", dict(params)))

        rows = [
            row
            for row in self._records.values()
            if all(row.get(k) == v for k, v in params.items() if k not in _RESERVED)
        ]

        order_by = params.get("order_by")
        if order_by:
            for spec in reversed(str(order_by).split(",")):
                name = spec.strip().lstrip("-+")
                rows.sort(
                    key=lambda row, n=name: (row.get(n) is None, row.get(n)),
                    reverse=spec.strip().startswith("-"),
                )

        offset = int(params.get("offset", 0) or 0)
        limit = params.get("limit")
        rows = rows[offset:] if limit is None else rows[offset : offset + int(limit)]
        return copy.deepcopy(rows)

    async def fetch_one(self, key: Any) -> dict[str, Any] | None:
        self.calls.append(("fetch_one", key))
        record = self._records.get(key)
        return copy.deepcopy(record) if record is not None else None

    async def create(self, data: dict[str, Any]) -> dict[str, Any]:
        self.calls.append(("create", copy.deepcopy(data)))
        record = copy.deepcopy(data)
        key = record.get(self.key_field)
        if key is None:
            key = self._next_key()
            record[self.key_field] = key
        elif key in self._records:
            raise RemoteOperationError(
                f"Record {key!r} already exists", operation="create", key=key, status_code=409
            )
        self._records[key] = record
        logger.debug("Created record %r", key)
        return copy.deepcopy(record)

    async def update(self, key: Any, data: dict[str, Any]) -> dict[str, Any]:
        self.calls.append(("update", key))
        if key not in self._records:
            raise RemoteOperationError(
                f"Record {key!r} not found", operation="update", key=key, status_code=404
            )
        record = copy.deepcopy(data)
        record[self.key_field] = key
        self._records[key] = record
        return copy.deepcopy(record)

    async def delete(self, key: Any) -> None:
        self.calls.append(("delete", key))
        if key not in self._records:
            raise RemoteOperationError(
                f"Record {key!r} not found", operation="delete", key=key, status_code=404
            )
        del self._records[key]
