"""Detached working copy of one staging record."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from types import MappingProxyType
from typing import Any, Mapping

from stagingreview.errors import GatewayError
from stagingreview.integration.record_gateway import RecordGateway
from stagingreview.models import EDITABLE_FIELDS, StagingRecord

logger = logging.getLogger(__name__)


class EditSession:
    """Holds a working copy of a record's editable fields until saved.

    Nothing reaches the store until ``save``. A successful save closes the
    session and awaits ``on_saved`` (the controller refreshes there); a
    failed save keeps the session open for a retry or cancel.
    """

    def __init__(
        self,
        gateway: RecordGateway,
        on_saved: Callable[[int], Awaitable[None]] | None = None,
    ) -> None:
        self.gateway = gateway
        self.on_saved = on_saved
        self._record_id: int | None = None
        self._original: dict[str, Any] = {}
        self._working: dict[str, Any] = {}

    def open(self, record: StagingRecord) -> None:
        if self.is_open:
            logger.info(f"Discarding edit of record {self._record_id} to edit {record.id}")
            self.cancel()
        self._record_id = record.id
        self._original = record.editable_fields()
        self._working = dict(self._original)

    def set_field(self, name: str, value: Any) -> None:
        if not self.is_open:
            raise RuntimeError("No edit session is open")
        if name not in EDITABLE_FIELDS:
            raise ValueError(f"Field '{name}' is not editable")
        self._working[name] = value

    async def save(self) -> GatewayError | None:
        """Persist the working copy. Returns the error instead of raising it."""
        if not self.is_open:
            raise RuntimeError("No edit session is open")

        record_id = self._record_id
        try:
            await self.gateway.update_record(record_id, self._working)
        except GatewayError as exc:
            logger.warning(f"Saving record {record_id} failed: {exc}")
            return exc

        self._close()
        if self.on_saved is not None:
            await self.on_saved(record_id)
        return None

    def cancel(self) -> None:
        self._close()

    def changed_fields(self) -> dict[str, Any]:
        return {
            name: value
            for name, value in self._working.items()
            if self._original.get(name) != value
        }

    @property
    def is_open(self) -> bool:
        return self._record_id is not None

    @property
    def is_dirty(self) -> bool:
        return bool(self.changed_fields())

    @property
    def record_id(self) -> int | None:
        return self._record_id

    @property
    def working_copy(self) -> Mapping[str, Any]:
        return MappingProxyType(self._working)

    def _close(self) -> None:
        self._record_id = None
        self._original = {}
        self._working = {}
