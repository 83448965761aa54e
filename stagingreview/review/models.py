"""Data structures emitted by the review controller."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from stagingreview.errors import GatewayError
from stagingreview.models import BulkApproveResult, StagingRecord


class ControllerState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    LOADED = "loaded"
    LOAD_ERROR = "load-error"


@dataclass(frozen=True, slots=True)
class EditSessionView:
    record_id: int
    fields: dict[str, Any]
    dirty: bool


@dataclass(frozen=True, slots=True)
class ReviewSnapshot:
    """Everything an observer needs to render the review queue."""

    state: ControllerState
    records: tuple[StagingRecord, ...]
    selected: frozenset[int]
    edit: EditSessionView | None = None
    error: GatewayError | None = None
    message: str | None = None

    @property
    def record_ids(self) -> list[int]:
        return [record.id for record in self.records]

    @property
    def all_selected(self) -> bool:
        return bool(self.records) and len(self.selected) == len(self.records)

    @property
    def partially_selected(self) -> bool:
        return 0 < len(self.selected) < len(self.records)


@dataclass(slots=True)
class ActionOutcome:
    """Result of one operator action, ready to show as a status message."""

    ok: bool
    message: str
    error: GatewayError | None = None
    bulk_result: BulkApproveResult | None = None
