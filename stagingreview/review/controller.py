"""Review queue controller: loading, per-record actions and bulk approve.

The controller is the only cache of the pending list. Every mutation goes to
the store first and is followed by a full refetch; local state is never
patched ahead of the store's confirmation.

Refreshes may overlap (an action can be issued while a previous refresh is
in flight). Each refresh is tagged with a sequence number and only the
response of the most recently issued refresh is applied.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import Any

from stagingreview.config import ReviewConfig, get_config
from stagingreview.errors import ErrorKind, GatewayError
from stagingreview.integration.record_gateway import RecordGateway
from stagingreview.models import StagingRecord
from stagingreview.review.edit_session import EditSession
from stagingreview.review.models import (
    ActionOutcome,
    ControllerState,
    EditSessionView,
    ReviewSnapshot,
)
from stagingreview.review.selection import SelectionModel

logger = logging.getLogger(__name__)

Observer = Callable[[ReviewSnapshot], None]
Confirm = Callable[[str], bool]


def auto_confirm(message: str) -> bool:
    return True


class ReviewController:
    """Owns the displayed pending list, the selection and the edit session."""

    def __init__(
        self,
        gateway: RecordGateway,
        confirm: Confirm = auto_confirm,
        review_config: ReviewConfig | None = None,
    ) -> None:
        self.gateway = gateway
        self.confirm = confirm
        self.review_config = review_config or get_config().review
        self.selection = SelectionModel()
        self.edit_session = EditSession(gateway, on_saved=self._on_edit_saved)

        self.state = ControllerState.IDLE
        self.last_error: GatewayError | None = None
        self.last_message: str | None = None
        self._records: list[StagingRecord] = []
        self._issued_seq = 0
        self._observers: list[Observer] = []

    # ------------------------------------------------------------------
    # Observation
    # ------------------------------------------------------------------

    def subscribe(self, observer: Observer) -> Callable[[], None]:
        """Register an observer; returns a function that unregisters it."""
        self._observers.append(observer)

        def unsubscribe() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return unsubscribe

    @property
    def records(self) -> list[StagingRecord]:
        return list(self._records)

    @property
    def record_ids(self) -> list[int]:
        return [record.id for record in self._records]

    @property
    def snapshot(self) -> ReviewSnapshot:
        edit = None
        if self.edit_session.is_open:
            edit = EditSessionView(
                record_id=self.edit_session.record_id,
                fields=dict(self.edit_session.working_copy),
                dirty=self.edit_session.is_dirty,
            )
        return ReviewSnapshot(
            state=self.state,
            records=tuple(self._records),
            selected=self.selection.ids,
            edit=edit,
            error=self.last_error,
            message=self.last_message,
        )

    def _emit(self) -> None:
        snapshot = self.snapshot
        for observer in list(self._observers):
            observer(snapshot)

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    async def refresh(self, keep_status: bool = False) -> bool:
        """Refetch the pending list. Returns True if this response was applied.

        A successful refresh clears the status line unless ``keep_status`` is
        set, which actions use to keep their own outcome message visible.
        """
        self._issued_seq += 1
        seq = self._issued_seq
        self.state = ControllerState.LOADING
        self._emit()

        try:
            records = await self.gateway.list_pending()
        except GatewayError as exc:
            if seq != self._issued_seq:
                logger.debug(f"Discarding failed refresh #{seq}; #{self._issued_seq} is newer")
                return False
            # Keep the previous list visible
            self.state = ControllerState.LOAD_ERROR
            self.last_error = exc
            self.last_message = f"Failed to load products: {exc.message}"
            logger.warning(f"Refresh #{seq} failed: {exc}")
            self._emit()
            return False

        if seq != self._issued_seq:
            logger.debug(f"Discarding stale refresh #{seq}; #{self._issued_seq} is newer")
            return False

        self._records = records
        self.state = ControllerState.LOADED
        if not keep_status:
            self.last_error = None
            self.last_message = None
        stale = self.selection.prune(self.record_ids)
        if stale:
            logger.debug(f"Pruned {len(stale)} ids from selection: {sorted(stale)}")
        self._emit()
        return True

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    def toggle(self, record_id: int) -> bool:
        """Toggle a displayed record; ids outside the list are ignored."""
        if record_id not in self.record_ids:
            logger.debug(f"Ignoring toggle of record {record_id}; not displayed")
            return False
        selected = self.selection.toggle(record_id)
        self._emit()
        return selected

    def select_all(self) -> None:
        self.selection.select_all(self.record_ids)
        self._emit()

    def clear_selection(self) -> None:
        self.selection.clear()
        self._emit()

    @property
    def is_all_selected(self) -> bool:
        return self.selection.is_all_selected(self.record_ids)

    @property
    def is_partially_selected(self) -> bool:
        return self.selection.is_partially_selected(self.record_ids)

    # ------------------------------------------------------------------
    # Single-record actions
    # ------------------------------------------------------------------

    async def approve_one(self, record_id: int) -> ActionOutcome:
        return await self._mutate(
            lambda: self.gateway.approve(
                record_id, self.review_config.reviewer, self.review_config.approve_notes
            ),
            success="Product approved successfully",
            failure="Failed to approve product",
        )

    async def reject_one(self, record_id: int) -> ActionOutcome:
        return await self._mutate(
            lambda: self.gateway.reject(
                record_id, self.review_config.reviewer, self.review_config.reject_notes
            ),
            success="Product rejected",
            failure="Failed to reject product",
        )

    async def delete_one(self, record_id: int) -> ActionOutcome:
        if not self.confirm("Are you sure you want to delete this product?"):
            return ActionOutcome(ok=False, message="Delete cancelled")
        return await self._mutate(
            lambda: self.gateway.delete_record(record_id),
            success="Product deleted",
            failure="Failed to delete product",
        )

    async def _mutate(
        self,
        call: Callable[[], Awaitable[Any]],
        success: str,
        failure: str,
    ) -> ActionOutcome:
        try:
            await call()
        except GatewayError as exc:
            self.last_error = exc
            self.last_message = f"{failure}: {exc.message}"
            self._emit()
            return ActionOutcome(ok=False, message=self.last_message, error=exc)

        self.last_error = None
        self.last_message = success
        await self.refresh(keep_status=True)
        return ActionOutcome(ok=True, message=success)

    # ------------------------------------------------------------------
    # Bulk approve
    # ------------------------------------------------------------------

    async def bulk_approve(self) -> ActionOutcome:
        if not self.selection:
            return ActionOutcome(ok=True, message="No products selected")

        record_ids = list(self.selection)
        try:
            result = await self.gateway.bulk_approve(
                record_ids,
                self.review_config.reviewer,
                self.review_config.bulk_approve_notes,
            )
        except GatewayError as exc:
            self.last_error = exc
            self.last_message = f"Failed to bulk approve products: {exc.message}"
            self._emit()
            return ActionOutcome(ok=False, message=self.last_message, error=exc)

        # Refresh even on partial failure; the reloaded list is ground truth
        applied = await self.refresh()
        if applied and not result.itemised:
            result = result.reconcile(self.record_ids)

        succeeded, failed = result.counts
        error = None
        if failed:
            message = f"{succeeded} products approved, {failed} failed"
            error = GatewayError(
                ErrorKind.PARTIAL_FAILURE,
                message,
                details={"succeeded": sorted(result.succeeded), "failed": sorted(result.failed)},
            )
        else:
            message = f"{succeeded} products approved successfully"
        logger.info(f"Bulk approve of {len(record_ids)} products: {message}")

        # A failed reload keeps its own error on the status line
        if self.state != ControllerState.LOAD_ERROR:
            self.last_error = error
            self.last_message = message
            self._emit()
        return ActionOutcome(
            ok=succeeded > 0 or not failed,
            message=message,
            error=error,
            bulk_result=result,
        )

    # ------------------------------------------------------------------
    # Edit session
    # ------------------------------------------------------------------

    async def open_edit(self, record_id: int) -> ActionOutcome:
        record = next((r for r in self._records if r.id == record_id), None)
        if record is None:
            try:
                record = await self.gateway.get_record(record_id)
            except GatewayError as exc:
                self.last_error = exc
                self.last_message = f"Failed to open product: {exc.message}"
                self._emit()
                return ActionOutcome(ok=False, message=self.last_message, error=exc)

        self.edit_session.open(record)
        self._emit()
        return ActionOutcome(ok=True, message=f"Editing {record.display_name}")

    def set_edit_field(self, name: str, value: Any) -> None:
        self.edit_session.set_field(name, value)
        self._emit()

    def close_edit(self) -> None:
        self.edit_session.cancel()
        self._emit()

    async def save_edit(self) -> ActionOutcome:
        error = await self.edit_session.save()
        if error is not None:
            self.last_error = error
            self.last_message = f"Failed to update product: {error.message}"
            self._emit()
            return ActionOutcome(ok=False, message=self.last_message, error=error)
        return ActionOutcome(ok=True, message="Product updated")

    async def _on_edit_saved(self, record_id: int) -> None:
        self.last_error = None
        self.last_message = "Product updated"
        await self.refresh(keep_status=True)
