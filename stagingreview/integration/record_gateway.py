"""Async client for the staging record store API."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from decimal import Decimal, InvalidOperation
from typing import Any, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from stagingreview.config import get_config
from stagingreview.errors import ErrorKind, GatewayError
from stagingreview.models import (
    EDITABLE_FIELDS,
    INTEGER_FIELDS,
    NUMERIC_FIELDS,
    BulkApproveResult,
    StagingRecord,
    StagingStats,
)

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

# Wire name -> attribute name
_WIRE_TO_ATTR = {wire: attr for attr, wire in EDITABLE_FIELDS.items()}


class RecordGateway:
    """Typed client over the record store's ``/staging`` endpoints.

    Every call is a fresh round trip; nothing is cached here.
    """

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        config = get_config()
        self.base_url = (base_url or config.store.base_url).rstrip("/")
        self.client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout or config.store.timeout_seconds,
            headers={"Accept": "application/json"},
            transport=transport,
        )

    async def list_pending(self) -> list[StagingRecord]:
        """Fetch pending records in store order."""
        records = await self._list(pending_only=True)
        pending = [record for record in records if record.is_pending]
        if len(pending) != len(records):
            logger.warning(
                f"Store returned {len(records) - len(pending)} non-pending records "
                "for a pending-only query; dropping them"
            )
        return pending

    async def list_all(self) -> list[StagingRecord]:
        """Fetch every staging record regardless of status."""
        return await self._list(pending_only=False)

    async def get_record(self, record_id: int) -> StagingRecord:
        response = await self._request("GET", f"/staging/{record_id}")
        return _parse(StagingRecord, self._json(response))

    async def update_record(self, record_id: int, fields: Mapping[str, Any]) -> None:
        """Partially update editable fields.

        Keys may be attribute names (``annual_rate``) or wire names
        (``annualRate``). Read-only keys and non-numeric values for numeric
        fields raise ``INVALID_INPUT`` before anything is sent.
        """
        payload = build_update_payload(fields)
        await self._request("PUT", f"/staging/{record_id}", json=payload)
        logger.info(f"Updated staging record {record_id}: {sorted(payload)}")

    async def approve(self, record_id: int, reviewed_by: str, notes: str | None = None) -> None:
        await self._request(
            "POST",
            f"/staging/{record_id}/approve",
            json={"reviewedBy": reviewed_by, "reviewNotes": notes},
        )
        logger.info(f"Approved staging record {record_id} by {reviewed_by}")

    async def reject(self, record_id: int, reviewed_by: str, notes: str | None = None) -> None:
        await self._request(
            "POST",
            f"/staging/{record_id}/reject",
            json={"reviewedBy": reviewed_by, "reviewNotes": notes},
        )
        logger.info(f"Rejected staging record {record_id} by {reviewed_by}")

    async def bulk_approve(
        self,
        record_ids: Iterable[int],
        reviewed_by: str,
        notes: str | None = None,
    ) -> BulkApproveResult:
        """Approve several records; each id succeeds or fails independently."""
        requested = list(dict.fromkeys(record_ids))
        if not requested:
            return BulkApproveResult()

        response = await self._request(
            "POST",
            "/staging/bulk-approve",
            json={"productIds": requested, "reviewedBy": reviewed_by, "reviewNotes": notes},
        )
        body = self._json(response) if response.content else {}
        result = _parse_bulk_result(body, requested)
        logger.info(
            f"Bulk approve by {reviewed_by}: "
            f"{len(result.succeeded)} succeeded, {len(result.failed)} failed"
        )
        return result

    async def delete_record(self, record_id: int) -> None:
        await self._request("DELETE", f"/staging/{record_id}")
        logger.info(f"Deleted staging record {record_id}")

    async def get_stats(self) -> StagingStats:
        response = await self._request("GET", "/staging/stats")
        return _parse(StagingStats, self._json(response))

    async def _list(self, pending_only: bool) -> list[StagingRecord]:
        response = await self._request(
            "GET", "/staging", params={"pendingOnly": "true" if pending_only else "false"}
        )
        body = self._json(response)
        if not isinstance(body, list):
            raise GatewayError(
                ErrorKind.SERVER_ERROR,
                f"Expected a list of staging records, got {type(body).__name__}",
            )
        return [_parse(StagingRecord, item) for item in body]

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        logger.debug(f"{method} {self.base_url}{path}")
        try:
            response = await self.client.request(method, path, **kwargs)
        except httpx.RequestError as exc:
            error = GatewayError.from_transport(exc)
            logger.warning(f"{method} {path} failed: {error}")
            raise error from exc

        if response.is_error:
            error = GatewayError.from_response(response)
            logger.warning(f"{method} {path} -> {response.status_code}: {error}")
            raise error
        return response

    @staticmethod
    def _json(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as exc:
            raise GatewayError(
                ErrorKind.SERVER_ERROR,
                f"Invalid JSON from record store: {response.text[:200]!r}",
                status_code=response.status_code,
            ) from exc

    async def close(self) -> None:
        """Close the HTTP client."""
        await self.client.aclose()

    async def __aenter__(self) -> RecordGateway:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()


def build_update_payload(fields: Mapping[str, Any]) -> dict[str, Any]:
    """Translate editable fields into the store's JSON body."""
    payload: dict[str, Any] = {}
    for key, value in fields.items():
        attr = key if key in EDITABLE_FIELDS else _WIRE_TO_ATTR.get(key)
        if attr is None:
            raise GatewayError(ErrorKind.INVALID_INPUT, f"Field '{key}' is not editable")
        if attr in NUMERIC_FIELDS:
            value = _coerce_number(attr, value)
        payload[EDITABLE_FIELDS[attr]] = value
    return payload


def _coerce_number(name: str, value: Any) -> int | float | None:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    if isinstance(value, bool):
        raise GatewayError(ErrorKind.INVALID_INPUT, f"{name} must be numeric, got {value!r}")
    try:
        number = Decimal(str(value).strip())
    except InvalidOperation as exc:
        raise GatewayError(
            ErrorKind.INVALID_INPUT, f"{name} must be numeric, got {value!r}"
        ) from exc
    if not number.is_finite():
        raise GatewayError(ErrorKind.INVALID_INPUT, f"{name} must be finite, got {value!r}")
    if name in INTEGER_FIELDS:
        if number != number.to_integral_value():
            raise GatewayError(ErrorKind.INVALID_INPUT, f"{name} must be a whole number")
        return int(number)
    return float(number)


def _parse_bulk_result(body: Any, requested: list[int]) -> BulkApproveResult:
    if isinstance(body, dict) and ("succeeded" in body or "failed" in body):
        succeeded = frozenset(int(i) for i in body.get("succeeded") or [])
        failed = frozenset(int(i) for i in body.get("failed") or []) - succeeded
        # Ids the store did not mention are treated as failed
        unreported = set(requested) - succeeded - failed
        return BulkApproveResult(succeeded=succeeded, failed=failed | unreported)

    # Legacy store reply ({success, count}) does not itemise; callers
    # reconcile against a refreshed list.
    return BulkApproveResult(succeeded=frozenset(requested), itemised=False)


def _parse(model: type[ModelT], data: Any) -> ModelT:
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        raise GatewayError(
            ErrorKind.SERVER_ERROR,
            f"Malformed {model.__name__} from record store: {exc.error_count()} validation errors",
            details={"errors": exc.errors(include_url=False)},
        ) from exc
