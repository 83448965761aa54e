"""Pytest configuration and fixtures for staging review tests.

Provides an in-memory record store served through ``httpx.MockTransport``
so the real gateway, controller and CLI code paths are exercised.
"""

from __future__ import annotations

import json
import logging
import re
from copy import deepcopy
from typing import Any

import httpx
import pytest
import pytest_asyncio
import structlog

from stagingreview.config import ReviewConfig, reset_config
from stagingreview.integration.record_gateway import RecordGateway
from stagingreview.review import ReviewController

STORE_URL = "http://store.test/api/admin"
SCRAPER_URL = "http://scraper.test/api"

_RECORD_PATH = re.compile(r"/staging/(\d+)(?:/(approve|reject))?")


class FakeStore:
    """Minimal stand-in for the record store's staging endpoints."""

    def __init__(self, records: list[dict[str, Any]]):
        self.records: dict[int, dict[str, Any]] = {r["id"]: deepcopy(r) for r in records}
        self.requests: list[httpx.Request] = []
        self.fail_bulk_ids: set[int] = set()
        self.legacy_bulk_reply = False

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path.removeprefix("/api/admin")
        method = request.method

        if path == "/staging" and method == "GET":
            pending_only = request.url.params.get("pendingOnly") == "true"
            return httpx.Response(
                200,
                json=[
                    r
                    for r in self.records.values()
                    if not pending_only or r["approvalStatus"] == "PENDING"
                ],
            )

        if path == "/staging/stats" and method == "GET":
            statuses = [r["approvalStatus"] for r in self.records.values()]
            return httpx.Response(
                200,
                json={
                    "pending": statuses.count("PENDING"),
                    "approved": statuses.count("APPROVED"),
                    "rejected": statuses.count("REJECTED"),
                },
            )

        if path == "/staging/bulk-approve" and method == "POST":
            body = json.loads(request.content)
            succeeded, failed = [], []
            for record_id in body["productIds"]:
                record = self.records.get(record_id)
                if (
                    record_id in self.fail_bulk_ids
                    or record is None
                    or record["approvalStatus"] != "PENDING"
                ):
                    failed.append(record_id)
                    continue
                self._review(record, "APPROVED", body)
                succeeded.append(record_id)
            if self.legacy_bulk_reply:
                return httpx.Response(
                    200, json={"success": True, "count": len(body["productIds"])}
                )
            return httpx.Response(200, json={"succeeded": succeeded, "failed": failed})

        match = _RECORD_PATH.fullmatch(path)
        if match is None:
            return httpx.Response(404, json={"message": f"No route for {method} {path}"})

        record_id, action = int(match.group(1)), match.group(2)
        record = self.records.get(record_id)
        if record is None:
            return _error(404, "NOT_FOUND", f"Staging product not found: {record_id}")

        if action and method == "POST":
            if record["approvalStatus"] != "PENDING":
                return _error(409, "INVALID_STATE", f"Product {record_id} already reviewed")
            status = "APPROVED" if action == "approve" else "REJECTED"
            self._review(record, status, json.loads(request.content or b"{}"))
            return httpx.Response(200, json={"success": True, "productId": record_id})

        if method == "GET":
            return httpx.Response(200, json=record)
        if method == "PUT":
            record.update(json.loads(request.content))
            return httpx.Response(200, json=record)
        if method == "DELETE":
            del self.records[record_id]
            return httpx.Response(200, json={"success": True, "productId": record_id})

        return httpx.Response(405)

    @staticmethod
    def _review(record: dict[str, Any], status: str, body: dict[str, Any]) -> None:
        record["approvalStatus"] = status
        record["reviewedBy"] = body.get("reviewedBy")
        record["reviewNotes"] = body.get("reviewNotes")

    def requests_to(self, method: str, path: str) -> list[httpx.Request]:
        return [
            r
            for r in self.requests
            if r.method == method and r.url.path.removeprefix("/api/admin") == path
        ]


def _error(status: int, code: str, message: str) -> httpx.Response:
    return httpx.Response(
        status, json={"status": "error", "errorCode": code, "message": message}
    )


@pytest.fixture(autouse=True)
def setup_test_env(monkeypatch):
    """Point the clients at fake hosts and reload config per test."""
    monkeypatch.setenv("STORE_API_URL", STORE_URL)
    monkeypatch.setenv("SCRAPER_API_URL", SCRAPER_URL)
    monkeypatch.setenv("REVIEWER_NAME", "admin")
    monkeypatch.setenv("LOG_LEVEL", "DEBUG")
    reset_config()
    yield
    reset_config()


@pytest.fixture(autouse=True)
def restore_logging():
    """Undo any configure_logging() call made during a test."""
    root = logging.getLogger()
    level = root.level
    yield
    for handler in root.handlers[:]:
        if isinstance(handler.formatter, structlog.stdlib.ProcessorFormatter):
            root.removeHandler(handler)
            handler.close()
    root.setLevel(level)
    structlog.reset_defaults()


@pytest.fixture
def staging_payloads() -> list[dict[str, Any]]:
    """Three pending records as the store sends them (A, B, C)."""
    return [
        {
            "id": 1,
            "productCode": "HF-01",
            "productName": "Home Finance Murabaha",
            "category": "FINANCING",
            "description": "Home purchase financing",
            "islamicStructure": "Murabaha",
            "annualRate": 4.25,
            "aiSuggestedCategory": "HOME_FINANCE",
            "aiConfidence": 0.92,
            "dataQualityScore": 0.85,
            "sourceWebsiteId": "bank-a",
            "approvalStatus": "PENDING",
        },
        {
            "id": 2,
            "productCode": "CC-02",
            "productName": "Covered Card",
            "category": "CARDS",
            "islamicStructure": "Tawarruq",
            "annualRate": 18.0,
            "aiSuggestedCategory": "CREDIT_CARD",
            "aiConfidence": 0.71,
            "dataQualityScore": None,
            "sourceWebsiteId": "bank-a",
            "approvalStatus": "PENDING",
        },
        {
            "id": 3,
            "productCode": "SA-03",
            "productName": "Savings Mudaraba",
            "category": "SAVINGS",
            "islamicStructure": "Mudaraba",
            "annualRate": 2.1,
            "sourceWebsiteId": "bank-b",
            "approvalStatus": "PENDING",
        },
    ]


@pytest.fixture
def fake_store(staging_payloads) -> FakeStore:
    return FakeStore(staging_payloads)


@pytest_asyncio.fixture()
async def gateway(fake_store: FakeStore) -> RecordGateway:
    client = RecordGateway(transport=httpx.MockTransport(fake_store.handler))
    try:
        yield client
    finally:
        await client.close()


@pytest.fixture
def controller(gateway: RecordGateway) -> ReviewController:
    return ReviewController(gateway, review_config=ReviewConfig(reviewer="tester"))
