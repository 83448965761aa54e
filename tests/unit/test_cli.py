"""CLI tests driven through typer's CliRunner against the in-memory store."""

from __future__ import annotations

import httpx
import pytest
from typer.testing import CliRunner

from stagingreview import cli
from stagingreview.integration.record_gateway import RecordGateway
from stagingreview.integration.scraper_client import ScraperClient

runner = CliRunner()


@pytest.fixture
def store_cli(monkeypatch, fake_store):
    """Route every RecordGateway the CLI builds to the fake store."""

    def factory(*args, **kwargs):
        return RecordGateway(transport=httpx.MockTransport(fake_store.handler))

    monkeypatch.setattr(cli, "RecordGateway", factory)
    return fake_store


class TestReviewCommands:
    def test_list(self, store_cli):
        result = runner.invoke(cli.app, ["review", "list"])

        assert result.exit_code == 0
        assert "Covered Card" in result.output
        assert "Pending Products (3)" in result.output

    def test_list_empty_queue(self, store_cli):
        store_cli.records.clear()

        result = runner.invoke(cli.app, ["review", "list"])

        assert result.exit_code == 0
        assert "No pending products to review" in result.output

    def test_approve_uses_reviewer_option(self, store_cli):
        result = runner.invoke(cli.app, ["review", "--by", "alice", "approve", "1"])

        assert result.exit_code == 0
        assert "Product approved successfully" in result.output
        assert store_cli.records[1]["reviewedBy"] == "alice"

    def test_approve_already_reviewed_fails(self, store_cli):
        store_cli.records[2]["approvalStatus"] = "REJECTED"

        result = runner.invoke(cli.app, ["review", "approve", "2"])

        assert result.exit_code == 1
        assert "Failed to approve product" in result.output

    def test_reject(self, store_cli):
        result = runner.invoke(cli.app, ["review", "reject", "3"])

        assert result.exit_code == 0
        assert store_cli.records[3]["approvalStatus"] == "REJECTED"

    def test_delete_declined_at_prompt(self, store_cli):
        result = runner.invoke(cli.app, ["review", "delete", "1"], input="n\n")

        assert result.exit_code == 0
        assert "Delete cancelled" in result.output
        assert 1 in store_cli.records

    def test_delete_with_yes(self, store_cli):
        result = runner.invoke(cli.app, ["review", "delete", "1", "--yes"])

        assert result.exit_code == 0
        assert 1 not in store_cli.records

    def test_show_missing_record(self, store_cli):
        result = runner.invoke(cli.app, ["review", "show", "42"])

        assert result.exit_code == 1
        assert "Failed to load product 42" in result.output


class TestBulkApprove:
    def test_partial_failure_summary(self, store_cli):
        store_cli.fail_bulk_ids = {3}

        result = runner.invoke(cli.app, ["review", "bulk-approve", "1", "3"])

        assert result.exit_code == 0
        assert "Approved: 1" in result.output
        assert "Failed: 1" in result.output
        assert "Pending products remaining: 2" in result.output

    def test_skips_ids_not_pending(self, store_cli):
        result = runner.invoke(cli.app, ["review", "bulk-approve", "2", "99"])

        assert result.exit_code == 0
        assert "skipped: 99" in result.output
        assert store_cli.records[2]["approvalStatus"] == "APPROVED"

    def test_all(self, store_cli):
        result = runner.invoke(cli.app, ["review", "bulk-approve", "--all"])

        assert result.exit_code == 0
        assert all(r["approvalStatus"] == "APPROVED" for r in store_cli.records.values())

    def test_requires_ids_or_all(self, store_cli):
        result = runner.invoke(cli.app, ["review", "bulk-approve"])

        assert result.exit_code != 0
        assert store_cli.requests == []


class TestEditAndStats:
    def test_edit_sets_fields(self, store_cli):
        result = runner.invoke(
            cli.app,
            ["review", "edit", "2", "--set", "annual_rate=19.5", "--set", "category=CARDS_PREMIUM"],
        )

        assert result.exit_code == 0
        assert store_cli.records[2]["annualRate"] == 19.5
        assert store_cli.records[2]["category"] == "CARDS_PREMIUM"

    def test_edit_rejects_non_numeric_rate(self, store_cli):
        result = runner.invoke(cli.app, ["review", "edit", "2", "--set", "annual_rate=high"])

        assert result.exit_code == 1
        assert "Failed to update product" in result.output
        assert store_cli.requests_to("PUT", "/staging/2") == []

    def test_edit_parses_structured_fields(self, store_cli):
        result = runner.invoke(
            cli.app,
            [
                "review",
                "edit",
                "1",
                "--set",
                'key_benefits=["No fees", "Takaful cover"]',
                "--set",
                "sharia_certified=true",
            ],
        )

        assert result.exit_code == 0
        assert store_cli.records[1]["keyBenefits"] == ["No fees", "Takaful cover"]
        assert store_cli.records[1]["shariaCertified"] is True

    def test_edit_rejects_malformed_list(self, store_cli):
        result = runner.invoke(cli.app, ["review", "edit", "1", "--set", "key_benefits=No fees"])

        assert result.exit_code != 0
        assert store_cli.requests == []

    def test_edit_rejects_read_only_field(self, store_cli):
        result = runner.invoke(cli.app, ["review", "edit", "2", "--set", "ai_confidence=1"])

        assert result.exit_code != 0
        assert store_cli.requests == []

    def test_stats(self, store_cli):
        store_cli.records[1]["approvalStatus"] = "APPROVED"

        result = runner.invoke(cli.app, ["stats"])

        assert result.exit_code == 0
        assert "Total Products in Staging: 3" in result.output
        assert "33.3%" in result.output


class TestScrapeCommands:
    def test_trigger(self, monkeypatch):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200, json={"jobId": "job-9", "websiteId": "bank-a", "status": "STARTED"}
            )

        monkeypatch.setattr(
            cli,
            "ScraperClient",
            lambda *a, **kw: ScraperClient(transport=httpx.MockTransport(handler)),
        )

        result = runner.invoke(cli.app, ["scrape", "trigger", "bank-a"])

        assert result.exit_code == 0
        assert "Job ID: job-9" in result.output

    def test_trigger_unreachable(self, monkeypatch):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        monkeypatch.setattr(
            cli,
            "ScraperClient",
            lambda *a, **kw: ScraperClient(transport=httpx.MockTransport(handler)),
        )

        result = runner.invoke(cli.app, ["scrape", "trigger", "bank-a"])

        assert result.exit_code == 1
        assert "Failed to start scraping" in result.output
