"""Scraper service client: trigger ingestion jobs and inspect sources."""

from __future__ import annotations

import logging
from typing import Any

import httpx
from pydantic import ValidationError

from stagingreview.config import get_config
from stagingreview.errors import ErrorKind, GatewayError
from stagingreview.models import ScrapeJob, ScrapeSource

logger = logging.getLogger(__name__)


class ScraperClient:
    """Client for the scraper service.

    Triggering is fire-and-forget: the console never polls job state. Once a
    job finishes externally, the new records show up on the next refresh of
    the review queue.
    """

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        config = get_config()
        self.base_url = (base_url or config.scraper.base_url).rstrip("/")
        self.client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout or config.scraper.timeout_seconds,
            headers={"Accept": "application/json"},
            transport=transport,
        )

    async def trigger(self, website_id: str) -> ScrapeJob:
        """Start a scrape of one configured website."""
        if not website_id.strip():
            raise GatewayError(ErrorKind.INVALID_INPUT, "website id is required")

        body = await self._call("POST", f"/scraper/trigger/{website_id}")
        try:
            job = ScrapeJob.model_validate(body)
        except ValidationError as exc:
            raise GatewayError(
                ErrorKind.SERVER_ERROR, f"Malformed scrape job response: {body!r}"
            ) from exc

        if job.status.upper() == "FAILED":
            raise GatewayError(ErrorKind.SERVER_ERROR, job.message or "Scrape failed to start")
        logger.info(f"Scrape triggered for {website_id}: job={job.job_id}")
        return job

    async def list_sources(self) -> list[ScrapeSource]:
        body = await self._call("GET", "/scraper/sources")
        if not isinstance(body, list):
            raise GatewayError(ErrorKind.SERVER_ERROR, "Expected a list of scrape sources")
        sources = []
        for item in body:
            try:
                sources.append(ScrapeSource.model_validate(item))
            except ValidationError:
                logger.warning(f"Skipping malformed scrape source: {item!r}")
        return sources

    async def get_job_status(self, job_id: str) -> dict[str, Any]:
        body = await self._call("GET", f"/scraper/status/{job_id}")
        if body is None:
            raise GatewayError(ErrorKind.NOT_FOUND, f"Scrape job {job_id} not found")
        return body

    async def get_history(self, website_id: str) -> list[dict[str, Any]]:
        body = await self._call("GET", f"/scraper/history/{website_id}")
        return body or []

    async def _call(self, method: str, path: str) -> Any:
        try:
            response = await self.client.request(method, path)
        except httpx.RequestError as exc:
            raise GatewayError.from_transport(exc) from exc

        # The trigger endpoint reports startup failures as a 500 carrying a job body
        if response.status_code >= 500 and path.startswith("/scraper/trigger/"):
            try:
                body = response.json()
            except ValueError:
                body = None
            if isinstance(body, dict) and body.get("status"):
                raise GatewayError(
                    ErrorKind.SERVER_ERROR,
                    body.get("message") or "Failed to start scraping",
                    status_code=response.status_code,
                )

        if response.is_error:
            raise GatewayError.from_response(response)
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise GatewayError(
                ErrorKind.SERVER_ERROR, f"Invalid JSON from scraper service: {response.text[:200]!r}"
            ) from exc

    async def close(self) -> None:
        """Close the HTTP client."""
        await self.client.aclose()

    async def __aenter__(self) -> ScraperClient:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
