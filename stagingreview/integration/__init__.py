"""HTTP clients for the record store and the scraper service."""

from stagingreview.integration.record_gateway import RecordGateway
from stagingreview.integration.scraper_client import ScraperClient

__all__ = ["RecordGateway", "ScraperClient"]
