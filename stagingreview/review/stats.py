"""Dashboard counts for the landing view."""

from __future__ import annotations

from stagingreview.integration.record_gateway import RecordGateway
from stagingreview.models import StagingStats


class StatsAggregator:
    def __init__(self, gateway: RecordGateway) -> None:
        self.gateway = gateway

    async def load(self) -> StagingStats:
        return await self.gateway.get_stats()

    @staticmethod
    def format_percentages(stats: StagingStats) -> dict[str, str]:
        return {state: f"{share:.1f}%" for state, share in stats.percentages().items()}
