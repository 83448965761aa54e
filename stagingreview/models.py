"""Pydantic models for staging records and the scraper service.

The record store speaks camelCase JSON; attributes here are snake_case and
populated through aliases.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Iterable

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError
from pydantic.alias_generators import to_camel


class ApprovalStatus(str, Enum):
    """Moderation lifecycle of a staging record."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"

    @classmethod
    def _missing_(cls, value: object) -> ApprovalStatus | None:
        # The store sends PENDING/APPROVED/REJECTED
        if isinstance(value, str):
            lowered = value.lower()
            for member in cls:
                if member.value == lowered:
                    return member
        return None


# Editable attribute -> wire name. Everything else is read-only to the operator.
EDITABLE_FIELDS: dict[str, str] = {
    name: to_camel(name)
    for name in (
        "product_code",
        "product_name",
        "category",
        "sub_category",
        "description",
        "islamic_structure",
        "annual_rate",
        "annual_fee",
        "min_income",
        "min_credit_score",
        "eligibility_criteria",
        "key_benefits",
        "sharia_certified",
        "active",
    )
}

NUMERIC_FIELDS = frozenset({"annual_rate", "annual_fee", "min_income", "min_credit_score"})
INTEGER_FIELDS = frozenset({"min_credit_score"})


class StagingRecord(BaseModel):
    """Scraped product awaiting moderation."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    id: int

    # Editable content
    product_code: str | None = None
    product_name: str | None = None
    category: str | None = None
    sub_category: str | None = None
    description: str | None = None
    islamic_structure: str | None = None
    annual_rate: Decimal | None = None
    annual_fee: Decimal | None = None
    min_income: Decimal | None = None
    min_credit_score: int | None = None
    eligibility_criteria: dict[str, Any] | None = None
    key_benefits: list[str] | None = None
    sharia_certified: bool | None = None
    active: bool | None = None

    # Advisory classification (read-only)
    ai_suggested_category: str | None = None
    ai_confidence: float | None = Field(default=None, ge=0.0, le=1.0)
    data_quality_score: float | None = Field(default=None, ge=0.0, le=1.0)

    # Provenance
    source_website_id: str | None = None
    source_url: str | None = None
    scraped_at: datetime | None = None

    # Lifecycle
    status: ApprovalStatus = Field(default=ApprovalStatus.PENDING, alias="approvalStatus")
    reviewed_by: str | None = None
    reviewed_at: datetime | None = None
    review_notes: str | None = None

    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def is_pending(self) -> bool:
        return self.status == ApprovalStatus.PENDING

    @property
    def display_name(self) -> str:
        return self.product_name or self.product_code or f"#{self.id}"

    def editable_fields(self) -> dict[str, Any]:
        """Snapshot of the editable fields keyed by attribute name."""
        return {name: getattr(self, name) for name in EDITABLE_FIELDS}


_JSON_FIELDS = frozenset({"key_benefits", "eligibility_criteria"})
_FLAG_FIELDS = frozenset({"sharia_certified", "active"})


def parse_field_text(name: str, text: str) -> Any:
    """Convert operator-typed text into the value an editable field holds.

    Lists and objects are given as JSON, flags as true/false/yes/no. Text and
    numeric fields pass through unchanged; numbers are checked by the gateway.

    Raises:
        ValueError: If the text does not fit the field's type
    """
    if name not in _JSON_FIELDS and name not in _FLAG_FIELDS:
        return text

    adapter = TypeAdapter(StagingRecord.model_fields[name].annotation)
    try:
        if name in _JSON_FIELDS:
            return adapter.validate_json(text)
        return adapter.validate_python(text.strip())
    except ValidationError as exc:
        expected = "JSON" if name in _JSON_FIELDS else "true or false"
        raise ValueError(f"{name} expects {expected}, got {text!r}") from exc


class StagingStats(BaseModel):
    """Record counts per lifecycle state."""

    pending: int = Field(default=0, ge=0)
    approved: int = Field(default=0, ge=0)
    rejected: int = Field(default=0, ge=0)

    @property
    def total(self) -> int:
        return self.pending + self.approved + self.rejected

    def percentages(self) -> dict[str, float]:
        """Share of each state in the total, 0.0 for an empty store."""
        total = self.total
        if total == 0:
            return {"pending": 0.0, "approved": 0.0, "rejected": 0.0}
        return {
            "pending": self.pending / total * 100,
            "approved": self.approved / total * 100,
            "rejected": self.rejected / total * 100,
        }


@dataclass(frozen=True, slots=True)
class BulkApproveResult:
    """Per-id outcome of a bulk approval.

    ``itemised`` is False when the store only acknowledged the batch; the
    succeeded set is then a claim until checked against a fresh list.
    """

    succeeded: frozenset[int] = field(default_factory=frozenset)
    failed: frozenset[int] = field(default_factory=frozenset)
    itemised: bool = True

    @property
    def is_partial(self) -> bool:
        return bool(self.failed) and bool(self.succeeded)

    @property
    def counts(self) -> tuple[int, int]:
        return len(self.succeeded), len(self.failed)

    def reconcile(self, pending_ids: Iterable[int]) -> BulkApproveResult:
        """Move ids that are still pending from succeeded to failed."""
        still_pending = self.succeeded & set(pending_ids)
        return BulkApproveResult(
            succeeded=self.succeeded - still_pending,
            failed=self.failed | still_pending,
            itemised=True,
        )


class ScrapeSource(BaseModel):
    """Website configured in the scraper service."""

    model_config = ConfigDict(extra="allow")

    website_id: str
    website_name: str | None = None
    base_url: str | None = None


class ScrapeJob(BaseModel):
    """Acknowledgement of a triggered scrape job."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    job_id: str | None = None
    website_id: str
    status: str
    message: str | None = None

    @property
    def started(self) -> bool:
        return self.status.upper() == "STARTED" and self.job_id is not None
