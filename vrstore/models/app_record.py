"""
App record models for the VR app store backend.

ScrapedAppRecord is the best-effort output of a storefront extractor,
CatalogAppRecord is the authoritative catalog entry. Python attributes are
snake_case; the wire format is camelCase via aliases.
"""
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    field_serializer,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

from vrstore.utils.file_size import format_file_size

SHORT_DESCRIPTION_LIMIT = 500
MAX_SCREENSHOTS = 5

# Fields an extractor can fill and the merge engine can act on.
MERGEABLE_FIELDS = [
    "title",
    "developer",
    "package_name_guess",
    "description",
    "short_description",
    "category",
    "icon_url",
    "screenshots",
    "rating",
    "file_size",
    "version",
    "download_url",
]

# Scraped field -> catalog field, where the names differ.
CATALOG_FIELD_MAP = {
    "package_name_guess": "package_name",
}

_CAMEL_TO_SNAKE = {to_camel(name): name for name in MERGEABLE_FIELDS}
_CAMEL_TO_SNAKE.update({"packageName": "package_name_guess", "package_name": "package_name_guess"})


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def normalize_field_name(name: str) -> str:
    """Accept a field name in either snake_case or its camelCase alias."""
    return _CAMEL_TO_SNAKE.get(name, name)


def is_empty_value(value: Any) -> bool:
    """True for None, blank strings and empty collections."""
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, dict, set, tuple)):
        return len(value) == 0
    return False


class ConfidenceTier(str, Enum):
    """How far a scraped field can be trusted."""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class MergeDecision(str, Enum):
    """Per-field policy for combining a scraped value with an existing one."""
    OVERWRITE = "overwrite"
    MERGE = "merge"
    KEEP = "keep"
    SUGGEST = "suggest"

    @classmethod
    def parse(cls, value: Any) -> "MergeDecision":
        """
        Resolve a user-supplied decision.

        ``merge_or_overwrite`` is read as overwrite; anything unrecognized
        falls back to suggest.
        """
        if isinstance(value, cls):
            return value
        text = str(value or "").strip().lower()
        if text == "merge_or_overwrite":
            return cls.OVERWRITE
        try:
            return cls(text)
        except ValueError:
            return cls.SUGGEST


class StoreModel(BaseModel):
    """Base model: camelCase on the wire, snake_case in Python."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_response(self) -> Dict[str, Any]:
        """Serialize for an HTTP response."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class Screenshot(StoreModel):
    """Screenshot reference with optional caption."""
    url: str
    caption: Optional[str] = None


class ScrapedAppRecord(StoreModel):
    """
    Partial app record produced by a storefront extractor.

    Every content field is independently optional: None means the field
    could not be extracted. Blank strings are normalized to None so later
    stages only ever see "present and non-empty" or "absent".
    """
    # Identity hints
    title: Optional[str] = None
    developer: Optional[str] = None
    package_name_guess: Optional[str] = None

    # Descriptive
    description: Optional[str] = None
    short_description: Optional[str] = None

    # Classification
    category: Optional[str] = None

    # Commerce / media
    icon_url: Optional[str] = None
    screenshots: List[Screenshot] = Field(default_factory=list)
    rating: Optional[float] = None
    file_size: Optional[int] = None
    version: Optional[str] = None
    download_url: Optional[str] = None

    # Provenance
    source_url: str
    source_store: str
    scraped_at: datetime = Field(default_factory=utc_now)

    # Review metadata (never merged)
    fallback_fields: List[str] = Field(default_factory=list)
    matched_rules: Dict[str, str] = Field(default_factory=dict)

    @field_validator(
        "title", "developer", "package_name_guess", "description",
        "short_description", "category", "icon_url", "version", "download_url",
        mode="before",
    )
    @classmethod
    def _blank_to_none(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = value.strip()
            return value or None
        return value

    @field_validator("screenshots")
    @classmethod
    def _cap_screenshots(cls, value: List[Screenshot]) -> List[Screenshot]:
        return value[:MAX_SCREENSHOTS]

    @field_validator("rating")
    @classmethod
    def _rating_in_range(cls, value: Optional[float]) -> Optional[float]:
        if value is None or not 0.0 <= value <= 5.0:
            return None
        return round(value, 2)

    @model_validator(mode="after")
    def _derive_short_description(self) -> "ScrapedAppRecord":
        # Derived from description only, never scraped on its own
        if self.description and len(self.description) > SHORT_DESCRIPTION_LIMIT:
            self.short_description = self.description[:SHORT_DESCRIPTION_LIMIT] + "..."
        else:
            self.short_description = self.description
        return self

    def get_present_fields(self) -> List[str]:
        """Return mergeable fields that hold a value."""
        return [name for name in MERGEABLE_FIELDS if not is_empty_value(getattr(self, name))]

    def get_missing_fields(self) -> List[str]:
        """Return mergeable fields that are absent."""
        present = self.get_present_fields()
        return [name for name in MERGEABLE_FIELDS if name not in present]

    def is_fallback(self, field: str) -> bool:
        """True when the field holds a storefront default, not an extracted value."""
        return field in self.fallback_fields


class CatalogAppRecord(StoreModel):
    """
    Authoritative catalog entry, owned by the catalog store.

    The merge engine treats it as immutable and always returns a copy.
    """
    id: Optional[int] = None
    package_name: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    short_description: Optional[str] = None
    version: Optional[str] = None
    version_code: Optional[int] = None
    category: Optional[str] = None
    developer: Optional[str] = None
    rating: Optional[float] = None
    download_count: int = 0
    file_size: Optional[int] = None
    download_url: Optional[str] = None
    icon_url: Optional[str] = None
    featured: bool = False
    active: bool = True
    tags: List[str] = Field(default_factory=list)
    screenshots: List[Screenshot] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("tags", mode="before")
    @classmethod
    def _split_tags(cls, value: Any) -> Any:
        # Older rows store tags as a comma-separated string
        if isinstance(value, str):
            return [tag.strip() for tag in value.split(",") if tag.strip()]
        if value is None:
            return []
        return value

    @computed_field(alias="fileSizeDisplay")
    @property
    def file_size_display(self) -> Optional[str]:
        """Human-readable file size."""
        if self.file_size is None:
            return None
        return format_file_size(self.file_size)


class MergeStrategy(StoreModel):
    """Per-field confidence tiers and the default decision each implies."""
    recommendations: Dict[str, MergeDecision] = Field(default_factory=dict)
    confidence: Dict[str, ConfidenceTier] = Field(default_factory=dict)

    @field_serializer("recommendations", "confidence")
    def _camel_keys(self, value: Dict[str, Any]) -> Dict[str, Any]:
        return {to_camel(key): item for key, item in value.items()}


class ScrapeErrorType(str, Enum):
    """Why a single URL produced no record."""
    INVALID_URL = "invalid_url"
    UNSUPPORTED_URL = "unsupported_url"
    FETCH_FAILURE = "fetch_failure"
    EXTRACTION_ERROR = "extraction_error"
    CANCELLED = "cancelled"


class ScrapeOutcome(StoreModel):
    """Result of scraping one URL: either a record or a structured error."""
    success: bool
    url: Optional[str] = None

    # Success
    data: Optional[ScrapedAppRecord] = None
    source: Optional[str] = None
    scraped_at: Optional[datetime] = None
    merge_strategy: Optional[MergeStrategy] = None

    # Failure
    error: Optional[str] = None
    error_type: Optional[ScrapeErrorType] = None
    supported_stores: Optional[List[str]] = None

    @classmethod
    def succeeded(
        cls,
        url: str,
        record: ScrapedAppRecord,
        strategy: MergeStrategy,
    ) -> "ScrapeOutcome":
        return cls(
            success=True,
            url=url,
            data=record,
            source=record.source_store,
            scraped_at=record.scraped_at,
            merge_strategy=strategy,
        )

    @classmethod
    def failed(
        cls,
        url: Optional[str],
        error: str,
        error_type: ScrapeErrorType,
        supported_stores: Optional[List[str]] = None,
    ) -> "ScrapeOutcome":
        return cls(
            success=False,
            url=url,
            error=error,
            error_type=error_type,
            supported_stores=supported_stores,
        )


class BatchResult(StoreModel):
    """Outcome of a batch scrape; results are in input order."""
    success: bool = True
    results: List[ScrapeOutcome] = Field(default_factory=list)
    success_count: int = 0
    error_count: int = 0

    @classmethod
    def from_outcomes(cls, outcomes: List[ScrapeOutcome]) -> "BatchResult":
        succeeded = sum(1 for outcome in outcomes if outcome.success)
        return cls(
            results=outcomes,
            success_count=succeeded,
            error_count=len(outcomes) - succeeded,
        )
