# src/source_monitor/types.py
from typing import Dict, Any, List, Optional
from pydantic import BaseModel, Field
from datetime import date as DateType, datetime

from .constants import ChangeType, CheckFrequency, IngestionStatus, LegalWeight


class ScrapedItem(BaseModel):
    title: str = Field(..., description="Link text or composed title of the item")
    url: str = Field(..., description="Absolute URL of the item")
    description: Optional[str] = Field(None, description="Memo number, section number, agency, citation or kind")
    date: Optional[DateType] = Field(None, description="Publication date when it can be derived")


class ScrapeMetadata(BaseModel):
    scraped_at: datetime
    source_url: str
    item_count: int = 0
    http_status: int = 0
    content_type: str = ""


class ScraperResult(BaseModel):
    content_hash: str = Field(..., description="SHA-256 of the raw fetched bytes")
    content: str = Field("", description="Decoded page text")
    # None means the item list is unknown (only a hash was stored for the last check)
    items: Optional[List[ScrapedItem]] = Field(default_factory=list)
    metadata: Optional[ScrapeMetadata] = None


class ChangeDetection(BaseModel):
    has_changes: bool
    change_type: ChangeType
    new_items: List[ScrapedItem] = Field(default_factory=list)
    removed_items: List[ScrapedItem] = Field(default_factory=list)
    previous_hash: Optional[str] = None
    new_hash: str
    summary: str


class ScrapeOutcome(BaseModel):
    """Result value of one fetch+parse+compare: either a result or an error, never both."""
    result: Optional[ScraperResult] = None
    change_detection: Optional[ChangeDetection] = None
    error: Optional[str] = None
    error_type: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.result is not None


class IngestionStats(BaseModel):
    documents_processed: int = 0
    documents_skipped: int = 0
    chunks_created: int = 0
    errors: List[str] = Field(default_factory=list)


class DocumentClassification(BaseModel):
    document_type: str
    legal_weight: LegalWeight


class RunOptions(BaseModel):
    frequency: Optional[CheckFrequency] = None
    source_name: Optional[str] = None
    force: bool = False
    dry_run: bool = False


class SourceRunResult(BaseModel):
    source_name: str
    source_url: str
    checked: bool = False
    has_changes: bool = False
    ingested: bool = False
    ingestion_status: Optional[IngestionStatus] = None
    change_detection: Optional[ChangeDetection] = None
    error: Optional[str] = None


class RunReport(BaseModel):
    sources_checked: int = 0
    changes_detected: int = 0
    ingestions_succeeded: int = 0
    ingestions_failed: int = 0
    cancelled: bool = False
    details: List[SourceRunResult] = Field(default_factory=list)
    started_at: datetime
    completed_at: Optional[datetime] = None


# Configuration dictionary structure (simplified)
Config = Dict[str, Any]
