# src/source_monitor/storage/models.py
# Pydantic models for rows of the monitor tables. Enum-valued columns are
# stored as their string values.

from typing import Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator
from datetime import datetime

from ..constants import CheckFrequency, IngestionStatus, SourceType


class SourceMonitor(BaseModel):
    """One watched external source and its last-known state."""
    id: str
    source_name: str = Field(..., description="Unique human-readable name")
    source_url: str
    source_type: SourceType
    check_frequency: CheckFrequency
    last_checked_at: Optional[datetime] = Field(None, description="None means never checked")
    last_content_hash: Optional[str] = Field(None, description="Set once the first scrape succeeded")
    last_change_detected_at: Optional[datetime] = None
    last_item_urls: Optional[List[str]] = Field(None, description="Item URLs from the last successful scrape")
    is_active: bool = True
    auto_ingest: bool = True
    filter_keywords: Optional[List[str]] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class SourceChangeLog(BaseModel):
    """Append-only audit row written once per detected change."""
    id: str
    monitor_id: str
    source_name: Optional[str] = Field(None, description="Filled in when read joined with source_monitors")
    detected_at: datetime
    previous_hash: Optional[str] = None
    new_hash: Optional[str] = None
    change_type: Optional[str] = None
    change_summary: Optional[str] = None
    items_added: int = 0
    items_removed: int = 0
    auto_ingested: bool = False
    ingestion_status: IngestionStatus = IngestionStatus.PENDING
    ingestion_error: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class MonitorStatus(BaseModel):
    total_monitors: int = 0
    active_monitors: int = 0
    by_frequency: Dict[str, int] = Field(default_factory=lambda: {f.value: 0 for f in CheckFrequency})


class MonitorDefinition(BaseModel):
    """A monitor as written in configuration (``monitors:`` list)."""
    source_name: str
    source_url: str
    source_type: SourceType
    check_frequency: CheckFrequency
    is_active: bool = True
    auto_ingest: bool = True
    filter_keywords: Optional[List[str]] = None

    @field_validator("source_type", mode="before")
    @classmethod
    def _source_type(cls, value):
        return SourceType.from_string(value)

    @field_validator("check_frequency", mode="before")
    @classmethod
    def _check_frequency(cls, value):
        return CheckFrequency.from_string(value)
