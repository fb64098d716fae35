# src/source_monitor/ingestion.py
from abc import ABC, abstractmethod
from typing import List

from .types import IngestionStats, ScrapedItem


class IngestionPipeline(ABC):
    """
    Downstream collaborator that turns newly discovered items into searchable
    documents. The monitor only calls it; implementations live elsewhere.
    """

    @abstractmethod
    def ingest_scraped_items(self, items: List[ScrapedItem], document_type: str,
                             source_authority: str, legal_weight: str) -> IngestionStats:
        """
        Ingests the given items. Per-item failures are reported through
        ``IngestionStats.errors``. A failure of the whole batch is raised as
        ``IngestionError``; any other exception is treated as a bug in the
        pipeline but still marks the change as failed.
        """
        pass
