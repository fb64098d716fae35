# src/source_monitor/registry.py
import logging
from typing import Callable, Dict, List, Optional, Sequence, Union

from .constants import DEFAULT_DHS_KEYWORDS, LegalWeight, SourceType
from .exceptions import ConfigurationError
from .extractors.request_manager import RequestManager
from .parsers.base_parser import BaseParser
from .parsers.chc_parser import MCOHandbookParser, PublicationsParser
from .parsers.document_parser import DocumentLinkParser
from .parsers.oim_parser import HandbookParser, OpsMemoParser
from .parsers.pa_parser import BulletinParser, CodeParser
from .scraper import Scraper
from .types import DocumentClassification

logger = logging.getLogger(__name__)

PARSER_FACTORIES: Dict[SourceType, Callable[[], BaseParser]] = {
    SourceType.OIM_OPS_MEMO: OpsMemoParser,
    SourceType.OIM_POLICY_CLARIFICATION: OpsMemoParser,
    SourceType.OIM_HANDBOOK: HandbookParser,
    SourceType.PA_BULLETIN: BulletinParser,
    SourceType.PA_CODE: CodeParser,
    SourceType.CHC_PUBLICATIONS: PublicationsParser,
    SourceType.CHC_HANDBOOK: MCOHandbookParser,
    SourceType.DHS_PAGE: DocumentLinkParser,
}

# Keywords used when a monitor of this type configures none
DEFAULT_KEYWORDS: Dict[SourceType, List[str]] = {
    SourceType.PA_BULLETIN: DEFAULT_DHS_KEYWORDS,
}

DOCUMENT_CLASSIFICATION: Dict[SourceType, DocumentClassification] = {
    SourceType.OIM_OPS_MEMO: DocumentClassification(document_type="oim_ops_memo", legal_weight=LegalWeight.GUIDANCE),
    SourceType.OIM_POLICY_CLARIFICATION: DocumentClassification(
        document_type="oim_policy_clarification", legal_weight=LegalWeight.GUIDANCE),
    SourceType.OIM_HANDBOOK: DocumentClassification(document_type="oim_ltc_handbook", legal_weight=LegalWeight.GUIDANCE),
    SourceType.PA_BULLETIN: DocumentClassification(document_type="pa_bulletin", legal_weight=LegalWeight.REGULATORY),
    SourceType.PA_CODE: DocumentClassification(document_type="pa_code", legal_weight=LegalWeight.REGULATORY),
    SourceType.CHC_PUBLICATIONS: DocumentClassification(document_type="chc_waiver", legal_weight=LegalWeight.INFORMATIONAL),
    SourceType.CHC_HANDBOOK: DocumentClassification(document_type="chc_waiver", legal_weight=LegalWeight.GUIDANCE),
}
DEFAULT_CLASSIFICATION = DocumentClassification(
    document_type="general_eligibility", legal_weight=LegalWeight.INFORMATIONAL)


class ScraperRegistry:
    """Builds scrapers for source types; every scraper shares one injected RequestManager."""

    def __init__(self, request_manager: RequestManager):
        self.request_manager = request_manager

    @staticmethod
    def supported_types() -> List[SourceType]:
        return list(PARSER_FACTORIES)

    def get_scraper(self, source_type: Union[SourceType, str],
                    filter_keywords: Optional[Sequence[str]] = None) -> Scraper:
        """Raises ConfigurationError for an unknown source type."""
        source_type = SourceType.from_string(source_type)
        parser = PARSER_FACTORIES[source_type]()
        return Scraper(
            source_type,
            parser,
            self.request_manager,
            filter_keywords=filter_keywords,
            default_keywords=DEFAULT_KEYWORDS.get(source_type),
        )

    @staticmethod
    def classify(source_type: Union[SourceType, str]) -> DocumentClassification:
        """Document type and legal weight handed to ingestion. Unknown types get the general classification."""
        try:
            return DOCUMENT_CLASSIFICATION.get(SourceType.from_string(source_type), DEFAULT_CLASSIFICATION)
        except ConfigurationError:
            logger.warning(f"No document classification for source type '{source_type}'; using general_eligibility.")
            return DEFAULT_CLASSIFICATION
