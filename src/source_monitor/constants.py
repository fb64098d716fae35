# src/source_monitor/constants.py
from enum import Enum
from typing import Dict

from .exceptions import ConfigurationError

DEFAULT_USER_AGENT = "RAG-Medicaid-Local/1.0 (source monitor; python-requests)"

# HTTP Headers
COMMON_HEADERS = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
    "Accept-Encoding": "gzip, deflate",
    "Connection": "keep-alive",
}

# Source authority handed to ingestion for everything fetched from an official site
PRIMARY_SOURCE_AUTHORITY = "primary"


class _LookupEnum(str, Enum):
    """String enum that raises ConfigurationError on unknown values."""

    @classmethod
    def from_string(cls, value: str):
        if isinstance(value, cls):
            return value
        normalized = str(value).strip().lower()
        for member in cls:
            if member.value == normalized:
                return member
        allowed = ", ".join(m.value for m in cls)
        raise ConfigurationError(f"Unknown {cls.__name__} '{value}'. Expected one of: {allowed}")


class SourceType(_LookupEnum):
    OIM_OPS_MEMO = "oim_ops_memo"
    OIM_POLICY_CLARIFICATION = "oim_policy_clarification"
    OIM_HANDBOOK = "oim_handbook"
    PA_BULLETIN = "pa_bulletin"
    PA_CODE = "pa_code"
    DHS_PAGE = "dhs_page"
    CHC_PUBLICATIONS = "chc_publications"
    CHC_HANDBOOK = "chc_handbook"


class CheckFrequency(_LookupEnum):
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    ANNUALLY = "annually"


class ChangeType(_LookupEnum):
    NO_CHANGE = "no_change"
    CONTENT_MODIFIED = "content_modified"
    ITEMS_ADDED = "items_added"
    ITEMS_REMOVED = "items_removed"


class IngestionStatus(_LookupEnum):
    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"


class LegalWeight(_LookupEnum):
    REGULATORY = "regulatory"
    GUIDANCE = "guidance"
    INFORMATIONAL = "informational"


# Elapsed hours after which a monitor is due again. Not calendar aware.
FREQUENCY_THRESHOLD_HOURS: Dict[CheckFrequency, int] = {
    CheckFrequency.WEEKLY: 7 * 24,
    CheckFrequency.MONTHLY: 30 * 24,
    CheckFrequency.QUARTERLY: 90 * 24,
    CheckFrequency.ANNUALLY: 365 * 24,
}

# Keywords applied to PA Bulletin notice boards when a monitor has none configured
DEFAULT_DHS_KEYWORDS = [
    "Department of Human Services",
    "DHS",
    "Medical Assistance",
    "Medicaid",
    "LIFE",
    "CHC",
    "Community HealthChoices",
    "Long-Term Care",
    "Long Term Care",
    "LTSS",
    "Nursing Home",
    "Estate Recovery",
    "PACE",
    "PACENET",
    "MAWD",
]

# Partner MCO domains that CHC publication hubs may link to
CHC_PARTNER_DOMAINS = ["upmchealthplan.com", "amerihealthcaritas", "pahealthwellness.com"]
