# src/source_monitor/parsers/data_cleaner.py
import re
from datetime import date
from typing import Optional, Tuple
from dateutil import parser as date_parser
import logging

logger = logging.getLogger(__name__)

MONTH_DATE_PATTERN = re.compile(
    r"(January|February|March|April|May|June|July|August|September|October|November|December)"
    r"\s+\d{1,2},?\s+\d{4}",
    re.IGNORECASE,
)
NUMERIC_DATE_PATTERN = re.compile(r"\b\d{1,2}/\d{1,2}/\d{4}\b")
MEMO_NUMBER_PATTERN = re.compile(r"^(\d{2})-(\d{2})-(\d{2,3})")
HANDBOOK_SECTION_PATTERN = re.compile(r"^(\d{3}(?:\.\d+)*)")
CODE_SECTION_PATTERN = re.compile(r"§?\s*(\d+\.\d+)")
BULLETIN_CITATION_PATTERN = re.compile(r"(\d+\s*Pa\.\s*B\.\s*\d+)", re.IGNORECASE)

def clean_text(text: Optional[str]) -> Optional[str]:
    """Removes leading/trailing whitespace and multiple spaces. Returns None if input is None or empty after strip."""
    if text is None:
        return None
    text = re.sub(r'\s+', ' ', str(text)).strip()
    return text if text else None


def parse_date_flexible(date_string: Optional[str]) -> Optional[date]:
    """
    Parses a date string using dateutil.parser for flexibility.
    Returns a datetime.date object, or None when the string is not a date.
    """
    cleaned_date_string = clean_text(date_string)
    if not cleaned_date_string:
        return None

    try:
        return date_parser.parse(cleaned_date_string).date()
    except (ValueError, TypeError, OverflowError) as e:
        logger.debug(f"Could not parse date string '{date_string}': {e}")
        return None


def find_date_in_text(text: Optional[str]) -> Optional[date]:
    """Finds the first "Month D, YYYY" or "M/D/YYYY" date inside free text."""
    if not text:
        return None
    for pattern in (MONTH_DATE_PATTERN, NUMERIC_DATE_PATTERN):
        match = pattern.search(text)
        if match:
            parsed = parse_date_flexible(match.group(0))
            if parsed:
                return parsed
    return None


def extract_memo_number(title: Optional[str]) -> Optional[str]:
    """Operations memo numbers look like 25-06-01 (year, month, sequence)."""
    match = MEMO_NUMBER_PATTERN.match(clean_text(title) or "")
    return match.group(0) if match else None


def memo_number_to_date(memo_number: Optional[str]) -> Optional[date]:
    """
    Derives the first day of the memo's month. Two-digit years below 50 are
    taken as 20xx, the rest as 19xx.
    """
    match = MEMO_NUMBER_PATTERN.match(memo_number or "")
    if not match:
        return None
    year, month = int(match.group(1)), int(match.group(2))
    year += 2000 if year < 50 else 1900
    if not 1 <= month <= 12:
        return None
    return date(year, month, 1)


def extract_handbook_section(title: Optional[str]) -> Optional[str]:
    match = HANDBOOK_SECTION_PATTERN.match(clean_text(title) or "")
    return match.group(1) if match else None


def extract_code_section(title: Optional[str]) -> Optional[str]:
    match = CODE_SECTION_PATTERN.search(title or "")
    return match.group(1) if match else None


def extract_bulletin_citation(text: Optional[str]) -> Optional[str]:
    match = BULLETIN_CITATION_PATTERN.search(text or "")
    return clean_text(match.group(1)) if match else None


def section_sort_key(section: Optional[str]) -> Tuple[int, ...]:
    """
    Numeric key for dotted section numbers: "258.2" < "258.10".
    Non-numeric segments are ignored; an empty tuple means no section.
    """
    if not section:
        return ()
    parts = []
    for segment in section.split("."):
        digits = re.match(r"\d+", segment.strip())
        if digits:
            parts.append(int(digits.group(0)))
    return tuple(parts)
