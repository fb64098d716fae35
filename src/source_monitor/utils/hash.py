# src/source_monitor/utils/hash.py
import hashlib
from typing import Optional, Union


def generate_content_hash(content: Union[str, bytes]) -> str:
    """SHA-256 hex digest of a fetched page. Bytes are hashed as received; text is UTF-8 encoded first."""
    data = content.encode("utf-8") if isinstance(content, str) else bytes(content)
    return hashlib.sha256(data).hexdigest()


def short_hash(content_hash: Optional[str], length: int = 16) -> str:
    """Abbreviated digest for log lines and console output."""
    return f"{content_hash[:length]}..." if content_hash else "none"
