# src/source_monitor/exceptions.py

class MonitorException(Exception):
    """Base exception for the source monitor."""
    pass

class ConfigurationError(MonitorException):
    """Error related to configuration loading, an unknown source type or a bad option."""
    pass

class FetchError(MonitorException):
    """HTTP or network failure that persisted after retries."""
    def __init__(self, message, status_code=None, url=None):
        super().__init__(message)
        self.status_code = status_code
        self.url = url

    def __str__(self):
        return f"{super().__str__()} (Status: {self.status_code}, URL: {self.url})"


class ParseError(MonitorException):
    """Structural extraction raised while reading a fetched page."""
    def __init__(self, message, url=None):
        super().__init__(message)
        self.url = url

class IngestionError(MonitorException):
    """Failure reported by, or raised from, the ingestion collaborator."""
    pass

class DatabaseError(MonitorException):
    """Error related to database operations."""
    pass
