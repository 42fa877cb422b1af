"""Structured logging utility for the song ingestion and search pipeline."""

import logging
from typing import Any, Dict, List


class StructuredLogger:
    """Structured logger for ingestion, blob store and search operations."""

    def __init__(self, name: str = "songvault"):
        self.logger = logging.getLogger(name)
        self.logger.setLevel(logging.INFO)

        # Create handler if not already set
        if not self.logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
            )
            handler.setFormatter(formatter)
            self.logger.addHandler(handler)

    def log_operation(self, operation: str, status: str, details: Dict[str, Any] = None):
        """Log a structured operation."""
        message = f"Operation: {operation}, Status: {status}"
        if details:
            message += f", Details: {details}"

        if status in ("failed", "error"):
            self.logger.error(message)
        else:
            self.logger.info(message)

    def log_ingest_stage(self, stage: str, source_key: str, status: str = "success", details: Dict[str, Any] = None):
        """Log one stage of the ingestion pipeline for a source key."""
        log_details = {"source_key": _truncate(source_key, 120)}
        if details:
            log_details.update(details)

        self.log_operation(f"ingest.{stage}", status, log_details)

    def log_blob_operation(self, operation: str, blob_id: str, details: Dict[str, Any] = None, status: str = "success"):
        """Log a blob store operation."""
        log_details = {"blob_id": blob_id}
        if details:
            log_details.update(details)

        self.log_operation(f"blob.{operation}", status, log_details)

    def log_search(self, query: str, corpus_size: int, returned: int, top_score: float = None):
        """Log a similarity search."""
        log_details = {
            "query": _truncate(query, 50),
            "corpus_size": corpus_size,
            "returned": returned,
        }
        if top_score is not None:
            log_details["top_score"] = round(top_score, 4)

        self.log_operation("search.rank", "success", log_details)

    def log_errors(self, operation: str, errors: List[Any]):
        """Log a list of validation errors, truncating long messages."""
        sanitized = [str(error)[:100] for error in errors]
        self.log_operation(operation, "rejected", {"errors": sanitized, "error_count": len(sanitized)})

    # Standard logging methods for compatibility
    def info(self, message: str) -> None:
        """Log an info message."""
        self.logger.info(message)

    def warning(self, message: str) -> None:
        """Log a warning message."""
        self.logger.warning(message)

    def error(self, message: str) -> None:
        """Log an error message."""
        self.logger.error(message)

    def debug(self, message: str) -> None:
        """Log a debug message."""
        self.logger.debug(message)


def _truncate(value: str, limit: int) -> str:
    if value is None:
        return ""
    return value[:limit - 3] + "..." if len(value) > limit else value


# Global logger instance
logger = StructuredLogger()
