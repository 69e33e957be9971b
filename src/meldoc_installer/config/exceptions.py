"""Configuration-related exceptions."""

from typing import Any, Dict, Optional


class ConfigurationError(Exception):
    """Settings file or MELDOC_* environment could not be turned into settings."""

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        source: Optional[str] = None,
    ):
        self.message = message
        self.details = details or {}
        self.source = source
        super().__init__(message)

    def __str__(self) -> str:
        text = f"{self.message} ({self.source})" if self.source else self.message
        if self.details:
            detail_text = "; ".join(f"{key}: {value}" for key, value in self.details.items())
            return f"{text}: {detail_text}"
        return text
