"""
Client for the Sonoteller lyrics/DDEX analysis service.

The service answers with field names such as "language-iso" and
"ddex moods"; they are normalized into SongMetadata here and nowhere else.
"""

from typing import Any, Dict, Optional

import requests
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..core.config import Settings
from ..core.errors import ServiceError
from ..util.logging import logger


class SongMetadata(BaseModel):
    """Analysis of one song, with fixed field names."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    summary: str
    language: str = ""
    language_iso: str = Field(default="", alias="language-iso")
    explicit: bool = False
    keywords: Dict[str, str] = Field(default_factory=dict)
    moods: Dict[str, str] = Field(default_factory=dict, alias="ddex moods")
    themes: Dict[str, str] = Field(default_factory=dict, alias="ddex themes")
    flags: Any = None

    @field_validator('keywords', 'moods', 'themes', mode='before')
    @classmethod
    def missing_mapping_is_empty(cls, v):
        if v is None:
            return {}
        return v

    @field_validator('language', 'language_iso', mode='before')
    @classmethod
    def missing_string_is_empty(cls, v):
        if v is None:
            return ""
        return v


def parse_analysis(payload: Any) -> SongMetadata:
    """Validate a raw service response into SongMetadata."""
    if not isinstance(payload, dict):
        raise ServiceError(f"analysis payload is not an object: {type(payload).__name__}")
    try:
        return SongMetadata.model_validate(payload)
    except ValidationError as e:
        raise ServiceError(f"malformed analysis payload: {e.error_count()} validation error(s)") from e


class SonotellerClient:
    """Requests-based client for the lyrics_ddex endpoint."""

    def __init__(self, api_key: Optional[str], url: str, host: str, timeout: float = 30.0,
                 session: Optional[requests.Session] = None):
        self.api_key = api_key
        self.url = url
        self.host = host
        self.timeout = timeout
        self.session = session or requests.Session()

    @classmethod
    def from_settings(cls, settings: Settings) -> "SonotellerClient":
        return cls(
            api_key=settings.rapid_api_key,
            url=settings.sonoteller_url,
            host=settings.sonoteller_host,
            timeout=settings.http_timeout_sec,
        )

    def analyze(self, source_url: str) -> SongMetadata:
        """Request lyrics/DDEX analysis for the audio file at source_url."""
        if not self.api_key:
            raise ServiceError("RAPID_API_KEY is not configured")

        headers = {
            "x-rapidapi-key": self.api_key,
            "x-rapidapi-host": self.host,
            "Content-Type": "application/x-www-form-urlencoded",
        }

        try:
            response = self.session.post(
                self.url,
                data={"file": source_url},
                headers=headers,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.warning(f"Analysis request failed for {source_url}: {e}")
            raise ServiceError(f"analysis request failed: {e}") from e

        if not response.ok:
            raise ServiceError(f"analysis service returned HTTP {response.status_code}")

        try:
            payload = response.json()
        except ValueError as e:
            raise ServiceError("analysis service returned a non-JSON body") from e

        return parse_analysis(payload)
