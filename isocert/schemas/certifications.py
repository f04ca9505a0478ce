from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from isocert.core.dates import normalize_date

CertificationStatus = Literal["valid", "expired", "unknown"]
CERTIFICATION_STATUSES = ("valid", "expired", "unknown")


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CertificationBody(CamelModel):
    name: str = Field(min_length=1)
    code: str | None = None


class CertificationSource(CamelModel):
    url: str = ""
    source: str = Field(min_length=1)
    retrieved_at: datetime | None = None

    @field_validator("url", mode="before")
    @classmethod
    def _url_or_blank(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("retrieved_at", mode="before")
    @classmethod
    def _lenient_timestamp(cls, value: Any) -> Any:
        if isinstance(value, str):
            raw = value.strip()
            if not raw:
                return None
            try:
                parsed = datetime.fromisoformat(raw.replace("Z", "+00:00"))
            except ValueError:
                return None
            if parsed.tzinfo is None:
                return parsed.replace(tzinfo=timezone.utc)
            return parsed
        return value


class CertificationRecord(CamelModel):
    company_name: str = Field(min_length=1)
    certification_types: list[str] = Field(default_factory=list)
    certification_bodies: list[CertificationBody] = Field(default_factory=list)
    issued_date: str | None = None
    expiry_date: str | None = None
    status: CertificationStatus = "unknown"
    sources: list[CertificationSource] = Field(min_length=1)

    @field_validator("certification_types", mode="before")
    @classmethod
    def _clean_types(cls, value: Any) -> Any:
        if not isinstance(value, list):
            return value
        return [item.strip() for item in value if isinstance(item, str) and item.strip()]

    @field_validator("issued_date", "expiry_date", mode="before")
    @classmethod
    def _calendar_date(cls, value: Any) -> str | None:
        return normalize_date(value)

    @field_validator("status", mode="before")
    @classmethod
    def _known_status(cls, value: Any) -> str:
        if isinstance(value, str) and value.strip().lower() in CERTIFICATION_STATUSES:
            return value.strip().lower()
        return "unknown"


class CachedResultSet(BaseModel):
    query_key: str
    results: list[CertificationRecord] = Field(default_factory=list)
    created_at: datetime
    expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at <= now


class SearchResponse(CamelModel):
    results: list[CertificationRecord] = Field(default_factory=list)
    from_cache: bool = False
    timestamp: datetime
