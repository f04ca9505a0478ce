from __future__ import annotations

import json
import logging
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any, Protocol

from openai import AsyncOpenAI
from pydantic import ValidationError

from isocert.core.config import Settings
from isocert.schemas.certifications import CertificationRecord

logger = logging.getLogger(__name__)

LLM_SOURCE_NAME = "LLM"
SYSTEM_PROMPT = (
    "You are an ISO certification information search assistant. "
    "Return only valid JSON, no other text."
)


class LLMError(Exception):
    """Base LLM lookup error."""


class LLMUnavailableError(LLMError):
    """Raised when no LLM endpoint is configured."""


class LLMResponseError(LLMError):
    """Raised when the bracketed payload in a response is not valid JSON."""


class LLMClient(Protocol):
    async def complete(self, prompt: str, *, system: str | None = None) -> str: ...


def build_prompt(company_name: str) -> str:
    return f"""Search for ISO certification information for the company "{company_name}".
Return a JSON array with the following structure:
[
  {{
    "companyName": "Company Name",
    "certificationTypes": ["ISO 9001:2015", "ISO 14001:2015"],
    "certificationBodies": [{{"name": "KSA"}}, {{"name": "LRQA"}}],
    "issuedDate": "YYYY-MM-DD",
    "expiryDate": "YYYY-MM-DD",
    "status": "valid|expired|unknown",
    "sources": [{{"url": "https://...", "source": "Source Name", "retrievedAt": "ISO8601"}}]
  }}
]
If no information is found, return an empty array []."""


def extract_json_array(text: str | None) -> str | None:
    """Outermost ``[...]`` span of a response that may wrap the array in prose."""
    if not text:
        return None
    start = text.find("[")
    end = text.rfind("]")
    if start == -1 or end <= start:
        return None
    return text[start : end + 1]


class OpenAIChatClient:
    def __init__(self, client: AsyncOpenAI | None, *, model: str, temperature: float = 0.0) -> None:
        self.client = client
        self.model = model
        self.temperature = temperature

    @classmethod
    def from_settings(cls, settings: Settings) -> OpenAIChatClient:
        client = None
        if settings.llm_api_key:
            client = AsyncOpenAI(
                api_key=settings.llm_api_key,
                base_url=settings.llm_base_url,
                max_retries=0,
            )
        return cls(client, model=settings.llm_model, temperature=settings.llm_temperature)

    async def complete(self, prompt: str, *, system: str | None = None) -> str:
        if self.client is None:
            raise LLMUnavailableError("ISO_LLM_API_KEY is not configured")

        messages: list[dict[str, str]] = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})

        response = await self.client.chat.completions.create(
            model=self.model,
            messages=messages,
            temperature=self.temperature,
        )
        if not response.choices:
            return ""
        return response.choices[0].message.content or ""

    async def close(self) -> None:
        if self.client is not None:
            await self.client.close()


class LLMLookup:
    def __init__(self, client: LLMClient, *, clock: Callable[[], datetime] | None = None) -> None:
        self.client = client
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    async def lookup(self, company_name: str) -> list[CertificationRecord]:
        text = await self.client.complete(build_prompt(company_name), system=SYSTEM_PROMPT)
        return self.parse_response(text)

    def parse_response(self, text: str | None) -> list[CertificationRecord]:
        payload = extract_json_array(text)
        if payload is None:
            logger.info("llm response has no json array")
            return []

        try:
            decoded = json.loads(payload)
        except json.JSONDecodeError as exc:
            raise LLMResponseError("llm response array is not valid json") from exc
        if not isinstance(decoded, list):
            return []

        records: list[CertificationRecord] = []
        for item in decoded:
            record = self._to_record(item)
            if record is not None:
                records.append(record)
        return records

    def _to_record(self, item: Any) -> CertificationRecord | None:
        if not isinstance(item, dict):
            return None
        candidate = dict(item)
        if not candidate.get("sources"):
            candidate["sources"] = [
                {"url": "", "source": LLM_SOURCE_NAME, "retrievedAt": self._clock().isoformat()}
            ]
        try:
            return CertificationRecord.model_validate(candidate)
        except ValidationError as exc:
            logger.info("dropping malformed llm item error_count=%s", exc.error_count())
            return None
