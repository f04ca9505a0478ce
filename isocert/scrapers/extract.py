from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date

from isocert.core.dates import parse_calendar_date
from isocert.schemas.certifications import CertificationBody, CertificationStatus

ISO_TYPE_RE = re.compile(r"ISO\s+\d{4,5}(?::\d{4})?")


@dataclass(frozen=True, slots=True)
class KnownBody:
    name: str
    alias: str
    code: str


KNOWN_CERTIFICATION_BODIES: tuple[KnownBody, ...] = (
    KnownBody(name="Korean Standards Association", alias="한국표준협회", code="KSA"),
    KnownBody(name="Lloyd's Register Quality Assurance", alias="로이드", code="LRQA"),
    KnownBody(name="DQS", alias="디큐에스", code="DQS"),
    KnownBody(name="TÜV", alias="티유브이", code="TUV"),
    KnownBody(name="DNV", alias="디엔브이", code="DNV"),
    KnownBody(name="Bureau Veritas", alias="뷰로베리타스", code="BV"),
    KnownBody(name="American Bureau of Shipping", alias="미국선급협회", code="ABS"),
    KnownBody(name="RINA", alias="리나", code="RINA"),
)

_CODE_PATTERNS = {
    body.code: re.compile(rf"(?<![A-Za-z]){re.escape(body.code)}(?![A-Za-z])", re.IGNORECASE)
    for body in KNOWN_CERTIFICATION_BODIES
}


def extract_iso_types(text: str | None) -> list[str]:
    """Unique ISO identifiers in order of first appearance, whitespace collapsed."""
    if not text:
        return []
    seen: set[str] = set()
    types: list[str] = []
    for match in ISO_TYPE_RE.findall(text):
        normalized = " ".join(match.split())
        if normalized in seen:
            continue
        seen.add(normalized)
        types.append(normalized)
    return types


def extract_certification_bodies(text: str | None) -> list[CertificationBody]:
    if not text:
        return []
    lowered = text.casefold()
    bodies: list[CertificationBody] = []
    for body in KNOWN_CERTIFICATION_BODIES:
        if (
            body.name.casefold() in lowered
            or body.alias.casefold() in lowered
            or _CODE_PATTERNS[body.code].search(text)
        ):
            bodies.append(CertificationBody(name=body.name, code=body.code))
    return bodies


def determine_status(expiry_text: str | None, *, today: date | None = None) -> CertificationStatus:
    expiry = parse_calendar_date(expiry_text)
    if expiry is None:
        return "unknown"
    current = today or date.today()
    if expiry < current:
        return "expired"
    return "valid"


def slugify_company_name(company_name: str) -> str:
    return "".join(company_name.split()).lower()
