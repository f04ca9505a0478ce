from __future__ import annotations

from collections.abc import Iterable

from isocert.core.dates import parse_calendar_date
from isocert.schemas.certifications import CertificationRecord, CertificationSource, CertificationStatus

# valid > unknown > expired; an incoming claim wins only with strictly higher precedence.
STATUS_PRECEDENCE: dict[str, int] = {
    "expired": 0,
    "unknown": 1,
    "valid": 2,
}


def merge_key(record: CertificationRecord) -> str:
    """Identity of one certification entity across sources."""
    types = ",".join(sorted(record.certification_types))
    return f"{record.company_name.lower()}|{types}"


def merge_records(records: Iterable[CertificationRecord]) -> list[CertificationRecord]:
    """Fold records into one entity per merge key and rank by corroborating sources.

    Input order matters: the first record seen for a key seeds the entity, and
    later records only add sources, move dates forward, or raise the status.
    Callers feed relational records first so curated data seeds each entity.
    Input records are never mutated.
    """
    merged: dict[str, CertificationRecord] = {}
    for record in records:
        key = merge_key(record)
        existing = merged.get(key)
        if existing is None:
            seeded = record.model_copy(deep=True)
            seeded.sources = _union_sources([], seeded.sources)
            merged[key] = seeded
            continue
        absorb_record(existing, record)
    return rank_records(merged.values())


def absorb_record(existing: CertificationRecord, incoming: CertificationRecord) -> None:
    existing.sources = _union_sources(existing.sources, incoming.sources)
    existing.issued_date = later_date(existing.issued_date, incoming.issued_date)
    existing.expiry_date = later_date(existing.expiry_date, incoming.expiry_date)
    existing.status = resolve_status(existing.status, incoming.status)


def rank_records(records: Iterable[CertificationRecord]) -> list[CertificationRecord]:
    # sorted() is stable, so ties keep merge-insertion order.
    return sorted(records, key=lambda record: len(record.sources), reverse=True)


def resolve_status(current: CertificationStatus, incoming: CertificationStatus) -> CertificationStatus:
    if STATUS_PRECEDENCE.get(incoming, 0) > STATUS_PRECEDENCE.get(current, 0):
        return incoming
    return current


def later_date(current: str | None, incoming: str | None) -> str | None:
    incoming_date = parse_calendar_date(incoming)
    if incoming_date is None:
        return current
    current_date = parse_calendar_date(current)
    if current_date is None or incoming_date > current_date:
        return incoming_date.isoformat()
    return current


def _union_sources(
    current: list[CertificationSource],
    incoming: list[CertificationSource],
) -> list[CertificationSource]:
    seen = {(source.url, source.source) for source in current}
    combined = list(current)
    for source in incoming:
        pair = (source.url, source.source)
        if pair in seen:
            continue
        seen.add(pair)
        combined.append(source.model_copy())
    return combined
