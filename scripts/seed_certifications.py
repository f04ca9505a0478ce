#!/usr/bin/env python3
"""Emit deterministic SQL that creates and seeds the certification tables."""

from __future__ import annotations

import argparse
import json
from typing import Any

SCHEMA_SQL = """-- ISO certification lookup schema
do $$
begin
  create type certification_status as enum ('valid', 'expired', 'unknown');
exception
  when duplicate_object then null;
end
$$;

create table if not exists iso_certifications (
  id serial primary key,
  company_name varchar(255) not null,
  company_name_en varchar(255),
  certification_types jsonb not null,
  certification_bodies jsonb not null,
  issued_date varchar(10),
  expiry_date varchar(10),
  status certification_status not null default 'unknown',
  sources jsonb not null,
  last_updated timestamptz not null default now(),
  created_at timestamptz not null default now()
);

create index if not exists iso_certifications_company_name_idx on iso_certifications (lower(company_name));

create table if not exists search_cache (
  id serial primary key,
  search_query varchar(255) not null unique,
  results jsonb not null,
  expires_at timestamptz not null,
  created_at timestamptz not null default now()
);
"""

KSA_DATABASE_SOURCE = {"url": "https://ksa.or.kr/search", "source": "KSA Certification Database"}

SAMPLE_CERTIFICATIONS: list[dict[str, Any]] = [
    {
        "company_name": "일진전기",
        "company_name_en": "ILJIN Electric",
        "certification_types": ["ISO 9001:2015", "ISO 14001:2015", "ISO 45001:2018"],
        "certification_bodies": ["한국표준협회(KSA)", "로이드(LRQA)"],
        "issued_date": "2021-03-15",
        "expiry_date": "2024-03-14",
        "status": "expired",
        "website": "https://www.ilgjin.com/company/certification",
    },
    {
        "company_name": "삼성전자",
        "company_name_en": "Samsung Electronics",
        "certification_types": ["ISO 9001:2015", "ISO 14001:2015", "ISO 50001:2018"],
        "certification_bodies": ["한국표준협회(KSA)", "DQS"],
        "issued_date": "2022-06-10",
        "expiry_date": "2025-06-09",
        "status": "valid",
        "website": "https://www.samsung.com/sec/sustainability/certification",
    },
    {
        "company_name": "LG전자",
        "company_name_en": "LG Electronics",
        "certification_types": ["ISO 9001:2015", "ISO 14001:2015", "ISO 45001:2018"],
        "certification_bodies": ["한국표준협회(KSA)", "로이드(LRQA)"],
        "issued_date": "2021-09-20",
        "expiry_date": "2024-09-19",
        "status": "expired",
        "website": "https://www.lg.com/global/business/information/certification",
    },
    {
        "company_name": "현대자동차",
        "company_name_en": "Hyundai Motor Company",
        "certification_types": ["ISO 9001:2015", "ISO 14001:2015", "ISO 45001:2018"],
        "certification_bodies": ["한국표준협회(KSA)", "DQS"],
        "issued_date": "2023-01-15",
        "expiry_date": "2026-01-14",
        "status": "valid",
        "website": "https://www.hyundai.com/quality/certification",
    },
    {
        "company_name": "SK하이닉스",
        "company_name_en": "SK hynix",
        "certification_types": ["ISO 9001:2015", "ISO 14001:2015"],
        "certification_bodies": ["한국표준협회(KSA)", "로이드(LRQA)"],
        "issued_date": "2022-04-10",
        "expiry_date": "2025-04-09",
        "status": "valid",
        "website": "https://www.skhynix.com/eng/about/quality",
    },
    {
        "company_name": "포스코",
        "company_name_en": "POSCO",
        "certification_types": ["ISO 9001:2015", "ISO 14001:2015", "ISO 45001:2018"],
        "certification_bodies": ["한국표준협회(KSA)", "DQS"],
        "issued_date": "2021-11-05",
        "expiry_date": "2024-11-04",
        "status": "expired",
        "website": "https://www.posco.co.kr/quality/certification",
    },
    {
        "company_name": "네이버",
        "company_name_en": "NAVER",
        "certification_types": ["ISO 27001:2013", "ISO 9001:2015"],
        "certification_bodies": ["한국표준협회(KSA)", "로이드(LRQA)"],
        "issued_date": "2022-08-20",
        "expiry_date": "2025-08-19",
        "status": "valid",
        "website": "https://www.navercorp.com/company/certification",
    },
    {
        "company_name": "카카오",
        "company_name_en": "Kakao",
        "certification_types": ["ISO 27001:2013", "ISO 9001:2015"],
        "certification_bodies": ["한국표준협회(KSA)", "DQS"],
        "issued_date": "2023-02-10",
        "expiry_date": "2026-02-09",
        "status": "valid",
        "website": "https://www.kakao.com/company/certification",
    },
    {
        "company_name": "두산중공업",
        "company_name_en": "Doosan Heavy Industries",
        "certification_types": ["ISO 9001:2015", "ISO 14001:2015", "ISO 45001:2018"],
        "certification_bodies": ["한국표준협회(KSA)", "로이드(LRQA)"],
        "issued_date": "2021-07-15",
        "expiry_date": "2024-07-14",
        "status": "expired",
        "website": "https://www.doosanheavy.com/quality/certification",
    },
    {
        "company_name": "GS칼텍스",
        "company_name_en": "GS Caltex",
        "certification_types": ["ISO 9001:2015", "ISO 14001:2015", "ISO 45001:2018"],
        "certification_bodies": ["한국표준협회(KSA)", "DQS"],
        "issued_date": "2022-05-20",
        "expiry_date": "2025-05-19",
        "status": "valid",
        "website": "https://www.gscaltex.com/quality/certification",
    },
]


def _quote_sql(value: str | None) -> str:
    if value is None:
        return "null"
    escaped = value.replace("'", "''")
    return f"'{escaped}'"


def _jsonb(value: Any) -> str:
    return f"{_quote_sql(json.dumps(value, ensure_ascii=False))}::jsonb"


def render_insert(sample: dict[str, Any]) -> str:
    bodies = [{"name": name} for name in sample["certification_bodies"]]
    sources = [
        {"url": sample["website"], "source": "Company Website"},
        dict(KSA_DATABASE_SOURCE),
    ]
    values = ", ".join(
        [
            _quote_sql(sample["company_name"]),
            _quote_sql(sample.get("company_name_en")),
            _jsonb(sample["certification_types"]),
            _jsonb(bodies),
            _quote_sql(sample.get("issued_date")),
            _quote_sql(sample.get("expiry_date")),
            f"{_quote_sql(sample['status'])}::certification_status",
            _jsonb(sources),
        ]
    )
    return (
        "insert into iso_certifications "
        "(company_name, company_name_en, certification_types, certification_bodies, "
        "issued_date, expiry_date, status, sources)\n"
        f"values ({values});"
    )


def render_sql(*, include_schema: bool = True, include_data: bool = True) -> str:
    parts: list[str] = []
    if include_schema:
        parts.append(SCHEMA_SQL)
    if include_data:
        parts.append("-- Sample certifications")
        parts.extend(render_insert(sample) for sample in SAMPLE_CERTIFICATIONS)
    return "\n".join(parts) + "\n"


def main() -> None:
    parser = argparse.ArgumentParser(description="Emit SQL to create and seed the certification tables.")
    scope_group = parser.add_mutually_exclusive_group()
    scope_group.add_argument("--schema-only", action="store_true", help="Only emit the DDL")
    scope_group.add_argument("--data-only", action="store_true", help="Only emit the sample inserts")
    args = parser.parse_args()

    print(
        render_sql(
            include_schema=not args.data_only,
            include_data=not args.schema_only,
        )
    )


if __name__ == "__main__":
    main()
