from __future__ import annotations

import os
import subprocess
import sys
from pathlib import Path


SCRIPT_PATH = Path(__file__).resolve().parents[1] / "scripts" / "seed_certifications.py"


def _run_script(*args: str) -> str:
    completed = subprocess.run(
        [sys.executable, str(SCRIPT_PATH), *args],
        check=True,
        capture_output=True,
        text=True,
        encoding="utf-8",
        env={**os.environ, "PYTHONIOENCODING": "utf-8"},
    )
    return completed.stdout


def test_seed_script_emits_schema_and_sample_rows() -> None:
    output = _run_script()

    assert "create type certification_status as enum ('valid', 'expired', 'unknown');" in output
    assert "create table if not exists iso_certifications" in output
    assert "search_query varchar(255) not null unique" in output
    assert output.count("insert into iso_certifications") == 10
    assert "'삼성전자', 'Samsung Electronics'" in output
    assert "'valid'::certification_status" in output


def test_seed_script_schema_only() -> None:
    output = _run_script("--schema-only")

    assert "create table if not exists search_cache" in output
    assert "insert into" not in output


def test_seed_script_data_only() -> None:
    output = _run_script("--data-only")

    assert "create table" not in output
    assert "::jsonb" in output
    assert '"source": "KSA Certification Database"' in output
