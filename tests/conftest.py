# Shared pytest fixtures
from __future__ import annotations

import tempfile
from collections.abc import Callable
from io import BytesIO
from pathlib import Path

import pandas as pd
import pytest

from parts_sales_importer.db.repository import InMemoryRepository
from parts_sales_importer.logging.error_log import ErrorLogBuffer

HEADERS = ["據點", "結帳單號", "項目ID", "料號", "數量"]


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        monkeypatch.setenv("DISABLE_DB_CONNECT", "1")
        yield p


@pytest.fixture()
def sample_config_yaml() -> str:
    return """report_type: parts_sales
mapping_version: v1
logs_directory: ./logs
header_aliases:
  branchCode: ["分店"]
database:
  host: localhost
  port: 5432
  user: appuser
  password: secret
  database: appdb
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "import.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


def build_xlsx(rows: list[list[object]]) -> bytes:
    """Write rows (header first) into the first sheet of a new workbook."""
    buf = BytesIO()
    with pd.ExcelWriter(buf, engine="openpyxl") as writer:
        pd.DataFrame(rows).to_excel(writer, sheet_name="Sheet1", header=False, index=False)
    return buf.getvalue()


@pytest.fixture()
def make_xlsx() -> Callable[[list[list[object]]], bytes]:
    return build_xlsx


@pytest.fixture()
def repository() -> InMemoryRepository:
    return InMemoryRepository()


@pytest.fixture()
def error_log(tmp_path: Path) -> ErrorLogBuffer:
    return ErrorLogBuffer(tmp_path / "logs")
