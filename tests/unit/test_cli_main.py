from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock, patch

import psycopg2
import pytest

from parts_sales_importer.cli.main import EXIT_FATAL, EXIT_PARTIAL_FAILURE, EXIT_SUCCESS_ALL, main
from parts_sales_importer.logging.init import reset_logging

HEADERS = ["據點", "結帳單號", "項目ID", "料號", "數量"]


@pytest.fixture(autouse=True)
def _fresh_logger():
    reset_logging()
    yield
    reset_logging()


@pytest.fixture()
def write_xlsx(temp_workdir: Path, make_xlsx):
    def _write(name: str, rows: list[list[object]]) -> Path:
        path = temp_workdir / "data" / name
        path.write_bytes(make_xlsx(rows))
        return path

    return _write


def test_missing_config_is_fatal(temp_workdir: Path, capsys):
    code = main(["data/a.xlsx"])
    out = capsys.readouterr().out
    assert code == EXIT_FATAL
    assert "ERROR config: config file not found" in out


def test_no_files_is_fatal(write_config: Path, capsys):
    code = main([])
    assert code == EXIT_FATAL
    assert "ERROR no input files given" in capsys.readouterr().out


def test_import_success_prints_summary(temp_workdir: Path, write_config: Path, write_xlsx, capsys):
    write_xlsx("ok.xlsx", [HEADERS, ["A01", "C100", "1", "P-9", "5"]])

    code = main(["data/ok.xlsx"])
    out = capsys.readouterr().out

    assert code == EXIT_SUCCESS_ALL
    assert "INFO mode=mock files=1" in out
    assert (
        "SUMMARY file=ok.xlsx batch=1 status=TRANSFORMED staged=1 canonical=1 errors=0 "
        "missing_required=- unknown_columns=0"
    ) in out
    assert "SUMMARY files=1 transformed=1 staged_only=0 failed=0 rows=1 canonical=1 errors=0" in out
    assert list((temp_workdir / "logs").iterdir()) == []


def test_alias_from_config_file(temp_workdir: Path, write_config: Path, write_xlsx, capsys):
    write_xlsx("branch.xlsx", [["分店", "結帳單號", "項目ID", "料號"], ["A01", "C1", "1", "P"]])
    assert main(["data/branch.xlsx"]) == EXIT_SUCCESS_ALL
    assert "missing_required=-" in capsys.readouterr().out


def test_row_errors_exit_2_and_write_error_log(temp_workdir: Path, write_config: Path, write_xlsx, capsys):
    write_xlsx(
        "bad.xlsx",
        [HEADERS, ["A01", "C100", "1", "P-9", "abc"], ["A01", "C100", "2", "P-8", "1"]],
    )

    code = main(["data/bad.xlsx"])
    out = capsys.readouterr().out

    assert code == EXIT_PARTIAL_FAILURE
    assert "status=STAGED staged=2 canonical=1 errors=1" in out
    logs = list((temp_workdir / "logs").glob("errors-*.log"))
    assert len(logs) == 1
    assert "ROW_VALIDATION_ERROR" in logs[0].read_text(encoding="utf-8")


def test_failed_file_does_not_stop_others(temp_workdir: Path, write_config: Path, write_xlsx, capsys):
    write_xlsx("only_header.xlsx", [HEADERS])
    write_xlsx("ok.xlsx", [HEADERS, ["A01", "C100", "1", "P-9", "5"]])

    code = main(["data/only_header.xlsx", "data/missing.xlsx", "data/ok.xlsx"])
    out = capsys.readouterr().out

    assert code == EXIT_PARTIAL_FAILURE
    assert "ERROR only_header.xlsx: no data rows" in out
    assert "ERROR missing.xlsx:" in out
    assert "SUMMARY file=ok.xlsx batch=1 status=TRANSFORMED" in out
    assert "SUMMARY files=3 transformed=1 staged_only=0 failed=2" in out


def test_inspect_data_prints_mapping_without_import(temp_workdir: Path, write_config: Path, write_xlsx, capsys):
    write_xlsx(
        "peek.xlsx",
        [[*HEADERS, "備註"], ["A01", "C100", "1", "P-9", "5", "急件"]],
    )

    code = main(["--inspect-data", "data/peek.xlsx"])
    out = capsys.readouterr().out

    assert code == EXIT_SUCCESS_ALL
    assert "FILE: peek.xlsx" in out
    assert "unknown=['備註']" in out
    assert "missing_required=[]" in out
    assert "'branchCode': 'A01'" in out
    assert "SUMMARY" not in out


def test_debug_flag_enables_debug_output(temp_workdir: Path, write_config: Path, write_xlsx, capsys):
    write_xlsx("bad.xlsx", [HEADERS, ["A01", "C100", "1", "P-9", "abc"]])
    main(["--debug", "data/bad.xlsx"])
    out = capsys.readouterr().out
    assert "DEBUG debug mode enabled" in out
    assert "DEBUG batch=1 row=1 rejected: qty:" in out


def test_health_reports_not_ok_on_connection_error(write_config: Path, capsys):
    with patch(
        "parts_sales_importer.cli.main.connect",
        side_effect=psycopg2.OperationalError("could not connect"),
    ):
        code = main(["--health"])
    assert code == EXIT_FATAL
    assert capsys.readouterr().out.strip().endswith("not ok")


def test_health_ok(write_config: Path, capsys):
    cursor = MagicMock()
    cursor.fetchone.return_value = (1,)
    conn = MagicMock()
    conn.cursor.return_value.__enter__.return_value = cursor
    cm = MagicMock()
    cm.__enter__.return_value = conn

    with patch("parts_sales_importer.cli.main.connect", return_value=cm):
        code = main(["--health"])
    assert code == EXIT_SUCCESS_ALL
    assert capsys.readouterr().out.splitlines()[-1] == "ok"


def test_connection_failure_falls_back_to_mock(
    temp_workdir: Path, write_config: Path, write_xlsx, monkeypatch, capsys
):
    monkeypatch.delenv("DISABLE_DB_CONNECT")
    write_xlsx("ok.xlsx", [HEADERS, ["A01", "C100", "1", "P-9", "5"]])

    with patch(
        "parts_sales_importer.cli.main.connect",
        side_effect=psycopg2.OperationalError("could not connect"),
    ):
        code = main(["data/ok.xlsx"])
    out = capsys.readouterr().out

    assert code == EXIT_SUCCESS_ALL
    assert "WARN DB connection failed -> mock mode" in out
    assert "INFO mode=mock files=1" in out
