from __future__ import annotations

from pathlib import Path

import pytest

from parts_sales_importer.config.aliases import DEFAULT_HEADER_ALIASES, merge_aliases
from parts_sales_importer.config.loader import ConfigError, ImportConfig, load_config


def test_load_config_success(write_config: Path):
    cfg = load_config(write_config)
    assert cfg.report_type == "parts_sales"
    assert cfg.mapping_version == "v1"
    assert cfg.logs_directory == "./logs"
    # 設定檔的別名追加在內建別名之後
    assert cfg.header_aliases["branchCode"] == [*DEFAULT_HEADER_ALIASES["branchCode"], "分店"]
    assert cfg.header_aliases["partNo"] == DEFAULT_HEADER_ALIASES["partNo"]
    assert cfg.database.host == "localhost"
    assert cfg.database.port == 5432
    assert cfg.database.dsn is None


def test_load_config_applies_defaults(temp_workdir: Path):
    path = temp_workdir / "config" / "import.yml"
    path.write_text("logs_directory: ./out\n", encoding="utf-8")
    cfg = load_config(path)
    assert cfg.report_type == "parts_sales"
    assert cfg.logs_directory == "./out"
    assert cfg.header_aliases == DEFAULT_HEADER_ALIASES
    assert cfg.database.host is None


def test_load_config_empty_file(temp_workdir: Path):
    path = temp_workdir / "config" / "import.yml"
    path.write_text("", encoding="utf-8")
    assert load_config(path) == ImportConfig.defaults()


def test_load_config_missing_file(temp_workdir: Path):
    with pytest.raises(ConfigError, match="config file not found"):
        load_config(temp_workdir / "config" / "nope.yml")


def test_load_config_invalid_yaml(temp_workdir: Path):
    path = temp_workdir / "config" / "import.yml"
    path.write_text("header_aliases: [unclosed\n", encoding="utf-8")
    with pytest.raises(ConfigError, match="invalid yaml"):
        load_config(path)


def test_load_config_root_must_be_mapping(temp_workdir: Path):
    path = temp_workdir / "config" / "import.yml"
    path.write_text("- a\n- b\n", encoding="utf-8")
    with pytest.raises(ConfigError, match="mapping"):
        load_config(path)


@pytest.mark.parametrize(
    "body",
    [
        "unexpected_key: 1\n",
        "header_aliases:\n  branchCode: 分店\n",
        "header_aliases:\n  branchCode: [1, 2]\n",
        "database:\n  port: not-a-number\n",
    ],
)
def test_load_config_schema_violation(temp_workdir: Path, body: str):
    path = temp_workdir / "config" / "import.yml"
    path.write_text(body, encoding="utf-8")
    with pytest.raises(ConfigError, match="config validation failed"):
        load_config(path)


def test_load_config_unknown_canonical_field(temp_workdir: Path):
    path = temp_workdir / "config" / "import.yml"
    path.write_text("header_aliases:\n  vendorCode: [廠商]\n", encoding="utf-8")
    with pytest.raises(ConfigError, match="vendorCode"):
        load_config(path)


def test_merge_aliases_is_additive_and_deduplicated():
    base = {"qty": ["銷售數量", "數量"], "partNo": ["料號"]}
    merged = merge_aliases(base, {"qty": ["數量", "件數"]})
    assert merged == {"qty": ["銷售數量", "數量", "件數"], "partNo": ["料號"]}
    assert base["qty"] == ["銷售數量", "數量"]


def test_merge_aliases_without_extra_copies_base():
    merged = merge_aliases(DEFAULT_HEADER_ALIASES, None)
    assert merged == DEFAULT_HEADER_ALIASES
    merged["qty"].append("x")
    assert "x" not in DEFAULT_HEADER_ALIASES["qty"]


def test_merge_aliases_rejects_unknown_field():
    with pytest.raises(ValueError, match="unknown canonical fields"):
        merge_aliases({"qty": ["數量"]}, {"vendorCode": ["廠商"]})
