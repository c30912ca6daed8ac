import json

import pytest

from debug_logger import DebugLogger, create_logger
from slm_banks import BankGeometry
from slm_errors import IoError


def test_save_writes_text_and_json(tmp_path):
    out = tmp_path / "0_1.slm"
    out.write_text("@00000000 00000000\n")

    logger = DebugLogger("unit", tmp_path)
    logger.section("Settings")
    logger.setting("n_rows", "16", 64, None, "16", "cli")
    logger.setting("format", None, None, "%S_%P.slm", "%S_%P.slm", "default")
    logger.geometry(BankGeometry(n_rows=16, word_width=64, start_addr=0x1000, n_parallel=2))
    logger.bank(0, 0, tmp_path / "0_0.slm", 16)
    logger.bank(0, 1, out, 16)
    logger.result(True, "2 bank(s) converted", {"words_loaded": 3})
    log_file = logger.save()

    assert log_file.exists()
    text = (tmp_path / "debug_unit_latest.log").read_text()
    assert "[CLI ] n_rows" in text
    assert "cli=16, config=64" in text
    assert "[DEF ] format" in text
    assert "address range: 0x00001000 - 0x000010ff" in text
    assert "(0,0)" in text and "not written" in text
    assert "OK: 2 bank(s) converted" in text
    assert "2, 32 rows in total" in text

    data = json.loads((tmp_path / "debug_unit_latest.json").read_text())
    assert data["summary"]["success"] is True
    assert data["settings"]["n_rows"]["source"] == "cli"
    assert data["geometry"]["end_addr"] == "0x00001100"
    assert [b["bytes"] for b in data["banks"]] == [None, 19]


def test_disabled_logger_writes_nothing(tmp_path):
    logger = DebugLogger("unit", tmp_path / "logs", enabled=False)
    logger.setting("x", 1, None, None, 1, "cli")
    logger.bank(0, 0, tmp_path / "x.slm", 4)
    assert logger.banks == []
    assert logger.save() is None
    assert not (tmp_path / "logs").exists()


def test_context_manager_records_exception(tmp_path):
    with pytest.raises(RuntimeError):
        with DebugLogger("unit", tmp_path) as logger:
            logger.section("Banks")
            raise RuntimeError("boom")
    text = (tmp_path / "debug_unit_latest.log").read_text()
    assert "ERROR: RuntimeError: boom" in text
    assert "FAILED: boom" in text
    data = json.loads((tmp_path / "debug_unit_latest.json").read_text())
    assert data["summary"]["success"] is False
    assert data["messages"] == ["[ERROR] RuntimeError: boom"]


def test_unwritable_log_dir_raises_io_error(tmp_path):
    blocker = tmp_path / "not_a_dir"
    blocker.write_text("")
    logger = DebugLogger("unit", blocker)
    with pytest.raises(IoError) as exc:
        logger.save()
    assert "Cannot write debug log" in str(exc.value)
    assert exc.value.path == blocker


def test_create_logger_env(tmp_path, monkeypatch):
    monkeypatch.delenv("SLM_DEBUG", raising=False)
    monkeypatch.delenv("SLM_DEBUG_ECHO", raising=False)
    assert create_logger("unit", tmp_path).enabled is False
    assert create_logger("unit", tmp_path, debug_enabled=True).enabled is True
    monkeypatch.setenv("SLM_DEBUG", "1")
    monkeypatch.setenv("SLM_DEBUG_ECHO", "1")
    dlog = create_logger("unit", tmp_path)
    assert dlog.enabled is True
    assert dlog.console_echo is True
