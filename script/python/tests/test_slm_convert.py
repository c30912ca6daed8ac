import json

from colorama import Fore, Style

import slm_convert


def run(tmp_path, *args):
    """Run the CLI with an isolated, empty configuration file."""
    cfg = tmp_path / "cfg.json"
    if not cfg.exists():
        cfg.write_text(json.dumps({}))
    return slm_convert.main(["-c", str(cfg), "--no-color", *args])


def test_converts_and_writes_banks(tmp_path):
    src = tmp_path / "in.slm"
    src.write_text("".join(f"@{i:x} {i + 1:08x}\n" for i in range(7)))
    out = tmp_path / "out"

    rc = run(tmp_path, "-n", "2", "-s", "0x0", "-w", "32", "-S", "2", "-P", "2",
             "-f", str(src), "-o", str(out))

    assert rc == 0
    assert sorted(p.name for p in out.iterdir()) == ["0_0.slm", "0_1.slm", "1_0.slm", "1_1.slm"]
    assert (out / "1_0.slm").read_text() == "@00000000 00000005\n@00000001 00000007\n"
    assert (out / "1_1.slm").read_text() == "@00000000 00000006\n@00000001 00000000\n"


def test_custom_format_and_swap(tmp_path):
    src = tmp_path / "in.slm"
    src.write_text("0x1c000000 0x11223344\n")
    out = tmp_path / "out"

    rc = run(tmp_path, "-n", "1", "-s", "1c000000", "-w", "32", "-F", "%02S_%02P.slm",
             "--swap-endianness", "-f", str(src), "-o", str(out))

    assert rc == 0
    assert (out / "00_00.slm").read_text() == "@00000000 44332211\n"


def test_zero_image_without_input(tmp_path):
    out = tmp_path / "out"
    assert run(tmp_path, "-n", "4", "-s", "0", "-w", "64", "-o", str(out)) == 0
    lines = (out / "0_0.slm").read_text().splitlines()
    assert lines == [f"@{i:08X} {'0' * 16}" for i in range(4)]


def test_missing_required_values(tmp_path, capsys):
    assert run(tmp_path, "-s", "0", "-w", "32") == 1
    assert "--num-oup-rows" in capsys.readouterr().err


def test_invalid_arguments(tmp_path, capsys):
    assert run(tmp_path, "-n", "abc", "-s", "0", "-w", "32", "--dry-run") == 1
    assert "unsigned integer" in capsys.readouterr().err

    assert run(tmp_path, "-n", "4", "-s", "zz", "-w", "32", "--dry-run") == 1
    assert "hexadecimal" in capsys.readouterr().err

    assert run(tmp_path, "-n", "4", "-s", "0", "-w", "48", "--dry-run") == 1
    assert "multiple of 32" in capsys.readouterr().err

    assert run(tmp_path, "-n", "4", "-s", "0", "-w", "32", "-F", "%Q.slm", "--dry-run") == 1
    assert "%Q.slm" in capsys.readouterr().err


def test_input_errors_exit_nonzero(tmp_path, capsys):
    dup = tmp_path / "dup.slm"
    dup.write_text("@1 00000001\n0x4 00000002\n")
    assert run(tmp_path, "-n", "4", "-s", "0", "-w", "32", "-f", str(dup),
               "-o", str(tmp_path / "out")) == 1
    assert "duplicate key" in capsys.readouterr().err
    assert not (tmp_path / "out").exists()

    assert run(tmp_path, "-n", "4", "-s", "0", "-w", "32",
               "-f", str(tmp_path / "absent.slm")) == 1
    assert "absent.slm" in capsys.readouterr().err


def test_dry_run_and_preview(tmp_path, capsys):
    src = tmp_path / "in.slm"
    src.write_text("@0 000000aa\n@1 000000bb\n@2 000000cc\n")
    out = tmp_path / "out"

    rc = run(tmp_path, "-n", "3", "-s", "0", "-w", "32", "-f", str(src),
             "-o", str(out), "--dry-run", "--preview", "2")

    assert rc == 0
    assert not out.exists()
    printed = capsys.readouterr().out
    assert "@00000000 000000aa" in printed
    assert "@00000001 000000bb" in printed
    assert "@00000002 000000cc" not in printed
    assert "would write 0_0.slm" in printed


def test_config_values_and_cli_precedence(tmp_path):
    cfg = tmp_path / "cfg.json"
    cfg.write_text(json.dumps({
        "geometry": {"rows": 2, "word_width": 32, "start": "0x100", "parallel_banks": 2},
        "output": {"format": "cfg_%P.slm"},
    }))
    src = tmp_path / "in.slm"
    src.write_text("0x100 00000001\n0x104 00000002\n")
    out = tmp_path / "out"

    assert run(tmp_path, "-f", str(src), "-o", str(out), "-n", "1") == 0
    assert sorted(p.name for p in out.iterdir()) == ["cfg_0.slm", "cfg_1.slm"]
    assert (out / "cfg_1.slm").read_text() == "@00000000 00000002\n"


def test_shipped_profile_plans_outputs(tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)
    rc = slm_convert.main(["-p", "l2_4x2", "--dry-run", "--no-color"])
    assert rc == 0
    printed = capsys.readouterr().out
    assert "would write l2_ram_00_00.slm" in printed
    assert "would write l2_ram_03_01.slm" in printed
    assert list(tmp_path.iterdir()) == []


def test_debug_log_written(tmp_path):
    logs = tmp_path / "logs"
    rc = run(tmp_path, "-n", "2", "-s", "0", "-w", "32", "-o", str(tmp_path / "out"),
             "--debug", "--log-dir", str(logs))
    assert rc == 0
    text = (logs / "debug_slm_convert_latest.log").read_text()
    assert "[CLI ] n_rows" in text
    assert "address range: 0x00000000 - 0x00000007" in text
    assert "0_0.slm  2 rows, 38 B" in text
    assert "OK: 1 bank(s) converted" in text


def test_debug_log_dir_that_is_a_file(tmp_path, capsys):
    blocker = tmp_path / "logs"
    blocker.write_text("")
    rc = run(tmp_path, "-n", "2", "-s", "0", "-w", "32", "--dry-run",
             "--debug", "--log-dir", str(blocker))
    assert rc == 1
    assert "Cannot write debug log" in capsys.readouterr().err


def test_no_color_leaves_colorama_constants(tmp_path, capsys):
    assert run(tmp_path, "-n", "2", "-s", "0", "-w", "32", "--dry-run", "-q") == 0
    assert Fore.RED != ""
    assert Style.RESET_ALL != ""

    assert run(tmp_path, "-n", "2", "-s", "0", "-w", "32", "--dry-run") == 0
    printed = capsys.readouterr().out
    assert "[OK]" not in printed
    assert "[INFO] would write 0_0.slm" in printed
    assert "\x1b[" not in printed


def test_summary_reports_used_words(tmp_path, capsys):
    src = tmp_path / "in.slm"
    src.write_text("@0 00000001\n@1 00000002\n@9 00000003\n")
    assert run(tmp_path, "-n", "2", "-s", "0", "-w", "32", "-f", str(src), "--dry-run") == 0
    assert "Words loaded : 3 (2 used, 1 outside range)" in capsys.readouterr().out
