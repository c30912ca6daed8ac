#!/usr/bin/env python3
"""
SLM Converter — Debug Logger

Her dönüşüm çalıştırması için bir debug kaydı tutar:
ayarların nereden geldiği, bank geometrisi, yazılan her bank dosyası ve sonuç.
Kayıt .log (okunabilir) ve .json (yapısal) olarak log dizinine yazılır.

Kullanım:
    from debug_logger import create_logger

    with create_logger("slm_convert", log_dir, debug_enabled=True) as dlog:
        dlog.setting("n_rows", "1024", None, None, "1024", "cli")
        dlog.geometry(geometry)
        dlog.bank(0, 1, Path("0_1.slm"), 1024)
        dlog.result(True, "8 banks converted", {"words_loaded": 512})
"""

import json
import os
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from slm_errors import IoError

SOURCE_TAGS = {
    "cli": "CLI",
    "config": "CONF",
    "default": "DEF",
    "computed": "CALC",
}


class DebugLogger:
    """
    Dönüşüm çalıştırmasının debug kaydı.

    enabled=False iken tüm çağrılar etkisizdir ve save() hiçbir şey yazmaz.
    """

    def __init__(
        self,
        tool_name: str,
        log_dir: Optional[Path] = None,
        enabled: bool = True,
        console_echo: bool = False
    ):
        self.tool_name = tool_name
        self.enabled = enabled
        self.console_echo = console_echo
        self.start_time = datetime.now()
        self.log_dir = Path(log_dir) if log_dir else Path("/tmp") / f"slm_{tool_name}_debug"

        self.lines: List[str] = []
        self.settings: Dict[str, Dict[str, Any]] = {}
        self.layout: Dict[str, Any] = {}
        self.banks: List[Dict[str, Any]] = []
        self.messages: List[str] = []
        self.summary: Dict[str, Any] = {
            "tool": tool_name,
            "start_time": self.start_time.isoformat(),
            "argv": sys.argv,
            "cwd": os.getcwd(),
        }

        self._log(f"# {tool_name} debug log, {self.start_time:%Y-%m-%d %H:%M:%S}")
        self._log(f"# argv: {' '.join(sys.argv)}")

    def _log(self, line: str) -> None:
        if not self.enabled:
            return
        self.lines.append(line)
        if self.console_echo:
            print(f"[DEBUG] {line}")

    def section(self, name: str) -> None:
        self._log("")
        self._log(f"── {name} {'─' * max(0, 74 - len(name))}")

    # ═══════════════════════════════════════════════════════════════════════
    # Settings and Geometry
    # ═══════════════════════════════════════════════════════════════════════
    def setting(
        self,
        name: str,
        cli_value: Any,
        config_value: Any,
        default_value: Any,
        final_value: Any,
        source: str
    ) -> None:
        """Bir ayarın son değerini ve aday değerlerini (CLI/config/default) kaydet."""
        if not self.enabled:
            return
        tag = SOURCE_TAGS.get(source, source[:4].upper())
        self._log(
            f"  [{tag:4}] {name:<16} = {final_value!s:<20} "
            f"(cli={cli_value}, config={config_value}, default={default_value})"
        )
        self.settings[name] = {
            "value": final_value,
            "source": source,
            "cli": cli_value,
            "config": config_value,
            "default": default_value,
        }

    def geometry(self, geometry) -> None:
        """Bank geometrisini ve kapsanan adres aralığını kaydet."""
        if not self.enabled:
            return
        self.layout = {
            "n_rows": geometry.n_rows,
            "word_width": geometry.word_width,
            "n_serial": geometry.n_serial,
            "n_parallel": geometry.n_parallel,
            "words_per_line": geometry.words_per_line,
            "words_in_parallel": geometry.words_in_parallel,
            "bank_bytes": geometry.bank_bytes,
            "start_addr": f"0x{geometry.start_addr:08x}",
            "end_addr": f"0x{geometry.end_addr:08x}",
            "swap_endianness": geometry.swap_endianness,
        }
        self._log(f"  grid         : {geometry.n_serial} serial × {geometry.n_parallel} parallel")
        self._log(f"  row          : {geometry.word_width} bit = {geometry.words_per_line} × 32-bit sub-words")
        self._log(f"  bank size    : {geometry.n_rows} rows, {geometry.bank_bytes} bytes")
        self._log(f"  address range: {self.layout['start_addr']} - 0x{geometry.end_addr - 1:08x}")

    # ═══════════════════════════════════════════════════════════════════════
    # Banks and Messages
    # ═══════════════════════════════════════════════════════════════════════
    def bank(self, serial_index: int, parallel_index: int, path: Path, rows: int) -> None:
        """Yazılan (veya dry-run'da planlanan) bir bank dosyasını kaydet."""
        if not self.enabled:
            return
        path = Path(path)
        size = path.stat().st_size if path.is_file() else None
        self.banks.append({
            "serial": serial_index,
            "parallel": parallel_index,
            "path": str(path),
            "rows": rows,
            "bytes": size,
        })
        state = f"{size} B" if size is not None else "not written"
        self._log(f"  ({serial_index},{parallel_index}) {path}  {rows} rows, {state}")

    def warning(self, message: str) -> None:
        self._log(f"  WARNING: {message}")
        self.messages.append(f"[WARN] {message}")

    def error(self, message: str) -> None:
        self._log(f"  ERROR: {message}")
        self.messages.append(f"[ERROR] {message}")

    def result(self, success: bool, message: str, stats: Optional[Dict[str, Any]] = None) -> None:
        elapsed = (datetime.now() - self.start_time).total_seconds()
        self.section("Result")
        self._log(f"  {'OK' if success else 'FAILED'}: {message}")
        for key, value in (stats or {}).items():
            self._log(f"  {key:<14}: {value}")
        self._log(f"  banks logged  : {len(self.banks)}, "
                  f"{sum(b['rows'] for b in self.banks)} rows in total")
        self._log(f"  duration      : {elapsed:.3f} s")

        self.summary.update({
            "success": success,
            "message": message,
            "stats": stats or {},
            "elapsed_seconds": elapsed,
        })

    # ═══════════════════════════════════════════════════════════════════════
    # Save
    # ═══════════════════════════════════════════════════════════════════════
    def save(self) -> Optional[Path]:
        """
        .log ve .json dosyalarını yaz (ayrıca sabit isimli _latest kopyaları).

        Raises:
            IoError: log dizini oluşturulamıyor veya yazılamıyor
        """
        if not self.enabled:
            return None

        stem = f"debug_{self.tool_name}_{self.start_time:%Y%m%d_%H%M%S}"
        latest = f"debug_{self.tool_name}_latest"
        payload = {
            "summary": self.summary,
            "settings": self.settings,
            "geometry": self.layout,
            "banks": self.banks,
            "messages": self.messages,
        }
        text = "\n".join(self.lines) + "\n"

        try:
            self.log_dir.mkdir(parents=True, exist_ok=True)
            for name in (stem, latest):
                (self.log_dir / f"{name}.log").write_text(text)
                with open(self.log_dir / f"{name}.json", "w") as f:
                    json.dump(payload, f, indent=2, default=str)
        except OSError as exc:
            raise IoError(f"Cannot write debug log to {self.log_dir}: {exc}", self.log_dir) from exc

        return self.log_dir / f"{stem}.log"

    def __enter__(self) -> "DebugLogger":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if exc_type:
            self.error(f"{exc_type.__name__}: {exc_val}")
            self.result(False, str(exc_val))
        self.save()


def create_logger(
    tool_name: str,
    log_dir: Optional[Path] = None,
    debug_enabled: bool = False
) -> DebugLogger:
    """SLM_DEBUG=1 veya --debug ile etkinleşir; SLM_DEBUG_ECHO=1 konsola da yazar."""
    enabled = debug_enabled or os.environ.get("SLM_DEBUG", "0") == "1"

    return DebugLogger(
        tool_name=tool_name,
        log_dir=log_dir,
        enabled=enabled,
        console_echo=os.environ.get("SLM_DEBUG_ECHO", "0") == "1"
    )
