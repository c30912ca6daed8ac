#!/usr/bin/env python3
"""
slm_convert.py — SLM Converter
-------------------------------

Converts a flat 32-bit SLM memory image into one SLM file per memory bank of
a serial × parallel bank grid (e.g. L2 cache banks of an FPGA/ASIC design).

Usage:
    python3 slm_convert.py -n 1024 -s 0x1c000000 -w 64 -S 4 -P 2 -f l2.slm
    python3 slm_convert.py -n 1024 -s 0 -w 32 -F 'bank_%02S_%02P.slm' -o build/
    python3 slm_convert.py --profile l2_4x2 -f l2.slm --preview 4

Debug:
    SLM_DEBUG=1 python3 slm_convert.py ...
    python3 slm_convert.py ... --debug --log-dir build/log
"""

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional, Tuple

from colorama import Fore, Style, colorama_text

# Aynı dizindeki modülleri import et
sys.path.insert(0, str(Path(__file__).parent))

from debug_logger import DebugLogger, create_logger
from slm_banks import BankGeometry, ConversionResult, convert
from slm_config import DEFAULT_CONFIG_PATH, SlmConfig, load_config, print_config_summary
from slm_errors import SlmError, ValidationError
from slm_parser import parse_hex
from slm_template import DEFAULT_TEMPLATE, FilenameTemplate

__version__ = "0.3.0"

logger = logging.getLogger("slm_convert")


# ═══════════════════════════════════════════════════════════════════════════
# Console Output
# ═══════════════════════════════════════════════════════════════════════════
def info(msg: str) -> None:
    print(f"{Fore.CYAN}[INFO]{Style.RESET_ALL} {msg}")


def error(msg: str) -> None:
    print(f"{Fore.RED}[ERROR]{Style.RESET_ALL} {msg}", file=sys.stderr)


def success(msg: str) -> None:
    print(f"{Fore.GREEN}[OK]{Style.RESET_ALL} {msg}")


def header(title: str, char: str = "═") -> None:
    line = char * 60
    print(f"\n{Fore.CYAN}{line}{Style.RESET_ALL}")
    print(f"{Fore.CYAN}{Style.BRIGHT}  {title}{Style.RESET_ALL}")
    print(f"{Fore.CYAN}{line}{Style.RESET_ALL}")


# ═══════════════════════════════════════════════════════════════════════════
# Argument Parsing
# ═══════════════════════════════════════════════════════════════════════════
def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="slm_convert",
        description="Converts SLM files into per-bank SLM files for serial/parallel memory banks.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    geo = parser.add_argument_group("geometry")
    geo.add_argument("-n", "--num-oup-rows", dest="n_rows",
                     help="Number of rows in each output SLM file")
    geo.add_argument("-s", "--start", dest="start_addr",
                     help="First address; hexadecimal with or without 0x prefix")
    geo.add_argument("-w", "--word-width", dest="word_width",
                     help="Number of bits per memory word; must be a multiple of 32")
    geo.add_argument("-S", "--serial-banks", dest="serial_banks",
                     help="Number of memory banks in series (default: 1)")
    geo.add_argument("-P", "--parallel-banks", dest="parallel_banks",
                     help="Number of memory banks in parallel (default: 1)")

    io = parser.add_argument_group("input/output")
    io.add_argument("-f", "--file", dest="input_file",
                    help="Input SLM file with 32-bit words; if omitted, the memory is "
                         "initialized to zero")
    io.add_argument("-F", "--format", dest="format",
                    help="Format string. %%S and %%P for serial and parallel index, "
                         "respectively. Put '0' followed by a number between '%%' and "
                         "'S' or 'P' for zero-padding to that number of digits, e.g., "
                         f"'%%02S_%%02P.slm'. (default: {DEFAULT_TEMPLATE.replace('%', '%%')})")
    io.add_argument("-o", "--output-dir", dest="output_dir",
                    help="Directory for the output files (default: current directory)")
    io.add_argument("--swap-endianness", action="store_true", default=None,
                    help="Swap endianness for every 32-bit data word")

    cfg = parser.add_argument_group("configuration")
    cfg.add_argument("-c", "--config", type=Path, help="Configuration file (JSON or YAML)")
    cfg.add_argument("-l", "--local", type=Path, help="Local override file")
    cfg.add_argument("-p", "--profile", help="Configuration profile to apply")
    cfg.add_argument("--strict", action="store_true",
                     help="Treat configuration warnings as errors")
    cfg.add_argument("--show-config", action="store_true",
                     help="Print the merged configuration before converting")

    run = parser.add_argument_group("run")
    run.add_argument("--dry-run", action="store_true",
                     help="Plan outputs without writing any file")
    run.add_argument("--preview", type=int, default=0, metavar="N",
                     help="Print the first N rows of every bank")
    run.add_argument("--debug", action="store_true",
                     help="Write a debug log (also enabled by SLM_DEBUG=1)")
    run.add_argument("--log-dir", type=Path, help="Directory for the debug log")
    run.add_argument("-v", "--verbose", action="store_true", help="Verbose logging")
    run.add_argument("-q", "--quiet", action="store_true", help="Only show warnings and errors")
    run.add_argument("--no-color", action="store_true", help="Disable colored output")
    run.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    return parser


def parse_count(value, name: str) -> int:
    """Parse a decimal unsigned integer argument."""
    try:
        number = int(str(value), 10)
    except ValueError as exc:
        raise ValidationError(f"Expected unsigned integer for argument {name}, got '{value}'") from exc
    if number < 0:
        raise ValidationError(f"Expected unsigned integer for argument {name}, got '{value}'")
    return number


def parse_addr(value, name: str) -> int:
    if isinstance(value, int):
        return value
    try:
        return parse_hex(str(value), name)
    except SlmError as exc:
        raise ValidationError(f"Expected hexadecimal number for argument {name}, got '{value}'") from exc


def _pick(dlog: DebugLogger, name: str, cli_value, config_value, default):
    """CLI > config > default"""
    if cli_value is not None:
        final, source = cli_value, "cli"
    elif config_value is not None:
        final, source = config_value, "config"
    else:
        final, source = default, "default"
    dlog.setting(name, cli_value, config_value, default, final, source)
    return final


def resolve_settings(
    args: argparse.Namespace,
    config: SlmConfig,
    dlog: DebugLogger,
) -> Tuple[BankGeometry, FilenameTemplate, Optional[str], Optional[str]]:
    """Merge CLI arguments with the configuration into a validated geometry."""
    geo = config.geometry
    dlog.section("Settings")

    rows = _pick(dlog, "n_rows", args.n_rows, geo.rows, None)
    start = _pick(dlog, "start_addr", args.start_addr, geo.start, None)
    width = _pick(dlog, "word_width", args.word_width, geo.word_width, None)
    serial = _pick(dlog, "serial_banks", args.serial_banks, geo.serial_banks, 1)
    parallel = _pick(dlog, "parallel_banks", args.parallel_banks, geo.parallel_banks, 1)
    fmt = _pick(dlog, "format", args.format, config.output.format, DEFAULT_TEMPLATE)
    out_dir = _pick(dlog, "output_dir", args.output_dir, config.output.directory, None)
    swap = _pick(dlog, "swap_endianness", args.swap_endianness,
                 config.input.swap_endianness, False)

    missing = [opt for opt, value in (("--num-oup-rows", rows),
                                      ("--start", start),
                                      ("--word-width", width)) if value is None]
    if missing:
        raise ValidationError(f"Missing required value(s): {', '.join(missing)}")

    geometry = BankGeometry(
        n_rows=parse_count(rows, "n_rows"),
        word_width=parse_count(width, "word_width"),
        start_addr=parse_addr(start, "start_addr"),
        n_serial=parse_count(serial, "serial_banks"),
        n_parallel=parse_count(parallel, "parallel_banks"),
        swap_endianness=bool(swap),
    ).validate()

    dlog.section("Geometry")
    dlog.geometry(geometry)

    return geometry, FilenameTemplate(fmt), args.input_file, out_dir


# ═══════════════════════════════════════════════════════════════════════════
# Reporting
# ═══════════════════════════════════════════════════════════════════════════
def print_preview(result: ConversionResult, rows: int) -> None:
    for desc in result.outputs:
        lines = result.banks[desc.filename]
        print(f"\n{Fore.MAGENTA}▶ {desc.filename}{Style.RESET_ALL} "
              f"{Style.DIM}(serial {desc.serial_index}, parallel {desc.parallel_index}){Style.RESET_ALL}")
        for line in lines[:rows]:
            print(f"  {line}")
        if len(lines) > rows:
            print(f"  {Style.DIM}... {len(lines) - rows} more rows{Style.RESET_ALL}")


def print_summary(result: ConversionResult, input_file: Optional[str], dry_run: bool) -> None:
    geometry = result.geometry
    header("SLM Conversion")
    info(f"Input        : {input_file or '(none, zero-initialized)'}")
    info(f"Address range: 0x{geometry.start_addr:08x} - 0x{geometry.end_addr - 1:08x}")
    info(f"Banks        : {geometry.n_serial} serial × {geometry.n_parallel} parallel, "
         f"{geometry.n_rows} rows × {geometry.word_width} bit")
    info(f"Words loaded : {result.words_loaded} "
         f"({result.words_used} used, {result.words_outside} outside range)")
    if dry_run:
        for desc in result.outputs:
            info(f"would write {desc.filename}")
    else:
        success(f"{len(result.written)} file(s) written")


# ═══════════════════════════════════════════════════════════════════════════
# Main
# ═══════════════════════════════════════════════════════════════════════════
def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    if args.verbose:
        level = logging.DEBUG
    elif args.quiet:
        level = logging.WARNING
    else:
        level = logging.INFO
    logging.basicConfig(level=level, format="[%(levelname)s] %(message)s")

    # strip=None: colorama strips codes itself when the stream is not a tty
    strip = True if args.no_color or os.environ.get("NO_COLOR") else None
    with colorama_text(autoreset=True, strip=strip):
        return run(args)


def run(args: argparse.Namespace) -> int:
    try:
        config = load_config(
            config_path=args.config,
            local_path=args.local,
            profile=args.profile,
            strict=args.strict,
        )
        if args.show_config:
            print_config_summary(config)

        log_dir = args.log_dir or config.debug.log_dir
        with create_logger("slm_convert", log_dir, args.debug or config.debug.enabled) as dlog:
            dlog.section("Configuration")
            dlog.setting("config_file", args.config, None, DEFAULT_CONFIG_PATH, config.config_file,
                         "cli" if args.config else "default")
            dlog.setting("profile", args.profile, None, None, config.profile_name, "cli")
            for w in config.config_warnings:
                dlog.warning(w)

            geometry, template, input_file, out_dir = resolve_settings(args, config, dlog)
            logger.debug(f"{geometry} template={template.template!r} input={input_file}")

            dlog.section("Banks")
            result = convert(geometry, template, input_file, out_dir, dry_run=args.dry_run)
            base = Path(out_dir) if out_dir else Path(".")
            for desc in result.outputs:
                dlog.bank(desc.serial_index, desc.parallel_index, base / desc.filename,
                          len(result.banks[desc.filename]))
            if result.words_outside:
                dlog.warning(f"{result.words_outside} input words outside the bank range")

            if args.preview > 0:
                print_preview(result, args.preview)
            if not args.quiet:
                print_summary(result, input_file, args.dry_run)

            dlog.result(True, f"{len(result.outputs)} bank(s) converted", {
                "words_loaded": result.words_loaded,
                "words_used": result.words_used,
                "words_outside": result.words_outside,
                "dry_run": args.dry_run,
            })
    except SlmError as exc:
        error(str(exc))
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
