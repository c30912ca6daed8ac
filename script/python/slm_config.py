#!/usr/bin/env python3
"""
SLM Converter — Configuration Manager

JSON/YAML konfigürasyon dosyasını okur, doğrular ve SlmConfig nesnesine
dönüştürür. Profil birleştirme, lokal override ve uyarı sistemi içerir.

Kullanım:
    from slm_config import load_config

    config = load_config(profile="l2_4x2")
    print(config.geometry.rows)
"""

import copy
import json
import logging
import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, List, Optional

import yaml
from colorama import Fore, Style

from slm_errors import ConfigError
from slm_template import DEFAULT_TEMPLATE

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parent.parent / "config" / "slm_convert.json"

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════
# Warning/Error Messages
# ═══════════════════════════════════════════════════════════════════════════
def warn(msg: str) -> None:
    print(f"{Fore.YELLOW}[CONFIG WARN]{Style.RESET_ALL} {msg}", file=sys.stderr)


# ═══════════════════════════════════════════════════════════════════════════
# Configuration Schema Definition
# ═══════════════════════════════════════════════════════════════════════════
CONFIG_SCHEMA = {
    "geometry": {
        "rows": {"type": "int", "default": None},
        "serial_banks": {"type": "int", "default": 1},
        "parallel_banks": {"type": "int", "default": 1},
        "word_width": {"type": "int", "default": None},
        "start": {"type": "hex", "default": None},
    },
    "output": {
        "format": {"type": "str", "default": DEFAULT_TEMPLATE},
        "directory": {"type": "str", "default": None},
    },
    "input": {
        "swap_endianness": {"type": "bool", "default": False},
    },
    "debug": {
        "enabled": {"type": "bool", "default": False},
        "log_dir": {"type": "str", "default": None},
    },
}


# ═══════════════════════════════════════════════════════════════════════════
# Dataclass Definitions
# ═══════════════════════════════════════════════════════════════════════════
@dataclass
class GeometryConfig:
    rows: Optional[int] = None
    serial_banks: int = 1
    parallel_banks: int = 1
    word_width: Optional[int] = None
    start: Optional[int] = None


@dataclass
class OutputConfig:
    format: str = DEFAULT_TEMPLATE
    directory: Optional[str] = None


@dataclass
class InputConfig:
    swap_endianness: bool = False


@dataclass
class DebugConfig:
    enabled: bool = False
    log_dir: Optional[str] = None


@dataclass
class SlmConfig:
    """Ana konfigürasyon sınıfı."""
    geometry: GeometryConfig = field(default_factory=GeometryConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    input: InputConfig = field(default_factory=InputConfig)
    debug: DebugConfig = field(default_factory=DebugConfig)

    # Meta bilgiler
    config_file: Optional[Path] = None
    local_config_file: Optional[Path] = None
    profile_name: Optional[str] = None
    config_warnings: List[str] = field(default_factory=list)


# ═══════════════════════════════════════════════════════════════════════════
# Config Validation
# ═══════════════════════════════════════════════════════════════════════════
class ConfigValidator:
    """Konfigürasyon doğrulayıcı."""

    SKIP_KEYS = {"$schema", "_comment", "_description", "profiles"}

    def __init__(self, schema: dict):
        self.schema = schema
        self.warnings: List[str] = []

    def validate(self, data: dict, schema: dict = None, path: str = "") -> bool:
        """Bilinmeyen key'ler ve yanlış tipler için uyarı üret."""
        if schema is None:
            schema = self.schema

        for key in data:
            if key in self.SKIP_KEYS or key.startswith("_"):
                continue

            full_path = f"{path}.{key}" if path else key

            if key not in schema:
                self.warnings.append(f"Unknown parameter: '{full_path}'")
            elif "type" in schema[key]:
                self._check_type(full_path, data[key], schema[key]["type"])
            elif isinstance(data[key], dict):
                self.validate(data[key], schema[key], full_path)
            else:
                self.warnings.append(f"'{full_path}' should be a section, not a scalar")

        return not self.warnings

    def _check_type(self, path: str, value: Any, expected: str) -> None:
        if value is None:
            return
        ok = {
            "int": isinstance(value, int) and not isinstance(value, bool),
            "bool": isinstance(value, bool),
            "str": isinstance(value, str),
            "hex": (isinstance(value, int) and not isinstance(value, bool))
                   or isinstance(value, str),
        }[expected]
        if not ok:
            self.warnings.append(
                f"'{path}' should be {expected}, got {type(value).__name__}"
            )


# ═══════════════════════════════════════════════════════════════════════════
# Config Loading
# ═══════════════════════════════════════════════════════════════════════════
def deep_merge(base: dict, override: dict) -> dict:
    """İki dict'i derin merge et."""
    result = copy.deepcopy(base)

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = copy.deepcopy(value)

    return result


def apply_profile(data: dict, profile_name: str) -> dict:
    """Profil ayarlarını uygula."""
    profiles = data.get("profiles", {})

    if profile_name not in profiles:
        available = ", ".join(profiles.keys()) or "none"
        raise ConfigError(f"Profile not found: '{profile_name}'. Available: {available}")

    result = copy.deepcopy(data)
    for section, values in profiles[profile_name].items():
        if section.startswith("_"):
            continue
        if section in result and isinstance(values, dict):
            result[section] = deep_merge(result[section], values)
        else:
            result[section] = values

    return result


def read_config_file(path: Path) -> dict:
    """JSON veya YAML dosyasını dict olarak oku."""
    try:
        with open(path) as f:
            if path.suffix in (".yaml", ".yml"):
                data = yaml.safe_load(f) or {}
            else:
                data = json.load(f)
    except OSError as exc:
        raise ConfigError(f"Cannot read config file {path}: {exc}") from exc
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        raise ConfigError(f"Cannot parse config file {path}: {exc}") from exc

    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping at top level")
    return data


def _start_value(value: Any) -> Optional[int]:
    if value is None or isinstance(value, int):
        return value
    text = str(value).strip().lower()
    if text.startswith("0x"):
        text = text[2:]
    try:
        return int(text, 16)
    except ValueError as exc:
        raise ConfigError(f"geometry.start must be hexadecimal, got '{value}'") from exc


def dict_to_config(data: dict) -> SlmConfig:
    """Dict'i SlmConfig'e dönüştür."""
    config = SlmConfig()
    sections = {k: v for k, v in data.items() if isinstance(v, dict)}

    if "geometry" in sections:
        geo = sections["geometry"]
        config.geometry = GeometryConfig(
            rows=geo.get("rows"),
            serial_banks=geo.get("serial_banks", 1),
            parallel_banks=geo.get("parallel_banks", 1),
            word_width=geo.get("word_width"),
            start=_start_value(geo.get("start")),
        )

    if "output" in sections:
        out = sections["output"]
        config.output = OutputConfig(
            format=out.get("format", DEFAULT_TEMPLATE),
            directory=out.get("directory"),
        )

    if "input" in sections:
        config.input = InputConfig(
            swap_endianness=sections["input"].get("swap_endianness", False),
        )

    if "debug" in sections:
        dbg = sections["debug"]
        config.debug = DebugConfig(
            enabled=dbg.get("enabled", False),
            log_dir=dbg.get("log_dir"),
        )

    return config


def local_path_for(config_path: Path) -> Path:
    """slm_convert.json → slm_convert.local.json"""
    return config_path.with_name(f"{config_path.stem}.local{config_path.suffix}")


def load_config(
    config_path: Optional[Path] = None,
    local_path: Optional[Path] = None,
    profile: Optional[str] = None,
    strict: bool = False,
) -> SlmConfig:
    """
    Konfigürasyonu yükle.

    Args:
        config_path: Ana config dosyası (None ise varsayılan dosya)
        local_path: Lokal override dosyası
        profile: Uygulanacak profil
        strict: Uyarıları hata olarak ele al

    Returns:
        SlmConfig nesnesi
    """
    explicit = config_path is not None
    config_path = Path(config_path) if explicit else DEFAULT_CONFIG_PATH

    if not config_path.exists():
        if explicit:
            raise ConfigError(f"Config file not found: {config_path}")
        warn(f"Default config file not found: {config_path}")
        data = {}
        config_path = None
    else:
        data = read_config_file(config_path)

    # Lokal override varsa merge et
    if local_path is None and config_path is not None:
        local_path = local_path_for(config_path)
    if local_path is not None:
        local_path = Path(local_path)
        if local_path.exists():
            data = deep_merge(data, read_config_file(local_path))
        else:
            local_path = None

    if profile:
        data = apply_profile(data, profile)
        logger.info(f"Profile applied: {profile}")

    validator = ConfigValidator(CONFIG_SCHEMA)
    validator.validate(data)

    for w in validator.warnings:
        warn(w)

    if strict and validator.warnings:
        raise ConfigError(
            f"{len(validator.warnings)} config warning(s) treated as errors in strict mode"
        )

    config = dict_to_config(data)
    config.config_file = config_path
    config.local_config_file = local_path
    config.profile_name = profile
    config.config_warnings = validator.warnings

    if os.environ.get("SLM_DEBUG", "0") == "1":
        config.debug.enabled = True

    return config


# ═══════════════════════════════════════════════════════════════════════════
# Config Summary
# ═══════════════════════════════════════════════════════════════════════════
def _kv(key: str, value: Any, indent: int = 4) -> None:
    spaces = " " * indent
    key_fmt = f"{Style.DIM}{key}:{Style.RESET_ALL}"
    print(f"{spaces}{key_fmt:20} {value}")


def print_config_summary(config: SlmConfig) -> None:
    """Konfigürasyon özetini yazdır."""
    print()
    print(f"{Fore.CYAN}{'═' * 60}{Style.RESET_ALL}")
    print(f"{Fore.CYAN}  SLM Converter Configuration{Style.RESET_ALL}")
    print(f"{Fore.CYAN}{'═' * 60}{Style.RESET_ALL}")

    if config.config_file:
        _kv("Config", config.config_file)
    if config.local_config_file:
        _kv("Local", config.local_config_file)
    if config.profile_name:
        _kv("Profile", f"{Fore.CYAN}{config.profile_name}{Style.RESET_ALL}")

    geo = config.geometry
    _kv("Rows", geo.rows)
    _kv("Word Width", geo.word_width)
    _kv("Start", f"0x{geo.start:08x}" if geo.start is not None else None)
    _kv("Banks", f"{geo.serial_banks} serial × {geo.parallel_banks} parallel")
    _kv("Format", config.output.format)
    _kv("Swap", config.input.swap_endianness)

    if config.config_warnings:
        print()
        print(f"  {Fore.YELLOW}⚠ {len(config.config_warnings)} warning(s){Style.RESET_ALL}")
        for w in config.config_warnings[:3]:
            print(f"    {Style.DIM}• {w}{Style.RESET_ALL}")

    print(f"\n{Fore.CYAN}{'═' * 60}{Style.RESET_ALL}\n")
