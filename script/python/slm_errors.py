#!/usr/bin/env python3
"""
slm_errors.py — Error types for the SLM bank converter
-------------------------------------------------------

Every failure of a conversion run is terminal. Nothing is retried; the CLI
catches SlmError at the top level and exits with code 1.
"""

from pathlib import Path
from typing import Optional, Union


class SlmError(Exception):
    """Base class for all converter errors."""


class IoError(SlmError):
    """Input file missing/unreadable or output file could not be written."""

    def __init__(self, message: str, path: Optional[Union[str, Path]] = None):
        super().__init__(message)
        self.path = path


class FormatError(SlmError):
    """Malformed SLM line, bad data word or malformed filename template."""


class DuplicateEntryError(SlmError):
    """Second definition of an already loaded address."""


class ValidationError(SlmError):
    """Geometry or argument outside its allowed domain."""


class ConfigError(SlmError):
    """Configuration file missing, unparsable or rejected in strict mode."""
