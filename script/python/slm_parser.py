#!/usr/bin/env python3
"""
slm_parser.py — SLM memory image loader
----------------------------------------

Reads an SLM file (one 32-bit word per line) into a sparse byte-address map.

Input line format:
    @<hex index> <data>        index form, byte address = index * 4
    <hex addr>   <data>        address form, byte address taken literally
    0x<hex addr> 0x<data>      optional 0x prefix on address and data

<data> must be exactly 8 hex characters after prefix removal.

Usage:
    from slm_parser import load_image

    image = load_image("l2.slm", swap=True)
    print(image.get(0x1c000000))
"""

import logging
import string
from pathlib import Path
from typing import Dict, Iterator, Optional, Tuple, Union

from slm_errors import DuplicateEntryError, FormatError, IoError

logger = logging.getLogger(__name__)

WORD_CHARS = 8
ZERO_WORD = "0" * WORD_CHARS
HEX_DIGITS = set(string.hexdigits)
COMMENT_PREFIXES = ("//", "#")


# ═══════════════════════════════════════════════════════════════════════════
# Sparse Memory Image
# ═══════════════════════════════════════════════════════════════════════════
class SparseMemoryImage:
    """
    Byte address → 8-hex-char word map.

    Built once by load_image(); read-only afterwards. Absent addresses read
    as the zero word.
    """

    def __init__(self, source: Optional[Union[str, Path]] = None):
        self.source = source
        self._words: Dict[int, str] = {}

    def _insert(self, addr: int, word: str, label: str) -> None:
        if addr in self._words:
            raise DuplicateEntryError(
                f"duplicate key for {label} of file {self.source}"
            )
        self._words[addr] = word

    def get(self, addr: int) -> str:
        return self._words.get(addr, ZERO_WORD)

    def __contains__(self, addr: int) -> bool:
        return addr in self._words

    def __len__(self) -> int:
        return len(self._words)

    def __iter__(self) -> Iterator[int]:
        return iter(self._words)

    def __repr__(self) -> str:
        return f"SparseMemoryImage(source={self.source!r}, words={len(self)})"


# ═══════════════════════════════════════════════════════════════════════════
# Word Helpers
# ═══════════════════════════════════════════════════════════════════════════
def strip_hex_prefix(token: str) -> str:
    if token[:2] in ("0x", "0X"):
        return token[2:]
    return token


def parse_hex(token: str, what: str = "value") -> int:
    """Parse hexadecimal text with or without 0x prefix."""
    digits = strip_hex_prefix(token.strip())
    if not digits or not set(digits) <= HEX_DIGITS:
        raise FormatError(f"Expected hexadecimal number for {what}, got '{token}'")
    return int(digits, 16)


def swap_endianness(word: str) -> str:
    """
    Reverse the byte order of an 8-hex-char word.

    "11223344" → "44332211". Works on 2-char groups so nibble order inside a
    byte is kept.
    """
    return "".join(word[i:i + 2] for i in range(len(word) - 2, -1, -2))


def check_word(token: str, label: str, path) -> str:
    """Return the data word without prefix, or raise FormatError."""
    word = strip_hex_prefix(token)
    if len(word) != WORD_CHARS:
        raise FormatError(f"incorrect word length at {label} of file {path}")
    if not set(word) <= HEX_DIGITS:
        raise FormatError(f"non-hex data word '{token}' at {label} of file {path}")
    return word


def parse_line(line: str, path=None, lineno: int = 0) -> Tuple[int, str, str]:
    """
    Parse one SLM line.

    Returns:
        (byte_addr, word, label) — label reports the location in the form it
        was written, e.g. "index @1f" or "address 0x7c".
    """
    tokens = line.split()
    if len(tokens) != 2:
        raise FormatError(
            f"expected '<addr> <data>' at line {lineno} of file {path}, got '{line.strip()}'"
        )
    loc, data = tokens

    if loc.startswith("@"):
        if loc[1:3].lower() == "0x":
            raise FormatError(
                f"Index '{loc}' at line {lineno} of file {path} must not carry a 0x prefix"
            )
        idx = parse_hex(loc[1:], f"index at line {lineno} of file {path}")
        label = f"index @{idx:x}"
        addr = idx * 4
    else:
        addr = parse_hex(loc, f"address at line {lineno} of file {path}")
        label = f"address 0x{addr:x}"

    return addr, check_word(data, label, path), label


# ═══════════════════════════════════════════════════════════════════════════
# Loader
# ═══════════════════════════════════════════════════════════════════════════
def load_image(path: Optional[Union[str, Path]], swap: bool = False) -> SparseMemoryImage:
    """
    Load an SLM file into a SparseMemoryImage.

    Args:
        path: Input SLM file; None gives an empty (all-zero) image
        swap: Swap endianness of every 32-bit word

    Raises:
        IoError: file cannot be opened or read
        FormatError: malformed line or data word
        DuplicateEntryError: address defined twice
    """
    image = SparseMemoryImage(path)
    if path is None:
        logger.debug("No input file, memory initialized to zero")
        return image

    try:
        with open(path) as f:
            for lineno, raw_line in enumerate(f, start=1):
                line = raw_line.strip()
                if not line or line.startswith(COMMENT_PREFIXES):
                    continue

                addr, word, label = parse_line(line, path, lineno)
                if swap:
                    word = swap_endianness(word)
                image._insert(addr, word, label)
    except UnicodeDecodeError as exc:
        raise FormatError(f"Input file {path} is not a text SLM file") from exc
    except OSError as exc:
        raise IoError(f"Cannot read input file {path}: {exc.strerror or exc}", path) from exc

    logger.debug(f"Loaded {len(image)} words from {path} (swap={swap})")
    return image
