#!/usr/bin/env python3
"""
slm_banks.py — Bank interleaver and SLM emitter
------------------------------------------------

Distributes a linear memory image over a grid of n_serial × n_parallel banks.

Interleave order (innermost first):
    1. parallel banks, words_per_line words each
    2. output rows
    3. serial banks

For bank (i_ser, i_par) and row i_word the first 32-bit word index is:

    idx = i_par * words_per_line
        + words_in_parallel * i_word
        + words_in_parallel * n_rows * i_ser

Output row format (sub-words high → low, word idx+0 rightmost):

    @<row index, 8 hex digits> <w[n-1]>...<w1><w0>
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Union

from slm_errors import IoError, ValidationError
from slm_parser import SparseMemoryImage, load_image
from slm_template import FilenameTemplate

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════
# Geometry
# ═══════════════════════════════════════════════════════════════════════════
@dataclass(frozen=True)
class BankGeometry:
    """Bank grid and word layout of one conversion run."""
    n_rows: int
    word_width: int
    start_addr: int = 0
    n_serial: int = 1
    n_parallel: int = 1
    swap_endianness: bool = False

    @property
    def word_bytes(self) -> int:
        return self.word_width // 8

    @property
    def words_per_line(self) -> int:
        return self.word_bytes // 4

    @property
    def words_in_parallel(self) -> int:
        return self.words_per_line * self.n_parallel

    @property
    def n_outputs(self) -> int:
        return self.n_serial * self.n_parallel

    @property
    def bank_bytes(self) -> int:
        return self.n_rows * self.word_bytes

    @property
    def end_addr(self) -> int:
        """First byte address after the region covered by all banks."""
        return self.start_addr + self.n_outputs * self.bank_bytes

    def validate(self) -> "BankGeometry":
        for name in ("n_rows", "n_serial", "n_parallel"):
            value = getattr(self, name)
            if not isinstance(value, int) or value <= 0:
                raise ValidationError(f"{name} must be a positive integer, got {value!r}")
        if self.word_width <= 0 or self.word_width % 32 != 0:
            raise ValidationError(
                f"word width must be a positive multiple of 32, got {self.word_width}"
            )
        if self.start_addr < 0:
            raise ValidationError(f"start address must not be negative, got {self.start_addr}")
        if self.start_addr % 4:
            logger.warning(
                f"Start address 0x{self.start_addr:x} is not word aligned; "
                "only unaligned input addresses will match"
            )
        return self


@dataclass(frozen=True)
class OutputDescriptor:
    serial_index: int
    parallel_index: int
    filename: str


@dataclass
class ConversionResult:
    """Summary of a finished run."""
    geometry: BankGeometry
    outputs: List[OutputDescriptor]
    written: List[Path] = field(default_factory=list)
    words_loaded: int = 0
    words_used: int = 0
    words_outside: int = 0
    banks: Dict[str, List[str]] = field(default_factory=dict)


# ═══════════════════════════════════════════════════════════════════════════
# Interleaving
# ═══════════════════════════════════════════════════════════════════════════
def word_index(geometry: BankGeometry, i_ser: int, i_par: int, i_word: int) -> int:
    """Index of the lowest 32-bit word of row i_word in bank (i_ser, i_par)."""
    return (i_par * geometry.words_per_line
            + geometry.words_in_parallel * i_word
            + geometry.words_in_parallel * geometry.n_rows * i_ser)


def mem_val(image: SparseMemoryImage, geometry: BankGeometry, idx: int) -> str:
    return image.get(geometry.start_addr + idx * 4)


def format_row(i_word: int, data: str) -> str:
    return f"@{i_word:08X} {data}"


def bank_lines(image: SparseMemoryImage, geometry: BankGeometry,
               i_ser: int, i_par: int) -> List[str]:
    """All n_rows output lines of one bank, without newlines."""
    lines = []
    for i_word in range(geometry.n_rows):
        idx = word_index(geometry, i_ser, i_par, i_word)
        data = "".join(
            mem_val(image, geometry, idx + i_sw)
            for i_sw in reversed(range(geometry.words_per_line))
        )
        lines.append(format_row(i_word, data))
    return lines


def plan_outputs(geometry: BankGeometry,
                 template: Union[str, FilenameTemplate]) -> List[OutputDescriptor]:
    """
    Resolve one filename per bank, serial index outermost.

    Raises ValidationError if two banks would write the same file.
    """
    if isinstance(template, str):
        template = FilenameTemplate(template)

    outputs = []
    seen: Dict[str, OutputDescriptor] = {}
    for i_ser in range(geometry.n_serial):
        for i_par in range(geometry.n_parallel):
            desc = OutputDescriptor(i_ser, i_par, template.render(i_ser, i_par))
            if desc.filename in seen:
                prev = seen[desc.filename]
                raise ValidationError(
                    f"Filename template '{template.template}' maps banks "
                    f"({prev.serial_index},{prev.parallel_index}) and ({i_ser},{i_par}) "
                    f"to the same file '{desc.filename}'"
                )
            seen[desc.filename] = desc
            outputs.append(desc)
    return outputs


def render_banks(image: SparseMemoryImage, geometry: BankGeometry,
                 template: Union[str, FilenameTemplate]) -> Dict[str, List[str]]:
    """filename → lines for every bank, in plan order."""
    outputs = plan_outputs(geometry, template)
    return {
        desc.filename: bank_lines(image, geometry, desc.serial_index, desc.parallel_index)
        for desc in outputs
    }


def image_coverage(image: SparseMemoryImage, geometry: BankGeometry) -> int:
    """Number of loaded words that no bank references."""
    outside = 0
    for addr in image:
        offset = addr - geometry.start_addr
        if offset < 0 or offset % 4 or addr >= geometry.end_addr:
            outside += 1
    return outside


# ═══════════════════════════════════════════════════════════════════════════
# Output
# ═══════════════════════════════════════════════════════════════════════════
def write_banks(banks: Dict[str, List[str]],
                out_dir: Optional[Union[str, Path]] = None) -> List[Path]:
    """
    Write every bank to its file (created or overwritten).

    Files already written are left in place if a later one fails.
    """
    base = Path(out_dir) if out_dir else Path(".")
    try:
        base.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise IoError(f"Cannot create output directory {base}: {exc}", base) from exc

    written = []
    for filename, lines in banks.items():
        path = base / filename
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "w") as f:
                for line in lines:
                    f.write(line + "\n")
        except OSError as exc:
            raise IoError(f"Cannot write output file {path}: {exc}", path) from exc
        logger.debug(f"Wrote {len(lines)} rows to {path}")
        written.append(path)
    return written


def convert(geometry: BankGeometry,
            template: Union[str, FilenameTemplate],
            input_path: Optional[Union[str, Path]] = None,
            out_dir: Optional[Union[str, Path]] = None,
            dry_run: bool = False) -> ConversionResult:
    """Validate, load, interleave and write. Returns a ConversionResult."""
    geometry.validate()
    if isinstance(template, str):
        template = FilenameTemplate(template)
    outputs = plan_outputs(geometry, template)

    image = load_image(input_path, geometry.swap_endianness)
    outside = image_coverage(image, geometry)
    if outside:
        logger.warning(
            f"{outside} of {len(image)} input words lie outside "
            f"0x{geometry.start_addr:x}..0x{geometry.end_addr:x} and are dropped"
        )

    result = ConversionResult(
        geometry=geometry,
        outputs=outputs,
        words_loaded=len(image),
        words_used=len(image) - outside,
        words_outside=outside,
    )
    result.banks = render_banks(image, geometry, template)
    if not dry_run:
        result.written = write_banks(result.banks, out_dir)
    return result
