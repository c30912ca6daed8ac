#!/usr/bin/env python3
"""
slm_template.py — Output filename templates
--------------------------------------------

Placeholders:
    %S      serial bank index
    %P      parallel bank index
    %0NS    serial index zero-padded to N digits (same for P)
    %%      literal '%'

Example:
    FilenameTemplate("%02S_%02P.slm").render(3, 7)  →  "03_07.slm"
"""

import re

from slm_errors import FormatError

DEFAULT_TEMPLATE = "%S_%P.slm"

_TOKEN_RE = re.compile(r"%(?:(?P<pad>0\d+)?(?P<field>[SP])|(?P<percent>%))")


class FilenameTemplate:
    """Compiled filename template; malformed templates fail on construction."""

    def __init__(self, template: str = DEFAULT_TEMPLATE):
        self.template = template
        self._parts = self._compile(template)

    def _compile(self, template: str) -> list:
        if not template:
            raise FormatError("Empty output filename template")

        parts = []
        pos = 0
        while pos < len(template):
            start = template.find("%", pos)
            if start < 0:
                parts.append(template[pos:])
                break
            if start > pos:
                parts.append(template[pos:start])

            m = _TOKEN_RE.match(template, start)
            if not m:
                raise FormatError(
                    f"Malformed placeholder at offset {start} of filename template '{template}'"
                )
            if m.group("percent"):
                parts.append("%")
            else:
                width = int(m.group("pad")) if m.group("pad") else 0
                parts.append((m.group("field"), width))
            pos = m.end()
        return parts

    @property
    def uses_serial(self) -> bool:
        return any(isinstance(p, tuple) and p[0] == "S" for p in self._parts)

    @property
    def uses_parallel(self) -> bool:
        return any(isinstance(p, tuple) and p[0] == "P" for p in self._parts)

    def render(self, serial_index: int, parallel_index: int) -> str:
        values = {"S": serial_index, "P": parallel_index}
        out = []
        for part in self._parts:
            if isinstance(part, tuple):
                field, width = part
                out.append(f"{values[field]:0{width}d}" if width else str(values[field]))
            else:
                out.append(part)
        return "".join(out)

    def __repr__(self) -> str:
        return f"FilenameTemplate({self.template!r})"
