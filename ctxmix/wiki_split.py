"""Split a dump into intro, main and coda parts at fixed line numbers."""

from __future__ import annotations

import os
from pathlib import Path

COMP_INTRO_END_LINE = 29
COMP_MAIN_END_LINE = 13146932
COMP_CODA_END_LINE = 13147025

DECOMP_MAIN_END_LINE = 13146905
DECOMP_INTRO_END_LINE = 13146934
DECOMP_CODA_END_LINE = 13147027


def _lines(data: bytes) -> list[bytes]:
    lines = data.split(b"\n")
    if lines and lines[-1] == b"":
        lines.pop()
    return lines


def _split(source: Path, first: Path, second: Path, third: Path,
           first_end: int, second_end: int, third_end: int) -> None:
    parts = (bytearray(), bytearray(), bytearray())
    for number, line in enumerate(_lines(source.read_bytes())):
        if number < first_end:
            parts[0].extend(line + b"\n")
        elif number < second_end:
            parts[1].extend(line + b"\n")
        elif number < third_end:
            parts[2].extend(line + b"\n")
        else:
            parts[2].extend(line)
    for path, part in zip((first, second, third), parts):
        path.write_bytes(bytes(part))


def split_for_compression(source: str | os.PathLike,
                          directory: str | os.PathLike) -> None:
    """Write ``.intro``, ``.main`` and ``.coda`` from ``source`` into ``directory``."""
    out = Path(directory)
    _split(Path(source), out / ".intro", out / ".main", out / ".coda",
           COMP_INTRO_END_LINE, COMP_MAIN_END_LINE, COMP_CODA_END_LINE)


def split_for_decompression(directory: str | os.PathLike) -> None:
    """Split ``.input_decomp`` into main, intro and coda parts."""
    out = Path(directory)
    _split(out / ".input_decomp", out / ".main_decomp", out / ".intro_decomp",
           out / ".coda_decomp", DECOMP_MAIN_END_LINE, DECOMP_INTRO_END_LINE,
           DECOMP_CODA_END_LINE)