"""Split a self-extracting archive into its binary, dictionary and payload."""

from __future__ import annotations

import os
import struct
import subprocess
from dataclasses import dataclass
from pathlib import Path

_HEADER = struct.Struct("<3i")
HEADER_SIZE = _HEADER.size


@dataclass
class HeaderInfo:
    """Sizes of the parts appended to the archive, stored at its end."""

    dict_size: int
    new_article_order_size: int
    decomp_input_size: int

    def pack(self) -> bytes:
        """Encode the header as three little-endian 32-bit integers."""
        return _HEADER.pack(self.dict_size, self.new_article_order_size,
                            self.decomp_input_size)

    @staticmethod
    def unpack(data: bytes) -> "HeaderInfo":
        """Decode a header from its first bytes."""
        if len(data) < HEADER_SIZE:
            raise ValueError("header needs %d bytes" % HEADER_SIZE)
        return HeaderInfo(*_HEADER.unpack(data[:HEADER_SIZE]))


def write_header(path: str | os.PathLike, header: HeaderInfo) -> None:
    """Write ``header`` to ``path``."""
    Path(path).write_bytes(header.pack())


def read_header(path: str | os.PathLike) -> HeaderInfo:
    """Read a header written by :func:`write_header`."""
    return HeaderInfo.unpack(Path(path).read_bytes())


def _load(path: Path) -> tuple[bytes, HeaderInfo]:
    data = path.read_bytes()
    if len(data) < HEADER_SIZE:
        raise ValueError(f"{path.name} is too short to hold a header")
    tail = data[-HEADER_SIZE:]
    (path.parent / "test.dat").write_bytes(tail)
    return data, read_header(path.parent / "test.dat")


def _run(directory: Path, program: str, source: str, target: str) -> None:
    try:
        subprocess.run([f"./{program}", "-d", source, target], cwd=directory,
                       check=False)
    except OSError:
        pass


def _binary_size(data: bytes, *sizes: int) -> int:
    if any(size < 0 for size in sizes):
        raise ValueError("negative part size in header")
    size = len(data) - sum(sizes) - HEADER_SIZE
    if size < 0:
        raise ValueError("header sizes exceed the archive")
    return size


def selfextract_comp(directory: str | os.PathLike) -> HeaderInfo:
    """Split ``cmix`` into its binary, dictionary and article order."""
    d = Path(directory)
    data, header = _load(d / "cmix")
    binary = _binary_size(data, header.dict_size, header.new_article_order_size)
    (d / ".decomp_bin").write_bytes(data[:binary])
    dict_end = binary + header.dict_size
    (d / ".dict.comp").write_bytes(data[binary:dict_end])
    _run(d, "cmix", ".dict.comp", ".dict")
    (d / ".new_article_order.comp").write_bytes(
        data[dict_end:dict_end + header.new_article_order_size])
    _run(d, "cmix", ".new_article_order.comp", ".new_article_order")
    return header


def selfextract_decomp(directory: str | os.PathLike) -> HeaderInfo:
    """Split ``archive9`` into its dictionary and compressed payload."""
    d = Path(directory)
    data, header = _load(d / "archive9")
    binary = _binary_size(data, header.dict_size, header.decomp_input_size)
    dict_end = binary + header.dict_size
    (d / ".dict.comp_decomp").write_bytes(data[binary:dict_end])
    _run(d, "archive9", ".dict.comp_decomp", ".dict_decomp")
    (d / ".ready4cmix_decomp").write_bytes(
        data[dict_end:dict_end + header.decomp_input_size])
    return header