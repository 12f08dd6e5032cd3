"""Reading and writing the header that starts every ``.npy`` file."""

from __future__ import annotations

import math
import re
import struct
import sys
from dataclasses import dataclass
from typing import BinaryIO, Iterable

import numpy as np

MAGIC = b"\x93NUMPY"
_PREAMBLE_V1 = 10
_PREAMBLE_V2 = 12
_KIND_TO_CHAR = {"f": "f", "i": "i", "u": "u", "b": "b", "c": "c"}
_DIGITS = re.compile(r"[0-9]+")


class HeaderError(ValueError):
    """Raised when an ``.npy`` header is missing, truncated or unsupported."""


@dataclass(frozen=True)
class NpyHeader:
    """The facts recorded in an ``.npy`` header."""

    shape: tuple[int, ...]
    word_size: int
    fortran_order: bool
    type_char: str
    byte_order: str
    header_size: int

    @property
    def num_vals(self) -> int:
        return math.prod(self.shape)

    @property
    def num_bytes(self) -> int:
        return self.num_vals * self.word_size


def byte_order_char() -> str:
    """Return ``'<'`` on little-endian machines and ``'>'`` on big-endian ones."""
    return "<" if sys.byteorder == "little" else ">"


def map_type(dtype) -> str:
    """Map a dtype to its one-letter type code, or ``'?'`` if it has none."""
    return _KIND_TO_CHAR.get(np.dtype(dtype).kind, "?")


def create_npy_header(shape: Iterable[int], dtype, type_char: str | None = None) -> bytes:
    """Build a version 1.0 header for a C-ordered array of ``shape`` and ``dtype``."""
    dims = [int(n) for n in shape]
    if not dims:
        raise ValueError("create_npy_header: shape must have at least one dimension")
    dtype = np.dtype(dtype)
    code = type_char if type_char is not None else map_type(dtype)

    shape_text = ", ".join(str(n) for n in dims)
    if len(dims) == 1:
        shape_text += ","
    text = (
        f"{{'descr': '{byte_order_char()}{code}{dtype.itemsize}', "
        f"'fortran_order': False, 'shape': ({shape_text}), }}"
    )
    # Pad so that preamble plus dictionary is a multiple of 16 bytes, ending in a newline.
    remainder = 16 - (_PREAMBLE_V1 + len(text)) % 16
    text = text + " " * (remainder - 1) + "\n"
    body = text.encode("latin-1")
    return MAGIC + b"\x01\x00" + struct.pack("<H", len(body)) + body


def _parse_dict(text: str) -> tuple[tuple[int, ...], int, bool, str, str]:
    loc = text.find("fortran_order")
    if loc < 0:
        raise HeaderError("parse_npy_header: failed to find header keyword: 'fortran_order'")
    fortran_order = text[loc + 16 : loc + 20] == "True"

    open_paren = text.find("(")
    close_paren = text.find(")")
    if open_paren < 0 or close_paren < 0:
        raise HeaderError("parse_npy_header: failed to find header keyword: '(' or ')'")
    shape = tuple(int(n) for n in _DIGITS.findall(text[open_paren + 1 : close_paren]))

    loc = text.find("descr")
    if loc < 0:
        raise HeaderError("parse_npy_header: failed to find header keyword: 'descr'")
    loc += 9
    if loc + 1 >= len(text):
        raise HeaderError("parse_npy_header: truncated 'descr' entry")
    byte_order = text[loc]
    if byte_order not in "<|":
        raise HeaderError(f"parse_npy_header: unsupported byte order {byte_order!r}")
    type_char = text[loc + 1]

    rest = text[loc + 2 :]
    end = rest.find("'")
    size_match = re.match(r"[0-9]+", rest if end < 0 else rest[:end])
    if size_match is None:
        raise HeaderError("parse_npy_header: missing word size in 'descr'")
    return shape, int(size_match.group()), fortran_order, type_char, byte_order


def _preamble_layout(prefix: bytes) -> tuple[int, str]:
    """Return the preamble length and struct format of the header length field."""
    if prefix[:6] != MAGIC:
        raise HeaderError("parse_npy_header: not an npy header")
    major = prefix[6]
    if major == 1:
        return _PREAMBLE_V1, "<H"
    if major in (2, 3):
        return _PREAMBLE_V2, "<I"
    raise HeaderError(f"parse_npy_header: unsupported format version {major}")


def parse_npy_header(buffer: bytes) -> NpyHeader:
    """Parse the header at the start of ``buffer``."""
    buffer = bytes(buffer[:_PREAMBLE_V2]) + bytes(buffer[_PREAMBLE_V2:])
    if len(buffer) < _PREAMBLE_V1:
        raise HeaderError("parse_npy_header: buffer too short")
    preamble, fmt = _preamble_layout(buffer)
    if len(buffer) < preamble:
        raise HeaderError("parse_npy_header: buffer too short")
    (header_len,) = struct.unpack_from(fmt, buffer, 8)
    end = preamble + header_len
    if len(buffer) < end:
        raise HeaderError("parse_npy_header: truncated header")
    text = buffer[preamble:end].decode("latin-1")
    shape, word_size, fortran_order, type_char, byte_order = _parse_dict(text)
    return NpyHeader(shape, word_size, fortran_order, type_char, byte_order, end)


def read_npy_header(stream: BinaryIO) -> NpyHeader:
    """Read a header from ``stream``, leaving it positioned at the array data."""
    prefix = stream.read(_PREAMBLE_V1)
    if len(prefix) != _PREAMBLE_V1:
        raise HeaderError("parse_npy_header: failed read")
    preamble, _ = _preamble_layout(prefix)
    if preamble > len(prefix):
        extra = stream.read(preamble - len(prefix))
        if len(extra) != preamble - len(prefix):
            raise HeaderError("parse_npy_header: failed read")
        prefix += extra
    fmt = "<H" if preamble == _PREAMBLE_V1 else "<I"
    (header_len,) = struct.unpack_from(fmt, prefix, 8)
    text = stream.read(header_len)
    if len(text) != header_len:
        raise HeaderError("parse_npy_header: failed read")
    return parse_npy_header(prefix + text)