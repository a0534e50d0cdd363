"""
Read-only inspection of Hermes bytecode headers.

Layout of the fixed 12-byte prefix (see hermes
`include/hermes/BCGen/HBC/BytecodeFileFormat.h`):
- bytes [0, 8): magic `c6 1f bc 03 c1 03 19 1f`
- bytes [8, 12): bytecode version, u32 little-endian

The version is only meaningful when the magic matches.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Union

from .errors import HeaderTooShortError, InvalidBundleError

HERMES_MAGIC = bytes.fromhex("c61fbc03c103191f")
HEADER_SIZE = 12

Pathish = Union[str, Path]


@dataclass(frozen=True)
class BytecodeHeader:
    magic: bytes
    version: int

    @property
    def is_hermes(self) -> bool:
        return self.magic == HERMES_MAGIC


def _read_prefix(file: Pathish, size: int) -> bytes:
    with open(file, "rb") as fh:
        return fh.read(size)


def read_header(file: Pathish) -> bytes:
    """Return the first 12 bytes of `file`; shorter files are an error."""
    prefix = _read_prefix(file, HEADER_SIZE)
    if len(prefix) < HEADER_SIZE:
        raise HeaderTooShortError(f"{file}: expected {HEADER_SIZE} header bytes, found {len(prefix)}")
    return prefix


def parse_header(blob: bytes) -> BytecodeHeader:
    if len(blob) < HEADER_SIZE:
        raise HeaderTooShortError(f"expected {HEADER_SIZE} header bytes, found {len(blob)}")
    return BytecodeHeader(magic=bytes(blob[:8]), version=int.from_bytes(blob[8:HEADER_SIZE], "little"))


def is_hermes_bytecode_bundle(file: Pathish) -> bool:
    """True iff `file` starts with the Hermes magic. Short files are simply not bundles."""
    return _read_prefix(file, len(HERMES_MAGIC)) == HERMES_MAGIC


def get_hermes_bytecode_version(file: Pathish) -> int:
    if not is_hermes_bytecode_bundle(file):
        raise InvalidBundleError(f"Invalid hermes bundle file: {file}")
    return parse_header(read_header(file)).version


def hex_preview(blob: bytes, count: int = 32) -> str:
    """Render the first few bytes of a compiled bundle for logging."""
    preview = blob[:count]
    grouped = ["".join(f"{b:02x}" for b in preview[i : i + 8]) for i in range(0, len(preview), 8)]
    return " ".join(grouped)
