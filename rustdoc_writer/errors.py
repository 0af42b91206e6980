"""Exceptions raised by :mod:`rustdoc_writer`."""
from __future__ import annotations


class RustdocWriterError(Exception):
    """Base exception for rustdoc_writer failures."""


class PatchIOError(RustdocWriterError):
    """Reading, decoding or writing a source file failed during a patch pass."""

    def __init__(self, path: str, cause: Exception) -> None:
        super().__init__(f"I/O error at {path}: {cause}")
        self.path = path
        self.cause = cause


__all__ = [
    "RustdocWriterError",
    "PatchIOError",
]
