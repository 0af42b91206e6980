"""
Insertion-range resolver.

Given the anchor line of an item, decide where its rustdoc block goes:
either a zero-width insertion before a line, or a replacement of an
existing comment block.  The overwrite policy is applied here, so a
``None`` result always means "documentation already present, leave it".
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from ..models import ItemKind
from .anchors import ATTR_LINE, source_lines

logger = logging.getLogger(__name__)

DOC_MARKER = "///"


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class InsertionSlot:
    """Line range ``[lo, hi)`` in the original file to replace.

    ``lo == hi`` is an insertion before line ``lo``.
    """
    lo: int
    hi: int

    def __post_init__(self) -> None:
        if self.lo > self.hi:
            raise ValueError(f"invalid slot: lo={self.lo} > hi={self.hi}")

    @classmethod
    def before(cls, line0: int) -> "InsertionSlot":
        return cls(line0, line0)

    @classmethod
    def replace(cls, lo: int, hi: int) -> "InsertionSlot":
        return cls(lo, hi)

    @property
    def is_insert(self) -> bool:
        return self.lo == self.hi


# ---------------------------------------------------------------------------
# Line predicates
# ---------------------------------------------------------------------------

def is_doc_line(line: str) -> bool:
    return line.lstrip().startswith(DOC_MARKER)


def is_doc_or_doc_attr(line: str) -> bool:
    t = line.lstrip()
    return t.startswith(DOC_MARKER) or t.startswith("#[doc") or t.startswith("#![doc")


def is_attr_line(line: str) -> bool:
    return bool(ATTR_LINE.match(line))


def _is_plain_attr(line: str) -> bool:
    return is_attr_line(line) and not is_doc_or_doc_attr(line)


def _walk_up(lines: list[str], start: int, pred) -> int:
    """Lowest index of the contiguous run of *pred* lines ending at ``start - 1``.

    Returns *start* when the line above does not match.
    """
    lo = start
    i = start - 1
    while i >= 0 and pred(lines[i]):
        lo = i
        i -= 1
    return lo


# ---------------------------------------------------------------------------
# Per-kind resolution
# ---------------------------------------------------------------------------

def fn_doc_range(lines: list[str], sig_line0: int) -> tuple[int, int]:
    """Line range ``[lo, hi)`` holding the doc block of a function.

    Doc lines directly above the signature belong to the range.  When an
    attribute block sits directly above the signature, the doc block is
    looked for above the attributes and the range ends at the first
    attribute, so new docs land on top of the attributes.  Without
    attributes, a single blank line above the signature is absorbed.
    """
    lo = _walk_up(lines, sig_line0, is_doc_or_doc_attr)

    attr_first = _walk_up(lines, sig_line0, _is_plain_attr)
    if attr_first < sig_line0:
        lo = _walk_up(lines, attr_first, is_doc_or_doc_attr)
        return lo, attr_first

    if sig_line0 > 0 and not lines[sig_line0 - 1].strip():
        lo = min(lo, sig_line0 - 1)
    return lo, sig_line0


def struct_attr_anchor(lines: list[str], struct_sig_line0: int) -> int:
    """Topmost attribute line above a struct, or the struct line itself.

    One blank line between two attribute groups is tolerated.
    """
    anchor = struct_sig_line0
    i = struct_sig_line0 - 1
    while i >= 0:
        line = lines[i]
        if is_attr_line(line):
            anchor = i
            i -= 1
            continue
        if (not line.strip() and anchor < struct_sig_line0
                and i > 0 and is_attr_line(lines[i - 1])):
            i -= 1
            continue
        break
    return anchor


def struct_doc_slot(
    lines: list[str],
    struct_sig_line0: int,
    overwrite: bool,
) -> Optional[InsertionSlot]:
    anchor = struct_attr_anchor(lines, struct_sig_line0)
    doc_lo = _walk_up(lines, anchor, is_doc_line)
    if doc_lo < anchor:
        if not overwrite:
            return None
        return InsertionSlot.replace(doc_lo, anchor)
    return InsertionSlot.before(anchor)


def field_doc_slot(
    lines: list[str],
    insert_line0: int,
    overwrite: bool,
) -> Optional[InsertionSlot]:
    if insert_line0 == 0:
        return InsertionSlot.before(0)
    above = insert_line0 - 1
    if above < len(lines) and is_doc_line(lines[above]):
        if not overwrite:
            return None
        return InsertionSlot.replace(_walk_up(lines, insert_line0, is_doc_line), insert_line0)
    return InsertionSlot.before(insert_line0)


def resolve_slot(
    source: str,
    anchor_line0: int,
    kind: ItemKind,
    overwrite: bool,
) -> Optional[InsertionSlot]:
    """Resolve where the doc block for the item at *anchor_line0* goes.

    Returns ``None`` when a doc block already exists and *overwrite* is
    false.  With *overwrite* an existing block is always replaced rather
    than a second block being inserted above it.
    """
    return resolve_slot_in_lines(source_lines(source), anchor_line0, kind, overwrite)


def resolve_slot_in_lines(
    lines: list[str],
    anchor_line0: int,
    kind: ItemKind,
    overwrite: bool,
) -> Optional[InsertionSlot]:
    anchor_line0 = min(anchor_line0, len(lines))
    if kind == ItemKind.STRUCT:
        return struct_doc_slot(lines, anchor_line0, overwrite)
    if kind == ItemKind.FIELD:
        return field_doc_slot(lines, anchor_line0, overwrite)

    lo, hi = fn_doc_range(lines, anchor_line0)
    if not overwrite and any(is_doc_or_doc_attr(lines[k]) for k in range(lo, hi)):
        logger.debug("[Slots] Existing doc block at lines %d-%d, keeping it", lo + 1, hi)
        return None
    return InsertionSlot.replace(lo, hi)
