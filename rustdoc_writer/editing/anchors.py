"""
Anchor locator — find the declaration line a rustdoc block belongs to.

Harvester spans are approximate, so the declaration is searched for in a
small window around the hinted line instead of across the whole file.
"""

from __future__ import annotations

import re
from typing import Optional

from ..models import ItemKind

# ---------------------------------------------------------------------------
# Declaration patterns
# ---------------------------------------------------------------------------

_VIS = r"(?:pub(?:\([^)]*\))?\s+)?"

FN_SIG = re.compile(
    r"^\s*" + _VIS
    + r"(?:async\s+)?(?:const\s+)?(?:unsafe\s+)?(?:extern\s+\"[^\"]*\"\s+)?fn\b"
)
STRUCT_SIG = re.compile(r"^\s*" + _VIS + r"struct\b")
FIELD_DECL = re.compile(
    r"^\s*" + _VIS + r"(?:r#)?[A-Za-z_][A-Za-z0-9_]*\s*:\s*[^;{}]+,?\s*$"
)
ATTR_LINE = re.compile(r"^\s*#!?\[")

_KIND_PATTERNS: dict[ItemKind, re.Pattern] = {
    ItemKind.FUNCTION: FN_SIG,
    ItemKind.STRUCT: STRUCT_SIG,
    ItemKind.FIELD: FIELD_DECL,
}

# Search windows, in lines
FORWARD_WINDOW = 20
BACKWARD_WINDOW = 5


def source_lines(source: str) -> list[str]:
    """Split *source* on ``\\n`` the way line numbers count them.

    A trailing newline does not open an extra empty line and a ``\\r``
    before the newline is dropped.
    """
    if not source:
        return []
    lines = source.split("\n")
    if source.endswith("\n"):
        lines.pop()
    return [ln[:-1] if ln.endswith("\r") else ln for ln in lines]


def find_sig_line_near(
    lines: list[str],
    start_line0: int,
    pattern: re.Pattern,
) -> Optional[int]:
    """First line matching *pattern* near *start_line0*, forward then backward."""
    total = len(lines)
    for i in range(min(start_line0, total), min(start_line0 + FORWARD_WINDOW, total)):
        if pattern.match(lines[i]):
            return i
    for i in range(min(start_line0, total) - 1, max(start_line0 - BACKWARD_WINDOW, 0) - 1, -1):
        if pattern.match(lines[i]):
            return i
    return None


def check_field_hint(lines: list[str], hint_line0: int, field_line_text: str = "") -> Optional[int]:
    """Return *hint_line0* when it still points at the field it was made for.

    The hint must be a field declaration, or the top of an attribute block
    leading to one.  When *field_line_text* is given the declaration must
    also read the same, so stale hints from an earlier pass are rejected.
    """
    if not 0 <= hint_line0 < len(lines):
        return None
    j = hint_line0
    while j < len(lines) and ATTR_LINE.match(lines[j]):
        j += 1
    if j >= len(lines) or not FIELD_DECL.match(lines[j]):
        return None
    if field_line_text and lines[j].strip() != field_line_text.strip():
        return None
    return hint_line0


def find_anchor(
    source: str,
    approx_line0: int,
    kind: ItemKind,
    field_line_text: str = "",
) -> Optional[int]:
    """Locate the declaration line for an item of *kind* near *approx_line0*.

    Field positions come straight from the struct body walk, so the hint is
    not searched around; it is only checked with :func:`check_field_hint`.
    """
    lines = source_lines(source)
    if kind == ItemKind.FIELD:
        return check_field_hint(lines, approx_line0, field_line_text)
    return find_sig_line_near(lines, approx_line0, _KIND_PATTERNS[kind])
