"""Struct body and field discovery for per-field rustdoc."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

from .anchors import ATTR_LINE, FIELD_DECL, source_lines

_FIELD_NAME = re.compile(r"^\s*(?:pub(?:\([^)]*\))?\s+)?(?:r#)?([A-Za-z_][A-Za-z0-9_]*)\s*:")


@dataclass
class FieldSpec:
    """A named field inside a struct body."""
    name: str
    field_line0: int
    insert_line0: int      # top of the field's attribute block, or the field line
    parent_fqpath: str
    field_line_text: str


def extract_lines(source: str, lo_line0: int, hi_line0: int) -> str:
    """Lines ``lo_line0..=hi_line0`` joined with newlines."""
    return "\n".join(source_lines(source)[lo_line0:hi_line0 + 1])


def find_struct_body_block(source: str, struct_sig_line0: int) -> Optional[tuple[int, int]]:
    """Return ``(open_line0, close_line0)`` of the struct's brace block.

    Tuple and unit structs have no brace block and yield ``None``.
    """
    lines = source_lines(source)
    open_line: Optional[int] = None
    depth = 0
    for i in range(struct_sig_line0, len(lines)):
        line = lines[i]
        if open_line is None:
            if ";" in line and "{" not in line:
                return None
            pos = line.find("{")
            if pos < 0:
                continue
            open_line = i
            rest = line[pos:]
        else:
            rest = line
        depth += rest.count("{") - rest.count("}")
        if depth == 0:
            return open_line, i
    return None


def extract_struct_fields(
    source: str,
    body_open_line0: int,
    body_close_line0: int,
    parent_fqpath: str,
) -> list[FieldSpec]:
    """Named fields between the struct's braces, in source order."""
    lines = source_lines(source)
    out: list[FieldSpec] = []
    last = min(body_close_line0, len(lines))
    i = body_open_line0 + 1
    while i < last:
        attr_top = i
        j = i
        while j < last and ATTR_LINE.match(lines[j]):
            j += 1
        if j < last and FIELD_DECL.match(lines[j]):
            m = _FIELD_NAME.match(lines[j])
            if m:
                out.append(FieldSpec(
                    name=m.group(1),
                    field_line0=j,
                    insert_line0=attr_top if attr_top < j else j,
                    parent_fqpath=parent_fqpath,
                    field_line_text=lines[j],
                ))
            i = j + 1
            continue
        i += 1
    return out
