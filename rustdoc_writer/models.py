"""
Data model shared by the generation and patch stages.

``HarvestRow`` mirrors one item emitted by the external harvester,
``DocResult`` is one documentation block ready to be written into a file.
Both read and write the JSON layout used by ``docs.json`` so results can
be generated once and patched later.
"""

from __future__ import annotations

import json
import logging
import os
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Optional

logger = logging.getLogger(__name__)

_WORD = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")

# Upper bound on symbols collected from a single function body
MAX_SYMBOL_REFS = 64


class ItemKind(str, Enum):
    FUNCTION = "fn"
    STRUCT = "struct"
    FIELD = "field"

    @classmethod
    def parse(cls, raw: str) -> "ItemKind":
        """Map a kind string to an ItemKind; anything unknown is function-like."""
        try:
            return cls(raw)
        except ValueError:
            return cls.FUNCTION


# ---------------------------------------------------------------------------
# Harvested rows
# ---------------------------------------------------------------------------

@dataclass
class Span:
    start_line: Optional[int] = None
    end_line: Optional[int] = None
    start_byte: Optional[int] = None
    end_byte: Optional[int] = None


@dataclass
class HarvestRow:
    """One item (function, struct, ...) reported by the harvester."""
    kind: str
    name: str
    fqpath: str
    file: str
    span: Span = field(default_factory=Span)
    signature: str = ""
    visibility: str = ""
    crate_name: Optional[str] = None
    module_path: Optional[list[str]] = None
    has_body: bool = False
    doc: Optional[str] = None
    body_text: Optional[str] = None
    callers: Optional[list[str]] = None

    @property
    def had_doc(self) -> bool:
        return bool(self.doc and self.doc.strip())

    @classmethod
    def from_dict(cls, data: dict) -> "HarvestRow":
        crate = None
        for key in ("crate", "crate_", "crate_field"):
            if data.get(key) is not None:
                crate = data[key]
                break
        span = data.get("span") or {}
        return cls(
            kind=data.get("kind", ""),
            name=data.get("name", ""),
            fqpath=data.get("fqpath", ""),
            file=data.get("file", ""),
            span=Span(
                start_line=span.get("start_line"),
                end_line=span.get("end_line"),
                start_byte=span.get("start_byte"),
                end_byte=span.get("end_byte"),
            ),
            signature=data.get("signature", ""),
            visibility=data.get("visibility", ""),
            crate_name=crate,
            module_path=data.get("module_path"),
            has_body=bool(data.get("has_body", False)),
            doc=data.get("doc"),
            body_text=data.get("body_text"),
            callers=data.get("callers"),
        )


# ---------------------------------------------------------------------------
# Doc results
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class DocResult:
    """A sanitized rustdoc block and the item it belongs to."""
    kind: ItemKind
    file: str
    start_line: Optional[int]      # 1-indexed hint, None means "skip"
    signature: str
    doc_text: str                  # every line already starts with ///
    fqpath: str = ""
    end_line: Optional[int] = None
    callers: tuple[str, ...] = ()
    referenced_symbols: tuple[str, ...] = ()
    had_existing_doc: bool = False

    def to_dict(self) -> dict:
        return {
            "kind": self.kind.value,
            "fqpath": self.fqpath,
            "file": self.file,
            "start_line": self.start_line,
            "end_line": self.end_line,
            "signature": self.signature,
            "callers": list(self.callers),
            "referenced_symbols": list(self.referenced_symbols),
            "llm_doc": self.doc_text,
            "had_existing_doc": self.had_existing_doc,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "DocResult":
        return cls(
            kind=ItemKind.parse(data.get("kind", "")),
            file=data["file"],
            start_line=data.get("start_line"),
            signature=data.get("signature", ""),
            doc_text=data.get("llm_doc", data.get("doc_text", "")),
            fqpath=data.get("fqpath", ""),
            end_line=data.get("end_line"),
            callers=tuple(data.get("callers") or ()),
            referenced_symbols=tuple(data.get("referenced_symbols") or ()),
            had_existing_doc=bool(data.get("had_existing_doc", False)),
        )


# ---------------------------------------------------------------------------
# JSON I/O
# ---------------------------------------------------------------------------

def load_harvest_rows(path: str) -> list[HarvestRow]:
    """Read harvester output, either a JSON array or one object per line."""
    with open(path, "r", encoding="utf-8") as f:
        text = f.read()
    stripped = text.lstrip()
    if stripped.startswith("["):
        records = json.loads(stripped)
    else:
        records = [json.loads(line) for line in text.splitlines() if line.strip()]
    rows = [HarvestRow.from_dict(r) for r in records]
    logger.info("[Models] Loaded %d harvested rows from %s", len(rows), path)
    return rows


def load_doc_results(path: str) -> list[DocResult]:
    with open(path, "r", encoding="utf-8") as f:
        records = json.load(f)
    return [DocResult.from_dict(r) for r in records]


def write_doc_results(path: str, results: Iterable[DocResult]) -> str:
    """Write results as a pretty-printed docs.json. Returns the path written."""
    dirpath = os.path.dirname(path)
    if dirpath:
        os.makedirs(dirpath, exist_ok=True)
    payload = [r.to_dict() for r in results]
    with open(path, "w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2)
        f.write("\n")
    logger.info("[Models] Wrote %d doc results to %s", len(payload), path)
    return path


# ---------------------------------------------------------------------------
# Symbol references
# ---------------------------------------------------------------------------

def collect_symbol_refs(body: str, all_symbols: set[str]) -> list[str]:
    """Known symbol names mentioned in *body*, sorted, at most MAX_SYMBOL_REFS."""
    if not body:
        return []
    found: set[str] = set()
    for m in _WORD.finditer(body):
        word = m.group(0)
        if word in all_symbols:
            found.add(word)
            if len(found) == MAX_SYMBOL_REFS:
                break
    return sorted(found)


def referencing_functions(
    struct_name: str,
    struct_fqpath: str,
    fn_rows: Iterable[HarvestRow],
) -> list[str]:
    """fqpaths of functions whose body mentions the struct by name or path."""
    word_name = re.compile(rf"\b{re.escape(struct_name)}\b")
    out: set[str] = set()
    for row in fn_rows:
        body = row.body_text or ""
        if word_name.search(body) or (struct_fqpath and struct_fqpath in body):
            out.add(row.fqpath)
    return sorted(out)
