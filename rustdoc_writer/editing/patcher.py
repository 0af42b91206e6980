"""
Patcher — write rustdoc blocks into source files.

Every file is read once, all of its items are resolved against that
original text, and the resulting edits are spliced in a single pass from
the end of the file backwards so earlier offsets stay valid.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Optional

from ..errors import PatchIOError
from ..models import DocResult, ItemKind
from .anchors import find_anchor, source_lines
from .slots import DOC_MARKER, is_attr_line, resolve_slot_in_lines

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------

@dataclass
class Edit:
    """Replace ``text[start:end]`` with ``text``."""
    start: int
    end: int
    text: str


@dataclass
class FileReport:
    """Outcome of patching one file."""
    path: str
    edits: int = 0
    skipped_no_anchor: int = 0
    skipped_existing_doc: int = 0
    skipped_empty: int = 0
    error: Optional[PatchIOError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def summary(self) -> str:
        return (
            f"Patched {self.path}: {self.edits} edits "
            f"(skipped_no_sig={self.skipped_no_anchor}, "
            f"skipped_existing_doc={self.skipped_existing_doc})"
        )


# ---------------------------------------------------------------------------
# Text helpers
# ---------------------------------------------------------------------------

def apply_edits(text: str, edits: Iterable[Edit]) -> str:
    """Apply *edits* from the highest start offset down.

    Edits with ``start > end`` or an ``end`` past the current text are
    skipped.
    """
    for e in sorted(edits, key=lambda e: e.start, reverse=True):
        if e.start <= e.end <= len(text):
            text = text[:e.start] + e.text + text[e.end:]
    return text


def line_starts(text: str) -> list[int]:
    """Offset of every line start plus a final ``len(text)`` sentinel."""
    if not text:
        return [0]
    starts = [0]
    for i, ch in enumerate(text):
        if ch == "\n" and i + 1 < len(text):
            starts.append(i + 1)
    starts.append(len(text))
    return starts


def indent_like(target_line: str, doc: str) -> str:
    """Re-indent *doc* to the indentation of *target_line*.

    Lines without the doc marker get one; the block ends with exactly one
    newline.
    """
    indent = target_line[:len(target_line) - len(target_line.lstrip())]
    out: list[str] = []
    for line in source_lines(doc.replace("\r", "")):
        if line.startswith(DOC_MARKER):
            out.append(indent + line)
        elif not line.strip():
            out.append(indent + DOC_MARKER)
        else:
            out.append(f"{indent}{DOC_MARKER} {line}")
    return "\n".join(out) + "\n"


def needs_leading_blank_line(lines: list[str], insert_line0: int) -> bool:
    """True when the line above is code; blank lines and attributes need no separator."""
    if insert_line0 == 0:
        return False
    prev = lines[insert_line0 - 1] if insert_line0 - 1 < len(lines) else ""
    return bool(prev.strip()) and not is_attr_line(prev)


def add_leading_blank_if_needed(lines: list[str], insert_line0: int, doc: str) -> str:
    if needs_leading_blank_line(lines, insert_line0):
        return "\n" + doc
    return doc


# ---------------------------------------------------------------------------
# Per-file pass
# ---------------------------------------------------------------------------

def plan_file_edits(
    original: str,
    items: Iterable[DocResult],
    overwrite: bool,
    report: FileReport,
) -> list[Edit]:
    """Resolve every item against *original* and build its edit.

    Skips are counted on *report*; nothing is mutated here.
    """
    lines = source_lines(original)
    starts = line_starts(original)
    edits: list[Edit] = []

    for item in sorted(items, key=lambda r: r.start_line or 0):
        if item.start_line is None:
            continue
        if not item.doc_text.strip():
            report.skipped_empty += 1
            continue
        approx_line0 = max(item.start_line - 1, 0)

        field_text = item.signature if item.kind == ItemKind.FIELD else ""
        anchor = find_anchor(original, approx_line0, item.kind, field_text)
        if anchor is None:
            logger.debug(
                "[Patcher] No %s declaration near %s:%d",
                item.kind.value, item.file, item.start_line,
            )
            report.skipped_no_anchor += 1
            continue

        slot = resolve_slot_in_lines(lines, anchor, item.kind, overwrite)
        if slot is None:
            logger.debug(
                "[Patcher] Keeping existing docs for %s at %s:%d",
                item.fqpath or item.signature, item.file, anchor + 1,
            )
            report.skipped_existing_doc += 1
            continue

        lo = min(slot.lo, len(lines))
        hi = min(slot.hi, len(lines))
        indent_line = hi if item.kind == ItemKind.FIELD else min(hi, anchor)
        target = lines[indent_line] if indent_line < len(lines) else ""

        repl = indent_like(target, item.doc_text)
        if item.kind != ItemKind.FIELD:
            repl = add_leading_blank_if_needed(lines, lo, repl)

        start_b = starts[lo] if lo < len(starts) else len(original)
        end_b = starts[hi] if hi < len(starts) else start_b
        edits.append(Edit(start=start_b, end=end_b, text=repl))

    report.edits = len(edits)
    return edits


def patch_file(path: str, items: Iterable[DocResult], overwrite: bool) -> FileReport:
    """Patch one file in place. I/O failures are recorded on the report."""
    report = FileReport(path=path)
    try:
        with open(path, "r", encoding="utf-8", newline="") as f:
            original = f.read()
    except (OSError, UnicodeError) as exc:
        report.error = PatchIOError(path, exc)
        logger.error("[Patcher] %s", report.error)
        return report

    edits = plan_file_edits(original, items, overwrite, report)
    if not edits:
        logger.warning("[Patcher] %s", report.summary())
        return report

    new_text = apply_edits(original, edits)
    try:
        with open(path, "w", encoding="utf-8", newline="") as f:
            f.write(new_text)
    except (OSError, UnicodeError) as exc:
        report.error = PatchIOError(path, exc)
        logger.error("[Patcher] %s", report.error)
        return report

    logger.info("[Patcher] %s", report.summary())
    return report


def patch_files_with_docs(results: Iterable[DocResult], overwrite: bool) -> list[FileReport]:
    """Group *results* by file and patch each file in turn.

    A failure on one file never stops the others; check ``FileReport.ok``.
    """
    by_file: dict[str, list[DocResult]] = {}
    for r in results:
        by_file.setdefault(r.file, []).append(r)

    reports = [patch_file(path, items, overwrite) for path, items in sorted(by_file.items())]
    failed = sum(1 for r in reports if not r.ok)
    if failed:
        logger.error("[Patcher] %d of %d files failed", failed, len(reports))
    return reports
