"""
Sanitizer — turn raw LLM output into a contiguous rustdoc block.

Model answers arrive with reasoning tags, "ANSWER:" labels, markdown
fences around the whole reply, escaped newlines, JSON leftovers and
unbalanced code fences.  ``sanitize_llm_doc`` strips all of that and
returns either ``""`` or a block in which every line starts with ``///``
and every opened fence is closed.

All functions here are pure and never raise on odd input.
"""

from __future__ import annotations

import re
from typing import Iterable, Optional

DOC_MARKER = "///"
FENCE = "```"
FENCE_LANG = "rust"

# ---------------------------------------------------------------------------
# Tables
# ---------------------------------------------------------------------------

_THINK_BLOCK = re.compile(r"<\s*think\b[^>]*>.*?</\s*think\s*>", re.IGNORECASE | re.DOTALL)

WRAPPER_MARKERS = ("ANSWER:", "RESPONSE:", "OUTPUT:", "QUESTION:")

# A reply with at least this many /// lines is already a doc block
_WELL_FORMED_MIN_LINES = 3

SECTION_HEADINGS = {
    "Parameters:": "## Parameters",
    "Returns:": "## Returns",
    "Errors:": "## Errors",
    "Safety:": "## Safety",
    "Notes:": "## Notes",
    "Examples:": "## Examples",
}

# Order matters: \r\n first, then the single forms, then the doubled forms
_ESCAPES = (
    ("\\r\\n", "\n"),
    ("\\n", "\n"),
    ("\\t", "\t"),
    ('\\"', '"'),
    ("\\\\n", "\n"),
    ("\\\\t", "\t"),
    ('\\\\"', '"'),
)

# Lines that are leftover structured-data syntax rather than prose.
# Tuned against observed model output; extend via ``leftover_patterns``.
LEFTOVER_PATTERNS: tuple[re.Pattern, ...] = (
    re.compile(r"^[{}\[\]],?$"),    # bare braces / brackets
    re.compile(r".*:$"),            # trailing colon, incl. "key": lines
)

_QUOTED = re.compile(r'^"(.*)"$')


# ---------------------------------------------------------------------------
# Pipeline stages
# ---------------------------------------------------------------------------

def strip_xml_like(text: str, pattern: re.Pattern = _THINK_BLOCK) -> str:
    """Remove every ``<think>...</think>`` region and trim the result."""
    return pattern.sub("", text).strip()


def strip_wrapper_markers(text: str, markers: Iterable[str] = WRAPPER_MARKERS) -> str:
    """Drop everything up to and including the first answer label.

    Only labels at the start of a line and outside fenced regions count.
    Text that already looks like a rustdoc block is returned untouched.
    """
    lines = text.split("\n")
    if sum(1 for ln in lines if ln.lstrip().startswith(DOC_MARKER)) >= _WELL_FORMED_MIN_LINES:
        return text.strip()

    markers = tuple(markers)
    in_fence = False
    pos = 0
    for line in lines:
        trimmed = line.lstrip()
        if trimmed.startswith(FENCE):
            in_fence = not in_fence
        elif not in_fence:
            for marker in markers:
                if trimmed.startswith(marker):
                    split = pos + (len(line) - len(trimmed)) + len(marker)
                    return text[split:].strip()
        pos += len(line) + 1
    return text.strip()


def unwrap_code_fence_if_wrapped(text: str) -> str:
    """Return the inside of a reply that is one fenced block, else trim stray backticks."""
    lines = [ln.rstrip() for ln in text.split("\n")]
    non_empty = [ln for ln in lines if ln.strip()]
    fence_count = sum(1 for ln in lines if ln.lstrip().startswith(FENCE))
    if (fence_count == 2 and non_empty
            and non_empty[0].lstrip().startswith(FENCE)
            and non_empty[-1].lstrip().startswith(FENCE)):
        first = lines.index(non_empty[0])
        last = len(lines) - 1 - lines[::-1].index(non_empty[-1])
        return "\n".join(lines[first + 1:last])
    return text.strip("`").strip()


def decode_common_escapes(text: str) -> str:
    for escaped, plain in _ESCAPES:
        text = text.replace(escaped, plain)
    return text


def map_section_headings(lines: list[str]) -> list[str]:
    return [SECTION_HEADINGS.get(ln.strip(), ln) for ln in lines]


def _is_leftover(line: str, patterns: Iterable[re.Pattern]) -> bool:
    return any(p.match(line) for p in patterns)


def coerce_lines_to_rustdoc(
    lines: list[str],
    leftover_patterns: Iterable[re.Pattern] = LEFTOVER_PATTERNS,
) -> list[str]:
    """Prefix every line with ``///``, dropping structured-data leftovers.

    Runs of blank lines collapse into one bare ``///``.  Lines inside a
    fenced code region are kept verbatim apart from the prefix.
    """
    leftover_patterns = tuple(leftover_patterns)
    out: list[str] = []
    prev_blank = False
    in_fence = False
    for raw in lines:
        t = raw.strip()
        if not t:
            if not prev_blank:
                out.append(DOC_MARKER)
            prev_blank = True
            continue
        prev_blank = False

        if t.startswith(DOC_MARKER):
            if _doc_body(t).startswith(FENCE):
                in_fence = not in_fence
            out.append(t)
            continue

        if t.startswith(FENCE):
            in_fence = not in_fence
            out.append(f"{DOC_MARKER} {t}")
            continue

        if in_fence:
            # keep indentation of code inside examples
            out.append(f"{DOC_MARKER} {raw.rstrip()}")
            continue

        if _is_leftover(t, leftover_patterns):
            continue

        m = _QUOTED.match(t)
        if m:
            t = m.group(1)
        out.append(f"{DOC_MARKER} {t}" if t else DOC_MARKER)
    return out


def extract_longest_doc_block(lines: list[str]) -> list[str]:
    """Longest contiguous run of ``///`` lines.

    When there is none, the first non-blank line becomes a one-line block.
    """
    best_start, best_len = 0, 0
    cur_start: Optional[int] = None
    for i, line in enumerate(lines + [""]):
        if line.lstrip().startswith(DOC_MARKER):
            if cur_start is None:
                cur_start = i
            continue
        if cur_start is not None:
            if i - cur_start > best_len:
                best_start, best_len = cur_start, i - cur_start
            cur_start = None

    if best_len == 0:
        first = next((ln for ln in lines if ln.strip()), DOC_MARKER)
        if first.startswith(DOC_MARKER):
            return [first]
        return [f"{DOC_MARKER} {first.strip()}"]
    return lines[best_start:best_start + best_len]


def _doc_body(line: str) -> str:
    return line.lstrip().lstrip("/").lstrip()


def normalize_fences(lines: list[str]) -> list[str]:
    """Tag bare opening fences as rust and close a fence left open."""
    out: list[str] = []
    open_fence = False
    for line in lines:
        if line.endswith("\\") and not line.endswith("\\\\"):
            line = line[:-1]
        body = _doc_body(line)
        if body.startswith(FENCE):
            if not open_fence and body == FENCE:
                line = f"{DOC_MARKER} {FENCE}{FENCE_LANG}"
            open_fence = not open_fence
        out.append(line)
    if open_fence:
        out.append(f"{DOC_MARKER} {FENCE}")
    return out


def trim_blank_doc_lines(lines: list[str]) -> list[str]:
    """Strip bare ``///`` lines from the end, then from the start."""
    end = len(lines)
    while end > 0 and lines[end - 1].strip() in ("", DOC_MARKER):
        end -= 1
    start = 0
    while start < end and lines[start].strip() in ("", DOC_MARKER):
        start += 1
    return lines[start:end]


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def sanitize_llm_doc(
    raw: str,
    leftover_patterns: Optional[Iterable[re.Pattern]] = None,
) -> str:
    """Normalize a raw model answer into a rustdoc block (possibly empty)."""
    if not raw:
        return ""
    text = strip_xml_like(raw)
    text = strip_wrapper_markers(text)
    text = unwrap_code_fence_if_wrapped(text)
    text = decode_common_escapes(text)

    lines = [ln.rstrip() for ln in text.replace("\r\n", "\n").replace("\r", "\n").split("\n")]
    if all(not ln.strip() for ln in lines):
        return ""

    lines = map_section_headings(lines)
    lines = coerce_lines_to_rustdoc(
        lines,
        LEFTOVER_PATTERNS if leftover_patterns is None else leftover_patterns,
    )
    lines = extract_longest_doc_block(lines)
    lines = normalize_fences(lines)
    lines = trim_blank_doc_lines(lines)
    return "\n".join(lines)
