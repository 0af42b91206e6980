"""
Doc generator — ask the LLM for rustdoc on harvested items.

Functions get one free-form answer each.  Structs are asked for a JSON
object holding the struct doc and one doc per field; field docs are
matched against the fields actually found in the struct body so each
one can be patched at an exact line.
"""

from __future__ import annotations

import json
import logging
import re
import time
from typing import Iterable, Optional

from .editing.anchors import STRUCT_SIG, find_sig_line_near, source_lines
from .editing.fields import extract_lines, extract_struct_fields, find_struct_body_block
from .editing.sanitizer import sanitize_llm_doc, strip_xml_like
from .llm.base import LLMClient
from .models import (
    DocResult,
    HarvestRow,
    ItemKind,
    collect_symbol_refs,
    referencing_functions,
)
from .prompts import (
    FN_SYSTEM_PROMPT,
    STRUCT_SYSTEM_PROMPT,
    build_fn_prompt,
    build_struct_prompt,
)

logger = logging.getLogger(__name__)

_JSON_OBJECT = re.compile(r"\{.*\}", re.DOTALL)


def parse_struct_response(raw: str) -> Optional[tuple[str, list[tuple[str, str]]]]:
    """Extract ``(struct_doc, [(field_name, doc), ...])`` from a JSON answer.

    Returns None when the answer holds no usable JSON object.
    """
    text = strip_xml_like(raw)
    candidates = [text]
    m = _JSON_OBJECT.search(text)
    if m and m.group(0) != text:
        candidates.append(m.group(0))

    for candidate in candidates:
        try:
            data = json.loads(candidate)
        except ValueError:
            continue
        if not isinstance(data, dict) or not isinstance(data.get("struct_doc"), str):
            continue
        fields: list[tuple[str, str]] = []
        for entry in data.get("fields") or []:
            if isinstance(entry, dict) and isinstance(entry.get("name"), str):
                fields.append((entry["name"], str(entry.get("doc", ""))))
        return data["struct_doc"], fields
    return None


class DocGenerator:
    """Turns harvested rows into sanitized DocResults using an LLM client."""

    def __init__(
        self,
        llm_client: LLMClient,
        overwrite: bool = False,
        only: Optional[Iterable[str]] = None,
        limit: Optional[int] = None,
    ) -> None:
        self.llm_client = llm_client
        self.overwrite = overwrite
        self.only = [s for s in (only or []) if s]
        self.limit = limit

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    def _wanted(self, row: HarvestRow) -> bool:
        if row.kind not in (ItemKind.FUNCTION.value, ItemKind.STRUCT.value):
            return False
        return not self.only or row.name in self.only or row.fqpath in self.only

    def group_by_file(self, rows: Iterable[HarvestRow]) -> dict[str, list[HarvestRow]]:
        per_file: dict[str, list[HarvestRow]] = {}
        for row in rows:
            if self._wanted(row):
                per_file.setdefault(row.file, []).append(row)
        for items in per_file.values():
            items.sort(key=lambda r: (r.span.start_line or 0, r.fqpath))
        return dict(sorted(per_file.items()))

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------

    def generate(self, rows: list[HarvestRow]) -> list[DocResult]:
        all_symbols = {r.name for r in rows if r.name}
        fn_rows = [r for r in rows if r.kind == ItemKind.FUNCTION.value]

        per_file = self.group_by_file(rows)
        if not per_file and self.only:
            logger.warning("[Generator] No items matched --only filter: %s", ", ".join(self.only))

        results: list[DocResult] = []
        processed = 0
        for file_path, items in per_file.items():
            logger.debug("[Generator] %s: %d items", file_path, len(items))
            for row in items:
                if self.limit is not None and processed >= self.limit:
                    logger.info("[Generator] Limit of %d items reached", self.limit)
                    return results
                processed += 1

                t0 = time.perf_counter()
                if row.kind == ItemKind.FUNCTION.value:
                    if row.had_doc and not self.overwrite:
                        logger.info(
                            "[Generator] Skipping %s: existing rustdoc present "
                            "(use --overwrite to replace)", row.fqpath,
                        )
                        continue
                    result = self.generate_fn(row, all_symbols)
                    if result is not None:
                        results.append(result)
                else:
                    results.extend(self.generate_struct(row, fn_rows))
                logger.debug(
                    "[Generator] %s done in %.1f ms",
                    row.fqpath, (time.perf_counter() - t0) * 1000,
                )

        logger.info("[Generator] Generated %d doc blocks", len(results))
        return results

    def generate_fn(self, row: HarvestRow, all_symbols: set[str]) -> Optional[DocResult]:
        referenced = collect_symbol_refs(row.body_text or "", all_symbols)
        prompt = build_fn_prompt(row, referenced)
        logger.info("[Generator] Generating docs for function %s", row.fqpath)
        answer = self.llm_client.generate_response(prompt, system=FN_SYSTEM_PROMPT)
        doc = sanitize_llm_doc(answer)
        if not doc:
            logger.warning("[Generator] Empty documentation for %s, skipping", row.fqpath)
            return None
        return DocResult(
            kind=ItemKind.FUNCTION,
            file=row.file,
            start_line=row.span.start_line,
            signature=row.signature,
            doc_text=doc,
            fqpath=row.fqpath,
            end_line=row.span.end_line,
            callers=tuple(row.callers or ()),
            referenced_symbols=tuple(referenced),
            had_existing_doc=row.had_doc,
        )

    def generate_struct(self, row: HarvestRow, fn_rows: list[HarvestRow]) -> list[DocResult]:
        """Struct doc plus one DocResult per documented field."""
        try:
            with open(row.file, "r", encoding="utf-8") as f:
                source = f.read()
        except (OSError, UnicodeError) as exc:
            logger.error("[Generator] Cannot read %s: %s", row.file, exc)
            return []

        approx_line0 = max((row.span.start_line or 1) - 1, 0)
        sig_line0 = find_sig_line_near(source_lines(source), approx_line0, STRUCT_SIG)
        if sig_line0 is None:
            logger.warning("[Generator] Could not locate struct %s near line %d", row.fqpath, approx_line0 + 1)
            return []
        body = find_struct_body_block(source, sig_line0)
        if body is None:
            logger.warning("[Generator] Could not locate body of struct %s", row.fqpath)
            return []
        body_lo, body_hi = body

        refs = referencing_functions(row.name, row.fqpath, fn_rows)
        prompt = build_struct_prompt(row, extract_lines(source, body_lo, body_hi), refs)
        logger.info("[Generator] Generating docs for struct %s and its fields", row.fqpath)
        raw = self.llm_client.generate_response(prompt, system=STRUCT_SYSTEM_PROMPT)

        parsed = parse_struct_response(raw)
        if parsed is None:
            logger.warning("[Generator] Struct JSON parse failed for %s; using raw answer", row.fqpath)
            struct_doc, field_docs = raw, []
        else:
            struct_doc, field_docs = parsed
            logger.debug("[Generator] Parsed struct JSON with %d fields", len(field_docs))

        results: list[DocResult] = []
        doc = sanitize_llm_doc(struct_doc)
        if doc:
            results.append(DocResult(
                kind=ItemKind.STRUCT,
                file=row.file,
                start_line=row.span.start_line,
                signature=row.signature,
                doc_text=doc,
                fqpath=row.fqpath,
                end_line=row.span.end_line,
                callers=tuple(row.callers or ()),
                had_existing_doc=row.had_doc,
            ))
        else:
            logger.warning("[Generator] Empty documentation for %s", row.fqpath)

        fields = {f.name: f for f in extract_struct_fields(source, body_lo, body_hi, row.fqpath)}
        for name, field_doc in field_docs:
            spec = fields.get(name)
            if spec is None:
                logger.warning("[Generator] Field %s not found in %s; skipping doc", name, row.fqpath)
                continue
            block = sanitize_llm_doc(field_doc)
            if not block:
                continue
            results.append(DocResult(
                kind=ItemKind.FIELD,
                file=row.file,
                start_line=spec.insert_line0 + 1,
                signature=spec.field_line_text,
                doc_text=block,
                fqpath=f"{row.fqpath}::{name}",
            ))
        return results
