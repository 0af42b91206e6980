from __future__ import annotations

from .models import HarvestRow

FN_SYSTEM_PROMPT = """You are an expert Rust developer writing rustdoc.
Rules for properly formatted rustdoc:
1. Start every line with ///
2. Start with a description
3. Then give Parameters, Returns, Errors, Notes and Examples, in that order.
4. Do not insert breaks between comment lines."""

STRUCT_SYSTEM_PROMPT = """You are an expert Rust developer writing rustdoc for structs and their fields.
Answer with JSON only."""

MAX_BODY_CHARS = 8000
MAX_BODY_LINES = 400
MAX_REFERENCING_FNS = 100


def truncate_for_context(text: str, max_chars: int = MAX_BODY_CHARS, max_lines: int = MAX_BODY_LINES) -> str:
    out = "\n".join(text.splitlines()[:max_lines])
    if len(out) > max_chars:
        out = out[:max_chars] + "\n// ...truncated..."
    return out


def _existing_doc_section(row: HarvestRow, what: str) -> str:
    if row.had_doc:
        return (
            f"The {what} already has rustdoc. Improve and rewrite it if necessary:\n"
            f"```rust\n{row.doc.strip()}\n```\n"
        )
    return "_No existing rustdoc found._\n"


def build_fn_prompt(row: HarvestRow, referenced_symbols: list[str]) -> str:
    prompt = f"""# Rust Function Documentation Task
You are given context about a single Rust function.

## Function Identity
- **Fully-qualified path**: `{row.fqpath}`
- **Signature**: `{row.signature}`
- **Visibility**: `{row.visibility}`

## Existing Documentation
{_existing_doc_section(row, "function")}
## Referenced Symbols (body-level)
"""
    if referenced_symbols:
        prompt += "".join(f"- `{sym}`\n" for sym in referenced_symbols)
    else:
        prompt += "_No symbol references detected._\n"

    if row.callers:
        prompt += "\n## Callers\n"
        prompt += "".join(f"- `{c}`\n" for c in row.callers[:50])

    if row.body_text:
        prompt += f"\n## Function Body (Truncated)\n```rust\n{truncate_for_context(row.body_text)}\n```\n"

    prompt += """
---
## Output Requirements
Return **ONLY** a rustdoc block composed of lines starting with `///`.
- No JSON, no backticks, no XML, no surrounding prose.
- Include a clear 1-2 sentence summary.
- If relevant, add sections titled exactly: `Parameters:`, `Returns:`, `Errors:`, `Notes:`, `Examples:`.
- Only include a `Safety:` section if the function is unsafe.
- Every line MUST start with `///` (or be a blank `///`).
"""
    return prompt


def build_struct_prompt(row: HarvestRow, body_text: str, referencing_fns: list[str]) -> str:
    prompt = f"""# Rust Struct Documentation Task
You are given the source of a single Rust struct and a list of functions that reference it.

## Struct Identity
- **Fully-qualified path**: `{row.fqpath}`
- **Signature**: `{row.signature}`
- **Visibility**: `{row.visibility}`

## Existing Documentation
{_existing_doc_section(row, "struct")}
## Struct Body (verbatim)
```rust
{body_text}
```

## Referencing Functions (FQ paths)
"""
    if referencing_fns:
        prompt += "".join(f"- `{f}`\n" for f in referencing_fns[:MAX_REFERENCING_FNS])
    else:
        prompt += "_No referencing functions detected in the crate._\n"

    prompt += """
---
## Output Requirements
Respond in **structured JSON** (no prose) with this shape:
{
  "struct_doc": "/// short summary...\\n/// ...",
  "fields": [
    { "name": "field_name", "doc": "/// one-line or short doc...\\n/// ..." }
  ]
}
- `struct_doc`: A short 1-2 sentence rustdoc for the struct.
- `fields`: One entry **per named field** in the struct body; `doc` must be a ready-to-insert `///` block.
"""
    return prompt
