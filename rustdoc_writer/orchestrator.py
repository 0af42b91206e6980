import argparse
import logging
import sys

from .config import Config
from .editing.patcher import patch_files_with_docs
from .editing.sanitizer import sanitize_llm_doc
from .generator import DocGenerator
from .llm.lm_studio import LMStudioClient
from .llm.ollama import OllamaClient
from .models import load_doc_results, load_harvest_rows, write_doc_results

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rustdoc-writer",
        description="Generate rustdoc with an LLM and patch it into Rust sources",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    gen = sub.add_parser("generate", help="Generate docs for harvested rows")
    gen.add_argument("rows", help="Harvester output (JSON array or JSON lines)")
    gen.add_argument("--provider", choices=["ollama", "lm_studio"], default="ollama", help="The LLM provider to use")
    gen.add_argument("--model", default=Config.DEFAULT_MODEL, help="The model name to use")
    gen.add_argument("--out", default=Config.DOCS_OUTPUT, help="Where to write docs.json")
    gen.add_argument("--only", type=lambda s: [p.strip() for p in s.split(",")], default=[],
                     help="Comma-separated symbol names or fq paths to document")
    gen.add_argument("--limit", type=int, default=None, help="Stop after this many items")
    gen.add_argument("--overwrite", action="store_true", help="Replace existing rustdoc")
    gen.add_argument("--write", action="store_true", help="Patch the source files after generating")

    patch = sub.add_parser("patch", help="Patch source files from a docs.json")
    patch.add_argument("docs", nargs="?", default=Config.DOCS_OUTPUT, help="docs.json to apply")
    patch.add_argument("--overwrite", action="store_true", help="Replace existing rustdoc")

    san = sub.add_parser("sanitize", help="Sanitize a raw model answer into a rustdoc block")
    san.add_argument("file", nargs="?", help="File holding the raw answer (stdin when omitted)")
    return parser


def _make_client(provider: str, model: str):
    if provider == "ollama":
        return OllamaClient(base_url=Config.OLLAMA_BASE_URL, model=model, timeout=Config.REQUEST_TIMEOUT)
    return LMStudioClient(base_url=Config.LM_STUDIO_BASE_URL, model=model, timeout=Config.REQUEST_TIMEOUT)


def _patch(results, overwrite: bool) -> int:
    reports = patch_files_with_docs(results, overwrite)
    return 1 if any(not r.ok for r in reports) else 0


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else Config.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command == "sanitize":
        if args.file:
            with open(args.file, "r", encoding="utf-8") as f:
                raw = f.read()
        else:
            raw = sys.stdin.read()
        print(sanitize_llm_doc(raw))
        return 0

    if args.command == "patch":
        results = load_doc_results(args.docs)
        logger.info("Patching %d doc results from %s", len(results), args.docs)
        return _patch(results, args.overwrite)

    rows = load_harvest_rows(args.rows)
    generator = DocGenerator(
        _make_client(args.provider, args.model),
        overwrite=args.overwrite,
        only=args.only,
        limit=args.limit,
    )
    results = generator.generate(rows)
    write_doc_results(args.out, results)

    if not args.write:
        logger.warning("--write not set; skipping patching of source files")
        return 0
    return _patch(results, args.overwrite)


if __name__ == "__main__":
    sys.exit(main())
