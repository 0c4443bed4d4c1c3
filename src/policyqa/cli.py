"""Command line entry point for asking questions about the policy document."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Sequence

from policyqa.config import Settings, get_settings
from policyqa.errors import PolicyQAError
from policyqa.ingestion import IngestionConfig, LangChainDocumentIngestor
from policyqa.services.workflow import InsuranceFaqWorkflow


def _ask(args: argparse.Namespace, settings: Settings) -> int:
    workflow = InsuranceFaqWorkflow.from_settings(settings)
    result = workflow.run(args.question, document_path=args.document, top_k=args.top_k)
    if args.json:
        print(json.dumps(result.to_dict(), ensure_ascii=False, indent=2))
    elif result.ok:
        print(result.answer)
    else:
        print(f"Error ({result.error_code}): {result.error}", file=sys.stderr)
    return 0 if result.ok else 1


def _chunks(args: argparse.Namespace, settings: Settings) -> int:
    ingestor = LangChainDocumentIngestor(IngestionConfig.from_settings(settings))
    try:
        chunks = ingestor.ingest(args.document or settings.document_path)
    except PolicyQAError as exc:
        print(f"Error ({exc.code}): {exc}", file=sys.stderr)
        return 1
    rows = [
        {
            "order": chunk.order,
            "length": len(chunk.text),
            "page": chunk.chunk_metadata.get("page"),
            "start_index": chunk.chunk_metadata.get("start_index"),
            "hard_cut": chunk.chunk_metadata.get("hard_cut"),
            "language": chunk.language,
            "text": chunk.text,
        }
        for chunk in chunks
    ]
    print(json.dumps(rows, ensure_ascii=False, indent=2))
    return 0


def parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Ask questions about an insurance policy document.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    ask = subparsers.add_parser("ask", help="Answer a question grounded in the policy document")
    ask.add_argument("question", help="Question to answer")
    ask.add_argument("--document", type=Path, default=None, help="Override the configured document path")
    ask.add_argument("--top-k", type=int, default=None, help="Number of chunks to retrieve")
    ask.add_argument("--json", action="store_true", help="Print the structured result as JSON")
    ask.set_defaults(handler=_ask)

    chunks = subparsers.add_parser("chunks", help="Print the chunks the index builder would produce")
    chunks.add_argument("--document", type=Path, default=None, help="Override the configured document path")
    chunks.set_defaults(handler=_chunks)
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(sys.argv[1:] if argv is None else argv)
    return args.handler(args, get_settings())


if __name__ == "__main__":  # pragma: no cover - CLI entrypoint
    sys.exit(main())
