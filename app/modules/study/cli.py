from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path

from app.modules.study.documents import (
    PDF_MIME_TYPE,
    UploadedDocument,
    validate_document,
)
from app.modules.study.errors import DocumentRejected, GenerationFailed
from app.modules.study.generator import generate, generate_title
from app.modules.study.models import ContentKind


def _load_document(path: str) -> UploadedDocument:
    p = Path(path)
    if not p.is_file():
        raise SystemExit(f"File not found: {path}")
    mime = PDF_MIME_TYPE if p.suffix.lower() == ".pdf" else "application/octet-stream"
    return UploadedDocument(name=p.name, mime_type=mime, data=p.read_bytes())


async def _run_generate(kind: ContentKind, document: UploadedDocument) -> list[dict]:
    items: list[dict] = []
    async for update in generate(kind, document):
        if update.complete:
            items = update.to_jsonable()["items"]
        else:
            print(
                f"[{kind.value}] {update.count}/{update.target} ({update.progress:.0f}%)",
                file=sys.stderr,
            )
    return items


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="study-aid", description="Generate study material from a PDF"
    )
    sub = parser.add_subparsers(dest="cmd", required=True)

    g = sub.add_parser("generate", help="Generate a quiz, flashcards or matching set")
    g.add_argument(
        "--kind",
        "-k",
        choices=[k.value for k in ContentKind],
        default=ContentKind.QUIZ.value,
    )
    g.add_argument("--file", "-f", required=True, help="Path to a PDF (max 5MB)")

    t = sub.add_parser("title", help="Derive a short title from the file name")
    t.add_argument("--file", "-f", required=True, help="Path to the PDF")

    args = parser.parse_args(argv)
    if args.cmd == "generate":
        try:
            document = validate_document(_load_document(args.file))
        except DocumentRejected as e:
            print(f"Rejected: {e}", file=sys.stderr)
            return 2
        try:
            items = asyncio.run(_run_generate(ContentKind(args.kind), document))
        except GenerationFailed as e:
            print(f"Generation failed: {e}", file=sys.stderr)
            return 1
        print(json.dumps(items, indent=2, ensure_ascii=False))
        return 0
    if args.cmd == "title":
        print(asyncio.run(generate_title(Path(args.file).name)))
        return 0

    parser.print_help()
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
