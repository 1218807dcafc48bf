from __future__ import annotations

import argparse
import asyncio
import json
from pathlib import Path

from app.modules.ai.service import StudyAssistant
from app.modules.library.extract import extract_pdf_text
from app.modules.library.models import SourceType


def _load_source(path: str) -> tuple[SourceType, str]:
    p = Path(path)
    if not p.is_file():
        raise SystemExit(f"File not found: {path}")
    if p.suffix.lower() == ".pdf":
        return SourceType.PDF, extract_pdf_text(p.read_bytes())
    return SourceType.TEXT, p.read_text(encoding="utf-8")


async def _run(
    args: argparse.Namespace, source_type: SourceType, content: str, assistant: StudyAssistant
) -> object:
    name = Path(args.file).name
    if args.cmd == "summarize":
        summary = await assistant.summarize_for_source(content, source_type, name)
        return {"name": name, "summary": summary}
    if args.cmd == "quiz":
        questions = await assistant.generate_quiz(content, name, args.count)
        return [q.model_dump(by_alias=True) for q in questions]
    cards = await assistant.generate_flashcards(content, name, args.count)
    return [c.model_dump() for c in cards]


def main(argv: list[str] | None = None, assistant: StudyAssistant | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="study-cli", description="Summaries, quizzes and flashcards from a document"
    )
    sub = parser.add_subparsers(dest="cmd", required=True)

    s = sub.add_parser("summarize", help="Summarize a PDF or text file")
    s.add_argument("--file", "-f", required=True, help="Path to a .pdf or text file")

    q = sub.add_parser("quiz", help="Generate a multiple-choice quiz")
    q.add_argument("--file", "-f", required=True, help="Path to a .pdf or text file")
    q.add_argument("--count", "-n", type=int, default=5, help="Number of questions")

    fc = sub.add_parser("flashcards", help="Generate flashcards")
    fc.add_argument("--file", "-f", required=True, help="Path to a .pdf or text file")
    fc.add_argument("--count", "-n", type=int, default=10, help="Number of cards")

    args = parser.parse_args(argv)
    source_type, content = _load_source(args.file)
    result = asyncio.run(_run(args, source_type, content, assistant or StudyAssistant()))
    print(json.dumps(result, indent=2, ensure_ascii=False))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
