"""Command-line interface for document normalization and response recovery."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from .config import LOG_LEVEL, MAX_PDF_PAGES, RASTER_DPI, log_startup_config
from .recovery import SHAPES, recover_shape
from .schema import RawDocument
from .utils import DocVisionError


def build_parser() -> argparse.ArgumentParser:
    """Create the CLI argument parser."""

    parser = argparse.ArgumentParser(
        prog="docvision",
        description="Normalize exam documents into vision-model pages and recover structured answers.",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=LOG_LEVEL,
        help=f"Logging level (default: {LOG_LEVEL}).",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    norm = sub.add_parser("normalize", help="Convert a PDF or image into bounded JPEG pages.")
    norm.add_argument("path", help="Path to the PDF or image file.")
    norm.add_argument("--kind", choices=("pdf", "image"), default=None, help="Override the detected kind.")
    norm.add_argument(
        "--max-pages",
        type=int,
        default=MAX_PDF_PAGES,
        help=f"Maximum pages to keep (default: {MAX_PDF_PAGES}).",
    )
    norm.add_argument(
        "--engine",
        choices=("pdf2image", "pymupdf"),
        default=None,
        help="PDF rasterizer (default: RASTER_ENGINE env var).",
    )
    norm.add_argument("--dpi", type=int, default=RASTER_DPI, help=f"Raster DPI (default: {RASTER_DPI}).")
    norm.add_argument(
        "--output-dir",
        type=str,
        default=None,
        metavar="DIR",
        help="Write each page as DIR/<stem>_page_<n>.jpg.",
    )

    rec = sub.add_parser("recover", help="Recover a structured record from raw model text.")
    rec.add_argument("--shape", choices=sorted(SHAPES), required=True, help="Expected response shape.")
    rec.add_argument("path", nargs="?", default="-", help="File with the raw text, or - for stdin.")

    ana = sub.add_parser("analyze", help="Run the full exam analysis (needs OPENROUTER_API_KEY).")
    ana.add_argument("path", help="Student submission (PDF or image).")
    ana.add_argument(
        "--statement",
        type=str,
        default=None,
        metavar="FILE",
        help="Exam statement document; enables per-question analysis.",
    )
    ana.add_argument("--max-pages", type=int, default=MAX_PDF_PAGES)
    return parser


def _write_pages(sequence, stem: str, output_dir: str) -> list[str]:
    out = Path(output_dir)
    out.mkdir(parents=True, exist_ok=True)
    written = []
    for page in sequence.pages:
        target = out / f"{stem}_page_{page.page_number}.{page.encoding}"
        target.write_bytes(page.data)
        written.append(str(target))
    return written


def _cmd_normalize(args: argparse.Namespace) -> int:
    from .normalize import normalize
    from .rasterize import get_rasterizer

    document = RawDocument.from_path(args.path, kind=args.kind)
    rasterizer = get_rasterizer(args.engine, dpi=args.dpi) if document.kind == "pdf" else None
    sequence = normalize(document, max_pages=args.max_pages, rasterizer=rasterizer)
    summary = sequence.summary()
    if args.output_dir:
        summary["files"] = _write_pages(sequence, Path(args.path).stem, args.output_dir)
    print(json.dumps(summary, indent=2))
    return 0


def _cmd_recover(args: argparse.Namespace) -> int:
    if args.path == "-":
        raw = sys.stdin.read()
    else:
        raw = Path(args.path).read_text(encoding="utf-8")
    record = recover_shape(raw, args.shape)
    print(record.model_dump_json(indent=2))
    return 0


def _cmd_analyze(args: argparse.Namespace) -> int:
    from .analysis import analyze_exam, analyze_exam_with_statement, extract_statement_questions
    from .vision_client import VisionClient

    client = VisionClient.from_env()
    document = RawDocument.from_path(args.path)
    if args.statement:
        statement = extract_statement_questions(
            RawDocument.from_path(args.statement), client, max_pages=args.max_pages
        )
        questions = statement.analysis.value.questions
        print(f"Extracted {len(questions)} question(s) from statement", file=sys.stderr)
        report = analyze_exam_with_statement(document, questions, client, max_pages=args.max_pages)
    else:
        report = analyze_exam(document, client, max_pages=args.max_pages)
    print(report.model_dump_json(indent=2))
    return 0


_COMMANDS = {
    "normalize": _cmd_normalize,
    "recover": _cmd_recover,
    "analyze": _cmd_analyze,
}


def main(argv: list[str] | None = None) -> int:
    """Entry point for the CLI."""

    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    log_startup_config()

    try:
        return _COMMANDS[args.command](args)
    except (DocVisionError, ValueError, OSError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    except Exception as exc:  # pragma: no cover - safety net
        print(f"Unexpected error: {exc}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
