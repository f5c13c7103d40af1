# main.py

import argparse
import json
import sys
from pathlib import Path

from rich.console import Console
from rich.table import Table

from quizmark.cascade import DEFAULT_MODE, ENGINE_SEQUENCES
from quizmark.config import get_config
from quizmark.exceptions import QuizmarkError
from quizmark.logger import setup_logger
from quizmark.persistence import QuizRepository
from quizmark.pipeline import QuizPipeline
from quizmark.utils.timing import format_duration

console = Console(force_terminal=True)
logger = setup_logger()


def print_ocr_report(report):
    table = Table(title=f"OCR cascade ({report.mode})")
    table.add_column("Engine")
    table.add_column("OK")
    table.add_column("Chars", justify="right")
    table.add_column("Time", justify="right")
    table.add_column("Note")
    for attempt in report.attempts:
        marker = "[green]yes" if attempt.meaningful else ("[yellow]low" if attempt.ok else "[red]no")
        table.add_row(
            attempt.engine,
            marker,
            str(attempt.chars),
            format_duration(attempt.duration_sec),
            attempt.reason,
        )
    console.print(table)

    if report.winner:
        console.print(f"[bold green]Extracted {len(report.text)} chars with {report.winner}")
    else:
        console.print(
            f"[bold yellow]No engine produced meaningful text ({len(report.text)} chars saved); "
            f"try another --engine"
        )


def cmd_ocr(pipeline, args):
    with console.status(f"Running OCR ({args.engine})..."):
        report = pipeline.process_quiz(args.quiz_id, engine=args.engine)
    print_ocr_report(report)
    if args.json:
        console.print_json(json.dumps(report.to_dict()))


def cmd_grade(pipeline, args):
    raw = Path(args.graded_file).read_text(encoding="utf-8")
    rubric = json.loads(Path(args.rubric).read_text(encoding="utf-8")) if args.rubric else None
    records = pipeline.ingest_grading(args.quiz_id, raw, rubric=rubric)
    table = Table(title=f"Graded results for {args.quiz_id}")
    table.add_column("#", justify="right")
    table.add_column("Name")
    table.add_column("Roll")
    table.add_column("Role")
    table.add_column("Score", justify="right")
    for i, r in enumerate(records, start=1):
        table.add_row(str(i), r.display_name, r.display_roll, r.role.value, f"{r.total_score}/{r.max_score}")
    console.print(table)


def cmd_pack(pipeline, args):
    with console.status("Building composite pack..."):
        url = pipeline.build_composite_pack(args.quiz_id)
    console.print(f"[bold green]Composite pack:[/] {url}")


def cmd_roster(pipeline, args):
    with console.status("Building full roster..."):
        url = pipeline.build_full_roster(args.quiz_id)
    console.print(f"[bold green]Full roster:[/] {url}")


def cmd_csv(pipeline, args):
    url = pipeline.export_csv(args.quiz_id)
    console.print(f"[bold green]Results CSV:[/] {url}")


def cmd_pages(pipeline, args):
    mapping = pipeline.page_mapping(args.quiz_id)
    table = Table(title=f"Page mapping ({mapping.source})")
    table.add_column("Student", justify="right")
    table.add_column("Pages")
    for i, pages in enumerate(mapping.pages, start=1):
        table.add_row(str(i), ", ".join(str(p + 1) for p in pages) or "-")
    console.print(table)


def cmd_artifacts(pipeline, args):
    rows = pipeline.repository.list_artifacts(args.quiz_id)
    if not rows:
        console.print(f"[yellow]No artifacts recorded for {args.quiz_id}")
        return
    table = Table(title=f"Artifacts for {args.quiz_id}")
    table.add_column("Kind")
    table.add_column("URL")
    table.add_column("Created")
    for row in rows:
        table.add_row(row["kind"], row["url"], str(row.get("created_at") or "-"))
    console.print(table)


def cmd_init_db(pipeline, args):
    pipeline.repository.init_db()
    console.print("[bold green]Database schema initialized")


def build_parser():
    parser = argparse.ArgumentParser(description="Quizmark: OCR and result packs for scanned quizzes")
    sub = parser.add_subparsers(dest="command", required=True)

    ocr = sub.add_parser("ocr", help="Extract text from a quiz's scanned PDF")
    ocr.add_argument("quiz_id")
    ocr.add_argument(
        "--engine",
        default=DEFAULT_MODE,
        choices=sorted(ENGINE_SEQUENCES),
        help="OCR engine sequence (default: auto)",
    )
    ocr.add_argument("--json", action="store_true", help="Also print the run report as JSON")
    ocr.set_defaults(func=cmd_ocr)

    grade = sub.add_parser("grade", help="Store a grader reply as the quiz's graded results")
    grade.add_argument("quiz_id")
    grade.add_argument("graded_file", help="File holding the grader's JSON reply")
    grade.add_argument("--rubric", help="JSON rubric file the reply was graded against")
    grade.set_defaults(func=cmd_grade)

    for name, func, help_text in (
        ("pack", cmd_pack, "Build the Solution/Best/Avg/Low PDF"),
        ("roster", cmd_roster, "Build the all-pages annotated PDF"),
        ("csv", cmd_csv, "Export graded results as CSV"),
        ("pages", cmd_pages, "Show which pages belong to which student"),
        ("artifacts", cmd_artifacts, "List generated PDFs and CSVs for a quiz"),
    ):
        p = sub.add_parser(name, help=help_text)
        p.add_argument("quiz_id")
        p.set_defaults(func=func)

    init_db = sub.add_parser("init-db", help="Create database tables")
    init_db.set_defaults(func=cmd_init_db)
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)
    config = get_config()
    pipeline = QuizPipeline(config, repository=QuizRepository(config.db))

    try:
        args.func(pipeline, args)
    except QuizmarkError as e:
        logger.error(f"{args.command} failed: {e}")
        console.print(f"[bold red]Error:[/] {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        sys.exit(1)
    finally:
        pipeline.repository.close()


if __name__ == "__main__":
    main()
