"""CLI entrypoints for repohealth commands."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from .config import ConfigError, load_config
from .logging import configure_logging
from .models import AssessmentReport
from .orchestrator import Orchestrator
from .report import dumps
from .stores import ReportStore
from .urls import parse_repository_url


def _add_verbose_option(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    kwargs: dict[str, object] = {
        "action": "store_true",
        "help": "Increase log verbosity for troubleshooting.",
    }
    if suppress_default:
        kwargs["default"] = argparse.SUPPRESS
    else:
        kwargs["default"] = False
    parser.add_argument(
        "-v",
        "--verbose",
        **kwargs,
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="repohealth",
        description="Assess the health of a public GitHub repository.",
    )
    _add_verbose_option(parser)
    parser.add_argument(
        "--log-file",
        default=None,
        help="Also write logs to this file.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    assess_parser = subparsers.add_parser(
        "assess",
        help="Assess a repository and print a health report.",
    )
    _add_verbose_option(assess_parser, suppress_default=True)
    assess_parser.add_argument(
        "url",
        help="Repository URL (https://github.com/owner/repo) or owner/repo shorthand.",
    )
    assess_parser.add_argument(
        "--json",
        action="store_true",
        help="Print the full report as JSON instead of a text summary.",
    )
    assess_parser.add_argument(
        "--config",
        default=None,
        help="Path to a .repohealth.yml file or a directory containing one.",
    )
    assess_parser.add_argument(
        "--output",
        default=None,
        help="Write the JSON report to this file.",
    )
    assess_parser.add_argument(
        "--store",
        default=None,
        help="Append the report to a JSON history file.",
    )

    serve_parser = subparsers.add_parser(
        "serve",
        help="Run the HTTP assessment service.",
    )
    _add_verbose_option(serve_parser, suppress_default=True)
    serve_parser.add_argument("--host", default="127.0.0.1", help="Interface to bind.")
    serve_parser.add_argument("--port", type=int, default=8000, help="Port to listen on.")

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for repohealth commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(
        verbose=bool(args.verbose),
        log_file=Path(args.log_file) if args.log_file else None,
    )

    if args.command == "assess":
        try:
            request = parse_repository_url(args.url)
        except ValueError as exc:
            parser.exit(1, f"{exc}\n")
        try:
            config_path = Path(args.config) if args.config else Path.cwd()
            config = load_config(config_path)
        except ConfigError as exc:
            parser.exit(1, f"Invalid configuration: {exc}\n")

        store = ReportStore(Path(args.store)) if args.store else None
        orchestrator = Orchestrator(config=config, store=store)
        try:
            report = orchestrator.assess_request(request)
        except Exception as exc:  # pragma: no cover - defensive guard
            parser.exit(1, f"repohealth assess failed: {exc}\nRun with --verbose for more details.\n")

        if args.output:
            output = Path(args.output)
            output.parent.mkdir(parents=True, exist_ok=True)
            output.write_text(dumps(report) + "\n", encoding="utf-8")
        if args.json:
            print(dumps(report))
        else:
            print(format_summary(report))
    elif args.command == "serve":
        from .service import run_service

        run_service(host=args.host, port=args.port)
    else:  # pragma: no cover - argparse enforces choices
        parser.exit(1, "Unknown command\n")


def format_summary(report: AssessmentReport) -> str:
    """Render a short human-readable report."""
    scores = report.scores
    lines = [
        f"Repository: {report.request.slug}",
        f"Overall score: {scores.overall:.1f}/100 ({scores.confidence_label.value} confidence)",
        "",
        "Signals:",
    ]
    for result in report.signals:
        status = "ok" if result.succeeded else ("estimated" if result.estimated else "failed")
        lines.append(
            f"  {result.signal_name:<14} {result.score:5.1f}  confidence {result.confidence:.2f}  [{status}]"
        )
    if report.recommendations:
        lines.append("")
        lines.append("Recommendations:")
        for rec in report.recommendations:
            lines.append(f"  [{rec.priority.value}] {rec.message}")
            if rec.suggested_action:
                lines.append(f"      {rec.suggested_action}")
    if report.limitations:
        lines.append("")
        lines.append("Limitations:")
        for note in report.limitations:
            lines.append(f"  - {note}")
    if report.insight:
        lines.append("")
        lines.append(report.insight)
    lines.append(f"Completed in {report.processing_time_ms} ms")
    return "\n".join(lines)


if __name__ == "__main__":
    main(sys.argv[1:])
