"""CLI entry-point: ``python -m replyrater rate`` / ``python -m replyrater serve``."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from replyrater import config
from replyrater.csv_io import export_csv, export_json, parse_csv
from replyrater.pipeline import run_batch, setup_logging

logger = logging.getLogger(__name__)


def _rate(input_path: Path, output: Path | None, fmt: str) -> None:
    """Rate every row of *input_path* and write the export."""
    if not input_path.exists():
        logger.error("Input file not found: %s", input_path)
        sys.exit(1)

    rows = parse_csv(input_path.read_text(encoding="utf-8-sig"))
    if not rows:
        logger.error("CSV file is empty: %s", input_path)
        sys.exit(1)

    results = run_batch(rows)
    body = export_json(results) if fmt == "json" else export_csv(results)

    if output is None:
        sys.stdout.write(body)
        if not body.endswith("\n"):
            sys.stdout.write("\n")
        return
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(body, encoding="utf-8")
    logger.info("Wrote %d results to %s", len(results), output)


def _serve(host: str, port: int) -> None:
    import uvicorn

    uvicorn.run(
        "replyrater.server:create_app_from_env",
        factory=True,
        host=host,
        port=port,
    )


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="replyrater",
        description="Rate tweet replies against the tweets they answer.",
    )
    sub = parser.add_subparsers(dest="command")

    # ── rate ───────────────────────────────────────────────────────────
    rate_parser = sub.add_parser("rate", help="Rate every row of a CSV file.")
    rate_parser.add_argument("input", type=Path, help="CSV with replyId and tweetId columns.")
    rate_parser.add_argument(
        "--output",
        "-o",
        type=Path,
        default=None,
        help="Where to write results (default: stdout).",
    )
    rate_parser.add_argument(
        "--format",
        choices=["csv", "json"],
        default="csv",
        help="Export format (default: csv).",
    )
    rate_parser.add_argument(
        "--stream",
        action="store_true",
        help="Log progress to stderr as rows are processed.",
    )

    # ── serve ─────────────────────────────────────────────────────────
    serve_parser = sub.add_parser("serve", help="Run the HTTP API.")
    serve_parser.add_argument("--host", default="127.0.0.1")
    serve_parser.add_argument("--port", type=int, default=8000)

    args = parser.parse_args(argv)

    if args.command == "rate":
        # Progress is logged at INFO on stderr; stdout carries only the export.
        setup_logging(logging.INFO if args.stream else logging.WARNING)
        config.warn_if_unconfigured()
        _rate(args.input, args.output, args.format)
    elif args.command == "serve":
        _serve(args.host, args.port)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
