"""CLI for pipescan.

Commands:
  pipescan scan
  pipescan parse --tool {trivy,trivy-config,gitleaks} REPORT
  pipescan decide --report FILE [--exit-code N]
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path

from pipescan.cli._helpers import _out  # noqa: F401  (re-exported for tests)
from pipescan.cli._parser import build_parser
from pipescan.config import ConfigError, load_settings
from pipescan.observability import setup_logging

log = logging.getLogger("pipescan.cli")


def _env_debug() -> bool:
    return any(
        os.environ.get(key, "").strip().lower() in ("1", "true", "yes", "on")
        for key in ("DEBUG", "CI_DEBUG_TRACE")
    )


def cmd_scan(args: argparse.Namespace) -> int:
    from pipescan.orchestrator import run

    try:
        settings = load_settings(overrides={
            "scan_type": args.scan_type,
            "scan_target": args.scan_target,
            "severity": args.severity,
            "ignore_unfixed": args.ignore_unfixed,
            "exit_code": args.exit_code,
            "scanners": args.scanners,
            "timeout": args.timeout,
            "output_env": args.output_env,
            "output_json": args.output_json,
            "debug": args.debug,
            "log_format": args.log_format,
        })
    except ConfigError as exc:
        log.error("Invalid configuration: %s", exc)
        return 1

    setup_logging("DEBUG" if settings.debug else "INFO", settings.log_format)
    try:
        decision = asyncio.run(run(settings))
    except Exception:
        log.exception("Security scan failed")
        return 1
    return decision.exit_code


def cmd_parse(args: argparse.Namespace) -> int:
    from pipescan.adapters import REPORT_PARSERS

    path = Path(args.report)
    try:
        raw = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        return _out({"error": f"Cannot read {path}: {exc}"})
    return _out(REPORT_PARSERS[args.tool](raw, args.tool).to_dict())


def cmd_decide(args: argparse.Namespace) -> int:
    from pipescan.decision import evaluate
    from pipescan.outputs import read_json_report

    try:
        report = read_json_report(Path(args.report))
    except (OSError, ValueError, KeyError) as exc:
        return _out({"error": f"Cannot load report {args.report}: {exc}"})
    decision = evaluate(report, args.exit_code)
    _out({**report.counters(), **decision.to_dict()})
    return decision.exit_code


# ===================================================================
# Dispatch
# ===================================================================

_DISPATCH = {
    "scan": cmd_scan,
    "parse": cmd_parse,
    "decide": cmd_decide,
}


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv if argv is not None else sys.argv[1:])

    if not args.command:
        parser.print_help()
        return 1

    debug = args.debug or _env_debug()
    setup_logging("DEBUG" if debug else "INFO", args.log_format or "console")

    handler = _DISPATCH.get(args.command)
    if handler is None:
        parser.print_help()
        return 1
    return handler(args)
