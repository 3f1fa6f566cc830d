"""Argparse parser definition for the pipescan CLI."""

from __future__ import annotations

import argparse

from pipescan.defaults import KNOWN_SCANNERS

PARSE_TOOLS = ("trivy", "trivy-config", "gitleaks")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pipescan",
        description="Run security scanners in CI and decide whether the pipeline fails",
    )
    parser.add_argument("--debug", action="store_true", default=None, help="Enable debug logging")
    parser.add_argument("--log-format", choices=["console", "json"], help="Log output format")
    sub = parser.add_subparsers(dest="command")

    _register_scan_command(sub)
    _register_report_commands(sub)
    return parser


def _register_scan_command(sub: argparse._SubParsersAction) -> None:
    p = sub.add_parser("scan", help="Run the configured scanners and write artifacts")
    p.add_argument("--scan-type", help="Trivy scan kind (fs, image, repo, ...)")
    p.add_argument("--target", dest="scan_target", help="Path to scan (relative to the workspace)")
    p.add_argument("--severity", help="Comma list of severities, e.g. HIGH,CRITICAL")
    p.add_argument(
        "--ignore-unfixed", action="store_true", default=None,
        help="Skip vulnerabilities without a fixed version",
    )
    p.add_argument("--exit-code", help="Exit-code policy: 0 never fails, anything else fails on findings")
    p.add_argument("--scanners", help=f"Comma list of scanners ({', '.join(KNOWN_SCANNERS)})")
    p.add_argument("--timeout", type=float, help="Per-tool timeout in seconds")
    p.add_argument("--output-env", help="Dotenv artifact path")
    p.add_argument("--output-json", help="JSON report path")


def _register_report_commands(sub: argparse._SubParsersAction) -> None:
    # -- parse --
    p = sub.add_parser("parse", help="Normalize a saved tool report and print it as JSON")
    p.add_argument("--tool", required=True, choices=PARSE_TOOLS)
    p.add_argument("report", help="Path to the tool's JSON report")

    # -- decide --
    p = sub.add_parser("decide", help="Evaluate a saved consolidated report")
    p.add_argument("--report", required=True, help="Path to scan-results.json")
    p.add_argument("--exit-code", default="1", help="Exit-code policy (default: 1)")
