#!/usr/bin/env python3
"""
Hook script linter.

Heuristic, text-only checks for shell hook scripts. Every check is
independent and works on raw lines (no shell parsing), so false positives are
expected; findings are advisory except for a missing file or shebang.
"""

from __future__ import annotations

import argparse
import re
from pathlib import Path
from typing import Any

from codex_lint.report import (
    aggregate_reports,
    build_report,
    emit,
    exit_code_for,
    finding,
    format_finding,
    render_reports,
    render_summary,
)


TOOL_NAME = "lint-hook"
MAX_EXAMPLES = 5

VAR_REF = re.compile(r"\$(\{[^}]*\}|[A-Za-z_][A-Za-z0-9_]*)")
STRICT_MODE = re.compile(r"set -euo pipefail")
STDIN_READ = re.compile(r"\bcat\b|\bread\b")
HOOK_INPUT_FIELDS = re.compile(r"tool_input|tool_name")
JQ_USAGE = re.compile(r"\bjq\b")
HARDCODED_PATH = re.compile(r"^[^#]*(/home/|/usr/|/opt/)")
HOOK_ROOT_VARS = re.compile(r"CODEX_HOOK_ROOT|CODEX_PROJECT_ROOT")
EXPLICIT_EXIT = re.compile(r"\bexit [02]\b")
DECISION_EVENTS = re.compile(r"PreToolUse|Stop")
DECISION_OUTPUT = re.compile(r"decision|permissionDecision")
LONG_RUNNING = re.compile(r"^[^#]*(sleep\s+[0-9]{3,}|while\s+true\b|while\s+:)")
ERROR_ECHO = re.compile(r"^\s*(echo|printf)\b.*\b(error|denied)", re.IGNORECASE)
INPUT_VALIDATION = re.compile(r"if.*(empty|null|-z)")


def is_comment(line: str) -> bool:
    return line.lstrip().startswith("#")


def unquoted_expansions(line: str) -> list[str]:
    """Return `$var` / `${var}` references on a line that sit outside any quotes."""
    found: list[str] = []
    in_single = False
    in_double = False
    i = 0
    while i < len(line):
        ch = line[i]
        if in_single:
            if ch == "'":
                in_single = False
        elif ch == "\\":
            i += 2
            continue
        elif ch == "'" and not in_double:
            in_single = True
        elif ch == '"':
            in_double = not in_double
        elif ch == "#" and not in_double and (i == 0 or line[i - 1].isspace()):
            break
        elif ch == "$" and not in_double:
            m = VAR_REF.match(line, i)
            if m:
                found.append(m.group(0))
                i = m.end()
                continue
        i += 1
    return found


def _line_matches(lines: list[str], pattern: re.Pattern[str]) -> list[int]:
    return [idx for idx, line in enumerate(lines, start=1) if not is_comment(line) and pattern.search(line)]


def _examples(lines: list[str], line_nos: list[int]) -> list[str]:
    return [f"line {n}: {lines[n - 1].strip()}" for n in line_nos[:MAX_EXAMPLES]]


def lint_script_text(text: str) -> list[dict[str, Any]]:
    lines = text.splitlines()
    findings: list[dict[str, Any]] = []

    if not lines or not lines[0].startswith("#!/"):
        findings.append(finding("error", "shebang", "Missing shebang (#!/bin/bash)", line=1))

    if not STRICT_MODE.search(text):
        findings.append(finding("warning", "strict_mode", "Missing 'set -euo pipefail' (recommended for safety)"))

    if not STDIN_READ.search(text):
        findings.append(finding("warning", "stdin", "Doesn't appear to read input from stdin"))

    if HOOK_INPUT_FIELDS.search(text) and not JQ_USAGE.search(text):
        findings.append(finding("warning", "json_parsing", "Parses hook input but doesn't use jq"))

    unquoted: list[str] = []
    unquoted_lines: list[int] = []
    for idx, line in enumerate(lines, start=1):
        if is_comment(line):
            continue
        refs = unquoted_expansions(line)
        if refs:
            unquoted_lines.append(idx)
            unquoted.extend(f"line {idx}: {ref}" for ref in refs)
    if unquoted:
        findings.append(
            finding(
                "warning",
                "unquoted_variable",
                'Potentially unquoted variables detected (injection risk); always use double quotes: "$variable"',
                line=unquoted_lines[0],
                examples=unquoted[:MAX_EXAMPLES],
            )
        )

    path_lines = _line_matches(lines, HARDCODED_PATH)
    if path_lines:
        findings.append(
            finding(
                "warning",
                "hardcoded_path",
                "Hardcoded absolute paths detected; use $CODEX_PROJECT_ROOT or $CODEX_HOOK_ROOT",
                line=path_lines[0],
                examples=_examples(lines, path_lines),
            )
        )

    if not HOOK_ROOT_VARS.search(text):
        findings.append(finding("tip", "hook_root", "Use $CODEX_HOOK_ROOT for hook-relative paths"))

    if not EXPLICIT_EXIT.search(text):
        findings.append(finding("warning", "exit_code", "No explicit exit codes (should exit 0 or 2)"))

    if DECISION_EVENTS.search(text) and not DECISION_OUTPUT.search(text):
        findings.append(finding("tip", "decision_output", "PreToolUse/Stop hooks should output decision JSON"))

    slow_lines = _line_matches(lines, LONG_RUNNING)
    if slow_lines:
        findings.append(
            finding(
                "warning",
                "long_running",
                "Potentially long-running code detected; hooks should complete quickly (< 60s)",
                line=slow_lines[0],
                examples=_examples(lines, slow_lines),
            )
        )

    stdout_error_lines = [n for n in _line_matches(lines, ERROR_ECHO) if ">&2" not in lines[n - 1]]
    if stdout_error_lines:
        findings.append(
            finding(
                "warning",
                "stderr_errors",
                "Error messages should be written to stderr (>&2)",
                line=stdout_error_lines[0],
                examples=_examples(lines, stdout_error_lines),
            )
        )

    if not INPUT_VALIDATION.search(text):
        findings.append(finding("tip", "input_validation", "Consider validating input fields aren't empty"))

    return findings


def lint_script(path: Path) -> dict[str, Any]:
    if not path.is_file():
        return build_report(TOOL_NAME, path, [finding("error", "file_exists", f"File not found: {path}")], fatal=True)

    try:
        text = path.read_text(encoding="utf-8", errors="replace")
    except OSError as exc:
        return build_report(
            TOOL_NAME, path, [finding("error", "file_read", f"Cannot read {path}: {exc}")], fatal=True
        )

    findings: list[dict[str, Any]] = []
    if not path.stat().st_mode & 0o111:
        findings.append(finding("warning", "executable", f"Not executable (chmod +x {path})"))
    findings.extend(lint_script_text(text))
    return build_report(TOOL_NAME, path, findings, fatal=False)


def lint_paths(raw_paths: list[str]) -> dict[str, Any]:
    reports = [lint_script(Path(raw)) for raw in raw_paths]
    if len(reports) == 1:
        return reports[0]
    return aggregate_reports(TOOL_NAME, reports)


def render_script_text(report: dict[str, Any]) -> list[str]:
    lines = [f"script: {report['path']}"]
    for item in report["findings"]:
        lines.append(format_finding(item))
        for example in item.get("examples", []):
            lines.append(f"    {example}")
    lines.extend(render_summary(report))
    return lines


def render_text(report: dict[str, Any]) -> list[str]:
    return render_reports(report, render_script_text)


def run(args: argparse.Namespace) -> int:
    report = lint_paths(args.paths)
    emit(report, args.format, args.out_file, render_text)
    return exit_code_for(report["status"])


def add_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("paths", nargs="+", help="Hook script file(s) to lint.")
    parser.add_argument("--format", choices=["text", "json"], default="text", help="Output format (default: text).")
    parser.add_argument("--out-file", help="Optional JSON report output path.")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    add_arguments(parser)
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    return run(parse_args(argv))


if __name__ == "__main__":
    raise SystemExit(main())
