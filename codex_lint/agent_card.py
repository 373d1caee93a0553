#!/usr/bin/env python3
"""
Agent card validator.

An agent card is a Markdown file that opens with a YAML frontmatter block
delimited by `---` lines, followed by the prompt body:

    ---
    name: pr-reviewer
    description: Use when the user asks for a code review.
    ---

    You are a senior PR reviewer.

Checks:
  - frontmatter delimiters (fatal when missing)
  - required fields: name (kebab-case, 3-50 chars), description (10-500 chars)
  - optional fields: profile, model, sandbox_mode, approval_policy, tools
  - prompt body presence and length (20-12000 chars)
"""

from __future__ import annotations

import argparse
import re
from pathlib import Path
from typing import Any

import yaml

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


TOOL_NAME = "validate-agent"
FRONTMATTER_DELIMITER = "---"
NAME_PATTERN = re.compile(r"^[a-z0-9][a-z0-9-]*[a-z0-9]$")
NAME_MIN_CHARS = 3
NAME_MAX_CHARS = 50
DESCRIPTION_MIN_CHARS = 10
DESCRIPTION_MAX_CHARS = 500
PROMPT_MIN_CHARS = 20
PROMPT_MAX_CHARS = 12000
REQUIRED_FIELDS = ("name", "description")
OPTIONAL_FIELDS = ("profile", "model", "sandbox_mode", "approval_policy", "tools")
VALID_SANDBOX_MODES = ("read-only", "workspace-write", "danger-full-access")
VALID_APPROVAL_POLICIES = ("untrusted", "on-failure", "on-request", "never")
SECOND_PERSON_PATTERN = re.compile(r"You are|You will|Your")
USE_WHEN_PATTERN = re.compile(r"use when", re.IGNORECASE)


class FrontmatterError(ValueError):
    """Raised when the frontmatter block cannot be located or parsed."""

    def __init__(self, check: str, message: str) -> None:
        super().__init__(message)
        self.check = check


def split_frontmatter(text: str) -> tuple[str, str]:
    lines = text.splitlines()
    if not lines or lines[0] != FRONTMATTER_DELIMITER:
        raise FrontmatterError("frontmatter_open", "File must start with YAML frontmatter (---)")
    for idx in range(1, len(lines)):
        if lines[idx] == FRONTMATTER_DELIMITER:
            frontmatter = "\n".join(lines[1:idx])
            body = "\n".join(lines[idx + 1 :]).strip()
            return frontmatter, body
    raise FrontmatterError("frontmatter_close", "Frontmatter not closed (missing second ---)")


def parse_frontmatter(text: str) -> dict[str, Any]:
    try:
        data = yaml.safe_load(text) if text.strip() else {}
    except yaml.YAMLError as exc:
        raise FrontmatterError("frontmatter_yaml", f"Frontmatter is not valid YAML: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise FrontmatterError("frontmatter_yaml", "Frontmatter must be a YAML mapping")
    return {str(key): value for key, value in data.items()}


def field_text(data: dict[str, Any], key: str) -> str:
    value = data.get(key)
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, (list, dict)):
        return ""
    return str(value).strip()


def normalize_tools(value: Any) -> list[str] | None:
    if isinstance(value, str):
        return [item.strip() for item in value.split(",") if item.strip()]
    if isinstance(value, list) and all(isinstance(item, str) for item in value):
        return [item.strip() for item in value]
    return None


def check_name(name: str) -> list[dict[str, Any]]:
    if not name:
        return [finding("error", "name_missing", "Missing required field: name")]
    findings: list[dict[str, Any]] = []
    if not NAME_PATTERN.match(name):
        findings.append(
            finding("error", "name_format", "name should be kebab-case (lowercase letters, numbers, hyphens)")
        )
    if len(name) < NAME_MIN_CHARS:
        findings.append(finding("error", "name_length", f"name too short (minimum {NAME_MIN_CHARS} characters)"))
    elif len(name) > NAME_MAX_CHARS:
        findings.append(finding("error", "name_length", f"name too long (maximum {NAME_MAX_CHARS} characters)"))
    return findings


def check_description(description: str) -> list[dict[str, Any]]:
    if not description:
        return [finding("error", "description_missing", "Missing required field: description")]
    findings: list[dict[str, Any]] = []
    if len(description) < DESCRIPTION_MIN_CHARS:
        findings.append(
            finding(
                "error",
                "description_length",
                f"description too short (minimum {DESCRIPTION_MIN_CHARS} characters)",
            )
        )
    elif len(description) > DESCRIPTION_MAX_CHARS:
        findings.append(
            finding(
                "error",
                "description_length",
                f"description too long (maximum {DESCRIPTION_MAX_CHARS} characters)",
            )
        )
    if not USE_WHEN_PATTERN.search(description):
        findings.append(finding("tip", "description_phrasing", "description should start with 'Use when...'"))
    return findings


def check_optional_fields(data: dict[str, Any]) -> tuple[dict[str, Any], list[dict[str, Any]]]:
    fields: dict[str, Any] = {}
    findings: list[dict[str, Any]] = []

    for key in ("profile", "model"):
        value = field_text(data, key)
        if value:
            fields[key] = value

    sandbox_mode = field_text(data, "sandbox_mode")
    if sandbox_mode:
        fields["sandbox_mode"] = sandbox_mode
        if sandbox_mode not in VALID_SANDBOX_MODES:
            findings.append(finding("warning", "sandbox_mode_unknown", f"Unknown sandbox_mode: {sandbox_mode}"))

    approval_policy = field_text(data, "approval_policy")
    if approval_policy:
        fields["approval_policy"] = approval_policy
        if approval_policy not in VALID_APPROVAL_POLICIES:
            findings.append(
                finding("warning", "approval_policy_unknown", f"Unknown approval_policy: {approval_policy}")
            )

    if data.get("tools") not in (None, "", []):
        tools = normalize_tools(data["tools"])
        if tools is None:
            findings.append(
                finding("warning", "tools_format", "tools should be a list of strings or a comma-separated string")
            )
        else:
            fields["tools"] = tools

    known = set(REQUIRED_FIELDS) | set(OPTIONAL_FIELDS)
    for key in sorted(data):
        if key not in known:
            findings.append(finding("tip", "unknown_field", f"Unrecognized frontmatter field: {key}"))
    return fields, findings


def check_prompt_body(body: str) -> list[dict[str, Any]]:
    if not body:
        return [finding("error", "prompt_missing", "Prompt body is empty")]
    findings: list[dict[str, Any]] = []
    if len(body) < PROMPT_MIN_CHARS:
        findings.append(
            finding("error", "prompt_length", f"Prompt body too short (minimum {PROMPT_MIN_CHARS} characters)")
        )
    elif len(body) > PROMPT_MAX_CHARS:
        findings.append(
            finding("warning", "prompt_length", f"Prompt body very long (over {PROMPT_MAX_CHARS:,} characters)")
        )
    if not SECOND_PERSON_PATTERN.search(body):
        findings.append(
            finding("tip", "prompt_voice", "consider second-person instructions (You are..., You will...)")
        )
    return findings


def validate_agent_card(path: Path) -> dict[str, Any]:
    if not path.is_file():
        return build_report(
            TOOL_NAME, path, [finding("error", "file_exists", f"File not found: {path}")], fatal=True, fields={}
        )

    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        return build_report(
            TOOL_NAME, path, [finding("error", "file_read", f"Cannot read {path}: {exc}")], fatal=True, fields={}
        )
    try:
        frontmatter_text, body = split_frontmatter(text)
        data = parse_frontmatter(frontmatter_text)
    except FrontmatterError as exc:
        return build_report(TOOL_NAME, path, [finding("error", exc.check, str(exc))], fatal=True, fields={})

    name = field_text(data, "name")
    description = field_text(data, "description")
    findings = check_name(name) + check_description(description)
    optional, optional_findings = check_optional_fields(data)
    findings.extend(optional_findings)
    findings.extend(check_prompt_body(body))

    fields: dict[str, Any] = {"prompt_body_length": len(body)}
    if name:
        fields["name"] = name
    if description:
        fields["description_length"] = len(description)
    fields.update(optional)
    return build_report(TOOL_NAME, path, findings, fatal=False, fields=fields)


def collect_agent_files(raw_paths: list[str]) -> tuple[list[Path], list[dict[str, Any]]]:
    files: list[Path] = []
    empty_dirs: list[dict[str, Any]] = []
    for raw in raw_paths:
        path = Path(raw)
        if path.is_dir():
            found = sorted(p for p in path.rglob("*.md") if p.is_file())
            if not found:
                empty_dirs.append(
                    build_report(
                        TOOL_NAME,
                        path,
                        [finding("error", "no_files", f"No markdown files found under {path}")],
                        fatal=True,
                        fields={},
                    )
                )
            files.extend(found)
        else:
            files.append(path)
    return files, empty_dirs


def validate_paths(raw_paths: list[str]) -> dict[str, Any]:
    files, reports = collect_agent_files(raw_paths)
    reports = [validate_agent_card(path) for path in files] + reports
    if len(reports) == 1:
        return reports[0]
    return aggregate_reports(TOOL_NAME, reports)


def render_card_text(report: dict[str, Any]) -> list[str]:
    lines = [f"agent_card: {report['path']}"]
    fields = report.get("fields", {})
    if "name" in fields:
        lines.append(f"name: {fields['name']}")
    if "description_length" in fields:
        lines.append(f"description: {fields['description_length']} characters")
    for key in ("profile", "model", "sandbox_mode", "approval_policy"):
        if key in fields:
            lines.append(f"{key}: {fields[key]}")
    if "tools" in fields:
        lines.append(f"tools: {', '.join(fields['tools'])}")
    if "prompt_body_length" in fields:
        lines.append(f"prompt_body: {fields['prompt_body_length']} characters")
    lines.extend(format_finding(item) for item in report["findings"])
    lines.extend(render_summary(report))
    return lines


def render_text(report: dict[str, Any]) -> list[str]:
    return render_reports(report, render_card_text)


def run(args: argparse.Namespace) -> int:
    report = validate_paths(args.paths)
    emit(report, args.format, args.out_file, render_text)
    return exit_code_for(report["status"])


def add_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("paths", nargs="+", help="Agent card file(s) or directories of *.md files.")
    parser.add_argument("--format", choices=["text", "json"], default="text", help="Output format (default: text).")
    parser.add_argument("--out-file", help="Optional JSON report output path.")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    add_arguments(parser)
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    return run(parse_args(argv))


if __name__ == "__main__":
    raise SystemExit(main())
