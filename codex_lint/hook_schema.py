#!/usr/bin/env python3
"""
Hook configuration validator.

Validates a hooks JSON file, either an event map directly or one nested under
a top-level `hooks` key:

    {"hooks": {"PreToolUse": [{"matcher": "Bash", "hooks": [{"type": "command", "command": "..."}]}]}}

A jsonschema pass checks the structural shape; targeted semantic checks then
cover required fields, hook types, command paths, prompt placement and
timeouts.
"""

from __future__ import annotations

import argparse
import json
from pathlib import Path
from typing import Any

import jsonschema

from codex_lint.report import (
    aggregate_reports,
    build_report,
    emit,
    exit_code_for,
    finding,
    format_finding,
    load_schema,
    render_reports,
    render_summary,
    resolve_assets_dir,
)


TOOL_NAME = "validate-hooks"
HOOK_CONFIG_SCHEMA = "hook_config.schema.json"
VALID_EVENTS = (
    "SessionStart",
    "UserPromptSubmit",
    "PreToolUse",
    "PostToolUse",
    "Stop",
    "SessionEnd",
    "SubagentStop",
)
VALID_HOOK_TYPES = ("command", "prompt")
PROMPT_HOOK_EVENTS = ("Stop", "SubagentStop", "UserPromptSubmit", "PreToolUse")
HOOK_ROOT_PLACEHOLDER = "${CODEX_HOOK_ROOT}"
TIMEOUT_MIN_SECONDS = 5
TIMEOUT_MAX_SECONDS = 600


class HookConfigError(ValueError):
    def __init__(self, check: str, message: str) -> None:
        super().__init__(message)
        self.check = check


def load_hook_config(path: Path) -> Any:
    if not path.is_file():
        raise HookConfigError("file_exists", f"File not found: {path}")
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise HookConfigError("file_read", f"Cannot read {path}: {exc}") from exc
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise HookConfigError(
            "json_syntax", f"Invalid JSON syntax: {exc.msg} (line {exc.lineno}, column {exc.colno})"
        ) from exc


def resolve_event_map(document: Any) -> tuple[str, dict[str, Any]]:
    if not isinstance(document, dict):
        raise HookConfigError("root_structure", "Root must be a JSON object")
    if "hooks" in document:
        event_map = document["hooks"]
        if not isinstance(event_map, dict):
            raise HookConfigError("root_structure", "'hooks' must be a JSON object mapping events to matchers")
        return "hooks", event_map
    return ".", document


def format_location(path: Any) -> str:
    out = ""
    for part in path:
        if isinstance(part, int):
            out += f"[{part}]"
        elif out:
            out += f".{part}"
        else:
            out = str(part)
    return out or "<root>"


def schema_findings(event_map: dict[str, Any], schema: dict[str, Any]) -> list[dict[str, Any]]:
    validator = jsonschema.Draft7Validator(schema)
    errors = sorted(validator.iter_errors(event_map), key=lambda e: [str(p) for p in e.absolute_path])
    return [
        finding("error", "schema", error.message, location=format_location(error.absolute_path))
        for error in errors
    ]


def check_timeout(value: Any, location: str) -> list[dict[str, Any]]:
    if value is None:
        return []
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        return [finding("error", "timeout_type", "Timeout must be a number", location=location)]
    if value > TIMEOUT_MAX_SECONDS:
        return [
            finding(
                "warning",
                "timeout_high",
                f"Timeout {value} seconds is very high (max {TIMEOUT_MAX_SECONDS}s)",
                location=location,
            )
        ]
    if value < TIMEOUT_MIN_SECONDS:
        return [finding("warning", "timeout_low", f"Timeout {value} seconds is very low", location=location)]
    return []


def check_hook_entry(event: str, hook: dict[str, Any], location: str) -> list[dict[str, Any]]:
    findings: list[dict[str, Any]] = []
    hook_type = hook.get("type")
    if hook_type in (None, ""):
        return [finding("error", "type_missing", "Missing 'type' field", location=location)]
    if not isinstance(hook_type, str):
        return findings
    if hook_type not in VALID_HOOK_TYPES:
        return [
            finding(
                "error",
                "type_invalid",
                f"Invalid type '{hook_type}' (must be 'command' or 'prompt')",
                location=location,
            )
        ]

    if hook_type == "command":
        command = hook.get("command")
        if "prompt" in hook:
            findings.append(
                finding("error", "hook_fields", "Command hooks must not have a 'prompt' field", location=location)
            )
        if not command:
            findings.append(
                finding("error", "command_missing", "Command hooks must have 'command' field", location=location)
            )
        elif isinstance(command, str) and command.startswith("/") and HOOK_ROOT_PLACEHOLDER not in command:
            findings.append(
                finding(
                    "warning",
                    "hardcoded_path",
                    f"Hardcoded absolute path detected. Consider using {HOOK_ROOT_PLACEHOLDER}",
                    location=location,
                )
            )
    else:
        if not hook.get("prompt"):
            findings.append(
                finding("error", "prompt_missing", "Prompt hooks must have 'prompt' field", location=location)
            )
        if "command" in hook:
            findings.append(
                finding("error", "hook_fields", "Prompt hooks must not have a 'command' field", location=location)
            )
        if event not in PROMPT_HOOK_EVENTS:
            findings.append(
                finding(
                    "warning",
                    "prompt_event",
                    f"Prompt hooks are best on {', '.join(PROMPT_HOOK_EVENTS)}",
                    location=location,
                )
            )

    findings.extend(check_timeout(hook.get("timeout"), location))
    return findings


def semantic_findings(event_map: dict[str, Any]) -> tuple[list[dict[str, Any]], int]:
    findings: list[dict[str, Any]] = []
    hook_count = 0
    for event, entries in event_map.items():
        if event not in VALID_EVENTS:
            findings.append(finding("warning", "unknown_event", f"Unknown event type: {event}", location=event))
        if not isinstance(entries, list):
            continue
        for i, entry in enumerate(entries):
            location = f"{event}[{i}]"
            if not isinstance(entry, dict):
                continue
            matcher = entry.get("matcher")
            if matcher in (None, ""):
                findings.append(finding("error", "matcher_missing", "Missing 'matcher' field", location=location))
                continue
            hooks = entry.get("hooks")
            if not hooks:
                findings.append(finding("error", "hooks_missing", "Missing 'hooks' array", location=location))
                continue
            if not isinstance(matcher, str) or not isinstance(hooks, list):
                continue
            for j, hook in enumerate(hooks):
                if not isinstance(hook, dict):
                    continue
                hook_count += 1
                findings.extend(check_hook_entry(event, hook, f"{location}.hooks[{j}]"))
    return findings, hook_count


def validate_hook_config(path: Path, assets_dir: Path) -> dict[str, Any]:
    schema, err = load_schema(assets_dir, HOOK_CONFIG_SCHEMA)
    if err is not None:
        return build_report(TOOL_NAME, path, [finding("error", "schema_asset", err)], fatal=True)

    try:
        root, event_map = resolve_event_map(load_hook_config(path))
    except HookConfigError as exc:
        return build_report(TOOL_NAME, path, [finding("error", exc.check, str(exc))], fatal=True)

    findings = schema_findings(event_map, schema)
    semantic, hook_count = semantic_findings(event_map)
    findings.extend(semantic)
    return build_report(
        TOOL_NAME,
        path,
        findings,
        fatal=False,
        root=root,
        events=list(event_map),
        hook_count=hook_count,
    )


def validate_paths(raw_paths: list[str], assets_dir: Path) -> dict[str, Any]:
    reports = [validate_hook_config(Path(raw), assets_dir) for raw in raw_paths]
    if len(reports) == 1:
        return reports[0]
    return aggregate_reports(TOOL_NAME, reports)


def render_config_text(report: dict[str, Any]) -> list[str]:
    lines = [f"hooks_config: {report['path']}"]
    if not report.get("fatal"):
        lines.append(f"root: {report['root']}")
        lines.append(f"events: {', '.join(report['events']) or '(none)'}")
        lines.append(f"hook_count: {report['hook_count']}")
    lines.extend(format_finding(item) for item in report["findings"])
    lines.extend(render_summary(report))
    return lines


def render_text(report: dict[str, Any]) -> list[str]:
    return render_reports(report, render_config_text)


def run(args: argparse.Namespace) -> int:
    assets_dir = resolve_assets_dir(getattr(args, "assets_dir", None))
    report = validate_paths(args.paths, assets_dir)
    emit(report, args.format, args.out_file, render_text)
    return exit_code_for(report["status"])


def add_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("paths", nargs="+", help="Hook configuration JSON file(s).")
    parser.add_argument("--format", choices=["text", "json"], default="text", help="Output format (default: text).")
    parser.add_argument("--out-file", help="Optional JSON report output path.")
    parser.add_argument(
        "--assets-dir",
        help="Optional assets root holding schemas/ (defaults to CODEX_LINT_ASSETS_DIR or the package directory).",
    )


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    add_arguments(parser)
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    return run(parse_args(argv))


if __name__ == "__main__":
    raise SystemExit(main())
