#!/usr/bin/env python3
"""
Hook test runner.

Feeds a sample event payload to a hook script on stdin, under a timeout, and
reports the exit code, combined output, elapsed time and what the exit code
means under the hook contract:

  0    allowed
  2    blocked (reason on stderr, optionally a decision JSON object)
  124  timed out
  *    unexpected

`sample-input <event>` prints a canned payload for each supported event.
"""

from __future__ import annotations

import argparse
import json
import os
import signal
import subprocess
import tempfile
import time
from pathlib import Path
from typing import Any

import jsonschema

from codex_lint.hook_schema import VALID_EVENTS
from codex_lint.report import (
    atomic_write_text,
    build_report,
    dump_json,
    emit,
    exit_code_for,
    finding,
    format_finding,
    load_schema,
    render_summary,
    resolve_assets_dir,
)


TOOL_NAME = "test-hook"
HOOK_OUTPUT_SCHEMA = "hook_output.schema.json"
DEFAULT_TIMEOUT_SECONDS = 60
TIMEOUT_EXIT_CODE = 124
EXIT_INTERPRETATIONS = {
    0: "allowed",
    2: "blocked",
    TIMEOUT_EXIT_CODE: "timed out",
}
INTERPRETATION_LABELS = {
    "allowed": "Hook allowed the operation",
    "blocked": "Hook blocked the operation",
    "timed out": "Hook timed out",
}
HOOK_ENV_VARS = ("CODEX_PROJECT_ROOT", "CODEX_HOOK_ROOT", "CODEX_ENV_FILE")


def sample_input(event: str) -> dict[str, Any]:
    if event not in VALID_EVENTS:
        raise ValueError(f"Unknown event type: {event}. Valid types: {', '.join(VALID_EVENTS)}")
    tmp = Path(tempfile.gettempdir())
    payload: dict[str, Any] = {
        "session_id": "test-session",
        "transcript_path": str(tmp / "transcript.txt"),
        "cwd": str(tmp / "test-project"),
        "approval_policy": "on-request",
        "sandbox_mode": "workspace-write",
        "event": event,
        "hook_event_name": event,
    }
    if event == "PreToolUse":
        payload["tool_name"] = "Write"
        payload["tool_input"] = {"file_path": str(tmp / "test.txt"), "content": "Test content"}
    elif event == "PostToolUse":
        payload["tool_name"] = "Bash"
        payload["tool_result"] = {"stdout": "Command executed successfully"}
    elif event in ("Stop", "SubagentStop"):
        payload["reason"] = "Task appears complete"
    elif event == "UserPromptSubmit":
        payload["user_prompt"] = "Test user prompt"
    return payload


def hook_environment(base: dict[str, str] | None = None) -> dict[str, str]:
    env = dict(os.environ if base is None else base)
    tmp = Path(tempfile.gettempdir())
    env.setdefault("CODEX_PROJECT_ROOT", str(tmp / "test-project"))
    env.setdefault("CODEX_HOOK_ROOT", str(Path.cwd()))
    env.setdefault("CODEX_ENV_FILE", str(tmp / f"test-env-{os.getpid()}"))
    return env


def hook_command(script: Path) -> tuple[list[str], bool]:
    resolved = str(script.resolve())
    if os.access(resolved, os.X_OK):
        return [resolved], True
    return ["bash", resolved], False


def interpret_exit_code(code: int) -> str:
    return EXIT_INTERPRETATIONS.get(code, "unexpected")


def interpretation_label(interpretation: str, code: int) -> str:
    return INTERPRETATION_LABELS.get(interpretation, f"Hook exited with unexpected code: {code}")


def run_hook(command: list[str], payload: str, timeout: float, env: dict[str, str]) -> dict[str, Any]:
    """Run the hook once in its own process group; stdout and stderr are combined."""
    start = time.monotonic()
    proc = subprocess.Popen(
        command,
        stdin=subprocess.PIPE,
        stdout=subprocess.PIPE,
        stderr=subprocess.STDOUT,
        text=True,
        errors="replace",
        env=env,
        start_new_session=True,
    )
    timed_out = False
    try:
        output, _ = proc.communicate(payload, timeout=timeout)
        exit_code = proc.returncode
    except subprocess.TimeoutExpired:
        timed_out = True
        try:
            os.killpg(proc.pid, signal.SIGKILL)
        except ProcessLookupError:
            pass
        output, _ = proc.communicate()
        exit_code = TIMEOUT_EXIT_CODE
    duration = time.monotonic() - start
    return {
        "exit_code": exit_code,
        "output": output or "",
        "duration_seconds": round(duration, 3),
        "timed_out": timed_out,
    }


def parse_output_json(output: str) -> Any:
    text = output.strip()
    if not text:
        return None
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        return None


def check_output_json(parsed: Any, schema: dict[str, Any]) -> list[dict[str, Any]]:
    if not isinstance(parsed, dict):
        return []
    error = jsonschema.exceptions.best_match(jsonschema.Draft7Validator(schema).iter_errors(parsed))
    if error is None:
        return []
    return [
        finding(
            "warning",
            "output_schema",
            f"Output JSON does not match the hook decision format: {error.message}",
        )
    ]


def fatal_report(script: Path, input_path: Path, check: str, message: str) -> dict[str, Any]:
    return build_report(
        TOOL_NAME,
        script,
        [finding("error", check, message)],
        fatal=True,
        input_path=str(input_path),
    )


def evaluate_hook(
    script: Path,
    input_path: Path,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
    assets_dir: Path | None = None,
    expect: str | None = None,
) -> dict[str, Any]:
    schema, err = load_schema(assets_dir or resolve_assets_dir(None), HOOK_OUTPUT_SCHEMA)
    if err is not None:
        return fatal_report(script, input_path, "schema_asset", err)
    if not script.is_file():
        return fatal_report(script, input_path, "file_exists", f"Hook script not found: {script}")
    if not input_path.is_file():
        return fatal_report(script, input_path, "input_exists", f"Test input not found: {input_path}")
    try:
        payload = input_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        return fatal_report(script, input_path, "file_read", f"Cannot read test input {input_path}: {exc}")
    try:
        input_json = json.loads(payload)
    except json.JSONDecodeError as exc:
        return fatal_report(script, input_path, "input_json", f"Test input is not valid JSON: {exc.msg}")

    findings: list[dict[str, Any]] = []
    command, executable = hook_command(script)
    if not executable:
        findings.append(
            finding("warning", "executable", "Hook script is not executable; running it with bash")
        )

    env = hook_environment()
    try:
        result = run_hook(command, payload, timeout, env)
    except OSError as exc:
        findings.append(finding("error", "hook_exec", f"Could not start hook: {exc}"))
        return build_report(TOOL_NAME, script, findings, fatal=True, input_path=str(input_path))

    interpretation = interpret_exit_code(result["exit_code"])
    if interpretation == "timed out":
        findings.append(finding("warning", "timeout", f"Hook did not finish within {timeout:g}s"))
    elif interpretation == "unexpected":
        findings.append(
            finding("warning", "unexpected_exit", f"Hook exited with unexpected code: {result['exit_code']}")
        )

    output_json = parse_output_json(result["output"])
    if output_json is not None:
        findings.extend(check_output_json(output_json, schema))

    if expect and interpretation != expect:
        findings.append(
            finding("error", "expectation", f"Expected the hook to be {expect}, but it was {interpretation}")
        )

    return build_report(
        TOOL_NAME,
        script,
        findings,
        fatal=False,
        input_path=str(input_path),
        input=input_json,
        command=command,
        timeout_seconds=timeout,
        environment={key: env[key] for key in HOOK_ENV_VARS},
        exit_code=result["exit_code"],
        interpretation=interpretation,
        duration_seconds=result["duration_seconds"],
        timed_out=result["timed_out"],
        output=result["output"],
        output_is_json=output_json is not None,
        output_json=output_json,
    )


def render_text(report: dict[str, Any], verbose: bool = False) -> list[str]:
    lines = [f"hook: {report['path']}", f"input: {report['input_path']}"]
    if report.get("fatal"):
        lines.extend(format_finding(item) for item in report["findings"])
        lines.extend(render_summary(report))
        return lines

    lines.append(f"timeout: {report['timeout_seconds']:g}s")
    if verbose:
        lines.append("input_json:")
        lines.extend(dump_json(report["input"]).splitlines())
        lines.append("environment:")
        for key, value in report["environment"].items():
            lines.append(f"  {key}={value}")
    lines.append(f"exit_code: {report['exit_code']}")
    lines.append(f"duration: {report['duration_seconds']:.2f}s")
    lines.append("output:")
    output = report["output"].rstrip("\n")
    lines.append(output if output else "(no output)")
    lines.append(f"result: {report['interpretation']} ({interpretation_label(report['interpretation'], report['exit_code'])})")
    if report["output_is_json"]:
        lines.append("output_json: valid")
        if verbose:
            lines.extend(dump_json(report["output_json"]).splitlines())
    lines.extend(format_finding(item) for item in report["findings"])
    lines.extend(render_summary(report))
    return lines


def positive_seconds(raw: str) -> int:
    try:
        value = int(raw)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"timeout must be an integer number of seconds: {raw!r}") from exc
    if value <= 0:
        raise argparse.ArgumentTypeError("timeout must be greater than zero")
    return value


def run(args: argparse.Namespace) -> int:
    report = evaluate_hook(
        Path(args.script),
        Path(args.input),
        timeout=args.timeout,
        assets_dir=resolve_assets_dir(getattr(args, "assets_dir", None)),
        expect=args.expect,
    )
    emit(report, args.format, args.out_file, lambda r: render_text(r, verbose=args.verbose))
    return exit_code_for(report["status"])


def run_sample(args: argparse.Namespace) -> int:
    content = dump_json(sample_input(args.event)) + "\n"
    if args.out_file:
        atomic_write_text(Path(args.out_file).resolve(), content)
    print(content, end="")
    return 0


def add_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("script", help="Hook script to run.")
    parser.add_argument("input", help="JSON file piped to the hook on stdin.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Show input, environment and parsed output.")
    parser.add_argument(
        "-t",
        "--timeout",
        type=positive_seconds,
        default=DEFAULT_TIMEOUT_SECONDS,
        help=f"Timeout in seconds (default: {DEFAULT_TIMEOUT_SECONDS}).",
    )
    parser.add_argument(
        "--expect",
        choices=["allowed", "blocked"],
        help="Exit non-zero unless the hook reaches this decision.",
    )
    parser.add_argument("--format", choices=["text", "json"], default="text", help="Output format (default: text).")
    parser.add_argument("--out-file", help="Optional JSON report output path.")
    parser.add_argument(
        "--assets-dir",
        help="Optional assets root holding schemas/ (defaults to CODEX_LINT_ASSETS_DIR or the package directory).",
    )


def add_sample_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("event", choices=VALID_EVENTS, help="Event type to generate a payload for.")
    parser.add_argument("--out-file", help="Optional path to write the sample payload to.")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    add_arguments(parser)
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    return run(parse_args(argv))


if __name__ == "__main__":
    raise SystemExit(main())
