from __future__ import annotations

import json
import os
import subprocess
import sys
from pathlib import Path

import pytest


REPO_ROOT = Path(__file__).resolve().parents[1]
LINT_MODULE = "codex_lint"


def run_cmd(
    args: list[str],
    cwd: Path,
    expect_code: int = 0,
    env: dict[str, str] | None = None,
) -> subprocess.CompletedProcess[str]:
    proc = subprocess.run(args, cwd=str(cwd), text=True, capture_output=True, check=False, env=env)
    if proc.returncode != expect_code:
        raise AssertionError(
            f"command failed\ncwd={cwd}\nargs={args}\n"
            f"expected={expect_code} got={proc.returncode}\n"
            f"stdout:\n{proc.stdout}\n\nstderr:\n{proc.stderr}"
        )
    return proc


def run_lint(*lint_args: str, expect_code: int = 0, env: dict[str, str] | None = None) -> subprocess.CompletedProcess[str]:
    args = [sys.executable, "-m", LINT_MODULE, *lint_args]
    return run_cmd(args, cwd=REPO_ROOT, expect_code=expect_code, env=env)


def run_lint_json(*lint_args: str, expect_code: int = 0, env: dict[str, str] | None = None) -> dict:
    proc = run_lint(*lint_args, "--format", "json", expect_code=expect_code, env=env)
    return json.loads(proc.stdout)


def write_text(path: Path, content: str, executable: bool = False) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    if executable:
        path.chmod(0o755)
    else:
        path.chmod(0o644)
    return path


def agent_card(
    name: str | None = "pr-reviewer",
    description: str | None = "Use when the user asks for a code review.",
    body: str = "You are a senior PR reviewer.",
    extra: str = "",
) -> str:
    lines = ["---"]
    if name is not None:
        lines.append(f"name: {name}")
    if description is not None:
        lines.append(f"description: {description}")
    if extra:
        lines.append(extra.rstrip("\n"))
    lines.append("---")
    lines.append("")
    lines.append(body)
    return "\n".join(lines) + "\n"


def write_hooks(path: Path, payload: dict) -> Path:
    return write_text(path, json.dumps(payload, indent=2) + "\n")


def checks(report: dict, severity: str | None = None) -> list[str]:
    return [f["check"] for f in report["findings"] if severity is None or f["severity"] == severity]


@pytest.fixture()
def hook_env(tmp_path: Path) -> dict[str, str]:
    env = dict(os.environ)
    env["CODEX_PROJECT_ROOT"] = str(tmp_path / "project")
    env["CODEX_HOOK_ROOT"] = str(tmp_path)
    env["CODEX_ENV_FILE"] = str(tmp_path / "env-file")
    return env


@pytest.fixture()
def pre_tool_use_input(tmp_path: Path) -> Path:
    payload = {
        "session_id": "test-session",
        "hook_event_name": "PreToolUse",
        "tool_name": "Bash",
        "tool_input": {"command": "ls -la"},
    }
    return write_text(tmp_path / "input.json", json.dumps(payload) + "\n")
