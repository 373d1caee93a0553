from __future__ import annotations

from pathlib import Path

import pytest

from codex_lint.hook_schema import format_location, resolve_event_map
from conftest import checks, run_lint, run_lint_json, write_hooks, write_text


def command_hook(**overrides: object) -> dict:
    hook = {"type": "command", "command": "bash ${CODEX_HOOK_ROOT}/hooks/validate-bash.sh", "timeout": 30}
    hook.update(overrides)
    return hook


def config(event: str = "PreToolUse", hooks: list | None = None, matcher: object = "Bash") -> dict:
    return {"hooks": {event: [{"matcher": matcher, "hooks": hooks if hooks is not None else [command_hook()]}]}}


def test_valid_config_passes(tmp_path: Path) -> None:
    path = write_hooks(tmp_path / "hooks.json", config())
    report = run_lint_json("validate-hooks", str(path))
    assert report["status"] == "pass"
    assert report["root"] == "hooks"
    assert report["events"] == ["PreToolUse"]
    assert report["hook_count"] == 1


def test_direct_event_map_root(tmp_path: Path) -> None:
    path = write_hooks(tmp_path / "hooks.json", config()["hooks"])
    report = run_lint_json("validate-hooks", str(path))
    assert report["status"] == "pass"
    assert report["root"] == "."


def test_empty_hooks_object_passes(tmp_path: Path) -> None:
    path = write_hooks(tmp_path / "hooks.json", {"hooks": {}})
    report = run_lint_json("validate-hooks", str(path))
    assert report["status"] == "pass"
    assert report["root"] == "hooks"
    assert report["events"] == []
    assert report["findings"] == []


@pytest.mark.parametrize(
    ("hook", "message"),
    [
        (
            {"type": "command", "command": "${CODEX_HOOK_ROOT}/x.sh", "prompt": "also a prompt", "timeout": 30},
            "Command hooks must not have a 'prompt' field",
        ),
        (
            {"type": "prompt", "prompt": "Is this safe?", "command": "${CODEX_HOOK_ROOT}/x.sh", "timeout": 30},
            "Prompt hooks must not have a 'command' field",
        ),
    ],
)
def test_hook_carries_only_the_field_for_its_type(tmp_path: Path, hook: dict, message: str) -> None:
    path = write_hooks(tmp_path / "hooks.json", config(hooks=[hook]))
    report = run_lint_json("validate-hooks", str(path), expect_code=1)
    assert checks(report) == ["hook_fields"]
    assert report["findings"][0]["message"] == message
    assert report["findings"][0]["location"] == "PreToolUse[0].hooks[0]"


def test_command_hook_without_command_fails(tmp_path: Path) -> None:
    hook = command_hook()
    del hook["command"]
    path = write_hooks(tmp_path / "hooks.json", config(hooks=[hook]))
    report = run_lint_json("validate-hooks", str(path), expect_code=1)
    assert report["status"] == "fail"
    missing = [f for f in report["findings"] if f["check"] == "command_missing"]
    assert missing and missing[0]["location"] == "PreToolUse[0].hooks[0]"


def test_prompt_hook_with_prompt_does_not_error(tmp_path: Path) -> None:
    hook = {"type": "prompt", "prompt": "Check that the command is safe to run.", "timeout": 30}
    path = write_hooks(tmp_path / "hooks.json", config(hooks=[hook]))
    report = run_lint_json("validate-hooks", str(path))
    assert report["error_count"] == 0
    assert "prompt_missing" not in checks(report)


def test_prompt_hook_without_prompt_fails(tmp_path: Path) -> None:
    path = write_hooks(tmp_path / "hooks.json", config(hooks=[{"type": "prompt"}]))
    report = run_lint_json("validate-hooks", str(path), expect_code=1)
    assert "prompt_missing" in checks(report, "error")


def test_prompt_hook_on_unrecommended_event_warns(tmp_path: Path) -> None:
    hook = {"type": "prompt", "prompt": "Summarize the tool result."}
    path = write_hooks(tmp_path / "hooks.json", config(event="PostToolUse", hooks=[hook]))
    report = run_lint_json("validate-hooks", str(path))
    assert checks(report, "warning") == ["prompt_event"]


def test_low_timeout_warns_without_failing(tmp_path: Path) -> None:
    path = write_hooks(tmp_path / "hooks.json", config(hooks=[command_hook(timeout=3)]))
    proc = run_lint("validate-hooks", str(path))
    assert "timeout_low" in proc.stdout
    assert "status: warn" in proc.stdout


@pytest.mark.parametrize(
    ("timeout", "severity", "check"),
    [
        (900, "warning", "timeout_high"),
        ("30", "error", "timeout_type"),
        (-1, "error", "timeout_type"),
        (True, "error", "timeout_type"),
    ],
)
def test_timeout_checks(tmp_path: Path, timeout: object, severity: str, check: str) -> None:
    path = write_hooks(tmp_path / "hooks.json", config(hooks=[command_hook(timeout=timeout)]))
    report = run_lint_json("validate-hooks", str(path), expect_code=1 if severity == "error" else 0)
    assert checks(report, severity) == [check]


def test_timeout_bounds_are_inclusive(tmp_path: Path) -> None:
    hooks = [command_hook(timeout=5), command_hook(timeout=600)]
    path = write_hooks(tmp_path / "hooks.json", config(hooks=hooks))
    report = run_lint_json("validate-hooks", str(path))
    assert report["status"] == "pass"
    assert report["hook_count"] == 2


def test_unknown_event_warns(tmp_path: Path) -> None:
    path = write_hooks(tmp_path / "hooks.json", config(event="BeforeEverything"))
    report = run_lint_json("validate-hooks", str(path))
    assert report["status"] == "warn"
    assert checks(report, "warning") == ["unknown_event"]


def test_hardcoded_absolute_command_warns(tmp_path: Path) -> None:
    hooks = [
        command_hook(command="/home/dev/hooks/check.sh"),
        command_hook(command="${CODEX_HOOK_ROOT}/hooks/check.sh"),
    ]
    path = write_hooks(tmp_path / "hooks.json", config(hooks=hooks))
    report = run_lint_json("validate-hooks", str(path))
    flagged = [f["location"] for f in report["findings"] if f["check"] == "hardcoded_path"]
    assert flagged == ["PreToolUse[0].hooks[0]"]


def test_structural_errors_accumulate(tmp_path: Path) -> None:
    payload = {
        "hooks": {
            "PreToolUse": [
                {"hooks": [command_hook()]},
                {"matcher": "Write", "hooks": []},
                {"matcher": "Edit", "hooks": [{"command": "x.sh"}, {"type": "agent"}]},
            ]
        }
    }
    path = write_hooks(tmp_path / "hooks.json", payload)
    report = run_lint_json("validate-hooks", str(path), expect_code=1)
    assert checks(report, "error") == ["matcher_missing", "hooks_missing", "type_missing", "type_invalid"]
    locations = [f["location"] for f in report["findings"]]
    assert locations == ["PreToolUse[0]", "PreToolUse[1]", "PreToolUse[2].hooks[0]", "PreToolUse[2].hooks[1]"]


def test_schema_type_errors_are_located(tmp_path: Path) -> None:
    path = write_hooks(tmp_path / "hooks.json", config(matcher=5))
    report = run_lint_json("validate-hooks", str(path), expect_code=1)
    schema_errors = [f for f in report["findings"] if f["check"] == "schema"]
    assert len(schema_errors) == 1
    assert schema_errors[0]["location"] == "PreToolUse[0].matcher"


def test_event_value_must_be_array(tmp_path: Path) -> None:
    path = write_hooks(tmp_path / "hooks.json", {"hooks": {"Stop": {"matcher": "*"}}})
    report = run_lint_json("validate-hooks", str(path), expect_code=1)
    assert checks(report) == ["schema"]
    assert report["findings"][0]["location"] == "Stop"


def test_invalid_json_is_fatal(tmp_path: Path) -> None:
    path = write_text(tmp_path / "hooks.json", '{"hooks": {"PreToolUse": [}\n')
    report = run_lint_json("validate-hooks", str(path), expect_code=1)
    assert report["fatal"] is True
    assert checks(report) == ["json_syntax"]


def test_undecodable_config_is_fatal(tmp_path: Path) -> None:
    path = tmp_path / "hooks.json"
    path.write_bytes(b'{"hooks": {"Stop": []}}\xff\n')
    report = run_lint_json("validate-hooks", str(path), expect_code=1)
    assert report["fatal"] is True
    assert checks(report) == ["file_read"]


def test_non_object_root_is_fatal(tmp_path: Path) -> None:
    path = write_text(tmp_path / "hooks.json", "[1, 2, 3]\n")
    report = run_lint_json("validate-hooks", str(path), expect_code=1)
    assert checks(report) == ["root_structure"]


def test_missing_file_is_fatal(tmp_path: Path) -> None:
    proc = run_lint("validate-hooks", str(tmp_path / "missing.json"), expect_code=1)
    assert "file_exists" in proc.stdout


def test_missing_schema_asset_is_fatal(tmp_path: Path) -> None:
    path = write_hooks(tmp_path / "hooks.json", config())
    assets_dir = tmp_path / "assets_missing_schema"
    assets_dir.mkdir()
    report = run_lint_json("validate-hooks", str(path), "--assets-dir", str(assets_dir), expect_code=1)
    assert checks(report) == ["schema_asset"]


def test_multiple_files_aggregate(tmp_path: Path) -> None:
    good = write_hooks(tmp_path / "good.json", config())
    bad = write_hooks(tmp_path / "bad.json", config(hooks=[{"type": "command"}]))
    report = run_lint_json("validate-hooks", str(good), str(bad), expect_code=1)
    assert report["file_count"] == 2
    assert report["failed_files"] == 1


def test_format_location() -> None:
    assert format_location(["PreToolUse", 0, "hooks", 2, "type"]) == "PreToolUse[0].hooks[2].type"
    assert format_location([]) == "<root>"


def test_resolve_event_map_prefers_hooks_key() -> None:
    assert resolve_event_map({"hooks": {"Stop": []}, "description": "x"}) == ("hooks", {"Stop": []})
    assert resolve_event_map({"Stop": []}) == (".", {"Stop": []})
