"""
Shared finding/report helpers for the codex-lint tools.

A report is a plain dict so it can be dumped as JSON unchanged; the text
rendering is a thin view over the same data.
"""

from __future__ import annotations

import json
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Iterable


REPORT_VERSION = "v0"
SEVERITIES = ("error", "warning", "tip")
SCHEMAS_DIR = "schemas"
RUN_AT_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


def run_timestamp(now: datetime | None = None) -> str:
    return (now or datetime.now(timezone.utc)).astimezone(timezone.utc).strftime(RUN_AT_FORMAT)


def finding(severity: str, check: str, message: str, **extra: Any) -> dict[str, Any]:
    if severity not in SEVERITIES:
        raise ValueError(f"unknown severity: {severity!r}")
    out: dict[str, Any] = {"severity": severity, "check": check, "message": message}
    for key, value in extra.items():
        if value is not None:
            out[key] = value
    return out


def count_findings(findings: Iterable[dict[str, Any]]) -> dict[str, int]:
    counts = {"error_count": 0, "warning_count": 0, "tip_count": 0}
    for item in findings:
        counts[f"{item['severity']}_count"] += 1
    return counts


def status_for(counts: dict[str, int]) -> str:
    if counts["error_count"]:
        return "fail"
    if counts["warning_count"]:
        return "warn"
    return "pass"


def build_report(tool: str, path: str | Path | None, findings: list[dict[str, Any]], **extra: Any) -> dict[str, Any]:
    counts = count_findings(findings)
    report: dict[str, Any] = {
        "version": REPORT_VERSION,
        "run_at": run_timestamp(),
        "tool": tool,
        "path": str(path) if path is not None else None,
        "status": status_for(counts),
        "findings": findings,
        **counts,
    }
    report.update(extra)
    return report


def aggregate_reports(tool: str, reports: list[dict[str, Any]]) -> dict[str, Any]:
    failed = [r for r in reports if r.get("status") == "fail"]
    warned = [r for r in reports if r.get("status") == "warn"]
    status = "fail" if failed else ("warn" if warned else "pass")
    return {
        "version": REPORT_VERSION,
        "run_at": run_timestamp(),
        "tool": tool,
        "status": status,
        "file_count": len(reports),
        "failed_files": len(failed),
        "files": reports,
    }


def exit_code_for(status: str) -> int:
    return 1 if status == "fail" else 0


def format_finding(item: dict[str, Any]) -> str:
    where = ""
    if item.get("location"):
        where = f" ({item['location']})"
    elif item.get("line"):
        where = f" (line {item['line']})"
    return f"[{item['severity']}] {item['check']}{where}: {item['message']}"


def render_summary(report: dict[str, Any]) -> list[str]:
    status = report["status"]
    errors = report.get("error_count", 0)
    warnings = report.get("warning_count", 0)
    if status == "pass":
        line = "all checks passed"
    elif status == "warn":
        line = f"passed with {warnings} warning(s)"
    else:
        line = f"failed with {errors} error(s) and {warnings} warning(s)"
    return [f"status: {status}", f"summary: {line}"]


def atomic_write_text(path: Path, content: str) -> None:
    """Replace `path` via a temp file in the same directory."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with tempfile.NamedTemporaryFile(
        "w", encoding="utf-8", dir=path.parent, prefix=f".{path.name}.", suffix=".tmp", delete=False
    ) as handle:
        tmp_path = Path(handle.name)
        try:
            handle.write(content)
            handle.flush()
            os.fsync(handle.fileno())
        except BaseException:
            handle.close()
            tmp_path.unlink(missing_ok=True)
            raise
    try:
        os.replace(tmp_path, path)
    except OSError:
        tmp_path.unlink(missing_ok=True)
        raise


def dump_json(payload: Any) -> str:
    return json.dumps(payload, indent=2, sort_keys=True)


def emit(
    payload: dict[str, Any],
    fmt: str,
    out_file: str | None,
    render_text: Callable[[dict[str, Any]], list[str]],
) -> None:
    if fmt == "json":
        print(dump_json(payload))
    else:
        for line in render_text(payload):
            print(line)

    if out_file:
        out = Path(out_file)
        if not out.is_absolute():
            out = Path.cwd() / out
        atomic_write_text(out, dump_json(payload) + "\n")


def package_dir() -> Path:
    return Path(__file__).resolve().parent


def resolve_assets_dir(raw_assets_dir: str | None) -> Path:
    if raw_assets_dir:
        return Path(raw_assets_dir).resolve()
    env_assets = os.environ.get("CODEX_LINT_ASSETS_DIR")
    if env_assets:
        return Path(env_assets).resolve()
    return package_dir()


def resolve_schema_path(assets_dir: Path, name: str) -> Path:
    return assets_dir / SCHEMAS_DIR / name


def load_schema(assets_dir: Path, name: str) -> tuple[dict[str, Any] | None, str | None]:
    path = resolve_schema_path(assets_dir, name)
    if not path.exists():
        return None, f"missing schema asset: {path}"
    try:
        obj = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        return None, f"invalid schema asset {path}: {exc}"
    if not isinstance(obj, dict):
        return None, f"invalid schema asset {path}: expected object"
    return obj, None


def render_reports(
    report: dict[str, Any],
    render_one: Callable[[dict[str, Any]], list[str]],
) -> list[str]:
    if "files" not in report:
        return render_one(report)
    lines: list[str] = []
    for item in report["files"]:
        lines.extend(render_one(item))
        lines.append("")
    lines.append(f"files: {report['file_count']}")
    lines.append(f"failed_files: {report['failed_files']}")
    lines.append(f"status: {report['status']}")
    return lines
