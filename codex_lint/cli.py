#!/usr/bin/env python3
"""
codex-lint v0

Validators for agent cards, hook configurations and hook scripts, plus a
runner that exercises a hook script against a sample event payload.
"""

from __future__ import annotations

import argparse

from codex_lint import agent_card, hook_linter, hook_runner, hook_schema


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="codex-lint", description="codex-lint v0")
    sub = parser.add_subparsers(dest="cmd", required=True)

    p_agent = sub.add_parser(
        "validate-agent",
        help="Validate agent card markdown files (frontmatter fields and prompt body).",
    )
    agent_card.add_arguments(p_agent)
    p_agent.set_defaults(func=agent_card.run)

    p_hooks = sub.add_parser(
        "validate-hooks",
        help="Validate hooks JSON configuration (events, matchers, hook entries, timeouts).",
    )
    hook_schema.add_arguments(p_hooks)
    p_hooks.set_defaults(func=hook_schema.run)

    p_lint = sub.add_parser(
        "lint-hook",
        help="Lint hook shell scripts for common issues.",
    )
    hook_linter.add_arguments(p_lint)
    p_lint.set_defaults(func=hook_linter.run)

    p_test = sub.add_parser(
        "test-hook",
        help="Run a hook script with a sample JSON payload and interpret its exit code.",
    )
    hook_runner.add_arguments(p_test)
    p_test.set_defaults(func=hook_runner.run)

    p_sample = sub.add_parser(
        "sample-input",
        help="Print a sample hook input payload for an event type.",
    )
    hook_runner.add_sample_arguments(p_sample)
    p_sample.set_defaults(func=hook_runner.run_sample)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    raise SystemExit(main())
