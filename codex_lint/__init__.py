"""Validators and a test runner for agent cards, hook configs and hook scripts."""

__version__ = "0.1.0"
