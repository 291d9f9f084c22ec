"""Recap generation from repository activity."""

from github_agent.recaps.generator import (
    RecapGenerator,
    build_action_items,
    build_key_updates,
    build_summary,
    collect_activity,
    resolve_period,
)

__all__ = [
    "RecapGenerator",
    "build_action_items",
    "build_key_updates",
    "build_summary",
    "collect_activity",
    "resolve_period",
]
