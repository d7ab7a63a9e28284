"""Prompt templates shipped with the package."""

from pathlib import Path

PROMPTS_DIR = Path(__file__).parent


def load_system_template() -> str:
    """Read the orchestrator's system instruction template."""
    return (PROMPTS_DIR / "system.txt").read_text(encoding="utf-8")
