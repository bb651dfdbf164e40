"""Prompt loading and rendering helpers."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from string import Template

from .exceptions import PromptNotFoundError

PROMPT_DIR = Path(__file__).resolve().parent / "prompts"


class PromptRepository:
    """Loads prompt templates from the packaged prompts/ directory and renders them."""

    def __init__(self, root: Path | None = None):
        self.root = root or PROMPT_DIR

    @lru_cache(maxsize=32)
    def load(self, name: str) -> tuple[Template, Template]:
        """Load system and user templates."""
        system_path = self.root / f"{name}.system.txt"
        user_path = self.root / f"{name}.user.txt"

        if not user_path.exists():
            raise PromptNotFoundError(f"Prompt '{name}' not found under {self.root} (expected {user_path.name})")

        system_text = system_path.read_text(encoding="utf-8") if system_path.exists() else ""
        return (
            Template(system_text),
            Template(user_path.read_text(encoding="utf-8")),
        )

    def render(self, name: str, **kwargs: str) -> dict[str, str]:
        """Render system and user prompts."""
        system_tmpl, user_tmpl = self.load(name)
        return {
            "system": system_tmpl.safe_substitute(**kwargs).strip(),
            "user": user_tmpl.safe_substitute(**kwargs).strip(),
        }
