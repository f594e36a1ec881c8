from __future__ import annotations

from functools import lru_cache
from pathlib import Path

PROMPT_DIR = Path(__file__).resolve().parent


@lru_cache(maxsize=8)
def load_prompt(filename: str) -> str:
    """Load a persona/instruction prompt shipped next to this module.

    Absolute paths are read as-is so deployments can point at their own file.
    """

    path = Path(filename)
    if not path.is_absolute():
        path = PROMPT_DIR / path
    if not path.is_file():
        raise RuntimeError(f"Prompt file not found: {filename}")
    return path.read_text(encoding="utf-8").strip() + "\n"
