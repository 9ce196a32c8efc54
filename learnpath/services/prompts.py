from functools import lru_cache
from pathlib import Path

import yaml

PROMPTS_DIR = Path(__file__).parent / "prompt_templates"


@lru_cache(maxsize=None)
def load_prompt(name: str) -> dict:
    """Load a prompt template (system_prompt + user_template) from prompt_templates/."""
    with open(PROMPTS_DIR / name, encoding="utf-8") as f:
        return yaml.safe_load(f)
