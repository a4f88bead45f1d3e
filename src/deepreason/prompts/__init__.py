"""System prompt sent with every chat request.

Hides where the prompt text comes from. The first of these that exists wins:
1. The file named by DEEPREASON_SYSTEM_PROMPT_FILE
2. ./prompts/system.txt in the working directory
3. system.txt shipped with the package
"""

import os
from importlib import resources
from pathlib import Path

PROMPT_FILE_ENV = "DEEPREASON_SYSTEM_PROMPT_FILE"
LOCAL_PROMPT = Path("prompts") / "system.txt"


def get_system_prompt() -> str | None:
    """Read the system prompt.

    Returns:
        The prompt text, or None when the chosen file is blank (the request
        is then sent without a system prompt)

    Raises:
        FileNotFoundError: If DEEPREASON_SYSTEM_PROMPT_FILE names a missing file
    """
    configured = os.getenv(PROMPT_FILE_ENV)
    if configured:
        text = Path(configured).expanduser().read_text(encoding="utf-8")
    elif LOCAL_PROMPT.is_file():
        text = LOCAL_PROMPT.read_text(encoding="utf-8")
    else:
        text = resources.files(__package__).joinpath("system.txt").read_text(encoding="utf-8")
    return text.strip() or None


__all__ = ["get_system_prompt"]
