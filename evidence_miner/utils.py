"""Shared utility functions for the Evidence Miner pipeline."""
import html
import re
import secrets
import string
from datetime import datetime
from typing import List, Optional

from bs4 import BeautifulSoup
from pydantic import TypeAdapter

_STRING_LIST = TypeAdapter(List[str])
_FILENAME_ALPHABET = string.ascii_lowercase + string.digits


def strip_think_blocks(text: str) -> str:
    """Remove <think>...</think> blocks from LLM output (Qwen3 thinking mode safety net)."""
    return re.sub(r"<think>.*?</think>", "", text, flags=re.DOTALL).strip()


def sanitize_input(text: Optional[str]) -> str:
    """Strip markup from pasted text and escape HTML special characters.

    The result is safe to embed inside a double-quoted prompt fragment.
    """
    if not text:
        return ""
    plain = BeautifulSoup(text, "html.parser").get_text()
    return html.escape(plain, quote=True).strip()


def parse_json_array(raw: str) -> List[str]:
    """Parse a JSON array of strings from LLM output, handling code blocks.

    Raises:
        ValueError: if the payload is not a JSON array of strings
            (pydantic's ValidationError is a ValueError subclass).
    """
    raw = strip_think_blocks(raw or "")
    if "```" in raw:
        match = re.search(r"```(?:json)?\s*(.*?)```", raw, re.DOTALL)
        if match:
            raw = match.group(1).strip()
    return _STRING_LIST.validate_json(raw)


def generate_unique_filename(prefix: str, now: Optional[datetime] = None) -> str:
    """Build `<prefix>_<YYYY-MM-DDTHH-MM-SS>_<4 random chars>.txt`."""
    now = now or datetime.now()
    timestamp = now.isoformat(timespec="seconds").replace(":", "-")
    unique_id = "".join(secrets.choice(_FILENAME_ALPHABET) for _ in range(4))
    return f"{prefix}_{timestamp}_{unique_id}.txt"
