"""Page text translations."""
from __future__ import annotations
import json
import logging
import re
from pathlib import Path

logger = logging.getLogger(__name__)

_LANGUAGE_TAG = re.compile(r"^[A-Za-z0-9-]{2,35}$")


def load_language(language: str, languages_dir: Path) -> dict[str, str]:
    """Load the text mapping for a language tag (e.g. en-us).

    A missing or unreadable file is not an error: the wizard keeps its
    default text and an empty mapping is returned.

    Args:
        language: Language tag
        languages_dir: Directory holding <tag>.json files

    Returns:
        Mapping of text keys to translated strings
    """
    if not _LANGUAGE_TAG.match(language or ""):
        logger.warning("Rejected language tag %r", language)
        return {}

    path = Path(languages_dir) / f"{language.lower()}.json"
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError):
        logger.info("Language file not found.")
        return {}

    if not isinstance(data, dict):
        logger.warning("Language file %s is not a JSON object", path.name)
        return {}
    return {str(key): str(value) for key, value in data.items()}
