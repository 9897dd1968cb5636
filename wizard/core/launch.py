"""Launch parameters passed to the wizard by the platform's app host."""
from __future__ import annotations
from dataclasses import dataclass
from urllib.parse import unquote_plus


@dataclass(frozen=True)
class LaunchParams:
    environment: str
    language: str


def parse_launch_params(query_string: str, default_environment: str, default_language: str = "en-us") -> LaunchParams:
    """Read the language tag and platform environment from a launch URL query.

    ``pcEnvironment`` always wins; the legacy ``environment`` parameter is only
    used when ``pcEnvironment`` has not been seen yet.

    Args:
        query_string: Raw query string, with or without a leading '?'
        default_environment: Environment used when none is given
        default_language: Language used when ``langTag`` is absent

    Returns:
        Resolved launch parameters
    """
    language = None
    pc_environment = None
    legacy_environment = None

    for pair in (query_string or "").lstrip("?").split("&"):
        if not pair:
            continue
        key, _, value = pair.partition("=")
        value = unquote_plus(value)
        if key == "langTag":
            language = value
        elif key == "pcEnvironment":
            pc_environment = value
        elif key == "environment" and pc_environment is None:
            legacy_environment = value

    return LaunchParams(
        environment=(pc_environment or legacy_environment or default_environment).strip().lower(),
        language=(language or default_language).strip().lower(),
    )
