"""
Settings file loaders.

Settings live in ``config/flightweather.yaml``. Values may reference the environment
(``${GEONAMES_USERNAME:-}``), and an operator can drop a ``flightweather.local.yaml``
next to the file to override single keys without editing the tracked copy.
"""

import os
import re
from pathlib import Path
from typing import Any, Dict, Union

import yaml

from src.logging_config import get_logger

logger = get_logger(__name__)

PROJECT_ROOT = Path(__file__).resolve().parents[2]

DEFAULT_SETTINGS_PATH = os.path.join("config", "flightweather.yaml")

# $NAME, ${NAME} or ${NAME:-fallback}
_ENV_REF = re.compile(
    r"\$(?:\{(?P<braced>[A-Za-z_][A-Za-z0-9_]*)(?P<fallback>:-[^}]*)?\}|(?P<bare>[A-Za-z_][A-Za-z0-9_]*))"
)

PathLike = Union[str, Path]


def expand_env_vars(text: str) -> str:
    """Substitute environment references in raw settings text.

    ``${NAME:-fallback}`` yields *fallback* when NAME is unset or empty. References
    without a fallback that point at an unset variable stay in the text verbatim, so a
    missing secret shows up in the loaded value instead of silently becoming empty.
    """

    def _substitute(match: "re.Match[str]") -> str:
        name = match.group("braced") or match.group("bare")
        value = os.environ.get(name)
        fallback = match.group("fallback")
        if fallback is not None:
            return value or fallback[2:]
        return match.group(0) if value is None else value

    return _ENV_REF.sub(_substitute, text)


def resolve_config_path(path: PathLike) -> str:
    """Anchor relative paths at the project root; absolute paths pass through."""
    candidate = Path(path)
    if candidate.is_absolute():
        return str(candidate)
    return str(PROJECT_ROOT / candidate)


def local_override_path(path: PathLike) -> Path:
    """``settings.yaml`` -> ``settings.local.yaml`` in the same directory."""
    base = Path(path)
    return base.with_name(f"{base.stem}.local{base.suffix}")


def load_yaml_with_env_expansion(path: PathLike) -> Any:
    """Parse a YAML file after environment expansion. An empty file gives ``{}``.

    FileNotFoundError and yaml.YAMLError propagate to the caller.
    """
    text = Path(path).read_text(encoding="utf-8")
    data = yaml.safe_load(expand_env_vars(text))
    return {} if data is None else data


def deep_merge_dicts(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Layer *override* on top of *base* and return the result as a new dict.

    Sections present on both sides merge recursively. A key set to ``None`` in the
    override is dropped from the result. Scalars and lists in the override win.
    """
    result = dict(base)
    for key, incoming in override.items():
        if incoming is None:
            result.pop(key, None)
        elif isinstance(incoming, dict) and isinstance(result.get(key), dict):
            result[key] = deep_merge_dicts(result[key], incoming)
        else:
            result[key] = incoming
    return result


def load_yaml_with_local_override(path: PathLike) -> Any:
    """Load *path* and apply its ``.local`` sibling when one exists.

    The base file is required. A local file that fails to parse, or that is not a
    mapping, is reported and skipped.
    """
    settings = load_yaml_with_env_expansion(path)
    override_file = local_override_path(path)
    if not override_file.is_file():
        return settings

    try:
        override = load_yaml_with_env_expansion(override_file)
    except (OSError, yaml.YAMLError) as exc:
        logger.warning("Skipping unreadable local settings", path=str(override_file), error=str(exc))
        return settings
    if not isinstance(override, dict) or not isinstance(settings, dict):
        logger.warning("Skipping local settings that are not a mapping", path=str(override_file))
        return settings

    logger.info("Applying local settings", path=str(override_file))
    return deep_merge_dicts(settings, override)
