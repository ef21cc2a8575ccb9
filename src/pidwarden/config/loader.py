import os
import re
import yaml
from pathlib import Path
from typing import Any, Callable, Dict, Optional
from pidwarden.core.errors import LifecycleError, LifecycleIOError
from pidwarden.core.models import LifecycleConfig, LifecycleSettings

ENV_VAR_PATTERN = re.compile(r"\$\{([^}:]+)(?::([^}]+))?\}")
CONFIG_SECTION = "pidwarden"
CALLBACK_OPTIONS = {"cleanup", "on_reload"}
CONFIG_ONLY_OPTIONS = {"daemon_env_var"}

def interpolate_env_vars(content: str) -> str:
    """Replace ${VAR} or ${VAR:default} with environment variables."""
    def replace_match(match: re.Match) -> str:
        var_name = match.group(1)
        default_value = match.group(2) if match.group(2) is not None else ""
        return os.environ.get(var_name, default_value)

    return ENV_VAR_PATTERN.sub(replace_match, content)

def load_config(path: Path) -> Dict[str, Any]:
    """
    Load the 'pidwarden' section of a YAML file with environment variable interpolation.

    A missing file yields an empty section; unreadable or malformed files raise.
    """
    if not path.exists():
        return {}

    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise LifecycleIOError(f"Failed to read config file {path}: {exc}", path=path) from exc

    try:
        full_config = yaml.safe_load(interpolate_env_vars(content)) or {}
    except yaml.YAMLError as exc:
        raise LifecycleError(f"Invalid YAML in config file {path}: {exc}") from exc

    if not isinstance(full_config, dict):
        raise LifecycleError(f"Config file {path} must contain a mapping.")

    section = full_config.get(CONFIG_SECTION) or {}
    if not isinstance(section, dict):
        raise LifecycleError(f"Section '{CONFIG_SECTION}' in {path} must be a mapping.")

    allowed_keys = set(LifecycleSettings.model_fields)
    return {k: v for k, v in section.items() if k in allowed_keys}

def build_config(
    worker: Optional[Callable[..., Any]] = None,
    config_path: Optional[Path] = None,
    **options: Any,
) -> LifecycleConfig:
    """
    Build the immutable lifecycle configuration.

    Precedence: explicit options > YAML section > PIDWARDEN_* environment > defaults.
    Options left as None fall through to the next layer.
    """
    setting_keys = set(LifecycleSettings.model_fields)
    unknown = set(options) - setting_keys - CALLBACK_OPTIONS - CONFIG_ONLY_OPTIONS
    if unknown:
        raise TypeError(f"Unknown lifecycle option(s): {', '.join(sorted(unknown))}")

    file_values = load_config(Path(config_path)) if config_path is not None else {}
    overrides = {k: v for k, v in options.items() if k in setting_keys and v is not None}
    settings = LifecycleSettings(**{**file_values, **overrides})

    extras = {
        k: v for k, v in options.items()
        if k in CALLBACK_OPTIONS | CONFIG_ONLY_OPTIONS and v is not None
    }
    return LifecycleConfig(worker=worker, **settings.model_dump(), **extras)
