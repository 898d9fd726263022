from typing import Any

from .settings import DEFAULT_USER_ID, Settings, get_settings


def env(key: str, default: Any = None) -> Any:
    """Access any environment variable through settings.

    Args:
        key: Environment variable key (case insensitive)
        default: Default value if not found

    Returns
    -------
        The environment variable value or default
    """
    settings = get_settings()

    # Defined settings fields first (validated and type converted)
    value = getattr(settings, key.upper(), None)
    if value is not None:
        return value

    # Undefined variables are captured through `extra="allow"`
    value = settings.__dict__.get(key.upper(), default)
    if value is not None:
        return value

    return settings.__dict__.get(key.lower(), default)


__all__ = ["DEFAULT_USER_ID", "Settings", "env", "get_settings"]
