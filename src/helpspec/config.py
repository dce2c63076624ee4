"""Configuration management with XDG paths, atomic writes, and precedence resolution.

This module handles all persistent configuration for helpspec:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.helpspec/`` on macOS and Windows. See :func:`get_config_dir`,
  :func:`get_data_dir`.
* **Global config** -- A single :class:`~helpspec.models.GlobalConfig`
  JSON file holding completion-service, synthesis and store settings.
* **Precedence resolution** -- :func:`resolve_config` merges CLI flags,
  environment variables and the config file into the effective
  configuration.
* **Credential resolution** -- :func:`resolve_credential` reads the API
  key from an environment variable or a file.

All file writes use an atomic temp-file-then-rename strategy
(:func:`_atomic_write`) to prevent data loss on crash or power failure.
"""

from __future__ import annotations

import json
import os
import platform
import tempfile
from pathlib import Path
from typing import Optional

from helpspec.exceptions import ConfigError
from helpspec.models import GlobalConfig

_APP_NAME = "helpspec"
_CONFIG_FILENAME = "config.json"


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform supports XDG Base Directory spec (Linux/FreeBSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def _fallback_base_dir() -> Path:
    """Fallback base directory for non-XDG platforms (macOS, Windows)."""
    return Path.home() / f".{_APP_NAME}"


def _xdg_base(env_var: str, default_segments: tuple[str, ...]) -> Path:
    """Resolve an XDG base directory from an env var with fallback segments under $HOME."""
    env_value = os.environ.get(env_var, "")
    if env_value:
        return Path(env_value)
    base = Path.home()
    for seg in default_segments:
        base = base / seg
    return base


def get_config_dir() -> Path:
    """Return the configuration directory, creating it if necessary.

    On Linux/BSD: ``$XDG_CONFIG_HOME/helpspec/`` (default ``~/.config/helpspec/``).
    On macOS/Windows: ``~/.helpspec/``.

    Returns:
        Absolute path to the configuration directory (guaranteed to exist).
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CONFIG_HOME", (".config",)) / _APP_NAME
    else:
        path = _fallback_base_dir()
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_dir() -> Path:
    """Return the data directory (spec store, debug dumps, crash logs), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/helpspec/`` (default ``~/.local/share/helpspec/``).
    On macOS/Windows: ``~/.helpspec/data/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_DATA_HOME", (".local", "share")) / _APP_NAME
    else:
        path = _fallback_base_dir() / "data"
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_debug_dir() -> Path:
    """Return ``<data_dir>/debug/``, where undecodable payloads are dumped."""
    path = get_data_dir() / "debug"
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_store_path(config: GlobalConfig) -> Path:
    """Return the spec store directory configured in *config*.

    Falls back to ``<data_dir>/specs`` when ``cache.path`` is unset.
    """
    if config.cache.path:
        return Path(config.cache.path).expanduser()
    return get_data_dir() / "specs"


# --- Atomic file writes ---


def _atomic_write(path: Path, data: str) -> None:
    """Write data to file atomically using temp file + rename.

    The temporary file is created in the same directory as *path* so that
    ``os.replace`` is an atomic rename on POSIX systems. On any failure the
    temp file is cleaned up.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd = None
    tmp_path: Optional[str] = None
    try:
        fd = tempfile.NamedTemporaryFile(
            mode="w",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
            encoding="utf-8",
        )
        tmp_path = fd.name
        fd.write(data)
        fd.flush()
        os.fsync(fd.fileno())
        fd.close()
        fd = None  # prevent double-close below
        os.replace(tmp_path, path)
    except BaseException:
        if fd is not None:
            fd.close()
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
        raise


# --- Global config ---


def _global_config_path() -> Path:
    """Path to the global config file."""
    return get_config_dir() / _CONFIG_FILENAME


def load_global_config() -> GlobalConfig:
    """Load the global configuration from the XDG config directory.

    Returns:
        The deserialised :class:`~helpspec.models.GlobalConfig`. If the
        file does not exist, a default instance is returned.

    Raises:
        ConfigError: If the file exists but contains invalid JSON or fails
            Pydantic validation.
    """
    path = _global_config_path()
    if not path.is_file():
        return GlobalConfig()
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        return GlobalConfig.model_validate(data)
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigError(f"Invalid global config at {path}: {exc}") from exc


def save_global_config(config: GlobalConfig) -> None:
    """Persist the global configuration atomically to disk."""
    data = config.model_dump(mode="json")
    _atomic_write(_global_config_path(), json.dumps(data, indent=2) + "\n")


# --- Precedence resolution ---


def resolve_config(
    cli_model: Optional[str] = None,
    cli_max_concurrency: Optional[int] = None,
) -> GlobalConfig:
    """Resolve config with full precedence chain.

    Precedence (high to low):
        1. CLI flags (``cli_model``, ``cli_max_concurrency``)
        2. Environment variables (``HELPSPEC_MODEL``,
           ``HELPSPEC_MAX_CONCURRENCY``, ``HELPSPEC_CACHE_PATH``)
        3. User config (``~/.config/helpspec/config.json``)
        4. Defaults

    Returns:
        The effective :class:`~helpspec.models.GlobalConfig`.

    Raises:
        ConfigError: If the config file is invalid, an environment override
            is malformed, or the configured provider is unsupported.
    """
    # 4 + 3. Defaults overlaid by the config file
    config = load_global_config()

    # 2. Environment variables
    env_model = os.environ.get("HELPSPEC_MODEL")
    if env_model:
        config.llm.model = env_model
    env_cache_path = os.environ.get("HELPSPEC_CACHE_PATH")
    if env_cache_path:
        config.cache.path = env_cache_path
    env_concurrency = os.environ.get("HELPSPEC_MAX_CONCURRENCY")
    if env_concurrency:
        config.synthesis.max_concurrency = _parse_concurrency(
            env_concurrency, "HELPSPEC_MAX_CONCURRENCY"
        )

    # 1. CLI flags
    if cli_model is not None:
        config.llm.model = cli_model
    if cli_max_concurrency is not None:
        config.synthesis.max_concurrency = _parse_concurrency(
            str(cli_max_concurrency), "--max-concurrency"
        )

    if config.llm.provider != "anthropic":
        raise ConfigError(f"Unsupported LLM provider: {config.llm.provider}")

    return config


def _parse_concurrency(raw: str, origin: str) -> int:
    try:
        value = int(raw)
    except ValueError as exc:
        raise ConfigError(f"{origin} must be an integer, got {raw!r}") from exc
    if value < 1:
        raise ConfigError(f"{origin} must be at least 1, got {value}")
    return value


# --- Credential source resolution ---


def resolve_credential(source: str) -> str:
    """Resolve a credential from its source descriptor.

    Supported formats:
        - ``"env:VAR_NAME"`` -- reads ``os.environ["VAR_NAME"]``
        - ``"file:/path/to/file"`` -- reads file content, stripped of whitespace

    Args:
        source: The source descriptor string.

    Returns:
        The resolved credential string.

    Raises:
        ConfigError: If the source can't be resolved.
    """
    if source.startswith("env:"):
        var_name = source[4:]
        value = os.environ.get(var_name)
        if not value:
            raise ConfigError(
                f"API key not found in environment variable: {var_name} (source: {source})"
            )
        return value

    if source.startswith("file:"):
        path = Path(source[5:]).expanduser()
        if not path.is_file():
            raise ConfigError(f"Credential file not found: {path} (source: {source})")
        try:
            return path.read_text(encoding="utf-8").strip()
        except OSError as exc:
            raise ConfigError(f"Cannot read credential file {path}: {exc}") from exc

    raise ConfigError(f"Unknown credential source format: {source}")

