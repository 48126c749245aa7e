"""
Shared configuration loader for ashuffle.

Loads a single JSON config file.  Search order:
  1. $ASHUFFLE_CONFIG               (explicit override)
  2. /etc/ashuffle/config.json      (system install)
  3. config.json                    (CWD — handy for local dev)
  4. ../../config/default.json      (repo fallback)

Command-line flags always win over config values.  Secrets (the MPD
password) stay in the environment, e.g. MPD_HOST=password@host.

Usage:
    from ashuffle.lib.config import cfg

    mpd_host     = cfg("mpd", "host", default="localhost")
    queue_buffer = cfg("queue", "buffer", default=0)
    window_size  = cfg("tweak", "window_size", default=7)
"""

import json
import logging
import os

logger = logging.getLogger(__name__)

_config: dict | None = None

_SEARCH_PATHS = [
    "/etc/ashuffle/config.json",
    "config.json",
    os.path.join(os.path.dirname(__file__), "..", "..", "config", "default.json"),
]


def _search_paths() -> list[str]:
    override = os.environ.get("ASHUFFLE_CONFIG")
    if override:
        return [override] + _SEARCH_PATHS
    return list(_SEARCH_PATHS)


def _section(config: dict, name: str, path: str) -> dict:
    sec = config.get(name)
    if sec is None:
        return {}
    if not isinstance(sec, dict):
        logger.warning("Config %s: \"%s\" should be an object (got %s), ignoring it",
                       path, name, type(sec).__name__)
        return {}
    return sec


def _validate(config: dict, path: str) -> None:
    """Warn about missing or suspicious config values."""
    queue = _section(config, "queue", path)
    buffer = queue.get("buffer", 0)
    if not isinstance(buffer, int) or buffer < 0:
        logger.warning("Config %s: queue.buffer must be a non-negative integer (got %r)", path, buffer)
    tweak = _section(config, "tweak", path)
    window = tweak.get("window_size", 7)
    if not isinstance(window, int) or window < 1:
        logger.warning("Config %s: tweak.window_size must be >= 1 (got %r)", path, window)
    timeout = tweak.get("suspend_timeout", 0)
    if not isinstance(timeout, (int, float, str)):
        logger.warning("Config %s: tweak.suspend_timeout has unexpected type %s",
                       path, type(timeout).__name__)
    mpd = _section(config, "mpd", path)
    if "password" in mpd:
        logger.warning("Config %s: mpd.password is ignored — use MPD_HOST=password@host", path)


def load_config() -> dict:
    """Load config from the first JSON file found. Cached after first call."""
    global _config
    if _config is not None:
        return _config

    for path in _search_paths():
        try:
            with open(path) as f:
                loaded = json.load(f)
        except FileNotFoundError:
            continue
        except json.JSONDecodeError as e:
            logger.error("Invalid JSON in %s: %s", path, e)
            continue
        if not isinstance(loaded, dict):
            logger.error("Config %s must hold a JSON object, not %s", path, type(loaded).__name__)
            continue
        logger.debug("Config loaded from %s", path)
        _validate(loaded, path)
        _config = loaded
        return _config

    logger.debug("No config.json found — using built-in defaults")
    _config = {}
    return _config


def cfg(section: str, key: str | None = None, *, default=None):
    """Read a config value.

    cfg("mpd")                      → config["mpd"]
    cfg("mpd", "host")              → config["mpd"]["host"]
    cfg("queue", "buffer", default=0)  → config["queue"]["buffer"] or 0
    """
    config = load_config()
    val = config.get(section)
    if key is None:
        return val if val is not None else default
    if isinstance(val, dict):
        return val.get(key, default)
    return default


def reload_config():
    """Force re-read from disk (for testing or hot-reload)."""
    global _config
    _config = None
    return load_config()
