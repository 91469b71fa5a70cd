"""Configuration handling for the report downloader."""
import json
import logging
import os

logger = logging.getLogger(__name__)

DEFAULTS = {
    "timeout": 30,
    "default_port": 8834,
    "seq": "6969",
    "verify_tls": False,
    "initial_wait": 5,
    "poll_interval": 2,
    "max_poll_attempts": 300,
    "user_agent": "Mozilla/5.0 (Macintosh; Intel Mac OS X 10.9; rv:25.0) Gecko/20100101 Firefox/25.0",
}


def load_config(path=None):
    """Load `config.json` from the working directory by default.

    Returns a dict of settings. Keys found in the file override the
    defaults; a missing or unreadable file yields the defaults.
    """
    if path is None:
        path = os.path.join(os.getcwd(), "config.json")
    cfg = dict(DEFAULTS)
    try:
        with open(path, "r", encoding="utf-8") as fh:
            data = json.load(fh)
    except FileNotFoundError:
        return cfg
    except (OSError, ValueError) as exc:
        logger.warning("Could not read config %s (%s), using defaults", path, exc)
        return cfg
    if isinstance(data, dict):
        cfg.update(data)
    else:
        logger.warning("Config %s is not a JSON object, using defaults", path)
    return cfg


def get_config(path=None):
    return load_config(path)
