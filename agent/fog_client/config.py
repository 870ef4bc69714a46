"""
Paths, logging setup, config load/save, safe_print.
"""

import os
import json
import sys
import logging
from pathlib import Path

from .constants import CA_CERT_FILE_NAME, TOKEN_FILE_NAME


# ─── Paths ───────────────────────────────────────────────────────
# One config/token per user per machine. FOG_CLIENT_HOME wins when set.
_FOLDER_NAME = "FOG"


def data_dir():
    override = os.environ.get("FOG_CLIENT_HOME")
    if override:
        return Path(override)
    if sys.platform == "win32":
        return Path(os.environ.get("PROGRAMDATA", "C:\\ProgramData")) / _FOLDER_NAME
    return Path.home() / ".fog"


def config_file():
    return data_dir() / "config.json"


def log_file():
    return data_dir() / "fog.log"


# ─── Safe print (no crash when --noconsole) ──────────────────────

def safe_print(*args, **kwargs):
    try:
        print(*args, **kwargs)
    except Exception:
        pass


# ─── Logging ─────────────────────────────────────────────────────

log = logging.getLogger("fog")

_LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def get_logger(component):
    """Logger for one component, e.g. get_logger("Communication")."""
    return log.getChild(component)


def setup_logging(level=logging.INFO, console=True):
    """File log in the data dir (cleared past 1 MB) plus a stdout handler."""
    path = log_file()
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        if path.exists() and path.stat().st_size > 1_000_000:
            path.write_text("")
    except Exception:
        pass

    logging.basicConfig(
        filename=str(path),
        level=level,
        format=_LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
        encoding="utf-8",
    )

    if console and not any(isinstance(h, logging.StreamHandler) and h.stream is sys.stdout
                           for h in log.handlers):
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(level)
        console_handler.setFormatter(logging.Formatter(_LOG_FORMAT))
        log.addHandler(console_handler)
    return log


# ─── Config Management ──────────────────────────────────────────

def load_config(path=None):
    """Load config from disk. Returns dict or None."""
    path = Path(path) if path else config_file()
    if path.exists():
        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        except (json.JSONDecodeError, IOError) as e:
            log.error("Could not read config %s: %s", path, e)
            return None
    return None


def save_config(config, path=None):
    """Save config dict to disk."""
    path = Path(path) if path else config_file()
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(config, f, indent=2)
    log.info("Config saved to %s", path)


def ca_cert_path(config):
    """Pinned CA certificate location, from config or the data dir."""
    configured = (config or {}).get("caCert")
    return Path(configured) if configured else data_dir() / CA_CERT_FILE_NAME


def token_path(config):
    configured = (config or {}).get("tokenFile")
    return Path(configured) if configured else data_dir() / TOKEN_FILE_NAME
