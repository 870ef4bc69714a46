"""
ServerContext — the address and session key shared by Transport and
Authenticator.

One instance per server connection. Reads and rotation of the session key go
through a lock so a reader never sees a half-rotated key; the key itself is an
immutable bytes object, so callers always get a consistent copy.
"""

import threading
from dataclasses import dataclass, field
from typing import Optional

from .address import resolve
from .config import get_logger
from .constants import MAX_AUTH_RETRIES

log = get_logger("Communication")


def _retry_bound(value):
    try:
        return max(0, int(value))
    except (TypeError, ValueError):
        log.error("Invalid maxAuthRetries %r, using %d", value, MAX_AUTH_RETRIES)
        return MAX_AUTH_RETRIES


@dataclass
class ServerContext:
    # ── Address ────────────────────────────────────────────────
    address: str = ""

    # ── Handshake ──────────────────────────────────────────────
    max_auth_retries: int = MAX_AUTH_RETRIES
    test_mac: str = ""

    _session_key: Optional[bytes] = field(default=None, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    @property
    def is_configured(self) -> bool:
        return bool(self.address)

    @property
    def session_key(self) -> Optional[bytes]:
        with self._lock:
            return self._session_key

    def adopt_session_key(self, key: bytes):
        """Install a new session key. The previous one is gone for good."""
        with self._lock:
            self._session_key = bytes(key)

    def clear_session_key(self):
        with self._lock:
            self._session_key = None

    def set_address(self, address: str):
        with self._lock:
            self.address = address

    def refresh_address(self, config) -> bool:
        """Re-resolve the address from a fresh configuration."""
        _, ok = resolve(config, self)
        return ok

    @classmethod
    def from_config(cls, config):
        """Build a context and resolve its address once."""
        config = config or {}
        context = cls(
            max_auth_retries=_retry_bound(config.get("maxAuthRetries", MAX_AUTH_RETRIES)),
            test_mac=config.get("testMAC", "") or "",
        )
        resolve(config, context)
        return context
