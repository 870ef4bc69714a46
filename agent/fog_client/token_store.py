"""
Security token persistence, protected at rest for the current OS user.

Windows: DPAPI (CryptProtectData, current-user scope).
Elsewhere: Fernet, with the key in a user-only (0600) file beside the token.

Writes go to a temp file in the same directory and are renamed into place,
so an interrupted write never leaves a torn token file.
"""

import os
import sys
import tempfile
from pathlib import Path

from cryptography.fernet import Fernet, InvalidToken

from .config import get_logger
from .constants import TOKEN_FILE_NAME

log = get_logger("Communication")


# ─── Protectors ──────────────────────────────────────────────────

class DpapiProtector:
    """Windows Data Protection API, current-user scope."""

    def _call(self, func_name, data):
        import ctypes
        from ctypes import wintypes

        class DATA_BLOB(ctypes.Structure):
            _fields_ = [("cbData", wintypes.DWORD), ("pbData", ctypes.POINTER(ctypes.c_byte))]

        crypt32 = ctypes.windll.crypt32
        kernel32 = ctypes.windll.kernel32

        buffer = ctypes.create_string_buffer(data, len(data))
        in_blob = DATA_BLOB(len(data), ctypes.cast(buffer, ctypes.POINTER(ctypes.c_byte)))
        out_blob = DATA_BLOB()

        func = getattr(crypt32, func_name)
        if not func(ctypes.byref(in_blob), None, None, None, None, 0, ctypes.byref(out_blob)):
            raise ctypes.WinError()
        try:
            return ctypes.string_at(out_blob.pbData, out_blob.cbData)
        finally:
            kernel32.LocalFree(out_blob.pbData)

    def protect(self, data: bytes) -> bytes:
        return self._call("CryptProtectData", data)

    def unprotect(self, data: bytes) -> bytes:
        return self._call("CryptUnprotectData", data)


class KeyFileProtector:
    """Fernet under a per-user key file readable only by its owner."""

    def __init__(self, key_path):
        self.key_path = Path(key_path)

    def _key(self, create):
        if self.key_path.exists():
            return self.key_path.read_bytes().strip()
        if not create:
            raise FileNotFoundError(f"Token key {self.key_path} does not exist")

        key = Fernet.generate_key()
        self.key_path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(str(self.key_path), os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
        with os.fdopen(fd, "wb") as f:
            f.write(key)
        return key

    def protect(self, data: bytes) -> bytes:
        return Fernet(self._key(create=True)).encrypt(data)

    def unprotect(self, data: bytes) -> bytes:
        try:
            return Fernet(self._key(create=False)).decrypt(data)
        except InvalidToken as e:
            raise ValueError("Token file could not be unprotected") from e


def default_protector(token_path):
    if sys.platform == "win32":
        return DpapiProtector()
    return KeyFileProtector(Path(token_path).with_suffix(".key"))


# ─── Store ───────────────────────────────────────────────────────

class TokenStore:
    """Reads and writes one protected token file."""

    def __init__(self, path=TOKEN_FILE_NAME, protector=None):
        self.path = Path(path)
        self.protector = protector or default_protector(self.path)

    def load(self) -> bytes:
        """The stored token, or b"" if there is none or it is unreadable."""
        try:
            return self.protector.unprotect(self.path.read_bytes())
        except Exception as e:
            log.error("Could not get security token")
            log.error("%s", e)
        return b""

    def save(self, token: bytes) -> bool:
        try:
            protected = self.protector.protect(bytes(token))
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(dir=str(self.path.parent), prefix=".token-")
            try:
                with os.fdopen(fd, "wb") as f:
                    f.write(protected)
                    f.flush()
                    os.fsync(f.fileno())
                os.replace(tmp, str(self.path))
            except BaseException:
                if os.path.exists(tmp):
                    os.unlink(tmp)
                raise
            return True
        except Exception as e:
            log.error("Could not save security token")
            log.error("%s", e)
        return False


def load_token(path, protector=None) -> bytes:
    return TokenStore(path, protector).load()


def save_token(path, token, protector=None) -> bool:
    return TokenStore(path, protector).save(token)
