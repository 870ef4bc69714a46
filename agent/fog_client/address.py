"""
Base server URL from configuration.
"""

from .config import get_logger

log = get_logger("Communication")


def _use_tls(value):
    if isinstance(value, str):
        return value.strip() == "1" or value.strip().lower() == "true"
    return bool(value)


def resolve(config, context=None):
    """
    Build ``scheme + host + webRoot``. Returns (address, ok).

    Fails when useTLS or webRoot is missing, or host is empty. On success the
    context (if given) takes the new address; on failure its address is cleared
so nothing is sent to a stale server.
    """
    config = config or {}
    use_tls = config.get("useTLS")
    host = config.get("host")
    web_root = config.get("webRoot")

    if use_tls is None or web_root is None or not host:
        log.error("Invalid parameters")
        if context is not None:
            context.set_address("")
        return "", False

    address = ("https://" if _use_tls(use_tls) else "http://") + host + web_root
    if context is not None:
        context.set_address(address)
    return address, True
