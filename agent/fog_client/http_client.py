"""
HTTP session with connection pooling, automatic retry, and CA bundle.

Server trust for the protocol itself comes from the pinned FOG CA (see
auth.py); the bundle here only covers the TLS layer when useTLS is on.
"""

import os

import certifi
import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from .config import get_logger
from .constants import CLIENT_VERSION

log = get_logger("Communication")

_retry_strategy = Retry(
    total=3,
    backoff_factor=1,                           # Wait 1s, 2s, 4s between retries
    status_forcelist=[502, 503, 504],
    allowed_methods=["HEAD", "GET"],            # POST is never replayed
)


def _get_ca_bundle():
    """Get the CA bundle path.

    Priority: env var → certifi.
    """
    env_ca = os.environ.get('REQUESTS_CA_BUNDLE') or os.environ.get('SSL_CERT_FILE')
    if env_ca and os.path.isfile(env_ca):
        return env_ca
    return certifi.where()


def create_session():
    """Create a new requests.Session with connection pooling, retry, and SSL."""
    session = requests.Session()
    adapter = HTTPAdapter(
        pool_connections=1,
        pool_maxsize=3,
        max_retries=_retry_strategy,
    )
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    session.verify = _get_ca_bundle()
    session.headers["User-Agent"] = f"FOG-Client/{CLIENT_VERSION}"
    return session


def reset_session(session):
    """Close and recreate the HTTP session (fixes stale connections)."""
    try:
        session.close()
    except Exception as e:
        log.debug("Closing the old session failed: %s", e)
    return create_session()


# Global shared session
http = create_session()
