"""
fog_client — FOG client communication core
==========================================
Architecture: blocking calls, one ServerContext per server.

  constants.py    → Version, return codes, envelope flags, endpoints
  config.py       → Paths, logging, config load/save, helpers
  errors.py       → Exception taxonomy (caught at the component boundary)
  state.py        → ServerContext (address + lock-guarded session key)
  address.py      → Server URL from configuration
  codec.py        → Envelope codec, AES/RSA, certificate checks
  response.py     → Reply parsing, return code classification
  token_store.py  → Security token at rest (DPAPI / Fernet key file)
  http_client.py  → HTTP session with retry/pooling + CA bundle
  network.py      → MAC addresses, host name, IP
  transport.py    → Transport (GET/POST/download/notify)
  auth.py         → Authenticator (RSA handshake, token renewal)
  runner.py       → main() for the fog-client command
"""

from .constants import CLIENT_VERSION as __version__
from .state import ServerContext
from .response import Response, ResponseStatus, extract_array, parse
from .transport import Transport
from .auth import Authenticator
from .token_store import TokenStore
