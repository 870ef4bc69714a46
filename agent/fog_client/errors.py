"""
Exception taxonomy.

These are raised between components and caught at the Transport and
Authenticator boundary, where they become logged soft failures. Nothing in
this package lets them escape to the hosting process.
"""


class FogClientError(Exception):
    """Base exception for the communication core."""

    pass


class TrustError(FogClientError):
    """Server certificate does not chain to the pinned CA."""

    pass


class DecodeError(FogClientError):
    """Envelope or body could not be decoded."""

    pass
