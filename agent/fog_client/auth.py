"""
Authenticator — session key handshake with the FOG server.

  1. download the server certificate
  2. generate a candidate AES session key
  3. load the stored security token
  4. check the certificate was issued by the pinned FOG CA
  5. RSA-encrypt key and token under the certificate
  6. POST them to the authorize endpoint
  7. on success adopt the key and store the renewed token

A certificate that fails step 4 never gets anything encrypted under it, and
the context keeps whatever key it had before.
"""

from pathlib import Path
from urllib.parse import quote

from . import codec
from .config import data_dir, get_logger
from .constants import AUTHORIZE_ENDPOINT, CERTIFICATE_ENDPOINT, REGISTER_ENDPOINT, ReturnCode
from .errors import TrustError
from .network import get_host_name
from .token_store import TokenStore

log = get_logger("Communication")


class Authenticator:

    def __init__(self, transport, token_store, ca_cert_path, cert_path=None):
        self.transport = transport
        self.token_store = token_store
        self.ca_cert_path = Path(ca_cert_path)
        self.cert_path = Path(cert_path) if cert_path else data_dir() / "tmp" / "public.crt"
        transport.authenticator = self

    @classmethod
    def for_transport(cls, transport, token_path, ca_cert_path, protector=None):
        return cls(transport, TokenStore(token_path, protector), ca_cert_path)

    @property
    def context(self):
        return self.transport.context

    def authenticate(self) -> bool:
        """Run one handshake. True once a new session key is in use."""
        try:
            if not self.transport.download_file(CERTIFICATE_ENDPOINT, self.cert_path):
                log.error("Could not download the server certificate")
                return False

            session_key = codec.generate_session_key()
            token = self.token_store.load()

            certificate = codec.load_certificate(self.cert_path)
            ca_certificate = codec.load_certificate(self.ca_cert_path)
            if not codec.is_from_ca(ca_certificate, certificate):
                raise TrustError("Certificate is not from FOG CA")
            log.info("Cert OK")

            form = {
                "sym_key": codec.rsa_encrypt(certificate, session_key),
                "token": codec.rsa_encrypt(certificate, token),
                "mac": self.transport.mac_addresses(),
            }
            response = self.transport.post(AUTHORIZE_ENDPOINT, form, key=session_key)

            if not response.is_error:
                new_token = codec.hex_to_bytes(response.get_field("#token"))
                self.context.adopt_session_key(session_key)
                log.info("Authenticated")
                if new_token:
                    self.token_store.save(new_token)
                return True

            if response.code is ReturnCode.INVALID_HOST:
                self.register()

        except Exception as e:
            log.error("Could not authenticate")
            log.error("%s", e)

        return False

    def register(self) -> bool:
        """Ask the server to enrol this host. The outcome is not checked."""
        log.info("Host is unknown to the server, requesting registration")
        hostname = quote(get_host_name(), safe="")
        return self.transport.notify(f"{REGISTER_ENDPOINT}?hostname={hostname}", append_mac=True)
