"""
Pytest fixtures: throwaway PKI, server context, transport and a stub FOG
server that performs the real handshake against the client.
"""

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from urllib.parse import parse_qs

import pytest
import requests
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa
from cryptography.x509.oid import NameOID

from fog_client import codec
from fog_client.state import ServerContext
from fog_client.token_store import KeyFileProtector, TokenStore
from fog_client.transport import Transport

ADDRESS = "http://fog.test/fog"
TEST_MAC = "AA:BB:CC:DD:EE:FF|11:22:33:44:55:66"


@pytest.fixture(autouse=True)
def fog_home(tmp_path, monkeypatch):
    """Keep config, logs and temp certificates inside the test's tmp dir."""
    home = tmp_path / "fog-home"
    monkeypatch.setenv("FOG_CLIENT_HOME", str(home))
    return home


# ─── PKI ─────────────────────────────────────────────────────────

def _name(common_name):
    return x509.Name([
        x509.NameAttribute(NameOID.ORGANIZATION_NAME, "FOG Project"),
        x509.NameAttribute(NameOID.COMMON_NAME, common_name),
    ])


def _make_ca(common_name):
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    now = datetime.now(timezone.utc)
    cert = (
        x509.CertificateBuilder()
        .subject_name(_name(common_name))
        .issuer_name(_name(common_name))
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - timedelta(days=1))
        .not_valid_after(now + timedelta(days=3650))
        .add_extension(x509.BasicConstraints(ca=True, path_length=0), critical=True)
        .sign(key, hashes.SHA256())
    )
    return key, cert


def _issue(ca_key, ca_cert, common_name, not_before=None, not_after=None):
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    now = datetime.now(timezone.utc)
    cert = (
        x509.CertificateBuilder()
        .subject_name(_name(common_name))
        .issuer_name(ca_cert.subject)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(not_before or now - timedelta(days=1))
        .not_valid_after(not_after or now + timedelta(days=365))
        .add_extension(x509.BasicConstraints(ca=False, path_length=None), critical=True)
        .sign(ca_key, hashes.SHA256())
    )
    return key, cert


def pem(cert):
    return cert.public_bytes(serialization.Encoding.PEM)


@pytest.fixture(scope="session")
def pki():
    ca_key, ca_cert = _make_ca("FOG Server CA")
    server_key, server_cert = _issue(ca_key, ca_cert, "fog.test")
    rogue_key, rogue_ca = _make_ca("FOG Server CA")
    _, rogue_cert = _issue(rogue_key, rogue_ca, "fog.test")
    now = datetime.now(timezone.utc)
    _, expired_cert = _issue(
        ca_key, ca_cert, "fog.test",
        not_before=now - timedelta(days=30), not_after=now - timedelta(days=1),
    )
    return SimpleNamespace(
        ca_cert=ca_cert,
        server_key=server_key,
        server_cert=server_cert,
        rogue_cert=rogue_cert,
        expired_cert=expired_cert,
    )


@pytest.fixture
def ca_cert_file(tmp_path, pki):
    path = tmp_path / "ca.cert.pem"
    path.write_bytes(pem(pki.ca_cert))
    return path


# ─── Client side ─────────────────────────────────────────────────

@pytest.fixture
def context():
    return ServerContext(address=ADDRESS, test_mac=TEST_MAC)


@pytest.fixture
def transport(context):
    return Transport(context, session=requests.Session())


@pytest.fixture
def token_store(tmp_path):
    path = tmp_path / "token.dat"
    return TokenStore(path, KeyFileProtector(tmp_path / "token.key"))


# ─── Stub server ─────────────────────────────────────────────────

class FakeFogServer:
    """Answers the authorize POST the way the FOG server does."""

    def __init__(self, server_key, reply_code="#!ok", new_token=b"ABCD"):
        self.server_key = server_key
        self.reply_code = reply_code
        self.new_token = new_token
        self.session_keys = []
        self.tokens = []
        self.forms = []

    def _rsa_decrypt(self, hex_text):
        return self.server_key.decrypt(bytes.fromhex(hex_text), padding.PKCS1v15())

    def authorize(self, request, context):
        form = {k: v[0] for k, v in parse_qs(request.text, keep_blank_values=True).items()}
        self.forms.append(form)
        key = self._rsa_decrypt(form["sym_key"])
        self.session_keys.append(key)
        self.tokens.append(self._rsa_decrypt(form["token"]))

        body = self.reply_code
        if self.reply_code == "#!ok":
            body += "\n#token=" + self.new_token.hex()
        return codec.encode(body, key, key_exchange=True)

    @property
    def session_key(self):
        return self.session_keys[-1]


@pytest.fixture
def fog_server(pki):
    return FakeFogServer(pki.server_key)
