"""
Constants: version, return codes, envelope flags, endpoints and timeouts.
"""

from enum import Enum

CLIENT_VERSION = "0.9.5"

# ─── Return codes ────────────────────────────────────────────────
SUCCESS_CODE = "#!ok"


class ReturnCode(Enum):
    """First line of every server reply. Matched exactly, never by prefix."""

    SUCCESS = ("#!ok", "Success")
    DATABASE_ERROR = ("#!db", "Database error")
    INVALID_MAC = ("#!im", "Invalid MAC address format")
    INVALID_HOST_CERTIFICATE = ("#!ihc", "Invalid host certificate")
    INVALID_HOST = ("#!ih", "Invalid host")
    INVALID_LOGIN = ("#!il", "Invalid login")
    INVALID_TASK = ("#!it", "Invalid task")
    INVALID_PRINTER = ("#!nvp", "Invalid Printer")
    MODULE_DISABLED_GLOBALLY = ("#!ng", "Module is disabled globally on the FOG server")
    MODULE_DISABLED_ON_HOST = ("#!nh", "Module is disabled on the host")
    UNKNOWN_MODULE = ("#!um", "Unknown module ID")
    NO_SNAPINS = ("#!ns", "No snapins")
    NO_JOBS = ("#!nj", "No jobs")
    NO_PRINTERS = ("#!np", "No Printers")
    NO_ACTIONS = ("#!na", "No actions")
    NO_UPDATES = ("#!nf", "No updates")
    INVALID_TIME = ("#!time", "Invalid time")
    INVALID_SECURITY_TOKEN = ("#!ist", "Invalid security token")
    GENERAL_ERROR = ("#!er", "General error")
    UNKNOWN = ("", "Unknown response")

    def __init__(self, code, description):
        self.code = code
        self.description = description

    @classmethod
    def lookup(cls, raw_code):
        """Map a raw first line to its member, UNKNOWN if not in the table."""
        wanted = (raw_code or "").strip().lower()
        if wanted:
            for member in cls:
                if member.code == wanted:
                    return member
        return cls.UNKNOWN


# ─── Envelope flags ──────────────────────────────────────────────
ENCRYPTED_FLAG = "#!en="
KEY_EXCHANGE_FLAG = "#!enkey="

SESSION_KEY_BYTES = 32         # AES-256
AES_BLOCK_BYTES = 16

# ─── Endpoints ───────────────────────────────────────────────────
NEW_SERVICE_PARAM = "newService=1"
CERTIFICATE_ENDPOINT = "/management/other/ssl/srvpublic.crt"
AUTHORIZE_ENDPOINT = "/management/index.php?sub=authorize"
REGISTER_ENDPOINT = "/service/register.php"

TOKEN_FILE_NAME = "token.dat"
CA_CERT_FILE_NAME = "ca.cert.pem"

# ─── Network ─────────────────────────────────────────────────────
API_TIMEOUT = 30               # Seconds for ordinary GET/POST
DOWNLOAD_TIMEOUT = 120         # File downloads can be large
DOWNLOAD_CHUNK_BYTES = 64 * 1024
MAX_AUTH_RETRIES = 1           # Re-authenticate at most once per logical call
