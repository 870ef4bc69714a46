"""
Server reply parsing.

A reply is newline separated text: the first line is the return code, every
later line holding ``=`` is a ``key=value`` field.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List

from .codec import decode_base64
from .config import get_logger
from .constants import SUCCESS_CODE, ReturnCode
from .errors import DecodeError

log = get_logger("Communication")


class ResponseStatus(Enum):
    OK = "ok"
    PROTOCOL_ERROR = "protocol-error"     # server answered with a non-success code
    TRANSPORT_ERROR = "transport-error"   # no usable answer from the server
    DECODE_ERROR = "decode-error"         # answer could not be decrypted/parsed
    NOT_CONFIGURED = "not-configured"     # no server address, nothing was sent
    AUTH_FAILED = "auth-failed"           # certificate still rejected after re-auth


@dataclass
class Response:
    return_code: str = ""
    is_error: bool = True
    fields: Dict[str, str] = field(default_factory=dict)
    status: ResponseStatus = ResponseStatus.TRANSPORT_ERROR

    @property
    def code(self) -> ReturnCode:
        return ReturnCode.lookup(self.return_code)

    def get_field(self, key, default=""):
        return self.fields.get(key, default)

    def with_status(self, status):
        self.status = status
        return self


def is_success(return_code) -> bool:
    return (return_code or "").strip().lower() == SUCCESS_CODE


def describe(return_code):
    """Log the meaning of a return code. Unknown codes are logged verbatim."""
    code = ReturnCode.lookup(return_code)
    if code is ReturnCode.UNKNOWN:
        log.info("Unknown Response: %s", (return_code or "").replace("\n", ""))
    else:
        log.info("Response: %s", code.description)
    return code


def parse(raw_text) -> Response:
    """Parse a reply body. Never raises; bad input gives a default Response."""
    response = Response()
    try:
        lines = raw_text.split("\n")
        response.return_code = lines[0].strip()
        response.is_error = not is_success(response.return_code)

        fields = {}
        for line in lines:
            if "=" not in line:
                continue
            key, value = line.split("=", 1)
            # Duplicate keys: the last value wins.
            fields[key.strip()] = value.strip()
        response.fields = fields
        response.status = ResponseStatus.PROTOCOL_ERROR if response.is_error else ResponseStatus.OK
    except Exception as e:
        log.error("Could not parse response")
        log.error("%s", e)
        response.status = ResponseStatus.DECODE_ERROR
    return response


def extract_array(response, identifier, decode=False) -> List[str]:
    """Values of every field whose key contains ``identifier``, in order."""
    values = []
    for key, value in response.fields.items():
        if identifier not in key:
            continue
        if decode:
            try:
                value = decode_base64(value)
            except DecodeError as e:
                log.error("Could not decode field %s: %s", key, e)
                value = ""
        values.append(value)
    return values
