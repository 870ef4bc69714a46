"""
Transport — GET/POST/download against the FOG server.

Every call is blocking and none of them raise: network failures are logged and
the caller gets an empty Response, "" or False. A connection error also
replaces the HTTP session, dropping its pooled connections. A Response's ``status`` tells
"no usable answer" apart from "server said no".

GET replies carrying "#!ihc" (invalid host certificate) trigger a fresh
handshake through the Authenticator and one more try, up to
``context.max_auth_retries`` times per call.
"""

from pathlib import Path

import requests

from . import codec
from . import http_client
from .config import get_logger
from .constants import API_TIMEOUT, DOWNLOAD_CHUNK_BYTES, DOWNLOAD_TIMEOUT, NEW_SERVICE_PARAM, ReturnCode
from .errors import DecodeError
from .network import get_mac_addresses
from .response import Response, ResponseStatus, describe, parse

log = get_logger("Communication")


def with_param(postfix, param):
    """Append a query parameter, starting the query string if needed."""
    return postfix + ("&" if "?" in postfix else "?") + param


class Transport:

    def __init__(self, context, session=None, mac_provider=None, authenticator=None):
        self.context = context
        self.authenticator = authenticator
        self._session = session
        self._mac_provider = mac_provider or get_mac_addresses

    @property
    def http(self):
        return self._session or http_client.http

    # ─── Helpers ─────────────────────────────────────────────────

    def mac_addresses(self):
        return self.context.test_mac or self._mac_provider()

    def append_mac(self, postfix):
        return with_param(postfix, "mac=" + self.mac_addresses())

    def _url(self, postfix):
        return self.context.address + with_param(postfix, NEW_SERVICE_PARAM)

    def _not_configured(self):
        if self.context.is_configured:
            return False
        log.error("Server address is not set, refusing to contact the server")
        return True

    def _request_failed(self, message, error):
        log.error(message)
        log.error("%s", error)
        if isinstance(error, requests.ConnectionError):
            self._reset_session()

    def _reset_session(self):
        """Swap in a fresh session so the next call does not reuse dead sockets."""
        if self._session is not None:
            self._session = http_client.reset_session(self._session)
        else:
            http_client.http = http_client.reset_session(http_client.http)

    def _interpret(self, raw, key):
        try:
            text = codec.decode(raw, key)
        except DecodeError as e:
            log.error("Could not decode response")
            log.error("%s", e)
            return Response(status=ResponseStatus.DECODE_ERROR)

        describe(text.split("\n", 1)[0])
        return parse(text)

    # ─── GET ─────────────────────────────────────────────────────

    def get(self, postfix, append_mac=False) -> Response:
        """Parsed, decrypted reply of ``address + postfix``."""
        if append_mac:
            postfix = self.append_mac(postfix)
        if self._not_configured():
            return Response(status=ResponseStatus.NOT_CONFIGURED)

        url = self._url(postfix)
        retries = 0
        while True:
            response = self._get_once(url)
            if response.code is not ReturnCode.INVALID_HOST_CERTIFICATE:
                return response

            if self.authenticator is None or retries >= self.context.max_auth_retries:
                log.error("Host certificate still rejected after %d re-authentication(s)", retries)
                return response.with_status(ResponseStatus.AUTH_FAILED)

            retries += 1
            if not self.authenticator.authenticate():
                log.error("Re-authentication failed, not retrying %s", url)
                return response.with_status(ResponseStatus.AUTH_FAILED)

    def _get_once(self, url):
        log.info("URL: %s", url)
        try:
            resp = self.http.get(url, timeout=API_TIMEOUT)
            resp.raise_for_status()
        except requests.RequestException as e:
            self._request_failed("Could not contact FOG server", e)
            return Response()
        return self._interpret(resp.text, self.context.session_key)

    def get_raw(self, postfix) -> str:
        """Undecoded reply body, "" on failure."""
        if self._not_configured():
            return ""

        url = self._url(postfix)
        log.info("URL: %s", url)
        try:
            resp = self.http.get(url, timeout=API_TIMEOUT)
            resp.raise_for_status()
            return resp.text
        except requests.RequestException as e:
            self._request_failed("Could not contact FOG server", e)
        return ""

    def notify(self, postfix, append_mac=False) -> bool:
        """Tell the server something; the reply body is ignored."""
        if append_mac:
            postfix = self.append_mac(postfix)
        if self._not_configured():
            return False

        url = self._url(postfix)
        log.info("URL: %s", url)
        try:
            resp = self.http.get(url, timeout=API_TIMEOUT)
            resp.raise_for_status()
            return True
        except requests.RequestException as e:
            self._request_failed("Could not contact FOG server", e)
        return False

    # ─── POST ────────────────────────────────────────────────────

    def post(self, postfix, form, key=None) -> Response:
        """
        Form-encoded POST. The reply is decoded with ``key`` when given,
        otherwise with the context's session key. No re-authentication.
        """
        if self._not_configured():
            return Response(status=ResponseStatus.NOT_CONFIGURED)

        url = self.context.address + postfix
        log.info("POST URL: %s", url)
        try:
            resp = self.http.post(
                url,
                data=form,
                headers={"Content-Type": "application/x-www-form-urlencoded"},
                timeout=API_TIMEOUT,
            )
            resp.raise_for_status()
        except requests.RequestException as e:
            self._request_failed("Failed to POST data", e)
            return Response()
        return self._interpret(resp.text, key or self.context.session_key)

    # ─── Downloads ───────────────────────────────────────────────

    def download_file(self, postfix, file_path) -> bool:
        if self._not_configured():
            return False
        return self.download_external_file(self.context.address + postfix, file_path)

    def download_external_file(self, url, file_path) -> bool:
        """Save ``url`` to ``file_path``, creating parent directories."""
        log.info("URL: %s", url)
        if not url or not file_path:
            log.error("Invalid parameters")
            return False

        path = Path(file_path)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with self.http.get(url, stream=True, timeout=DOWNLOAD_TIMEOUT) as resp:
                resp.raise_for_status()
                with open(path, "wb") as f:
                    for chunk in resp.iter_content(chunk_size=DOWNLOAD_CHUNK_BYTES):
                        if chunk:
                            f.write(chunk)
            return path.exists()
        except (requests.RequestException, OSError) as e:
            self._request_failed("Could not download file", e)
        return False
