import logging
from typing import List, Optional

import pyotp
import requests

from .base import Router
from .credentials import CredentialProvider, CredentialsNotFound, NetrcCredentialProvider
from .endpoints import DEFAULT_SITE, Endpoints
from .errors import AuthenticationError, DecodingError, TransportError, UnexpectedStatus
from .models import DEFAULT_CLIENT_NAME, Client
from .session import CSRF_HEADER, SessionState
from .transport import DEFAULT_TIMEOUT, RouterRequest, Transport

logger = logging.getLogger(__name__)

BLOCK_COMMAND = "block-sta"
UNBLOCK_COMMAND = "unblock-sta"


def _is_success(response) -> bool:
    return 200 <= response.status_code < 300


class UnifiDreamRouter(Router):
    """
    Client for the private web API of a UniFi OS console (Dream Router / Dream Machine).

    Logs in on demand: the first request is sent without a session, and any
    401 triggers one login followed by one replay of the same request.
    """

    def __init__(
        self,
        host,
        credentials: Optional[CredentialProvider] = None,
        site=DEFAULT_SITE,
        verify_ssl=False,
        timeout=DEFAULT_TIMEOUT,
        transport: Optional[Transport] = None,
        unnamed_client=DEFAULT_CLIENT_NAME,
    ):
        self.endpoints = Endpoints.for_host(host, site=site)
        self.host = self.endpoints.host
        logger.debug(f"Initializing UniFi router connection to: {self.host}")
        self.credentials = credentials or NetrcCredentialProvider()
        self.transport = transport or Transport(verify_ssl=verify_ssl, timeout=timeout)
        self.session_state = SessionState()
        self.unnamed_client = unnamed_client

    def __repr__(self):
        return f"<UnifiDreamRouter(host={self.host})>"

    # ------------------------------------------------------------------
    #  Router operations
    # ------------------------------------------------------------------

    def list_known_clients(self) -> List[Client]:
        logger.info(f"Getting list of known clients from UnifiDreamRouter: {self.host}")
        return self._list_clients(self.endpoints.known_clients, "list_known_clients")

    def list_online_clients(self) -> List[Client]:
        logger.info(f"Getting list of connected clients from UnifiDreamRouter: {self.host}")
        return self._list_clients(self.endpoints.online_clients, "list_online_clients")

    def block(self, client: Client) -> None:
        logger.info(f"Blocking {client} on {self.host}")
        self._station_command(BLOCK_COMMAND, client, "block")

    def unblock(self, client: Client) -> None:
        logger.info(f"Unblocking {client} on {self.host}")
        self._station_command(UNBLOCK_COMMAND, client, "unblock")

    def close(self) -> None:
        self.transport.close()

    def _list_clients(self, url, operation) -> List[Client]:
        response = self.send(RouterRequest("GET", url), operation)
        clients = self.decode_clients(response, operation=operation, endpoint=url)
        logger.debug(f"{operation}: decoded {len(clients)} clients")
        return clients

    def _station_command(self, command, client: Client, operation):
        payload = {"cmd": command, "mac": client.mac_address}
        self.send(RouterRequest("POST", self.endpoints.command, json=payload), operation)

    # ------------------------------------------------------------------
    #  Session handling
    # ------------------------------------------------------------------

    def send(self, request: RouterRequest, operation=None) -> requests.Response:
        """
        Send ``request`` with the current CSRF token, logging in and replaying
        it once if the router answers 401.

        :param request: Request descriptor to send.
        :param operation: Name of the calling operation, used in error context.
        :return: The successful response.
        """
        csrf_token = self.session_state.csrf_token
        if csrf_token:
            request = request.with_header(CSRF_HEADER, csrf_token)
        # The replay is an exact copy, so it carries the token read above, not
        # the one issued by the login. Cookies are merged when it is sent.
        backup = request.clone()

        response = self._send_once(request, operation)
        if not _is_success(response):
            if response.status_code != 401:
                raise UnexpectedStatus(
                    f"Router returned HTTP {response.status_code}",
                    response.status_code,
                    operation=operation,
                    endpoint=request.url,
                )

            logger.debug(f"Got 401, authenticating on: {self.host}")
            self.login(operation=operation)
            logger.debug("Authorizing finished, sending request again")
            response = self._send_once(backup, operation)
            if response.status_code == 401:
                raise AuthenticationError(
                    "Router still returned HTTP 401 after logging in",
                    operation=operation,
                    endpoint=backup.url,
                    status_code=401,
                )
            if not _is_success(response):
                raise UnexpectedStatus(
                    f"Router returned HTTP {response.status_code} after logging in",
                    response.status_code,
                    operation=operation,
                    endpoint=backup.url,
                )

        if self.session_state.update_from_response(response):
            logger.debug("Stored new CSRF token from response")
        return response

    def _send_once(self, request, operation):
        try:
            return self.transport.send(request)
        except TransportError as err:
            err.operation = err.operation or operation
            raise

    def _build_login_payload(self, credentials):
        payload = {
            "username": credentials.username,
            "password": credentials.password,
        }
        if credentials.mfa_secret:
            payload["ubic_2fa_token"] = pyotp.TOTP(credentials.mfa_secret).now()
        return payload

    def login(self, operation=None) -> None:
        """
        Authenticate against the console and store the issued CSRF token.

        The session cookie is kept by the transport's cookie jar.
        """
        try:
            credentials = self.credentials.lookup(self.host)
        except CredentialsNotFound as err:
            raise AuthenticationError(
                f"Failed to get credentials for {self.host}: {err}",
                operation=operation,
                endpoint=self.endpoints.login,
            ) from err

        logger.debug(f"Logging in to {self.host} as {credentials.username}")
        request = RouterRequest("POST", self.endpoints.login, json=self._build_login_payload(credentials))
        response = self._send_once(request, operation)
        if not _is_success(response):
            logger.error(f"Login to {self.host} failed with HTTP {response.status_code}")
            raise AuthenticationError(
                f"Login failed with HTTP {response.status_code}",
                operation=operation,
                endpoint=self.endpoints.login,
                status_code=response.status_code,
            )

        self.session_state.update_from_response(response)
        logger.info(f"Logged in to {self.host} successfully.")

    # ------------------------------------------------------------------
    #  Decoding
    # ------------------------------------------------------------------

    def decode_clients(self, response, operation=None, endpoint=None) -> List[Client]:
        """Decode a ``{"data": [{"name": ..., "mac": ...}]}`` listing into clients."""
        try:
            body = response.json()
        except ValueError as err:
            raise DecodingError(
                f"Router returned a non-JSON body: {err}", operation=operation, endpoint=endpoint
            ) from err

        records = body.get("data") if isinstance(body, dict) else None
        if not isinstance(records, list):
            raise DecodingError(
                "Router response is missing the 'data' list", operation=operation, endpoint=endpoint
            )

        clients = []
        for record in records:
            if not isinstance(record, dict):
                raise DecodingError(
                    f"Unexpected client record: {record!r}", operation=operation, endpoint=endpoint
                )
            mac = record.get("mac")
            if not isinstance(mac, str) or not mac:
                raise DecodingError(
                    "Client record is missing its 'mac' field", operation=operation, endpoint=endpoint
                )
            name = record.get("name")
            if not isinstance(name, str) or not name:
                name = self.unnamed_client
            clients.append(Client(name=name, mac_address=mac))
        return clients
