"""HTTP transport used by the router client.

The transport owns the ``requests.Session`` (and therefore the cookie jar) and
knows nothing about logins, CSRF tokens or retries.
"""

from __future__ import annotations

import copy
import logging
import warnings
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.exceptions import InsecureRequestWarning

from .errors import InternalInvariantError, TransportError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 15


def _is_single_use(body) -> bool:
    """Streams and iterators can only be consumed once and cannot be replayed."""
    if body is None or isinstance(body, (dict, list, str, bytes, int, float, bool)):
        return False
    return hasattr(body, "read") or hasattr(body, "__next__")


@dataclass(frozen=True)
class RouterRequest:
    """
    Immutable description of one HTTP request.

    A descriptor can be sent any number of times; every send builds a fresh
    ``requests`` request, so cookies are merged from the jar at send time.
    """

    method: str
    url: str
    json: Any = None
    headers: Dict[str, str] = field(default_factory=dict)

    def with_header(self, name: str, value: str) -> "RouterRequest":
        headers = dict(self.headers)
        headers[name] = value
        return replace(self, headers=headers)

    def clone(self) -> "RouterRequest":
        """Return an identical, independently sendable copy of this request."""
        if _is_single_use(self.json):
            raise InternalInvariantError(
                f"Cannot clone {self.method} request with a single-use body",
                endpoint=self.url,
            )
        try:
            body = copy.deepcopy(self.json)
        except (TypeError, copy.Error) as err:
            raise InternalInvariantError(
                f"Cannot clone {self.method} request body: {err}",
                endpoint=self.url,
            ) from err
        return RouterRequest(
            method=self.method,
            url=self.url,
            json=body,
            headers=dict(self.headers),
        )


class Transport:
    """
    Sends ``RouterRequest`` descriptors over a shared ``requests.Session``.

    :param verify_ssl: Validate the router's TLS certificate. UniFi consoles
        ship a self-signed certificate, so this is commonly disabled.
    :param timeout: Per-request timeout in seconds.
    :param session: Optional pre-built session (tests, custom adapters).
    """

    def __init__(self, verify_ssl=True, timeout=DEFAULT_TIMEOUT, session: Optional[requests.Session] = None):
        self.verify_ssl = verify_ssl
        self.timeout = timeout
        self.session = session or self._build_session()
        self.session.verify = verify_ssl
        if not verify_ssl:
            # Suppress only the InsecureRequestWarning
            warnings.simplefilter("ignore", InsecureRequestWarning)

    @staticmethod
    def _build_session() -> requests.Session:
        session = requests.Session()
        adapter = HTTPAdapter(pool_connections=4, pool_maxsize=10)
        session.mount("http://", adapter)
        session.mount("https://", adapter)
        session.headers.update({"Accept": "application/json"})
        return session

    @property
    def cookies(self):
        return self.session.cookies

    def send(self, request: RouterRequest) -> requests.Response:
        """Send one request. Raises ``TransportError`` on network failures."""
        logger.debug(f"Sending {request.method} request to: {request.url}")
        request_kwargs = {
            "headers": dict(request.headers),
            "verify": self.verify_ssl,
            "timeout": self.timeout,
        }
        if request.json is not None:
            request_kwargs["json"] = request.json

        try:
            response = self.session.request(request.method, request.url, **request_kwargs)
        except requests.exceptions.RequestException as err:
            logger.debug(f"Request failed: {request.method} {request.url}", exc_info=True)
            raise TransportError(
                f"{request.method} request failed: {err}", endpoint=request.url
            ) from err

        logger.debug(f"Response status code: {response.status_code}")
        return response

    def close(self):
        self.session.close()
