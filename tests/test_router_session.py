"""Guarded-send behavior: CSRF propagation, login on 401, single retry."""
import threading

import pytest
from requests.structures import CaseInsensitiveDict

from router.credentials import Credentials, CredentialsNotFound
from router.errors import (
    AuthenticationError,
    InternalInvariantError,
    TransportError,
    UnexpectedStatus,
)
from router.models import Client
from router.transport import RouterRequest
from router.unifi import UnifiDreamRouter

LOGIN_URL = "https://udr.example.com/api/auth/login"
KNOWN_URL = "https://udr.example.com/proxy/network/api/s/default/rest/user"
ONLINE_URL = "https://udr.example.com/proxy/network/api/s/default/stat/sta"
COMMAND_URL = "https://udr.example.com/proxy/network/api/s/default/cmd/stamgr"

PHONE = Client(name="phone", mac_address="aa:bb:cc:dd:ee:ff")


class _FakeResponse:
    def __init__(self, status_code=200, payload=None, csrf=None):
        self.status_code = status_code
        self._payload = payload if payload is not None else {"data": []}
        self.headers = CaseInsensitiveDict()
        if csrf:
            self.headers["X-CSRF-Token"] = csrf

    def json(self):
        return self._payload


class _FakeTransport:
    """Returns queued responses (or raises queued exceptions) and records every request."""

    def __init__(self, responses):
        self.responses = list(responses)
        self.sent = []
        self.lock = threading.Lock()

    def send(self, request):
        with self.lock:
            self.sent.append(request)
            item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    def close(self):
        pass

    def logins(self):
        return [r for r in self.sent if r.url == LOGIN_URL]


class _StaticCredentials:
    def __init__(self, credentials=None):
        self.credentials = credentials or Credentials("admin", "secret")
        self.lookups = []

    def lookup(self, host):
        self.lookups.append(host)
        return self.credentials


class _MissingCredentials:
    def lookup(self, host):
        raise CredentialsNotFound(f"Could not find {host} in ~/.netrc")


def _router(responses, credentials=None):
    transport = _FakeTransport(responses)
    router = UnifiDreamRouter(
        "udr.example.com",
        credentials=credentials or _StaticCredentials(),
        transport=transport,
    )
    return router, transport


def _run_operation(router, operation):
    if operation == "block":
        return router.block(PHONE)
    if operation == "unblock":
        return router.unblock(PHONE)
    return getattr(router, operation)()


def test_csrf_token_from_response_is_sent_on_next_call():
    router, transport = _router(
        [
            _FakeResponse(csrf="token-1"),
            _FakeResponse(csrf="token-2"),
            _FakeResponse(),
            _FakeResponse(),
        ]
    )

    router.list_online_clients()
    router.list_known_clients()
    router.list_online_clients()
    router.list_known_clients()

    sent_tokens = [r.headers.get("x-csrf-token") for r in transport.sent]
    assert sent_tokens == [None, "token-1", "token-2", "token-2"]
    assert router.session_state.csrf_token == "token-2"


@pytest.mark.parametrize(
    "operation", ["list_known_clients", "list_online_clients", "block", "unblock"]
)
def test_single_401_triggers_exactly_one_login_and_replay(operation):
    router, transport = _router(
        [
            _FakeResponse(status_code=401),
            _FakeResponse(csrf="fresh"),
            _FakeResponse(payload={"data": [{"name": "phone", "mac": "aa:bb:cc:dd:ee:ff"}]}),
        ]
    )

    _run_operation(router, operation)

    assert len(transport.sent) == 3
    assert len(transport.logins()) == 1
    assert transport.sent[1].json == {"username": "admin", "password": "secret"}
    assert transport.sent[2].url == transport.sent[0].url
    assert transport.sent[2].json == transport.sent[0].json
    assert router.session_state.csrf_token == "fresh"


def test_listing_after_reauth_is_decoded():
    router, _ = _router(
        [
            _FakeResponse(status_code=401),
            _FakeResponse(),
            _FakeResponse(payload={"data": [{"name": "phone", "mac": "aa:bb:cc:dd:ee:ff"}]}),
        ]
    )
    assert router.list_online_clients() == [PHONE]


def test_401_on_retry_is_final():
    router, transport = _router(
        [
            _FakeResponse(status_code=401),
            _FakeResponse(),
            _FakeResponse(status_code=401),
        ]
    )

    with pytest.raises(AuthenticationError) as excinfo:
        router.list_known_clients()

    assert len(transport.sent) == 3
    assert len(transport.logins()) == 1
    assert excinfo.value.status_code == 401
    assert excinfo.value.operation == "list_known_clients"
    assert excinfo.value.endpoint == KNOWN_URL


def test_other_failure_on_retry_raises_unexpected_status():
    router, transport = _router(
        [
            _FakeResponse(status_code=401),
            _FakeResponse(),
            _FakeResponse(status_code=500),
        ]
    )

    with pytest.raises(UnexpectedStatus) as excinfo:
        router.block(PHONE)

    assert excinfo.value.status_code == 500
    assert len(transport.sent) == 3


def test_non_401_failure_does_not_log_in():
    credentials = _StaticCredentials()
    router, transport = _router([_FakeResponse(status_code=403)], credentials=credentials)

    with pytest.raises(UnexpectedStatus) as excinfo:
        router.list_online_clients()

    assert excinfo.value.status_code == 403
    assert excinfo.value.endpoint == ONLINE_URL
    assert len(transport.sent) == 1
    assert credentials.lookups == []


def test_missing_credentials_fail_before_login_request():
    router, transport = _router(
        [_FakeResponse(status_code=401)], credentials=_MissingCredentials()
    )

    with pytest.raises(AuthenticationError) as excinfo:
        router.list_online_clients()

    assert transport.logins() == []
    assert len(transport.sent) == 1
    assert isinstance(excinfo.value.__cause__, CredentialsNotFound)


def test_rejected_login_raises_authentication_error():
    router, transport = _router(
        [_FakeResponse(status_code=401), _FakeResponse(status_code=400)]
    )

    with pytest.raises(AuthenticationError) as excinfo:
        router.unblock(PHONE)

    assert excinfo.value.status_code == 400
    assert excinfo.value.endpoint == LOGIN_URL
    assert len(transport.sent) == 2


def test_transport_error_propagates_without_retry():
    router, transport = _router([TransportError("connection refused", endpoint=ONLINE_URL)])

    with pytest.raises(TransportError) as excinfo:
        router.list_online_clients()

    assert len(transport.sent) == 1
    assert excinfo.value.operation == "list_online_clients"
    assert excinfo.value.endpoint == ONLINE_URL
    assert "operation=list_online_clients" in str(excinfo.value)


def test_transport_error_during_login_names_operation():
    router, transport = _router(
        [_FakeResponse(status_code=401), TransportError("connection reset", endpoint=LOGIN_URL)]
    )

    with pytest.raises(TransportError) as excinfo:
        router.block(PHONE)

    assert len(transport.sent) == 2
    assert excinfo.value.operation == "block"
    assert excinfo.value.endpoint == LOGIN_URL


def test_response_without_csrf_header_keeps_token():
    router, _ = _router([_FakeResponse(csrf="kept"), _FakeResponse()])
    router.list_online_clients()
    router.list_online_clients()
    assert router.session_state.csrf_token == "kept"


def test_login_includes_totp_when_mfa_secret_configured():
    credentials = _StaticCredentials(
        Credentials("admin", "secret", mfa_secret="JBSWY3DPEHPK3PXP")
    )
    router, transport = _router(
        [_FakeResponse(status_code=401), _FakeResponse(), _FakeResponse()],
        credentials=credentials,
    )

    router.list_online_clients()

    token = transport.logins()[0].json["ubic_2fa_token"]
    assert len(token) == 6 and token.isdigit()


@pytest.mark.parametrize(
    "operation,command", [("block", "block-sta"), ("unblock", "unblock-sta")]
)
def test_station_commands_send_cmd_and_mac(operation, command):
    router, transport = _router([_FakeResponse()])

    _run_operation(router, operation)

    request = transport.sent[0]
    assert request.method == "POST"
    assert request.url == COMMAND_URL
    assert request.json == {"cmd": command, "mac": "aa:bb:cc:dd:ee:ff"}


def test_unclonable_request_raises_internal_error():
    router, transport = _router([_FakeResponse()])
    request = RouterRequest("POST", COMMAND_URL, json=iter([b"stream"]))

    with pytest.raises(InternalInvariantError):
        router.send(request, "block")

    assert transport.sent == []


def test_concurrent_calls_store_one_of_the_response_tokens():
    tokens = [f"token-{i}" for i in range(20)]
    router, transport = _router(
        [_FakeResponse(csrf=token) for token in tokens]
    )

    threads = [threading.Thread(target=router.list_online_clients) for _ in tokens]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(transport.sent) == 20
    assert router.session_state.csrf_token in tokens
