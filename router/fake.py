"""In-memory router backend for tests and dry runs."""

from __future__ import annotations

import threading
from typing import Iterable, List, Optional

from .base import Router
from .errors import UnexpectedStatus
from .models import Client


class FakeRouter(Router):
    """
    Router double holding its clients in memory.

    :param known: Every client the fake router knows about.
    :param online: Subset of clients reported as connected; defaults to all known.
    """

    def __init__(self, known: Iterable[Client] = (), online: Optional[Iterable[Client]] = None):
        self._lock = threading.Lock()
        self.known = list(known)
        self.online = list(self.known if online is None else online)
        self.blocked = set()
        self.calls = []

    def _record(self, operation):
        with self._lock:
            self.calls.append(operation)

    def list_known_clients(self) -> List[Client]:
        self._record("list_known_clients")
        with self._lock:
            return list(self.known)

    def list_online_clients(self) -> List[Client]:
        self._record("list_online_clients")
        with self._lock:
            return [c for c in self.online if c.mac_address not in self.blocked]

    def set_online(self, clients: Iterable[Client]) -> None:
        with self._lock:
            self.online = list(clients)

    def _require_known(self, client, operation):
        if not any(c.mac_address == client.mac_address for c in self.known):
            raise UnexpectedStatus(
                f"Unknown client {client.mac_address}", 400, operation=operation
            )

    def block(self, client: Client) -> None:
        self._record("block")
        self._require_known(client, "block")
        with self._lock:
            self.blocked.add(client.mac_address)

    def unblock(self, client: Client) -> None:
        self._record("unblock")
        self._require_known(client, "unblock")
        with self._lock:
            self.blocked.discard(client.mac_address)
