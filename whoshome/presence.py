"""Matching configured people against the router's online clients."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, List, Tuple

from router.base import Router
from router.models import Client

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Person:
    name: str
    devices: Tuple[str, ...] = ()

    def owns(self, client: Client) -> bool:
        """True when one of this person's devices names (or MACs) ``client``."""
        return any(client.matches(device) for device in self.devices)


def who_is_home(persons: Iterable[Person], online_clients: Iterable[Client]) -> List[Person]:
    """Persons with at least one device among ``online_clients``, in configuration order."""
    online_clients = list(online_clients)
    return [
        person
        for person in persons
        if any(person.owns(client) for client in online_clients)
    ]


def find_client(router: Router, identifier: str) -> Client:
    """
    Look up a known client by name or MAC address.

    :raises LookupError: if no known client matches.
    """
    clients = router.list_known_clients()
    for client in clients:
        if client.matches(identifier):
            return client
    logger.debug(f"No client named '{identifier}' among {len(clients)} known clients")
    raise LookupError(f"Could not find client named {identifier}")
