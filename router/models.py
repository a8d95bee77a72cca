"""Value types returned by router backends."""

from __future__ import annotations

from dataclasses import dataclass

DEFAULT_CLIENT_NAME = "<unnamed>"


@dataclass(frozen=True)
class Client:
    """A network client known to the router, identified by its MAC address."""

    name: str
    mac_address: str

    def matches(self, identifier: str) -> bool:
        """True when ``identifier`` is this client's name or (case-insensitive) MAC."""
        if identifier == self.name:
            return True
        return identifier.strip().lower() == self.mac_address.lower()

    def __str__(self):
        return f"{self.name} ({self.mac_address})"
