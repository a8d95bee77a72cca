"""Backend-agnostic router interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List

from .models import Client


class Router(ABC):
    """
    Operations every router backend provides.

    Implementations raise ``router.errors.RouterError`` subclasses on failure.
    """

    @abstractmethod
    def list_known_clients(self) -> List[Client]:
        """Every client the router has ever seen, online or not."""

    @abstractmethod
    def list_online_clients(self) -> List[Client]:
        """Clients currently connected."""

    @abstractmethod
    def block(self, client: Client) -> None:
        """Block ``client`` from the network by MAC address."""

    @abstractmethod
    def unblock(self, client: Client) -> None:
        """Lift a block on ``client``."""

    def close(self) -> None:
        """Release any resources held by the backend."""

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
