"""Periodic "who is home" polling."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from router.base import Router
from router.errors import RouterError

from .changes import Added, changes
from .presence import Person, who_is_home

logger = logging.getLogger(__name__)


@dataclass
class PollResult:
    home: List[Person]
    changes: list = field(default_factory=list)
    error: Optional[RouterError] = None

    @property
    def arrived(self) -> List[Person]:
        return [change.item for change in self.changes if isinstance(change, Added)]

    @property
    def left(self) -> List[Person]:
        return [change.item for change in self.changes if not isinstance(change, Added)]


class PresenceWatcher:
    """
    Polls a router and reports who arrived and who left since the previous poll.

    The first poll reports everyone at home as arrived.
    """

    def __init__(self, router: Router, persons: List[Person], on_change: Optional[Callable] = None):
        self.router = router
        self.persons = list(persons)
        self.on_change = on_change
        self.home: List[Person] = []

    def poll_once(self) -> PollResult:
        try:
            online = self.router.list_online_clients()
        except RouterError as err:
            logger.error(f"Failed to get list of connected clients: {err}")
            return PollResult(home=list(self.home), error=err)

        logger.debug(f"Online clients {online}")
        home = who_is_home(self.persons, online)
        result = PollResult(home=home, changes=changes(self.home, home))
        self.home = home

        for change in result.changes:
            verb = "arrived" if isinstance(change, Added) else "left"
            logger.info(f"{change.item.name} {verb}")
        if result.changes and self.on_change:
            self.on_change(result)
        return result

    def run(self, interval: int, count: Optional[int] = None, sleep: Optional[Callable] = None) -> int:
        """
        Poll every ``interval`` seconds, ``count`` times (forever if None).

        :return: number of polls performed.
        """
        sleep = sleep or time.sleep
        run_count = 0
        while True:
            run_count += 1
            logger.debug(f"=== Presence poll #{run_count} ===")
            self.poll_once()
            if count is not None and run_count >= count:
                break
            logger.debug(f"Sleeping {interval} seconds until next poll...")
            sleep(interval)
        return run_count
