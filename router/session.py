"""Shared login session state."""

from __future__ import annotations

import threading
from typing import Optional

CSRF_HEADER = "x-csrf-token"


class SessionState:
    """
    CSRF token shared by every call made through one router client.

    The token is only touched inside short critical sections; callers read it
    into a local, do their network I/O, and write the replacement back.
    """

    def __init__(self, csrf_token: Optional[str] = None):
        self._lock = threading.Lock()
        self._csrf_token = csrf_token

    @property
    def csrf_token(self) -> Optional[str]:
        with self._lock:
            return self._csrf_token

    def update_from_response(self, response) -> bool:
        """
        Replace the stored token with the response's ``x-csrf-token`` header.

        A response without the header leaves the token unchanged.

        :return: True if the token was replaced.
        """
        token = response.headers.get(CSRF_HEADER)
        if not token:
            return False
        with self._lock:
            self._csrf_token = token
        return True

    def __repr__(self):
        with self._lock:
            has_token = self._csrf_token is not None
        return f"<SessionState(csrf_token={'set' if has_token else None})>"
