"""Credential providers for router logins."""

from __future__ import annotations

import logging
import netrc
import os
from dataclasses import dataclass, field
from typing import Optional

logger = logging.getLogger(__name__)


class CredentialsNotFound(LookupError):
    """No credentials are configured for the requested host."""


@dataclass(frozen=True)
class Credentials:
    username: str
    password: str = field(repr=False)
    mfa_secret: Optional[str] = field(default=None, repr=False)


class CredentialProvider:
    """Looks up the login for a router host."""

    def lookup(self, host: str) -> Credentials:
        raise NotImplementedError


class NetrcCredentialProvider(CredentialProvider):
    """
    Reads credentials from a netrc file keyed by host (``machine`` entry).

    :param path: netrc file; defaults to ``~/.netrc``.
    """

    def __init__(self, path=None):
        self.path = os.path.expanduser(path) if path else os.path.expanduser("~/.netrc")

    def lookup(self, host: str) -> Credentials:
        logger.debug(f"Looking up credentials for {host} in {self.path}")
        try:
            entries = netrc.netrc(self.path)
        except FileNotFoundError as err:
            raise CredentialsNotFound(f"Unable to read {self.path}") from err
        except (netrc.NetrcParseError, OSError) as err:
            raise CredentialsNotFound(f"Unable to parse {self.path}: {err}") from err

        entry = entries.hosts.get(host)
        if entry is None:
            raise CredentialsNotFound(f"Could not find {host} in {self.path}")
        login, _account, password = entry
        if not password:
            raise CredentialsNotFound(f"No password for {host} in {self.path}")
        if not login:
            raise CredentialsNotFound(f"No login for {host} in {self.path}")
        return Credentials(username=login, password=password)


class EnvCredentialProvider(CredentialProvider):
    """Reads ``UNIFI_USERNAME`` / ``UNIFI_PASSWORD`` / ``UNIFI_MFA_SECRET`` for any host."""

    def __init__(self, environ=None):
        self.environ = os.environ if environ is None else environ

    def lookup(self, host: str) -> Credentials:
        username = self.environ.get("UNIFI_USERNAME")
        password = self.environ.get("UNIFI_PASSWORD")
        if not (username and password):
            raise CredentialsNotFound(
                "Missing credentials. Set UNIFI_USERNAME + UNIFI_PASSWORD"
            )
        return Credentials(
            username=username,
            password=password,
            mfa_secret=self.environ.get("UNIFI_MFA_SECRET") or None,
        )


class ChainCredentialProvider(CredentialProvider):
    """Tries each provider in order and returns the first hit."""

    def __init__(self, *providers):
        self.providers = providers

    def lookup(self, host: str) -> Credentials:
        errors = []
        for provider in self.providers:
            try:
                return provider.lookup(host)
            except CredentialsNotFound as err:
                errors.append(str(err))
        raise CredentialsNotFound(
            "; ".join(errors) if errors else f"No credential provider configured for {host}"
        )
