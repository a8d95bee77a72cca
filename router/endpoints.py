"""URL construction for the UniFi OS network application."""

from __future__ import annotations

from dataclasses import dataclass

DEFAULT_SITE = "default"


def _normalize_host(host: str) -> str:
    """Strip an optional scheme and trailing slashes from a host identifier."""
    if host is None:
        raise ValueError("Missing required configuration: router host")
    normalized = str(host).strip()
    for scheme in ("https://", "http://"):
        if normalized.lower().startswith(scheme):
            normalized = normalized[len(scheme):]
            break
    normalized = normalized.rstrip("/")
    if not normalized:
        raise ValueError("Missing required configuration: router host")
    return normalized


@dataclass(frozen=True)
class Endpoints:
    host: str
    login: str
    known_clients: str
    online_clients: str
    command: str

    @classmethod
    def for_host(cls, host: str, site: str = DEFAULT_SITE) -> "Endpoints":
        """
        Build the fixed endpoint set for a UniFi OS console.

        :param host: Router host name or IP, optionally with an ``https://`` prefix.
        :param site: UniFi site name.
        :return: Endpoints instance.
        """
        host = _normalize_host(host)
        base_url = f"https://{host}"
        site = (site or DEFAULT_SITE).strip("/")
        site_url = f"{base_url}/proxy/network/api/s/{site}"
        return cls(
            host=host,
            login=f"{base_url}/api/auth/login",
            known_clients=f"{site_url}/rest/user",
            online_clients=f"{site_url}/stat/sta",
            command=f"{site_url}/cmd/stamgr",
        )
