"""PyPI registry client.

Answers "what is the latest published version of X" from the PyPI JSON API.
"""

from __future__ import annotations

import requests

from .exceptions import RegistryLookupError
from .shell import info

PYPI_URL = "https://pypi.org/pypi"


class PyPIClient:
    """Looks up the latest release of a distribution.

    One client is shared by all lookups of a run; requests.Session is safe
    for the read-only GETs issued here.
    """

    def __init__(
        self,
        base_url: str = PYPI_URL,
        timeout: float = 5.0,
        session: requests.Session | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.setdefault("Accept", "application/json")

    def latest_version(self, name: str) -> str:
        """Return the latest version of name published on the registry.

        Raises:
            RegistryLookupError: On network failure, a non-200 response, or a
                payload without a version.
        """
        url = f"{self.base_url}/{name}/json"
        info(f"Fetching latest version for {name}")
        try:
            resp = self.session.get(url, timeout=self.timeout)
        except requests.RequestException as exc:
            raise RegistryLookupError(name, str(exc)) from exc

        if resp.status_code == 404:
            raise RegistryLookupError(name, "not found on registry")
        if resp.status_code != 200:
            raise RegistryLookupError(name, f"unexpected response code {resp.status_code}")

        try:
            version = resp.json()["info"]["version"]
        except (ValueError, KeyError, TypeError) as exc:
            raise RegistryLookupError(name, f"malformed registry response: {exc}") from exc
        if not version:
            raise RegistryLookupError(name, "registry returned no version")
        return str(version)

    __call__ = latest_version
