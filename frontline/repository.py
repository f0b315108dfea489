"""HTTP access to Composer repositories."""

import logging

import httpx

from .exceptions import RepositoryError

logger = logging.getLogger(__name__)

DEFAULT_REPOSITORY_URL = "https://repo.packagist.org"

# Value marking a key removed from the previous version in minified metadata
UNSET = "__unset"


def expand_minified(versions: list[dict]) -> list[dict]:
    """Expand ``composer/2.0`` minified metadata.

    Each entry only carries the keys that differ from the entry before it.
    """
    expanded: list[dict] = []
    current: dict | None = None
    for version_data in versions:
        if current is None:
            current = dict(version_data)
        else:
            current = dict(current)
            for key, value in version_data.items():
                if value == UNSET:
                    current.pop(key, None)
                else:
                    current[key] = value
        expanded.append(current)
    return expanded


class ComposerRepository:
    """Client for a Composer repository such as Packagist."""

    def __init__(self, client: httpx.Client, url: str = DEFAULT_REPOSITORY_URL):
        """Initialize repository client.

        Args:
            client: HTTP client, owned by the caller
            url: Root URL of the repository
        """
        self.client = client
        self.url = httpx.URL(url.rstrip("/") + "/")
        self._metadata_url: str | None = None

    def _get_json(self, url: httpx.URL) -> dict | None:
        """Fetch a JSON document, returning None on 404."""
        try:
            response = self.client.get(url)
            if response.status_code == 404:
                return None
            response.raise_for_status()
            data = response.json()
        except httpx.TimeoutException as e:
            raise RepositoryError(f"Timeout fetching {url}") from e
        except httpx.HTTPStatusError as e:
            raise RepositoryError(f"HTTP error fetching {url}: {e}") from e
        except httpx.HTTPError as e:
            raise RepositoryError(f"Network error fetching {url}: {e}") from e
        except ValueError as e:
            raise RepositoryError(f"Invalid JSON from {url}: {e}") from e

        if not isinstance(data, dict):
            raise RepositoryError(f"Unexpected response from {url}")
        return data

    def probe_api_version(self) -> int:
        """Find out which metadata API the repository serves.

        Returns:
            2 if the repository advertises a ``metadata-url``, 1 otherwise
        """
        root = self._get_json(self.url.join("packages.json"))
        if root is None:
            raise RepositoryError(f"{self.url} is not a Composer repository")

        metadata_url = root.get("metadata-url")
        if metadata_url:
            self._metadata_url = metadata_url
            logger.debug("%s serves metadata v2 at %s", self.url, metadata_url)
            return 2

        logger.debug("%s serves legacy metadata only", self.url)
        return 1

    def legacy_versions(self, package_name: str) -> list[dict] | None:
        """Fetch all versions of a package from the v1 endpoint."""
        name = package_name.lower()
        data = self._get_json(self.url.join(f"p/{name}.json"))
        if data is None:
            return None

        packages = data.get("packages")
        versions = packages.get(name) if isinstance(packages, dict) else None
        if not versions or not isinstance(versions, dict):
            return None
        return list(versions.values())

    def metadata_versions(self, package_name: str) -> list[dict] | None:
        """Fetch tagged versions of a package from the v2 metadata endpoint."""
        if self._metadata_url is None:
            self.probe_api_version()
        if self._metadata_url is None:
            raise RepositoryError(f"{self.url} does not serve metadata v2")

        name = package_name.lower()
        data = self._get_json(self.url.join(self._metadata_url.replace("%package%", name)))
        if data is None:
            return None

        packages = data.get("packages")
        versions = packages.get(name) if isinstance(packages, dict) else None
        if not versions or not isinstance(versions, list):
            return None
        if data.get("minified") == "composer/2.0":
            versions = expand_minified(versions)
        return versions
