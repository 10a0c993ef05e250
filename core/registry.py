"""npm registry client."""

import logging
from urllib.parse import quote

import httpx

from .config import VersionTarget
from .errors import PackageNotFoundError, RegistryError
from .semver import max_version

logger = logging.getLogger(__name__)

DEFAULT_REGISTRY = "https://registry.npmjs.org/"


class RegistryClient:
    """Client for an npm-compatible package registry."""

    def __init__(
        self,
        registry_url: str | None = None,
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ):
        """Initialize registry client.

        Args:
            registry_url: Registry base URL, defaults to the public npm registry
            timeout: Request timeout in seconds
            client: Shared HTTP client; one is opened per request if omitted
        """
        self.registry_url = (registry_url or DEFAULT_REGISTRY).rstrip("/") + "/"
        self.timeout = timeout
        self._client = client
        self._owns_client = False
        self._cache: dict[str, dict] = {}

    async def __aenter__(self) -> "RegistryClient":
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout, follow_redirects=True)
            self._owns_client = True
        return self

    async def __aexit__(self, *exc_info) -> None:
        if self._owns_client:
            await self._client.aclose()
            self._client = None
            self._owns_client = False

    def package_url(self, package_name: str) -> str:
        # scoped packages keep the "@" but encode the slash
        return self.registry_url + quote(package_name, safe="@")

    async def get_version(
        self, package_name: str, target: VersionTarget = VersionTarget.LATEST
    ) -> str:
        """Get the latest or greatest published version of a package.

        Args:
            package_name: Name of the package
            target: LATEST for the highest stable release, GREATEST for the
                highest release including pre-releases

        Returns:
            Version string

        Raises:
            PackageNotFoundError: If the registry does not know the package
            RegistryError: If the request fails or nothing is published
        """
        metadata = await self._fetch_package_metadata(package_name)
        if not metadata:
            raise PackageNotFoundError(f"Package {package_name} not found")

        versions = list(metadata.get("versions", {}).keys())
        if target is VersionTarget.GREATEST:
            version = max_version(versions, include_prerelease=True)
        else:
            # dist-tags.latest is authoritative for the stable release
            version = metadata.get("dist-tags", {}).get("latest") or max_version(versions)

        if not version:
            raise RegistryError(f"No versions found for package {package_name}")
        return version

    async def _fetch_package_metadata(self, package_name: str) -> dict | None:
        """Fetch package metadata from the registry.

        Args:
            package_name: Name of the package

        Returns:
            Package metadata dict or None if not found
        """
        if package_name in self._cache:
            return self._cache[package_name]

        url = self.package_url(package_name)
        logger.debug("GET %s", url)

        try:
            if self._client is not None:
                response = await self._client.get(url)
            else:
                async with httpx.AsyncClient(timeout=self.timeout, follow_redirects=True) as client:
                    response = await client.get(url)

            if response.status_code == 404:
                return None
            response.raise_for_status()
            metadata = response.json()

        except httpx.TimeoutException as e:
            raise RegistryError(f"Timeout fetching metadata for {package_name}") from e
        except httpx.HTTPStatusError as e:
            raise RegistryError(f"HTTP error fetching {package_name}: {e}") from e
        except httpx.HTTPError as e:
            raise RegistryError(f"Network error fetching {package_name}: {e}") from e
        except ValueError as e:
            raise RegistryError(f"Invalid metadata for {package_name}: {e}") from e

        self._cache[package_name] = metadata
        return metadata
