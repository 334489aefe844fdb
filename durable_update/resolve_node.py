"""npm registry lookups of outdated dependencies."""

import asyncio
import logging
from typing import Protocol
from urllib.parse import quote

import httpx

from .errors import RegistryError
from .models import CATEGORY_KEYS, AvailableVersions, GatewayFlags
from .ranges import RangeError, greater_than_range, is_wildcard, parse_version, satisfies

logger = logging.getLogger(__name__)

DEFAULT_REGISTRY = "https://registry.npmjs.org"


class MetadataGateway(Protocol):
    """Source of available versions for a manifest's dependencies."""

    async def fetch_updates(self, manifest: dict, flags: GatewayFlags) -> dict[str, AvailableVersions]:
        ...


def manifest_key(flags: GatewayFlags) -> str:
    """Manifest section a set of gateway flags refers to."""
    if flags.is_dev:
        return CATEGORY_KEYS["dev"]
    if flags.is_optional:
        return CATEGORY_KEYS["optional"]
    return CATEGORY_KEYS["standard"]


def stable_version(metadata: dict) -> str | None:
    """Highest published version that is not a prerelease."""
    candidates = []
    for version_str in metadata.get("versions", {}):
        version = parse_version(version_str)
        if version is not None and not version.is_prerelease:
            candidates.append((version, version_str))
    if not candidates:
        return None
    return max(candidates)[1]


def is_outdated(required: str, available: AvailableVersions, flags: GatewayFlags) -> bool:
    """Decide whether a dependency's current range should be updated.

    Args:
        required: Range currently in the manifest
        available: Published stable and latest versions
        flags: Gateway flags for the category

    Returns:
        True when the targeted version lies outside the current range
    """
    if is_wildcard(required):
        return False

    target = available.stable if flags.prefer_stable else available.latest
    if not target:
        return False

    try:
        if satisfies(target, required, loose=flags.allow_loose):
            return False
        if flags.prefer_stable:
            return greater_than_range(target, required, loose=flags.allow_loose)
    except RangeError:
        logger.debug("'%s' is not a registry range, skipping", required)
        return False
    return True


class NpmRegistryGateway:
    """Gateway answering outdated-dependency queries from an npm registry."""

    def __init__(
        self,
        registry: str = DEFAULT_REGISTRY,
        timeout: float = 30.0,
        max_concurrency: int = 6,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize npm registry gateway.

        Args:
            registry: Base URL of the registry
            timeout: Request timeout in seconds
            max_concurrency: Maximum concurrent requests
            transport: Optional httpx transport, used by tests
        """
        self.registry = registry.rstrip("/")
        self.timeout = timeout
        self.max_concurrency = max_concurrency
        self.transport = transport
        self._cache: dict[str, dict] = {}
        self._semaphore = asyncio.Semaphore(max_concurrency)

    async def fetch_updates(self, manifest: dict, flags: GatewayFlags) -> dict[str, AvailableVersions]:
        """Find the outdated dependencies of one manifest section.

        Args:
            manifest: The parsed package.json object
            flags: Selects the section and how versions are targeted

        Returns:
            Mapping of package name to available versions, in manifest order

        Raises:
            RegistryError: If the registry cannot be queried
        """
        dependencies = manifest.get(manifest_key(flags)) or {}
        if not isinstance(dependencies, dict):
            raise RegistryError(f"'{manifest_key(flags)}' must be an object")

        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            lookups = [
                self._check_dependency(client, name, str(required), flags)
                for name, required in dependencies.items()
            ]
            results = await asyncio.gather(*lookups)

        return {name: available for name, available in results if available is not None}

    async def _check_dependency(
        self,
        client: httpx.AsyncClient,
        name: str,
        required: str,
        flags: GatewayFlags,
    ) -> tuple[str, AvailableVersions | None]:
        async with self._semaphore:
            metadata = await self._fetch_package_metadata(client, name)

        if metadata is None:
            if not flags.tolerate_not_found:
                raise RegistryError(f"Package {name} not found")
            logger.warning("package '%s' not found in registry, skipping", name)
            return name, None

        available = AvailableVersions(
            required=required,
            stable=stable_version(metadata),
            latest=metadata.get("dist-tags", {}).get("latest"),
        )
        if not is_outdated(required, available, flags):
            return name, None
        logger.debug("'%s' %s is outdated: %s", name, required, available)
        return name, available

    async def _fetch_package_metadata(self, client: httpx.AsyncClient, package_name: str) -> dict | None:
        """Fetch package metadata from the registry.

        Args:
            client: Open HTTP client
            package_name: Name of the package, scoped names included

        Returns:
            Package metadata dict or None if not found
        """
        if package_name in self._cache:
            return self._cache[package_name]

        url = f"{self.registry}/{quote(package_name, safe='@')}"

        try:
            response = await client.get(url, headers={"Accept": "application/json"})
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

        if not isinstance(metadata, dict):
            raise RegistryError(f"Invalid metadata for {package_name}: expected a JSON object")

        self._cache[package_name] = metadata
        return metadata
