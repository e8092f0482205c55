"""Package registry clients for NuGet V3 feeds and local folders."""

import logging
from pathlib import Path

import httpx

from .models import AlternatePackage, Deprecation, PackageMetadata, PackageSource
from .versioning import PackageVersion, parse_range_minimum

logger = logging.getLogger(__name__)

USER_AGENT = "propsbump/0.1.0"

VERSIONS_RESOURCE = "PackageBaseAddress/3.0.0"
REGISTRATION_RESOURCES = (
    "RegistrationsBaseUrl/3.6.0",
    "RegistrationsBaseUrl/3.4.0",
    "RegistrationsBaseUrl/Versioned",
    "RegistrationsBaseUrl/3.0.0-rc",
    "RegistrationsBaseUrl/3.0.0-beta",
    "RegistrationsBaseUrl",
)


class RegistryError(Exception):
    """Raised when a registry query fails."""

    def __init__(self, message: str, source: str | None = None, package: str | None = None):
        super().__init__(message)
        self.source = source
        self.package = package


class RegistryClient:
    """Client for one NuGet V3 feed.

    The service index is fetched once by ``connect``. Registration indexes are kept
    per package so repeated metadata lookups for the same package reuse one download.
    """

    def __init__(self, source: PackageSource, http: httpx.AsyncClient):
        self.source = source
        self.http = http
        self.versions_url: str | None = None
        self.registrations_url: str | None = None
        self._registrations: dict[str, list[dict]] = {}
        self._pages: dict[str, list[dict]] = {}

    async def connect(self) -> "RegistryClient":
        """Fetch the service index and resolve the resources this client uses."""
        index = await self._get_json(self.source.url)
        if not index or "resources" not in index:
            raise RegistryError(
                f"{self.source.url} is not a NuGet V3 service index", source=self.source.url
            )

        resources: dict[str, str] = {}
        for resource in self._dicts(index["resources"], self.source.url):
            types = resource.get("@type")
            for resource_type in types if isinstance(types, list) else [types]:
                if isinstance(resource_type, str) and isinstance(resource.get("@id"), str):
                    resources.setdefault(resource_type, resource["@id"])

        self.versions_url = _with_slash(resources.get(VERSIONS_RESOURCE))
        self.registrations_url = next(
            (_with_slash(resources[name]) for name in REGISTRATION_RESOURCES if name in resources),
            None,
        )
        if self.registrations_url is None:
            raise RegistryError(
                f"{self.source.url} does not expose package metadata", source=self.source.url
            )

        logger.debug("Connected to %s", self.source.url)
        return self

    async def get_all_versions(self, package: str) -> list[PackageVersion]:
        """List every published version of a package, listed or not.

        Args:
            package: Package identifier

        Returns:
            Parsed versions, empty when the package is unknown to this feed
        """
        if self.versions_url is None:
            leaves = await self._registration_leaves(package)
            texts = [self._catalog_entry(leaf, package).get("version") for leaf in leaves]
        else:
            data = await self._get_json(f"{self.versions_url}{package.lower()}/index.json", package)
            texts = data.get("versions", []) if data else []
            if not isinstance(texts, list):
                raise self._malformed(f"{self.versions_url}{package.lower()}/index.json", package)

        versions = []
        for text in texts:
            version = PackageVersion.try_parse(text)
            if version is None:
                logger.debug("Ignoring unparseable version %r of %s", text, package)
                continue
            versions.append(version)
        return versions

    async def get_metadata(self, package: str, version: PackageVersion) -> PackageMetadata | None:
        """Fetch metadata for one version of a package.

        Args:
            package: Package identifier
            version: Version to look up

        Returns:
            Metadata, or None when this feed does not have that version
        """
        for page in await self._registration_pages(package):
            lower = PackageVersion.try_parse(page.get("lower"))
            upper = PackageVersion.try_parse(page.get("upper"))
            if (lower and version < lower) or (upper and version > upper):
                continue

            for leaf in await self._page_items(page, package):
                entry = self._catalog_entry(leaf, package)
                if PackageVersion.try_parse(entry.get("version")) == version:
                    return _metadata_from_catalog(package, entry, self.source.url)

        return None

    async def _registration_pages(self, package: str) -> list[dict]:
        key = package.lower()
        if key not in self._registrations:
            url = f"{self.registrations_url}{key}/index.json"
            data = await self._get_json(url, package)
            self._registrations[key] = self._dicts(data.get("items", []), url, package) if data else []
        return self._registrations[key]

    async def _registration_leaves(self, package: str) -> list[dict]:
        leaves = []
        for page in await self._registration_pages(package):
            leaves.extend(await self._page_items(page, package))
        return leaves

    async def _page_items(self, page: dict, package: str) -> list[dict]:
        if "items" in page:
            return self._dicts(page["items"], self.source.url, package)

        url = page.get("@id")
        if not url:
            return []
        if url not in self._pages:
            data = await self._get_json(url, package)
            self._pages[url] = self._dicts(data.get("items", []), url, package) if data else []
        return self._pages[url]

    async def _get_json(self, url: str, package: str | None = None) -> dict | None:
        try:
            response = await self.http.get(url)
            if response.status_code == 404:
                return None
            response.raise_for_status()
            data = response.json()
        except httpx.TimeoutException as e:
            raise RegistryError(
                f"Timeout fetching {url}", source=self.source.url, package=package
            ) from e
        except httpx.HTTPStatusError as e:
            raise RegistryError(
                f"HTTP {e.response.status_code} fetching {url}", source=self.source.url, package=package
            ) from e
        except httpx.HTTPError as e:
            raise RegistryError(
                f"Network error fetching {url}: {e}", source=self.source.url, package=package
            ) from e
        except ValueError as e:
            raise RegistryError(
                f"Malformed response from {url}", source=self.source.url, package=package
            ) from e

        if not isinstance(data, dict):
            raise self._malformed(url, package)
        return data

    def _malformed(self, url: str, package: str | None = None) -> RegistryError:
        return RegistryError(f"Malformed response from {url}", source=self.source.url, package=package)

    def _dicts(self, items, url: str, package: str | None = None) -> list[dict]:
        if not isinstance(items, list) or not all(isinstance(item, dict) for item in items):
            raise self._malformed(url, package)
        return items

    def _catalog_entry(self, leaf: dict, package: str) -> dict:
        entry = leaf.get("catalogEntry") or {}
        if not isinstance(entry, dict):
            raise self._malformed(self.source.url, package)
        return entry


class LocalFolderClient:
    """Client for a folder feed.

    Supports the flat layout (``Package.1.0.0.nupkg``) and the hierarchical layout
    (``package/1.0.0/``). Every version found is treated as listed.
    """

    def __init__(self, source: PackageSource):
        self.source = source
        self.root = Path(source.url)

    async def connect(self) -> "LocalFolderClient":
        if not self.root.is_dir():
            raise RegistryError(f"Package folder {self.root} does not exist", source=self.source.url)
        return self

    async def get_all_versions(self, package: str) -> list[PackageVersion]:
        key = package.lower()
        versions = set()

        folder = self.root / key
        if folder.is_dir():
            for child in folder.iterdir():
                version = PackageVersion.try_parse(child.name)
                if child.is_dir() and version is not None:
                    versions.add(version)

        prefix = f"{key}."
        for path in self.root.glob("*.nupkg"):
            name = path.name.lower()
            if not name.startswith(prefix) or name.endswith(".symbols.nupkg"):
                continue
            version = PackageVersion.try_parse(path.name[len(prefix) : -len(".nupkg")])
            if version is not None:
                versions.add(version)

        return sorted(versions)

    async def get_metadata(self, package: str, version: PackageVersion) -> PackageMetadata | None:
        if version not in await self.get_all_versions(package):
            return None
        return PackageMetadata(package=package, version=version, source=self.source.url)


class ClientCache:
    """Connected registry clients, one per source, for the lifetime of a run."""

    def __init__(self, timeout: float = 30.0, http: httpx.AsyncClient | None = None):
        self.http = http or httpx.AsyncClient(
            timeout=timeout,
            follow_redirects=True,
            headers={"User-Agent": USER_AGENT},
        )
        self._clients: dict[str, RegistryClient | LocalFolderClient] = {}
        self._failures: dict[str, RegistryError] = {}

    async def get(self, source: PackageSource) -> RegistryClient | LocalFolderClient:
        """Return the client for a source, connecting on first use.

        A source that fails to connect keeps failing for the rest of the run without
        being contacted again.
        """
        if source.url in self._failures:
            raise self._failures[source.url]

        client = self._clients.get(source.url)
        if client is None:
            try:
                if source.is_local:
                    client = await LocalFolderClient(source).connect()
                else:
                    client = await RegistryClient(source, self.http).connect()
            except RegistryError as e:
                self._failures[source.url] = e
                raise
            self._clients[source.url] = client
        return client

    async def aclose(self) -> None:
        await self.http.aclose()

    async def __aenter__(self) -> "ClientCache":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()


def _metadata_from_catalog(package: str, entry: dict, source: str) -> PackageMetadata:
    deprecation = None
    raw = entry.get("deprecation")
    if isinstance(raw, dict):
        alternate = None
        raw_alternate = raw.get("alternatePackage")
        if isinstance(raw_alternate, dict) and raw_alternate.get("id"):
            alternate = AlternatePackage(
                package=raw_alternate["id"],
                min_version=parse_range_minimum(raw_alternate.get("range")),
            )
        deprecation = Deprecation(
            reasons=list(raw.get("reasons") or []),
            message=raw.get("message"),
            alternate=alternate,
        )

    return PackageMetadata(
        package=entry.get("id") or package,
        version=PackageVersion.parse(entry["version"]),
        listed=entry.get("listed", True) is not False,
        deprecation=deprecation,
        source=source,
    )


def _with_slash(url: str | None) -> str | None:
    if url is None:
        return None
    return url if url.endswith("/") else url + "/"
