"""Package source discovery from layered nuget.config files."""

import logging
import os
import sys
import xml.etree.ElementTree as ET
from pathlib import Path

from .models import PackageSource

logger = logging.getLogger(__name__)

NUGET_ORG = PackageSource("nuget.org", "https://api.nuget.org/v3/index.json")
CONFIG_FILENAME = "nuget.config"


def find_config_files(directory: Path | str) -> list[Path]:
    """Find nuget.config files from a directory up to the filesystem root.

    Args:
        directory: Directory to start from

    Returns:
        Config files ordered nearest first
    """
    found = []
    current = Path(directory).resolve()
    for folder in (current, *current.parents):
        try:
            candidates = sorted(
                entry for entry in folder.iterdir()
                if entry.name.lower() == CONFIG_FILENAME and entry.is_file()
            )
        except OSError:
            continue
        if candidates:
            found.append(candidates[0])
    return found


def user_config_path() -> Path:
    """Location of the per-user NuGet config."""
    if sys.platform == "win32":
        appdata = os.environ.get("APPDATA")
        if appdata:
            return Path(appdata) / "NuGet" / "NuGet.Config"
    return Path.home() / ".nuget" / "NuGet" / "NuGet.Config"


def machine_config_paths() -> list[Path]:
    """Machine-wide NuGet configs, in the order NuGet applies them."""
    if sys.platform == "win32":
        root = os.environ.get("ProgramFiles(x86)") or os.environ.get("ProgramFiles")
        if not root:
            return []
        folder = Path(root) / "NuGet" / "Config"
    else:
        folder = Path(os.environ.get("NUGET_COMMON_APPLICATION_DATA", "/etc/opt")) / "NuGet" / "Config"

    if not folder.is_dir():
        return []
    return sorted(folder.glob("*.config"))


def read_sources(directory: Path | str, include_global: bool = True) -> list[PackageSource]:
    """Resolve the enabled package sources that apply to a directory.

    Configs are applied from the farthest (machine-wide, then user, then the
    filesystem root) to the nearest. A ``<clear />`` drops everything inherited so
    far, and ``disabledPackageSources`` switches sources off by key. Keys are
    compared ignoring case.

    Args:
        directory: Directory whose configuration applies
        include_global: Also apply user-level and machine-wide configs

    Returns:
        Enabled sources in configuration order
    """
    files = list(reversed(find_config_files(directory)))
    if include_global:
        user = user_config_path()
        globals_ = [*machine_config_paths(), *([user] if user.is_file() else [])]
        files = globals_ + files

    if not files:
        logger.debug("No nuget.config found for %s, using %s", directory, NUGET_ORG.url)
        return [NUGET_ORG]

    sources: dict[str, PackageSource] = {}
    disabled: set[str] = set()
    for path in files:
        _apply_config(path, sources, disabled)

    resolved = [
        PackageSource(source.name, source.url, enabled=source.name.lower() not in disabled)
        for source in sources.values()
    ]
    return [source for source in resolved if source.enabled]


def _apply_config(path: Path, sources: dict[str, PackageSource], disabled: set[str]) -> None:
    try:
        root = ET.parse(path).getroot()
    except (ET.ParseError, OSError) as e:
        logger.warning("Ignoring unreadable NuGet config %s: %s", path, e)
        return

    section = root.find("packageSources")
    if section is not None:
        for child in section:
            if child.tag == "clear":
                sources.clear()
            elif child.tag == "add":
                key = child.get("key")
                value = child.get("value")
                if not key or not value:
                    continue
                sources[key.lower()] = PackageSource(key, _resolve_location(value, path.parent))
            elif child.tag == "remove":
                sources.pop(child.get("key", "").lower(), None)

    section = root.find("disabledPackageSources")
    if section is not None:
        for child in section:
            if child.tag == "clear":
                disabled.clear()
            elif child.tag == "add" and child.get("key"):
                if (child.get("value") or "").strip().lower() == "true":
                    disabled.add(child.get("key").lower())
                else:
                    disabled.discard(child.get("key").lower())


def _resolve_location(value: str, base: Path) -> str:
    value = os.path.expandvars(value.strip())
    if value.lower().startswith(("http://", "https://")):
        return value
    location = Path(value)
    if not location.is_absolute():
        location = base / location
    return str(location.resolve())
