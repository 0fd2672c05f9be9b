"""Apply a manifest to the template in single- or multi-entry mode."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping

from .config import Settings
from .injector import InjectedAsset, inject_assets
from .manifest import group_entries, load_manifest
from .state import ManifestCache

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class DestinationResult:
    """Outcome for one generated HTML file."""

    name: str
    path: Path
    assets: list[InjectedAsset] = field(default_factory=list)
    skipped: bool = False


@dataclass(slots=True)
class ProcessResult:
    """Outcome of one pass over the manifest."""

    manifest_path: Path
    destinations: list[DestinationResult] = field(default_factory=list)

    @property
    def written(self) -> list[DestinationResult]:
        return [result for result in self.destinations if not result.skipped]

    @property
    def skipped(self) -> list[DestinationResult]:
        return [result for result in self.destinations if result.skipped]


def process(settings: Settings, cache: ManifestCache) -> ProcessResult:
    """Load the manifest and write every destination it calls for.

    Raises ``ManifestNotFoundError`` before touching any file when the manifest
    is missing, and ``ManifestFormatError`` when it cannot be parsed.
    """
    manifest = load_manifest(settings.manifest)
    result = ProcessResult(manifest_path=settings.manifest)

    if settings.multi:
        for name, entry_manifest in group_entries(manifest, settings.grouping).items():
            result.destinations.append(apply_manifest(entry_manifest, settings, f"{name}.html", cache))
    else:
        result.destinations.append(
            apply_manifest(manifest, settings, settings.single_destination_name, cache)
        )
    return result


def apply_manifest(
    manifest: Mapping[str, str],
    settings: Settings,
    dest_name: str,
    cache: ManifestCache,
) -> DestinationResult:
    """Inject ``manifest`` into the template and write ``dest_name`` unless the cache says it is current."""
    dest_path = settings.output_dir / dest_name
    if cache.is_current(dest_name, manifest):
        logger.debug("Manifest unchanged for %s; skipping write.", dest_name)
        return DestinationResult(name=dest_name, path=dest_path, skipped=True)

    template = read_template(settings.source)
    injection = inject_assets(manifest, template, previous=cache.previous(dest_name))
    write_output(dest_path, injection.text)
    cache.store(dest_name, manifest)
    return DestinationResult(name=dest_name, path=dest_path, assets=injection.assets)


def read_template(path: Path) -> str:
    # newline="" keeps the template's line endings byte for byte.
    with path.open("r", encoding="utf-8", newline="") as handle:
        return handle.read()


def write_output(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8", newline="") as handle:
        handle.write(text)
    return path
