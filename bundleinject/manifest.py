"""Loading and per-entry grouping of bundler manifests.

A manifest maps chunk names to emitted filenames, for example::

    {
        "vendors~index~about.js": "vendors~index~about.3f2a.js",
        "index.js": "index.91bc.js",
        "about.js": "about.77d0.js"
    }

In multi-entry mode each entry (``index``, ``about``) becomes its own page and
receives every chunk whose key mentions it, shared vendor chunks included.
"""

from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Mapping

from .config import GroupingMode

VENDORS_ENTRY = "vendors"

_ENTRY_PATTERN = re.compile(r"^([^~.$]+)")
_STEM_PATTERN = re.compile(r"^([^.$]*)")


class ManifestError(Exception):
    """Base error for manifest problems."""


class ManifestNotFoundError(ManifestError, FileNotFoundError):
    """Raised when the configured manifest file does not exist."""


class ManifestFormatError(ManifestError, ValueError):
    """Raised when a manifest is not a flat JSON object of strings."""


def load_manifest(path: Path) -> dict[str, str]:
    """Read a manifest file, preserving key order."""
    if not path.is_file():
        raise ManifestNotFoundError(f"manifest file not found: {path}")

    try:
        with path.open("r", encoding="utf-8") as handle:
            payload = json.load(handle)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise ManifestFormatError(f"Manifest {path} is not valid JSON: {exc}") from exc

    if not isinstance(payload, dict):
        raise ManifestFormatError(f"Manifest {path} should define a JSON object at its root.")

    manifest: dict[str, str] = {}
    for key, value in payload.items():
        if not isinstance(value, str):
            raise ManifestFormatError(
                f"Manifest {path} maps '{key}' to a {type(value).__name__}; expected a filename string."
            )
        manifest[key] = value
    return manifest


def entry_name(key: str) -> str:
    """Return the entry a chunk key belongs to: its text before the first ``~``, ``.`` or ``$``."""
    match = _ENTRY_PATTERN.match(key)
    if match is None:
        raise ManifestFormatError(f"Manifest key '{key}' does not start with an entry name.")
    return match.group(1)


def group_entries(
    manifest: Mapping[str, str],
    mode: GroupingMode = GroupingMode.SUBSTRING,
) -> dict[str, dict[str, str]]:
    """Split a manifest into one sub-manifest per entry.

    ``vendors`` is never an entry of its own. In ``SUBSTRING`` mode a key joins
    every entry whose name it contains anywhere, so an entry named ``foo``
    also collects ``foobar.js``. ``SEGMENT`` mode only matches whole
    ``~``-separated segments of the key.
    """
    names: list[str] = []
    for key in manifest:
        name = entry_name(key)
        if name == VENDORS_ENTRY or name in names:
            continue
        names.append(name)

    grouped: dict[str, dict[str, str]] = {name: {} for name in names}
    for key, value in manifest.items():
        for name in names:
            if _belongs_to(key, name, mode):
                grouped[name][key] = value
    return grouped


def _belongs_to(key: str, name: str, mode: GroupingMode) -> bool:
    if mode is GroupingMode.SEGMENT:
        stem_match = _STEM_PATTERN.match(key)
        stem = stem_match.group(1) if stem_match else key
        return name in stem.split("~")
    return name in key
