"""In-memory record of the manifest last applied to each destination."""

from __future__ import annotations

from typing import Dict, Mapping


class ManifestCache:
    """Track applied manifests so unchanged destinations are not rewritten.

    The cache lives as long as its owner (a single CLI run or a watcher) and is
    never persisted.
    """

    def __init__(self) -> None:
        self._entries: Dict[str, dict[str, str]] = {}

    def previous(self, dest_name: str) -> dict[str, str]:
        return dict(self._entries.get(dest_name, {}))

    def is_current(self, dest_name: str, manifest: Mapping[str, str]) -> bool:
        """Return True when ``manifest`` carries the same values, in order, as the cached one."""
        cached = self._entries.get(dest_name, {})
        return list(cached.values()) == list(manifest.values())

    def store(self, dest_name: str, manifest: Mapping[str, str]) -> None:
        self._entries[dest_name] = dict(manifest)

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, dest_name: object) -> bool:
        return dest_name in self._entries

    def __len__(self) -> int:
        return len(self._entries)
