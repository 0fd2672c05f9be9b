from __future__ import annotations

from bundleinject.state import ManifestCache


def test_unknown_destination_has_empty_previous_manifest() -> None:
    cache = ManifestCache()

    assert cache.previous("index.html") == {}
    assert "index.html" not in cache
    assert cache.is_current("index.html", {}) is True
    assert cache.is_current("index.html", {"main.js": "main.js"}) is False


def test_store_replaces_entry_wholesale() -> None:
    cache = ManifestCache()
    cache.store("index.html", {"main.js": "a.js", "main.css": "a.css"})
    cache.store("index.html", {"main.js": "b.js"})

    assert cache.previous("index.html") == {"main.js": "b.js"}
    assert len(cache) == 1


def test_is_current_compares_values_in_order() -> None:
    cache = ManifestCache()
    cache.store("index.html", {"a.js": "1.js", "b.js": "2.js"})

    assert cache.is_current("index.html", {"a.js": "1.js", "b.js": "2.js"})
    assert not cache.is_current("index.html", {"b.js": "2.js", "a.js": "1.js"})
    assert not cache.is_current("index.html", {"a.js": "1.js"})


def test_stored_manifest_is_a_copy() -> None:
    cache = ManifestCache()
    manifest = {"main.js": "a.js"}
    cache.store("index.html", manifest)
    manifest["main.js"] = "b.js"

    assert cache.previous("index.html") == {"main.js": "a.js"}

    cache.clear()
    assert len(cache) == 0
