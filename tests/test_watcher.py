from __future__ import annotations

import logging
import os
import threading
import time
from pathlib import Path

import pytest

from bundleinject.config import Settings
from bundleinject.watcher import DebounceTimer, ManifestWatcher


def _settings(root: Path, watch: int = 20) -> Settings:
    return Settings(manifest=root / "manifest.json", source=root / "index.html", dest=root / "out", watch=watch)


def _touch(path: Path, content: str, stamp: int) -> None:
    path.write_text(content, encoding="utf-8")
    os.utime(path, ns=(stamp, stamp))


def _wait_for(predicate, timeout: float = 2.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


def test_debounce_timer_collapses_bursts() -> None:
    calls: list[float] = []
    timer = DebounceTimer(0.05, lambda: calls.append(time.monotonic()))

    for _ in range(5):
        assert timer.schedule() is True
    assert timer.pending is True

    assert _wait_for(lambda: len(calls) == 1)
    time.sleep(0.1)
    assert len(calls) == 1
    assert timer.pending is False


def test_debounce_timer_shutdown_cancels_pending_run() -> None:
    calls: list[int] = []
    timer = DebounceTimer(0.05, lambda: calls.append(1))

    timer.schedule()
    timer.shutdown()
    time.sleep(0.1)

    assert calls == []
    assert timer.schedule() is False


def test_debounce_timer_rejects_negative_delay() -> None:
    with pytest.raises(ValueError):
        DebounceTimer(-1, lambda: None)


def test_poll_once_detects_manifest_changes_only(tmp_path: Path) -> None:
    manifest = tmp_path / "manifest.json"
    _touch(manifest, "{}", 1_000_000_000)
    calls: list[int] = []
    watcher = ManifestWatcher(_settings(tmp_path), lambda: calls.append(1))
    try:
        assert watcher.poll_once() is False

        (tmp_path / "other.json").write_text("{}", encoding="utf-8")
        assert watcher.poll_once() is False

        _touch(manifest, '{"main.js": "main.1.js"}', 2_000_000_000)
        assert watcher.poll_once() is True
        assert _wait_for(lambda: calls == [1])
    finally:
        watcher.stop()


def test_poll_once_notices_deletion_and_creation(tmp_path: Path) -> None:
    manifest = tmp_path / "manifest.json"
    watcher = ManifestWatcher(_settings(tmp_path, watch=1000), lambda: None)
    try:
        _touch(manifest, "{}", 1_000_000_000)
        assert watcher.poll_once() is True

        manifest.unlink()
        assert watcher.poll_once() is True
        assert watcher.pending is True
    finally:
        watcher.stop()
    assert watcher.pending is False


def test_failing_cycle_is_logged_and_watching_continues(
    tmp_path: Path,
    caplog: pytest.LogCaptureFixture,
) -> None:
    manifest = tmp_path / "manifest.json"
    _touch(manifest, "{}", 1_000_000_000)
    calls: list[int] = []

    def on_change() -> None:
        calls.append(1)
        if len(calls) == 1:
            raise RuntimeError("boom")

    watcher = ManifestWatcher(_settings(tmp_path), on_change)
    try:
        with caplog.at_level(logging.ERROR, logger="bundleinject.watcher"):
            _touch(manifest, '{"a.js": "1.js"}', 2_000_000_000)
            watcher.poll_once()
            assert _wait_for(lambda: len(calls) == 1)

            _touch(manifest, '{"a.js": "2.js"}', 3_000_000_000)
            watcher.poll_once()
            assert _wait_for(lambda: len(calls) == 2)

        assert "boom" in caplog.text
    finally:
        watcher.stop()


def test_background_polling_runs_callback_once_per_burst(tmp_path: Path) -> None:
    manifest = tmp_path / "manifest.json"
    _touch(manifest, "{}", 1_000_000_000)
    fired = threading.Event()
    calls: list[int] = []

    def on_change() -> None:
        calls.append(1)
        fired.set()

    with ManifestWatcher(_settings(tmp_path, watch=200), on_change, poll_interval=0.01) as watcher:
        assert watcher.running is True
        for stamp in (2, 3, 4):
            _touch(manifest, f'{{"a.js": "{stamp}.js"}}', stamp * 1_000_000_000)
            time.sleep(0.03)
        assert fired.wait(2.0)
        time.sleep(0.3)

    assert calls == [1]
    assert watcher.running is False


def test_invalid_poll_interval_is_rejected(tmp_path: Path) -> None:
    with pytest.raises(ValueError):
        ManifestWatcher(_settings(tmp_path), lambda: None, poll_interval=0)


def test_poll_once_detects_same_size_replacement_within_one_tick(tmp_path: Path) -> None:
    manifest = tmp_path / "manifest.json"
    _touch(manifest, '{"a.js": "1.js"}', 1_000_000_000)
    watcher = ManifestWatcher(_settings(tmp_path, watch=1000), lambda: None)
    try:
        replacement = tmp_path / "manifest.json.tmp"
        _touch(replacement, '{"a.js": "2.js"}', 1_000_000_000)
        # Keep the old inode alive so the replacement cannot reuse it.
        keep = tmp_path / "manifest.old"
        os.link(manifest, keep)
        os.replace(replacement, manifest)

        assert watcher.poll_once() is True
    finally:
        watcher.stop()
