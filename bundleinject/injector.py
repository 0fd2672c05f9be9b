"""Splice stylesheet and script tags for manifest assets into an HTML template."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Mapping

logger = logging.getLogger(__name__)

HEAD_MARKER = "<!-- HEAD BUNDLES -->"
MAIN_MARKER = "<!-- MAIN BUNDLES -->"
TAG_SEPARATOR = "\n    "


class AssetCategory(str, Enum):
    """Where and how a manifest asset is referenced in the page."""

    CSS = "css"
    VENDOR_JS = "vendorjs"
    MAIN_JS = "mainjs"


@dataclass(slots=True)
class InjectedAsset:
    """One tag written into the template."""

    key: str
    value: str
    category: AssetCategory
    changed: bool


@dataclass(slots=True)
class InjectionResult:
    """Template text after injection plus the assets that produced tags."""

    text: str
    assets: list[InjectedAsset] = field(default_factory=list)

    @property
    def changed_keys(self) -> list[str]:
        return [asset.key for asset in self.assets if asset.changed]


_MARKERS: dict[AssetCategory, str] = {
    AssetCategory.CSS: HEAD_MARKER,
    AssetCategory.VENDOR_JS: HEAD_MARKER,
    AssetCategory.MAIN_JS: MAIN_MARKER,
}


def classify_asset(key: str, value: str) -> AssetCategory | None:
    """Classify a manifest entry; ``None`` means the entry gets no tag."""
    if value.endswith(".css"):
        return AssetCategory.CSS
    if value.endswith(".js") and "vendor" in key:
        return AssetCategory.VENDOR_JS
    if value.endswith(".js"):
        return AssetCategory.MAIN_JS
    return None


def render_tag(category: AssetCategory, value: str) -> str:
    """Return the HTML tag referencing ``value`` from the site root."""
    if category is AssetCategory.CSS:
        return f'<link rel="stylesheet" type="text/css" href="/{value}">'
    return f'<script type="text/javascript" src="/{value}"></script>'


def insert_asset(template: str, value: str, category: AssetCategory | str) -> str:
    """Insert the tag for ``value`` directly above the marker for ``category``.

    The marker stays in place, so repeated calls stack tags above it in call
    order. A template without the marker gets the tag at offset 0.
    """
    try:
        category = AssetCategory(category)
    except ValueError:
        logger.error("Unknown asset type '%s' for %s; skipping.", category, value)
        return template

    marker = _MARKERS[category]
    point = template.find(marker)
    if point < 0:
        logger.warning("Marker %s not found in template; inserting %s at the start.", marker, value)
        point = 0

    return template[:point] + render_tag(category, value) + TAG_SEPARATOR + template[point:]


def inject_assets(
    manifest: Mapping[str, str],
    template: str,
    previous: Mapping[str, str] | None = None,
) -> InjectionResult:
    """Apply every eligible manifest entry to ``template`` in manifest order.

    ``previous`` is the manifest applied last time; entries whose value differs
    from it are flagged as changed.
    """
    previous = previous or {}
    result = InjectionResult(text=template)
    for key, value in manifest.items():
        category = classify_asset(key, value)
        if category is None:
            logger.debug("Skipping %s (%s): not a css/js asset.", key, value)
            continue
        result.text = insert_asset(result.text, value, category)
        result.assets.append(
            InjectedAsset(
                key=key,
                value=value,
                category=category,
                changed=previous.get(key) != value,
            )
        )
    return result
