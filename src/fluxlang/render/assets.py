"""
Asset catalog: inline assets, file-system banks and materials, resolved once
per document runtime.
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Protocol

from .. import ast_nodes
from ..serialize import material_midi_to_dict, material_score_to_dict, material_video_to_dict
from ..values import is_finite_number
from .hashing import stable_hash
from .models import AssetSource, RenderAsset

logger = logging.getLogger(__name__)


class AssetResolver(Protocol):
    """Lists the files of a bank, relative to its root."""

    def __call__(self, bank: ast_nodes.AssetBank, cwd: Optional[str]) -> List[str]:
        ...


@dataclass
class ResolvedAsset:
    id: str
    name: str
    kind: str
    path: str
    tags: List[str] = field(default_factory=list)
    weight: Any = 1
    meta: Optional[Dict[str, Any]] = None
    source_type: Optional[str] = None
    source_name: Optional[str] = None
    strategy: Optional[str] = None

    def to_ref(self) -> Dict[str, Any]:
        return {"kind": "asset", "id": self.id, "path": self.path, "name": self.name, "assetKind": self.kind}

    def to_render(self) -> RenderAsset:
        source = None
        if self.source_type is not None:
            source = AssetSource(type=self.source_type, name=self.source_name or "")
        return RenderAsset(
            id=self.id,
            name=self.name,
            kind=self.kind,
            path=self.path,
            tags=list(self.tags),
            weight=self.weight,
            meta=sort_meta(self.meta) if self.meta is not None else None,
            source=source,
        )


def make_asset_id(prefix: str, name: str, kind: str, path: str) -> str:
    return f"{prefix}_{stable_hash(prefix, name, kind, path):08x}"


def normalize_path(value: Optional[str]) -> str:
    if not value:
        return ""
    value = value.replace(os.sep, "/")
    value = re.sub(r"/+", "/", value)
    if value.startswith("./"):
        value = value[2:]
    return value


def sort_meta(meta: Dict[str, Any]) -> Dict[str, Any]:
    return {key: meta[key] for key in sorted(meta)}


def glob_to_regex(pattern: str) -> "re.Pattern[str]":
    """Compile a bank include glob: ``**`` spans directories, ``*`` and ``?`` do not."""
    parts = ["^"]
    i = 0
    while i < len(pattern):
        ch = pattern[i]
        if ch == "*":
            if pattern[i + 1 : i + 2] == "*":
                parts.append(".*")
                i += 2
            else:
                parts.append("[^/]*")
                i += 1
            continue
        if ch == "?":
            parts.append("[^/]")
        else:
            parts.append(re.escape(ch))
        i += 1
    parts.append("$")
    return re.compile("".join(parts))


def default_asset_resolver(bank: ast_nodes.AssetBank, cwd: Optional[str]) -> List[str]:
    root = os.path.abspath(os.path.join(cwd or os.getcwd(), bank.root))
    if not os.path.isdir(root):
        logger.debug("Asset bank %s: root %s does not exist", bank.name, root)
        return []
    matcher = glob_to_regex(normalize_path(bank.include))
    matches: List[str] = []
    for dirpath, _dirs, names in os.walk(root):
        for name in names:
            rel = normalize_path(os.path.relpath(os.path.join(dirpath, name), root))
            if matcher.match(rel):
                matches.append(rel)
    return sorted(matches)


def build_asset_catalog(
    doc: ast_nodes.FluxDocument,
    cwd: Optional[str] = None,
    resolver: Optional[AssetResolver] = None,
) -> List[ResolvedAsset]:
    resolve = resolver or default_asset_resolver
    assets: List[ResolvedAsset] = []
    if doc.assets is not None:
        assets.extend(_materialize_definition(asset) for asset in doc.assets.assets)
        for bank in doc.assets.banks:
            root = normalize_path(bank.root)
            for entry in resolve(bank, cwd):
                rel = normalize_path(entry)
                full = f"{root}/{rel}" if root else rel
                assets.append(_materialize_bank_entry(bank, rel, full))
    if doc.materials is not None:
        assets.extend(_materialize_material(material) for material in doc.materials.materials)
    if assets:
        logger.info("Asset catalog built with %s assets", len(assets))
    return assets


def _materialize_definition(asset: ast_nodes.AssetDefinition) -> ResolvedAsset:
    path = normalize_path(asset.path)
    return ResolvedAsset(
        id=make_asset_id("asset", asset.name, asset.kind, path),
        name=asset.name,
        kind=asset.kind,
        path=path,
        tags=list(asset.tags),
        weight=asset.weight if is_finite_number(asset.weight) else 1,
        meta=sort_meta(asset.meta) if asset.meta else None,
        source_type="asset",
        source_name=asset.name,
    )


def _materialize_bank_entry(bank: ast_nodes.AssetBank, rel: str, full: str) -> ResolvedAsset:
    return ResolvedAsset(
        id=make_asset_id("bank", bank.name, bank.kind, rel),
        name=rel,
        kind=bank.kind,
        path=full,
        tags=list(bank.tags),
        weight=1,
        source_type="bank",
        source_name=bank.name,
        strategy=bank.strategy,
    )


def _materialize_material(material: ast_nodes.Material) -> ResolvedAsset:
    meta: Dict[str, Any] = {
        "label": material.label,
        "description": material.description,
        "color": material.color,
    }
    if material.score is not None:
        meta["score"] = material_score_to_dict(material.score)
    if material.midi is not None:
        meta["midi"] = material_midi_to_dict(material.midi)
    if material.video is not None:
        meta["video"] = material_video_to_dict(material.video)
    return ResolvedAsset(
        id=make_asset_id("material", material.name, "material", material.name),
        name=material.name,
        kind="material",
        path="",
        tags=list(material.tags),
        weight=1,
        meta=meta,
        source_type="material",
        source_name=material.name,
    )


def filter_assets(assets: List[ResolvedAsset], tags: List[str], exclude_tags: List[str]) -> List[ResolvedAsset]:
    result = []
    for asset in assets:
        if tags and not all(tag in asset.tags for tag in tags):
            continue
        if exclude_tags and any(tag in asset.tags for tag in exclude_tags):
            continue
        result.append(asset)
    return result


def pick_by_strategy(candidates: List[ResolvedAsset], strategy: str, rng: Callable[[], float]) -> ResolvedAsset:
    if strategy == "weighted":
        weights = [asset.weight if is_finite_number(asset.weight) else 1 for asset in candidates]
        total = sum(weights)
        if total <= 0:
            return candidates[int(rng() * len(candidates))]
        roll = rng() * total
        for asset, weight in zip(candidates, weights):
            roll -= weight
            if roll <= 0:
                return asset
        return candidates[-1]
    return candidates[int(rng() * len(candidates))]


def assets_to_render(assets: List[ResolvedAsset]) -> List[RenderAsset]:
    return [asset.to_render() for asset in sorted(assets, key=lambda item: item.id)]
