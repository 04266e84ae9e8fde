"""
Render pipeline: resolves a document's content tree into the Render IR.
"""

from .assets import AssetResolver, ResolvedAsset, build_asset_catalog, default_asset_resolver, glob_to_regex
from .hashing import mulberry32, stable_hash
from .models import (
    RenderAsset,
    RenderDocument,
    RenderDocumentIR,
    RenderGridCell,
    RenderGridData,
    RenderNode,
    RenderNodeCounters,
    RenderNodeIR,
    RenderNodeStyle,
    RenderStyleDefinition,
    SlotInfo,
    SlotReserve,
)
from .pipeline import (
    DocumentRuntime,
    DocumentRuntimeIR,
    create_document_runtime,
    create_document_runtime_ir,
    render_document,
    render_document_ir,
)
from .styles import StyleRegistry, build_style_registry

__all__ = [
    "AssetResolver",
    "DocumentRuntime",
    "DocumentRuntimeIR",
    "RenderAsset",
    "RenderDocument",
    "RenderDocumentIR",
    "RenderGridCell",
    "RenderGridData",
    "RenderNode",
    "RenderNodeCounters",
    "RenderNodeIR",
    "RenderNodeStyle",
    "RenderStyleDefinition",
    "ResolvedAsset",
    "SlotInfo",
    "SlotReserve",
    "StyleRegistry",
    "build_asset_catalog",
    "build_style_registry",
    "create_document_runtime",
    "create_document_runtime_ir",
    "default_asset_resolver",
    "glob_to_regex",
    "mulberry32",
    "render_document",
    "render_document_ir",
    "stable_hash",
]
