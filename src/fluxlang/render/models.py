"""Pydantic models for the render output; their camelCase JSON dump is the Render IR contract."""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ..version import IR_VERSION

Number = Union[int, float]


class _RenderModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AssetSource(_RenderModel):
    type: str  # "asset", "bank" or "material"
    name: str


class RenderAsset(_RenderModel):
    id: str
    name: str
    kind: str
    path: str
    tags: List[str] = Field(default_factory=list)
    weight: Number = 1
    meta: Optional[Dict[str, Any]] = None
    source: Optional[AssetSource] = None


class RenderGridCell(_RenderModel):
    id: str
    row: int
    col: int
    tags: List[str] = Field(default_factory=list)
    content: Optional[Any] = None
    media_id: Optional[str] = None
    dynamic: Optional[Any] = None
    density: Optional[Any] = None
    salience: Optional[Any] = None


class RenderGridData(_RenderModel):
    name: str
    rows: int
    cols: int
    cells: List[RenderGridCell] = Field(default_factory=list)


class RenderStyleDefinition(_RenderModel):
    name: str
    class_name: str
    props: Dict[str, Any] = Field(default_factory=dict)


class RenderNodeStyle(_RenderModel):
    name: Optional[str] = None
    role: Optional[str] = None
    class_name: Optional[str] = None
    inline: Optional[Dict[str, Any]] = None


class RenderNode(_RenderModel):
    id: str
    kind: str
    props: Dict[str, Any] = Field(default_factory=dict)
    children: List["RenderNode"] = Field(default_factory=list)
    grid: Optional[RenderGridData] = None
    style: Optional[RenderNodeStyle] = None


class RenderDocument(_RenderModel):
    meta: Dict[str, Any] = Field(default_factory=dict)
    seed: int = 0
    time: Number = 0
    docstep: Number = 0
    page_config: Optional[Dict[str, Any]] = None
    assets: List[RenderAsset] = Field(default_factory=list)
    body: List[RenderNode] = Field(default_factory=list)


class SlotReserve(_RenderModel):
    kind: str  # "fixed" or "fixedWidth"
    width: Number
    height: Optional[Number] = None
    units: str


class SlotInfo(_RenderModel):
    reserve: Optional[SlotReserve] = None
    fit: Optional[str] = None


class RenderNodeCounters(_RenderModel):
    section: Optional[str] = None
    figure: Optional[int] = None
    table: Optional[int] = None
    footnote: Optional[int] = None
    label: Optional[str] = None
    ref: Optional[str] = None

    def is_empty(self) -> bool:
        return not any(value is not None for value in self.model_dump().values())


class RenderNodeIR(_RenderModel):
    node_id: str
    id: str
    kind: str
    props: Dict[str, Any] = Field(default_factory=dict)
    children: List["RenderNodeIR"] = Field(default_factory=list)
    refresh: Dict[str, Any]
    transition: Optional[Dict[str, Any]] = None
    slot: Optional[SlotInfo] = None
    grid: Optional[RenderGridData] = None
    style: Optional[RenderNodeStyle] = None
    counters: Optional[RenderNodeCounters] = None


class RenderDocumentIR(_RenderModel):
    ir_version: str = IR_VERSION
    meta: Dict[str, Any] = Field(default_factory=dict)
    seed: int = 0
    time: Number = 0
    docstep: Number = 0
    page_config: Optional[Dict[str, Any]] = None
    assets: List[RenderAsset] = Field(default_factory=list)
    body: List[RenderNodeIR] = Field(default_factory=list)
    theme: Optional[str] = None
    styles: List[RenderStyleDefinition] = Field(default_factory=list)

    def to_json(self, indent: Optional[int] = 2) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True, indent=indent)


RenderNode.model_rebuild()
RenderNodeIR.model_rebuild()
