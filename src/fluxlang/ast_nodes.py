"""
AST node definitions for the Flux document language.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, ClassVar, Dict, List, Literal, Optional, Union

from .version import DEFAULT_LANGUAGE_VERSION


@dataclass
class Span:
    """Location span for diagnostics."""

    line: int
    column: int


def _span() -> Any:
    return field(default=None, compare=False, repr=False)


# ---------------------------------------------------------------------------
# Expressions
# ---------------------------------------------------------------------------


@dataclass
class LiteralExpr:
    KIND: ClassVar[str] = "Literal"

    value: Union[int, float, str, bool]
    span: Optional[Span] = _span()


@dataclass
class ListExpr:
    KIND: ClassVar[str] = "ListExpression"

    items: List["Expr"] = field(default_factory=list)
    span: Optional[Span] = _span()


@dataclass
class Identifier:
    KIND: ClassVar[str] = "Identifier"

    name: str
    span: Optional[Span] = _span()


@dataclass
class MemberExpr:
    KIND: ClassVar[str] = "MemberExpression"

    object: "Expr"
    property: str
    span: Optional[Span] = _span()


@dataclass
class NamedArg:
    """name = expr inside a call argument list."""

    KIND: ClassVar[str] = "NamedArg"

    name: str
    value: "Expr"
    span: Optional[Span] = _span()


@dataclass
class CallExpr:
    KIND: ClassVar[str] = "CallExpression"

    callee: "Expr"
    args: List["CallArg"] = field(default_factory=list)
    span: Optional[Span] = _span()


@dataclass
class NeighborsCallExpr:
    """neighbors.<method>(args), only meaningful inside grid-scoped rules."""

    KIND: ClassVar[str] = "NeighborsCallExpression"

    method: str
    args: List["CallArg"] = field(default_factory=list)
    namespace: str = "neighbors"
    span: Optional[Span] = _span()


@dataclass
class UnaryExpr:
    KIND: ClassVar[str] = "UnaryExpression"

    op: str
    argument: "Expr"
    span: Optional[Span] = _span()


@dataclass
class BinaryExpr:
    KIND: ClassVar[str] = "BinaryExpression"

    op: str
    left: "Expr"
    right: "Expr"
    span: Optional[Span] = _span()


Expr = Union[LiteralExpr, ListExpr, Identifier, MemberExpr, CallExpr, NeighborsCallExpr, UnaryExpr, BinaryExpr]
CallArg = Union[Expr, NamedArg]

BINARY_OPS = {"==", "!=", "===", "!==", "<", "<=", ">", ">=", "+", "-", "*", "/", "and", "or"}
UNARY_OPS = {"-", "not"}


# ---------------------------------------------------------------------------
# Statements
# ---------------------------------------------------------------------------


@dataclass
class AssignmentStatement:
    KIND: ClassVar[str] = "AssignmentStatement"

    target: Union[Identifier, MemberExpr]
    value: Expr
    span: Optional[Span] = _span()


@dataclass
class LetStatement:
    KIND: ClassVar[str] = "LetStatement"

    name: str
    value: Expr
    span: Optional[Span] = _span()


@dataclass
class AdvanceDocstepStatement:
    KIND: ClassVar[str] = "AdvanceDocstepStatement"

    span: Optional[Span] = _span()


Statement = Union[AssignmentStatement, LetStatement, AdvanceDocstepStatement]


# ---------------------------------------------------------------------------
# Declarations
# ---------------------------------------------------------------------------

ParamType = Literal["int", "float", "bool", "string", "enum"]
PARAM_TYPES = ("int", "float", "bool", "string", "enum")


@dataclass
class FluxParam:
    """param name : type [min, max] @ initial"""

    name: str
    type: str
    initial: Union[int, float, str, bool]
    min: Optional[Union[int, float, str, bool]] = None
    max: Optional[Union[int, float, str, bool]] = None
    span: Optional[Span] = _span()


@dataclass
class FluxState:
    params: List[FluxParam] = field(default_factory=list)


@dataclass
class PageSize:
    width: Union[int, float]
    height: Union[int, float]
    units: str


@dataclass
class PageConfig:
    size: PageSize


TOPOLOGIES = ("grid", "linear", "graph", "spatial")


@dataclass
class FluxCell:
    id: str
    tags: List[str] = field(default_factory=list)
    content: Optional[str] = None
    media_id: Optional[str] = None
    dynamic: Optional[Union[int, float]] = None
    density: Optional[Union[int, float]] = None
    salience: Optional[Union[int, float]] = None
    span: Optional[Span] = _span()


@dataclass
class GridSize:
    rows: Optional[int] = None
    cols: Optional[int] = None


@dataclass
class FluxGrid:
    name: str
    topology: str
    page: Optional[int] = None
    size: GridSize = field(default_factory=GridSize)
    cells: List[FluxCell] = field(default_factory=list)
    span: Optional[Span] = _span()


RULE_MODES = ("docstep", "event", "timer")


@dataclass
class RuleScope:
    grid: Optional[str] = None


@dataclass
class RuleBranch:
    condition: Expr
    then_branch: List[Statement] = field(default_factory=list)


@dataclass
class FluxRule:
    """rule name(mode=..., grid=..., on="...") { when ... then { ... } }"""

    name: str
    mode: str = "docstep"
    scope: Optional[RuleScope] = None
    on_event_type: Optional[str] = None
    branches: List[RuleBranch] = field(default_factory=list)
    else_branch: Optional[List[Statement]] = None
    span: Optional[Span] = _span()

    @property
    def condition(self) -> Expr:
        return self.branches[0].condition

    @property
    def then_branch(self) -> List[Statement]:
        return self.branches[0].then_branch


EVENTS_APPLY_POLICIES = ("immediate", "deferred", "cellImmediateParamsDeferred")


@dataclass
class DocstepAdvanceTimer:
    amount: Union[int, float]
    unit: str = "s"
    kind: str = "timer"


@dataclass
class FluxRuntimeConfig:
    events_apply: Optional[str] = None
    docstep_advance: Optional[List[DocstepAdvanceTimer]] = None


# ---------------------------------------------------------------------------
# Assets & materials
# ---------------------------------------------------------------------------

ASSET_STRATEGIES = ("weighted", "uniform")


@dataclass
class AssetDefinition:
    name: str
    kind: str = ""
    path: str = ""
    tags: List[str] = field(default_factory=list)
    weight: Optional[Union[int, float]] = None
    meta: Optional[Dict[str, Any]] = None
    span: Optional[Span] = _span()


@dataclass
class AssetBank:
    name: str
    kind: str = ""
    root: str = ""
    include: str = ""
    tags: List[str] = field(default_factory=list)
    strategy: Optional[str] = None
    span: Optional[Span] = _span()


@dataclass
class AssetsBlock:
    assets: List[AssetDefinition] = field(default_factory=list)
    banks: List[AssetBank] = field(default_factory=list)


@dataclass
class MaterialScore:
    text: Optional[str] = None
    staff: Optional[str] = None
    clef: Optional[str] = None


@dataclass
class MaterialMidi:
    channel: Optional[Union[int, float]] = None
    pitch: Optional[Union[int, float]] = None
    velocity: Optional[Union[int, float]] = None
    duration_seconds: Optional[Union[int, float]] = None


@dataclass
class MaterialVideo:
    clip: str = ""
    in_seconds: Optional[Union[int, float]] = None
    out_seconds: Optional[Union[int, float]] = None
    layer: Optional[str] = None


@dataclass
class Material:
    name: str
    tags: List[str] = field(default_factory=list)
    label: Optional[str] = None
    description: Optional[str] = None
    color: Optional[str] = None
    score: Optional[MaterialScore] = None
    midi: Optional[MaterialMidi] = None
    video: Optional[MaterialVideo] = None
    span: Optional[Span] = _span()


@dataclass
class MaterialsBlock:
    materials: List[Material] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Body / content tree
# ---------------------------------------------------------------------------


@dataclass
class OnLoadRefresh:
    KIND: ClassVar[str] = "onLoad"


@dataclass
class NeverRefresh:
    KIND: ClassVar[str] = "never"


@dataclass
class DocstepRefresh:
    KIND: ClassVar[str] = "onDocstep"


@dataclass
class EveryRefresh:
    KIND: ClassVar[str] = "every"

    amount: Union[int, float]
    unit: str = "s"


RefreshPolicy = Union[OnLoadRefresh, NeverRefresh, DocstepRefresh, EveryRefresh]

TRANSITION_KINDS = ("none", "appear", "fade", "wipe", "flash")
TRANSITION_EASES = ("linear", "in", "out", "inOut")
TRANSITION_DIRECTIONS = ("left", "right", "up", "down")


@dataclass
class TransitionSpec:
    kind: str
    duration_ms: Optional[Union[int, float]] = None
    ease: Optional[str] = None
    direction: Optional[str] = None


@dataclass
class LiteralValue:
    KIND: ClassVar[str] = "LiteralValue"

    value: Any


@dataclass
class DynamicValue:
    KIND: ClassVar[str] = "DynamicValue"

    expr: Expr


NodePropValue = Union[LiteralValue, DynamicValue]

SLOT_KINDS = ("slot", "inline_slot")


@dataclass
class DocumentNode:
    id: str
    kind: str
    props: Dict[str, NodePropValue] = field(default_factory=dict)
    children: List["DocumentNode"] = field(default_factory=list)
    refresh: Optional[RefreshPolicy] = None
    transition: Optional[TransitionSpec] = None
    span: Optional[Span] = _span()


@dataclass
class BodyBlock:
    nodes: List[DocumentNode] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Tokens, styles & themes
# ---------------------------------------------------------------------------


@dataclass
class TokensBlock:
    """Flat dotted token names to literal values."""

    tokens: Dict[str, Any] = field(default_factory=dict)


@dataclass
class StyleDef:
    """name [: base] { key.path = value; ... }"""

    name: str
    extends: Optional[str] = None
    props: Dict[str, NodePropValue] = field(default_factory=dict)
    span: Optional[Span] = _span()


@dataclass
class StylesBlock:
    styles: List[StyleDef] = field(default_factory=list)


@dataclass
class ThemeBlock:
    name: str
    tokens: Optional[TokensBlock] = None
    styles: Optional[StylesBlock] = None
    span: Optional[Span] = _span()


# ---------------------------------------------------------------------------
# Document
# ---------------------------------------------------------------------------


@dataclass
class FluxDocument:
    """Root of a parsed .flux file."""

    meta: Dict[str, Any] = field(default_factory=lambda: {"version": DEFAULT_LANGUAGE_VERSION})
    state: FluxState = field(default_factory=FluxState)
    page_config: Optional[PageConfig] = None
    grids: List[FluxGrid] = field(default_factory=list)
    rules: List[FluxRule] = field(default_factory=list)
    runtime: Optional[FluxRuntimeConfig] = None
    assets: Optional[AssetsBlock] = None
    materials: Optional[MaterialsBlock] = None
    tokens: Optional[TokensBlock] = None
    styles: Optional[StylesBlock] = None
    themes: List[ThemeBlock] = field(default_factory=list)
    body: Optional[BodyBlock] = None

    def find_grid(self, name: str) -> Optional[FluxGrid]:
        for grid in self.grids:
            if grid.name == name:
                return grid
        return None

    def find_theme(self, name: str) -> Optional[ThemeBlock]:
        for theme in self.themes:
            if theme.name == name:
                return theme
        return None
