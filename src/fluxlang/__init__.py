"""
Flux document engine.
"""

from .version import __version__, IR_VERSION  # noqa: F401
from .ast_nodes import FluxDocument
from .checks import check_document
from .config import FluxConfig, configure_logging, load_config
from .diagnostics import collect_diagnostics, format_diagnostic
from .errors import EvaluationError, FluxError, KernelError, LexError, ParseError
from .layout import GridLayoutModel, compute_grid_layout
from .parser import parse_document
from .render import (
    RenderDocument,
    RenderDocumentIR,
    create_document_runtime,
    create_document_runtime_ir,
    render_document,
    render_document_ir,
)
from .runtime import (
    FluxEvent,
    Runtime,
    RuntimeSnapshot,
    RuntimeState,
    create_runtime,
    get_docstep_interval_hint,
    handle_event,
    init_runtime_state,
    run_docstep_once,
)

__all__ = [
    "EvaluationError",
    "FluxConfig",
    "FluxDocument",
    "FluxError",
    "FluxEvent",
    "GridLayoutModel",
    "IR_VERSION",
    "KernelError",
    "LexError",
    "ParseError",
    "RenderDocument",
    "RenderDocumentIR",
    "Runtime",
    "RuntimeSnapshot",
    "RuntimeState",
    "__version__",
    "check_document",
    "collect_diagnostics",
    "compute_grid_layout",
    "configure_logging",
    "create_document_runtime",
    "create_document_runtime_ir",
    "create_runtime",
    "format_diagnostic",
    "get_docstep_interval_hint",
    "handle_event",
    "init_runtime_state",
    "load_config",
    "parse_document",
    "render_document",
    "render_document_ir",
    "run_docstep_once",
]
