"""
Environment-driven configuration for the Flux engine.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional

DEFAULT_DOCSTEP_INTERVAL_MS = 1000


@dataclass
class FluxConfig:
    seed: int = 0
    asset_cwd: Optional[str] = None
    docstep_interval_ms: int = DEFAULT_DOCSTEP_INTERVAL_MS
    log_level: str = "WARNING"


def _env_int(environ: Mapping[str, str], name: str, default: int) -> int:
    try:
        return int(environ.get(name, default))
    except (TypeError, ValueError):
        return default


def _env_str(environ: Mapping[str, str], name: str) -> Optional[str]:
    value = environ.get(name)
    if value is None:
        return None
    value = value.strip()
    return value or None


def load_config(env: Optional[Mapping[str, str]] = None) -> FluxConfig:
    environ = os.environ if env is None else env
    interval = _env_int(environ, "FLUX_DOCSTEP_INTERVAL_MS", DEFAULT_DOCSTEP_INTERVAL_MS)
    if interval <= 0:
        interval = DEFAULT_DOCSTEP_INTERVAL_MS
    return FluxConfig(
        seed=_env_int(environ, "FLUX_SEED", 0),
        asset_cwd=_env_str(environ, "FLUX_ASSET_CWD"),
        docstep_interval_ms=interval,
        log_level=(_env_str(environ, "FLUX_LOG_LEVEL") or "WARNING").upper(),
    )


def configure_logging(level: Optional[str] = None) -> logging.Logger:
    """
    Attach a stream handler to the package logger.

    The library itself never installs handlers; embedders call this once.
    """

    logger = logging.getLogger("fluxlang")
    resolved = (level or load_config().log_level).upper()
    logger.setLevel(getattr(logging, resolved, logging.WARNING))
    if not any(getattr(h, "_flux_handler", False) for h in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
        handler._flux_handler = True  # type: ignore[attr-defined]
        logger.addHandler(handler)
    return logger
