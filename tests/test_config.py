import logging

from fluxlang.config import DEFAULT_DOCSTEP_INTERVAL_MS, configure_logging, load_config


def test_defaults_without_environment():
    config = load_config({})
    assert config.seed == 0
    assert config.asset_cwd is None
    assert config.docstep_interval_ms == DEFAULT_DOCSTEP_INTERVAL_MS
    assert config.log_level == "WARNING"


def test_values_from_environment():
    config = load_config(
        {
            "FLUX_SEED": "12",
            "FLUX_ASSET_CWD": " /srv/assets ",
            "FLUX_DOCSTEP_INTERVAL_MS": "250",
            "FLUX_LOG_LEVEL": "debug",
        }
    )
    assert config.seed == 12
    assert config.asset_cwd == "/srv/assets"
    assert config.docstep_interval_ms == 250
    assert config.log_level == "DEBUG"


def test_invalid_values_fall_back_to_defaults():
    config = load_config({"FLUX_SEED": "abc", "FLUX_DOCSTEP_INTERVAL_MS": "-5", "FLUX_ASSET_CWD": "  "})
    assert config.seed == 0
    assert config.docstep_interval_ms == DEFAULT_DOCSTEP_INTERVAL_MS
    assert config.asset_cwd is None


def test_configure_logging_installs_one_handler(monkeypatch):
    logger = logging.getLogger("fluxlang")
    monkeypatch.setattr(logger, "handlers", [])
    monkeypatch.setattr(logger, "level", logger.level)
    monkeypatch.setenv("FLUX_LOG_LEVEL", "info")
    configure_logging()
    configure_logging()
    assert logger.level == logging.INFO
    assert len(logger.handlers) == 1

    configure_logging("debug")
    assert logger.level == logging.DEBUG
