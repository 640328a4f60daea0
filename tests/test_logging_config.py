import logging

import pytest

from gtbook_toolkit.logging_config import setup_logging

EDITING_LOGGER = "gtbook_toolkit.core.services.structure_editing_service"


@pytest.fixture
def restore_logging():
    root = logging.getLogger()
    saved_handlers = list(root.handlers)
    saved_level = root.level
    yield
    for handler in list(root.handlers):
        if handler not in saved_handlers:
            root.removeHandler(handler)
            handler.close()
    for handler in saved_handlers:
        if handler not in root.handlers:
            root.addHandler(handler)
    root.setLevel(saved_level)
    for name in (EDITING_LOGGER, "gtbook_toolkit.core.hierarchy", "custom.module"):
        logger = logging.getLogger(name)
        logger.setLevel(logging.NOTSET)
        for handler in list(logger.handlers):
            logger.removeHandler(handler)


def test_setup_logging_writes_log_file(tmp_path, monkeypatch, restore_logging):
    log_dir = tmp_path / "logs"
    monkeypatch.setenv("GTBOOK_LOG_DIR", str(log_dir))
    monkeypatch.delenv("GTBOOK_DEBUG_MOVEMENT", raising=False)
    monkeypatch.delenv("GTBOOK_DEBUG_MODULES", raising=False)
    setup_logging()
    logging.getLogger("gtbook_toolkit.test").info("hello from test")
    for handler in logging.getLogger().handlers:
        handler.flush()
    assert "hello from test" in (log_dir / "app.log").read_text(encoding="utf-8")


def test_debug_overrides(tmp_path, monkeypatch, restore_logging):
    monkeypatch.setenv("GTBOOK_LOG_DIR", str(tmp_path / "logs"))
    monkeypatch.setenv("GTBOOK_DEBUG_MOVEMENT", "true")
    monkeypatch.setenv("GTBOOK_DEBUG_MODULES", "custom.module, ")
    setup_logging()
    assert logging.getLogger(EDITING_LOGGER).level == logging.DEBUG
    assert logging.getLogger("gtbook_toolkit.core.hierarchy").level == logging.DEBUG
    assert logging.getLogger("custom.module").level == logging.DEBUG


def test_setup_logging_is_public_entry_point():
    import gtbook_toolkit

    assert gtbook_toolkit.setup_logging is setup_logging
    assert "setup_logging" in gtbook_toolkit.__all__
