import logging

import pytest

from catalog_hub.logging_setup import LOG_FILENAME, setup_logging
from catalog_hub.settings import Settings


def _own_handlers(logger):
    return [h for h in logger.handlers if getattr(h, "_catalog_hub_handler", False)]


@pytest.fixture
def clean_root():
    yield logging.getLogger()
    for name in ("", "uvicorn", "uvicorn.access"):
        lg = logging.getLogger(name)
        for h in _own_handlers(lg):
            lg.removeHandler(h)
            h.close()


def test_setup_logging_writes_under_data_root(tmp_path, clean_root):
    cfg = Settings(CATALOG_DATA_ROOT=tmp_path, LOG_LEVEL="debug", _env_file=None)

    path = setup_logging(cfg)
    logging.getLogger("catalog_hub.test").info("hello log")
    for h in _own_handlers(clean_root):
        h.flush()

    assert path == tmp_path / "logs" / LOG_FILENAME
    assert "hello log" in path.read_text(encoding="utf-8")


def test_handlers_have_their_own_levels_and_are_not_duplicated(tmp_path, clean_root):
    cfg = Settings(CATALOG_DATA_ROOT=tmp_path, LOG_LEVEL="INFO", LOG_CONSOLE_LEVEL="ERROR", _env_file=None)

    setup_logging(cfg)
    setup_logging(cfg)

    levels = sorted(h.level for h in _own_handlers(clean_root))
    assert levels == [logging.INFO, logging.ERROR]
    assert clean_root.level == logging.INFO
