import logging

from hespex import create_dataset
from hespex.logging import get_logger, set_level


def test_get_logger_reuses_handler():
    logger = get_logger("hespex.tests.reuse")
    assert len(get_logger("hespex.tests.reuse").handlers) == len(logger.handlers) == 1


def test_set_level_shows_debug_messages(caplog):
    create_dataset("Quiet", "Swift-XRT")
    assert "Created dataset 'Quiet'" not in caplog.text

    set_level(logging.DEBUG)
    try:
        create_dataset("Loud", "Swift-XRT")
    finally:
        set_level(logging.WARNING)
    assert "Created dataset 'Loud'" in caplog.text
    assert logging.getLogger("hespex.dataset").level == logging.WARNING


def test_set_level_only_touches_hespex_loggers():
    other = logging.getLogger("not_hespex_logger")
    other.setLevel(logging.ERROR)
    set_level(logging.WARNING)
    assert other.level == logging.ERROR
