import logging

from joint_finance.logging_config import configure_logging


def test_configure_logging_attaches_console_handler():
    configure_logging(logging.DEBUG)
    logger = logging.getLogger("joint_finance")
    assert logger.level == logging.DEBUG
    assert logger.propagate is False
    assert any(isinstance(h, logging.StreamHandler) for h in logger.handlers)
    # Module loggers inherit from the package logger
    assert logging.getLogger("joint_finance.db").getEffectiveLevel() == logging.DEBUG
