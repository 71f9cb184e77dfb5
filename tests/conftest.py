import logging

import pytest

from assetpak.logging import get_logger
from assetpak.reporting import SilentReporter, set_reporter, set_verbosity


@pytest.fixture(autouse=True)
def _reset_reporting():
    """CLI runs install a process-wide reporter bound to captured streams."""
    yield
    set_reporter(SilentReporter())
    set_verbosity(0)
    logger = get_logger()
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)
    logger.propagate = True
