"""
flexitest runtime that tags log records with the running test and times each test.
"""

import logging
import time

import flexitest

from common.test_logging import set_current_test

logger = logging.getLogger(__name__)


class TestRuntimeWithLogging(flexitest.TestRuntime):
    def _exec_test(self, test_name: str, env):
        set_current_test(test_name)
        start = time.monotonic()
        logger.info("starting")
        try:
            return super()._exec_test(test_name, env)
        finally:
            logger.info(f"finished in {time.monotonic() - start:.1f}s")
            set_current_test(None)
