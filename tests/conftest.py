import logging

import pytest


@pytest.fixture(autouse=True)
def _restore_root_log_level():
    """Keep one test's root logger level (e.g. pipeline.main config) from leaking into others."""
    root = logging.getLogger()
    saved = root.level
    yield
    root.setLevel(saved)
