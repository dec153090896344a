"""Shared fixtures for the sheetdesk test suite."""

from __future__ import annotations

import pytest

from sheetdesk.logging.events import set_log_dir


@pytest.fixture(autouse=True)
def _reset_event_sink():
    """Each test starts and ends with event logging disabled."""
    set_log_dir(None)
    yield
    set_log_dir(None)
