"""Shared fixtures."""

import pytest

from fakes import RecordingTransport


@pytest.fixture
def transport():
    return RecordingTransport()
