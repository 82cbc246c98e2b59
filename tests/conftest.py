# Shared fixtures for RetailStack Sales Records tests

import pytest

from helpers import ManualScheduler, RecordingNotifier


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def notifier():
    return RecordingNotifier()
