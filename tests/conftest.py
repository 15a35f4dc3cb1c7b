"""Shared fixtures."""

from __future__ import annotations

import threading

import pytest

from fakes import FakeConnector


@pytest.fixture
def connector() -> FakeConnector:
    return FakeConnector()


@pytest.fixture
def gated_connector() -> FakeConnector:
    return FakeConnector(gate=threading.Event())
