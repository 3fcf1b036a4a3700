import os

# must be set before app/settings are imported
os.environ["RATE_LIMIT_ENABLED"] = "false"

import pytest
import requests

import settings
from fakes import FakeHTTP


@pytest.fixture(autouse=True)
def no_api_keys(monkeypatch):
    monkeypatch.setattr(settings, "BIRDEYE_API_KEY", "")
    monkeypatch.setattr(settings, "SOLANATRACKER_API_KEY", "")


@pytest.fixture()
def fake_http(monkeypatch):
    fake = FakeHTTP()
    monkeypatch.setattr(requests, "get", fake.get)
    monkeypatch.setattr(requests, "post", fake.post)
    return fake
