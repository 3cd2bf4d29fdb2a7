import importlib
import sys
import logging

import pytest


def load_app(monkeypatch):
    monkeypatch.setenv("APP_ENV", "testing")
    for module in ["main", "app.config"]:
        if module in sys.modules:
            del sys.modules[module]
    entry = importlib.import_module("main")
    return entry.app


@pytest.fixture()
def test_client(monkeypatch):
    app = load_app(monkeypatch)
    app.config.update(TESTING=True)
    return app.test_client()


def test_request_id_header_and_propagation(test_client):
    resp = test_client.get("/health", headers={"X-Request-ID": "my-fixed-id-123"})
    assert resp.status_code == 200
    assert resp.headers.get("X-Request-ID") == "my-fixed-id-123"


def test_request_id_generated_when_missing(test_client):
    resp = test_client.get("/health")
    rid = resp.headers.get("X-Request-ID")
    assert rid and len(rid) == 32


def test_logs_include_request_id_attribute(monkeypatch, caplog):
    app = load_app(monkeypatch)
    app.config.update(TESTING=True)
    caplog.set_level("INFO")
    client = app.test_client()
    resp = client.get("/health", headers={"X-Request-ID": "rid-abc"})
    assert resp.status_code == 200
    assert any(getattr(r, "request_id", "") == "rid-abc" for r in caplog.records)


def test_sensitive_fields_masked_in_info(monkeypatch, caplog):
    from app.logging import MaskingFilter
    monkeypatch.setenv("LOG_LEVEL", "INFO")
    app = load_app(monkeypatch)
    app.config.update(TESTING=True)
    caplog.set_level("INFO")
    caplog.handler.addFilter(MaskingFilter())
    logger = logging.getLogger("mask_test")
    with app.app_context():
        logger.info({"email": "user@example.com", "password": "hunter22", "item": "Widget"})
    record = next(r for r in caplog.records if r.name == "mask_test")
    assert isinstance(record.msg, dict)
    assert record.msg["email"] == "[REDACTED]"
    assert record.msg["password"] == "[REDACTED]"
    assert record.msg["item"] == "Widget"


def test_sensitive_fields_visible_in_debug(monkeypatch, caplog):
    from app.logging import MaskingFilter
    monkeypatch.setenv("LOG_LEVEL", "DEBUG")
    monkeypatch.setenv("APP_ENV", "development")
    app = load_app(monkeypatch)
    app.config.update(TESTING=True)
    caplog.set_level("DEBUG")
    caplog.handler.addFilter(MaskingFilter())
    logger = logging.getLogger("mask_test_debug")
    with app.app_context():
        logger.debug({"password": "secret"})
    record = next(r for r in caplog.records if r.name == "mask_test_debug")
    assert isinstance(record.msg, dict)
    assert record.msg["password"] == "secret"
