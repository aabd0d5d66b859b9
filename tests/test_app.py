"""Application factory, health check, error pages and security headers."""

import pytest

from app import create_app
from models import db


@pytest.fixture
def app():
    app = create_app({"TESTING": True, "SQLALCHEMY_DATABASE_URI": "sqlite:///:memory:"})
    with app.app_context():
        db.create_all()
        yield app


@pytest.fixture
def client(app):
    return app.test_client()


def test_testing_config_disables_csrf(app):
    assert app.config["WTF_CSRF_ENABLED"] is False
    assert app.config["STATS_MAX_ATTEMPTS"] >= 1


def test_statistics_tables_created(app):
    from sqlalchemy import inspect

    inspector = inspect(db.engine)
    assert inspector.has_table("site_statistics")
    assert inspector.has_table("consumed_attempts")


def test_healthz_ok(client):
    response = client.get("/healthz")
    assert response.status_code == 200
    assert response.get_json() == {"status": "ok", "db": True}


def test_healthz_strict_when_db_down(client, monkeypatch):
    monkeypatch.setenv("HEALTHZ_STRICT", "1")
    monkeypatch.setattr("app.time.sleep", lambda s: None)

    def broken_execute(*args, **kwargs):
        raise RuntimeError("db down")

    monkeypatch.setattr(db.session, "execute", broken_execute)
    response = client.get("/healthz")
    assert response.status_code == 503
    assert response.get_json()["db"] is False


def test_404_page(client):
    response = client.get("/no_such_page_xyz")
    assert response.status_code == 404
    assert "Page not found" in response.get_data(as_text=True)


def test_security_headers(client):
    response = client.get("/")
    assert response.headers.get("X-Frame-Options") == "DENY"
    assert response.headers.get("X-Content-Type-Options") == "nosniff"
    assert response.headers.get("Content-Security-Policy")


def test_proxy_scheme_respected(client):
    response = client.post("/start", headers={"X-Forwarded-Proto": "https"})
    assert response.status_code == 302


def test_csrf_enforced_outside_tests():
    app = create_app({"SQLALCHEMY_DATABASE_URI": "sqlite:///:memory:"})
    client = app.test_client()
    response = client.post("/start")
    # CSRF error handler redirects back with a flash instead of a bare 400
    assert response.status_code == 302
    with client.session_transaction() as sess:
        assert "flow" not in sess
