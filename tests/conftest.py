import json
from urllib.parse import urlsplit

import pytest
from werkzeug.security import generate_password_hash

from app.console import create_app
from app.console.db import session_scope
from app.console.models import Base, Permission, Role, User


class FakeResponse:
    def __init__(self, status_code=200, body=None, content_type="application/json", raw=None):
        self.status_code = status_code
        self.headers = {"Content-Type": content_type}
        self.reason = "OK" if status_code < 400 else "Error"
        if raw is not None:
            self.content = raw
        elif body is None:
            self.content = b""
        else:
            self.content = json.dumps(body).encode("utf-8")
        self.text = self.content.decode("utf-8", errors="replace")

    def json(self):
        return json.loads(self.text)


class FakePlatform:
    """
    Stand-in for the requests module: routes (METHOD, path) to canned responses and
    records every call. Unrouted paths answer 404.
    """

    def __init__(self):
        self.routes = {}
        self.calls = []

    def on(self, method, path, body=None, status=200, **kw):
        self.routes[(method.upper(), path)] = FakeResponse(status, body, **kw)
        return self

    def request(self, method, url, params=None, json=None, headers=None, timeout=None):
        path = urlsplit(url).path
        self.calls.append(
            {"method": method, "path": path, "params": params, "json": json, "headers": headers or {}}
        )
        resp = self.routes.get((method.upper(), path))
        if resp is None:
            return FakeResponse(404, {"message": f"No route for {method} {path}"})
        return resp

    def calls_to(self, method, path):
        return [c for c in self.calls if c["method"] == method and c["path"] == path]


@pytest.fixture()
def platform():
    p = FakePlatform()
    p.on("GET", "/api/user/persona", {"persona": "franchisor", "permissions": {"isFranchisor": True}})
    return p


@pytest.fixture()
def app(tmp_path, monkeypatch, platform):
    monkeypatch.setenv("SECRET_KEY", "test-secret")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path/'test.db'}")
    monkeypatch.setenv("ENV", "test")
    monkeypatch.setenv("API_BASE_URL", "http://platform.test")
    for k in ("DEFAULT_STALE_SECONDS", "QUERY_CACHE_MAX_ENTRIES", "API_TIMEOUT_SECONDS"):
        monkeypatch.delenv(k, raising=False)

    app = create_app()
    app.extensions["api_http_session"] = platform
    engine = app.extensions["sqlalchemy_engine"]
    Base.metadata.create_all(bind=engine)

    with session_scope(app) as s:
        p_view = Permission(key="console.view", name="Console: view shell")
        p_audit = Permission(key="audit.view", name="Audit: view trail")
        admin = Role(key="admin", name="Administrator")
        admin.permissions.extend([p_view, p_audit])
        operator = Role(key="operator", name="Operator")
        operator.permissions.append(p_view)
        u = User(
            email="admin@example.com",
            password_hash=generate_password_hash("pw"),
            api_token="tok-admin",
            is_active=True,
        )
        u.roles.append(admin)
        o = User(
            email="ops@example.com",
            password_hash=generate_password_hash("pw"),
            api_token="tok-ops",
            is_active=True,
        )
        o.roles.append(operator)
        s.add_all([p_view, p_audit, admin, operator, u, o])

    return app


@pytest.fixture()
def client(app):
    return app.test_client()


def login(client, email="admin@example.com", password="pw"):
    return client.post("/auth/login", data={"email": email, "password": password}, follow_redirects=False)


def csrf_token(client):
    client.get("/auth/login")
    with client.session_transaction() as sess:
        return sess["csrf_token"]


def post(client, url, data=None, **kw):
    """POST with the session's CSRF token attached."""
    payload = dict(data or {})
    payload["csrf_token"] = csrf_token(client)
    return client.post(url, data=payload, **kw)


def audit_actions(app):
    from app.console.models import AuditEvent

    with session_scope(app) as s:
        return [e.action for e in s.query(AuditEvent).order_by(AuditEvent.id).all()]
