from sqlalchemy import create_engine
from sqlalchemy.orm import Session
from werkzeug.security import check_password_hash

from app.console.models import Base, Role, User
from scripts.create_operator import upsert_operator
from scripts.init_db import seed_only


def _db(tmp_path):
    url = f"sqlite:///{tmp_path/'seed.db'}"
    engine = create_engine(url, future=True)
    Base.metadata.create_all(bind=engine)
    return url, engine


def test_seed_is_idempotent(tmp_path, monkeypatch):
    monkeypatch.setenv("ADMIN_EMAIL", "Root@Example.com")
    monkeypatch.setenv("ADMIN_PASSWORD", "first")
    monkeypatch.setenv("ADMIN_API_TOKEN", "tok-1")
    url, engine = _db(tmp_path)

    seed_only(database_url=url)
    monkeypatch.setenv("ADMIN_PASSWORD", "second")
    monkeypatch.setenv("ADMIN_API_TOKEN", "tok-2")
    seed_only(database_url=url)

    with Session(engine) as s:
        assert s.query(Role).count() == 2
        admin = s.query(User).filter(User.email == "root@example.com").one()
        assert check_password_hash(admin.password_hash, "first")
        assert admin.api_token == "tok-1"
        perm_keys = {p.key for r in admin.roles for p in r.permissions}
        assert perm_keys == {"console.view", "audit.view", "users.manage"}


def test_upsert_operator(tmp_path, monkeypatch):
    monkeypatch.delenv("ADMIN_API_TOKEN", raising=False)
    url, engine = _db(tmp_path)

    assert "Run python scripts/init_db.py first" in upsert_operator(url, email="ops@example.com", password="pw")
    seed_only(database_url=url)

    assert upsert_operator(url, email="ops@example.com") == "A password is required to create an operator."
    assert upsert_operator(url, email="Ops@Example.com", password="pw", api_token="t1").startswith("Created")
    assert upsert_operator(url, email="ops@example.com", api_token="t2", display_name="Ops").startswith("Updated")

    with Session(engine) as s:
        u = s.query(User).filter(User.email == "ops@example.com").one()
        assert u.api_token == "t2"
        assert u.display_name == "Ops"
        assert [r.key for r in u.roles] == ["operator"]
        assert check_password_hash(u.password_hash, "pw")
