from sqlalchemy.exc import OperationalError

import devboard.api.health as health_api


def test_healthz_always_ok(client):
    resp = client.get("/healthz")
    assert resp.status_code == 200
    assert resp.json().get("status") == "ok"


def test_readyz_ok_with_all_tables(client, engine, monkeypatch):
    monkeypatch.setattr(health_api, "get_engine", lambda: engine)

    resp = client.get("/readyz")
    assert resp.status_code == 200
    assert resp.json().get("status") == "ok"


def test_readyz_reports_missing_tables(client, monkeypatch):
    class FakeConn:
        def __enter__(self):
            return self

        def __exit__(self, exc_type, exc, tb):
            return False

        def exec_driver_sql(self, query):
            return None

    class FakeEngine:
        def connect(self):
            return FakeConn()

    class FakeInspector:
        def has_table(self, name):
            return name != "todos"

    monkeypatch.setattr(health_api, "get_engine", lambda: FakeEngine())
    monkeypatch.setattr(health_api, "inspect", lambda engine: FakeInspector())

    resp = client.get("/readyz")
    assert resp.status_code == 503
    assert resp.json()["detail"] == "missing tables: todos"


def test_readyz_handles_db_down(client, monkeypatch):
    def boom():
        raise OperationalError("SELECT 1", {}, Exception("db down"))

    monkeypatch.setattr(health_api, "get_engine", boom)

    resp = client.get("/readyz")
    body = resp.json()
    assert resp.status_code == 503
    assert body.get("status") == "error"
    assert "database" in body.get("detail", "")
