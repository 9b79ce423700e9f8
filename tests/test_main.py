import mongomock
import pytest
from fastapi.testclient import TestClient

import main


@pytest.fixture
def connections(monkeypatch, tmp_path):
    opened = []

    def fake_connect(url, name):
        opened.append((url, name))
        return mongomock.MongoClient()[name]

    monkeypatch.setattr(main, "connect", fake_connect)
    monkeypatch.setenv("UPLOAD_DIR", str(tmp_path))
    return opened


@pytest.mark.parametrize("service", ["catalogue", "cart", "checkout"])
def test_build_app_uses_service_defaults(connections, monkeypatch, service):
    monkeypatch.delenv("MONGODB_URI", raising=False)
    monkeypatch.delenv("DATABASE_NAME", raising=False)

    app = main.build_app(service)

    assert connections == [("mongodb://mongodb:27017", f"wigs-{service}")]
    assert TestClient(app).get("/health").json()["service"] == service


def test_build_app_reads_environment(connections, monkeypatch):
    monkeypatch.setenv("MONGODB_URI", "mongodb://db.internal:27017")
    monkeypatch.setenv("DATABASE_NAME", "shop")

    main.build_app("cart")

    assert connections == [("mongodb://db.internal:27017", "shop")]


def test_unknown_service_rejected(connections):
    with pytest.raises(ValueError):
        main.build_app("payments")
    assert connections == []
