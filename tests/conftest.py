import mongomock
import pytest
from fastapi.testclient import TestClient

import cart
import catalogue
import checkout
from tests.fakes import RecordingCartClient


@pytest.fixture
def db():
    return mongomock.MongoClient()["wigs-test"]


@pytest.fixture
def catalogue_api(db, tmp_path):
    return TestClient(catalogue.create_app(db, upload_dir=str(tmp_path / "uploads")))


@pytest.fixture
def cart_api(db):
    return TestClient(cart.create_app(db))


@pytest.fixture
def cart_recorder():
    return RecordingCartClient()


@pytest.fixture
def checkout_api(db, cart_recorder):
    return TestClient(checkout.create_app(db, cart_recorder))
