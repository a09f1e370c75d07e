# conftest.py
import os
import tempfile
import pytest

# settings are read at import time, so the environment is fixed before the app is loaded
_DB_DIR = tempfile.mkdtemp(prefix="caisse-test-")
os.environ.setdefault("APP_SECRET", "test-secret")
os.environ["APP_ENV"] = "dev"
os.environ["DB_URL"] = f"sqlite:///{os.path.join(_DB_DIR, 'caisse.db')}"
os.environ["APP_TZ"] = "UTC"

from fastapi.testclient import TestClient  # noqa: E402

from caisse.main import app  # noqa: E402
from caisse.db import SessionLocal  # noqa: E402

@pytest.fixture(scope="session")
def base_url():
    return "/api"

@pytest.fixture(scope="session")
def client():
    # context manager runs the startup hook (tables + default products)
    with TestClient(app) as c:
        yield c

@pytest.fixture(scope="session")
def boot(client, base_url):
    r = client.get("/healthz")
    assert r.status_code == 200, f"/healthz failed: {r.text}"

    r = client.post(f"{base_url}/admin/dev-bootstrap")
    assert r.status_code == 200, f"/admin/dev-bootstrap failed: {r.text}"
    return {u["role"]: u for u in r.json()["users"]}

def _login(client, base_url, user):
    r = client.post(f"{base_url}/login", json={"username": user["username"], "password": user["password"]})
    assert r.status_code == 200, f"/login failed: {r.text}"
    tok = r.json()["access_token"]
    return {"Authorization": f"Bearer {tok}"}

@pytest.fixture(scope="session")
def auth_headers(client, base_url, boot):
    return _login(client, base_url, boot["super_admin"])

@pytest.fixture(scope="session")
def admin_headers(client, base_url, boot):
    return _login(client, base_url, boot["admin"])

@pytest.fixture(scope="session")
def cashier_headers(client, base_url, boot):
    return _login(client, base_url, boot["cashier"])

@pytest.fixture()
def db(client):
    s = SessionLocal()
    try:
        yield s
    finally:
        s.rollback()
        s.close()

@pytest.fixture(scope="session")
def rng_suffix():
    import random, string
    return "".join(random.choices(string.ascii_lowercase + string.digits, k=6))
