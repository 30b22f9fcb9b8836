from __future__ import annotations

import io
import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from PIL import Image
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool


ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from ai.summary_generator import SummaryGenerator, get_summary_generator  # noqa: E402
from config import settings  # noqa: E402
from db.database import Base, enable_sqlite_pragmas, get_db  # noqa: E402
from db.models import Entry, Media, User  # noqa: E402
from main import app  # noqa: E402
from services.link_preview_service import get_html_fetcher  # noqa: E402


class _CannedProvider:
    def __init__(self, reply: str):
        self.reply = reply
        self.prompts: list[str] = []

    async def generate(self, prompt: str, system: str = "") -> str:
        self.prompts.append(prompt)
        return self.reply


@pytest.fixture
def env(tmp_path, monkeypatch):
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_pragmas(engine)
    Base.metadata.create_all(bind=engine)
    Session = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    def _get_db():
        db = Session()
        try:
            yield db
        finally:
            db.close()

    provider = _CannedProvider("Long walk, short rain")
    monkeypatch.setattr(settings, "UPLOAD_DIR", tmp_path)
    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_summary_generator] = lambda: SummaryGenerator(provider)
    app.dependency_overrides[get_html_fetcher] = lambda: (
        lambda url, timeout_s: '<meta property="og:title" content="Stubbed page">'
    )
    try:
        yield TestClient(app), Session, provider
    finally:
        app.dependency_overrides.clear()


def _register(client, email="a@x.com", password="pw1"):
    resp = client.post("/api/auth/register", json={"email": email, "password": password})
    assert resp.status_code == 201
    return {"Authorization": f"Bearer {resp.json()['access_token']}"}


def _png_bytes() -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", (2, 2)).save(buf, format="PNG")
    return buf.getvalue()


def test_health_response_includes_security_headers(env):
    client, _Session, _provider = env
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"
    assert response.headers.get("x-content-type-options") == "nosniff"
    assert response.headers.get("x-frame-options") == "DENY"
    assert response.headers.get("referrer-policy") == "strict-origin-when-cross-origin"


def test_register_login_and_full_day_lifecycle(env):
    client, _Session, _provider = env
    register = client.post("/api/auth/register", json={"email": "a@x.com", "password": "pw1"})
    assert register.status_code == 201
    assert register.json()["user"]["email"] == "a@x.com"
    assert register.json()["token_type"] == "bearer"

    login = client.post("/api/auth/login", json={"email": "a@x.com", "password": "pw1"})
    assert login.status_code == 200
    headers = {"Authorization": f"Bearer {login.json()['access_token']}"}

    me = client.get("/api/auth/me", headers=headers)
    assert me.status_code == 200
    assert me.json()["name"] == "a"

    body = {
        "insight": "hi",
        "todos": [{"text": "t1", "completed": False}],
        "expenses": [{"item": "tea", "amount": 2.5}],
        "media": [],
    }
    saved = client.put("/api/entries/2024-01-01", json=body, headers=headers)
    assert saved.status_code == 200
    assert saved.json()["entry"]["todos"][0]["text"] == "t1"

    fetched = client.get("/api/entries/2024-01-01", headers=headers).json()["entry"]
    assert fetched["insight"] == "hi"
    assert [t["text"] for t in fetched["todos"]] == ["t1"]
    assert fetched["expenses"][0]["amount"] == 2.5

    cleared = client.put(
        "/api/entries/2024-01-01",
        json={"insight": "hi", "todos": [], "expenses": [], "media": []},
        headers=headers,
    ).json()["entry"]
    assert cleared["todos"] == []
    assert cleared["expenses"] == []

    listing = client.get("/api/entries", headers=headers).json()["entries"]
    assert list(listing) == ["2024-01-01"]

    deleted = client.delete("/api/entries/2024-01-01", headers=headers)
    assert deleted.status_code == 200
    assert client.get("/api/entries/2024-01-01", headers=headers).json() == {"entry": None}

    # Deleting again is still a success.
    assert client.delete("/api/entries/2024-01-01", headers=headers).status_code == 200


@pytest.mark.parametrize(
    ("method", "path"),
    [
        ("get", "/api/entries"),
        ("get", "/api/entries/2024-01-01"),
        ("delete", "/api/entries/2024-01-01"),
        ("get", "/api/auth/me"),
        ("get", "/api/export"),
        ("delete", "/api/upload/some-id"),
    ],
)
def test_protected_routes_require_a_token(env, method, path):
    client, _Session, _provider = env
    response = getattr(client, method)(path)
    assert response.status_code == 401
    assert response.json() == {"detail": "Not authenticated"}
    assert response.headers.get("www-authenticate") == "Bearer"


def test_bad_token_is_rejected(env):
    client, _Session, _provider = env
    response = client.get("/api/entries", headers={"Authorization": "Bearer nonsense"})
    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid token"


def test_duplicate_registration_is_a_conflict(env):
    client, Session, _provider = env
    _register(client)

    again = client.post("/api/auth/register", json={"email": "a@x.com", "password": "other"})

    assert again.status_code == 409
    with Session() as db:
        assert db.query(User).filter(User.email == "a@x.com").count() == 1


def test_register_rejects_missing_fields(env):
    client, _Session, _provider = env
    assert client.post("/api/auth/register", json={"email": "a@x.com"}).status_code == 422
    assert client.post("/api/auth/register", json={"email": "", "password": "pw"}).status_code == 422


def test_login_failures_are_indistinguishable(env):
    client, _Session, _provider = env
    _register(client)

    wrong_password = client.post("/api/auth/login", json={"email": "a@x.com", "password": "nope"})
    unknown_email = client.post("/api/auth/login", json={"email": "b@x.com", "password": "pw1"})

    assert wrong_password.status_code == unknown_email.status_code == 401
    assert wrong_password.json() == unknown_email.json() == {"detail": "Invalid credentials"}


def test_invalid_media_type_in_body_is_rejected(env):
    client, Session, _provider = env
    headers = _register(client)

    response = client.put(
        "/api/entries/2024-01-01",
        json={"media": [{"type": "document", "url": "/x.pdf"}]},
        headers=headers,
    )

    assert response.status_code == 422
    with Session() as db:
        assert db.query(Entry).count() == 0


def test_upload_by_date_then_delete(env):
    client, Session, _provider = env
    headers = _register(client)

    uploaded = client.post(
        "/api/upload",
        files={"file": ("cat.png", _png_bytes(), "image/png")},
        data={"entryDate": "2024-01-01"},
        headers=headers,
    )
    assert uploaded.status_code == 200
    media = uploaded.json()["media"]
    assert media["type"] == "image"
    assert media["name"] == "cat.png"

    entry = client.get("/api/entries/2024-01-01", headers=headers).json()["entry"]
    assert [m["id"] for m in entry["media"]] == [media["id"]]

    removed = client.delete(f"/api/upload/{media['id']}", headers=headers)
    assert removed.status_code == 200
    assert removed.json() == {"message": "File deleted"}
    with Session() as db:
        assert db.query(Media).count() == 0


def test_upload_of_unsupported_file_creates_nothing(env, tmp_path):
    client, Session, _provider = env
    headers = _register(client)

    response = client.post(
        "/api/upload",
        files={"file": ("notes.txt", b"hello", "text/plain")},
        data={"entryDate": "2024-01-01"},
        headers=headers,
    )

    assert response.status_code == 415
    with Session() as db:
        assert db.query(Entry).count() == 0
        assert db.query(Media).count() == 0
    assert list(tmp_path.iterdir()) == []


def test_deleting_someone_elses_media_is_forbidden(env):
    client, Session, _provider = env
    owner = _register(client, "owner@x.com")
    intruder = _register(client, "intruder@x.com")
    media = client.post(
        "/api/upload",
        files={"file": ("cat.png", _png_bytes(), "image/png")},
        data={"entryDate": "2024-01-01"},
        headers=owner,
    ).json()["media"]

    assert client.delete(f"/api/upload/{media['id']}", headers=intruder).status_code == 403
    assert client.delete("/api/upload/missing", headers=intruder).status_code == 404
    with Session() as db:
        assert db.query(Media).count() == 1


def test_ai_summary_is_written_back_to_entry(env):
    client, _Session, provider = env
    headers = _register(client)
    client.put(
        "/api/entries/2024-01-01",
        json={"insight": "Walked to the lake", "todos": [{"text": "swim", "completed": True}]},
        headers=headers,
    )

    response = client.post("/api/ai/summary", json={"date": "2024-01-01"}, headers=headers)

    assert response.status_code == 200
    assert response.json() == {"summary": "Long walk, short rain"}
    assert "Walked to the lake" in provider.prompts[0]
    entry = client.get("/api/entries/2024-01-01", headers=headers).json()["entry"]
    assert entry["myDaySummary"] == "Long walk, short rain"
    assert entry["insight"] == "Walked to the lake"


def test_ai_insight_does_not_modify_entry(env):
    client, _Session, provider = env
    headers = _register(client)
    client.put("/api/entries/2024-01-01", json={"insight": "Tired"}, headers=headers)

    response = client.post(
        "/api/ai/insight",
        json={"date": "2024-01-01", "prompt": "Why so tired?"},
        headers=headers,
    )

    assert response.status_code == 200
    assert response.json()["insight"] == "Long walk, short rain"
    assert "Tired" in provider.prompts[0]
    entry = client.get("/api/entries/2024-01-01", headers=headers).json()["entry"]
    assert entry["insight"] == "Tired"
    assert entry["myDaySummary"] == ""


def test_link_preview_uses_fetcher_and_validates_url(env):
    client, _Session, _provider = env
    headers = _register(client)

    ok = client.post("/api/link-preview", json={"url": "https://example.com"}, headers=headers)
    assert ok.status_code == 200
    assert ok.json()["title"] == "Stubbed page"
    assert ok.json()["siteName"] == "example.com"

    missing = client.post("/api/link-preview", json={}, headers=headers)
    assert missing.status_code == 400
    assert missing.json() == {"detail": "URL is required"}

    assert client.post("/api/link-preview", json={"url": "https://example.com"}).status_code == 401


def test_export_contains_only_callers_entries(env):
    client, _Session, _provider = env
    alice = _register(client, "alice@x.com")
    bob = _register(client, "bob@x.com")
    client.put("/api/entries/2024-01-01", json={"insight": "alice"}, headers=alice)
    client.put("/api/entries/2024-01-02", json={"insight": "bob"}, headers=bob)

    exported = client.get("/api/export", headers=alice).json()

    assert exported["user"]["email"] == "alice@x.com"
    assert list(exported["entries"]) == ["2024-01-01"]
    assert exported["exported_at"]


def test_unexpected_errors_become_generic_500(env, monkeypatch):
    client, _Session, _provider = env
    headers = _register(client)

    def _boom(*args, **kwargs):
        raise RuntimeError("disk on fire")

    monkeypatch.setattr("api.entries.list_entries", _boom)
    response = TestClient(app, raise_server_exceptions=False).get("/api/entries", headers=headers)

    assert response.status_code == 500
    assert response.json() == {"detail": "Server error"}
