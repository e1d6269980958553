"""Fixtures comunes.

La base de datos y los logs van a un directorio temporal; las variables se
fijan antes de importar ``config`` para que ``.env`` no las pise.
"""
import os
import tempfile

_TMP_DIR = tempfile.mkdtemp(prefix="iptv-player-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_TMP_DIR, 'test.db')}"
os.environ["LOG_DIR"] = os.path.join(_TMP_DIR, "logs")
os.environ["ADMIN_USERNAME"] = "admin"
os.environ["ADMIN_PASSWORD"] = "admin"
os.environ["DEBUG"] = "false"

import httpx
import pytest
from fastapi.testclient import TestClient

XTREAM_SERVER = "http://xtream.test/"
XTREAM_USER = "user"
XTREAM_PASS = "pass"

LIVE_CATEGORIES = [
    {"category_id": "1", "category_name": "Noticias", "parent_id": 0},
    {"category_id": 2, "category_name": "Deportes", "parent_id": 0},
]
LIVE_STREAMS = [
    {"num": 1, "name": "CNN", "stream_type": "live", "stream_id": 101,
     "stream_icon": "http://x/cnn.png", "epg_channel_id": "cnn.us", "category_id": "1"},
    {"num": 2, "name": "ESPN", "stream_type": "live", "stream_id": "102",
     "stream_icon": "", "epg_channel_id": None, "category_id": "2"},
]
VOD_STREAMS = [
    {"num": 1, "name": "Matrix", "stream_type": "movie", "stream_id": 201,
     "stream_icon": "http://x/matrix.jpg", "container_extension": "mkv", "category_id": "10", "rating": "8.7"},
]
SERIES = [
    {"num": 1, "name": "Dark", "series_id": 301, "cover": "http://x/dark.jpg",
     "plot": "Winden", "category_id": "20", "rating": 8.8},
]

XTREAM_DATA = {
    "get_live_categories": LIVE_CATEGORIES,
    "get_vod_categories": [{"category_id": "10", "category_name": "Cine", "parent_id": 0}],
    "get_series_categories": [{"category_id": "20", "category_name": "Series", "parent_id": 0}],
    "get_live_streams": LIVE_STREAMS,
    "get_vod_streams": VOD_STREAMS,
    "get_series": SERIES,
}


def xtream_handler(request: httpx.Request) -> httpx.Response:
    """Servidor Xtream falso para httpx.MockTransport."""
    if request.url.path != "/player_api.php":
        return httpx.Response(404)
    params = request.url.params
    if params.get("username") != XTREAM_USER or params.get("password") != XTREAM_PASS:
        return httpx.Response(200, json={"user_info": {"auth": 0}})

    action = params.get("action")
    if action is None:
        return httpx.Response(200, json={
            "user_info": {"auth": 1, "username": XTREAM_USER, "status": "Active"},
            "server_info": {"url": "xtream.test", "port": "80"},
        })
    if action not in XTREAM_DATA:
        return httpx.Response(400)

    data = XTREAM_DATA[action]
    category_id = params.get("category_id")
    if category_id:
        data = [item for item in data if str(item.get("category_id")) == category_id]
    return httpx.Response(200, json=data)


@pytest.fixture
def xtream_transport():
    return httpx.MockTransport(xtream_handler)


@pytest.fixture
def app():
    from main import app as fastapi_app
    yield fastapi_app
    fastapi_app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def clean_db():
    from database import SessionLocal, User, Playlist, XtreamAccount
    from config import settings

    db = SessionLocal()
    try:
        for playlist in db.query(Playlist).all():
            db.delete(playlist)
        for account in db.query(XtreamAccount).all():
            db.delete(account)
        db.query(User).filter(User.username != settings.ADMIN_USERNAME).delete()
        db.commit()
    finally:
        db.close()
    yield


@pytest.fixture
def anon_client(app):
    with TestClient(app) as client:
        yield client


@pytest.fixture
def client(app):
    """Cliente con la sesión del administrador iniciada."""
    with TestClient(app) as test_client:
        resp = test_client.post("/login", data={"username": "admin", "password": "admin"})
        assert resp.status_code == 200
        yield test_client


@pytest.fixture
def mock_http(app):
    """Sustituye el transporte HTTP de la app: devuelve un dict ruta -> respuesta."""
    from main import get_http_transport

    routes = {}

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/player_api.php":
            return xtream_handler(request)
        if str(request.url) in routes:
            return routes[str(request.url)]
        return httpx.Response(404)

    transport = httpx.MockTransport(handler)
    app.dependency_overrides[get_http_transport] = lambda: transport
    return routes
