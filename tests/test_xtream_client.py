import asyncio

import httpx
import pytest

from models import LiveStream, SeriesInfo, VodStream
from services.xtream import XtreamAuthError, XtreamClient, XtreamCredentials, XtreamError

from conftest import XTREAM_PASS, XTREAM_SERVER, XTREAM_USER


def make_client(transport, username=XTREAM_USER, password=XTREAM_PASS):
    return XtreamClient(XtreamCredentials(XTREAM_SERVER, username, password), transport=transport)


def test_base_url_strips_trailing_slash():
    assert XtreamCredentials("http://host:8080/", "u", "p").base_url == "http://host:8080"


def test_authenticate_ok(xtream_transport):
    data = asyncio.run(make_client(xtream_transport).authenticate())
    assert data["user_info"]["auth"] == 1


def test_authenticate_bad_credentials(xtream_transport):
    with pytest.raises(XtreamAuthError, match="Credenciales inválidas"):
        asyncio.run(make_client(xtream_transport, password="wrong").authenticate())


def test_authenticate_missing_user_info():
    transport = httpx.MockTransport(lambda request: httpx.Response(200, json={}))
    with pytest.raises(XtreamAuthError):
        asyncio.run(make_client(transport).authenticate())


def test_authenticate_server_error():
    transport = httpx.MockTransport(lambda request: httpx.Response(500))
    with pytest.raises(XtreamError, match="Error de conexión al servidor") as excinfo:
        asyncio.run(make_client(transport).authenticate())
    assert not isinstance(excinfo.value, XtreamAuthError)


def test_connection_error():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(XtreamError):
        asyncio.run(make_client(httpx.MockTransport(handler)).authenticate())


def test_invalid_json():
    transport = httpx.MockTransport(lambda request: httpx.Response(200, text="<html>"))
    with pytest.raises(XtreamError):
        asyncio.run(make_client(transport).get_categories("live"))


def test_credentials_sent_as_query_params():
    seen = []

    def handler(request):
        seen.append(request.url)
        return httpx.Response(200, json=[])

    client = XtreamClient(XtreamCredentials("http://host/", "us er", "p&ss"), transport=httpx.MockTransport(handler))
    asyncio.run(client.get_streams("vod", category_id="7"))
    url = seen[0]
    assert url.path == "/player_api.php"
    assert url.params["username"] == "us er"
    assert url.params["password"] == "p&ss"
    assert url.params["action"] == "get_vod_streams"
    assert url.params["category_id"] == "7"


def test_get_categories(xtream_transport):
    categories = asyncio.run(make_client(xtream_transport).get_categories("live"))
    assert [c.category_name for c in categories] == ["Noticias", "Deportes"]
    assert categories[1].category_id == "2"


def test_live_streams_are_tagged(xtream_transport):
    items = asyncio.run(make_client(xtream_transport).get_streams("live"))
    assert all(isinstance(item, LiveStream) for item in items)
    assert [item.content_type for item in items] == ["live", "live"]
    assert items[1].item_id == 102
    assert items[1].image is None


def test_streams_filtered_by_category(xtream_transport):
    items = asyncio.run(make_client(xtream_transport).get_streams("live", category_id="2"))
    assert [item.name for item in items] == ["ESPN"]


def test_vod_and_series_variants(xtream_transport):
    client = make_client(xtream_transport)
    vod = asyncio.run(client.get_streams("vod"))
    series = asyncio.run(client.get_streams("series"))
    assert isinstance(vod[0], VodStream)
    assert vod[0].container_extension == "mkv"
    assert isinstance(series[0], SeriesInfo)
    assert series[0].item_id == 301
    assert series[0].image == "http://x/dark.jpg"
    assert series[0].rating == "8.8"


def test_malformed_records_are_skipped():
    payload = [{"name": "Sin id"}, {"name": "Ok", "stream_id": 5}, "basura"]
    transport = httpx.MockTransport(lambda request: httpx.Response(200, json=payload))
    items = asyncio.run(make_client(transport).get_streams("live"))
    assert [item.name for item in items] == ["Ok"]


def test_non_list_payload_is_empty():
    transport = httpx.MockTransport(lambda request: httpx.Response(200, json={}))
    assert asyncio.run(make_client(transport).get_streams("series")) == []


def test_stream_urls():
    client = XtreamClient(XtreamCredentials("http://host:8080/", "u", "p"))
    assert client.stream_url("live", 1) == "http://host:8080/live/u/p/1.ts"
    assert client.stream_url("vod", 2, "mp4") == "http://host:8080/movie/u/p/2.mp4"
    assert client.stream_url("series", 3) == "http://host:8080/series/u/p/3.ts"


def test_to_channel():
    client = XtreamClient(XtreamCredentials("http://host", "u", "p"))
    live = LiveStream(name="CNN", stream_id=101, stream_icon="http://x/cnn.png")
    vod = VodStream(name="Matrix", stream_id=201, container_extension="mkv")
    series = SeriesInfo(name="Dark", series_id=301, cover="http://x/dark.jpg")

    ch = client.to_channel(live)
    assert (ch.id, ch.name, ch.url, ch.logo) == ("101", "CNN", "http://host/live/u/p/101.ts", "http://x/cnn.png")
    assert client.to_channel(vod).url == "http://host/movie/u/p/201.mkv"
    assert client.to_channel(series).url == "http://host/series/u/p/301.ts"
    assert client.to_channel(series).logo == "http://x/dark.jpg"


def test_clients_do_not_share_credentials():
    a = XtreamClient(XtreamCredentials("http://a", "ua", "pa"))
    b = XtreamClient(XtreamCredentials("http://b", "ub", "pb"))
    assert a.stream_url("live", 1) == "http://a/live/ua/pa/1.ts"
    assert b.stream_url("live", 1) == "http://b/live/ub/pb/1.ts"


@pytest.mark.parametrize("user_info", ["bad", [1], 1, None])
def test_authenticate_malformed_user_info(user_info):
    transport = httpx.MockTransport(lambda request: httpx.Response(200, json={"user_info": user_info}))
    with pytest.raises(XtreamAuthError):
        asyncio.run(make_client(transport).authenticate())


def test_to_channel_blank_name_uses_placeholder():
    client = XtreamClient(XtreamCredentials("http://host", "u", "p"))
    assert client.to_channel(LiveStream(name="  ", stream_id=1)).name == "Sin nombre"
