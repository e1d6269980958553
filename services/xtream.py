"""Cliente para servidores Xtream Codes (player_api.php).

Cada cuenta tiene su propio ``XtreamClient`` con las credenciales fijadas al
construirlo; no hay estado global compartido entre cuentas.

Los registros de contenido se devuelven como ``LiveStream``, ``VodStream`` o
``SeriesInfo`` con el campo ``content_type`` ya resuelto al descargarlos.
"""
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import httpx
from pydantic import TypeAdapter, ValidationError

from config import settings
from logging_conf import get_logger
from models import Channel, ContentType, XtreamCategory, XtreamItem, DEFAULT_CHANNEL_NAME

logger = get_logger(__name__)

HEADERS = {"User-Agent": "Mozilla/5.0 (X11; Linux x86_64) iptv-player"}

CATEGORY_ACTIONS = {
    "live": "get_live_categories",
    "vod": "get_vod_categories",
    "series": "get_series_categories",
}

STREAM_ACTIONS = {
    "live": "get_live_streams",
    "vod": "get_vod_streams",
    "series": "get_series",
}

# Segmento de la URL de reproducción por tipo de contenido
STREAM_PATHS = {
    "live": "live",
    "vod": "movie",
    "series": "series",
}

_item_adapter = TypeAdapter(XtreamItem)
_categories_adapter = TypeAdapter(List[XtreamCategory])


class XtreamError(Exception):
    pass


class XtreamAuthError(XtreamError):
    pass


@dataclass(frozen=True)
class XtreamCredentials:
    server_url: str
    username: str
    password: str

    @property
    def base_url(self) -> str:
        return self.server_url.rstrip("/")


class XtreamClient:
    def __init__(
            self,
            credentials: XtreamCredentials,
            timeout: Optional[float] = None,
            transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.credentials = credentials
        self.timeout = timeout or settings.HTTP_TIMEOUT
        self.transport = transport

    @property
    def auth_params(self) -> Dict[str, str]:
        return {"username": self.credentials.username, "password": self.credentials.password}

    async def _request(self, error_message: str, **params) -> Any:
        url = f"{self.credentials.base_url}/player_api.php"
        try:
            async with httpx.AsyncClient(
                    headers=HEADERS,
                    timeout=self.timeout,
                    follow_redirects=True,
                    transport=self.transport
            ) as client:
                response = await client.get(url, params={**self.auth_params, **params})
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.warning("Xtream %s sin respuesta (%s): %s", self.credentials.base_url, params.get("action"), e)
            raise XtreamError(error_message) from e

        if not response.is_success:
            logger.warning("Xtream %s respondió %s (%s)",
                           self.credentials.base_url, response.status_code, params.get("action"))
            raise XtreamError(error_message)

        try:
            return response.json()
        except ValueError as e:
            logger.warning("Xtream %s devolvió JSON inválido (%s)", self.credentials.base_url, params.get("action"))
            raise XtreamError(error_message) from e

    async def authenticate(self) -> Dict[str, Any]:
        data = await self._request("Error de conexión al servidor")
        user_info = data.get("user_info") if isinstance(data, dict) else None
        if not isinstance(user_info, dict) or str(user_info.get("auth", 0)) == "0":
            raise XtreamAuthError("Credenciales inválidas")
        logger.info("Credenciales Xtream válidas para %s en %s",
                    self.credentials.username, self.credentials.base_url)
        return data

    async def get_categories(self, content_type: ContentType) -> List[XtreamCategory]:
        data = await self._request("Error al obtener categorías", action=CATEGORY_ACTIONS[content_type])
        if not isinstance(data, list):
            return []
        try:
            return _categories_adapter.validate_python(data)
        except ValidationError as e:
            raise XtreamError("Error al obtener categorías") from e

    async def get_streams(self, content_type: ContentType, category_id: Optional[str] = None) -> List[XtreamItem]:
        params = {"action": STREAM_ACTIONS[content_type]}
        if category_id:
            params["category_id"] = category_id
        data = await self._request("Error al obtener contenido", **params)
        if not isinstance(data, list):
            return []

        items = []
        skipped = 0
        for raw in data:
            try:
                items.append(_item_adapter.validate_python({**raw, "content_type": content_type}))
            except (ValidationError, TypeError):
                skipped += 1
        if skipped:
            logger.warning("Xtream %s: %d registros %s ignorados", self.credentials.base_url, skipped, content_type)
        return items

    def stream_url(self, content_type: ContentType, stream_id: int, extension: str = "ts") -> str:
        creds = self.credentials
        return f"{creds.base_url}/{STREAM_PATHS[content_type]}/{creds.username}/{creds.password}/{stream_id}.{extension}"

    def to_channel(self, item: XtreamItem) -> Channel:
        extension = "ts"
        if item.content_type == "vod" and item.container_extension:
            extension = item.container_extension
        return Channel(
            id=str(item.item_id),
            name=item.name.strip() or DEFAULT_CHANNEL_NAME,
            url=self.stream_url(item.content_type, item.item_id, extension),
            logo=item.image
        )
