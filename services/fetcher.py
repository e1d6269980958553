from typing import Optional

import httpx

from config import settings
from logging_conf import get_logger

logger = get_logger(__name__)

HEADERS = {"User-Agent": "Mozilla/5.0 (X11; Linux x86_64) iptv-player"}


class PlaylistFetchError(Exception):
    """No se pudo descargar la lista remota."""


async def fetch_playlist(
        url: str,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
) -> str:
    try:
        async with httpx.AsyncClient(
                headers=HEADERS,
                timeout=timeout or settings.HTTP_TIMEOUT,
                follow_redirects=True,
                transport=transport
        ) as client:
            response = await client.get(url)
            response.raise_for_status()
            return response.text
    except httpx.HTTPStatusError as e:
        logger.warning("Lista %s respondió %s", url, e.response.status_code)
        raise PlaylistFetchError("No se pudo obtener la lista") from e
    except (httpx.HTTPError, httpx.InvalidURL) as e:
        logger.warning("Error descargando la lista %s: %s", url, e)
        raise PlaylistFetchError("No se pudo obtener la lista") from e
