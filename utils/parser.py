import re
from typing import Callable, Dict, List, Optional

from models import Channel, DEFAULT_CHANNEL_NAME, DEFAULT_GROUP
from logging_conf import get_logger

logger = get_logger(__name__)

EXTM3U = "#EXTM3U"
EXTINF = "#EXTINF:"

# Solo valores entre comillas dobles: key="value"
ATTRIBUTE_RE = re.compile(r'([A-Za-z-]+)="([^"]*)"')


def parse_attributes(text: str) -> Dict[str, str]:
    return {key: value for key, value in ATTRIBUTE_RE.findall(text)}


def _parse_extinf(extinf: str) -> Dict[str, str]:
    attributes = parse_attributes(extinf)
    # El nombre va tras la ÚLTIMA coma; las anteriores pueden ser de duración o atributos
    _, sep, tail = extinf.rpartition(",")
    name = tail.strip() if sep else ""
    return {"attributes": attributes, "name": name or DEFAULT_CHANNEL_NAME}


def parse_m3u(content: str, id_factory: Optional[Callable[[], str]] = None) -> List[Channel]:
    """Convierte texto M3U/M3U8 en una lista ordenada de canales.

    Nunca lanza excepciones: las líneas que no se entienden se ignoran y un
    #EXTINF sin URL a continuación se descarta. Una lista vacía significa
    "no se encontraron canales".

    Los ids no los asigna el parser; si se pasa ``id_factory`` se llama una
    vez por canal.
    """
    channels = []
    # Solo "\n" separa líneas; strip() ya quita el "\r" final
    lines = [line.strip() for line in content.split("\n") if line.strip()]

    pending = None
    for line in lines:
        if line.startswith(EXTINF):
            if pending is not None:
                logger.debug("EXTINF sin URL descartado: %s", pending["name"])
            pending = _parse_extinf(line[len(EXTINF):])
        elif not line.startswith("#") and pending is not None:
            attributes = pending["attributes"]
            channels.append(
                Channel(
                    id=id_factory() if id_factory else None,
                    name=pending["name"],
                    url=line,
                    logo=attributes.get("tvg-logo") or attributes.get("logo") or None,
                    group=attributes.get("group-title") or DEFAULT_GROUP,
                    tvg_id=attributes.get("tvg-id") or None,
                    tvg_name=attributes.get("tvg-name") or None,
                )
            )
            pending = None

    logger.debug("Lista analizada: %d canales", len(channels))
    return channels
