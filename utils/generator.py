from typing import Iterable, Mapping, Union

from models import Channel

ATTRIBUTE_ORDER = (
    ("tvg-id", "tvg_id"),
    ("tvg-name", "tvg_name"),
    ("tvg-logo", "logo"),
    ("group-title", "group"),
)


def generate_m3u(channels: Iterable[Union[Channel, Mapping]]) -> str:
    lines = ["#EXTM3U"]
    for ch in channels:
        if isinstance(ch, Channel):
            ch = ch.model_dump()
        extinf = "#EXTINF:-1"
        for attribute, field in ATTRIBUTE_ORDER:
            if ch.get(field):
                extinf += f' {attribute}="{ch[field]}"'
        # El nombre no se escapa: una coma en el nombre no sobrevive a parse_m3u
        extinf += f',{ch["name"]}'
        lines.append(extinf)
        lines.append(ch["url"])
    return "\n".join(lines) + "\n"
