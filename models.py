from datetime import datetime
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_CHANNEL_NAME = "Sin nombre"
DEFAULT_GROUP = "General"

ContentType = Literal["live", "vod", "series"]


class Channel(BaseModel):
    id: Optional[str] = None
    name: str
    url: str
    logo: Optional[str] = None
    group: Optional[str] = None
    tvg_id: Optional[str] = None
    tvg_name: Optional[str] = None


class ChannelIn(BaseModel):
    """Canal introducido a mano (alta o edición)."""
    name: str
    url: str
    logo: Optional[str] = None
    group: Optional[str] = None
    tvg_id: Optional[str] = None
    tvg_name: Optional[str] = None

    @field_validator("name", "url")
    @classmethod
    def required_text(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("no puede estar vacío")
        return value

    @field_validator("logo", "tvg_id", "tvg_name")
    @classmethod
    def optional_text(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return value.strip() or None

    @field_validator("group")
    @classmethod
    def group_or_default(cls, value: Optional[str]) -> str:
        if value is None or not value.strip():
            return DEFAULT_GROUP
        return value.strip()


class ChannelUpdate(BaseModel):
    name: Optional[str] = None
    url: Optional[str] = None
    logo: Optional[str] = None
    group: Optional[str] = None
    tvg_id: Optional[str] = None
    tvg_name: Optional[str] = None

    @field_validator("name", "url")
    @classmethod
    def not_blank(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        value = value.strip()
        if not value:
            raise ValueError("no puede estar vacío")
        return value


class PlaylistCreate(BaseModel):
    name: str
    channels: List[ChannelIn] = []

    @field_validator("name")
    @classmethod
    def name_required(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("no puede estar vacío")
        return value


class PlaylistRename(BaseModel):
    name: str

    @field_validator("name")
    @classmethod
    def name_required(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("no puede estar vacío")
        return value


class PlaylistSummary(BaseModel):
    id: str
    name: str
    channel_count: int
    created_at: datetime
    updated_at: datetime


class PlaylistOut(BaseModel):
    id: str
    name: str
    channels: List[Channel]
    created_at: datetime
    updated_at: datetime


class ImportUrlRequest(BaseModel):
    url: str
    name: Optional[str] = None


class ParseTextRequest(BaseModel):
    content: str = ""


# === Xtream ===

class XtreamAccountIn(BaseModel):
    name: str
    server_url: str
    username: str
    password: str

    @field_validator("name", "server_url", "username", "password")
    @classmethod
    def required_text(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Todos los campos son requeridos")
        return value


class XtreamAccountUpdate(BaseModel):
    name: Optional[str] = None
    server_url: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None


class XtreamAccountOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    server_url: str
    username: str
    created_at: datetime
    updated_at: datetime


class XtreamCategory(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    category_id: str
    category_name: str
    parent_id: Optional[int] = None


class _XtreamRecord(BaseModel):
    # Los servidores Xtream mezclan números y cadenas en los mismos campos
    model_config = ConfigDict(coerce_numbers_to_str=True)

    name: str
    category_id: Optional[str] = None


class LiveStream(_XtreamRecord):
    content_type: Literal["live"] = "live"
    stream_id: int
    stream_icon: Optional[str] = None
    epg_channel_id: Optional[str] = None

    @property
    def item_id(self) -> int:
        return self.stream_id

    @property
    def image(self) -> Optional[str]:
        return self.stream_icon or None


class VodStream(_XtreamRecord):
    content_type: Literal["vod"] = "vod"
    stream_id: int
    stream_icon: Optional[str] = None
    container_extension: Optional[str] = None
    rating: Optional[str] = None

    @property
    def item_id(self) -> int:
        return self.stream_id

    @property
    def image(self) -> Optional[str]:
        return self.stream_icon or None


class SeriesInfo(_XtreamRecord):
    content_type: Literal["series"] = "series"
    series_id: int
    cover: Optional[str] = None
    plot: Optional[str] = None
    rating: Optional[str] = None

    @property
    def item_id(self) -> int:
        return self.series_id

    @property
    def image(self) -> Optional[str]:
        return self.cover or None


XtreamItem = Annotated[Union[LiveStream, VodStream, SeriesInfo], Field(discriminator="content_type")]


class XtreamPlayRequest(BaseModel):
    item: XtreamItem
