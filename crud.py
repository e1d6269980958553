from datetime import datetime
from typing import Iterable, List, Optional

from sqlalchemy.orm import Session

from database import Playlist, ChannelRecord, XtreamAccount, User
from models import Channel, ChannelIn, ChannelUpdate, XtreamAccountIn, XtreamAccountUpdate, DEFAULT_GROUP
from utils.generate_id import generate_id
from logging_conf import get_logger

logger = get_logger(__name__)


def _touch(obj) -> None:
    obj.updated_at = datetime.utcnow()


def _record_from_channel(channel, position: int) -> ChannelRecord:
    # Los ids los asigna siempre la capa de persistencia
    return ChannelRecord(
        id=generate_id(),
        position=position,
        name=channel.name,
        url=channel.url,
        logo=channel.logo,
        group_title=channel.group or DEFAULT_GROUP,
        tvg_id=channel.tvg_id,
        tvg_name=channel.tvg_name
    )


# === Listas ===

def list_playlists(db: Session, user: User) -> List[Playlist]:
    return db.query(Playlist).filter(Playlist.owner_id == user.id).order_by(Playlist.created_at).all()


def get_playlist(db: Session, user: User, playlist_id: str) -> Optional[Playlist]:
    return db.query(Playlist).filter(Playlist.id == playlist_id, Playlist.owner_id == user.id).first()


def create_playlist(db: Session, user: User, name: str, channels: Iterable = ()) -> Playlist:
    playlist = Playlist(id=generate_id(), name=name, owner_id=user.id)
    playlist.channels = [_record_from_channel(ch, i) for i, ch in enumerate(channels)]
    db.add(playlist)
    db.commit()
    db.refresh(playlist)
    logger.info("Lista %s creada por %s con %d canales", playlist.id, user.username, len(playlist.channels))
    return playlist


def rename_playlist(db: Session, playlist: Playlist, name: str) -> Playlist:
    playlist.name = name
    _touch(playlist)
    db.commit()
    db.refresh(playlist)
    return playlist


def delete_playlist(db: Session, playlist: Playlist) -> None:
    logger.info("Lista %s eliminada", playlist.id)
    db.delete(playlist)
    db.commit()


def playlist_channels(playlist: Playlist) -> List[Channel]:
    return [record.to_channel() for record in playlist.channels]


# === Canales ===

def get_channel(db: Session, playlist: Playlist, channel_id: str) -> Optional[ChannelRecord]:
    return db.query(ChannelRecord).filter(
        ChannelRecord.id == channel_id,
        ChannelRecord.playlist_id == playlist.id
    ).first()


def add_channel(db: Session, playlist: Playlist, data: ChannelIn) -> ChannelRecord:
    position = max((c.position for c in playlist.channels), default=-1) + 1
    record = _record_from_channel(data, position)
    playlist.channels.append(record)
    _touch(playlist)
    db.commit()
    db.refresh(record)
    return record


def update_channel(db: Session, playlist: Playlist, record: ChannelRecord, data: ChannelUpdate) -> ChannelRecord:
    updates = data.model_dump(exclude_unset=True)
    if "group" in updates:
        updates["group_title"] = (updates.pop("group") or "").strip() or DEFAULT_GROUP
    for key, value in updates.items():
        if key in ("name", "url") and value is None:
            continue
        if key in ("logo", "tvg_id", "tvg_name") and value is not None:
            value = value.strip() or None
        setattr(record, key, value)
    _touch(playlist)
    db.commit()
    db.refresh(record)
    return record


def delete_channel(db: Session, playlist: Playlist, record: ChannelRecord) -> None:
    playlist.channels.remove(record)
    _touch(playlist)
    db.commit()


# === Cuentas Xtream ===

def list_xtream_accounts(db: Session, user: User) -> List[XtreamAccount]:
    return db.query(XtreamAccount).filter(XtreamAccount.owner_id == user.id).order_by(XtreamAccount.created_at).all()


def get_xtream_account(db: Session, user: User, account_id: str) -> Optional[XtreamAccount]:
    return db.query(XtreamAccount).filter(
        XtreamAccount.id == account_id,
        XtreamAccount.owner_id == user.id
    ).first()


def create_xtream_account(db: Session, user: User, data: XtreamAccountIn) -> XtreamAccount:
    account = XtreamAccount(id=generate_id(), owner_id=user.id, **data.model_dump())
    db.add(account)
    db.commit()
    db.refresh(account)
    logger.info("Cuenta Xtream %s añadida por %s", account.id, user.username)
    return account


def update_xtream_account(db: Session, account: XtreamAccount, data: XtreamAccountUpdate) -> XtreamAccount:
    for key, value in data.model_dump(exclude_unset=True).items():
        if value is not None and value.strip():
            setattr(account, key, value.strip())
    _touch(account)
    db.commit()
    db.refresh(account)
    return account


def delete_xtream_account(db: Session, account: XtreamAccount) -> None:
    logger.info("Cuenta Xtream %s eliminada", account.id)
    db.delete(account)
    db.commit()
