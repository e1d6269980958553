from sqlalchemy import create_engine, Column, Integer, String, Text, DateTime, ForeignKey
from sqlalchemy.orm import declarative_base, sessionmaker, relationship
from sqlalchemy.engine import make_url
from datetime import datetime
import os

from config import settings
from models import Channel

# Creamos el directorio de la base de datos SQLite
_url = make_url(settings.DATABASE_URL)
if _url.get_backend_name() == "sqlite" and _url.database:
    os.makedirs(os.path.dirname(os.path.abspath(_url.database)), exist_ok=True)

engine = create_engine(settings.DATABASE_URL, connect_args={"check_same_thread": False})

Base = declarative_base()

# Usuario
class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String, unique=True, index=True)
    password = Column(String)
    is_admin = Column(Integer, default=0, server_default="0")
    created_at = Column(DateTime, default=datetime.utcnow)

    playlists = relationship("Playlist", back_populates="owner", cascade="all, delete-orphan")
    xtream_accounts = relationship("XtreamAccount", back_populates="owner", cascade="all, delete-orphan")

# Lista de canales
class Playlist(Base):
    __tablename__ = "playlists"

    id = Column(String, primary_key=True, index=True)
    name = Column(String, index=True)
    owner_id = Column(Integer, ForeignKey("users.id"), index=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow)

    owner = relationship("User", back_populates="playlists")
    channels = relationship(
        "ChannelRecord",
        back_populates="playlist",
        order_by="ChannelRecord.position",
        cascade="all, delete-orphan"
    )

# Canal de una lista; position conserva el orden del M3U
class ChannelRecord(Base):
    __tablename__ = "channels"

    id = Column(String, primary_key=True, index=True)
    playlist_id = Column(String, ForeignKey("playlists.id"), index=True)
    position = Column(Integer, nullable=False)
    name = Column(String, nullable=False)
    url = Column(Text, nullable=False)
    logo = Column(Text)
    group_title = Column(String)
    tvg_id = Column(String)
    tvg_name = Column(String)

    playlist = relationship("Playlist", back_populates="channels")

    def to_channel(self) -> Channel:
        return Channel(
            id=self.id,
            name=self.name,
            url=self.url,
            logo=self.logo,
            group=self.group_title,
            tvg_id=self.tvg_id,
            tvg_name=self.tvg_name
        )

# Cuenta de un servidor Xtream Codes
class XtreamAccount(Base):
    __tablename__ = "xtream_accounts"

    id = Column(String, primary_key=True, index=True)
    owner_id = Column(Integer, ForeignKey("users.id"), index=True)
    name = Column(String)
    server_url = Column(String)
    username = Column(String)
    password = Column(String)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow)

    owner = relationship("User", back_populates="xtream_accounts")

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

# Creamos las tablas al arrancar
Base.metadata.create_all(bind=engine)
