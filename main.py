import re
from typing import List, Optional
from urllib.parse import quote

import httpx
import uvicorn
from fastapi import FastAPI, File, UploadFile, Form, HTTPException, Request, Depends, Response
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

import crud
from config import settings
from models import (
    Channel, ChannelIn, ChannelUpdate, ContentType, ImportUrlRequest, ParseTextRequest,
    PlaylistCreate, PlaylistOut, PlaylistRename, PlaylistSummary,
    XtreamAccountIn, XtreamAccountOut, XtreamAccountUpdate, XtreamPlayRequest, DEFAULT_GROUP
)
from utils.parser import parse_m3u
from utils.generator import generate_m3u
from database import User, Playlist, XtreamAccount, get_db
from auth import authenticate_user, create_access_token, decode_access_token, init_admin_user, get_password_hash
from services.fetcher import fetch_playlist, PlaylistFetchError
from services.xtream import XtreamClient, XtreamCredentials, XtreamError, XtreamAuthError
from logging_conf import get_logger

logger = get_logger("main")

M3U_MEDIA_TYPE = "audio/x-mpegurl"
DEFAULT_IMPORT_NAME = "Lista importada"
NO_CHANNELS = "No se encontraron canales"

app = FastAPI(title="IPTV Player")

# Inicialización al arrancar
init_admin_user()


# === Autenticación ===
def get_current_user(request: Request, db: Session = Depends(get_db)) -> Optional[User]:
    token = request.cookies.get("access_token")
    if not token:
        scheme, _, credentials = request.headers.get("Authorization", "").partition(" ")
        if scheme.lower() == "bearer":
            token = credentials
    if not token:
        return None
    username = decode_access_token(token)
    if not username:
        return None
    return db.query(User).filter(User.username == username).first()

def require_user(user: Optional[User] = Depends(get_current_user)) -> User:
    if not user:
        raise HTTPException(status_code=401, detail="No autenticado")
    return user

def require_admin(user: User = Depends(require_user)) -> User:
    if not user.is_admin:
        raise HTTPException(status_code=403, detail="Acceso denegado")
    return user

# Transporte HTTP para listas remotas y Xtream; en tests se sustituye
def get_http_transport() -> Optional[httpx.AsyncBaseTransport]:
    return None


@app.post("/login")
async def login(
        username: str = Form(...),
        password: str = Form(...),
        db: Session = Depends(get_db)
):
    user = authenticate_user(db, username, password)
    if not user:
        logger.info(f"Inicio de sesión fallido para {username}")
        raise HTTPException(status_code=401, detail="Usuario o contraseña incorrectos")

    token = create_access_token(data={"sub": user.username})
    resp = JSONResponse({"message": "Sesión iniciada", "access_token": token})
    resp.set_cookie(key="access_token", value=token, httponly=True)
    return resp

@app.get("/logout")
async def logout():
    resp = JSONResponse({"message": "Sesión cerrada"})
    resp.delete_cookie("access_token")
    return resp

@app.get("/me")
async def me(user: User = Depends(require_user)):
    return {"id": user.id, "username": user.username, "is_admin": bool(user.is_admin)}


# === Usuarios (solo administrador) ===
@app.get("/users")
async def list_users(db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    return [
        {"id": u.id, "username": u.username, "is_admin": bool(u.is_admin), "created_at": u.created_at}
        for u in db.query(User).all()
    ]

@app.post("/users", status_code=201)
async def create_user(
        username: str = Form(...),
        password: str = Form(...),
        is_admin: bool = Form(False),
        db: Session = Depends(get_db),
        admin: User = Depends(require_admin)
):
    existing_user = db.query(User).filter(User.username == username).first()
    if existing_user:
        raise HTTPException(status_code=400, detail="El usuario ya existe")

    new_user = User(
        username=username,
        password=get_password_hash(password),
        is_admin=int(is_admin)
    )
    db.add(new_user)
    db.commit()
    logger.info(f"Usuario {username} creado por {admin.username}")
    return {"message": "Usuario creado", "id": new_user.id}

@app.delete("/users/{user_id}")
async def delete_user(user_id: int, db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(status_code=404, detail="Usuario no encontrado")
    if user.is_admin:
        raise HTTPException(status_code=400, detail="No se puede eliminar un administrador")
    db.delete(user)
    db.commit()
    return {"message": "Usuario eliminado"}


# === Listas ===
def _playlist_out(playlist: Playlist) -> PlaylistOut:
    return PlaylistOut(
        id=playlist.id,
        name=playlist.name,
        channels=crud.playlist_channels(playlist),
        created_at=playlist.created_at,
        updated_at=playlist.updated_at
    )

def get_owned_playlist(
        playlist_id: str,
        db: Session = Depends(get_db),
        user: User = Depends(require_user)
) -> Playlist:
    playlist = crud.get_playlist(db, user, playlist_id)
    if not playlist:
        raise HTTPException(status_code=404, detail="Lista no encontrada")
    return playlist

@app.get("/playlists", response_model=List[PlaylistSummary])
async def list_playlists(db: Session = Depends(get_db), user: User = Depends(require_user)):
    return [
        PlaylistSummary(
            id=p.id,
            name=p.name,
            channel_count=len(p.channels),
            created_at=p.created_at,
            updated_at=p.updated_at
        )
        for p in crud.list_playlists(db, user)
    ]

@app.post("/playlists", response_model=PlaylistOut, status_code=201)
async def create_playlist(data: PlaylistCreate, db: Session = Depends(get_db), user: User = Depends(require_user)):
    return _playlist_out(crud.create_playlist(db, user, data.name, data.channels))

@app.get("/playlists/{playlist_id}", response_model=PlaylistOut)
async def get_playlist(playlist: Playlist = Depends(get_owned_playlist)):
    return _playlist_out(playlist)

@app.put("/playlists/{playlist_id}", response_model=PlaylistOut)
async def rename_playlist(
        data: PlaylistRename,
        playlist: Playlist = Depends(get_owned_playlist),
        db: Session = Depends(get_db)
):
    return _playlist_out(crud.rename_playlist(db, playlist, data.name))

@app.delete("/playlists/{playlist_id}")
async def delete_playlist(playlist: Playlist = Depends(get_owned_playlist), db: Session = Depends(get_db)):
    crud.delete_playlist(db, playlist)
    return {"message": "Lista eliminada"}

@app.post("/playlists/import/file", response_model=PlaylistOut, status_code=201)
async def import_playlist_file(
        file: UploadFile = File(...),
        name: Optional[str] = Form(None),
        db: Session = Depends(get_db),
        user: User = Depends(require_user)
):
    filename = file.filename or ""
    if not filename.lower().endswith((".m3u", ".m3u8")):
        raise HTTPException(status_code=400, detail="El archivo debe ser .m3u o .m3u8")

    content = await file.read()
    channels = parse_m3u(content.decode("utf-8", errors="ignore"))
    if not channels:
        raise HTTPException(status_code=422, detail=f"{NO_CHANNELS} en el archivo")

    playlist_name = (name or "").strip() or re.sub(r"\.m3u8?$", "", filename, flags=re.IGNORECASE)
    playlist = crud.create_playlist(db, user, playlist_name, channels)
    logger.info(f"Importados {len(channels)} canales desde {filename}")
    return _playlist_out(playlist)

@app.post("/playlists/import/url", response_model=PlaylistOut, status_code=201)
async def import_playlist_url(
        data: ImportUrlRequest,
        db: Session = Depends(get_db),
        user: User = Depends(require_user),
        transport: Optional[httpx.AsyncBaseTransport] = Depends(get_http_transport)
):
    url = data.url.strip()
    if not url:
        raise HTTPException(status_code=400, detail="Introduce una URL válida")

    try:
        content = await fetch_playlist(url, transport=transport)
    except PlaylistFetchError:
        raise HTTPException(status_code=502, detail="Error al obtener la lista. Verifica la URL o usa un archivo.")

    channels = parse_m3u(content)
    if not channels:
        raise HTTPException(status_code=422, detail=f"{NO_CHANNELS} en la URL")

    playlist = crud.create_playlist(db, user, (data.name or "").strip() or DEFAULT_IMPORT_NAME, channels)
    logger.info(f"Importados {len(channels)} canales desde {url}")
    return _playlist_out(playlist)

@app.post("/parse-text")
async def parse_text(data: ParseTextRequest, user: User = Depends(require_user)):
    if not data.content.strip():
        raise HTTPException(status_code=400, detail="Contenido vacío")
    return {"channels": parse_m3u(data.content)}

@app.get("/playlists/{playlist_id}/export")
async def export_playlist(playlist: Playlist = Depends(get_owned_playlist)):
    content = generate_m3u(crud.playlist_channels(playlist))
    filename = f"{playlist.name}.m3u"
    # ASCII imprimible y sin comillas; el nombre completo va en filename*
    fallback = "".join(c for c in filename if " " <= c < "\x7f" and c != '"').strip() or "playlist.m3u"
    disposition = f'attachment; filename="{fallback}"; filename*=UTF-8\'\'{quote(filename)}'
    return Response(content=content, media_type=M3U_MEDIA_TYPE, headers={"Content-Disposition": disposition})


# === Canales ===
@app.get("/playlists/{playlist_id}/channels", response_model=List[Channel])
async def list_channels(
        search: Optional[str] = None,
        group: Optional[str] = None,
        playlist: Playlist = Depends(get_owned_playlist)
):
    channels = crud.playlist_channels(playlist)
    if search:
        query = search.lower()
        channels = [c for c in channels if query in c.name.lower()]
    if group:
        channels = [c for c in channels if c.group == group]
    return channels

@app.get("/playlists/{playlist_id}/groups")
async def list_groups(playlist: Playlist = Depends(get_owned_playlist)):
    return sorted({c.group_title or DEFAULT_GROUP for c in playlist.channels})

@app.post("/playlists/{playlist_id}/channels", response_model=Channel, status_code=201)
async def add_channel(
        data: ChannelIn,
        playlist: Playlist = Depends(get_owned_playlist),
        db: Session = Depends(get_db)
):
    return crud.add_channel(db, playlist, data).to_channel()

@app.put("/playlists/{playlist_id}/channels/{channel_id}", response_model=Channel)
async def update_channel(
        channel_id: str,
        data: ChannelUpdate,
        playlist: Playlist = Depends(get_owned_playlist),
        db: Session = Depends(get_db)
):
    record = crud.get_channel(db, playlist, channel_id)
    if not record:
        raise HTTPException(status_code=404, detail="Canal no encontrado")
    return crud.update_channel(db, playlist, record, data).to_channel()

@app.delete("/playlists/{playlist_id}/channels/{channel_id}")
async def delete_channel(
        channel_id: str,
        playlist: Playlist = Depends(get_owned_playlist),
        db: Session = Depends(get_db)
):
    record = crud.get_channel(db, playlist, channel_id)
    if not record:
        raise HTTPException(status_code=404, detail="Canal no encontrado")
    crud.delete_channel(db, playlist, record)
    return {"message": "Canal eliminado"}


# === Xtream ===
def _xtream_client(account, transport) -> XtreamClient:
    credentials = XtreamCredentials(account.server_url, account.username, account.password)
    return XtreamClient(credentials, transport=transport)

def _xtream_http_error(error: XtreamError) -> HTTPException:
    if isinstance(error, XtreamAuthError):
        return HTTPException(status_code=401, detail=str(error))
    return HTTPException(status_code=502, detail=str(error))

def get_owned_account(
        account_id: str,
        db: Session = Depends(get_db),
        user: User = Depends(require_user)
) -> XtreamAccount:
    account = crud.get_xtream_account(db, user, account_id)
    if not account:
        raise HTTPException(status_code=404, detail="Cuenta no encontrada")
    return account

@app.get("/xtream/accounts", response_model=List[XtreamAccountOut])
async def list_xtream_accounts(db: Session = Depends(get_db), user: User = Depends(require_user)):
    return crud.list_xtream_accounts(db, user)

@app.post("/xtream/accounts", response_model=XtreamAccountOut, status_code=201)
async def add_xtream_account(
        data: XtreamAccountIn,
        db: Session = Depends(get_db),
        user: User = Depends(require_user),
        transport: Optional[httpx.AsyncBaseTransport] = Depends(get_http_transport)
):
    try:
        await _xtream_client(data, transport).authenticate()
    except XtreamError as e:
        raise _xtream_http_error(e)
    return crud.create_xtream_account(db, user, data)

@app.get("/xtream/accounts/{account_id}", response_model=XtreamAccountOut)
async def get_xtream_account(account: XtreamAccount = Depends(get_owned_account)):
    return account

@app.put("/xtream/accounts/{account_id}", response_model=XtreamAccountOut)
async def update_xtream_account(
        data: XtreamAccountUpdate,
        account: XtreamAccount = Depends(get_owned_account),
        db: Session = Depends(get_db),
        transport: Optional[httpx.AsyncBaseTransport] = Depends(get_http_transport)
):
    changes = {k: v.strip() for k, v in data.model_dump(exclude_unset=True).items() if v and v.strip()}
    if changes.keys() & {"server_url", "username", "password"}:
        candidate = XtreamCredentials(
            changes.get("server_url", account.server_url),
            changes.get("username", account.username),
            changes.get("password", account.password)
        )
        try:
            await XtreamClient(candidate, transport=transport).authenticate()
        except XtreamError as e:
            raise _xtream_http_error(e)
    return crud.update_xtream_account(db, account, data)

@app.delete("/xtream/accounts/{account_id}")
async def delete_xtream_account(account: XtreamAccount = Depends(get_owned_account), db: Session = Depends(get_db)):
    crud.delete_xtream_account(db, account)
    return {"message": "Cuenta eliminada"}

@app.get("/xtream/accounts/{account_id}/categories")
async def xtream_categories(
        content_type: ContentType = "live",
        account: XtreamAccount = Depends(get_owned_account),
        transport: Optional[httpx.AsyncBaseTransport] = Depends(get_http_transport)
):
    try:
        return await _xtream_client(account, transport).get_categories(content_type)
    except XtreamError as e:
        raise _xtream_http_error(e)

@app.get("/xtream/accounts/{account_id}/streams")
async def xtream_streams(
        content_type: ContentType = "live",
        category_id: Optional[str] = None,
        search: Optional[str] = None,
        account: XtreamAccount = Depends(get_owned_account),
        transport: Optional[httpx.AsyncBaseTransport] = Depends(get_http_transport)
):
    try:
        items = await _xtream_client(account, transport).get_streams(content_type, category_id)
    except XtreamError as e:
        raise _xtream_http_error(e)
    if search and search.strip():
        query = search.strip().lower()
        items = [item for item in items if query in item.name.lower()]
    return items

@app.post("/xtream/accounts/{account_id}/play", response_model=Channel)
async def xtream_play(data: XtreamPlayRequest, account: XtreamAccount = Depends(get_owned_account)):
    return _xtream_client(account, None).to_channel(data.item)


if __name__ == "__main__":
    print("=== Configuración cargada ===")
    print(f"DEBUG: {settings.DEBUG}")
    print(f"APP_HOST: {settings.APP_HOST}")
    print(f"APP_PORT: {settings.APP_PORT}")
    print(f"ADMIN_USERNAME: {settings.ADMIN_USERNAME}")
    print(f"DATABASE_URL: {settings.DATABASE_URL}")
    print("==============================")

    uvicorn.run(
        "main:app",
        host=settings.APP_HOST,
        port=settings.APP_PORT,
        reload=settings.DEBUG,
        log_level="info"
    )
