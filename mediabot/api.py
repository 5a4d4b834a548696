# mediabot/api.py
from __future__ import annotations

import logging

from aiohttp import web

from .downloader import is_valid_media_url
from .errors import MediaError
from .models import MediaKind
from .player import MediaOrchestrator

log = logging.getLogger("mediabot.api")

MEDIA_KEY = web.AppKey("media", MediaOrchestrator)


@web.middleware
async def cors_middleware(request: web.Request, handler):
    if request.method == "OPTIONS":
        resp = web.Response()
    else:
        resp = await handler(request)
    resp.headers["Access-Control-Allow-Origin"] = "*"
    resp.headers["Access-Control-Allow-Methods"] = "GET, POST, OPTIONS, PUT, DELETE"
    resp.headers["Access-Control-Allow-Headers"] = "Content-Type"
    return resp


async def _body(request: web.Request) -> dict:
    try:
        data = await request.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}


def _media(request: web.Request) -> MediaOrchestrator:
    return request.app[MEDIA_KEY]


# ---------- lectura ----------
async def now_playing(request: web.Request):
    return web.json_response(_media(request).get_status())


async def queue_view(request: web.Request):
    return web.json_response(_media(request).get_queue())


async def video_status(request: web.Request):
    return web.json_response(_media(request).get_video_status())


async def health(request: web.Request):
    media = _media(request)
    cur = media.state.current
    return web.json_response({
        "status": "ok",
        "mediaManager": "running",
        "queueLength": len(media.state.queue),
        "currentMedia": cur.title if cur else "none",
        "playerConnected": media.link.is_connected(),
    })


# ---------- control ----------
async def skip(request: web.Request):
    return web.json_response(_media(request).skip().to_dict())


async def toggle_pause(request: web.Request):
    return web.json_response(_media(request).toggle_pause().to_dict())


async def volume(request: web.Request):
    data = await _body(request)
    return web.json_response(_media(request).set_volume(data.get("volume")).to_dict())


async def remove_media(request: web.Request):
    data = await _body(request)
    return web.json_response(_media(request).remove_from_queue(data.get("index")).to_dict())


async def reorder_queue(request: web.Request):
    data = await _body(request)
    result = _media(request).reorder_queue(data.get("fromIndex"), data.get("toIndex"))
    return web.json_response(result.to_dict())


async def _add(request: web.Request, default_kind: str, force: bool = False):
    data = await _body(request)
    url = data.get("url")
    if not is_valid_media_url(url):
        return web.json_response({"success": False, "message": "URL de YouTube inválida"})

    try:
        kind = MediaKind(default_kind if force else (data.get("type") or default_kind))
    except ValueError:
        return web.json_response({"success": False, "message": "Tipo de medio inválido"})

    try:
        result = await _media(request).queue_media(url.strip(), data.get("requestedBy") or "OBS Dock", kind)
    except MediaError as e:
        return web.json_response({"success": False, "message": str(e), "reason": e.reason})
    return web.json_response(result.to_dict())


async def add_media(request: web.Request):
    return await _add(request, MediaKind.DOWNLOADED.value)


async def add_song(request: web.Request):
    return await _add(request, MediaKind.DOWNLOADED.value, force=True)


def build_app(media: MediaOrchestrator) -> web.Application:
    app = web.Application(middlewares=[cors_middleware])
    app[MEDIA_KEY] = media
    app.router.add_get("/nowplaying", now_playing)
    app.router.add_get("/queue", queue_view)
    app.router.add_get("/video-status", video_status)
    app.router.add_get("/health", health)
    app.router.add_post("/control/skip", skip)
    app.router.add_post("/control/toggle-pause", toggle_pause)
    app.router.add_post("/control/volume", volume)
    app.router.add_post("/control/add-media", add_media)
    app.router.add_post("/control/add-song", add_song)
    app.router.add_post("/control/remove-media", remove_media)
    app.router.add_post("/control/remove-song", remove_media)
    app.router.add_post("/control/reorder-queue", reorder_queue)
    return app


async def start_api(media: MediaOrchestrator, port: int, host: str = "0.0.0.0") -> web.AppRunner:
    runner = web.AppRunner(build_app(media))
    await runner.setup()
    site = web.TCPSite(runner, host, port)
    await site.start()
    log.info("API de medios en http://localhost:%s (/nowplaying, /queue, /video-status)", port)
    return runner
