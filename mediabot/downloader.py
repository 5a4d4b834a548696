# mediabot/downloader.py
from __future__ import annotations

import asyncio
import logging
import os
import re
import time
import uuid
from typing import Optional, Dict, Any, List

import yt_dlp

from .cache import MetadataCache
from .config import YTDL_INFO_OPTIONS, YTDL_DOWNLOAD_OPTIONS
from .errors import ExternalToolError, DownloadFailedError, ValidationError, classify_tool_error
from .models import MediaInfo

log = logging.getLogger("mediabot.downloader")

_URL_RE = re.compile(r"(youtube\.com/watch\?v=|youtu\.be/)")


def is_valid_media_url(url: Optional[str]) -> bool:
    return bool(url) and _URL_RE.search(url) is not None


def ensure_valid_url(url: Optional[str]) -> str:
    if not is_valid_media_url(url):
        raise ValidationError("URL de YouTube inválida")
    return url.strip()


class YTDLFetcher:
    """
    - Resuelve (title, duration) con yt-dlp, cacheado por URL
    - Descarga el audio a disco (mp3) para que VLC lo reproduzca local
    - Primero intenta con cookies del navegador, después sin ellas
    """

    def __init__(self, out_dir: str, cookies_browser: Optional[str] = "chrome", cache: Optional[MetadataCache] = None):
        self.out_dir = out_dir
        self.cookies_browser = cookies_browser or None
        self.cache = cache if cache is not None else MetadataCache()
        os.makedirs(self.out_dir, exist_ok=True)

    def _variants(self, base: Dict[str, Any]) -> List[Dict[str, Any]]:
        variants = []
        if self.cookies_browser:
            with_cookies = dict(base)
            with_cookies["cookiesfrombrowser"] = (self.cookies_browser,)
            variants.append(with_cookies)
        variants.append(dict(base))
        return variants

    def _run_variants(self, base: Dict[str, Any], url: str, download: bool, stage: str) -> Dict[str, Any]:
        last_error = ""
        for opts in self._variants(base):
            try:
                with yt_dlp.YoutubeDL(opts) as ydl:
                    info = ydl.extract_info(url, download=download)
                if isinstance(info, dict) and "entries" in info:
                    info = next((e for e in info["entries"] if e), None)
                if not info:
                    last_error = "no info returned"
                    continue
                return info
            except Exception as e:
                last_error = str(e)
                log.info("yt-dlp falló (%s, cookies=%s): %s", stage, "cookiesfrombrowser" in opts, e)
        raise classify_tool_error(last_error, stage=stage)

    async def fetch_metadata(self, url: str) -> MediaInfo:
        cached = self.cache.get(url)
        if cached is not None:
            return cached

        info = await asyncio.to_thread(self._run_variants, YTDL_INFO_OPTIONS, url, False, "info")
        title = (info.get("title") or "").strip()
        if not title:
            raise ExternalToolError("Respuesta de yt-dlp con formato inválido")
        try:
            duration = int(info.get("duration") or 0)
        except (TypeError, ValueError):
            duration = 0

        result = MediaInfo(title=title, duration=duration)
        self.cache.put(url, result)
        return result

    async def download(self, url: str) -> str:
        """Descarga el mejor audio como music_<ts>.mp3 y devuelve la ruta."""
        os.makedirs(self.out_dir, exist_ok=True)
        uid = f"music_{int(time.time() * 1000)}_{uuid.uuid4().hex[:6]}"
        opts = dict(YTDL_DOWNLOAD_OPTIONS)
        opts["outtmpl"] = os.path.join(self.out_dir, f"{uid}.%(ext)s")

        try:
            await asyncio.to_thread(self._run_variants, opts, url, True, "download")
        except ExternalToolError:
            self._discard(uid)
            raise

        mp3 = os.path.join(self.out_dir, f"{uid}.mp3")
        if os.path.exists(mp3):
            log.info("Audio descargado: %s", mp3)
            return mp3

        self._discard(uid)
        raise DownloadFailedError("Descarga completada pero no se encontró el archivo")

    def _discard(self, uid: str):
        # restos parciales (.part, .webm sin convertir)
        try:
            names = os.listdir(self.out_dir)
        except OSError:
            return
        for fn in names:
            if fn.startswith(uid + "."):
                try:
                    os.remove(os.path.join(self.out_dir, fn))
                except OSError as e:
                    log.warning("No se pudo borrar %s: %s", fn, e)
