# mediabot/config.py
from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

# ==========================================
# ⚙️ LÍMITES DE REPRODUCCIÓN
# ==========================================
MAX_DURATION_MINUTES = 8
TRANSITION_DELAY = 3.0      # pausa entre medios
SKIP_DELAY = 0.5            # pausa corta tras un skip
TICK_INTERVAL = 1.0         # reloj virtual (videos)
POLL_INTERVAL = 1.0         # sondeo de VLC
POLL_GAP = 0.1              # separación entre get_length / get_time / volume
QUERY_TIMEOUT = 0.8
CLEAR_GAP = 0.1             # clear -> add

# ==========================================
# 🎛️ VLC (interfaz rc)
# ==========================================
VLC_PATH = "vlc"
VLC_HOST = "127.0.0.1"
VLC_PORT = 8080
VLC_CONNECT_DELAY = 3.0
VLC_RECONNECT_DELAY = 3.0
VLC_ARGS = [
    "--extraintf=rc",
    "--qt-start-minimized",
    "--no-video-title-show",
    "--no-qt-privacy-ask",
    "--no-video-deco",
]
VLC_MAX_VOLUME = 256

# ==========================================
# 💿 CACHE / DESCARGAS
# ==========================================
OUTPUT_DIR = "media_output"
CACHE_MAX_AGE_MINUTES = 30
CLEANUP_INTERVAL_MINUTES = 5
COOKIES_BROWSER = "chrome"

# --- yt-dlp ---
YTDL_INFO_OPTIONS = {
    "quiet": True,
    "no_warnings": True,
    "noplaylist": True,
    "skip_download": True,
}

YTDL_DOWNLOAD_OPTIONS = {
    "format": "bestaudio/best",
    "quiet": True,
    "no_warnings": True,
    "noplaylist": True,
    "retries": 3,
    "postprocessors": [
        {"key": "FFmpegExtractAudio", "preferredcodec": "mp3", "preferredquality": "192"}
    ],
}

# ==========================================
# 💰 COSTOS / API
# ==========================================
MUSIC_COST = 10
VIDEO_COST = 20
API_PORT = 3333
LEDGER_DB = "tokens.db"


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return float(raw)


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return int(raw)


@dataclass
class MediaConfig:
    max_duration_minutes: int = MAX_DURATION_MINUTES
    transition_delay: float = TRANSITION_DELAY
    skip_delay: float = SKIP_DELAY
    tick_interval: float = TICK_INTERVAL
    poll_interval: float = POLL_INTERVAL
    poll_gap: float = POLL_GAP
    query_timeout: float = QUERY_TIMEOUT
    clear_gap: float = CLEAR_GAP

    output_dir: str = OUTPUT_DIR
    cache_max_age_minutes: int = CACHE_MAX_AGE_MINUTES
    cleanup_interval_minutes: int = CLEANUP_INTERVAL_MINUTES
    cookies_browser: str = COOKIES_BROWSER

    vlc_path: str = VLC_PATH
    vlc_host: str = VLC_HOST
    vlc_port: int = VLC_PORT
    vlc_connect_delay: float = VLC_CONNECT_DELAY
    vlc_reconnect_delay: float = VLC_RECONNECT_DELAY

    api_port: int = API_PORT
    music_cost: int = MUSIC_COST
    video_cost: int = VIDEO_COST
    ledger_db: str = LEDGER_DB

    @property
    def max_duration_seconds(self) -> int:
        return self.max_duration_minutes * 60

    @classmethod
    def from_env(cls) -> "MediaConfig":
        """Lee .env (si existe) y variables de entorno, con los defaults de arriba."""
        load_dotenv()
        return cls(
            max_duration_minutes=_env_int("MEDIA_MAX_DURATION_MINUTES", MAX_DURATION_MINUTES),
            transition_delay=_env_float("MEDIA_TRANSITION_DELAY", TRANSITION_DELAY),
            skip_delay=_env_float("MEDIA_SKIP_DELAY", SKIP_DELAY),
            output_dir=os.getenv("MEDIA_OUTPUT_DIR", OUTPUT_DIR),
            cache_max_age_minutes=_env_int("CACHE_MAX_AGE_MINUTES", CACHE_MAX_AGE_MINUTES),
            cleanup_interval_minutes=_env_int("CLEANUP_INTERVAL_MINUTES", CLEANUP_INTERVAL_MINUTES),
            cookies_browser=os.getenv("YTDLP_COOKIES_BROWSER", COOKIES_BROWSER),
            vlc_path=os.getenv("VLC_PATH", VLC_PATH),
            vlc_host=os.getenv("VLC_HOST", VLC_HOST),
            vlc_port=_env_int("VLC_PORT", VLC_PORT),
            vlc_connect_delay=_env_float("VLC_CONNECT_DELAY", VLC_CONNECT_DELAY),
            vlc_reconnect_delay=_env_float("VLC_RECONNECT_DELAY", VLC_RECONNECT_DELAY),
            api_port=_env_int("MEDIA_API_PORT", API_PORT),
            music_cost=_env_int("MUSIC_COST", MUSIC_COST),
            video_cost=_env_int("VIDEO_COST", VIDEO_COST),
            ledger_db=os.getenv("LEDGER_DB", LEDGER_DB),
        )
