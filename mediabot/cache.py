# mediabot/cache.py
from __future__ import annotations

from typing import Dict, Optional

from .models import MediaInfo


class MetadataCache:
    """url -> (title, duration). Vive lo mismo que el orquestador, sin expiración."""

    def __init__(self):
        self._titles: Dict[str, str] = {}
        self._durations: Dict[str, int] = {}

    def get(self, url: str) -> Optional[MediaInfo]:
        title = self._titles.get(url)
        duration = self._durations.get(url)
        if title is None or duration is None:
            return None
        return MediaInfo(title=title, duration=duration)

    def put(self, url: str, info: MediaInfo):
        self._titles[url] = info.title
        self._durations[url] = info.duration
