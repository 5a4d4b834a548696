# mediabot/models.py
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, List, Set


class MediaKind(str, Enum):
    # music -> se descarga y va a VLC; video -> lo pinta el overlay, aquí solo reloj
    DOWNLOADED = "music"
    STREAMED = "video"


@dataclass
class MediaInfo:
    title: str
    duration: int


@dataclass
class MediaRequest:
    url: str
    title: str
    duration: int
    requested_by: str
    kind: MediaKind
    sequence_id: int
    local_file: Optional[str] = None

    # runtime
    position: int = 0
    length: int = 0

    @property
    def preloaded(self) -> bool:
        return self.kind == MediaKind.DOWNLOADED and bool(self.local_file)


@dataclass
class PlaybackState:
    queue: List[MediaRequest] = field(default_factory=list)
    current: Optional[MediaRequest] = None

    is_playing: bool = False
    is_paused: bool = False
    is_transitioning: bool = False
    skip_requested: bool = False
    current_volume: int = 100

    pending_deletions: Set[str] = field(default_factory=set)
    next_sequence_id: int = 0

    def take_sequence_id(self) -> int:
        sid = self.next_sequence_id
        self.next_sequence_id += 1
        return sid


@dataclass
class CommandResult:
    success: bool
    message: str

    def to_dict(self) -> dict:
        return {"success": self.success, "message": self.message}


@dataclass
class QueueResult:
    success: bool
    title: str
    position: int

    def to_dict(self) -> dict:
        return {"success": self.success, "title": self.title, "position": self.position}
