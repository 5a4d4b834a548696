# mediabot/status.py
from __future__ import annotations

import math
from typing import Any, Dict, Optional

from .models import MediaKind, MediaRequest, PlaybackState


def fmt_time(seconds: Any) -> str:
    """mm:ss con ceros. Cualquier cosa rara -> 00:00."""
    if isinstance(seconds, bool) or not isinstance(seconds, (int, float)):
        return "00:00"
    if math.isnan(seconds) or math.isinf(seconds) or seconds < 0:
        return "00:00"
    m, s = divmod(int(seconds), 60)
    return f"{m:02d}:{s:02d}"


def _length_of(req: MediaRequest) -> int:
    if req.kind == MediaKind.STREAMED:
        return req.duration or 0
    return req.length or req.duration or 0


def _idle_status() -> Dict[str, Any]:
    return {
        "title": "No media playing",
        "requestedBy": "--",
        "type": "none",
        "sequenceId": None,
        "position": "--:--",
        "length": "--:--",
        "raw": {"position": 0, "length": 0, "sequenceId": None},
        "isPaused": False,
        "url": None,
    }


def _next_of(state: PlaybackState) -> Optional[Dict[str, Any]]:
    if not state.queue:
        return None
    nxt = state.queue[0]
    return {
        "title": nxt.title,
        "requestedBy": nxt.requested_by,
        "type": nxt.kind.value,
        "sequenceId": nxt.sequence_id,
    }


def build_status(state: PlaybackState) -> Dict[str, Any]:
    cur = state.current
    if cur is None:
        snap = _idle_status()
    else:
        length = _length_of(cur)
        position = cur.position or 0
        snap = {
            "title": cur.title,
            "requestedBy": cur.requested_by,
            "type": cur.kind.value,
            "sequenceId": cur.sequence_id,
            "position": fmt_time(position),
            "length": fmt_time(length),
            "raw": {"position": position, "length": length, "sequenceId": cur.sequence_id},
            "isPaused": state.is_paused,
            "url": cur.url,
        }

    snap.update(
        nextMedia=_next_of(state),
        volume=state.current_volume,
        isPlaying=state.is_playing and not state.is_paused,
        queueLength=len(state.queue),
    )
    return snap


def build_queue(state: PlaybackState) -> Dict[str, Any]:
    items = [
        {
            "title": m.title,
            "requestedBy": m.requested_by,
            "type": m.kind.value,
            "sequenceId": m.sequence_id,
            "preloaded": m.preloaded,
            "url": m.url,
            "duration": fmt_time(m.duration),
        }
        for m in state.queue
    ]
    return {"queue": items, "current": build_status(state)}


def build_video_status(state: PlaybackState) -> Dict[str, Any]:
    status = build_status(state)
    if status["type"] == MediaKind.STREAMED.value and status["isPlaying"]:
        raw = status["raw"]
        return {
            "isPlaying": True,
            "title": status["title"],
            "requestedBy": status["requestedBy"],
            "position": status["position"],
            "length": status["length"],
            "raw": raw,
            "timeRemaining": fmt_time(raw["length"] - raw["position"]),
            "url": status["url"],
        }
    return {
        "isPlaying": False,
        "title": None,
        "requestedBy": None,
        "position": "00:00",
        "length": "00:00",
        "raw": {"position": 0, "length": 0},
        "timeRemaining": "00:00",
        "url": None,
    }
