# mediabot/sessions.py
from __future__ import annotations

import asyncio
import logging
from typing import Optional, Callable

from .models import MediaRequest, PlaybackState
from .vlc_link import VLCLink

log = logging.getLogger("mediabot.sessions")

CompletionCallback = Callable[["PlaybackSession"], None]


class PlaybackSession:
    """
    Lo que el controlador necesita de "algo que está sonando".
    Cada variante avisa el final una sola vez vía on_complete(session).
    """

    def __init__(self, request: MediaRequest, state: PlaybackState, on_complete: CompletionCallback):
        self.request = request
        self.state = state
        self.on_complete = on_complete

    @property
    def sequence_id(self) -> int:
        return self.request.sequence_id

    def is_current(self) -> bool:
        cur = self.state.current
        return cur is not None and cur.sequence_id == self.sequence_id

    async def start(self):
        raise NotImplementedError

    def stop(self):
        """Libera recursos locales (timers). No dispara on_complete."""

    def request_skip(self):
        raise NotImplementedError

    def toggle_pause(self) -> str:
        raise NotImplementedError


class LinkedPlayerSession(PlaybackSession):
    """Música descargada: el archivo local se entrega a VLC."""

    def __init__(self, request, state, on_complete, link: VLCLink, clear_gap: float = 0.1):
        super().__init__(request, state, on_complete)
        self.link = link
        self.clear_gap = clear_gap
        # hasta enviar "add", un stop de VLC es del "clear", no nuestro
        self.armed = False
        self._skip_before_add = False

    async def start(self):
        self.link.send("clear")
        await asyncio.sleep(self.clear_gap)
        if not self.is_current():
            return
        if self._skip_before_add:
            self.on_complete(self)
            return
        self.link.send(f"add {self.request.local_file}")
        self.armed = True

    def on_player_stop(self):
        if not self.armed:
            log.debug("stop de VLC antes de add (seq=%s), ignorado", self.sequence_id)
            return
        self.on_complete(self)

    def request_skip(self):
        if not self.armed:
            self._skip_before_add = True
            return
        # la transición la dispara el "stop state" que devuelve VLC
        self.link.send("stop")

    def toggle_pause(self) -> str:
        self.link.send("pause")
        return "Reanudando reproducción" if self.state.is_paused else "Pausando reproducción"


class VirtualTimerSession(PlaybackSession):
    """Video: lo pinta el overlay; aquí solo simulamos el cabezal."""

    def __init__(self, request, state, on_complete, tick_interval: float = 1.0):
        super().__init__(request, state, on_complete)
        self.tick_interval = tick_interval
        self._task: Optional[asyncio.Task] = None
        self.elapsed = 0

    async def start(self):
        self.stop()
        self.elapsed = 0
        self.request.position = 0
        self._task = asyncio.create_task(self._run())

    def stop(self):
        task = self._task
        self._task = None
        if task and not task.done() and task is not asyncio.current_task():
            task.cancel()

    @property
    def running(self) -> bool:
        return bool(self._task and not self._task.done())

    async def _run(self):
        while True:
            await asyncio.sleep(self.tick_interval)
            if not self.tick():
                return

    def tick(self) -> bool:
        """Un segundo de reloj. Devuelve False cuando el timer debe terminar."""
        if not self.is_current():
            log.debug("Tick obsoleto (seq=%s), timer detenido", self.sequence_id)
            self._task = None
            return False

        if not self.state.is_paused:
            self.elapsed += 1
            self.request.position = self.elapsed

        if self.elapsed >= self.request.duration:
            log.info("Video terminado por reloj (%ss >= %ss)", self.elapsed, self.request.duration)
            self._task = None
            self.on_complete(self)
            return False
        return True

    def request_skip(self):
        self.on_complete(self)

    def toggle_pause(self) -> str:
        self.state.is_paused = not self.state.is_paused
        return "Video pausado" if self.state.is_paused else "Video reanudado"
