# mediabot/player.py
from __future__ import annotations

import asyncio
import logging
import math
import os
import time
from typing import Optional, Set, Dict, Any

from .config import MediaConfig, VLC_MAX_VOLUME
from .downloader import YTDLFetcher
from .errors import ValidationError
from .models import MediaKind, MediaRequest, PlaybackState, CommandResult, QueueResult
from .sessions import PlaybackSession, LinkedPlayerSession, VirtualTimerSession
from .status import build_status, build_queue, build_video_status
from .vlc_link import VLCLink, PlayerSignal, QueryKind, spawn_vlc

log = logging.getLogger("mediabot.player")


class MediaOrchestrator:
    """
    Un solo medio activo a la vez.
    - Música: se descarga al encolar, VLC la reproduce, se borra al terminar
    - Video: lo pinta el overlay; aquí un reloj virtual marca el avance
    - Entre medio y medio hay una pausa (corta si vino de un skip)
    """

    def __init__(self, config: MediaConfig, fetcher: Optional[YTDLFetcher] = None, link: Optional[VLCLink] = None):
        self.config = config
        self.state = PlaybackState()

        self.fetcher = fetcher or YTDLFetcher(config.output_dir, cookies_browser=config.cookies_browser)
        self.link = link or VLCLink(
            config.vlc_host,
            config.vlc_port,
            reconnect_delay=config.vlc_reconnect_delay,
            query_timeout=config.query_timeout,
        )
        self.link.on_signal = self._on_player_signal

        self._session: Optional[PlaybackSession] = None
        self._transition_task: Optional[asyncio.Task] = None
        self._poll_task: Optional[asyncio.Task] = None
        self._sweep_task: Optional[asyncio.Task] = None
        self._delete_tasks: Set[asyncio.Task] = set()
        self._vlc_proc = None

        os.makedirs(self.config.output_dir, exist_ok=True)

    # ---------- ciclo de vida ----------
    async def start(self, spawn_player: bool = True):
        if spawn_player:
            self._vlc_proc = await spawn_vlc(self.config.vlc_path, self.config.vlc_host, self.config.vlc_port)
        self.link.start(connect_delay=self.config.vlc_connect_delay)
        self._poll_task = asyncio.create_task(self._poll_loop())
        self._sweep_task = asyncio.create_task(self._sweep_loop())

    async def close(self):
        tasks = [t for t in (self._poll_task, self._sweep_task, self._transition_task) if t and not t.done()]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        if self._session:
            self._session.stop()
        await self.link.close()
        if self._delete_tasks:
            await asyncio.gather(*self._delete_tasks, return_exceptions=True)

    # ---------- estado ----------
    def is_idle(self) -> bool:
        return not self.state.is_playing and not self.state.is_transitioning

    @property
    def session(self) -> Optional[PlaybackSession]:
        return self._session

    # ---------- cola ----------
    async def queue_media(self, url: str, requested_by: str, kind: MediaKind) -> QueueResult:
        """
        Metadatos -> límite de duración -> (música) descarga -> cola.
        Lanza ValidationError / ExternalToolError; en ese caso no queda nada en cola.
        """
        kind = MediaKind(kind)
        log.info("Buscando info de %s pedido por %s: %s", kind.value, requested_by, url)

        info = await self.fetcher.fetch_metadata(url)

        max_s = self.config.max_duration_seconds
        if info.duration > max_s:
            max_min = max_s // 60
            actual_min = info.duration // 60
            label = "Música" if kind == MediaKind.DOWNLOADED else "Video"
            raise ValidationError(
                f"¡Duración excedida! Máx: {max_min} min, {label}: {actual_min} min",
                max_minutes=max_min,
                actual_minutes=actual_min,
            )

        local_file = None
        if kind == MediaKind.DOWNLOADED:
            log.info("Descargando audio de: %s", info.title)
            local_file = await self.fetcher.download(url)

        req = MediaRequest(
            url=url,
            title=info.title,
            duration=info.duration,
            requested_by=requested_by,
            kind=kind,
            sequence_id=self.state.take_sequence_id(),
            local_file=local_file,
        )
        self.state.queue.append(req)
        position = len(self.state.queue)
        log.info("%s en cola: %s (pos %d)", kind.value, req.title, position)

        if not self.state.is_playing:
            await self.start_next()

        return QueueResult(success=True, title=req.title, position=position)

    async def start_next(self):
        st = self.state
        if not st.queue:
            log.info("Cola vacía - reproducción detenida")
            st.is_playing = False
            st.current = None
            st.is_paused = False
            self._session = None
            return

        req = st.queue.pop(0)
        st.current = req
        st.is_playing = True
        st.is_paused = False
        log.info("Reproduciendo %s: %s (pedido por %s)", req.kind.value, req.title, req.requested_by)

        session = self._make_session(req)
        self._session = session
        await session.start()

    def _make_session(self, req: MediaRequest) -> PlaybackSession:
        if req.kind == MediaKind.DOWNLOADED:
            return LinkedPlayerSession(req, self.state, self._on_complete, self.link, clear_gap=self.config.clear_gap)
        return VirtualTimerSession(req, self.state, self._on_complete, tick_interval=self.config.tick_interval)

    # ---------- transiciones ----------
    def _on_player_signal(self, signal: PlayerSignal):
        if signal == PlayerSignal.PAUSE:
            self.state.is_paused = True
        elif signal == PlayerSignal.PLAY:
            self.state.is_paused = False
        elif signal == PlayerSignal.STOP:
            session = self._session
            if isinstance(session, LinkedPlayerSession):
                session.on_player_stop()
            else:
                log.debug("stop de VLC sin sesión de música activa, ignorado")

    def _on_complete(self, session: PlaybackSession):
        st = self.state
        if session is not self._session or not session.is_current():
            log.debug("Fin obsoleto (seq=%s), ignorado", session.sequence_id)
            return
        if not st.is_playing or st.is_transitioning:
            return

        st.is_transitioning = True
        finished = st.current
        file_to_delete = finished.local_file if finished.kind == MediaKind.DOWNLOADED else None

        session.stop()
        self._session = None
        st.current = None
        st.is_paused = False

        if file_to_delete:
            self.safe_delete(file_to_delete, "archivo reproducido")

        delay = self.config.skip_delay if st.skip_requested else self.config.transition_delay
        st.skip_requested = False
        log.info("%s terminado - siguiente en %.1fs", finished.title, delay)
        self._schedule_next(delay)

    def _schedule_next(self, delay: float, reset_skip: bool = False):
        self._transition_task = asyncio.create_task(self._transition_after(delay, reset_skip))

    async def _transition_after(self, delay: float, reset_skip: bool):
        await asyncio.sleep(delay)
        self.state.is_transitioning = False
        if reset_skip:
            self.state.skip_requested = False
        await self.start_next()

    # ---------- controles ----------
    def skip(self) -> CommandResult:
        st = self.state
        if not st.is_playing or st.is_transitioning:
            return CommandResult(False, "No hay nada sonando o ya se está cambiando")

        st.skip_requested = True
        session = self._session
        if session is not None:
            log.info("Skip de %s: %s", session.request.kind.value, session.request.title)
            session.request_skip()
        else:
            log.info("Skip sin sesión activa - forzando siguiente")
            st.is_transitioning = True
            st.current = None
            st.is_paused = False
            self._session = None
            self._schedule_next(self.config.skip_delay, reset_skip=True)
        return CommandResult(True, "Saltando medio actual")

    def toggle_pause(self) -> CommandResult:
        st = self.state
        if not st.is_playing or self._session is None:
            return CommandResult(False, "No hay nada sonando")
        return CommandResult(True, self._session.toggle_pause())

    def set_volume(self, volume: Any) -> CommandResult:
        if isinstance(volume, bool) or not isinstance(volume, (int, float)) or math.isnan(volume):
            return CommandResult(False, "Volumen inválido")
        if volume < 0 or volume > 100:
            return CommandResult(False, "Volumen inválido")

        self.link.send(f"volume {round(volume * VLC_MAX_VOLUME / 100)}")
        self.state.current_volume = round(volume)
        return CommandResult(True, f"Volumen al {volume}%")

    def _valid_index(self, index: Any) -> bool:
        return (
            isinstance(index, int)
            and not isinstance(index, bool)
            and 0 <= index < len(self.state.queue)
        )

    def remove_from_queue(self, index: Any) -> CommandResult:
        if not self._valid_index(index):
            return CommandResult(False, "Índice inválido")

        removed = self.state.queue.pop(index)
        if removed.local_file:
            self.safe_delete(removed.local_file, "item quitado de la cola")
        return CommandResult(True, f"Quitado {removed.kind.value}: {removed.title}")

    def reorder_queue(self, from_index: Any, to_index: Any) -> CommandResult:
        if not self._valid_index(from_index) or not self._valid_index(to_index):
            return CommandResult(False, "Índices inválidos")

        moved = self.state.queue.pop(from_index)
        self.state.queue.insert(to_index, moved)
        return CommandResult(True, f"Movido {moved.kind.value}: {moved.title}")

    # ---------- vistas ----------
    def get_status(self) -> Dict[str, Any]:
        return build_status(self.state)

    def get_queue(self) -> Dict[str, Any]:
        return build_queue(self.state)

    def get_video_status(self) -> Dict[str, Any]:
        return build_video_status(self.state)

    # ---------- archivos ----------
    def safe_delete(self, path: Optional[str], description: str = "archivo") -> bool:
        """Programa el borrado. False si ya estaba pendiente (o no hay ruta)."""
        if not path:
            return False
        if path in self.state.pending_deletions:
            log.info("%s ya pendiente de borrado", path)
            return False

        self.state.pending_deletions.add(path)
        task = asyncio.create_task(self._delete_file(path, description))
        self._delete_tasks.add(task)
        task.add_done_callback(self._delete_tasks.discard)
        return True

    async def _delete_file(self, path: str, description: str):
        try:
            if not os.path.exists(path):
                log.info("%s no existe, se omite", path)
                return
            await asyncio.to_thread(os.remove, path)
            log.info("Borrado %s: %s", description, path)
        except OSError as e:
            log.error("Error borrando %s %s: %s", description, path, e)
        finally:
            self.state.pending_deletions.discard(path)

    def _protected_files(self) -> Set[str]:
        files = {m.local_file for m in self.state.queue if m.local_file}
        if self.state.current and self.state.current.local_file:
            files.add(self.state.current.local_file)
        return files | set(self.state.pending_deletions)

    async def purge_old_files(self, max_age_minutes: Optional[int] = None) -> int:
        """Borra archivos viejos de la carpeta de salida, salvo los que siguen en uso."""
        max_age_minutes = self.config.cache_max_age_minutes if max_age_minutes is None else max_age_minutes
        protected = {os.path.abspath(p) for p in self._protected_files()}
        return await asyncio.to_thread(self._purge_folder, self.config.output_dir, max_age_minutes * 60, protected)

    @staticmethod
    def _purge_folder(folder: str, max_age: float, protected: Set[str]) -> int:
        if not os.path.isdir(folder):
            return 0

        now = time.time()
        removed = 0
        for fn in os.listdir(folder):
            path = os.path.join(folder, fn)
            if os.path.abspath(path) in protected:
                continue
            try:
                if os.path.isfile(path) and (now - os.path.getmtime(path)) > max_age:
                    os.remove(path)
                    removed += 1
                    log.info("Limpieza de archivo viejo: %s", fn)
            except OSError as e:
                log.warning("No se pudo limpiar %s: %s", fn, e)
        return removed

    # ---------- tareas de fondo ----------
    async def poll_once(self):
        """get_length, get_time, volume en serie; una sola consulta en vuelo."""
        req = self.state.current
        if not (self.state.is_playing and req and req.kind == MediaKind.DOWNLOADED):
            return

        length = await self.link.query(QueryKind.LENGTH)
        if length is not None and self.state.current is req:
            req.length = length
        await asyncio.sleep(self.config.poll_gap)

        position = await self.link.query(QueryKind.TIME)
        if position is not None and self.state.current is req:
            req.position = position
        await asyncio.sleep(self.config.poll_gap)

        volume = await self.link.query(QueryKind.VOLUME)
        if volume is not None and self.state.current is req:
            self.state.current_volume = round(volume * 100 / VLC_MAX_VOLUME)

    async def _poll_loop(self):
        while True:
            await asyncio.sleep(self.config.poll_interval)
            try:
                await self.poll_once()
            except asyncio.CancelledError:
                raise
            except Exception:
                log.exception("Error en el sondeo de VLC")

    async def _sweep_loop(self):
        while True:
            await asyncio.sleep(self.config.cleanup_interval_minutes * 60)
            try:
                await self.purge_old_files()
            except asyncio.CancelledError:
                raise
            except Exception:
                log.exception("Error en la limpieza de archivos")
