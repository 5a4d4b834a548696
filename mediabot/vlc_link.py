# mediabot/vlc_link.py
from __future__ import annotations

import asyncio
import logging
import re
from enum import Enum
from typing import Optional, Callable, Tuple, List

from .config import VLC_ARGS
from .errors import ProtocolError

log = logging.getLogger("mediabot.vlc")

_NUMERIC_RE = re.compile(r"-?\d+")


class PlayerSignal(str, Enum):
    STOP = "stop"
    PAUSE = "pause"
    PLAY = "play"


class QueryKind(str, Enum):
    LENGTH = "get_length"
    TIME = "get_time"
    VOLUME = "volume"


def parse_line(line: str) -> Tuple[Optional[PlayerSignal], Optional[int]]:
    """
    Clasifica una línea de la interfaz rc de VLC.
    Devuelve (señal, None), (None, número) o (None, None) si no interesa.
    """
    text = (line or "").strip()
    if "status change: ( stop state" in text:
        return PlayerSignal.STOP, None
    if "status change: ( pause state" in text:
        return PlayerSignal.PAUSE, None
    if "status change: ( play state" in text:
        return PlayerSignal.PLAY, None

    # el prompt "> " puede venir pegado a la respuesta
    bare = text.lstrip(">").strip()
    if _NUMERIC_RE.fullmatch(bare):
        return None, int(bare)
    return None, None


async def spawn_vlc(vlc_path: str, host: str, port: int) -> Optional[asyncio.subprocess.Process]:
    """Lanza VLC una sola vez con la interfaz rc. No se supervisa ni se relanza."""
    args: List[str] = list(VLC_ARGS) + [f"--rc-host={host}:{port}"]
    try:
        proc = await asyncio.create_subprocess_exec(
            vlc_path,
            *args,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.DEVNULL,
        )
    except OSError as e:
        log.error("No se pudo lanzar VLC (%s): %s", vlc_path, e)
        return None
    log.info("VLC lanzado con interfaz rc en %s:%s (pid=%s)", host, port, proc.pid)
    return proc


class VLCLink:
    """
    Conexión TCP a la interfaz rc de VLC.
    - Reconecta para siempre con un retardo fijo
    - Los comandos sin conexión se descartan (log), no se encolan
    - Una sola consulta pendiente a la vez: la siguiente respuesta numérica es suya
    """

    def __init__(
        self,
        host: str,
        port: int,
        reconnect_delay: float = 3.0,
        query_timeout: float = 0.8,
        on_signal: Optional[Callable[[PlayerSignal], None]] = None,
    ):
        self.host = host
        self.port = port
        self.reconnect_delay = reconnect_delay
        self.query_timeout = query_timeout
        self.on_signal = on_signal

        self._reader: Optional[asyncio.StreamReader] = None
        self._writer: Optional[asyncio.StreamWriter] = None
        self._task: Optional[asyncio.Task] = None
        self._pending: Optional[Tuple[QueryKind, asyncio.Future]] = None
        self._closed = False

    # ---------- estado ----------
    def is_connected(self) -> bool:
        return bool(self._writer and not self._writer.is_closing())

    @property
    def pending_query(self) -> Optional[QueryKind]:
        return self._pending[0] if self._pending else None

    # ---------- ciclo de vida ----------
    def start(self, connect_delay: float = 0.0):
        if self._task and not self._task.done():
            return
        self._closed = False
        self._task = asyncio.create_task(self._run(connect_delay))

    async def close(self):
        self._closed = True
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        await self._drop_connection()

    async def _run(self, connect_delay: float):
        if connect_delay:
            await asyncio.sleep(connect_delay)
        while not self._closed:
            log.info("Conectando a VLC en %s:%s...", self.host, self.port)
            try:
                self._reader, self._writer = await asyncio.open_connection(self.host, self.port)
                log.info("Conectado al socket de VLC")
                await self._read_loop()
                log.info("Socket de VLC cerrado, reintentando...")
            except asyncio.CancelledError:
                raise
            except OSError as e:
                log.error("Error de socket VLC: %s", e)
            except Exception:
                log.exception("Error leyendo del socket VLC")
            finally:
                await self._drop_connection()
            await asyncio.sleep(self.reconnect_delay)

    async def _read_loop(self):
        while True:
            raw = await self._reader.readline()
            if not raw:
                return
            try:
                self.handle_line(raw.decode("utf-8", errors="replace"))
            except Exception:
                log.exception("Error procesando línea de VLC: %r", raw)

    async def _drop_connection(self):
        self._fail_pending()
        writer = self._writer
        self._reader = None
        self._writer = None
        if writer is not None:
            writer.close()
            try:
                await writer.wait_closed()
            except (OSError, ConnectionError):
                pass

    # ---------- entrada ----------
    def handle_line(self, line: str):
        signal, number = parse_line(line)
        if signal is not None:
            if self.on_signal:
                self.on_signal(signal)
            return
        if number is None:
            return
        if self._pending is None:
            log.debug("Respuesta numérica sin consulta pendiente: %s", number)
            return
        _kind, fut = self._pending
        if not fut.done():
            fut.set_result(number)

    def _fail_pending(self):
        if self._pending is None:
            return
        _kind, fut = self._pending
        if not fut.done():
            fut.set_exception(ProtocolError("VLC socket disconnected"))
        self._pending = None

    # ---------- salida ----------
    def _write(self, command: str):
        if not self.is_connected():
            raise ProtocolError("VLC socket not connected")
        self._writer.write((command + "\n").encode("utf-8"))

    def send(self, command: str) -> bool:
        try:
            self._write(command)
        except ProtocolError as e:
            log.error("%s, comando descartado: %s", e, command)
            return False
        return True

    async def query(self, kind: QueryKind) -> Optional[int]:
        """
        Envía get_length / get_time / volume y espera la respuesta numérica.
        Devuelve None si ya hay otra consulta en vuelo, sin conexión o timeout.
        """
        if self._pending is not None:
            log.debug("Consulta %s rechazada: %s pendiente", kind.value, self._pending[0].value)
            return None

        fut = asyncio.get_running_loop().create_future()
        self._pending = (kind, fut)
        try:
            if not self.send(kind.value):
                return None
            return await asyncio.wait_for(fut, timeout=self.query_timeout)
        except asyncio.TimeoutError:
            log.debug("Sin respuesta de VLC para %s", kind.value)
            return None
        except ProtocolError:
            return None
        finally:
            if self._pending is not None and self._pending[1] is fut:
                self._pending = None
