import asyncio

import pytest

from mediabot.vlc_link import VLCLink, PlayerSignal, QueryKind, parse_line

from .conftest import wait_until


@pytest.mark.parametrize(
    "line, expected",
    [
        ("status change: ( stop state: 5 )", (PlayerSignal.STOP, None)),
        ("> status change: ( pause state: 3 )", (PlayerSignal.PAUSE, None)),
        ("status change: ( play state: 3 )\r\n", (PlayerSignal.PLAY, None)),
        ("184", (None, 184)),
        ("> 42", (None, 42)),
        ("status change: ( new input: file:///x.mp3 )", (None, None)),
        ("", (None, None)),
        ("12abc", (None, None)),
    ],
)
def test_parse_line(line, expected):
    assert parse_line(line) == expected


class FakeVLC:
    """Servidor rc mínimo: responde a consultas con valores fijos."""

    def __init__(self, replies=None):
        self.replies = replies or {}
        self.received = []
        self.writers = []
        self.connections = 0
        self.server = None

    async def handle(self, reader, writer):
        self.connections += 1
        self.writers.append(writer)
        while True:
            raw = await reader.readline()
            if not raw:
                break
            cmd = raw.decode().strip()
            self.received.append(cmd)
            if cmd in self.replies:
                writer.write(f"{self.replies[cmd]}\r\n".encode())
                await writer.drain()
        writer.close()

    async def start(self):
        self.server = await asyncio.start_server(self.handle, "127.0.0.1", 0)
        return self.server.sockets[0].getsockname()[1]

    def push(self, line):
        self.writers[-1].write((line + "\r\n").encode())

    async def stop(self):
        for w in self.writers:
            w.close()
        self.server.close()
        await self.server.wait_closed()


@pytest.fixture
async def vlc():
    server = FakeVLC({"get_length": 240, "get_time": 17})
    port = await server.start()
    server.port = port
    yield server
    await server.stop()


@pytest.fixture
async def link(vlc):
    signals = []
    lk = VLCLink("127.0.0.1", vlc.port, reconnect_delay=0.05, query_timeout=0.2, on_signal=signals.append)
    lk.signals = signals
    lk.start()
    await wait_until(lk.is_connected)
    yield lk
    await lk.close()


async def test_send_reaches_player(link, vlc):
    assert link.send("add /tmp/a.mp3")
    await wait_until(lambda: "add /tmp/a.mp3" in vlc.received)


async def test_query_gets_numeric_reply(link):
    assert await link.query(QueryKind.LENGTH) == 240
    assert await link.query(QueryKind.TIME) == 17
    assert link.pending_query is None


async def test_query_timeout_returns_none_and_frees_slot(link):
    assert await link.query(QueryKind.VOLUME) is None
    assert link.pending_query is None


async def test_only_one_query_in_flight(link):
    first = asyncio.create_task(link.query(QueryKind.VOLUME))
    await wait_until(lambda: link.pending_query is QueryKind.VOLUME)

    assert await link.query(QueryKind.LENGTH) is None

    link.handle_line("77")
    assert await first == 77


async def test_status_lines_become_signals(link, vlc):
    vlc.push("status change: ( pause state: 3 )")
    vlc.push("status change: ( stop state: 5 )")
    await wait_until(lambda: len(link.signals) == 2)
    assert link.signals == [PlayerSignal.PAUSE, PlayerSignal.STOP]


async def test_unsolicited_number_is_ignored(link):
    link.handle_line("99")
    assert link.pending_query is None


async def test_reconnects_after_close(link, vlc):
    vlc.writers[-1].close()
    await wait_until(lambda: vlc.connections >= 2)
    await wait_until(link.is_connected)
    assert await link.query(QueryKind.LENGTH) == 240


async def test_commands_dropped_while_disconnected():
    lk = VLCLink("127.0.0.1", 9, reconnect_delay=0.05)
    assert lk.send("pause") is False
    assert await lk.query(QueryKind.TIME) is None
    assert lk.pending_query is None


async def test_reconnects_after_oversized_line(link, vlc):
    vlc.push("x" * 70_000)

    await wait_until(lambda: vlc.connections >= 2)
    await wait_until(link.is_connected)
    assert await link.query(QueryKind.TIME) == 17


async def test_signal_handler_error_does_not_stop_reading(vlc):
    seen = []

    def on_signal(signal):
        seen.append(signal)
        if len(seen) == 1:
            raise RuntimeError("fallo en el callback")

    lk = VLCLink("127.0.0.1", vlc.port, reconnect_delay=0.05, query_timeout=0.2, on_signal=on_signal)
    lk.start()
    try:
        await wait_until(lk.is_connected)
        vlc.push("status change: ( stop state: 5 )")
        vlc.push("status change: ( play state: 3 )")
        await wait_until(lambda: len(seen) == 2)

        assert seen == [PlayerSignal.STOP, PlayerSignal.PLAY]
        assert vlc.connections == 1
        assert await lk.query(QueryKind.LENGTH) == 240

        vlc.writers[-1].close()
        await wait_until(lambda: vlc.connections >= 2)
        await wait_until(lk.is_connected)
        assert await lk.query(QueryKind.LENGTH) == 240
    finally:
        await lk.close()
