import asyncio

from mediabot.models import MediaKind, MediaRequest, PlaybackState
from mediabot.sessions import VirtualTimerSession, LinkedPlayerSession

from .conftest import FakeLink, wait_until


def _req(seq, duration=3, kind=MediaKind.STREAMED):
    return MediaRequest(
        url=f"https://youtu.be/{seq}",
        title=f"T{seq}",
        duration=duration,
        requested_by="ana",
        kind=kind,
        sequence_id=seq,
    )


def test_tick_advances_and_completes_once():
    state = PlaybackState(is_playing=True)
    req = _req(1, duration=3)
    state.current = req
    done = []
    session = VirtualTimerSession(req, state, done.append)

    assert session.tick() and req.position == 1
    assert session.tick() and req.position == 2
    assert session.tick() is False
    assert req.position == 3
    assert done == [session]


def test_tick_while_paused_does_not_advance():
    state = PlaybackState(is_playing=True, is_paused=True)
    req = _req(1)
    state.current = req
    session = VirtualTimerSession(req, state, lambda s: None)

    assert session.tick()
    assert req.position == 0


def test_stale_tick_is_noop():
    state = PlaybackState(is_playing=True)
    old = _req(1, duration=1)
    state.current = _req(2, duration=50)
    done = []
    session = VirtualTimerSession(old, state, done.append)

    assert session.tick() is False
    assert old.position == 0
    assert state.current.sequence_id == 2
    assert done == []


async def test_timer_stops_itself_when_item_changes():
    state = PlaybackState(is_playing=True)
    req = _req(1, duration=100)
    state.current = req
    done = []
    session = VirtualTimerSession(req, state, done.append, tick_interval=0.01)

    await session.start()
    await wait_until(lambda: req.position >= 2)
    state.current = _req(2, duration=100)
    await wait_until(lambda: not session.running)
    frozen = req.position

    assert done == []
    assert req.position == frozen


async def test_linked_session_start_clears_then_adds():
    state = PlaybackState(is_playing=True)
    req = _req(1, kind=MediaKind.DOWNLOADED)
    req.local_file = "/tmp/song.mp3"
    state.current = req
    link = FakeLink()
    session = LinkedPlayerSession(req, state, lambda s: None, link, clear_gap=0)

    await session.start()

    assert link.sent == ["clear", "add /tmp/song.mp3"]
    assert session.armed


async def test_linked_skip_before_add_completes_without_adding():
    state = PlaybackState(is_playing=True)
    req = _req(1, kind=MediaKind.DOWNLOADED)
    req.local_file = "/tmp/song.mp3"
    state.current = req
    link = FakeLink()
    done = []
    session = LinkedPlayerSession(req, state, done.append, link, clear_gap=0.02)

    starting = asyncio.create_task(session.start())
    await asyncio.sleep(0)
    session.request_skip()
    await starting

    assert link.sent == ["clear"]
    assert done == [session]
