import asyncio
import os

import pytest

from mediabot.config import MediaConfig
from mediabot.models import MediaInfo
from mediabot.player import MediaOrchestrator
from mediabot.vlc_link import PlayerSignal


class FakeFetcher:
    def __init__(self, out_dir):
        self.out_dir = out_dir
        self.infos = {}
        self.errors = {}
        self.download_errors = {}
        self.metadata_calls = []
        self.download_calls = []

    def add(self, url, title, duration):
        self.infos[url] = MediaInfo(title=title, duration=duration)

    async def fetch_metadata(self, url):
        self.metadata_calls.append(url)
        if url in self.errors:
            raise self.errors[url]
        return self.infos[url]

    async def download(self, url):
        self.download_calls.append(url)
        if url in self.download_errors:
            raise self.download_errors[url]
        path = os.path.join(self.out_dir, f"music_{len(self.download_calls)}.mp3")
        with open(path, "wb") as f:
            f.write(b"ID3")
        return path


class FakeLink:
    def __init__(self):
        self.sent = []
        self.connected = True
        self.on_signal = None
        self.replies = {}
        self.queries = []

    def is_connected(self):
        return self.connected

    def start(self, connect_delay=0.0):
        pass

    async def close(self):
        pass

    def send(self, command):
        if not self.connected:
            return False
        self.sent.append(command)
        return True

    async def query(self, kind):
        self.queries.append(kind)
        return self.replies.get(kind)

    def emit(self, signal: PlayerSignal):
        self.on_signal(signal)


async def wait_until(predicate, timeout=2.0, step=0.005):
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condición no alcanzada a tiempo")
        await asyncio.sleep(step)


@pytest.fixture
def config(tmp_path):
    return MediaConfig(
        max_duration_minutes=8,
        transition_delay=0.05,
        skip_delay=0.01,
        tick_interval=0.01,
        poll_gap=0,
        clear_gap=0,
        output_dir=str(tmp_path / "media_output"),
    )


@pytest.fixture
def fetcher(config):
    os.makedirs(config.output_dir, exist_ok=True)
    f = FakeFetcher(config.output_dir)
    f.add("https://youtu.be/song1", "Song 1", 180)
    f.add("https://youtu.be/song2", "Song 2", 200)
    f.add("https://youtu.be/song3", "Song 3", 210)
    f.add("https://youtu.be/video1", "Video 1", 5)
    f.add("https://youtu.be/video2", "Video 2", 100)
    f.add("https://youtu.be/long", "Long one", 9 * 60)
    return f


@pytest.fixture
def link():
    return FakeLink()


@pytest.fixture
async def media(config, fetcher, link):
    orch = MediaOrchestrator(config, fetcher=fetcher, link=link)
    yield orch
    await orch.close()
