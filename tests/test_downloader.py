import os

import pytest
import yt_dlp

from mediabot.downloader import YTDLFetcher, is_valid_media_url, ensure_valid_url
from mediabot.errors import (
    ValidationError,
    ForbiddenError,
    AgeRestrictedError,
    PrivateMediaError,
    UnavailableError,
    InvalidUrlError,
    DownloadFailedError,
    classify_tool_error,
)


class FakeYDL:
    """Sustituye a yt_dlp.YoutubeDL; el comportamiento lo decide `script`."""

    created = []
    script = None

    def __init__(self, opts):
        self.opts = opts
        FakeYDL.created.append(opts)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def extract_info(self, url, download=False):
        return FakeYDL.script(self.opts, url, download)


@pytest.fixture
def ydl(monkeypatch):
    FakeYDL.created = []
    monkeypatch.setattr(yt_dlp, "YoutubeDL", FakeYDL)
    return FakeYDL


@pytest.fixture
def fetcher(tmp_path):
    return YTDLFetcher(str(tmp_path / "out"), cookies_browser="chrome")


def test_url_shape():
    assert is_valid_media_url("https://www.youtube.com/watch?v=dQw4w9WgXcQ")
    assert is_valid_media_url("https://youtu.be/dQw4w9WgXcQ")
    assert not is_valid_media_url("https://vimeo.com/123")
    assert not is_valid_media_url("")
    assert not is_valid_media_url(None)
    with pytest.raises(ValidationError):
        ensure_valid_url("no es url")


@pytest.mark.parametrize(
    "text, stage, cls, reason",
    [
        ("ERROR: HTTP Error 403: Forbidden", "info", ForbiddenError, "forbidden"),
        ("ERROR: unable to download: 403: Forbidden", "download", ForbiddenError, "forbidden"),
        ("Sign in to confirm your age. This video is age restricted", "info", AgeRestrictedError, "age_restricted"),
        ("ERROR: [youtube] abc: Private video. Sign in", "info", PrivateMediaError, "private"),
        ("ERROR: [youtube] abc: Video unavailable", "info", UnavailableError, "unavailable"),
        ("ERROR: is not a valid URL", "info", InvalidUrlError, "invalid_url"),
        ("ERROR: ffmpeg not found", "download", DownloadFailedError, "generic"),
        ("", "info", InvalidUrlError, "invalid_url"),
    ],
)
def test_classify_tool_error(text, stage, cls, reason):
    err = classify_tool_error(text, stage=stage)
    assert type(err) is cls
    assert err.reason == reason


async def test_metadata_falls_back_without_cookies(ydl, fetcher):
    def script(opts, url, download):
        if "cookiesfrombrowser" in opts:
            raise yt_dlp.utils.DownloadError("could not find chrome cookies database")
        return {"title": " Never Gonna ", "duration": 213}

    ydl.script = script
    info = await fetcher.fetch_metadata("https://youtu.be/x")

    assert (info.title, info.duration) == ("Never Gonna", 213)
    assert len(ydl.created) == 2
    assert ydl.created[0]["cookiesfrombrowser"] == ("chrome",)
    assert "cookiesfrombrowser" not in ydl.created[1]


async def test_metadata_is_cached(ydl, fetcher):
    ydl.script = lambda opts, url, download: {"title": "A", "duration": 10}

    await fetcher.fetch_metadata("https://youtu.be/x")
    calls = len(ydl.created)
    info = await fetcher.fetch_metadata("https://youtu.be/x")

    assert info.title == "A"
    assert len(ydl.created) == calls


async def test_metadata_error_is_classified_from_last_attempt(ydl, fetcher):
    def script(opts, url, download):
        raise yt_dlp.utils.DownloadError("ERROR: [youtube] x: Private video")

    ydl.script = script
    with pytest.raises(PrivateMediaError):
        await fetcher.fetch_metadata("https://youtu.be/x")
    assert fetcher.cache.get("https://youtu.be/x") is None


async def test_metadata_without_duration_is_zero(ydl, fetcher):
    ydl.script = lambda opts, url, download: {"title": "Live", "duration": None}
    info = await fetcher.fetch_metadata("https://youtu.be/live")
    assert info.duration == 0


async def test_download_returns_mp3_path(ydl, fetcher):
    def script(opts, url, download):
        assert download is True
        path = opts["outtmpl"].replace("%(ext)s", "mp3")
        with open(path, "wb") as f:
            f.write(b"ID3")
        return {"title": "A"}

    ydl.script = script
    path = await fetcher.download("https://youtu.be/x")

    assert path.endswith(".mp3")
    assert os.path.basename(path).startswith("music_")
    assert os.path.exists(path)


async def test_download_missing_file_is_generic_failure(ydl, fetcher):
    def script(opts, url, download):
        # queda solo el .webm sin convertir
        with open(opts["outtmpl"].replace("%(ext)s", "webm"), "wb") as f:
            f.write(b"x")
        return {"title": "A"}

    ydl.script = script
    with pytest.raises(DownloadFailedError):
        await fetcher.download("https://youtu.be/x")
    assert os.listdir(fetcher.out_dir) == []


async def test_download_403_cleans_partials(ydl, fetcher):
    def script(opts, url, download):
        with open(opts["outtmpl"].replace("%(ext)s", "webm.part"), "wb") as f:
            f.write(b"x")
        raise yt_dlp.utils.DownloadError("ERROR: HTTP Error 403: Forbidden")

    ydl.script = script
    with pytest.raises(ForbiddenError):
        await fetcher.download("https://youtu.be/x")
    assert os.listdir(fetcher.out_dir) == []
