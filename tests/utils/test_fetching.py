import asyncio
from unittest.mock import MagicMock, patch

import aiohttp
import pytest

from selfenv.config import Config
from selfenv.errors import (
    HttpStatusError,
    InsecureSchemeError,
    NetworkError,
    NotFoundError,
)
from selfenv.types import CommandOutput
from selfenv.utils.fetching import download_url, download_url_ignore_404

URL = "https://example.com/dist/archive.tar.gz"


class FakeContent:
    def __init__(self, chunks):
        self.chunks = chunks

    async def iter_chunked(self, size):
        for chunk in self.chunks:
            yield chunk


class FakeResponse:
    def __init__(self, status=200, chunks=(), headers=None):
        self.status = status
        self.content = FakeContent(list(chunks))
        self.headers = headers or {}

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False


class FakeSession:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False

    def get(self, url, **kwargs):
        self.calls.append((url, kwargs))
        if self.error is not None:
            raise self.error
        return self.response


def session_returning(session):
    return patch("selfenv.utils.fetching.aiohttp.ClientSession", return_value=session)


@pytest.mark.asyncio
async def test_download_accumulates_chunks():
    session = FakeSession(FakeResponse(chunks=[b"abc", b"def"]))
    with session_returning(session):
        data = await download_url(URL, CommandOutput.QUIET, Config())

    assert data == b"abcdef"
    url, kwargs = session.calls[0]
    assert url == URL
    assert kwargs["allow_redirects"] is True
    assert kwargs["proxy"] is None


@pytest.mark.asyncio
async def test_download_uses_configured_proxy():
    session = FakeSession(FakeResponse(chunks=[b"x"]))
    config = Config({"proxy": {"https": "http://proxy.internal:3128"}})
    with session_returning(session):
        await download_url(URL, CommandOutput.QUIET, config)

    assert session.calls[0][1]["proxy"] == "http://proxy.internal:3128"


@pytest.mark.asyncio
@pytest.mark.parametrize("url", ["http://example.com/a.tar.gz", "ftp://example.com/a", "file:///etc/passwd"])
async def test_insecure_scheme_rejected_before_network(url):
    with patch("selfenv.utils.fetching.aiohttp.ClientSession") as client:
        with pytest.raises(InsecureSchemeError):
            await download_url_ignore_404(url, CommandOutput.NORMAL, Config())

    client.assert_not_called()


@pytest.mark.asyncio
async def test_404_handling():
    with session_returning(FakeSession(FakeResponse(status=404))):
        assert await download_url_ignore_404(URL, CommandOutput.QUIET, Config()) is None

    with session_returning(FakeSession(FakeResponse(status=404))):
        with pytest.raises(NotFoundError):
            await download_url(URL, CommandOutput.QUIET, Config())


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [403, 500, 503])
async def test_http_status_error(status):
    with session_returning(FakeSession(FakeResponse(status=status))):
        with pytest.raises(HttpStatusError) as exc:
            await download_url_ignore_404(URL, CommandOutput.QUIET, Config())

    assert exc.value.status == status
    assert str(status) in str(exc.value)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "error", [aiohttp.ClientConnectionError("connection reset"), asyncio.TimeoutError()]
)
async def test_transport_errors_become_network_errors(error):
    with session_returning(FakeSession(error=error)):
        with pytest.raises(NetworkError) as exc:
            await download_url(URL, CommandOutput.QUIET, Config())

    assert URL in str(exc.value)


@pytest.mark.asyncio
async def test_progress_bar_when_size_known():
    response = FakeResponse(chunks=[b"ab", b"cde"], headers={"content-length": "5"})
    progress = MagicMock()
    with session_returning(FakeSession(response)), patch(
        "selfenv.utils.fetching.tqdm", return_value=progress
    ) as bar:
        await download_url(URL, CommandOutput.NORMAL, Config())

    assert bar.call_args.kwargs["total"] == 5
    assert bar.call_args.kwargs["leave"] is False
    assert [c.args[0] for c in progress.update.call_args_list] == [2, 3]
    progress.close.assert_called_once()


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "output,headers",
    [
        (CommandOutput.QUIET, {"content-length": "5"}),
        (CommandOutput.NORMAL, {}),
    ],
)
async def test_no_progress_bar(output, headers):
    response = FakeResponse(chunks=[b"abcde"], headers=headers)
    with session_returning(FakeSession(response)), patch("selfenv.utils.fetching.tqdm") as bar:
        await download_url(URL, output, Config())

    bar.assert_not_called()


@pytest.mark.asyncio
async def test_large_downloads_have_no_total_timeout():
    session = FakeSession(FakeResponse(chunks=[b"x"]))
    with session_returning(session) as client:
        await download_url(URL, CommandOutput.QUIET, Config())

    timeout = client.call_args.kwargs["timeout"]
    assert timeout.total is None
    assert timeout.sock_connect is not None
    assert timeout.sock_read is not None
