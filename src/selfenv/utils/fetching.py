"""HTTPS downloads into memory."""
import asyncio
from typing import Optional

import aiohttp
from tqdm import tqdm

from selfenv.config import Config
from selfenv.errors import HttpStatusError, InsecureSchemeError, NetworkError, NotFoundError
from selfenv.logging import get_logger
from selfenv.types import CommandOutput

logger = get_logger(__name__)

CHUNK_SIZE = 64 * 1024

# no limit on the whole transfer, only on connecting and on stalled reads
DOWNLOAD_TIMEOUT = aiohttp.ClientTimeout(total=None, sock_connect=30, sock_read=120)


async def download_url_ignore_404(
    url: str, output: CommandOutput, config: Optional[Config] = None
) -> Optional[bytes]:
    """Download ``url`` into memory; a 404 yields ``None`` instead of an error."""
    # for now we only allow HTTPS downloads
    if not url.startswith("https://"):
        raise InsecureSchemeError(url)

    config = config or Config.load()
    proxy = config.https_proxy_url()

    logger.debug({"event": "download_started", "url": url, "proxy": bool(proxy)})

    buffer = bytearray()
    try:
        async with aiohttp.ClientSession(timeout=DOWNLOAD_TIMEOUT) as session:
            async with session.get(url, proxy=proxy, allow_redirects=True) as response:
                if response.status == 404:
                    logger.debug({"event": "download_not_found", "url": url})
                    return None
                if not 200 <= response.status < 300:
                    logger.error(
                        {"event": "download_failed", "url": url, "status": response.status}
                    )
                    raise HttpStatusError(url, response.status)

                size = int(response.headers.get("content-length", 0) or 0)
                progress = None
                if size > 0 and output is not CommandOutput.QUIET:
                    progress = tqdm(
                        total=size,
                        unit="B",
                        unit_scale=True,
                        unit_divisor=1024,
                        leave=False,
                    )
                try:
                    async for chunk in response.content.iter_chunked(CHUNK_SIZE):
                        buffer.extend(chunk)
                        if progress is not None:
                            progress.update(len(chunk))
                finally:
                    if progress is not None:
                        progress.close()

    except (aiohttp.ClientError, asyncio.TimeoutError) as e:
        logger.error({"event": "download_failed", "url": url, "error": str(e)})
        raise NetworkError(url, str(e) or e.__class__.__name__) from e

    logger.debug({"event": "download_complete", "url": url, "size": len(buffer)})
    return bytes(buffer)


async def download_url(
    url: str, output: CommandOutput, config: Optional[Config] = None
) -> bytes:
    """Download ``url`` into memory; a 404 is an error."""
    result = await download_url_ignore_404(url, output, config)
    if result is None:
        raise NotFoundError(url)
    return result
