import hashlib
from typing import Optional

from selfenv.config import Config
from selfenv.errors import ChecksumMismatchError
from selfenv.logging import get_logger
from selfenv.types import CommandOutput
from selfenv.utils.fetching import download_url_ignore_404

logger = get_logger(__name__)


def compute_sha256(buffer: bytes) -> str:
    return hashlib.sha256(buffer).hexdigest()


def check_checksum(buffer: bytes, expected: str) -> None:
    """Compare the SHA-256 of ``buffer`` with a hex digest, ignoring case."""
    actual = compute_sha256(buffer)
    if actual.lower() != expected.strip().lower():
        logger.error(
            {"event": "checksum_mismatch", "expected": expected, "actual": actual}
        )
        raise ChecksumMismatchError(expected, actual)


def parse_checksum_file(text: str) -> Optional[str]:
    """First token of a ``<hex>  <filename>`` style checksum file."""
    for line in text.splitlines():
        fields = line.split()
        if fields:
            return fields[0].lower()
    return None


async def fetch_published_checksum(url: str, config: Optional[Config] = None) -> Optional[str]:
    """Look up the ``<url>.sha256`` file a release publishes next to an asset."""
    checksum_url = f"{url}.sha256"
    data = await download_url_ignore_404(checksum_url, CommandOutput.QUIET, config)
    if data is None:
        logger.debug({"event": "published_checksum_missing", "url": checksum_url})
        return None
    digest = parse_checksum_file(data.decode("utf-8", errors="replace"))
    logger.debug(
        {"event": "published_checksum_found", "url": checksum_url, "sha256": digest}
    )
    return digest
