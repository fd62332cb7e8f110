"""uv release catalog."""

from typing import Dict, List, Optional, Tuple

from selfenv.config import Config
from selfenv.errors import ChecksumUnavailableError, HelperInstallError, SelfEnvError
from selfenv.logging import get_logger
from selfenv.platforms import PLATFORM_MAPPINGS, get_platform_info
from selfenv.types import UvDownload, UvRelease, UvRequest
from selfenv.utils.checksums import fetch_published_checksum

logger = get_logger(__name__)

UV_VERSION = "0.1.9"

UV_URL_TEMPLATE = (
    "https://github.com/astral-sh/uv/releases/download/{version}/uv-{triple}.{format}"
)

# (arch, os) -> target triple of the published builds
UV_TARGETS: Dict[Tuple[str, str], str] = {
    ("x86_64", "linux"): "x86_64-unknown-linux-gnu",
    ("aarch64", "linux"): "aarch64-unknown-linux-gnu",
    ("x86_64", "macos"): "x86_64-apple-darwin",
    ("aarch64", "macos"): "aarch64-apple-darwin",
    ("x86_64", "windows"): "x86_64-pc-windows-msvc",
}

_ARCHIVE_FORMATS = {m.os_name: m.archive_format for m in PLATFORM_MAPPINGS.values()}


def _build_catalog() -> List[UvRelease]:
    return [
        UvRelease(
            version=UV_VERSION,
            arch=arch,
            os=os_name,
            url=UV_URL_TEMPLATE.format(
                version=UV_VERSION, triple=triple, format=_ARCHIVE_FORMATS[os_name]
            ),
        )
        for (arch, os_name), triple in UV_TARGETS.items()
    ]


UV_DOWNLOADS: List[UvRelease] = _build_catalog()


def get_uv_release(request: Optional[UvRequest] = None) -> Optional[UvRelease]:
    """Find the catalog entry for a request; unset fields mean the host platform."""
    request = request or UvRequest()
    info = get_platform_info()
    arch = request.arch or info.arch
    os_name = request.os or info.os_name
    for release in UV_DOWNLOADS:
        if release.arch != arch or release.os != os_name:
            continue
        if request.version is not None and release.version != request.version:
            continue
        return release
    return None


async def get_uv_download(
    release: UvRelease, config: Optional[Config] = None
) -> UvDownload:
    """Turn a catalog entry into a download with a mandatory digest.

    The digest comes from the catalog entry, else from ``[checksums.sha256]``
    in the config file, else from the ``.sha256`` file published alongside
    the release asset. The last source is refused when pinned checksums are
    required; without any digest the helper cannot be installed.
    """
    config = config or Config.load()
    sha256 = release.sha256 or config.pinned_sha256(release.url)
    if sha256 is None:
        if config.require_pinned_checksums():
            raise ChecksumUnavailableError(release.url)
        logger.warning({"event": "uv_checksum_unpinned", "url": release.url})
        try:
            sha256 = await fetch_published_checksum(release.url, config)
        except SelfEnvError as e:
            e.add_context(f"could not look up checksum of {release.url}")
            raise
    if not sha256:
        raise HelperInstallError(
            release.url, f"no checksum available for uv download {release.url}"
        )
    logger.debug({"event": "uv_download_resolved", "url": release.url, "sha256": sha256})
    return UvDownload(version=release.version, url=release.url, sha256=sha256)
