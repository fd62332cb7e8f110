"""uv helper binary provisioning and invocation."""

import os
from pathlib import Path
from typing import Dict, List, Optional

from selfenv.config import Config, get_app_dir, proxy_env
from selfenv.errors import CommandError, HelperInstallError, error_context
from selfenv.logging import ColorCodes, get_logger
from selfenv.platforms import exe_name
from selfenv.sources.uv import get_uv_download, get_uv_release
from selfenv.tui import echo, style
from selfenv.types import CommandOutput, UvRelease, UvRequest
from selfenv.utils.archives import unpack_archive
from selfenv.utils.checksums import check_checksum
from selfenv.utils.fetching import download_url
from selfenv.utils.fs import run_command

logger = get_logger(__name__)


class Uv:
    """Handle on an installed uv binary bound to an output mode."""

    def __init__(self, uv_bin: Path, output: CommandOutput, config: Optional[Config] = None):
        self.uv_bin = uv_bin
        self.output = output
        self.config = config or Config.load()

    def cmd(self, *args) -> List[str]:
        """argv for a uv invocation with the output flags applied."""
        argv = [str(self.uv_bin)]
        match self.output:
            case CommandOutput.VERBOSE:
                argv.append("--verbose")
            case CommandOutput.QUIET:
                argv.append("--quiet")
            case CommandOutput.NORMAL:
                pass
        argv.extend(str(a) for a in args)
        return argv

    def env(self, extra: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        """Child environment: the current one plus proxy and quieting variables."""
        env = dict(os.environ)
        if self.output is CommandOutput.QUIET:
            env["PYTHONWARNINGS"] = "ignore"
        env.update(proxy_env(self.config))
        env.update(extra or {})
        return env

    async def run(
        self, *args, env: Optional[Dict[str, str]] = None, error: str = "uv invocation failed"
    ) -> None:
        argv = self.cmd(*args)
        returncode = await run_command(argv, self.env(env))
        if returncode != 0:
            logger.error({"event": "uv_failed", "args": argv, "returncode": returncode})
            raise CommandError(f"{error} (exit code {returncode})", argv, returncode)


def get_uv_dir(version: str) -> Path:
    return get_app_dir() / "uv" / version


async def download_uv(
    release: UvRelease, uv_dir: Path, output: CommandOutput, config: Optional[Config] = None
) -> None:
    """Fetch, verify and unpack a uv release into ``uv_dir``."""
    download = await get_uv_download(release, config)

    if output is CommandOutput.VERBOSE:
        echo(f"download url: {download.url}")
    if output is not CommandOutput.QUIET:
        echo(f"{style('Downloading', ColorCodes.CYAN)} uv {download.version}")
    buffer = await download_url(download.url, output, config)

    # all uv downloads must have a checksum
    if output is not CommandOutput.QUIET:
        echo(f"{style('Checking', ColorCodes.CYAN)} checksum")
    with error_context(f"Checksum check of {download.url} failed"):
        check_checksum(buffer, download.sha256)

    with error_context(
        f"unpacking of downloaded tarball {download.url} to '{uv_dir}' failed"
    ):
        unpack_archive(buffer, uv_dir, 1)

    logger.info({"event": "uv_installed", "version": download.version, "path": str(uv_dir)})


async def ensure_uv(output: CommandOutput, request: Optional[UvRequest] = None) -> Uv:
    """Make sure the pinned uv binary exists under the app dir."""
    config = Config.load()
    release = get_uv_release(request)
    if release is None:
        raise HelperInstallError(
            str(request or UvRequest()), "no uv build is available for this platform"
        )

    uv_dir = get_uv_dir(release.version)
    uv_bin = uv_dir / exe_name("uv")

    if uv_dir.is_dir() and uv_bin.is_file():
        logger.debug({"event": "using_installed_uv", "path": str(uv_bin)})
        return Uv(uv_bin, output, config)

    await download_uv(release, uv_dir, output, config)
    if uv_dir.is_dir() and uv_bin.is_file():
        return Uv(uv_bin, output, config)

    raise HelperInstallError(uv_bin)
