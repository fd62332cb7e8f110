import asyncio
import os
import shutil
from pathlib import Path
from typing import Dict, Optional, Sequence, Tuple

from selfenv.logging import get_logger

logger = get_logger(__name__)


async def async_subprocess_run(*args) -> Tuple[int, str, str]:
    """
    Run a command asynchronously and return its exit code, stdout, and stderr.

    :param args: Command and arguments to run
    :return: Tuple of (returncode, stdout, stderr)
    """
    proc = await asyncio.create_subprocess_exec(
        *[str(a) for a in args],
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    stdout, stderr = await proc.communicate()
    return proc.returncode, stdout.decode(errors="replace"), stderr.decode(errors="replace")


async def run_command(args: Sequence, env: Optional[Dict[str, str]] = None) -> int:
    """Run a command with inherited stdio and return its exit code."""
    argv = [str(a) for a in args]
    logger.debug({"event": "run_command", "args": argv})

    proc = await asyncio.create_subprocess_exec(*argv, env=env)
    returncode = await proc.wait()

    logger.debug({"event": "run_command_complete", "args": argv, "returncode": returncode})
    return returncode


def symlink_file(src: Path, dst: Path) -> None:
    os.symlink(src, dst)


def hardlink_file(src: Path, dst: Path) -> None:
    os.link(src, dst)


def copy_file(src: Path, dst: Path) -> None:
    shutil.copy2(src, dst)


def atomic_write_text(path: Path, text: str) -> None:
    """Replace ``path`` with ``text`` via a sibling temp file and a rename."""
    tmp = path.with_name(f".{path.name}.tmp")
    tmp.write_text(text, encoding="utf-8")
    os.replace(tmp, path)
