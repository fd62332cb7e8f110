"""Unpacking of in-memory archives."""
import io
import lzma
import os
import shutil
import tarfile
import zipfile
import zlib
from pathlib import Path
from typing import Optional

from selfenv.errors import UnpackError
from selfenv.logging import get_logger

logger = get_logger(__name__)

MAGIC_NUMBERS = {
    b"\x1f\x8b": "tar.gz",
    b"BZh": "tar.bz2",
    b"\xfd7zXZ\x00": "tar.xz",
    b"PK\x03\x04": "zip",
    b"PK\x05\x06": "zip",
}


def detect_archive_format(buffer: bytes) -> Optional[str]:
    """Guess the archive format from its leading bytes."""
    for magic, format in MAGIC_NUMBERS.items():
        if buffer.startswith(magic):
            return format
    if buffer[257:262] == b"ustar":
        return "tar"
    return None


def strip_path(name: str, strip_components: int) -> Optional[Path]:
    """Drop the leading ``strip_components`` segments of an archive member name.

    Returns ``None`` for members that disappear entirely (typically the
    top-level directory itself).
    """
    parts = [p for p in name.replace("\\", "/").split("/") if p not in ("", ".")]
    if len(parts) <= strip_components:
        return None
    rel = parts[strip_components:]
    if ".." in rel:
        raise UnpackError(f"archive member escapes the target directory: {name}")
    return Path(*rel)


def _is_within(root: Path, path: str) -> bool:
    root = os.path.normpath(os.path.abspath(root))
    path = os.path.normpath(os.path.abspath(path))
    return os.path.commonpath([root, path]) == root


def _clear(dest: Path) -> None:
    if dest.is_symlink() or dest.is_file():
        dest.unlink()


def _set_mode(dest: Path, mode: int) -> None:
    if os.name != "nt" and mode:
        dest.chmod(mode & 0o777)


def _unpack_tar(buffer: bytes, target_dir: Path, strip_components: int) -> None:
    with tarfile.open(fileobj=io.BytesIO(buffer), mode="r:*") as archive:
        for member in archive:
            rel = strip_path(member.name, strip_components)
            if rel is None:
                continue
            dest = target_dir / rel

            if member.isdir():
                dest.mkdir(parents=True, exist_ok=True)
                continue

            dest.parent.mkdir(parents=True, exist_ok=True)
            _clear(dest)

            if member.issym():
                if os.path.isabs(member.linkname) or not _is_within(
                    target_dir, os.path.join(dest.parent, member.linkname)
                ):
                    raise UnpackError(
                        f"symlink {member.name} points outside the archive", target_dir
                    )
                os.symlink(member.linkname, dest)
            elif member.islnk():
                link_rel = strip_path(member.linkname, strip_components)
                if link_rel is None:
                    raise UnpackError(f"hardlink {member.name} has no target", target_dir)
                source = target_dir / link_rel
                try:
                    os.link(source, dest)
                except OSError:
                    shutil.copy2(source, dest)
            elif member.isfile():
                source = archive.extractfile(member)
                if source is None:
                    continue
                with source, open(dest, "wb") as f:
                    shutil.copyfileobj(source, f)
                _set_mode(dest, member.mode)
            else:
                logger.debug({"event": "skipped_archive_member", "name": member.name})


def _unpack_zip(buffer: bytes, target_dir: Path, strip_components: int) -> None:
    with zipfile.ZipFile(io.BytesIO(buffer)) as archive:
        for info in archive.infolist():
            rel = strip_path(info.filename, strip_components)
            if rel is None:
                continue
            dest = target_dir / rel

            if info.is_dir():
                dest.mkdir(parents=True, exist_ok=True)
                continue

            dest.parent.mkdir(parents=True, exist_ok=True)
            _clear(dest)
            with archive.open(info) as source, open(dest, "wb") as f:
                shutil.copyfileobj(source, f)
            _set_mode(dest, info.external_attr >> 16)


def unpack_archive(buffer: bytes, target_dir: Path, strip_components: int) -> None:
    """Unpack an archive held in memory into ``target_dir``.

    A partially written directory is left behind on failure.
    """
    format = detect_archive_format(buffer)
    logger.debug(
        {
            "event": "unpack_archive",
            "format": format,
            "target": str(target_dir),
            "strip_components": strip_components,
        }
    )

    if format is None:
        raise UnpackError("Unsupported archive format", target_dir)

    try:
        target_dir.mkdir(parents=True, exist_ok=True)
        if format == "zip":
            _unpack_zip(buffer, target_dir, strip_components)
        else:
            _unpack_tar(buffer, target_dir, strip_components)
    except UnpackError:
        raise
    except (
        tarfile.TarError,
        zipfile.BadZipFile,
        zlib.error,
        lzma.LZMAError,
        EOFError,
        OSError,
    ) as e:
        logger.error(
            {"event": "unpack_failed", "target": str(target_dir), "error": str(e)}
        )
        raise UnpackError(f"failed to unpack {format} archive: {e}", target_dir) from e

    logger.info(
        {"event": "archive_extracted", "format": format, "extracted_to": str(target_dir)}
    )
