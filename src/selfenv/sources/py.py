"""Interpreter catalog and installed-toolchain lookup."""

from pathlib import Path
from typing import Dict, List, Optional, Tuple

from selfenv.config import get_app_dir
from selfenv.logging import get_logger
from selfenv.types import PythonDownload, PythonVersion, PythonVersionRequest

logger = get_logger(__name__)

# The reference implementation and the (major, minor) window the private
# environment supports, both ends inclusive. Revisit the upper bound per release.
SELF_COMPATIBLE_NAME = "cpython"
SELF_COMPATIBLE_RANGE: Tuple[Tuple[int, int], Tuple[int, int]] = ((3, 9), (3, 12))

PBS_RELEASE = "20240107"
PBS_URL_TEMPLATE = (
    "https://github.com/indygreg/python-build-standalone/releases/download/"
    "{release}/cpython-{version}+{release}-{triple}-install_only.tar.gz"
)
PBS_VERSIONS: List[Tuple[int, int, int]] = [
    (3, 12, 1),
    (3, 11, 7),
    (3, 10, 13),
    (3, 9, 18),
    (3, 8, 18),
]
# (arch, os) -> target triple of the install_only builds
PBS_TARGETS: Dict[Tuple[str, str], str] = {
    ("x86_64", "linux"): "x86_64-unknown-linux-gnu",
    ("aarch64", "linux"): "aarch64-unknown-linux-gnu",
    ("x86_64", "macos"): "x86_64-apple-darwin",
    ("aarch64", "macos"): "aarch64-apple-darwin",
    ("x86_64", "windows"): "x86_64-pc-windows-msvc-shared",
}


def _build_catalog() -> List[PythonDownload]:
    downloads = []
    for (arch, os_name), triple in PBS_TARGETS.items():
        for major, minor, patch in PBS_VERSIONS:
            version = PythonVersion(
                name="cpython",
                arch=arch,
                os=os_name,
                major=major,
                minor=minor,
                patch=patch,
            )
            url = PBS_URL_TEMPLATE.format(
                release=PBS_RELEASE, version=f"{major}.{minor}.{patch}", triple=triple
            )
            downloads.append(PythonDownload(version=version, url=url))
    return downloads


PYTHON_DOWNLOADS: List[PythonDownload] = _build_catalog()


def _matching_downloads(request: PythonVersionRequest) -> List[PythonDownload]:
    return [d for d in PYTHON_DOWNLOADS if request.matches(d.version)]


def get_download_url(request: PythonVersionRequest) -> Optional[PythonDownload]:
    """Resolve a request to the newest matching catalog download."""
    candidates = _matching_downloads(request)
    if not candidates:
        logger.debug({"event": "python_download_unresolved", "request": str(request)})
        return None
    return max(candidates, key=lambda d: d.version.sort_key())


def latest_available_python_version(
    request: PythonVersionRequest,
) -> Optional[PythonVersion]:
    """Newest catalog version satisfying the request."""
    versions = [d.version for d in _matching_downloads(request)]
    return max(versions) if versions else None


def is_self_compatible_toolchain(version: PythonVersion) -> bool:
    """Whether the private environment can run on this interpreter."""
    low, high = SELF_COMPATIBLE_RANGE
    return version.name == SELF_COMPATIBLE_NAME and low <= (version.major, version.minor) <= high


def get_py_dir() -> Path:
    return get_app_dir() / "py"


def get_canonical_py_path(version: PythonVersion) -> Path:
    return get_py_dir() / str(version)


def get_toolchain_python_bin(version: PythonVersion) -> Path:
    """Interpreter executable inside an unpacked install_only distribution."""
    root = get_canonical_py_path(version)
    if version.os == "windows":
        return root / "python.exe"
    return root / "bin" / "python3"


def list_known_toolchains() -> List[PythonVersion]:
    """Installed interpreters, oldest first; incomplete installs are skipped."""
    py_dir = get_py_dir()
    if not py_dir.is_dir():
        return []

    versions = []
    for entry in py_dir.iterdir():
        if not entry.is_dir():
            continue
        try:
            version = PythonVersion.parse(entry.name)
        except ValueError:
            logger.debug({"event": "unrecognized_toolchain_dir", "path": str(entry)})
            continue
        if get_toolchain_python_bin(version).is_file():
            versions.append(version)
    return sorted(versions)
