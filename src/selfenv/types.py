"""Core type definitions"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from selfenv.platforms import get_platform_info


class CommandOutput(Enum):
    """How chatty a step is allowed to be."""

    QUIET = "quiet"
    NORMAL = "normal"
    VERBOSE = "verbose"

    @classmethod
    def from_flags(cls, quiet: bool = False, verbose: bool = False) -> "CommandOutput":
        if quiet and verbose:
            raise ValueError("quiet and verbose are mutually exclusive")
        if quiet:
            return cls.QUIET
        if verbose:
            return cls.VERBOSE
        return cls.NORMAL


DEFAULT_PYTHON_NAME = "cpython"

_REQUEST_RE = re.compile(
    r"""^
    (?:(?P<name>[a-z]+)(?:-(?P<arch>[a-z0-9_]+)-(?P<os>[a-z]+))?@)?
    (?P<major>\d+)
    (?:\.(?P<minor>\d+))?
    (?:\.(?P<patch>\d+))?
    (?P<suffix>[a-z][a-z0-9]*)?
    $""",
    re.VERBOSE,
)


def _render(name, arch, os, major, minor, patch, suffix) -> str:
    info = get_platform_info()
    prefix = name
    if (arch is not None and arch != info.arch) or (os is not None and os != info.os_name):
        prefix = f"{name}-{arch or info.arch}-{os or info.os_name}"
    version = ".".join(str(x) for x in (major, minor, patch) if x is not None)
    return f"{prefix}@{version}{suffix or ''}"


@dataclass(frozen=True)
class PythonVersionRequest:
    """A possibly partial interpreter version query."""

    major: int
    minor: Optional[int] = None
    patch: Optional[int] = None
    name: Optional[str] = None
    arch: Optional[str] = None
    os: Optional[str] = None
    suffix: Optional[str] = None

    @classmethod
    def parse(cls, value: str) -> "PythonVersionRequest":
        """Parse ``3.12``, ``cpython@3.12.1`` or ``cpython-x86_64-linux@3.12.1``."""
        match = _REQUEST_RE.match(value.strip())
        if not match:
            raise ValueError(f"invalid version request: {value!r}")
        parts = match.groupdict()
        return cls(
            name=parts["name"],
            arch=parts["arch"],
            os=parts["os"],
            major=int(parts["major"]),
            minor=int(parts["minor"]) if parts["minor"] is not None else None,
            patch=int(parts["patch"]) if parts["patch"] is not None else None,
            suffix=parts["suffix"],
        )

    @property
    def is_concrete(self) -> bool:
        return self.minor is not None and self.patch is not None

    def to_version(self) -> "PythonVersion":
        """Concretize the request; fails unless major, minor and patch are set."""
        if not self.is_concrete:
            raise ValueError(f"version request {self} is not concrete")
        info = get_platform_info()
        return PythonVersion(
            name=self.name or DEFAULT_PYTHON_NAME,
            arch=self.arch or info.arch,
            os=self.os or info.os_name,
            major=self.major,
            minor=self.minor,
            patch=self.patch,
            suffix=self.suffix,
        )

    def matches(self, version: "PythonVersion") -> bool:
        info = get_platform_info()
        return (
            (self.name or DEFAULT_PYTHON_NAME) == version.name
            and (self.arch or info.arch) == version.arch
            and (self.os or info.os_name) == version.os
            and self.major == version.major
            and (self.minor is None or self.minor == version.minor)
            and (self.patch is None or self.patch == version.patch)
            and (self.suffix is None or self.suffix == version.suffix)
        )

    def __str__(self) -> str:
        return _render(
            self.name or DEFAULT_PYTHON_NAME,
            self.arch,
            self.os,
            self.major,
            self.minor,
            self.patch,
            self.suffix,
        )


@dataclass(frozen=True)
class PythonVersion:
    """A concrete interpreter version; equality is on-disk identity."""

    name: str
    arch: str
    os: str
    major: int
    minor: int
    patch: int
    suffix: Optional[str] = None

    @classmethod
    def parse(cls, value: str) -> "PythonVersion":
        return PythonVersionRequest.parse(value).to_version()

    def sort_key(self) -> tuple:
        # a missing suffix sorts before any suffix
        return (
            self.name,
            self.major,
            self.minor,
            self.patch,
            self.suffix is not None,
            self.suffix or "",
        )

    def __lt__(self, other: "PythonVersion") -> bool:
        if not isinstance(other, PythonVersion):
            return NotImplemented
        return self.sort_key() < other.sort_key()

    def __le__(self, other: "PythonVersion") -> bool:
        if not isinstance(other, PythonVersion):
            return NotImplemented
        return self.sort_key() <= other.sort_key()

    def __gt__(self, other: "PythonVersion") -> bool:
        if not isinstance(other, PythonVersion):
            return NotImplemented
        return self.sort_key() > other.sort_key()

    def __ge__(self, other: "PythonVersion") -> bool:
        if not isinstance(other, PythonVersion):
            return NotImplemented
        return self.sort_key() >= other.sort_key()

    def to_request(self) -> PythonVersionRequest:
        return PythonVersionRequest(
            name=self.name,
            arch=self.arch,
            os=self.os,
            major=self.major,
            minor=self.minor,
            patch=self.patch,
            suffix=self.suffix,
        )

    def __str__(self) -> str:
        return _render(
            self.name, self.arch, self.os, self.major, self.minor, self.patch, self.suffix
        )


@dataclass(frozen=True)
class PythonDownload:
    """Interpreter distribution; the digest is optional"""

    version: PythonVersion
    url: str
    sha256: Optional[str] = None


@dataclass(frozen=True)
class UvRequest:
    """Helper query; unset fields default to the host platform"""

    version: Optional[str] = None
    arch: Optional[str] = None
    os: Optional[str] = None


@dataclass(frozen=True)
class UvRelease:
    """Catalog entry for a uv build"""

    version: str
    arch: str
    os: str
    url: str
    sha256: Optional[str] = None


@dataclass(frozen=True)
class UvDownload:
    """Helper download; unlike interpreters the digest is mandatory"""

    version: str
    url: str
    sha256: str
