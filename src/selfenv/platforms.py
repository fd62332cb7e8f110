"""Platform detection and mapping."""
import platform
from dataclasses import dataclass
from typing import NamedTuple, Optional


@dataclass(frozen=True)
class PlatformInfo:
    """Platform information."""
    os_name: str
    arch: str
    format: str


class PlatformMapping(NamedTuple):
    """Platform-specific values."""
    os_name: str
    archive_format: str
    exe_suffix: str


# Architecture mappings
ARCH_MAPPINGS = {
    "x86_64": "x86_64",
    "amd64": "x86_64",
    "aarch64": "aarch64",
    "arm64": "aarch64",
}

PLATFORM_MAPPINGS = {
    "Linux": PlatformMapping(os_name="linux", archive_format="tar.gz", exe_suffix=""),
    "Darwin": PlatformMapping(os_name="macos", archive_format="tar.gz", exe_suffix=""),
    "Windows": PlatformMapping(os_name="windows", archive_format="zip", exe_suffix=".exe"),
}


def get_platform_info(system: Optional[str] = None, machine: Optional[str] = None) -> PlatformInfo:
    """Get current platform information."""
    system = system or platform.system()
    machine = (machine or platform.machine()).lower()

    if system not in PLATFORM_MAPPINGS:
        raise RuntimeError(f"Unsupported operating system: {system}")

    if machine not in ARCH_MAPPINGS:
        raise RuntimeError(f"Unsupported architecture: {machine}")

    platform_map = PLATFORM_MAPPINGS[system]
    return PlatformInfo(
        os_name=platform_map.os_name,
        arch=ARCH_MAPPINGS[machine],
        format=platform_map.archive_format,
    )


def exe_name(name: str, system: Optional[str] = None) -> str:
    """Append the executable suffix used on the given (or current) system."""
    system = system or platform.system()
    if system not in PLATFORM_MAPPINGS:
        raise RuntimeError(f"Unsupported operating system: {system}")
    return f"{name}{PLATFORM_MAPPINGS[system].exe_suffix}"
