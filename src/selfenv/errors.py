"""Error handling for the self-bootstrap subsystem."""
import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Optional, Union

from mcp.types import (
    ErrorData,
    INTERNAL_ERROR,
    INVALID_PARAMS,
    INVALID_REQUEST,
)

from selfenv.logging import log_with_data

DOCS_MISSING_SHARED_LIBRARIES = (
    "https://gregoryszorc.com/docs/python-build-standalone/main/running.html"
)
DOCS_INSTALLATION = "https://gregoryszorc.com/docs/python-build-standalone/main/quirks.html"


def log_error(
    error: Exception,
    context: Optional[Dict[str, Any]] = None,
    logger: Optional[logging.Logger] = None
) -> None:
    """Log an error with context."""
    logger = logger or logging.getLogger(__name__)

    error_info = {
        "error_type": error.__class__.__name__,
        "error_message": str(error)
    }
    if context:
        error_info["context"] = context
    if isinstance(error, SelfEnvError):
        error_info["code"] = error.code
        error_info["details"] = error.details

    log_with_data(logger, logging.ERROR, "Bootstrap error occurred", error_info)


class SelfEnvError(Exception):
    """Base error class for the bootstrap subsystem.

    Besides the message, an error carries a JSON-RPC error code, a details
    dict, and a chain of context strings added by callers as the error
    propagates outward (outermost first when rendered).
    """
    def __init__(
        self,
        message: str,
        code: int = INTERNAL_ERROR,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}
        self.context: List[str] = []

    def add_context(self, message: str) -> "SelfEnvError":
        self.context.append(message)
        return self

    def __str__(self) -> str:
        if not self.context:
            return self.message
        lines = list(reversed(self.context)) + [self.message]
        return "\n  caused by: ".join(lines)

    def to_error_data(self) -> ErrorData:
        """Convert to ErrorData format."""
        return ErrorData(
            code=self.code,
            message=str(self),
            data=self.details
        )


class InsecureSchemeError(SelfEnvError):
    """Refused to download from a non-HTTPS URL."""
    def __init__(self, url: str):
        super().__init__(
            "Refusing insecure download",
            code=INVALID_PARAMS,
            details={"url": url}
        )


class NetworkError(SelfEnvError):
    """Transport-level download failure."""
    def __init__(self, url: str, reason: str):
        super().__init__(
            f"download of {url} failed: {reason}",
            details={"url": url, "reason": reason}
        )


class HttpStatusError(SelfEnvError):
    """Download answered with a non-success status."""
    def __init__(self, url: str, status: int):
        super().__init__(
            f"Failed to download: {status}",
            details={"url": url, "status": status}
        )
        self.status = status


class NotFoundError(SelfEnvError):
    """Download answered with 404."""
    def __init__(self, url: str):
        super().__init__(
            "Failed to download: 404 not found",
            code=INVALID_REQUEST,
            details={"url": url, "status": 404}
        )


class ChecksumMismatchError(SelfEnvError):
    def __init__(self, expected: str, actual: str):
        super().__init__(
            f"hash mismatch: expected {expected} got {actual}",
            details={"expected": expected, "actual": actual}
        )
        self.expected = expected
        self.actual = actual


class ChecksumUnavailableError(SelfEnvError):
    """No pinned digest for a download while pinned checksums are required."""

    def __init__(self, url: str):
        super().__init__(
            f"no pinned checksum for {url}; add it under [checksums.sha256] in config.toml",
            details={"url": url}
        )
        self.url = url


class UnpackError(SelfEnvError):
    def __init__(self, message: str, target: Optional[Path] = None):
        super().__init__(
            message,
            details={"target": str(target) if target else None}
        )


class UnknownVersionError(SelfEnvError):
    def __init__(self, request: Any):
        super().__init__(
            f"unknown version {request}",
            code=INVALID_PARAMS,
            details={"request": str(request)}
        )


class UnsupportedToolchainError(SelfEnvError):
    def __init__(self, version: Any):
        super().__init__(
            f"the requested toolchain version ({version}) is not supported "
            "for selfenv-internal usage",
            code=INVALID_PARAMS,
            details={"version": str(version)}
        )


class MissingSharedLibrariesError(SelfEnvError):
    def __init__(self, libraries: Iterable[str]):
        libraries = sorted(set(libraries))
        super().__init__(
            "Python installation is unable to run on this machine due to "
            f"missing libraries.\nVisit {DOCS_MISSING_SHARED_LIBRARIES} for next steps.",
            details={"libraries": libraries}
        )
        self.libraries = libraries


class HelperInstallError(SelfEnvError):
    def __init__(
        self,
        target: Union[str, Path],
        message: str = "Failed to ensure uv binary is available"
    ):
        super().__init__(message, details={"target": str(target)})


class ShimInstallError(SelfEnvError):
    def __init__(self, path: Path, operation: str, reason: str):
        super().__init__(
            f"tried to {operation} {path.name} shim at {path}: {reason}",
            details={"path": str(path), "operation": operation}
        )
        self.path = path
        self.operation = operation


class CommandError(SelfEnvError):
    """A spawned helper exited unsuccessfully."""
    def __init__(self, message: str, args: List[str], returncode: int):
        super().__init__(
            message,
            details={"args": [str(a) for a in args], "returncode": returncode}
        )
        self.returncode = returncode


class IoError(SelfEnvError):
    """Filesystem failure annotated with the operation and the path."""
    def __init__(self, message: str, path: Optional[Union[str, Path]] = None, reason: str = ""):
        text = message
        if path is not None:
            text = f"{message} ({path})"
        if reason:
            text = f"{text}: {reason}"
        super().__init__(text, details={"path": str(path) if path else None})


@contextmanager
def error_context(message: str, path: Optional[Union[str, Path]] = None) -> Iterator[None]:
    """Annotate errors raised in the block with what was being attempted.

    ``SelfEnvError``s get ``message`` appended to their context chain;
    ``OSError``s are converted to ``IoError``.
    """
    try:
        yield
    except SelfEnvError as e:
        e.add_context(message)
        raise
    except OSError as e:
        raise IoError(message, path or e.filename, e.strerror or str(e)) from e
