import io
import tarfile
import zipfile
from typing import Dict, Optional

import pytest

from selfenv import bootstrap, tui


def build_tar_gz(
    files: Dict[str, bytes],
    prefix: str = "dist",
    symlinks: Optional[Dict[str, str]] = None,
) -> bytes:
    """In-memory tar.gz with every member below a single top-level directory."""
    buf = io.BytesIO()
    with tarfile.open(fileobj=buf, mode="w:gz") as tar:
        top = tarfile.TarInfo(prefix)
        top.type = tarfile.DIRTYPE
        top.mode = 0o755
        tar.addfile(top)
        for name, data in files.items():
            info = tarfile.TarInfo(f"{prefix}/{name}")
            info.size = len(data)
            info.mode = 0o755
            tar.addfile(info, io.BytesIO(data))
        for name, target in (symlinks or {}).items():
            info = tarfile.TarInfo(f"{prefix}/{name}")
            info.type = tarfile.SYMTYPE
            info.linkname = target
            tar.addfile(info)
    return buf.getvalue()


def build_zip(files: Dict[str, bytes], prefix: str = "dist") -> bytes:
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w", zipfile.ZIP_DEFLATED) as archive:
        for name, data in files.items():
            info = zipfile.ZipInfo(f"{prefix}/{name}")
            info.external_attr = 0o755 << 16
            archive.writestr(info, data)
    return buf.getvalue()


@pytest.fixture
def tar_gz():
    return build_tar_gz


@pytest.fixture
def zip_bytes():
    return build_zip


@pytest.fixture
def app_dir(tmp_path, monkeypatch):
    """Isolated app dir with no proxy settings leaking in from the host."""
    home = tmp_path / "selfenv-home"
    monkeypatch.setenv("SELFENV_HOME", str(home))
    for var in ("https_proxy", "HTTPS_PROXY", "http_proxy", "HTTP_PROXY"):
        monkeypatch.delenv(var, raising=False)
    return home


@pytest.fixture(autouse=True)
def reset_process_state(monkeypatch):
    monkeypatch.setattr(bootstrap, "_UP_TO_DATE", None)
    monkeypatch.setattr(bootstrap, "_FORCED_TO_UPDATE", False)
    monkeypatch.setattr(tui, "_ECHO_STATE", tui.EchoState.STDOUT)
