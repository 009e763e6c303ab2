"""Pytest configuration for frm-downloader tests."""
import sys
import zipfile
from pathlib import Path
from types import SimpleNamespace

import pytest

# Make the top-level modules importable without installing the project
root_dir = Path(__file__).parent.parent
if str(root_dir) not in sys.path:
    sys.path.insert(0, str(root_dir))


class FakeSession:
    """Stands in for requests.Session; serves ``files`` (url -> bytes) and records calls."""

    def __init__(self, files=None, chunk_size=None):
        self.files = dict(files or {})
        self.chunk_size = chunk_size
        self.calls = []
        self.closed = 0

    def head(self, url, headers=None, allow_redirects=None, **kwargs):
        self.calls.append(('HEAD', url, headers))
        status = 200 if url in self.files else 404
        return SimpleNamespace(status_code=status, headers={})

    def get(self, url, headers=None, stream=None, allow_redirects=None, **kwargs):
        self.calls.append(('GET', url, headers))
        content = self.files[url]

        def iter_content(chunk_size=8192):
            size = self.chunk_size or chunk_size
            for i in range(0, len(content), size):
                yield content[i:i + size]

        return SimpleNamespace(
            status_code=200,
            headers={'content-length': str(len(content))},
            iter_content=iter_content,
            raise_for_status=lambda: None,
            close=self._close_response,
        )

    def _close_response(self):
        self.closed += 1

    def close(self):
        pass

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
        return False


@pytest.fixture
def fake_session():
    return FakeSession


def build_zip(path: Path, members: dict) -> Path:
    """Write a zip at ``path`` holding ``members`` (name -> bytes)."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with zipfile.ZipFile(path, 'w', compression=zipfile.ZIP_DEFLATED) as zf:
        for name, data in members.items():
            zf.writestr(name, data)
    return path


def zip_bytes(tmp_path: Path, members: dict) -> bytes:
    """Build a zip in a scratch location and return its raw bytes."""
    scratch = tmp_path / '_scratch' / 'archive.zip'
    build_zip(scratch, members)
    data = scratch.read_bytes()
    scratch.unlink()
    return data


@pytest.fixture
def make_zip():
    return build_zip


@pytest.fixture
def make_zip_bytes(tmp_path):
    return lambda members: zip_bytes(tmp_path, members)
