import io
import zipfile

import pytest

ONE_MIB = 1024 * 1024


@pytest.fixture
def files_root(tmp_path):
    root = tmp_path / "files"
    root.mkdir()
    return root


@pytest.fixture
def make_file(files_root):
    """Factory writing *size* bytes (or explicit *content*) under the root."""

    def _make(name: str, size: int = 0, content: bytes | None = None):
        path = files_root / name
        path.parent.mkdir(parents=True, exist_ok=True)
        if content is None:
            content = bytes(i % 251 for i in range(size))
        path.write_bytes(content)
        return path

    return _make


@pytest.fixture
def zip_bytes():
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        archive.writestr("hello.txt", "Hello, world!\n" * 20)
    return buffer.getvalue()


@pytest.fixture
def legacy_user_agent():
    return "Mozilla/4.0 (compatible; MSIE 8.0; Windows NT 6.1; Trident/4.0)"


@pytest.fixture
def modern_user_agent():
    return "Mozilla/5.0 (X11; Linux x86_64; rv:128.0) Gecko/20100101 Firefox/128.0"
