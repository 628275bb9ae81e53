import pytest
from PIL import Image

from revert_store import RevertStore


def make_image(path, exif_date=None, fmt="JPEG"):
    """Writes a tiny image to path, optionally with an EXIF DateTimeOriginal value."""
    img = Image.new("RGB", (8, 8), "red")
    if exif_date is not None:
        exif = Image.Exif()
        exif[0x9003] = exif_date  # DateTimeOriginal
        img.save(path, fmt, exif=exif)
    else:
        img.save(path, fmt)
    return path


class FakeClient:
    def __init__(self, response="Sunset-At-Beach.jpg", error=None):
        self.response = response
        self.error = error
        self.calls = []

    def generate(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return {"response": self.response}


@pytest.fixture
def store(tmp_path):
    return RevertStore(str(tmp_path / "data" / "revert-mappings.json"))


@pytest.fixture(autouse=True)
def data_home(tmp_path, monkeypatch):
    home = tmp_path / "data"
    home.mkdir()
    monkeypatch.setenv("XDG_DATA_HOME", str(home))
    return home


@pytest.fixture
def messages():
    lines = []

    def capture(message):
        lines.append(message.rstrip("\n"))

    capture.lines = lines
    return capture
