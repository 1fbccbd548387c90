import pytest
from PIL import Image

from albumen.config import parse_config


# --- Image fixtures -----------------------------------------------------------
@pytest.fixture()
def make_image():
    """Write a solid-colour image; format follows the file extension."""

    def _mk(path, size=(400, 300), color=(200, 40, 40), mode="RGB"):
        path.parent.mkdir(parents=True, exist_ok=True)
        Image.new(mode, size, color).save(path)
        return path

    return _mk


@pytest.fixture()
def make_corrupt():
    def _mk(path, data=b"this is not an image"):
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        return path

    return _mk


# --- Config fixtures ----------------------------------------------------------
@pytest.fixture()
def make_config(tmp_path):
    """Config rooted in tmp_path with gallery/ as input and site/ as output."""

    def _mk(**overrides):
        data = {
            "input": "gallery",
            "output": "site",
            "theme": "theme",
            "thumbnail_sizes": [200, 800],
            "workers": 2,
        }
        data.update(overrides)
        return parse_config(data, tmp_path)

    return _mk


@pytest.fixture()
def gallery(tmp_path):
    root = tmp_path / "gallery"
    root.mkdir()
    return root


def snapshot(root):
    """Map every file under root to its bytes."""
    return {
        str(p.relative_to(root)): p.read_bytes()
        for p in sorted(root.rglob("*")) if p.is_file()
    }


def mtimes(root):
    return {
        str(p.relative_to(root)): p.stat().st_mtime_ns
        for p in sorted(root.rglob("*")) if p.is_file()
    }
