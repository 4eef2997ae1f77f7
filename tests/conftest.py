from __future__ import annotations

import io

import pytest
from PIL import Image

from app import create_app

SMALL_ROSTER = ["Charlie", "Alpha", "Bravo"]


@pytest.fixture
def make_app(tmp_path):
    def factory(**overrides):
        config = {
            "TESTING": True,
            "STORAGE_JSON": str(tmp_path / "data" / "storage.json"),
            "ICONS_JSON": str(tmp_path / "data" / "icons.json"),
            "CHARACTERS_DIR": str(tmp_path / "characters"),
            "ROSTER_NAMES": SMALL_ROSTER,
        }
        config.update(overrides)
        return create_app(config)

    return factory


@pytest.fixture
def app(make_app):
    return make_app()


@pytest.fixture
def client(app):
    return app.test_client()


def image_bytes(fmt: str, size=(8, 8)) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", size, (200, 40, 40)).save(buf, fmt)
    return buf.getvalue()
