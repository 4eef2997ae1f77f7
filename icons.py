from __future__ import annotations

import base64
import io
import logging
from typing import Dict, Optional

from PIL import Image, UnidentifiedImageError

from storage import JsonStore

logger = logging.getLogger(__name__)


class InvalidIcon(ValueError):
    pass


def initials(name: str) -> str:
    """Placeholder text shown for a character without a custom icon."""
    return "".join(part[0] for part in name.split() if part)[:2]


def load_icons(store: JsonStore, key: str) -> Dict[str, str]:
    icons = store.get(key, {})
    if not isinstance(icons, dict):
        logger.warning("Custom icon map under %s is not an object, ignoring", key)
        return {}
    return {str(k): str(v) for k, v in icons.items()}


def icon_for(store: JsonStore, key: str, name: str) -> Optional[str]:
    return load_icons(store, key).get(name)


def set_icon(store: JsonStore, key: str, name: str, data_url: str) -> None:
    icons = load_icons(store, key)
    icons[name] = data_url
    store.set(key, icons)


def remove_icon(store: JsonStore, key: str, name: str) -> bool:
    icons = load_icons(store, key)
    if name not in icons:
        return False
    del icons[name]
    store.set(key, icons)
    return True


def image_to_data_url(data: bytes, allowed_formats, max_bytes: int) -> str:
    """
    Check that ``data`` is an image Pillow can read in one of
    ``allowed_formats`` and encode it as a data URL.
    """
    if not data:
        raise InvalidIcon("Empty file.")
    if len(data) > max_bytes:
        raise InvalidIcon(
            f"File size must be less than {max_bytes // (1024 * 1024)}MB."
        )

    try:
        with Image.open(io.BytesIO(data)) as img:
            fmt = img.format
            img.verify()
    except (UnidentifiedImageError, OSError, SyntaxError) as exc:
        raise InvalidIcon("Could not process image.") from exc

    if fmt not in allowed_formats:
        raise InvalidIcon(f"Unsupported image format: {fmt}.")

    mime = Image.MIME.get(fmt, "application/octet-stream")
    encoded = base64.b64encode(data).decode("ascii")
    return f"data:{mime};base64,{encoded}"
