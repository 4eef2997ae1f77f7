from __future__ import annotations

import json
import logging
import os
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

IMAGES_SUBDIR = "images"
DEFAULTS_SUBDIR = "defaults"
CONFIG_NAME = "characters.json"
IMAGE_URL_PREFIX = "/characters/images/"


def images_dir(characters_dir: str) -> str:
    return os.path.join(characters_dir, IMAGES_SUBDIR)


def config_path(characters_dir: str) -> str:
    return os.path.join(characters_dir, DEFAULTS_SUBDIR, CONFIG_NAME)


def _empty_config() -> Dict[str, Any]:
    return {"defaultCharacter": None, "characters": {}}


def ensure_character_directories(characters_dir: str) -> None:
    os.makedirs(images_dir(characters_dir), exist_ok=True)
    os.makedirs(os.path.join(characters_dir, DEFAULTS_SUBDIR), exist_ok=True)


def load_character_config(characters_dir: str) -> Dict[str, Any]:
    """Read the manifest, creating an empty one when it does not exist yet."""
    ensure_character_directories(characters_dir)
    path = config_path(characters_dir)
    if not os.path.exists(path):
        config = _empty_config()
        save_character_config(characters_dir, config)
        return config

    try:
        with open(path, "r", encoding="utf-8") as f:
            config = json.load(f)
    except (OSError, json.JSONDecodeError) as exc:
        logger.error("Error loading character config %s: %s", path, exc)
        return _empty_config()

    if not isinstance(config, dict) or not isinstance(config.get("characters"), dict):
        logger.error("Character config %s has an unexpected shape", path)
        return _empty_config()
    config.setdefault("defaultCharacter", None)
    return config


def save_character_config(characters_dir: str, config: Dict[str, Any]) -> None:
    ensure_character_directories(characters_dir)
    path = config_path(characters_dir)
    try:
        with open(path, "w", encoding="utf-8") as f:
            json.dump(config, f, indent=2)
    except OSError as exc:
        logger.error("Error saving character config %s: %s", path, exc)


def is_valid_webp_file(filename: str) -> bool:
    return filename.lower().endswith(".webp")


def sanitize_filename(filename: str) -> str:
    name = re.sub(r"[^a-z0-9.-]", "-", filename.lower())
    name = re.sub(r"-+", "-", name)
    return name.strip("-")


def display_name(character_id: str) -> str:
    return re.sub(r"\b\w", lambda m: m.group(0).upper(), character_id.replace("-", " "))


def sync_character_images(characters_dir: str) -> Dict[str, Any]:
    """
    Reconcile the manifest with the WebP files in the images directory.

    New files get an entry, entries whose file is gone are dropped, and the
    first remaining entry becomes the default when none is set.
    """
    config = load_character_config(characters_dir)
    characters = config["characters"]

    webp_files = sorted(
        f for f in os.listdir(images_dir(characters_dir)) if is_valid_webp_file(f)
    )

    for filename in webp_files:
        character_id = filename[: -len(".webp")]
        if character_id in characters:
            continue
        characters[character_id] = {
            "id": character_id,
            "name": display_name(character_id),
            "filename": filename,
            "path": IMAGE_URL_PREFIX + filename,
            "isDefault": False,
            "uploadedAt": datetime.now(timezone.utc).isoformat(),
        }
        logger.info("Added character image: %s", characters[character_id]["name"])

    present = set(webp_files)
    for character_id in list(characters):
        if characters[character_id].get("filename") not in present:
            logger.info("Removing deleted character image: %s", character_id)
            del characters[character_id]
            if config.get("defaultCharacter") == character_id:
                config["defaultCharacter"] = None

    if characters and not config.get("defaultCharacter"):
        first = next(iter(characters))
        config["defaultCharacter"] = first
        characters[first]["isDefault"] = True

    save_character_config(characters_dir, config)
    return config


def get_character_images(characters_dir: str) -> List[Dict[str, Any]]:
    return list(sync_character_images(characters_dir)["characters"].values())


def get_default_character(characters_dir: str) -> Optional[Dict[str, Any]]:
    config = load_character_config(characters_dir)
    characters = config["characters"]
    default_id = config.get("defaultCharacter")
    if default_id and default_id in characters:
        return characters[default_id]
    return next(iter(characters.values()), None)


def set_default_character(characters_dir: str, character_id: str) -> bool:
    config = load_character_config(characters_dir)
    characters = config["characters"]
    if character_id not in characters:
        return False

    for character in characters.values():
        character["isDefault"] = False
    config["defaultCharacter"] = character_id
    characters[character_id]["isDefault"] = True
    save_character_config(characters_dir, config)
    return True
