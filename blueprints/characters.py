from flask import Blueprint, request, current_app
import io
import logging
import os

from PIL import Image, UnidentifiedImageError
from werkzeug.utils import secure_filename

from catalog import (
    ensure_character_directories,
    get_default_character,
    images_dir,
    is_valid_webp_file,
    sanitize_filename,
    set_default_character,
    sync_character_images,
)

logger = logging.getLogger(__name__)

characters_bp = Blueprint("characters", __name__, url_prefix="/api/characters")

# ---------- helpers ----------


def characters_dir():
    return current_app.config["CHARACTERS_DIR"]


def is_webp_image(data):
    try:
        with Image.open(io.BytesIO(data)) as img:
            return img.format == "WEBP"
    except (UnidentifiedImageError, OSError):
        return False


def error(message, status):
    return {"error": message}, status


@characters_bp.errorhandler(OSError)
def handle_os_error(exc):
    logger.error("Character catalog I/O failure: %s", exc)
    return error("Failed to access character images", 500)


# ---------- routes ----------


@characters_bp.route("/upload", methods=["POST"])
def upload_character():
    ensure_character_directories(characters_dir())

    image_file = request.files.get("file")
    if not image_file or image_file.filename == "":
        return error("No file provided", 400)

    if not is_valid_webp_file(image_file.filename):
        return error("Only WebP files are allowed", 400)

    data = image_file.read()
    max_bytes = current_app.config["MAX_UPLOAD_BYTES"]
    if len(data) > max_bytes:
        return error(f"File size must be less than {max_bytes // (1024 * 1024)}MB", 400)

    if not is_webp_image(data):
        return error("File is not a valid WebP image", 400)

    filename = sanitize_filename(secure_filename(image_file.filename))
    if not is_valid_webp_file(filename) or filename == ".webp":
        return error("Invalid file name", 400)

    path = os.path.join(images_dir(characters_dir()), filename)
    if os.path.exists(path):
        return error("A character image with this name already exists", 409)

    with open(path, "wb") as f:
        f.write(data)
    logger.info("Saved character image %s", filename)

    config = sync_character_images(characters_dir())
    character = config["characters"].get(filename[: -len(".webp")])

    return {
        "success": True,
        "message": "Character image uploaded successfully",
        "character": character,
        "isDefault": bool(character and character.get("isDefault")),
    }


@characters_bp.route("/upload", methods=["GET"])
def list_characters():
    config = sync_character_images(characters_dir())
    return {
        "characters": list(config["characters"].values()),
        "defaultCharacter": config.get("defaultCharacter"),
    }


@characters_bp.route("/sync", methods=["GET", "POST"])
def sync():
    logger.info("Manual character sync triggered")
    config = sync_character_images(characters_dir())
    count = len(config["characters"])
    return {
        "success": True,
        "message": f"Successfully synced {count} character image(s)",
        "characters": list(config["characters"].values()),
        "defaultCharacter": config.get("defaultCharacter"),
    }


@characters_bp.route("/default", methods=["POST"])
def set_default():
    payload = request.get_json(silent=True) or {}
    character_id = payload.get("characterId")
    if not character_id:
        return error("Character ID is required", 400)

    if not set_default_character(characters_dir(), character_id):
        return error("Character not found", 404)

    return {
        "success": True,
        "message": "Default character updated successfully",
        "defaultCharacter": character_id,
    }


@characters_bp.route("/default", methods=["GET"])
def get_default():
    return {"defaultCharacter": get_default_character(characters_dir())}
