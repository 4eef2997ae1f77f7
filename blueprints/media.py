from flask import Blueprint, send_file, abort, current_app
import os

from catalog import images_dir, is_valid_webp_file

media_bp = Blueprint("media", __name__, url_prefix="/characters")


def safe_join(*parts):
    base = os.path.abspath(images_dir(current_app.config["CHARACTERS_DIR"]))
    path = os.path.abspath(os.path.join(base, *parts))
    if not path.startswith(base + os.sep):
        abort(403)
    return path


@media_bp.route("/images/<filename>")
def serve_image(filename):
    if not is_valid_webp_file(filename):
        abort(404)
    image_path = safe_join(filename)
    if not os.path.exists(image_path):
        abort(404)
    return send_file(image_path, mimetype="image/webp")
