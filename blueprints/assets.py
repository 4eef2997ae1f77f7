from flask import (
    Blueprint,
    render_template,
    request,
    redirect,
    url_for,
    current_app,
    flash,
    abort,
)
import logging

from blueprints.spin import get_icon_store, load_session
from icons import InvalidIcon, image_to_data_url, initials, load_icons, remove_icon, set_icon

logger = logging.getLogger(__name__)

assets_bp = Blueprint("assets", __name__, url_prefix="/assets")

# ---------- helpers ----------


def check_character(name):
    if name not in {c.name for c in load_session().roster}:
        abort(404)


def icons_key():
    return current_app.config["ICONS_KEY"]


# ---------- routes ----------


@assets_bp.route("/", methods=["GET"])
def manage_assets():
    icons = load_icons(get_icon_store(), icons_key())
    characters = [
        {"name": c.name, "icon": icons.get(c.name), "initials": initials(c.name)}
        for c in load_session().roster
    ]
    return render_template("assets.html", characters=characters)


@assets_bp.route("/<name>/icon", methods=["POST"])
def upload_icon(name):
    check_character(name)
    icon_file = request.files.get("icon")

    if not icon_file or icon_file.filename == "":
        flash("Icon image is required.", "error")
        return redirect(url_for("assets.manage_assets"))

    try:
        data_url = image_to_data_url(
            icon_file.read(),
            current_app.config["ALLOWED_ICON_FORMATS"],
            current_app.config["MAX_UPLOAD_BYTES"],
        )
    except InvalidIcon as exc:
        logger.warning("Rejected icon for %s: %s", name, exc)
        flash(str(exc), "error")
        return redirect(url_for("assets.manage_assets"))

    set_icon(get_icon_store(), icons_key(), name, data_url)
    flash(f"Icon updated for {name}.", "info")
    return redirect(url_for("assets.manage_assets"))


@assets_bp.route("/<name>/icon/delete", methods=["POST"])
def delete_icon(name):
    check_character(name)
    if not remove_icon(get_icon_store(), icons_key(), name):
        flash(f"{name} has no custom icon.", "error")
    return redirect(url_for("assets.manage_assets"))
