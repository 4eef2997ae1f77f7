from flask import Blueprint, render_template, current_app

import roster
from blueprints.spin import get_icon_store, load_session, serialize_session, update_session
from catalog import sync_character_images
from icons import load_icons

main_bp = Blueprint("main", __name__)


def teardown_spins():
    # a fresh page load replaces whatever page was animating before
    state = load_session()
    for pid in roster.PLAYER_IDS:
        if state.player(pid).spinning:
            state = update_session(roster.cancel_spin, pid)
    return state


@main_bp.route("/")
def index():
    state = teardown_spins()
    icons = load_icons(get_icon_store(), current_app.config["ICONS_KEY"])
    return render_template(
        "index.html",
        state=serialize_session(state),
        players=current_app.config["PLAYERS"],
        icons=icons,
    )


@main_bp.route("/characters")
def character_catalog():
    catalog = sync_character_images(current_app.config["CHARACTERS_DIR"])
    return render_template(
        "characters.html",
        characters=list(catalog["characters"].values()),
        default_id=catalog.get("defaultCharacter"),
    )
