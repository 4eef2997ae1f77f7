from flask import (
    Blueprint,
    render_template,
    current_app,
    redirect,
    request,
    url_for,
    flash,
)
import logging

import roster
from blueprints.spin import load_session, serialize_session, update_session

logger = logging.getLogger(__name__)

history_bp = Blueprint("history", __name__, url_prefix="/history")


@history_bp.route("/", methods=["GET"])
def view_history():
    return render_template(
        "history.html",
        state=serialize_session(load_session()),
        players=current_app.config["PLAYERS"],
    )


@history_bp.route("/purge", methods=["POST"])
def purge():
    state = update_session(roster.purge_all)
    logger.info("Purged selection history for all players")

    if request.is_json or request.accept_mimetypes.best == "application/json":
        return serialize_session(state)

    flash("History purged.", "info")
    return redirect(url_for("history.view_history"))
