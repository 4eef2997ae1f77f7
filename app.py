#!./env/bin/python3

from __future__ import annotations

import configparser
import logging
import threading
from datetime import datetime
from typing import Any, Mapping, Optional, Tuple

import click
from flask import Flask

import config as default_config
import roster
from catalog import ensure_character_directories, sync_character_images
from storage import JsonStore

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(levelname)s - [%(name)s] - %(message)s"


def load_server_config(path: str = "config.ini") -> Tuple[str, int, bool]:
    # Load config
    parser = configparser.ConfigParser()
    parser.read(path)

    host = parser.get("server", "host", fallback=default_config.HOST)
    port = parser.getint("server", "port", fallback=default_config.PORT)
    debug = parser.getboolean("server", "debug", fallback=False)
    return host, port, debug


def configure_logging(debug: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format=LOG_FORMAT,
    )


def format_timestamp(timestamp_ms: int) -> str:
    return datetime.fromtimestamp(timestamp_ms / 1000).strftime("%Y-%m-%d %H:%M:%S")


def run_startup_tasks(app: Flask) -> None:
    characters_dir = app.config["CHARACTERS_DIR"]
    logger.info("Initializing character images in %s", characters_dir)
    try:
        ensure_character_directories(characters_dir)
        catalog = sync_character_images(characters_dir)
    except OSError as exc:
        logger.error("Failed to initialize character images: %s", exc)
        return

    count = len(catalog["characters"])
    if count:
        logger.info("Synced %d character image(s), default: %s", count, catalog.get("defaultCharacter"))
    else:
        logger.info("No character images found, ready for uploads")


def register_commands(app: Flask) -> None:
    @app.cli.command("sync-characters")
    def sync_characters_command() -> None:
        """Reconcile the character image manifest with the images on disk."""
        try:
            catalog = sync_character_images(app.config["CHARACTERS_DIR"])
        except OSError as exc:
            raise click.ClickException(f"Sync failed: {exc}")

        default_id = catalog.get("defaultCharacter")
        default = catalog["characters"].get(default_id) if default_id else None
        click.echo(f"Characters: {len(catalog['characters'])}")
        click.echo(f"Default: {default['name'] if default else 'None'}")

    @app.cli.command("purge-history")
    def purge_history_command() -> None:
        """Clear both players' selection history."""
        from blueprints.spin import update_session

        update_session(roster.purge_all)
        click.echo("History purged.")


def create_app(overrides: Optional[Mapping[str, Any]] = None) -> Flask:
    app = Flask(__name__)
    app.config.from_object(default_config)
    if overrides:
        app.config.update(overrides)

    configure_logging(app.config.get("DEBUG", False))

    app.extensions["randomizer"] = {
        "store": JsonStore(app.config["STORAGE_JSON"]),
        "icon_store": JsonStore(app.config["ICONS_JSON"]),
        "roster": roster.load_roster(app.config["ROSTER_NAMES"]),
        "session": None,
        "generation": 0,
        "lock": threading.Lock(),
    }
    app.jinja_env.filters["timestamp"] = format_timestamp

    from blueprints.main import main_bp
    from blueprints.spin import spin_bp
    from blueprints.history import history_bp
    from blueprints.assets import assets_bp
    from blueprints.characters import characters_bp
    from blueprints.media import media_bp

    app.register_blueprint(main_bp)
    app.register_blueprint(spin_bp)
    app.register_blueprint(history_bp)
    app.register_blueprint(assets_bp)
    app.register_blueprint(characters_bp)
    app.register_blueprint(media_bp)

    register_commands(app)
    run_startup_tasks(app)
    return app


if __name__ == "__main__":
    HOST, PORT, DEBUG = load_server_config()
    app = create_app({"DEBUG": DEBUG})
    app.run(host=HOST, port=PORT, debug=DEBUG)
