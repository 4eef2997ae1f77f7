import os

HOST = "127.0.0.1"
PORT = 5000
DEBUG = True

SECRET_KEY = "randomizer-local-session"

BASE_DIR = os.path.abspath(os.path.dirname(__file__))

DATA_DIR = os.path.join(BASE_DIR, "data")
STORAGE_JSON = os.path.join(DATA_DIR, "storage.json")
ICONS_JSON = os.path.join(DATA_DIR, "icons.json")

CHARACTERS_DIR = os.path.join(BASE_DIR, "static", "characters")

ICONS_KEY = "mr_custom_icons"
HISTORY_KEY_PREFIX = "mr_history_"

SPIN_DURATION_MS = 3000
FRAME_MS = 1000 / 60

MAX_UPLOAD_BYTES = 10 * 1024 * 1024  # 10MB
MAX_CONTENT_LENGTH = MAX_UPLOAD_BYTES + 64 * 1024
ALLOWED_ICON_FORMATS = {"PNG", "JPEG", "GIF", "WEBP"}

PLAYERS = {
    "N": {"name": "Niko", "color": "cyan"},
    "S": {"name": "Safwan", "color": "orange"},
}

ROSTER_NAMES = [
    "Adam Warlock",
    "Black Panther",
    "Black Widow",
    "Captain America",
    "Cloak & Dagger",
    "Doctor Strange",
    "Emma Frost",
    "Groot",
    "Hawkeye",
    "Hela",
    "Hulk",
    "Human Torch",
    "Invisible Woman",
    "Iron Fist",
    "Iron Man",
    "Jeff the Land Shark",
    "Loki",
    "Luna Snow",
    "Magik",
    "Magneto",
    "Mantis",
    "Mister Fantastic",
    "Moon Knight",
    "Namor",
    "Peni Parker",
    "Phoenix",
    "Psylocke",
    "The Punisher",
    "The Thing",
    "Rocket Raccoon",
    "Scarlet Witch",
    "Squirrel Girl",
    "Spider-Man",
    "Star-Lord",
    "Storm",
    "Thor",
    "Ultron",
    "Venom",
    "Winter Soldier",
    "Wolverine",
]
