# config.py
"""
QuickEvent configuration and logging setup.

Values come from the environment (optionally a .env file in the working
directory) and fall back to the defaults below.
"""
import os
import logging

from dotenv import load_dotenv

load_dotenv()

APP_NAME = "QuickCal"

HOME_DIR = os.path.expanduser(
    os.getenv("QUICKEVENT_HOME", "~/Library/Application Support/QuickEvent")
)
DB_FILE = os.getenv("QUICKEVENT_DB_FILE", os.path.join(HOME_DIR, "notes.db"))
LOG_FILE = os.getenv("QUICKEVENT_LOG_FILE", os.path.join(HOME_DIR, "quickevent.log"))

OPENAI_ENDPOINT = os.getenv(
    "QUICKEVENT_OPENAI_ENDPOINT", "https://api.openai.com/v1/chat/completions"
)
OPENAI_MODEL = os.getenv("QUICKEVENT_OPENAI_MODEL", "gpt-3.5-turbo")
OPENAI_TIMEOUT = 30.0
KEYCHAIN_SERVICE = os.getenv("QUICKEVENT_KEYCHAIN_SERVICE", "com.quickevent.openai")

LOG_FORMAT = "%(asctime)s %(levelname)s %(message)s"


def setup_logging(log_file: str = LOG_FILE) -> None:
    """File handler at DEBUG, console at INFO."""
    os.makedirs(os.path.dirname(log_file) or ".", exist_ok=True)
    logging.basicConfig(filename=log_file, level=logging.DEBUG, format=LOG_FORMAT)
    console = logging.StreamHandler()
    console.setLevel(logging.INFO)
    console.setFormatter(logging.Formatter(LOG_FORMAT))
    logging.getLogger().addHandler(console)
    # urllib3 is chatty at DEBUG
    logging.getLogger("urllib3").setLevel(logging.INFO)
