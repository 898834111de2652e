# app/config.py

import logging
import os

from dotenv import load_dotenv

load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./expenses.db")

SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret")

# Where logout and anonymous visitors are sent
AUTH_ROUTE = os.getenv("AUTH_ROUTE", "/auth")

# IANA zone name for calendar days, e.g. "Europe/Berlin". Empty = server local time.
TIMEZONE = os.getenv("TIMEZONE", "")

# Session cookie lifetime in seconds; idle dashboard views expire with it
SESSION_MAX_AGE = int(os.getenv("SESSION_MAX_AGE", 14 * 24 * 60 * 60))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")


def configure_logging():
    logging.basicConfig(
        level=LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
