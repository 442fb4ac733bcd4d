"""
config.py
---------
Central configuration module. Loads all environment variables
from the .env file and exposes them as typed constants.
"""

import os
from dotenv import load_dotenv

from utils.money import check_currency_symbol

load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


# ── Telegram ──────────────────────────────────────────────
TELEGRAM_BOT_TOKEN: str = os.getenv("TELEGRAM_BOT_TOKEN", "")

# Only this chat may use the bot; reminders are delivered here too.
_raw_owner = os.getenv("OWNER_CHAT_ID", "").strip()
OWNER_CHAT_ID: int | None = int(_raw_owner) if _raw_owner else None

# ── Time ──────────────────────────────────────────────────
TIMEZONE: str = os.getenv("TIMEZONE", "Europe/Madrid")

# ── Storage ───────────────────────────────────────────────
SUBSCRIPTIONS_FILE: str = os.getenv("SUBSCRIPTIONS_FILE", "subscriptions.json")

# ── Notifications ─────────────────────────────────────────
NOTIFICATIONS_ENABLED: bool = _env_bool("NOTIFICATIONS_ENABLED", True)
REMINDERS_ENABLED: bool = _env_bool("REMINDERS_ENABLED", True)
REMINDER_HORIZON_CYCLES: int = int(os.getenv("REMINDER_HORIZON_CYCLES", "12"))

# ── Display ───────────────────────────────────────────────
CURRENCY_SYMBOL: str = check_currency_symbol(os.getenv("CURRENCY_SYMBOL", "€"))
CALENDAR_HORIZON_MONTHS: int = int(os.getenv("CALENDAR_HORIZON_MONTHS", "6"))

# ── Logging ───────────────────────────────────────────────
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()
