"""
main.py
-------
Entry point for the SubTracker Telegram bot.

Responsibilities:
    - Load the subscription store.
    - Wire the reminder scheduler to the bot's job queue.
    - Rebuild every pending reminder once at startup.
    - Configure and start the Telegram bot with all handlers.
"""

from telegram import BotCommand
from telegram.ext import Application, CommandHandler, Defaults, filters

from config import (
    CURRENCY_SYMBOL,
    NOTIFICATIONS_ENABLED,
    OWNER_CHAT_ID,
    REMINDER_HORIZON_CYCLES,
    REMINDERS_ENABLED,
    SUBSCRIPTIONS_FILE,
    TELEGRAM_BOT_TOKEN,
)
from handlers.start_handler import help_command, start_command
from handlers.stats_handler import calendar_command, stats_command
from handlers.subscription_handler import (
    SERVICE_KEY,
    add_subscription_command,
    delete_subscription_command,
    detail_command,
    edit_subscription_command,
    reminder_command,
    subscriptions_command,
)
from models.subscription import NotificationPreferences
from repositories.subscription_repo import SubscriptionRepository
from services.reminder_delivery import TelegramReminderDelivery
from services.reminder_scheduler import ReminderScheduler
from services.subscription_service import SubscriptionService
from utils.dates import local_tz
from utils.logger import get_logger

logger = get_logger(__name__)


async def post_init(application: Application) -> None:
    """Build the services, resync reminders and register the command menu."""
    delivery = TelegramReminderDelivery(application.job_queue, OWNER_CHAT_ID, local_tz())
    service = SubscriptionService(
        repo=SubscriptionRepository(SUBSCRIPTIONS_FILE),
        scheduler=ReminderScheduler(delivery, horizon_cycles=REMINDER_HORIZON_CYCLES),
        preferences=NotificationPreferences(
            notifications_enabled=NOTIFICATIONS_ENABLED,
            reminders_enabled=REMINDERS_ENABLED,
            currency_symbol=CURRENCY_SYMBOL,
        ),
    )
    application.bot_data[SERVICE_KEY] = service

    # Job queue state does not survive a restart
    scheduled = await service.rebuild_reminders()
    logger.info(f"Startup resync done: {scheduled} reminders pending")

    commands = [
        BotCommand("subscriptions", "🔁 List subscriptions"),
        BotCommand("add_subscription", "➕ Add a subscription"),
        BotCommand("edit_subscription", "✏️ Edit a subscription"),
        BotCommand("delete_subscription", "❌ Delete a subscription"),
        BotCommand("detail", "🔎 Subscription detail"),
        BotCommand("reminder", "🔔 Reminder settings"),
        BotCommand("stats", "📊 Spending statistics"),
        BotCommand("calendar", "🗓️ Payment calendar"),
        BotCommand("help", "📖 Help"),
    ]
    await application.bot.set_my_commands(commands)
    logger.info("Bot commands menu registered successfully.")


def main() -> None:
    """Initialize and run the bot."""

    # ── 1. Build the Telegram application ─────────────────
    logger.info("Starting Telegram bot...")
    app = (
        Application.builder()
        .token(TELEGRAM_BOT_TOKEN)
        .defaults(Defaults(tzinfo=local_tz()))
        .post_init(post_init)
        .build()
    )

    # ── 2. Register command handlers ──────────────────────
    if OWNER_CHAT_ID is None:
        logger.warning("OWNER_CHAT_ID is not set: the bot answers everyone and cannot send reminders.")
        owner_only = filters.ALL
    else:
        owner_only = filters.Chat(chat_id=OWNER_CHAT_ID)

    handlers = {
        "start": start_command,
        "help": help_command,
        "subscriptions": subscriptions_command,
        "add_subscription": add_subscription_command,
        "edit_subscription": edit_subscription_command,
        "delete_subscription": delete_subscription_command,
        "detail": detail_command,
        "reminder": reminder_command,
        "stats": stats_command,
        "calendar": calendar_command,
    }
    for command, callback in handlers.items():
        app.add_handler(CommandHandler(command, callback, filters=owner_only))

    # ── 3. Start polling ──────────────────────────────────
    logger.info("🚀 SubTracker is running! Press Ctrl+C to stop.")
    app.run_polling(drop_pending_updates=True, allowed_updates=["message"])
    logger.info("SubTracker stopped.")


if __name__ == "__main__":
    main()
