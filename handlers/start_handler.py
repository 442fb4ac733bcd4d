"""
handlers/start_handler.py
--------------------------
Handles /start and /help commands.
"""

from telegram import Update
from telegram.ext import ContextTypes

from utils.logger import get_logger

logger = get_logger(__name__)

HELP_TEXT = """
🤖 *Welcome to SubTracker!*
Your personal subscription tracker 💶

*🔧 Commands:*
/subscriptions - list subscriptions by next payment
/add\\_subscription - add a subscription
/edit\\_subscription - edit a subscription
/delete\\_subscription - delete a subscription
/detail - next payment, charges and total spent
/reminder - reminder settings (e.g. /reminder <id> 3 09:00)
/stats - spending per month (or /stats year)
/calendar - upcoming payments by day
/help - show this help
"""


async def start_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /start command - show welcome message."""
    user = update.effective_user
    logger.info(f"User {user.id} ({user.first_name}) started the bot.")

    await update.message.reply_text(
        f"Hi {user.first_name}! 👋\n"
        f"I keep track of your subscriptions and remind you before each payment.\n\n"
        f"Type /help to see all commands.",
    )


async def help_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /help command - show all available commands."""
    await update.message.reply_text(HELP_TEXT, parse_mode="Markdown")
