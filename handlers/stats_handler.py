"""
handlers/stats_handler.py
-------------------------
Handles /stats and /calendar: spending totals, category split,
insights and the upcoming payment calendar.
"""

from telegram import Update
from telegram.ext import ContextTypes

from config import CALENDAR_HORIZON_MONTHS
from handlers.subscription_handler import SERVICE_KEY
from services.aggregator import (
    category_breakdown,
    dominant_category,
    highest_payment,
    most_accumulated,
    payment_calendar,
    total_monthly,
    total_yearly,
    upcoming_payments,
)
from utils.dates import now_local
from utils.logger import get_logger
from utils.money import format_money

logger = get_logger(__name__)

_PERIODS = {"month": "month", "monthly": "month", "year": "year", "yearly": "year"}


def _progress_bar(pct: float, length: int = 15) -> str:
    """Generate a text progress bar."""
    filled = int(min(pct, 100) / 100 * length)
    return "█" * filled + "░" * (length - filled)


async def stats_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /stats [month|year] - totals, category split and insights."""
    service = context.bot_data[SERVICE_KEY]
    symbol = service.preferences.currency_symbol
    subs = service.list_all()
    if not subs:
        await update.message.reply_text("📭 No subscriptions yet.")
        return

    period = _PERIODS.get((context.args or ["month"])[0].lower(), "month")
    now = now_local()
    total = total_monthly(subs) if period == "month" else total_yearly(subs)

    lines = [f"📊 *Spending per {period}: {format_money(total, symbol)}*\n"]
    for share in sorted(category_breakdown(subs, period), key=lambda s: s.amount, reverse=True):
        lines.append(
            f"*{share.name}*: {format_money(share.amount, symbol)} ({share.percentage}%)\n"
            f"  {_progress_bar(share.percentage)}"
        )

    lines.append("\n⏭️ *Upcoming*")
    for item in upcoming_payments(subs, now, period=period):
        lines.append(
            f"  {item.date} {item.subscription.name}: "
            f"{format_money(item.subscription.price, symbol)} (in {item.days_until} days)"
        )

    lines.append("\n💡 *Insights*")
    top = highest_payment(subs, period)
    if top:
        lines.append(f"  Most expensive: {top[0].name} ({format_money(top[1], symbol)} per {period})")
    dominant = dominant_category(subs, period)
    if dominant:
        lines.append(f"  {dominant.name} takes {dominant.percentage}% of your spending")
    accumulated = most_accumulated(subs, now)
    if accumulated and accumulated[1] > 0:
        lines.append(f"  {accumulated[0].name} has cost you {format_money(accumulated[1], symbol)} so far")

    await update.message.reply_text("\n".join(lines), parse_mode="Markdown")


async def calendar_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /calendar - every payment over the coming months, by day."""
    service = context.bot_data[SERVICE_KEY]
    symbol = service.preferences.currency_symbol
    subs = service.list_all()
    if not subs:
        await update.message.reply_text("📭 No subscriptions yet.")
        return

    events = payment_calendar(subs, now_local().date(), horizon_months=CALENDAR_HORIZON_MONTHS)
    lines = [f"🗓️ Payments in the next {CALENDAR_HORIZON_MONTHS} months:\n"]
    for key, day_subs in events.items():
        day_total = sum(s.price for s in day_subs)
        names = ", ".join(s.name for s in day_subs)
        lines.append(f"  {key}: {names} ({format_money(day_total, symbol)})")

    text = "\n".join(lines)
    # Telegram rejects messages over 4096 characters (daily charges add up)
    if len(text) > 4000:
        text = text[:4000].rsplit("\n", 1)[0] + "\n  …"
    await update.message.reply_text(text)
