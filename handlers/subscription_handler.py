"""
handlers/subscription_handler.py
--------------------------------
Handles subscription commands: list, add, edit, delete, detail and reminders.
Input is the structured "name | price | frequency | start date | category" format.
"""

import re
from datetime import date

from telegram import Update
from telegram.ext import ContextTypes

from models.recurrence import Frequency
from models.subscription import CATEGORIES, DEFAULT_CATEGORY, ReminderSettings, SubscriptionForm
from services.aggregator import sorted_by_next_payment, total_monthly, total_yearly
from services.amounts import monthly_amount, yearly_amount
from services.recurrence import charges_since_start, next_payment_date, total_spent
from services.subscription_service import SaveOutcome, SubscriptionService
from utils.dates import days_until, now_local, subscription_age
from utils.logger import get_logger
from utils.money import format_money

logger = get_logger(__name__)

SERVICE_KEY = "subscription_service"

_FREQ_MAP = {
    "daily": Frequency.DAILY, "day": Frequency.DAILY,
    "weekly": Frequency.WEEKLY, "week": Frequency.WEEKLY,
    "monthly": Frequency.MONTHLY, "month": Frequency.MONTHLY,
    "yearly": Frequency.YEARLY, "year": Frequency.YEARLY, "annual": Frequency.YEARLY,
    "custom": Frequency.CUSTOM,
}
_CATEGORY_MAP = {c.lower(): c for c in CATEGORIES}

ADD_USAGE = (
    "📝 *Add a subscription*\n\n"
    "`/add_subscription name | price | frequency | start date | category`\n\n"
    "*Examples:*\n"
    "• `/add_subscription Netflix | 12.99 | monthly | 2024-01-31 | Entertainment`\n"
    "• `/add_subscription Gym | 30 | monthly`\n"
    "• `/add_subscription Water | 45 | custom 60 | 2024-03-01 | Home`\n\n"
    "*Frequency:* daily, weekly, monthly, yearly, custom N (every N days)\n"
    "Start date defaults to today, category to Other."
)


def _service(context: ContextTypes.DEFAULT_TYPE) -> SubscriptionService:
    return context.bot_data[SERVICE_KEY]


def parse_frequency(text: str) -> tuple[Frequency, int | None]:
    """
    Parse "monthly", "custom 45" or "custom:45".

    Raises:
        ValueError: Unknown frequency or a custom one without a day count.
    """
    parts = re.split(r"[\s:]+", text.strip().lower())
    frequency = _FREQ_MAP.get(parts[0])
    if frequency is None:
        raise ValueError(f"Unknown frequency '{text.strip()}'")
    if frequency is not Frequency.CUSTOM:
        return frequency, None
    if len(parts) < 2 or not parts[1].isdigit() or int(parts[1]) < 1:
        raise ValueError("Custom frequency needs a number of days, e.g. 'custom 45'")
    return frequency, int(parts[1])


def parse_subscription_args(text: str, today: date) -> SubscriptionForm:
    """
    Parse the structured subscription format.

    Raises:
        ValueError: With a message suitable for the user.
    """
    parts = [p.strip() for p in text.split("|")]
    if len(parts) < 3:
        raise ValueError("Expected at least: name | price | frequency")

    name = parts[0]
    try:
        price = float(parts[1].replace(",", ".").strip("€$£ "))
    except ValueError:
        raise ValueError(f"Invalid price '{parts[1]}'") from None

    frequency, interval = parse_frequency(parts[2])

    start = today
    if len(parts) >= 4 and parts[3]:
        try:
            start = date.fromisoformat(parts[3])
        except ValueError:
            raise ValueError(f"Invalid date '{parts[3]}', use YYYY-MM-DD") from None

    category = DEFAULT_CATEGORY
    if len(parts) >= 5 and parts[4]:
        category = _CATEGORY_MAP.get(parts[4].lower())
        if category is None:
            raise ValueError(f"Unknown category '{parts[4]}'. Choose from: {', '.join(CATEGORIES)}")

    form = SubscriptionForm(
        name=name,
        start_date=start,
        frequency=frequency,
        price=price,
        custom_interval_days=interval,
        category=category,
    )
    form.validate()
    return form


def _saved_message(verb: str, outcome: SaveOutcome, symbol: str) -> str:
    sub = outcome.subscription
    msg = (
        f"✅ Subscription {verb}:\n"
        f"  📌 {sub.name} ({sub.category})\n"
        f"  💶 {format_money(sub.price, symbol)} ({sub.recurrence})\n"
        f"  📅 Next payment: {sub.next_payment_date}\n"
        f"  🔔 Reminders scheduled: {len(sub.scheduled_reminder_ids)}\n"
        f"  🔖 Id: {sub.id[:8]}"
    )
    if outcome.permission_denied:
        msg += "\n\n⚠️ Reminders are not allowed right now, so they were switched off for this subscription."
    return msg


def _find(service: SubscriptionService, prefix: str):
    """Look a subscription up by its id or an unambiguous id prefix."""
    prefix = prefix.strip().lstrip("#")
    exact = service.get(prefix)
    if exact:
        return exact
    matches = [s for s in service.list_all() if s.id.startswith(prefix)] if prefix else []
    return matches[0] if len(matches) == 1 else None


async def subscriptions_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /subscriptions - list all subscriptions by next payment."""
    service = _service(context)
    symbol = service.preferences.currency_symbol
    subs = service.list_all()
    if not subs:
        await update.message.reply_text("📭 No subscriptions yet. Use /add_subscription to add one.")
        return

    now = now_local()
    lines = ["🔁 Your subscriptions:\n"]
    for sub in sorted_by_next_payment(subs, now):
        due = next_payment_date(sub, now)
        days = days_until(due, now.date())
        when = "tomorrow" if days == 1 else f"in {days} days"
        lines.append(
            f"  {sub.id[:8]} {sub.name}: {format_money(sub.price, symbol)} "
            f"({sub.recurrence}) - next {due} ({when})"
        )
    lines.append(
        f"\n💶 Monthly: {format_money(total_monthly(subs), symbol)}"
        f" | Yearly: {format_money(total_yearly(subs), symbol)}"
    )
    await update.message.reply_text("\n".join(lines))


async def add_subscription_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /add_subscription name | price | frequency | start date | category."""
    if not context.args:
        await update.message.reply_text(ADD_USAGE, parse_mode="Markdown")
        return

    service = _service(context)
    try:
        form = parse_subscription_args(" ".join(context.args), now_local().date())
    except ValueError as e:
        await update.message.reply_text(f"⚠️ {e}")
        return

    outcome = await service.add(form)
    await update.message.reply_text(_saved_message("added", outcome, service.preferences.currency_symbol))


async def edit_subscription_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """
    Handle /edit_subscription <id> | name | price | frequency | start date | category.
    Reminder preferences are kept.
    """
    text = " ".join(context.args or [])
    sub_id, _, rest = text.partition("|")
    service = _service(context)
    sub = _find(service, sub_id) if sub_id.strip() else None
    if sub is None:
        await update.message.reply_text(
            "⚠️ Usage: /edit_subscription <id> | name | price | frequency | start date | category"
        )
        return

    try:
        form = parse_subscription_args(rest, sub.start_date)
    except ValueError as e:
        await update.message.reply_text(f"⚠️ {e}")
        return
    form.reminder = sub.reminder

    outcome = await service.update(sub.id, form)
    await update.message.reply_text(_saved_message("updated", outcome, service.preferences.currency_symbol))


async def delete_subscription_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /delete_subscription <id>."""
    service = _service(context)
    sub = _find(service, context.args[0]) if context.args else None
    if sub is None:
        await update.message.reply_text("⚠️ Usage: /delete_subscription <id>\nSee ids with /subscriptions.")
        return

    await service.delete(sub.id)
    await update.message.reply_text(f"🗑️ Deleted '{sub.name}' and its reminders.")


async def detail_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /detail <id> - next payment, age and what it has cost so far."""
    service = _service(context)
    symbol = service.preferences.currency_symbol
    sub = _find(service, context.args[0]) if context.args else None
    if sub is None:
        await update.message.reply_text("⚠️ Usage: /detail <id>")
        return

    now = now_local()
    due = next_payment_date(sub, now)
    years, months, days = subscription_age(sub.start_date, now.date())
    reminder = (
        f"{sub.reminder.days_before_payment} days before at {sub.reminder.notification_time}"
        if sub.reminder.enabled else "off"
    )
    lines = [
        f"📌 *{sub.name}* ({sub.category})",
        f"💶 {format_money(sub.price, symbol)} ({sub.recurrence})",
        f"📅 Next payment: {due} (in {days_until(due, now.date())} days)",
        f"📆 Monthly: {format_money(monthly_amount(sub.price, sub.frequency, sub.custom_interval_days), symbol)}"
        f" | Yearly: {format_money(yearly_amount(sub.price, sub.frequency, sub.custom_interval_days), symbol)}",
        f"⏳ Using since {sub.start_date}: {years}y {months}m {days}d",
        f"🧾 Charges so far: {charges_since_start(sub, now)}",
        f"💰 Total spent: {format_money(total_spent(sub, now), symbol)}",
        f"🔔 Reminder: {reminder}",
    ]
    if sub.payment_method:
        lines.append(f"💳 {sub.payment_method}")
    if sub.account:
        lines.append(f"👤 {sub.account}")
    if sub.description:
        lines.append(f"📝 {sub.description}")
    await update.message.reply_text("\n".join(lines), parse_mode="Markdown")


async def reminder_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """
    Handle /reminder <id> off | on | <days> [HH:MM].

    Examples:
        /reminder 1a2b3c4d off
        /reminder 1a2b3c4d 2 08:30
    """
    args = context.args or []
    service = _service(context)
    sub = _find(service, args[0]) if args else None
    if sub is None or len(args) < 2:
        await update.message.reply_text("⚠️ Usage: /reminder <id> off | on | <days before> [HH:MM]")
        return

    option = args[1].lower()
    try:
        if option == "off":
            reminder = ReminderSettings(False, sub.reminder.days_before_payment, sub.reminder.notification_time)
        elif option == "on":
            reminder = ReminderSettings(True, sub.reminder.days_before_payment, sub.reminder.notification_time)
        else:
            at = args[2] if len(args) >= 3 else sub.reminder.notification_time
            reminder = ReminderSettings(True, int(option), at)
    except ValueError as e:
        await update.message.reply_text(f"⚠️ {e}")
        return

    outcome = await service.set_reminder(sub.id, reminder)
    updated = outcome.subscription
    if outcome.permission_denied:
        await update.message.reply_text("⚠️ Reminders are not allowed right now; they stay off.")
    elif updated.reminder.enabled:
        await update.message.reply_text(
            f"🔔 {len(updated.scheduled_reminder_ids)} reminders for '{updated.name}', "
            f"{updated.reminder.days_before_payment} days before at {updated.reminder.notification_time}."
        )
    else:
        await update.message.reply_text(f"🔕 Reminders off for '{updated.name}'.")
