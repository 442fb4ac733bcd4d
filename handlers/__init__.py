"""
handlers/ - Presentation Layer
================================
Telegram bot handlers. Each handler parses the command, delegates to the
SubscriptionService or the aggregator, and formats the reply for the user.
No billing or scheduling logic lives here.
"""
