"""
Telegram-facing pieces of Strong Link Bot: messenger and message catalog.
"""
