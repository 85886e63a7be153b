"""
Telegram Bot
============

aiogram bot for reminders, quick journal entries and web-login
confirmation.
"""
