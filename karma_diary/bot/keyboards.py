"""
Inline keyboards for the bot.
"""

from aiogram.types import InlineKeyboardButton, InlineKeyboardMarkup, WebAppInfo

from karma_diary.config import settings
from karma_diary.models.journal import EntryCategory

ENTRY_CATEGORY_LABELS = {
    EntryCategory.KINDNESS: "💝 Доброта",
    EntryCategory.GRATITUDE: "🙏 Вдячність",
    EntryCategory.HELP: "🤝 Допомога",
    EntryCategory.ANTIDOTE: "🛡️ Антидот",
}


def _app_button(text: str, path: str = "") -> list[InlineKeyboardButton]:
    # Telegram accepts Web App buttons only for https URLs
    if not settings.FRONTEND_URL.startswith("https://"):
        return []
    return [InlineKeyboardButton(text=text, web_app=WebAppInfo(url=f"{settings.FRONTEND_URL}{path}"))]


def back_button() -> InlineKeyboardButton:
    return InlineKeyboardButton(text="🔙 Назад", callback_data="main_menu")


def main_menu_keyboard() -> InlineKeyboardMarkup:
    rows = [
        [
            InlineKeyboardButton(text="📝 Додати запис", callback_data="add_entry"),
            InlineKeyboardButton(text="📊 Статистика", callback_data="stats"),
        ],
        [
            InlineKeyboardButton(text="🏆 Досягнення", callback_data="achievements"),
            InlineKeyboardButton(text="💬 AI-порада", callback_data="ai_advice"),
        ],
        [InlineKeyboardButton(text="💎 Підписка", callback_data="subscription")],
    ]
    app = _app_button("📱 Відкрити додаток")
    if app:
        rows.append(app)
    return InlineKeyboardMarkup(inline_keyboard=rows)


def entry_category_keyboard() -> InlineKeyboardMarkup:
    labels = list(ENTRY_CATEGORY_LABELS.items())
    rows = [
        [
            InlineKeyboardButton(text=label, callback_data=f"entry_{category.value}")
            for category, label in labels[i:i + 2]
        ]
        for i in range(0, len(labels), 2)
    ]
    rows.append([InlineKeyboardButton(text="⬅️ Назад", callback_data="main_menu")])
    return InlineKeyboardMarkup(inline_keyboard=rows)


def cancel_keyboard() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(inline_keyboard=[
        [InlineKeyboardButton(text="❌ Скасувати", callback_data="main_menu")],
    ])


def back_keyboard() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(inline_keyboard=[[back_button()]])


def after_entry_keyboard() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(inline_keyboard=[[
        InlineKeyboardButton(text="📝 Додати ще", callback_data="add_entry"),
        InlineKeyboardButton(text="🏠 Головне меню", callback_data="main_menu"),
    ]])


def advice_keyboard() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(inline_keyboard=[
        [InlineKeyboardButton(text="💡 Ще порада", callback_data="ai_advice")],
        [back_button()],
    ])


def subscription_keyboard() -> InlineKeyboardMarkup:
    rows = []
    app = _app_button("💎 Керувати підпискою", "/subscriptions")
    if app:
        rows.append(app)
    rows.append([back_button()])
    return InlineKeyboardMarkup(inline_keyboard=rows)
