"""
Bot message texts. Everything user-supplied is HTML-escaped here.
"""

from datetime import datetime
from html import escape
from typing import Optional

from karma_diary.core.plans import Plan
from karma_diary.models.journal import AchievementType, EntryCategory, UserStats
from karma_diary.models.subscription import Subscription
from karma_diary.services.achievement_service import ACHIEVEMENT_CATALOG

CATEGORY_NAMES = {
    EntryCategory.REFLECTION: "Роздуми 💭",
    EntryCategory.KINDNESS: "Доброта 💝",
    EntryCategory.GRATITUDE: "Вдячність 🙏",
    EntryCategory.HELP: "Допомога 🤝",
    EntryCategory.ANTIDOTE: "Антидот 🛡️",
}

PLAN_NAMES = {
    Plan.TRIAL: "🧪 Пробний",
    Plan.LIGHT: "🌟 Light",
    Plan.PLUS: "⭐ Plus",
    Plan.PRO: "💎 Pro",
}

HELP_TEXT = (
    "🪷 <b>Кармічний щоденник</b>\n\n"
    "/start - головне меню\n"
    "/stats - твоя статистика\n"
    "/help - ця довідка\n\n"
    "Натисни «📝 Додати запис» або відповідай на нагадування, "
    "щоб записати свої думки."
)


def greeting(name: str, hour: int) -> str:
    name = escape(name)
    if hour < 12:
        return f"Доброго ранку, {name}! 🌅"
    if hour < 18:
        return f"Добрий день, {name}! ☀️"
    return f"Добрий вечір, {name}! 🌙"


def main_menu_text(name: str, hour: int, streak_days: int, principle_number: int, principle_title: str) -> str:
    return (
        f"{greeting(name, hour)}\n\n"
        f"📿 Принцип {principle_number}: <b>{escape(principle_title)}</b>\n"
        f"🔥 Серія днів: {streak_days}\n\n"
        "Що бажаєш зробити?"
    )


def welcome_text(name: str, hour: int) -> str:
    return (
        f"{greeting(name, hour)}\n\n"
        "🙏 Ласкаво просимо до Кармічного Щоденника!\n\n"
        "Я допоможу тобі:\n"
        "• 📝 Записувати добрі справи\n"
        "• 📊 Відстежувати прогрес\n"
        "• 💬 Отримувати AI-поради\n"
        "• 🏆 Святкувати досягнення"
    )


def entry_prompt(category: EntryCategory, principle_title: Optional[str] = None) -> str:
    if category == EntryCategory.ANTIDOTE:
        prompt = (
            "Опиши антидот до негативної думки або дії.\n"
            "Що допоможе тобі перетворити негатив на позитив?"
        )
    elif category == EntryCategory.REFLECTION and principle_title:
        prompt = f"Як сьогодні проявився принцип «{escape(principle_title)}»? Напиши повідомлення нижче:"
    else:
        prompt = "Опиши свою добру справу або за що ти вдячний.\nНапиши повідомлення нижче:"
    return f"Категорія: {CATEGORY_NAMES[category]}\n\n{prompt}"


def stats_text(stats: UserStats) -> str:
    mood = f"{stats.average_mood:.1f}/10" if stats.average_mood is not None else "-"
    energy = f"{stats.average_energy:.1f}/10" if stats.average_energy is not None else "-"
    return (
        "📊 <b>Твоя статистика</b>\n\n"
        f"📝 Всього записів: {stats.total_entries}\n"
        f"🔥 Серія днів: {stats.streak_days}\n"
        f"🏅 Найдовша серія: {stats.longest_streak}\n"
        f"😊 Середній настрій: {mood}\n"
        f"⚡ Середня енергія: {energy}\n\n"
        "Продовжуй у тому ж дусі! 🌟"
    )


def achievements_text(items: list[dict]) -> str:
    lines = ["🏆 <b>Досягнення</b>\n"]
    for item in items:
        mark = item["icon"] if item["unlocked"] else "🔒"
        lines.append(f"{mark} <b>{item['title']}</b> - {item['description']}")
    return "\n".join(lines)


def unlocked_text(unlocked: list[AchievementType]) -> str:
    if not unlocked:
        return ""
    names = [
        f"{ACHIEVEMENT_CATALOG[kind]['icon']} {ACHIEVEMENT_CATALOG[kind]['title']}"
        for kind in unlocked
    ]
    return "\n\n🎉 Нові досягнення:\n" + "\n".join(names)


def entry_saved_text(streak_days: int, unlocked: list[AchievementType]) -> str:
    return (
        "✅ <b>Запис додано!</b>\n\n"
        f"🔥 Серія днів: {streak_days}"
        f"{unlocked_text(unlocked)}\n\n"
        "Продовжуй творити добро! 🌟"
    )


def subscription_text(plan: Plan, subscription: Optional[Subscription]) -> str:
    text = "💎 <b>Твоя підписка</b>\n\n"
    if plan == Plan.NONE:
        return text + (
            "У тебе безкоштовний план.\n\n"
            "Переваги платних підписок:\n"
            "• 🌟 Light: Розширена статистика\n"
            "• ⭐ Plus: AI-поради (5/місяць)\n"
            "• 💎 Pro: AI-чат (необмежено)"
        )

    text += f"План: {PLAN_NAMES.get(plan, plan.value)}\n"
    if subscription is not None:
        text += f"Діє до: {subscription.expires_at:%d.%m.%Y}\n\n"
    if plan == Plan.PLUS:
        text += "Ти маєш доступ до AI-порад! 💡"
    elif plan == Plan.PRO:
        text += "Ти маєш повний доступ до всіх функцій! 🚀"
    return text


def upgrade_text() -> str:
    return (
        "💬 AI-поради доступні з планом ⭐ Plus або 💎 Pro.\n\n"
        "Оформи підписку, щоб отримувати персональні поради на основі своїх записів."
    )


def payment_approved_text(plan: Plan, expires_at: datetime) -> str:
    return (
        "✅ <b>Оплату отримано!</b>\n\n"
        f"План {PLAN_NAMES.get(plan, plan.value)} активний до {expires_at:%d.%m.%Y}. Дякуємо! 🙏"
    )
