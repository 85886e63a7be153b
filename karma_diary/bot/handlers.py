"""
Bot Handlers
============

Commands, menu callbacks and the journal entry flow.

Handlers open their own session through ``session_scope``; everything a
handler writes commits together when the scope exits.
"""

from datetime import datetime
import logging
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from aiogram import F, Router
from aiogram.filters import Command, CommandObject, CommandStart
from aiogram.fsm.context import FSMContext
from aiogram.fsm.state import State, StatesGroup
from aiogram.types import CallbackQuery, Message
from aiogram.types import User as TelegramUser
from sqlalchemy.ext.asyncio import AsyncSession

from karma_diary.bot import keyboards, texts
from karma_diary.bot.callbacks import SKIP, WRITE, parse_callback_data
from karma_diary.core.errors import AppException
from karma_diary.core.plans import Plan, plan_satisfies
from karma_diary.db.session import session_scope
from karma_diary.models.journal import EntryCategory, EntrySource
from karma_diary.models.user import User
from karma_diary.services.achievement_service import AchievementService
from karma_diary.services.ai_service import AIService
from karma_diary.services.auth_service import AuthService, authorize_login_session
from karma_diary.services.journal_service import JournalService
from karma_diary.services.principle_service import PrincipleService
from karma_diary.services.stats_service import StatsService
from karma_diary.services.subscription_service import SubscriptionService

logger = logging.getLogger(__name__)
router = Router(name="karma_diary")

AUTH_PREFIX = "auth_"
SKIPPED_ENTRY_CONTENT = "Пропущено"


class EntryStates(StatesGroup):
    waiting_for_entry = State()


def _local_hour(user: User) -> int:
    try:
        tz = ZoneInfo(user.timezone)
    except (ZoneInfoNotFoundError, ValueError):
        tz = ZoneInfo("Europe/Kiev")
    return datetime.now(tz).hour


async def _ensure_user(db: AsyncSession, tg_user: TelegramUser, chat_id: int) -> tuple[User, bool]:
    return await AuthService(db).get_or_create_telegram_user(
        telegram_id=tg_user.id,
        first_name=tg_user.first_name,
        last_name=tg_user.last_name,
        username=tg_user.username,
        chat_id=chat_id,
    )


async def _main_menu_text(db: AsyncSession, user: User) -> str:
    stats = await StatsService(db).get_or_create_stats(user.user_id)
    title = await PrincipleService(db).get_title(user.current_principle)
    return texts.main_menu_text(
        user.display_name,
        _local_hour(user),
        stats.streak_days,
        user.current_principle,
        title,
    )


# =============================================================================
# Commands
# =============================================================================

@router.message(CommandStart())
async def cmd_start(message: Message, command: CommandObject, state: FSMContext) -> None:
    """Greeting, account creation and web-login confirmation."""
    await state.clear()
    args = command.args or ""

    async with session_scope() as db:
        user, created = await _ensure_user(db, message.from_user, message.chat.id)

        if args.startswith(AUTH_PREFIX):
            authorized = await authorize_login_session(args[len(AUTH_PREFIX):], user.user_id)
            if authorized:
                await message.answer("✅ Вхід підтверджено! Поверніться до браузера.")
            else:
                await message.answer("⌛ Посилання для входу застаріло. Спробуйте ще раз на сайті.")

        menu = await _main_menu_text(db, user)
        hour = _local_hour(user)
        name = user.display_name

    if created:
        await message.answer(texts.welcome_text(name, hour))
    await message.answer(menu, reply_markup=keyboards.main_menu_keyboard())


@router.message(Command("help"))
async def cmd_help(message: Message) -> None:
    await message.answer(texts.HELP_TEXT)


@router.message(Command("stats"))
async def cmd_stats(message: Message) -> None:
    async with session_scope() as db:
        user, _ = await _ensure_user(db, message.from_user, message.chat.id)
        stats = await StatsService(db).get_or_create_stats(user.user_id)
        text = texts.stats_text(stats)
    await message.answer(text, reply_markup=keyboards.back_keyboard())


# =============================================================================
# Menu callbacks
# =============================================================================

@router.callback_query(F.data == "main_menu")
async def on_main_menu(callback: CallbackQuery, state: FSMContext) -> None:
    await state.clear()
    async with session_scope() as db:
        user, _ = await _ensure_user(db, callback.from_user, callback.message.chat.id)
        text = await _main_menu_text(db, user)
    await callback.message.edit_text(text, reply_markup=keyboards.main_menu_keyboard())
    await callback.answer()


@router.callback_query(F.data == "add_entry")
async def on_add_entry(callback: CallbackQuery) -> None:
    await callback.message.edit_text(
        "Обери категорію для свого запису:",
        reply_markup=keyboards.entry_category_keyboard(),
    )
    await callback.answer()


@router.callback_query(F.data.startswith("entry_"))
async def on_entry_category(callback: CallbackQuery, state: FSMContext) -> None:
    try:
        category = EntryCategory(callback.data[len("entry_"):])
    except ValueError:
        await callback.answer()
        return

    await state.set_state(EntryStates.waiting_for_entry)
    await state.update_data(category=category.value, principle=None)
    await callback.message.edit_text(
        texts.entry_prompt(category),
        reply_markup=keyboards.cancel_keyboard(),
    )
    await callback.answer()


@router.callback_query(F.data == "stats")
async def on_stats(callback: CallbackQuery) -> None:
    async with session_scope() as db:
        user, _ = await _ensure_user(db, callback.from_user, callback.message.chat.id)
        stats = await StatsService(db).get_or_create_stats(user.user_id)
        text = texts.stats_text(stats)
    await callback.message.edit_text(text, reply_markup=keyboards.back_keyboard())
    await callback.answer()


@router.callback_query(F.data == "achievements")
async def on_achievements(callback: CallbackQuery) -> None:
    async with session_scope() as db:
        user, _ = await _ensure_user(db, callback.from_user, callback.message.chat.id)
        items = await AchievementService(db).list_with_progress(user.user_id)
    await callback.message.edit_text(texts.achievements_text(items), reply_markup=keyboards.back_keyboard())
    await callback.answer()


@router.callback_query(F.data == "ai_advice")
async def on_ai_advice(callback: CallbackQuery) -> None:
    await callback.answer("⏳")
    async with session_scope() as db:
        user, _ = await _ensure_user(db, callback.from_user, callback.message.chat.id)
        plan = await SubscriptionService(db).get_current_plan(user.user_id)
        if not plan_satisfies(plan, Plan.PLUS):
            text = texts.upgrade_text()
            markup = keyboards.subscription_keyboard()
        else:
            try:
                result = await AIService(db).analyze_entries(user, plan)
                text = f"💡 <b>Порада</b>\n\n{result['advice']}"
                markup = keyboards.advice_keyboard()
            except AppException as e:
                text = f"⚠️ {e.detail['message']}"
                markup = keyboards.back_keyboard()
    await callback.message.edit_text(text, reply_markup=markup)


@router.callback_query(F.data == "subscription")
async def on_subscription(callback: CallbackQuery) -> None:
    async with session_scope() as db:
        user, _ = await _ensure_user(db, callback.from_user, callback.message.chat.id)
        service = SubscriptionService(db)
        current = await service.get_current_subscription(user.user_id)
        plan = current.plan if current else Plan.NONE
        text = texts.subscription_text(plan, current)
    await callback.message.edit_text(text, reply_markup=keyboards.subscription_keyboard())
    await callback.answer()


# =============================================================================
# Replies to reminders
# =============================================================================

@router.callback_query(F.data.startswith(f"{WRITE}_"))
async def on_write_reply(callback: CallbackQuery, state: FSMContext) -> None:
    _, principle, slot = parse_callback_data(callback.data)
    category = EntryCategory.ANTIDOTE if slot and slot.endswith("_antidote") else EntryCategory.REFLECTION

    async with session_scope() as db:
        title = await PrincipleService(db).get_title(principle) if principle else None

    await state.set_state(EntryStates.waiting_for_entry)
    await state.update_data(category=category.value, principle=principle)
    await callback.message.answer(
        texts.entry_prompt(category, title),
        reply_markup=keyboards.cancel_keyboard(),
    )
    await callback.answer()


@router.callback_query(F.data.startswith(f"{SKIP}_"))
async def on_skip_reply(callback: CallbackQuery) -> None:
    _, principle, _ = parse_callback_data(callback.data)
    async with session_scope() as db:
        user, _ = await _ensure_user(db, callback.from_user, callback.message.chat.id)
        await JournalService(db).record_entry(
            user,
            content=SKIPPED_ENTRY_CONTENT,
            principle_number=principle,
            source=EntrySource.TELEGRAM,
            is_skipped=True,
        )
    await callback.message.edit_reply_markup(reply_markup=None)
    await callback.answer("Пропущено. До наступного разу! 🙏")


# =============================================================================
# Entry text
# =============================================================================

@router.message(EntryStates.waiting_for_entry, F.text & ~F.text.startswith("/"))
async def on_entry_text(message: Message, state: FSMContext) -> None:
    """Save the text as a Telegram-sourced journal entry."""
    data = await state.get_data()
    category = EntryCategory(data.get("category", EntryCategory.REFLECTION.value))
    content = message.text.strip()
    if not content:
        await message.answer(texts.entry_prompt(category), reply_markup=keyboards.cancel_keyboard())
        return

    try:
        async with session_scope() as db:
            user, _ = await _ensure_user(db, message.from_user, message.chat.id)
            outcome = await JournalService(db).record_entry(
                user,
                content=content,
                principle_number=data.get("principle"),
                category=category,
                source=EntrySource.TELEGRAM,
            )
            streak = outcome.stats.streak_days
            unlocked = outcome.unlocked
    except AppException as e:
        await message.answer(f"⚠️ {e.detail['message']}")
        return
    except Exception:
        logger.exception("Failed to save Telegram entry for %s", message.from_user.id)
        await message.answer("❌ Не вдалося додати запис. Спробуйте пізніше.")
        await state.clear()
        return

    await state.clear()
    await message.answer(
        texts.entry_saved_text(streak, unlocked),
        reply_markup=keyboards.after_entry_keyboard(),
    )
