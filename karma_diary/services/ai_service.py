"""
AI Service
==========

OpenAI-backed insights, advice and chat for the journal.

Every model call is checked against the global monthly budget first and
recorded in the usage ledger afterwards. Daily insights never fail: when
OpenAI is unavailable a fixed per-principle text is stored instead.
"""

import hashlib
import logging
import re
from datetime import date, datetime, timezone
from typing import Optional
import uuid

from openai import AsyncOpenAI, OpenAIError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from karma_diary.config import settings
from karma_diary.core.errors import (
    AppException,
    ErrorCodes,
    PaymentRequiredError,
    ServiceUnavailableError,
)
from karma_diary.core.plans import UNLIMITED, Plan, get_feature_limits
from karma_diary.models.ai import AIInsight
from karma_diary.models.user import User
from karma_diary.services.budget_monitor import BudgetMonitor
from karma_diary.services.cache import CacheKeys, CacheManager
from karma_diary.services.journal_service import JournalService
from karma_diary.services.principle_service import PrincipleService, validate_principle_number

logger = logging.getLogger(__name__)

MAX_CHAT_MESSAGE_LENGTH = 1000

FALLBACK_INSIGHTS = {
    1: "Сьогодні спробуй помітити моменти, коли твоя поведінка може вплинути на інших людей.",
    2: "Зверни увагу на те, як чесність у дрібницях впливає на твоє самопочуття.",
    3: "Що б сталося, якби ти сьогодні взяв лише те, що дійсно потрібно?",
    4: "Сьогодні спробуй знайти красу в простих, природних моментах дня.",
    5: "Зверни увагу на те, як контроль над своїми бажаннями впливає на твій внутрішній спокій.",
    6: "Що б сталося, якби ти сьогодні робив кожну справу з повною увагою?",
    7: "Сьогодні спробуй побачити навчальний момент у кожній складній ситуації.",
    8: "Зверни увагу на те, як твоє ставлення до роботи впливає на якість результату.",
    9: "Що б сталося, якби ти сьогодні виражав вдячність за кожну дрібницю?",
    10: "Сьогодні спробуй служити іншим, не очікуючи нічого натомість.",
}
DEFAULT_INSIGHT = "Сьогодні спробуй застосувати цей принцип у повсякденних справах."
EMPTY_JOURNAL_ADVICE = (
    "Почніть вести щоденник, і я зможу дати вам персональні поради "
    "на основі ваших записів!"
)

MENTOR_PROMPT = (
    "Ви - експерт з духовного розвитку та кармічних практик. "
    "Надавайте мудрі, підтримуючі поради українською мовою."
)
CHAT_PROMPT = (
    "Ви - наставник кармічного щоденника. Відповідайте коротко, доброзичливо "
    "і лише на теми особистого розвитку, десяти принципів та ведення щоденника."
)

_HTML_TAG_RE = re.compile(r"<[^>]*>")
_ROLE_PREFIX_RE = re.compile(r"^\s*(system|assistant|user|developer)\s*:\s*", re.IGNORECASE | re.MULTILINE)

_client: Optional[AsyncOpenAI] = None


def get_openai_client() -> Optional[AsyncOpenAI]:
    """Shared client, created on first use. None when no API key is set."""
    global _client

    if _client is None and settings.OPENAI_API_KEY:
        _client = AsyncOpenAI(api_key=settings.OPENAI_API_KEY, timeout=30, max_retries=2)
    return _client


def get_fallback_insight(principle_number: int) -> str:
    return FALLBACK_INSIGHTS.get(principle_number, DEFAULT_INSIGHT)


def sanitize_message(text: str) -> str:
    """Strip HTML tags and chat role prefixes, trim to the chat limit."""
    cleaned = _HTML_TAG_RE.sub("", text)
    cleaned = _ROLE_PREFIX_RE.sub("", cleaned)
    return cleaned.strip()[:MAX_CHAT_MESSAGE_LENGTH]


def question_hash(question: str, language: str = "uk") -> str:
    return hashlib.sha256(f"{question}-{language}".encode("utf-8")).hexdigest()


class AIService:
    """Service for AI features."""

    def __init__(self, db: AsyncSession, client: Optional[AsyncOpenAI] = None):
        self.db = db
        self.budget = BudgetMonitor(db)
        self._client = client

    @property
    def client(self) -> Optional[AsyncOpenAI]:
        return self._client or get_openai_client()

    # =========================================================================
    # Quota and model calls
    # =========================================================================

    async def ensure_quota(self, user_id: uuid.UUID, plan: Plan) -> dict:
        """
        Enforce the plan's monthly request quota.

        Raises:
            PaymentRequiredError: AI_001 when the quota is used up
        """
        limit = get_feature_limits(plan)["ai_requests_per_month"]
        usage = await self.budget.get_user_monthly_usage(user_id)
        if limit != UNLIMITED and usage["count"] >= limit:
            raise PaymentRequiredError(
                code=ErrorCodes.AI_LIMIT_REACHED,
                message="Monthly AI request limit reached",
                limit=limit,
                used=usage["count"],
                current_plan=plan.value,
            )
        return usage

    async def _complete(
        self,
        user_id: Optional[uuid.UUID],
        request_type: str,
        system_prompt: str,
        prompt: str,
        max_tokens: int = 300,
        temperature: float = 0.7,
    ) -> str:
        client = self.client
        if client is None:
            raise ServiceUnavailableError(
                code=ErrorCodes.AI_UNAVAILABLE,
                message="AI is not configured",
            )

        model = settings.OPENAI_MODEL
        if not await self.budget.can_make_request(max_tokens, model):
            raise ServiceUnavailableError(
                code=ErrorCodes.AI_BUDGET_EXHAUSTED,
                message="Monthly AI budget is exhausted",
            )

        try:
            response = await client.chat.completions.create(
                model=model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": prompt},
                ],
                max_tokens=max_tokens,
                temperature=temperature,
            )
        except OpenAIError as e:
            logger.error("OpenAI %s request failed: %s", request_type, e)
            raise ServiceUnavailableError(
                code=ErrorCodes.AI_UNAVAILABLE,
                message="AI is temporarily unavailable",
            )

        tokens = response.usage.total_tokens if response.usage else 0
        await self.budget.record_usage(user_id, request_type, tokens, model)
        logger.info("AI %s: model=%s, tokens=%d", request_type, model, tokens)
        return (response.choices[0].message.content or "").strip()

    # =========================================================================
    # Daily insight
    # =========================================================================

    async def _stored_insight(
        self,
        user_id: uuid.UUID,
        principle_number: int,
        day: date,
    ) -> Optional[AIInsight]:
        stmt = select(AIInsight).where(
            AIInsight.user_id == user_id,
            AIInsight.principle_number == principle_number,
            AIInsight.insight_date == day,
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_daily_insight(
        self,
        user: User,
        principle_number: int,
        regenerate: bool = False,
    ) -> dict:
        """
        Today's insight for a principle, generated once per day.
        """
        validate_principle_number(principle_number)
        today = datetime.now(timezone.utc).date()

        stored = await self._stored_insight(user.user_id, principle_number, today)
        if stored is not None and not regenerate:
            return {
                "principle_number": principle_number,
                "insight": stored.insight_text,
                "date": today.isoformat(),
                "generated": False,
            }

        text = get_fallback_insight(principle_number)
        if self.client is not None:
            title = await PrincipleService(self.db).get_title(principle_number)
            try:
                text = await self._complete(
                    user.user_id,
                    "daily_insight",
                    MENTOR_PROMPT,
                    f'Дайте коротку (1-2 речення) підказку на сьогодні для практики принципу "{title}".',
                    max_tokens=150,
                    temperature=0.8,
                )
            except AppException as e:
                logger.warning("Daily insight falls back to fixed text: %s", e.detail)

        if stored is None:
            stored = AIInsight(
                user_id=user.user_id,
                principle_number=principle_number,
                insight_text=text,
                insight_date=today,
            )
            self.db.add(stored)
        else:
            stored.insight_text = text
        await self.db.flush()

        return {
            "principle_number": principle_number,
            "insight": text,
            "date": today.isoformat(),
            "generated": True,
        }

    # =========================================================================
    # Plan-gated features
    # =========================================================================

    async def personalized_insight(self, user: User, plan: Plan, principle_number: int) -> dict:
        """Insight for a principle grounded in the user's recent entries."""
        principle = await PrincipleService(self.db).get_by_number_or_404(principle_number)
        await self.ensure_quota(user.user_id, plan)

        entries = await JournalService(self.db).get_recent_contents(user.user_id, limit=5)
        related = [e.content for e in entries if e.principle_number == principle_number]
        context = ""
        if related:
            context = "Попередні записи користувача по цьому принципу:\n" + "\n".join(related) + "\n\n"

        prompt = (
            f'{context}Дайте персональну підказку для практики принципу "{principle.title}" - '
            f"{principle.description}. Відповідь: 1-2 речення, конкретна, мотивуюча, українською."
        )
        text = await self._complete(user.user_id, "insight", MENTOR_PROMPT, prompt, max_tokens=150, temperature=0.8)
        return {"principle_number": principle_number, "insight": text}

    async def analyze_entries(self, user: User, plan: Plan) -> dict:
        """Advice based on the last ten entries."""
        entries = await JournalService(self.db).get_recent_contents(user.user_id, limit=10)
        if not entries:
            return {"advice": EMPTY_JOURNAL_ADVICE, "entries_analyzed": 0}

        await self.ensure_quota(user.user_id, plan)
        entries_text = "\n\n".join(
            f"Запис {index}: {entry.content}" for index, entry in enumerate(entries, start=1)
        )
        prompt = (
            "Проаналізуйте записи користувача з кармічного щоденника і дайте персональну пораду.\n\n"
            f"Записи користувача:\n{entries_text}\n\n"
            f"Дайте конструктивну, підтримуючу пораду (2-3 речення) для {user.display_name}."
        )
        text = await self._complete(user.user_id, "advice", MENTOR_PROMPT, prompt)
        return {"advice": text, "entries_analyzed": len(entries)}

    async def chat(self, user: User, plan: Plan, message: str, language: str = "uk") -> dict:
        """
        Answer a free-form question.

        Identical question and language pairs are answered from Redis.
        """
        question = sanitize_message(message)
        if not question:
            return {"answer": "", "cached": False}

        key = CacheKeys.ai_response(question_hash(question, language))
        cached = await CacheManager.get(key)
        if cached is not None:
            return {"answer": cached, "cached": True}

        await self.ensure_quota(user.user_id, plan)
        answer = await self._complete(user.user_id, "chat", CHAT_PROMPT, question, max_tokens=400)
        await CacheManager.set(key, answer, ttl=CacheManager.TTL_WEEK)
        return {"answer": answer, "cached": False}

    async def get_usage(self, user_id: uuid.UUID, plan: Plan) -> dict:
        usage = await self.budget.get_user_monthly_usage(user_id)
        limit = get_feature_limits(plan)["ai_requests_per_month"]
        usage.update({
            "plan": plan.value,
            "limit": limit,
            "remaining": None if limit == UNLIMITED else max(0, limit - usage["count"]),
        })
        return usage
