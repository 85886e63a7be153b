"""
Database Models
===============

SQLAlchemy ORM models for all database entities.

All models are imported here to ensure they are registered
with SQLAlchemy's metadata for migrations and relationships.
"""

from karma_diary.models.user import User
from karma_diary.models.principle import Principle, PrincipleHistory
from karma_diary.models.journal import (
    Achievement,
    AchievementType,
    EntryCategory,
    EntrySource,
    JournalEntry,
    UserStats,
)
from karma_diary.models.subscription import Subscription, SubscriptionStatus
from karma_diary.models.ai import AIInsight, AIRequest
from karma_diary.models.notification import PushSubscription, ReminderSchedule

__all__ = [
    # User
    "User",
    # Principles
    "Principle",
    "PrincipleHistory",
    # Journal
    "JournalEntry",
    "UserStats",
    "Achievement",
    "AchievementType",
    "EntryCategory",
    "EntrySource",
    # Subscription
    "Subscription",
    "SubscriptionStatus",
    # AI
    "AIRequest",
    "AIInsight",
    # Notifications
    "ReminderSchedule",
    "PushSubscription",
]
