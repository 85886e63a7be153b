"""
Security Tests
==============

JWT round trip and Telegram Login Widget verification.
"""

import hashlib
import hmac
import uuid

from karma_diary.core.security import (
    TELEGRAM_AUTH_MAX_AGE_SECONDS,
    create_tokens_for_user,
    decode_token,
    verify_telegram_login,
)

BOT_TOKEN = "123456:TEST-bot-token"
NOW = 1_760_000_000


def _sign(payload: dict, bot_token: str = BOT_TOKEN) -> dict:
    check_string = "\n".join(f"{k}={payload[k]}" for k in sorted(payload))
    secret = hashlib.sha256(bot_token.encode()).digest()
    signed = dict(payload)
    signed["hash"] = hmac.new(secret, check_string.encode(), hashlib.sha256).hexdigest()
    return signed


def _login_payload(**overrides) -> dict:
    payload = {
        "id": 987654321,
        "first_name": "Олена",
        "username": "olena",
        "auth_date": NOW - 60,
    }
    payload.update(overrides)
    return _sign(payload)


class TestTelegramLogin:

    def test_valid_payload(self):
        assert verify_telegram_login(_login_payload(), BOT_TOKEN, now=NOW) is True

    def test_modified_field_fails(self):
        payload = _login_payload()
        payload["id"] = 1
        assert verify_telegram_login(payload, BOT_TOKEN, now=NOW) is False

    def test_other_bot_token_fails(self):
        assert verify_telegram_login(_login_payload(), "999:other", now=NOW) is False

    def test_stale_auth_date_fails(self):
        payload = _login_payload(auth_date=NOW - TELEGRAM_AUTH_MAX_AGE_SECONDS - 1)
        assert verify_telegram_login(payload, BOT_TOKEN, now=NOW) is False

    def test_missing_hash_or_token_fails(self):
        payload = _login_payload()
        assert verify_telegram_login(payload, "", now=NOW) is False
        del payload["hash"]
        assert verify_telegram_login(payload, BOT_TOKEN, now=NOW) is False


class TestTokens:

    def test_access_and_refresh_tokens_decode(self):
        user_id = uuid.uuid4()
        tokens = create_tokens_for_user(user_id, plan="plus")

        access = decode_token(tokens["access_token"])
        refresh = decode_token(tokens["refresh_token"])

        assert access["sub"] == str(user_id)
        assert access["plan"] == "plus"
        assert access["type"] == "access"
        assert refresh["type"] == "refresh"
        assert tokens["token_type"] == "bearer"

    def test_garbage_token_is_none(self):
        assert decode_token("not-a-jwt") is None
