"""Tests for keyword slug generation."""

from __future__ import annotations

import sys

import pytest

from ppp.errors import ValidationError
from ppp.keywords import (
    MAX_DISPLAY_LENGTH,
    command_generator,
    display_length,
    fallback_keywords,
    generate_keywords,
    meaningful_words,
    sanitize_keywords,
)

LONG_NAME = "Implement password reset email flow with token expiry"


class TestSanitize:
    def test_punctuation_and_separators(self):
        assert sanitize_keywords("Hello, World -- again!") == "hello_world_again"

    def test_underscores_collapse(self):
        assert sanitize_keywords("__a__b__") == "a_b"

    def test_truncates_to_display_width(self):
        assert len(sanitize_keywords("a" * 80)) == MAX_DISPLAY_LENGTH

    def test_cjk_counts_double(self):
        slug = sanitize_keywords("用户" * 30)
        assert display_length(slug) <= MAX_DISPLAY_LENGTH
        assert len(slug) == MAX_DISPLAY_LENGTH // 2

    def test_keeps_unicode_letters(self):
        assert sanitize_keywords("Café Übersicht") == "café_übersicht"


class TestFallback:
    def test_drops_filler_words(self):
        assert fallback_keywords("Create user authentication system") == "user_authentication_system"

    def test_drops_short_words(self):
        assert fallback_keywords("Fix the login bug") == "login_bug"

    def test_long_names_keep_four_words(self):
        assert fallback_keywords(LONG_NAME) == "password_reset_email_flow"

    def test_meaningful_words(self):
        assert meaningful_words(LONG_NAME) == ["password", "reset", "email", "flow", "token", "expiry"]


class TestGenerate:
    def test_empty_name_rejected(self):
        with pytest.raises(ValidationError):
            generate_keywords("   ")

    def test_short_name_skips_generator(self):
        calls = []

        def gen(name):
            calls.append(name)
            return "unused"

        assert generate_keywords("User login", gen) == "user_login"
        assert calls == []

    def test_long_name_uses_generator(self):
        assert generate_keywords(LONG_NAME, lambda name: "Password Reset Flow\n") == "password_reset_flow"

    def test_generator_failure_falls_back(self):
        def boom(name):
            raise RuntimeError("offline")

        assert generate_keywords(LONG_NAME, boom) == fallback_keywords(LONG_NAME)

    def test_generator_empty_falls_back(self):
        assert generate_keywords(LONG_NAME, lambda name: "  ") == fallback_keywords(LONG_NAME)

    def test_all_filler_name_still_slugs(self):
        assert generate_keywords("Fix it") == "fix_it"

    def test_punctuation_only_name(self):
        assert generate_keywords("!!!") == "untitled"


class TestCommandGenerator:
    def test_stdout_becomes_keywords(self):
        gen = command_generator([sys.executable, "-c", "print('token refresh')"])
        assert generate_keywords(LONG_NAME, gen) == "token_refresh"

    def test_prompt_passed_as_last_argument(self):
        gen = command_generator([sys.executable, "-c", "import sys; print('ok' if 'password' in sys.argv[-1] else 'no')"])
        assert gen(LONG_NAME).strip() == "ok"

    def test_nonzero_exit_falls_back(self):
        gen = command_generator([sys.executable, "-c", "import sys; sys.exit(3)"])
        assert generate_keywords(LONG_NAME, gen) == fallback_keywords(LONG_NAME)

    def test_missing_binary_falls_back(self):
        gen = command_generator(["ppp-no-such-binary-xyz"])
        assert generate_keywords(LONG_NAME, gen) == fallback_keywords(LONG_NAME)
