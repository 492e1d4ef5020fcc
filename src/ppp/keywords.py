"""Keyword slugs for folder names.

Short names are slugged locally. Names with four or more meaningful words
may be shortened by an external generator command; any failure there
falls back to the local heuristic, so keyword generation never blocks a
create or rename.
"""

from __future__ import annotations

import logging
import re
import subprocess
from typing import Callable, Sequence

from ppp.errors import ValidationError

log = logging.getLogger(__name__)

KeywordGenerator = Callable[[str], str]

# ---------------------------------------------------------------------------
# Vocabulary constants
# ---------------------------------------------------------------------------

COMMON_WORDS = frozenset({
    "a", "an", "and", "are", "as", "at", "be", "by", "for", "from", "has", "he",
    "in", "is", "it", "its", "of", "on", "that", "the", "to", "was", "will", "with",
    "create", "add", "implement", "make", "build", "develop", "setup", "set", "up",
    "new", "fix", "update", "modify", "change",
})

CJK_COMMON_WORDS = frozenset({
    "的", "了", "是", "在", "有", "和", "与", "或", "但", "而", "从", "到", "为", "以", "对", "将",
    "创建", "添加", "实现", "制作", "构建", "开发", "设置", "新的", "修复", "更新", "修改", "改变",
})

MAX_DISPLAY_LENGTH = 50
MAX_WORDS = 4
SHORT_NAME_WORDS = 3
EMPTY_SLUG = "untitled"

_CJK_RE = re.compile(r"[\u4e00-\u9fff]")
_NON_WORD_RE = re.compile(r"[^\w\s]|_")

PROMPT_TEMPLATE = """Shorten this long issue name to 2-4 key technical keywords for file/folder naming.

Requirements:
- Extract the most important technical/functional concepts
- Use lowercase words only
- Separate with spaces
- Keep total length under 40 characters
- Avoid filler words like "create", "add", "implement" unless essential

Long issue name: "{name}"

Shortened keywords:"""


# ---------------------------------------------------------------------------
# Text helpers
# ---------------------------------------------------------------------------


def is_cjk(text: str) -> bool:
    return bool(_CJK_RE.search(text))


def display_length(text: str) -> int:
    """Terminal width of text; CJK ideographs count as two columns."""
    return sum(2 if _CJK_RE.match(ch) else 1 for ch in text)


def sanitize_keywords(keywords: str) -> str:
    """Lowercase, drop punctuation, join words with single underscores.

    Truncated to MAX_DISPLAY_LENGTH columns, never ending on an underscore.
    """
    slug = keywords.lower()
    slug = re.sub(r"[^\w\s-]|_", " ", slug)
    slug = re.sub(r"[\s-]+", "_", slug)
    slug = re.sub(r"_+", "_", slug).strip("_")

    out: list[str] = []
    width = 0
    for ch in slug:
        w = 2 if _CJK_RE.match(ch) else 1
        if width + w > MAX_DISPLAY_LENGTH:
            break
        out.append(ch)
        width += w
    return "".join(out).rstrip("_")


def meaningful_words(name: str) -> list[str]:
    """Words of a name that carry meaning: not filler, and > 2 chars unless CJK."""
    cjk = is_cjk(name)
    text = name if cjk else name.lower()
    words: list[str] = []
    for word in _NON_WORD_RE.sub(" ", text).split():
        if cjk and _CJK_RE.search(word):
            if word not in CJK_COMMON_WORDS:
                words.append(word)
        elif len(word) > 2 and word.lower() not in COMMON_WORDS:
            words.append(word.lower())
    return words


# ---------------------------------------------------------------------------
# Generators
# ---------------------------------------------------------------------------


def fallback_keywords(name: str) -> str:
    """Deterministic local slug: meaningful words, at most four for long names."""
    words = meaningful_words(name)
    if len(words) > SHORT_NAME_WORDS:
        words = words[:MAX_WORDS]
    return sanitize_keywords(" ".join(words))


def command_generator(command: Sequence[str], timeout: int = 30) -> KeywordGenerator:
    """Build a generator that runs an external command.

    The prompt is appended as the final argument; stdout is the answer.
    """
    argv = list(command)

    def _generate(name: str) -> str:
        cmd = argv + [PROMPT_TEMPLATE.format(name=name)]
        log.debug("keyword generator: %s", argv)
        result = subprocess.run(cmd, capture_output=True, text=True, timeout=timeout)
        if result.returncode != 0:
            raise RuntimeError(f"exit {result.returncode}: {result.stderr.strip()[:200]}")
        return result.stdout

    return _generate


def generate_keywords(name: str, generator: KeywordGenerator | None = None) -> str:
    """Turn an issue name into a folder-safe keyword slug.

    Never fails for a non-empty name: generator errors fall back to the
    local heuristic, and an empty slug becomes ``untitled``.
    """
    if not name or not name.strip():
        raise ValidationError("Issue name cannot be empty.")

    slug = ""
    if generator is not None and len(meaningful_words(name)) > SHORT_NAME_WORDS:
        try:
            slug = sanitize_keywords(generator(name).strip())
        except Exception as exc:
            log.warning("keyword generator failed, using fallback: %s", exc)
            slug = ""
        if not slug:
            log.debug("keyword generator returned nothing for %r", name)

    if not slug:
        slug = fallback_keywords(name)
    return slug or sanitize_keywords(name) or EMPTY_SLUG
