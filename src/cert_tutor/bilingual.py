"""Merge two language variants of a question set under one content order.

Both language lists are derived from a single ``order`` of content ids, so a
question keeps its position when the display language changes. Languages
missing a variant fall back to the other language's question.
"""
import asyncio
import logging
import uuid
from dataclasses import replace

from cert_tutor.normalizer import normalize_questions

logger = logging.getLogger(__name__)


class BilingualQuestionSet:
    def __init__(self, order: list, slots: dict, anchor_language: str, alt_language: str):
        self.order = order
        self.slots = slots
        self.anchor_language = anchor_language
        self.alt_language = alt_language
        self._lists = {
            anchor_language: self._resolve(anchor_language, alt_language),
            alt_language: self._resolve(alt_language, anchor_language),
        }
        self._index = {content_id: i for i, content_id in enumerate(self.order)}

    def _resolve(self, language: str, fallback: str) -> list:
        resolved = []
        for content_id in self.order:
            slot = self.slots.get(content_id, {})
            question = slot.get(language) or slot.get(fallback)
            if question is not None:
                resolved.append(question)
        return resolved

    @property
    def languages(self) -> tuple:
        return (self.anchor_language, self.alt_language)

    def questions_for(self, language: str) -> list:
        if language not in self._lists:
            raise KeyError(f"Language not loaded: {language}")
        return list(self._lists[language])

    def index_of(self, content_id: str) -> int | None:
        return self._index.get(content_id)

    def variant(self, content_id: str, language: str):
        return self.slots.get(content_id, {}).get(language)

    def __len__(self) -> int:
        return len(self.order)


def build_bilingual_set(anchor_list, alt_list, anchor_language: str, alt_language: str) -> BilingualQuestionSet:
    slots = {}
    order = []
    for q in anchor_list:
        if q.content_id not in slots:
            order.append(q.content_id)
            slots[q.content_id] = {}
        slots[q.content_id][anchor_language] = q
    for q in alt_list:
        if q.content_id not in slots:
            order.append(q.content_id)
            slots[q.content_id] = {}
        slots[q.content_id][alt_language] = q
    return BilingualQuestionSet(order, slots, anchor_language, alt_language)


class BilingualQuestionCache:
    """Loads and caches bilingual sets keyed by every filter field but language.

    ``fetch`` is an async callable taking a ``QuestionFilter`` and returning raw
    question records for that filter's language. A set built while one
    language's fetch failed is served but not cached.
    """

    def __init__(self, fetch, anchor_language: str = "en", alt_language: str = "pt-BR"):
        self._fetch = fetch
        self.anchor_language = anchor_language
        self.alt_language = alt_language
        self._cache = {}

    def get(self, question_filter):
        return self._cache.get(question_filter.cache_key())

    def invalidate(self, question_filter=None) -> None:
        if question_filter is None:
            self._cache.clear()
        else:
            self._cache.pop(question_filter.cache_key(), None)

    async def _fetch_language(self, question_filter, language: str):
        return await self._fetch(question_filter.with_language(language))

    async def load(self, question_filter) -> BilingualQuestionSet:
        key = question_filter.cache_key()
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        fetch_filter = question_filter
        if fetch_filter.shuffle and not fetch_filter.seed:
            # Both languages must draw the same random pick.
            fetch_filter = replace(fetch_filter, seed=uuid.uuid4().hex)
        anchor_raw, alt_raw = await asyncio.gather(
            self._fetch_language(fetch_filter, self.anchor_language),
            self._fetch_language(fetch_filter, self.alt_language),
            return_exceptions=True,
        )
        anchor_list = self._degrade(anchor_raw, self.anchor_language, question_filter)
        alt_list = self._degrade(alt_raw, self.alt_language, question_filter)

        question_set = build_bilingual_set(anchor_list, alt_list, self.anchor_language, self.alt_language)
        if isinstance(anchor_raw, BaseException) or isinstance(alt_raw, BaseException):
            logger.info("Not caching the degraded set for %s", question_filter.certification_id)
        else:
            self._cache[key] = question_set
        logger.info(
            "Loaded %d questions for %s (%s=%d, %s=%d)",
            len(question_set), question_filter.certification_id,
            self.anchor_language, len(anchor_list), self.alt_language, len(alt_list),
        )
        return question_set

    def _degrade(self, result, language: str, question_filter) -> list:
        if isinstance(result, BaseException):
            logger.warning(
                "Fetching %s questions for %s failed, continuing without them",
                language, question_filter.certification_id, exc_info=result,
            )
            return []
        return normalize_questions(result, language=language)
