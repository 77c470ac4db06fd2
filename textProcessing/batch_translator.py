import time
from dataclasses import dataclass, field
from typing import Callable, FrozenSet, List, Optional

from config.log_config import app_logger
from llmWrapper.llm_wrapper import (
    CRITICAL_STATUS_CODES, CriticalTranslationError, extract_status_code
)
from .text_separator import find_terms_with_hashtable, split_into_chunks
from .translation_checker import parse_translation_array

DEFAULT_BATCH_SIZE = 40
LARGE_JOB_BATCH_SIZE = 20
LARGE_JOB_THRESHOLD = 20


class BatchLengthMismatchError(ValueError):
    """The backend answered a batch with the wrong number of items"""

    def __init__(self, expected, received):
        super().__init__(f"Expected {expected} translations, received {received}")
        self.expected = expected
        self.received = received


@dataclass
class RetryPolicy:
    max_attempts: int = 3
    base_delay: float = 2.0
    critical_status_codes: FrozenSet[int] = field(default_factory=lambda: CRITICAL_STATUS_CODES)
    sleep: Callable[[float], None] = time.sleep

    def delay_for(self, attempt):
        """Wait after the given (1-based) failed attempt: 4s, 8s, 16s... with the default base_delay"""
        return (2 ** attempt) * self.base_delay

    def critical_status(self, error) -> Optional[int]:
        if isinstance(error, CriticalTranslationError):
            return error.status_code
        if isinstance(error, ValueError):
            # Malformed or wrong-length responses are ordinary failures, whatever digits their message holds
            return None
        status = extract_status_code(error)
        if status in self.critical_status_codes:
            return status
        return None


def choose_batch_size(part_count, batch_size=DEFAULT_BATCH_SIZE,
                      large_batch_size=LARGE_JOB_BATCH_SIZE, threshold=LARGE_JOB_THRESHOLD):
    """Smaller chunks once a job spans many sheets/parts"""
    return large_batch_size if part_count > threshold else batch_size


class BatchTranslator:
    """Translate an ordered list of (masked) texts in sequential chunks.

    Each chunk is sent as one batch request and accepted only if the answer has
    the same length. Ordinary failures are retried with exponential backoff and
    then fall back to one request per text, where a failure keeps the original
    text. Critical failures (quota, auth, permission) raise
    CriticalTranslationError straight away.
    """

    def __init__(self, backend, target_lang, source_lang=None, context="", glossary=None,
                 batch_size=DEFAULT_BATCH_SIZE, retry_policy=None, inter_chunk_delay=0.0,
                 progress_callback=None):
        self.backend = backend
        self.target_lang = target_lang
        self.source_lang = source_lang
        self.context = context or ""
        self.glossary = glossary or []
        self.batch_size = batch_size
        self.retry_policy = retry_policy or RetryPolicy()
        self.inter_chunk_delay = inter_chunk_delay
        self.progress_callback = progress_callback

        self.batch_calls = 0
        self.individual_calls = 0
        self.fallback_chunks = 0

    def _raise_if_critical(self, error):
        status = self.retry_policy.critical_status(error)
        if status is None:
            return
        if isinstance(error, CriticalTranslationError):
            raise error
        raise CriticalTranslationError(str(error), status_code=status) from error

    def translate_all(self, texts, desc="Translating") -> List[str]:
        if not texts:
            return []

        chunks = split_into_chunks(list(texts), self.batch_size)
        app_logger.info(f"{desc}: {len(texts)} texts in {len(chunks)} chunk(s) of up to {self.batch_size}")

        results = []
        for index, chunk in enumerate(chunks):
            if index > 0 and self.inter_chunk_delay > 0:
                self.retry_policy.sleep(self.inter_chunk_delay)

            results.extend(self.translate_chunk(chunk))

            if self.progress_callback:
                self.progress_callback((index + 1) / len(chunks), desc=f"{desc} ({index + 1}/{len(chunks)})")
        return results

    def translate_chunk(self, chunk) -> List[str]:
        glossary = find_terms_with_hashtable("\n".join(chunk), self.glossary)
        policy = self.retry_policy

        for attempt in range(1, policy.max_attempts + 1):
            try:
                self.batch_calls += 1
                response = self.backend.translate_batch(
                    list(chunk), self.target_lang,
                    context=self.context, glossary=glossary, source_lang=self.source_lang
                )
                translations = parse_translation_array(response)
                if len(translations) != len(chunk):
                    raise BatchLengthMismatchError(len(chunk), len(translations))
                return translations
            except Exception as e:
                self._raise_if_critical(e)
                app_logger.warning(f"Batch attempt {attempt}/{policy.max_attempts} failed: {e}")
                if attempt < policy.max_attempts:
                    policy.sleep(policy.delay_for(attempt))

        app_logger.warning(f"Falling back to individual translation for {len(chunk)} texts")
        self.fallback_chunks += 1
        return [self.translate_single(text) for text in chunk]

    def translate_single(self, text) -> str:
        """One request for one text; a non-critical failure keeps the original"""
        if not text or not text.strip():
            return text
        try:
            self.individual_calls += 1
            translated = self.backend.translate_text(
                text, self.target_lang,
                context=self.context,
                glossary=find_terms_with_hashtable(text, self.glossary),
                source_lang=self.source_lang,
            )
        except Exception as e:
            self._raise_if_critical(e)
            app_logger.warning(f"Individual translation failed, keeping original text: {e}")
            return text

        if translated is None or not str(translated).strip():
            return text
        return str(translated)
