import re
from importlib import import_module

from config.log_config import app_logger

# Quota exhausted, unauthenticated, forbidden
CRITICAL_STATUS_CODES = frozenset({429, 401, 403})

_STATUS_NAME_CODES = {
    "RESOURCE_EXHAUSTED": 429,
    "UNAUTHENTICATED": 401,
    "PERMISSION_DENIED": 403,
}


class TranslationServiceError(Exception):
    """Raised when the translation capability fails to answer a request"""

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.status_code = status_code


class CriticalTranslationError(TranslationServiceError):
    """A failure that means the whole job cannot succeed (quota, auth, permission)"""


def extract_status_code(error):
    """Best-effort extraction of an HTTP-like status code from a backend exception"""
    for attr in ("status_code", "code", "status"):
        value = getattr(error, attr, None)
        if isinstance(value, int):
            return value
        if isinstance(value, str) and value.isdigit():
            return int(value)

    response = getattr(error, "response", None)
    if response is not None:
        value = getattr(response, "status_code", None)
        if isinstance(value, int):
            return value

    message = str(error)
    for name, code in _STATUS_NAME_CODES.items():
        if name in message:
            return code

    match = re.search(r"\b(4\d\d|5\d\d)\b", message)
    if match:
        return int(match.group(1))
    return None


class TranslationBackend:
    """Interface of the external translation capability.

    Implementations translate one string or an ordered list of strings into
    ``target_lang``. ``glossary`` is a list of ``(term, translation)`` pairs
    already narrowed to the terms present in the text. A batch call must return
    a list of the same length as ``texts``. Failures are raised as
    ``TranslationServiceError`` (or any exception carrying a status code).
    """

    def translate_text(self, text, target_lang, context="", glossary=None, source_lang=None):
        raise NotImplementedError

    def translate_batch(self, texts, target_lang, context="", glossary=None, source_lang=None):
        raise NotImplementedError


class PseudoTranslationBackend(TranslationBackend):
    """Offline backend that echoes text back, for dry runs and layout checks"""

    def __init__(self, suffix="", expansion=0.0):
        self.suffix = suffix
        self.expansion = expansion

    def _pseudo(self, text):
        padding = ""
        if self.expansion > 0:
            padding = "~" * int(round(len(text) * self.expansion))
        return f"{text}{padding}{self.suffix}"

    def translate_text(self, text, target_lang, context="", glossary=None, source_lang=None):
        return self._pseudo(text)

    def translate_batch(self, texts, target_lang, context="", glossary=None, source_lang=None):
        return [self._pseudo(text) for text in texts]


def load_backend(backend_path, **kwargs):
    """Instantiate a backend from ``pseudo`` or a ``module:attribute`` path"""
    if backend_path in (None, "", "pseudo"):
        return PseudoTranslationBackend(**kwargs)

    module_name, sep, attr_name = backend_path.partition(":")
    if not sep or not attr_name:
        raise ValueError(f"Backend must be given as 'module:attribute', got '{backend_path}'")

    module = import_module(module_name)
    target = getattr(module, attr_name)
    # A class or factory is called, a ready instance is used as-is
    if isinstance(target, type) or not hasattr(target, "translate_batch"):
        backend = target(**kwargs)
    else:
        backend = target

    if not hasattr(backend, "translate_batch") or not hasattr(backend, "translate_text"):
        raise TypeError(f"{backend_path} does not provide translate_text/translate_batch")

    app_logger.info(f"Loaded translation backend {backend_path}")
    return backend
