import csv
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import regex as re

from config.languages_config import get_language_code, is_cjk_language, is_latin_language
from config.log_config import app_logger
from .translation_checker import detect_language

TOKEN_TEMPLATE = "__P{}__"
TOKEN_PATTERN = re.compile(r"__P(\d+)__")

# Protocol markers always protected on the presentation path
DEFAULT_PPTX_BLACKLIST_TERMS = ("http://", "https://", "www.", "@")

URL_PATTERN = re.compile(
    r"(?:(?:https?|ftp)://|www\.)[^\s<>\"'`]*[^\s<>\"'`.,;:!?)\]}]"
)
EMAIL_PATTERN = re.compile(r"[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}")
INLINE_CODE_PATTERN = re.compile(r"`[^`\n]+`")

_NUMBER = r"\d+(?:[.,]\d+)*"
NUMBER_WITH_UNIT_PATTERN = re.compile(
    r"[$€£¥₹₩₫]\s?" + _NUMBER
    + r"|" + _NUMBER + r"\s?(?:%|‰|°[CF]?|₫|円|元|원|(?:USD|EUR|VND|JPY|GBP|CNY|KRW|đ"
    r"|kg|km|cm|mm|mg|ml|GB|MB|KB|TB|GHz|MHz|Hz|px|pt|kW|kWh|ms|m|g|l|s|h|x)\b)"
)
BARE_NUMBER_PATTERN = re.compile(_NUMBER)

LATIN_RUN_PATTERN = re.compile(r"[A-Za-z][A-Za-z0-9&'’+-]*(?:[ \t]+[A-Za-z][A-Za-z0-9&'’+-]*)*")
CJK_RUN_PATTERN = re.compile(r"[\p{Han}\p{Hiragana}\p{Katakana}\p{Hangul}]+")


@dataclass
class BlacklistItem:
    term: str
    case_sensitive: bool = False
    enabled: bool = True


@dataclass
class MaskResult:
    masked_text: str
    protection_map: Dict[str, str] = field(default_factory=dict)

    @property
    def masked_count(self):
        return len(self.protection_map)


class _Masker:
    """Text as a list of segments; protected segments are never rescanned"""

    def __init__(self, text):
        # (content, is_protected)
        self.segments = [(text, False)]
        self.protection_map = {}

    def apply(self, pattern):
        new_segments = []
        for content, protected in self.segments:
            if protected or not content:
                new_segments.append((content, protected))
                continue
            cursor = 0
            for match in pattern.finditer(content):
                if match.start() == match.end():
                    continue
                if match.start() > cursor:
                    new_segments.append((content[cursor:match.start()], False))
                new_segments.append((self._register(match.group(0)), True))
                cursor = match.end()
            if cursor < len(content):
                new_segments.append((content[cursor:], False))
        self.segments = new_segments

    def _register(self, original):
        token = TOKEN_TEMPLATE.format(len(self.protection_map))
        self.protection_map[token] = original
        return token

    def result(self):
        return MaskResult(
            masked_text="".join(content for content, _ in self.segments),
            protection_map=self.protection_map,
        )


def _blacklist_pattern(item):
    flags = 0 if item.case_sensitive else re.IGNORECASE
    return re.compile(re.escape(item.term), flags)


def _script_pattern(text, source_lang, target_lang):
    """Pick the script run to keep untranslated for this language pair, if any"""
    src = get_language_code(source_lang) if source_lang else "auto"
    dst = get_language_code(target_lang) if target_lang else None
    if not dst or dst == "auto":
        return None
    if src == "auto":
        src = detect_language(text)
    if src == "unknown" or src == dst:
        return None

    if not is_latin_language(src) and not is_latin_language(dst):
        return LATIN_RUN_PATTERN
    if is_latin_language(src) and not is_cjk_language(dst):
        return CJK_RUN_PATTERN
    return None


def mask_text(text, source_lang="auto", target_lang=None, blacklist=None) -> MaskResult:
    """Replace non-translatable spans with __P<n>__ tokens.

    Passes run in a fixed order and each one only sees what earlier passes left:
    existing token look-alikes, URLs, emails, inline code, numbers with units or
    currency, bare numbers, blacklist terms, then a script pass chosen from the
    (source, target) pair.
    """
    masker = _Masker(text)
    if not text:
        return masker.result()

    masker.apply(TOKEN_PATTERN)
    masker.apply(URL_PATTERN)
    masker.apply(EMAIL_PATTERN)
    masker.apply(INLINE_CODE_PATTERN)
    masker.apply(NUMBER_WITH_UNIT_PATTERN)
    masker.apply(BARE_NUMBER_PATTERN)

    for item in blacklist or []:
        if item.enabled and item.term:
            masker.apply(_blacklist_pattern(item))

    script_pattern = _script_pattern(text, source_lang, target_lang)
    if script_pattern is not None:
        masker.apply(script_pattern)

    return masker.result()


def unmask_text(text, protection_map):
    """Restore tokens in one pass. Unknown tokens are left as they are."""
    if not protection_map or not text:
        return text

    def restore(match):
        return protection_map.get(match.group(0), match.group(0))

    restored = TOKEN_PATTERN.sub(restore, text)

    missing = [token for token in protection_map if token not in text]
    if missing:
        app_logger.warning(f"Translation dropped {len(missing)} protected span(s): {missing[:5]}")
    return restored


def mask_batch_texts(texts, source_lang="auto", target_lang=None, blacklist=None) -> List[MaskResult]:
    return [mask_text(text, source_lang, target_lang, blacklist) for text in texts]


def default_pptx_blacklist(extra: Optional[List[BlacklistItem]] = None) -> List[BlacklistItem]:
    items = [BlacklistItem(term) for term in DEFAULT_PPTX_BLACKLIST_TERMS]
    return items + list(extra or [])


def load_blacklist(path):
    """Read blacklist terms, one per line: ``term`` or ``term,case_sensitive``"""
    items = []
    with open(path, 'r', encoding='utf-8-sig', newline='') as f:
        for row in csv.reader(f):
            if not row or not row[0].strip() or row[0].lstrip().startswith('#'):
                continue
            term = row[0].strip()
            case_sensitive = len(row) > 1 and row[1].strip().lower() in ("1", "true", "yes", "y")
            items.append(BlacklistItem(term=term, case_sensitive=case_sensitive))
    app_logger.info(f"Loaded {len(items)} blacklist terms from {path}")
    return items
