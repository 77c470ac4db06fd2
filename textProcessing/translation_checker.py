import json

import regex as re

from config.log_config import app_logger

# Letters that only occur in Vietnamese among the supported Latin-script languages
VIETNAMESE_PATTERN = re.compile(r'[ăâđơưĂÂĐƠƯẠ-ỹ]')
KANA_PATTERN = re.compile(r'[\p{Hiragana}\p{Katakana}]')
HANGUL_PATTERN = re.compile(r'[\p{Hangul}]')
HAN_PATTERN = re.compile(r'[\p{Han}]')
LATIN_PATTERN = re.compile(r'[A-Za-z]')
FORMAT_TAG_PATTERN = re.compile(r'</?[biusBIUS]>')


def detect_language(text):
    """
    Guess the language of a text from its script.
    Returns one of vi, ja, ko, zh, en or "unknown".
    """
    if not text or not text.strip():
        return "unknown"

    text = FORMAT_TAG_PATTERN.sub('', text)

    if VIETNAMESE_PATTERN.search(text):
        return "vi"
    if KANA_PATTERN.search(text):
        return "ja"
    if HANGUL_PATTERN.search(text):
        return "ko"
    if HAN_PATTERN.search(text):
        return "zh"
    if LATIN_PATTERN.search(text):
        return "en"
    return "unknown"


def is_already_translated(text, dst_lang):
    """True when the text is already written in the target language"""
    detected = detect_language(text)
    return detected != "unknown" and detected == dst_lang


def clean_json(text):
    """Clean JSON text"""
    if text is None:
        app_logger.warning("clean_json received None")
        return ""
    if not isinstance(text, str):
        app_logger.warning(f"Expected string, got {type(text)}")
        text = str(text)

    text = text.strip().lstrip("\ufeff")  # Remove BOM
    text = re.sub(r'^```(?:json)?\s*\n|\n```\s*$', '', text)  # Remove markdown

    # Fix trailing commas
    text = re.sub(r',\s*}', '}', text)
    text = re.sub(r',\s*\]', ']', text)
    return text


def parse_translation_array(response):
    """
    Normalize a batch response into a list of strings.
    Accepts a list, a JSON array string (optionally fenced) or an object with a
    "translations" array. Raises ValueError for anything else.
    """
    if isinstance(response, str):
        try:
            response = json.loads(clean_json(response))
        except json.JSONDecodeError as e:
            raise ValueError(f"Batch response is not valid JSON: {e}") from e

    if isinstance(response, dict):
        response = response.get("translations")

    if not isinstance(response, (list, tuple)):
        raise ValueError(f"Batch response is not an array: {type(response).__name__}")

    return ["" if item is None else str(item) for item in response]
