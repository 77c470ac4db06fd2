# Display name -> language code
LANGUAGE_MAP = {
    "Auto": "auto",
    "Vietnamese": "vi",
    "English": "en",
    "Japanese": "ja",
    "Korean": "ko",
    "Chinese": "zh",
    "Spanish": "es",
    "French": "fr",
    "German": "de",
}

LATIN_SCRIPT_LANGS = {"en", "vi", "es", "fr", "de"}
CJK_LANGS = {"ja", "ko", "zh"}


def get_available_languages():
    """Return display names of every selectable language except auto-detect"""
    return [name for name, code in LANGUAGE_MAP.items() if code != "auto"]


def get_language_code(language):
    """Accept a display name or a code and return the code"""
    if not language:
        return "auto"
    if language in LANGUAGE_MAP:
        return LANGUAGE_MAP[language]

    lowered = language.strip().lower()
    for name, code in LANGUAGE_MAP.items():
        if lowered == code or lowered == name.lower():
            return code
    return lowered


def get_language_display_name(lang_code):
    for display_name, code in LANGUAGE_MAP.items():
        if code == lang_code:
            return display_name
    return lang_code


def is_latin_language(lang_code):
    return lang_code in LATIN_SCRIPT_LANGS


def is_cjk_language(lang_code):
    return lang_code in CJK_LANGS
