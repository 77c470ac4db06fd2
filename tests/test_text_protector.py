"""Tests for placeholder masking and restoration."""
import pytest

from _ooxml_helpers import EchoBackend, no_wait_policy

from textProcessing.batch_translator import BatchTranslator
from textProcessing.text_protector import (
    BlacklistItem, default_pptx_blacklist, load_blacklist, mask_text, unmask_text
)
from textProcessing.translation_checker import detect_language


ROUND_TRIP_TEXTS = [
    "",
    "Plain sentence without anything special.",
    "Contact john@x.com or visit https://x.com",
    "Version 2.5 costs $12.50 and weighs 5kg (about 11 lb).",
    "Run `pip install lxml` then open www.example.org/docs.",
    "Growth was 45% in 2023, 1,250 units, 3.5 GHz",
    "Already tokenised __P0__ and __P12__ stay literal",
    "ftp://files.example.com/a.zip,mail:a.b@c.io;https://x.y/z?q=1&r=2.",
    "Mixed 東京 office and iPhone 15 launch 発売",
    "Số liệu 2024: doanh thu tăng 12%",
]


class TestRoundTrip:
    @pytest.mark.parametrize("text", ROUND_TRIP_TEXTS)
    @pytest.mark.parametrize("pair", [("auto", "fr"), ("en", "vi"), ("ja", "ko"), ("auto", "ja")])
    def test_mask_then_unmask_is_identity(self, text, pair):
        source, target = pair
        result = mask_text(text, source, target, default_pptx_blacklist([BlacklistItem("iPhone")]))
        assert unmask_text(result.masked_text, result.protection_map) == text

    def test_protected_spans_leave_masked_text(self):
        result = mask_text("Contact john@x.com or visit https://x.com", "en", "fr")

        assert "john@x.com" not in result.masked_text
        assert "https://x.com" not in result.masked_text
        assert list(result.protection_map.values()) == ["https://x.com", "john@x.com"]
        assert result.masked_text == "Contact __P1__ or visit __P0__"


class TestPassOrder:
    def test_url_is_one_token(self):
        result = mask_text("See https://x.com/page?id=42 now", "en", "fr")
        assert list(result.protection_map.values()) == ["https://x.com/page?id=42"]

    def test_trailing_punctuation_not_part_of_url(self):
        result = mask_text("Visit https://x.com.", "en", "fr")
        assert result.masked_text == "Visit __P0__."

    def test_number_with_unit_before_bare_number(self):
        result = mask_text("Add 5 kg then 3 more", "en", "fr")
        assert list(result.protection_map.values()) == ["5 kg", "3"]

    def test_inline_code(self):
        result = mask_text("Call `render()` twice", "en", "fr")
        assert list(result.protection_map.values()) == ["`render()`"]


class TestBlacklist:
    def test_case_sensitive_term(self):
        result = mask_text("API api Api", "en", "fr", [BlacklistItem("API", case_sensitive=True)])
        assert result.masked_count == 1
        assert result.masked_text == "__P0__ api Api"

    def test_case_insensitive_term(self):
        result = mask_text("API api Api", "en", "fr", [BlacklistItem("API")])
        assert result.masked_count == 3

    def test_disabled_term_is_ignored(self):
        result = mask_text("API", "en", "fr", [BlacklistItem("API", enabled=False)])
        assert result.masked_count == 0

    def test_load_blacklist_file(self, tmp_path):
        path = tmp_path / "blacklist.csv"
        path.write_text("# protected terms\nACME Corp,true\nwidget\n\n", encoding="utf-8")

        items = load_blacklist(str(path))

        assert items == [BlacklistItem("ACME Corp", True), BlacklistItem("widget", False)]


class TestScriptPass:
    def test_latin_brand_kept_between_non_latin_languages(self):
        result = mask_text("新しいiPhoneの発売", "ja", "ko")
        assert "iPhone" in result.protection_map.values()

    def test_cjk_kept_from_latin_to_non_cjk(self):
        result = mask_text("Meet at the 東京 office", "en", "fr")
        assert "東京" in result.protection_map.values()

    def test_cjk_translated_when_target_is_cjk(self):
        result = mask_text("Meet at the 東京 office", "en", "ja")
        assert "東京" not in result.protection_map.values()

    def test_auto_source_uses_detection(self):
        assert detect_language("新しいiPhoneの発売") == "ja"
        result = mask_text("新しいiPhoneの発売", "auto", "zh")
        assert "iPhone" in result.protection_map.values()


class TestUnmask:
    def test_unknown_tokens_stay_literal(self):
        assert unmask_text("__P9__ and __P0__", {"__P0__": "x@y.com"}) == "__P9__ and x@y.com"

    def test_dropped_token_is_not_invented(self):
        assert unmask_text("Bonjour", {"__P0__": "https://x.com"}) == "Bonjour"


def test_protected_spans_survive_translation_round_trip():
    """Emails and URLs come back byte-identical through a suffixing backend."""
    text = "Contact john@x.com or visit https://x.com"
    backend = EchoBackend(suffix=" [fr]")
    policy, _ = no_wait_policy()
    translator = BatchTranslator(backend, "fr", retry_policy=policy)

    masked = mask_text(text, "en", "fr")
    translated = translator.translate_all([masked.masked_text])[0]
    restored = unmask_text(translated, masked.protection_map)

    assert restored == text + " [fr]"
    assert "john@x.com" in restored and "https://x.com" in restored
