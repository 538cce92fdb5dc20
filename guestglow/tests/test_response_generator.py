"""
Tests for the template response generator
"""
import pytest

from guestglow.services.response_generator import (
    ResponseTone,
    detect_issues,
    generate_template_response,
    tone_for_rating,
)


class TestDetectIssues:

    def test_wifi_variants(self):
        assert detect_issues("Great room, wifi was slow") == ["WiFi connectivity"]
        assert detect_issues("The Wi-Fi kept dropping") == ["WiFi connectivity"]

    def test_issues_in_table_order(self):
        issues = detect_issues("Noisy? No, loud. And the breakfast was late, parking full.")
        assert issues == ["breakfast service", "noise levels", "parking facilities"]

    def test_ac_only_matches_whole_word(self):
        assert detect_issues("The AC was broken") == ["air conditioning"]
        assert detect_issues("Great place, will come back") == []

    def test_empty_text(self):
        assert detect_issues("") == []
        assert detect_issues(None) == []


class TestTone:

    @pytest.mark.parametrize("rating,tone", [
        (1, ResponseTone.NEGATIVE),
        (2, ResponseTone.NEGATIVE),
        (3, ResponseTone.NEUTRAL),
        (4, ResponseTone.POSITIVE),
        (5, ResponseTone.POSITIVE),
    ])
    def test_tone_for_rating(self, rating, tone):
        assert tone_for_rating(rating) == tone


class TestGenerateTemplateResponse:

    def test_positive_review_mentions_detected_issue(self):
        text, tone = generate_template_response("Great room, wifi was slow", 4)

        assert tone == ResponseTone.POSITIVE
        assert text.startswith("Dear Valued Guest,")
        assert "WiFi connectivity and overall service" in text
        assert "Eusbett Hotel" in text

    def test_negative_review_apologizes_for_issues(self):
        text, tone = generate_template_response(
            "Dirty bathroom and rude staff", 1, guest_name="Kofi", hotel_name="Lakeside Inn"
        )

        assert tone == ResponseTone.NEGATIVE
        assert text.startswith("Dear Kofi,")
        assert (
            "I sincerely apologize for the specific issues you raised regarding "
            "room cleanliness, staff service"
        ) in text
        assert text.endswith("The Lakeside Inn Guest Relations Team")

    def test_neutral_review_without_issues(self):
        text, tone = generate_template_response("It was okay", 3)

        assert tone == ResponseTone.NEUTRAL
        assert "We acknowledge the concerns you experienced during your stay" in text
