from deskhound.config import DEFAULT_CATEGORY_RULES
from deskhound.ingestion.classifier import (
    EXACT_WORD_BONUS,
    best_match,
    classify,
    classify_message,
    prioritize,
    score_keyword,
)
from deskhound.ingestion.types import CategoryRule, MessageCategory, MessagePriority


def _rule(category: str, *keywords: str) -> CategoryRule:
    return CategoryRule(category=category, display_name=category.title(), keywords=keywords)


class TestScoreKeyword:
    def test_substring_scores_its_length(self) -> None:
        text = "i forgot my password"
        assert score_keyword("pass", text, text.split()) == 4

    def test_whole_token_gets_bonus(self) -> None:
        text = "i forgot my password"
        assert score_keyword("password", text, text.split()) == 8 + EXACT_WORD_BONUS

    def test_no_match_scores_zero(self) -> None:
        text = "printer jammed"
        assert score_keyword("vpn", text, text.split()) == 0

    def test_keyword_is_compared_lowercased(self) -> None:
        text = "my vpn is down"
        assert score_keyword("VPN", text, text.split()) == 3 + EXACT_WORD_BONUS


class TestClassify:
    def test_keyword_rule_beats_rule_without_keywords(self) -> None:
        rules = [_rule("general"), _rule("vpn", "vpn")]

        assert classify("my vpn is down", rules) == "vpn"

    def test_same_input_gives_same_category(self) -> None:
        rules = list(DEFAULT_CATEGORY_RULES)
        text = "Can someone grant me access to the finance drive?"

        assert classify(text, rules) == classify(text, rules)

    def test_exact_word_beats_longer_substring(self) -> None:
        rules = [_rule("partial", "pass"), _rule("exact", "password")]

        assert classify("I forgot my password", rules) == "exact"

    def test_exact_short_word_beats_long_partial(self) -> None:
        rules = [_rule("long", "installation"), _rule("short", "vpn")]

        # "installations" contains "installation" only as a substring
        assert classify("vpn installations", rules) == "short"

    def test_tie_keeps_first_rule(self) -> None:
        rules = [_rule("first", "mouse"), _rule("second", "mouse")]

        assert classify("my mouse died", rules) == "first"

    def test_no_match_defaults_to_general_question(self) -> None:
        assert classify("hello there", DEFAULT_CATEGORY_RULES) == MessageCategory.GENERAL_QUESTION

    def test_empty_rule_set_defaults(self) -> None:
        assert classify("my vpn is down", []) == MessageCategory.GENERAL_QUESTION

    def test_best_match_reports_keyword_and_score(self) -> None:
        match = best_match("vpn down", [_rule("vpn", "vpn")])

        assert match is not None
        assert match.keyword == "vpn"
        assert match.score == 3 + EXACT_WORD_BONUS

    def test_custom_category_tag_is_kept(self) -> None:
        rules = [_rule("payroll", "payslip")]

        assert classify("where is my payslip", rules) == "payroll"


class TestPrioritize:
    def test_urgent_overrides_any_category(self) -> None:
        for category in (
            MessageCategory.HARDWARE_ISSUE,
            MessageCategory.ACCESS_REQUEST,
            MessageCategory.GENERAL_QUESTION,
            "custom",
        ):
            assert prioritize("This is URGENT please", category) == MessagePriority.URGENT

    def test_other_urgency_markers(self) -> None:
        assert prioritize("emergency in the server room", "other") == MessagePriority.URGENT
        assert prioritize("need it asap", "other") == MessagePriority.URGENT

    def test_high_categories(self) -> None:
        assert prioritize("broken", MessageCategory.HARDWARE_ISSUE) == MessagePriority.HIGH
        assert prioritize("tunnel", MessageCategory.VPN_SUPPORT) == MessagePriority.HIGH

    def test_medium_categories(self) -> None:
        assert prioritize("please", MessageCategory.ACCESS_REQUEST) == MessagePriority.MEDIUM
        assert prioritize("please", MessageCategory.SOFTWARE_INSTALL) == MessagePriority.MEDIUM

    def test_everything_else_is_low(self) -> None:
        assert prioritize("question", MessageCategory.PASSWORD_RESET) == MessagePriority.LOW
        assert prioritize("question", MessageCategory.GENERAL_QUESTION) == MessagePriority.LOW


class TestClassifyMessage:
    def test_hardware_report_marked_urgent(self) -> None:
        result = classify_message("My laptop screen is cracked, urgent!", DEFAULT_CATEGORY_RULES)

        assert result.category == MessageCategory.HARDWARE_ISSUE
        assert result.priority == MessagePriority.URGENT

    def test_unmatched_text(self) -> None:
        result = classify_message("good morning", DEFAULT_CATEGORY_RULES)

        assert result.category == MessageCategory.GENERAL_QUESTION
        assert result.priority == MessagePriority.LOW
        assert result.keyword is None
        assert result.score == 0
