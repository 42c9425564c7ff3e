"""Unit tests for content fingerprints."""

from news_sync.utils.fingerprint import (
    content_fingerprint,
    normalize_text,
    publisher_key,
    strip_markup,
)


def test_strip_markup_removes_tags_entities_and_truncation():
    text = "<p>Markets &amp; rates rally</p> as investors cheer… [+1234 chars]"

    assert strip_markup(text) == "Markets & rates rally as investors cheer"


def test_normalize_text_ignores_case_and_punctuation():
    assert normalize_text("  Fed RAISES rates!  ") == normalize_text("fed raises rates")


def test_publisher_key_is_provider_independent():
    assert publisher_key("BBC News") == "bbcnews"
    assert publisher_key("bbc-news") == "bbcnews"


def test_fingerprint_is_deterministic():
    first = content_fingerprint("Title", "Body text", "bbcnews")
    second = content_fingerprint("Title", "Body text", "bbcnews")

    assert first == second
    assert len(first) == 64


def test_fingerprint_ignores_formatting_differences():
    plain = content_fingerprint("Apple unveils new chip", "The chip is fast.", "The Verge")
    formatted = content_fingerprint(
        "<b>Apple Unveils New Chip</b>",
        "The  chip is <i>fast</i>. [+200 chars]",
        "the verge",
    )

    assert plain == formatted


def test_fingerprint_distinguishes_publishers():
    assert content_fingerprint("Title", "Body", "Reuters") != content_fingerprint(
        "Title", "Body", "Associated Press"
    )


def test_fingerprint_only_uses_body_prefix():
    prefix = "word " * 200
    first = content_fingerprint("Title", prefix + "ending one", "pub", body_chars=100)
    second = content_fingerprint("Title", prefix + "ending two", "pub", body_chars=100)

    assert first == second
