import pytest

from reviewhub.services.content_filter import ContentFilter, PROFANITY, SEVERE, load_terms_file, sanitize


@pytest.fixture
def content_filter():
    return ContentFilter()


def test_email_is_redacted(content_filter):
    result = content_filter.sanitize("Write me at john.doe@example.com for details about the bonus.")
    assert "john.doe@example.com" not in result.clean
    assert "[email removed]" in result.clean
    assert result.pii_categories == ['email']
    assert 'pii:email' in result.reasons


@pytest.mark.parametrize('text, placeholder', [
    ("Call me on +1 415 555 0134 any time", "[phone removed]"),
    ("My card 4111 1111 1111 1111 was charged twice", "[card number removed]"),
    ("Account 123456789012 is still frozen", "[account number removed]"),
    ("Their office at 221 Baker Street was closed", "[address removed]"),
])
def test_other_pii_is_redacted(content_filter, text, placeholder):
    result = content_filter.sanitize(text)
    assert placeholder in result.clean
    assert result.severity == 0


def test_pii_alone_does_not_add_severity(content_filter):
    result = content_filter.sanitize("Reach the manager via anna@broker.example please")
    assert result.severity == 0
    assert not result.exceeds(3)


def test_sanitize_is_idempotent(content_filter):
    texts = [
        "Email bob@example.org or call (212) 555-0199, account 99887766 - shit service",
        "Plain review with nothing to hide at all.",
        "  spaced out  text with a 4111-1111-1111-1111 card  ",
    ]
    for text in texts:
        once = content_filter.sanitize(text).clean
        assert content_filter.sanitize(once).clean == once


def test_profanity_severity_adds_up(content_filter):
    result = content_filter.sanitize("shit platform, shit support")
    assert result.severity == 2 * PROFANITY
    assert result.exceeds(3)


def test_single_mild_word_stays_under_threshold(content_filter):
    result = content_filter.sanitize("The spreads are shit but withdrawals work.")
    assert result.severity == PROFANITY
    assert not result.exceeds(3)


def test_severe_term_exceeds_threshold_alone(content_filter):
    assert content_filter.sanitize("the manager is a cunt").exceeds(3)


@pytest.mark.parametrize('text', [
    "what a sh1t broker",
    "fuuuuuck this platform",
    "total a$$hole on the phone",
    "sh\u200bit execution",
    "they were fucking slow",
])
def test_obfuscated_profanity_is_detected(content_filter, text):
    result = content_filter.sanitize(text)
    assert result.severity >= PROFANITY
    assert any(f.kind == 'profanity' for f in result.flags)


def test_watchlist_terms_are_low_weight(content_filter):
    result = content_filter.sanitize("Scammers! This is a scam.")
    assert result.severity == 2
    assert 'profanity:watchlist' in result.reasons


def test_clean_text_keeps_original_wording(content_filter):
    text = "Good execution, fair spreads, honest staff."
    result = content_filter.sanitize(text)
    assert result.clean == text
    assert result.flags == ()
    assert result.severity == 0


def test_invisible_characters_are_removed_from_stored_text(content_filter):
    assert content_filter.sanitize("fine\u200b broker\u202e").clean == "fine broker"


def test_extra_terms_file(tmp_path):
    terms = tmp_path / 'terms.txt'
    terms.write_text("# local additions\n5:bucketshop\nrubbish  # mild\n", encoding='utf-8')
    assert load_terms_file(terms) == {'bucketshop': SEVERE, 'rubbish': PROFANITY}

    content_filter = ContentFilter(extra_terms_file=str(terms))
    assert content_filter.sanitize("a real bucketshop").severity == SEVERE
    assert content_filter.sanitize("rubbish app").severity == PROFANITY
    # defaults are still active
    assert content_filter.sanitize("shit").severity == PROFANITY


def test_module_level_sanitize():
    assert sanitize("mail x@y.io").clean == "mail [email removed]"
