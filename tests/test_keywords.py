from pathlib import Path
import sys

sys.path.append(str(Path(__file__).resolve().parents[1]))

from community_pulse.kg.keywords import VOCABULARY, extract_keywords, normalise_keyword  # noqa: E402


def test_keywords_follow_vocabulary_order_not_message_order() -> None:
    found = extract_keywords("Latency spikes after the GPU upgrade hit the API")
    assert found == ("API", "Latency", "GPU")


def test_keywords_are_case_insensitive_and_unique() -> None:
    found = extract_keywords("api API Api and the budget, BUDGET again")
    assert found == ("Budget", "API")
    assert len(found) == len(set(found))


def test_keywords_match_substrings() -> None:
    assert extract_keywords("the models are retraining") == ("Model",)


def test_no_keywords_for_empty_or_unrelated_text() -> None:
    assert extract_keywords("") == ()
    assert extract_keywords(None) == ()
    assert extract_keywords("lunch at noon?") == ()


def test_every_vocabulary_term_is_found_once() -> None:
    text = " ".join(reversed(VOCABULARY)).upper()
    assert extract_keywords(text) == VOCABULARY


def test_normalise_keyword_rejects_blank_values() -> None:
    assert normalise_keyword("  GPU ") == "GPU"
    assert normalise_keyword("   ") is None
    assert normalise_keyword("") is None
    assert normalise_keyword(None) is None
