from pathlib import Path
import sys

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from community_pulse.kg.graph import TopicLink, TopicNode  # noqa: E402
from community_pulse.kg.links import LinkSynthesizer  # noqa: E402
from support import ScriptedRandom  # noqa: E402


class CountingRandom(ScriptedRandom):
    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.draws = 0

    def random(self) -> float:
        self.draws += 1
        return super().random()


def _topics(*names: str):
    return [TopicNode(name) for name in names]


def test_co_mention_builds_a_path() -> None:
    synthesizer = LinkSynthesizer(ScriptedRandom())
    links = synthesizer.co_mention(["API", "Latency", "GPU"], ())

    assert links == (TopicLink("API", "Latency"), TopicLink("Latency", "GPU"))


def test_co_mention_skips_known_links_and_single_keywords() -> None:
    synthesizer = LinkSynthesizer(ScriptedRandom())
    assert synthesizer.co_mention(["API"], ()) == ()
    assert synthesizer.co_mention(["API", "Latency"], [TopicLink("Latency", "API")]) == ()


def test_external_keyword_links_up_to_three_other_nodes() -> None:
    synthesizer = LinkSynthesizer(ScriptedRandom((0.99,), permutation=[3, 1, 0, 2]))
    nodes = _topics("Optimization", "Budget", "GPU", "Timeline", "API")
    links = synthesizer.external_keyword("GPU", nodes, ())

    assert links == (
        TopicLink("GPU", "API"),
        TopicLink("GPU", "Budget"),
        TopicLink("GPU", "Optimization"),
    )


def test_external_keyword_links_at_least_one_node() -> None:
    synthesizer = LinkSynthesizer(ScriptedRandom((0.0,)))
    nodes = _topics("Optimization", "Budget", "GPU")

    assert synthesizer.external_keyword("GPU", nodes, ()) == (TopicLink("GPU", "Optimization"),)


def test_external_keyword_count_is_capped_by_available_nodes() -> None:
    synthesizer = LinkSynthesizer(ScriptedRandom((0.99,)))
    nodes = _topics("Optimization", "gpu")

    assert synthesizer.external_keyword("GPU", nodes, ()) == (TopicLink("GPU", "Optimization"),)
    assert synthesizer.external_keyword("GPU", _topics("GPU"), ()) == ()


def test_external_keyword_does_not_duplicate_existing_links() -> None:
    synthesizer = LinkSynthesizer(ScriptedRandom((0.99,)))
    nodes = _topics("Optimization", "Budget", "GPU")
    existing = [TopicLink("Optimization", "GPU")]

    assert synthesizer.external_keyword("GPU", nodes, existing) == (TopicLink("GPU", "Budget"),)


def test_enrichment_covers_every_pair_at_full_probability() -> None:
    synthesizer = LinkSynthesizer(ScriptedRandom((0.5,)))
    nodes = _topics("Optimization", "API", "GPU", "Budget", "Latency")
    links = synthesizer.enrichment(nodes, (), probability=1.0)

    assert len(links) == 10
    assert len({link.key for link in links}) == 10
    assert all(link.source != link.target for link in links)


def test_enrichment_needs_more_than_two_nodes() -> None:
    synthesizer = LinkSynthesizer(ScriptedRandom((0.0,)))
    assert synthesizer.enrichment(_topics("API", "GPU"), (), probability=1.0) == ()


def test_enrichment_uses_configured_probability() -> None:
    nodes = _topics("Optimization", "API", "GPU")
    assert LinkSynthesizer(ScriptedRandom((0.5,))).enrichment(nodes, ()) == ()
    assert len(LinkSynthesizer(ScriptedRandom((0.29,))).enrichment(nodes, ())) == 3


def test_enrichment_only_samples_missing_pairs() -> None:
    rng = CountingRandom((0.0,))
    synthesizer = LinkSynthesizer(rng)
    nodes = _topics("Optimization", "API", "GPU")
    existing = [TopicLink("API", "Optimization"), TopicLink("GPU", "API")]

    links = synthesizer.enrichment(nodes, existing, probability=1.0)

    assert links == (TopicLink("Optimization", "GPU"),)
    assert rng.draws == 1


def test_probability_must_be_valid() -> None:
    with pytest.raises(ValueError):
        LinkSynthesizer(enrichment_probability=1.5)
