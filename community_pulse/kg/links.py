"""Link synthesis for co-mentions, external keywords and periodic enrichment."""
from __future__ import annotations

from typing import Iterable, List, Optional, Sequence, Tuple

from community_pulse.core.randomness import RandomSource, default_random
from community_pulse.kg.graph import TopicLink, TopicNode, link_if_absent, topic_key

DEFAULT_ENRICHMENT_PROBABILITY = 0.3
MIN_EXTERNAL_LINKS = 1
MAX_EXTERNAL_LINKS = 3
MIN_ENRICHMENT_NODES = 3


class LinkSynthesizer:
    """Produces new links from snapshots; never touches the store itself."""

    def __init__(
        self,
        rng: Optional[RandomSource] = None,
        *,
        enrichment_probability: float = DEFAULT_ENRICHMENT_PROBABILITY,
    ) -> None:
        if not 0.0 <= enrichment_probability <= 1.0:
            raise ValueError("enrichment_probability must be within [0, 1]")
        self._rng = rng or default_random()
        self.enrichment_probability = enrichment_probability

    def co_mention(self, keywords: Sequence[str], existing_links: Iterable[TopicLink]) -> Tuple[TopicLink, ...]:
        """Link consecutive keywords of one message: a path, not a clique."""

        if len(keywords) < 2:
            return ()
        known: List[TopicLink] = list(existing_links)
        created: List[TopicLink] = []
        for source, target in zip(keywords, keywords[1:]):
            delta = link_if_absent(source, target, known)
            known.extend(delta)
            created.extend(delta)
        return tuple(created)

    def external_keyword(
        self,
        keyword: str,
        nodes: Sequence[TopicNode],
        existing_links: Iterable[TopicLink],
    ) -> Tuple[TopicLink, ...]:
        """Connect ``keyword`` to between one and three random other nodes."""

        key = topic_key(keyword)
        others = [node for node in nodes if topic_key(node.id) != key]
        if not others:
            return ()
        count = min(self._rng.randint(MIN_EXTERNAL_LINKS, MAX_EXTERNAL_LINKS), len(others))
        shuffled = list(others)
        self._rng.shuffle(shuffled)

        known: List[TopicLink] = list(existing_links)
        created: List[TopicLink] = []
        for target in shuffled[:count]:
            delta = link_if_absent(keyword, target.id, known)
            known.extend(delta)
            created.extend(delta)
        return tuple(created)

    def enrichment(
        self,
        nodes: Sequence[TopicNode],
        existing_links: Iterable[TopicLink],
        probability: Optional[float] = None,
    ) -> Tuple[TopicLink, ...]:
        """Bernoulli sampling over every unordered pair of nodes.

        Graphs with fewer than three nodes are left alone.
        """

        chance = self.enrichment_probability if probability is None else probability
        if len(nodes) < MIN_ENRICHMENT_NODES:
            return ()
        known: List[TopicLink] = list(existing_links)
        created: List[TopicLink] = []
        for index, source in enumerate(nodes):
            for target in nodes[index + 1 :]:
                delta = link_if_absent(source.id, target.id, known)
                if delta and self._rng.random() < chance:
                    known.extend(delta)
                    created.extend(delta)
        return tuple(created)


__all__ = [
    "DEFAULT_ENRICHMENT_PROBABILITY",
    "LinkSynthesizer",
    "MAX_EXTERNAL_LINKS",
    "MIN_ENRICHMENT_NODES",
]
