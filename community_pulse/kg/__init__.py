"""Topic graph engine: extraction, store, physics and link synthesis."""

from .graph import (
    GraphSnapshot,
    TopicGraph,
    TopicLink,
    TopicNode,
    grow_or_create,
    link_if_absent,
)
from .keywords import VOCABULARY, extract_keywords, normalise_keyword
from .links import LinkSynthesizer
from .physics import step_all, step_node

__all__ = [
    "GraphSnapshot",
    "LinkSynthesizer",
    "TopicGraph",
    "TopicLink",
    "TopicNode",
    "VOCABULARY",
    "extract_keywords",
    "grow_or_create",
    "link_if_absent",
    "normalise_keyword",
    "step_all",
    "step_node",
]
