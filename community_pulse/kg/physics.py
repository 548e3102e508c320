"""Per-tick layout physics for topic nodes."""
from __future__ import annotations

from dataclasses import replace
import math
from typing import Sequence, Tuple

from community_pulse.core.randomness import RandomSource
from community_pulse.kg.graph import CENTER, TopicNode

JITTER = 0.4
CENTER_PULL = 0.005
REPULSION_RADIUS = 80.0
REPULSION_STRENGTH = 2.0
MIN_DISTANCE = 1e-6


def _push_direction(node: TopicNode, other: TopicNode, distance: float) -> Tuple[float, float]:
    if distance >= MIN_DISTANCE:
        return (node.x - other.x) / distance, (node.y - other.y) / distance
    # coincident nodes split along x, ordered by id
    return (1.0, 0.0) if node.id > other.id else (-1.0, 0.0)


def step_node(node: TopicNode, all_nodes: Sequence[TopicNode], rng: RandomSource) -> TopicNode:
    """Advance one node by a single forward-Euler step.

    The displacement is the sum of random jitter, a proportional pull toward
    the layout center and a fixed-magnitude push away from every node closer
    than the repulsion radius. There is no velocity term.
    """

    dx = rng.uniform(-JITTER, JITTER)
    dy = rng.uniform(-JITTER, JITTER)

    dx += (CENTER[0] - node.x) * CENTER_PULL
    dy += (CENTER[1] - node.y) * CENTER_PULL

    for other in all_nodes:
        if other.id == node.id:
            continue
        distance = math.hypot(node.x - other.x, node.y - other.y)
        if distance < REPULSION_RADIUS:
            ux, uy = _push_direction(node, other, distance)
            dx += ux * REPULSION_STRENGTH
            dy += uy * REPULSION_STRENGTH

    x = node.x + dx
    y = node.y + dy
    if not (math.isfinite(x) and math.isfinite(y)):
        return node
    return replace(node, x=x, y=y)


def step_all(nodes: Sequence[TopicNode], rng: RandomSource) -> Tuple[TopicNode, ...]:
    """Move every node against the same snapshot so update order has no effect."""

    snapshot = tuple(nodes)
    return tuple(step_node(node, snapshot, rng) for node in snapshot)


__all__ = [
    "CENTER_PULL",
    "JITTER",
    "MIN_DISTANCE",
    "REPULSION_RADIUS",
    "REPULSION_STRENGTH",
    "step_all",
    "step_node",
]
