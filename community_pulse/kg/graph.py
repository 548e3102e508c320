"""Topic graph store with copy-on-write snapshots and serialized commits."""
from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field, replace
import logging
from types import MappingProxyType
from typing import (
    Callable,
    Deque,
    Dict,
    FrozenSet,
    Iterable,
    List,
    Mapping,
    Optional,
    Sequence,
    Tuple,
)

from community_pulse.core.randomness import RandomSource, default_random

logger = logging.getLogger(__name__)

BASE_SIZE = 30.0
GROWTH = 15.0
CENTER: Tuple[float, float] = (200.0, 200.0)
SPAWN_SPREAD = 50.0
PRIMARY_TOPIC = "Optimization"
PRIMARY_SIZE = 40.0


def topic_key(node_id: str) -> str:
    return node_id.casefold()


@dataclass(frozen=True)
class TopicNode:
    id: str
    size: float = BASE_SIZE
    x: float = CENTER[0]
    y: float = CENTER[1]

    def to_dict(self) -> Dict[str, object]:
        return {"id": self.id, "size": self.size, "x": self.x, "y": self.y}


@dataclass(frozen=True)
class TopicLink:
    source: str
    target: str

    @property
    def key(self) -> FrozenSet[str]:
        """Orientation-free identity of the link."""

        return frozenset((topic_key(self.source), topic_key(self.target)))

    def to_dict(self) -> Dict[str, str]:
        return {"source": self.source, "target": self.target}


@dataclass(frozen=True)
class GraphSnapshot:
    """Immutable view of the graph at one committed revision."""

    nodes: Mapping[str, TopicNode] = field(default_factory=lambda: MappingProxyType({}))
    links: Tuple[TopicLink, ...] = ()
    revision: int = 0

    def get(self, node_id: str) -> Optional[TopicNode]:
        return self.nodes.get(topic_key(node_id))

    def node_list(self) -> Tuple[TopicNode, ...]:
        return tuple(self.nodes.values())

    def has_link(self, source: str, target: str) -> bool:
        key = frozenset((topic_key(source), topic_key(target)))
        return any(link.key == key for link in self.links)

    def rendered_links(self) -> Tuple[TopicLink, ...]:
        """Links whose endpoints both resolve to nodes.

        Dangling links are kept in the store but skipped when rendering.
        """

        return tuple(
            link for link in self.links if self.get(link.source) is not None and self.get(link.target) is not None
        )

    def with_nodes(self, nodes: Mapping[str, TopicNode]) -> "GraphSnapshot":
        return replace(self, nodes=MappingProxyType(dict(nodes)))

    def with_links(self, links: Iterable[TopicLink]) -> "GraphSnapshot":
        return replace(self, links=self.links + tuple(links))

    def to_dict(self) -> Dict[str, object]:
        return {
            "revision": self.revision,
            "nodes": [node.to_dict() for node in self.nodes.values()],
            "links": [link.to_dict() for link in self.rendered_links()],
        }


def grow_or_create(
    nodes: Mapping[str, TopicNode],
    node_id: str,
    rng: RandomSource,
) -> Tuple[Dict[str, TopicNode], TopicNode]:
    """Grow the node matching ``node_id`` or spawn a new one near the center.

    Matching is case-insensitive; an existing node keeps its original casing.
    Returns the new mapping together with the resolved node. ``nodes`` is
    left untouched.
    """

    if not node_id or not node_id.strip():
        raise ValueError("node id must be a non-empty string")
    key = topic_key(node_id)
    updated = dict(nodes)
    existing = updated.get(key)
    if existing is not None:
        node = replace(existing, size=existing.size + GROWTH)
    else:
        node = TopicNode(
            id=node_id,
            size=BASE_SIZE,
            x=CENTER[0] + rng.random() * SPAWN_SPREAD,
            y=CENTER[1] + rng.random() * SPAWN_SPREAD,
        )
    updated[key] = node
    return updated, node


def link_if_absent(source: str, target: str, existing_links: Iterable[TopicLink]) -> Tuple[TopicLink, ...]:
    """Return the link as a one-element delta, or nothing if it would be redundant."""

    if topic_key(source) == topic_key(target):
        return ()
    candidate = TopicLink(source=source, target=target)
    if any(link.key == candidate.key for link in existing_links):
        return ()
    return (candidate,)


GraphUpdate = Callable[[GraphSnapshot], GraphSnapshot]
GraphListener = Callable[[GraphSnapshot], None]


def _seed_nodes() -> Tuple[TopicNode, ...]:
    return (TopicNode(id=PRIMARY_TOPIC, size=PRIMARY_SIZE, x=CENTER[0], y=CENTER[1]),)


class TopicGraph:
    """Owns the topic graph and serializes every mutation.

    Producers never edit the current snapshot. They submit an update that maps
    the latest committed snapshot to a new one. Updates submitted while another
    one is being applied (for example from a listener) are queued and applied
    in order once the current commit finishes.
    """

    def __init__(
        self,
        *,
        seed: Optional[Iterable[TopicNode]] = None,
        rng: Optional[RandomSource] = None,
    ) -> None:
        self._rng = rng or default_random()
        initial = tuple(seed) if seed is not None else _seed_nodes()
        self._snapshot = GraphSnapshot().with_nodes({topic_key(node.id): node for node in initial})
        self._pending: Deque[Tuple[GraphUpdate, str]] = deque()
        self._applying = False
        self._closed = False
        self._listeners: List[GraphListener] = []

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------
    @property
    def snapshot(self) -> GraphSnapshot:
        return self._snapshot

    @property
    def closed(self) -> bool:
        return self._closed

    def nodes(self) -> Tuple[TopicNode, ...]:
        return self._snapshot.node_list()

    def links(self) -> Tuple[TopicLink, ...]:
        return self._snapshot.links

    def get_node(self, node_id: str) -> Optional[TopicNode]:
        return self._snapshot.get(node_id)

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------
    def apply(self, update: GraphUpdate, *, reason: str = "update") -> GraphSnapshot:
        """Commit ``update`` against the latest snapshot.

        Returns the latest committed snapshot. When called re-entrantly the
        update is queued and the returned snapshot does not include it yet.
        """

        if self._closed:
            logger.debug("graph closed, ignoring %s", reason)
            return self._snapshot
        self._pending.append((update, reason))
        if self._applying:
            return self._snapshot

        self._applying = True
        try:
            while self._pending:
                if self._closed:
                    self._pending.clear()
                    break
                pending_update, pending_reason = self._pending.popleft()
                current = self._snapshot
                candidate = pending_update(current)
                if candidate is current:
                    continue
                self._snapshot = replace(candidate, revision=current.revision + 1)
                logger.debug("graph revision %d (%s)", self._snapshot.revision, pending_reason)
                self._notify(self._snapshot)
        finally:
            self._applying = False
        return self._snapshot

    def grow_topic(self, node_id: str) -> Optional[TopicNode]:
        """Grow or create a topic node and return the resolved node."""

        resolved: Dict[str, TopicNode] = {}

        def update(snapshot: GraphSnapshot) -> GraphSnapshot:
            nodes, node = grow_or_create(snapshot.nodes, node_id, self._rng)
            resolved["node"] = node
            return snapshot.with_nodes(nodes)

        self.apply(update, reason=f"grow:{node_id}")
        return resolved.get("node")

    def add_links(self, links: Iterable[TopicLink]) -> Tuple[TopicLink, ...]:
        candidates = tuple(links)
        added: List[TopicLink] = []

        def update(snapshot: GraphSnapshot) -> GraphSnapshot:
            accepted: List[TopicLink] = []
            for link in candidates:
                accepted.extend(link_if_absent(link.source, link.target, snapshot.links + tuple(accepted)))
            if not accepted:
                return snapshot
            added.extend(accepted)
            return snapshot.with_links(accepted)

        if candidates:
            self.apply(update, reason="links")
        return tuple(added)

    def replace_nodes(
        self,
        transform: Callable[[Sequence[TopicNode]], Sequence[TopicNode]],
        *,
        reason: str = "layout",
    ) -> GraphSnapshot:
        """Swap every node for the output of ``transform`` applied to the snapshot."""

        def update(snapshot: GraphSnapshot) -> GraphSnapshot:
            if not snapshot.nodes:
                return snapshot
            moved = transform(snapshot.node_list())
            return snapshot.with_nodes({topic_key(node.id): node for node in moved})

        return self.apply(update, reason=reason)

    def close(self) -> None:
        """Stop accepting updates; later submissions are silently ignored."""

        self._closed = True
        self._pending.clear()
        self._listeners.clear()

    # ------------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------------
    def subscribe(self, listener: GraphListener) -> None:
        self._listeners.append(listener)

    def unsubscribe(self, listener: GraphListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _notify(self, snapshot: GraphSnapshot) -> None:
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:  # noqa: BLE001
                logger.exception("graph listener failed")


__all__ = [
    "BASE_SIZE",
    "CENTER",
    "GROWTH",
    "GraphSnapshot",
    "GraphUpdate",
    "PRIMARY_SIZE",
    "PRIMARY_TOPIC",
    "SPAWN_SPREAD",
    "TopicGraph",
    "TopicLink",
    "TopicNode",
    "grow_or_create",
    "link_if_absent",
    "topic_key",
]
