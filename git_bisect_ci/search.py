"""Breadth-first search for the evaluated commits nearest to a start commit."""

import logging
from typing import AbstractSet, Callable, Set

from .errors import BisectCIError
from .graph import CommitGraph
from .oid import Oid

logger = logging.getLogger("git-bisect-ci")


class StartNotInGraphError(BisectCIError):
    """Raised when the search starts from a commit outside the graph."""

    def __init__(self, start: Oid):
        self.start = start
        super().__init__(f"{start} is not in the bisection range")


def closest_commits(
    start: Oid,
    graph: CommitGraph,
    targets: AbstractSet[Oid],
    eligible: Callable[[Oid], bool],
) -> Set[Oid]:
    """Find the targets closest to ``start`` by edge count.

    The graph is walked ring by ring, following both parent and child
    edges. The first ring containing any eligible target is returned whole,
    since its members are equally close. The bad tip is never returned, as
    its result is already known.

    Args:
        start: Commit to measure distance from; must be in ``graph``.
        graph: Commit graph of the bisection range.
        targets: Commits with a known CI result.
        eligible: Called for each target found in a ring, in sorted order.
            Returns False for commits to pass over (e.g. skipped ones).
            Exceptions propagate and abort the search.

    Returns:
        The nearest eligible targets, or an empty set if none is reachable.

    Raises:
        StartNotInGraphError: If ``start`` is not a vertex of ``graph``.
    """
    if start not in graph:
        raise StartNotInGraphError(start)

    targets = set(targets)
    if graph.bad is not None:
        targets.discard(graph.bad)

    frontier = {start}
    visited: Set[Oid] = set()
    depth = 0

    while frontier:
        matches = {
            oid for oid in sorted(frontier & targets)
            if eligible(oid)
        }
        if matches:
            logger.debug(f"Found {len(matches)} commit(s) at distance {depth}")
            return matches

        visited |= frontier
        ring = set()
        for oid in frontier:
            ring |= graph.neighbours(oid)
        frontier = ring - visited
        depth += 1

    logger.debug(f"No eligible commit found after {depth} ring(s)")
    return set()
