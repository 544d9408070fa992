"""Commit graph built from ``git log --format='%H %P' --bisect`` output."""

from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterable, List, Optional, Set, Tuple

from .errors import BisectCIError
from .oid import Oid, OidParseError


class GraphParseError(BisectCIError):
    """Raised when the commit log cannot be turned into a graph."""
    pass


@dataclass(frozen=True)
class Commit:
    """A vertex of the commit graph.

    Parents and children are stored as keys into the graph, not as
    references, so traversal always goes back through ``CommitGraph.get``.
    """
    parents: FrozenSet[Oid] = frozenset()
    children: FrozenSet[Oid] = frozenset()


@dataclass(frozen=True)
class CommitGraph:
    """The commits of a bisection range and the bad tip it starts from."""
    commits: Dict[Oid, Commit] = field(default_factory=dict)
    bad: Optional[Oid] = None

    def __contains__(self, oid: Oid) -> bool:
        return oid in self.commits

    def __len__(self) -> int:
        return len(self.commits)

    def get(self, oid: Oid) -> Commit:
        return self.commits[oid]

    def neighbours(self, oid: Oid) -> FrozenSet[Oid]:
        """Parents and children of a commit; edge direction is ignored."""
        commit = self.commits[oid]
        return commit.parents | commit.children


def parse_log_line(line: str) -> Tuple[Oid, Set[Oid]]:
    """Parse ``"<oid> <parent> <parent>..."`` into the oid and its parents."""
    fields = line.split(" ")
    if not fields[0]:
        raise GraphParseError("empty line")
    oid = Oid.parse(fields[0])
    parents = {Oid.parse(f) for f in fields[1:] if f}
    return oid, parents


def build_commit_graph(lines: Iterable[str]) -> CommitGraph:
    """Build an undirected commit graph from log lines.

    The first line names the bad tip of the bisection. Parents that do not
    have a line of their own lie outside the range and are dropped, so every
    oid reachable through ``parents`` or ``children`` is a vertex.

    Raises:
        GraphParseError: On an empty line, an unparseable identifier, or a
            read failure. The message names the offending line.
    """
    declared: List[Tuple[Oid, Set[Oid]]] = []
    try:
        for number, line in enumerate(lines, start=1):
            line = line.rstrip("\r\n")
            try:
                declared.append(parse_log_line(line))
            except (GraphParseError, OidParseError) as e:
                raise GraphParseError(f"line {number} {line!r}: {e}") from e
    except OSError as e:
        raise GraphParseError(f"reading commit graph: {e}") from e

    bad = declared[0][0] if declared else None
    vertices = {oid for oid, _ in declared}

    parents: Dict[Oid, Set[Oid]] = {}
    for oid, declared_parents in declared:
        # A commit listed twice keeps the union of its parents
        parents.setdefault(oid, set()).update(declared_parents & vertices)

    children: Dict[Oid, Set[Oid]] = {}
    for oid, effective in parents.items():
        for parent in effective:
            children.setdefault(parent, set()).add(oid)

    commits = {
        oid: Commit(
            parents=frozenset(parents[oid]),
            children=frozenset(children.get(oid, ())),
        )
        for oid in sorted(vertices)
    }
    return CommitGraph(commits=commits, bad=bad)
