"""Static dependency graph of backed-up entity kinds.

Each kind names the kinds its rows reference through foreign keys.  Inserts
follow a topological order (parents first) and deletes the reverse, so no
reference dangles at any intermediate step.  Ties are broken by declaration
order, which keeps the sequence stable across runs.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Literal

from ballot_api.models.base import Base
from ballot_api.models.department import Department, Year
from ballot_api.models.election import Candidate, Election, Party, Position
from ballot_api.models.user import User
from ballot_api.models.vote import Vote
from ballot_api.models.voter import Voter


@dataclass(frozen=True)
class EntityKind:
    """One node of the entity graph.

    Attributes:
        key: Collection name used in snapshot documents.
        model: ORM model backing the kind.
        depends_on: Keys of the kinds this kind references.
        on_election_delete: What happens to rows of this kind when their
            election is deleted: removed, detached (election reference
            cleared), or nothing for kinds not scoped to an election.
    """

    key: str
    model: type[Base]
    depends_on: tuple[str, ...] = ()
    on_election_delete: Literal["delete", "detach"] | None = None


ENTITY_GRAPH: tuple[EntityKind, ...] = (
    EntityKind("users", User),
    EntityKind("departments", Department),
    EntityKind("years", Year, depends_on=("departments",)),
    EntityKind("elections", Election, depends_on=("users",)),
    EntityKind("parties", Party, depends_on=("elections",), on_election_delete="delete"),
    EntityKind("positions", Position, depends_on=("elections", "years"), on_election_delete="delete"),
    EntityKind(
        "candidates",
        Candidate,
        depends_on=("elections", "positions", "parties", "years"),
        on_election_delete="delete",
    ),
    EntityKind("voters", Voter, depends_on=("elections", "years"), on_election_delete="detach"),
    EntityKind(
        "votes",
        Vote,
        depends_on=("voters", "positions", "candidates", "elections"),
        on_election_delete="delete",
    ),
)


def get_kind(key: str, graph: Sequence[EntityKind] = ENTITY_GRAPH) -> EntityKind:
    """Look up an entity kind by its collection key.

    Raises:
        KeyError: If no kind has that key.
    """
    for kind in graph:
        if kind.key == key:
            return kind
    raise KeyError(key)


def topological_order(graph: Sequence[EntityKind]) -> list[EntityKind]:
    """Order kinds so every kind follows the kinds it depends on.

    Among kinds whose dependencies are all placed, the one declared first
    is placed next.

    Args:
        graph: Entity kinds in declaration order.

    Returns:
        The kinds in dependency order.

    Raises:
        ValueError: If a dependency is unknown or the graph has a cycle.
    """
    keys = {kind.key for kind in graph}
    for kind in graph:
        unknown = set(kind.depends_on) - keys
        if unknown:
            msg = f"Entity kind '{kind.key}' depends on unknown kind(s): {', '.join(sorted(unknown))}"
            raise ValueError(msg)

    placed: set[str] = set()
    ordered: list[EntityKind] = []
    remaining = list(graph)
    while remaining:
        ready = next((kind for kind in remaining if set(kind.depends_on) <= placed), None)
        if ready is None:
            cycle = ", ".join(kind.key for kind in remaining)
            msg = f"Entity graph has a dependency cycle among: {cycle}"
            raise ValueError(msg)
        ordered.append(ready)
        placed.add(ready.key)
        remaining.remove(ready)
    return ordered


def insertion_order(graph: Sequence[EntityKind] = ENTITY_GRAPH) -> list[EntityKind]:
    """Return kinds parent-first, the order rows must be inserted in."""
    return topological_order(graph)


def deletion_order(graph: Sequence[EntityKind] = ENTITY_GRAPH) -> list[EntityKind]:
    """Return kinds child-first, the order rows must be deleted in."""
    return list(reversed(topological_order(graph)))


def election_cascade_order(graph: Sequence[EntityKind] = ENTITY_GRAPH) -> list[EntityKind]:
    """Return the election-scoped kinds, child-first, for deleting one election."""
    return [kind for kind in deletion_order(graph) if kind.on_election_delete is not None]
