"""Snapshot library — entity dependency graph and row codec for backups.

Public API:
    - ENTITY_GRAPH: Static dependency graph of every backed-up entity kind
    - EntityKind: One node of the graph
    - insertion_order / deletion_order: Topological orders over the graph
    - election_cascade_order: Kinds removed or detached with one election
    - encode_row / decode_row: JSON-ready conversion of table rows
"""

from ballot_api.lib.snapshot.codec import decode_row, encode_row
from ballot_api.lib.snapshot.graph import (
    ENTITY_GRAPH,
    EntityKind,
    deletion_order,
    election_cascade_order,
    get_kind,
    insertion_order,
    topological_order,
)

__all__ = [
    "ENTITY_GRAPH",
    "EntityKind",
    "decode_row",
    "deletion_order",
    "election_cascade_order",
    "encode_row",
    "get_kind",
    "insertion_order",
    "topological_order",
]
