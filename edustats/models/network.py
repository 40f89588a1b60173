"""Degree summaries of directed learner interaction networks.

Each forum reply or message is an :class:`Interaction` from ``source`` to
``target``. A learner's degree counts every interaction they take part in,
so a node's ``degree`` equals ``in_degree + out_degree`` and the degrees of
all nodes sum to twice the number of interactions.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence, Tuple

import pandas as pd

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Interaction:
    source: int
    target: int
    time: int = 0


@dataclass(frozen=True)
class NetworkNode:
    id: int
    degree: int
    in_degree: int
    out_degree: int


@dataclass(frozen=True)
class NetworkSummary:
    """Nodes with degree counts plus the links they were built from.

    Attributes:
        nodes: One node per learner that appears in any interaction, in
            ascending id order.
        links: The interactions, in input order.
    """

    nodes: Tuple[NetworkNode, ...]
    links: Tuple[Interaction, ...]

    def to_frame(self) -> pd.DataFrame:
        """Node table with columns ``id``, ``degree``, ``in_degree`` and ``out_degree``."""
        return pd.DataFrame(
            [vars(node) for node in self.nodes], columns=["id", "degree", "in_degree", "out_degree"]
        )


def summarize_interactions(interactions: Sequence[Interaction]) -> NetworkSummary:
    """Aggregate interactions into per-learner degree counts.

    Args:
        interactions: :class:`Interaction` records, or ``(source, target)``
            / ``(source, target, time)`` tuples.

    Returns:
        NetworkSummary: Nodes and links. An empty input gives an empty
        summary.

    Note:
        A self-interaction counts once as outgoing and once as incoming, so it
        adds two to that learner's degree.
    """
    links = tuple(link if isinstance(link, Interaction) else Interaction(*link) for link in interactions)
    if not links:
        return NetworkSummary(nodes=(), links=())

    frame = pd.DataFrame([vars(link) for link in links])
    out_degree = frame["source"].value_counts()
    in_degree = frame["target"].value_counts()
    table = pd.concat([out_degree.rename("out_degree"), in_degree.rename("in_degree")], axis=1)
    table = table.fillna(0).astype(int).sort_index()
    table["degree"] = table["out_degree"] + table["in_degree"]

    nodes = tuple(
        NetworkNode(id=int(node_id), degree=int(row.degree), in_degree=int(row.in_degree), out_degree=int(row.out_degree))
        for node_id, row in table.iterrows()
    )
    logger.debug("Network: %d nodes, %d links", len(nodes), len(links))
    return NetworkSummary(nodes=nodes, links=links)


def most_connected(summary: NetworkSummary, n: int = 3) -> Tuple[NetworkNode, ...]:
    """The ``n`` highest-degree nodes; ties go to the lower id."""
    ranked = sorted(summary.nodes, key=lambda node: (-node.degree, node.id))
    return tuple(ranked[: max(int(n), 0)])
