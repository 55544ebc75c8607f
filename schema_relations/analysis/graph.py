"""Foreign key graph used for cycle and self-reference analysis."""

import logging
from typing import Dict, Iterable, List, Sequence, Set, Tuple

from schema_relations.analysis.models import CycleReport
from schema_relations.database.models import SchemaCatalog
from schema_relations.errors import TableNotFoundError

logger = logging.getLogger(__name__)

WHITE, GRAY, BLACK = 0, 1, 2


class RelationshipGraph:
    """Directed graph of tables; an edge A -> B means A has a foreign key to B.

    Nodes are addressed by index into an adjacency list built once at
    construction. The graph is never mutated afterwards, so one instance can
    be shared by concurrent analyses.
    """

    def __init__(self, nodes: Sequence[str], edges: Iterable[Tuple[str, str]]):
        self._names: List[str] = list(dict.fromkeys(nodes))
        self._index: Dict[str, int] = {name: i for i, name in enumerate(self._names)}
        self._adjacency: List[List[int]] = [[] for _ in self._names]
        self._self_loops: Set[int] = set()

        for source, target in edges:
            if source not in self._index or target not in self._index:
                logger.debug("Skipping edge %s -> %s to a table outside the graph", source, target)
                continue
            s, t = self._index[source], self._index[target]
            if s == t:
                self._self_loops.add(s)
                continue
            if t not in self._adjacency[s]:
                self._adjacency[s].append(t)

    @classmethod
    def from_catalog(cls, catalog: SchemaCatalog) -> "RelationshipGraph":
        edges = [
            (fk.table, fk.referenced_table)
            for table in catalog.tables
            for fk in table.foreign_keys
        ]
        return cls(catalog.table_names, edges)

    @property
    def nodes(self) -> List[str]:
        return list(self._names)

    def _node(self, table: str) -> int:
        try:
            return self._index[table]
        except KeyError:
            raise TableNotFoundError(table) from None

    def successors(self, table: str) -> List[str]:
        """Tables `table` references (self-loops excluded)."""
        return [self._names[i] for i in self._adjacency[self._node(table)]]

    def has_self_loop(self, table: str) -> bool:
        return self._node(table) in self._self_loops

    @property
    def self_loops(self) -> List[str]:
        return [self._names[i] for i in sorted(self._self_loops)]

    def find_cycles(self, start: str) -> List[CycleReport]:
        """Cycles reachable from `start`, found by iterative three-color DFS.

        Every back edge to a node on the active path closes one cycle, which
        is reported from that node around to itself. Nodes already fully
        explored are not entered again, so each edge is followed once.
        Self-loops are not cycles here.
        """
        root = self._node(start)
        color = [WHITE] * len(self._names)
        path: List[int] = []
        position: Dict[int, int] = {}
        cycles: List[CycleReport] = []

        # Stack of (node, index of the next successor to visit)
        stack: List[List[int]] = [[root, 0]]
        color[root] = GRAY
        path.append(root)
        position[root] = 0

        while stack:
            frame = stack[-1]
            node, next_child = frame
            successors = self._adjacency[node]

            if next_child >= len(successors):
                stack.pop()
                path.pop()
                del position[node]
                color[node] = BLACK
                continue

            frame[1] += 1
            neighbor = successors[next_child]

            if color[neighbor] == GRAY:
                members = path[position[neighbor]:]
                names = tuple(self._names[i] for i in members)
                cycles.append(CycleReport(
                    path=names + (self._names[neighbor],),
                    start_table=self._names[neighbor],
                    tables_involved=names,
                ))
            elif color[neighbor] == WHITE:
                color[neighbor] = GRAY
                position[neighbor] = len(path)
                path.append(neighbor)
                stack.append([neighbor, 0])

        if cycles:
            logger.debug("Found %d cycle(s) reachable from %s", len(cycles), start)
        return cycles
