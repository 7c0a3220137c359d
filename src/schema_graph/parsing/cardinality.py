"""
Cardinality Inference Engine

Every resolved reference starts out as ONE_TO_MANY. A table whose only two
outgoing references both leave from primary-key columns is treated as a
junction table: its two edges are replaced by a single MANY_TO_MANY edge
between the two tables it bridges.

    Enrollment.student_id [pk] -> Student.id
    Enrollment.course_id  [pk] -> Course.id
    =>  Student.id <-> Course.id  (MANY_TO_MANY)

Decisions are made once, over the full candidate set, and never depend on
the order in which tables were declared.
"""
from __future__ import annotations

from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Set

from ..models.results import Diagnostic, DiagnosticKind, JunctionTable
from ..models.schema import Relationship, RelationshipType, Table
from ..utils import get_logger
from .resolver import RelationshipIds

logger = get_logger(__name__)


@dataclass
class InferenceResult:
    relationships: List[Relationship] = field(default_factory=list)
    junction_tables: List[JunctionTable] = field(default_factory=list)
    diagnostics: List[Diagnostic] = field(default_factory=list)


class CardinalityInferenceEngine:
    """Collapses junction tables into many-to-many relationships"""

    def __init__(self, ids: Optional[RelationshipIds] = None):
        self.ids = ids or RelationshipIds()

    def infer(self, tables: Iterable[Table], candidates: List[Relationship]) -> InferenceResult:
        """
        Run junction detection over the candidate edges

        Args:
            tables: Every table of the parse
            candidates: Resolved ONE_TO_MANY edges, in resolution order

        Returns:
            Surviving ONE_TO_MANY edges in candidate order followed by the
            MANY_TO_MANY edges in junction order
        """
        tables_by_id: Dict[str, Table] = {table.id: table for table in tables}
        result = InferenceResult()

        groups: "OrderedDict[str, List[Relationship]]" = OrderedDict()
        for candidate in candidates:
            groups.setdefault(candidate.from_table_id, []).append(candidate)

        suppressed: Set[str] = set()
        many_to_many: List[Relationship] = []

        for table_id, edges in groups.items():
            if len(edges) != 2:
                continue

            junction = tables_by_id[table_id]
            if not all(self._leaves_from_primary_key(junction, edge) for edge in edges):
                continue

            first, second = edges
            left = tables_by_id[first.to_table_id]
            right = tables_by_id[second.to_table_id]

            if left.id == right.id:
                result.diagnostics.append(self._abandoned(
                    junction, f"both references point at table '{left.name}'"
                ))
                continue

            left_pk = left.primary_key_column()
            right_pk = right.primary_key_column()
            missing = [t.name for t, pk in ((left, left_pk), (right, right_pk)) if pk is None]
            if missing:
                result.diagnostics.append(self._abandoned(
                    junction, f"no primary key column on {', '.join(missing)}"
                ))
                continue

            edge = Relationship(
                id=self.ids.next(),
                from_table_id=left.id,
                from_column_id=left_pk.id,
                to_table_id=right.id,
                to_column_id=right_pk.id,
                type=RelationshipType.MANY_TO_MANY,
                optional=False,
            )
            many_to_many.append(edge)
            suppressed.update((first.id, second.id))
            result.junction_tables.append(JunctionTable(
                table_id=junction.id,
                table_name=junction.name,
                relationship_id=edge.id,
                suppressed_relationship_ids=[first.id, second.id],
            ))
            logger.debug(f"Collapsed junction table {junction.name} into {left.name} <-> {right.name}")

        result.relationships = [c for c in candidates if c.id not in suppressed] + many_to_many
        return result

    @staticmethod
    def _leaves_from_primary_key(table: Table, edge: Relationship) -> bool:
        column = table.get_column(edge.from_column_id)
        return column is not None and column.is_primary_key

    @staticmethod
    def _abandoned(junction: Table, reason: str) -> Diagnostic:
        return Diagnostic(
            kind=DiagnosticKind.JUNCTION_ABANDONED,
            message=f"Table '{junction.name}' looks like a junction table but was kept as is: {reason}",
            severity="info",
            details={"table": junction.name},
        )
