"""
Reference Resolver

Maps name-keyed reference descriptors onto table and column ids once the
whole input has been consumed, so a reference may name a table that is
declared further down.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from ..models.results import Diagnostic, DiagnosticKind
from ..models.schema import Constraint, ConstraintType, Relationship, RelationshipType, Table
from ..utils import get_logger
from .builder import DraftSchema, RawReference

logger = get_logger(__name__)


class RelationshipIds:
    """Per-parse `rel-N` id sequence shared by resolver and inference"""

    def __init__(self, start: int = 1):
        self._next = start

    def next(self) -> str:
        rel_id = f"rel-{self._next}"
        self._next += 1
        return rel_id


@dataclass
class Resolution:
    candidates: List[Relationship] = field(default_factory=list)
    diagnostics: List[Diagnostic] = field(default_factory=list)


class ReferenceResolver:
    """Resolves every RawReference of a draft into a candidate relationship"""

    def __init__(self, ids: Optional[RelationshipIds] = None):
        self.ids = ids or RelationshipIds()

    def resolve(self, draft: DraftSchema) -> Resolution:
        by_name: Dict[str, Table] = {}
        for table in draft.tables:
            by_name.setdefault(table.name.lower(), table)

        resolution = Resolution()
        for reference in draft.references:
            relationship = self._resolve_one(reference, by_name, resolution.diagnostics)
            if relationship is not None:
                resolution.candidates.append(relationship)

        logger.debug(
            f"Resolved {len(resolution.candidates)} of {len(draft.references)} references"
        )
        return resolution

    def _resolve_one(self, reference: RawReference, by_name: Dict[str, Table],
                     diagnostics: List[Diagnostic]) -> Optional[Relationship]:
        from_table = by_name.get(reference.from_table.lower())
        to_table = by_name.get(reference.to_table.lower())

        for name, table in ((reference.from_table, from_table), (reference.to_table, to_table)):
            if table is None:
                diagnostics.append(_unresolved(
                    DiagnosticKind.UNRESOLVED_TABLE,
                    f"Reference {reference} names unknown table '{name}'",
                    reference,
                    table=name,
                ))
                return None

        from_column = from_table.find_column(reference.from_column)
        if from_column is None:
            diagnostics.append(_unresolved(
                DiagnosticKind.UNRESOLVED_COLUMN,
                f"Reference {reference} names unknown column '{from_table.name}.{reference.from_column}'",
                reference,
                table=from_table.name,
                column=reference.from_column,
            ))
            return None

        to_column = to_table.find_column(reference.to_column)
        if to_column is None:
            diagnostics.append(_unresolved(
                DiagnosticKind.UNRESOLVED_COLUMN,
                f"Reference {reference} names unknown column '{to_table.name}.{reference.to_column}'",
                reference,
                table=to_table.name,
                column=reference.to_column,
            ))
            return None

        if from_table.id == to_table.id:
            diagnostics.append(_unresolved(
                DiagnosticKind.SELF_REFERENCE,
                f"Reference {reference} points back at its own table; self-references are not kept",
                reference,
                table=from_table.name,
            ))
            return None

        from_column.add_constraint(Constraint(
            type=ConstraintType.FOREIGN_KEY,
            value=f"{to_table.name}.{to_column.name}",
        ))

        return Relationship(
            id=self.ids.next(),
            from_table_id=from_table.id,
            from_column_id=from_column.id,
            to_table_id=to_table.id,
            to_column_id=to_column.id,
            type=RelationshipType.ONE_TO_MANY,
            optional=False,
        )


def _unresolved(kind: DiagnosticKind, message: str, reference: RawReference, **details) -> Diagnostic:
    details["reference"] = str(reference)
    return Diagnostic(kind=kind, message=message, line_number=reference.line_number, details=details)
