"""Criticality-based resolution of contradictory guidelines."""

from uuid import UUID

from pydantic import BaseModel, Field

from parley.alignment.diagnostics import Diagnostic, DiagnosticKind
from parley.alignment.models import GuidelineRelationship, MatchedGuideline, RelationshipKind
from parley.observability.logging import get_logger

logger = get_logger(__name__)


class SuppressedGuideline(BaseModel):
    """A matched guideline dropped because a stronger one contradicts it."""

    guideline_id: UUID = Field(..., description="Dropped guideline")
    suppressed_by: UUID = Field(..., description="Guideline that won")
    reason: str = Field(..., description="Why it lost")


class ConflictResolution(BaseModel):
    """Matched guidelines after contradictions are resolved."""

    active: list[MatchedGuideline] = Field(default_factory=list, description="Guidelines in effect")
    suppressed: list[SuppressedGuideline] = Field(default_factory=list)
    diagnostics: list[Diagnostic] = Field(default_factory=list)


def _strength(match: MatchedGuideline) -> tuple[int, float, int]:
    # Higher criticality, then most recently defined, then later declaration
    return (
        match.criticality.rank,
        match.guideline.created_at.timestamp(),
        match.definition_index,
    )


class ConflictResolver:
    """Resolves EXCLUDES relationships among matched guidelines.

    Guidelines are kept strongest first; any guideline excluded by one
    already kept is suppressed. A higher criticality always wins. Ties in
    criticality are reported as ambiguous and broken in favor of the most
    recently defined guideline.
    """

    def resolve(
        self,
        matched: list[MatchedGuideline],
        relationships: list[GuidelineRelationship],
    ) -> ConflictResolution:
        excludes = [r for r in relationships if r.kind == RelationshipKind.EXCLUDES]
        if not excludes or len(matched) < 2:
            return ConflictResolution(active=list(matched))

        kept: list[MatchedGuideline] = []
        suppressed: list[SuppressedGuideline] = []
        diagnostics: list[Diagnostic] = []

        for candidate in sorted(matched, key=_strength, reverse=True):
            winner = next(
                (
                    k
                    for k in kept
                    if any(r.involves(k.guideline.id, candidate.guideline.id) for r in excludes)
                ),
                None,
            )
            if winner is None:
                kept.append(candidate)
                continue

            if winner.criticality == candidate.criticality:
                reason = "equal criticality, more recently defined guideline wins"
                diagnostics.append(
                    Diagnostic(
                        kind=DiagnosticKind.AMBIGUOUS_GUIDELINE_CONFLICT,
                        message=(
                            f"Guidelines '{winner.guideline.name}' and "
                            f"'{candidate.guideline.name}' conflict at "
                            f"{winner.criticality.value} criticality"
                        ),
                        details={
                            "winner_id": str(winner.guideline.id),
                            "loser_id": str(candidate.guideline.id),
                        },
                    )
                )
                logger.warning(
                    "ambiguous_guideline_conflict",
                    winner_id=str(winner.guideline.id),
                    loser_id=str(candidate.guideline.id),
                    criticality=winner.criticality.value,
                )
            else:
                reason = (
                    f"{winner.criticality.value} criticality overrides "
                    f"{candidate.criticality.value}"
                )
            suppressed.append(
                SuppressedGuideline(
                    guideline_id=candidate.guideline.id,
                    suppressed_by=winner.guideline.id,
                    reason=reason,
                )
            )

        kept_ids = {k.guideline.id for k in kept}
        return ConflictResolution(
            active=[m for m in matched if m.guideline.id in kept_ids],
            suppressed=suppressed,
            diagnostics=diagnostics,
        )
