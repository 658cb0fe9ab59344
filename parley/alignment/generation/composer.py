"""Message composition: mode resolution, templating and self-critique."""

import time
from typing import Any

from parley.alignment.context.models import Context
from parley.alignment.diagnostics import Diagnostic, DiagnosticKind
from parley.alignment.enforcement import (
    ConstraintViolation,
    EnforcementResult,
    FallbackHandler,
    ResponseCritic,
)
from parley.alignment.execution.models import ToolOutcome, ToolResult
from parley.alignment.generation.generator import ResponseGenerator
from parley.alignment.generation.models import (
    CompositionResult,
    GenerationResult,
    ResponseTrace,
)
from parley.alignment.generation.signals import SignalMatcher
from parley.alignment.matching.conflicts import SuppressedGuideline
from parley.alignment.models import (
    CannedResponse,
    CompositionMode,
    Journey,
    JourneyState,
    MatchedGuideline,
    Scope,
)
from parley.observability.logging import get_logger
from parley.providers.llm import ProviderError

logger = get_logger(__name__)


def resolve_mode(
    default: CompositionMode,
    journey: Journey | None,
    state: JourneyState | None,
    guidelines: list[MatchedGuideline],
) -> CompositionMode:
    """Strictest of the agent default, journey, state and matched guidelines."""
    modes = [default]
    if journey is not None and journey.composition_mode is not None:
        modes.append(journey.composition_mode)
    if state is not None and state.composition_mode is not None:
        modes.append(state.composition_mode)
    modes.extend(m.guideline.composition_mode for m in guidelines if m.guideline.composition_mode)
    return max(modes, key=lambda mode: mode.strictness)


def scoped_responses(
    canned_responses: list[CannedResponse],
    journey: Journey | None,
    state: JourneyState | None,
) -> list[CannedResponse]:
    """Canned responses eligible for the current journey position."""
    eligible = []
    for canned in canned_responses:
        if canned.scope == Scope.GLOBAL:
            eligible.append(canned)
        elif journey is None or canned.journey_id != journey.id:
            continue
        elif canned.scope == Scope.JOURNEY or (state is not None and canned.state_id == state.id):
            eligible.append(canned)
    return eligible


class MessageComposer:
    """Produces the reply for a turn.

    FLUID generates freely and switches to a canned response when one of
    its signals matches the draft and its fields can be filled. COMPOSITED
    rewrites the draft toward the matched canned response. STRICT only
    sends a rendered canned response, matched against what the turn means
    to convey; without one it flags no_approved_response and sends the
    configured no-match message.
    """

    def __init__(
        self,
        generator: ResponseGenerator,
        critic: ResponseCritic,
        fallback: FallbackHandler,
        signal_matcher: SignalMatcher | None = None,
        default_mode: CompositionMode = CompositionMode.FLUID,
        no_match_message: str = "I'm sorry, I can't help with that right now.",
        enforcement_enabled: bool = True,
        self_critique_enabled: bool = True,
    ) -> None:
        """Initialize the composer.

        Args:
            generator: Draft generator
            critic: Self-critique against HIGH guidelines
            fallback: Fallback and deflection handler
            signal_matcher: Canned response signal matcher
            default_mode: Mode when the agent sets none
            no_match_message: Strict-mode reply when no template applies
            enforcement_enabled: Run self-critique at all
            self_critique_enabled: Allow one regeneration on violation
        """
        self._generator = generator
        self._critic = critic
        self._fallback = fallback
        self._signal_matcher = signal_matcher or SignalMatcher()
        self._default_mode = default_mode
        self._no_match_message = no_match_message
        self._enforcement_enabled = enforcement_enabled
        self._self_critique_enabled = self_critique_enabled

    async def compose(
        self,
        *,
        context: Context,
        guidelines: list[MatchedGuideline],
        suppressed: list[SuppressedGuideline] | None = None,
        tool_results: list[ToolResult] | None = None,
        canned_responses: list[CannedResponse] | None = None,
        agent_mode: CompositionMode | None = None,
        journey: Journey | None = None,
        state: JourneyState | None = None,
    ) -> CompositionResult:
        """Compose and critique the reply.

        Args:
            context: Turn context, with tool data merged
            guidelines: Active guidelines after conflict resolution
            suppressed: Guidelines dropped by conflict resolution
            tool_results: This turn's tool results
            canned_responses: The agent's canned responses, in store order
            agent_mode: The agent's default composition mode
            journey: Active journey after navigation
            state: Current state after navigation

        Returns:
            CompositionResult with the reply and its trace
        """
        start_time = time.perf_counter()
        tool_results = tool_results or []
        mode = resolve_mode(agent_mode or self._default_mode, journey, state, guidelines)
        eligible = scoped_responses(canned_responses or [], journey, state)
        candidates = [c for c in eligible if not c.is_fallback]
        values = self._render_values(context, tool_results)

        trace = ResponseTrace(
            mode=mode,
            guidelines_used=[m.guideline.id for m in guidelines],
            guidelines_suppressed=[s.guideline_id for s in (suppressed or [])],
            tools_used=[r.tool_id for r in tool_results if r.outcome != ToolOutcome.SKIPPED],
        )

        def finish(
            response: str, enforcement: EnforcementResult | None = None
        ) -> CompositionResult:
            if enforcement is not None and enforcement.deflected:
                trace.deflected = True
            if enforcement is not None and enforcement.fallback_used:
                trace.canned_response_id = enforcement.fallback_response_id
                trace.generated = False
            elif enforcement is not None and enforcement.regeneration_succeeded:
                trace.canned_response_id = None
                trace.generated = True
            elapsed = (time.perf_counter() - start_time) * 1000
            logger.info(
                "response_composed",
                mode=mode.value,
                canned_response_id=(
                    str(trace.canned_response_id) if trace.canned_response_id else None
                ),
                generated=trace.generated,
                deflected=trace.deflected,
                no_approved_response=trace.no_approved_response,
            )
            return CompositionResult(
                response=response,
                trace=trace,
                enforcement=enforcement,
                composition_time_ms=elapsed,
            )

        if any(r.outcome == ToolOutcome.SECURITY_VIOLATION for r in tool_results):
            trace.deflected = True
            return finish(self._fallback.deflect("security_violation"))

        try:
            if mode == CompositionMode.STRICT:
                response = self._compose_strict(
                    context, guidelines, tool_results, candidates, values, trace
                )
            else:
                response = await self._compose_generated(
                    mode, context, guidelines, tool_results, candidates, values, trace
                )
        except ProviderError as e:
            logger.warning("generation_unavailable", mode=mode.value, error=str(e))
            trace.deflected = True
            trace.generated = False
            return finish(self._fallback.deflect("generation_unavailable"))

        if not self._enforcement_enabled:
            return finish(response)

        async def regenerate(violations: list[ConstraintViolation]) -> str:
            result = await self._generator.generate(
                context, guidelines, tool_results, violations=violations
            )
            self._count_tokens(trace, result)
            return result.response

        enforcement = await self._critic.review(
            response,
            guidelines,
            context,
            fallback=self._fallback,
            fallback_candidates=eligible,
            values=values,
            regenerate=regenerate if trace.generated and self._self_critique_enabled else None,
        )
        return finish(enforcement.final_response, enforcement)

    def _compose_strict(
        self,
        context: Context,
        guidelines: list[MatchedGuideline],
        tool_results: list[ToolResult],
        candidates: list[CannedResponse],
        values: dict[str, Any],
        trace: ResponseTrace,
    ) -> str:
        intent = self._intent_text(context, guidelines, tool_results)
        match = self._signal_matcher.best_match(candidates, intent, values)
        if match is None:
            trace.no_approved_response = True
            trace.diagnostics.append(
                Diagnostic(
                    kind=DiagnosticKind.NO_APPROVED_RESPONSE,
                    message="No canned response matched in strict mode",
                    details={"intent": intent[:200]},
                )
            )
            logger.warning("no_approved_response", candidates=len(candidates))
            return self._no_match_message

        trace.canned_response_id = match.canned_response.id
        return match.canned_response.render(values)

    async def _compose_generated(
        self,
        mode: CompositionMode,
        context: Context,
        guidelines: list[MatchedGuideline],
        tool_results: list[ToolResult],
        candidates: list[CannedResponse],
        values: dict[str, Any],
        trace: ResponseTrace,
    ) -> str:
        draft = await self._generator.generate(context, guidelines, tool_results)
        if not draft.response:
            raise ProviderError("Generation returned an empty reply")
        self._count_tokens(trace, draft)
        trace.draft = draft.response
        trace.generated = True

        match = self._signal_matcher.best_match(candidates, draft.response, values)
        if match is None:
            return draft.response

        rendered = match.canned_response.render(values)
        trace.canned_response_id = match.canned_response.id

        if mode == CompositionMode.FLUID:
            trace.generated = False
            return rendered

        restyled = await self._generator.restyle(draft.response, rendered)
        self._count_tokens(trace, restyled)
        return restyled.response or rendered

    def _intent_text(
        self,
        context: Context,
        guidelines: list[MatchedGuideline],
        tool_results: list[ToolResult],
    ) -> str:
        """What the turn means to convey, for strict-mode signal matching."""
        parts = []
        if context.state_instruction:
            parts.append(context.state_instruction)
        parts.extend(m.guideline.action for m in guidelines if m.guideline.action)
        for result in tool_results:
            name = result.tool_id.replace("_", " ")
            if result.success:
                parts.append(name)
            elif result.outcome in (ToolOutcome.MISSING_PARAMETER, ToolOutcome.DEFERRED):
                missing = " ".join(p.replace("_", " ") for p in result.missing_parameters)
                parts.append(f"ask for {missing}")
        return ". ".join(parts)

    def _render_values(self, context: Context, tool_results: list[ToolResult]) -> dict[str, Any]:
        values = context.known_fields()
        for result in tool_results:
            if result.success:
                values.update(result.canned_fields)
        return values

    def _count_tokens(self, trace: ResponseTrace, result: GenerationResult) -> None:
        trace.prompt_tokens += result.prompt_tokens
        trace.completion_tokens += result.completion_tokens
