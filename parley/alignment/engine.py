"""Alignment Engine - Main pipeline orchestrator.

Coordinates all pipeline steps to process one customer turn:
variable refresh, context building, guideline matching, conflict
resolution, journey navigation, tool calls, composition and
self-critique.

Handles the complete turn lifecycle including:
- Per-customer mutual exclusion (via CustomerMutex)
- Session loading and creation (via SessionStore)
- Staging every write in a TurnTransaction committed at the end
- Whole-turn retries when the matching oracle is unavailable
"""

import asyncio
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from parley.alignment.context import (
    Context,
    ContextBuilder,
    FieldExtractor,
    LLMFieldExtractor,
    PatternFieldExtractor,
)
from parley.alignment.diagnostics import Diagnostic, DiagnosticKind
from parley.alignment.enforcement import FallbackHandler, ResponseCritic
from parley.alignment.execution import (
    ToolCallRequest,
    ToolCaller,
    ToolContext,
    ToolRegistry,
    ToolResult,
)
from parley.alignment.generation import (
    CompositionResult,
    MessageComposer,
    PromptBuilder,
    ResponseGenerator,
    SignalMatcher,
)
from parley.alignment.journeys import JourneyDecision, JourneyEngine
from parley.alignment.matching import (
    ConditionEvaluator,
    ConflictResolver,
    GuidelineMatcher,
    LLMConditionEvaluator,
)
from parley.alignment.models import (
    Agent,
    CannedResponse,
    ContextVariable,
    ContextVariableValue,
    FieldDefinition,
    GlossaryTerm,
    Guideline,
    GuidelineRelationship,
    Journey,
    JourneyState,
    VariableScope,
)
from parley.alignment.models.base import utc_now
from parley.alignment.result import AlignmentResult, PipelineStepTiming
from parley.alignment.stores import AgentConfigStore
from parley.config.models.pipeline import PipelineConfig
from parley.conversation.models import EventKind, EventSource, Session
from parley.conversation.store import SessionStore
from parley.errors import AgentNotFoundError, CustomerBusyError, MatchingUnavailableError
from parley.observability.logging import get_logger
from parley.observability.metrics import (
    GUIDELINES_MATCHED,
    JOURNEY_DECISIONS,
    MATCHING_RETRIES,
    PIPELINE_STEP_LATENCY,
    TURN_LATENCY,
    TURNS_PROCESSED,
)
from parley.providers.llm import (
    ExecutionContext,
    LLMExecutor,
    clear_execution_context,
    create_executor_from_step_config,
    set_execution_context,
)
from parley.runtime import (
    CustomerMutex,
    InMemoryCustomerMutex,
    TurnTransaction,
    build_customer_key,
)
from parley.variables import ContextVariableStore, VariableRefresher

logger = get_logger(__name__)


@dataclass(frozen=True)
class AgentSnapshot:
    """Agent configuration read once at turn start.

    Definitions are immutable for the duration of the turn.
    """

    agent: Agent
    guidelines: list[Guideline]
    relationships: list[GuidelineRelationship]
    journeys: list[Journey]
    glossary: list[GlossaryTerm]
    canned_responses: list[CannedResponse]
    variables: list[ContextVariable]
    fields: list[FieldDefinition]

    def get_journey(self, journey_id: UUID | None) -> Journey | None:
        if journey_id is None:
            return None
        return next((j for j in self.journeys if j.id == journey_id), None)


class AlignmentEngine:
    """Orchestrate the turn pipeline.

    The AlignmentEngine coordinates all pipeline steps:
    1. Variable refresh - Re-fetch stale context variables
    2. Context building - History, glossary terms and stated facts
    3. Guideline matching - The oracle judges eligible guidelines and journeys
    4. Conflict resolution - Higher criticality wins contradictions
    5. Journey navigation - Walk the active journey, running tool states
    6. Tool execution - Run tools attached to active guidelines
    7. Composition - Draft, template and self-critique the reply

    Writes are staged and committed together once the reply is ready.
    """

    def __init__(
        self,
        config_store: AgentConfigStore,
        session_store: SessionStore,
        variable_store: ContextVariableStore,
        evaluator: ConditionEvaluator | None = None,
        tool_registry: ToolRegistry | None = None,
        pipeline_config: PipelineConfig | None = None,
        mutex: CustomerMutex | None = None,
        executors: dict[str, LLMExecutor] | None = None,
        field_extractor: FieldExtractor | None = None,
    ) -> None:
        """Initialize the alignment engine.

        Args:
            config_store: Store for guidelines, journeys, templates and variables
            session_store: Store for sessions and their events
            variable_store: Store for context variable values
            evaluator: Condition oracle (defaults to the LLM evaluator)
            tool_registry: Registered tool functions
            pipeline_config: Pipeline configuration (includes model configs per step)
            mutex: Per-customer lock (defaults to an in-process lock)
            executors: Optional pre-configured executors by step name (for testing)
            field_extractor: Optional field extractor overriding configuration
        """
        self._config_store = config_store
        self._session_store = session_store
        self._variable_store = variable_store
        self._config = pipeline_config or PipelineConfig()
        self._mutex = mutex or InMemoryCustomerMutex()
        self._tool_registry = tool_registry or ToolRegistry()

        executors = dict(executors or {})
        for step in ("matching", "field_extraction", "generation"):
            if step not in executors:
                step_config = getattr(self._config, step)
                timeout = getattr(step_config, "timeout_ms", 60000) / 1000
                executors[step] = create_executor_from_step_config(step_config, step, timeout)
        self._executors = executors

        matching = self._config.matching
        self._evaluator = evaluator or LLMConditionEvaluator(
            llm_executor=executors["matching"],
            batch_size=matching.batch_size,
            timeout_ms=matching.timeout_ms,
        )

        if field_extractor is None and self._config.field_extraction.enabled:
            if self._config.field_extraction.mode == "llm":
                field_extractor = LLMFieldExtractor(
                    llm_executor=executors["field_extraction"],
                    history_turns=matching.history_turns,
                )
            else:
                field_extractor = PatternFieldExtractor()

        self._context_builder = ContextBuilder(
            field_extractor=field_extractor,
            history_turns=matching.history_turns,
        )
        self._guideline_matcher = GuidelineMatcher(
            evaluator=self._evaluator,
            min_confidence=matching.min_confidence,
        )
        self._conflict_resolver = ConflictResolver()
        self._journey_engine = JourneyEngine(
            evaluator=self._evaluator,
            max_hops=self._config.journeys.max_hops,
            min_confidence=matching.min_confidence,
        )
        self._tool_caller = ToolCaller(
            registry=self._tool_registry,
            timeout_ms=self._config.tool_execution.timeout_ms,
            max_parallel=self._config.tool_execution.max_parallel,
        )
        self._variable_refresher = VariableRefresher(
            store=variable_store,
            tool_caller=ToolCaller(
                registry=self._tool_registry,
                timeout_ms=self._config.variables.refresh_timeout_ms,
                max_parallel=self._config.tool_execution.max_parallel,
            ),
            enabled=self._config.variables.refresh_enabled,
        )

        composition = self._config.composition
        enforcement = self._config.enforcement
        self._fallback_handler = FallbackHandler(composition.deflection_message)
        self._composer = MessageComposer(
            generator=ResponseGenerator(
                llm_executor=executors["generation"],
                prompt_builder=PromptBuilder(max_history_turns=matching.history_turns),
                default_temperature=self._config.generation.temperature,
                default_max_tokens=self._config.generation.max_tokens,
            ),
            critic=ResponseCritic(
                evaluator=self._evaluator,
                semantic_check_enabled=enforcement.semantic_check_enabled,
                max_retries=enforcement.max_retries,
                min_confidence=matching.min_confidence,
            ),
            fallback=self._fallback_handler,
            signal_matcher=SignalMatcher(threshold=composition.signal_threshold),
            default_mode=composition.default_mode,
            no_match_message=composition.no_match_message,
            enforcement_enabled=enforcement.enabled,
            self_critique_enabled=enforcement.self_critique_enabled,
        )

    @property
    def tool_registry(self) -> ToolRegistry:
        return self._tool_registry

    async def process_turn(
        self,
        message: str,
        *,
        tenant_id: UUID,
        agent_id: UUID,
        customer_id: str,
        session_id: UUID | None = None,
        customer_tags: list[str] | None = None,
    ) -> AlignmentResult:
        """Process a customer message through the pipeline.

        Args:
            message: The customer's message
            tenant_id: Tenant identifier
            agent_id: Agent identifier
            customer_id: Customer identifier
            session_id: Session to continue; defaults to the customer's active session
            customer_tags: Customer tags, in priority order

        Returns:
            AlignmentResult with the reply and all intermediate results

        Raises:
            CustomerBusyError: If another turn for the customer holds the lock
            AgentNotFoundError: If the agent does not exist
        """
        start_time = time.perf_counter()
        key = build_customer_key(tenant_id, agent_id, customer_id)

        async with self._mutex.acquire(key) as acquired:
            if not acquired:
                logger.warning("customer_busy", tenant_id=str(tenant_id), customer_id=customer_id)
                raise CustomerBusyError(f"Another turn is in progress for customer {customer_id}")

            snapshot = await self._load_snapshot(tenant_id, agent_id)
            session = await self._load_session(tenant_id, agent_id, customer_id, session_id)
            turn_id = uuid4()

            set_execution_context(
                ExecutionContext(
                    tenant_id=tenant_id,
                    agent_id=agent_id,
                    session_id=session.session_id,
                    turn_id=turn_id,
                    customer_id=customer_id,
                )
            )
            try:
                result = await self._process_turn_impl(
                    message=message,
                    session=session,
                    snapshot=snapshot,
                    turn_id=turn_id,
                    customer_tags=list(customer_tags or []),
                    start_time=start_time,
                )
            finally:
                clear_execution_context()

        TURNS_PROCESSED.labels(
            tenant_id=str(tenant_id),
            agent_id=str(agent_id),
            outcome="deflected" if result.deflected else "ok",
        ).inc()
        TURN_LATENCY.labels(tenant_id=str(tenant_id), agent_id=str(agent_id)).observe(
            result.total_time_ms / 1000
        )
        return result

    async def _process_turn_impl(
        self,
        message: str,
        session: Session,
        snapshot: AgentSnapshot,
        turn_id: UUID,
        customer_tags: list[str],
        start_time: float,
    ) -> AlignmentResult:
        """Run the pipeline, retrying the whole turn while matching is unavailable."""
        logger.info(
            "processing_turn",
            session_id=str(session.session_id),
            tenant_id=str(session.tenant_id),
            agent_id=str(session.agent_id),
            turn_number=session.turn_count + 1,
            message_length=len(message),
        )

        max_attempts = self._config.matching.max_turn_attempts
        last_error: MatchingUnavailableError | None = None

        for attempt in range(1, max_attempts + 1):
            transaction = TurnTransaction(
                session, self._session_store, self._variable_store, turn_id=turn_id
            )
            try:
                result = await self._run_pipeline(
                    message=message,
                    transaction=transaction,
                    snapshot=snapshot,
                    customer_tags=customer_tags,
                    attempt=attempt,
                    start_time=start_time,
                )
            except MatchingUnavailableError as e:
                transaction.discard()
                last_error = e
                MATCHING_RETRIES.labels(
                    tenant_id=str(session.tenant_id), agent_id=str(session.agent_id)
                ).inc()
                logger.warning(
                    "matching_unavailable",
                    session_id=str(session.session_id),
                    attempt=attempt,
                    max_attempts=max_attempts,
                    error=str(e),
                )
                continue
            except BaseException:
                transaction.discard()
                raise

            await transaction.commit()
            result.total_time_ms = (time.perf_counter() - start_time) * 1000

            logger.info(
                "turn_processed",
                session_id=str(session.session_id),
                turn_id=str(turn_id),
                attempt=attempt,
                total_time_ms=result.total_time_ms,
                matched_guidelines=len(result.matched_guidelines),
                journey_action=(
                    result.journey_decision.action.value if result.journey_decision else None
                ),
                deflected=result.deflected,
            )
            return result

        return await self._deflect_turn(
            message=message,
            session=session,
            turn_id=turn_id,
            attempts=max_attempts,
            error=last_error,
            start_time=start_time,
        )

    async def _run_pipeline(
        self,
        message: str,
        transaction: TurnTransaction,
        snapshot: AgentSnapshot,
        customer_tags: list[str],
        attempt: int,
        start_time: float,
    ) -> AlignmentResult:
        session = transaction.session
        timings: list[PipelineStepTiming] = []
        diagnostics: list[Diagnostic] = []

        transaction.stage_event(EventKind.MESSAGE, EventSource.CUSTOMER, {"message": message})

        # Step 1: Variable refresh
        step_start, step_clock = utc_now(), time.perf_counter()
        variable_snapshot = await self._variable_refresher.load(
            tenant_id=session.tenant_id,
            agent_id=session.agent_id,
            variables=snapshot.variables,
            customer_id=session.customer_id,
            customer_tags=customer_tags,
            tool_context=ToolContext(
                tenant_id=session.tenant_id,
                agent_id=session.agent_id,
                session_id=session.session_id,
                customer_id=session.customer_id,
                customer_tags=customer_tags,
                message=message,
                facts=dict(session.facts),
                session_data=dict(session.data),
            ),
        )
        transaction.stage_variable_values(variable_snapshot.refreshed)
        diagnostics.extend(variable_snapshot.diagnostics)
        self._record_timing(timings, "variable_refresh", step_start, step_clock)

        # Step 2: Context building
        step_start, step_clock = utc_now(), time.perf_counter()
        events = await self._session_store.list_events(
            session.session_id,
            kinds=[EventKind.MESSAGE],
            limit=self._config.matching.history_turns * 2,
        )
        context = await self._context_builder.build(
            message=message,
            session=session,
            events=events,
            glossary=snapshot.glossary,
            fields=snapshot.fields,
            variables=variable_snapshot.values,
            customer_tags=customer_tags,
        )
        if context.extracted_facts:
            transaction.stage_facts(context.extracted_facts)
        self._record_timing(timings, "context_building", step_start, step_clock)

        # Step 3: Guideline matching
        step_start, step_clock = utc_now(), time.perf_counter()
        active_journey = snapshot.get_journey(session.active_journey_id)
        self._describe_position(context, active_journey, session.active_state_id)
        eligible = self._guideline_matcher.eligible(
            snapshot.guidelines, session.active_journey_id, session.active_state_id
        )
        match_result = await self._guideline_matcher.match(
            context, eligible, snapshot.journeys, session.active_journey_id
        )
        GUIDELINES_MATCHED.labels(
            tenant_id=str(session.tenant_id), agent_id=str(session.agent_id)
        ).observe(len(match_result.matched))
        self._record_timing(timings, "guideline_matching", step_start, step_clock)

        # Step 4: Conflict resolution
        resolution = self._conflict_resolver.resolve(match_result.matched, snapshot.relationships)
        diagnostics.extend(resolution.diagnostics)

        # Step 5: Journey navigation, running tool states as they come
        step_start, step_clock = utc_now(), time.perf_counter()
        tool_results: list[ToolResult] = []
        decision = await self._journey_engine.navigate(
            journeys=snapshot.journeys,
            active_journey_id=session.active_journey_id,
            active_state_id=session.active_state_id,
            matched_journeys=match_result.matched_journeys,
            abandon=any(m.guideline.abandons_journey for m in resolution.active),
            context=context,
        )
        decision = await self._run_journey_tools(
            decision, snapshot, context, session, customer_tags, tool_results
        )
        diagnostics.extend(decision.diagnostics)
        JOURNEY_DECISIONS.labels(action=decision.action.value).inc()
        self._record_timing(timings, "journey_navigation", step_start, step_clock)

        journey = snapshot.get_journey(decision.journey_id)
        state = journey.get_state(decision.target_state_id) if journey else None
        self._describe_position(context, journey, decision.target_state_id)

        # Step 6: Guideline tools
        step_start, step_clock = utc_now(), time.perf_counter()
        requests = [
            ToolCallRequest(tool_id=tool_id, group_id=f"guideline:{m.guideline.id}")
            for m in resolution.active
            for tool_id in m.guideline.tool_ids
        ]
        if requests:
            results = await self._tool_caller.call(
                requests, self._tool_context(session, context, customer_tags)
            )
            for result in results:
                if result.success:
                    context.merge_tool_data(result.tool_id, result.data)
            tool_results.extend(results)
        self._record_timing(
            timings,
            "tool_execution",
            step_start,
            step_clock,
            skip_reason=None if requests else "No tools attached to matched guidelines",
        )

        self._stage_tool_updates(transaction, snapshot, context, customer_tags, tool_results)

        # Step 7: Composition and self-critique
        step_start, step_clock = utc_now(), time.perf_counter()
        composition = await self._composer.compose(
            context=context,
            guidelines=resolution.active,
            suppressed=resolution.suppressed,
            tool_results=tool_results,
            canned_responses=snapshot.canned_responses,
            agent_mode=snapshot.agent.composition_mode,
            journey=journey,
            state=state,
        )
        diagnostics.extend(composition.trace.diagnostics)
        self._record_timing(timings, "composition", step_start, step_clock)

        self._stage_outcome(transaction, decision, tool_results, composition)

        return AlignmentResult(
            turn_id=transaction.turn_id,
            session_id=session.session_id,
            tenant_id=session.tenant_id,
            agent_id=session.agent_id,
            customer_id=session.customer_id,
            user_message=message,
            context=context,
            matched_guidelines=resolution.active,
            suppressed_guidelines=resolution.suppressed,
            journey_decision=decision,
            tool_results=tool_results,
            trace=composition.trace,
            enforcement=composition.enforcement,
            diagnostics=diagnostics,
            response=composition.response,
            deflected=composition.trace.deflected,
            attempts=attempt,
            pipeline_timings=timings,
            total_time_ms=(time.perf_counter() - start_time) * 1000,
        )

    async def _run_journey_tools(
        self,
        decision: JourneyDecision,
        snapshot: AgentSnapshot,
        context: Context,
        session: Session,
        customer_tags: list[str],
        tool_results: list[ToolResult],
    ) -> JourneyDecision:
        """Run each TOOL state the walk suspends on, then resume the walk."""
        while decision.is_pending_tool:
            journey = snapshot.get_journey(decision.journey_id)
            if journey is None:
                raise RuntimeError(f"Journey {decision.journey_id} disappeared mid-turn")
            state = journey.get_state(decision.pending_tool_state_id)
            if state is None or state.tool_id is None:
                raise RuntimeError(f"State {decision.pending_tool_state_id} has no tool to run")

            [result] = await self._tool_caller.call(
                [ToolCallRequest(tool_id=state.tool_id, group_id=f"state:{journey.id}:{state.id}")],
                self._tool_context(session, context, customer_tags),
            )
            tool_results.append(result)
            if result.success:
                context.merge_tool_data(result.tool_id, result.data)

            decision = await self._journey_engine.resume(
                journey, decision, context, tool_succeeded=result.success
            )
        return decision

    def _describe_position(
        self,
        context: Context,
        journey: Journey | None,
        state_id: str | None,
    ) -> None:
        state: JourneyState | None = journey.get_state(state_id) if journey else None
        context.journey_title = journey.title if journey else None
        context.state_instruction = state.instruction if state else None

    def _tool_context(
        self,
        session: Session,
        context: Context,
        customer_tags: list[str],
    ) -> ToolContext:
        return ToolContext(
            tenant_id=session.tenant_id,
            agent_id=session.agent_id,
            session_id=session.session_id,
            customer_id=session.customer_id,
            customer_tags=customer_tags,
            message=context.message,
            facts=dict(context.facts),
            variables=dict(context.variables),
            session_data=dict(context.session_data),
            tool_data=dict(context.tool_data),
        )

    def _stage_tool_updates(
        self,
        transaction: TurnTransaction,
        snapshot: AgentSnapshot,
        context: Context,
        customer_tags: list[str],
        tool_results: list[ToolResult],
    ) -> None:
        """Stage session and variable updates carried by successful tool results."""
        variables = {v.name: v for v in snapshot.variables if v.enabled}
        session_updates: dict[str, Any] = {}
        values: list[ContextVariableValue] = []

        for result in tool_results:
            if not result.success:
                continue
            session_updates.update(result.session_updates)
            for name, value in result.variable_updates.items():
                variable = variables.get(name)
                if variable is None:
                    logger.warning("unknown_variable_update", tool_id=result.tool_id, variable=name)
                    continue
                if variable.scope == VariableScope.CUSTOMER:
                    key = context.customer_id
                elif customer_tags:
                    key = customer_tags[0]
                else:
                    logger.warning("tag_variable_without_tags", variable=name)
                    continue
                values.append(ContextVariableValue(variable_name=name, key=key, value=value))
                context.variables[name] = value

        if session_updates:
            transaction.stage_session_data(session_updates)
            context.session_data.update(session_updates)
        transaction.stage_variable_values(values)

    def _stage_outcome(
        self,
        transaction: TurnTransaction,
        decision: JourneyDecision,
        tool_results: list[ToolResult],
        composition: CompositionResult,
    ) -> None:
        for result in tool_results:
            transaction.stage_event(
                EventKind.TOOL,
                EventSource.SYSTEM,
                {
                    "tool_id": result.tool_id,
                    "group_id": result.group_id,
                    "outcome": result.outcome.value,
                    "error": result.error,
                },
            )

        if decision.journey_id is not None and decision.state_changed:
            transaction.stage_event(
                EventKind.JOURNEY,
                EventSource.SYSTEM,
                {
                    "journey_id": str(decision.journey_id),
                    "action": decision.action.value,
                    "from_state": decision.source_state_id,
                    "to_state": decision.target_state_id,
                    "skipped": decision.skipped_state_ids,
                },
            )

        trace = composition.trace
        transaction.stage_event(
            EventKind.MESSAGE,
            EventSource.AGENT,
            {
                "message": composition.response,
                "mode": trace.mode.value,
                "canned_response_id": (
                    str(trace.canned_response_id) if trace.canned_response_id else None
                ),
                "deflected": trace.deflected,
            },
        )
        transaction.stage_journey(decision, max_history=self._config.journeys.max_history)
        transaction.stage_turn()

    async def _deflect_turn(
        self,
        message: str,
        session: Session,
        turn_id: UUID,
        attempts: int,
        error: MatchingUnavailableError | None,
        start_time: float,
    ) -> AlignmentResult:
        """Reply with the generic deflection after every attempt failed.

        Only the two message events and the turn count are committed.
        """
        logger.error(
            "turn_deflected",
            session_id=str(session.session_id),
            turn_id=str(turn_id),
            attempts=attempts,
            error=str(error) if error else None,
        )
        response = self._fallback_handler.deflect("matching_unavailable")

        transaction = TurnTransaction(
            session, self._session_store, self._variable_store, turn_id=turn_id
        )
        transaction.stage_event(EventKind.MESSAGE, EventSource.CUSTOMER, {"message": message})
        transaction.stage_event(
            EventKind.MESSAGE, EventSource.AGENT, {"message": response, "deflected": True}
        )
        transaction.stage_turn()
        await transaction.commit()

        return AlignmentResult(
            turn_id=turn_id,
            session_id=session.session_id,
            tenant_id=session.tenant_id,
            agent_id=session.agent_id,
            customer_id=session.customer_id,
            user_message=message,
            diagnostics=[
                Diagnostic(
                    kind=DiagnosticKind.MATCHING_UNAVAILABLE,
                    message=f"Matching unavailable after {attempts} attempts",
                    details={"error": str(error) if error else None},
                )
            ],
            response=response,
            deflected=True,
            attempts=attempts,
            total_time_ms=(time.perf_counter() - start_time) * 1000,
        )

    async def _load_snapshot(self, tenant_id: UUID, agent_id: UUID) -> AgentSnapshot:
        store = self._config_store
        agent = await store.get_agent(tenant_id, agent_id)
        if agent is None:
            raise AgentNotFoundError(f"Agent {agent_id} not found for tenant {tenant_id}")

        (
            guidelines,
            relationships,
            journeys,
            glossary,
            canned_responses,
            variables,
            fields,
        ) = await asyncio.gather(
            store.get_guidelines(tenant_id, agent_id),
            store.get_relationships(tenant_id, agent_id),
            store.get_journeys(tenant_id, agent_id),
            store.get_glossary_terms(tenant_id, agent_id),
            store.get_canned_responses(tenant_id, agent_id),
            store.get_variables(tenant_id, agent_id),
            store.get_fields(tenant_id, agent_id),
        )
        return AgentSnapshot(
            agent=agent,
            guidelines=guidelines,
            relationships=relationships,
            journeys=journeys,
            glossary=glossary,
            canned_responses=canned_responses,
            variables=variables,
            fields=fields,
        )

    async def _load_session(
        self,
        tenant_id: UUID,
        agent_id: UUID,
        customer_id: str,
        session_id: UUID | None,
    ) -> Session:
        """Load the session to continue, or start one on first contact.

        A new session is only saved when its first turn commits.
        """
        session = None
        if session_id is not None:
            session = await self._session_store.get(session_id)
            if session is not None and (
                session.tenant_id != tenant_id
                or session.agent_id != agent_id
                or session.customer_id != customer_id
            ):
                raise ValueError(f"Session {session_id} belongs to another conversation")
        else:
            session = await self._session_store.get_by_customer(tenant_id, agent_id, customer_id)

        if session is not None:
            return session

        logger.info("session_started", tenant_id=str(tenant_id), customer_id=customer_id)
        return Session(
            session_id=session_id or uuid4(),
            tenant_id=tenant_id,
            agent_id=agent_id,
            customer_id=customer_id,
        )

    def _record_timing(
        self,
        timings: list[PipelineStepTiming],
        step: str,
        started_at: datetime,
        clock_start: float,
        skip_reason: str | None = None,
    ) -> None:
        elapsed_ms = (time.perf_counter() - clock_start) * 1000
        timings.append(
            PipelineStepTiming(
                step=step,
                started_at=started_at,
                ended_at=utc_now(),
                duration_ms=elapsed_ms,
                skipped=skip_reason is not None,
                skip_reason=skip_reason,
            )
        )
        PIPELINE_STEP_LATENCY.labels(step=step).observe(elapsed_ms / 1000)
