"""Tool execution with timeouts, dependency waves and security cut-off."""

import asyncio
import time
from collections import OrderedDict
from typing import Any

from parley.alignment.execution.models import (
    ToolCallRequest,
    ToolContext,
    ToolOutcome,
    ToolOutput,
    ToolResult,
)
from parley.alignment.execution.parameter_resolver import ParameterResolver
from parley.alignment.execution.registry import ToolRegistry
from parley.alignment.execution.tool_scheduler import ToolScheduler
from parley.errors import ToolExecutionError, ToolSecurityViolation
from parley.observability.logging import get_logger
from parley.observability.metrics import TOOL_CALLS, TOOL_LATENCY

logger = get_logger(__name__)


class ToolCaller:
    """Invoke registered tools and collect one ToolResult per call.

    Supports:
    - Concurrent execution of independent calls, bounded by max_parallel
    - Dependency waves for calls bound to another tool's result
    - Per-tool timeout handling
    - Cancelling the rest of a group on a security violation

    Tools never raise out of this class; every failure becomes a result.
    """

    def __init__(
        self,
        registry: ToolRegistry,
        timeout_ms: int = 5000,
        max_parallel: int = 5,
        resolver: ParameterResolver | None = None,
        scheduler: ToolScheduler | None = None,
    ) -> None:
        """Initialize the tool caller.

        Args:
            registry: Registered tools
            timeout_ms: Timeout for tools that do not declare their own
            max_parallel: Maximum concurrent tool executions
            resolver: Parameter resolver
            scheduler: Dependency scheduler
        """
        self._registry = registry
        self._timeout_ms = timeout_ms
        self._semaphore = asyncio.Semaphore(max_parallel)
        self._resolver = resolver or ParameterResolver()
        self._scheduler = scheduler or ToolScheduler()

    async def call(
        self,
        requests: list[ToolCallRequest],
        context: ToolContext,
    ) -> list[ToolResult]:
        """Run the requested calls.

        Groups run concurrently. Within a group, calls run in dependency
        waves. Repeated requests for the same tool in a group run once.

        Args:
            requests: Calls to make
            context: Conversation view handed to each tool

        Returns:
            Results in request order
        """
        if not requests:
            return []

        groups: OrderedDict[str, list[ToolCallRequest]] = OrderedDict()
        for request in requests:
            group = groups.setdefault(request.group_id, [])
            if all(r.tool_id != request.tool_id for r in group):
                group.append(request)

        group_results = await asyncio.gather(
            *(self._call_group(group_id, group, context) for group_id, group in groups.items())
        )

        by_key = {
            (r.group_id, r.tool_id): r for results in group_results for r in results
        }
        ordered: list[ToolResult] = []
        for group_id, group in groups.items():
            ordered.extend(by_key[(group_id, r.tool_id)] for r in group)
        return ordered

    async def _call_group(
        self,
        group_id: str,
        requests: list[ToolCallRequest],
        context: ToolContext,
    ) -> list[ToolResult]:
        results: dict[str, ToolResult] = {}
        known = []
        for request in requests:
            if self._registry.has(request.tool_id):
                known.append(request)
            else:
                logger.warning("tool_not_found", tool_id=request.tool_id, group_id=group_id)
                results[request.tool_id] = self._record(
                    ToolResult(
                        tool_id=request.tool_id,
                        group_id=group_id,
                        outcome=ToolOutcome.TOOL_ERROR,
                        error="tool_not_found",
                    )
                )

        explicit = {r.tool_id: r.arguments for r in known}
        waves = self._scheduler.schedule([self._registry.get(r.tool_id).definition for r in known])

        violated = False
        for wave in waves:
            if violated:
                for definition in wave:
                    results[definition.id] = self._skipped(
                        definition.id, group_id, "security_violation"
                    )
                continue

            pending: dict[asyncio.Task[ToolResult], str] = {}
            for definition in wave:
                resolution = self._resolver.resolve(
                    definition, context, upstream=results, explicit=explicit[definition.id]
                )
                if resolution.failed_dependencies:
                    results[definition.id] = self._skipped(
                        definition.id,
                        group_id,
                        f"dependency_failed:{resolution.failed_dependencies[0]}",
                    )
                elif resolution.missing_customer:
                    results[definition.id] = self._record(
                        ToolResult(
                            tool_id=definition.id,
                            group_id=group_id,
                            outcome=ToolOutcome.DEFERRED,
                            arguments=resolution.arguments,
                            missing_parameters=resolution.missing_customer,
                        )
                    )
                elif resolution.missing_context:
                    results[definition.id] = self._record(
                        ToolResult(
                            tool_id=definition.id,
                            group_id=group_id,
                            outcome=ToolOutcome.MISSING_PARAMETER,
                            arguments=resolution.arguments,
                            missing_parameters=resolution.missing_context,
                        )
                    )
                else:
                    task = asyncio.create_task(
                        self._run(definition.id, group_id, resolution.arguments, context)
                    )
                    pending[task] = definition.id

            try:
                while pending:
                    done, _ = await asyncio.wait(pending, return_when=asyncio.FIRST_COMPLETED)
                    for task in done:
                        result = task.result()
                        results[pending.pop(task)] = result
                        if result.outcome == ToolOutcome.SECURITY_VIOLATION:
                            violated = True
                    if violated and pending:
                        for task, tool_id in pending.items():
                            task.cancel()
                            results[tool_id] = self._skipped(
                                tool_id, group_id, "security_violation"
                            )
                        await asyncio.gather(*pending, return_exceptions=True)
                        pending = {}
            except asyncio.CancelledError:
                for task in pending:
                    task.cancel()
                raise

        return [results[r.tool_id] for r in requests]

    async def _run(
        self,
        tool_id: str,
        group_id: str,
        arguments: dict[str, Any],
        context: ToolContext,
    ) -> ToolResult:
        """Execute one tool with timeout and timing."""
        registered = self._registry.get(tool_id)
        definition = registered.definition
        timeout_ms = definition.timeout_ms or self._timeout_ms
        start_time = time.perf_counter()

        def elapsed() -> float:
            return (time.perf_counter() - start_time) * 1000

        try:
            async with self._semaphore:
                output = await asyncio.wait_for(
                    registered.function(context, **arguments),
                    timeout=timeout_ms / 1000,
                )
        except TimeoutError:
            logger.warning("tool_timeout", tool_id=tool_id, timeout_ms=timeout_ms)
            return self._record(
                ToolResult(
                    tool_id=tool_id,
                    group_id=group_id,
                    outcome=ToolOutcome.TIMEOUT,
                    arguments=arguments,
                    error="timeout",
                    retryable=definition.retryable_on_timeout,
                    execution_time_ms=elapsed(),
                )
            )
        except ToolSecurityViolation as e:
            logger.warning("tool_security_violation", tool_id=tool_id, group_id=group_id)
            return self._record(
                ToolResult(
                    tool_id=tool_id,
                    group_id=group_id,
                    outcome=ToolOutcome.SECURITY_VIOLATION,
                    arguments=arguments,
                    error=str(e),
                    execution_time_ms=elapsed(),
                )
            )
        except ToolExecutionError as e:
            logger.info("tool_error", tool_id=tool_id, error=str(e), retryable=e.retryable)
            return self._record(
                ToolResult(
                    tool_id=tool_id,
                    group_id=group_id,
                    outcome=ToolOutcome.TOOL_ERROR,
                    arguments=arguments,
                    error=str(e),
                    retryable=e.retryable,
                    execution_time_ms=elapsed(),
                )
            )
        except Exception as e:  # noqa: BLE001
            logger.exception("tool_crashed", tool_id=tool_id)
            return self._record(
                ToolResult(
                    tool_id=tool_id,
                    group_id=group_id,
                    outcome=ToolOutcome.TOOL_ERROR,
                    arguments=arguments,
                    error=str(e) or type(e).__name__,
                    execution_time_ms=elapsed(),
                )
            )

        if not isinstance(output, ToolOutput):
            output = ToolOutput(data=output)

        logger.debug(
            "tool_executed",
            tool_id=tool_id,
            group_id=group_id,
            execution_time_ms=round(elapsed(), 2),
        )
        return self._record(
            ToolResult(
                tool_id=tool_id,
                group_id=group_id,
                outcome=ToolOutcome.SUCCESS,
                arguments=arguments,
                data=output.data,
                canned_fields=output.canned_fields,
                variable_updates=output.variable_updates,
                session_updates=output.session_updates,
                execution_time_ms=elapsed(),
            )
        )

    def _skipped(self, tool_id: str, group_id: str, reason: str) -> ToolResult:
        return self._record(
            ToolResult(
                tool_id=tool_id,
                group_id=group_id,
                outcome=ToolOutcome.SKIPPED,
                error=reason,
            )
        )

    def _record(self, result: ToolResult) -> ToolResult:
        TOOL_CALLS.labels(tool_id=result.tool_id, outcome=result.outcome.value).inc()
        if result.execution_time_ms:
            TOOL_LATENCY.labels(tool_id=result.tool_id).observe(result.execution_time_ms / 1000)
        return result
