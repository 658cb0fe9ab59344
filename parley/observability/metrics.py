"""Prometheus metrics for Parley.

Turn throughput and latency, matching, journey navigation, tool
outcomes and the deflection paths.
"""

from prometheus_client import Counter, Histogram

TURNS_PROCESSED = Counter(
    "parley_turns_processed_total",
    "Total number of customer turns processed",
    labelnames=["tenant_id", "agent_id", "outcome"],
)

TURN_LATENCY = Histogram(
    "parley_turn_latency_seconds",
    "End-to-end turn latency in seconds",
    labelnames=["tenant_id", "agent_id"],
    buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
)

PIPELINE_STEP_LATENCY = Histogram(
    "parley_pipeline_step_latency_seconds",
    "Latency of individual pipeline steps",
    labelnames=["step"],
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5),
)

GUIDELINES_MATCHED = Histogram(
    "parley_guidelines_matched",
    "Number of guidelines matched per turn",
    labelnames=["tenant_id", "agent_id"],
    buckets=(0, 1, 2, 3, 5, 10, 20, 50),
)

MATCHING_RETRIES = Counter(
    "parley_matching_retries_total",
    "Turn attempts aborted because the matching oracle was unavailable",
    labelnames=["tenant_id", "agent_id"],
)

JOURNEY_DECISIONS = Counter(
    "parley_journey_decisions_total",
    "Journey navigation decisions by action",
    labelnames=["action"],
)

TOOL_CALLS = Counter(
    "parley_tool_calls_total",
    "Tool calls by outcome",
    labelnames=["tool_id", "outcome"],
)

TOOL_LATENCY = Histogram(
    "parley_tool_latency_seconds",
    "Tool execution latency in seconds",
    labelnames=["tool_id"],
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0),
)

ENFORCEMENT_VIOLATIONS = Counter(
    "parley_enforcement_violations_total",
    "Self-critique violations by kind",
    labelnames=["violation_type"],
)

DEFLECTIONS = Counter(
    "parley_deflections_total",
    "Replies replaced by a fallback or generic deflection",
    labelnames=["reason"],
)
