"""Tool scheduling based on parameter dependencies."""

from parley.alignment.models import ToolDefinition
from parley.observability.logging import get_logger

logger = get_logger(__name__)


class ToolScheduler:
    """Orders the tools of one group into dependency waves.

    Tools in the same wave are independent of each other and may run
    concurrently. A tool depends on another when one of its parameters is
    bound to that tool's result (`from_tool`). Dependencies on tools outside
    the group are ignored here and resolved as missing by the caller.
    """

    def schedule(self, definitions: list[ToolDefinition]) -> list[list[ToolDefinition]]:
        """Group definitions into waves in topological order.

        Args:
            definitions: Tools requested for one group, in request order

        Returns:
            Waves of definitions; every tool appears after its dependencies
        """
        tool_map = {d.id: d for d in definitions}
        in_degree = {d.id: 0 for d in definitions}
        adjacency: dict[str, list[str]] = {d.id: [] for d in definitions}

        for definition in definitions:
            for dep in sorted(definition.depends_on):
                if dep in tool_map and dep != definition.id:
                    adjacency[dep].append(definition.id)
                    in_degree[definition.id] += 1

        # Kahn's algorithm, one wave per frontier
        waves: list[list[ToolDefinition]] = []
        frontier = [tid for tid in tool_map if in_degree[tid] == 0]
        scheduled = 0

        while frontier:
            waves.append([tool_map[tid] for tid in frontier])
            scheduled += len(frontier)
            next_frontier = []
            for current in frontier:
                for neighbor in adjacency[current]:
                    in_degree[neighbor] -= 1
                    if in_degree[neighbor] == 0:
                        next_frontier.append(neighbor)
            frontier = [tid for tid in tool_map if tid in next_frontier]

        if scheduled < len(definitions):
            logger.warning(
                "dependency_cycle_detected",
                tools=list(tool_map),
                sorted_count=scheduled,
            )
            return [[d] for d in definitions]

        return waves
