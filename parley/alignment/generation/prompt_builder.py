"""Prompt building for response generation.

Assembles guidelines, journey state, known facts and tool results into
the system prompt for the reply.
"""

from pathlib import Path

from parley.alignment.context.models import Context, Turn
from parley.alignment.enforcement.models import ConstraintViolation
from parley.alignment.execution.models import ToolOutcome, ToolResult
from parley.alignment.models import Criticality, MatchedGuideline
from parley.providers.llm import LLMMessage

_SYSTEM_PROMPT_PATH = Path(__file__).parent / "prompts" / "system_prompt.txt"
_RESTYLE_PROMPT_PATH = Path(__file__).parent / "prompts" / "restyle.txt"


class PromptBuilder:
    """Build prompts for response generation.

    Assembles all context into a structured prompt including:
    - Active guidelines and their instructions
    - The current journey state's instruction
    - Domain terms and known facts
    - Tool results, including parameters still to ask for
    """

    def __init__(
        self,
        system_template: str | None = None,
        restyle_template: str | None = None,
        max_history_turns: int = 10,
    ) -> None:
        """Initialize the prompt builder.

        Args:
            system_template: Optional custom system prompt template
            restyle_template: Optional custom restyle prompt template
            max_history_turns: Maximum history turns to include
        """
        self._system_template = system_template or _SYSTEM_PROMPT_PATH.read_text()
        self._restyle_template = restyle_template or _RESTYLE_PROMPT_PATH.read_text()
        self._max_history_turns = max_history_turns

    def build_system_prompt(
        self,
        guidelines: list[MatchedGuideline],
        context: Context,
        tool_results: list[ToolResult] | None = None,
        violations: list[ConstraintViolation] | None = None,
    ) -> str:
        """Build the system prompt with all context.

        Args:
            guidelines: Active guidelines for this turn
            context: Turn context
            tool_results: Results from tool execution
            violations: Problems with a previous draft, when regenerating

        Returns:
            Complete system prompt string
        """
        prompt = self._system_template.format(
            guidelines_section=self._build_guidelines_section(guidelines),
            journey_section=self._build_journey_section(context),
            context_section=self._build_context_section(context),
            tool_results_section=self._build_tool_results_section(tool_results),
        )

        if violations:
            prompt += "\n\n" + self._build_violations_section(violations)

        return prompt

    def build_messages(
        self,
        system_prompt: str,
        user_message: str,
        history: list[Turn] | None = None,
    ) -> list[LLMMessage]:
        """Build the message list for the LLM."""
        messages = [LLMMessage(role="system", content=system_prompt)]

        if history:
            for turn in history[-self._max_history_turns :]:
                role = "user" if turn.role == "customer" else "assistant"
                messages.append(LLMMessage(role=role, content=turn.content))

        messages.append(LLMMessage(role="user", content=user_message))
        return messages

    def build_restyle_prompt(self, draft: str, approved: str) -> str:
        return self._restyle_template.format(draft=draft, approved=approved)

    def _build_guidelines_section(self, guidelines: list[MatchedGuideline]) -> str:
        instructed = [m for m in guidelines if not m.guideline.is_observation]
        if not instructed:
            return ""

        lines = ["## Guidelines", "Follow these instructions when responding:", ""]
        for i, matched in enumerate(instructed, 1):
            guideline = matched.guideline
            lines.append(f"{i}. When {guideline.condition}: {guideline.action}")
            if guideline.criticality == Criticality.HIGH:
                lines.append("   [!] Critical - must be followed exactly")
        return "\n".join(lines)

    def _build_journey_section(self, context: Context) -> str:
        if not context.state_instruction:
            return ""

        lines = ["## Current Step"]
        if context.journey_title:
            lines.append(f"You are helping with: {context.journey_title}")
        lines.append(f"Now: {context.state_instruction}")
        return "\n".join(lines)

    def _build_context_section(self, context: Context) -> str:
        lines = []

        if context.glossary_terms:
            lines.append("## Domain Terminology")
            for term in context.glossary_terms:
                lines.append(f"**{term.name}**: {term.description}")

        if context.facts:
            if lines:
                lines.append("")
            lines.append("## What the Customer Told Us")
            for name, value in context.facts.items():
                lines.append(f"- {name}: {value}")

        return "\n".join(lines)

    def _build_tool_results_section(self, tool_results: list[ToolResult] | None) -> str:
        if not tool_results:
            return ""

        lines = ["## Tool Results", "Use this information in your response:", ""]
        for result in tool_results:
            if result.success:
                lines.append(f"- {result.tool_id}: {result.data}")
            elif result.outcome in (ToolOutcome.MISSING_PARAMETER, ToolOutcome.DEFERRED):
                needed = ", ".join(result.missing_parameters)
                lines.append(f"- {result.tool_id}: not run yet; ask the customer for {needed}")
            elif result.outcome == ToolOutcome.SKIPPED:
                continue
            else:
                lines.append(f"- {result.tool_id}: unavailable right now")
        return "\n".join(lines)

    def _build_violations_section(self, violations: list[ConstraintViolation]) -> str:
        lines = [
            "## Correction Required",
            "Your previous reply broke these rules. Write a new reply that does not:",
            "",
        ]
        for violation in violations:
            lines.append(f"- {violation.guideline_name}: {violation.details}")
        return "\n".join(lines)
