"""Response generation for alignment pipeline."""

import time

from parley.alignment.context.models import Context
from parley.alignment.enforcement.models import ConstraintViolation
from parley.alignment.execution.models import ToolResult
from parley.alignment.generation.models import GenerationResult
from parley.alignment.generation.prompt_builder import PromptBuilder
from parley.alignment.models import MatchedGuideline
from parley.observability.logging import get_logger
from parley.providers.llm import LLMExecutor, LLMMessage, LLMResponse

logger = get_logger(__name__)


class ResponseGenerator:
    """Generate reply drafts with the generation step's LLMExecutor.

    Raises ProviderError when no model produced a reply; the composer
    turns that into a deflection.
    """

    def __init__(
        self,
        llm_executor: LLMExecutor,
        prompt_builder: PromptBuilder | None = None,
        default_temperature: float = 0.7,
        default_max_tokens: int = 1024,
    ) -> None:
        """Initialize the response generator.

        Args:
            llm_executor: Executor for LLM generation
            prompt_builder: Builder for assembling prompts
            default_temperature: Default sampling temperature
            default_max_tokens: Default max tokens for response
        """
        self._llm_executor = llm_executor
        self._prompt_builder = prompt_builder or PromptBuilder()
        self._default_temperature = default_temperature
        self._default_max_tokens = default_max_tokens

    async def generate(
        self,
        context: Context,
        guidelines: list[MatchedGuideline],
        tool_results: list[ToolResult] | None = None,
        violations: list[ConstraintViolation] | None = None,
    ) -> GenerationResult:
        """Generate a reply draft.

        Args:
            context: Turn context
            guidelines: Active guidelines
            tool_results: Results from tool execution
            violations: Problems with a previous draft, when regenerating

        Returns:
            GenerationResult with the draft and token counts
        """
        start_time = time.perf_counter()

        system_prompt = self._prompt_builder.build_system_prompt(
            guidelines=guidelines,
            context=context,
            tool_results=tool_results,
            violations=violations,
        )
        messages = self._prompt_builder.build_messages(
            system_prompt=system_prompt,
            user_message=context.message,
            history=context.history,
        )

        llm_response = await self._llm_executor.generate(
            messages=messages,
            temperature=self._default_temperature,
            max_tokens=self._default_max_tokens,
        )
        return self._result(llm_response, start_time, regenerated=violations is not None)

    async def restyle(self, draft: str, approved: str) -> GenerationResult:
        """Rewrite a draft toward an approved reply."""
        start_time = time.perf_counter()
        prompt = self._prompt_builder.build_restyle_prompt(draft=draft, approved=approved)
        llm_response = await self._llm_executor.generate(
            messages=[LLMMessage(role="user", content=prompt)],
            temperature=0.2,
            max_tokens=self._default_max_tokens,
        )
        return self._result(llm_response, start_time, regenerated=False)

    def _result(
        self,
        llm_response: LLMResponse,
        start_time: float,
        *,
        regenerated: bool,
    ) -> GenerationResult:
        elapsed_ms = (time.perf_counter() - start_time) * 1000
        prompt_tokens, completion_tokens = llm_response.token_counts

        logger.debug(
            "response_generated",
            response_length=len(llm_response.content),
            elapsed_ms=elapsed_ms,
            model=llm_response.model,
            regenerated=regenerated,
        )

        return GenerationResult(
            response=llm_response.content.strip(),
            model=llm_response.model,
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            generation_time_ms=elapsed_ms,
        )
