"""SynthesisClient: aggregated signals -> FunctionIntelligence.

Always returns a result. When the LLM stays unavailable after all retries,
rejects the request, or replies in the wrong shape, the narrative fields are
replaced by ``SYNTHESIS_UNAVAILABLE`` and the failure reason is recorded.
"""

import time
from datetime import datetime, timezone
from typing import Callable

from ..exceptions import ReplyFormatError, SynthesisError, TransientLLMError
from ..logging_config import get_logger
from ..models import (
    SYNTHESIS_UNAVAILABLE,
    DegradationNote,
    DependencySummary,
    FunctionIntelligence,
    IntentNarrative,
)
from .llm import LLMService
from .prompt import ComplexityInputs, NarrativeInputs, PromptBuilder, StructuralInputs
from .reply import parse_reply

logger = get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SynthesisClient:
    """Build the prompt, call the LLM with retry/backoff, parse the reply.

    Args:
        llm: Service used for completions
        token_budget: Prompt cap in tokens
        max_attempts: Total attempts including the first call
        backoff_initial: Delay before the first retry, in seconds
        backoff_max: Upper bound on any single delay
        sleep: Called with each delay (injectable for tests)
        clock: Returns the creation timestamp of results
    """

    def __init__(
        self,
        llm: LLMService,
        token_budget: int = 4000,
        max_attempts: int = 4,
        backoff_initial: float = 1.0,
        backoff_max: float = 8.0,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.llm = llm
        self.prompt_builder = PromptBuilder(token_budget)
        self.max_attempts = max(1, max_attempts)
        self.backoff_initial = backoff_initial
        self.backoff_max = backoff_max
        self.sleep = sleep
        self.clock = clock

    def backoff_delay(self, retry: int) -> float:
        """Delay before retry number ``retry`` (1-based)."""
        return min(self.backoff_initial * (2 ** (retry - 1)), self.backoff_max)

    def synthesize(
        self,
        narrative: NarrativeInputs,
        structural: StructuralInputs,
        complexity: ComplexityInputs,
    ) -> FunctionIntelligence:
        prompt = self.prompt_builder.build(narrative, structural, complexity)
        dependencies = DependencySummary(
            upstream=tuple(structural.upstream),
            downstream=tuple(structural.downstream),
            impact_radius_size=structural.impact_radius_size,
        )

        try:
            reply = self._complete_with_retry(prompt.text)
            intent, recommendations = parse_reply(reply)
        except SynthesisError as e:
            return self._partial(structural, complexity, dependencies, e)

        return FunctionIntelligence(
            ref=structural.ref,
            narrative=intent,
            dependencies=dependencies,
            metrics=complexity.metrics,
            stability=complexity.stability,
            recommendations=recommendations,
            created_at=self.clock(),
        )

    def _complete_with_retry(self, prompt: str) -> str:
        """Call the LLM, retrying transient failures.

        Raises:
            TransientLLMError: After the final attempt fails transiently
            PermanentLLMError: Immediately, without retrying
        """
        attempt = 1
        while True:
            try:
                return self.llm.complete(prompt)
            except TransientLLMError as e:
                logger.warning(
                    "LLM transient failure (attempt %d/%d): %s",
                    attempt,
                    self.max_attempts,
                    e.reason,
                )
                if attempt >= self.max_attempts:
                    raise

            delay = self.backoff_delay(attempt)
            logger.debug("Retrying in %.2fs...", delay)
            self.sleep(delay)
            attempt += 1

    def _partial(
        self,
        structural: StructuralInputs,
        complexity: ComplexityInputs,
        dependencies: DependencySummary,
        error: SynthesisError,
    ) -> FunctionIntelligence:
        if isinstance(error, ReplyFormatError):
            reason = f"unusable reply: {error.reason}"
        elif isinstance(error, TransientLLMError):
            reason = f"LLM unavailable after {self.max_attempts} attempts: {error.reason}"
        else:
            reason = f"LLM request rejected: {getattr(error, 'reason', str(error))}"
        logger.warning(f"Synthesis unavailable for {structural.ref.function_key}: {reason}")

        return FunctionIntelligence(
            ref=structural.ref,
            narrative=IntentNarrative.unavailable(),
            dependencies=dependencies,
            metrics=complexity.metrics,
            stability=complexity.stability,
            recommendations=(SYNTHESIS_UNAVAILABLE,),
            created_at=self.clock(),
            degradations=(DegradationNote("synthesis", type(error).__name__, reason),),
            synthesis_failure=reason,
        )
