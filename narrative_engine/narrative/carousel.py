"""Carousel: budget-aware repeated execution.

A carousel runs a whole narrative, or a single act of it, up to N times.
Before each iteration the rate limiters of the models involved are asked
whether one more request of the estimated size fits; if not, the carousel
stops early. Running out of budget is a normal way to finish, not an error.
"""

import logging
from dataclasses import dataclass, field

from narrative_engine.narrative.exceptions import (
    CarouselAbortedError,
    ConfigurationError,
)
from narrative_engine.narrative.execution import NarrativeExecution
from narrative_engine.narrative.executor import NarrativeExecutor
from narrative_engine.narrative.models import ActConfig, CarouselConfig, NarrativeMetadata
from narrative_engine.narrative.provider import NarrativeProvider
from narrative_engine.rate_limit.limiter import RateLimiter

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IterationOutcome:
    """One attempted iteration: either an execution or an error."""

    iteration: int
    execution: NarrativeExecution | None = None
    error: Exception | None = None

    @property
    def succeeded(self) -> bool:
        return self.error is None


@dataclass
class CarouselResult:
    """Summary of a carousel run.

    Attributes:
        iterations_requested: Configured iteration count.
        attempts: Every iteration that ran, in order.
        skipped_for_budget: Iterations never started because the budget ran out.
    """

    iterations_requested: int
    attempts: list[IterationOutcome] = field(default_factory=list)
    skipped_for_budget: int = 0

    @property
    def completed(self) -> int:
        """Iterations that finished successfully."""
        return sum(1 for attempt in self.attempts if attempt.succeeded)

    @property
    def failed(self) -> int:
        return len(self.attempts) - self.completed

    @property
    def errors(self) -> list[tuple[int, Exception]]:
        """(iteration, error) for every failed iteration."""
        return [
            (attempt.iteration, attempt.error)
            for attempt in self.attempts
            if attempt.error is not None
        ]

    @property
    def executions(self) -> list[NarrativeExecution]:
        return [a.execution for a in self.attempts if a.execution is not None]

    @property
    def budget_exhausted(self) -> bool:
        return self.skipped_for_budget > 0

    @property
    def all_completed(self) -> bool:
        return self.completed == self.iterations_requested


class _SingleActView(NarrativeProvider):
    """A narrative reduced to one of its acts."""

    def __init__(self, provider: NarrativeProvider, act_name: str) -> None:
        if provider.get_act_config(act_name) is None:
            raise ConfigurationError(
                f"Act '{act_name}' not found",
                narrative_name=provider.name(),
                act_name=act_name,
            )
        self._provider = provider
        self._act_name = act_name

    def metadata(self) -> NarrativeMetadata:
        return self._provider.metadata()

    def act_names(self) -> tuple[str, ...]:
        return (self._act_name,)

    def get_act_config(self, act_name: str) -> ActConfig | None:
        if act_name != self._act_name:
            return None
        return self._provider.get_act_config(act_name)

    def resolve_narrative(self, narrative_name: str) -> NarrativeProvider | None:
        return self._provider.resolve_narrative(narrative_name)


class CarouselController:
    """Repeats narrative or act execution within the rate-limit budget.

    Args:
        executor: Executor that runs each iteration. Its rate limiter
            registry is the one consulted for budget checks.
    """

    def __init__(self, executor: NarrativeExecutor) -> None:
        self.executor = executor

    async def run(
        self, provider: NarrativeProvider, config: CarouselConfig | None = None
    ) -> CarouselResult:
        """Run the whole narrative repeatedly.

        Args:
            provider: Narrative to repeat.
            config: Carousel settings; the narrative's own carousel table
                is used when omitted.

        Raises:
            ConfigurationError: If no carousel config is available.
            CarouselAbortedError: If an iteration fails and
                continue_on_error is disabled.
        """
        config = config or provider.carousel_config()
        if config is None:
            raise ConfigurationError(
                "No carousel configured", narrative_name=provider.name()
            )
        return await self._run(provider, config)

    async def run_act(
        self, provider: NarrativeProvider, act_name: str, config: CarouselConfig
    ) -> CarouselResult:
        """Run a single act of a narrative repeatedly, each time in a fresh context."""
        return await self._run(_SingleActView(provider, act_name), config)

    def budget_limiters(self, provider: NarrativeProvider) -> list[RateLimiter]:
        """Limiters of the models the provider's own acts generate with."""
        models = []
        for act_name in provider.act_names():
            act = provider.get_act_config(act_name)
            if act is None or act.is_composition:
                continue
            model = self.executor.resolve_model(provider, act)
            if model not in models:
                models.append(model)
        if not models:
            models.append(provider.metadata().model or self.executor.driver.default_model)
        return [self.executor.limiter_for(model) for model in models]

    async def _run(self, provider: NarrativeProvider, config: CarouselConfig) -> CarouselResult:
        name = provider.name()
        limiters = self.budget_limiters(provider)
        result = CarouselResult(iterations_requested=config.iterations)
        logger.info(f"Starting carousel for '{name}': up to {config.iterations} iterations")

        for iteration in range(1, config.iterations + 1):
            if not all(
                limiter.can_afford(config.estimated_tokens_per_iteration) for limiter in limiters
            ):
                result.skipped_for_budget = config.iterations - iteration + 1
                logger.warning(
                    f"Budget exhausted for '{name}' after {iteration - 1} iteration(s), "
                    f"skipping {result.skipped_for_budget}"
                )
                break

            logger.debug(f"Carousel '{name}' iteration {iteration}/{config.iterations}")
            try:
                execution = await self.executor.execute(provider)
            except Exception as e:
                result.attempts.append(IterationOutcome(iteration=iteration, error=e))
                if not config.continue_on_error:
                    logger.error(f"Carousel '{name}' aborted at iteration {iteration}: {e}")
                    raise CarouselAbortedError(result, e) from e
                logger.warning(f"Carousel '{name}' iteration {iteration} failed: {e}")
                continue
            result.attempts.append(IterationOutcome(iteration=iteration, execution=execution))

        logger.info(
            f"Carousel '{name}' finished: {result.completed} completed, "
            f"{result.failed} failed, {result.skipped_for_budget} skipped for budget"
        )
        return result
