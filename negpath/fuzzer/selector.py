"""Seeded selection of one eligible failure mode per scenario.

Evaluates every registered filter against the context, picks a failure
mode among the eligible ones (weighted or uniform), picks one of its
eligible targets and dispatches to the matching applicator.
"""

from __future__ import annotations

import logging
import os
import random

from negpath.core.config import Settings, get_settings
from negpath.core.errors import NoEligibleMutationError
from negpath.core.logging import MutationLogFilter
from negpath.core.types import ExecutionOutcome, MutationReport
from negpath.fuzzer.failures import FailureMode, Granularity
from negpath.fuzzer.registry import REGISTRY, eligible_targets, get_spec
from negpath.scenario.model import FuzzContext, MutationState

logger = logging.getLogger(__name__)


class MutationSelector:
    """Chooses and applies the mutation for one test iteration."""

    def __init__(
        self,
        seed: int | None = None,
        weights: dict[FailureMode, float] | None = None,
        strategy: str | None = None,
        settings: Settings | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        if seed is None:
            seed = self._settings.selection_seed
        self.rng = random.Random(seed if seed is not None else int.from_bytes(os.urandom(4), "big"))
        self.strategy = strategy or self._settings.selection_strategy
        self._weights: dict[FailureMode, float] = self._default_weights()
        if weights:
            self._weights.update(weights)
        self.selection_counts: dict[FailureMode, int] = {}

    def _default_weights(self) -> dict[FailureMode, float]:
        return {mode: self._settings.default_weight for mode in FailureMode}

    @property
    def weights(self) -> dict[FailureMode, float]:
        return dict(self._weights)

    def update_weights(self, failure: FailureMode, factor: float) -> None:
        """Scale a mode's weight, clamped to the configured bounds."""
        self._weights[failure] = max(
            self._settings.min_weight,
            min(self._settings.max_weight, self._weights[failure] * factor),
        )

    def eligible_failures(self, context: FuzzContext) -> dict[FailureMode, list[int | None]]:
        """Every failure mode with at least one eligible target."""
        eligible: dict[FailureMode, list[int | None]] = {}
        for failure, spec in REGISTRY.items():
            targets = eligible_targets(context, spec)
            if targets:
                eligible[failure] = targets
        return eligible

    def select(
        self,
        context: FuzzContext,
        eligible: dict[FailureMode, list[int | None]] | None = None,
    ) -> MutationState:
        if eligible is None:
            eligible = self.eligible_failures(context)
        if not eligible:
            raise NoEligibleMutationError(
                "No failure mode is eligible for this scenario",
                {"entry_point": context.entry_point.value, "orders": len(context.orders)},
            )

        failures = list(eligible)
        if self.strategy == "uniform":
            failure = self.rng.choice(failures)
        else:
            failure = self.rng.choices(failures, weights=[self._weights[f] for f in failures], k=1)[0]
        target = self.rng.choice(eligible[failure])

        state = MutationState(selected_failure=failure)
        granularity = get_spec(failure).granularity
        if granularity == Granularity.ORDER:
            state.selected_order_index = target
        elif granularity == Granularity.CRITERIA_RESOLVER:
            resolver = context.criteria_resolvers[target]
            state.selected_criteria_resolver_index = target
            state.selected_order_index = resolver.order_index
            state.side = resolver.side

        self.selection_counts[failure] = self.selection_counts.get(failure, 0) + 1
        logger.info(
            "Selected %s among %d eligible mode(s)",
            failure.value,
            len(eligible),
            extra={"failure": failure.value, "order_index": state.selected_order_index},
        )
        return state

    def apply(self, context: FuzzContext, state: MutationState) -> ExecutionOutcome | None:
        """Run the applicator for ``state.selected_failure`` against ``context``."""
        if state.selected_failure is None:
            raise NoEligibleMutationError("Selection state names no failure mode")

        spec = get_spec(state.selected_failure)
        context.mutation_state = state
        mutation_logger = logging.getLogger("negpath.fuzzer.mutations")
        log_filter = MutationLogFilter(
            spec.failure.value, state.selected_order_index, state.selected_criteria_resolver_index
        )
        mutation_logger.addFilter(log_filter)
        try:
            spec.apply(context, state)
        finally:
            mutation_logger.removeFilter(log_filter)
        return context.outcome

    def run(self, context: FuzzContext) -> MutationReport:
        """Select, mutate and execute; the report goes to the checker."""
        eligible = self.eligible_failures(context)
        state = self.select(context, eligible)
        outcome = self.apply(context, state)
        failure = state.selected_failure
        return MutationReport(
            failure=failure.value if failure else "",
            granularity=get_spec(failure).granularity.value if failure else "",
            order_index=state.selected_order_index,
            resolver_index=state.selected_criteria_resolver_index,
            side=state.side.value if state.side else None,
            eligible_failures=[f.value for f in eligible],
            outcome=outcome,
        )
