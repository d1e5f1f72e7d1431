"""Tests for the failure-mode registry and catalog consistency."""

from __future__ import annotations

import dataclasses

import pytest

from negpath.core.errors import CatalogError
from negpath.core.types import EntryPoint
from negpath.fuzzer import filters, mutations
from negpath.fuzzer.failures import FailureMode, Granularity
from negpath.fuzzer.registry import (
    REGISTRY,
    MutationSpec,
    _SPECS,
    _build_registry,
    by_granularity,
    candidate_targets,
    eligible_targets,
    get_spec,
    is_eligible,
)

from conftest import make_order


class TestCatalog:
    def test_every_mode_registered(self):
        assert set(REGISTRY) == set(FailureMode)
        assert len(REGISTRY) == 38

    def test_specs_are_callable_pairs(self):
        for spec in REGISTRY.values():
            assert callable(spec.ineligible)
            assert callable(spec.apply)
            assert spec.description

    def test_context_modes(self):
        context_modes = {s.failure for s in by_granularity(Granularity.CONTEXT)}
        assert context_modes == {
            FailureMode.NO_SPECIFIED_ORDERS_AVAILABLE,
            FailureMode.INSUFFICIENT_NATIVE_TOKENS_SUPPLIED,
            FailureMode.NATIVE_TOKEN_TRANSFER_GENERIC_FAILURE,
            FailureMode.INVALID_MSG_VALUE,
            FailureMode.ORDER_CRITERIA_RESOLVER_OUT_OF_RANGE,
        }

    def test_resolver_modes(self):
        resolver_modes = {s.failure for s in by_granularity(Granularity.CRITERIA_RESOLVER)}
        assert resolver_modes == {
            FailureMode.INVALID_PROOF_MERKLE,
            FailureMode.INVALID_PROOF_WILDCARD,
            FailureMode.UNRESOLVED_OFFER_CRITERIA,
            FailureMode.UNRESOLVED_CONSIDERATION_CRITERIA,
        }

    def test_unresolved_modes_share_applicator(self):
        offer = get_spec(FailureMode.UNRESOLVED_OFFER_CRITERIA)
        consideration = get_spec(FailureMode.UNRESOLVED_CONSIDERATION_CRITERIA)
        assert offer.apply is consideration.apply is mutations.mutation_unresolved_criteria
        assert offer.ineligible is not consideration.ineligible

    def test_invalid_time_modes_share_filter(self):
        assert (
            get_spec(FailureMode.INVALID_TIME_NOT_STARTED).ineligible
            is get_spec(FailureMode.INVALID_TIME_EXPIRED).ineligible
            is filters.ineligible_for_invalid_time
        )

    def test_spec_is_frozen(self):
        spec = get_spec(FailureMode.INVALID_SIGNATURE)
        with pytest.raises(dataclasses.FrozenInstanceError):
            spec.description = "changed"  # type: ignore[misc]


class TestBuildRegistry:
    def test_duplicate_rejected(self):
        with pytest.raises(CatalogError) as exc:
            _build_registry([*_SPECS, _SPECS[0]])
        assert exc.value.details["failure"] == _SPECS[0].failure.value

    def test_missing_rejected(self):
        with pytest.raises(CatalogError) as exc:
            _build_registry(_SPECS[1:])
        assert exc.value.details["missing"] == [_SPECS[0].failure.value]

    def test_custom_spec_roundtrip(self):
        replacement = MutationSpec(
            FailureMode.INVALID_SIGNATURE,
            Granularity.ORDER,
            lambda ctx, i: True,
            mutations.mutation_invalid_signature,
        )
        registry = _build_registry([replacement, *_SPECS[1:]])
        assert registry[FailureMode.INVALID_SIGNATURE] is replacement


class TestEligibility:
    def test_candidate_targets(self, make_context, criteria_order, criteria_resolvers):
        ctx = make_context([criteria_order, make_order(salt=1)], resolvers=criteria_resolvers)
        assert candidate_targets(ctx, Granularity.CONTEXT) == [None]
        assert candidate_targets(ctx, Granularity.ORDER) == [0, 1]
        assert candidate_targets(ctx, Granularity.CRITERIA_RESOLVER) == [0, 1, 2]

    def test_order_mode_requires_target(self, make_context):
        with pytest.raises(CatalogError):
            is_eligible(make_context(), FailureMode.INVALID_SIGNATURE)

    def test_context_mode_ignores_target(self, make_context):
        ctx = make_context(entry_point=EntryPoint.FULFILL_BASIC)
        assert is_eligible(ctx, FailureMode.INVALID_MSG_VALUE)

    def test_eligible_targets_per_order(self, make_context):
        ctx = make_context([make_order(), make_order(salt=1), make_order(salt=2)], available=[True, False, True])
        assert eligible_targets(ctx, get_spec(FailureMode.INVALID_SIGNATURE)) == [0, 2]

    def test_eligibility_logging(self, make_context, monkeypatch, caplog):
        monkeypatch.setenv("NEGPATH_LOG_ELIGIBILITY", "true")
        ctx = make_context()
        with caplog.at_level("DEBUG", logger="negpath.fuzzer.registry"):
            eligible_targets(ctx, get_spec(FailureMode.INVALID_TIME_EXPIRED))
        assert "invalid_time_expired eligible for 1 target(s)" in caplog.text
