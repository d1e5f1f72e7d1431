"""Failure-mode catalog shared by the filter and applicator sets."""

from __future__ import annotations

from enum import Enum


class Granularity(str, Enum):
    """What a filter/applicator pair is aimed at."""

    CONTEXT = "context"
    ORDER = "order"
    CRITERIA_RESOLVER = "criteria_resolver"


class FailureMode(str, Enum):
    """Protocol failures the engine knows how to provoke."""

    # Signatures
    INVALID_SIGNATURE = "invalid_signature"
    INVALID_SIGNER_BAD_SIGNATURE = "invalid_signer_bad_signature"
    INVALID_SIGNER_MODIFIED_ORDER = "invalid_signer_modified_order"
    BAD_SIGNATURE_V = "bad_signature_v"
    BAD_CONTRACT_SIGNATURE_BAD_SIGNATURE = "bad_contract_signature_bad_signature"
    BAD_CONTRACT_SIGNATURE_MODIFIED_ORDER = "bad_contract_signature_modified_order"
    BAD_CONTRACT_SIGNATURE_MISSING_MAGIC = "bad_contract_signature_missing_magic"

    # Order structure
    CONSIDERATION_LENGTH_NOT_EQUAL_TO_TOTAL_ORIGINAL = "consideration_length_not_equal_to_total_original"
    MISSING_ORIGINAL_CONSIDERATION_ITEMS = "missing_original_consideration_items"

    # Fractions
    BAD_FRACTION_PARTIAL_CONTRACT_ORDER = "bad_fraction_partial_contract_order"
    BAD_FRACTION_NO_FILL = "bad_fraction_no_fill"
    BAD_FRACTION_OVERFILL = "bad_fraction_overfill"
    PARTIAL_FILLS_NOT_ENABLED_FOR_ORDER = "partial_fills_not_enabled_for_order"

    # Status
    CANNOT_CANCEL_ORDER = "cannot_cancel_order"
    ORDER_IS_CANCELLED = "order_is_cancelled"
    ORDER_ALREADY_FILLED = "order_already_filled"
    ORDER_PARTIALLY_FILLED = "order_partially_filled"
    NO_SPECIFIED_ORDERS_AVAILABLE = "no_specified_orders_available"

    # Timing
    INVALID_TIME_NOT_STARTED = "invalid_time_not_started"
    INVALID_TIME_EXPIRED = "invalid_time_expired"

    # Routing
    INVALID_CONDUIT = "invalid_conduit"

    # Native value
    INSUFFICIENT_NATIVE_TOKENS_SUPPLIED = "insufficient_native_tokens_supplied"
    NATIVE_TOKEN_TRANSFER_GENERIC_FAILURE = "native_token_transfer_generic_failure"
    INVALID_MSG_VALUE = "invalid_msg_value"

    # Approvals
    OFFER_ITEM_MISSING_APPROVAL = "offer_item_missing_approval"
    CALLER_MISSING_APPROVAL = "caller_missing_approval"

    # Criteria resolution
    CRITERIA_NOT_ENABLED_FOR_ITEM = "criteria_not_enabled_for_item"
    INVALID_PROOF_MERKLE = "invalid_proof_merkle"
    INVALID_PROOF_WILDCARD = "invalid_proof_wildcard"
    ORDER_CRITERIA_RESOLVER_OUT_OF_RANGE = "order_criteria_resolver_out_of_range"
    OFFER_CRITERIA_RESOLVER_OUT_OF_RANGE = "offer_criteria_resolver_out_of_range"
    CONSIDERATION_CRITERIA_RESOLVER_OUT_OF_RANGE = "consideration_criteria_resolver_out_of_range"
    UNRESOLVED_OFFER_CRITERIA = "unresolved_offer_criteria"
    UNRESOLVED_CONSIDERATION_CRITERIA = "unresolved_consideration_criteria"

    # Zones and contract offerers
    INVALID_RESTRICTED_ORDER_REVERTS = "invalid_restricted_order_reverts"
    INVALID_RESTRICTED_ORDER_INVALID_MAGIC_VALUE = "invalid_restricted_order_invalid_magic_value"
    INVALID_CONTRACT_ORDER_GENERATE_REVERTS = "invalid_contract_order_generate_reverts"
    INVALID_CONTRACT_ORDER_RATIFY_REVERTS = "invalid_contract_order_ratify_reverts"


# Pairs whose filters partition a shared precondition; never both eligible.
MUTUALLY_EXCLUSIVE: list[tuple[FailureMode, FailureMode]] = [
    (
        FailureMode.INSUFFICIENT_NATIVE_TOKENS_SUPPLIED,
        FailureMode.NATIVE_TOKEN_TRANSFER_GENERIC_FAILURE,
    ),
    (FailureMode.INVALID_PROOF_MERKLE, FailureMode.INVALID_PROOF_WILDCARD),
    (FailureMode.UNRESOLVED_OFFER_CRITERIA, FailureMode.UNRESOLVED_CONSIDERATION_CRITERIA),
    (FailureMode.INVALID_SIGNATURE, FailureMode.BAD_CONTRACT_SIGNATURE_MISSING_MAGIC),
]
