"""
Mutation strategies for finding auth-vs-validation boundaries.

Goal: find mutations where
- the allowed topic answers non-403 (authorization passed, validation failed)
- the denied topic answers 403 (authorization failed)

which shows the service authorizes before it validates that parameter.

Every mutation self-filters: if the parameter it targets is not in the
request, the request comes back unchanged and the prober skips it. That is
what lets one catalog be applied to every action without an explicit
action -> mutation table.

TopicArn / ResourceArn are never touched: AWS needs the real target ARN to
make the authorization decision we are trying to observe.
"""

from __future__ import annotations

import json
import re
from typing import List, Optional, Pattern, Tuple

from authprobe.actions.models import ParamMap
from .models import Mutation, MutationKind, Transform

# A key that cannot match any existing tag on a real topic
NONEXISTENT_KEY = "nonexistent-key-a1b2c3d4-e5f6-7890-abcd-ef1234567890"

LONG_STRING_200 = "x" * 200     # Exceeds tag key limit (128)
LONG_STRING_500 = "x" * 500     # Exceeds tag value limit (256)
LONG_STRING_1000 = "x" * 1000

BATCH_MESSAGE_KEY = re.compile(r"^PublishBatchRequestEntries\.member\.\d+\.Message$")
BATCH_ID_KEY = re.compile(r"^PublishBatchRequestEntries\.member\.\d+\.Id$")
ACTION_NAME_KEY = re.compile(r"^ActionName\.member\.")
TAG_KEY = re.compile(r"^Tags\.member\.\d+\.Key$")
TAG_VALUE = re.compile(r"^Tags\.member\.\d+\.Value$")
TAG_ANY = re.compile(r"^Tags\.member\.")
TAG_INDEXED = re.compile(r"^Tags\.member\.\d+\.")
TAG_KEYS_ANY = re.compile(r"^TagKeys\.member\.")
TAG_KEYS_INDEXED = re.compile(r"^TagKeys\.member\.\d+")


# ---------------------------------------------------------------------------
# Transform factories
# ---------------------------------------------------------------------------

def _first_key(params: ParamMap, pattern: Pattern) -> Optional[str]:
    return next((k for k in params if pattern.search(k)), None)


def _drop(key: str) -> Transform:
    def transform(params: ParamMap, _target: str) -> ParamMap:
        if key not in params:
            return params
        return {k: v for k, v in params.items() if k != key}
    return transform


def _set(key: str, value: str) -> Transform:
    def transform(params: ParamMap, _target: str) -> ParamMap:
        if key not in params:
            return params
        return {**params, key: value}
    return transform


def _drop_matching(pattern: Pattern) -> Transform:
    def transform(params: ParamMap, _target: str) -> ParamMap:
        if _first_key(params, pattern) is None:
            return params
        return {k: v for k, v in params.items() if not pattern.search(k)}
    return transform


def _set_first_matching(pattern: Pattern, value: str) -> Transform:
    def transform(params: ParamMap, _target: str) -> ParamMap:
        key = _first_key(params, pattern)
        if key is None:
            return params
        return {**params, key: value}
    return transform


def _reindex(pattern: Pattern, replacement: str) -> Transform:
    def transform(params: ParamMap, _target: str) -> ParamMap:
        if _first_key(params, pattern) is None:
            return params
        return {pattern.sub(replacement, k, count=1): v for k, v in params.items()}
    return transform


def _endpoint_to_arn(params: ParamMap, target_id: str) -> ParamMap:
    if not params.get("Endpoint"):
        return params
    return {**params, "Endpoint": target_id}


def _invalid_signature_version(params: ParamMap, _target: str) -> ParamMap:
    if params.get("AttributeName") != "SignatureVersion":
        return params
    return {**params, "AttributeValue": "99"}


def _long_subject(params: ParamMap, _target: str) -> ParamMap:
    # Subject is optional on Publish, so this one adds rather than rewrites
    if params.get("Action") != "Publish":
        return params
    return {**params, "Subject": LONG_STRING_200}


def _mk(name: str, description: str, kind: MutationKind, transform: Transform) -> Mutation:
    return Mutation(name=name, description=description, kind=kind, transform=transform)


STRUCT = MutationKind.STRUCTURAL
VALUE = MutationKind.VALUE_DOMAIN
BOUND = MutationKind.BOUNDARY
ENC = MutationKind.ENCODING
INDEX = MutationKind.INDEXING
NOOP = MutationKind.NOOP_SAFE


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------

# Structure-based, apply to every request
DEFAULT_MUTATIONS: Tuple[Mutation, ...] = (
    _mk("remove-action", "Remove Action parameter", STRUCT, _drop("Action")),
    _mk("remove-version", "Remove Version parameter", STRUCT, _drop("Version")),
)

# Parameter-based, apply only if the parameter is present
PARAMETER_MUTATIONS: Tuple[Mutation, ...] = (
    # Message (Publish)
    _mk("remove-message", "Remove Message parameter", STRUCT, _drop("Message")),
    _mk("empty-message", "Set Message to empty string", VALUE, _set("Message", "")),
    # PublishBatch entries
    _mk("remove-batch-message", "Remove Message from batch entry", STRUCT, _drop_matching(BATCH_MESSAGE_KEY)),
    _mk("empty-batch-message", "Set batch entry Message to empty string", VALUE, _set_first_matching(BATCH_MESSAGE_KEY, "")),
    _mk("remove-batch-id", "Remove Id from batch entry", STRUCT, _drop_matching(BATCH_ID_KEY)),
    _mk("empty-batch-id", "Set batch entry Id to empty string", VALUE, _set_first_matching(BATCH_ID_KEY, "")),
    # Endpoint
    _mk("endpoint-to-arn", "Change Endpoint parameter to ARN format", VALUE, _endpoint_to_arn),
    _mk("long-endpoint", "Set Endpoint to very long URL", BOUND, _set("Endpoint", "https://example.com/" + "x" * 2000)),
    # Protocol
    _mk("invalid-protocol", "Use invalid Protocol value", VALUE, _set("Protocol", "not-a-protocol")),
    _mk("remove-protocol", "Remove Protocol parameter", STRUCT, _drop("Protocol")),
    # ActionName.member.*
    _mk("invalid-action-name", "Use invalid action name in ActionName parameter", VALUE,
        _set_first_matching(ACTION_NAME_KEY, "NotARealAction")),
    _mk("remove-action-name", "Remove ActionName parameter", STRUCT, _drop_matching(ACTION_NAME_KEY)),
    # Label
    _mk("invalid-label", "Use non-existent permission label", VALUE, _set("Label", "non-existent-permission-label-12345")),
    _mk("empty-label", "Set Label to empty string", VALUE, _set("Label", "")),
    _mk("remove-label", "Remove Label parameter", STRUCT, _drop("Label")),
    _mk("special-char-label", "Set Label with special characters", VALUE, _set("Label", "../../../etc/passwd")),
    _mk("long-label", "Set Label to exceed reasonable length", BOUND, _set("Label", LONG_STRING_200)),
    # AttributeName / AttributeValue
    _mk("invalid-attribute-name", "Use invalid AttributeName", VALUE, _set("AttributeName", "NotARealAttribute")),
    _mk("remove-attribute-name", "Remove AttributeName parameter", STRUCT, _drop("AttributeName")),
    _mk("long-attribute-value", "Set AttributeValue to very long string", BOUND, _set("AttributeValue", LONG_STRING_1000)),
    _mk("invalid-signature-version", "Set SignatureVersion to invalid value (99)", VALUE, _invalid_signature_version),
    # Tags.member.*.Key / Value (TagResource)
    _mk("nonexistent-tag", "Set Tags.member.*.Key to a non-existent GUID-like key", VALUE,
        _set_first_matching(TAG_KEY, NONEXISTENT_KEY)),
    _mk("remove-tags", "Remove all Tags.member.* params", STRUCT, _drop_matching(TAG_ANY)),
    _mk("empty-tag-key", "Set tag key to empty string", VALUE, _set_first_matching(TAG_KEY, "")),
    _mk("long-tag-key", "Set tag key to exceed max length (128)", BOUND, _set_first_matching(TAG_KEY, LONG_STRING_200)),
    _mk("zero-index-tag", "Use Tags.member.0 instead of member.1", INDEX, _reindex(TAG_INDEXED, "Tags.member.0.")),
    _mk("remove-tag-key", "Remove tag key parameter", STRUCT, _drop_matching(TAG_KEY)),
    _mk("remove-tag-value", "Remove Tags.member.*.Value param (keep Key)", STRUCT, _drop_matching(TAG_VALUE)),
    _mk("long-tag-value", "Set tag value to exceed max length (256)", BOUND, _set_first_matching(TAG_VALUE, LONG_STRING_500)),
    # TagKeys.member.* (UntagResource)
    _mk("nonexistent-tag-key", "Set TagKeys to a non-existent GUID-like key", NOOP,
        _set_first_matching(TAG_KEYS_ANY, NONEXISTENT_KEY)),
    _mk("remove-tag-keys", "Remove TagKeys parameter", STRUCT, _drop_matching(TAG_KEYS_ANY)),
    _mk("empty-tag-keys", "Set TagKeys.member.1 to empty string", VALUE, _set_first_matching(TAG_KEYS_ANY, "")),
    _mk("long-tag-keys", "Set TagKeys.member.* to exceed max length (128)", BOUND,
        _set_first_matching(TAG_KEYS_ANY, LONG_STRING_200)),
    _mk("zero-index-tag-key", "Use TagKeys.member.0 instead of member.1", INDEX,
        _reindex(TAG_KEYS_INDEXED, "TagKeys.member.0")),
    # Publish
    _mk("long-subject", "Add Subject parameter exceeding max length (100)", BOUND, _long_subject),
    # DataProtectionPolicy
    _mk("invalid-json-policy", "Set DataProtectionPolicy to invalid JSON", ENC,
        _set("DataProtectionPolicy", "{not valid json")),
    _mk("empty-json-policy", "Set DataProtectionPolicy to empty JSON object", ENC, _set("DataProtectionPolicy", "{}")),
    _mk("invalid-policy-structure", "Set DataProtectionPolicy to valid JSON with invalid structure", ENC,
        _set("DataProtectionPolicy", json.dumps({"invalid": "structure", "foo": "bar"}))),
    _mk("remove-data-protection-policy", "Remove DataProtectionPolicy parameter", STRUCT, _drop("DataProtectionPolicy")),
)

MUTATION_CATALOG: Tuple[Mutation, ...] = DEFAULT_MUTATIONS + PARAMETER_MUTATIONS


def get_mutations_for_action(_action_name: str) -> List[Mutation]:
    """
    Every mutation is offered to every action; the ones whose parameter is
    missing come back as no-ops and are filtered by the change detector.
    """
    return list(MUTATION_CATALOG)


def get_mutation(name: str) -> Mutation:
    for mutation in MUTATION_CATALOG:
        if mutation.name == name:
            return mutation
    raise KeyError(name)
