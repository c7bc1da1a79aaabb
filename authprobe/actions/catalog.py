"""
authprobe/actions/catalog.py

The static SNS Action Catalog.

Each builder is a pure function of the target ARN. Values are chosen so the
request is as close to a no-op as the operation allows (default attribute
values, a label that is immediately revoked, a tag owned by this tool).
"""

from __future__ import annotations

import json
from typing import List

from authprobe.base.arn import parse_arn
from .models import (
    SNS_API_VERSION,
    Action,
    ActionCategory,
    ParamMap,
    ResourceParameter,
)

TOPIC = ResourceParameter.TOPIC_ARN
RESOURCE = ResourceParameter.RESOURCE_ARN

PERMISSION_LABEL = "authprobe-test-noop"
TAG_KEY = "authprobe-test"


def _publish(topic_arn: str) -> ParamMap:
    return {
        "Action": "Publish",
        "TopicArn": topic_arn,
        "Message": "authprobe test message",
        "Version": SNS_API_VERSION,
    }


def _publish_batch(topic_arn: str) -> ParamMap:
    return {
        "Action": "PublishBatch",
        "TopicArn": topic_arn,
        "PublishBatchRequestEntries.member.1.Id": "msg1",
        "PublishBatchRequestEntries.member.1.Message": "authprobe batch test message",
        "Version": SNS_API_VERSION,
    }


def _subscribe(topic_arn: str) -> ParamMap:
    return {
        "Action": "Subscribe",
        "TopicArn": topic_arn,
        "Protocol": "https",
        "Endpoint": "https://example.com/authprobe-test",
        "Version": SNS_API_VERSION,
    }


def _tag_resource(topic_arn: str) -> ParamMap:
    return {
        "Action": "TagResource",
        "ResourceArn": topic_arn,
        "Tags.member.1.Key": TAG_KEY,
        "Tags.member.1.Value": "true",
        "Version": SNS_API_VERSION,
    }


def _untag_resource(topic_arn: str) -> ParamMap:
    return {
        "Action": "UntagResource",
        "ResourceArn": topic_arn,
        "TagKeys.member.1": TAG_KEY,
        "Version": SNS_API_VERSION,
    }


def _add_permission(topic_arn: str) -> ParamMap:
    # Grants GetTopicAttributes to the topic's own account; RemovePermission
    # runs right after and deletes the same label
    return {
        "Action": "AddPermission",
        "TopicArn": topic_arn,
        "Label": PERMISSION_LABEL,
        "AWSAccountId.member.1": parse_arn(topic_arn).account_id,
        "ActionName.member.1": "GetTopicAttributes",
        "Version": SNS_API_VERSION,
    }


def _remove_permission(topic_arn: str) -> ParamMap:
    return {
        "Action": "RemovePermission",
        "TopicArn": topic_arn,
        "Label": PERMISSION_LABEL,
        "Version": SNS_API_VERSION,
    }


def _set_topic_attributes(topic_arn: str) -> ParamMap:
    # SignatureVersion=1 is the default, so usually a no-op
    return {
        "Action": "SetTopicAttributes",
        "TopicArn": topic_arn,
        "AttributeName": "SignatureVersion",
        "AttributeValue": "1",
        "Version": SNS_API_VERSION,
    }


DATA_PROTECTION_POLICY = json.dumps(
    {
        "Name": "authprobe-test-policy",
        "Description": "Test policy from authprobe",
        "Version": "2021-06-01",
        "Statement": [
            {
                "Sid": "authprobe-audit",
                "DataDirection": "Inbound",
                "Principal": ["*"],
                "DataIdentifier": ["arn:aws:dataprotection::aws:data-identifier/CreditCardNumber"],
                "Operation": {
                    "Audit": {
                        "SampleRate": "99",
                        "FindingsDestination": {},
                    },
                },
            },
        ],
    },
    separators=(",", ":"),
)


def _put_data_protection_policy(topic_arn: str) -> ParamMap:
    return {
        "Action": "PutDataProtectionPolicy",
        "ResourceArn": topic_arn,
        "DataProtectionPolicy": DATA_PROTECTION_POLICY,
        "Version": SNS_API_VERSION,
    }


# Catalog order is the run order before scheduling constraints are applied.
ALL_ACTIONS: List[Action] = [
    # Read actions
    Action("GetTopicAttributes", ActionCategory.READ, safe=True),
    Action("GetDataProtectionPolicy", ActionCategory.READ, safe=True, parameter=RESOURCE),
    Action("ListSubscriptionsByTopic", ActionCategory.READ, safe=True),
    Action("ListTagsForResource", ActionCategory.READ, safe=True, parameter=RESOURCE),
    # Write actions (safe)
    Action("Publish", ActionCategory.WRITE, safe=True, builder=_publish),
    Action("PublishBatch", ActionCategory.WRITE, safe=True, builder=_publish_batch),
    Action("Subscribe", ActionCategory.WRITE, safe=True, builder=_subscribe),
    Action(
        "TagResource", ActionCategory.WRITE, safe=True,
        parameter=RESOURCE, builder=_tag_resource, revoked_by="UntagResource",
    ),
    Action("UntagResource", ActionCategory.WRITE, safe=True, parameter=RESOURCE, builder=_untag_resource),
    Action(
        "AddPermission", ActionCategory.WRITE, safe=True,
        builder=_add_permission, revoked_by="RemovePermission",
    ),
    # Write actions (unsafe)
    Action("RemovePermission", ActionCategory.WRITE, safe=False, builder=_remove_permission),
    Action("SetTopicAttributes", ActionCategory.WRITE, safe=False, builder=_set_topic_attributes),
    Action(
        "PutDataProtectionPolicy", ActionCategory.WRITE, safe=False,
        parameter=RESOURCE, builder=_put_data_protection_policy,
    ),
    # Destructive
    Action("DeleteTopic", ActionCategory.WRITE, safe=False, destructive=True),
]

# AWS CLI subcommand per API action, used in reproduce scripts
ACTION_TO_CLI = {
    "GetTopicAttributes": "get-topic-attributes",
    "GetDataProtectionPolicy": "get-data-protection-policy",
    "ListSubscriptionsByTopic": "list-subscriptions-by-topic",
    "ListTagsForResource": "list-tags-for-resource",
    "Publish": "publish",
    "PublishBatch": "publish-batch",
    "Subscribe": "subscribe",
    "TagResource": "tag-resource",
    "UntagResource": "untag-resource",
    "AddPermission": "add-permission",
    "RemovePermission": "remove-permission",
    "SetTopicAttributes": "set-topic-attributes",
    "PutDataProtectionPolicy": "put-data-protection-policy",
    "DeleteTopic": "delete-topic",
}
