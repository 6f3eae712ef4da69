# =============================================================================
# Event Parser - Lambda Events to Bus Messages
# =============================================================================
# Turns a Lambda event into (subject, raw body) pairs.
# Supports: SQS (SNS-wrapped or raw delivery), SNS, direct invoke
# =============================================================================

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Tuple

from network_worker.runtime.bus import BODY_ENCODING_ATTRIBUTE, SUBJECT_ATTRIBUTE, decode_body

logger = logging.getLogger(__name__)


class EventSource:
    """Event source identifiers."""
    SNS = "sns"
    SQS = "sqs"
    DIRECT = "direct"
    UNKNOWN = "unknown"


@dataclass
class InboundMessage:
    subject: str
    body: bytes
    message_id: str = ""
    metadata: Dict[str, Any] = field(default_factory=dict)


def detect_event_source(event: Dict[str, Any]) -> str:
    """Returns one of: sns, sqs, direct, unknown"""
    if not event or not isinstance(event, dict):
        return EventSource.UNKNOWN

    records = event.get("Records")
    if isinstance(records, list) and records and isinstance(records[0], dict):
        source = records[0].get("eventSource") or records[0].get("EventSource", "")
        if source == "aws:sqs":
            return EventSource.SQS
        if source == "aws:sns" or "Sns" in records[0]:
            return EventSource.SNS

    if "subject" in event:
        return EventSource.DIRECT

    return EventSource.UNKNOWN


def _to_bytes(value: Any) -> bytes:
    if isinstance(value, bytes):
        return value
    if isinstance(value, str):
        return value.encode("utf-8")
    # direct invokes may carry the request as an object
    return json.dumps(value, ensure_ascii=False, separators=(",", ":")).encode("utf-8")


def _sns_attribute(notification: Dict[str, Any], name: str) -> str:
    attrs = notification.get("MessageAttributes") or {}
    return (attrs.get(name) or {}).get("Value") or ""


def _sns_subject(notification: Dict[str, Any]) -> str:
    """Subject from the message attribute, falling back to the SNS Subject."""
    return _sns_attribute(notification, SUBJECT_ATTRIBUTE) or notification.get("Subject") or ""


def _sns_body(notification: Dict[str, Any]) -> bytes:
    message = notification.get("Message", "")
    if not isinstance(message, str):
        return _to_bytes(message)
    return decode_body(message, _sns_attribute(notification, BODY_ENCODING_ATTRIBUTE))


def _parse_sqs_record(record: Dict[str, Any]) -> InboundMessage:
    """Parse a single SQS record."""
    message_id = record.get("messageId", "")
    body = record.get("body", "")
    metadata = {
        "sqsMessageId": message_id,
        "sqsEventSourceArn": record.get("eventSourceARN", ""),
    }

    # SNS notification wrapped in SQS
    if isinstance(body, str) and body.lstrip().startswith("{"):
        try:
            parsed = json.loads(body)
        except json.JSONDecodeError:
            parsed = None
        if isinstance(parsed, dict) and parsed.get("Type") == "Notification":
            metadata["snsMessageId"] = parsed.get("MessageId", "")
            return InboundMessage(
                subject=_sns_subject(parsed),
                body=_sns_body(parsed),
                message_id=message_id,
                metadata=metadata,
            )

    # raw message delivery: subject travels as an SQS message attribute
    attrs = record.get("messageAttributes") or {}
    subject = (attrs.get(SUBJECT_ATTRIBUTE) or {}).get("stringValue", "")
    encoding = (attrs.get(BODY_ENCODING_ATTRIBUTE) or {}).get("stringValue", "")
    return InboundMessage(
        subject=subject,
        body=decode_body(body, encoding) if isinstance(body, str) else _to_bytes(body),
        message_id=message_id,
        metadata=metadata,
    )


def _parse_sns_record(record: Dict[str, Any]) -> InboundMessage:
    """Parse a single SNS record."""
    sns_data = record.get("Sns", {})
    message_id = sns_data.get("MessageId", "")
    return InboundMessage(
        subject=_sns_subject(sns_data),
        body=_sns_body(sns_data),
        message_id=message_id,
        metadata={
            "snsMessageId": message_id,
            "snsTopicArn": sns_data.get("TopicArn", ""),
            "snsTimestamp": sns_data.get("Timestamp", ""),
        },
    )


def _parse_direct_event(event: Dict[str, Any]) -> InboundMessage:
    """Parse direct invoke: {"subject": ..., "body": str | object}"""
    return InboundMessage(
        subject=str(event.get("subject", "")),
        body=_to_bytes(event.get("body", "")),
        message_id=str(event.get("messageId", "")),
    )


def parse_event(event: Dict[str, Any]) -> Tuple[List[InboundMessage], str]:
    """
    Parse Lambda event and return list of InboundMessages.

    Returns:
        Tuple of (list of InboundMessages, detected source)
    """
    source = detect_event_source(event)
    logger.info(f"Detected event source: {source}")

    if source == EventSource.SQS:
        return [_parse_sqs_record(r) for r in event.get("Records", [])], source

    if source == EventSource.SNS:
        return [_parse_sns_record(r) for r in event.get("Records", [])], source

    if source == EventSource.DIRECT:
        return [_parse_direct_event(event)], source

    logger.warning("Unknown event source, nothing to process")
    return [], source
