# =============================================================================
# Message Bus
# =============================================================================
# The engine only needs publish(subject, data). Subjects travel as the SNS
# message Subject plus a "subject" message attribute, so SQS subscriptions
# can filter on them.
#
# SNS messages are text and must not be empty. Bodies that are not valid
# UTF-8 go out base64-encoded and empty bodies go out as a placeholder; both
# are marked with a "body_encoding" attribute so the receiver restores the
# exact bytes.
# =============================================================================

import base64
import logging
import threading
from typing import Any, Dict, List, Protocol, Tuple

from botocore.exceptions import BotoCoreError, ClientError

from network_worker.runtime.errors import BusPublishError

logger = logging.getLogger(__name__)

SUBJECT_ATTRIBUTE = "subject"
BODY_ENCODING_ATTRIBUTE = "body_encoding"
ENCODING_BASE64 = "base64"
ENCODING_EMPTY = "empty"
EMPTY_PLACEHOLDER = "-"


class MessageBus(Protocol):
    def publish(self, subject: str, data: bytes) -> None:
        """Publish data on subject."""


def encode_body(data: bytes) -> Tuple[str, str]:
    """
    SNS Message text for data.

    Returns:
        (message, encoding) where encoding is "" for plain UTF-8 text
    """
    if not data:
        return EMPTY_PLACEHOLDER, ENCODING_EMPTY
    try:
        return data.decode("utf-8"), ""
    except UnicodeDecodeError:
        return base64.b64encode(data).decode("ascii"), ENCODING_BASE64


def decode_body(message: str, encoding: str) -> bytes:
    """Inverse of encode_body."""
    if encoding == ENCODING_EMPTY:
        return b""
    if encoding == ENCODING_BASE64:
        return base64.b64decode(message)
    return message.encode("utf-8")


class SnsMessageBus:
    """Bus backed by a single SNS topic."""

    def __init__(self, topic_arn: str, sns_client: Any) -> None:
        if not topic_arn:
            raise ValueError("NETWORK_BUS_TOPIC_ARN is required to publish to SNS")
        self._topic_arn = topic_arn
        self._sns = sns_client

    def publish(self, subject: str, data: bytes) -> None:
        message, encoding = encode_body(data)
        attributes: Dict[str, Any] = {
            SUBJECT_ATTRIBUTE: {"DataType": "String", "StringValue": subject},
        }
        if encoding:
            attributes[BODY_ENCODING_ATTRIBUTE] = {"DataType": "String", "StringValue": encoding}

        try:
            resp = self._sns.publish(
                TopicArn=self._topic_arn,
                Subject=subject,
                Message=message,
                MessageAttributes=attributes,
            )
        except (ClientError, BotoCoreError) as e:
            raise BusPublishError(f"failed to publish {subject} to {self._topic_arn}: {e}") from e
        logger.info(f"Published {subject} messageId={resp.get('MessageId')}")


class RecordingBus:
    """In-memory bus that keeps every publication."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.published: List[Tuple[str, bytes]] = []

    def publish(self, subject: str, data: bytes) -> None:
        with self._lock:
            self.published.append((subject, data))

    def messages(self, subject: str) -> List[bytes]:
        with self._lock:
            return [data for s, data in self.published if s == subject]
