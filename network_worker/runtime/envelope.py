# =============================================================================
# Envelope - Network Provisioning Request
# =============================================================================
# The request/response record carried on the bus. It is decoded from the raw
# message body, validated, mutated in place by the action handler and then
# published back as the .done or .error reply.
# =============================================================================

import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, Optional, Tuple

from network_worker.runtime.errors import (
    AlreadyPublishedError,
    DatacenterCredentialsInvalidError,
    DatacenterIDInvalidError,
    DatacenterRegionInvalidError,
    DecodeError,
    NetworkAWSIDInvalidError,
    NetworkSubnetInvalidError,
)

if TYPE_CHECKING:
    from network_worker.runtime.bus import MessageBus

logger = logging.getLogger(__name__)

DONE_SUFFIX = ".done"
ERROR_SUFFIX = ".error"


class NetworkAction(str, Enum):
    """Actions carried in the second segment of a subject."""
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    GET = "get"

    @classmethod
    def from_subject(cls, subject: str) -> Optional["NetworkAction"]:
        """network.create.aws -> CREATE. None when the segment is unknown."""
        parts = (subject or "").split(".")
        if len(parts) < 2:
            return None
        try:
            return cls(parts[1])
        except ValueError:
            return None


# (attribute, wire key, omit when empty) in wire order
WIRE_FIELDS: Tuple[Tuple[str, str, bool], ...] = (
    ("uuid", "_uuid", False),
    ("batch_id", "_batch_id", False),
    ("provider_type", "_type", False),
    ("datacenter_region", "datacenter_region", False),
    ("datacenter_access_key", "datacenter_secret", False),
    ("datacenter_access_token", "datacenter_token", False),
    ("vpc_id", "vpc_id", False),
    ("network_aws_id", "network_aws_id", True),
    ("name", "name", False),
    ("subnet", "range", False),
    ("is_public", "is_public", False),
    ("availability_zone", "availability_zone", False),
    ("error_message", "error_message", True),
)

_BOOL_FIELDS = {"is_public"}


@dataclass
class ProvisioningRequest:
    """
    Subnet provisioning request.

    Attributes:
        uuid / batch_id / provider_type: request identity
        datacenter_region / datacenter_access_key / datacenter_access_token:
            per-request AWS credentials, never cached
        vpc_id: parent VPC, always required
        network_aws_id: subnet id assigned on create, key for delete
        name / subnet / is_public / availability_zone: requested subnet
        error_message: set only when the request fails
        subject / body / action: routing metadata, not part of the wire schema
    """
    uuid: str = ""
    batch_id: str = ""
    provider_type: str = ""
    datacenter_region: str = ""
    datacenter_access_key: str = field(default="", repr=False)
    datacenter_access_token: str = field(default="", repr=False)
    vpc_id: str = ""
    network_aws_id: str = ""
    name: str = ""
    subnet: str = ""
    is_public: bool = False
    availability_zone: str = ""
    error_message: str = ""

    subject: str = field(default="", compare=False)
    body: bytes = field(default=b"", repr=False, compare=False)
    action: Optional[NetworkAction] = field(default=None, compare=False)
    published: Optional[str] = field(default=None, repr=False, compare=False)

    @classmethod
    def new(cls, subject: str, body: bytes) -> "ProvisioningRequest":
        """Blank envelope for a raw bus message."""
        return cls(subject=subject, body=body, action=NetworkAction.from_subject(subject))

    @property
    def is_delete(self) -> bool:
        return self.action == NetworkAction.DELETE

    # ==========================================================================
    # Decoding
    # ==========================================================================

    def decode(self) -> "ProvisioningRequest":
        """Overlay the raw body onto this envelope. Raises DecodeError."""
        try:
            data = json.loads(self.body)
        except (ValueError, TypeError) as e:
            raise DecodeError(f"invalid JSON payload: {e}") from e

        if data is None:
            return self
        if not isinstance(data, dict):
            raise DecodeError(f"payload must be a JSON object, got {type(data).__name__}")

        values: Dict[str, Any] = {}
        for attr, key, _ in WIRE_FIELDS:
            if key not in data or data[key] is None:
                continue
            value = data[key]
            if attr in _BOOL_FIELDS:
                if not isinstance(value, bool):
                    raise DecodeError(f"field {key} must be a boolean")
            elif not isinstance(value, str):
                raise DecodeError(f"field {key} must be a string")
            values[attr] = value

        for attr, value in values.items():
            setattr(self, attr, value)
        return self

    # ==========================================================================
    # Validation
    # ==========================================================================

    def validate(self) -> None:
        """Raise the first failed check. Checks are never aggregated."""
        if not self.vpc_id:
            raise DatacenterIDInvalidError()

        if not self.datacenter_region:
            raise DatacenterRegionInvalidError()

        if not self.datacenter_access_key or not self.datacenter_access_token:
            raise DatacenterCredentialsInvalidError()

        if self.is_delete:
            if not self.network_aws_id:
                raise NetworkAWSIDInvalidError()
        elif not self.subnet:
            raise NetworkSubnetInvalidError()

    # ==========================================================================
    # Serialization
    # ==========================================================================

    def to_dict(self) -> Dict[str, Any]:
        """Wire representation, in wire field order."""
        out: Dict[str, Any] = {}
        for attr, key, omit_empty in WIRE_FIELDS:
            value = getattr(self, attr)
            if omit_empty and not value:
                continue
            out[key] = value
        return out

    def to_json(self) -> bytes:
        return json.dumps(self.to_dict(), ensure_ascii=False, separators=(",", ":")).encode("utf-8")

    # ==========================================================================
    # Outcomes (one-shot)
    # ==========================================================================

    def complete(self, bus: "MessageBus") -> None:
        """Publish this envelope to <subject>.done."""
        self._publish(bus, DONE_SUFFIX, self.to_json())

    def fail(self, err: BaseException, bus: "MessageBus") -> None:
        """Record err on the envelope and publish it to <subject>.error."""
        # an exception without a message still has to explain the failure
        self.error_message = str(err) or type(err).__name__
        logger.error(f"Error: {self.error_message}")
        self._publish(bus, ERROR_SUFFIX, self.to_json())

    def publish_raw_error(self, bus: "MessageBus") -> None:
        """Republish the undecoded body verbatim to <subject>.error."""
        self._publish(bus, ERROR_SUFFIX, self.body)

    def _publish(self, bus: "MessageBus", suffix: str, data: bytes) -> None:
        if self.published is not None:
            raise AlreadyPublishedError(self.subject)
        self.published = suffix
        bus.publish(self.subject + suffix, data)


def decode(subject: str, body: bytes) -> ProvisioningRequest:
    """Build an envelope for a raw message and decode its body."""
    return ProvisioningRequest.new(subject, body).decode()
