# =============================================================================
# Error Taxonomy
# =============================================================================
# Every failure a provisioning request can hit. All of them are terminal for
# the request and end up as an error publication; none of them stop the
# worker from handling the next message.
# =============================================================================

from typing import Optional


class ProvisioningError(Exception):
    """Base error for a single provisioning request."""

    error_code = "provisioning_error"
    default_message = "provisioning failed"

    def __init__(self, message: Optional[str] = None) -> None:
        super().__init__(message or self.default_message)


class DecodeError(ProvisioningError):
    """Payload is not a well-formed request."""

    error_code = "decode_error"
    default_message = "payload could not be decoded"


# =============================================================================
# VALIDATION
# =============================================================================

class ValidationError(ProvisioningError):
    error_code = "validation_error"


class DatacenterIDInvalidError(ValidationError):
    error_code = "datacenter_id_invalid"
    default_message = "Datacenter VPC ID invalid"


class DatacenterRegionInvalidError(ValidationError):
    error_code = "datacenter_region_invalid"
    default_message = "Datacenter Region invalid"


class DatacenterCredentialsInvalidError(ValidationError):
    error_code = "datacenter_credentials_invalid"
    default_message = "Datacenter credentials invalid"


class NetworkSubnetInvalidError(ValidationError):
    error_code = "network_subnet_invalid"
    default_message = "Network subnet invalid"


class NetworkAWSIDInvalidError(ValidationError):
    error_code = "network_aws_id_invalid"
    default_message = "Network aws id invalid"


# =============================================================================
# DISPATCH
# =============================================================================

class UnsupportedOperationError(ProvisioningError):
    error_code = "unsupported_operation"

    def __init__(self, subject: str) -> None:
        super().__init__(f"operation not supported for subject {subject}")
        self.subject = subject


class UnrecognizedActionError(ProvisioningError):
    error_code = "unrecognized_action"

    def __init__(self, subject: str) -> None:
        parts = subject.split(".")
        segment = parts[1] if len(parts) > 1 else ""
        super().__init__(f"action '{segment}' not recognized for subject {subject}")
        self.subject = subject


# =============================================================================
# CLOUD / BUS
# =============================================================================

class CloudAPIError(ProvisioningError):
    """EC2 call failed; message is the SDK error text, unmodified."""

    error_code = "cloud_api_error"

    def __init__(self, message: str, *, aws_error_code: Optional[str] = None) -> None:
        super().__init__(message)
        self.aws_error_code = aws_error_code


class InterfaceWaitTimeoutError(ProvisioningError):
    error_code = "interface_wait_timeout"

    def __init__(self, subnet_id: str, attempts: int) -> None:
        super().__init__(
            f"network interfaces still attached to {subnet_id} after {attempts} polls"
        )
        self.subnet_id = subnet_id
        self.attempts = attempts


class AlreadyPublishedError(ProvisioningError):
    error_code = "already_published"

    def __init__(self, subject: str) -> None:
        super().__init__(f"outcome for {subject} was already published")
        self.subject = subject


class BusPublishError(ProvisioningError):
    error_code = "bus_publish_error"
