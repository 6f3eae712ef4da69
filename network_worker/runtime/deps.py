# =============================================================================
# Dependency Injection Container
# =============================================================================
# Carries the bus handle and the EC2 client factory into the engine so that
# nothing is held as module-level global state. Tests build their own Deps
# with a RecordingBus and a fake client factory.
# =============================================================================

import logging
import time
from dataclasses import dataclass, field
from functools import partial
from typing import Any, Callable, List, Optional

import boto3

from handlers import base
from handlers.ec2 import NetworkClientFactory, create_network_client
from network_worker.runtime.bus import MessageBus, SnsMessageBus

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Deps:
    """
    Read-only dependencies shared by concurrent message handlers.

    Attributes:
        bus: where .done / .error replies are published
        network_client_factory: (region, access_key, access_token) -> EC2
            capability object, called once per request
        interface_poll_interval: seconds between network interface polls
        interface_poll_max_attempts: poll cap for deletes, None for unbounded
        sleep: blocking wait used between polls
        subjects: inbound subjects this worker handles
        max_concurrency: messages processed in parallel per batch
    """
    bus: MessageBus
    network_client_factory: NetworkClientFactory = create_network_client
    interface_poll_interval: float = 1.0
    interface_poll_max_attempts: Optional[int] = None
    sleep: Callable[[float], None] = time.sleep
    subjects: List[str] = field(default_factory=lambda: base.DEFAULT_SUBJECTS.split(","))
    max_concurrency: int = 10


def create_sns_bus(topic_arn: Optional[str] = None, sns_client: Any = None) -> SnsMessageBus:
    """SNS bus from NETWORK_BUS_* settings."""
    if sns_client is None:
        sns_client = boto3.client(
            "sns",
            region_name=base.bus_region(),
            endpoint_url=base.bus_endpoint_url(),
        )
    return SnsMessageBus(topic_arn or base.bus_topic_arn(), sns_client)


def create_deps(bus: Optional[MessageBus] = None) -> Deps:
    """Create a Deps instance from the environment."""
    ec2_endpoint = base.ec2_endpoint_url()
    factory: NetworkClientFactory = create_network_client
    if ec2_endpoint:
        factory = partial(create_network_client, endpoint_url=ec2_endpoint)

    return Deps(
        bus=bus if bus is not None else create_sns_bus(),
        network_client_factory=factory,
        interface_poll_interval=base.interface_poll_interval(),
        interface_poll_max_attempts=base.interface_poll_max_attempts(),
        subjects=base.subscribed_subjects(),
        max_concurrency=base.worker_max_concurrency(),
    )
