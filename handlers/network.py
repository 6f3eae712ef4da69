# =============================================================================
# Network Handlers
# =============================================================================
# create  - subnet, plus gateway / route table / default route when public
# delete  - wait for attached interfaces to go away, then delete the subnet
# update  - not supported
# get     - not supported
#
# Failures abort the sequence. Resources created before the failure are left
# in place; nothing is rolled back.
# =============================================================================

import logging
from typing import Any, Dict

from handlers.ec2 import DEFAULT_ROUTE_CIDR, Ec2NetworkClient
from network_worker.runtime.deps import Deps
from network_worker.runtime.dispatch import register
from network_worker.runtime.envelope import NetworkAction, ProvisioningRequest
from network_worker.runtime.errors import (
    InterfaceWaitTimeoutError,
    UnsupportedOperationError,
)

logger = logging.getLogger(__name__)


def _client_for(request: ProvisioningRequest, deps: Deps) -> Ec2NetworkClient:
    return deps.network_client_factory(
        request.datacenter_region,
        request.datacenter_access_key,
        request.datacenter_access_token,
    )


# =============================================================================
# CREATE
# =============================================================================

@register(NetworkAction.CREATE)
def handle_create(request: ProvisioningRequest, deps: Deps) -> None:
    """Create the subnet and, for public subnets, its internet plumbing."""
    client = _client_for(request, deps)

    subnet = client.create_subnet(
        request.vpc_id,
        request.subnet,
        availability_zone=request.availability_zone or None,
        name=request.name or None,
    )
    subnet_id = subnet["SubnetId"]

    if request.is_public:
        gateway = ensure_internet_gateway(client, request.vpc_id)
        route_table = ensure_route_table(client, request.vpc_id, subnet_id)

        # not idempotent: a second run against the same table conflicts
        client.create_route(
            route_table["RouteTableId"],
            gateway["InternetGatewayId"],
            DEFAULT_ROUTE_CIDR,
        )
        client.enable_public_ip_on_launch(subnet_id)

    request.network_aws_id = subnet_id
    request.availability_zone = subnet.get("AvailabilityZone", "")


def ensure_internet_gateway(client: Ec2NetworkClient, vpc_id: str) -> Dict[str, Any]:
    """Reuse the gateway attached to vpc_id, or create and attach one."""
    gateway = client.internet_gateway_by_vpc(vpc_id)
    if gateway is not None:
        logger.info(f"Reusing internet gateway {gateway['InternetGatewayId']} for {vpc_id}")
        return gateway

    gateway = client.create_internet_gateway()
    client.attach_internet_gateway(gateway["InternetGatewayId"], vpc_id)
    return gateway


def ensure_route_table(client: Ec2NetworkClient, vpc_id: str, subnet_id: str) -> Dict[str, Any]:
    """Reuse the route table associated with subnet_id, or create and associate one."""
    route_table = client.route_table_by_subnet(subnet_id)
    if route_table is not None:
        logger.info(f"Reusing route table {route_table['RouteTableId']} for {subnet_id}")
        return route_table

    route_table = client.create_route_table(vpc_id)
    client.associate_route_table(route_table["RouteTableId"], subnet_id)
    return route_table


# =============================================================================
# DELETE
# =============================================================================

@register(NetworkAction.DELETE)
def handle_delete(request: ProvisioningRequest, deps: Deps) -> None:
    """Delete the subnet once no network interfaces remain attached."""
    client = _client_for(request, deps)
    wait_for_interface_removal(client, request.network_aws_id, deps)
    client.delete_subnet(request.network_aws_id)


def wait_for_interface_removal(client: Ec2NetworkClient, subnet_id: str, deps: Deps) -> None:
    """
    Block until describe-network-interfaces for subnet_id comes back empty.

    Polls every deps.interface_poll_interval seconds. With no
    deps.interface_poll_max_attempts the loop never gives up; interfaces owned
    by other resources (load balancers, NAT devices) have to be cleaned up
    out of band.
    """
    attempts = 0
    while True:
        interfaces = client.network_interfaces_by_subnet(subnet_id)
        attempts += 1
        if not interfaces:
            return

        max_attempts = deps.interface_poll_max_attempts
        if max_attempts is not None and attempts >= max_attempts:
            raise InterfaceWaitTimeoutError(subnet_id, attempts)

        logger.debug(f"{len(interfaces)} interfaces still attached to {subnet_id}, waiting")
        deps.sleep(deps.interface_poll_interval)


# =============================================================================
# UNSUPPORTED
# =============================================================================

@register(NetworkAction.UPDATE)
def handle_update(request: ProvisioningRequest, deps: Deps) -> None:
    raise UnsupportedOperationError(request.subject)


@register(NetworkAction.GET)
def handle_get(request: ProvisioningRequest, deps: Deps) -> None:
    raise UnsupportedOperationError(request.subject)
