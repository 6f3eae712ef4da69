# =============================================================================
# EC2 Network Client
# =============================================================================
# Capability object over one boto3 EC2 client. A new session is built for
# every request from the credentials carried on the event; nothing is cached.
# All SDK failures surface as CloudAPIError with the SDK message unchanged.
# =============================================================================

import logging
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, List, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from network_worker.runtime.errors import CloudAPIError

logger = logging.getLogger(__name__)

DEFAULT_ROUTE_CIDR = "0.0.0.0/0"

NetworkClientFactory = Callable[[str, str, str], "Ec2NetworkClient"]


@contextmanager
def _cloud_call(operation: str) -> Iterator[None]:
    try:
        yield
    except ClientError as e:
        code = e.response.get("Error", {}).get("Code")
        logger.warning(f"{operation} failed: {code}")
        raise CloudAPIError(str(e), aws_error_code=code) from e
    except BotoCoreError as e:
        logger.warning(f"{operation} failed: {e}")
        raise CloudAPIError(str(e)) from e


def _filter(name: str, value: str) -> List[Dict[str, Any]]:
    return [{"Name": name, "Values": [value]}]


class Ec2NetworkClient:
    """Subnet, gateway, route table and interface operations."""

    def __init__(self, ec2_client: Any) -> None:
        self._ec2 = ec2_client

    # ==========================================================================
    # Subnets
    # ==========================================================================

    def create_subnet(
        self,
        vpc_id: str,
        cidr_block: str,
        availability_zone: Optional[str] = None,
        name: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Create a subnet and return the Subnet description."""
        kwargs: Dict[str, Any] = {"VpcId": vpc_id, "CidrBlock": cidr_block}
        if availability_zone:
            kwargs["AvailabilityZone"] = availability_zone
        if name:
            kwargs["TagSpecifications"] = [{
                "ResourceType": "subnet",
                "Tags": [{"Key": "Name", "Value": name}],
            }]

        with _cloud_call("CreateSubnet"):
            subnet = self._ec2.create_subnet(**kwargs)["Subnet"]
        logger.info(f"Created subnet {subnet['SubnetId']} ({cidr_block}) in {vpc_id}")
        return subnet

    def delete_subnet(self, subnet_id: str) -> None:
        with _cloud_call("DeleteSubnet"):
            self._ec2.delete_subnet(SubnetId=subnet_id)
        logger.info(f"Deleted subnet {subnet_id}")

    def enable_public_ip_on_launch(self, subnet_id: str) -> None:
        with _cloud_call("ModifySubnetAttribute"):
            self._ec2.modify_subnet_attribute(
                SubnetId=subnet_id,
                MapPublicIpOnLaunch={"Value": True},
            )

    # ==========================================================================
    # Internet gateways
    # ==========================================================================

    def internet_gateway_by_vpc(self, vpc_id: str) -> Optional[Dict[str, Any]]:
        """First gateway attached to vpc_id, or None."""
        with _cloud_call("DescribeInternetGateways"):
            resp = self._ec2.describe_internet_gateways(
                Filters=_filter("attachment.vpc-id", vpc_id),
            )
        gateways = resp.get("InternetGateways", [])
        return gateways[0] if gateways else None

    def create_internet_gateway(self) -> Dict[str, Any]:
        with _cloud_call("CreateInternetGateway"):
            gateway = self._ec2.create_internet_gateway()["InternetGateway"]
        logger.info(f"Created internet gateway {gateway['InternetGatewayId']}")
        return gateway

    def attach_internet_gateway(self, gateway_id: str, vpc_id: str) -> None:
        with _cloud_call("AttachInternetGateway"):
            self._ec2.attach_internet_gateway(InternetGatewayId=gateway_id, VpcId=vpc_id)
        logger.info(f"Attached internet gateway {gateway_id} to {vpc_id}")

    # ==========================================================================
    # Route tables
    # ==========================================================================

    def route_table_by_subnet(self, subnet_id: str) -> Optional[Dict[str, Any]]:
        """First route table explicitly associated with subnet_id, or None."""
        with _cloud_call("DescribeRouteTables"):
            resp = self._ec2.describe_route_tables(
                Filters=_filter("association.subnet-id", subnet_id),
            )
        tables = resp.get("RouteTables", [])
        return tables[0] if tables else None

    def create_route_table(self, vpc_id: str) -> Dict[str, Any]:
        with _cloud_call("CreateRouteTable"):
            table = self._ec2.create_route_table(VpcId=vpc_id)["RouteTable"]
        logger.info(f"Created route table {table['RouteTableId']} in {vpc_id}")
        return table

    def associate_route_table(self, route_table_id: str, subnet_id: str) -> None:
        with _cloud_call("AssociateRouteTable"):
            self._ec2.associate_route_table(RouteTableId=route_table_id, SubnetId=subnet_id)

    def create_route(
        self,
        route_table_id: str,
        gateway_id: str,
        destination_cidr: str = DEFAULT_ROUTE_CIDR,
    ) -> None:
        with _cloud_call("CreateRoute"):
            self._ec2.create_route(
                RouteTableId=route_table_id,
                DestinationCidrBlock=destination_cidr,
                GatewayId=gateway_id,
            )
        logger.info(f"Routed {destination_cidr} in {route_table_id} via {gateway_id}")

    # ==========================================================================
    # Network interfaces
    # ==========================================================================

    def network_interfaces_by_subnet(self, subnet_id: str) -> List[Dict[str, Any]]:
        with _cloud_call("DescribeNetworkInterfaces"):
            resp = self._ec2.describe_network_interfaces(
                Filters=_filter("subnet-id", subnet_id),
            )
        return resp.get("NetworkInterfaces", [])


def create_network_client(
    region: str,
    access_key: str,
    access_token: str,
    *,
    endpoint_url: Optional[str] = None,
) -> Ec2NetworkClient:
    """Fresh EC2 client for one request's static credentials."""
    session = boto3.Session(
        aws_access_key_id=access_key,
        aws_secret_access_key=access_token,
        region_name=region,
    )
    return Ec2NetworkClient(session.client("ec2", endpoint_url=endpoint_url))
