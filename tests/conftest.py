"""Shared fixtures: a recording EC2 double and isolated Deps."""
import json
from typing import Any, Dict, List, Optional, Tuple

import pytest

from network_worker.runtime.bus import RecordingBus
from network_worker.runtime.deps import Deps
from network_worker.runtime.errors import CloudAPIError


VALID_REQUEST: Dict[str, Any] = {
    "_uuid": "test",
    "_batch_id": "test",
    "_type": "aws",
    "datacenter_region": "eu-west-1",
    "datacenter_secret": "key",
    "datacenter_token": "token",
    "vpc_id": "vpc-0000000",
    "network_aws_id": "subnet-00000000",
    "name": "web",
    "range": "10.0.0.0/16",
    "is_public": False,
    "availability_zone": "",
}


def make_body(**overrides: Any) -> bytes:
    payload = dict(VALID_REQUEST)
    payload.update(overrides)
    return json.dumps(payload, separators=(",", ":")).encode("utf-8")


class FakeNetworkClient:
    """Records every call in order; behaviour is configured per test."""

    def __init__(
        self,
        existing_gateway: Optional[Dict[str, Any]] = None,
        existing_route_table: Optional[Dict[str, Any]] = None,
        interface_polls: Optional[List[List[Dict[str, Any]]]] = None,
        fail_on: Optional[str] = None,
    ) -> None:
        self.calls: List[Tuple[str, tuple]] = []
        self.existing_gateway = existing_gateway
        self.existing_route_table = existing_route_table
        self.interface_polls = list(interface_polls or [])
        self.fail_on = fail_on

    def _record(self, name: str, *args: Any) -> None:
        self.calls.append((name, args))
        if self.fail_on == name:
            raise CloudAPIError(f"An error occurred ({name}Failed) when calling {name}")

    @property
    def call_names(self) -> List[str]:
        return [name for name, _ in self.calls]

    def create_subnet(self, vpc_id, cidr_block, availability_zone=None, name=None):
        self._record("create_subnet", vpc_id, cidr_block, availability_zone, name)
        return {
            "SubnetId": "subnet-0abc",
            "VpcId": vpc_id,
            "CidrBlock": cidr_block,
            "AvailabilityZone": availability_zone or "eu-west-1a",
        }

    def delete_subnet(self, subnet_id):
        self._record("delete_subnet", subnet_id)

    def enable_public_ip_on_launch(self, subnet_id):
        self._record("enable_public_ip_on_launch", subnet_id)

    def internet_gateway_by_vpc(self, vpc_id):
        self._record("internet_gateway_by_vpc", vpc_id)
        return self.existing_gateway

    def create_internet_gateway(self):
        self._record("create_internet_gateway")
        return {"InternetGatewayId": "igw-new"}

    def attach_internet_gateway(self, gateway_id, vpc_id):
        self._record("attach_internet_gateway", gateway_id, vpc_id)

    def route_table_by_subnet(self, subnet_id):
        self._record("route_table_by_subnet", subnet_id)
        return self.existing_route_table

    def create_route_table(self, vpc_id):
        self._record("create_route_table", vpc_id)
        return {"RouteTableId": "rtb-new"}

    def associate_route_table(self, route_table_id, subnet_id):
        self._record("associate_route_table", route_table_id, subnet_id)

    def create_route(self, route_table_id, gateway_id, destination_cidr="0.0.0.0/0"):
        self._record("create_route", route_table_id, gateway_id, destination_cidr)

    def network_interfaces_by_subnet(self, subnet_id):
        self._record("network_interfaces_by_subnet", subnet_id)
        if self.interface_polls:
            return self.interface_polls.pop(0)
        return []


class ClientFactory:
    """Stands in for create_network_client and remembers its arguments."""

    def __init__(self, client: FakeNetworkClient) -> None:
        self.client = client
        self.sessions: List[Tuple[str, str, str]] = []

    def __call__(self, region: str, access_key: str, access_token: str) -> FakeNetworkClient:
        self.sessions.append((region, access_key, access_token))
        return self.client


@pytest.fixture
def fake_client() -> FakeNetworkClient:
    return FakeNetworkClient()


@pytest.fixture
def bus() -> RecordingBus:
    return RecordingBus()


@pytest.fixture
def sleeps() -> List[float]:
    return []


@pytest.fixture
def make_deps(bus: RecordingBus, sleeps: List[float]):
    def _make(client: FakeNetworkClient, **overrides: Any) -> Deps:
        kwargs: Dict[str, Any] = {
            "bus": bus,
            "network_client_factory": ClientFactory(client),
            "interface_poll_interval": 0.5,
            "sleep": sleeps.append,
        }
        kwargs.update(overrides)
        return Deps(**kwargs)
    return _make


@pytest.fixture
def deps(make_deps, fake_client: FakeNetworkClient) -> Deps:
    return make_deps(fake_client)
