"""
Test suite for the provisioning engine and the network handlers.

Run with: pytest tests/test_network_handlers.py -v
"""
import json

import pytest

from network_worker.runtime.dispatch import (
    OUTCOME_DECODE_ERROR,
    OUTCOME_DONE,
    OUTCOME_ERROR,
    process_message,
)
from tests.conftest import FakeNetworkClient, make_body

CREATE = "network.create.aws"
DELETE = "network.delete.aws"


def _only(bus, subject):
    [data] = bus.messages(subject)
    return json.loads(data)


# =============================================================================
# TEST: Create
# =============================================================================

class TestCreate:

    def test_private_subnet_only_creates_subnet(self, bus, deps, fake_client):
        """A private subnet needs no gateway, route table, route or attribute change."""
        result = process_message(CREATE, make_body(network_aws_id="", is_public=False), deps)

        assert result.outcome == OUTCOME_DONE
        assert result.delivered
        assert fake_client.call_names == ["create_subnet"]
        assert fake_client.calls[0][1] == ("vpc-0000000", "10.0.0.0/16", None, "web")

    def test_done_envelope_carries_results(self, bus, deps):
        body = make_body(network_aws_id="", availability_zone="")
        process_message(CREATE, body, deps)

        reply = _only(bus, CREATE + ".done")
        assert reply["network_aws_id"] == "subnet-0abc"
        assert reply["availability_zone"] == "eu-west-1a"
        assert "error_message" not in reply
        assert bus.messages(CREATE + ".error") == []

    def test_requested_zone_is_passed_through(self, deps, fake_client):
        process_message(CREATE, make_body(availability_zone="eu-west-1c"), deps)

        assert fake_client.calls[0][1][2] == "eu-west-1c"

    def test_public_subnet_creates_gateway_and_route_table(self, bus, deps, fake_client):
        result = process_message(CREATE, make_body(is_public=True), deps)

        assert result.ok
        assert fake_client.call_names == [
            "create_subnet",
            "internet_gateway_by_vpc",
            "create_internet_gateway",
            "attach_internet_gateway",
            "route_table_by_subnet",
            "create_route_table",
            "associate_route_table",
            "create_route",
            "enable_public_ip_on_launch",
        ]
        calls = dict(fake_client.calls)
        assert calls["internet_gateway_by_vpc"] == ("vpc-0000000",)
        assert calls["attach_internet_gateway"] == ("igw-new", "vpc-0000000")
        assert calls["route_table_by_subnet"] == ("subnet-0abc",)
        assert calls["associate_route_table"] == ("rtb-new", "subnet-0abc")
        assert calls["create_route"] == ("rtb-new", "igw-new", "0.0.0.0/0")
        assert calls["enable_public_ip_on_launch"] == ("subnet-0abc",)

    def test_public_subnet_reuses_existing_gateway_and_route_table(self, make_deps):
        client = FakeNetworkClient(
            existing_gateway={"InternetGatewayId": "igw-shared"},
            existing_route_table={"RouteTableId": "rtb-shared"},
        )

        result = process_message(CREATE, make_body(is_public=True), make_deps(client))

        assert result.ok
        assert client.call_names == [
            "create_subnet",
            "internet_gateway_by_vpc",
            "route_table_by_subnet",
            "create_route",
            "enable_public_ip_on_launch",
        ]
        assert dict(client.calls)["create_route"] == ("rtb-shared", "igw-shared", "0.0.0.0/0")

    def test_session_built_from_request_credentials(self, deps):
        process_message(CREATE, make_body(), deps)
        process_message(CREATE, make_body(datacenter_region="us-east-1"), deps)

        assert deps.network_client_factory.sessions == [
            ("eu-west-1", "key", "token"),
            ("us-east-1", "key", "token"),
        ]

    @pytest.mark.parametrize("failing", [
        "create_subnet",
        "internet_gateway_by_vpc",
        "create_internet_gateway",
        "attach_internet_gateway",
        "route_table_by_subnet",
        "create_route_table",
        "associate_route_table",
        "create_route",
        "enable_public_ip_on_launch",
    ])
    def test_cloud_failure_aborts_and_publishes_error(self, bus, make_deps, failing):
        client = FakeNetworkClient(fail_on=failing)

        result = process_message(CREATE, make_body(is_public=True, network_aws_id=""), make_deps(client))

        assert result.outcome == OUTCOME_ERROR
        assert client.call_names[-1] == failing
        reply = _only(bus, CREATE + ".error")
        assert reply["error_message"] == f"An error occurred ({failing}Failed) when calling {failing}"
        assert "network_aws_id" not in reply
        assert bus.messages(CREATE + ".done") == []


# =============================================================================
# TEST: Delete
# =============================================================================

class TestDelete:

    def test_waits_for_interfaces_before_deleting(self, bus, make_deps, sleeps):
        client = FakeNetworkClient(interface_polls=[
            [{"NetworkInterfaceId": "eni-1"}, {"NetworkInterfaceId": "eni-2"}],
            [{"NetworkInterfaceId": "eni-2"}],
            [],
        ])

        result = process_message(DELETE, make_body(), make_deps(client))

        assert result.ok
        assert client.call_names == [
            "network_interfaces_by_subnet",
            "network_interfaces_by_subnet",
            "network_interfaces_by_subnet",
            "delete_subnet",
        ]
        assert dict(client.calls)["delete_subnet"] == ("subnet-00000000",)
        assert sleeps == [0.5, 0.5]
        assert len(bus.messages(DELETE + ".done")) == 1

    def test_deletes_immediately_when_clear(self, make_deps, sleeps):
        client = FakeNetworkClient()

        process_message(DELETE, make_body(), make_deps(client))

        assert client.call_names == ["network_interfaces_by_subnet", "delete_subnet"]
        assert sleeps == []

    def test_poll_cap_stops_without_deleting(self, bus, make_deps):
        attached = [{"NetworkInterfaceId": "eni-1"}]
        client = FakeNetworkClient(interface_polls=[attached] * 10)

        result = process_message(DELETE, make_body(), make_deps(client, interface_poll_max_attempts=3))

        assert result.outcome == OUTCOME_ERROR
        assert client.call_names == ["network_interfaces_by_subnet"] * 3
        assert "after 3 polls" in _only(bus, DELETE + ".error")["error_message"]

    def test_describe_failure_aborts(self, bus, make_deps):
        client = FakeNetworkClient(fail_on="network_interfaces_by_subnet")

        result = process_message(DELETE, make_body(), make_deps(client))

        assert result.outcome == OUTCOME_ERROR
        assert "delete_subnet" not in client.call_names

    def test_delete_failure_is_reported(self, bus, make_deps):
        client = FakeNetworkClient(fail_on="delete_subnet")

        process_message(DELETE, make_body(), make_deps(client))

        assert "delete_subnet" in _only(bus, DELETE + ".error")["error_message"]


# =============================================================================
# TEST: Dispatch failures
# =============================================================================

class TestDispatchFailures:

    def test_missing_vpc_publishes_error_without_cloud_calls(self, bus, deps, fake_client):
        result = process_message(CREATE, make_body(vpc_id=""), deps)

        assert result.outcome == OUTCOME_ERROR
        assert _only(bus, CREATE + ".error")["error_message"] == "Datacenter VPC ID invalid"
        assert fake_client.calls == []
        assert deps.network_client_factory.sessions == []

    @pytest.mark.parametrize(("subject", "overrides", "message"), [
        (CREATE, {"datacenter_region": ""}, "Datacenter Region invalid"),
        (CREATE, {"datacenter_secret": ""}, "Datacenter credentials invalid"),
        (CREATE, {"datacenter_token": ""}, "Datacenter credentials invalid"),
        (CREATE, {"range": ""}, "Network subnet invalid"),
        (DELETE, {"network_aws_id": ""}, "Network aws id invalid"),
    ])
    def test_validation_failures_never_touch_the_cloud(self, bus, deps, fake_client, subject, overrides, message):
        process_message(subject, make_body(**overrides), deps)

        assert _only(bus, subject + ".error")["error_message"] == message
        assert fake_client.calls == []

    @pytest.mark.parametrize("subject", ["network.update.aws", "network.get.aws"])
    def test_update_and_get_are_unsupported(self, bus, deps, fake_client, subject):
        result = process_message(subject, make_body(), deps)

        assert result.outcome == OUTCOME_ERROR
        reply = _only(bus, subject + ".error")
        assert reply["error_message"] == f"operation not supported for subject {subject}"
        assert fake_client.calls == []

    def test_unrecognized_action(self, bus, deps, fake_client):
        subject = "network.resize.aws"

        process_message(subject, make_body(), deps)

        reply = _only(bus, subject + ".error")
        assert reply["error_message"] == f"action 'resize' not recognized for subject {subject}"
        assert fake_client.calls == []

    def test_decode_failure_republishes_raw_body(self, bus, deps, fake_client):
        result = process_message(CREATE, b"{not json", deps)

        assert result.outcome == OUTCOME_DECODE_ERROR
        assert bus.published == [(CREATE + ".error", b"{not json")]
        assert fake_client.calls == []

    def test_unexpected_exception_becomes_error_outcome(self, bus, make_deps):
        def broken_factory(region, key, token):
            raise RuntimeError("boom")

        deps = make_deps(FakeNetworkClient(), network_client_factory=broken_factory)

        result = process_message(CREATE, make_body(), deps)

        assert result.outcome == OUTCOME_ERROR
        assert _only(bus, CREATE + ".error")["error_message"] == "boom"

    def test_exception_without_message_reports_its_type(self, bus, make_deps):
        def broken_factory(region, key, token):
            raise RuntimeError()

        deps = make_deps(FakeNetworkClient(), network_client_factory=broken_factory)

        result = process_message(CREATE, make_body(), deps)

        assert result.error == "RuntimeError"
        assert _only(bus, CREATE + ".error")["error_message"] == "RuntimeError"

    def test_bus_failure_is_reported_as_undelivered(self, make_deps):
        class BrokenBus:
            def publish(self, subject, data):
                raise RuntimeError("bus down")

        deps = make_deps(FakeNetworkClient(), bus=BrokenBus())

        result = process_message(CREATE, make_body(), deps)

        assert result.outcome == OUTCOME_DONE
        assert result.delivered is False
