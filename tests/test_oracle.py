"""Tests for the resource existence oracle."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from botocore.exceptions import EndpointConnectionError

from autolab.aws.oracle import ExistenceOracle, Presence
from autolab.resources.graph import ResourceKind

from conftest import client_error

K = ResourceKind


class TestExists:
    """Describe-based presence checks per resource kind."""

    def test_present_vpc(self, ec2, oracle):
        vpc_id = ec2.create_vpc(CidrBlock="10.0.0.0/16")["Vpc"]["VpcId"]
        assert oracle.exists(K.NETWORK, vpc_id) == Presence.PRESENT

    def test_not_found_is_absent(self, oracle):
        assert oracle.exists(K.NETWORK, "vpc-0deadbeef") == Presence.ABSENT

    def test_empty_identifier_is_absent(self, ec2, oracle):
        assert oracle.exists(K.GATEWAY, "") == Presence.ABSENT
        assert ec2.calls == []

    def test_empty_result_set_is_absent(self):
        ec2 = MagicMock()
        ec2.describe_subnets.return_value = {"Subnets": []}
        assert ExistenceOracle(ec2, MagicMock()).exists(K.PUBLIC_SUBNET, "subnet-1") == Presence.ABSENT

    def test_transport_error_is_absent(self):
        ec2 = MagicMock()
        ec2.describe_security_groups.side_effect = EndpointConnectionError(endpoint_url="https://ec2")
        oracle = ExistenceOracle(ec2, MagicMock())
        assert oracle.exists(K.SECURITY_GROUP, "sg-1") == Presence.ABSENT

    def test_throttling_is_absent(self):
        ec2 = MagicMock()
        ec2.describe_route_tables.side_effect = client_error("RequestLimitExceeded")
        oracle = ExistenceOracle(ec2, MagicMock())
        assert oracle.exists(K.ROUTE_TABLE, "rtb-1") == Presence.ABSENT

    def test_bucket(self, s3, oracle):
        s3.create_bucket(Bucket="lab-1")
        assert oracle.exists(K.BUCKET, "lab-1") == Presence.PRESENT
        assert oracle.exists(K.BUCKET, "lab-2") == Presence.ABSENT

    def test_key_pair(self, ec2, oracle):
        ec2.create_key_pair(KeyName="AutoKeyPair")
        assert oracle.exists(K.KEY_PAIR, "AutoKeyPair") == Presence.PRESENT
        assert oracle.exists(K.KEY_PAIR, "Other") == Presence.ABSENT

    @pytest.mark.parametrize("kind", list(ResourceKind))
    def test_every_kind_has_a_probe(self, kind, oracle):
        assert oracle.exists(kind, "does-not-exist") == Presence.ABSENT


class TestInstances:
    def _launch(self, ec2):
        vpc_id = ec2.create_vpc(CidrBlock="10.0.0.0/16")["Vpc"]["VpcId"]
        subnet_id = ec2.create_subnet(
            VpcId=vpc_id, CidrBlock="10.0.1.0/24", AvailabilityZone="eu-west-1a"
        )["Subnet"]["SubnetId"]
        return ec2.run_instances(SubnetId=subnet_id)["Instances"][0]["InstanceId"]

    def test_running_is_usable(self, ec2, oracle):
        instance_id = self._launch(ec2)
        assert oracle.instance_state(instance_id) == "running"
        assert oracle.is_usable(K.INSTANCE, instance_id)

    def test_stopped_is_usable(self, ec2, oracle):
        instance_id = self._launch(ec2)
        ec2.instances[instance_id]["State"] = {"Name": "stopped"}
        assert oracle.is_usable(K.INSTANCE, instance_id)

    def test_terminated_is_not_usable(self, ec2, oracle):
        instance_id = self._launch(ec2)
        ec2.terminate_instances(InstanceIds=[instance_id])
        assert oracle.instance_state(instance_id) == "terminated"
        assert not oracle.is_usable(K.INSTANCE, instance_id)

    def test_unknown_instance(self, oracle):
        assert oracle.instance_state("i-fake123") is None
        assert not oracle.is_usable(K.INSTANCE, "i-fake123")


class TestBucketObjectCount:
    def test_counts_objects(self, s3, oracle):
        s3.create_bucket(Bucket="lab-1")
        s3.put_object(Bucket="lab-1", Key="a", Body=b"1")
        s3.put_object(Bucket="lab-1", Key="b", Body=b"2")
        assert oracle.bucket_object_count("lab-1") == 2

    def test_missing_bucket(self, oracle):
        assert oracle.bucket_object_count("nope") is None
