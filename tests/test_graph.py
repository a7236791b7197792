"""Tests for resource kinds and dependency ordering."""

from __future__ import annotations

import pytest

from autolab.resources.graph import (
    DEPENDENCIES,
    RESOURCE_SPECS,
    ResourceKind,
    creation_order,
    dependency_keys,
    teardown_order,
    topological_order,
)
from autolab.state.models import StateKey

K = ResourceKind


class TestOrdering:
    """Creation order is topological; teardown is its reverse."""

    def test_creation_order(self):
        assert creation_order() == [
            K.KEY_PAIR,
            K.NETWORK,
            K.GATEWAY,
            K.PUBLIC_SUBNET,
            K.PRIVATE_SUBNET,
            K.ROUTE_TABLE,
            K.SECURITY_GROUP,
            K.INSTANCE,
            K.BUCKET,
        ]

    def test_teardown_is_exact_reverse(self):
        assert teardown_order() == list(reversed(creation_order()))

    def test_every_dependency_precedes_dependent(self):
        order = creation_order()
        for kind, deps in DEPENDENCIES.items():
            for dep in deps:
                assert order.index(dep) < order.index(kind)

    def test_every_kind_has_a_spec(self):
        assert set(RESOURCE_SPECS) == set(ResourceKind)

    def test_cycle_detected(self):
        graph = {K.NETWORK: {K.GATEWAY}, K.GATEWAY: {K.NETWORK}}
        with pytest.raises(ValueError, match="cycle"):
            topological_order(graph)

    def test_custom_graph_respects_declaration_order(self):
        graph = {K.BUCKET: set(), K.KEY_PAIR: set(), K.NETWORK: set()}
        assert topological_order(graph) == [K.KEY_PAIR, K.NETWORK, K.BUCKET]


class TestDependencyKeys:
    def test_route_table(self):
        assert dependency_keys(K.ROUTE_TABLE) == [
            StateKey.VPC_ID,
            StateKey.IGW_ID,
            StateKey.PUBLIC_SUBNET_ID,
        ]

    def test_instance(self):
        assert dependency_keys(K.INSTANCE) == [
            StateKey.KEY_NAME,
            StateKey.PUBLIC_SUBNET_ID,
            StateKey.SECURITY_GROUP_ID,
        ]

    def test_roots_have_none(self):
        assert dependency_keys(K.NETWORK) == []
        assert dependency_keys(K.BUCKET) == []


class TestFromName:
    @pytest.mark.parametrize("raw", ["route-table", "route_table", "ROUTE_TABLE", " Route-Table "])
    def test_accepts_variants(self, raw):
        assert ResourceKind.from_name(raw) is K.ROUTE_TABLE

    def test_unknown(self):
        with pytest.raises(ValueError, match="Unknown resource kind"):
            ResourceKind.from_name("load-balancer")
