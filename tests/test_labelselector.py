"""Tests for the node selector algebra and selector parsing."""

import pytest

from podnodeenv import labelselector
from podnodeenv.errors import SelectorParseError


class TestConflictsAndMerge:
    """Test conflicts() and merge()."""

    def test_disjoint_keys(self):
        project = {"zone": "east"}
        pod = {"disk": "ssd", "gpu": "true"}
        assert labelselector.conflicts(project, pod) is False
        merged = labelselector.merge(project, pod)
        assert len(merged) == len(project) + len(pod)
        assert merged == {"zone": "east", "disk": "ssd", "gpu": "true"}

    def test_shared_key_same_value(self):
        project = {"zone": "east", "env": "prod"}
        pod = {"zone": "east", "disk": "ssd"}
        assert labelselector.conflicts(project, pod) is False
        assert labelselector.conflicts(pod, project) is False
        assert labelselector.merge(project, pod) == {"zone": "east", "env": "prod", "disk": "ssd"}

    def test_shared_key_different_value(self):
        assert labelselector.conflicts({"zone": "east"}, {"zone": "west"}) is True
        assert labelselector.conflicts({"zone": "west"}, {"zone": "east", "disk": "ssd"}) is True

    def test_empty_maps(self):
        assert labelselector.conflicts({}, {}) is False
        assert labelselector.merge({}, {}) == {}
        assert labelselector.merge({"zone": "east"}, {}) == {"zone": "east"}

    def test_merge_is_idempotent(self):
        project = {"zone": "east"}
        pod = {"disk": "ssd"}
        once = labelselector.merge(project, pod)
        assert labelselector.merge(project, once) == once

    def test_merge_does_not_modify_inputs(self):
        project = {"zone": "east"}
        pod = {"disk": "ssd"}
        labelselector.merge(project, pod)
        assert project == {"zone": "east"}
        assert pod == {"disk": "ssd"}

    def test_equals(self):
        assert labelselector.equals({"a": "1", "b": "2"}, {"b": "2", "a": "1"})
        assert not labelselector.equals({"a": "1"}, {"a": "2"})
        assert not labelselector.equals({"a": "1"}, {"a": "1", "b": "2"})


class TestParse:
    """Test parse()."""

    @pytest.mark.parametrize("selector", ["", "   "])
    def test_empty(self, selector):
        assert labelselector.parse(selector) == {}

    def test_single_and_multiple_terms(self):
        assert labelselector.parse("zone=east") == {"zone": "east"}
        assert labelselector.parse("zone=east, disk==ssd") == {"zone": "east", "disk": "ssd"}

    def test_prefixed_key_and_empty_value(self):
        assert labelselector.parse("node-role.kubernetes.io/infra=") == {
            "node-role.kubernetes.io/infra": ""
        }

    def test_repeated_key_same_value(self):
        assert labelselector.parse("zone=east,zone=east") == {"zone": "east"}

    @pytest.mark.parametrize("selector", [
        "zone!=east",
        "zone in (east)",
        "zone",
        "!zone",
        "zone=east,",
        "zone=east,zone=west",
        "-zone=east",
        "zone=east=west",
        "zone=" + "a" * 64,
        "Bad_Prefix/zone=east",
    ])
    def test_invalid(self, selector):
        with pytest.raises(SelectorParseError):
            labelselector.parse(selector)

    def test_to_string_is_sorted(self):
        assert labelselector.to_string({"zone": "east", "disk": "ssd"}) == "disk=ssd,zone=east"
        assert labelselector.parse(labelselector.to_string({"b": "2", "a": "1"})) == {"a": "1", "b": "2"}
