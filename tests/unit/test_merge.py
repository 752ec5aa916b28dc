"""Unit tests for the pure merge functions."""

import pytest

from typesense_cloud.controllers.merge import (
    apply_observed,
    creation_params,
    detect_drift,
    ignored_immutable_changes,
    plan_update,
    primary_region,
    record_from_observed,
    record_from_spec,
)
from typesense_cloud.core.exceptions import DecodeError
from typesense_cloud.core.models import ClusterSpec, LifecycleState


class TestCreationParams:
    """Test creation_params."""

    def test_creation_params_full_body(self, sample_spec):
        """Test the create body carries every creation field."""
        params = creation_params(sample_spec)

        assert params == {
            "memory": "0.5_gb",
            "vcpu": "2_vcpus_4_hr_burst_per_day",
            "regions": ["oregon"],
            "high_availability": "no",
            "search_delivery_network": "off",
            "high_performance_disk": "no",
            "name": "search-prod",
            "auto_upgrade_capacity": False,
        }

    def test_creation_params_absent_optionals(self):
        """Test absent name and auto-upgrade fall back to empty and false."""
        spec = ClusterSpec(memory="1_gb", vcpu="2_vcpus", region="frankfurt")

        params = creation_params(spec)

        assert params["name"] == ""
        assert params["auto_upgrade_capacity"] is False


def test_record_from_spec_is_unprovisioned(sample_spec):
    """Test a record built from a spec has no id yet."""
    record = record_from_spec(sample_spec)

    assert record.id is None
    assert record.state == LifecycleState.UNPROVISIONED
    assert record.region == "oregon"
    assert record.name == "search-prod"


class TestPrimaryRegion:
    """Test primary_region."""

    def test_single_region(self):
        """Test the only listed region is chosen."""
        assert primary_region(None, ["oregon"]) == "oregon"

    def test_first_region_without_tracked(self):
        """Test the first listed region is chosen without a tracked region."""
        assert primary_region(None, ["frankfurt", "oregon"]) == "frankfurt"

    def test_tracked_region_survives_reordering(self):
        """Test a tracked region stays primary whatever the list order."""
        assert primary_region("oregon", ["oregon", "frankfurt"]) == "oregon"
        assert primary_region("oregon", ["frankfurt", "oregon"]) == "oregon"

    def test_tracked_region_no_longer_listed(self):
        """Test the first listed region replaces a region no longer listed."""
        assert primary_region("oregon", ["mumbai", "frankfurt"]) == "mumbai"

    def test_tracked_region_empty_list(self):
        """Test the tracked region is kept when the remote lists none."""
        assert primary_region("oregon", []) == "oregon"

    def test_no_region_at_all(self):
        """Test missing regions without a tracked region is a decode error."""
        with pytest.raises(DecodeError):
            primary_region(None, [], "abc123xyz")


class TestApplyObserved:
    """Test apply_observed."""

    def test_overwrites_observed_fields(self, ready_record, make_cluster):
        """Test every observed field comes from the remote cluster."""
        cluster = make_cluster(
            name="renamed-in-console",
            typesense_server_version="28.0",
            auto_upgrade_capacity=True,
            hostnames={"load_balanced": "lb.typesense.net", "nodes": ["n1", "n2"]},
        )

        merged = apply_observed(ready_record, cluster)

        assert merged.name == "renamed-in-console"
        assert merged.typesense_server_version == "28.0"
        assert merged.auto_upgrade_capacity is True
        assert merged.hostnames.load_balanced == "lb.typesense.net"
        assert merged.hostnames.nodes == ["n1", "n2"]

    def test_keeps_lifecycle_state(self, ready_record, make_cluster):
        """Test the lifecycle state is left for the caller."""
        merged = apply_observed(ready_record, make_cluster(status="provisioning"))

        assert merged.state == LifecycleState.READY
        assert merged.status == "provisioning"

    def test_does_not_mutate_input(self, ready_record, make_cluster):
        """Test the input record is not modified."""
        apply_observed(ready_record, make_cluster(name="other"))

        assert ready_record.name == "search-prod"


class TestRecordFromObserved:
    """Test record_from_observed."""

    def test_ready_cluster(self, make_cluster):
        """Test an in-service cluster yields a ready record."""
        record = record_from_observed(make_cluster())

        assert record.id == "abc123xyz"
        assert record.state == LifecycleState.READY
        assert record.memory == "0.5_gb"

    def test_provisioning_cluster(self, make_cluster):
        """Test a cluster not yet in service yields a provisioning record."""
        record = record_from_observed(make_cluster(status="initializing"))

        assert record.state == LifecycleState.PROVISIONING

    @pytest.mark.parametrize(
        "regions",
        [["frankfurt", "oregon", "mumbai"], ["oregon", "mumbai", "frankfurt"]],
    )
    def test_collapses_to_first_region(self, make_cluster, regions):
        """Test multi-region clusters collapse to the first listed region."""
        record = record_from_observed(make_cluster(regions=regions))

        assert record.region == regions[0]


class TestPlanUpdate:
    """Test plan_update."""

    def test_only_mutable_fields_in_params(self, ready_record):
        """Test creation-time changes never reach the patch body."""
        spec = ClusterSpec(
            memory="8_gb",
            vcpu="4_vcpus",
            region="mumbai",
            high_availability="yes",
            name="renamed",
        )

        planned, params = plan_update(ready_record, spec)

        assert params == {"name": "renamed"}
        assert planned.name == "renamed"
        assert planned.memory == ready_record.memory
        assert planned.region == ready_record.region
        assert planned.high_availability == "no"

    def test_absent_fields_not_patched(self, ready_record):
        """Test absent optional fields keep their values."""
        spec = ClusterSpec(memory="0.5_gb", vcpu="2_vcpus_4_hr_burst_per_day", region="oregon")

        planned, params = plan_update(ready_record, spec)

        assert params == {}
        assert planned == ready_record

    def test_auto_upgrade_false_is_patched(self, ready_record):
        """Test an explicit false is a value, not an absence."""
        record = ready_record.model_copy(update={"auto_upgrade_capacity": True})
        spec = ClusterSpec(
            memory="0.5_gb",
            vcpu="2_vcpus_4_hr_burst_per_day",
            region="oregon",
            auto_upgrade_capacity=False,
        )

        planned, params = plan_update(record, spec)

        assert params == {"auto_upgrade_capacity": False}
        assert planned.auto_upgrade_capacity is False


def test_ignored_immutable_changes(ready_record):
    """Test differing creation-time fields are reported."""
    spec = ClusterSpec(
        memory="8_gb",
        vcpu="2_vcpus_4_hr_burst_per_day",
        region="oregon",
        high_performance_disk="yes",
    )

    assert ignored_immutable_changes(ready_record, spec) == ["memory", "high_performance_disk"]


class TestDetectDrift:
    """Test detect_drift."""

    def test_no_drift(self, ready_record, sample_spec):
        """Test a matching spec reports nothing."""
        assert detect_drift(ready_record, sample_spec) == []

    def test_drift_entries(self, ready_record):
        """Test each differing field is reported with its fix."""
        spec = ClusterSpec(
            memory="4_gb",
            vcpu="2_vcpus_4_hr_burst_per_day",
            region="oregon",
            name="renamed",
        )

        drift = {entry.attribute: entry for entry in detect_drift(ready_record, spec)}

        assert set(drift) == {"memory", "name"}
        assert drift["memory"].desired == "4_gb"
        assert drift["memory"].observed == "0.5_gb"
        assert drift["memory"].mutable is False
        assert drift["name"].mutable is True

    def test_absent_optionals_never_drift(self, ready_record):
        """Test absent optional fields are not compared."""
        record = ready_record.model_copy(update={"auto_upgrade_capacity": True})
        spec = ClusterSpec(memory="0.5_gb", vcpu="2_vcpus_4_hr_burst_per_day", region="oregon")

        assert detect_drift(record, spec) == []
