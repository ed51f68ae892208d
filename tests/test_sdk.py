import logging
import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from abbucket.constants import NO_EXPERIMENT_AVAILABLE, NOT_IN_ANY_EXPERIMENT
from abbucket.exceptions import (
    BucketAlreadyUsed,
    ConfigurationFrozen,
    ExperimentAlreadyRegistered,
    InvalidBucketRange,
    InvalidGroupTable,
)
from abbucket.sdk import ABTestSDK


@pytest.fixture
def sdk():
    sdk = ABTestSDK()
    sdk.register_experiment("search_exp", "Exact_match_test", 0.3, ["1-10", "41-60"])
    sdk.register_experiment("search_exp", "Spellcheck", 0.2, ["11-30"])
    sdk.add_group_table(
        "search_exp",
        "Exact_match_test",
        {
            "test1": {"weight": 3, "param": "show_exact_match"},
            "control1": {"weight": 6, "param": "default"},
            "control2": {"weight": 1, "param": "default"},
        },
    )
    return sdk


def test_assign_before_any_registration():
    assert ABTestSDK().assign("search_exp", "u1").selected_experiment == NO_EXPERIMENT_AVAILABLE


def test_scenario_through_facade(sdk):
    sdk.freeze()
    outcomes = sdk.check_stability("search_exp", "1306810399759", iterations=60)
    assert len(outcomes) == 1
    assert outcomes[0].to_row()["selectedGroup"] == "control1"
    assert sdk.assign("search_exp", "user_56").selected_experiment == NOT_IN_ANY_EXPERIMENT


def test_experiment_for_bucket(sdk):
    assert sdk.experiment_for_bucket("search_exp", 5) == "Exact_match_test"
    assert sdk.experiment_for_bucket("search_exp", 25) == "Spellcheck"
    assert sdk.experiment_for_bucket("search_exp", 35) is None
    assert sdk.experiment_for_bucket("other", 35) is None
    with pytest.raises(InvalidBucketRange):
        sdk.experiment_for_bucket("search_exp", 0)


def test_range_rejection(sdk):
    with pytest.raises(InvalidBucketRange):
        sdk.register_experiment("search_exp", "bad_low", 0.1, ["0-10"])
    with pytest.raises(InvalidBucketRange):
        sdk.register_experiment("search_exp", "bad_high", 0.1, ["95-101"])

    sdk.register_experiment("fresh", "first", 0.1, ["1-10"])
    with pytest.raises(BucketAlreadyUsed):
        sdk.register_experiment("fresh", "second", 0.1, ["1-10"])


def test_reregistration_does_not_overwrite(sdk):
    before = sdk.buckets_for("search_exp", "Spellcheck")
    with pytest.raises(ExperimentAlreadyRegistered):
        sdk.register_experiment("search_exp", "Spellcheck", 0.2, ["11-30"])
    assert sdk.buckets_for("search_exp", "Spellcheck") == before


def test_failed_registration_keeps_published_snapshot(sdk):
    snapshot = sdk.snapshot
    with pytest.raises(BucketAlreadyUsed):
        sdk.register_experiment("search_exp", "Overlap", 0.1, ["25-35"])
    assert sdk.snapshot is snapshot
    assert sdk.experiment_for_bucket("search_exp", 31) is None


def test_auto_allocation_through_facade(sdk):
    buckets = sdk.register_experiment("search_exp", "Autocomplete", 0.15)
    assert buckets == tuple(range(31, 41)) + tuple(range(61, 66))
    assert sdk.experiment_for_bucket("search_exp", 63) == "Autocomplete"


def test_freeze_blocks_mutation(sdk):
    snapshot = sdk.freeze()
    assert sdk.frozen
    with pytest.raises(ConfigurationFrozen):
        sdk.register_experiment("search_exp", "Late", 0.1)
    with pytest.raises(ConfigurationFrozen):
        sdk.add_group_table("search_exp", "Spellcheck", {"a": (1, None)})
    assert sdk.snapshot is snapshot


def test_snapshot_is_read_only(sdk):
    snapshot = sdk.freeze()
    with pytest.raises(TypeError):
        snapshot.owners["search_exp"] = (None,) * 100
    with pytest.raises(TypeError):
        snapshot.owners["search_exp"][0] = "hijack"


def test_invalid_group_table_rejected(sdk):
    with pytest.raises(InvalidGroupTable):
        sdk.add_group_table("search_exp", "Spellcheck", {"a": {"weight": -1}})
    with pytest.raises(ValueError):
        sdk.add_group_table("", "Spellcheck", {"a": (1, None)})


def test_group_table_replacement_logs_warning(sdk, caplog):
    with caplog.at_level(logging.WARNING, logger="abbucket.sdk"):
        sdk.add_group_table("search_exp", "Exact_match_test", {"only": (1, "x")})
    assert "Replacing group table" in caplog.text
    assert sdk.assign("search_exp", "1306810399759").selected_group == "only"


def test_freeze_warns_about_orphan_group_table(caplog):
    sdk = ABTestSDK()
    sdk.add_group_table("layer", "ghost", {"a": (1, None)})
    with caplog.at_level(logging.WARNING, logger="abbucket.sdk"):
        sdk.freeze()
    assert "layer/ghost" in caplog.text


def test_registration_logs_buckets(caplog):
    sdk = ABTestSDK()
    with caplog.at_level(logging.INFO, logger="abbucket.allocator"):
        sdk.register_experiment("search_exp", "Exact_match_test", 0.3, ["1-10", "41-60"])
    assert "1-10,41-60" in caplog.text


def test_layer_info_includes_groups(sdk):
    info = sdk.get_layer_info("search_exp")
    assert info["experiments"]["Exact_match_test"]["groups"] == ["control1", "control2", "test1"]
    assert info["experiments"]["Spellcheck"]["groups"] is None
    assert sdk.layer_ids() == ["search_exp"]


def test_independent_instances(sdk):
    other = ABTestSDK()
    other.register_experiment("search_exp", "Exact_match_test", 1.0)
    assert other.experiment_for_bucket("search_exp", 35) == "Exact_match_test"
    assert sdk.experiment_for_bucket("search_exp", 35) is None


def test_concurrent_readers_after_freeze(sdk):
    sdk.freeze()
    user_ids = [f"user_{i}" for i in range(2000)]
    expected = [sdk.assign("search_exp", uid) for uid in user_ids]

    def run(_):
        return [sdk.assign("search_exp", uid) for uid in user_ids]

    with ThreadPoolExecutor(max_workers=8) as pool:
        for result in pool.map(run, range(8)):
            assert result == expected


def test_readers_see_consistent_snapshots_during_registration():
    sdk = ABTestSDK()
    sdk.register_experiment("layer", "exp_0", 0.1)
    stop = threading.Event()
    errors = []

    def reader():
        while not stop.is_set():
            snapshot = sdk.snapshot
            owners = snapshot.owners["layer"]
            counts = {}
            for owner in owners:
                if owner is not None:
                    counts[owner] = counts.get(owner, 0) + 1
            # every published experiment is complete: exactly 10 buckets
            if any(count != 10 for count in counts.values()):
                errors.append(counts)

    threads = [threading.Thread(target=reader) for _ in range(4)]
    for t in threads:
        t.start()
    for i in range(1, 10):
        sdk.register_experiment("layer", f"exp_{i}", 0.1)
    stop.set()
    for t in threads:
        t.join()

    assert errors == []
    assert sdk.get_layer_info("layer")["free_buckets"] == 0
