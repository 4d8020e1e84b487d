"""Fact derivation: selection, semver fallback and soft/hard failure policy."""

from datetime import datetime, timezone

import pytest
from hypothesis import given, strategies as st

from buildstamp.constants import FACT_KEYS, ConstantsFlags, selected_facts
from buildstamp.deriver import FactDeriver, prefixed_version
from buildstamp.errors import (
    CommandFailedError,
    DescribeUnavailableError,
    HardDerivationError,
    NoRepositoryError,
)
from tests.helpers.git_fakes import (
    SAMPLE_COMMIT_DATE,
    SAMPLE_SHA,
    SAMPLE_SHA_SHORT,
    SAMPLE_TARGET,
    FakeInspector,
    empty_repository_inspector,
    untagged_inspector,
)

NO_PKG = ConstantsFlags.all().toggle(ConstantsFlags.SEMVER_FROM_CARGO_PKG)


def _derive(flags, inspector=None, package_version="0.1.0", target=SAMPLE_TARGET, **kwargs):
    deriver = FactDeriver(
        flags,
        inspector or FakeInspector(),
        package_version=package_version,
        target_triple=target,
        clock=kwargs.pop("clock"),
        **kwargs,
    )
    return deriver, deriver.derive()


def test_end_to_end_facts_with_annotated_tag(fixed_clock):
    _, facts = _derive(NO_PKG, clock=fixed_clock)
    assert facts == {
        "BUILD_TIMESTAMP": "2018-08-09T15:15:57.282334+00:00",
        "BUILD_DATE": "2018-08-09",
        "SHA": SAMPLE_SHA,
        "SHA_SHORT": SAMPLE_SHA_SHORT,
        "COMMIT_DATE": SAMPLE_COMMIT_DATE,
        "TARGET_TRIPLE": SAMPLE_TARGET,
        "SEMVER": "v0.1.0",
        "SEMVER_LIGHTWEIGHT": "v0.1.0",
    }
    assert list(facts) == list(FACT_KEYS)
    assert facts["SHA"].startswith(facts["SHA_SHORT"])


def test_package_version_flag_skips_git_for_both_semver_facts(fixed_clock):
    inspector = FakeInspector(annotated="v9.9.9", lightweight="v9.9.9-lw")
    flags = ConstantsFlags.SEMVER | ConstantsFlags.SEMVER_LIGHTWEIGHT | ConstantsFlags.SEMVER_FROM_CARGO_PKG
    _, facts = _derive(flags, inspector, package_version="1.2.3", clock=fixed_clock)
    assert facts == {"SEMVER": "v1.2.3", "SEMVER_LIGHTWEIGHT": "v1.2.3"}
    assert inspector.calls["annotated"] == 0
    assert inspector.calls["lightweight"] == 0


def test_package_version_flag_alone_emits_semver(fixed_clock):
    _, facts = _derive(ConstantsFlags.SEMVER_FROM_CARGO_PKG, package_version="v2.0.0", clock=fixed_clock)
    assert facts == {"SEMVER": "v2.0.0"}


def test_lightweight_tag_only_falls_back_for_annotated(fixed_clock):
    inspector = FakeInspector(
        annotated=DescribeUnavailableError("No annotated tags can describe"),
        lightweight="v0.2.0-3-g75b390d",
    )
    flags = ConstantsFlags.SEMVER | ConstantsFlags.SEMVER_LIGHTWEIGHT
    _, facts = _derive(flags, inspector, package_version="0.2.0", clock=fixed_clock)
    assert facts == {"SEMVER": "v0.2.0", "SEMVER_LIGHTWEIGHT": "v0.2.0-3-g75b390d"}


def test_no_tags_fall_back_independently(fixed_clock):
    flags = ConstantsFlags.SEMVER | ConstantsFlags.SEMVER_LIGHTWEIGHT
    _, facts = _derive(flags, untagged_inspector(), package_version="0.4.0", clock=fixed_clock)
    assert facts == {"SEMVER": "v0.4.0", "SEMVER_LIGHTWEIGHT": "v0.4.0"}


@pytest.mark.parametrize("flag", [ConstantsFlags.SEMVER, ConstantsFlags.SEMVER_LIGHTWEIGHT])
def test_semver_without_any_source_is_hard_failure(flag, fixed_clock):
    with pytest.raises(HardDerivationError) as excinfo:
        _derive(flag, untagged_inspector(), package_version=None, clock=fixed_clock)
    assert excinfo.value.fact == flag.name


def test_package_version_flag_without_version_is_hard_failure(fixed_clock):
    with pytest.raises(HardDerivationError, match="SEMVER"):
        _derive(ConstantsFlags.SEMVER_FROM_CARGO_PKG, package_version="", clock=fixed_clock)


def test_git_failures_are_omitted_softly(fixed_clock):
    deriver, facts = _derive(NO_PKG, empty_repository_inspector(), clock=fixed_clock)
    assert set(facts) == {"BUILD_TIMESTAMP", "BUILD_DATE", "TARGET_TRIPLE", "SEMVER", "SEMVER_LIGHTWEIGHT"}
    assert set(deriver.omitted) == {"SHA", "SHA_SHORT", "COMMIT_DATE"}
    assert facts["SEMVER"] == "v0.1.0"


def test_missing_target_is_omitted(fixed_clock):
    deriver, facts = _derive(ConstantsFlags.TARGET_TRIPLE, target=None, clock=fixed_clock)
    assert facts == {}
    assert "TARGET_TRIPLE" in deriver.omitted


def test_strict_mode_escalates_omissions(fixed_clock):
    inspector = FakeInspector(sha=NoRepositoryError("not a git repository"))
    with pytest.raises(HardDerivationError) as excinfo:
        _derive(ConstantsFlags.SHA, inspector, strict=True, clock=fixed_clock)
    assert excinfo.value.fact == "SHA"


def test_strict_mode_still_allows_semver_fallback(fixed_clock):
    _, facts = _derive(ConstantsFlags.SEMVER, untagged_inspector(), strict=True, clock=fixed_clock)
    assert facts == {"SEMVER": "v0.1.0"}


def test_policy_only_flags_produce_no_facts(fixed_clock):
    inspector = FakeInspector()
    _, facts = _derive(ConstantsFlags.REBUILD_ON_HEAD_CHANGE, inspector, clock=fixed_clock)
    assert facts == {}
    assert sum(inspector.calls.values()) == 0


def test_timestamp_and_date_share_one_instant():
    calls = []

    def clock():
        calls.append(1)
        return datetime(2020, 12, 31, 23, 59, 59, 999999, tzinfo=timezone.utc)

    _, facts = _derive(ConstantsFlags.BUILD_TIMESTAMP | ConstantsFlags.BUILD_DATE, clock=clock)
    assert len(calls) == 1
    assert facts["BUILD_TIMESTAMP"].startswith(facts["BUILD_DATE"])


def test_repeated_derivation_is_stable_apart_from_clock(fixed_clock):
    deriver = FactDeriver(NO_PKG, FakeInspector(), "0.1.0", SAMPLE_TARGET, clock=fixed_clock)
    assert deriver.derive() == deriver.derive()


@pytest.mark.parametrize(
    "version, expected",
    [("0.1.0", "v0.1.0"), ("v0.1.0", "v0.1.0"), (" 1.0.0-rc.1 ", "v1.0.0-rc.1")],
)
def test_prefixed_version(version, expected):
    assert prefixed_version(version) == expected


INSTANT = datetime(2018, 8, 9, 15, 15, 57, tzinfo=timezone.utc)

_failure = st.sampled_from(
    [NoRepositoryError("no repo"), CommandFailedError("boom"), DescribeUnavailableError("no tags")]
)
_canned = st.one_of(st.just("75b390dc6c05a6a4aa2791cc7b3934591803bc22"), _failure)


@given(
    members=st.lists(st.sampled_from(list(ConstantsFlags)), unique=True),
    sha=_canned,
    date=_canned,
    describe=st.one_of(st.just("v1.0.0"), _failure),
)
def test_keys_are_exactly_selected_and_derived(members, sha, date, describe):
    flags = ConstantsFlags.from_names(m.name for m in members)
    inspector = FakeInspector(
        sha=sha,
        sha_short=sha if isinstance(sha, Exception) else sha[:7],
        commit_date=date,
        annotated=describe,
        lightweight=describe,
    )
    deriver = FactDeriver(flags, inspector, "1.0.0", SAMPLE_TARGET, clock=lambda: INSTANT)
    facts = deriver.derive()

    selected = selected_facts(flags)
    assert set(facts) | set(deriver.omitted) == set(selected)
    assert not set(facts) & set(deriver.omitted)
    assert list(facts) == [key for key in FACT_KEYS if key in facts]
    if "SHA" in facts and "SHA_SHORT" in facts:
        assert facts["SHA"].startswith(facts["SHA_SHORT"])


def test_inspector_os_errors_degrade_to_omission(tmp_path, fixed_clock):
    from buildstamp.repository import GitRepositoryInspector

    def runner(args, cwd, timeout):
        raise PermissionError("cwd not readable")

    inspector = GitRepositoryInspector(tmp_path, runner=runner)
    deriver, facts = _derive(ConstantsFlags.SHA, inspector, clock=fixed_clock)
    assert facts == {}
    assert "cwd not readable" in deriver.omitted["SHA"]
