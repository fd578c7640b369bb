"""Unit tests for branch routing and deployment event construction."""

from __future__ import annotations

import msgspec
import pytest

from gatekeeper.deployments import (
    Environment,
    PushPayload,
    branch_from_ref,
    build_deployment_event,
    is_deployment_branch,
    route_branch,
    status_label,
)
from tests.helpers.webhooks import FIXED_MILLIS, FIXED_NOW, commit, encode, push_payload


def _decode(**kwargs: object) -> PushPayload:
    return msgspec.json.decode(encode(push_payload(**kwargs)), type=PushPayload)


class TestRouteBranch:
    """Tests for the total branch to environment mapping."""

    @pytest.mark.parametrize(
        ("branch", "expected"),
        [
            ("feature/login", Environment.DEV),
            ("feature/auth-v2", Environment.DEV),
            ("develop", Environment.QA),
            ("main", Environment.PROD),
            ("hotfix/urgent", Environment.INCIDENTS),
            ("master", Environment.INCIDENTS),
            ("", Environment.INCIDENTS),
            ("featurex", Environment.INCIDENTS),
        ],
    )
    def test_route_branch(self, branch: str, expected: Environment) -> None:
        """Every branch maps to exactly one environment."""
        assert route_branch(branch) is expected

    @pytest.mark.parametrize(
        ("branch", "expected"),
        [
            ("feature/login", True),
            ("develop", True),
            ("main", True),
            ("release/1.0", False),
            ("develop2", False),
        ],
    )
    def test_is_deployment_branch(self, branch: str, expected: bool) -> None:  # noqa: FBT001 - parametrized flag
        """Only feature/*, develop and main are tracked."""
        assert is_deployment_branch(branch) is expected

    def test_branch_from_ref_strips_prefix_only(self) -> None:
        """Only the leading refs/heads/ is removed."""
        assert branch_from_ref("refs/heads/feature/refs/heads/x") == "feature/refs/heads/x"
        assert branch_from_ref("refs/tags/v1") == "refs/tags/v1"

    @pytest.mark.parametrize(
        ("branch", "expected"),
        [
            ("feature/x", "DEV deployment pending"),
            ("develop", "QA deployment pending"),
            ("main", "PROD deployment pending"),
        ],
    )
    def test_status_label(self, branch: str, expected: str) -> None:
        """Status labels name the target environment."""
        assert status_label(branch) == expected


class TestBuildDeploymentEvent:
    """Tests for build_deployment_event."""

    def test_uses_last_commit_and_receipt_time(self) -> None:
        """The newest commit represents the push and the id embeds receipt time."""
        payload = _decode(
            ref="refs/heads/feature/auth-v2",
            commits=[
                commit(sha="1111111aaaa", message="first"),
                commit(sha="2222222bbbb", message="second\n\nbody", author="Grace"),
            ],
        )

        event = build_deployment_event(payload, delivery_id="d-9", now=FIXED_NOW)

        assert event is not None, "tracked branch should produce an event"
        assert event.deployment_id == f"deploy-feature/auth-v2-{FIXED_MILLIS}"
        assert event.branch == "feature/auth-v2"
        assert event.commit_sha == "2222222"
        assert event.commit_message == "second"
        assert event.commit_author == "Grace"
        assert event.pusher == "ada"
        assert event.delivery_id == "d-9"
        assert event.triggered_at == "2024-01-01T00:00:00.000Z"
        assert event.commit_url == "https://github.com/octo/reef/commit/2222222"

    def test_untracked_branch_is_ignored(self) -> None:
        """Pushes to untracked branches produce no event."""
        assert build_deployment_event(_decode(ref="refs/heads/release/1.0")) is None

    def test_push_without_commits_is_ignored(self) -> None:
        """Branch deletions and empty pushes produce no event."""
        assert build_deployment_event(_decode(commits=[])) is None

    def test_replayed_push_gets_a_new_identifier(self) -> None:
        """Identical payloads received at different times are not deduplicated."""
        payload = _decode()
        later = FIXED_NOW.replace(second=1)

        first = build_deployment_event(payload, now=FIXED_NOW)
        second = build_deployment_event(payload, now=later)

        assert first is not None
        assert second is not None
        assert first.deployment_id != second.deployment_id
