"""
Tests for the email approval workflow

Uses an in-memory approval repository that honours the same conditional
update rules as the Supabase one, so single-use tokens can be exercised end
to end.
"""
import pytest
from datetime import timedelta
from typing import Dict, Optional
from unittest.mock import AsyncMock, MagicMock
from urllib.parse import parse_qs, urlparse

from guestglow.models.schemas import (
    ApprovalAction,
    ApprovalStatus,
    ApprovalToken,
    ResponseApproval,
    SeverityLevel,
)
from guestglow.models.transitions import InvalidTransitionError
from guestglow.services.approval_workflow import (
    EMAIL_APPROVER,
    ApprovalNotFoundError,
    ApprovalWorkflow,
)
from guestglow.tests.factories import BASE_TIME, make_feedback


class InMemoryApprovalRepository:
    """Dict-backed stand-in for ApprovalRepository"""

    def __init__(self):
        self.approvals: Dict[str, ResponseApproval] = {}
        self.tokens: Dict[str, ApprovalToken] = {}
        self._counter = 0

    def add(self, approval: ResponseApproval):
        self.approvals[approval.id] = approval

    def get_approval(self, approval_id) -> Optional[ResponseApproval]:
        return self.approvals.get(approval_id)

    def update_status(self, approval_id, new_status, *, expected_status, approved_by=None, decided_at=None):
        current = self.approvals.get(approval_id)
        if current is None or current.status != expected_status:
            return None
        updated = current.model_copy(update={
            "status": new_status, "approved_by": approved_by, "approved_at": decided_at,
        })
        self.approvals[approval_id] = updated
        return updated

    def revoke_outstanding_tokens(self, approval_id, now):
        revoked = 0
        for key, token in self.tokens.items():
            if token.approval_id == approval_id and token.used_at is None:
                self.tokens[key] = token.model_copy(update={"used_at": now})
                revoked += 1
        return revoked

    def create_token_pair(self, approval_id, expires_at):
        pair = {}
        for action in (ApprovalAction.APPROVE, ApprovalAction.REJECT):
            self._counter += 1
            token = ApprovalToken(
                approval_id=approval_id,
                action=action,
                token=f"tok-{self._counter}",
                expires_at=expires_at,
            )
            self.tokens[token.token] = token
            pair[action] = token
        return pair

    def claim_token(self, token, action, now):
        stored = self.tokens.get(token)
        if stored is None or stored.action != action:
            return None
        if stored.used_at is not None or stored.expires_at <= now:
            return None
        claimed = stored.model_copy(update={"used_at": now})
        self.tokens[token] = claimed
        return claimed


class Clock:
    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now


@pytest.fixture
def approval_repo():
    repo = InMemoryApprovalRepository()
    repo.add(ResponseApproval(
        id="approval-1",
        tenant_id="tenant-1",
        feedback_id="fb-1",
        generated_response="Dear Ama, we are very sorry.",
        risk_score=30,
        severity_level=SeverityLevel.HIGH,
        risk_factors=["Legal threat detected"],
    ))
    return repo


@pytest.fixture
def feedback_repo():
    repo = MagicMock()
    repo.get.return_value = make_feedback()
    return repo


@pytest.fixture
def clock():
    return Clock(BASE_TIME)


@pytest.fixture
def workflow(approval_repo, feedback_repo, mock_dispatcher, clock):
    return ApprovalWorkflow(approval_repo, feedback_repo, mock_dispatcher, now=clock)


def token_from_link(link: str) -> str:
    return parse_qs(urlparse(link).query)["token"][0]


async def issue_tokens(workflow, approval_repo):
    await workflow.notify("approval-1")
    live = [t for t in approval_repo.tokens.values() if t.used_at is None]
    return {t.action: t.token for t in live}


class TestNotify:

    @pytest.mark.asyncio
    async def test_notify_emails_links(self, workflow, approval_repo, mock_dispatcher):
        result = await workflow.notify("approval-1")

        assert result.approval_id == "approval-1"
        assert result.recipients == ["gm@guest-glow.com"]
        assert result.expires_at == BASE_TIME + timedelta(hours=24)

        request = mock_dispatcher.send.call_args.args[0]
        assert request.email_type == "manager_alert"
        assert request.priority.value == "high"
        assert "Legal threat detected" in request.subject
        for token in approval_repo.tokens:
            assert f"token={token}" in request.html_content

    @pytest.mark.asyncio
    async def test_renotify_revokes_previous_pair(self, workflow, approval_repo):
        first = await issue_tokens(workflow, approval_repo)
        second = await issue_tokens(workflow, approval_repo)

        assert first[ApprovalAction.APPROVE] != second[ApprovalAction.APPROVE]
        assert approval_repo.tokens[first[ApprovalAction.APPROVE]].used_at is not None

    @pytest.mark.asyncio
    async def test_unknown_approval(self, workflow):
        with pytest.raises(ApprovalNotFoundError):
            await workflow.notify("missing")

    @pytest.mark.asyncio
    async def test_decided_approval_cannot_be_renotified(self, workflow, approval_repo):
        approval_repo.approvals["approval-1"] = approval_repo.approvals["approval-1"].model_copy(
            update={"status": ApprovalStatus.REJECTED}
        )

        with pytest.raises(InvalidTransitionError):
            await workflow.notify("approval-1")

    def test_action_link(self, workflow):
        link = workflow.action_link("abc", ApprovalAction.REJECT)

        assert link.startswith("http://localhost:8000/api/v1/approvals/action?")
        assert token_from_link(link) == "abc"
        assert "action=reject" in link


class TestRedeem:

    @pytest.mark.asyncio
    async def test_approve_link(self, workflow, approval_repo, mock_dispatcher):
        tokens = await issue_tokens(workflow, approval_repo)
        mock_dispatcher.send.reset_mock()

        outcome = await workflow.redeem(tokens[ApprovalAction.APPROVE], "approve")

        assert outcome.status_code == 200
        assert "Response APPROVED" in outcome.html
        assert outcome.guest_notified is True

        approval = approval_repo.approvals["approval-1"]
        assert approval.status == ApprovalStatus.APPROVED
        assert approval.approved_by == EMAIL_APPROVER
        assert approval.approved_at == BASE_TIME

        guest_email = mock_dispatcher.send.call_args.args[0]
        assert guest_email.email_type == "detailed_thankyou"
        assert guest_email.recipient_email == "ama@example.com"
        assert "we are very sorry" in guest_email.html_content

    @pytest.mark.asyncio
    async def test_double_redemption(self, workflow, approval_repo, mock_dispatcher):
        tokens = await issue_tokens(workflow, approval_repo)

        first = await workflow.redeem(tokens[ApprovalAction.APPROVE], "approve")
        sends_after_first = mock_dispatcher.send.await_count
        second = await workflow.redeem(tokens[ApprovalAction.APPROVE], "approve")

        assert first.status_code == 200
        assert second.status_code == 400
        assert "expired or has already been used" in second.html
        assert approval_repo.approvals["approval-1"].status == ApprovalStatus.APPROVED
        assert mock_dispatcher.send.await_count == sends_after_first

    @pytest.mark.asyncio
    async def test_sibling_link_dies_with_first_click(self, workflow, approval_repo):
        tokens = await issue_tokens(workflow, approval_repo)

        await workflow.redeem(tokens[ApprovalAction.REJECT], "reject")
        outcome = await workflow.redeem(tokens[ApprovalAction.APPROVE], "approve")

        assert outcome.status_code == 400
        assert approval_repo.approvals["approval-1"].status == ApprovalStatus.REJECTED

    @pytest.mark.asyncio
    async def test_reject_does_not_contact_guest(self, workflow, approval_repo, mock_dispatcher):
        tokens = await issue_tokens(workflow, approval_repo)
        mock_dispatcher.send.reset_mock()

        outcome = await workflow.redeem(tokens[ApprovalAction.REJECT], "reject")

        assert outcome.status_code == 200
        assert "Response REJECTED" in outcome.html
        assert outcome.guest_notified is False
        mock_dispatcher.send.assert_not_called()

    @pytest.mark.asyncio
    async def test_expired_token(self, workflow, approval_repo, clock):
        tokens = await issue_tokens(workflow, approval_repo)
        clock.now = BASE_TIME + timedelta(hours=24)

        outcome = await workflow.redeem(tokens[ApprovalAction.APPROVE], "approve")

        assert outcome.status_code == 400
        assert approval_repo.approvals["approval-1"].status == ApprovalStatus.PENDING

    @pytest.mark.asyncio
    async def test_token_used_with_wrong_action(self, workflow, approval_repo):
        tokens = await issue_tokens(workflow, approval_repo)

        outcome = await workflow.redeem(tokens[ApprovalAction.REJECT], "approve")

        assert outcome.status_code == 400
        assert approval_repo.approvals["approval-1"].status == ApprovalStatus.PENDING

    @pytest.mark.asyncio
    async def test_already_decided_elsewhere(self, workflow, approval_repo):
        tokens = await issue_tokens(workflow, approval_repo)
        approval_repo.approvals["approval-1"] = approval_repo.approvals["approval-1"].model_copy(
            update={"status": ApprovalStatus.REJECTED}
        )

        outcome = await workflow.redeem(tokens[ApprovalAction.APPROVE], "approve")

        assert outcome.status_code == 409
        assert "Already Processed" in outcome.html

    @pytest.mark.asyncio
    @pytest.mark.parametrize("token,action", [(None, "approve"), ("tok", None), ("", "")])
    async def test_missing_parameters(self, workflow, token, action):
        outcome = await workflow.redeem(token, action)

        assert outcome.status_code == 400
        assert "Missing token or action parameter" in outcome.html

    @pytest.mark.asyncio
    async def test_unknown_action(self, workflow):
        outcome = await workflow.redeem("tok", "escalate")

        assert outcome.status_code == 400

    @pytest.mark.asyncio
    async def test_guest_delivery_failure_is_not_fatal(self, workflow, approval_repo, mock_dispatcher):
        tokens = await issue_tokens(workflow, approval_repo)
        mock_dispatcher.send = AsyncMock(side_effect=RuntimeError("provider down"))

        outcome = await workflow.redeem(tokens[ApprovalAction.APPROVE], "approve")

        assert outcome.status_code == 200
        assert outcome.guest_notified is False
        assert approval_repo.approvals["approval-1"].status == ApprovalStatus.APPROVED

    @pytest.mark.asyncio
    async def test_no_guest_email(self, workflow, approval_repo, feedback_repo, mock_dispatcher):
        feedback_repo.get.return_value = make_feedback(guest_email=None)
        tokens = await issue_tokens(workflow, approval_repo)
        mock_dispatcher.send.reset_mock()

        outcome = await workflow.redeem(tokens[ApprovalAction.APPROVE], "approve")

        assert outcome.status_code == 200
        assert outcome.guest_notified is False
        mock_dispatcher.send.assert_not_called()
