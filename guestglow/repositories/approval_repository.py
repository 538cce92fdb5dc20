"""
Approval Repository

CRUD utilities for the `response_approvals` and `approval_tokens` tables.
Risk assessments that need human sign-off are stored here, together with the
single-use tokens embedded in approve/reject email links.
"""
from __future__ import annotations

import secrets
from datetime import datetime
from typing import Dict, Optional

from guestglow.models.schemas import (
    ApprovalAction,
    ApprovalStatus,
    ApprovalToken,
    ResponseApproval,
    RiskAssessment,
)
from guestglow.repositories.base_repository import BaseRepository, to_iso
from guestglow.utils.logger import get_logger

logger = get_logger(__name__)


class ApprovalRepository(BaseRepository):
    """Repository for response_approvals / approval_tokens operations."""

    table_name = "response_approvals"
    tokens_table = "approval_tokens"

    # ------------------------------------------------------------------
    # Approvals
    # ------------------------------------------------------------------
    def create_approval(
        self,
        *,
        tenant_id: Optional[str],
        feedback_id: Optional[str],
        generated_response: str,
        assessment: RiskAssessment
    ) -> ResponseApproval:
        """Insert a pending approval for a risky response."""
        payload = {
            "tenant_id": tenant_id,
            "feedback_id": feedback_id,
            "generated_response": generated_response,
            "response_type": "guest_response",
            "risk_score": assessment.risk_score,
            "severity_level": assessment.severity_level.value,
            "risk_factors": assessment.risk_factors,
            "risk_explanation": assessment.risk_explanation,
            "ai_confidence_score": assessment.ai_confidence_score,
            "requires_approval": True,
            "status": ApprovalStatus.PENDING.value,
        }
        try:
            response = self._table().insert(payload).execute()
            row = self._first(response)
            if not row:
                raise ValueError("Supabase insert returned no data")

            approval = ResponseApproval(**row)
            logger.info("Created pending approval %s for feedback %s", approval.id, feedback_id)
            return approval

        except Exception as exc:
            self._handle_error("create_approval", exc)

    def find_pending(
        self,
        feedback_id: Optional[str],
        generated_response: str
    ) -> Optional[ResponseApproval]:
        """Pending approval for the same feedback/response pair, if any."""
        if not feedback_id:
            return None
        try:
            response = self._table() \
                .select("*") \
                .eq("feedback_id", feedback_id) \
                .eq("generated_response", generated_response) \
                .eq("status", ApprovalStatus.PENDING.value) \
                .limit(1) \
                .execute()

            row = self._first(response)
            return ResponseApproval(**row) if row else None

        except Exception as exc:
            self._handle_error("find_pending", exc)

    def get_approval(self, approval_id: str) -> Optional[ResponseApproval]:
        try:
            response = self._table() \
                .select("*") \
                .eq("id", approval_id) \
                .limit(1) \
                .execute()

            row = self._first(response)
            return ResponseApproval(**row) if row else None

        except Exception as exc:
            self._handle_error(f"get_approval({approval_id})", exc)

    def update_status(
        self,
        approval_id: str,
        new_status: ApprovalStatus,
        *,
        expected_status: ApprovalStatus,
        approved_by: Optional[str] = None,
        decided_at: Optional[datetime] = None
    ) -> Optional[ResponseApproval]:
        """
        Move an approval to a new status if it is still in expected_status.

        Returns:
            The updated row, or None when the guard did not match
        """
        updates = {
            "status": new_status.value,
            "approved_by": approved_by,
            "approved_at": to_iso(decided_at),
        }
        try:
            response = self._table() \
                .update(updates) \
                .eq("id", approval_id) \
                .eq("status", expected_status.value) \
                .execute()

            row = self._first(response)
            return ResponseApproval(**row) if row else None

        except Exception as exc:
            self._handle_error(f"update_status({approval_id})", exc)

    # ------------------------------------------------------------------
    # Tokens
    # ------------------------------------------------------------------
    def revoke_outstanding_tokens(self, approval_id: str, now: datetime) -> int:
        """Mark every unused token of an approval as used. Returns count."""
        try:
            response = self._table(self.tokens_table) \
                .update({"used_at": now.isoformat()}) \
                .eq("approval_id", approval_id) \
                .is_("used_at", "null") \
                .execute()

            return len(self._rows(response))

        except Exception as exc:
            self._handle_error(f"revoke_outstanding_tokens({approval_id})", exc)

    def create_token_pair(
        self,
        approval_id: str,
        expires_at: datetime
    ) -> Dict[ApprovalAction, ApprovalToken]:
        """Insert one approve and one reject token in a single statement."""
        payload = [
            {
                "approval_id": approval_id,
                "action": action.value,
                "token": secrets.token_urlsafe(32),
                "expires_at": expires_at.isoformat(),
            }
            for action in (ApprovalAction.APPROVE, ApprovalAction.REJECT)
        ]
        try:
            response = self._table(self.tokens_table).insert(payload).execute()
            rows = self._rows(response)
            if len(rows) != 2:
                raise ValueError("Failed to generate approval tokens")

            tokens = [ApprovalToken(**row) for row in rows]
            return {token.action: token for token in tokens}

        except Exception as exc:
            self._handle_error(f"create_token_pair({approval_id})", exc)

    def claim_token(
        self,
        token: str,
        action: ApprovalAction,
        now: datetime
    ) -> Optional[ApprovalToken]:
        """
        Atomically mark a token as used.

        The UPDATE only matches an unused, unexpired token, so of two
        concurrent redemptions at most one gets a row back.

        Returns:
            The claimed token, or None if it is unknown, used or expired
        """
        try:
            response = self._table(self.tokens_table) \
                .update({"used_at": now.isoformat()}) \
                .eq("token", token) \
                .eq("action", action.value) \
                .is_("used_at", "null") \
                .gt("expires_at", now.isoformat()) \
                .execute()

            row = self._first(response)
            return ApprovalToken(**row) if row else None

        except Exception as exc:
            self._handle_error("claim_token", exc)
