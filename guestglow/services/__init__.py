"""
Business Logic Services

- risk_assessor / approval_workflow: human sign-off for risky replies
- response_generator / ai_response_generator: reply drafting
- escalation: SLA checker
- feedback_service: guest submissions and staff actions
- review_sync / rating_goals: external reviews and rating targets
- feedback_reports: scheduled daily/weekly/monthly feedback reports
- email_dispatcher / email_templates: outbound email
"""
