"""
Scheduled feedback report sender

Builds one daily, weekly or monthly feedback report in-process and emails it.
Run it from cron (or any scheduler) when nothing calls
POST /api/v1/reports/feedback.

Usage:
    python scripts/send_feedback_report.py --type daily
    python scripts/send_feedback_report.py --type weekly --tenant-id <uuid>
    python scripts/send_feedback_report.py --type monthly --recipient gm@hotel.example
"""
import argparse
import asyncio
import sys

from dotenv import load_dotenv

load_dotenv()

from guestglow.dependencies import get_feedback_report_service  # noqa: E402
from guestglow.models.schemas import FeedbackReportRequest, ReportType  # noqa: E402
from guestglow.utils.logger import get_logger  # noqa: E402

logger = get_logger("send_feedback_report")


async def main():
    parser = argparse.ArgumentParser(description="Send a scheduled GuestGlow feedback report")
    parser.add_argument(
        "--type",
        dest="report_type",
        choices=[report_type.value for report_type in ReportType],
        default=ReportType.DAILY.value,
        help="Reporting window (default: daily)"
    )
    parser.add_argument("--tenant-id", type=str, default=None, help="Limit the report to one tenant")
    parser.add_argument("--tenant-slug", type=str, default=None, help="Tenant slug for email headers")
    parser.add_argument(
        "--recipient",
        action="append",
        default=None,
        help="Recipient address (repeatable, defaults to REPORT_RECIPIENTS)"
    )

    args = parser.parse_args()

    request = FeedbackReportRequest(
        report_type=ReportType(args.report_type),
        tenant_id=args.tenant_id,
        tenant_slug=args.tenant_slug,
        recipients=args.recipient
    )

    try:
        result = await get_feedback_report_service().send_report(request)
    except Exception as e:
        logger.error(f"Feedback report failed: {e}")
        sys.exit(1)

    report = result.report
    print(
        f"{result.report_type.value} report: feedback={report.total_feedback} "
        f"avg={report.average_rating} resolution={report.resolution_rate}%"
    )
    for delivery in result.results:
        outcome = delivery.email_id if delivery.success else f"FAILED ({delivery.error})"
        print(f"  {delivery.recipient}: {outcome}")

    if not any(delivery.success for delivery in result.results):
        sys.exit(1)


if __name__ == "__main__":
    asyncio.run(main())
