"""
SLA escalation poller

Runs the SLA checker in-process, once or on a fixed interval. Deploy it next
to the API (cron, systemd timer or a long-running container) when nothing
else calls POST /api/v1/sla/check.

Usage:
    python scripts/run_sla_check.py --once
    python scripts/run_sla_check.py --interval 60
    python scripts/run_sla_check.py --once --now 2025-01-01T12:00:00+00:00
"""
import argparse
import asyncio
import sys

from dotenv import load_dotenv

load_dotenv()

from guestglow.dependencies import get_escalation_service  # noqa: E402
from guestglow.services.escalation import parse_timestamp  # noqa: E402
from guestglow.utils.logger import get_logger  # noqa: E402

logger = get_logger("run_sla_check")


async def run_once(now_override=None) -> int:
    service = get_escalation_service()
    if now_override is not None:
        service.now = lambda: now_override

    result = await service.check_sla()
    print(
        f"checked={result.checked_count} actions={result.actions_taken} "
        f"({result.message})"
    )
    for item in result.results:
        print(
            f"  {item.feedback_id}: {item.action.value} level={item.escalation_level} "
            f"after {item.hours_since_created}h -> {item.recipient}"
        )
    return result.actions_taken


async def main():
    parser = argparse.ArgumentParser(description="Run the GuestGlow SLA escalation checker")
    parser.add_argument("--once", action="store_true", help="Run a single pass and exit")
    parser.add_argument("--interval", type=float, default=60.0, help="Seconds between passes (default: 60)")
    parser.add_argument("--now", type=str, default=None, help="ISO timestamp to use as the current time (with --once)")

    args = parser.parse_args()

    if args.now and not args.once:
        parser.error("--now can only be used together with --once")

    now_override = parse_timestamp(args.now) if args.now else None

    if args.once:
        try:
            await run_once(now_override)
        except Exception as e:
            logger.error(f"SLA check failed: {e}")
            sys.exit(1)
        return

    logger.info(f"Starting SLA poller (interval={args.interval}s)")
    while True:
        try:
            await run_once()
        except Exception as e:
            logger.error(f"SLA check failed, retrying next interval: {e}")
        await asyncio.sleep(args.interval)


if __name__ == "__main__":
    asyncio.run(main())
