# scripts/process_reminders.py
"""Run one reminder batch. Intended to be scheduled from cron, e.g. every 5 minutes."""
import argparse
import asyncio
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from db.database import AsyncSessionLocal, disconnect_db
from models.reminder import ReminderChannel
from services.reminder_service import reminder_service
from utils.logger import setup_logger

logger = setup_logger("REMINDER_BATCH")


async def run_batch(channel: ReminderChannel = None) -> dict:
    async with AsyncSessionLocal() as session:
        result = await reminder_service.process_pending_reminders(session, channel=channel)
    await disconnect_db()
    for item in result["results"]:
        if not item["success"]:
            logger.warning(f"Reminder {item['reminder_id']} failed: {item['error']}")
    logger.info(
        f"Batch complete: {result['total']} due, {result['sent']} sent, {result['failed']} failed"
    )
    return result


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Send due reminders")
    parser.add_argument(
        "--channel", choices=[c.value for c in ReminderChannel], default=None
    )
    args = parser.parse_args()

    channel = ReminderChannel(args.channel) if args.channel else None
    result = asyncio.run(run_batch(channel))
    sys.exit(1 if result["failed"] else 0)
