#!/usr/bin/env python3
"""
Send one notification to a user through the full pipeline (write, push, no socket relay).
Useful after registering a device token to check that Expo delivers it.

Run from backend dir:
  python scripts/send_test_notification.py <user_id> [--type SYSTEM] [--title ...] [--body ...]
"""
import argparse
import asyncio
import logging
import sys
from pathlib import Path

backend_dir = Path(__file__).resolve().parent.parent
if str(backend_dir) not in sys.path:
    sys.path.insert(0, str(backend_dir))

from dotenv import load_dotenv

load_dotenv(backend_dir / ".env")

from kreels.config import settings
from kreels.core.categories import NotificationType
from kreels.db.session import build_engine, build_session_factory
from kreels.services.notification_service import NotificationService
from kreels.services.push import ExpoPushClient


async def _send(user_id: str, category: str, title: str, body: str) -> int:
    engine = build_engine(settings.database_url)
    push_client = ExpoPushClient(
        settings.expo_push_url,
        access_token=settings.expo_access_token,
        timeout=settings.expo_push_timeout_seconds,
    )
    service = NotificationService(build_session_factory(engine), push_sender=push_client)
    try:
        payload = await service.write(user_id, category, title, body)
        if payload is None:
            print(f"In-app notifications are off for {user_id}; nothing written.")
            return 1
        print(f"Stored notification {payload['notification']['id']} (unread: {payload['unread_count']})")
        result = await service.dispatch_push(user_id, category, title, body)
        if result is None:
            print("No push attempted (push disabled for this category or no active tokens).")
        else:
            print(f"Push: sent={result.sent} failed={result.failed} invalid={len(result.invalid_tokens)}")
        return 0
    finally:
        await push_client.aclose()
        engine.dispose()


def main() -> int:
    parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument("user_id")
    parser.add_argument("--type", default=NotificationType.SYSTEM.value, choices=[t.value for t in NotificationType])
    parser.add_argument("--title", default="Test notification")
    parser.add_argument("--body", default="If you can read this, push works.")
    args = parser.parse_args()
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    return asyncio.run(_send(args.user_id, args.type, args.title, args.body))


if __name__ == "__main__":
    sys.exit(main())
