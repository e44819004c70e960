"""
Seed the configured gateway with demo records for local runs.
"""

from __future__ import annotations

import argparse
import logging

from legacy_portal.config import get_settings
from legacy_portal.dependencies import build_gateway
from legacy_portal.gateway import (
    AUTH_TABLE,
    BLOGS_TABLE,
    CONTRIBUTIONS_TABLE,
    FORUM_POSTS_TABLE,
    PROFILES_TABLE,
    Gateway,
    GatewayError,
    InMemoryGateway,
    SqlGateway,
)

logger = logging.getLogger(__name__)

DEMO_PROFILES = [
    {
        "id": "p1",
        "name": "Ada Founder",
        "image_url": "https://picsum.photos/seed/ada/640/360",
        "description": "Started the club in a borrowed classroom.",
        "one_liner": "Ship it, then polish it.",
        "tenure_start": "2015-09-01",
        "tenure_end": "2018-06-30",
    },
    {
        "id": "p2",
        "name": "Grace Current",
        "image_url": "https://picsum.photos/seed/grace/640/360",
        "description": "Runs the weekly workshops.",
        "one_liner": "Every bug is a lesson.",
        "tenure_start": "2022-09-01",
        "tenure_end": None,
    },
]


def demo_rows() -> dict[str, list[dict]]:
    return {
        PROFILES_TABLE: DEMO_PROFILES,
        AUTH_TABLE: [
            {"username": "ada", "password": "ada", "legacy_profile_id": "p1"},
            {"username": "grace", "password": "grace", "legacy_profile_id": "p2"},
        ],
        BLOGS_TABLE: [
            {
                "title": "How it started",
                "content": "We had six members and one projector.",
                "created_at": "2016-01-10T12:00:00+00:00",
                "legacy_profile_id": "p1",
            },
        ],
        FORUM_POSTS_TABLE: [
            {
                "title": "Workshop ideas",
                "content": "Suggestions for next term?",
                "created_at": "2023-02-01T09:30:00+00:00",
                "legacy_profile_id": "p2",
            },
        ],
        CONTRIBUTIONS_TABLE: [
            {
                "title": "Club handbook",
                "resource_url": "https://example.com/handbook",
                "description": "The original onboarding guide.",
                "created_at": "2017-05-20T08:00:00+00:00",
                "legacy_profile_id": "p1",
            },
        ],
    }


def seed_demo_data(gateway: Gateway) -> int:
    """Insert the demo rows table by table. Returns the number of rows written."""
    written = 0
    for table, rows in demo_rows().items():
        result = gateway.table(table).insert(rows)
        if not result.ok:
            raise GatewayError(f"Seeding {table} failed: {result.error}")
        written += len(rows)
        logger.info("Seeded %d rows into %s", len(rows), table)
    return written


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Seed demo legacy portal data")
    parser.add_argument(
        "--database-url",
        type=str,
        default=None,
        help="SQLAlchemy URL to seed instead of the configured gateway",
    )
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(levelname)s:%(message)s")

    if args.database_url:
        gateway = SqlGateway(args.database_url)
    else:
        settings = get_settings()
        settings.validate_gateway()
        gateway = build_gateway(settings)
    if isinstance(gateway, InMemoryGateway):
        logger.error("Refusing to seed the in-memory store; it is lost on exit")
        return 1
    try:
        count = seed_demo_data(gateway)
    except GatewayError as exc:
        logger.error("%s", exc)
        return 1
    logger.info("Done: %d rows", count)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
