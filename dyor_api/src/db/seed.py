"""
Database seeding utilities for reference data.

Seeds:
- Badge definitions (streak, content, engagement, voting, reception, quality,
  token call and tipping badges)

Usage:
  python -m src.db.run_migrations upgrade head
  python -m src.db.seed
"""

from __future__ import annotations

import asyncio
import logging
from typing import List, Tuple

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.db.session import session_scope

logger = logging.getLogger(__name__)

# (name, description, category, requirement, threshold)
BADGE_DEFINITIONS: List[Tuple[str, str, str, str, int]] = [
    ("3-Day Streak", "Active on DYOR Hub 3 days in a row", "streak", "current_streak", 3),
    ("7-Day Streak", "Active on DYOR Hub 7 days in a row", "streak", "current_streak", 7),
    ("14-Day Streak", "Active on DYOR Hub 14 days in a row", "streak", "current_streak", 14),
    ("30-Day Streak", "Active on DYOR Hub 30 days in a row", "streak", "current_streak", 30),
    ("60-Day Streak", "Active on DYOR Hub 60 days in a row", "streak", "current_streak", 60),
    ("100-Day Streak", "Active on DYOR Hub 100 days in a row", "streak", "max_streak", 100),
    ("365-Day Streak", "Active on DYOR Hub every day for a year", "streak", "max_streak", 365),
    ("First Post", "Started your first discussion on a token", "content", "posts_count", 1),
    ("Contributor", "Started 5 discussions", "content", "posts_count", 5),
    ("Regular Poster", "Started 10 discussions", "content", "posts_count", 10),
    ("Prolific Poster", "Started 25 discussions", "content", "posts_count", 25),
    ("First Comment", "Replied to a discussion for the first time", "engagement", "comments_count", 1),
    ("Conversationalist", "Posted 10 replies", "engagement", "comments_count", 10),
    ("Active Commenter", "Posted 50 replies", "engagement", "comments_count", 50),
    ("Community Voice", "Posted 200 replies", "engagement", "comments_count", 200),
    ("First Vote", "Upvoted a comment for the first time", "voting", "upvotes_given_count", 1),
    ("Supporter", "Upvoted 25 comments", "voting", "upvotes_given_count", 25),
    ("Curator", "Upvoted 100 comments", "voting", "upvotes_given_count", 100),
    ("Tastemaker", "Upvoted 500 comments", "voting", "upvotes_given_count", 500),
    ("First Upvote Received", "Received your first upvote", "reception", "upvotes_received_count", 1),
    ("Appreciated", "Received 10 upvotes", "reception", "upvotes_received_count", 10),
    ("Respected", "Received 50 upvotes", "reception", "upvotes_received_count", 50),
    ("Influencer", "Received 100 upvotes", "reception", "upvotes_received_count", 100),
    ("Conversation Starter", "Your posts received 10 replies", "reception", "comments_received_count", 10),
    ("Insightful", "Wrote a comment with at least 5 upvotes", "quality", "comment_min_upvotes", 5),
    ("Popular", "Started a discussion with at least 10 upvotes", "quality", "post_min_upvotes", 10),
    ("Trend Setter", "Started a discussion with at least 50 upvotes", "quality", "post_min_upvotes", 50),
    ("First Hit", "Made your first successful token call", "token_call", "first_successful_token_call", 1),
    ("Moonshot", "Called a token that went 5x or more", "token_call", "token_call_moonshot_x", 5),
    ("Early Bird", "Hit a target within the first 25% of the call window", "token_call", "token_call_early_bird_ratio", 25),
    ("Hot Streak", "Three successful token calls in a row", "token_call", "token_call_success_streak", 3),
    ("Analyst", "Ten successful token calls", "token_call", "successful_token_call_count", 10),
    ("Veteran Caller", "Twenty-five verified token calls", "token_call", "verified_token_call_count", 25),
    ("Sharpshooter", "70% accuracy over at least 5 verified calls", "token_call", "token_call_accuracy_rate", 70),
    ("Tipper", "Sent your first $DYORHUB tip", "tipping", "manual", 1),
]


# PUBLIC_INTERFACE
async def seed_all() -> None:
    """Seed reference data; safe to run repeatedly."""
    async with session_scope() as session:
        inserted = await _seed_badges(session)
        await session.commit()
    logger.info("Seeded %d new badge definitions", inserted)


async def _seed_badges(session: AsyncSession) -> int:
    """Insert missing badge definitions and return how many were created."""
    inserted = 0
    for name, description, category, requirement, threshold in BADGE_DEFINITIONS:
        res = await session.execute(
            text(
                """
                INSERT INTO badges (name, description, category, requirement, threshold)
                VALUES (:name, :description, :category, :requirement, :threshold)
                ON CONFLICT (name) DO NOTHING
                RETURNING id
                """
            ),
            {
                "name": name,
                "description": description,
                "category": category,
                "requirement": requirement,
                "threshold": threshold,
            },
        )
        if res.first() is not None:
            inserted += 1
    return inserted


# PUBLIC_INTERFACE
def main() -> None:
    """Entrypoint to run the asynchronous seeding."""
    asyncio.run(seed_all())


if __name__ == "__main__":
    main()
