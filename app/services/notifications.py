# app/services/notifications.py
"""
Topic-addressed notification operations.

Every operation that names a topic checks that Novu knows it first and raises
TopicNotFoundError otherwise, before any subscriber or event call is made.
"""
import logging
from typing import Any, Dict, List, Mapping

import asyncpg

from app.crud import crud_contest
from app.schemas.notification import ContestAlert
from app.services.novu import NovuClient
from app.utils.notification_format import DEFAULT_TIMEZONE, format_duration, format_start_time

logger = logging.getLogger(__name__)


class TopicNotFoundError(Exception):
    pass


class ContestNotFoundError(Exception):
    pass


async def ensure_topic_exists(novu: NovuClient, topic_key: str) -> Dict[str, Any]:
    topic = await novu.get_topic(topic_key)
    if not topic:
        logger.info(f"Topic '{topic_key}' not found")
        raise TopicNotFoundError("Topic not found")
    return topic


async def subscribe_to_topic(novu: NovuClient, topic_key: str, subscriber_ids: List[str]):
    await ensure_topic_exists(novu, topic_key)
    return await novu.add_subscribers(topic_key, subscriber_ids)


async def unsubscribe_from_topic(novu: NovuClient, topic_key: str, subscriber_ids: List[str]):
    await ensure_topic_exists(novu, topic_key)
    return await novu.remove_subscribers(topic_key, subscriber_ids)


def build_contest_alert(contest: Mapping[str, Any], timezone: str = DEFAULT_TIMEZONE) -> ContestAlert:
    return ContestAlert(
        name=contest.get("name"),
        host=contest.get("host"),
        vanity=contest["vanity"],
        time=format_start_time(contest["startTimeUnix"], timezone),
        duration=format_duration(contest["duration"]),
        url=contest.get("url"),
    )


async def dispatch_contest_alert(
    db: asyncpg.Connection,
    novu: NovuClient,
    topic_key: str,
    contest_vanity: str,
    workflow: str,
    timezone: str = DEFAULT_TIMEZONE,
):
    """
    Sends the contest-alert workflow to every subscriber of `topic_key`.

    Both lookups run before either result is checked; the topic is checked
    first. Nothing is triggered unless both exist.
    """
    topic = await novu.get_topic(topic_key)
    contest = await crud_contest.get_contest_by_vanity(db, contest_vanity)

    if not topic:
        logger.info(f"Contest alert skipped: topic '{topic_key}' not found")
        raise TopicNotFoundError("Topic not found")
    if contest is None:
        logger.info(f"Contest alert skipped: contest '{contest_vanity}' not found")
        raise ContestNotFoundError("Contest not found")

    alert = build_contest_alert(contest, timezone)
    logger.info(f"Triggering '{workflow}' for contest '{contest_vanity}' on topic '{topic_key}'")
    return await novu.trigger(
        workflow,
        to=[{"type": "Topic", "topicKey": topic_key}],
        payload={"contest": alert.model_dump()},
    )
