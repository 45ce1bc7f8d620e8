from __future__ import annotations
from functools import lru_cache
import structlog
from redis import Redis
from redis.exceptions import RedisError
from rq import Queue
from skillzcollab.config import get_notifications_config
from skillzcollab.jobs.notify_followers import notify_followers

log = structlog.get_logger()

@lru_cache(maxsize=1)
def _queue() -> Queue:
    cfg = get_notifications_config()
    return Queue(cfg.queue, connection=Redis.from_url(cfg.redis_url))

def notify_tag_followers(brief_id, tag_ids: list[str]) -> bool:
    """Enqueue the follower fan-out; never raises into the request path."""
    if not tag_ids:
        return False
    if not get_notifications_config().enabled:
        log.info("notifications_disabled", brief_id=str(brief_id))
        return False
    try:
        _queue().enqueue(notify_followers, str(brief_id), [str(t) for t in tag_ids], job_timeout=60)
    except RedisError as e:
        log.error("notify_enqueue_failed", brief_id=str(brief_id), error=str(e))
        return False
    log.info("notify_enqueued", brief_id=str(brief_id), tags=len(tag_ids))
    return True
