import asyncio
import json
import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter
from sse_starlette.sse import EventSourceResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["realtime"])

GROUP_CREATED = "GROUP_CREATED"
GROUP_DELETED = "GROUP_DELETED"
MEMBERSHIP_REQUESTED = "MEMBERSHIP_REQUESTED"
MEMBERSHIP_APPROVED = "MEMBERSHIP_APPROVED"

# cola -> group_id filtrado (None = todos los eventos)
_subscribers: Dict[asyncio.Queue, Optional[int]] = {}


def _wants(group_filter: Optional[int], payload: Dict[str, Any]) -> bool:
    return group_filter is None or payload.get("group_id") == group_filter


async def broadcast(event_type: str, payload: Dict[str, Any]) -> None:
    dead = []
    for q, group_filter in _subscribers.items():
        if not _wants(group_filter, payload):
            continue
        try:
            q.put_nowait({"event": event_type, "data": payload})
        except asyncio.QueueFull:
            dead.append(q)

    for q in dead:
        logger.warning("dropping slow SSE subscriber")
        _subscribers.pop(q, None)


@router.get("/events")
async def sse_events(group_id: Optional[int] = None):
    queue: asyncio.Queue = asyncio.Queue(maxsize=100)
    _subscribers[queue] = group_id

    async def generator():
        try:
            while True:
                msg = await queue.get()
                yield {
                    "event": msg["event"],
                    "data": json.dumps(msg["data"], ensure_ascii=False),
                }
        except asyncio.CancelledError:
            pass
        finally:
            _subscribers.pop(queue, None)

    return EventSourceResponse(generator())
