import logging
from typing import Protocol

import anyio

from app.models.group import Group
from app.models.user import User
from app.realtime import sse

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    def group_created(self, user: User, group: Group) -> None: ...

    def group_deleted(self, group_id: int) -> None: ...

    def membership_requested(self, user: User, group: Group) -> None: ...

    def membership_approved(self, user: User, group: Group) -> None: ...


class SseNotifier:
    """
    Publica los eventos por SSE. Se usa desde endpoints síncronos (threadpool de
    anyio), por eso pasa por ``anyio.from_thread.run``.
    """

    def _send(self, event_type: str, payload: dict) -> None:
        logger.info("event %s %s", event_type, payload)
        # el cambio ya está guardado: un fallo aquí no debe tumbar la petición
        try:
            anyio.from_thread.run(sse.broadcast, event_type, payload)
        except Exception:
            logger.exception("could not publish event %s", event_type)

    def group_created(self, user: User, group: Group) -> None:
        # el correo de "grupo creado" lo envía quien consuma este evento
        self._send(sse.GROUP_CREATED, {"group_id": group.id, "user_id": user.id, "email": user.email})

    def group_deleted(self, group_id: int) -> None:
        self._send(sse.GROUP_DELETED, {"group_id": group_id})

    def membership_requested(self, user: User, group: Group) -> None:
        self._send(sse.MEMBERSHIP_REQUESTED, {"group_id": group.id, "user_id": user.id})

    def membership_approved(self, user: User, group: Group) -> None:
        self._send(sse.MEMBERSHIP_APPROVED, {"group_id": group.id, "user_id": user.id})
