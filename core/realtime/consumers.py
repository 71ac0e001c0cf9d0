import json
import logging

from asgiref.sync import async_to_sync
from channels.generic.websocket import AsyncWebsocketConsumer
from channels.layers import get_channel_layer
from django.db import transaction
from django.utils import timezone

logger = logging.getLogger(__name__)


def schedule_group(doctor_id) -> str:
    return f"schedule.{doctor_id}"


class ScheduleConsumer(AsyncWebsocketConsumer):
    """Pushes ``schedule.changed`` events to a doctor's open dashboards."""

    async def connect(self):
        self.group = schedule_group(self.scope["url_route"]["kwargs"]["doctor_id"])
        await self.channel_layer.group_add(self.group, self.channel_name)
        await self.accept()
        await self.send(json.dumps({"type": "welcome", "group": self.group}))

    async def disconnect(self, close_code):
        await self.channel_layer.group_discard(self.group, self.channel_name)

    async def schedule_changed(self, event):
        # event: {"type": "schedule.changed", "doctorId": int, "reason": str, "appointmentId": int|None, "ts": "..."}
        await self.send(json.dumps(event))


def broadcast_schedule_change(doctor_id, reason: str, appointment_id=None) -> None:
    """Notify subscribers once the surrounding transaction has committed."""
    channel_layer = get_channel_layer()
    if channel_layer is None:
        return
    payload = {
        "type": "schedule.changed",
        "doctorId": doctor_id,
        "reason": reason,
        "appointmentId": appointment_id,
        "ts": timezone.now().isoformat(),
    }

    def send():
        try:
            async_to_sync(channel_layer.group_send)(schedule_group(doctor_id), payload)
        except Exception:
            logger.exception("schedule broadcast failed for doctor %s", doctor_id)

    transaction.on_commit(send)
