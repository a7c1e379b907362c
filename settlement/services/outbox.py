from typing import Dict

from settlement.models import OutboxEvent


def record_event(event_type: str, payload: Dict) -> OutboxEvent:
    """Queue a domain event; callers run this inside their own transaction."""
    return OutboxEvent.objects.create(type=event_type, payload=payload, status="pending")
