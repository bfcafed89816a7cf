from shared.events import build_event
from shared.rabbitmq import EventPublisher

from .config import RABBIT_URL, SERVICE_NAME
from .hooks import PostCommitHooks, SWAP_ACCEPTED, SWAP_REJECTED, SWAP_REQUESTED
from .models import SwapRequest

publisher = EventPublisher(RABBIT_URL, SERVICE_NAME)


def swap_event_data(request: SwapRequest) -> dict:
    return {
        "request_id": request.id,
        "status": request.status,
        "requester_id": request.requester_id,
        "requested_user_id": request.requested_user_id,
        "my_slot_id": request.my_slot_id,
        "their_slot_id": request.their_slot_id,
        "created_at": request.created_at,
    }


def event_hook(event_type: str, pub: EventPublisher):
    async def publish_swap_event(request: SwapRequest):
        await pub.publish_event(build_event(event_type, swap_event_data(request), source=SERVICE_NAME))

    return publish_swap_event


def register(hooks: PostCommitHooks, pub: EventPublisher | None = None) -> PostCommitHooks:
    pub = pub or publisher
    for event_type in (SWAP_REQUESTED, SWAP_ACCEPTED, SWAP_REJECTED):
        hooks.on(event_type, event_hook(event_type, pub))
    return hooks
