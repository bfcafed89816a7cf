import pytest

from shared.database import transaction

from app.models import SlotStatus, SwapStatus
from app.stores import SlotStore, SwapRequestStore

from .conftest import make_slot


async def test_mark_pending_only_touches_swappable_slots(session, alice, bob):
    s1 = await make_slot(session, alice)
    s2 = await make_slot(session, bob, status=SlotStatus.BUSY)
    store = SlotStore(session)

    assert await store.mark_pending([s1.id, s2.id]) == 1
    assert (await store.get(s1.id)).status == SlotStatus.SWAP_PENDING
    assert (await store.get(s2.id)).status == SlotStatus.BUSY


async def test_slot_update_applies_only_given_fields(session, alice, bob):
    s1 = await make_slot(session, alice, "Original")
    store = SlotStore(session)

    assert await store.update(s1.id, {"owner_id": bob.id}) == 1
    slot = await store.get(s1.id)
    assert slot.owner_id == bob.id
    assert slot.title == "Original"
    assert slot.status == SlotStatus.SWAPPABLE

    assert await store.update(s1.id, {}) == 0


async def test_slot_update_rejects_unknown_fields(session, alice):
    s1 = await make_slot(session, alice)
    with pytest.raises(ValueError, match="Unknown fields"):
        await SlotStore(session).update(s1.id, {"colour": "red"})


async def test_transition_is_compare_and_set(session, alice, bob):
    s1 = await make_slot(session, alice)
    s2 = await make_slot(session, bob)
    requests = SwapRequestStore(session)
    req = await requests.create(
        {
            "status": SwapStatus.PENDING.value,
            "requester_id": alice.id,
            "requested_user_id": bob.id,
            "my_slot_id": s1.id,
            "their_slot_id": s2.id,
        }
    )

    assert await requests.transition(req.id, SwapStatus.PENDING, SwapStatus.REJECTED) is True
    assert await requests.transition(req.id, SwapStatus.PENDING, SwapStatus.ACCEPTED) is False
    assert (await requests.get(req.id)).status == SwapStatus.REJECTED


async def test_swap_request_update_only_allows_status(session, alice, bob):
    s1 = await make_slot(session, alice)
    s2 = await make_slot(session, bob)
    requests = SwapRequestStore(session)
    req = await requests.create(
        {
            "status": SwapStatus.PENDING.value,
            "requester_id": alice.id,
            "requested_user_id": bob.id,
            "my_slot_id": s1.id,
            "their_slot_id": s2.id,
        }
    )

    assert await requests.update(req.id, {"status": SwapStatus.ACCEPTED.value}) == 1
    with pytest.raises(ValueError):
        await requests.update(req.id, {"requester_id": bob.id})

    loaded = await requests.get_with_related(req.id)
    assert loaded.status == SwapStatus.ACCEPTED
    assert loaded.requester.id == alice.id
    assert loaded.their_slot.id == s2.id


async def test_transaction_rolls_back_everything_on_error(session, alice):
    s1 = await make_slot(session, alice, "Before")
    store = SlotStore(session)

    with pytest.raises(RuntimeError):
        async with transaction(session):
            await store.update(s1.id, {"title": "During"})
            await store.create({"title": "Ghost", "start_time": s1.start_time, "end_time": s1.end_time,
                                "owner_id": alice.id})
            raise RuntimeError("persistence failure")

    assert (await store.get(s1.id)).title == "Before"
    assert [s.id for s in await store.list_for_owner(alice.id)] == [s1.id]
