# tests/test_session_events.py
from app.services.session_events import SessionHub, SessionChange, SIGNED_IN, SIGNED_OUT


def _event(kind, sid="s1", uid="u1"):
    return SessionChange(kind=kind, user_id=uid, session_id=sid)


async def test_publish_reaches_every_listener():
    hub = SessionHub()
    seen_a, seen_b = [], []

    async def a(event):
        seen_a.append(event.kind)

    async def b(event):
        seen_b.append(event.kind)

    hub.subscribe(a)
    hub.subscribe(b)

    delivered = await hub.publish(_event(SIGNED_IN))

    assert delivered == 2
    assert seen_a == seen_b == [SIGNED_IN]


async def test_failing_listener_does_not_block_others():
    hub = SessionHub()
    seen = []

    async def broken(event):
        raise RuntimeError("listener bug")

    async def ok(event):
        seen.append(event.session_id)

    hub.subscribe(broken)
    hub.subscribe(ok)

    delivered = await hub.publish(_event(SIGNED_IN, sid="s9"))

    assert delivered == 1
    assert seen == ["s9"]


async def test_unsubscribe_stops_delivery():
    hub = SessionHub()
    seen = []

    async def listener(event):
        seen.append(event.kind)

    unsubscribe = hub.subscribe(listener)
    await hub.publish(_event(SIGNED_IN))
    unsubscribe()
    await hub.publish(_event(SIGNED_OUT))

    assert seen == [SIGNED_IN]


async def test_listener_tracks_its_own_live_sessions():
    hub = SessionHub()
    live = {}

    async def track(event):
        sids = live.setdefault(event.user_id, set())
        if event.kind == SIGNED_IN:
            sids.add(event.session_id)
        else:
            sids.discard(event.session_id)
            if not sids:
                live.pop(event.user_id)

    hub.subscribe(track)

    await hub.publish(_event(SIGNED_IN, sid="s1"))
    await hub.publish(_event(SIGNED_IN, sid="s2"))
    assert live == {"u1": {"s1", "s2"}}

    await hub.publish(_event(SIGNED_OUT, sid="s1"))
    await hub.publish(_event(SIGNED_OUT, sid="s2"))
    assert live == {}


async def test_hub_keeps_no_state_without_listeners():
    hub = SessionHub()

    for n in range(50):
        assert await hub.publish(_event(SIGNED_IN, sid=f"s{n}")) == 0

    assert vars(hub) == {"_listeners": [], "_closed": False}


async def test_closed_hub_drops_events():
    hub = SessionHub()
    seen = []

    async def listener(event):
        seen.append(event)

    hub.subscribe(listener)
    hub.close()

    assert hub.closed
    assert await hub.publish(_event(SIGNED_IN)) == 0
    assert seen == []
