"""Realtime Reconciler — two clients in one room converge through the change feed.

Tests cover:
    - Another client's upload, delete and comment reach the open replica
    - Local writes followed by their feed echoes never duplicate
    - Leaving the room releases both subscriptions; late events are ignored
    - Comments from users without a profile show as Anonymous
    - Initial load merges with events that arrived first
"""

from roomshare.core.domain_types import DASHBOARD_PATH, FeedTable
from roomshare.core.reconciler import ANONYMOUS_USERNAME
from roomshare.services.comment_service import CommentService
from roomshare.services.file_service import UploadItem
from roomshare.services.realtime_reconciler import RealtimeReconciler

PASSWORD = "secret-pass"


async def _shared_room(signed_up):
    alice = await signed_up("alice")
    bob = await signed_up("bob")
    room = await alice.create_room("Live")
    await bob.join_room(room.join_code)
    return alice, bob, room


async def test_other_clients_upload_and_delete_reach_replica(signed_up, feed):
    alice, bob, room = await _shared_room(signed_up)

    outcome = await alice.upload_files(room.id, [UploadItem("f.txt", b"f")])
    path = outcome.uploaded[0].storage_path
    await feed.flush()
    assert [f.storage_path for f in bob.reconciler.replica.file_list] == [path]

    await alice.delete_file(room.id, path)
    await feed.flush()
    assert bob.reconciler.replica.file_list == []
    assert alice.reconciler.replica.file_list == []


async def test_local_write_and_echo_do_not_duplicate(signed_up, feed):
    alice, bob, room = await _shared_room(signed_up)

    await alice.post_comment(room.id, "first!")
    await alice.upload_files(room.id, [UploadItem("x.txt", b"x")])
    await feed.flush()

    assert len(alice.reconciler.replica.ordered_comments) == 1
    assert len(alice.reconciler.replica.file_list) == 1
    assert [c.content for c in bob.reconciler.replica.ordered_comments] == ["first!"]
    assert bob.reconciler.replica.ordered_comments[0].username == "alice"


async def test_comments_arrive_in_order(signed_up, feed):
    alice, bob, room = await _shared_room(signed_up)
    for text in ("a", "b", "c"):
        await alice.post_comment(room.id, text)
    await bob.post_comment(room.id, "d")
    await feed.flush()

    assert [c.content for c in bob.reconciler.replica.ordered_comments] == ["a", "b", "c", "d"]
    assert [c.content for c in alice.reconciler.replica.ordered_comments] == ["a", "b", "c", "d"]


async def test_leaving_room_releases_subscriptions(signed_up, feed):
    alice, bob, room = await _shared_room(signed_up)
    assert bob.reconciler.subscription_count == 2
    assert feed.subscriber_count(FeedTable.FILES, room.id) == 2

    await bob.navigate(DASHBOARD_PATH)
    assert not bob.reconciler.is_open
    assert bob.reconciler.subscription_count == 0
    assert feed.subscriber_count(FeedTable.FILES, room.id) == 1
    assert feed.subscriber_count(FeedTable.COMMENTS, room.id) == 1

    await alice.post_comment(room.id, "nobody listening")
    await feed.flush()
    assert bob.reconciler.replica.ordered_comments == []


async def test_reopening_loads_current_state(signed_up, feed):
    alice, bob, room = await _shared_room(signed_up)
    await bob.navigate(DASHBOARD_PATH)
    await alice.post_comment(room.id, "while you were away")

    await bob.enter_room(room.id)
    assert [c.content for c in bob.reconciler.replica.ordered_comments] == [
        "while you were away",
    ]


async def test_sign_out_closes_the_room(signed_up):
    alice, bob, room = await _shared_room(signed_up)
    await bob.sign_out()
    assert not bob.reconciler.is_open
    assert bob.view()["room"] is None


async def test_comment_from_user_without_profile_is_anonymous(signed_up, make_client, feed):
    alice = await signed_up("alice")
    room = await alice.create_room("Open")
    carol = await make_client("carol")
    await carol.sign_up("carol@example.com", PASSWORD)

    await carol.ctx.comments.create(room.id, carol.controller.state.user_id, "boo")
    await feed.flush()
    assert alice.reconciler.replica.ordered_comments[0].username == ANONYMOUS_USERNAME


async def test_open_merges_events_that_arrived_before_load(signed_up, make_ctx, feed):
    alice, _, room = await _shared_room(signed_up)
    ctx = make_ctx()
    reconciler = RealtimeReconciler(ctx, CommentService(ctx))

    async with reconciler.watch(room.id):
        await alice.post_comment(room.id, "during")
        await feed.flush()
        assert [c.content for c in reconciler.replica.ordered_comments] == ["during"]
        assert reconciler.subscription_count == 2
    assert reconciler.subscription_count == 0
    assert not reconciler.is_open


async def test_close_bumps_generation_and_notifies(signed_up):
    alice, _, _ = await _shared_room(signed_up)
    calls = []
    handle = alice.reconciler.add_listener(lambda: calls.append(alice.reconciler.is_open))
    generation = alice.reconciler.generation

    alice.reconciler.close()
    alice.reconciler.close()
    alice.reconciler.remove_listener(handle)

    assert alice.reconciler.generation > generation
    assert calls == [False]
