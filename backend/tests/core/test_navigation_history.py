"""Navigation History — tests for the in-memory history stack and its listeners."""

from roomshare.core.navigation import NavigationHistory


def test_push_truncates_forward_entries():
    history = NavigationHistory("/")
    history.push("/a")
    history.push("/b")
    history.back()
    history.push("/c")
    assert history.entries == ["/", "/a", "/c"]


def test_replace_overwrites_current_entry():
    history = NavigationHistory("/")
    history.push("/a")
    history.replace("/b")
    assert history.entries == ["/", "/b"]
    assert history.depth == 2


def test_back_at_first_entry_is_noop():
    history = NavigationHistory("/")
    fired = []
    history.add_popstate_listener(fired.append)
    assert history.back() is False
    assert fired == []


def test_popstate_fires_only_on_back():
    history = NavigationHistory("/")
    fired = []
    history.add_popstate_listener(fired.append)
    history.push("/a")
    history.replace("/b")
    assert fired == []
    history.back()
    assert fired == ["/"]


def test_change_listener_fires_on_every_move():
    history = NavigationHistory("/")
    seen = []
    history.add_change_listener(seen.append)
    history.push("/a")
    history.replace("/b")
    history.back()
    assert seen == ["/a", "/b", "/"]


def test_replace_with_same_path_does_not_notify():
    history = NavigationHistory("/a")
    seen = []
    history.add_change_listener(seen.append)
    history.replace("/a")
    assert seen == []


def test_removed_listener_is_never_called():
    history = NavigationHistory("/")
    fired = []
    handle = history.add_popstate_listener(fired.append)
    history.remove_listener(handle)
    history.remove_listener(handle)
    history.push("/a")
    history.back()
    assert fired == []
    assert history.popstate_listener_count == 0


def test_listener_may_remove_itself_while_notified():
    history = NavigationHistory("/")
    calls = []
    handle = None

    def once(location):
        calls.append(location)
        history.remove_listener(handle)

    handle = history.add_change_listener(once)
    history.push("/a")
    history.push("/b")
    assert calls == ["/a"]
