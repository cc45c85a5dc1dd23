import threading
from datetime import datetime

import pytest

from chat_client.state import Message, MessageHistory, User


def test_user_rejects_blank_names():
    assert User("alice").username == "alice"
    with pytest.raises(ValueError):
        User("")
    with pytest.raises(ValueError):
        User("   ")


def test_message_recipient_iff_private():
    Message(sender="a", text="x")
    Message(sender="a", text="x", is_private=True, recipient="b")
    with pytest.raises(ValueError):
        Message(sender="a", text="x", is_private=True)
    with pytest.raises(ValueError):
        Message(sender="a", text="x", recipient="b")


def test_message_format_line():
    ts = datetime(2024, 5, 1, 9, 7)
    assert Message("alice", "hi", ts).format_line() == "[09:07] alice: hi"
    dm = Message("alice", "psst", ts, is_private=True, recipient="bob")
    assert dm.format_line() == "[09:07] alice -> bob: psst"


def test_history_keeps_insertion_order_and_duplicates():
    history = MessageHistory()
    a = Message("a", "1")
    b = Message("b", "2")
    history.add(a)
    history.add(b)
    history.add(a)

    assert history.snapshot() == (a, b, a)
    assert list(history) == [a, b, a]
    assert len(history) == 3


def test_snapshot_is_detached_from_later_appends():
    history = MessageHistory()
    history.add(Message("a", "1"))
    snap = history.snapshot()

    history.add(Message("a", "2"))

    assert len(snap) == 1
    assert len(history) == 2


def test_concurrent_appends_are_not_lost():
    history = MessageHistory()

    def writer(n):
        for i in range(500):
            history.add(Message(f"w{n}", str(i)))

    threads = [threading.Thread(target=writer, args=(n,)) for n in range(8)]
    for t in threads:
        t.start()
    for _ in range(50):
        history.snapshot()
    for t in threads:
        t.join()

    assert len(history) == 8 * 500
    per_writer = [m.text for m in history if m.sender == "w3"]
    assert per_writer == [str(i) for i in range(500)]
