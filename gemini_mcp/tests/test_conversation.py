from gemini_mcp.domain.conversation import ConversationStore
from gemini_mcp.domain.models import Message


def test_empty_history_for_unknown_id():
    store = ConversationStore()
    assert store.get_history("missing") == []
    assert "missing" not in store


def test_append_keeps_send_order():
    store = ConversationStore()
    store.append("c1", [Message.text("user", "hi"), Message.text("model", "hello")])
    store.append("c1", [Message.text("user", "again")])
    history = store.get_history("c1")
    assert [(m.role, m.parts[0]["text"]) for m in history] == [
        ("user", "hi"),
        ("model", "hello"),
        ("user", "again"),
    ]


def test_histories_are_isolated_and_copied():
    store = ConversationStore()
    store.append("a", [Message.text("user", "x")])
    store.append("b", [Message.text("user", "y")])
    history = store.get_history("a")
    history.append(Message.text("model", "mutated"))
    assert len(store.get_history("a")) == 1
    assert store.get_history("b")[0].parts == [{"text": "y"}]
    assert len(store) == 2


def test_clear():
    store = ConversationStore()
    store.append("a", [Message.text("user", "x")])
    store.clear("a")
    store.clear("a")
    assert "a" not in store


def test_message_payload():
    msg = Message(role="user", parts=[{"text": "p"}, {"inlineData": {"mimeType": "image/png", "data": "AAA"}}])
    assert msg.to_payload() == {
        "role": "user",
        "parts": [{"text": "p"}, {"inlineData": {"mimeType": "image/png", "data": "AAA"}}],
    }
