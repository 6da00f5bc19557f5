"""Tests for the ChatGPT mapping-graph parser."""

from datetime import datetime, timezone

from chatbook.chatgpt import extract_messages, extract_model, parse_conversation, parse_conversations
from chatbook.models import Platform


def node(msg_id, parent, children, text=None, role="user", ts=None, slug=None):
    message = None
    if text is not None:
        message = {
            "id": msg_id,
            "author": {"role": role},
            "content": {"content_type": "text", "parts": [text]},
            "create_time": ts,
            "metadata": {"model_slug": slug} if slug else {},
        }
    return {"message": message, "parent": parent, "children": children}


def test_follows_last_child_at_branch_point() -> None:
    mapping = {
        "A": node("A", None, ["B", "C"], text="question"),
        "B": node("B", "A", [], text="first answer", role="assistant"),
        "C": node("C", "A", [], text="regenerated answer", role="assistant"),
    }

    messages = extract_messages(mapping)

    assert [m.id for m in messages] == ["A", "C"]


def test_null_message_node_is_skipped_but_subtree_traversed() -> None:
    mapping = {
        "root": node("root", None, ["u"]),
        "u": node("u", "root", ["a"], text="hello"),
        "a": node("a", "u", [], text="hi!", role="assistant"),
    }

    messages = extract_messages(mapping)

    assert [m.content for m in messages] == ["hello", "hi!"]
    assert [m.role for m in messages] == ["user", "assistant"]


def test_cycle_terminates() -> None:
    mapping = {
        "root": node("root", None, ["x"], text="start"),
        "x": node("x", "y", ["y"], text="x"),
        "y": node("y", "x", ["x"], text="y"),
    }

    messages = extract_messages(mapping)

    assert [m.content for m in messages] == ["start", "x", "y"]


def test_orphaned_parent_counts_as_root() -> None:
    mapping = {"n1": node("n1", "missing", [], text="truncated export")}

    messages = extract_messages(mapping)

    assert len(messages) == 1


def test_joins_string_parts_and_skips_empty_and_non_string() -> None:
    mapping = {
        "a": {
            "message": {
                "id": "a",
                "author": {"role": "user"},
                "content": {"parts": ["  first", {"asset_pointer": "file://x"}, "second  "]},
            },
            "parent": None,
            "children": ["b"],
        },
        "b": node("b", "a", [], text="   ", role="assistant"),
    }

    messages = extract_messages(mapping)

    assert len(messages) == 1
    assert messages[0].content == "first\nsecond"


def test_non_user_roles_map_to_assistant() -> None:
    mapping = {"t": node("t", None, [], text="tool output", role="tool")}

    assert extract_messages(mapping)[0].role == "assistant"


def test_sorted_by_timestamp_with_undated_messages_in_place() -> None:
    mapping = {
        "1": node("1", None, ["2"], text="late", ts=300.0),
        "2": node("2", "1", ["3"], text="undated"),
        "3": node("3", "2", [], text="early", ts=100.0),
    }

    messages = extract_messages(mapping)

    assert [m.content for m in messages] == ["early", "undated", "late"]
    dated = [m.timestamp for m in messages if m.timestamp]
    assert dated == sorted(dated)


def test_extract_model_first_slug_or_default() -> None:
    assert extract_model({"mapping": {"a": node("a", None, [], text="x", slug="o1")}}) == "o1"
    assert extract_model({"mapping": {}, "default_model_slug": "gpt-4"}) == "gpt-4"
    assert extract_model({"mapping": {}}) == "gpt"


def test_parse_conversation_fields(chatgpt_export) -> None:
    conv = parse_conversation(chatgpt_export[0])

    assert conv.id == "gpt-1"
    assert conv.platform == Platform.CHATGPT
    assert conv.title == "Rye bread"
    assert conv.model == "gpt-3.5"  # first slug in mapping order, even on a dropped branch
    assert conv.created == datetime(2024, 1, 5, tzinfo=timezone.utc)
    assert [m.id for m in conv.messages] == ["u1", "a1"]
    assert conv.messages[1].content == "Slice it first.\nThen wrap it."
    assert conv.message_count == 2
    assert conv.word_count == 6 + 6
    assert conv.first_message == "How do I freeze rye bread?"
    assert conv.last_activity == conv.messages[-1].timestamp
    assert conv.tags == [] and conv.links == [] and conv.notes == ""


def test_empty_mapping_still_emits_conversation(chatgpt_export) -> None:
    conv = parse_conversation(chatgpt_export[1])

    assert conv.message_count == 0
    assert conv.word_count == 0
    assert conv.first_message == ""


def test_missing_title_uses_placeholder() -> None:
    conv = parse_conversation({"id": "x", "mapping": {}})

    assert conv.title == "Untitled Conversation"


def test_first_message_truncated() -> None:
    conv = parse_conversation({"id": "x", "mapping": {"a": node("a", None, [], text="y" * 300)}})

    assert len(conv.first_message) == 120


def test_missing_id_is_stable_across_parses() -> None:
    raw = {"title": "No id", "mapping": {"a": node("a", None, [], text="hi")}}

    assert parse_conversation(raw).id == parse_conversation(raw).id


def test_parse_conversations_accepts_wrapper(chatgpt_export) -> None:
    conversations = parse_conversations({"conversations": chatgpt_export})

    assert [c.id for c in conversations] == ["gpt-1", "gpt-2"]


def test_parse_conversations_skips_malformed(chatgpt_export) -> None:
    broken = {"id": "bad", "title": "Broken", "mapping": {"a": ["not", "a", "node"]}}
    data = [chatgpt_export[0], "junk", {"no": "mapping"}, broken]

    conversations = parse_conversations(data)

    assert [c.id for c in conversations] == ["gpt-1"]


def test_every_message_has_content_and_ordered(chatgpt_export) -> None:
    for conv in parse_conversations(chatgpt_export):
        assert all(m.content for m in conv.messages)
        stamps = [m.timestamp for m in conv.messages if m.timestamp]
        assert stamps == sorted(stamps)
