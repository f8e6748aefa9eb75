import dataclasses

import pytest

from permgate.core.node import PermissionNode, as_node
from permgate.utils.errors import InvalidPermissionNode


def test_parse_splits_into_segments() -> None:
    node = PermissionNode.parse("chat.color.red")
    assert node.segments == ("chat", "color", "red")
    assert len(node) == 3
    assert list(node) == ["chat", "color", "red"]


@pytest.mark.parametrize("raw", ["admin", "chat.color.red", "server.admin.kick", "a.b.c.d.e"])
def test_canonical_form_matches_input(raw: str) -> None:
    node = PermissionNode.parse(raw)
    assert node.format(".") == raw
    assert str(node) == raw


@pytest.mark.parametrize("raw", ["", ".", "a..b", "a.", ".a", ".."])
def test_malformed_input_is_rejected(raw: str) -> None:
    with pytest.raises(InvalidPermissionNode):
        PermissionNode.parse(raw)


def test_invalid_node_is_a_value_error() -> None:
    with pytest.raises(ValueError):
        PermissionNode.parse("a..b")


def test_custom_delimiter() -> None:
    node = PermissionNode.parse("chat/color/red", "/")
    assert node == PermissionNode.parse("chat.color.red")
    assert node.format("/") == "chat/color/red"
    assert node.format(":") == "chat:color:red"

    with pytest.raises(InvalidPermissionNode):
        PermissionNode.parse("chat.color/red", "/")
    with pytest.raises(InvalidPermissionNode):
        PermissionNode.parse("chat.color", "")


def test_explicit_segments() -> None:
    node = PermissionNode.of("server", "admin", "kick")
    assert node == PermissionNode.parse("server.admin.kick")
    assert hash(node) == hash(PermissionNode.parse("server.admin.kick"))

    with pytest.raises(InvalidPermissionNode):
        PermissionNode.of()
    with pytest.raises(InvalidPermissionNode):
        PermissionNode.of("server", "")
    with pytest.raises(InvalidPermissionNode):
        PermissionNode.of("server.admin")
    with pytest.raises(InvalidPermissionNode):
        PermissionNode("server.admin")


def test_node_cannot_be_mutated() -> None:
    parts = ["chat", "color"]
    node = PermissionNode(parts)
    parts.append("red")
    assert node.segments == ("chat", "color")
    assert isinstance(node.segments, tuple)
    with pytest.raises(dataclasses.FrozenInstanceError):
        node.parts = ("other",)  # type: ignore[misc]


def test_as_node() -> None:
    node = PermissionNode.parse("chat.color")
    assert as_node(node) is node
    assert as_node("chat.color") == node
    with pytest.raises(InvalidPermissionNode):
        as_node("chat..color")
    with pytest.raises(TypeError):
        as_node(42)  # type: ignore[arg-type]
