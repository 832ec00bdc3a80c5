from sdf_dom.errors import ErrorCode
from sdf_dom.model import Link
from sdf_dom.registry import NameRegistry


def test_insertion_order() -> None:
    """Test entities keep insertion order and can be found by name or index"""
    registry: NameRegistry[Link] = NameRegistry("link")
    for name in ("base", "arm", "gripper"):
        assert registry.add(Link(name=name)) is None

    assert registry.count() == 3
    assert len(registry) == 3
    assert registry.names() == ["base", "arm", "gripper"]
    assert [link.name for link in registry] == ["base", "arm", "gripper"]

    assert registry.by_index(1).name == "arm"  # ty: ignore[possibly-unbound-attribute]
    assert registry.by_name("gripper") is registry.by_index(2)
    assert registry.name_exists("base")
    assert "base" in registry
    assert "missing" not in registry


def test_missing_entries() -> None:
    """Test out of range indices and unknown names return None"""
    registry: NameRegistry[Link] = NameRegistry("link")
    registry.add(Link(name="base"))

    assert registry.by_index(1) is None
    assert registry.by_index(-1) is None
    assert registry.by_name("arm") is None
    assert not registry.name_exists("arm")


def test_duplicate_name() -> None:
    """Test duplicate names are rejected and the first entity is kept"""
    registry: NameRegistry[Link] = NameRegistry("link")
    first = Link(name="base", _line_number=3)
    second = Link(name="base", _line_number=7)

    assert registry.add(first) is None
    error = registry.add(second)

    assert error is not None
    assert error.code == ErrorCode.DUPLICATE_NAME
    assert error.message == "Link with name 'base' already exists."
    assert error.line_number == 7
    assert registry.count() == 1
    assert registry.by_name("base") is first
