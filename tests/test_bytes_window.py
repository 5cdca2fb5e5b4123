import pytest

from cellgate.core.bytes_window import ByteWindow, OwnedBytes, SharedWindow, window


@pytest.mark.unit
def test_window_without_length_owns_whole_buffer():
    value = window(b"testrow5")
    assert isinstance(value, OwnedBytes)
    assert value.materialize() == b"testrow5"
    assert len(value) == 8


@pytest.mark.unit
def test_shared_window_reads_only_its_slice():
    backing = b"xxtestrow5/a:1"
    value = window(backing, 2, 8)
    assert isinstance(value, SharedWindow)
    assert value.materialize() == b"testrow5"
    assert value.logical_length() == 8
    assert bytes(value.view()) == b"testrow5"
    # the view points into the original buffer
    assert value.view().obj is backing


@pytest.mark.unit
def test_equality_and_hash_ignore_storage():
    owned = OwnedBytes(b"key")
    shared = SharedWindow(b"__key__", 2, 3)
    assert owned == shared
    assert hash(owned) == hash(shared)
    assert {owned: 1}[shared] == 1
    assert owned != SharedWindow(b"__kex__", 2, 3)
    assert owned.equals_logical(b"key")
    assert not owned.equals_logical("key")


@pytest.mark.unit
def test_zero_length_window_is_empty():
    value = SharedWindow(b"abc", 3, 0)
    assert value.materialize() == b""
    assert value == OwnedBytes(b"")


@pytest.mark.unit
@pytest.mark.parametrize(
    "offset,length",
    [(-1, 1), (0, -1), (2, 2), (4, 0)],
)
def test_shared_window_bounds_are_checked(offset, length):
    with pytest.raises(ValueError):
        SharedWindow(b"abc", offset, length)


@pytest.mark.unit
def test_of_coerces_inputs():
    assert ByteWindow.of("zażółć").materialize() == "zażółć".encode("utf-8")
    assert ByteWindow.of(bytearray(b"ab")) == OwnedBytes(b"ab")
    assert ByteWindow.of(memoryview(b"ab")) == OwnedBytes(b"ab")
    existing = SharedWindow(b"abc", 0, 1)
    assert ByteWindow.of(existing) is existing
    with pytest.raises(TypeError):
        ByteWindow.of(12)
