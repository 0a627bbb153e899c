"""
Tests for the stream registry.
"""

from concurrent.futures import ThreadPoolExecutor

from binance_net.objects.enums import StreamRole
from binance_net.streams.registry import BinanceStream, StreamRegistry


def make_stream(registry: StreamRegistry, role: StreamRole = StreamRole.TOPIC) -> BinanceStream:
    return BinanceStream(registry.next_id(), role, "wss://stream.test/ws/x", socket=None)


def test_ids_increase_and_are_never_reused():
    """Ids start at 1 and keep increasing after removals."""
    registry = StreamRegistry()

    first = make_stream(registry)
    registry.add(first)
    registry.remove(first)
    second = make_stream(registry)

    assert first.stream_id == 1
    assert second.stream_id == 2


def test_concurrent_id_allocation_is_unique():
    """Ids handed out from many threads never collide."""
    registry = StreamRegistry()

    with ThreadPoolExecutor(max_workers=8) as pool:
        ids = list(pool.map(lambda _: registry.next_id(), range(1000)))

    assert sorted(ids) == list(range(1, 1001))


def test_remove_succeeds_exactly_once():
    """Only the first removal reports success."""
    registry = StreamRegistry()
    stream = make_stream(registry)
    registry.add(stream)

    assert registry.remove(stream) is True
    assert registry.remove(stream) is False
    assert len(registry) == 0


def test_single_user_stream():
    """A second user data stream is refused, topic streams are not."""
    registry = StreamRegistry()
    user = make_stream(registry, StreamRole.USER_DATA)
    other_user = make_stream(registry, StreamRole.USER_DATA)

    assert registry.add(user) is True
    assert registry.add(other_user) is False
    assert registry.add(make_stream(registry)) is True
    assert registry.add(make_stream(registry)) is True

    assert registry.get_user_stream() is user
    assert len(registry) == 3


def test_lookup_by_id():
    registry = StreamRegistry()
    stream = make_stream(registry)
    registry.add(stream)

    assert registry.get(stream.stream_id) is stream
    assert registry.get(999) is None
    assert stream in registry


def test_snapshot_is_a_copy():
    """Mutating the registry does not change an earlier snapshot."""
    registry = StreamRegistry()
    stream = make_stream(registry)
    registry.add(stream)

    snapshot = registry.snapshot()
    registry.remove(stream)

    assert snapshot == [stream]
    assert registry.snapshot() == []
