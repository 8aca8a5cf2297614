import pytest
from structlog.testing import capture_logs

from judgi_agent.clients.keyring import KeyRing
from judgi_agent.errors import ConfigurationError


@pytest.mark.parametrize("size", [1, 2, 5])
def test_rotating_size_times_returns_to_start(size: int) -> None:
    ring = KeyRing([f"key-{i}" for i in range(size)], service="search")
    ring.rotate()
    start = ring.active_index

    for _ in range(size):
        ring.rotate()

    assert ring.active_index == start


def test_current_follows_rotation_and_wraps() -> None:
    ring = KeyRing(["a", "b", "c"], service="chat")

    seen = []
    for _ in range(4):
        seen.append(ring.current())
        ring.rotate()

    assert seen == ["a", "b", "c", "a"]
    assert ring.size() == len(ring) == 3


def test_empty_ring_raises_configuration_error() -> None:
    ring = KeyRing([], service="transcription")

    with pytest.raises(ConfigurationError, match="transcription"):
        ring.current()
    with pytest.raises(ConfigurationError):
        ring.rotate()
    assert ring.size() == 0


def test_wrap_emits_diagnostic_without_failing() -> None:
    ring = KeyRing(["a", "b"], service="search")

    with capture_logs() as logs:
        ring.rotate()
        ring.rotate()

    events = [entry["event"] for entry in logs]
    assert events.count("api_key_rotated") == 2
    assert "api_key_ring_wrapped" in events
    assert all("key" not in entry for entry in logs)
    assert ring.current() == "a"


def test_from_env_ignores_blank_entries(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TEST_KEYS", " k1, ,k2,, ")

    ring = KeyRing.from_env("TEST_KEYS", service="search")

    assert ring.size() == 2
    assert ring.current() == "k1"
