"""Tests for the IntegrationRevoked signal bus."""

import logging

import pytest

from utterances.gitlab.signals import NOT_ACCESSIBLE_MESSAGE, IntegrationRevoked, SignalBus

SIGNAL = IntegrationRevoked(url="https://gitlab.example.com/api/v4/projects/1/issues")


class TestSignalBus:
    """Tests for SignalBus."""

    def test_default_message(self) -> None:
        assert SIGNAL.message == NOT_ACCESSIBLE_MESSAGE

    def test_delivers_in_subscription_order(self) -> None:
        bus = SignalBus()
        calls: list[str] = []
        bus.subscribe(lambda signal: calls.append("first"))
        bus.subscribe(lambda signal: calls.append("second"))

        bus.emit(SIGNAL)

        assert calls == ["first", "second"]

    def test_unsubscribe(self) -> None:
        bus = SignalBus()
        received: list[IntegrationRevoked] = []
        unsubscribe = bus.subscribe(received.append)

        unsubscribe()
        bus.emit(SIGNAL)

        assert received == []
        assert bus.subscriber_count == 0

    def test_unsubscribe_twice_is_harmless(self) -> None:
        bus = SignalBus()
        unsubscribe = bus.subscribe(lambda signal: None)
        unsubscribe()
        unsubscribe()
        assert bus.subscriber_count == 0

    def test_once_delivers_a_single_time(self) -> None:
        bus = SignalBus()
        received: list[IntegrationRevoked] = []
        bus.subscribe(received.append, once=True)

        bus.emit(SIGNAL)
        bus.emit(SIGNAL)

        assert received == [SIGNAL]
        assert bus.subscriber_count == 0

    def test_failing_subscriber_does_not_stop_delivery(
        self, caplog: pytest.LogCaptureFixture
    ) -> None:
        bus = SignalBus()
        received: list[IntegrationRevoked] = []

        def broken(signal: IntegrationRevoked) -> None:
            raise RuntimeError("boom")

        bus.subscribe(broken)
        bus.subscribe(received.append)

        with caplog.at_level(logging.ERROR):
            bus.emit(SIGNAL)

        assert received == [SIGNAL]
        assert "subscriber failed" in caplog.text

    @pytest.mark.asyncio
    async def test_async_subscriber_is_scheduled(self) -> None:
        bus = SignalBus()
        received: list[IntegrationRevoked] = []

        async def on_revoked(signal: IntegrationRevoked) -> None:
            received.append(signal)

        bus.subscribe(on_revoked)
        bus.emit(SIGNAL)
        await bus.drain()

        assert received == [SIGNAL]
