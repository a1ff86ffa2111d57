# tests/test_pipeline.py
"""Unit tests for pipeline startup/shutdown wiring."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest
from unittest.mock import patch
from bintrack.config import Settings
from bintrack.exceptions import TransportError
from bintrack.services.pipeline import TelemetryPipeline


class TestPipeline:
    @pytest.mark.asyncio
    async def test_mqtt_disabled(self):
        pipeline = TelemetryPipeline(Settings(MQTT_ENABLED=False))
        await pipeline.start()
        try:
            assert pipeline.subscriber is None
            assert pipeline.registry.ids() == ["BIN 1", "BIN 2"]
        finally:
            await pipeline.stop()

    def test_backlog_limit_from_settings(self):
        pipeline = TelemetryPipeline(Settings(MQTT_ENABLED=False, MAX_PENDING_TELEMETRY=7))
        assert pipeline.dispatcher._max_pending_telemetry == 7

    @pytest.mark.asyncio
    async def test_mqtt_enabled_starts_subscriber(self):
        with patch("bintrack.services.pipeline.BusSubscriber") as subscriber_cls:
            pipeline = TelemetryPipeline(Settings(MQTT_ENABLED=True))
            await pipeline.start()
            await pipeline.stop()

        subscriber_cls.return_value.start.assert_called_once()
        subscriber_cls.return_value.stop.assert_called_once()
        assert subscriber_cls.call_args.args[2] == pipeline.dispatcher.submit

    @pytest.mark.asyncio
    async def test_subscriber_start_failure_is_contained(self):
        with patch("bintrack.services.pipeline.BusSubscriber") as subscriber_cls:
            subscriber_cls.return_value.start.side_effect = TransportError("bad host")
            pipeline = TelemetryPipeline(Settings(MQTT_ENABLED=True))
            await pipeline.start()
            await pipeline.stop()
