# scripts/test/simulate_telemetry.py
"""Publish test bin telemetry to the MQTT broker the backend listens on."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", ".."))

import argparse
import json

import paho.mqtt.publish as publish

from bintrack.config import settings


def build_payload(args) -> str:
    if args.raw is not None:
        return args.raw
    payload = {}
    if args.bin1 is not None:
        payload["bin1_level"] = args.bin1
    if args.bin2 is not None:
        payload["bin2_level"] = args.bin2
    return json.dumps(payload)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Simulate bin fill-level telemetry")
    parser.add_argument("--bin1", type=float, help="BIN 1 level (0-100)")
    parser.add_argument("--bin2", type=float, help="BIN 2 level (0-100)")
    parser.add_argument("--raw", help="Publish this exact payload instead (e.g. to test bad input)")
    parser.add_argument("--host", default=settings.MQTT_BROKER_HOST)
    parser.add_argument("--port", type=int, default=settings.MQTT_BROKER_PORT)
    parser.add_argument("--topic", default=settings.MQTT_TOPIC)
    args = parser.parse_args()

    body = build_payload(args)
    publish.single(args.topic, body, hostname=args.host, port=args.port)
    print(f"✅ Published to {args.host}:{args.port} {args.topic}: {body}")
