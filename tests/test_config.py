from __future__ import annotations

import io
import json
import logging
import os
import tempfile
import unittest
from pathlib import Path
from unittest import mock

import structlog

from notification_relay.adapters.fake_senders import send_email_via_console
from notification_relay.adapters.real_senders import send_email_via_mailgun_from_env
from notification_relay.config import load_env_file, load_settings
from notification_relay.observability import configure_logging
from notification_relay.service import select_email_sender


class LoadSettingsTests(unittest.TestCase):
    def test_defaults_with_only_bootstrap_servers(self) -> None:
        env = {"KAFKA_BOOTSTRAP_SERVERS": "localhost:9092, kafka:29092 "}
        with mock.patch.dict(os.environ, env, clear=True):
            settings = load_settings()

        self.assertEqual(settings.kafka_bootstrap_servers, ["localhost:9092", "kafka:29092"])
        self.assertFalse(settings.kafka_dlq_enabled)
        self.assertEqual(settings.handler_timeout_seconds, 30.0)
        self.assertEqual(settings.elasticsearch_index, "microservice_products")
        self.assertEqual(settings.port, 7000)

    def test_requires_bootstrap_servers(self) -> None:
        with mock.patch.dict(os.environ, {}, clear=True):
            with self.assertRaises(RuntimeError):
                load_settings()

    def test_rejects_invalid_values(self) -> None:
        cases = {
            "KAFKA_DLQ_ENABLED": "maybe",
            "HANDLER_TIMEOUT_SECONDS": "soon",
            "KAFKA_POLL_TIMEOUT_SECONDS": "0",
            "MAIL_BACKEND": "carrier-pigeon",
            "PORT": "http",
        }
        for name, value in cases.items():
            with self.subTest(name=name):
                env = {"KAFKA_BOOTSTRAP_SERVERS": "localhost:9092", name: value}
                with mock.patch.dict(os.environ, env, clear=True):
                    with self.assertRaises(RuntimeError) as exc:
                        load_settings()
                self.assertIn(name, str(exc.exception))

    def test_mail_backend_selects_sender(self) -> None:
        base = {"KAFKA_BOOTSTRAP_SERVERS": "localhost:9092"}
        with mock.patch.dict(os.environ, {**base, "MAIL_BACKEND": "console"}, clear=True):
            self.assertIs(select_email_sender(load_settings()), send_email_via_console)
        with mock.patch.dict(os.environ, base, clear=True):
            self.assertIs(select_email_sender(load_settings()), send_email_via_mailgun_from_env)


class LoadEnvFileTests(unittest.TestCase):
    def test_does_not_override_existing_values(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / ".env"
            path.write_text(
                "# comment\nKAFKA_GROUP_ID='from-file'\nLOG_LEVEL=DEBUG\n", encoding="utf-8"
            )
            with mock.patch.dict(os.environ, {"LOG_LEVEL": "WARNING"}, clear=True):
                load_env_file(path)
                self.assertEqual(os.environ["KAFKA_GROUP_ID"], "from-file")
                self.assertEqual(os.environ["LOG_LEVEL"], "WARNING")


class ConfigureLoggingTests(unittest.TestCase):
    def setUp(self) -> None:
        self.root_handlers = list(logging.getLogger().handlers)
        self.root_level = logging.getLogger().level

    def tearDown(self) -> None:
        structlog.reset_defaults()
        root = logging.getLogger()
        root.handlers = self.root_handlers
        root.setLevel(self.root_level)

    def test_json_format_renders_one_object_per_event(self) -> None:
        configure_logging("debug", "json")
        stream = io.StringIO()
        logging.getLogger().handlers[0].setStream(stream)

        structlog.get_logger("tests.logging").info("email_sent", recipient="a@example.com")

        line = json.loads(stream.getvalue().strip().splitlines()[-1])
        self.assertEqual(line["event"], "email_sent")
        self.assertEqual(line["recipient"], "a@example.com")
        self.assertEqual(line["level"], "info")
        self.assertEqual(logging.getLogger().level, logging.DEBUG)


if __name__ == "__main__":
    unittest.main()
