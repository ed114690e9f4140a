from __future__ import annotations

import os
import unittest
from unittest.mock import patch

from flask import Flask

from listit.utils.observability import _before_send_scrub, init_otel, init_sentry


class SentryOptionalInitTestCase(unittest.TestCase):
    def test_sentry_init_is_noop_without_dsn(self):
        app = Flask(__name__)
        with patch.dict(os.environ, {"SENTRY_DSN": ""}, clear=False):
            init_sentry(app)

    def test_otel_init_is_noop_without_endpoint(self):
        app = Flask(__name__)
        with patch.dict(os.environ, {"OTEL_EXPORTER_OTLP_ENDPOINT": ""}, clear=False):
            init_otel(app, enabled=True)
        init_otel(app, enabled=False)

    def test_scrub_redacts_credentials_and_payloads(self):
        event = {
            "request": {
                "headers": {"Authorization": "Bearer abc", "Cookie": "token=abc", "Accept": "*/*"},
                "data": {"images": ["data:image/png;base64,AAAA"]},
            }
        }
        out = _before_send_scrub(event, {})
        headers = out["request"]["headers"]
        self.assertEqual(headers["Authorization"], "[REDACTED]")
        self.assertEqual(headers["Cookie"], "[REDACTED]")
        self.assertEqual(headers["Accept"], "*/*")
        self.assertEqual(out["request"]["data"], "[OMITTED]")


if __name__ == "__main__":
    unittest.main()
