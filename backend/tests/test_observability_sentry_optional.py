from __future__ import annotations

import os
import unittest
from unittest.mock import patch

from flask import Flask

from propertyhub.utils.observability import _before_send_scrub, get_request_id, init_sentry


class SentryOptionalInitTestCase(unittest.TestCase):
    def test_sentry_init_is_noop_without_dsn(self):
        app = Flask(__name__)
        with patch.dict(os.environ, {"SENTRY_DSN": ""}, clear=False):
            init_sentry(app)

    def test_scrub_redacts_auth_headers(self):
        event = {"request": {"headers": {"Authorization": "Bearer abc", "Accept": "json"}}}
        scrubbed = _before_send_scrub(event, None)
        self.assertEqual(scrubbed["request"]["headers"]["Authorization"], "[REDACTED]")
        self.assertEqual(scrubbed["request"]["headers"]["Accept"], "json")

    def test_request_id_is_empty_outside_requests(self):
        self.assertEqual(get_request_id(), "")


if __name__ == "__main__":
    unittest.main()
