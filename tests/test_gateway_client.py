# Copyright 2024 SchoolChat contributors
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

import tempfile
import unittest
from pathlib import Path

import requests

from schoolchat.core.config import Config
from schoolchat.core.gateway_client import Attachment, GatewayClient

API_URL = "http://gateway.test"


class FakeResponse:
    def __init__(self, status_code=200, payload=None):
        self.status_code = status_code
        self.payload = payload

    def json(self):
        if self.payload is None:
            raise ValueError("No JSON body")
        return self.payload


class FakeSession:
    """Answers requests by (method, path); exceptions in the table are raised."""

    def __init__(self, routes):
        self.routes = routes
        self.calls = []

    def _handle(self, method, url, **kwargs):
        path = url[len(API_URL):]
        self.calls.append({"method": method, "path": path, **kwargs})
        outcome = self.routes[(method, path)]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    def get(self, url, timeout=None):
        return self._handle("GET", url, timeout=timeout)

    def post(self, url, json=None, data=None, files=None, timeout=None):
        return self._handle("POST", url, json=json, data=data, files=files, timeout=timeout)


def make_client(routes):
    client = GatewayClient(Config(api_url=API_URL + "/"))
    client.session = FakeSession(routes)
    return client


class GatewayClientTests(unittest.TestCase):
    def test_connection_status_parses_payload(self):
        client = make_client({
            ("GET", "/api/status"): FakeResponse(payload={
                "authenticated": True,
                "connected_websites": [
                    {"name": "deepseek", "session_active": True},
                    {"name": "gemini", "session_active": False},
                ],
            }),
        })
        status = client.get_connection_status()
        self.assertTrue(status.authenticated)
        self.assertTrue(status.is_active("deepseek"))
        self.assertFalse(status.is_active("gemini"))
        self.assertEqual(client.session.calls[0]["timeout"], 5)

    def test_connection_status_failure_is_not_authenticated(self):
        client = make_client({("GET", "/api/status"): FakeResponse(status_code=500)})
        status = client.get_connection_status()
        self.assertFalse(status.authenticated)
        self.assertEqual(status.connected_websites, [])
        self.assertEqual(status.error, "Failed to fetch status")

        client = make_client({("GET", "/api/status"): requests.exceptions.ConnectionError("refused")})
        status = client.get_connection_status()
        self.assertFalse(status.authenticated)
        self.assertIn("refused", status.error)

    def test_check_api_status(self):
        self.assertTrue(make_client({("GET", "/api/chats"): FakeResponse(payload=[])}).check_api_status())
        self.assertFalse(make_client({("GET", "/api/chats"): FakeResponse(status_code=503)}).check_api_status())
        self.assertFalse(make_client({("GET", "/api/chats"): requests.exceptions.Timeout()}).check_api_status())

    def test_authenticate_sends_website_and_headless(self):
        client = make_client({
            ("POST", "/api/authenticate"): FakeResponse(payload={"success": True, "message": "ok"}),
        })
        result = client.authenticate("gemini")
        self.assertEqual(result, {"success": True, "website": "gemini", "message": "ok"})
        call = client.session.calls[0]
        self.assertEqual(call["json"], {"website": "gemini", "headless": True})
        self.assertEqual(call["timeout"], 30)

    def test_authenticate_failure_shapes(self):
        client = make_client({
            ("POST", "/api/authenticate"): FakeResponse(payload={"success": False, "message": "captcha"}),
        })
        self.assertEqual(client.authenticate("deepseek"), {"success": False, "website": "deepseek", "message": "captcha"})

        client = make_client({("POST", "/api/authenticate"): FakeResponse(status_code=502)})
        self.assertEqual(client.authenticate("deepseek")["message"], "Authentication failed")

        client = make_client({("POST", "/api/authenticate"): requests.exceptions.Timeout("slow")})
        result = client.authenticate("deepseek")
        self.assertFalse(result["success"])
        self.assertEqual(result["error"], "slow")

    def test_disconnect_payload(self):
        client = make_client({("POST", "/api/disconnect"): FakeResponse(payload={"success": True})})
        self.assertTrue(client.disconnect()["success"])
        self.assertEqual(client.session.calls[0]["json"], {})
        client.disconnect("gemini")
        self.assertEqual(client.session.calls[1]["json"], {"website": "gemini"})
        self.assertEqual(client.session.calls[1]["timeout"], 10)

    def test_sync_and_get_latest_chat(self):
        client = make_client({
            ("POST", "/api/chats/sync-and-get-latest"): FakeResponse(payload={
                "success": True, "latest_chat": {"id": 42, "chat_id": "abc-uuid"},
            }),
        })
        self.assertEqual(client.sync_and_get_latest_chat(), {"id": 42, "chat_id": "abc-uuid"})

        client = make_client({("POST", "/api/chats/sync-and-get-latest"): FakeResponse(payload={"success": False})})
        self.assertIsNone(client.sync_and_get_latest_chat())

        client = make_client({("POST", "/api/chats/sync-and-get-latest"): requests.exceptions.ConnectionError()})
        self.assertIsNone(client.sync_and_get_latest_chat())

    def test_post_chat_uses_dispatch_timeout(self):
        client = make_client({("POST", "/api/external/chat"): FakeResponse(payload={"success": True})})
        client.post_chat(7, "hello", "deepseek")
        call = client.session.calls[0]
        self.assertEqual(call["json"], {"chat_id": 7, "message": "hello", "website": "deepseek"})
        self.assertEqual(call["timeout"], 160)
        self.assertIsNone(call["files"])

    def test_post_chat_with_files_builds_one_part_per_file(self):
        client = make_client({("POST", "/api/external/chat"): FakeResponse(payload={"success": True})})
        files = [
            Attachment(filename="lesson.pdf", content=b"%PDF", content_type="application/pdf"),
            Attachment(filename="notes.bin", content=b"\x00\x01"),
        ]
        client.post_chat_with_files(3, "read these", "gemini", files, timeout=60)
        call = client.session.calls[0]
        self.assertIsNone(call["json"])
        self.assertEqual(call["data"], {"chat_id": "3", "message": "read these", "website": "gemini"})
        self.assertEqual(call["files"], [
            ("files", ("lesson.pdf", b"%PDF", "application/pdf")),
            ("files", ("notes.bin", b"\x00\x01")),
        ])
        self.assertEqual(call["timeout"], 60)


class AttachmentTests(unittest.TestCase):
    def test_from_path_keeps_name_and_bytes(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "syllabus.txt"
            path.write_bytes(b"week 1")
            attachment = Attachment.from_path(path)
        self.assertEqual(attachment.filename, "syllabus.txt")
        self.assertEqual(attachment.content, b"week 1")
        self.assertEqual(attachment.content_type, "text/plain")
        self.assertEqual(attachment.metadata(), {"name": "syllabus.txt", "size": 6, "type": "text/plain"})


if __name__ == "__main__":
    unittest.main()
