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

import json
import tempfile
import unittest
from datetime import datetime
from pathlib import Path

from schoolchat.core.conversations import (
    DEFAULT_TITLE,
    ConversationStore,
    Message,
    _create_dir_name,
)


class ConversationStoreTests(unittest.TestCase):
    def test_create_append_and_load_round_trip(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            store = ConversationStore(Path(tmpdir))
            convo = store.create_conversation(17, title="AI Assistant - Sara")
            store.append_message(convo, "user", "مرحباً")
            store.append_message(convo, "assistant", "أهلاً بك")

            conv_dir = Path(tmpdir) / convo.id
            self.assertTrue((conv_dir / "0001_user.txt").exists())
            self.assertTrue((conv_dir / "0002_llm.txt").exists())

            loaded = store.load_conversation(convo.id)
            self.assertEqual(loaded.user_id, "17")
            self.assertEqual(loaded.title, "AI Assistant - Sara")
            self.assertTrue(loaded.is_active)
            self.assertIsNone(loaded.external_chat_id)
            self.assertEqual(loaded.messages, [
                Message(role="user", content="مرحباً"),
                Message(role="assistant", content="أهلاً بك"),
            ])

    def test_new_conversation_has_default_title(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            convo = ConversationStore(Path(tmpdir)).create_conversation("u1")
            self.assertEqual(convo.title, DEFAULT_TITLE)
            self.assertTrue(convo.id.endswith("_u1_New-Conversation"))

    def test_attachments_are_kept_on_their_message(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            store = ConversationStore(Path(tmpdir))
            convo = store.create_conversation("u1")
            meta = [{"name": "unit.pdf", "size": 10, "type": "application/pdf"}]
            store.append_message(convo, "user", "read this", attachments=meta)
            store.append_message(convo, "assistant", "done")

            loaded = store.load_conversation(convo.id)
            self.assertEqual(loaded.messages[0].attachments, meta)
            self.assertIsNone(loaded.messages[1].attachments)

            raw = json.loads((Path(tmpdir) / convo.id / "meta.json").read_text())
            self.assertEqual(raw["attachments"], {"0001": meta})

    def test_update_conversation_fields(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            store = ConversationStore(Path(tmpdir))
            convo = store.create_conversation("u1")
            store.update_conversation(convo, external_chat_id=42, title="Algebra", is_active=False)

            loaded = store.load_conversation(convo.id)
            self.assertEqual(loaded.external_chat_id, 42)
            self.assertEqual(loaded.title, "Algebra")
            self.assertFalse(loaded.is_active)

    def test_update_rejects_unknown_fields(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            store = ConversationStore(Path(tmpdir))
            convo = store.create_conversation("u1")
            with self.assertRaises(ValueError):
                store.update_conversation(convo, user_id="someone-else")

    def test_append_rejects_unknown_role(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            store = ConversationStore(Path(tmpdir))
            convo = store.create_conversation("u1")
            with self.assertRaises(ValueError):
                store.append_message(convo, "system", "be nice")
            self.assertEqual(convo.messages, [])

    def test_missing_conversation_raises(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            store = ConversationStore(Path(tmpdir))
            with self.assertRaises(FileNotFoundError):
                store.load_conversation("nope")

    def test_same_title_in_same_second_gets_unique_ids(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            store = ConversationStore(Path(tmpdir))
            ids = {store.create_conversation("u1", title="Chat").id for _ in range(3)}
            self.assertEqual(len(ids), 3)

    def test_list_filters_by_user_newest_first(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            store = ConversationStore(root)
            older = _create_dir_name("u1", "first", datetime(2025, 1, 1, 8, 0, 0))
            (root / older).mkdir()
            (root / older / "meta.json").write_text(json.dumps({"user_id": "u1", "title": "first"}))
            newer = store.create_conversation("u1", title="second")
            store.create_conversation("u2", title="other")

            listed = store.list_conversations(user_id="u1")
            self.assertEqual([c.id for c in listed], [newer.id, older])
            self.assertEqual(len(store.list_conversations()), 3)

    def test_list_on_missing_root_is_empty(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            store = ConversationStore(Path(tmpdir) / "absent")
            self.assertEqual(store.list_conversations(), [])

    def test_delete_conversation(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            store = ConversationStore(Path(tmpdir))
            convo = store.create_conversation("u1")
            store.delete_conversation(convo.id)
            self.assertFalse((Path(tmpdir) / convo.id).exists())
            store.delete_conversation(convo.id)


if __name__ == "__main__":
    unittest.main()
