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

"""Local conversation store for SchoolChat.

Each conversation is a directory under the store root:

    <root>/<yyyymmddhhmmss>_<user>_<title>/
        meta.json
        0001_user.txt
        0002_llm.txt
"""

import json
import re
import shutil
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Optional

DEFAULT_TITLE = 'New Conversation'
UPDATABLE_FIELDS = ('title', 'external_chat_id', 'is_active')

_ROLE_SUFFIXES = {'user': 'user.txt', 'assistant': 'llm.txt'}


@dataclass
class Message:
    """A single message in a conversation."""
    role: str  # "user" or "assistant"
    content: str
    attachments: Optional[list[dict]] = None  # [{"name", "size", "type"}]


@dataclass
class Conversation:
    """A locally stored conversation with the AI assistant."""
    id: str  # Directory name
    user_id: str
    title: str = DEFAULT_TITLE
    external_chat_id: Optional[int] = None  # Chat id on the gateway, once linked
    is_active: bool = True
    messages: list[Message] = field(default_factory=list)
    created_at: str = ""
    last_modified: str = ""


def _slugify(value: str, default: str) -> str:
    """Reduce a value to alphanumerics, hyphens and underscores.

    Spaces become hyphens; an empty result falls back to `default`.
    """
    cleaned = str(value).strip().replace(' ', '-')
    cleaned = re.sub(r'[^a-zA-Z0-9\-_]', '', cleaned)
    return cleaned or default


def _create_dir_name(user_id, title: str, timestamp: Optional[datetime] = None) -> str:
    if timestamp is None:
        timestamp = datetime.now()
    time_prefix = timestamp.strftime("%Y%m%d%H%M%S")
    user_slug = _slugify(user_id, 'user').replace('_', '-')
    return f"{time_prefix}_{user_slug}_{_slugify(title, 'untitled')}"


class ConversationStore:
    """Create, append to and update conversations on disk."""

    def __init__(self, root: Path):
        self.root = Path(root)

    def _dir(self, conversation_id: str) -> Path:
        return self.root / conversation_id

    def _write_meta(self, convo: Conversation) -> None:
        meta = {
            'user_id': convo.user_id,
            'title': convo.title,
            'external_chat_id': convo.external_chat_id,
            'is_active': convo.is_active,
            'created_at': convo.created_at,
            'last_modified': convo.last_modified,
        }
        attachments = {}
        for index, message in enumerate(convo.messages, start=1):
            if message.attachments:
                attachments[f"{index:04d}"] = message.attachments
        if attachments:
            meta['attachments'] = attachments

        with open(self._dir(convo.id) / 'meta.json', 'w') as f:
            json.dump(meta, f, indent=2, ensure_ascii=False)

    def _touch(self, convo: Conversation) -> None:
        convo.last_modified = datetime.now().isoformat()
        self._write_meta(convo)

    def create_conversation(self, user_id, title: str = DEFAULT_TITLE, is_active: bool = True) -> Conversation:
        """Create and persist an empty conversation.

        Args:
            user_id: Owner of the conversation
            title: Display title
            is_active: Whether the conversation is active

        Returns:
            The stored Conversation with its id set
        """
        self.root.mkdir(parents=True, exist_ok=True)
        now = datetime.now()
        base_name = _create_dir_name(user_id, title, now)
        dir_name = base_name
        suffix = 2
        while self._dir(dir_name).exists():
            dir_name = f"{base_name}-{suffix}"
            suffix += 1
        self._dir(dir_name).mkdir(parents=True)

        convo = Conversation(
            id=dir_name,
            user_id=str(user_id),
            title=title,
            is_active=is_active,
            created_at=now.isoformat(),
            last_modified=now.isoformat(),
        )
        self._write_meta(convo)
        return convo

    def append_message(
        self,
        convo: Conversation,
        role: str,
        content: str,
        attachments: Optional[list[dict]] = None
    ) -> Message:
        """Append a message to a stored conversation.

        Raises:
            ValueError: If the role is not "user" or "assistant"
            FileNotFoundError: If the conversation directory is gone
        """
        suffix = _ROLE_SUFFIXES.get(role)
        if suffix is None:
            raise ValueError(f"Unsupported message role: {role}")
        conv_dir = self._dir(convo.id)
        if not conv_dir.exists():
            raise FileNotFoundError(f"Conversation directory not found: {conv_dir}")

        message = Message(role=role, content=content, attachments=attachments or None)
        convo.messages.append(message)
        filename = f"{len(convo.messages):04d}_{suffix}"
        with open(conv_dir / filename, 'w') as f:
            f.write(content)

        self._touch(convo)
        return message

    def update_conversation(self, convo: Conversation, **fields) -> Conversation:
        """Update title, external_chat_id or is_active.

        Raises:
            ValueError: If an unknown field is given
        """
        unknown = set(fields) - set(UPDATABLE_FIELDS)
        if unknown:
            raise ValueError(f"Cannot update conversation fields: {sorted(unknown)}")
        if not self._dir(convo.id).exists():
            raise FileNotFoundError(f"Conversation directory not found: {self._dir(convo.id)}")

        for name, value in fields.items():
            setattr(convo, name, value)
        self._touch(convo)
        return convo

    def load_conversation(self, conversation_id: str) -> Conversation:
        """Load a conversation from disk.

        Raises:
            FileNotFoundError: If the conversation directory doesn't exist
        """
        conv_dir = self._dir(conversation_id)
        if not conv_dir.is_dir():
            raise FileNotFoundError(f"Conversation directory not found: {conv_dir}")

        meta = {}
        meta_path = conv_dir / 'meta.json'
        if meta_path.exists():
            with open(meta_path, 'r') as f:
                meta = json.load(f)
        attachments = meta.get('attachments', {}) or {}

        message_files = sorted(
            (p for p in conv_dir.iterdir() if p.is_file() and re.match(r'^\d+_(user|llm)\.txt$', p.name)),
            key=lambda p: p.name
        )
        messages = []
        for file_path in message_files:
            role = 'user' if file_path.name.endswith('_user.txt') else 'assistant'
            with open(file_path, 'r') as f:
                content = f.read()
            number = file_path.name.split('_', 1)[0]
            messages.append(Message(role=role, content=content, attachments=attachments.get(number)))

        return Conversation(
            id=conversation_id,
            user_id=str(meta.get('user_id', '')),
            title=meta.get('title', DEFAULT_TITLE),
            external_chat_id=meta.get('external_chat_id'),
            is_active=meta.get('is_active', True),
            messages=messages,
            created_at=meta.get('created_at', ''),
            last_modified=meta.get('last_modified', ''),
        )

    def list_conversations(self, user_id=None) -> list[Conversation]:
        """List stored conversations, newest first, optionally for one user."""
        if not self.root.exists():
            return []

        conversations = []
        for conv_dir in self.root.iterdir():
            if not conv_dir.is_dir():
                continue
            try:
                convo = self.load_conversation(conv_dir.name)
            except (json.JSONDecodeError, IOError):
                continue
            if user_id is not None and convo.user_id != str(user_id):
                continue
            conversations.append(convo)

        conversations.sort(key=lambda c: c.id, reverse=True)
        return conversations

    def delete_conversation(self, conversation_id: str) -> None:
        conv_dir = self._dir(conversation_id)
        if conv_dir.exists():
            shutil.rmtree(conv_dir)
