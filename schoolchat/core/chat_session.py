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

"""Send messages within a stored conversation."""

import logging
from typing import Optional

from .chat_dispatcher import ChatDispatcher, ChatResult
from .conversations import DEFAULT_TITLE, Conversation, ConversationStore
from .gateway_client import Attachment

logger = logging.getLogger(__name__)

TITLE_LENGTH = 50
# Used until the gateway hands back a chat id for the conversation
DEFAULT_EXTERNAL_CHAT_ID = 1


def derive_title(message: str) -> str:
    if len(message) > TITLE_LENGTH:
        return message[:TITLE_LENGTH] + '...'
    return message


class ConversationChat:
    """Store both sides of an exchange around a dispatch."""

    def __init__(self, dispatcher: ChatDispatcher, store: ConversationStore):
        self.dispatcher = dispatcher
        self.store = store

    def send(self, conversation_id: str, message: str, files: Optional[list[Attachment]] = None) -> ChatResult:
        """Record the user message, dispatch it and record the reply.

        The user message is kept even when the dispatch fails.

        Raises:
            FileNotFoundError: If the conversation does not exist
        """
        convo = self.store.load_conversation(conversation_id)
        attachments = [f.metadata() for f in files] if files else None
        self.store.append_message(convo, 'user', message, attachments=attachments)

        external_chat_id = convo.external_chat_id or DEFAULT_EXTERNAL_CHAT_ID
        result = self.dispatcher.send_message(external_chat_id, message, files=files)
        if not result.success:
            logger.warning(f"Dispatch failed for conversation {convo.id}: {result.error}")
            return result

        self.store.append_message(convo, 'assistant', result.response or '')

        updates = {}
        if not convo.external_chat_id and result.chat_id is not None:
            updates['external_chat_id'] = result.chat_id
        if len(convo.messages) == 2 and convo.title == DEFAULT_TITLE:
            updates['title'] = derive_title(message)
        if updates:
            self.store.update_conversation(convo, **updates)

        return result

    def resolve_external_chat_id(self, convo: Conversation):
        """Return the linked gateway chat id, syncing with the gateway if unset."""
        if convo.external_chat_id:
            return convo.external_chat_id

        latest = self.dispatcher.gateway.sync_and_get_latest_chat()
        if not latest or latest.get('id') is None:
            logger.warning(f"Gateway has no chat to link to conversation {convo.id}")
            return None

        self.store.update_conversation(convo, external_chat_id=latest['id'])
        return convo.external_chat_id
