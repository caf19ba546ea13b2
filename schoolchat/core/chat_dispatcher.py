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

"""Chat dispatcher: send messages through the gateway and normalize results."""

import logging
from dataclasses import dataclass
from typing import Any, Optional

import requests

from . import strings
from .config import DEEPSEEK
from .gateway_client import Attachment, GatewayClient
from .prompts import DOCUMENT_EXTRACTION_PROMPT, build_course_info_prompt, build_timetable_prompt
from .provider_router import ProviderRouter

logger = logging.getLogger(__name__)


@dataclass
class ChatResult:
    """Normalized outcome of a dispatch.

    Transport and domain failures share this shape; only `error` tells them
    apart.
    """
    success: bool
    response: Optional[str] = None
    chat_id: Any = None
    website: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> dict:
        result = {'success': self.success}
        for key in ('response', 'chat_id', 'website', 'error'):
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        return result


class ChatDispatcher:
    """Deliver chat messages to the selected provider via the gateway."""

    def __init__(self, gateway: GatewayClient, router: ProviderRouter):
        self.gateway = gateway
        self.router = router

    def send_message(
        self,
        chat_id,
        message: str,
        files: Optional[list[Attachment]] = None,
        provider: Optional[str] = None,
        auto_authenticate: bool = True
    ) -> ChatResult:
        """Send a message, choosing a provider when none is given.

        Args:
            chat_id: Gateway-side chat id
            message: Message text
            files: Optional attachments (switches to the multipart request)
            provider: 'deepseek' or 'gemini'; selected by task type when None
            auto_authenticate: Authenticate first if the provider has no session

        Returns:
            ChatResult; never raises
        """
        try:
            if not self.gateway.check_api_status():
                logger.error("Gateway health check failed, not dispatching")
                return ChatResult(success=False, error=strings.SERVICE_UNAVAILABLE)

            has_files = bool(files)
            if provider is None:
                task_type = 'document_extraction' if has_files else 'text_chat'
                provider = self.router.select_provider(task_type, has_files)

            if auto_authenticate and not self.router.ensure_authenticated(provider):
                logger.warning(f"Failed to authenticate with {provider}, continuing anyway")

            if has_files:
                return self._send_with_files(chat_id, message, files, provider)
            return self._send_json(chat_id, message, provider)
        except Exception as e:
            logger.exception(f"Chat API message error ({provider or 'unselected'}): {e}")
            return ChatResult(success=False, error=f"{strings.CONNECTION_ERROR_PREFIX}{e}")

    def _send_json(self, chat_id, message: str, provider: str) -> ChatResult:
        try:
            response = self.gateway.post_chat(chat_id, message, provider)
        except requests.exceptions.RequestException as e:
            logger.error(f"Chat request to {provider} failed: {e}")
            return ChatResult(success=False, error=strings.SERVICE_NOT_RESPONDING, website=provider)
        return self._interpret(response, chat_id, provider)

    def _send_with_files(self, chat_id, message: str, files: list[Attachment], provider: str) -> ChatResult:
        names = ', '.join(f.filename for f in files)
        logger.info(f"Sending {len(files)} file(s) to {provider}: {names}")
        try:
            response = self.gateway.post_chat_with_files(chat_id, message, provider, files)
        except requests.exceptions.RequestException as e:
            logger.error(f"Chat file upload to {provider} failed: {e}")
            return ChatResult(success=False, error=strings.SERVICE_NOT_RESPONDING, website=provider)
        return self._interpret(response, chat_id, provider)

    def _interpret(self, response, chat_id, provider: str) -> ChatResult:
        if not 200 <= response.status_code < 300:
            logger.error(f"External API response unsuccessful from {provider}: {response.status_code}")
            return ChatResult(success=False, error=strings.SERVICE_NOT_RESPONDING, website=provider)

        try:
            data = response.json()
        except ValueError:
            logger.error(f"External API returned a non-JSON body for {provider}")
            return ChatResult(success=False, error=strings.SERVICE_NOT_RESPONDING, website=provider)
        if not isinstance(data, dict):
            data = {}

        if not data.get('success'):
            logger.warning(f"AI response failed: {data.get('message', 'Unknown error')}")
            return ChatResult(
                success=False,
                error=data.get('message') or strings.NO_AI_RESPONSE,
                website=provider,
            )

        logger.info(f"Message sent successfully via {provider}")
        return ChatResult(
            success=True,
            response=data.get('response'),
            chat_id=data.get('chat_id', chat_id),
            website=data.get('website', provider),
        )

    def generate_timetable(self, chat_id, timetable_data: dict) -> ChatResult:
        """Ask DeepSeek for a timetable proposal. The reply is returned unparsed."""
        try:
            prompt = build_timetable_prompt(timetable_data)
        except (TypeError, ValueError, AttributeError) as e:
            logger.error(f"Timetable generation error: {e}")
            return ChatResult(success=False, error=f"{strings.TIMETABLE_ERROR_PREFIX}{e}")
        return self.send_message(chat_id, prompt, provider=DEEPSEEK)

    def generate_course_info(self, chat_id, title: str) -> ChatResult:
        provider = self.router.select_provider('course_generation')
        return self.send_message(chat_id, build_course_info_prompt(title), provider=provider)

    def extract_document_info(self, chat_id, document: Attachment) -> ChatResult:
        return self.send_message(chat_id, DOCUMENT_EXTRACTION_PROMPT, files=[document])

    def status(self) -> dict:
        """Gateway liveness plus the current provider sessions."""
        online = self.gateway.check_api_status()
        connection = self.gateway.get_connection_status()
        return {
            'online': online,
            'message': strings.SERVICE_ONLINE if online else strings.SERVICE_UNAVAILABLE,
            'authenticated': connection.authenticated,
            'connected_websites': [
                {'name': w.name, 'session_active': w.session_active}
                for w in connection.connected_websites
            ],
        }

    def disconnect(self, provider: Optional[str] = None) -> dict:
        return self.gateway.disconnect(provider)
