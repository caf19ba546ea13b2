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

"""Provider router for picking the AI backend behind the gateway."""

import logging
from types import MappingProxyType
from typing import Mapping, Optional

from .config import DEEPSEEK, DEFAULT_PROVIDER_PREFERENCES, GEMINI, Config
from .gateway_client import GatewayClient

logger = logging.getLogger(__name__)


class ProviderRouter:
    """Select a provider per task and make sure it has a session."""

    def __init__(
        self,
        gateway: GatewayClient,
        preferences: Optional[Mapping[str, str]] = None,
        default_provider: str = DEEPSEEK,
        attachment_provider: str = GEMINI,
    ):
        self.gateway = gateway
        self.preferences = MappingProxyType(dict(
            DEFAULT_PROVIDER_PREFERENCES if preferences is None else preferences
        ))
        self.default_provider = default_provider
        self.attachment_provider = attachment_provider

    @classmethod
    def from_config(cls, config: Config, gateway: GatewayClient) -> "ProviderRouter":
        return cls(
            gateway,
            preferences=config.provider_preferences,
            default_provider=config.default_provider,
            attachment_provider=config.attachment_provider,
        )

    def select_provider(self, task_type: str = 'text_chat', has_attachments: bool = False) -> str:
        """Pick the provider for a task. Attachments always win over the task type."""
        if has_attachments:
            return self.attachment_provider
        return self.preferences.get(task_type, self.default_provider)

    def is_provider_connected(self, provider: str) -> bool:
        status = self.gateway.get_connection_status()
        return status.is_active(provider)

    def ensure_authenticated(self, provider: str = DEEPSEEK) -> bool:
        """Authenticate with `provider` unless it already has an active session.

        Returns:
            True if connected (before or after authenticating), False otherwise
        """
        if self.is_provider_connected(provider):
            return True

        logger.info(f"No active session for {provider}, authenticating")
        result = self.gateway.authenticate(provider)
        return bool(result.get('success', False))
