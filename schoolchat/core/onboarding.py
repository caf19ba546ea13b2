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

"""First-contact AI conversations for new students, teachers and school admins."""

import logging
from dataclasses import dataclass
from typing import Any, Optional

import requests

from . import strings
from .config import DEEPSEEK, Config
from .conversations import Conversation, ConversationStore
from .gateway_client import GatewayClient
from .prompts import lenient_int
from .provider_router import ProviderRouter

logger = logging.getLogger(__name__)

# The gateway opens a fresh chat for the bootstrap message
BOOTSTRAP_CHAT_ID = 1


@dataclass
class OnboardingResult:
    """Outcome of creating an onboarding conversation.

    When `success` is False the caller must treat nothing as created, even
    though a conversation directory may already exist on disk.
    """
    success: bool
    conversation_id: Optional[str] = None
    external_chat_id: Any = None
    used_fallback: bool = False
    error: Optional[str] = None


def student_intro(name: str, info: dict) -> str:
    education_level = info.get('education_level') or strings.NOT_SPECIFIED
    category_name = info.get('category_name') or strings.GENERAL
    return f"مرحباً، أنا {name}. مستوى التعليم: {education_level}، التخصص: {category_name}."


def teacher_intro(name: str, info: dict) -> str:
    details = ''
    if info:
        specialization = info.get('specialization_ar') or info.get('specialization') or strings.NOT_SPECIFIED
        experience = lenient_int(info.get('experience_years'), 0)
        details = f" التخصص: {specialization}، سنوات الخبرة: {experience}"
    return f"مرحبا انا الاستاذ {name}.{details}"


def school_admin_intro(name: str, info: dict) -> str:
    school_name = info.get('school_name') or strings.THE_SCHOOL
    student_count = info.get('student_count') or 0
    return f"مرحباً، أنا {name}، مدير مدرسة {school_name}. عدد الطلاب: {student_count}."


class UserChatService:
    """Seed a conversation with an introduction and the assistant's first reply."""

    provider = DEEPSEEK

    def __init__(self, config: Config, gateway: GatewayClient, router: ProviderRouter, store: ConversationStore):
        self.config = config
        self.gateway = gateway
        self.router = router
        self.store = store

    def create_chat_for_student(self, user_id, student_name: str, student_info: Optional[dict] = None) -> OnboardingResult:
        return self._bootstrap(
            'student', user_id, student_name,
            student_intro, student_info or {},
            strings.STUDENT_FALLBACK,
        )

    def create_chat_for_teacher(self, user_id, teacher_name: str, teacher_info: Optional[dict] = None) -> OnboardingResult:
        return self._bootstrap(
            'teacher', user_id, teacher_name,
            teacher_intro, teacher_info or {},
            strings.TEACHER_FALLBACK,
        )

    def create_chat_for_school_admin(self, user_id, admin_name: str, school_info: Optional[dict] = None) -> OnboardingResult:
        return self._bootstrap(
            'school admin', user_id, admin_name,
            school_admin_intro, school_info or {},
            strings.SCHOOL_ADMIN_FALLBACK,
        )

    def _bootstrap(self, role: str, user_id, name: str, build_intro, info, fallback: str) -> OnboardingResult:
        # TODO: remove the conversation directory when a later step raises
        try:
            intro = build_intro(name, info)
            convo = self.store.create_conversation(user_id, title=f"AI Assistant - {name}")
            self.store.append_message(convo, 'user', intro)

            if not self.router.ensure_authenticated(self.provider):
                logger.warning(f"Could not authenticate with {self.provider} for {role} onboarding, continuing")

            reply = self._first_reply(intro)
            if reply is None:
                self.store.append_message(convo, 'assistant', fallback)
                return OnboardingResult(success=True, conversation_id=convo.id, used_fallback=True)

            self.store.append_message(convo, 'assistant', reply)
            return OnboardingResult(
                success=True,
                conversation_id=convo.id,
                external_chat_id=self._link_external_chat(convo, role),
            )
        except Exception as e:
            logger.error(f"Failed to create AI chat for {role}: {e}")
            return OnboardingResult(success=False, error=str(e))

    def _first_reply(self, intro: str) -> Optional[str]:
        """Send the introduction; None means the fallback greeting is used."""
        try:
            response = self.gateway.post_chat(
                BOOTSTRAP_CHAT_ID, intro, self.provider,
                timeout=self.config.onboarding_timeout,
            )
        except requests.exceptions.RequestException as e:
            logger.warning(f"Onboarding message to {self.provider} failed: {e}")
            return None

        if not 200 <= response.status_code < 300:
            logger.warning(f"Onboarding message rejected by gateway: {response.status_code}")
            return None
        try:
            data = response.json()
        except ValueError:
            return None
        if not isinstance(data, dict) or not data.get('success'):
            return None
        return data.get('response') or None

    def _link_external_chat(self, convo: Conversation, role: str):
        """Record the gateway chat id on the conversation; None when it cannot be linked."""
        latest = self.gateway.sync_and_get_latest_chat()
        if not latest or latest.get('id') is None:
            logger.debug(f"No gateway chat to link for conversation {convo.id}")
            return None
        try:
            self.store.update_conversation(convo, external_chat_id=latest['id'])
        except Exception as e:
            logger.warning(f"Could not link conversation {convo.id} to gateway chat {latest['id']}: {e}")
            return None
        logger.info(
            f"AI chat created for {role} with external_chat_id: {latest['id']} "
            f"via DeepSeek (UUID: {latest.get('chat_id')})"
        )
        return latest['id']
