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

"""HTTP client for the AI automation gateway.

The gateway fronts both AI providers (DeepSeek and Gemini) behind one REST
API. This module only speaks the wire protocol; result normalization lives
in the chat dispatcher.
"""

import logging
import mimetypes
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import requests

from .config import Config

logger = logging.getLogger(__name__)


@dataclass
class Attachment:
    """A file sent along with a chat message."""
    filename: str
    content: bytes
    content_type: Optional[str] = None

    @classmethod
    def from_path(cls, path) -> "Attachment":
        """Read a file from disk, keeping its original name."""
        p = Path(path).expanduser()
        content_type, _ = mimetypes.guess_type(p.name)
        return cls(filename=p.name, content=p.read_bytes(), content_type=content_type)

    def metadata(self) -> dict:
        """Metadata recorded on the stored user message."""
        return {
            'name': self.filename,
            'size': len(self.content),
            'type': self.content_type or 'application/octet-stream',
        }


@dataclass
class ConnectedWebsite:
    name: str
    session_active: bool = False


@dataclass
class ConnectionStatus:
    """Snapshot of the gateway's provider sessions. Never cached."""
    authenticated: bool = False
    connected_websites: list[ConnectedWebsite] = field(default_factory=list)
    error: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: dict) -> "ConnectionStatus":
        websites = []
        for entry in payload.get('connected_websites') or []:
            if not isinstance(entry, dict):
                continue
            websites.append(ConnectedWebsite(
                name=entry.get('name'),
                session_active=bool(entry.get('session_active', False)),
            ))
        return cls(
            authenticated=bool(payload.get('authenticated', False)),
            connected_websites=websites,
            error=payload.get('error'),
        )

    def is_active(self, website: str) -> bool:
        """True when authenticated and `website` holds an active session."""
        if not self.authenticated:
            return False
        return any(w.name == website and w.session_active for w in self.connected_websites)


def _json_body(response) -> dict:
    """Decode a JSON object body, or return an empty dict."""
    try:
        data = response.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}


def _is_successful(response) -> bool:
    return 200 <= response.status_code < 300


class GatewayClient:
    """Client for the automation gateway REST API."""

    def __init__(self, config: Config):
        self.config = config
        self.api_url = config.api_url.rstrip('/')
        self.session = requests.Session()

    def _url(self, path: str) -> str:
        return f"{self.api_url}{path}"

    def authenticate(self, website: str, headless: Optional[bool] = None) -> dict:
        """Open a provider session on the gateway.

        Returns:
            Dict with success, website and message (or error on exceptions)
        """
        if headless is None:
            headless = self.config.headless
        data = {}
        try:
            response = self.session.post(
                self._url('/api/authenticate'),
                json={'website': website, 'headless': headless},
                timeout=self.config.auth_timeout,
            )
            data = _json_body(response)
            if _is_successful(response) and data.get('success'):
                logger.info(f"Successfully authenticated with {website}")
                return {
                    'success': True,
                    'website': website,
                    'message': data.get('message', 'Authentication successful'),
                }
        except requests.exceptions.RequestException as e:
            logger.error(f"Authentication failed for {website}: {e}")
            return {'success': False, 'website': website, 'error': str(e)}

        return {
            'success': False,
            'website': website,
            'message': data.get('message', 'Authentication failed'),
        }

    def disconnect(self, website: Optional[str] = None) -> dict:
        """Close one provider session, or all of them when `website` is None."""
        payload = {}
        if website:
            payload['website'] = website
        data = {}
        try:
            response = self.session.post(
                self._url('/api/disconnect'),
                json=payload,
                timeout=self.config.sync_timeout,
            )
            data = _json_body(response)
            if _is_successful(response) and data.get('success'):
                target = f"from {website}" if website else "from all AI websites"
                logger.info(f"Disconnected {target}")
                return {'success': True, 'message': data.get('message', 'Disconnection successful')}
        except requests.exceptions.RequestException as e:
            logger.error(f"Disconnection failed: {e}")
            return {'success': False, 'error': str(e)}

        return {'success': False, 'message': data.get('message', 'Disconnection failed')}

    def get_connection_status(self) -> ConnectionStatus:
        """Fetch the current provider sessions from the gateway."""
        try:
            response = self.session.get(self._url('/api/status'), timeout=self.config.status_timeout)
        except requests.exceptions.RequestException as e:
            logger.warning(f"Failed to get connection status: {e}")
            return ConnectionStatus(error=str(e))

        if not _is_successful(response):
            return ConnectionStatus(error='Failed to fetch status')
        return ConnectionStatus.from_payload(_json_body(response))

    def check_api_status(self) -> bool:
        """Liveness check. The response body is ignored."""
        try:
            response = self.session.get(self._url('/api/chats'), timeout=self.config.status_timeout)
            return _is_successful(response)
        except requests.exceptions.RequestException as e:
            logger.warning(f"Chat API status check failed: {e}")
            return False

    def sync_and_get_latest_chat(self) -> Optional[dict]:
        """Ask the gateway to sync its chats and return the newest one.

        Returns:
            Dict with the gateway's `id` and `chat_id`, or None
        """
        try:
            response = self.session.post(
                self._url('/api/chats/sync-and-get-latest'),
                timeout=self.config.sync_timeout,
            )
        except requests.exceptions.RequestException as e:
            logger.error(f"Failed to sync and get latest chat: {e}")
            return None

        if not _is_successful(response):
            return None
        data = _json_body(response)
        if not data.get('success'):
            return None
        latest = data.get('latest_chat')
        return latest if isinstance(latest, dict) else None

    def post_chat(self, chat_id, message: str, website: str, timeout: Optional[int] = None):
        """POST a plain JSON chat message.

        Raises:
            requests.exceptions.RequestException: On network errors or timeouts
        """
        return self.session.post(
            self._url('/api/external/chat'),
            json={'chat_id': chat_id, 'message': message, 'website': website},
            timeout=timeout or self.config.timeout,
        )

    def post_chat_with_files(
        self,
        chat_id,
        message: str,
        website: str,
        files: list[Attachment],
        timeout: Optional[int] = None
    ):
        """POST a multipart chat message with one `files` part per attachment.

        Raises:
            requests.exceptions.RequestException: On network errors or timeouts
        """
        form = {'chat_id': str(chat_id), 'message': message, 'website': website}
        parts = []
        for attachment in files:
            if attachment.content_type:
                parts.append(('files', (attachment.filename, attachment.content, attachment.content_type)))
            else:
                parts.append(('files', (attachment.filename, attachment.content)))
        return self.session.post(
            self._url('/api/external/chat'),
            data=form,
            files=parts,
            timeout=timeout or self.config.timeout,
        )
