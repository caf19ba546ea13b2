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

"""Configuration loading and management for SchoolChat."""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import toml

DEEPSEEK = 'deepseek'
GEMINI = 'gemini'
KNOWN_PROVIDERS = (DEEPSEEK, GEMINI)

DEFAULT_API_URL = 'http://localhost:5000'
DEFAULT_TIMEOUT = 160

# Task type -> provider used when the caller does not pick one
DEFAULT_PROVIDER_PREFERENCES = {
    'file_analysis': GEMINI,
    'document_extraction': GEMINI,
    'image_generation': GEMINI,
    'timetable_generation': DEEPSEEK,
    'reasoning_tasks': DEEPSEEK,
    'course_generation': DEEPSEEK,
    'text_chat': DEEPSEEK,
}


@dataclass
class Config:
    """Application configuration."""
    api_url: str = DEFAULT_API_URL
    timeout: int = DEFAULT_TIMEOUT  # Dispatch timeout in seconds
    status_timeout: int = 5
    auth_timeout: int = 30
    sync_timeout: int = 10
    onboarding_timeout: int = 120
    headless: bool = True
    default_provider: str = DEEPSEEK
    attachment_provider: str = GEMINI
    provider_preferences: dict = field(default_factory=lambda: dict(DEFAULT_PROVIDER_PREFERENCES))
    conversations_dir: Path = field(default_factory=lambda: Path.home() / '.schoolchat' / 'conversations')
    log_level: str = 'INFO'  # Logging level: DEBUG, INFO, WARNING, ERROR
    log_file: Optional[Path] = None  # Path to log file (None = stderr)


def _setup_logging(config: Config) -> None:
    """Configure logging based on config settings.

    Args:
        config: Configuration object with logging settings
    """
    numeric_level = getattr(logging, config.log_level, logging.INFO)

    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    root_logger.handlers.clear()

    if config.log_file:
        config.log_file.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(config.log_file)
    else:
        handler = logging.StreamHandler()

    handler.setLevel(numeric_level)
    handler.setFormatter(formatter)
    root_logger.addHandler(handler)

    logging.info(f"Logging initialized: level={config.log_level}, file={config.log_file}")


def _parse_int(value, name: str) -> int:
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        raise ValueError(f"Invalid value for {name}: {value!r} (expected an integer)")
    if parsed <= 0:
        raise ValueError(f"Invalid value for {name}: {parsed} (must be positive)")
    return parsed


def _check_provider(provider_id: str, name: str) -> str:
    if provider_id not in KNOWN_PROVIDERS:
        raise ValueError(f"{name} '{provider_id}' is not a known provider. Options: {list(KNOWN_PROVIDERS)}")
    return provider_id


def load_config(setup_logging: bool = True) -> Config:
    """Load configuration from ~/.schoolchat/config.toml and the environment.

    The file is optional. CHAT_API_URL and CHAT_API_TIMEOUT override the
    gateway URL and dispatch timeout from the file.

    Returns:
        Config object with loaded or default values

    Raises:
        ValueError: If configuration is invalid
    """
    config_path = Path.home() / ".schoolchat" / "config.toml"

    data = {}
    if config_path.exists():
        with open(config_path, 'r') as f:
            data = toml.load(f)

    general_section = data.get('general', {})
    gateway_section = data.get('gateway', {})
    routing_section = data.get('routing', {})

    log_level = str(general_section.get('log_level', 'INFO')).upper()
    log_file_str = general_section.get('log_file')
    log_file = Path(log_file_str).expanduser() if log_file_str else None

    conversations_dir_str = general_section.get(
        'conversations_dir',
        str(Path.home() / '.schoolchat' / 'conversations')
    )
    conversations_dir = Path(conversations_dir_str).expanduser()
    conversations_dir.mkdir(parents=True, exist_ok=True)

    api_url = os.environ.get('CHAT_API_URL') or gateway_section.get('api_url', DEFAULT_API_URL)
    timeout_value = os.environ.get('CHAT_API_TIMEOUT') or gateway_section.get('timeout', DEFAULT_TIMEOUT)

    default_provider = _check_provider(routing_section.get('default_provider', DEEPSEEK), 'default_provider')
    attachment_provider = _check_provider(routing_section.get('attachment_provider', GEMINI), 'attachment_provider')

    preferences = dict(DEFAULT_PROVIDER_PREFERENCES)
    for task_type, provider_id in (routing_section.get('preferences') or {}).items():
        preferences[task_type] = _check_provider(provider_id, f"preference for '{task_type}'")

    config = Config(
        api_url=str(api_url).rstrip('/'),
        timeout=_parse_int(timeout_value, 'timeout'),
        status_timeout=_parse_int(gateway_section.get('status_timeout', 5), 'status_timeout'),
        auth_timeout=_parse_int(gateway_section.get('auth_timeout', 30), 'auth_timeout'),
        sync_timeout=_parse_int(gateway_section.get('sync_timeout', 10), 'sync_timeout'),
        onboarding_timeout=_parse_int(gateway_section.get('onboarding_timeout', 120), 'onboarding_timeout'),
        headless=bool(gateway_section.get('headless', True)),
        default_provider=default_provider,
        attachment_provider=attachment_provider,
        provider_preferences=preferences,
        conversations_dir=conversations_dir,
        log_level=log_level,
        log_file=log_file,
    )

    if setup_logging:
        _setup_logging(config)

    return config
