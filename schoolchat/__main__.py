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

"""Main entry point for SchoolChat."""

import argparse
import json
import logging
import sys
from dataclasses import dataclass
from pathlib import Path

from .core.chat_dispatcher import ChatDispatcher
from .core.chat_session import ConversationChat
from .core.config import KNOWN_PROVIDERS, Config, load_config
from .core.conversations import ConversationStore
from .core.gateway_client import Attachment, GatewayClient
from .core.json_extraction import extract_json_from_response
from .core.onboarding import UserChatService
from .core.provider_router import ProviderRouter

logger = logging.getLogger(__name__)


@dataclass
class Services:
    gateway: GatewayClient
    router: ProviderRouter
    dispatcher: ChatDispatcher
    onboarding: UserChatService
    store: ConversationStore
    chat: ConversationChat


def build_services(config: Config) -> Services:
    gateway = GatewayClient(config)
    router = ProviderRouter.from_config(config, gateway)
    dispatcher = ChatDispatcher(gateway, router)
    store = ConversationStore(config.conversations_dir)
    return Services(
        gateway=gateway,
        router=router,
        dispatcher=dispatcher,
        onboarding=UserChatService(config, gateway, router, store),
        store=store,
        chat=ConversationChat(dispatcher, store),
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='schoolchat',
        description='Talk to the SchoolChat AI gateway'
    )
    sub = parser.add_subparsers(dest='command', required=True)

    sub.add_parser('status', help='Show gateway liveness and provider sessions')

    auth = sub.add_parser('auth', help='Authenticate with a provider')
    auth.add_argument('provider', choices=KNOWN_PROVIDERS)

    disconnect = sub.add_parser('disconnect', help='Disconnect one or all providers')
    disconnect.add_argument('provider', nargs='?', choices=KNOWN_PROVIDERS)

    send = sub.add_parser('send', help='Send a chat message')
    send.add_argument('message')
    send.add_argument('--chat-id', type=int, default=1)
    send.add_argument('--provider', choices=KNOWN_PROVIDERS)
    send.add_argument('--file', action='append', default=[], metavar='PATH', help='Attach a file (repeatable)')
    send.add_argument('--no-auth', action='store_true', help='Skip automatic authentication')

    timetable = sub.add_parser('timetable', help='Generate a timetable proposal')
    timetable.add_argument('--chat-id', type=int, default=1)
    timetable.add_argument('--input', required=True, metavar='FILE', help='JSON file with the timetable request')

    course = sub.add_parser('course', help='Generate course details for a title')
    course.add_argument('title')
    course.add_argument('--chat-id', type=int, default=1)

    extract = sub.add_parser('extract-document', help='Extract lesson details from a document')
    extract.add_argument('document')
    extract.add_argument('--chat-id', type=int, default=1)

    chat = sub.add_parser('chat', help='Send a message within a stored conversation')
    chat.add_argument('message')
    chat.add_argument('--conversation', required=True, metavar='ID')
    chat.add_argument('--file', action='append', default=[], metavar='PATH', help='Attach a file (repeatable)')

    conversations = sub.add_parser('conversations', help='Manage stored conversations')
    conv_sub = conversations.add_subparsers(dest='conversations_command', required=True)
    conv_new = conv_sub.add_parser('new', help='Create an empty conversation')
    conv_new.add_argument('--user-id', required=True)
    conv_new.add_argument('--title')
    conv_list = conv_sub.add_parser('list', help='List conversations, newest first')
    conv_list.add_argument('--user-id')
    conv_delete = conv_sub.add_parser('delete', help='Delete a conversation')
    conv_delete.add_argument('conversation_id')

    onboard = sub.add_parser('onboard', help='Create the first AI conversation for a new user')
    onboard.add_argument('role', choices=('student', 'teacher', 'admin'))
    onboard.add_argument('--user-id', required=True)
    onboard.add_argument('--name', required=True)
    onboard.add_argument('--info', metavar='FILE', help='JSON file with profile fields')

    return parser


def _read_json_file(path: str) -> dict:
    with open(Path(path).expanduser(), 'r', encoding='utf-8') as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"Expected a JSON object in {path}")
    return data


def _print_json(data) -> None:
    print(json.dumps(data, ensure_ascii=False, indent=2))


def _print_chat_result(result, parse_json: bool = False) -> int:
    payload = result.to_dict()
    if parse_json and result.success:
        payload['data'] = extract_json_from_response(result.response)
    _print_json(payload)
    return 0 if result.success else 1


def _conversation_summary(convo) -> dict:
    return {
        'id': convo.id,
        'user_id': convo.user_id,
        'title': convo.title,
        'external_chat_id': convo.external_chat_id,
        'is_active': convo.is_active,
        'messages': len(convo.messages),
        'last_modified': convo.last_modified,
    }


def _run_conversations(args: argparse.Namespace, store: ConversationStore) -> int:
    if args.conversations_command == 'new':
        kwargs = {'title': args.title} if args.title else {}
        convo = store.create_conversation(args.user_id, **kwargs)
        _print_json(_conversation_summary(convo))
        return 0

    if args.conversations_command == 'list':
        _print_json([_conversation_summary(c) for c in store.list_conversations(args.user_id)])
        return 0

    # Raises FileNotFoundError for an unknown id
    store.load_conversation(args.conversation_id)
    store.delete_conversation(args.conversation_id)
    _print_json({'deleted': args.conversation_id})
    return 0


def run_command(args: argparse.Namespace, services: Services) -> int:
    """Run a parsed subcommand and return the process exit code."""
    dispatcher = services.dispatcher

    if args.command == 'status':
        status = dispatcher.status()
        _print_json(status)
        return 0 if status['online'] else 1

    if args.command == 'auth':
        result = services.gateway.authenticate(args.provider)
        _print_json(result)
        return 0 if result.get('success') else 1

    if args.command == 'disconnect':
        result = dispatcher.disconnect(args.provider)
        _print_json(result)
        return 0 if result.get('success') else 1

    if args.command == 'send':
        files = [Attachment.from_path(p) for p in args.file]
        result = dispatcher.send_message(
            args.chat_id, args.message, files=files,
            provider=args.provider, auto_authenticate=not args.no_auth,
        )
        return _print_chat_result(result)

    if args.command == 'timetable':
        result = dispatcher.generate_timetable(args.chat_id, _read_json_file(args.input))
        return _print_chat_result(result, parse_json=True)

    if args.command == 'course':
        result = dispatcher.generate_course_info(args.chat_id, args.title)
        return _print_chat_result(result, parse_json=True)

    if args.command == 'extract-document':
        result = dispatcher.extract_document_info(args.chat_id, Attachment.from_path(args.document))
        return _print_chat_result(result, parse_json=True)

    if args.command == 'chat':
        files = [Attachment.from_path(p) for p in args.file]
        result = services.chat.send(args.conversation, args.message, files=files)
        return _print_chat_result(result)

    if args.command == 'conversations':
        return _run_conversations(args, services.store)

    if args.command == 'onboard':
        info = _read_json_file(args.info) if args.info else {}
        creators = {
            'student': services.onboarding.create_chat_for_student,
            'teacher': services.onboarding.create_chat_for_teacher,
            'admin': services.onboarding.create_chat_for_school_admin,
        }
        outcome = creators[args.role](args.user_id, args.name, info)
        _print_json({
            'success': outcome.success,
            'conversation_id': outcome.conversation_id,
            'external_chat_id': outcome.external_chat_id,
            'used_fallback': outcome.used_fallback,
            'error': outcome.error,
        })
        return 0 if outcome.success else 1

    raise ValueError(f"Unknown command: {args.command}")


def main(argv=None):
    """Main entry point."""
    args = build_parser().parse_args(argv)

    try:
        config = load_config()
        logger.info("=== SchoolChat starting ===")
        logger.info(f"Configuration loaded: api_url={config.api_url}, timeout={config.timeout}")

        services = build_services(config)
        sys.exit(run_command(args, services))

    except FileNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    except ValueError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        logger.error(f"Configuration error: {e}")
        sys.exit(1)

    except KeyboardInterrupt:
        print("\nExiting SchoolChat...")
        logger.info("Application terminated by user (Ctrl+C)")
        sys.exit(0)

    except Exception as e:
        print(f"Unexpected error: {e}", file=sys.stderr)
        logger.exception(f"Unexpected error: {e}")
        sys.exit(1)


if __name__ == '__main__':
    main()
