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

"""Pull a JSON object out of free-text AI replies."""

import json
import logging
from typing import Any, Optional

logger = logging.getLogger(__name__)


def extract_json_from_response(ai_response: str) -> Optional[Any]:
    """Parse the text between the first '{' and the last '}' as JSON.

    This is not a balanced-brace scan: a reply holding two separate objects
    is sliced across both, which usually fails to parse and yields None.

    Args:
        ai_response: Raw reply text from the provider

    Returns:
        Parsed JSON value, or None if there are no braces, the slice does not
        parse, or the parsed value is falsy
    """
    if not isinstance(ai_response, str):
        return None

    start = ai_response.find('{')
    end = ai_response.rfind('}')
    if start == -1 or end == -1 or end < start:
        return None

    try:
        data = json.loads(ai_response[start:end + 1])
    except json.JSONDecodeError:
        logger.debug(f"Could not parse JSON from AI response ({len(ai_response)} chars)")
        return None

    return data if data else None
