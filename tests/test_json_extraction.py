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

import unittest

from schoolchat.core.json_extraction import extract_json_from_response


class ExtractJsonTests(unittest.TestCase):
    def test_object_surrounded_by_prose(self):
        text = 'Sure! Here is the timetable:\n{"timetable": [{"day": "Monday"}], "suggestions": []}\nGood luck.'
        self.assertEqual(
            extract_json_from_response(text),
            {"timetable": [{"day": "Monday"}], "suggestions": []},
        )

    def test_two_objects_are_sliced_first_to_last_brace(self):
        # The slice is '{"a":1} blah {"b":2}', which is not valid JSON
        self.assertIsNone(extract_json_from_response('blah {"a":1} blah {"b":2} blah'))

    def test_nested_braces_in_one_object(self):
        self.assertEqual(extract_json_from_response('x {"a": {"b": 2}} y'), {"a": {"b": 2}})

    def test_stray_closing_brace_after_object_breaks_parse(self):
        self.assertIsNone(extract_json_from_response('{"a": 1} and a smiley :}'))

    def test_no_braces_returns_none(self):
        self.assertIsNone(extract_json_from_response("no json here"))
        self.assertIsNone(extract_json_from_response(""))

    def test_closing_before_opening_returns_none(self):
        self.assertIsNone(extract_json_from_response("} backwards {"))

    def test_falsy_parse_returns_none(self):
        self.assertIsNone(extract_json_from_response("result: {}"))

    def test_invalid_json_returns_none(self):
        self.assertIsNone(extract_json_from_response("{title: 'unquoted'}"))

    def test_non_string_returns_none(self):
        self.assertIsNone(extract_json_from_response(None))


if __name__ == "__main__":
    unittest.main()
