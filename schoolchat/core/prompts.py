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

"""Prompt templates for the structured AI tools (timetables, courses, documents)."""

import re

from .strings import GENERAL

DEFAULT_START_TIME = '08:00'
DEFAULT_END_TIME = '16:00'
DEFAULT_SESSION_DURATION = 50  # minutes
DEFAULT_DAYS_OF_WEEK = ['Monday', 'Tuesday', 'Wednesday', 'Thursday', 'Friday']
DEFAULT_CLASS_LEVEL = 'Primary'
UNKNOWN_CLASS = 'Unknown Class'

TIMETABLE_TEMPLATE = """أنا أقوم بإنشاء جدول دراسي ذكي لفصل دراسي. أرجو منك تحليل المعلومات التالية وإرسال مقترح جدول زمني بصيغة JSON فقط، بدون أي نص إضافي:

معلومات الفصل:
- الاسم: {class_name}
- الوصف: {class_description}
- الفئة التعليمية: {education_category}
- المستوى: {class_level}

معلومات المعلم:
- التخصص: {specialization}
- سنوات الخبرة: {experience_years}

المواد المتاحة:
{subjects}

تفضيلات الجدول الزمني:
- وقت البداية: {start_time}
- وقت النهاية: {end_time}
- مدة الحصة: {session_duration} دقيقة
- أيام الدراسة: {days}
- عدد الفصول المراد جدولتها: {subject_count}

الرجاء إنشاء جدول دراسي منطقي يتضمن:
1. توزيع المواد على أيام الأسبوع
2. توزيع متوازن للحصص
3. مراعاة تخصص المعلم وخبرته في توزيع المواد
4. تجنب التعارضات الزمنية

يجب أن يكون الرد بصيغة JSON فقط، بهذا التنسيق بدون أي نص قبله أو بعده:
{{
  "timetable": [
    {{"day": "Monday", "time_start": "08:00", "time_end": "08:50", "subject_name": "Mathematics", "subject_name_ar": "الرياضيات", "subject_code": "MATH", "room_number": "101", "notes": ""}}
  ],
  "logic_explanation": "شرح عن المنطق المستخدم في توزيع المواد",
  "suggestions": ["اقتراح 1", "اقتراح 2"]
}}"""

COURSE_INFO_TEMPLATE = """قم بإنشاء معلومات تفصيلية للكورس بصيغة JSON فقط بدون أي نص إضافي للعنوان التالي "{title}" :
{{"title": "عنوان الدرس بالإنجليزية","title_ar": "عنوان الدرس بالعربية","description": "وصف مختصر للدرس بالإنجليزية","description_ar": "وصف مختصر للدرس بالعربية","difficulty_level": "beginner أو intermediate أو advanced","duration_hours": "رقم تقدير مدة الكورس بالساعات","learning_objectives": "[هدف تعليمي 1, هدف تعليمي 2, هدف تعليمي 3, ....]","prerequisites": "[متطلب 1, متطلب 2, ....]","enrollment_conditions": "شروط التسجيل بالإنجليزية","enrollment_conditions_ar": "شروط التسجيل بالعربية","subjects": "[math, phisics, ....]"}}
يجب أن يكون الرد JSON فقط بدون أي نص قبله أو بعده."""

DOCUMENT_EXTRACTION_PROMPT = """قم بتحليل هذا المستند واستخراج المعلومات التالية بصيغة JSON فقط بدون أي نص إضافي:
{
    "title": "عنوان الدرس بالإنجليزية",
    "title_ar": "عنوان الدرس بالعربية",
    "description": "وصف مختصر للدرس بالإنجليزية",
    "description_ar": "وصف مختصر للدرس بالعربية",
    "content_text": "ملخص محتوى الملف المرفق",
    "duration_minutes": تقدير مدة الدرس بالدقائق (رقم فقط)
}
يجب أن يكون الرد JSON فقط بدون أي نص قبله أو بعده."""


def lenient_int(value, default: int = 0) -> int:
    """Read the leading integer of a value ("5.5" -> 5, "45 min" -> 45).

    Values without a leading number give `default`.
    """
    if isinstance(value, bool) or value is None:
        return default
    if isinstance(value, (int, float)):
        return int(value)
    match = re.match(r'\s*([+-]?\d+)', str(value))
    return int(match.group(1)) if match else default


def _localized(info: dict, key: str, default=''):
    """Prefer the Arabic variant `<key>_ar`, then `<key>`, then `default`."""
    value = info.get(f'{key}_ar')
    if value is None:
        value = info.get(key)
    return default if value is None else value


def format_subject(subject: dict) -> str:
    """Render a subject as `name (code)`."""
    return f"{_localized(subject, 'name')} ({subject.get('code') or ''})"


def build_timetable_prompt(timetable_data: dict) -> str:
    """Render the timetable-generation prompt.

    Every scheduling preference is optional; missing values fall back to a
    weekday 08:00-16:00 schedule with 50 minute sessions.

    Args:
        timetable_data: Dict with optional class_info, teacher_info,
            subjects_info, education_category, class_level and preferences

    Returns:
        Prompt text asking for a JSON-only reply with `timetable`,
        `logic_explanation` and `suggestions`
    """
    class_info = timetable_data.get('class_info') or {}
    teacher_info = timetable_data.get('teacher_info') or {}
    subjects_info = timetable_data.get('subjects_info') or []
    preferences = timetable_data.get('preferences') or {}

    subjects = [format_subject(s) for s in subjects_info]
    days = preferences.get('days_of_week') or DEFAULT_DAYS_OF_WEEK

    return TIMETABLE_TEMPLATE.format(
        class_name=_localized(class_info, 'name', UNKNOWN_CLASS),
        class_description=_localized(class_info, 'description'),
        education_category=timetable_data.get('education_category') or GENERAL,
        class_level=timetable_data.get('class_level') or DEFAULT_CLASS_LEVEL,
        specialization=_localized(teacher_info, 'specialization'),
        experience_years=lenient_int(teacher_info.get('experience_years'), 0),
        subjects="\n".join(f"- {s}" for s in subjects),
        start_time=preferences.get('start_time') or DEFAULT_START_TIME,
        end_time=preferences.get('end_time') or DEFAULT_END_TIME,
        session_duration=lenient_int(preferences.get('session_duration'), 0) or DEFAULT_SESSION_DURATION,
        days=', '.join(days),
        subject_count=len(subjects_info),
    )


def build_course_info_prompt(title: str) -> str:
    return COURSE_INFO_TEMPLATE.format(title=title)
