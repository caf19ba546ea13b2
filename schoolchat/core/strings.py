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

"""User-facing (Arabic) messages returned in chat results."""

SERVICE_UNAVAILABLE = 'خدمة الذكاء الاصطناعي غير متاحة حالياً'
SERVICE_ONLINE = 'خدمة الذكاء الاصطناعي متاحة'
SERVICE_NOT_RESPONDING = 'الخدمة الخارجية لا تستجيب. الرجاء المحاولة لاحقاً.'
NO_AI_RESPONSE = 'فشل في الحصول على استجابة من الذكاء الاصطناعي'
CONNECTION_ERROR_PREFIX = 'خطأ في الاتصال بخدمة الذكاء الاصطناعي: '
TIMETABLE_ERROR_PREFIX = 'خطأ في إنشاء الجدول الزمني: '

# Onboarding greetings used when the gateway gives no reply
STUDENT_FALLBACK = 'مرحباً! أنا مساعدك الذكي. يمكنني مساعدتك في الدراسة والإجابة على أسئلتك التعليمية.'
TEACHER_FALLBACK = 'مرحباً! أنا مساعدك الذكي. يمكنني مساعدتك في إنشاء محتوى الدروس والكورسات.'
SCHOOL_ADMIN_FALLBACK = 'مرحباً! أنا مساعدك الذكي. يمكنني مساعدتك في إدارة المدرسة والإجابة على أسئلتك الإدارية.'

NOT_SPECIFIED = 'غير محدد'
GENERAL = 'عام'
THE_SCHOOL = 'المدرسة'
