# Copyright 2025 Google LLC
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
# ==============================================================================
"""Input validation shared by the API schemas and the domain modules."""

import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Union
from urllib.parse import urlparse

from shared.constants import MAX_POINTS
from shared.utils import round_half_up

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
SPECIAL_CHARS_PATTERN = re.compile(r"[!@#$%^&*(),.?\":{}|<>]")


@dataclass
class FieldResult:
    valid: bool
    error: Optional[str] = None


@dataclass
class PasswordResult:
    valid: bool
    errors: List[str] = field(default_factory=list)
    strength: str = "weak"


@dataclass
class PointsResult:
    valid: bool
    value: int = 0
    error: Optional[str] = None


@dataclass
class ValidationResult:
    valid: bool
    errors: Dict[str, str] = field(default_factory=dict)


def is_valid_email(email: str) -> bool:
    return bool(EMAIL_PATTERN.match(email.strip()))


def is_valid_password(password: str) -> PasswordResult:
    errors = []
    if len(password) < 6:
        errors.append("Password must be at least 6 characters")
    if len(password) > 128:
        errors.append("Password must be less than 128 characters")
    return PasswordResult(valid=not errors, errors=errors)


def is_strong_password(password: str) -> PasswordResult:
    errors = []
    if len(password) < 8:
        errors.append("Password should be at least 8 characters")

    criteria_met = sum(
        [
            bool(re.search(r"[A-Z]", password)),
            bool(re.search(r"[a-z]", password)),
            bool(re.search(r"[0-9]", password)),
            bool(SPECIAL_CHARS_PATTERN.search(password)),
        ]
    )
    strength = "weak"
    if criteria_met >= 4 and len(password) >= 10:
        strength = "strong"
    elif criteria_met >= 2 and len(password) >= 8:
        strength = "medium"
    return PasswordResult(valid=not errors, errors=errors, strength=strength)


def _check_length(
    value: str, label: str, minimum: int, maximum: int, empty_message: str
) -> FieldResult:
    trimmed = value.strip()
    if not trimmed:
        return FieldResult(False, empty_message)
    if len(trimmed) < minimum:
        return FieldResult(False, f"{label} must be at least {minimum} characters")
    if len(trimmed) > maximum:
        return FieldResult(False, f"{label} must be less than {maximum} characters")
    return FieldResult(True)


def is_valid_display_name(name: str) -> FieldResult:
    result = _check_length(name, "Name", 2, 50, "Name is required")
    if not result.valid:
        return result
    if re.search(r"[<>{}]", name):
        return FieldResult(False, "Name contains invalid characters")
    return result


def is_valid_room_code(code: str) -> FieldResult:
    trimmed = code.strip().upper()
    result = _check_length(trimmed, "Room code", 4, 10, "Room code is required")
    if not result.valid:
        return result
    if not re.fullmatch(r"[A-Z0-9]+", trimmed):
        return FieldResult(False, "Room code can only contain letters and numbers")
    return result


def is_valid_question(question: str) -> FieldResult:
    return _check_length(question, "Question", 5, 500, "Question is required")


def is_valid_answer_option(option: str) -> FieldResult:
    trimmed = option.strip()
    if not trimmed:
        return FieldResult(False, "Answer option cannot be empty")
    if len(trimmed) > 200:
        return FieldResult(False, "Answer must be less than 200 characters")
    return FieldResult(True)


def is_valid_class_name(name: str) -> FieldResult:
    return _check_length(name, "Class name", 3, 100, "Class name is required")


def is_valid_url(url: str) -> bool:
    parsed = urlparse(url)
    return bool(parsed.scheme and (parsed.netloc or parsed.path))


_SANITIZE_MAP = [
    ("<", "&lt;"),
    (">", "&gt;"),
    ('"', "&quot;"),
    ("'", "&#x27;"),
    ("/", "&#x2F;"),
]


def sanitize_text(text: str) -> str:
    for raw, escaped in _SANITIZE_MAP:
        text = text.replace(raw, escaped)
    return text


def unsanitize_text(text: str) -> str:
    for raw, escaped in _SANITIZE_MAP:
        text = text.replace(escaped, raw)
    return text


def is_valid_points(points: Union[int, float, str]) -> PointsResult:
    try:
        value = float(points)
    except (TypeError, ValueError):
        return PointsResult(False, error="Points must be a number")
    if value != value:  # NaN
        return PointsResult(False, error="Points must be a number")
    if value < 0:
        return PointsResult(False, error="Points cannot be negative")
    if value > MAX_POINTS:
        return PointsResult(False, error="Points cannot exceed 10,000")
    return PointsResult(True, value=round_half_up(value))


def is_valid_duration(seconds: float) -> FieldResult:
    if seconds < 5:
        return FieldResult(False, "Duration must be at least 5 seconds")
    if seconds > 3600:
        return FieldResult(False, "Duration cannot exceed 1 hour")
    return FieldResult(True)


def validate_form(validations: Dict[str, FieldResult]) -> ValidationResult:
    errors = {
        name: result.error
        for name, result in validations.items()
        if not result.valid and result.error
    }
    return ValidationResult(valid=not errors, errors=errors)
