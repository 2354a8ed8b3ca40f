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

import math
import random
import secrets
import string
import time

from shared.constants import CODE_ALPHABET


def now_ms() -> int:
    """Current wall-clock time in integer milliseconds."""
    return int(time.time() * 1000)


def get_unique_id(length: int = 20) -> str:
    alphabet = string.ascii_letters + string.digits
    return "".join(secrets.choice(alphabet) for _ in range(length))


def generate_code(length: int = 6, alphabet: str = CODE_ALPHABET) -> str:
    """Random join code; the default alphabet drops look-alike characters."""
    return "".join(random.choice(alphabet) for _ in range(length))


def round_half_up(value: float) -> int:
    """Rounds halves upwards rather than to the nearest even integer."""
    return int(math.floor(value + 0.5))
