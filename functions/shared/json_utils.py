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

from dataclasses import asdict
from enum import Enum
from typing import Any, Optional, Type, TypeVar

from dacite import Config, from_dict

T = TypeVar("T")

DOCUMENT_CONFIG = Config(check_types=False, cast=[Enum])


def from_document(data_class: Type[T], data: dict, doc_id: Optional[str] = None) -> T:
    """Hydrates a stored document into its dataclass.

    When `doc_id` is given it fills the `id` field, mirroring documents whose
    id lives in the path rather than the body.
    """
    payload = dict(data)
    if doc_id is not None and not payload.get("id"):
        payload["id"] = doc_id
    return from_dict(data_class=data_class, data=payload, config=DOCUMENT_CONFIG)


def to_document(record: Any) -> dict:
    """Serializes a dataclass to a JSON-compatible document body."""
    return _plain(asdict(record))


def _plain(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {key: _plain(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(item) for item in value]
    return value
