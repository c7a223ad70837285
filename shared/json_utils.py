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

import re
from typing import Any

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


def snake_to_camel(key: str) -> str:
    head, *rest = key.split("_")
    return head + "".join(part.title() for part in rest)


def camel_to_snake(key: str) -> str:
    return _CAMEL_BOUNDARY.sub("_", key).lower()


def convert_keys(data: Any, direction: str) -> Any:
    """
    Recursively converts dictionary keys between snake_case and camelCase.

    Args:
        data: A dict, list or scalar value.
        direction: Either "snake_to_camel" or "camel_to_snake".

    Returns:
        A copy of `data` with every dictionary key converted.
    """
    if direction == "snake_to_camel":
        convert = snake_to_camel
    elif direction == "camel_to_snake":
        convert = camel_to_snake
    else:
        raise ValueError(f"Unknown key conversion direction: {direction}")

    if isinstance(data, dict):
        return {
            (convert(k) if isinstance(k, str) else k): convert_keys(v, direction)
            for k, v in data.items()
        }
    if isinstance(data, list):
        return [convert_keys(item, direction) for item in data]
    return data
