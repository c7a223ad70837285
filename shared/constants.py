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


ONE_MB = 1048576
ONE_GB = 1073741824
ONE_TB = 1099511627776

# Direct uploads carry the file body in the request; anything larger goes
# through the fetch-from-URL path.
MAX_INLINE_UPLOAD_BYTES = ONE_MB

ACCOUNT_ID_DIGITS = 6
SPECIAL_ACCOUNT_MARKER = "#"
SPECIAL_ACCOUNT_KEY_PREFIX = "special_"

UNLOCK_CODE_DIGITS = 4

DEFAULT_MIME_TYPE = "application/octet-stream"
UNTITLED_FILE_NAME = "untitled"

USERS_COLLECTION = "users"
DIARY_COLLECTION = "diary"
FILES_COLLECTION = "files"
