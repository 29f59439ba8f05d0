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

import secrets

# Same alphabet as nanoid: safe in URLs and Firestore document paths.
URL_SAFE_ALPHABET = "_-0123456789abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ"
DEFAULT_ID_LENGTH = 16


def get_unique_id(length: int = DEFAULT_ID_LENGTH) -> str:
    """Returns a random identifier drawn from a URL-safe alphabet.

    At 16 characters over 64 symbols this is 96 bits of randomness, so
    collisions within a single collection are negligible.
    """
    if length <= 0:
        raise ValueError("length must be positive")
    return "".join(secrets.choice(URL_SAFE_ALPHABET) for _ in range(length))
