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

# Firestore collection names shared by the API backend and the ops scripts.
BOARDS_COLLECTION = "aac_boards"
ICON_LIBRARY_COLLECTION = "icon_library"
CULTURE_PROFILES_COLLECTION = "culture_profiles"
USER_PROFILES_COLLECTION = "user_profiles"
USERS_COLLECTION = "users"
HEALTH_CHECK_COLLECTION = "_health_check"

SEEDED_COLLECTIONS = [
    HEALTH_CHECK_COLLECTION,
    BOARDS_COLLECTION,
    CULTURE_PROFILES_COLLECTION,
    ICON_LIBRARY_COLLECTION,
    USERS_COLLECTION,
]
