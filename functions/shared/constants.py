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

ANONYMOUS_AUTHOR = "anonymous"
DEFAULT_AVATAR_URL = "/images/profile_placeholder.png"

SIGN_IN_REQUIRED_NOTICE = "You must sign-in first"
SIGN_IN_REQUIRED_NOTICE_TIMEOUT_MS = 2000

FAILURE_REDIRECT_DELAY_SECONDS = 2.0
