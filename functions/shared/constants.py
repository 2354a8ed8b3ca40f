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

# No I, O, 0 or 1: they are easy to misread off a projector.
CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
ROOM_CODE_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"
CLASS_CODE_LENGTH = 6

# Collections
USERS_COLLECTION = "users"
CLASSES_COLLECTION = "classes"
MEMBERS_COLLECTION = "members"
HISTORY_COLLECTION = "history"
BADGES_COLLECTION = "badges"
POLLS_COLLECTION = "polls"
VOTES_COLLECTION = "votes"
QUIZZES_COLLECTION = "quizzes"
GAMES_COLLECTION = "games"
RESPONSES_COLLECTION = "responses"
ENERGY_COLLECTION = "energy"
PULSE_CHECKS_COLLECTION = "pulse_checks"
TOOLS_COLLECTION = "tools"
LEADER_GRID_CODES_COLLECTION = "leader_grid_codes"
REDEMPTIONS_COLLECTION = "redemptions"
PARKING_LOT_COLLECTION = "parking_lot"
WORDSTORMS_COLLECTION = "wordstorms"
WORDS_COLLECTION = "words"
TIMERS_COLLECTION = "timers"
GALLERIES_COLLECTION = "galleries"
PHOTOS_COLLECTION = "photos"
ALBUM_TEMPLATES_COLLECTION = "album_templates"
CLASS_ALBUMS_COLLECTION = "class_albums"
ALBUM_PROGRESS_COLLECTION = "album_progress"
ANALYTICS_EVENTS_COLLECTION = "analytics_events"
ACCESS_CODES_COLLECTION = "access_codes"
TEMPLATES_COLLECTION = "templates"

# Limits
MAX_CLASS_NAME_LENGTH = 100
MAX_QUESTION_LENGTH = 500
MAX_NICKNAME_LENGTH = 50
MAX_POINTS = 10000
HISTORY_PAGE_SIZE = 50
LEADERGRID_COOLDOWN_SECONDS = 180
PICPICK_VOTES_PER_GALLERY = 4
PICPICK_VOTES_PER_PHOTO = 2
DEFAULT_TIMER_SECONDS = 300
DEFAULT_ENERGY_LEVEL = 100
LOW_ENERGY_THRESHOLD = 50
HIGH_ENERGY_THRESHOLD = 75
