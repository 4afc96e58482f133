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
"""Formats the notification email for a new chat message."""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class NotificationMail:
    subject: str
    text: str
    html: str


def escape_html(s) -> str:
    """Minimal HTML escaping of `&`, `<` and `>`."""
    return str(s).replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")


def _single_line(s: str) -> str:
    return " ".join(s.splitlines())


def format_notification(author: str, body: str, when: datetime) -> NotificationMail:
    timestamp = when.strftime("%Y-%m-%d %H:%M:%S %Z").strip()
    subject = f"New message from {_single_line(author)}"
    text = f"{author} posted a new message at {timestamp}:\n\n{body}\n"
    html = (
        f"<p><strong>{escape_html(author)}</strong> posted a new message at "
        f"{escape_html(timestamp)}:</p>"
        f"<p>{escape_html(body).replace(chr(10), '<br>')}</p>"
    )
    return NotificationMail(subject=subject, text=text, html=html)
