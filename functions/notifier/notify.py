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
"""Handles a newly created message document by emailing a notification."""

from datetime import datetime, timezone
from typing import List, Optional

from firebase_functions import logger

from notifier.mail_format import format_notification
from notifier.transport import MailTransport, OutgoingMail
from shared.constants import ANONYMOUS_AUTHOR

NOTIFICATION_SENDER_NAME = "Easy Chat"


def parse_recipients(value: Optional[str]) -> List[str]:
    return [r.strip() for r in (value or "").split(",") if r.strip()]


def send_new_message_notification(
    snapshot,
    *,
    message_id: Optional[str],
    transport: MailTransport,
    sender: str,
    bcc: List[str],
) -> bool:
    """
    Emails a notification for one created message document.

    Returns True if a mail was handed to the transport. A missing snapshot or
    a transport failure is logged and never raised, so the trigger is not
    retried.
    """
    if not snapshot:
        logger.warn("[notify_new_message] No snapshot received", msg_id=message_id)
        return False

    try:
        data = snapshot.to_dict() or {}
        author = data.get("author") or ANONYMOUS_AUTHOR
        body = data.get("body") or ""
        when = data.get("createdAt") or datetime.now(timezone.utc)

        notification = format_notification(author, body, when)
        transport.send(
            OutgoingMail(
                sender=f"{NOTIFICATION_SENDER_NAME} <{sender}>",
                subject=notification.subject,
                text=notification.text,
                html=notification.html,
                bcc=bcc or [sender],
            )
        )
        logger.info(
            "[notify_new_message] mail sent", msg_id=message_id, bcc=bcc or [sender]
        )
        return True
    except Exception as e:
        logger.error(f"[notify_new_message] failed: {e}", msg_id=message_id)
        return False
