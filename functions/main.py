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

# Cloud functions for Easy Chat - new message email notifications.
#
# This file containing Python cloud functions must be named main.py.
# See https://cloud.google.com/run/docs/write-functions#python for more info.

# Third-party library imports
from firebase_admin import initialize_app
from firebase_functions import logger, options, params
from firebase_functions.firestore_fn import (
    on_document_created,
    Event,
    DocumentSnapshot,
)

# Local application imports
from notifier import notify
from notifier.transport import GmailSmtpTransport
from shared.firebase_constants import MESSAGES_COLLECTION

# Plain parameter (.env): the Gmail address mail is sent from.
GMAIL_EMAIL = params.StringParam("GMAIL_EMAIL")
# Comma-separated Bcc recipients; defaults to the sender.
NOTIFY_BCC = params.StringParam("NOTIFY_BCC", default="")
# Secret Manager: Gmail app password.
#   firebase functions:secrets:set GMAIL_PASSWORD
GMAIL_PASSWORD = params.SecretParam("GMAIL_PASSWORD")

REGION = "asia-northeast1"
TIMEOUT_SECONDS = 30
MEMORY = options.MemoryOption.MB_256

initialize_app()


def _send_notification_for_event(event: Event[DocumentSnapshot | None]) -> bool:
    message_id = event.params.get("messageId")
    sender = GMAIL_EMAIL.value

    # Resolve the secret on every invocation; nothing is cached across runs.
    transport = GmailSmtpTransport(user=sender, password=GMAIL_PASSWORD.value)
    return notify.send_new_message_notification(
        event.data,
        message_id=message_id,
        transport=transport,
        sender=sender,
        bcc=notify.parse_recipients(NOTIFY_BCC.value),
    )


@on_document_created(
    document=MESSAGES_COLLECTION + "/{messageId}",
    region=REGION,
    timeout_sec=TIMEOUT_SECONDS,
    memory=MEMORY,
    secrets=[GMAIL_PASSWORD],
)
def notify_new_message(event: Event[DocumentSnapshot | None]) -> None:
    """
    Emails a notification when a document is created in `messages`.

    Failures are logged and swallowed; re-raise instead to let the platform
    retry the invocation.
    """
    sent = _send_notification_for_event(event)
    if not sent:
        logger.info("[notify_new_message] no mail sent", msg_id=event.params.get("messageId"))
