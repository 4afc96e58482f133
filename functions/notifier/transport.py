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
"""Mail transports: Gmail over SMTP and an in-memory test double."""

import smtplib
from dataclasses import dataclass, field
from email.message import EmailMessage
from typing import List, Optional, Protocol

GMAIL_SMTP_HOST = "smtp.gmail.com"
GMAIL_SMTP_PORT = 465


@dataclass(frozen=True)
class OutgoingMail:
    sender: str
    subject: str
    text: str
    html: Optional[str] = None
    to: List[str] = field(default_factory=list)
    bcc: List[str] = field(default_factory=list)

    def to_email_message(self) -> EmailMessage:
        message = EmailMessage()
        message["From"] = self.sender
        if self.to:
            message["To"] = ", ".join(self.to)
        message["Subject"] = self.subject
        message.set_content(self.text)
        if self.html:
            message.add_alternative(self.html, subtype="html")
        return message

    @property
    def recipients(self) -> List[str]:
        return [*self.to, *self.bcc]


class MailTransport(Protocol):
    def send(self, mail: OutgoingMail) -> None:
        ...


@dataclass
class InMemoryMailTransport:
    """Test double that records sent mail."""

    sent: List[OutgoingMail] = field(default_factory=list)

    def send(self, mail: OutgoingMail) -> None:
        self.sent.append(mail)


@dataclass
class GmailSmtpTransport:
    """Sends through Gmail SMTP with an app password. Opens a connection per send."""

    user: str
    password: str
    host: str = GMAIL_SMTP_HOST
    port: int = GMAIL_SMTP_PORT

    def send(self, mail: OutgoingMail) -> None:
        # Bcc recipients go in the envelope only, never in the headers.
        with smtplib.SMTP_SSL(self.host, self.port) as smtp:
            smtp.login(self.user, self.password)
            smtp.send_message(
                mail.to_email_message(),
                from_addr=self.user,
                to_addrs=mail.recipients,
            )
