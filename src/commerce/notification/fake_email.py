"""Fake email adapter: records messages in memory for tests and local runs."""

from uuid import uuid4

from commerce.errors import UpstreamError
from commerce.notification.port import EmailPort


class FakeEmailAdapter(EmailPort):
    def __init__(self):
        self.sent_emails: list[dict] = []
        self.attempts: list[dict] = []
        self.should_succeed = True
        self.failure_reason = "Email delivery failed"
        self.unreachable = False
        self.failing_recipients: set[str] = set()

    def configure(
        self,
        should_succeed: bool = True,
        failure_reason: str = "Email delivery failed",
        unreachable: bool = False,
    ):
        """Make every send fail (provider rejects) or raise (provider unreachable)."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason
        self.unreachable = unreachable

    def fail_for(self, *recipients: str):
        """Reject sends to specific addresses only."""
        self.failing_recipients.update(recipients)

    def send(self, to: str, subject: str, body: str) -> dict:
        self.attempts.append({"to": to, "subject": subject})

        if self.unreachable:
            raise UpstreamError("email", "timed out")

        if not self.should_succeed or to in self.failing_recipients:
            return {"message_id": None, "status": "failed", "error": self.failure_reason}

        message_id = f"email-{uuid4().hex[:12]}"
        self.sent_emails.append({"message_id": message_id, "to": to, "subject": subject, "body": body})
        return {"message_id": message_id, "status": "sent"}

    def sent_to(self, to: str) -> list[dict]:
        return [email for email in self.sent_emails if email["to"] == to]

    def reset(self):
        self.sent_emails.clear()
        self.attempts.clear()
        self.failing_recipients.clear()
        self.should_succeed = True
        self.failure_reason = "Email delivery failed"
        self.unreachable = False
