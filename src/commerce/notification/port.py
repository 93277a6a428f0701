"""Email port: abstract interface for transactional email delivery."""

from abc import ABC, abstractmethod


class EmailPort(ABC):
    @abstractmethod
    def send(self, to: str, subject: str, body: str) -> dict:
        """Send one message.

        Returns:
            dict with keys: message_id, status ("sent" or "failed"), error (optional)

        Raises:
            UpstreamError: the provider could not be reached within the timeout.
        """
        ...
