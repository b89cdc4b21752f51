"""
Console message sender adapter - Implements MessageSender protocol.

This module provides a console-based implementation of the domain's
message delivery port, logging messages for development purposes.
"""

import logging

from src.domain.values import IdentityAddress

logger = logging.getLogger(__name__)


class ConsoleMessageSender:
    """
    Implements MessageSender protocol via console logging.

    Uses structural subtyping - no explicit inheritance from Protocol.
    For demo/development purposes - the one-time code is visible in the logs.
    """

    def send(self, recipient: IdentityAddress, subject: str, body: str) -> None:
        """
        Log the message to console (simulates email delivery).

        In production, this would be replaced with an SMTP adapter.
        Logged at INFO level to be visible in docker-compose logs.

        Args:
            recipient: Validated recipient address
            subject: Message subject
            body: Message body
        """
        logger.info("[%s] To: %s Body: %s", subject, recipient, body)
