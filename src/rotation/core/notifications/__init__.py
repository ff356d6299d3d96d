"""Notification utilities - email."""

from src.rotation.core.notifications.email import (
    send_acceptance_email,
    send_invitation_email,
)

__all__ = [
    "send_acceptance_email",
    "send_invitation_email",
]
