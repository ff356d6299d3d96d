"""Email client using Resend API."""

import html
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeoutError
from datetime import datetime

import resend

from src.rotation.core.config import get_settings
from src.rotation.core.logging import get_logger

logger = get_logger(__name__)

# Sends run in a thread pool so a slow API call can be cut off
_email_executor = ThreadPoolExecutor(max_workers=4, thread_name_prefix="email_sender")

_BODY_STYLE = (
    "font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; "
    "line-height: 1.6; color: #333; max-width: 600px; margin: 0 auto; padding: 20px;"
)
_BUTTON_STYLE = (
    "background-color: #2563eb; color: white; padding: 12px 24px; "
    "text-decoration: none; border-radius: 6px; display: inline-block; font-weight: 500;"
)
_MUTED_STYLE = "color: #666; font-size: 14px;"


def _deliver(to: str, subject: str, body: str, email_type: str) -> bool:
    """Send one email, returning False instead of raising on failure.

    Delivery is best-effort: without RESEND_API_KEY the email is only logged.
    """
    settings = get_settings()

    if not settings.resend_api_key:
        logger.warning("RESEND_API_KEY not set - email not sent", to=to, email_type=email_type)
        return True

    resend.api_key = settings.resend_api_key

    def _send() -> None:
        resend.Emails.send(
            {
                "from": settings.email_from,
                "to": [to],
                "subject": subject,
                "html": body,
            }
        )

    try:
        future = _email_executor.submit(_send)
        future.result(timeout=settings.email_send_timeout_seconds)
        logger.info("Email sent", to=to, email_type=email_type)
        return True
    except FuturesTimeoutError:
        logger.error(
            "Email send timed out",
            to=to,
            email_type=email_type,
            timeout=settings.email_send_timeout_seconds,
        )
        return False
    except Exception as e:
        logger.error("Failed to send email", to=to, email_type=email_type, error=str(e))
        return False


def send_invitation_email(
    to: str,
    developer_name: str,
    project_title: str,
    deadline: datetime | None,
    message: str | None = None,
) -> bool:
    """Tell a developer they have a new project invitation.

    Args:
        to: Recipient email address
        developer_name: Developer's display name
        project_title: Title of the project they were invited to
        deadline: Acceptance deadline (UTC), None for invitations that never expire
        message: Optional note from the client (manual invites)

    Returns:
        True if email was sent (or logged in dev mode), False on error
    """
    settings = get_settings()
    invitations_url = f"{settings.app_url}/invitations"
    return _deliver(
        to,
        f"New project invitation: {project_title}",
        _get_invitation_email_html(developer_name, project_title, deadline, message, invitations_url),
        "invitation",
    )


def send_acceptance_email(to: str, developer_name: str, project_title: str) -> bool:
    """Tell the client which developer accepted their project."""
    settings = get_settings()
    project_url = f"{settings.app_url}/projects"
    return _deliver(
        to,
        f"{developer_name} accepted {project_title}",
        _get_acceptance_email_html(developer_name, project_title, project_url),
        "acceptance",
    )


def _get_invitation_email_html(
    developer_name: str,
    project_title: str,
    deadline: datetime | None,
    message: str | None,
    invitations_url: str,
) -> str:
    safe_name = html.escape(developer_name)
    safe_title = html.escape(project_title)
    if deadline is None:
        deadline_line = "This invitation stays open until the project is taken."
    else:
        deadline_line = f"Please respond before {deadline:%Y-%m-%d %H:%M} UTC."
    message_block = ""
    if message:
        message_block = f'<blockquote style="{_MUTED_STYLE}">{html.escape(message)}</blockquote>'
    return f"""<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
</head>
<body style="{_BODY_STYLE}">
    <h1 style="color: #2563eb; margin-bottom: 24px;">New invitation</h1>
    <p>Hi {safe_name},</p>
    <p>You have been invited to work on <strong>{safe_title}</strong>.</p>
    {message_block}
    <p style="margin: 32px 0;">
        <a href="{invitations_url}" style="{_BUTTON_STYLE}">View Invitation</a>
    </p>
    <p style="{_MUTED_STYLE}">{deadline_line} The first developer to accept gets the project.</p>
</body>
</html>"""


def _get_acceptance_email_html(developer_name: str, project_title: str, project_url: str) -> str:
    safe_dev = html.escape(developer_name)
    safe_title = html.escape(project_title)
    return f"""<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
</head>
<body style="{_BODY_STYLE}">
    <h1 style="color: #2563eb; margin-bottom: 24px;">Your project has a developer</h1>
    <p><strong>{safe_dev}</strong> accepted <strong>{safe_title}</strong>.
    Their contact details are now visible on the project page.</p>
    <p style="margin: 32px 0;">
        <a href="{project_url}" style="{_BUTTON_STYLE}">Open Project</a>
    </p>
</body>
</html>"""
