import aiosmtplib
from email.message import EmailMessage
from typing import List, Optional
from servicehub.common.config import settings

async def send_email(subject: str, body: str, recipients: List[str], html_body: Optional[str] = None) -> None:
    """
    Sends an email asynchronously using aiosmtplib.

    Args:
        subject (str): The subject of the email.
        body (str): The plain text content of the email.
        recipients (List[str]): List of recipient email addresses.
        html_body (str, optional): HTML alternative of the body.
    """
    message = EmailMessage()
    message["From"] = settings.EMAIL_SENDER
    message["To"] = ", ".join(recipients)
    message["Subject"] = subject
    message.set_content(body)

    # If HTML content is provided, add it as an alternative.
    if html_body:
        message.add_alternative(html_body, subtype="html")

    await aiosmtplib.send(
        message,
        hostname=settings.SMTP_HOST,
        port=settings.SMTP_PORT,
        username=settings.SMTP_USER or None,
        password=settings.SMTP_PASSWORD or None,
        start_tls=True,
    )


async def send_notification_email(recipient_email: str, first_name: Optional[str], title: str, message: str) -> None:
    """
    Sends a booking notification by email, mirroring the in-app notification text.

    Args:
        recipient_email (str): The email address of the recipient.
        first_name (str): The first name of the recipient, if known.
        title (str): Notification title, used as the subject.
        message (str): Notification body.
    """
    bookings_link = f"{settings.FRONTEND_URL}/bookings"
    greeting = f"Dear {first_name}," if first_name else "Hello,"

    email_content = f"""
{greeting}

{message}

View your bookings:
{bookings_link}

Best regards,
The ServiceHub Team
"""

    html_content = f"""
<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
</head>
<body style="font-family: 'Segoe UI', Tahoma, Geneva, Verdana, sans-serif; line-height: 1.6; color: #333; max-width: 600px; margin: 0 auto; padding: 20px;">
    <div style="background: #2563eb; padding: 24px; text-align: center; border-radius: 12px 12px 0 0;">
        <h1 style="color: white; margin: 0; font-size: 24px;">{title}</h1>
    </div>
    <div style="background: #ffffff; padding: 30px; border: 1px solid #e5e7eb; border-top: none; border-radius: 0 0 12px 12px;">
        <p style="font-size: 16px;">{greeting}</p>
        <p style="font-size: 16px;">{message}</p>

        <div style="text-align: center; margin: 30px 0;">
            <a href="{bookings_link}" style="display: inline-block; background: #2563eb; color: white; text-decoration: none; padding: 14px 32px; border-radius: 8px; font-weight: 600; font-size: 16px;">View Bookings</a>
        </div>

        <hr style="border: none; border-top: 1px solid #e5e7eb; margin: 24px 0;">
        <p style="font-size: 12px; color: #9ca3af; text-align: center;">
            You are receiving this email because you have a booking on ServiceHub.
        </p>
    </div>
</body>
</html>
"""

    await send_email(title, email_content, [recipient_email], html_body=html_content)
