"""Built-in notification email templates.

Each entry maps a notification type to its subject, plain text and HTML
Jinja2 templates.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class EmailTemplate:
    subject: str
    text_body: str
    html_body: str


EMAIL_TEMPLATES: dict[str, EmailTemplate] = {
    "email_verification": EmailTemplate(
        subject="Verify your email address",
        text_body=(
            "Welcome to {{ app_name }}.\n\n"
            "Confirm your email address by opening the link below:\n"
            "{{ action_url }}\n\n"
            "The link expires in {{ expires_hours }} hours."
        ),
        html_body=(
            "<p>Welcome to {{ app_name }}.</p>"
            '<p><a href="{{ action_url }}">Confirm your email address</a></p>'
            "<p>The link expires in {{ expires_hours }} hours.</p>"
        ),
    ),
    "password_reset": EmailTemplate(
        subject="Reset your password",
        text_body=(
            "A password reset was requested for your {{ app_name }} account.\n\n"
            "Reset it here:\n{{ action_url }}\n\n"
            "The link expires in {{ expires_hours }} hours. "
            "If you did not request this, ignore this email."
        ),
        html_body=(
            "<p>A password reset was requested for your {{ app_name }} account.</p>"
            '<p><a href="{{ action_url }}">Reset your password</a></p>'
            "<p>The link expires in {{ expires_hours }} hours. "
            "If you did not request this, ignore this email.</p>"
        ),
    ),
    "password_reset_success": EmailTemplate(
        subject="Your password was reset",
        text_body=(
            "The password of your {{ app_name }} account was reset and every "
            "device was signed out. If this was not you, contact support."
        ),
        html_body=(
            "<p>The password of your {{ app_name }} account was reset and every "
            "device was signed out. If this was not you, contact support.</p>"
        ),
    ),
    "password_changed": EmailTemplate(
        subject="Your password was changed",
        text_body=(
            "The password of your {{ app_name }} account was changed and every "
            "device was signed out. If this was not you, reset your password now."
        ),
        html_body=(
            "<p>The password of your {{ app_name }} account was changed and every "
            "device was signed out. If this was not you, reset your password now.</p>"
        ),
    ),
    "account_recovery": EmailTemplate(
        subject="Recover your account",
        text_body=(
            "Account recovery was requested for your {{ app_name }} account.\n\n"
            "Continue here:\n{{ action_url }}\n\n"
            "The link expires in {{ expires_hours }} hours."
        ),
        html_body=(
            "<p>Account recovery was requested for your {{ app_name }} account.</p>"
            '<p><a href="{{ action_url }}">Recover your account</a></p>'
            "<p>The link expires in {{ expires_hours }} hours.</p>"
        ),
    ),
    "account_recovery_unknown": EmailTemplate(
        subject="Account recovery request",
        text_body=(
            "Someone asked to recover a {{ app_name }} account for this address, "
            "but no account exists for it. If this was you, you can sign up instead."
        ),
        html_body=(
            "<p>Someone asked to recover a {{ app_name }} account for this address, "
            "but no account exists for it. If this was you, you can sign up instead.</p>"
        ),
    ),
    "account_recovery_success": EmailTemplate(
        subject="Your account was recovered",
        text_body=(
            "Your {{ app_name }} account was recovered with a new password and every "
            "device was signed out. If this was not you, contact support."
        ),
        html_body=(
            "<p>Your {{ app_name }} account was recovered with a new password and every "
            "device was signed out. If this was not you, contact support.</p>"
        ),
    ),
}
