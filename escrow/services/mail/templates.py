# escrow/services/mail/templates.py
"""
Email bodies for disclosure and reminder mail.

Each renderer returns (subject, html, text). Every interpolated value is
HTML-escaped in the html part.
"""

from datetime import datetime
from html import escape

from escrow.config import settings
from escrow.models.domain.escrow_domain import DecryptedCredential, DisclosurePackage, ShareReason

_REASON_LABELS = {
    ShareReason.MANUAL: "shared manually by the account owner",
    ShareReason.EMERGENCY: "shared as an emergency request by the account owner",
    ShareReason.INACTIVITY: "shared automatically after a period of inactivity",
}

_WRAPPER = (
    '<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; '
    'background-color: #f9fafb; padding: 20px;">'
    '<div style="background-color: white; border-radius: 16px; padding: 40px;">'
    "{body}"
    "</div></div>"
)


def _format_date(value: datetime | None) -> str:
    return value.strftime("%B %d, %Y") if value else "unknown"


def _credential_rows(credential: DecryptedCredential) -> list[tuple[str, str]]:
    rows = [
        ("Username", credential.username),
        ("Password", credential.password),
    ]
    if credential.transaction_pin:
        rows.append(("Transaction PIN", credential.transaction_pin))
    if credential.description:
        rows.append(("Description", credential.description))
    if credential.category:
        rows.append(("Category", credential.category))
    if credential.validity:
        rows.append(("Valid until", _format_date(credential.validity)))
    if credential.notes:
        rows.append(("Notes", credential.notes))
    return rows


def _credential_html(credential: DecryptedCredential) -> str:
    cells = "".join(
        f'<tr><td style="color: #6b7280; padding: 4px 12px 4px 0;">{escape(label)}</td>'
        f'<td style="color: #1f2937; font-family: monospace;">{escape(value)}</td></tr>'
        for label, value in _credential_rows(credential)
    )
    return (
        '<div style="background-color: #f3f4f6; border-radius: 12px; padding: 16px; margin-bottom: 12px;">'
        f'<h3 style="color: #1f2937; margin: 0 0 8px 0;">{escape(credential.website_name)}</h3>'
        f"<table>{cells}</table>"
        "</div>"
    )


def _credential_text(credential: DecryptedCredential) -> str:
    lines = [credential.website_name]
    lines.extend(f"  {label}: {value}" for label, value in _credential_rows(credential))
    return "\n".join(lines)


def render_credential_disclosure(package: DisclosurePackage) -> tuple[str, str, str]:
    owner = package.user_name or "A MoneyManager user"
    count = len(package.credentials)
    reason = _REASON_LABELS.get(package.share_reason, "shared with you")

    subject = f"Emergency access: {owner} shared {count} password{'s' if count != 1 else ''} with you"

    inactivity_line = ""
    inactivity_text = ""
    if package.share_reason == ShareReason.INACTIVITY:
        last_seen = _format_date(package.last_check_in)
        inactivity_line = (
            '<p style="color: #b45309;">'
            f"{escape(owner)} has not checked in since {escape(last_seen)}."
            "</p>"
        )
        inactivity_text = f"{owner} has not checked in since {last_seen}.\n\n"

    body = (
        '<h1 style="color: #1f2937; font-size: 24px;">Emergency password share</h1>'
        f'<p style="color: #4b5563;">You are listed as an emergency contact for '
        f"<strong>{escape(owner)}</strong>. These credentials were {escape(reason)}.</p>"
        f"{inactivity_line}"
        + "".join(_credential_html(c) for c in package.credentials)
        + '<p style="color: #9ca3af; font-size: 12px;">'
        "Store these details somewhere safe and delete this email once you have done so."
        "</p>"
    )

    text = (
        "Emergency password share\n\n"
        f"You are listed as an emergency contact for {owner}. "
        f"These credentials were {reason}.\n\n"
        f"{inactivity_text}"
        + "\n\n".join(_credential_text(c) for c in package.credentials)
        + "\n\nStore these details somewhere safe and delete this email once you have done so.\n"
    )

    return subject, _WRAPPER.format(body=body), text


def render_inactivity_reminder(
    user_name: str | None,
    inactive_days: int | None,
    last_check_in: datetime | None,
    days_until_disclosure: int,
) -> tuple[str, str, str]:
    name = (user_name or "there").split(" ")[0]
    checkin_url = f"{settings.APP_BASE_URL.rstrip('/')}/checkin"

    if inactive_days is None:
        status = "You have not checked in yet."
        subject = "Please check in to keep your emergency access paused"
    else:
        status = f"You have not checked in for {inactive_days} days (last check-in {_format_date(last_check_in)})."
        subject = f"You've been inactive for {inactive_days} days"

    consequence = (
        f"If you do not check in within {days_until_disclosure} days, your stored passwords "
        "will be shared with your emergency contacts."
    )

    body = (
        f'<h2 style="color: #1f2937;">Hi {escape(name)},</h2>'
        f'<p style="color: #4b5563;">{escape(status)}</p>'
        f'<p style="color: #4b5563;">{escape(consequence)}</p>'
        '<div style="text-align: center; margin: 30px 0;">'
        f'<a href="{escape(checkin_url)}" style="background-color: #10b981; color: white; '
        'padding: 14px 28px; text-decoration: none; border-radius: 8px;">Check in now</a>'
        "</div>"
    )

    text = f"Hi {name},\n\n{status}\n\n{consequence}\n\nCheck in now: {checkin_url}\n"

    return subject, _WRAPPER.format(body=body), text
