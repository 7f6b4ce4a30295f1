"""
Outgoing email for the groups app.

Senders raise on failure. Callers decide whether a failed send matters.
"""

from django.conf import settings
from django.core.mail import EmailMultiAlternatives
from django.template.loader import render_to_string


def send_invitation_email(*, to: str, group_name: str, inviter_name: str, invite_url: str) -> None:
    """
    Send the group invitation email with HTML and plain-text bodies.

    Args:
        to: Recipient address
        group_name: Name of the group the recipient is invited to
        inviter_name: Display name of the inviting member
        invite_url: Acceptance link carrying the raw token
    """
    context = {
        'group_name': group_name,
        'inviter_name': inviter_name,
        'invite_url': invite_url,
        'ttl_days': settings.INVITATION_TTL_DAYS,
    }
    subject = f"{inviter_name} invited you to join {group_name}"
    text_body = render_to_string('groups/emails/invitation.txt', context)
    html_body = render_to_string('groups/emails/invitation.html', context)

    message = EmailMultiAlternatives(
        subject=subject,
        body=text_body,
        from_email=settings.DEFAULT_FROM_EMAIL,
        to=[to],
    )
    message.attach_alternative(html_body, 'text/html')
    message.send(fail_silently=False)
