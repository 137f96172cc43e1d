"""
Email notifications for the approval workflow.
Uses Flask-Mail for SMTP delivery. Failures are logged and never raised:
an approval decision must not be rolled back because an email bounced.
"""
import logging
from datetime import datetime
from typing import Iterable, Optional, Tuple

from flask import current_app
from flask_mail import Mail, Message
from markupsafe import escape

from rera_quotes.utils.formatters import money_in, percent, date_in, approval_level_label

logger = logging.getLogger(__name__)

mail = Mail()


def init_mail(app):
    """Initialize Flask-Mail with app."""
    mail.init_app(app)


def _mail_enabled() -> bool:
    """
    Check if mail is configured.
    MAIL_SUPPRESS_SEND is honoured by Flask-Mail itself (messages are
    recorded but not delivered), so it does not disable the pipeline here.
    """
    cfg = current_app.config
    return bool(cfg.get("MAIL_SERVER") and cfg.get("MAIL_DEFAULT_SENDER"))


def _layout(title: str, header_color: str, body: str) -> str:
    business_name = escape(current_app.config.get('BUSINESS_NAME', ''))
    return f"""
    <!DOCTYPE html>
    <html>
    <head>
        <meta charset="UTF-8">
        <title>{escape(title)}</title>
        <style>
            body {{ font-family: Arial, sans-serif; line-height: 1.6; color: #333; }}
            .container {{ max-width: 600px; margin: 0 auto; padding: 20px; }}
            .header {{ background: {header_color}; color: #fff; padding: 20px; text-align: center; }}
            .content {{ padding: 20px; background: #f9fafb; }}
            .details {{ background: #fff; padding: 15px; margin: 15px 0; border-radius: 5px; }}
            .footer {{ text-align: center; padding: 20px; color: #6b7280; font-size: 14px; }}
            .button {{ background: #2563eb; color: #fff !important; padding: 10px 20px; text-decoration: none; border-radius: 5px; }}
        </style>
    </head>
    <body>
        <div class="container">
            <div class="header"><h1>{escape(title)}</h1></div>
            <div class="content">{body}</div>
            <div class="footer">
                <p>{business_name}</p>
                <p>This is an automated notification. Please do not reply to this email.</p>
            </div>
        </div>
    </body>
    </html>
    """


def build_decision_email(quotation, decision: str, approver_name: str, comments: Optional[str] = None) -> Tuple[str, str]:
    """
    Subject and HTML body of the email sent to the quotation's creator.

    Args:
        quotation: Quotation with creator loaded
        decision: 'approved' or 'rejected'
        approver_name: Display name of the approver
        comments: Optional approver comments
    """
    is_approved = decision == 'approved'
    subject = f"Quotation {quotation.quotation_number} {'Approved' if is_approved else 'Rejected'}"
    site_url = current_app.config.get('SITE_URL', '').rstrip('/')
    creator_name = quotation.creator.display_name if quotation.creator else ''

    comments_html = ''
    if comments:
        comments_html = f'<div class="details"><h3>Comments:</h3><p>{escape(comments)}</p></div>'

    next_step = (
        "You can now download the approved quotation PDF and send it to your client."
        if is_approved
        else "Please review the comments and make necessary adjustments before resubmitting."
    )

    body = f"""
        <p>Dear {escape(creator_name)},</p>
        <p>Your quotation has been <strong>{escape(decision)}</strong> by {escape(approver_name)}.</p>
        <div class="details">
            <h3>Quotation Details:</h3>
            <p><strong>Quotation Number:</strong> {escape(quotation.quotation_number)}</p>
            <p><strong>Total Amount:</strong> {money_in(quotation.total_amount)}</p>
            <p><strong>Discount Applied:</strong> {percent(quotation.total_discount_percentage)}</p>
            <p><strong>Status:</strong> {escape(decision.upper())}</p>
            <p><strong>Decided By:</strong> {escape(approver_name)}</p>
            <p><strong>Date:</strong> {date_in(datetime.now())}</p>
        </div>
        {comments_html}
        <p>{next_step}</p>
        <p><a class="button" href="{site_url}/quotations/{quotation.id}">View Quotation</a></p>
    """
    color = "#10b981" if is_approved else "#ef4444"
    return subject, _layout(subject, color, body)


def build_approval_request_email(quotation) -> Tuple[str, str]:
    """Subject and HTML body of the email sent to eligible approvers."""
    subject = f"Approval Required: Quotation {quotation.quotation_number}"
    site_url = current_app.config.get('SITE_URL', '').rstrip('/')
    creator_name = quotation.creator.display_name if quotation.creator else ''

    body = f"""
        <p><strong>Action Required:</strong> A quotation requires your approval due to discount threshold.</p>
        <div class="details">
            <h3>Quotation Details:</h3>
            <p><strong>Quotation Number:</strong> {escape(quotation.quotation_number)}</p>
            <p><strong>Created By:</strong> {escape(creator_name)}</p>
            <p><strong>Total Amount:</strong> {money_in(quotation.total_amount)}</p>
            <p><strong>Discount Applied:</strong> {percent(quotation.total_discount_percentage)}</p>
            <p><strong>Required Approval Level:</strong> {escape(approval_level_label(quotation.approval_level))}</p>
            <p><strong>Date:</strong> {date_in(datetime.now())}</p>
        </div>
        <p><a class="button" href="{site_url}/approvals/">Review &amp; Approve</a></p>
    """
    return subject, _layout(subject, "#f59e0b", body)


def send_approval_notification(quotation, decision: str, approver_name: str, comments: Optional[str] = None) -> bool:
    """
    Notify the quotation's creator of an approval decision.

    Returns:
        True if sent (or recorded), False on failure. Never raises.
    """
    try:
        to_email = quotation.creator.email if quotation.creator else None
        if not to_email:
            logger.warning(f"[EMAIL] Quotation {quotation.quotation_number} has no creator email, skipping")
            return False

        if not _mail_enabled():
            logger.warning(f"[MAIL DISABLED] Decision email skipped for {to_email}")
            return True

        subject, html = build_decision_email(quotation, decision, approver_name, comments)
        mail.send(Message(subject=subject, recipients=[to_email], html=html, charset='utf-8'))
        logger.info(f"[EMAIL] Sent {decision} notification for {quotation.quotation_number} to {to_email}")
        return True
    except Exception as e:
        logger.error(f"[EMAIL] Failed to send approval notification: {e}")
        return False


def send_approval_request_notification(quotation, approver_emails: Iterable[str]) -> bool:
    """
    Ask every eligible approver to review a quotation.

    Returns:
        True if sent (or recorded), False on failure. Never raises.
    """
    try:
        recipients = sorted({email for email in approver_emails if email})
        if not recipients:
            logger.warning(f"[EMAIL] No approvers found for {quotation.quotation_number}")
            return False

        if not _mail_enabled():
            logger.warning(f"[MAIL DISABLED] Approval request skipped for {quotation.quotation_number}")
            return True

        subject, html = build_approval_request_email(quotation)
        mail.send(Message(subject=subject, recipients=recipients, html=html, charset='utf-8'))
        logger.info(f"[EMAIL] Approval request for {quotation.quotation_number} sent to {len(recipients)} approver(s)")
        return True
    except Exception as e:
        logger.error(f"[EMAIL] Failed to send approval request: {e}")
        return False
