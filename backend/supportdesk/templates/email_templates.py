"""
Email Templates - HTML bodies for outbound support email

Table-based layout so the messages render the same in Outlook, Gmail and
Apple Mail. Customer-provided text is HTML-escaped before it is embedded.
"""
import html
from enum import Enum
from typing import Any, Dict, Optional


class EmailTemplateKey(str, Enum):
    """Available email template types"""
    TICKET_REPLY = "TICKET_REPLY"
    TICKET_ESCALATED = "TICKET_ESCALATED"


# =============================================================================
# Base Template Wrapper
# =============================================================================

def get_base_template(
    content: str,
    action_button_text: Optional[str] = None,
    action_button_url: Optional[str] = None,
    accent_color: str = "#2563EB"  # Blue-600
) -> str:
    """Wrap content in the common header/footer layout"""

    button_html = ""
    if action_button_text and action_button_url:
        button_html = f'''
        <table role="presentation" cellspacing="0" cellpadding="0" border="0" width="100%" style="margin: 28px 0;">
            <tr>
                <td align="center">
                    <a href="{action_button_url}"
                       style="display: inline-block;
                              background-color: {accent_color};
                              color: #ffffff;
                              text-decoration: none;
                              padding: 12px 28px;
                              border-radius: 6px;
                              font-weight: 600;
                              font-size: 14px;
                              font-family: Arial, sans-serif;">
                        {action_button_text}
                    </a>
                </td>
            </tr>
        </table>
        '''

    return f'''
<!DOCTYPE html PUBLIC "-//W3C//DTD XHTML 1.0 Transitional//EN" "http://www.w3.org/TR/xhtml1/DTD/xhtml1-transitional.dtd">
<html xmlns="http://www.w3.org/1999/xhtml">
<head>
    <meta http-equiv="Content-Type" content="text/html; charset=UTF-8" />
    <meta name="viewport" content="width=device-width, initial-scale=1.0" />
    <title>Customer Support</title>
    <style type="text/css">
        body {{margin: 0; padding: 0; -webkit-text-size-adjust: 100%; -ms-text-size-adjust: 100%;}}
        table {{border-collapse: collapse;}}
    </style>
</head>
<body style="margin: 0; padding: 0; background-color: #F8FAFC; font-family: Arial, Helvetica, sans-serif;">
    <table role="presentation" cellspacing="0" cellpadding="0" border="0" width="100%" style="background-color: #F8FAFC;">
        <tr>
            <td style="padding: 32px 20px;">
                <table role="presentation" cellspacing="0" cellpadding="0" border="0" width="600" align="center" style="margin: 0 auto; max-width: 600px; background-color: #ffffff;">
                    <tr>
                        <td style="height: 4px; background-color: {accent_color};"></td>
                    </tr>
                    <tr>
                        <td style="padding: 32px 40px 40px 40px;">
                            {content}
                            {button_html}
                        </td>
                    </tr>
                </table>
                <p style="margin: 16px 0 0 0; text-align: center; color: #9CA3AF; font-size: 11px; font-family: Arial, sans-serif;">
                    This message was sent by the customer support desk.
                </p>
            </td>
        </tr>
    </table>
</body>
</html>
'''


def get_info_card(ticket_number: str, subject: str, additional_fields: Optional[Dict[str, str]] = None) -> str:
    """Ticket detail card"""
    rows = {"Ticket": ticket_number, "Subject": subject}
    rows.update(additional_fields or {})

    rows_html = ""
    for label, value in rows.items():
        rows_html += f'''
        <tr>
            <td style="padding: 8px 16px; color: #6B7280; font-size: 13px; border-bottom: 1px solid #E5E7EB; width: 120px; font-family: Arial, sans-serif;">{label}</td>
            <td style="padding: 8px 16px; color: #111827; font-size: 13px; font-weight: bold; border-bottom: 1px solid #E5E7EB; font-family: Arial, sans-serif;">{html.escape(str(value))}</td>
        </tr>
        '''

    return f'''
    <table role="presentation" cellspacing="0" cellpadding="0" border="0" width="100%" style="margin: 24px 0; border: 1px solid #E5E7EB; background-color: #F9FAFB;">
        {rows_html}
    </table>
    '''


def text_to_html(text: str) -> str:
    """Escape plain text and keep its line breaks"""
    return html.escape(text or "").replace("\n", "<br>")


# =============================================================================
# Individual Templates
# =============================================================================

def get_ticket_reply_template(payload: Dict[str, Any], app_url: str = "") -> Dict[str, str]:
    """Template: agent reply to the customer"""
    subject = payload.get("subject", "")
    agent_name = payload.get("agent_name") or "Support Team"
    body_html = payload.get("html") or text_to_html(payload.get("content", ""))

    content = f'''
    <p style="margin: 0 0 16px 0; color: #111827; font-size: 15px; line-height: 1.6; font-family: Arial, sans-serif;">
        {body_html}
    </p>
    <p style="margin: 24px 0 0 0; color: #4B5563; font-size: 14px; font-family: Arial, sans-serif;">
        Best regards,<br>{html.escape(agent_name)}
    </p>
    '''

    return {
        "subject": f"Re: {subject}",
        "body": get_base_template(content=content)
    }


def get_ticket_escalated_template(payload: Dict[str, Any], app_url: str = "") -> Dict[str, str]:
    """Template: escalation notice to management"""
    ticket_id = payload.get("ticket_id", "")
    ticket_number = payload.get("ticket_number") or ticket_id
    subject = payload.get("subject", "")

    info_card = get_info_card(
        ticket_number=ticket_number,
        subject=subject,
        additional_fields={
            "Priority": payload.get("priority", ""),
            "Channel": payload.get("channel", ""),
            "Customer": payload.get("customer_name") or "Unknown",
        }
    )

    content = f'''
    <h1 style="margin: 0 0 8px 0; font-size: 22px; font-weight: bold; color: #111827; font-family: Arial, sans-serif;">
        Ticket Escalated
    </h1>
    <p style="margin: 0; color: #6B7280; font-size: 15px; font-family: Arial, sans-serif;">
        An automation rule escalated this ticket and asked for management attention.
    </p>
    {info_card}
    '''

    button_url = f"{app_url}/tickets/{ticket_id}" if app_url and ticket_id else None

    return {
        "subject": f"[Escalated] {ticket_number}: {subject}",
        "body": get_base_template(
            content=content,
            action_button_text="Open Ticket" if button_url else None,
            action_button_url=button_url,
            accent_color="#DC2626"  # Red for escalation
        )
    }


TEMPLATE_REGISTRY = {
    EmailTemplateKey.TICKET_REPLY: get_ticket_reply_template,
    EmailTemplateKey.TICKET_ESCALATED: get_ticket_escalated_template,
}


def get_email_template(
    template_key: str,
    payload: Dict[str, Any],
    app_url: str = ""
) -> Dict[str, str]:
    """
    Get rendered email template by key

    Args:
        template_key: EmailTemplateKey value
        payload: Data to populate the template
        app_url: Base URL for action buttons

    Returns:
        Dict with 'subject' and 'body' keys
    """
    try:
        template_func = TEMPLATE_REGISTRY.get(EmailTemplateKey(template_key))
    except ValueError:
        template_func = None

    if template_func:
        return template_func(payload, app_url)

    return {
        "subject": f"[Notification] {payload.get('subject', 'Update')}",
        "body": get_base_template(
            content="<p style='font-family: Arial, sans-serif;'>There is an update on your support request.</p>"
        )
    }
