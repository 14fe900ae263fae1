# =============================================================================
# lib/templates.py - HTML Templates
# =============================================================================
# Transactional email bodies and the page shown after clicking an approval
# link. Each render_* function returns (subject, html) for emails, or html
# for pages. Anything a user typed is escaped before it is interpolated.
# =============================================================================

from html import escape

BRAND = "Digital Photo"
PRIMARY = "#4f46e5"
SUCCESS = "#059669"
DANGER = "#dc2626"


def _layout(heading: str, body: str, color: str = PRIMARY) -> str:
    """Wrap email content in the shared card layout."""
    return f"""<!DOCTYPE html>
<html>
<body style="font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; line-height: 1.6; color: #1a1a2e; margin: 0; padding: 0; background-color: #f8fafc;">
  <div style="max-width: 560px; margin: 0 auto; padding: 40px 20px;">
    <div style="background: white; border-radius: 16px; padding: 40px; box-shadow: 0 4px 6px rgba(0, 0, 0, 0.05);">
      <h1 style="color: {color}; margin: 0 0 24px; font-size: 24px; text-align: center;">{heading}</h1>
      {body}
    </div>
  </div>
</body>
</html>"""


def _button(href: str, label: str) -> str:
    return (
        f'<div style="text-align: center; margin: 32px 0;">'
        f'<a href="{escape(href, quote=True)}" style="display: inline-block; '
        f'background: linear-gradient(135deg, #4f46e5 0%, #7c3aed 100%); color: white; '
        f'padding: 16px 40px; text-decoration: none; border-radius: 10px; font-weight: 600;">'
        f"{label}</a></div>"
    )


def _code_block(code: str) -> str:
    return (
        f'<div style="text-align: center; margin: 24px 0;">'
        f'<span style="display: inline-block; background: {PRIMARY}; color: white; '
        f'padding: 20px 40px; font-size: 32px; font-weight: 700; letter-spacing: 8px; '
        f'border-radius: 12px;">{escape(code)}</span></div>'
    )


# =============================================================================
# Account Emails
# =============================================================================

def render_new_user_alert(email: str, provider: str, registered_at: str) -> tuple[str, str]:
    body = (
        f'<p style="margin: 0; font-size: 14px; color: #64748b;">Email Address:</p>'
        f'<p style="margin: 4px 0 16px; font-size: 18px; font-weight: 600;">{escape(email)}</p>'
        f"<p>Signed up with: {escape(provider)}</p>"
        f'<p style="color: #64748b; font-size: 14px;">Registered at: {escape(registered_at)}</p>'
        f"<p>Approve or reject this account from the admin panel.</p>"
    )
    return f"New User Registered - {BRAND}", _layout("New User Registered", body)


def render_email_verification(link: str) -> tuple[str, str]:
    body = (
        "<p>Hi there,</p>"
        "<p>Please confirm your email address to finish creating your account.</p>"
        f"{_button(link, 'Verify Email')}"
        '<p style="color: #64748b; font-size: 14px;">After verifying, an admin will review your account.</p>'
    )
    return f"Verify Your Email - {BRAND}", _layout("Verify Your Email", body)


def render_login_code(code: str, minutes: int) -> tuple[str, str]:
    body = (
        '<p style="text-align: center;">Your login code is:</p>'
        f"{_code_block(code)}"
        f'<p style="text-align: center; color: #64748b;">This code expires in {minutes} minutes.</p>'
        '<p style="color: #94a3b8; font-size: 13px;">If you did not try to log in, you can ignore this email.</p>'
    )
    return f"Your Login Code - {BRAND}", _layout("Your Login Code", body)


def render_password_reset(link: str, minutes: int) -> tuple[str, str]:
    body = (
        "<p>Hi there,</p>"
        "<p>We received a request to reset your password. Click the button below to create a new password:</p>"
        f"{_button(link, 'Reset Password')}"
        f'<p style="text-align: center; color: #64748b; font-size: 14px;">This link expires in {minutes} minutes.</p>'
        '<p style="color: #94a3b8; font-size: 13px;">If you didn\'t request this, you can safely ignore this email.</p>'
    )
    return f"Reset Your Password - {BRAND}", _layout("Reset Your Password", body)


def render_account_approved(login_link: str) -> tuple[str, str]:
    body = (
        "<p>Hi there,</p>"
        "<p>Your account has been approved. You can now log in and request your photos.</p>"
        f"{_button(login_link, 'Log In')}"
    )
    return f"Account Approved - {BRAND}", _layout("Account Approved", body, SUCCESS)


# =============================================================================
# Order Emails
# =============================================================================

def render_payment_request(
    user_email: str,
    order_id: str,
    approval_link: str,
    photos_link: str | None = None,
) -> tuple[str, str]:
    photos = f"<p>{_button(photos_link, 'View Photos')}</p>" if photos_link else ""
    body = (
        f"<p><strong>User:</strong> {escape(user_email)}</p>"
        f"<p><strong>Order:</strong> {escape(str(order_id))}</p>"
        f"{photos}"
        f"{_button(approval_link, 'Approve Payment')}"
    )
    return f"Payment Approval - {user_email}", _layout("Payment Approval Request", body)


def render_payment_approved(code: str, dashboard_link: str) -> tuple[str, str]:
    body = (
        "<p>Great news! Your payment has been approved.</p>"
        '<p style="text-align: center;">Your verification code is:</p>'
        f"{_code_block(code)}"
        '<p style="text-align: center; color: #64748b;">Use this code on your dashboard to request your digital photo once it is ready.</p>'
        f"{_button(dashboard_link, 'Go to Dashboard')}"
    )
    return f"Payment Approved - {BRAND}", _layout("Payment Approved!", body, SUCCESS)


def render_ready_for_pickup(pickup_instructions: str | None, dashboard_link: str) -> tuple[str, str]:
    if pickup_instructions:
        instructions = (
            '<div style="background: #f0fdf4; border-left: 4px solid #059669; padding: 16px; margin: 24px 0;">'
            f'<p style="margin: 0; white-space: pre-line;">{escape(pickup_instructions)}</p></div>'
        )
    else:
        instructions = "<p>Please check your dashboard or contact us on WhatsApp for pickup details.</p>"
    body = (
        "<p>Hi there,</p>"
        "<p>Your photo order is ready for pickup.</p>"
        f"{instructions}"
        f"{_button(dashboard_link, 'Go to Dashboard')}"
    )
    return f"Your Order Is Ready - {BRAND}", _layout("Ready for Pickup", body, SUCCESS)


def render_photo_download(download_link: str, code: str) -> tuple[str, str]:
    body = (
        "<p>Hi there,</p>"
        "<p>Great news! Your digital photo has been processed and is ready for download.</p>"
        f"{_button(download_link, 'Download Photo')}"
        '<div style="background: #fef3c7; border-left: 4px solid #f59e0b; padding: 16px; margin: 24px 0;">'
        "<strong>Important:</strong> Please download your photo within 24 hours.</div>"
        f'<p style="color: #64748b; font-size: 14px;"><strong>Your Code:</strong> {escape(code)}</p>'
    )
    return "Your Digital Photo - Download Link", _layout("Your Photo is Ready!", body)


def render_broadcast(subject: str, message: str) -> tuple[str, str]:
    body = f'<p style="white-space: pre-line;">{escape(message)}</p>'
    return subject, _layout(escape(subject), body)


# =============================================================================
# Pages
# =============================================================================

def render_result_page(title: str, message_html: str, success: bool) -> str:
    """
    Standalone page returned by the approval link.

    `message_html` is trusted markup built by the caller; escape any user
    data before passing it in.
    """
    color = SUCCESS if success else DANGER
    return f"""<!DOCTYPE html>
<html>
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>{escape(title)} - {BRAND}</title>
  <style>
    body {{ font-family: system-ui, sans-serif; background: #f8fafc; color: #1e293b; display: flex; align-items: center; justify-content: center; min-height: 100vh; margin: 0; padding: 20px; }}
    .card {{ background: #ffffff; padding: 40px; border-radius: 16px; text-align: center; max-width: 500px; box-shadow: 0 4px 6px rgba(0,0,0,0.1); }}
    h1 {{ color: {color}; }}
    a {{ color: {PRIMARY}; }}
  </style>
</head>
<body>
  <div class="card">
    <h1>{escape(title)}</h1>
    <p>{message_html}</p>
  </div>
</body>
</html>"""
