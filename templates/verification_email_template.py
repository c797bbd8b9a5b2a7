"""
HTML and plaintext bodies for the login code email.
"""
from datetime import datetime


def render_verification_email(code: str, portal_name: str, expiry_minutes: int = 10) -> tuple[str, str, str]:
    """
    Build the login code email.

    Returns:
        (subject, html, text)
    """
    subject = f"Your {portal_name} Login Code"
    year = datetime.now().year

    text = f"""
{portal_name}

Your verification code is: {code}

Enter this code on the login page to access the portal.
This code will expire in {expiry_minutes} minutes. If you didn't request this code, please ignore this email.
"""

    # Table based layout renders consistently across Gmail/Outlook/Yahoo
    html = f"""
<!DOCTYPE html>
<html>
  <head>
    <meta http-equiv="Content-Type" content="text/html; charset=utf-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>Verification Code</title>
  </head>
  <body style="margin:0; padding:0; background-color:#f8fafc; font-family:Arial, sans-serif;">
    <div style="display:none; font-size:1px; color:#f8fafc; line-height:1px; max-height:0; max-width:0; opacity:0; overflow:hidden;">Your verification code is {code}.</div>
    <table role="presentation" cellpadding="0" cellspacing="0" border="0" width="100%" style="background-color:#f8fafc;">
      <tr>
        <td align="center" style="padding:40px 12px;">
          <table role="presentation" cellpadding="0" cellspacing="0" border="0" width="600" style="width:600px; max-width:600px; background-color:#ffffff; border-radius:12px;">
            <tr>
              <td align="center" style="padding:40px 40px 24px 40px; background-color:#667eea; border-top-left-radius:12px; border-top-right-radius:12px;">
                <div style="font-size:28px; color:#ffffff; font-weight:700;">{portal_name}</div>
              </td>
            </tr>
            <tr>
              <td style="padding:40px;">
                <p style="margin:0 0 24px 0; color:#1f2937; font-size:16px;">Your verification code is:</p>
                <div style="background:#f3f4f6; border:2px dashed #d1d5db; border-radius:8px; padding:24px; text-align:center;">
                  <div style="font-size:42px; font-weight:700; color:#667eea; letter-spacing:8px; font-family:'Courier New', monospace;">{code}</div>
                </div>
              </td>
            </tr>
            <tr>
              <td style="padding:0 40px 40px 40px;">
                <p style="margin:0 0 16px 0; color:#475569; font-size:14px;">Enter this code on the login page to access the portal.</p>
                <p style="margin:0; color:#94a3b8; font-size:13px;">This code will expire in <strong>{expiry_minutes} minutes</strong>. If you didn't request this code, please ignore this email.</p>
              </td>
            </tr>
            <tr>
              <td style="padding:24px 40px; background:#f8fafc; border-top:1px solid #e2e8f0;">
                <p style="margin:0; color:#94a3b8; font-size:12px; text-align:center;">&copy; {year} {portal_name}. All rights reserved.</p>
              </td>
            </tr>
          </table>
        </td>
      </tr>
    </table>
  </body>
</html>
"""
    return subject, html, text
