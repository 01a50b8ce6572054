"""Medicine reminder email templates."""

from dataclasses import dataclass
from html import escape
from typing import Optional

DEFAULT_DOSAGE = "As prescribed"


@dataclass
class ReminderEmail:
    """Fields rendered into a single reminder email."""

    recipient: str
    medicine_name: str
    reminder_time: str
    dosage: Optional[str] = None
    instructions: Optional[str] = None
    notes: Optional[str] = None

    @property
    def subject(self) -> str:
        return f"💊 Medicine Reminder: {self.medicine_name} at {self.reminder_time}"


_STYLE = """
    body { font-family: 'Segoe UI', Tahoma, Geneva, Verdana, sans-serif; line-height: 1.6; color: #333;
           max-width: 600px; margin: 0 auto; padding: 20px; background-color: #f4f4f4; }
    .container { background-color: #ffffff; border-radius: 8px; padding: 30px; box-shadow: 0 2px 4px rgba(0,0,0,0.1); }
    .header { text-align: center; margin-bottom: 30px; padding-bottom: 20px; border-bottom: 2px solid #4CAF50; }
    h1 { color: #4CAF50; margin: 0; font-size: 28px; }
    .medicine-card { background-color: #f9f9f9; border-left: 4px solid #4CAF50; padding: 20px; margin: 20px 0; border-radius: 4px; }
    .medicine-name { font-size: 20px; font-weight: bold; color: #2c3e50; margin-bottom: 10px; }
    .dosage { font-size: 16px; color: #555; margin-bottom: 15px; font-weight: 600; }
    .info-label { font-weight: bold; color: #4CAF50; display: block; margin-bottom: 5px; }
    .info-content { color: #555; padding-left: 10px; }
    .reminder-time { background-color: #e8f5e9; padding: 15px; border-radius: 4px; text-align: center; margin: 20px 0; }
    .footer { margin-top: 30px; padding-top: 20px; border-top: 1px solid #ddd; text-align: center; color: #777; font-size: 14px; }
"""


def _section(label: str, content: Optional[str]) -> str:
    if not content:
        return ""
    return (
        '<div class="info-section">'
        f'<span class="info-label">{label}:</span>'
        f'<div class="info-content">{escape(content)}</div>'
        "</div>"
    )


def render_html(email: ReminderEmail) -> str:
    """Render the HTML body; user-supplied fields are escaped."""
    dosage = email.dosage or DEFAULT_DOSAGE
    return f"""<!DOCTYPE html>
<html>
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>Medicine Reminder</title>
  <style>{_STYLE}</style>
</head>
<body>
  <div class="container">
    <div class="header"><h1>💊 Medicine Reminder</h1></div>
    <p>Hello,</p>
    <p>This is your scheduled reminder to take your medication:</p>
    <div class="medicine-card">
      <div class="medicine-name">{escape(email.medicine_name)}</div>
      <div class="dosage">Dosage: {escape(dosage)}</div>
      {_section("Instructions", email.instructions)}
      {_section("Important Notes", email.notes)}
    </div>
    <div class="reminder-time">
      <p>⏰ <strong>Scheduled Time: {escape(email.reminder_time)}</strong></p>
    </div>
    <p style="margin-top: 20px;">
      <strong>Important:</strong> Please take your medication as prescribed. If you have any concerns
      or experience side effects, consult your healthcare provider.
    </p>
    <div class="footer">
      <p>This is an automated reminder from CareBridge Health Monitoring System.</p>
      <p style="font-size: 12px; margin-top: 10px;">To manage your reminders, please log in to your CareBridge account.</p>
    </div>
  </div>
</body>
</html>"""


def render_text(email: ReminderEmail) -> str:
    """Render the plain-text alternative."""
    lines = [
        "MEDICINE REMINDER",
        "",
        "Hello,",
        "",
        "This is your scheduled reminder to take your medication:",
        "",
        f"Medicine: {email.medicine_name}",
        f"Dosage: {email.dosage or DEFAULT_DOSAGE}",
    ]
    if email.instructions:
        lines += ["", "Instructions:", email.instructions]
    if email.notes:
        lines += ["", "Important Notes:", email.notes]
    lines += [
        "",
        f"Scheduled Time: {email.reminder_time}",
        "",
        "Important: Please take your medication as prescribed. If you have any concerns or "
        "experience side effects, consult your healthcare provider.",
        "",
        "---",
        "This is an automated reminder from CareBridge Health Monitoring System.",
        "To manage your reminders, please log in to your CareBridge account.",
    ]
    return "\n".join(lines)
