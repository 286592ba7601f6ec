"""
Email templates for schedule request notifications.

Every template is a pure function of the request (plus optional extra
values) returning a ``(subject, html)`` pair. Request text is escaped
before it is placed in the markup.
"""

from html import escape
from typing import Callable, Dict, List, Optional, Tuple

from clinic_scheduling.models.notification import EventKind
from clinic_scheduling.models.request import ScheduleRequest

THEME = {
    "heading": "#2c3e50",
    "success": "#27ae60",
    "danger": "#e74c3c",
    "warning": "#f39c12",
    "info": "#3498db",
    "muted": "#7f8c8d",
    "panel": "#f8f9fa",
    "highlight": "#fff3cd",
}

SIGNATURE = "Clinic Administration"
TIMESTAMP_FORMAT = "%b %d, %Y %H:%M"

SUBJECTS = {
    EventKind.SUBMITTED: "Schedule Blocking Request Submitted",
    EventKind.ADMIN_NEW: "New Schedule Blocking Request - Action Required",
    EventKind.APPROVED: "Schedule Blocking Request Approved",
    EventKind.REJECTED: "Schedule Blocking Request Rejected",
    EventKind.CANCELLED: "Schedule Blocking Request Cancelled",
    EventKind.DIRECTOR_PTO_UPLOAD: "PTO Form Uploaded - Director Approval Required",
    EventKind.CLARIFICATION: "Schedule Blocking Request - Clarification Needed",
}

# Name and audience of each template, for the template listing
DESCRIPTIONS = {
    EventKind.SUBMITTED: ("Request Submitted", "Sent to provider when request is submitted"),
    EventKind.ADMIN_NEW: ("Admin Notification", "Sent to admins when a new request is received"),
    EventKind.APPROVED: ("Request Approved", "Sent to provider when request is approved"),
    EventKind.REJECTED: ("Request Rejected", "Sent to provider when request is rejected"),
    EventKind.CANCELLED: ("Request Cancelled", "Sent to provider when request is cancelled"),
    EventKind.DIRECTOR_PTO_UPLOAD: ("Director PTO Notification", "Sent to directors when a PTO form is uploaded"),
    EventKind.CLARIFICATION: ("Clarification Request", "Sent to provider when clarification is needed"),
}

Rendered = Tuple[str, str]


def _e(value) -> str:
    return escape(str(value)) if value is not None else ""


def _ts(value) -> str:
    return value.strftime(TIMESTAMP_FORMAT) if value else ""


def get_base_template(title: str, color: str, content: str) -> str:
    return f"""
      <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
        <h2 style="color: {color};">{title}</h2>
        {content}
      </div>
    """


def _panel(heading: str, rows: str, background: str = THEME["panel"]) -> str:
    return f"""
        <div style="background-color: {background}; padding: 15px; border-radius: 5px; margin: 20px 0;">
          <h3 style="margin-top: 0;">{heading}</h3>
          {rows}
        </div>
    """


def _row(label: str, value: str) -> str:
    return f"<p><strong>{label}:</strong> {value}</p>"


def _details(request: ScheduleRequest, with_provider: bool = False) -> str:
    rows = []
    if with_provider:
        rows.append(_row("Provider", _e(request.providerName)))
        rows.append(_row("Email", _e(request.providerEmail)))
    rows.append(_row("Request Type", _e(request.request_type_display)))
    rows.append(_row("Date Range", _e(request.formatted_range())))
    rows.append(_row("Reason", _e(request.reason)))
    return "\n          ".join(rows)


def _signoff(name: str = SIGNATURE) -> str:
    return f"<p>Best regards,<br>{_e(name)}</p>"


def request_submitted(request: ScheduleRequest, extra: Optional[dict] = None) -> Rendered:
    rows = _details(request)
    rows += _row("Status", f'<span style="color: {THEME["warning"]};">Pending Review</span>')
    if request.ptoRequired:
        rows += _row("PTO Form Required", "Yes")

    content = f"""
        <p>Dear {_e(request.providerName)},</p>
        <p>Your schedule blocking request has been successfully submitted and is under review.</p>
        {_panel("Request Details:", rows)}
        <p>You will receive an email notification once your request has been reviewed by the admin staff.</p>
        <p>If you have any questions, please contact the admin office.</p>
        {_signoff()}
    """
    subject = SUBJECTS[EventKind.SUBMITTED]
    return subject, get_base_template(subject, THEME["heading"], content)


def admin_new_request(request: ScheduleRequest, extra: Optional[dict] = None) -> Rendered:
    rows = _details(request, with_provider=True)
    if request.ptoRequired:
        rows += _row("PTO Form Required", "Yes")

    content = f"""
        <p>A new schedule blocking request requires your attention.</p>
        {_panel("Request Details:", rows)}
        <p>Please review the provider's schedule and take appropriate action:</p>
        <ul>
          <li>Check for conflicting appointments</li>
          <li>Reschedule appointments if necessary</li>
          <li>Block the schedule as requested</li>
          <li>Send clarification email if needed</li>
        </ul>
        <p>Access the admin dashboard to manage this request.</p>
    """
    return (
        SUBJECTS[EventKind.ADMIN_NEW],
        get_base_template("New Schedule Blocking Request", THEME["danger"], content),
    )


def request_approved(request: ScheduleRequest, extra: Optional[dict] = None) -> Rendered:
    rows = _details(request)
    rows += _row("Status", f'<span style="color: {THEME["success"]};">Approved</span>')
    rows += _row("Approved By", _e(request.approvedBy))
    rows += _row("Approved At", _ts(request.approvedAt))

    content = f"""
        <p>Dear {_e(request.providerName)},</p>
        <p>Your schedule blocking request has been approved and your schedule has been blocked as requested.</p>
        {_panel("Approved Request Details:", rows)}
        <p>Your schedule is now blocked for the requested period. No new appointments will be scheduled during this time.</p>
        {_signoff()}
    """
    subject = SUBJECTS[EventKind.APPROVED]
    return subject, get_base_template(subject, THEME["success"], content)


def request_rejected(request: ScheduleRequest, extra: Optional[dict] = None) -> Rendered:
    rows = _details(request)
    rows += _row("Status", f'<span style="color: {THEME["danger"]};">Rejected</span>')
    rows += _row("Rejected By", _e(request.rejectedBy))
    rows += _row("Rejected At", _ts(request.rejectedAt))
    if request.rejectionReason:
        rows += _row("Rejection Reason", _e(request.rejectionReason))

    content = f"""
        <p>Dear {_e(request.providerName)},</p>
        <p>Your schedule blocking request has been rejected.</p>
        {_panel("Request Details:", rows)}
        <p>Please contact the admin office if you have any questions or would like to submit a new request.</p>
        {_signoff()}
    """
    subject = SUBJECTS[EventKind.REJECTED]
    return subject, get_base_template(subject, THEME["danger"], content)


def request_cancelled(request: ScheduleRequest, extra: Optional[dict] = None) -> Rendered:
    rows = _details(request)
    rows += _row("Status", f'<span style="color: {THEME["muted"]};">Cancelled</span>')
    rows += _row("Cancelled By", _e(request.cancelledBy))
    rows += _row("Cancelled At", _ts(request.cancelledAt))

    content = f"""
        <p>Dear {_e(request.providerName)},</p>
        <p>Your schedule blocking request has been cancelled. Your schedule will not be blocked for this period.</p>
        {_panel("Request Details:", rows)}
        {_signoff()}
    """
    subject = SUBJECTS[EventKind.CANCELLED]
    return subject, get_base_template(subject, THEME["muted"], content)


def director_pto_upload(request: ScheduleRequest, extra: Optional[dict] = None) -> Rendered:
    rows = _row("Provider", _e(request.providerName)) + _details(request)

    content = f"""
        <p>A PTO form has been uploaded and requires your approval.</p>
        {_panel("Request Details:", rows)}
        <p>Please review the PTO form and take appropriate action:</p>
        <ul>
          <li>Review the uploaded PTO form</li>
          <li>Sign the form if approved</li>
          <li>Return the signed form</li>
          <li>Update the request status</li>
        </ul>
        <p>Access the director dashboard to review this request.</p>
    """
    return (
        SUBJECTS[EventKind.DIRECTOR_PTO_UPLOAD],
        get_base_template("PTO Form Uploaded", THEME["info"], content),
    )


def clarification(request: ScheduleRequest, extra: Optional[dict] = None) -> Rendered:
    extra = extra or {}
    admin_name = extra.get("adminName") or SIGNATURE
    message = _e(extra.get("message"))

    clarification_rows = f"<p>{message}</p>" + _row("From", _e(admin_name))
    content = f"""
        <p>Dear {_e(request.providerName)},</p>
        <p>We need clarification regarding your schedule blocking request.</p>
        {_panel("Request Details:", _details(request))}
        {_panel("Clarification Request:", clarification_rows, THEME["highlight"])}
        <p>Please respond to this email with the requested clarification, or contact the admin office directly.</p>
        <p>Best regards,<br>{_e(admin_name)}<br>{SIGNATURE}</p>
    """
    return (
        SUBJECTS[EventKind.CLARIFICATION],
        get_base_template("Clarification Needed", THEME["warning"], content),
    )


def render_test_message(message: str, sent_at) -> str:
    content = f"""
        <p>{_e(message)}</p>
        <p><small>This is a test notification sent at {_ts(sent_at)}</small></p>
    """
    return get_base_template("Test Notification", THEME["heading"], content)


TEMPLATES: Dict[EventKind, Callable[[ScheduleRequest, Optional[dict]], Rendered]] = {
    EventKind.SUBMITTED: request_submitted,
    EventKind.ADMIN_NEW: admin_new_request,
    EventKind.APPROVED: request_approved,
    EventKind.REJECTED: request_rejected,
    EventKind.CANCELLED: request_cancelled,
    EventKind.DIRECTOR_PTO_UPLOAD: director_pto_upload,
    EventKind.CLARIFICATION: clarification,
}


def list_templates() -> List[dict]:
    return [
        {
            "id": kind.value,
            "name": DESCRIPTIONS[kind][0],
            "subject": SUBJECTS[kind],
            "description": DESCRIPTIONS[kind][1],
        }
        for kind in TEMPLATES
    ]


def render(kind: EventKind, request: ScheduleRequest, extra: Optional[dict] = None) -> Rendered:
    try:
        template = TEMPLATES[kind]
    except KeyError:
        raise ValueError(f"No template for event kind '{kind}'")
    return template(request, extra)
