# =============================================================================
# core/notifications.py - Owner notification rendering and delivery
# =============================================================================

import logging
from dataclasses import dataclass
from typing import Any, List, Optional

from jinja2 import DictLoader, Environment, select_autoescape

from core.exceptions import DirectoryLookupError, NotificationError
from core.models import AccountRecord, NotificationStage, Thresholds

SUBJECTS = {
    NotificationStage.WARNING: "Action required: privileged account {upn} inactive for {days} days",
    NotificationStage.DISABLED: "Privileged account {upn} has been disabled after {days} days of inactivity",
    NotificationStage.DELETION: "Privileged account {upn} reached the removal threshold after {days} days of inactivity",
}

_LAYOUT = """<html>
<body style="font-family: Segoe UI, Arial, sans-serif; font-size: 14px;">
<p>Hello,</p>
{% block content %}{% endblock %}
<table style="border-collapse: collapse;">
  <tr><td><b>Account</b></td><td>{{ upn }}</td></tr>
  {% if sam %}<tr><td><b>sAMAccountName</b></td><td>{{ sam }}</td></tr>{% endif %}
  <tr><td><b>Days inactive</b></td><td>{{ days }}</td></tr>
  {% if description %}<tr><td><b>Description</b></td><td>{{ description }}</td></tr>{% endif %}
</table>
<p>This message was sent to you as the recorded owner of the account.</p>
</body>
</html>"""

TEMPLATES = {
    'layout.html': _LAYOUT,
    'Warning.html': """{% extends "layout.html" %}{% block content %}
<p>The privileged account below has not been used for {{ days }} days.
It will be disabled once it reaches {{ thresholds.disable }} days of inactivity.
Sign in with the account if it is still required.</p>
{% endblock %}""",
    'Disabled.html': """{% extends "layout.html" %}{% block content %}
<p>The privileged account below has been disabled because it was not used for {{ days }} days.
{% if deletion_enabled %}It will be deleted once it reaches {{ thresholds.delete }} days of inactivity.{% endif %}
Contact the identity team if it is still required.</p>
{% endblock %}""",
    'Deletion.html': """{% extends "layout.html" %}{% block content %}
<p>The privileged account below reached {{ days }} days of inactivity and
{% if deletion_enabled %}has been deleted{% else %}remains disabled pending removal{% endif %}.</p>
{% endblock %}""",
}


@dataclass(frozen=True)
class Notice:
    subject: str
    body: str


class NotificationComposer:
    """Renders subject and HTML body for a notification stage"""

    def __init__(self, thresholds: Thresholds, deletion_enabled: bool = False):
        self.thresholds = thresholds
        self.deletion_enabled = deletion_enabled
        self.env = Environment(loader=DictLoader(TEMPLATES), autoescape=select_autoescape(['html']))

    def compose(self, record: AccountRecord, stage: NotificationStage, days: int) -> Notice:
        if stage == NotificationStage.NONE:
            raise ValueError("No notification for stage NONE")

        subject = SUBJECTS[stage].format(upn=record.user_principal_name, days=days)
        body = self.env.get_template(f"{stage.value}.html").render(
            upn=record.user_principal_name,
            sam=record.sam_account_name,
            description=record.attribute('Description'),
            days=days,
            thresholds=self.thresholds,
            deletion_enabled=self.deletion_enabled,
        )
        return Notice(subject=subject, body=body)


class GraphMailNotifier:
    """Sends notices through Graph sendMail; any failure raises NotificationError"""

    def __init__(self, graph_client: Any, cc: Optional[List[str]] = None):
        self.graph_client = graph_client
        self.cc = cc or []
        self.logger = logging.getLogger(self.__class__.__name__)

    def send(self, sender: str, recipients: List[str], subject: str, body: str) -> None:
        try:
            self.graph_client.send_mail(sender, recipients, subject, body, cc=self.cc)
        except DirectoryLookupError as e:
            raise NotificationError(str(e)) from e
        self.logger.info(f"Sent '{subject}' to {', '.join(recipients)}")

