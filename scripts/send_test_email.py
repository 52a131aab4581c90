"""
send_test_email.py
Description: Sends one test alert email with the SMTP settings the server uses, to check the email
channel before relying on it. Fill .env from .env.example, install the project (`pip install -e .`),
then run `python scripts/send_test_email.py`.

Exit codes: 0 sent, 1 send failed, 2 SMTP settings missing.
"""

import asyncio
import sys

from alerts import SENT, send_alert_email
from call_log import configure_logging, log_event
from config import AlertSettings


def main():
    configure_logging()
    settings = AlertSettings()
    if not settings.email_configured:
        log_event('TEST_EMAIL_SKIPPED', level='ERROR',
                  error='Missing SMTP config. Set ALERT_EMAIL_TO, SMTP_HOST, SMTP_USER and SMTP_PASS.')
        return 2

    try:
        status = asyncio.run(send_alert_email(
            settings,
            'SCC ISA voice - Test alert email',
            'This is a test alert from your SCC ISA voice server. '
            'If you received this, email sending is working.',
        ))
    except Exception as e:
        log_event('TEST_EMAIL_FAILED', level='ERROR', to=settings.alert_email_to, error=repr(e))
        return 1

    log_event('TEST_EMAIL_SENT', to=settings.alert_email_to, status=status)
    return 0 if status == SENT else 1


if __name__ == '__main__':
    sys.exit(main())
