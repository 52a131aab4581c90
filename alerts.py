"""
alerts.py
Description: Fan-out of operational alerts to the admins. An alert is offered to three
independent channels (a Slack incoming webhook, a generic JSON webhook and SMTP email).
A channel with no configuration is skipped; a channel that fails is logged. Nothing here
ever raises to the code that asked for the alert: alert_admins() returns one ChannelOutcome
per channel instead.
"""

import asyncio
import json
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from email.message import EmailMessage
from typing import Any, Mapping, Optional

import aiosmtplib
import httpx

from call_log import log_event
from config import AlertSettings

SENT = 'sent'
SKIPPED = 'skipped'
FAILED = 'failed'


@dataclass(frozen=True)
class ChannelOutcome:
    channel: str
    status: str
    error: Optional[str] = None


async def send_slack_message(client: httpx.AsyncClient, settings: AlertSettings, text: str) -> str:
    if not settings.slack_webhook_url:
        return SKIPPED
    response = await client.post(settings.slack_webhook_url, json={'text': text})
    response.raise_for_status()
    return SENT


async def send_webhook(client: httpx.AsyncClient, settings: AlertSettings, payload: Mapping[str, Any]) -> str:
    if not settings.alert_webhook_url:
        return SKIPPED
    response = await client.post(settings.alert_webhook_url, json=payload)
    response.raise_for_status()
    return SENT


async def send_alert_email(settings: AlertSettings, subject: str, text: str) -> str:
    if not settings.email_configured:
        return SKIPPED

    message = EmailMessage()
    message['From'] = settings.sender
    message['To'] = settings.alert_email_to
    message['Subject'] = subject
    message.set_content(text)

    # 465 is implicit TLS, anything else upgrades with STARTTLS when the server offers it
    implicit_tls = settings.smtp_port == 465
    await aiosmtplib.send(
        message,
        hostname=settings.smtp_host,
        port=settings.smtp_port,
        username=settings.smtp_user,
        password=settings.smtp_pass,
        use_tls=implicit_tls,
        start_tls=False if implicit_tls else None,
        timeout=settings.alert_timeout_seconds,
    )
    return SENT


def build_payload(kind, title, message, details=None):
    return {
        'type': kind,
        'title': title,
        'message': message,
        'details': dict(details or {}),
        'timestamp': datetime.now(timezone.utc).isoformat(),
    }


async def alert_admins(settings: AlertSettings, kind: str, title: str, message: str,
                       details: Optional[Mapping[str, Any]] = None,
                       transport: Optional[httpx.AsyncBaseTransport] = None) -> list[ChannelOutcome]:
    """Deliver an alert to every configured channel concurrently.

    All channels are attempted even when one of them fails. Failures are logged and
    reported in the returned outcomes, never raised.
    """
    channels = ('slack', 'webhook', 'email')
    try:
        payload = build_payload(kind, title, message, details)
        email_body = f"{message}\n\n{json.dumps(payload['details'], indent=2, default=str)}"

        async with httpx.AsyncClient(timeout=settings.alert_timeout_seconds, transport=transport) as client:
            results = await asyncio.gather(
                send_slack_message(client, settings, f'*{title}*\n{message}'),
                send_webhook(client, settings, payload),
                send_alert_email(settings, title, email_body),
                return_exceptions=True,
            )
    except Exception as e:
        log_event('ALERT_FAILED', level='ERROR', type=kind, title=title, error=repr(e))
        return [ChannelOutcome(channel, FAILED, repr(e)) for channel in channels]

    outcomes = []
    for channel, result in zip(channels, results):
        if isinstance(result, BaseException):
            log_event('ALERT_CHANNEL_FAILED', level='ERROR', channel=channel, type=kind, error=repr(result))
            outcomes.append(ChannelOutcome(channel, FAILED, repr(result)))
        else:
            outcomes.append(ChannelOutcome(channel, result))

    log_event('ALERT_SENT', type=kind, title=title,
              outcomes={outcome.channel: outcome.status for outcome in outcomes})
    return outcomes


def notify_admins(settings: AlertSettings, kind, title, message, details=None):
    """Fire-and-forget wrapper for synchronous callers such as Flask views."""
    thread = threading.Thread(
        target=asyncio.run,
        args=(alert_admins(settings, kind, title, message, details),),
        name='alert-admins',
        daemon=True,
    )
    thread.start()
    return thread
