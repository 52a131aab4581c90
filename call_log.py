"""
call_log.py
Description: Structured event log. Every record is a single JSON object written on its own
line to standard output, e.g. {"event": "MENU", "sid": "CA...", "from": "+1...", "to": "+1...", "digit": "2"}.
"""

import json
import sys

from flask import has_request_context, request
from loguru import logger


def configure_logging(level='INFO'):
    """Send bare messages to stdout so each line stays valid JSON."""
    logger.remove()
    logger.add(sys.stdout, format='{message}', level=level)


def log_event(event, level='INFO', **fields):
    payload = {'event': event}
    payload.update(fields)
    logger.log(level, json.dumps(payload, default=str, ensure_ascii=False))
    return payload


def call_record(event, **fields):
    """Log a call-flow transition, correlated with the caller via the webhook form fields."""
    if has_request_context():
        identity = {
            'sid': request.form.get('CallSid'),
            'from': request.form.get('From'),
            'to': request.form.get('To'),
        }
    else:
        identity = {'sid': None, 'from': None, 'to': None}
    return log_event(event, **identity, **fields)
