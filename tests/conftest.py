import json
import xml.etree.ElementTree as ET

import pytest
from loguru import logger

from app import app as flask_app
from config import AlertSettings

CALL = {'CallSid': 'CA123', 'From': '+15550001111', 'To': '+15550002222'}


@pytest.fixture
def client():
    flask_app.testing = True
    with flask_app.test_client() as client:
        yield client


@pytest.fixture
def events():
    records = []
    sink_id = logger.add(lambda msg: records.append(json.loads(msg.record['message'])), format='{message}')
    yield records
    logger.remove(sink_id)


def post(client, path, **form):
    return client.post(path, data={**CALL, **form})


def parse(response):
    assert response.status_code == 200
    assert response.mimetype == 'application/xml'
    return ET.fromstring(response.data)


def make_alert_settings(**overrides):
    values = {
        'slack_webhook_url': None,
        'alert_webhook_url': None,
        'alert_email_to': None,
        'smtp_host': None,
        'smtp_port': 587,
        'smtp_user': None,
        'smtp_pass': None,
        'alert_from': None,
    }
    values.update(overrides)
    return AlertSettings(_env_file=None, **values)
