from datetime import datetime, timezone

import boto3
import pytest
from chalice.test import Client
from moto import mock_aws

import app as app_module
from chalicelib.constants.constants import VERIFICATION_TEMPLATE
from chalicelib.services import build_services
from chalicelib.utils.db import get_gen_table

TEST_REGION = 'eu-central-1'
TEST_TABLE_NAME = 'eats-marketplace'
TEST_BUCKET_NAME = 'eats-marketplace-uploads'
TEST_EMAIL_FROM = 'no-reply@eats-marketplace.com'

# Wed, Jan 28 2026
TEST_NOW = datetime(2026, 1, 28, 10, 0, 0, tzinfo=timezone.utc)


class FixedClock:
    def __init__(self, now: datetime = TEST_NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def aws_environ(monkeypatch):
    monkeypatch.setenv('AWS_ACCESS_KEY_ID', 'testing')
    monkeypatch.setenv('AWS_SECRET_ACCESS_KEY', 'testing')
    monkeypatch.setenv('AWS_SECURITY_TOKEN', 'testing')
    monkeypatch.setenv('AWS_SESSION_TOKEN', 'testing')
    monkeypatch.setenv('AWS_DEFAULT_REGION', TEST_REGION)
    monkeypatch.setenv('MAIN_BOTO_REGION', TEST_REGION)
    monkeypatch.setenv('GEN_TABLE_NAME', TEST_TABLE_NAME)
    monkeypatch.setenv('UPLOADS_BUCKET_NAME', TEST_BUCKET_NAME)
    monkeypatch.setenv('EMAIL_FROM', TEST_EMAIL_FROM)
    monkeypatch.setenv('JWT_SECRET_KEY', 'test-secret')
    monkeypatch.delenv('ENDPOINT_URL', raising=False)


@pytest.fixture
def aws(aws_environ):
    with mock_aws():
        yield


@pytest.fixture
def table(aws):
    boto3.resource('dynamodb', region_name=TEST_REGION).create_table(
        TableName=TEST_TABLE_NAME,
        KeySchema=[
            {'AttributeName': 'partkey', 'KeyType': 'HASH'},
            {'AttributeName': 'sortkey', 'KeyType': 'RANGE'}
        ],
        AttributeDefinitions=[
            {'AttributeName': 'partkey', 'AttributeType': 'S'},
            {'AttributeName': 'sortkey', 'AttributeType': 'S'}
        ],
        BillingMode='PAY_PER_REQUEST'
    )
    return get_gen_table()


@pytest.fixture
def s3_client(aws):
    client = boto3.client('s3', region_name=TEST_REGION)
    client.create_bucket(Bucket=TEST_BUCKET_NAME, CreateBucketConfiguration={'LocationConstraint': TEST_REGION})
    return client


@pytest.fixture
def ses_client(aws):
    client = boto3.client('ses', region_name='us-east-1')
    client.verify_email_identity(EmailAddress=TEST_EMAIL_FROM)
    client.create_template(Template={
        'TemplateName': VERIFICATION_TEMPLATE,
        'SubjectPart': '{{subject}}',
        'TextPart': 'Hello {{username}}, your code is {{code}}',
        'HtmlPart': '<p>Hello {{username}}, your code is {{code}}</p>'
    })
    return client


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def services(table, s3_client, ses_client, clock):
    return build_services(table=table, s3_client=s3_client, ses_client=ses_client, clock=clock)


@pytest.fixture
def chalice_client(services, monkeypatch):
    monkeypatch.setattr(app_module, '_services', services)
    with Client(app_module.app) as client:
        yield client
