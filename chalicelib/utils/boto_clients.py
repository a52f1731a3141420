import os
import boto3

from botocore.config import Config


def main_boto_region():
    return os.environ.get('MAIN_BOTO_REGION', os.environ.get('AWS_REGION', 'eu-central-1'))


def create_dynamodb_resource():
    # DynamoDB local is used when ENDPOINT_URL is set
    if os.environ.get('ENDPOINT_URL'):
        return boto3.resource('dynamodb', endpoint_url=os.environ.get('ENDPOINT_URL'),
                              region_name=main_boto_region())
    aws_config_ddb = Config(retries={'max_attempts': 30}, region_name=main_boto_region())
    return boto3.resource('dynamodb', config=aws_config_ddb)


def create_s3_client():
    # Clients provide a low-level interface to AWS services whose methods map close to 1:1 with service APIs.
    return boto3.client('s3', region_name=main_boto_region())


def create_ses_client():
    # SES is not available in every region, so it has its own setting.
    return boto3.client('ses', config=Config(retries={'max_attempts': 30},
                                             region_name=os.environ.get('SES_REGION', 'us-east-1')))
