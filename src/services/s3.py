"""
S3 access for raw inbound mail.

SES receipt rules write each received message to S3; the SQS notification
only carries its bucket/key, so the MIME payload is read back from here.
"""

import logging

import boto3
from botocore.config import Config
from botocore.exceptions import ClientError

logger = logging.getLogger(__name__)

# Configure S3 client with timeouts to prevent infinite hangs
s3_config = Config(
    retries={
        'max_attempts': 1,  # 1 attempt total (no retries)
        'mode': 'standard'
    },
    connect_timeout=10,
    read_timeout=60
)

# Initialize S3 client at module level (reused across warm invocations)
s3_client = boto3.client('s3', config=s3_config)
logger.info("S3 client initialized with timeouts: connect=10s, read=60s, max_attempts=1")


def fetch_email_from_s3(bucket: str, key: str) -> bytes:
    """
    Fetch a raw SES-stored email from S3.

    Args:
        bucket: S3 bucket name from the SES receipt action
        key: S3 object key from the SES receipt action

    Returns:
        bytes: The complete MIME payload

    Raises:
        ValueError: If bucket/key are empty or the object does not exist
        ClientError: For other S3 failures
    """
    if not bucket or not key:
        raise ValueError(f"Invalid S3 location: bucket={bucket!r}, key={key!r}")

    try:
        response = s3_client.get_object(Bucket=bucket, Key=key)
        return response['Body'].read()
    except ClientError as e:
        error_code = e.response.get('Error', {}).get('Code', '')
        if error_code == 'NoSuchKey':
            logger.error(f"S3 object not found: s3://{bucket}/{key}")
            raise ValueError(f"Email file not found in S3: {key}")
        elif error_code == 'NoSuchBucket':
            logger.error(f"S3 bucket not found: {bucket}")
            raise ValueError(f"S3 bucket not found: {bucket}")
        logger.error(f"Failed to fetch from S3 s3://{bucket}/{key}: {e}")
        raise
