"""
Service functions wrapping external resources used by the Lambda handlers:
MIME decoding, S3 reads and SES forwarding.
"""

__all__ = ['email', 's3', 'forwarding']
