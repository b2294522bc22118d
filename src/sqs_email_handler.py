"""
AWS Lambda handler for Myship notification emails delivered by SES via SQS.

Thin orchestration layer that delegates to EmailProcessor.
Policy: Always delete messages (no retries). Errors logged to CloudWatch.
"""

import logging
from typing import Dict, Any

import config
from domain.email_processor import EmailProcessor

# Configure logging
logger = logging.getLogger()
logger.setLevel(logging.INFO)

# Add console handler for local testing (AWS Lambda provides handlers automatically)
if not logger.handlers:
    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.INFO)
    formatter = logging.Formatter('%(levelname)s - %(message)s')
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

# Initialize processor once at module level (reused across invocations)
try:
    email_processor = EmailProcessor()
except config.ConfigurationError as e:
    logger.error(f"Module initialization failed: {e}")
    raise


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Process SES email notifications from SQS.

    Args:
        event: Lambda event with SQS records
        context: Lambda context

    Returns:
        Dict with batchItemFailures (always empty - no retries)
    """
    records = event.get('Records', [])
    logger.info(
        f"Myship email processor ({config.environment()}): "
        f"batch of {len(records)} message(s)"
    )

    results = []
    for record in records:
        result = email_processor.process_ses_record(record)
        results.append(result)

        if result.success:
            logger.info(f"Processed message {result.message_id}: {result.outcome}")
        else:
            logger.warning(
                f"Processed message {result.message_id} with ERRORS: "
                f"{result.error_message}"
            )

    success_count = sum(1 for r in results if r.success)
    logger.info(
        f"Batch processing complete: {len(results)} message(s), "
        f"success={success_count}, errors={len(results) - success_count}"
    )

    return {"batchItemFailures": []}
