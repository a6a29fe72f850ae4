"""SNS alert channel adapter."""

from typing import Any, Optional

import boto3

# SNS subject lines are limited to 100 characters
MAX_SUBJECT_LENGTH = 100


class SnsAlertChannel:
    """AlertChannel publishing to an SNS topic."""

    def __init__(self, topic_arn: str, region: Optional[str] = None, client: Any = None):
        self.topic_arn = topic_arn
        self._client = client or boto3.client("sns", region_name=region)

    def publish(self, subject: str, message: str) -> None:
        self._client.publish(
            TopicArn=self.topic_arn,
            Subject=subject[:MAX_SUBJECT_LENGTH],
            Message=message,
        )
