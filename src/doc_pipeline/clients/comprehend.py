"""Comprehend sentiment scoring adapter."""

from typing import Any, Optional

import boto3

from doc_pipeline.schemas.records import SentimentResult

# DetectSentiment rejects input over 5000 bytes of UTF-8
MAX_TEXT_BYTES = 5000


def truncate_utf8(text: str, max_bytes: int = MAX_TEXT_BYTES) -> str:
    """Truncate text to at most max_bytes of UTF-8 without splitting a character."""
    encoded = text.encode("utf-8")
    if len(encoded) <= max_bytes:
        return text
    return encoded[:max_bytes].decode("utf-8", errors="ignore")


class ComprehendScorer:
    """SentimentScorer using DetectSentiment."""

    def __init__(
        self,
        region: Optional[str] = None,
        language_code: str = "en",
        client: Any = None,
    ):
        self.language_code = language_code
        self._client = client or boto3.client("comprehend", region_name=region)

    def score(self, text: str) -> SentimentResult:
        response = self._client.detect_sentiment(
            Text=truncate_utf8(text),
            LanguageCode=self.language_code,
        )
        return SentimentResult(
            label=response["Sentiment"],
            scores={k: float(v) for k, v in response.get("SentimentScore", {}).items()},
        )
