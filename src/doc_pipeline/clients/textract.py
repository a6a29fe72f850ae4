"""Textract text extraction adapter."""

from typing import Any, Optional

import boto3

from doc_pipeline.clients.base import Document


class TextractExtractor:
    """
    TextExtractor using synchronous DetectDocumentText on document bytes.

    Only LINE blocks are kept, joined with newlines in reading order.
    Multi-page PDFs are rejected by the synchronous API with
    UnsupportedDocumentException, which classifies as permanent.
    """

    def __init__(self, region: Optional[str] = None, client: Any = None):
        self._client = client or boto3.client("textract", region_name=region)

    def extract_text(self, document: Document) -> str:
        response = self._client.detect_document_text(
            Document={"Bytes": document.content}
        )

        lines = [
            block.get("Text", "")
            for block in response.get("Blocks", [])
            if block.get("BlockType") == "LINE"
        ]
        return "\n".join(line for line in lines if line)
