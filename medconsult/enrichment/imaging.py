"""
Imaging analysis client.

Sends imaging study references to an external imaging-AI inference
service and returns its structured findings.
"""

import logging
from typing import Any

import httpx
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from medconsult.models.enrichment import ImagingFindings


logger = logging.getLogger(__name__)


class ImagingAnalysisClient:
    """
    Client for the imaging-AI service.

    HTTP errors propagate to the caller after transient failures are retried.
    """

    def __init__(self, base_url: str, timeout: float = 60.0):
        """
        Initialize the imaging client.

        Args:
            base_url: Root URL of the imaging service
            timeout: HTTP request timeout in seconds
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    @retry(
        retry=retry_if_exception_type(httpx.TransportError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def analyze(self, imaging: dict[str, Any], clinical_context: str = "") -> ImagingFindings:
        """
        Analyze the imaging studies attached to a case.

        Args:
            imaging: Imaging references or reports keyed by study name
            clinical_context: Short clinical summary for the model

        Returns:
            ImagingFindings parsed from the service response
        """
        payload = {"imaging": imaging, "clinical_context": clinical_context}

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.post(f"{self.base_url}/analyze", json=payload)
            response.raise_for_status()
            data = response.json()

        findings = ImagingFindings(
            modality=str(data.get("modality", "")),
            findings=[str(f) for f in data.get("findings", [])],
            impression=str(data.get("impression", "")),
            critical_finding=bool(data.get("critical_finding", False)),
            confidence=min(max(float(data.get("confidence", 0.0)), 0.0), 1.0),
            raw=data,
        )

        if findings.critical_finding:
            logger.warning(f"Imaging analysis reported a critical finding: {findings.impression}")
        return findings
