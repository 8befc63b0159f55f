"""
Tests for the imaging analysis client.
"""

import pytest
from unittest.mock import AsyncMock, MagicMock, patch
import httpx

from medconsult.enrichment import ImagingAnalysisClient


def mock_async_client(post: AsyncMock) -> MagicMock:
    mock_instance = AsyncMock()
    mock_instance.post = post
    mock_instance.__aenter__ = AsyncMock(return_value=mock_instance)
    mock_instance.__aexit__ = AsyncMock(return_value=False)
    return MagicMock(return_value=mock_instance)


def http_response(status_code=200, body=None):
    return httpx.Response(
        status_code,
        json=body if body is not None else {},
        request=httpx.Request("POST", "http://imaging.test/analyze"),
    )


class TestImagingAnalysisClient:

    @pytest.mark.asyncio
    async def test_analyze(self):
        post = AsyncMock(return_value=http_response(200, {
            "modality": "CT",
            "findings": ["Right lower lobe consolidation"],
            "impression": "Lobar pneumonia",
            "critical_finding": False,
            "confidence": 1.4,
        }))
        client = ImagingAnalysisClient("http://imaging.test/")

        with patch("httpx.AsyncClient", mock_async_client(post)):
            findings = await client.analyze({"ct_chest": "study-42"}, "67M with fever")

        assert findings.modality == "CT"
        assert findings.findings == ["Right lower lobe consolidation"]
        assert findings.confidence == 1.0
        assert post.call_args.args[0] == "http://imaging.test/analyze"
        assert post.call_args.kwargs["json"] == {
            "imaging": {"ct_chest": "study-42"},
            "clinical_context": "67M with fever",
        }

    @pytest.mark.asyncio
    async def test_http_error_propagates(self):
        post = AsyncMock(return_value=http_response(503))

        with patch("httpx.AsyncClient", mock_async_client(post)):
            with pytest.raises(httpx.HTTPStatusError):
                await ImagingAnalysisClient("http://imaging.test").analyze({"xr": "1"})

        assert post.call_count == 1
