"""
PubMed client for literature enrichment.

Uses NCBI E-utilities API to search and fetch article details.
API documentation: https://www.ncbi.nlm.nih.gov/books/NBK25500/
"""

import asyncio
import logging
import os
import re
import xml.etree.ElementTree as ET
from typing import Optional

import httpx

from medconsult.models.enrichment import LiteratureArticle, LiteratureSearchResult


logger = logging.getLogger(__name__)


# PublicationType -> evidence level, checked in priority order
EVIDENCE_LEVELS: list[tuple[str, str]] = [
    ("meta-analysis", "meta_analysis"),
    ("systematic review", "systematic_review"),
    ("randomized controlled trial", "rct"),
    ("clinical trial", "rct"),
    ("observational study", "observational"),
    ("comparative study", "observational"),
    ("case reports", "case_report"),
]


def classify_evidence(publication_types: list[str]) -> str:
    """Map PubMed publication types to an evidence level."""
    lowered = [p.lower() for p in publication_types]
    for marker, level in EVIDENCE_LEVELS:
        if any(marker in p for p in lowered):
            return level
    return "other"


class LiteratureSearchClient:
    """
    Client for searching PubMed via NCBI E-utilities.

    Rate limits:
    - Without API key: 3 requests/second
    - With API key: 10 requests/second

    HTTP and XML errors propagate to the caller.
    """

    BASE_URL = "https://eutils.ncbi.nlm.nih.gov/entrez/eutils"

    def __init__(
        self,
        api_key: Optional[str] = None,
        timeout: float = 30.0,
        recent_years: int = 5,
    ):
        """
        Initialize the PubMed client.

        Args:
            api_key: NCBI API key for higher rate limits (optional)
            timeout: HTTP request timeout in seconds
            recent_years: Only search articles published in this many years
        """
        self.api_key = api_key or os.getenv("NCBI_API_KEY")
        self.timeout = timeout
        self.recent_years = recent_years
        self._request_delay = 0.1 if self.api_key else 0.35
        self._last_request_time = 0.0

    async def _rate_limit(self):
        """Enforce rate limiting between requests."""
        now = asyncio.get_running_loop().time()
        elapsed = now - self._last_request_time
        if elapsed < self._request_delay:
            await asyncio.sleep(self._request_delay - elapsed)
        self._last_request_time = asyncio.get_running_loop().time()

    def _build_params(self, **kwargs) -> dict:
        """Build request parameters with API key if available."""
        params = {"retmode": "xml", "db": "pubmed"}
        params.update(kwargs)
        if self.api_key:
            params["api_key"] = self.api_key
        return params

    async def search_literature(
        self,
        query: str,
        max_results: int = 10,
    ) -> LiteratureSearchResult:
        """
        Search recent literature and fetch the matching articles.

        Args:
            query: Clinical search query
            max_results: Maximum number of articles

        Returns:
            LiteratureSearchResult with parsed articles
        """
        pmids, total_count = await self.search(query, max_results=max_results)
        articles = await self.fetch_multiple(pmids)

        logger.debug(f"Literature search '{query}': {len(articles)} of {total_count} articles")

        return LiteratureSearchResult(
            query=query,
            total_count=total_count,
            articles=articles,
        )

    async def search(self, query: str, max_results: int = 10) -> tuple[list[str], int]:
        """
        Search PubMed for articles matching a query.

        Returns:
            (PMIDs, total match count)
        """
        await self._rate_limit()

        params = self._build_params(
            term=query,
            retmax=max_results,
            sort="relevance",
            datetype="pdat",
            reldate=self.recent_years * 365,
        )

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.get(f"{self.BASE_URL}/esearch.fcgi", params=params)
            response.raise_for_status()

        root = ET.fromstring(response.text)

        count_elem = root.find(".//Count")
        total_count = int(count_elem.text) if count_elem is not None and count_elem.text else 0

        pmids = [id_elem.text for id_elem in root.findall(".//Id") if id_elem.text]
        return pmids, total_count

    async def fetch_multiple(self, pmids: list[str]) -> list[LiteratureArticle]:
        """
        Fetch multiple articles by PMID.

        Args:
            pmids: List of PubMed IDs to fetch

        Returns:
            List of LiteratureArticle objects
        """
        if not pmids:
            return []

        await self._rate_limit()

        params = self._build_params(id=",".join(pmids))

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.get(f"{self.BASE_URL}/efetch.fcgi", params=params)
            response.raise_for_status()

        return self._parse_articles_xml(response.text)

    def _parse_articles_xml(self, xml_text: str) -> list[LiteratureArticle]:
        """Parse all articles from an efetch response."""
        root = ET.fromstring(xml_text)
        articles = []
        for article_elem in root.findall(".//PubmedArticle"):
            pmid_elem = article_elem.find(".//PMID")
            if pmid_elem is None or not pmid_elem.text:
                continue
            articles.append(self._extract_article(article_elem, pmid_elem.text))
        return articles

    def _extract_article(self, article_elem: ET.Element, pmid: str) -> LiteratureArticle:
        """Extract article data from an XML element."""
        title_elem = article_elem.find(".//ArticleTitle")
        title = title_elem.text if title_elem is not None and title_elem.text else "Unknown Title"

        authors = []
        for author_elem in article_elem.findall(".//Author"):
            last_name = author_elem.find("LastName")
            initials = author_elem.find("Initials")
            if last_name is not None and last_name.text:
                author_str = last_name.text
                if initials is not None and initials.text:
                    author_str += f" {initials.text}"
                authors.append(author_str)

        year = 0
        pub_date = article_elem.find(".//PubDate")
        if pub_date is not None:
            year_elem = pub_date.find("Year")
            if year_elem is not None and year_elem.text and year_elem.text.isdigit():
                year = int(year_elem.text)
            if year == 0:
                # MedlineDate looks like "2024 Jan-Feb"
                medline_date = pub_date.find("MedlineDate")
                if medline_date is not None and medline_date.text:
                    match = re.search(r"(\d{4})", medline_date.text)
                    if match:
                        year = int(match.group(1))

        journal_elem = article_elem.find(".//Journal/Title")
        journal = journal_elem.text if journal_elem is not None and journal_elem.text else ""

        doi = None
        for article_id in article_elem.findall(".//ArticleId"):
            if article_id.get("IdType") == "doi":
                doi = article_id.text
                break

        abstract_parts = [
            elem.text for elem in article_elem.findall(".//Abstract/AbstractText") if elem.text
        ]

        publication_types = [
            elem.text for elem in article_elem.findall(".//PublicationType") if elem.text
        ]

        return LiteratureArticle(
            pmid=pmid,
            title=title,
            authors=authors,
            year=year,
            journal=journal,
            doi=doi,
            abstract=" ".join(abstract_parts),
            publication_types=publication_types,
            evidence_level=classify_evidence(publication_types),
        )
