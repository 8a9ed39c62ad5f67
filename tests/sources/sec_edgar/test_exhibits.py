"""Tests for exhibit discovery and retrieval."""

from pathlib import Path

import pytest

from guidance_credibility.errors import ParseFailureError, UpstreamUnavailableError
from guidance_credibility.sources.sec_edgar.exhibits import ExhibitDiscoverer, ExhibitFetcher

from tests.conftest import INDEX_HTML, PRESS_RELEASE_HTML, FakeClient, make_filing

ARCHIVE = "https://www.sec.gov/Archives/edgar/data/789019/000095017025010491"
INDEX_URL = f"{ARCHIVE}/0000950170-25-010491-index.htm"


class TestExhibitClassification:
    """Tests for ExhibitDiscoverer.classify."""

    @pytest.fixture
    def discoverer(self) -> ExhibitDiscoverer:
        return ExhibitDiscoverer(FakeClient())

    def test_declared_type(self, discoverer: ExhibitDiscoverer):
        """Test classification from the declared document type."""
        assert discoverer.classify(["EX-99.1"], "", "press.htm") == "99.1"

    def test_row_text(self, discoverer: ExhibitDiscoverer):
        """Test classification from the index row text."""
        assert discoverer.classify([], "Exhibit 99.2 Investor metrics", "metrics.htm") == "99.2"

    def test_file_name(self, discoverer: ExhibitDiscoverer):
        """Test classification from the file name."""
        assert discoverer.classify([], "", "d12345dex991.htm") == "99.1"
        assert discoverer.classify([], "", "ex99-1.htm") == "99.1"

    def test_other_series_ignored(self, discoverer: ExhibitDiscoverer):
        """Test that exhibits outside 99.x are ignored."""
        assert discoverer.classify(["EX-10.1"], "Exhibit 10.1", "ex10-1.htm") is None

    def test_primary_document_not_an_exhibit(self, discoverer: ExhibitDiscoverer):
        """Test that the primary document is not classified as an exhibit."""
        assert discoverer.classify(["8-K"], "1 8-K msft-20250129.htm", "msft-20250129.htm") is None


class TestExhibitDiscoverer:
    """Tests for ExhibitDiscoverer.discover."""

    def test_discovers_exhibits_in_order(self):
        """Test that exhibits are listed in index order."""
        client = FakeClient({INDEX_URL: INDEX_HTML})
        exhibits = ExhibitDiscoverer(client).discover(make_filing())

        assert [e.exhibit_no for e in exhibits] == ["99.1", "99.2"]
        assert exhibits[0].url == f"{ARCHIVE}/msft-ex99_1.htm"
        assert exhibits[0].description == "PRESS RELEASE"
        assert exhibits[0].content_type == "text/html"

    def test_deduplicates_rows(self):
        """Test that repeated index rows yield one exhibit."""
        row = (
            '<tr><td>2</td><td>PRESS RELEASE</td>'
            '<td><a href="/Archives/edgar/data/789019/000095017025010491/msft-ex99_1.htm">x</a></td>'
            "<td>EX-99.1</td></tr>"
        )
        client = FakeClient({INDEX_URL: f"<table>{row}{row}</table>"})
        exhibits = ExhibitDiscoverer(client).discover(make_filing())
        assert len(exhibits) == 1

    def test_inline_viewer_links_unwrapped(self):
        """Test that inline viewer links resolve to the archive URL."""
        row = (
            '<tr><td><a href="/ix?doc=/Archives/edgar/data/789019/000095017025010491/msft-ex99_1.htm">'
            "msft-ex99_1.htm</a></td><td>EX-99.1</td></tr>"
        )
        client = FakeClient({INDEX_URL: f"<table>{row}</table>"})
        exhibits = ExhibitDiscoverer(client).discover(make_filing())
        assert exhibits[0].url == f"{ARCHIVE}/msft-ex99_1.htm"

    def test_falls_back_to_primary_when_index_missing(self):
        """Test the primary document fallback when the index is missing."""
        exhibits = ExhibitDiscoverer(FakeClient()).discover(make_filing())

        assert len(exhibits) == 1
        assert exhibits[0].is_primary is True
        assert exhibits[0].url == f"{ARCHIVE}/msft-20250129.htm"

    def test_falls_back_to_primary_when_no_exhibits(self):
        """Test the primary document fallback when the index lists no exhibits."""
        client = FakeClient({INDEX_URL: "<html><body><table></table></body></html>"})
        exhibits = ExhibitDiscoverer(client).discover(make_filing())
        assert [e.exhibit_no for e in exhibits] == ["primary"]


class TestExhibitFetcher:
    """Tests for ExhibitFetcher."""

    def _exhibit(self):
        return ExhibitDiscoverer(FakeClient({INDEX_URL: INDEX_HTML})).discover(make_filing())[0]

    def test_fetch_normalizes_and_caches_text(self, temp_dir: Path):
        """Test that fetched text is normalized and written to disk."""
        exhibit = self._exhibit()
        client = FakeClient({exhibit.url: PRESS_RELEASE_HTML})
        fetcher = ExhibitFetcher(client, text_dir=temp_dir)

        text, path = fetcher.fetch(make_filing(), exhibit)

        assert "plus or minus 2%" in text
        assert "\n" not in text
        assert path == temp_dir / "0000789019" / "0000950170-25-010491" / "msft-ex99_1.htm.txt"
        assert path.read_text(encoding="utf-8") == text

    def test_cached_text_is_not_downloaded_again(self, temp_dir: Path):
        """Test that an on-disk text copy is reused."""
        exhibit = self._exhibit()
        client = FakeClient({exhibit.url: PRESS_RELEASE_HTML})
        fetcher = ExhibitFetcher(client, text_dir=temp_dir)

        fetcher.fetch(make_filing(), exhibit)
        fetcher.fetch(make_filing(), exhibit)

        assert client.fetched == [exhibit.url]

    def test_replace_existing_downloads_again(self, temp_dir: Path):
        """Test that replace_existing refetches the document."""
        exhibit = self._exhibit()
        client = FakeClient({exhibit.url: PRESS_RELEASE_HTML})
        fetcher = ExhibitFetcher(client, text_dir=temp_dir)

        fetcher.fetch(make_filing(), exhibit)
        fetcher.fetch(make_filing(), exhibit, replace_existing=True)

        assert len(client.fetched) == 2

    def test_upstream_failure_propagates(self):
        """Test that a failed download raises UpstreamUnavailableError."""
        exhibit = self._exhibit()
        with pytest.raises(UpstreamUnavailableError):
            ExhibitFetcher(FakeClient()).fetch(make_filing(), exhibit)

    def test_malformed_pdf_raises_parse_failure(self):
        """Test that an unreadable PDF raises ParseFailureError."""
        exhibit = self._exhibit()
        client = FakeClient({exhibit.url: (b"not a pdf", "application/pdf")})
        with pytest.raises(ParseFailureError):
            ExhibitFetcher(client).fetch(make_filing(), exhibit)
