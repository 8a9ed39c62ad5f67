"""Tests for guidance pattern families."""

from guidance_credibility.guidance.patterns import (
    defers_guidance_to_call,
    detect_basis,
    issuer_aliases,
    match_dollar_range,
    match_eps_range,
    match_midpoint_percent,
    match_segment_ranges,
)
from guidance_credibility.guidance.text import guidance_candidates, normalize_text


class TestMidpointPercent:
    """Tests for match_midpoint_percent."""

    def test_plus_or_minus(self):
        """Test that a midpoint plus or minus a percentage becomes a range."""
        found = match_midpoint_percent("Revenue is expected to be $5.2 billion, plus or minus 2%.")

        assert found.low == 5096.0
        assert found.high == 5304.0
        assert found.units == "USD_M"

    def test_symbol_and_millions(self):
        """Test the +/- symbol with a millions midpoint."""
        found = match_midpoint_percent("We see revenue of $800 million +/- 5 percent.")
        assert (found.low, found.high) == (760.0, 840.0)

    def test_no_percentage(self):
        """Test that a bare amount is not a midpoint range."""
        assert match_midpoint_percent("Revenue was $5.2 billion.") is None


class TestDollarRange:
    """Tests for match_dollar_range."""

    def test_between_millions(self):
        """Test a "between X and Y" range in millions."""
        found = match_dollar_range("We expect revenue to be between $500 million and $520 million.")

        assert (found.low, found.high) == (500.0, 520.0)
        assert found.units == "USD_M"

    def test_shared_billion_unit(self):
        """Test that the low value takes the unit of the high value."""
        found = match_dollar_range("Revenue in the range of $28.05 to $28.35 billion.")
        assert (found.low, found.high) == (28050.0, 28350.0)

    def test_thousands_separators(self):
        """Test values written with thousands separators."""
        found = match_dollar_range("Revenue of $1,200 million - $1,250 million.")
        assert (found.low, found.high) == (1200.0, 1250.0)

    def test_requires_unit(self):
        """Test that a range without a billion/million unit is not revenue."""
        assert match_dollar_range("EPS of $1.52 to $1.56.") is None


class TestSegmentRanges:
    """Tests for match_segment_ranges."""

    def test_named_segment(self):
        """Test a segment name carrying a segment vocabulary word."""
        found = match_segment_ranges("We expect Intelligent Cloud revenue of $25.55 to $25.85 billion.")

        assert len(found) == 1
        assert found[0].segment == "Intelligent Cloud"
        assert (found[0].low, found[0].high) == (25550.0, 25850.0)

    def test_multi_word_segment(self):
        """Test a segment name joined with "and"."""
        found = match_segment_ranges(
            "Productivity and Business Processes revenue is expected between $29.6 and $29.9 billion."
        )
        assert found[0].segment == "Productivity and Business Processes"

    def test_segment_cue_word(self):
        """Test that the word "segment" marks any capitalized name as a segment."""
        found = match_segment_ranges("Acme Widgets segment revenue of $1.1 to $1.2 billion.")
        assert found[0].segment == "Acme Widgets"

    def test_total_revenue_is_not_a_segment(self):
        """Test that total revenue has no segment."""
        assert match_segment_ranges("Total revenue is expected to be $500 million to $520 million.") == []

    def test_capitalized_name_without_cue(self):
        """Test that a capitalized name with no segment cue is not a segment."""
        assert match_segment_ranges("Acme revenue is expected to be $1.1 to $1.2 billion.") == []

    def test_issuer_name_is_consolidated(self):
        """Test that the issuer's own name before "revenue" is not a segment."""
        sentence = "Microsoft revenue is expected to be between $60 billion and $61 billion."

        assert match_segment_ranges(sentence, issuer="MICROSOFT CORP") == []
        assert match_segment_ranges("Microsoft Cloud revenue of $40 to $41 billion.", issuer="MICROSOFT CORP")

    def test_two_segments_in_one_sentence(self):
        """Test that each segment keeps the range that follows it."""
        found = match_segment_ranges(
            "We expect Intelligent Cloud revenue of $25.55 to $25.85 billion and "
            "More Personal Computing revenue of $12.3 to $12.7 billion."
        )

        assert [(f.segment, f.low, f.high) for f in found] == [
            ("Intelligent Cloud", 25550.0, 25850.0),
            ("More Personal Computing", 12300.0, 12700.0),
        ]

    def test_known_segments_only(self):
        """Test that only the known segments match when a list is given."""
        sentence = "Gaming revenue of $3.1 to $3.3 billion and Data Center revenue of $30 to $31 billion."

        found = match_segment_ranges(sentence, segments=("Data Center",))

        assert [f.segment for f in found] == ["Data Center"]

    def test_issuer_aliases(self):
        """Test that legal suffixes and a leading "The" are dropped from aliases."""
        aliases = issuer_aliases("The Walt Disney Co.")

        assert "walt disney" in aliases
        assert "the walt disney" in aliases
        assert issuer_aliases(None) == set()


class TestEpsRange:
    """Tests for match_eps_range."""

    def test_eps_range_at_sentence_end(self):
        """Test an EPS range ending the sentence."""
        found = match_eps_range("We expect non-GAAP diluted EPS of $1.52 to $1.56.")

        assert (found.low, found.high) == (1.52, 1.56)
        assert found.units == "EPS"

    def test_diluted_earnings_without_eps(self):
        """Test that "diluted earnings" is enough per-share context."""
        found = match_eps_range("Microsoft expects diluted earnings of $1.52 to $1.56 for Q3.")
        assert (found.low, found.high) == (1.52, 1.56)

    def test_earnings_call_is_not_eps_context(self):
        """Test that mentioning the earnings call does not make a range EPS."""
        assert match_eps_range("On the earnings call we discussed margins of 1.52 to 1.56 points.") is None

    def test_requires_per_share_context(self):
        """Test that a decimal range without per-share context is ignored."""
        assert match_eps_range("Gross margin of 1.52 to 1.56 points.") is None

    def test_currency_unit_is_not_eps(self):
        """Test that a range with a billion unit is not EPS."""
        assert match_eps_range("Earnings per share aside, revenue of $1.52 to $1.56 billion.") is None


class TestBasisAndDeferral:
    """Tests for detect_basis and defers_guidance_to_call."""

    def test_basis(self):
        """Test GAAP, non-GAAP and unknown basis detection."""
        assert detect_basis("non-GAAP diluted EPS") == "non-GAAP"
        assert detect_basis("Non GAAP operating margin") == "non-GAAP"
        assert detect_basis("GAAP diluted EPS") == "GAAP"
        assert detect_basis("diluted EPS") == "unknown"

    def test_deferred_guidance(self):
        """Test that guidance promised for the call is detected."""
        assert defers_guidance_to_call(
            "The company will provide forward-looking guidance on the earnings call."
        )
        assert defers_guidance_to_call("Management plans to discuss its outlook during the conference call.")

    def test_passive_deferred_guidance(self):
        """Test the passive "guidance will be provided on the call" form."""
        assert defers_guidance_to_call("Guidance for the third quarter will be provided on the earnings call.")
        assert defers_guidance_to_call("Our outlook will be discussed during our quarterly conference call.")

    def test_guidance_in_document_is_not_deferred(self):
        """Test that numeric guidance in the document is not a deferral."""
        assert not defers_guidance_to_call("Revenue is expected to be $5.2 billion, plus or minus 2%.")


class TestText:
    """Tests for text normalization and sentence chunking."""

    def test_normalize_unifies_dashes(self):
        """Test that en dashes and repeated spaces are normalized."""
        assert normalize_text("$1.52–$1.56  per  share") == "$1.52-$1.56 per share"

    def test_candidates_keep_guidance_sentences(self):
        """Test that only sentences with guidance keywords are candidates."""
        text = "Revenue grew 10%. We expect revenue between $500 million and $520 million. Thank you!"
        assert guidance_candidates(text) == ["We expect revenue between $500 million and $520 million."]
