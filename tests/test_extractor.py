"""Tests for contact extraction."""

from leadscout.extractor import (
    extract_contacts,
    extract_from_html,
    extract_kind,
    html_to_text,
    normalize_contacts,
)
from leadscout.models import ContactBundle

ACME_PAGE = """
Acme Robotics - warehouse automation.
Email us: jane@acme.io or info@acme.io
Call +1 (415) 555-0123.
Code: https://github.com/acme-labs
Follow https://twitter.com/acmehq and https://www.instagram.com/acme.robotics/
Partners: https://partner-one.com https://partner-two.com/about
Docs: https://acme.io/docs
Community: https://discord.gg/AbCdEf
"""


class TestExtractContacts:
    """Tests for extract_contacts."""

    def test_acme_page(self) -> None:
        """Test a realistic page yields one clean bundle."""
        bundle = extract_contacts(ACME_PAGE, source_url="https://acme.io/about")
        assert bundle.emails == ["jane@acme.io"]  # info@ is a generic inbox
        assert bundle.phones == ["14155550123"]
        assert bundle.github == ["acme-labs"]
        assert bundle.twitter == ["acmehq"]
        assert bundle.instagram == ["acme.robotics"]
        assert bundle.discord == ["AbCdEf"]
        assert bundle.websites == ["https://partner-one.com", "https://partner-two.com"]

    def test_self_domain_excluded(self) -> None:
        """Test the page's own domain is not reported as a website."""
        bundle = extract_contacts(ACME_PAGE, source_url="https://acme.io/about")
        assert "https://acme.io" not in bundle.websites

    def test_targets_restrict_kinds(self) -> None:
        bundle = extract_contacts(ACME_PAGE, targets=["emails", "github"])
        assert bundle.emails == ["jane@acme.io"]
        assert bundle.github == ["acme-labs"]
        assert bundle.twitter == []
        assert bundle.phones == []

    def test_empty_text(self) -> None:
        assert extract_contacts("").is_empty()

    def test_bare_handles_not_matched(self) -> None:
        """Test @mentions in prose do not become social handles."""
        bundle = extract_contacts("Ping @acmehq or @jane on any platform")
        assert bundle.twitter == []
        assert bundle.instagram == []

    def test_duplicates_collapse(self) -> None:
        text = "https://github.com/acme-labs and again https://github.com/Acme-Labs"
        assert extract_contacts(text).github == ["acme-labs"]

    def test_dotted_numbers_not_phones(self) -> None:
        """Test server addresses, release dates and versions stay out of phones."""
        text = "Server 192.168.10.20 is up. Released 2024.01.15, version 10.20.30.40."
        assert extract_contacts(text, targets=["phones"]).phones == []


class TestExtractKind:
    """Tests for extract_kind."""

    def test_website_cap(self) -> None:
        """Test at most max_websites root domains are kept."""
        text = " ".join(f"https://site{i}.com" for i in range(6))
        assert extract_kind(text, "websites", max_websites=3) == [
            "https://site0.com",
            "https://site1.com",
            "https://site2.com",
        ]

    def test_junk_handles_dropped(self) -> None:
        text = "https://twitter.com/intent https://twitter.com/share https://twitter.com/acmehq"
        assert extract_kind(text, "twitter") == ["acmehq"]


class TestNormalizeContacts:
    """Tests for normalize_contacts."""

    def test_bare_domain_gets_scheme(self) -> None:
        bundle = normalize_contacts(ContactBundle(websites=["acme.io"]))
        assert bundle.websites == ["https://acme.io"]

    def test_handle_given_as_url(self) -> None:
        bundle = normalize_contacts(ContactBundle(github=["https://github.com/acme-labs"]))
        assert bundle.github == ["acme-labs"]

    def test_at_prefixed_handle(self) -> None:
        bundle = normalize_contacts(ContactBundle(twitter=["@AcmeHQ"]))
        assert bundle.twitter == ["acmehq"]

    def test_phone_formatting(self) -> None:
        bundle = normalize_contacts(ContactBundle(phones=["+1 415-555-0123"]))
        assert bundle.phones == ["14155550123"]

    def test_own_site_survives(self) -> None:
        """Test no source domain applies, so a lead's own site is kept."""
        bundle = normalize_contacts(ContactBundle(websites=["https://acme.io"]))
        assert bundle.websites == ["https://acme.io"]


class TestHtml:
    """Tests for HTML flattening."""

    def test_keeps_hrefs(self) -> None:
        html = '<html><body><p>Hi</p><a href="https://github.com/acme-labs">Code</a></body></html>'
        text = html_to_text(html)
        assert "Hi" in text
        assert "https://github.com/acme-labs" in text

    def test_drops_scripts(self) -> None:
        html = "<html><body><script>var x = 'evil@tracker.io';</script><p>Visible</p></body></html>"
        text = html_to_text(html)
        assert "evil@tracker.io" not in text
        assert "Visible" in text

    def test_empty(self) -> None:
        assert html_to_text("") == ""

    def test_extract_from_html(self) -> None:
        html = """
        <html><body>
          <p>Write to <a href="mailto:jane@acme.io">Jane</a></p>
          <footer><a href="https://www.linkedin.com/company/acme-robotics/">LinkedIn</a></footer>
        </body></html>
        """
        bundle = extract_from_html(html, source_url="https://acme.io")
        assert bundle.emails == ["jane@acme.io"]
        assert bundle.linkedin == ["acme-robotics"]
