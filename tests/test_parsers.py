# tests/test_parsers.py
from datetime import date

from source_monitor.parsers.chc_parser import MCOHandbookParser, PublicationsParser
from source_monitor.parsers.document_parser import DocumentLinkParser
from source_monitor.parsers.oim_parser import HandbookParser, OpsMemoParser
from source_monitor.parsers.pa_parser import BulletinParser, CodeParser

OPS_MEMO_URL = "http://services.dpw.state.pa.us/oimpolicymanuals/ma/300_OpsMemo/300_Operations_Memoranda.htm"
OPS_MEMO_HTML = """
<html><body>
  <a href="../index.htm">Back to Index</a>
  <a href="#top">Top</a>
  <table>
    <tr><td><a href="24-11-03.pdf">24-11-03 Estate Recovery Update</a></td><td></td></tr>
    <tr><td><a href="25-06-01.htm">25-06-01 Medical Assistance Renewals</a></td><td>June 2, 2025</td></tr>
    <tr><td><a href="Home.htm">Home</a></td></tr>
    <tr><td><a href="mailto:policy@pa.gov">Email the policy unit</a></td></tr>
  </table>
</body></html>
"""


def test_ops_memo_listing_extracts_memos_newest_first():
    items = OpsMemoParser().parse(OPS_MEMO_HTML, OPS_MEMO_URL)

    assert [item.description for item in items] == ["25-06-01", "24-11-03"]
    assert items[0].url == "http://services.dpw.state.pa.us/oimpolicymanuals/ma/300_OpsMemo/25-06-01.htm"
    assert items[0].date == date(2025, 6, 1)
    assert items[1].date == date(2024, 11, 1)


def test_navigation_links_are_dropped():
    titles = [item.title for item in OpsMemoParser().parse(OPS_MEMO_HTML, OPS_MEMO_URL)]
    assert "Home" not in titles
    assert "Back to Index" not in titles
    assert "Email the policy unit" not in titles


def test_duplicate_urls_keep_first_occurrence():
    html = """
    <html><body>
      <a href="memo.htm">Renewal guidance</a>
      <a href="./memo.htm#section-2">Renewal guidance (section 2)</a>
    </body></html>
    """
    items = OpsMemoParser().parse(html, OPS_MEMO_URL)
    assert len(items) == 1
    assert items[0].title == "Renewal guidance"


def test_handbook_sections_sort_numerically():
    html = """
    <html><body>
      <a href="403_10.htm">403.10 Countable Resources</a>
      <a href="403_2.htm">403.2 Resource Limits</a>
      <a href="403_1.htm">403.1 General Policy</a>
      <a href="Appendix_A.htm">Appendix A</a>
      <a href="TOC.htm">Table of Contents</a>
    </body></html>
    """
    base = "http://services.dpw.state.pa.us/oimpolicymanuals/ltc/Long-Term_Care_Handbook.htm"
    items = HandbookParser().parse(html, base)

    assert [item.description for item in items] == ["403.1", "403.2", "403.10", None]
    assert items[-1].title == "Appendix A"


def test_pa_code_sections_sort_numerically():
    base = "https://www.pacodeandbulletin.gov/Display/pacode?file=/secure/pacode/data/055/chapter258/chap258toc.html"
    html = """
    <html><body>
      <a href="/Display/pacode?file=/secure/pacode/data/055/chapter258/s258.10.html">§ 258.10. Hearings and appeals.</a>
      <a href="/Display/pacode?file=/secure/pacode/data/055/chapter258/s258.1.html">§ 258.1. Scope.</a>
      <a href="/Display/pacode?file=/secure/pacode/data/055/chapter258/s258.2.html">§ 258.2. Definitions.</a>
    </body></html>
    """
    items = CodeParser().parse(html, base)

    assert [item.description for item in items] == ["258.1", "258.2", "258.10"]
    assert items[0].url.startswith("https://www.pacodeandbulletin.gov/Display/pacode?file=")


BULLETIN_URL = "https://www.pacodeandbulletin.gov/Display/pabull"
BULLETIN_HTML = """
<html><body>
  <table>
    <tr>
      <td>Department of Human Services</td>
      <td><a href="/Display/pabull?file=/secure/pabulletin/data/vol55/55-20/701.html">Medical Assistance Fee Schedule [55 Pa.B. 3456]</a>
          May 17, 2025</td>
    </tr>
    <tr>
      <td>Department of Transportation</td>
      <td><a href="/Display/pabull?file=/secure/pabulletin/data/vol55/55-20/702.html">Vehicle Registration Fees</a></td>
    </tr>
  </table>
  <a href="/Display/pabull?file=/secure/pabulletin/data/vol55/55-20/703.html">Nursing Home Case-Mix Rates 55 Pa.B. 3500</a>
  <a href="/Display/pabull?file=/secure/pabulletin/data/vol55/55-20/701.html">Duplicate of the fee schedule</a>
  <a href="/Display/pabull/search">Search</a>
</body></html>
"""


def test_bulletin_agency_rows_prefix_titles_and_win_dedupe():
    items = BulletinParser().parse(BULLETIN_HTML, BULLETIN_URL)
    by_url = {item.url.rsplit("/", 1)[-1]: item for item in items}

    assert set(by_url) == {"701.html", "702.html", "703.html"}
    assert by_url["701.html"].title == "Department of Human Services: Medical Assistance Fee Schedule [55 Pa.B. 3456]"
    assert by_url["701.html"].description == "Department of Human Services"
    assert by_url["701.html"].date == date(2025, 5, 17)
    assert by_url["703.html"].description == "55 Pa.B. 3500"


def test_bulletin_keeps_titles_that_merely_contain_navigation_words():
    titles = [item.title for item in BulletinParser().parse(BULLETIN_HTML, BULLETIN_URL)]
    assert "Nursing Home Case-Mix Rates 55 Pa.B. 3500" in titles
    assert "Search" not in titles


def test_bulletin_dated_notices_sort_first():
    items = BulletinParser().parse(BULLETIN_HTML, BULLETIN_URL)
    assert items[0].date == date(2025, 5, 17)
    assert [item.title for item in items[1:]] == [
        "Department of Transportation: Vehicle Registration Fees",
        "Nursing Home Case-Mix Rates 55 Pa.B. 3500",
    ]


def test_bulletin_dhs_section_lists():
    html = """
    <html><body>
      <h3>Department of Human Services</h3>
      <ul>
        <li><a href="/Display/notice?id=9">Payments to Nursing Facilities</a></li>
      </ul>
    </body></html>
    """
    items = BulletinParser().parse(html, BULLETIN_URL)
    assert [item.title for item in items] == ["DHS: Payments to Nursing Facilities"]
    assert items[0].description == "Department of Human Services"


CHC_URL = "https://www.pa.gov/agencies/dhs/resources/medicaid/chc.html"
CHC_HTML = """
<html><body>
  <a href="#main">Skip to main content</a>
  <a href="/content/dam/dhs/documents/chc-participant-handbook.pdf">CHC Participant Handbook</a>
  <a href="/agencies/dhs/resources/chc/fair-hearings.html">Fair Hearing and Appeals</a>
  <a href="https://www.upmchealthplan.com/chc/member-guide.pdf">UPMC Member Guide</a>
  <a href="https://example.com/brochure.pdf">Sponsored Brochure</a>
  <a class="resource-link" href="/agencies/dhs/contact.html">Contact</a>
</body></html>
"""


def test_chc_publications_filter_external_hosts_and_classify():
    items = PublicationsParser().parse(CHC_HTML, CHC_URL)

    assert [(item.title, item.description) for item in items] == [
        ("CHC Participant Handbook", "Handbook"),
        ("Fair Hearing and Appeals", "Fair Hearing"),
        ("UPMC Member Guide", "Handbook"),
    ]


def test_mco_handbook_page_tags_items_with_mco():
    base = "https://www.upmchealthplan.com/chc/members/handbook.aspx"
    html = """
    <html><body>
      <a href="/docs/provider-directory.aspx">Provider Directory Guide</a>
      <a href="/docs/chc-member-handbook-2025.pdf">2025 Member Handbook</a>
      <a href="/">Home</a>
    </body></html>
    """
    items = MCOHandbookParser().parse(html, base)

    assert [item.title for item in items] == ["2025 Member Handbook", "Provider Directory Guide"]
    assert {item.description for item in items} == {"UPMC"}


def test_generic_page_keeps_same_site_documents_by_title():
    base = "https://www.pa.gov/agencies/dhs/resources/medicaid/ltc.html"
    html = """
    <html><body>
      <a href="/docs/spousal-impoverishment.pdf">Spousal Impoverishment Standards</a>
      <a href="/docs/asset-limits.pdf">Asset Limits</a>
      <a href="https://elsewhere.org/report.pdf">Outside Report</a>
    </body></html>
    """
    items = DocumentLinkParser().parse(html, base)
    assert [item.title for item in items] == ["Asset Limits", "Spousal Impoverishment Standards"]
    assert items[0].url == "https://www.pa.gov/docs/asset-limits.pdf"


def test_page_without_items_is_not_an_error():
    assert OpsMemoParser().parse("<html><body><p>No memos yet.</p></body></html>", OPS_MEMO_URL) == []
