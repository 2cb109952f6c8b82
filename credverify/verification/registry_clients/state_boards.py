"""
US state medical boards.

Board names and public lookup pages are shown to reviewers; only the boards
with a machine-readable search endpoint are queried automatically.
"""

from typing import NamedTuple, Optional


class StateBoard(NamedTuple):
    name: str
    url: str


STATE_MEDICAL_BOARDS = {
    "TX": StateBoard("Texas Medical Board", "https://www.tmb.state.tx.us/page/look-up-a-license"),
    "CA": StateBoard("Medical Board of California", "https://www.mbc.ca.gov/breeze/"),
    "NY": StateBoard(
        "New York State Office of the Professions",
        "http://www.op.nysed.gov/opsearches.htm",
    ),
    "FL": StateBoard(
        "Florida Department of Health",
        "https://mqa-internet.doh.state.fl.us/MQASearchServices/Home",
    ),
    "IL": StateBoard(
        "Illinois Department of Financial and Professional Regulation",
        "https://online-dfpr.micropact.com/lookup/licenselookup.aspx",
    ),
    "PA": StateBoard("Pennsylvania State Board of Medicine", "https://www.pals.pa.gov/"),
    "OH": StateBoard("State Medical Board of Ohio", "https://elicense.ohio.gov/oh_verifylicense"),
    "GA": StateBoard("Georgia Composite Medical Board", "https://gcmb.mylicense.com/verification/"),
    "NC": StateBoard("North Carolina Medical Board", "https://portal.ncmedboard.org/verification/"),
    "MI": StateBoard(
        "Michigan LARA",
        "https://aca-prod.accela.com/MILARA/GeneralProperty/LicenseeSearch.aspx",
    ),
    "NJ": StateBoard(
        "New Jersey Division of Consumer Affairs",
        "https://newjersey.mylicense.com/verification/",
    ),
    "VA": StateBoard("Virginia Board of Medicine", "https://dhp.virginiainteractive.org/Lookup/Index"),
    "AZ": StateBoard(
        "Arizona Medical Board",
        "https://azmd.gov/glsuiteweb/clients/azbom/public/webverificationsearch.aspx",
    ),
    "MA": StateBoard(
        "Massachusetts Board of Registration in Medicine",
        "https://checkalicense.hhs.state.ma.us/",
    ),
    "WA": StateBoard(
        "Washington Medical Commission",
        "https://fortress.wa.gov/doh/providercredentialsearch/",
    ),
    "CO": StateBoard(
        "Colorado Medical Board",
        "https://apps.colorado.gov/dora/licensing/Lookup/LicenseLookup.aspx",
    ),
    "TN": StateBoard("Tennessee Board of Medical Examiners", "https://apps.health.tn.gov/Licensure/"),
    "MD": StateBoard("Maryland Board of Physicians", "https://www.mbp.state.md.us/bpqapp/"),
    "MN": StateBoard(
        "Minnesota Board of Medical Practice",
        "https://mn.gov/boards/medical-practice/public-resources/license-lookup/",
    ),
    "WI": StateBoard("Wisconsin DSPS", "https://licensesearch.wi.gov/"),
}

# States, DC and territories
US_JURISDICTIONS = frozenset(
    {
        "AL", "AK", "AZ", "AR", "CA", "CO", "CT", "DE", "FL", "GA",
        "HI", "ID", "IL", "IN", "IA", "KS", "KY", "LA", "ME", "MD",
        "MA", "MI", "MN", "MS", "MO", "MT", "NE", "NV", "NH", "NJ",
        "NM", "NY", "NC", "ND", "OH", "OK", "OR", "PA", "RI", "SC",
        "SD", "TN", "TX", "UT", "VT", "VA", "WA", "WV", "WI", "WY",
        "DC", "PR", "VI", "GU",
    }
)


def get_state_board_url(state: Optional[str]) -> Optional[str]:
    board = STATE_MEDICAL_BOARDS.get((state or "").upper())
    return board.url if board else None
