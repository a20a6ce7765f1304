"""Pytest configuration and fixtures."""

from datetime import date, datetime, timezone
from typing import Any, Dict, List

import pytest

from grant_discovery.adapters import BaseAdapter
from grant_discovery.catalog import ModuleCatalog
from grant_discovery.database import InMemoryStore
from grant_discovery.models import AmountRange, FetchContext, Module, Opportunity, SourceFields
from grant_discovery.normalizer import compute_identity_key


class StubAdapter(BaseAdapter):
    """In-process source: returns canned payloads, or raises ``error``."""

    def __init__(self, source_id: str, payloads: List[Dict[str, Any]] = None, error: Exception = None):
        self._source_id = source_id
        self.payloads = payloads or []
        self.error = error
        self.contexts: List[FetchContext] = []

    @property
    def source_id(self) -> str:
        return self._source_id

    async def fetch_payloads(self, client, context):
        self.contexts.append(context)
        if self.error is not None:
            raise self.error
        return list(self.payloads)

    def map_fields(self, payload: Dict[str, Any]) -> SourceFields:
        return SourceFields(
            title=payload.get("title"),
            agency=payload.get("agency"),
            description=payload.get("description"),
            amount_min=payload.get("min"),
            amount_max=payload.get("max"),
            deadline=payload.get("deadline"),
        )


@pytest.fixture
def stub_adapter():
    """Factory for StubAdapter instances."""
    return StubAdapter


@pytest.fixture
def fixed_now():
    return datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def rural_health_module():
    return Module(
        module_id="rural-health",
        display_name="Rural Health",
        features={
            "rural": 1.0,
            "rural health": 1.0,
            "telehealth": 1.0,
            "telemedicine": 1.0,
            "underserved": 1.0,
            "healthcare access": 1.0,
        },
    )


@pytest.fixture
def veterans_module():
    return Module(
        module_id="veterans-transition",
        display_name="Veterans Transition",
        features={"veteran": 1.0, "veterans": 1.0, "transition": 1.0, "employment": 1.0},
    )


@pytest.fixture
def catalog(store, rural_health_module, veterans_module):
    """Catalog seeded with two modules."""
    catalog = ModuleCatalog(store)
    catalog.seed([rural_health_module, veterans_module])
    return catalog


@pytest.fixture
def make_opportunity():
    """Factory for normalized Opportunity records."""

    def _make(
        title: str = "Rural Health Grant",
        agency: str = "USDA",
        deadline: date = date(2030, 3, 1),
        description: str = "",
        source_id: str = "grants_gov",
        amount_range: AmountRange = None,
        **fields: Any,
    ) -> Opportunity:
        return Opportunity(
            identity_key=compute_identity_key(title, agency, deadline),
            title=title,
            issuing_agency=agency,
            description=description,
            application_deadline=deadline,
            amount_range=amount_range,
            source_ids=[source_id],
            raw_payloads={source_id: {"title": title}},
            **fields,
        )

    return _make


@pytest.fixture
def sample_grants_gov_response():
    """Sample Grants.gov API response."""
    return {
        "errorcode": 0,
        "msg": "Webservice Succeeds",
        "data": {
            "hitCount": 2,
            "oppHits": [
                {
                    "id": "335512",
                    "number": "USDA-RUS-DLT-2026",
                    "title": "Distance Learning and Telemedicine Grants",
                    "agencyName": "Rural Utilities Service",
                    "openDate": "01/15/2026",
                    "closeDate": "03/18/2030",
                    "synopsis": "Telemedicine and distance learning for rural communities",
                    "awardCeiling": 1000000,
                    "awardFloor": 50000,
                },
                {
                    "id": "335513",
                    "number": "NSF-26-001",
                    "title": "Cyberinfrastructure for Sustained Scientific Innovation",
                    "agencyName": "National Science Foundation",
                    "openDate": "02/01/2026",
                    "closeDate": "",
                    "synopsis": "NSF cyberinfrastructure research and development",
                },
            ],
        },
    }


@pytest.fixture
def sample_sam_gov_response():
    """Sample SAM.gov API response."""
    return {
        "totalRecords": 1,
        "opportunitiesData": [
            {
                "noticeId": "abc123",
                "solicitationNumber": "VA-26-R-0001",
                "title": "Veteran Employment Transition Services",
                "organizationName": "Department of Veterans Affairs",
                "fullParentPathName": "VETERANS AFFAIRS, DEPARTMENT OF",
                "postedDate": "2026-01-15",
                "responseDeadLine": "2030-03-18T17:00:00-04:00",
                "type": "Solicitation",
                "description": "Support for veterans transitioning to civilian employment",
            }
        ],
    }


@pytest.fixture
def sample_sbir_gov_response():
    """Sample SBIR.gov API response."""
    return [
        {
            "solicitation_number": "N261-001",
            "solicitation_id": 12345,
            "solicitation_title": "Navy SBIR 26.1",
            "topic_title": "Artificial Intelligence for Naval Systems",
            "agency": "DOD",
            "close_date": "2030-03-18",
            "description": "Phase I SBIR for AI development",
            "award_amount_max": "$1,500,000",
            "solicitation_url": "https://www.sbir.gov/node/12345",
        }
    ]


@pytest.fixture
def sample_nih_response():
    """Sample NIH RePORTER API response."""
    return {
        "meta": {"total": 1},
        "results": [
            {
                "appl_id": 10987654,
                "project_num": "5R01MD012345-04",
                "project_title": "Telehealth Interventions in Rural Appalachia",
                "abstract_text": "Improving healthcare access for underserved rural populations",
                "agency_ic_admin": {"abbreviation": "MD", "name": "National Institute on Minority Health and Health Disparities"},
                "award_amount": 612345,
                "project_end_date": "2030-06-30T00:00:00",
            }
        ],
    }


@pytest.fixture
def sample_nsf_response():
    """Sample NSF Award Search API response."""
    return {
        "response": {
            "award": [
                {
                    "id": "2412345",
                    "title": "CAREER: Resilient Food Systems",
                    "abstractText": "Food security research for rural regions",
                    "agency": "NSF",
                    "fundsObligatedAmt": "550000",
                    "expDate": "08/31/2030",
                }
            ]
        }
    }


@pytest.fixture
def sample_federal_register_response():
    """Sample Federal Register documents API response."""
    return {
        "count": 1,
        "results": [
            {
                "document_number": "2026-01234",
                "title": "Notice of Funding Opportunity: Community Food Projects",
                "abstract": "USDA announces the availability of grant funds for food security projects",
                "agencies": [{"name": "Agriculture Department", "raw_name": "DEPARTMENT OF AGRICULTURE"}],
                "comments_close_on": "2030-04-01",
                "html_url": "https://www.federalregister.gov/documents/2026/01/15/2026-01234/notice",
            }
        ],
    }


@pytest.fixture
def sample_usaspending_response():
    """Sample USAspending.gov spending_by_award response."""
    return {
        "limit": 100,
        "results": [
            {
                "internal_id": 123456789,
                "Award ID": "H2ARH39976",
                "Recipient Name": "APPALACHIAN REGIONAL HEALTHCARE INC",
                "Award Amount": 1250000.0,
                "Description": "RURAL HEALTH CARE SERVICES OUTREACH PROGRAM",
                "Awarding Agency": "Department of Health and Human Services",
                "CFDA Number": "93.912",
                "Start Date": "2025-09-01",
                "generated_internal_id": "ASST_NON_H2ARH39976_7522",
            }
        ],
        "page_metadata": {"page": 1, "hasNext": False},
    }


@pytest.fixture
def sample_fema_response():
    """Sample OpenFEMA DisasterDeclarationsSummaries response."""
    return {
        "metadata": {"count": 2},
        "DisasterDeclarationsSummaries": [
            {
                "disasterNumber": 4899,
                "state": "KY",
                "declarationType": "DR",
                "declarationDate": "2026-01-05T00:00:00.000Z",
                "incidentType": "Flood",
                "declarationTitle": "SEVERE STORMS AND FLOODING",
                "ihProgramDeclared": True,
                "paProgramDeclared": True,
                "hmProgramDeclared": False,
                "designatedArea": "Perry (County)",
            },
            {
                "disasterNumber": 4899,
                "state": "KY",
                "declarationType": "DR",
                "declarationDate": "2026-01-05T00:00:00.000Z",
                "incidentType": "Flood",
                "declarationTitle": "SEVERE STORMS AND FLOODING",
                "ihProgramDeclared": True,
                "paProgramDeclared": True,
                "hmProgramDeclared": False,
                "designatedArea": "Knott (County)",
            },
        ],
    }
