import httpx
import logging
from dataclasses import dataclass
from typing import Optional
from app.config import config
from app.jobs.content import invite_email_body
from app.jobs.rate_limiter import RateLimiter
from app.jobs.retry import with_retry

logger = logging.getLogger(__name__)


class SpacesApiError(Exception):
    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.status_code = status_code


@dataclass
class WidgetContext:
    layout_id: str
    section_id: str
    widget: dict


class SpacesClient:
    """
    Thin async client for the Gainsight Spaces endpoints used by the record processor.
    Every attempt takes a rate limiter slot; attempts are retried with exponential backoff.
    """

    def __init__(
        self,
        base_url: str,
        cookie: str,
        rate_limiter: RateLimiter,
        http_client: httpx.AsyncClient = None,
        max_attempts: int = None,
        retry_delay: float = None,
        timeout: float = None,
        sleep=None,
    ):
        self.base_url = base_url.rstrip("/")
        self.cookie = cookie
        self.rate_limiter = rate_limiter
        self.max_attempts = max_attempts or config.MAX_RETRIES
        self.retry_delay = config.RETRY_DELAY_SECONDS if retry_delay is None else retry_delay
        self._sleep = sleep
        self._owns_client = http_client is None
        self.client = http_client or httpx.AsyncClient(
            timeout=timeout or config.REQUEST_TIMEOUT_SECONDS,
            follow_redirects=True,
        )

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        await self.aclose()

    async def aclose(self):
        if self._owns_client:
            await self.client.aclose()

    async def _request(self, method: str, path: str, payload=None, params: dict = None, parse=None):
        """
        Sends one logical call. `parse` runs inside each attempt, so a malformed
        payload is retried like a transport failure.
        """
        url = f"{self.base_url}{path}"

        async def attempt():
            await self.rate_limiter.acquire()
            response = await self.client.request(
                method,
                url,
                json=payload,
                params=params,
                headers={"Cookie": self.cookie, "Content-Type": "application/json"},
            )
            if response.status_code >= 400:
                raise SpacesApiError(f"HTTP error! status: {response.status_code}", response.status_code)
            data = response.json() if response.content else {}
            return parse(data) if parse else data

        kwargs = {"sleep": self._sleep} if self._sleep else {}
        return await with_retry(
            attempt,
            max_attempts=self.max_attempts,
            base_delay=self.retry_delay,
            description=f"{method} {path}",
            **kwargs,
        )

    async def resolve_widget_context(self, company_id: str) -> WidgetContext:
        def parse(data: dict) -> WidgetContext:
            layout = (data.get("data") or {}).get("layout")
            sections = (layout or {}).get("sections") or []
            section = sections[0] if sections else {}
            widgets = (section.get("config") or {}).get("widgets") or []

            if not layout or not section.get("sectionId") or not widgets:
                raise SpacesApiError("Incomplete layout or widget information")

            return WidgetContext(layout_id=layout.get("layoutId"), section_id=section["sectionId"], widget=widgets[0])

        return await self._request(
            "POST",
            "/v2/galaxy/spaces/assignment/resolve/cid",
            {
                "companyId": company_id,
                "entityId": company_id,
                "entityType": "Company",
                "sharingType": "external",
            },
            parse=parse,
        )

    async def update_widget(self, company_id: str, layout_id: str, widget: dict):
        return await self._request(
            "PUT",
            f"/v2/galaxy/spaces/customisation/save/Company/{company_id}/{layout_id}",
            widget,
        )

    async def add_space_notes(self, company_id: str, section_id: str, layout_id: str, notes: str):
        return await self._request(
            "PUT",
            "/v2/galaxy/spaces/cr360/data/section",
            {
                "entityId": company_id,
                "entityType": "company",
                "layoutId": layout_id,
                "sectionId": section_id,
                "data": {"SpacesNotes": notes},
            },
            params={"ignoreMasked": "true"},
        )

    async def link_success_plan(self, success_plan_id: str):
        return await self._request(
            "PUT",
            "/v1/successPlan/spaces-config",
            {"request": [{"assetId": success_plan_id, "sharedWithSpaces": True}]},
        )

    async def search_person(self, company_id: str, email: str) -> Optional[dict]:
        data = await self._request(
            "POST",
            "/v1/spaces/search/Company/person",
            {"entityId": company_id, "companyId": company_id, "searchString": email},
        )
        people = data.get("data") or []
        person = people[0] if people else None
        if person and person.get("person__Email") and person.get("person__Gsid"):
            return person
        return None

    async def add_person(self, company_id: str, email: str):
        return await self._request(
            "PUT",
            "/v1/peoplemgmt/v1.0/people",
            {
                "Name": email.split("@")[0],
                "Email": email,
                "companies": [{"Company_ID": company_id}],
            },
            params={"areaName": "PersonC360UI"},
        )

    async def send_invitation(self, company_id: str, person_id: str, email: str, contact_name: str = None):
        return await self._request(
            "POST",
            "/v1/spaces/invite/company/persons",
            {
                "entityId": company_id,
                "companyId": company_id,
                "users": [
                    {
                        "personId": person_id,
                        "email": email,
                        "userName": "System",
                        "permissionType": "DELEGATE",
                    }
                ],
                "emailBody": invite_email_body(contact_name),
                "emailSubject": config.INVITE_EMAIL_SUBJECT,
            },
        )

    async def find_or_create_user(self, company_id: str, email: str) -> Optional[str]:
        """Resolves an internal (cockpit) user id by e-mail, creating the user when missing."""
        data = await self._request(
            "POST",
            "/v1/api/standardobjects/user/findOrCreateRecord",
            {
                "SystemType": "External",
                "IsActiveUser": "true",
                "CompanyID": company_id,
                "Email": email,
                "Name": None,
                "FirstName": None,
                "LastName": None,
            },
        )
        records = ((data.get("data") or {}).get("result")) or []
        if records and records[0].get("Gsid"):
            return records[0]["Gsid"]
        return None

    async def list_open_ctas(self, company_id: str) -> list[dict]:
        data = await self._request(
            "POST",
            "/v1/cockpit/cta/list",
            {"filters": {"CompanyId": company_id, "IsClosed": False}},
        )
        return (data.get("data") or {}).get("ctas") or []

    async def reassign_cta(self, cta_id: str, owner_id: str):
        return await self._request(
            "PUT",
            "/v1/cockpit/cta",
            {"records": [{"Gsid": cta_id, "OwnerId": owner_id}]},
        )
