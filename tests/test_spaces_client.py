import asyncio
import json

import httpx
import pytest

from app.jobs.rate_limiter import RateLimiter
from app.jobs.record_processor import RecordProcessor
from app.models.records import RecordStatus
from app.services.spaces_client import SpacesApiError, SpacesClient
from fakes import make_row, make_widget

BASE_URL = "https://tenant.example.com"


def layout_payload(widgets=None, section_id="S-1"):
    return {
        "data": {
            "layout": {
                "layoutId": "L-1",
                "sections": [{"sectionId": section_id, "config": {"widgets": [make_widget()] if widgets is None else widgets}}],
            }
        }
    }


class Router:
    """Serves canned responses per path; a list is consumed one response per request."""

    def __init__(self, routes):
        self.routes = routes
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes[request.url.path]
        if isinstance(route, list):
            route = route.pop(0) if len(route) > 1 else route[0]
        status, body = route
        return httpx.Response(status, json=body)

    def paths(self):
        return [r.url.path for r in self.requests]


def build_client(router, fake_clock, limit=100):
    limiter = RateLimiter(limit, clock=fake_clock, sleep=fake_clock.sleep)
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(router))
    client = SpacesClient(
        BASE_URL,
        "JSESSIONID=abc",
        limiter,
        http_client=http_client,
        max_attempts=3,
        retry_delay=1.0,
        sleep=fake_clock.sleep,
    )
    return client, http_client, limiter


def run_with(client, http_client, coro_factory):
    async def scenario():
        try:
            return await coro_factory(client)
        finally:
            await client.aclose()
            await http_client.aclose()

    return asyncio.run(scenario())


def test_widget_context_is_resolved(fake_clock) -> None:
    router = Router({"/v2/galaxy/spaces/assignment/resolve/cid": (200, layout_payload())})
    client, http_client, _ = build_client(router, fake_clock)

    context = run_with(client, http_client, lambda c: c.resolve_widget_context("C-1"))

    assert context.layout_id == "L-1"
    assert context.section_id == "S-1"
    assert context.widget == make_widget()
    request = router.requests[0]
    assert request.headers["Cookie"] == "JSESSIONID=abc"
    assert json.loads(request.content)["companyId"] == "C-1"


def test_incomplete_layout_is_retried_then_raised(fake_clock) -> None:
    router = Router({"/v2/galaxy/spaces/assignment/resolve/cid": (200, layout_payload(widgets=[]))})
    client, http_client, _ = build_client(router, fake_clock)

    with pytest.raises(SpacesApiError, match="Incomplete layout or widget information"):
        run_with(client, http_client, lambda c: c.resolve_widget_context("C-1"))

    assert len(router.requests) == 3
    assert fake_clock.sleeps == [1.0, 2.0]


def test_http_errors_carry_the_status(fake_clock) -> None:
    router = Router({"/v1/successPlan/spaces-config": (503, {})})
    client, http_client, _ = build_client(router, fake_clock)

    with pytest.raises(SpacesApiError) as excinfo:
        run_with(client, http_client, lambda c: c.link_success_plan("SP-1"))

    assert str(excinfo.value) == "HTTP error! status: 503"
    assert excinfo.value.status_code == 503
    assert len(router.requests) == 3


def test_every_attempt_takes_a_rate_limit_slot(fake_clock) -> None:
    router = Router({"/v1/spaces/search/Company/person": [(500, {}), (200, {"data": []})]})
    client, http_client, limiter = build_client(router, fake_clock)
    acquired = []
    acquire = limiter.acquire

    async def counting_acquire():
        acquired.append(fake_clock.now)
        await acquire()

    limiter.acquire = counting_acquire

    person = run_with(client, http_client, lambda c: c.search_person("C-1", "a@example.com"))

    assert person is None
    assert len(acquired) == len(router.requests) == 2


def test_search_requires_email_and_id(fake_clock) -> None:
    router = Router({"/v1/spaces/search/Company/person": (200, {"data": [{"person__Email": "a@example.com"}]})})
    client, http_client, _ = build_client(router, fake_clock)

    assert run_with(client, http_client, lambda c: c.search_person("C-1", "a@example.com")) is None


def test_transient_search_failures_still_lead_to_an_invitation(fake_clock) -> None:
    person = {"person__Email": "a@example.com", "person__Gsid": "P-1"}
    router = Router({
        "/v2/galaxy/spaces/assignment/resolve/cid": (200, layout_payload()),
        "/v2/galaxy/spaces/customisation/save/Company/C-1/L-1": (200, {"result": True}),
        "/v1/spaces/search/Company/person": [(500, {}), (500, {}), (200, {"data": [person]})],
        "/v1/spaces/invite/company/persons": (200, {"result": True}),
    })
    client, http_client, _ = build_client(router, fake_clock)

    result = run_with(
        client,
        http_client,
        lambda c: RecordProcessor(c).process(make_row(Invite_Email="a@example.com", Invite_Name="Ada"), 0),
    )

    assert result.status == RecordStatus.SUCCESS
    assert result.messages[-1] == "Invitation sent to a@example.com"
    assert router.paths().count("/v1/spaces/search/Company/person") == 3
    invite = json.loads(router.requests[-1].content)
    assert invite["users"][0]["personId"] == "P-1"
    assert "Hi Ada," in invite["emailBody"]


def test_notes_are_sent_with_ignore_masked(fake_clock) -> None:
    router = Router({"/v2/galaxy/spaces/cr360/data/section": (200, {})})
    client, http_client, _ = build_client(router, fake_clock)

    run_with(client, http_client, lambda c: c.add_space_notes("C-1", "S-1", "L-1", "&lt;p&gt;hi&lt;/p&gt;"))

    request = router.requests[0]
    assert request.method == "PUT"
    assert request.url.params["ignoreMasked"] == "true"
    assert json.loads(request.content)["data"] == {"SpacesNotes": "&lt;p&gt;hi&lt;/p&gt;"}


def test_cta_owner_lookup_and_reassignment(fake_clock) -> None:
    router = Router({
        "/v1/api/standardobjects/user/findOrCreateRecord": (200, {"data": {"result": [{"Gsid": "U-1"}]}}),
        "/v1/cockpit/cta/list": (200, {"data": {"ctas": [{"Gsid": "CTA-1", "OwnerId": "U-2"}]}}),
        "/v1/cockpit/cta": (200, {"result": True}),
    })
    client, http_client, _ = build_client(router, fake_clock)

    async def scenario(c):
        owner = await c.find_or_create_user("C-1", "owner@example.com")
        ctas = await c.list_open_ctas("C-1")
        await c.reassign_cta(ctas[0]["Gsid"], owner)
        return owner, ctas

    owner, ctas = run_with(client, http_client, scenario)

    assert owner == "U-1"
    assert ctas == [{"Gsid": "CTA-1", "OwnerId": "U-2"}]
    assert json.loads(router.requests[-1].content) == {"records": [{"Gsid": "CTA-1", "OwnerId": "U-1"}]}
