import asyncio

import pytest

from app.jobs.record_processor import RecordFields, RecordProcessor
from app.models.records import RecordProcessingError, RecordStatus
from fakes import FakeSpacesClient, make_row


def run(processor, row, index=0):
    return asyncio.run(processor.process(row, index))


def test_full_record_succeeds(fake_client) -> None:
    fake_client.people = {"known@example.com": "P-1"}
    row = make_row(
        Welcome_Banner="Welcome!",
        Space_Notes_HTML="&lt;p&gt;notes&lt;/p&gt;",
        Success_Plan_GSID="SP-1",
        Invite_Email="known@example.com, new@example.com,",
    )

    result = run(RecordProcessor(fake_client), row, 3)

    assert result.status == RecordStatus.SUCCESS
    assert result.record_index == 3
    assert result.messages == [
        "Fetched widget details",
        "Widget updated",
        "Notes added",
        "Success Plan added",
        "Invitation sent to known@example.com",
        "User added and invitation sent to new@example.com",
    ]
    widget = next(call[2] for call in fake_client.calls if call[0] == "update_widget")
    assert widget["config"]["mediaContent"]["content"]["url"] == "https://video.example.com/intro"
    assert "bannerText" in widget["config"]


def test_optional_operations_are_skipped_when_empty(fake_client) -> None:
    result = run(RecordProcessor(fake_client), make_row())

    assert result.status == RecordStatus.SUCCESS
    assert "add_space_notes" not in fake_client.names()
    assert "link_success_plan" not in fake_client.names()
    assert "search_person" not in fake_client.names()
    assert result.messages == ["Fetched widget details", "Widget updated"]


def test_context_failure_is_fatal_for_the_record(boom) -> None:
    client = FakeSpacesClient(failures={"resolve_widget_context": boom})

    with pytest.raises(RecordProcessingError) as excinfo:
        run(RecordProcessor(client), make_row(Invite_Email="a@example.com"))

    result = excinfo.value.result
    assert result.status == RecordStatus.FAILED
    assert result.messages == ["Error: boom"]
    assert result.error == "boom"
    assert client.names() == ["resolve_widget_context"]


def test_persistence_failure_degrades_but_continues(boom) -> None:
    client = FakeSpacesClient(failures={"add_space_notes": boom}, people={"a@example.com": "P-1"})
    row = make_row(Space_Notes_HTML="notes", Success_Plan_GSID="SP-1", Invite_Email="a@example.com")

    result = run(RecordProcessor(client), row)

    assert result.status == RecordStatus.PARTIAL
    assert "Notes update failed: boom" in result.messages
    assert "Widget updated" in result.messages
    assert "Success Plan added" in result.messages
    assert result.messages[-1] == "Invitation sent to a@example.com"


def test_one_failing_address_does_not_stop_the_others(boom) -> None:
    client = FakeSpacesClient(
        failures={"search_person:bad@example.com": boom},
        people={"good@example.com": "P-2"},
    )
    row = make_row(Invite_Email="bad@example.com,good@example.com")

    result = run(RecordProcessor(client), row)

    assert result.status == RecordStatus.PARTIAL
    assert "Error with bad@example.com: boom" in result.messages
    assert result.messages[-1] == "Invitation sent to good@example.com"


def test_invite_chain_runs_in_order_per_address() -> None:
    client = FakeSpacesClient()
    row = make_row(Invite_Email="x@example.com, y@example.com")

    run(RecordProcessor(client), row)

    invite_calls = [(c[0], c[1]) for c in client.calls if c[0] in ("search_person", "add_person", "send_invitation")]
    assert invite_calls == [
        ("search_person", "x@example.com"),
        ("add_person", "x@example.com"),
        ("search_person", "x@example.com"),
        ("send_invitation", "x@example.com"),
        ("search_person", "y@example.com"),
        ("add_person", "y@example.com"),
        ("search_person", "y@example.com"),
        ("send_invitation", "y@example.com"),
    ]


def test_user_that_cannot_be_created_is_reported() -> None:
    client = FakeSpacesClient(add_person_creates=False)

    result = run(RecordProcessor(client), make_row(Invite_Email="ghost@example.com"))

    assert result.status == RecordStatus.PARTIAL
    assert result.messages[-1] == (
        "Error with ghost@example.com: User could not be added or invited for ghost@example.com"
    )
    assert "send_invitation" not in client.names()


def test_ctas_are_reassigned_to_the_owner() -> None:
    client = FakeSpacesClient(
        owner_id="U-9",
        ctas=[{"Gsid": "CTA-1", "OwnerId": "U-1"}, {"Gsid": "CTA-2", "OwnerId": "U-9"}],
    )

    result = run(RecordProcessor(client), make_row(CTA_Owner_Email="owner@example.com"))

    assert result.status == RecordStatus.SUCCESS
    assert [c for c in client.calls if c[0] == "reassign_cta"] == [("reassign_cta", "CTA-1", "U-9")]
    assert result.messages[-1] == "CTA processing completed for owner@example.com (1 reassigned)"


def test_cta_failures_only_degrade(boom) -> None:
    client = FakeSpacesClient(failures={"find_or_create_user": boom})

    result = run(RecordProcessor(client), make_row(CTA_Owner_Email="owner@example.com"))

    assert result.status == RecordStatus.PARTIAL
    assert result.messages[-1] == "CTA error: boom"


def test_unresolved_cta_owner_degrades() -> None:
    client = FakeSpacesClient(owner_id=None)

    result = run(RecordProcessor(client), make_row(CTA_Owner_Email="owner@example.com"))

    assert result.status == RecordStatus.PARTIAL
    assert "list_open_ctas" not in client.names()


def test_invite_list_parsing() -> None:
    fields = RecordFields.from_row(make_row(Invite_Email=" a@x.com ,, b@x.com , "))

    assert fields.invite_emails == ["a@x.com", "b@x.com"]
