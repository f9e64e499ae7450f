import asyncio
import logging
from dataclasses import dataclass
from typing import Optional
from app.jobs.content import apply_widget_content
from app.models.records import RecordProcessingError, RecordResult, RecordStatus, RowRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RecordFields:
    company_id: Optional[str]
    video_url: Optional[str]
    welcome_banner: Optional[str]
    space_notes: Optional[str]
    success_plan_id: Optional[str]
    invite_email: Optional[str]
    invite_name: Optional[str]
    cta_owner_email: Optional[str]

    @classmethod
    def from_row(cls, row: RowRecord) -> "RecordFields":
        return cls(
            company_id=row.text("Company_GSID"),
            video_url=row.url("Video_URL"),
            welcome_banner=row.text("Welcome_Banner"),
            space_notes=row.text("Space_Notes_HTML"),
            success_plan_id=row.text("Success_Plan_GSID"),
            invite_email=row.text("Invite_Email"),
            invite_name=row.text("Invite_Name"),
            cta_owner_email=row.text("CTA_Owner_Email"),
        )

    @property
    def invite_emails(self) -> list[str]:
        if not self.invite_email:
            return []
        return [email.strip() for email in self.invite_email.split(",") if email.strip()]


class RecordProcessor:
    """
    Turns one row record into one RecordResult by driving the Spaces calls for it.
    Only context resolution is fatal; every later step just downgrades to Partial.
    """

    def __init__(self, client):
        self.client = client

    async def process(self, row: RowRecord, record_index: int) -> RecordResult:
        fields = RecordFields.from_row(row)
        result = RecordResult(
            company_id=fields.company_id,
            record_index=record_index,
            video_url=fields.video_url,
            invite_email=fields.invite_email,
        )

        try:
            context = await self.client.resolve_widget_context(fields.company_id)
            result.add("Fetched widget details")

            widget = apply_widget_content(context.widget, fields.video_url, fields.welcome_banner)
            await self._persist(fields, context, widget, result)

            for email in fields.invite_emails:
                await self._invite(fields, email, result)

            if fields.cta_owner_email:
                await self._reassign_ctas(fields, result)
        except Exception as e:
            result.fail(str(e))
            logger.error(f"Record {record_index} ({fields.company_id}) failed: {e}")
            raise RecordProcessingError(str(e), result) from e

        return result

    async def _persist(self, fields: RecordFields, context, widget: dict, result: RecordResult):
        operations = [
            ("Widget updated", "Widget update failed",
             self.client.update_widget(fields.company_id, context.layout_id, widget)),
        ]
        if fields.space_notes:
            operations.append(
                ("Notes added", "Notes update failed",
                 self.client.add_space_notes(fields.company_id, context.section_id, context.layout_id, fields.space_notes))
            )
        if fields.success_plan_id:
            operations.append(
                ("Success Plan added", "Success Plan link failed",
                 self.client.link_success_plan(fields.success_plan_id))
            )

        outcomes = await asyncio.gather(*(op for _, _, op in operations), return_exceptions=True)
        for (done_msg, failed_msg, _), outcome in zip(operations, outcomes):
            if isinstance(outcome, Exception):
                result.downgrade(RecordStatus.PARTIAL, f"{failed_msg}: {outcome}")
            else:
                result.add(done_msg)

    async def _invite(self, fields: RecordFields, email: str, result: RecordResult):
        # search -> (create -> search) -> invite must stay sequential
        try:
            person = await self.client.search_person(fields.company_id, email)
            if person:
                await self.client.send_invitation(fields.company_id, person["person__Gsid"], email, fields.invite_name)
                result.add(f"Invitation sent to {email}")
                return

            await self.client.add_person(fields.company_id, email)
            person = await self.client.search_person(fields.company_id, email)
            if not person:
                raise LookupError(f"User could not be added or invited for {email}")

            await self.client.send_invitation(fields.company_id, person["person__Gsid"], email, fields.invite_name)
            result.add(f"User added and invitation sent to {email}")
        except Exception as e:
            result.downgrade(RecordStatus.PARTIAL, f"Error with {email}: {e}")

    async def _reassign_ctas(self, fields: RecordFields, result: RecordResult):
        owner_email = fields.cta_owner_email
        try:
            owner_id = await self.client.find_or_create_user(fields.company_id, owner_email)
            if not owner_id:
                raise LookupError(f"No user id resolved for {owner_email}")

            ctas = await self.client.list_open_ctas(fields.company_id)
            reassigned = 0
            for cta in ctas:
                if cta.get("OwnerId") == owner_id:
                    continue
                try:
                    await self.client.reassign_cta(cta["Gsid"], owner_id)
                    reassigned += 1
                except Exception as e:
                    result.downgrade(RecordStatus.PARTIAL, f"CTA {cta.get('Gsid')} reassignment failed: {e}")

            result.add(f"CTA processing completed for {owner_email} ({reassigned} reassigned)")
        except Exception as e:
            result.downgrade(RecordStatus.PARTIAL, f"CTA error: {e}")
