"""Tests for MessageService: lifecycle, logs, bulk actions and concurrency."""
import uuid
from datetime import datetime, timedelta, timezone

import pytest

from app.exceptions import (
    ConcurrentModificationError,
    IllegalTransitionError,
    NotFoundError,
    PermissionDeniedError,
    UnknownProfileError,
    ValidationError,
)
from app.models.base import utcnow
from app.models.enums import ApprovalStatus, ApprovalTier, MessageStatus, Platform, UserRole
from app.services.activity import ActivityLogger, ActivityType
from app.services.messages import Actor, MessageService, flush_or_conflict, load_message
from app.services.publishing import PublishingDispatcher
from conftest import ADMIN, APPROVER, AUTHOR


async def _make_message(service, campaign, title="Rally Saturday", content="<p>Join us</p>", platform=Platform.EMAIL):
    message = await service.create_message(campaign.id, AUTHOR, title, content, platform)
    await service.db.commit()
    return message


async def _make_pending(service, campaign, **kwargs):
    message = await _make_message(service, campaign, **kwargs)
    await service.submit(message.id, AUTHOR)
    await service.db.commit()
    return message


async def _make_approved(service, campaign, **kwargs):
    message = await _make_pending(service, campaign, **kwargs)
    await service.review(message.id, APPROVER, ApprovalStatus.APPROVED)
    await service.db.commit()
    return message


class TestCreateAndEdit:
    async def test_create_draft_with_tier(self, service, campaign):
        message = await _make_message(service, campaign, content="<p>Please donate today</p>")

        assert message.status == MessageStatus.DRAFT.value
        assert message.approval_tier == ApprovalTier.YELLOW.value
        assert message.author_id == AUTHOR.user_id
        assert message.lock_version == 1

    async def test_user_role_cannot_create(self, service, campaign):
        with pytest.raises(PermissionDeniedError):
            await service.create_message(campaign.id, Actor("u", UserRole.USER), "t", "c", Platform.EMAIL)

    async def test_unknown_campaign(self, service):
        with pytest.raises(NotFoundError):
            await service.create_message(uuid.uuid4(), AUTHOR, "t", "c", Platform.EMAIL)

    async def test_update_reanalyzes_content(self, service, campaign):
        message = await _make_message(service, campaign)
        updated = await service.update_message(message.id, AUTHOR, content="<p>The scandal grows</p>")

        assert updated.approval_tier == ApprovalTier.RED.value

    async def test_pending_message_is_not_editable(self, service, campaign):
        message = await _make_pending(service, campaign)
        with pytest.raises(IllegalTransitionError):
            await service.update_message(message.id, AUTHOR, title="New title")

    async def test_delete_draft(self, service, campaign):
        message = await _make_message(service, campaign)
        await service.delete(message.id, AUTHOR)
        await service.db.commit()

        with pytest.raises(NotFoundError):
            await service.get_message(message.id)

    async def test_delete_non_draft_fails(self, service, campaign):
        message = await _make_pending(service, campaign)
        with pytest.raises(IllegalTransitionError) as exc_info:
            await service.delete(message.id, AUTHOR)
        assert exc_info.value.detail == "Only draft messages can be deleted"

    async def test_list_filters_and_paginates(self, service, campaign):
        await _make_message(service, campaign, title="one")
        await _make_message(service, campaign, title="two", platform=Platform.TWITTER)
        await _make_pending(service, campaign, title="three")

        items, total = await service.list_messages(campaign_id=campaign.id, status=MessageStatus.DRAFT)
        assert total == 2
        assert {m.title for m in items} == {"one", "two"}

        items, total = await service.list_messages(platform=Platform.TWITTER)
        assert total == 1

        items, total = await service.list_messages(page=2, page_size=2)
        assert total == 3
        assert len(items) == 1


class TestReviewFlow:
    async def test_submit_requires_content(self, service, campaign):
        message = await _make_message(service, campaign, content="")
        with pytest.raises(ValidationError):
            await service.submit(message.id, AUTHOR)

    async def test_submit_appends_pending_marker(self, service, campaign):
        message = await _make_pending(service, campaign)

        assert message.status == MessageStatus.PENDING_APPROVAL.value
        assert [a.status for a in message.approvals] == [ApprovalStatus.PENDING.value]

    async def test_non_approver_cannot_approve(self, service, campaign):
        message = await _make_pending(service, campaign)
        with pytest.raises(PermissionDeniedError):
            await service.review(message.id, AUTHOR, ApprovalStatus.APPROVED)

    async def test_admin_cannot_approve_individually(self, service, campaign):
        message = await _make_pending(service, campaign)
        with pytest.raises(PermissionDeniedError):
            await service.review(message.id, ADMIN, ApprovalStatus.APPROVED)

    async def test_pending_is_not_a_decision(self, service, campaign):
        message = await _make_pending(service, campaign)
        with pytest.raises(ValidationError):
            await service.review(message.id, APPROVER, ApprovalStatus.PENDING)

    async def test_resubmit_requires_changes(self, service, campaign):
        message = await _make_pending(service, campaign)
        await service.review(message.id, APPROVER, ApprovalStatus.CHANGES_REQUESTED, "Add the time")
        await service.db.commit()

        with pytest.raises(ValidationError):
            await service.resubmit(message.id, AUTHOR)

        await service.update_message(message.id, AUTHOR, content="<p>Join us at noon</p>")
        resubmitted = await service.resubmit(message.id, AUTHOR)

        assert resubmitted.status == MessageStatus.PENDING_APPROVAL.value
        assert resubmitted.review_digest is None
        assert [a.status for a in resubmitted.approvals] == [
            ApprovalStatus.PENDING.value,
            ApprovalStatus.CHANGES_REQUESTED.value,
            ApprovalStatus.PENDING.value,
        ]

    async def test_rejected_can_only_be_archived(self, service, campaign):
        message = await _make_pending(service, campaign)
        await service.review(message.id, APPROVER, ApprovalStatus.REJECTED)

        with pytest.raises(IllegalTransitionError):
            await service.submit(message.id, AUTHOR)
        archived = await service.archive(message.id, AUTHOR)
        assert archived.status == MessageStatus.ARCHIVED.value


class TestScheduling:
    async def test_schedule_future(self, service, campaign):
        message = await _make_approved(service, campaign)
        when = utcnow() + timedelta(hours=3)

        scheduled = await service.schedule(message.id, AUTHOR, when)

        assert scheduled.status == MessageStatus.SCHEDULED.value
        assert scheduled.scheduled_for == when

    async def test_schedule_aware_datetime_stored_as_naive_utc(self, service, campaign):
        message = await _make_approved(service, campaign)
        when = datetime.now(timezone(timedelta(hours=-5))) + timedelta(days=1)

        scheduled = await service.schedule(message.id, AUTHOR, when)

        assert scheduled.scheduled_for.tzinfo is None
        assert scheduled.scheduled_for == when.astimezone(timezone.utc).replace(tzinfo=None)

    async def test_schedule_past_fails(self, service, campaign):
        message = await _make_approved(service, campaign)
        with pytest.raises(ValidationError):
            await service.schedule(message.id, AUTHOR, utcnow() - timedelta(minutes=5))
        assert message.status == MessageStatus.APPROVED.value

    async def test_unschedule_clears_time(self, service, campaign):
        message = await _make_approved(service, campaign)
        await service.schedule(message.id, AUTHOR, utcnow() + timedelta(hours=1))

        unscheduled = await service.unschedule(message.id, AUTHOR)

        assert unscheduled.status == MessageStatus.APPROVED.value
        assert unscheduled.scheduled_for is None

    async def test_schedule_draft_is_illegal(self, service, campaign):
        message = await _make_message(service, campaign)
        with pytest.raises(IllegalTransitionError):
            await service.schedule(message.id, AUTHOR, utcnow() + timedelta(hours=1))


class TestEndToEnd:
    async def test_draft_to_published(self, db, service, campaign, providers, provider):
        message = await _make_approved(service, campaign)
        await service.schedule(message.id, AUTHOR, utcnow() + timedelta(hours=1))
        await service.unschedule(message.id, AUTHOR)
        await db.commit()

        result = await PublishingDispatcher(db, providers=providers).publish(
            message.id, Platform.EMAIL, None, AUTHOR
        )
        await db.commit()

        assert result.success is True
        assert message.status == MessageStatus.PUBLISHED.value
        assert message.published_at is not None
        assert len(provider.calls) == 1

        decisions = [a for a in message.approvals if a.status != ApprovalStatus.PENDING.value]
        assert len(decisions) == 1
        assert decisions[0].approved_by == APPROVER.user_id

        types = [a.type for a in await ActivityLogger(db).recent(campaign.id)]
        for expected in (
            ActivityType.MESSAGE_CREATED,
            ActivityType.MESSAGE_SUBMITTED,
            ActivityType.MESSAGE_APPROVED,
            ActivityType.MESSAGE_SCHEDULED,
            ActivityType.MESSAGE_UNSCHEDULED,
            ActivityType.MESSAGE_PUBLISHED,
        ):
            assert expected.value in types


class TestBulkActions:
    async def test_bulk_approve_isolates_failures(self, service, campaign):
        pending = [await _make_pending(service, campaign, title=f"pending {i}") for i in range(4)]
        draft = await _make_message(service, campaign, title="still a draft")
        pending_ids = [m.id for m in pending]
        draft_id = draft.id

        # the failing item sits between successes
        ids = pending_ids[:2] + [draft_id] + pending_ids[2:]
        result = await service.bulk_action(ids, "approve", ADMIN)

        assert result["success_count"] == 4
        assert result["error_count"] == 1
        failed = [r for r in result["results"] if not r["success"]]
        assert failed[0]["id"] == draft_id
        assert "DRAFT" in failed[0]["error"]

        for message_id in pending_ids:
            reloaded = await service.get_message(message_id)
            assert reloaded.status == MessageStatus.APPROVED.value
            assert reloaded.approvals[-1].comments == "Bulk approved"
        assert (await service.get_message(draft_id)).status == MessageStatus.DRAFT.value

    async def test_bulk_review_requires_permission(self, service, campaign):
        message = await _make_pending(service, campaign)
        with pytest.raises(PermissionDeniedError):
            await service.bulk_action([message.id], "reject", AUTHOR)

    async def test_bulk_delete_only_drafts(self, service, campaign):
        draft_id = (await _make_message(service, campaign)).id
        pending_id = (await _make_pending(service, campaign)).id

        result = await service.bulk_action([draft_id, pending_id], "delete", AUTHOR)

        assert result["success_count"] == 1
        assert result["results"][0] == {"id": draft_id, "success": True, "status": None, "error": None}
        assert result["results"][1]["error"] == "Only draft messages can be deleted"

    async def test_bulk_missing_message(self, service, campaign):
        result = await service.bulk_action([uuid.uuid4()], "archive", AUTHOR)
        assert result["error_count"] == 1
        assert result["results"][0]["error"] == "Message not found"

    async def test_unsupported_action(self, service):
        with pytest.raises(ValidationError):
            await service.bulk_action([], "publish", ADMIN)


class TestConcurrency:
    async def test_stale_write_is_rejected(self, session_maker, service, campaign):
        message = await _make_pending(service, campaign)

        async with session_maker() as first, session_maker() as second:
            stale = await load_message(second, message.id)

            await MessageService(first).review(message.id, APPROVER, ApprovalStatus.APPROVED)
            await first.commit()

            stale.title = "Edited after approval"
            with pytest.raises(ConcurrentModificationError):
                await flush_or_conflict(second, stale)
            await second.rollback()


class TestVersions:
    async def test_add_version(self, service, campaign):
        message = await _make_message(service, campaign)
        version = await service.add_version(message.id, "senior", "<p>Protect Medicare</p>", AUTHOR)

        assert version.version_profile == "senior"
        assert version.message_id == message.id
        assert len(message.versions) == 1

    async def test_add_version_unknown_profile(self, service, campaign):
        message = await _make_message(service, campaign)
        with pytest.raises(UnknownProfileError):
            await service.add_version(message.id, "martians", "<p>Hello</p>", AUTHOR)

    async def test_versions_allowed_after_approval(self, service, campaign):
        message = await _make_approved(service, campaign)
        await service.add_version(message.id, "youth", "<p>Vote!</p>", AUTHOR)
        assert message.status == MessageStatus.APPROVED.value
