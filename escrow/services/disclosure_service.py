"""
Disclosure orchestrator.

Sends a user's decrypted credentials to their emergency contacts, either on
demand (MANUAL / EMERGENCY) or from the inactivity sweep (INACTIVITY).

The automatic path only discloses when a KeyCustodian can supply the user's
secret key. The default custodian holds no keys, so an overdue user gets an
INACTIVITY_WARNING notification instead of a disclosure.
"""

import asyncio
from datetime import datetime, timedelta
from typing import Protocol

from escrow.config import settings
from escrow.infrastructure.observability.logging import get_logger
from escrow.models.domain.errors import EscrowError, NoCredentials, NoRecipients
from escrow.models.domain.escrow_domain import (
    AutomaticOutcome,
    DisclosurePackage,
    DisclosurePayload,
    InactiveUser,
    InactivityPayload,
    NotificationPriority,
    NotificationType,
    ShareEvent,
    ShareReason,
    ShareResult,
)
from escrow.repositories.credential_repository import CredentialRepository
from escrow.repositories.share_event_repository import ShareEventRepository
from escrow.repositories.user_repository import UserRepository
from escrow.services.activity_tracker import ActivityTracker, activity_tracker
from escrow.services.emergency_contact_service import (
    EmergencyContactService,
    emergency_contact_service,
    normalize_email,
)
from escrow.services.infrastructure.credential_cipher import decrypt_all
from escrow.services.mail.templates import render_credential_disclosure
from escrow.services.mail.transport import MailTransport, mail_transport
from escrow.services.notification_service import NotificationService, notification_service
from escrow.utils.clock import Clock, utc_now, whole_days_between

logger = get_logger(__name__)

_REASON_LABELS = {
    ShareReason.MANUAL: "Manual request",
    ShareReason.EMERGENCY: "Emergency request",
    ShareReason.INACTIVITY: "Inactivity share",
}


class KeyCustodian(Protocol):
    async def key_for(self, user_id: str) -> str | None: ...


class NoKeyCustody:
    """Holds no keys. Unattended disclosure degrades to a warning."""

    async def key_for(self, user_id: str) -> str | None:
        return None


def warning_entity_id(user_id: str) -> str:
    return f"inactivity-disclosure-{user_id}"


class DisclosureService:
    def __init__(
        self,
        credentials: CredentialRepository | None = None,
        contacts: EmergencyContactService | None = None,
        share_events: ShareEventRepository | None = None,
        users: UserRepository | None = None,
        activity: ActivityTracker | None = None,
        notifications: NotificationService | None = None,
        mail: MailTransport | None = None,
        custodian: KeyCustodian | None = None,
        clock: Clock = utc_now,
    ):
        self.credentials = credentials or CredentialRepository()
        self.contacts = contacts or emergency_contact_service
        self.share_events = share_events or ShareEventRepository()
        self.users = users or UserRepository()
        self.activity = activity or activity_tracker
        self.notifications = notifications or notification_service
        self.mail = mail or mail_transport
        self.custodian = custodian or NoKeyCustody()
        self.clock = clock

    async def share_credentials(
        self,
        user_id: str,
        secret_key: str,
        reason: ShareReason = ShareReason.MANUAL,
        recipients: list[str] | None = None,
    ) -> ShareResult:
        """
        Decrypt every credential the user holds and mail them to each recipient.

        Never raises. Precondition failures and unexpected errors come back as
        success=False with the error message; per-recipient failures are listed
        in failed_emails while the other recipients still receive their copy.
        """
        try:
            return await self._share(user_id, secret_key, reason, recipients)
        except EscrowError as e:
            logger.info(
                "Credential share rejected",
                user_id=user_id,
                share_reason=str(reason),
                error_code=e.code,
            )
            return ShareResult(
                success=False,
                error=e.message,
                failed_items=list(getattr(e, "failed_items", [])),
            )
        except Exception as e:
            logger.error(
                "Credential share failed",
                user_id=user_id,
                share_reason=str(reason),
                error=str(e),
                error_type=type(e).__name__,
            )
            return ShareResult(success=False, error=str(e) or "Failed to share passwords")

    async def _share(
        self,
        user_id: str,
        secret_key: str,
        reason: ShareReason,
        recipients: list[str] | None,
    ) -> ShareResult:
        stored = await self.credentials.list_for_user(user_id)
        if not stored:
            raise NoCredentials()

        addresses, rejected = await self._resolve_recipients(user_id, recipients)
        if not addresses:
            raise NoRecipients()

        batch = decrypt_all(stored, secret_key)

        user = await self.users.get(user_id)
        last_check_in = None
        if reason == ShareReason.INACTIVITY:
            last_check_in = await self.activity.last_check_in(user_id)

        package = DisclosurePackage(
            credentials=batch.decrypted,
            user_name=user.display_name if user else None,
            share_reason=reason,
            last_check_in=last_check_in,
        )
        subject, html, text = render_credential_disclosure(package)

        delivered, failed, unrecorded = await self._deliver_all(
            user_id, addresses, subject, html, text, len(batch.decrypted), reason
        )
        failed = rejected + failed

        if delivered:
            await self._notify_shared(user_id, len(batch.decrypted), len(delivered), reason)

        logger.info(
            "Credential share completed",
            user_id=user_id,
            share_reason=str(reason),
            credential_count=len(batch.decrypted),
            failed_item_count=len(batch.failed_items),
            recipient_count=len(addresses),
            shared_count=len(delivered),
            failed_emails=failed,
            unrecorded_emails=unrecorded,
        )

        return ShareResult(
            success=len(delivered) > 0,
            shared_count=len(delivered),
            failed_emails=failed,
            credential_count=len(batch.decrypted),
            failed_items=batch.failed_items,
            error=f"Failed to send to: {', '.join(failed)}" if failed else None,
            unrecorded_emails=unrecorded,
        )

    async def _resolve_recipients(
        self, user_id: str, recipients: list[str] | None
    ) -> tuple[list[str], list[str]]:
        """
        Addresses to mail, and requested addresses refused because they are
        not among the user's active emergency contacts.
        """
        contacts = [contact.email for contact in await self.contacts.list(user_id)]
        if not recipients:
            return list(dict.fromkeys(contacts)), []

        requested = list(dict.fromkeys(normalize_email(address) for address in recipients))
        allowed = set(contacts)
        rejected = [address for address in requested if address not in allowed]
        if rejected:
            logger.warning(
                "Requested recipients are not active emergency contacts",
                user_id=user_id,
                rejected=rejected,
            )
        return [address for address in requested if address in allowed], rejected

    async def _deliver_all(
        self,
        user_id: str,
        addresses: list[str],
        subject: str,
        html: str,
        text: str,
        credential_count: int,
        reason: ShareReason,
    ) -> tuple[list[str], list[str], list[str]]:
        """Returns (delivered, failed, delivered but missing a share event)."""
        semaphore = asyncio.Semaphore(settings.MAX_CONCURRENT_SENDS)
        lock = asyncio.Lock()
        delivered: set[str] = set()
        failed: set[str] = set()
        unrecorded: set[str] = set()

        async def deliver(address: str) -> None:
            async with semaphore:
                try:
                    result = await asyncio.wait_for(
                        self.mail.send(address, subject, html, text),
                        timeout=settings.MAIL_TIMEOUT_SECONDS,
                    )
                    if not result.success:
                        logger.warning(
                            "Disclosure email not delivered",
                            user_id=user_id,
                            recipient=address,
                            error=result.error,
                        )
                        async with lock:
                            failed.add(address)
                        return
                    async with lock:
                        delivered.add(address)
                except TimeoutError:
                    logger.warning(
                        "Disclosure email timed out",
                        user_id=user_id,
                        recipient=address,
                        timeout=settings.MAIL_TIMEOUT_SECONDS,
                    )
                    async with lock:
                        failed.add(address)
                except Exception as e:
                    logger.error(
                        "Disclosure email failed",
                        user_id=user_id,
                        recipient=address,
                        error=str(e),
                        error_type=type(e).__name__,
                    )
                    async with lock:
                        failed.add(address)
                    return

                # Delivered. A missing audit row is reported on its own.
                try:
                    await self.share_events.create(
                        user_id,
                        recipient_email=address,
                        password_count=credential_count,
                        share_reason=reason,
                        sent_at=self.clock(),
                    )
                except Exception as e:
                    logger.error(
                        "Share event not recorded for delivered disclosure",
                        user_id=user_id,
                        recipient=address,
                        share_reason=str(reason),
                        error=str(e),
                        error_type=type(e).__name__,
                    )
                    async with lock:
                        unrecorded.add(address)

        await asyncio.gather(*(deliver(address) for address in addresses))

        # Report in recipient order, not completion order.
        return (
            [a for a in addresses if a in delivered],
            [a for a in addresses if a in failed],
            [a for a in addresses if a in unrecorded],
        )

    async def _notify_shared(
        self, user_id: str, credential_count: int, recipient_count: int, reason: ShareReason
    ) -> None:
        plural = "s" if recipient_count > 1 else ""
        await self.notifications.create_notification(
            user_id,
            title="🔐 Passwords Shared",
            message=(
                f"Your {credential_count} passwords have been shared with {recipient_count} "
                f"emergency contact{plural}. Reason: {_REASON_LABELS[reason]}."
            ),
            type=NotificationType.PASSWORD_SHARED,
            priority=NotificationPriority.HIGH,
            metadata=DisclosurePayload(
                credential_count=credential_count,
                recipient_count=recipient_count,
                share_reason=reason,
                sent_at=self.clock(),
            ),
        )

    async def run_automatic_disclosure(
        self, user: InactiveUser, now: datetime | None = None
    ) -> AutomaticOutcome:
        """
        INACTIVITY disclosure for one overdue user, serialized per user.

        Skips users without active contacts and users already disclosed within
        the cooldown. Without a custodied key the user is warned instead.
        """
        now = now or self.clock()

        async with self.share_events.user_lock(user.user_id):
            if not await self.contacts.has_contacts(user.user_id):
                logger.info("No emergency contacts, skipping", user_id=user.user_id)
                return AutomaticOutcome.SKIPPED_NO_CONTACTS

            since = now - timedelta(days=settings.DISCLOSURE_COOLDOWN_DAYS)
            recent = await self.share_events.latest_since(user.user_id, ShareReason.INACTIVITY, since)
            if recent:
                logger.info(
                    "Inactivity disclosure within cooldown, skipping",
                    user_id=user.user_id,
                    last_sent_at=recent.sent_at.isoformat(),
                )
                return AutomaticOutcome.SKIPPED_COOLDOWN

            secret_key = await self.custodian.key_for(user.user_id)
            if not secret_key:
                created = await self._warn_user(user, now)
                return AutomaticOutcome.WARNED if created else AutomaticOutcome.ALREADY_WARNED

            result = await self.share_credentials(
                user.user_id, secret_key, reason=ShareReason.INACTIVITY
            )
            if result.success:
                return AutomaticOutcome.DISCLOSED

            logger.warning(
                "Automatic disclosure failed",
                user_id=user.user_id,
                error=result.error,
            )
            return AutomaticOutcome.FAILED

    async def _warn_user(self, user: InactiveUser, now: datetime) -> bool:
        inactive_days = (
            whole_days_between(user.last_check_in, now) if user.last_check_in else None
        )
        if inactive_days is None:
            opening = "You have never checked in."
        else:
            opening = f"You have not checked in for {inactive_days} days."

        notification = await self.notifications.create_notification(
            user.user_id,
            title="⚠️ Check in to keep your passwords private",
            message=(
                f"{opening} Your inactivity window has closed, but your passwords "
                "were not shared because automatic sharing needs your secret key. "
                "Check in now, or share manually with your emergency contacts."
            ),
            type=NotificationType.INACTIVITY_WARNING,
            priority=NotificationPriority.URGENT,
            action_url="/checkin",
            metadata=InactivityPayload(
                entity_id=warning_entity_id(user.user_id),
                last_check_in=user.last_check_in,
                inactive_days=inactive_days,
                days_until_disclosure=0,
            ),
        )
        if notification:
            logger.info("Inactivity warning created", user_id=user.user_id, inactive_days=inactive_days)
        return notification is not None

    async def sharing_history(self, user_id: str, limit: int = 10) -> list[ShareEvent]:
        return await self.share_events.history(user_id, limit)


disclosure_service = DisclosureService()
