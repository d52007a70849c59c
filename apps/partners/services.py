"""Partner record store operations."""

from __future__ import annotations

import logging

from .models import Partner, PartnerActionLog

logger = logging.getLogger(__name__)


def get_partner_profile(partner_id) -> Partner | None:
    """Return the partner or ``None`` when the id does not resolve."""

    return Partner.objects.filter(pk=partner_id).select_related("user").first()


def log_partner_action(partner_id, action: str, *, idempotency_key: str | None = None) -> PartnerActionLog:
    """Append an entry to the partner audit log.

    When ``idempotency_key`` is given the entry is written at most once,
    repeated calls return the existing entry.
    """

    if idempotency_key:
        entry, created = PartnerActionLog.objects.get_or_create(
            idempotency_key=idempotency_key,
            defaults={"partner_id": partner_id, "action": action},
        )
        if not created:
            logger.info(f"Partner action {idempotency_key} already logged, skipping")
        return entry

    return PartnerActionLog.objects.create(partner_id=partner_id, action=action)


def _set_status(partner_id, status: str) -> Partner:
    partner = Partner.objects.get(pk=partner_id)
    partner.status = status
    partner.save(update_fields=["status", "updated_at"])
    log_partner_action(partner.pk, f"Status updated to {status}")
    return partner


def activate_partner(partner_id) -> Partner:
    return _set_status(partner_id, Partner.Status.ACTIVE)


def suspend_partner(partner_id) -> Partner:
    return _set_status(partner_id, Partner.Status.SUSPENDED)


def verify_partner_account(partner_id) -> Partner:
    partner = Partner.objects.get(pk=partner_id)
    partner.account_verified = True
    partner.save(update_fields=["account_verified", "updated_at"])
    log_partner_action(partner.pk, "Account verified")
    return partner
