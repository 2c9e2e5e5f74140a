from datetime import date
from decimal import Decimal

import pytest

from leasedesk.models.models import Document, FinancialSettings
from leasedesk.services.negotiations import (
    bulk_update_status,
    close_tenant_negotiation,
    renewal_queue,
    save_negotiation,
)
from leasedesk.services.renewals import NegotiationError, RenewalFilters

TODAY = date(2025, 1, 1)


def test_save_negotiation_appends_log_and_audits(state, create_user, create_property, create_tenant):
    manager = create_user(name="Marta")
    tenant = create_tenant(create_property())

    updated = save_negotiation(state, tenant.id, manager, status="tenant_contacted", note="  Called tenant  ")

    assert updated.negotiation_status == "tenant_contacted"
    assert updated.negotiation_logs[-1].note == "Called tenant"
    assert updated.negotiation_logs[-1].user == "Marta"
    assert state.tenants.get(tenant.id) is updated
    assert state.audit_logs.list()[-1].action == "renewals.update"


def test_short_term_tenants_cannot_be_negotiated(state, create_user, create_property, create_tenant):
    manager = create_user()
    tenant = create_tenant(create_property(profile_type="short_term"))

    with pytest.raises(NegotiationError):
        save_negotiation(state, tenant.id, manager, status="negotiating")
    assert save_negotiation(state, "tenant-missing", manager) is None


def test_close_failure_leaves_stored_tenant_unchanged(state, create_user, create_property, create_tenant):
    manager = create_user()
    tenant = create_tenant(create_property())

    with pytest.raises(NegotiationError):
        close_tenant_negotiation(
            state, tenant.id, manager, new_value="1100", new_start="2025-01-12", new_end="2026-01-11", contract_doc=None
        )

    assert state.tenants.get(tenant.id) is tenant
    assert len(state.audit_logs) == 0


def test_closed_tenant_moves_to_renewed_bucket(state, create_user, create_owner, create_property, create_tenant):
    manager = create_user()
    tenant = create_tenant(create_property(create_owner()))

    close_tenant_negotiation(
        state,
        tenant.id,
        manager,
        new_value=Decimal("1100"),
        new_start="2025-01-12",
        new_end="2026-01-11",
        contract_doc=Document(name="renewal.pdf", url="https://files.example.com/renewal.pdf"),
    )

    records = renewal_queue(state, TODAY)
    assert [(record.tenant_id, record.bucket) for record in records] == [(tenant.id, "renewed")]
    assert renewal_queue(state, TODAY, RenewalFilters(bucket="critical")) == []


def test_renewal_queue_uses_price_review_threshold(state, create_property, create_tenant):
    state.financial_settings = FinancialSettings(price_review_threshold_pct=Decimal("5"))
    create_tenant(create_property(), suggested_renewal_price=Decimal("1060"))

    assert renewal_queue(state, TODAY)[0].needs_price_review is True


def test_bulk_update_reports_missing_and_skipped(state, create_user, create_property, create_tenant):
    manager = create_user()
    first = create_tenant(create_property())
    second = create_tenant(create_property(), name="Paulo Dias")
    short_stay = create_tenant(create_property(profile_type="short_term"), name="Guest")

    result = bulk_update_status(state, [first.id, "tenant-missing", second.id, short_stay.id], "vacating", manager)

    assert [tenant.id for tenant in result.updated] == [first.id, second.id]
    assert result.missing == ["tenant-missing"]
    assert list(result.skipped) == [short_stay.id]
    assert state.tenants.get(second.id).negotiation_status == "vacating"
