"""Sample portfolio used for local development when ``SEED_DEMO_DATA`` is on."""

import logging
from datetime import date, timedelta
from decimal import Decimal
from typing import Optional

from ..models.models import Owner, Partner, Property, ServiceRate, Task, Tenant, User
from ..services.permissions import default_permissions_for_role
from ..services.store import AppState
from ..services.tasks import derive_billable

logger = logging.getLogger(__name__)

MANAGER_ID = "user-manager"
PARTNER_ID = "partner-cleanfast"


def _iso(day: date) -> str:
    return day.isoformat()


def seed_demo_data(state: AppState, today: Optional[date] = None) -> None:
    if len(state.properties):
        logger.info("Demo data skipped; state already holds %d properties", len(state.properties))
        return
    today = today or date.today()

    state.users.add(
        User(
            id=MANAGER_ID,
            name="Marta Lopes",
            email="manager@leasedesk.local",
            role="software_tenant",
            permissions=default_permissions_for_role("software_tenant"),
            company_name="Lopes Property Management",
        )
    )
    state.users.add(
        User(
            id="user-cleanfast",
            name="CleanFast Services",
            email="ops@cleanfast.local",
            role="partner",
            permissions=default_permissions_for_role("partner"),
            parent_id=MANAGER_ID,
        )
    )

    for owner in (
        Owner(id="owner-silva", name="Ana Silva", email="ana.silva@example.com"),
        Owner(id="owner-costa", name="Rui Costa", email="rui.costa@example.com"),
    ):
        state.owners.add(owner)

    for prop in (
        Property(id="prop-harbor-12", name="Harbor View 12", owner_id="owner-silva", status="rented"),
        Property(id="prop-oak-4", name="Oak Street 4", owner_id="owner-costa", status="rented"),
        Property(id="prop-pine-9", name="Pine Court 9", owner_id="owner-costa", status="rented"),
        Property(id="prop-beach-2", name="Beach Loft 2", owner_id="owner-silva", profile_type="short_term"),
    ):
        state.properties.add(prop)

    state.partners.add(
        Partner(
            id=PARTNER_ID,
            name="CleanFast Services",
            email="ops@cleanfast.local",
            type="cleaning",
            linked_property_ids=["prop-beach-2", "prop-harbor-12"],
        )
    )

    for tenant in (
        Tenant(
            id="tenant-ines",
            name="Ines Rocha",
            property_id="prop-harbor-12",
            lease_start=_iso(today - timedelta(days=355)),
            lease_end=_iso(today + timedelta(days=10)),
            rent_value=Decimal("1200"),
        ),
        Tenant(
            id="tenant-paulo",
            name="Paulo Dias",
            property_id="prop-oak-4",
            lease_start=_iso(today - timedelta(days=300)),
            lease_end=_iso(today + timedelta(days=65)),
            rent_value=Decimal("950"),
            negotiation_status="owner_contacted",
            suggested_renewal_price=Decimal("1000"),
        ),
        Tenant(
            id="tenant-clara",
            name="Clara Nunes",
            property_id="prop-pine-9",
            lease_start=_iso(today - timedelta(days=100)),
            lease_end=_iso(today + timedelta(days=265)),
            rent_value=Decimal("1100"),
        ),
    ):
        state.tenants.add(tenant)

    state.service_rates.add(
        ServiceRate(
            id="rate-turnover-clean",
            service_name="Cleaning",
            category="Turnover",
            partner_id=PARTNER_ID,
            service_price=Decimal("90"),
            partner_payment=Decimal("60"),
            product_price=Decimal("10"),
            pm_value=Decimal("30"),
        )
    )

    financial = state.financial_settings
    state.tasks.add(
        Task(
            id="task-beach-turnover",
            title="Turnover cleaning",
            property_id="prop-beach-2",
            type="cleaning",
            assignee_id=PARTNER_ID,
            date=_iso(today + timedelta(days=1)),
            labor_cost=Decimal("60"),
            material_cost=Decimal("10"),
            billable_amount=derive_billable(
                Decimal("60"), Decimal("10"), financial.labor_margin_pct, financial.material_margin_pct
            ),
            back_to_back=True,
        )
    )
    logger.info(
        "Seeded demo data: %d properties, %d tenants, %d tasks",
        len(state.properties),
        len(state.tenants),
        len(state.tasks),
    )
