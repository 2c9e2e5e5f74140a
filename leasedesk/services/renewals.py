from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, List, Mapping, Optional

from ..constants import (
    DEFAULT_NEGOTIATION_STATUS,
    NEGOTIATION_STATUSES,
    RENEWAL_BUCKETS,
    RENEWAL_SENTINEL_DAYS,
    RENEWAL_THRESHOLDS,
)
from ..models.models import Document, NegotiationLogEntry, Owner, Property, Tenant, utcnow
from ..utils.dates import DateLike, parse_iso_date

logger = logging.getLogger(__name__)


class NegotiationError(ValueError):
    """Raised when negotiation input is rejected before any change is made."""

    def __init__(self, message: str, errors: Optional[Dict[str, str]] = None) -> None:
        super().__init__(message)
        self.errors = errors or {}


@dataclass(frozen=True)
class DaysLeft:
    ok: bool
    days: int
    reason: Optional[str] = None


@dataclass(frozen=True)
class RenewalUrgency:
    bucket: str
    days_left: int


def compute_days_left(lease_end: Optional[DateLike], today: date) -> DaysLeft:
    if lease_end is None or lease_end == "":
        return DaysLeft(ok=False, days=RENEWAL_SENTINEL_DAYS, reason="missing_date")
    try:
        end = parse_iso_date(lease_end)
    except (TypeError, ValueError):
        logger.warning("Unparseable lease end %r; treating lease as not expiring", lease_end)
        return DaysLeft(ok=False, days=RENEWAL_SENTINEL_DAYS, reason="invalid_date")
    return DaysLeft(ok=True, days=(end - today).days)


def bucket_for_days(days_left: int) -> str:
    for bucket, limit in RENEWAL_THRESHOLDS:
        if days_left < limit:
            return bucket
    return "safe"


def classify_renewal_urgency(
    lease_end: Optional[DateLike],
    negotiation_status: Optional[str],
    today: date,
) -> RenewalUrgency:
    if isinstance(today, datetime):
        today = today.date()
    days_left = compute_days_left(lease_end, today).days
    if negotiation_status == "closed":
        return RenewalUrgency(bucket="renewed", days_left=days_left)
    return RenewalUrgency(bucket=bucket_for_days(days_left), days_left=days_left)


def is_renewal_candidate(tenant: Tenant, prop: Optional[Property]) -> bool:
    if prop is None or prop.profile_type != "long_term":
        return False
    return tenant.status == "active" or tenant.negotiation_status == "closed"


@dataclass(frozen=True)
class RenewalRecord:
    tenant_id: str
    tenant_name: str
    property_id: str
    property_name: str
    owner_id: Optional[str]
    owner_name: Optional[str]
    lease_end: Optional[str]
    lease_end_date: Optional[date]
    days_left: int
    bucket: str
    negotiation_status: str
    rent_value: Decimal
    suggested_renewal_price: Optional[Decimal] = None
    needs_price_review: bool = False


def needs_price_review(rent_value: Any, suggested_price: Any, threshold_pct: Any) -> bool:
    """True when the proposed renewal rent moves more than ``threshold_pct`` away from the current rent."""
    if suggested_price is None or threshold_pct is None:
        return False
    current = Decimal(str(rent_value or 0))
    if current <= 0:
        return False
    change_pct = abs(Decimal(str(suggested_price)) - current) / current * Decimal("100")
    return change_pct > Decimal(str(threshold_pct))


def build_renewal_records(
    tenants: Iterable[Tenant],
    properties: Mapping[str, Property],
    owners: Mapping[str, Owner],
    today: date,
    price_review_threshold_pct: Any = None,
) -> List[RenewalRecord]:
    records: List[RenewalRecord] = []
    for tenant in tenants:
        prop = properties.get(tenant.property_id or "")
        if not is_renewal_candidate(tenant, prop):
            continue
        owner = owners.get(prop.owner_id or "")
        urgency = classify_renewal_urgency(tenant.lease_end, tenant.negotiation_status, today)
        days = compute_days_left(tenant.lease_end, today)
        records.append(
            RenewalRecord(
                tenant_id=tenant.id,
                tenant_name=tenant.name,
                property_id=prop.id,
                property_name=prop.name,
                owner_id=owner.id if owner else prop.owner_id,
                owner_name=owner.name if owner else None,
                lease_end=tenant.lease_end,
                lease_end_date=parse_iso_date(tenant.lease_end) if days.ok else None,
                days_left=urgency.days_left,
                bucket=urgency.bucket,
                negotiation_status=tenant.negotiation_status or DEFAULT_NEGOTIATION_STATUS,
                rent_value=tenant.rent_value,
                suggested_renewal_price=tenant.suggested_renewal_price,
                needs_price_review=needs_price_review(
                    tenant.rent_value, tenant.suggested_renewal_price, price_review_threshold_pct
                ),
            )
        )
    records.sort(key=lambda record: record.days_left)
    return records


def matches_bucket(record: RenewalRecord, bucket: Optional[str]) -> bool:
    return not bucket or record.bucket == bucket


def matches_owner(record: RenewalRecord, owner_id: Optional[str]) -> bool:
    return not owner_id or record.owner_id == owner_id


def matches_date_range(record: RenewalRecord, start: Optional[date], end: Optional[date]) -> bool:
    if start is None and end is None:
        return True
    if record.lease_end_date is None:
        return False
    if start is not None and record.lease_end_date < start:
        return False
    if end is not None and record.lease_end_date > end:
        return False
    return True


def matches_search(record: RenewalRecord, text: Optional[str]) -> bool:
    needle = (text or "").strip().lower()
    if not needle:
        return True
    haystack = (record.property_name, record.tenant_name, record.owner_name or "")
    return any(needle in value.lower() for value in haystack)


@dataclass(frozen=True)
class RenewalFilters:
    bucket: Optional[str] = None
    owner_id: Optional[str] = None
    start: Optional[date] = None
    end: Optional[date] = None
    search: Optional[str] = None


def filter_renewals(records: Iterable[RenewalRecord], filters: RenewalFilters) -> List[RenewalRecord]:
    return [
        record
        for record in records
        if matches_bucket(record, filters.bucket)
        and matches_owner(record, filters.owner_id)
        and matches_date_range(record, filters.start, filters.end)
        and matches_search(record, filters.search)
    ]


def summarize_buckets(records: Iterable[RenewalRecord]) -> Dict[str, int]:
    counts = {bucket: 0 for bucket in RENEWAL_BUCKETS}
    for record in records:
        counts[record.bucket] += 1
    return counts


def update_negotiation(
    tenant: Tenant,
    *,
    status: Optional[str] = None,
    suggested_price: Any = None,
    log: Optional[NegotiationLogEntry] = None,
) -> Tenant:
    if status is not None and status not in NEGOTIATION_STATUSES:
        raise NegotiationError(f"Unknown negotiation status '{status}'", {"status": "Unknown status."})
    if status == "closed":
        raise NegotiationError(
            "Closing a negotiation requires the new lease terms",
            {"status": "Use the close negotiation action."},
        )

    update: Dict[str, Any] = {}
    if status is not None:
        update["negotiation_status"] = status
    elif tenant.negotiation_status is None:
        update["negotiation_status"] = DEFAULT_NEGOTIATION_STATUS
    if suggested_price is not None:
        try:
            update["suggested_renewal_price"] = Decimal(str(suggested_price))
        except InvalidOperation as exc:
            raise NegotiationError("Invalid suggested price", {"suggested_price": "Enter a number."}) from exc
    if log is not None:
        update["negotiation_logs"] = [*tenant.negotiation_logs, log]
    return tenant.model_copy(update=update)


def validate_close_terms(new_value: Any, new_start: Any, new_end: Any, contract_doc: Any) -> Dict[str, str]:
    errors: Dict[str, str] = {}
    try:
        if new_value is None or Decimal(str(new_value)) < 0:
            errors["new_value"] = "Enter the new rent value."
    except InvalidOperation:
        errors["new_value"] = "Enter a number."

    parsed: Dict[str, date] = {}
    for name, value in (("new_start", new_start), ("new_end", new_end)):
        if not value:
            errors[name] = "Date is required."
            continue
        try:
            parsed[name] = parse_iso_date(value)
        except (TypeError, ValueError):
            errors[name] = "Enter a valid date."
    if len(parsed) == 2 and parsed["new_end"] <= parsed["new_start"]:
        errors["new_end"] = "End date must be after the start date."

    if contract_doc is None:
        errors["contract_document"] = "Attach the signed contract."
    return errors


def close_negotiation(
    tenant: Tenant,
    new_value: Any,
    new_start: str,
    new_end: str,
    contract_doc: Document,
    *,
    actor_name: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Tenant:
    """Renew the lease and mark the negotiation closed in one replacement.

    The input tenant is left untouched; the caller stores the returned
    record in a single write.
    """
    errors = validate_close_terms(new_value, new_start, new_end, contract_doc)
    if errors:
        raise NegotiationError("Negotiation cannot be closed", errors)

    rent = Decimal(str(new_value))
    entry = NegotiationLogEntry(
        date=now or utcnow(),
        action="Closed",
        note=f"Renewed at {rent} from {new_start} to {new_end}",
        user=actor_name,
    )
    return tenant.model_copy(
        update={
            "lease_start": new_start,
            "lease_end": new_end,
            "rent_value": rent,
            "negotiation_status": "closed",
            "documents": [*tenant.documents, contract_doc],
            "negotiation_logs": [*tenant.negotiation_logs, entry],
        }
    )


@dataclass
class BulkUpdateResult:
    updated: List[Tenant] = field(default_factory=list)
    missing: List[str] = field(default_factory=list)
    skipped: Dict[str, str] = field(default_factory=dict)
