RESOURCES = (
    "dashboard",
    "properties",
    "short_term",
    "renewals",
    "market_analysis",
    "condominiums",
    "tenants",
    "owners",
    "partners",
    "calendar",
    "tasks",
    "workflows",
    "financial",
    "messages",
    "users",
    "settings",
    "audit_logs",
    "publicity",
    "portal",
)

ACTIONS = ("view", "create", "edit", "delete")

STAFF_ROLES = ("platform_owner", "software_tenant", "internal_user")

# Statuses that lose all access until an administrator reactivates the account
INACTIVE_USER_STATUSES = ("blocked", "pending_approval")

ROLE_LABELS = {
    "platform_owner": "Platform Owner",
    "software_tenant": "Property Manager",
    "internal_user": "Internal Staff",
    "property_owner": "Property Owner",
    "partner": "Partner (Supplier)",
    "partner_employee": "Partner Team Member",
    "tenant": "Tenant",
}

# Which roles each role may create from the users screen
CREATABLE_ROLES = {
    "platform_owner": ("software_tenant", "internal_user"),
    "software_tenant": ("internal_user", "partner", "property_owner"),
    "partner": ("partner_employee",),
}

TASK_STATUSES = ("pending", "in_progress", "approved", "pending_approval", "completed")

# Task fields partner accounts may not change on their own tasks
PARTNER_LOCKED_TASK_FIELDS = {
    "partner": ("property_id", "assignee_id", "labor_cost", "material_cost", "team_member_payout"),
    "partner_employee": (
        "property_id",
        "assignee_id",
        "partner_employee_id",
        "labor_cost",
        "material_cost",
        "team_member_payout",
    ),
}

# Partner type that services each task type
PARTNER_TYPE_FOR_TASK = {
    "cleaning": "cleaning",
    "maintenance": "maintenance",
    "inspection": "agent",
}

NEGOTIATION_STATUSES = ("negotiating", "owner_contacted", "tenant_contacted", "vacating", "closed")
DEFAULT_NEGOTIATION_STATUS = "negotiating"

RENEWAL_BUCKETS = ("renewed", "critical", "upcoming", "year", "safe")

# Strict "less than" thresholds, checked in order
RENEWAL_THRESHOLDS = (
    ("critical", 30),
    ("upcoming", 90),
    ("year", 365),
)

# Stand-in for an unknown lease end; large enough to always land in "safe"
RENEWAL_SENTINEL_DAYS = 99999
