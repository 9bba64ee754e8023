# ============================================
# CENTRALIZED MODULE IDS + ROLE ACCESS MAP
# ============================================
MODULE_IDS = {
    "SOCIETY": "society",
    "FLAT_OWNER": "flat_owner",
    "RENTAL_DETAIL": "rental_detail",
    "CATEGORY": "category",
    "MEETINGS": "meetings",
    "ACTIVITY_DETAILS": "activity_details",
    "ACTIVITY_PAYMENT": "activity_payment",
    "ACTIVITY_EXPENSES": "activity_expenses",
    "EXPENSES": "expenses",
    "MAINTENANCE_COMPONENT": "maintenance_component",
    "MAINTENANCE_RATE": "maintenance_rate",
    "MAINTENANCE_DETAIL": "maintenance_detail",
}

ALL_MODULES = sorted(MODULE_IDS.values())


# =====================================================
# Sidebar menu label → module id
# =====================================================
MENU_LABEL_TO_MODULE = {
    "Society": MODULE_IDS["SOCIETY"],
    "Flat Owner": MODULE_IDS["FLAT_OWNER"],
    "Rental Detail": MODULE_IDS["RENTAL_DETAIL"],
    "Category": MODULE_IDS["CATEGORY"],
    "Meetings": MODULE_IDS["MEETINGS"],
    "Activity Details": MODULE_IDS["ACTIVITY_DETAILS"],
    "Activity Payment": MODULE_IDS["ACTIVITY_PAYMENT"],
    "Activity Expenses": MODULE_IDS["ACTIVITY_EXPENSES"],
    "Expenses": MODULE_IDS["EXPENSES"],
    "Maintenance Component": MODULE_IDS["MAINTENANCE_COMPONENT"],
    "Maintenance Rate": MODULE_IDS["MAINTENANCE_RATE"],
    "Maintenance Detail": MODULE_IDS["MAINTENANCE_DETAIL"],
}


ROLE_MODULE_ACCESS = {

    # =====================================================
    # ADMIN / SECRETARY: every module, read and write
    # =====================================================
    "admin": ["*"],
    "super_admin": ["*"],
    "secretary": ["*"],

    # =====================================================
    # OWNER: sees every module, cannot edit or delete
    # =====================================================
    "owner": ["*:read"],

    # =====================================================
    # OTHER COMMITTEE ROLES: only what a delegation grants
    # =====================================================
}


# Roles that may create and manage delegations
DELEGATION_MANAGER_ROLES = {"admin", "super_admin", "secretary"}

# Roles that never get write access
READ_ONLY_ROLES = {"owner"}
