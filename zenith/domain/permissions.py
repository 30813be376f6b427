# zenith/domain/permissions.py
from enum import Enum
from typing import Any, Dict, List

from .errors import BadRequest


class View(str, Enum):
    DASHBOARD = "dashboard"
    ATTENDANCE = "attendance"
    PROFILE = "profile"
    ADMIN = "admin"
    VACATIONS = "vacations"
    VACATION_FORM = "vacation_form"
    VACATION_REQUESTS = "vacation_requests"
    CASHIER = "cashier"
    COMPANY_STRUCTURE = "company_structure"
    ATTENDANCE_REPORT = "attendance_report"
    ACCOUNTANT = "accountant"
    USERS = "users"


class Role(str, Enum):
    ADMIN = "Admin"
    MANAGER = "Manager"
    EDITOR = "Editor"
    ACCOUNTANT = "Accountant"
    EMPLOYEE = "Employee"
    HR = "HR"


def _names(*views: View) -> List[str]:
    return [v.value for v in views]


# Which screens each role may open unless the stored settings override it
DEFAULT_ROLE_PERMISSIONS: Dict[str, List[str]] = {
    Role.ADMIN.value: _names(
        View.DASHBOARD, View.PROFILE, View.ADMIN, View.VACATIONS, View.VACATION_FORM,
        View.VACATION_REQUESTS, View.CASHIER, View.COMPANY_STRUCTURE,
        View.ATTENDANCE_REPORT, View.ACCOUNTANT, View.USERS,
    ),
    Role.MANAGER.value: _names(
        View.DASHBOARD, View.PROFILE, View.VACATIONS, View.VACATION_FORM,
        View.VACATION_REQUESTS, View.CASHIER, View.ATTENDANCE_REPORT,
        View.ACCOUNTANT, View.USERS,
    ),
    Role.EDITOR.value: _names(
        View.DASHBOARD, View.PROFILE, View.VACATIONS, View.VACATION_FORM,
        View.CASHIER, View.COMPANY_STRUCTURE, View.USERS,
    ),
    Role.ACCOUNTANT.value: _names(View.DASHBOARD, View.PROFILE, View.CASHIER, View.ACCOUNTANT),
    Role.EMPLOYEE.value: _names(
        View.DASHBOARD, View.PROFILE, View.VACATIONS, View.VACATION_FORM, View.CASHIER,
    ),
    Role.HR.value: _names(
        View.DASHBOARD, View.PROFILE, View.VACATIONS, View.VACATION_FORM,
        View.VACATION_REQUESTS, View.USERS,
    ),
}

DEFAULT_DEPARTMENTS = ["რითეილი", "ოფისი", "საწყობი"]

DEFAULT_SETTINGS: Dict[str, Any] = {
    "appTitle": "Zenith Portal",
    "smsSenderName": "smsoffice",
    "attendanceEnabledDepartments": ["რითეილი"],
    "cashDeskEnabledDepartments": ["რითეილი"],
    "replacementEnabledDepartments": ["რითეილი"],
    "branchSelectorEnabledDepartments": ["რითეილი"],
    "rolePermissions": DEFAULT_ROLE_PERMISSIONS,
    "logoUrl": "",
    "faviconUrl": "",
    "adminPhone": "",
    "accountantPhone": "",
    "hrPhone": "",
    "birthdaySmsTime": "09:00",
}


def allowed_views(settings: Dict[str, Any], role: str) -> List[str]:
    if role not in DEFAULT_ROLE_PERMISSIONS:
        raise BadRequest(f"Unknown role: {role}")
    stored = (settings or {}).get("rolePermissions") or {}
    if role in stored:
        return list(stored[role])
    return list(DEFAULT_ROLE_PERMISSIONS[role])
