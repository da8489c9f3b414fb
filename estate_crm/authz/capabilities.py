from __future__ import annotations

from enum import StrEnum


class Capability(StrEnum):
    VIEW_OWN_PROFILE = "VIEW_OWN_PROFILE"
    EDIT_OWN_PROFILE = "EDIT_OWN_PROFILE"
    VIEW_ASSIGNED_LEADS = "VIEW_ASSIGNED_LEADS"
    VIEW_ASSIGNED_PROPERTIES = "VIEW_ASSIGNED_PROPERTIES"
    ADD_NOTES_TO_LEADS = "ADD_NOTES_TO_LEADS"
    UPDATE_LEAD_STATUS = "UPDATE_LEAD_STATUS"
    CALL_LEADS = "CALL_LEADS"

    VIEW_TEAM_LEADS = "VIEW_TEAM_LEADS"
    ASSIGN_LEADS_TO_TEAM = "ASSIGN_LEADS_TO_TEAM"
    VIEW_TEAM_PERFORMANCE = "VIEW_TEAM_PERFORMANCE"
    MANAGE_TEAM_MEMBERS = "MANAGE_TEAM_MEMBERS"
    VIEW_TEAM_HIERARCHY = "VIEW_TEAM_HIERARCHY"

    VIEW_BRANCH_AGENTS = "VIEW_BRANCH_AGENTS"
    CREATE_AGENTS = "CREATE_AGENTS"
    EDIT_TEAM_AGENTS = "EDIT_TEAM_AGENTS"
    VIEW_BRANCH_ANALYTICS = "VIEW_BRANCH_ANALYTICS"
    MANAGE_BRANCH_PROPERTIES = "MANAGE_BRANCH_PROPERTIES"
    DELETE_AGENTS = "DELETE_AGENTS"
    CREATE_LEADS = "CREATE_LEADS"
    EDIT_LEADS = "EDIT_LEADS"
    DELETE_LEADS = "DELETE_LEADS"

    VIEW_REGIONAL_DATA = "VIEW_REGIONAL_DATA"
    MANAGE_BRANCHES = "MANAGE_BRANCHES"
    REGIONAL_ANALYTICS = "REGIONAL_ANALYTICS"
    BULK_OPERATIONS = "BULK_OPERATIONS"
    IMPORT_EXPORT_DATA = "IMPORT_EXPORT_DATA"

    COMPANY_ANALYTICS = "COMPANY_ANALYTICS"
    MANAGE_DEPARTMENTS = "MANAGE_DEPARTMENTS"
    STRATEGIC_DECISIONS = "STRATEGIC_DECISIONS"

    FULL_SYSTEM_ACCESS = "FULL_SYSTEM_ACCESS"
    MANAGE_ALL_USERS = "MANAGE_ALL_USERS"
    MANAGE_ROLES = "MANAGE_ROLES"
    SYSTEM_SETTINGS = "SYSTEM_SETTINGS"
