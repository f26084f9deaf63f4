"""Company role enum for role-based access control."""

from enum import Enum as PyEnum


class CompanyRole(str, PyEnum):
    """
    Company membership roles.

    Roles are a closed set and are not a strict hierarchy: an AUDITOR sees
    more than a USER but can change less than an ADMIN.

    Permissions:
    - OWNER: Everything (rename/delete company, transfer ownership, manage all users)
    - ADMIN: Approve/reject/delete company expenses, invite/remove users and
      change roles below admin
    - AUDITOR: Read-only access to every company expense
    - USER: Create, read and delete their own expenses
    """

    OWNER = "owner"
    ADMIN = "admin"
    AUDITOR = "auditor"
    USER = "user"
