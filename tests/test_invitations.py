import pytest
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from expense_tracker.models.company_membership import CompanyMembership
from expense_tracker.models.invitation import Invitation, InvitationStatus
from expense_tracker.models.role import CompanyRole
from tests.conftest import flush_then_fail, headers_for


def invite(client, headers, email, role="user"):
    return client.post(
        "/api/companies/me/invitations", json={"email": email, "role": role}, headers=headers
    )


@pytest.fixture
def company(client, auth_headers):
    """Company owned by the default caller"""
    response = client.post("/api/companies", json={"name": "Acme Inc"}, headers=auth_headers)
    assert response.status_code == 201
    return response.json()


class TestSendInvitation:
    """Tests for POST /api/companies/me/invitations"""

    def test_owner_invites(self, client, company, auth_headers):
        response = invite(client, auth_headers, "New.Hire@Example.com", "admin")

        assert response.status_code == 201
        invitation = response.json()
        assert invitation["invitee_email"] == "new.hire@example.com"
        assert invitation["company_name"] == "Acme Inc"
        assert invitation["role"] == CompanyRole.ADMIN
        assert invitation["status"] == "pending"
        assert invitation["accepted_by_id"] is None

    def test_default_role_is_user(self, client, company, auth_headers):
        response = client.post(
            "/api/companies/me/invitations", json={"email": "a@example.com"}, headers=auth_headers
        )
        assert response.json()["role"] == CompanyRole.USER

    def test_invalid_email_rejected(self, client, company, auth_headers):
        response = invite(client, auth_headers, "not-an-email")
        assert response.status_code == 422

    def test_nobody_invites_as_owner(self, client, company, auth_headers):
        response = invite(client, auth_headers, "a@example.com", "owner")

        assert response.status_code == 403
        assert response.json()["detail"] == "Ownership can only be transferred, not granted by invitation"

    def test_duplicate_pending_invitation_rejected(self, client, company, auth_headers):
        invite(client, auth_headers, "a@example.com")

        response = invite(client, auth_headers, "A@example.com")

        assert response.status_code == 400
        assert response.json()["detail"] == "An invitation is already pending for a@example.com"

    def test_existing_member_rejected(self, client, company_setup, auth_headers):
        company_setup()

        response = invite(client, auth_headers, "member@example.com")

        assert response.status_code == 400
        assert "already a member" in response.json()["detail"]

    def test_personal_mode_cannot_invite(self, client, outsider_headers):
        response = invite(client, outsider_headers, "a@example.com")

        assert response.status_code == 403
        assert response.json()["detail"] == "You are not part of a company"

    def test_admin_invites_auditor_but_not_admin(self, client, company_setup, member_headers):
        company_setup(CompanyRole.ADMIN)

        assert invite(client, member_headers, "b@example.com", "auditor").status_code == 201
        response = invite(client, member_headers, "c@example.com", "admin")
        assert response.status_code == 403

    def test_user_cannot_invite(self, client, company_setup, member_headers):
        company_setup()

        response = invite(client, member_headers, "b@example.com")

        assert response.status_code == 403
        assert response.json()["detail"] == "Only owners and admins can invite members"


class TestRespondToInvitation:
    """Tests for /api/invitations"""

    def test_invitee_sees_pending_invitations(self, client, company, auth_headers, outsider_headers):
        invite(client, auth_headers, "outsider@example.com")

        response = client.get("/api/invitations", headers=outsider_headers)

        assert response.status_code == 200
        invitations = response.json()
        assert len(invitations) == 1
        assert invitations[0]["company_name"] == "Acme Inc"

    def test_accept_joins_company_with_role(self, client, company, auth_headers, outsider_headers):
        invitation = invite(client, auth_headers, "outsider@example.com", "auditor").json()

        response = client.post(f"/api/invitations/{invitation['id']}/accept", headers=outsider_headers)

        assert response.status_code == 200
        accepted = response.json()
        profile = client.get("/api/profile", headers=outsider_headers).json()
        assert accepted["status"] == "accepted"
        assert accepted["accepted_by_id"] == profile["id"]
        assert accepted["accepted_at"] is not None
        assert profile["company_id"] == company["id"]
        assert profile["role"] == CompanyRole.AUDITOR

        company_view = client.get("/api/companies/me", headers=outsider_headers).json()
        assert profile["id"] in company_view["member_ids"]

        assert client.get("/api/invitations", headers=outsider_headers).json() == []

    def test_accept_twice_rejected(self, client, company, auth_headers, outsider_headers):
        invitation = invite(client, auth_headers, "outsider@example.com").json()
        client.post(f"/api/invitations/{invitation['id']}/accept", headers=outsider_headers)

        response = client.post(f"/api/invitations/{invitation['id']}/accept", headers=outsider_headers)

        assert response.status_code == 400
        assert response.json()["detail"] == "Invitation is already accepted"

    def test_only_invitee_may_accept(self, client, company, auth_headers, outsider_headers):
        invitation = invite(client, auth_headers, "someone.else@example.com").json()

        response = client.post(f"/api/invitations/{invitation['id']}/accept", headers=outsider_headers)

        assert response.status_code == 403
        assert response.json()["detail"] == "This invitation is not addressed to you"

    def test_token_without_email_cannot_accept(self, client, company, auth_headers):
        invitation = invite(client, auth_headers, "someone@example.com").json()
        headers = headers_for("no-email-user", None)

        response = client.post(f"/api/invitations/{invitation['id']}/accept", headers=headers)

        assert response.status_code == 403

    def test_stored_email_does_not_stand_in_for_token_email(
        self, client, company, auth_headers, outsider_headers
    ):
        invitation = invite(client, auth_headers, "outsider@example.com").json()
        profile = client.get("/api/profile", headers=outsider_headers).json()
        assert profile["email"] == "outsider@example.com"
        headers = headers_for("outsider-user", None)

        assert client.get("/api/invitations", headers=headers).json() == []
        response = client.post(f"/api/invitations/{invitation['id']}/accept", headers=headers)

        assert response.status_code == 403
        assert response.json()["detail"] == "Your account has no verified email address"
        assert client.get("/api/profile", headers=headers).json()["company_id"] is None

    def test_failed_accept_changes_nothing(
        self, client, company, auth_headers, outsider_headers, db_session, monkeypatch
    ):
        invitation = invite(client, auth_headers, "outsider@example.com").json()
        outsider = client.get("/api/profile", headers=outsider_headers).json()

        with monkeypatch.context() as m:
            m.setattr(db_session, "commit", flush_then_fail(db_session))
            with pytest.raises(SQLAlchemyError):
                client.post(f"/api/invitations/{invitation['id']}/accept", headers=outsider_headers)

        stored = db_session.get(Invitation, invitation["id"])
        assert stored.status == InvitationStatus.PENDING
        assert stored.accepted_by_id is None
        assert stored.accepted_at is None
        membership = db_session.scalars(
            select(CompanyMembership).where(CompanyMembership.user_id == outsider["id"])
        ).first()
        assert membership is None

        response = client.post(f"/api/invitations/{invitation['id']}/accept", headers=outsider_headers)
        assert response.status_code == 200

    def test_accept_unknown_invitation(self, client, outsider_headers):
        response = client.post("/api/invitations/999/accept", headers=outsider_headers)
        assert response.status_code == 404

    def test_decline(self, client, company, auth_headers, outsider_headers):
        invitation = invite(client, auth_headers, "outsider@example.com").json()

        response = client.post(f"/api/invitations/{invitation['id']}/decline", headers=outsider_headers)

        assert response.status_code == 200
        assert response.json()["status"] == "declined"
        assert client.get("/api/profile", headers=outsider_headers).json()["company_id"] is None

        response = client.post(f"/api/invitations/{invitation['id']}/accept", headers=outsider_headers)
        assert response.status_code == 400

    def test_member_switches_company(self, client, company_setup, member_headers, outsider_headers):
        company_setup()
        other = client.post("/api/companies", json={"name": "Globex"}, headers=outsider_headers).json()
        invitation = invite(client, outsider_headers, "member@example.com").json()

        response = client.post(f"/api/invitations/{invitation['id']}/accept", headers=member_headers)

        assert response.status_code == 200
        profile = client.get("/api/profile", headers=member_headers).json()
        assert profile["company_id"] == other["id"]
        assert profile["role"] == CompanyRole.USER

    def test_owner_of_other_company_must_transfer_first(
        self, client, company, auth_headers, outsider_headers
    ):
        client.post("/api/companies", json={"name": "Globex"}, headers=outsider_headers)
        invitation = invite(client, outsider_headers, "owner@example.com").json()

        response = client.post(f"/api/invitations/{invitation['id']}/accept", headers=auth_headers)

        assert response.status_code == 400
        assert "transfer ownership" in response.json()["detail"]


class TestCompanyInvitations:
    """Tests for GET /api/companies/me/invitations"""

    def test_list_with_status_filter(self, client, company, auth_headers, outsider_headers):
        first = invite(client, auth_headers, "outsider@example.com").json()
        invite(client, auth_headers, "b@example.com")
        client.post(f"/api/invitations/{first['id']}/decline", headers=outsider_headers)

        everything = client.get("/api/companies/me/invitations", headers=auth_headers).json()
        pending = client.get("/api/companies/me/invitations?status=pending", headers=auth_headers).json()

        assert len(everything) == 2
        assert [i["invitee_email"] for i in pending] == ["b@example.com"]

    def test_user_cannot_list(self, client, company_setup, member_headers):
        company_setup()

        response = client.get("/api/companies/me/invitations", headers=member_headers)

        assert response.status_code == 403

    def test_auditor_can_list(self, client, company_setup, member_headers):
        company_setup(CompanyRole.AUDITOR)

        response = client.get("/api/companies/me/invitations", headers=member_headers)

        assert response.status_code == 200
        assert len(response.json()) == 1
