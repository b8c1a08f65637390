"""
API tests through FastAPI's TestClient.

Focus: auth flow, service error → HTTP status mapping, role checks and
the internal scheduler endpoints.
"""
import io

from talaty import config
from talaty.models.db_models import DocumentDB, ScoreDB, UserRole, UserStatus


PERSONAL_COMPLETE = {
    "firstName": "Amira",
    "lastName": "Haddad",
    "dateOfBirth": "1990-04-01",
    "nationality": "TN",
    "address": "12 Rue de Marseille, Tunis",
}


def upload_pdf(client, headers, **form):
    data = {"document_type": "business_license", "document_name": "Business license"}
    data.update(form)
    return client.post(
        "/documents/upload",
        headers=headers,
        data=data,
        files={"file": ("license.pdf", io.BytesIO(b"%PDF-1.4 license"), "application/pdf")},
    )


class TestAuthEndpoints:

    def test_register_creates_default_score(self, client, db):
        response = client.post("/auth/register", json={
            "email": "owner@haddad.tn",
            "password": "password123",
            "first_name": "Amira",
            "last_name": "Haddad",
            "business_name": "Haddad Textiles",
        })

        assert response.status_code == 201
        user_id = response.json()["user"]["id"]
        score = db.query(ScoreDB).filter(ScoreDB.user_id == user_id).one()
        assert score.total_score == 35
        assert score.registration_score == 35

    def test_duplicate_email_is_conflict(self, client, make_user):
        make_user(email="taken@example.com")

        response = client.post("/auth/register", json={
            "email": "taken@example.com", "password": "password123",
            "first_name": "Amira", "last_name": "Haddad",
        })

        assert response.status_code == 409

    def test_login_and_me(self, client, make_user):
        user = make_user(email="login@example.com")

        response = client.post("/auth/login", json={"email": "login@example.com", "password": "password123"})
        assert response.status_code == 200
        token = response.json()["access_token"]

        me = client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert me.status_code == 200
        assert me.json()["id"] == user.id

    def test_wrong_password_is_unauthorized(self, client, make_user):
        make_user(email="login@example.com")

        response = client.post("/auth/login", json={"email": "login@example.com", "password": "nope12345"})

        assert response.status_code == 401

    def test_suspended_account_cannot_login_or_use_token(self, client, db, make_user, auth_headers):
        user = make_user(email="paused@example.com")
        headers = auth_headers(user)
        user.status = UserStatus.SUSPENDED
        db.commit()

        login = client.post("/auth/login", json={"email": "paused@example.com", "password": "password123"})
        me = client.get("/auth/me", headers=headers)

        assert login.status_code == 403
        assert me.status_code == 403
        assert me.json()["detail"] == "Account suspended"

    def test_rejected_account_token_is_refused(self, client, db, make_user, auth_headers):
        user = make_user()
        user.status = UserStatus.REJECTED
        db.commit()

        response = client.get("/documents", headers=auth_headers(user))

        assert response.status_code == 403
        assert response.json()["detail"] == "Account rejected"

    def test_pending_account_is_allowed(self, client, db, make_user, auth_headers):
        user = make_user()
        user.status = UserStatus.PENDING
        db.commit()

        assert client.get("/auth/me", headers=auth_headers(user)).status_code == 200


class TestDocumentEndpoints:

    def test_upload_list_and_delete(self, client, make_user, auth_headers):
        user = make_user()
        headers = auth_headers(user)

        response = upload_pdf(client, headers, expiry_date="2030-01-01")
        assert response.status_code == 201
        document = response.json()["document"]
        assert document["status"] == "pending"
        assert document["expiry_date"] == "2030-01-01"

        listed = client.get("/documents", headers=headers).json()["documents"]
        assert [d["id"] for d in listed] == [document["id"]]

        assert client.delete(f"/documents/{document['id']}", headers=headers).status_code == 200
        assert client.get(f"/documents/{document['id']}", headers=headers).status_code == 404

    def test_bad_file_type_is_bad_request(self, client, make_user, auth_headers):
        user = make_user()

        response = client.post(
            "/documents/upload",
            headers=auth_headers(user),
            data={"document_type": "passport", "document_name": "Passport"},
            files={"file": ("passport.exe", io.BytesIO(b"MZ"), "application/octet-stream")},
        )

        assert response.status_code == 400

    def test_unknown_document_type_is_bad_request(self, client, make_user, auth_headers):
        user = make_user()

        response = upload_pdf(client, auth_headers(user), document_type="selfie")

        assert response.status_code == 400

    def test_deleting_someone_elses_document_is_forbidden(self, client, make_user, auth_headers):
        owner = make_user()
        intruder = make_user()
        document_id = upload_pdf(client, auth_headers(owner)).json()["document"]["id"]

        response = client.delete(f"/documents/{document_id}", headers=auth_headers(intruder))

        assert response.status_code == 403

    def test_requires_authentication(self, client):
        assert client.get("/documents").status_code in (401, 403)


class TestAdminEndpoints:

    def test_verify_then_re_verify_is_conflict(self, client, db, make_user, auth_headers):
        reviewer = make_user(role=UserRole.REVIEWER)
        user = make_user()
        document_id = upload_pdf(client, auth_headers(user)).json()["document"]["id"]

        first = client.put(
            f"/admin/documents/{document_id}/verify",
            headers=auth_headers(reviewer),
            json={"status": "approved", "verification_notes": "Matches registry"},
        )
        assert first.status_code == 200

        second = client.put(
            f"/admin/documents/{document_id}/verify",
            headers=auth_headers(reviewer),
            json={"status": "rejected"},
        )
        assert second.status_code == 409

        score = client.get("/scores", headers=auth_headers(user)).json()["score"]
        assert score["document_score"] == 8
        assert score["total_score"] == 43

    def test_verify_missing_document_is_not_found(self, client, make_user, auth_headers):
        reviewer = make_user(role=UserRole.REVIEWER)

        response = client.put(
            "/admin/documents/does-not-exist/verify",
            headers=auth_headers(reviewer),
            json={"status": "approved"},
        )

        assert response.status_code == 404

    def test_plain_user_cannot_review(self, client, make_user, auth_headers):
        user = make_user()

        assert client.get("/admin/documents", headers=auth_headers(user)).status_code == 403

    def test_reviewer_can_open_review_queue(self, client, make_user, auth_headers):
        reviewer = make_user(role=UserRole.REVIEWER)

        assert client.get("/admin/documents", headers=auth_headers(reviewer)).status_code == 200

    def test_reviewer_cannot_change_user_status(self, client, make_user, auth_headers):
        reviewer = make_user(role=UserRole.REVIEWER)
        user = make_user()

        response = client.put(
            f"/admin/users/{user.id}/status",
            headers=auth_headers(reviewer),
            json={"kyc_status": "approved"},
        )

        assert response.status_code == 403

    def test_admin_sets_verification_flags(self, client, make_user, auth_headers):
        admin = make_user(role=UserRole.ADMIN)
        user = make_user()

        response = client.put(
            f"/admin/users/{user.id}/status",
            headers=auth_headers(admin),
            json={"email_verified": True, "phone_verified": True, "kyc_status": "approved"},
        )
        assert response.status_code == 200

        score = client.get("/scores", headers=auth_headers(user)).json()["score"]
        assert score["verification_score"] == 20
        assert score["total_score"] == 55

    def test_analytics_and_audit_logs(self, client, make_user, auth_headers):
        admin = make_user(role=UserRole.ADMIN)
        user = make_user()
        upload_pdf(client, auth_headers(user))

        analytics = client.get("/admin/analytics", headers=auth_headers(admin)).json()
        assert analytics["documents"]["pending"] == 1
        assert analytics["scores"]["average"] == 35.0

        logs = client.get("/admin/audit-logs?action=upload_document", headers=auth_headers(admin)).json()
        assert logs["pagination"]["total"] == 1


class TestFormAndScoreEndpoints:

    def test_submit_form_and_breakdown(self, client, make_user, auth_headers):
        user = make_user()
        headers = auth_headers(user)

        response = client.post("/forms", headers=headers, json={
            "form_type": "personal_info", "form_data": PERSONAL_COMPLETE,
        })
        assert response.status_code == 201
        assert response.json()["form"]["status"] == "submitted"
        assert response.json()["missing_fields"] == []

        breakdown = client.get("/scores/breakdown", headers=headers).json()["breakdown"]
        assert breakdown["total_score"] == 45
        assert breakdown["components"]["forms"]["score"] == 10

    def test_unknown_form_type_is_bad_request(self, client, make_user, auth_headers):
        user = make_user()

        response = client.post("/forms", headers=auth_headers(user), json={
            "form_type": "tax_return", "form_data": {},
        })

        assert response.status_code == 400

    def test_get_missing_form_is_not_found(self, client, make_user, auth_headers):
        user = make_user()

        assert client.get("/forms/business_info", headers=auth_headers(user)).status_code == 404

    def test_dashboard_counts(self, client, make_user, auth_headers):
        user = make_user()
        headers = auth_headers(user)
        upload_pdf(client, headers)

        dashboard = client.get("/users/dashboard", headers=headers).json()

        assert dashboard["stats"]["total_documents"] == 1
        assert dashboard["stats"]["pending_documents"] == 1
        assert dashboard["stats"]["total_forms"] == 4
        assert dashboard["score"]["total_score"] == 35


class TestSchedulerEndpoints:

    def test_requires_internal_key(self, client):
        response = client.post("/internal/recalculate-scores", headers={"X-Internal-Key": "wrong"})

        assert response.status_code == 403

    def test_recalculate_scores(self, client, make_user):
        make_user()
        make_user()

        response = client.post(
            "/internal/recalculate-scores", headers={"X-Internal-Key": config.INTERNAL_API_KEY},
        )

        assert response.status_code == 200
        assert response.json()["users_processed"] == 2
        assert response.json()["users_failed"] == 0

    def test_expire_documents(self, client, db, make_user, auth_headers):
        user = make_user()
        document_id = upload_pdf(client, auth_headers(user), expiry_date="2025-12-31").json()["document"]["id"]

        response = client.post(
            "/internal/expire-documents?today=2026-01-01",
            headers={"X-Internal-Key": config.INTERNAL_API_KEY},
        )

        assert response.status_code == 200
        assert response.json()["documents_expired"] == 1
        db.expire_all()
        assert db.query(DocumentDB).filter(DocumentDB.id == document_id).one().status.value == "expired"
