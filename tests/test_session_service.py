"""SessionService: register / login / refresh / logout / update / delete."""
from datetime import timedelta

import pytest

from models.db_storage import ConstraintViolation
from services.errors import (
    ValidationError,
    PasswordMismatch,
    EmailTaken,
    InvalidCredentials,
    Unauthorized,
    Forbidden,
    NotFound,
    InternalError,
)
from services.session import SessionService


class TestRegister:
    def test_register_then_login(self, service):
        assert service.register("Ann", "ann@x.com", "password1", "password1")
        result = service.login("ann@x.com", "password1")
        claims = service.issuer.verify_access(result.access_token)
        assert claims["name"] == "Ann"
        assert claims["email"] == "ann@x.com"

    def test_register_does_not_log_in(self, service, store):
        service.register("Ann", "ann@x.com", "password1", "password1")
        user = store.find_by_email("ann@x.com")
        assert user.refresh_token is None
        assert user.password_hash != "password1"

    @pytest.mark.parametrize(
        "email,password",
        [("not-an-email", "password1"), ("ann@x.com", "short"), (None, "password1"), ("ann@x.com", None)],
    )
    def test_invalid_input(self, service, email, password):
        with pytest.raises(ValidationError) as exc:
            service.register("Ann", email, password, password)
        assert exc.value.errors

    def test_validation_runs_before_mismatch(self, service):
        with pytest.raises(ValidationError):
            service.register("Ann", "ann@x.com", "short", "different")

    def test_password_mismatch(self, service):
        with pytest.raises(PasswordMismatch):
            service.register("Ann", "ann@x.com", "password1", "password2")

    @pytest.mark.parametrize("name,password", [("Ann", "password1"), ("Other", "different99")])
    def test_email_taken(self, service, ann, name, password):
        with pytest.raises(EmailTaken):
            service.register(name, "ann@x.com", password, password)

    def test_email_is_case_sensitive(self, service, ann):
        service.register("Ann2", "Ann@x.com", "password1", "password1")
        assert service.store.find_by_email("Ann@x.com").id != ann.id

    def test_store_race_is_reported_as_email_taken(self, hasher, issuer):
        class RacingStore:
            def find_by_email(self, email):
                return None

            def create(self, **kwargs):
                raise ConstraintViolation("Unique constraint violated")

        svc = SessionService(RacingStore(), hasher, issuer)
        with pytest.raises(EmailTaken):
            svc.register("Ann", "ann@x.com", "password1", "password1")


class TestLogin:
    def test_login_persists_refresh_token(self, service, store, ann):
        result = service.login("ann@x.com", "password1")
        assert store.find_by_id(ann.id).refresh_token == result.refresh_token
        assert result.refresh_max_age == timedelta(days=1)
        assert service.issuer.verify_refresh(result.refresh_token)["userId"] == ann.id

    def test_access_claims_carry_user_id(self, service, ann):
        result = service.login("ann@x.com", "password1")
        assert service.issuer.verify_access(result.access_token) == {
            "userId": ann.id,
            "name": "Ann",
            "email": "ann@x.com",
        }

    @pytest.mark.parametrize("wrong", ["password2", "PASSWORD1", "password1 "])
    def test_wrong_password(self, service, store, ann, wrong):
        with pytest.raises(InvalidCredentials):
            service.login("ann@x.com", wrong)
        assert store.find_by_id(ann.id).refresh_token is None

    def test_unknown_email(self, service, ann):
        with pytest.raises(NotFound):
            service.login("bob@x.com", "password1")

    @pytest.mark.parametrize("email,password", [("", "password1"), ("bad", "password1"), ("ann@x.com", "")])
    def test_invalid_input(self, service, ann, email, password):
        with pytest.raises(ValidationError):
            service.login(email, password)

    def test_relogin_rotates_refresh_token(self, service, store, ann):
        first = service.login("ann@x.com", "password1")
        second = service.login("ann@x.com", "password1")
        assert first.refresh_token != second.refresh_token
        assert store.find_by_id(ann.id).refresh_token == second.refresh_token


class TestRefresh:
    def test_refresh_returns_access_token_with_same_claims(self, service, ann):
        result = service.login("ann@x.com", "password1")
        access = service.refresh_access_token(result.refresh_token)
        assert service.issuer.verify_access(access) == service.issuer.verify_access(result.access_token)

    def test_refresh_does_not_rotate(self, service, store, ann):
        result = service.login("ann@x.com", "password1")
        service.refresh_access_token(result.refresh_token)
        assert store.find_by_id(ann.id).refresh_token == result.refresh_token

    @pytest.mark.parametrize("token", [None, ""])
    def test_missing_cookie_is_unauthorized(self, service, token):
        with pytest.raises(Unauthorized):
            service.refresh_access_token(token)

    def test_superseded_token_is_forbidden(self, service, ann):
        old = service.login("ann@x.com", "password1")
        service.login("ann@x.com", "password1")
        with pytest.raises(Forbidden):
            service.refresh_access_token(old.refresh_token)

    def test_unknown_token_is_forbidden(self, service, ann):
        service.login("ann@x.com", "password1")
        with pytest.raises(Forbidden):
            service.refresh_access_token("not-a-token")

    def test_stored_but_expired_token_is_forbidden(self, service, store, ann):
        from utils.security import TokenIssuer

        expired = TokenIssuer(
            access_secret="testing-access-secret-0123456789abcdef",
            refresh_secret="testing-refresh-secret-0123456789abcdef",
            refresh_expires=timedelta(seconds=-10),
        ).issue_refresh(ann.claims())
        store.update_refresh_token(ann.id, expired)
        with pytest.raises(Forbidden):
            service.refresh_access_token(expired)

    def test_claims_come_from_token_not_storage(self, service, store, ann):
        result = service.login("ann@x.com", "password1")
        store.update_profile(ann.id, {"name": "Renamed"})
        access = service.refresh_access_token(result.refresh_token)
        assert service.issuer.verify_access(access)["name"] == "Ann"


class TestLogout:
    def test_logout_clears_session(self, service, store, ann):
        result = service.login("ann@x.com", "password1")
        assert service.logout(result.refresh_token).revoked is True
        assert store.find_by_id(ann.id).refresh_token is None

    def test_logout_is_idempotent(self, service, ann):
        result = service.login("ann@x.com", "password1")
        service.logout(result.refresh_token)
        assert service.logout(result.refresh_token).revoked is False

    @pytest.mark.parametrize("token", [None, "", "garbage"])
    def test_logout_without_session_is_noop(self, service, token):
        assert service.logout(token).revoked is False


class TestUpdateAccount:
    def test_other_user_is_forbidden(self, service, store, ann):
        service.register("Bob", "bob@x.com", "password1", "password1")
        bob = store.find_by_email("bob@x.com")
        with pytest.raises(Forbidden):
            service.update_account(bob.id, ann.id, name="Hacked")
        assert store.find_by_id(ann.id).name == "Ann"

    def test_missing_target(self, service):
        with pytest.raises(NotFound):
            service.update_account("missing", "missing", name="X")

    def test_partial_update_keeps_other_fields(self, service, store, ann):
        service.update_account(ann.id, ann.id, name="Annie")
        fresh = store.find_by_id(ann.id)
        assert fresh.name == "Annie"
        assert fresh.email == "ann@x.com"
        service.login("ann@x.com", "password1")

    def test_empty_name_is_ignored(self, service, store, ann):
        service.update_account(ann.id, ann.id, name="")
        assert store.find_by_id(ann.id).name == "Ann"

    def test_password_is_rehashed(self, service, store, ann):
        old_hash = ann.password_hash
        service.update_account(ann.id, ann.id, password="newpassword")
        assert store.find_by_id(ann.id).password_hash != old_hash
        with pytest.raises(InvalidCredentials):
            service.login("ann@x.com", "password1")
        service.login("ann@x.com", "newpassword")

    def test_email_change(self, service, store, ann):
        service.update_account(ann.id, ann.id, email="ann@y.com")
        assert store.find_by_email("ann@y.com").id == ann.id

    def test_same_email_is_not_a_collision(self, service, ann):
        assert service.update_account(ann.id, ann.id, email="ann@x.com")

    def test_email_collision(self, service, store, ann):
        service.register("Bob", "bob@x.com", "password1", "password1")
        with pytest.raises(EmailTaken):
            service.update_account(ann.id, ann.id, email="bob@x.com")

    @pytest.mark.parametrize("fields", [{"email": "nope"}, {"password": "short"}, {"email": ""}])
    def test_invalid_fields(self, service, ann, fields):
        with pytest.raises(ValidationError):
            service.update_account(ann.id, ann.id, **fields)

    def test_unencodable_password_is_rejected(self, service, store, ann):
        old_hash = ann.password_hash
        with pytest.raises(ValidationError):
            service.update_account(ann.id, ann.id, password="newpass\ud800word")
        assert store.find_by_id(ann.id).password_hash == old_hash

    def test_store_race_on_email_is_reported_as_email_taken(self, hasher, issuer, ann):
        class RacingStore:
            def find_by_id(self, user_id):
                return ann

            def find_by_email(self, email):
                return None

            def update_profile(self, user_id, fields):
                raise ConstraintViolation("Unique constraint violated")

        svc = SessionService(RacingStore(), hasher, issuer)
        with pytest.raises(EmailTaken):
            svc.update_account(ann.id, ann.id, email="bob@x.com")

    def test_row_deleted_before_write_is_not_found(self, hasher, issuer, ann):
        class VanishingStore:
            def find_by_id(self, user_id):
                return ann

            def update_profile(self, user_id, fields):
                return 0

        svc = SessionService(VanishingStore(), hasher, issuer)
        with pytest.raises(NotFound):
            svc.update_account(ann.id, ann.id, name="Annie")


class TestDeleteAccount:
    def test_owner_can_delete(self, service, store, ann):
        service.delete_account(ann.id, ann.id)
        assert store.find_by_id(ann.id) is None

    def test_other_user_is_forbidden(self, service, store, ann):
        with pytest.raises(Forbidden):
            service.delete_account("someone-else", ann.id)
        assert store.find_by_id(ann.id) is not None

    def test_missing_account(self, service, ann):
        service.delete_account(ann.id, ann.id)
        with pytest.raises(NotFound):
            service.delete_account(ann.id, ann.id)


class TestInternalErrors:
    def test_collaborator_failure_is_opaque(self, hasher, issuer, caplog):
        class BrokenStore:
            def find_by_email(self, email):
                raise RuntimeError("connection refused to db.internal:5432")

        svc = SessionService(BrokenStore(), hasher, issuer)
        with pytest.raises(InternalError) as exc:
            svc.login("ann@x.com", "password1")
        assert "db.internal" not in exc.value.message
        assert "connection refused" in caplog.text


def test_full_session_scenario(service, store):
    service.register("Ann", "ann@x.com", "password1", "password1")
    login = service.login("ann@x.com", "password1")
    ann = store.find_by_email("ann@x.com")
    assert ann.refresh_token == login.refresh_token

    access = service.refresh_access_token(login.refresh_token)
    assert service.issuer.verify_access(access) == service.issuer.verify_access(login.access_token)

    assert service.logout(login.refresh_token).revoked is True
    assert store.find_by_id(ann.id).refresh_token is None

    with pytest.raises(Forbidden):
        service.refresh_access_token(login.refresh_token)
