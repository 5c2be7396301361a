from datetime import datetime, timedelta, timezone

import pytest

from core.config import VERIFY_INIT_MAX_ATTEMPTS
from core.exceptions import ConflictError, ExternalServiceError, RateLimitError
from models.identity_verification import IdentityVerification
from models.user import User
from providers.identity_provider import DummyIdentityProvider, NOT_PASSED
from services.identity_verification_service import IdentityVerificationService

MALE_ID = "110101199003071234"
FEMALE_ID = "11010119900307124X"
T0 = datetime(2024, 5, 1, 8, 0, 0, tzinfo=timezone.utc)


class BrokenIdentityProvider:
    def init_verify(self, **kwargs):
        raise RuntimeError("provider down")

    def describe_verify(self, certify_id):
        raise RuntimeError("provider down")


def start(client, headers, id_number=MALE_ID):
    response = client.post("/api/verify/init", headers=headers,
                           json={"realName": "张三", "idNumber": id_number, "metaInfo": "{\"zimVer\":\"3.0\"}"})
    assert response.status_code == 200, response.text
    return response.json()


def test_successful_verification_sets_gender(client, make_user, auth_headers, db):
    user = make_user()
    headers = auth_headers(user)

    started = start(client, headers)
    assert started["certifyId"]
    assert started["certifyUrl"].endswith(started["certifyId"])

    result = client.post("/api/verify/check-result", headers=headers,
                         json={"certifyId": started["certifyId"], "idNumber": MALE_ID})
    assert result.json() == {"success": True, "gender": 1}

    status = client.get("/api/verify/status", headers=headers).json()
    assert status["isVerified"] is True
    assert status["gender"] == 1

    db.expire_all()
    stored = db.query(User).filter(User.id == user.id).one()
    assert stored.verified_at is not None
    attempt = db.query(IdentityVerification).filter(IdentityVerification.certify_id == started["certifyId"]).one()
    assert attempt.status == "VERIFIED"
    assert attempt.id_number_hash != MALE_ID


def test_female_id_number(client, make_user, auth_headers):
    headers = auth_headers(make_user())
    started = start(client, headers, FEMALE_ID)
    result = client.post("/api/verify/check-result", headers=headers,
                         json={"certifyId": started["certifyId"], "idNumber": FEMALE_ID.lower()})
    assert result.json() == {"success": True, "gender": 2}


def test_failed_check_leaves_user_unverified(client, make_user, auth_headers, identity_provider, db):
    user = make_user()
    headers = auth_headers(user)
    identity_provider.default_outcome = NOT_PASSED

    started = start(client, headers)
    result = client.post("/api/verify/check-result", headers=headers,
                         json={"certifyId": started["certifyId"], "idNumber": MALE_ID})
    assert result.json() == {"success": False}

    db.expire_all()
    assert db.query(User).filter(User.id == user.id).one().is_verified is False
    attempt = db.query(IdentityVerification).filter(IdentityVerification.certify_id == started["certifyId"]).one()
    assert attempt.status == "FAILED"


def test_pending_check_keeps_attempt_open(client, make_user, auth_headers, identity_provider, db):
    headers = auth_headers(make_user())
    started = start(client, headers)
    identity_provider.outcomes[started["certifyId"]] = None

    result = client.post("/api/verify/check-result", headers=headers,
                         json={"certifyId": started["certifyId"], "idNumber": MALE_ID})
    assert result.json() == {"success": False}

    db.expire_all()
    attempt = db.query(IdentityVerification).filter(IdentityVerification.certify_id == started["certifyId"]).one()
    assert attempt.status == "PENDING"


def test_foreign_certify_id_is_not_found(client, make_user, auth_headers):
    owner = make_user()
    other = make_user()
    started = start(client, auth_headers(owner))

    result = client.post("/api/verify/check-result", headers=auth_headers(other),
                         json={"certifyId": started["certifyId"], "idNumber": MALE_ID})
    assert result.status_code == 404


def test_mismatched_id_number_rejected(client, make_user, auth_headers):
    headers = auth_headers(make_user())
    started = start(client, headers)

    result = client.post("/api/verify/check-result", headers=headers,
                         json={"certifyId": started["certifyId"], "idNumber": FEMALE_ID})
    assert result.status_code == 400
    assert result.json()["message"] == "身份证号与发起认证时不一致"


def test_verified_user_cannot_start_again(client, make_user, auth_headers):
    headers = auth_headers(make_user(verified=True, gender=2))
    response = client.post("/api/verify/init", headers=headers,
                           json={"realName": "张三", "idNumber": MALE_ID, "metaInfo": "{}"})
    assert response.status_code == 409
    assert response.json()["message"] == "您已完成认证"


def test_check_after_verification_does_not_change_gender(client, make_user, auth_headers, identity_provider):
    user = make_user()
    headers = auth_headers(user)
    started = start(client, headers)
    client.post("/api/verify/check-result", headers=headers,
                json={"certifyId": started["certifyId"], "idNumber": MALE_ID})

    identity_provider.outcomes[started["certifyId"]] = NOT_PASSED
    again = client.post("/api/verify/check-result", headers=headers,
                        json={"certifyId": started["certifyId"], "idNumber": MALE_ID})
    assert again.json() == {"success": True, "gender": 1}


@pytest.mark.parametrize("id_number", ["12345", "11010119900307123", "1101011990030712Y4", ""])
def test_malformed_id_number_rejected(client, make_user, auth_headers, id_number):
    response = client.post("/api/verify/init", headers=auth_headers(make_user()),
                           json={"realName": "张三", "idNumber": id_number, "metaInfo": "{}"})
    assert response.status_code == 422


def test_requires_login(client):
    response = client.post("/api/verify/init", json={"realName": "张三", "idNumber": MALE_ID, "metaInfo": "{}"})
    assert response.status_code == 401


def test_provider_failure_is_external_error(db, make_user):
    user = make_user()
    with pytest.raises(ExternalServiceError):
        IdentityVerificationService.init_verification(db, user, "张三", MALE_ID, "{}", BrokenIdentityProvider(), now=T0)
    assert db.query(IdentityVerification).count() == 0


def test_init_attempts_are_capped_per_day(db, make_user):
    user = make_user()
    provider = DummyIdentityProvider(default_outcome=NOT_PASSED)

    for i in range(VERIFY_INIT_MAX_ATTEMPTS):
        IdentityVerificationService.init_verification(db, user, "张三", MALE_ID, "{}", provider,
                                                      now=T0 + timedelta(minutes=i))

    with pytest.raises(RateLimitError):
        IdentityVerificationService.init_verification(db, user, "张三", MALE_ID, "{}", provider,
                                                      now=T0 + timedelta(hours=1))
    assert len(provider.requests) == VERIFY_INIT_MAX_ATTEMPTS

    IdentityVerificationService.init_verification(db, user, "张三", MALE_ID, "{}", provider,
                                                  now=T0 + timedelta(hours=24, minutes=1))
    assert len(provider.requests) == VERIFY_INIT_MAX_ATTEMPTS + 1


def test_outer_order_numbers_are_unique(db, make_user):
    user = make_user()
    provider = DummyIdentityProvider()
    IdentityVerificationService.init_verification(db, user, "张三", MALE_ID, "{}", provider, now=T0)
    IdentityVerificationService.init_verification(db, user, "张三", MALE_ID, "{}", provider, now=T0)

    orders = [r["outer_order_no"] for r in provider.requests]
    assert len(set(orders)) == 2
    assert all(o.startswith(f"V_{user.id}_") for o in orders)


def test_verified_user_service_conflict(db, make_user):
    user = make_user(verified=True)
    with pytest.raises(ConflictError):
        IdentityVerificationService.init_verification(db, user, "张三", MALE_ID, "{}", DummyIdentityProvider())
