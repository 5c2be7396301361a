from models.sms_code import SmsCode
from models.user import User

PHONE = "13800138000"


def test_phone_login_scenario(client, sms_provider, db):
    first = client.post("/api/sms/send-code", json={"phone": PHONE})
    assert first.status_code == 200
    assert first.json() == {"success": True, "ttl": 300}

    second = client.post("/api/sms/send-code", json={"phone": PHONE})
    assert second.status_code == 429
    assert second.json()["success"] is False
    assert second.json()["message"] == "发送太频繁，请稍后再试"

    code = sms_provider.last_code_for(PHONE)
    wrong = "000000" if code != "000000" else "111111"
    bad = client.post("/api/sms/verify-code", json={"phone": PHONE, "code": wrong})
    assert bad.status_code == 400
    assert bad.json()["success"] is False

    good = client.post("/api/sms/verify-code", json={"phone": PHONE, "code": code})
    assert good.status_code == 200
    body = good.json()
    assert body["success"] is True
    assert body["token"]
    assert body["user"]["phone"] == PHONE
    assert body["user"]["isVerified"] is False
    assert body["user"]["gender"] == 0
    assert "openId" not in body["user"]
    assert "email" not in body["user"]

    db.expire_all()
    assert db.query(User).filter(User.phone == PHONE).count() == 1


def test_verify_sets_http_only_cookie(client, sms_provider):
    client.post("/api/sms/send-code", json={"phone": PHONE})
    response = client.post("/api/sms/verify-code",
                           json={"phone": PHONE, "code": sms_provider.last_code_for(PHONE)})

    set_cookie = response.headers["set-cookie"]
    assert set_cookie.startswith("app_session_id=")
    assert "HttpOnly" in set_cookie
    assert "Max-Age=31536000" in set_cookie
    assert response.cookies.get("app_session_id") == response.json()["token"]


def test_me_uses_session_cookie(client, sms_provider):
    assert client.get("/api/auth/me").json() is None

    client.post("/api/sms/send-code", json={"phone": PHONE})
    client.post("/api/sms/verify-code", json={"phone": PHONE, "code": sms_provider.last_code_for(PHONE)})

    me = client.get("/api/auth/me")
    assert me.status_code == 200
    assert me.json()["phone"] == PHONE


def test_me_accepts_bearer_token(client, make_user, auth_headers):
    user = make_user(phone="13700137000")
    response = client.get("/api/auth/me", headers=auth_headers(user))
    assert response.json()["id"] == user.id


def test_logout_clears_cookie(client):
    response = client.post("/api/auth/logout")
    assert response.status_code == 200
    assert response.json()["success"] is True
    set_cookie = response.headers["set-cookie"]
    assert set_cookie.startswith("app_session_id=")
    assert "Max-Age=0" in set_cookie


def test_malformed_phone_rejected_before_storage(client, db, sms_provider):
    for phone in ("12345", "23800138000", "1380013800a", "138001380001"):
        response = client.post("/api/sms/send-code", json={"phone": phone})
        assert response.status_code == 422
        assert response.json()["success"] is False

        response = client.post("/api/sms/verify-code", json={"phone": phone, "code": "123456"})
        assert response.status_code == 422

    db.expire_all()
    assert db.query(SmsCode).count() == 0
    assert sms_provider.outbox == []


def test_non_numeric_code_rejected(client):
    response = client.post("/api/sms/verify-code", json={"phone": PHONE, "code": "12ab56"})
    assert response.status_code == 422


def test_protected_route_without_session(client):
    response = client.get("/api/user/profile")
    assert response.status_code == 401
    assert response.json() == {"success": False, "message": "请先登录"}


def test_unknown_route_uses_error_envelope(client):
    response = client.get("/api/nope")
    assert response.status_code == 404
    assert response.json()["success"] is False


def test_health(client):
    assert client.get("/").json() == {"status": "CoSync API is running"}


def test_non_ascii_digits_rejected_before_storage(client, db, sms_provider):
    arabic_indic_phone = "1" + "٣" * 10
    response = client.post("/api/sms/send-code", json={"phone": arabic_indic_phone})
    assert response.status_code == 422
    assert response.json()["success"] is False

    response = client.post("/api/sms/send-code", json={"phone": PHONE + "\n"})
    assert response.status_code == 200

    response = client.post("/api/sms/verify-code", json={"phone": PHONE, "code": "١٢٣٤٥٦"})
    assert response.status_code == 422
    assert response.json()["success"] is False

    db.expire_all()
    assert db.query(SmsCode).filter(SmsCode.phone == arabic_indic_phone).count() == 0
    assert [item["phone"] for item in sms_provider.outbox] == [PHONE]
