import base64
import hashlib
import hmac
from datetime import datetime, timezone
from urllib.parse import parse_qs, urlsplit

import pytest
import requests

from providers.identity_provider import AliyunIdentityProvider
from providers.sms_provider import AliyunSmsProvider, DummySmsProvider
from providers.storage_provider import AliyunOSSProvider
from utils.aliyun_signer import build_rpc_params, percent_encode, sign_oss, sign_rpc_params


class FakeResponse:
    def __init__(self, payload, status_code=200):
        self.payload = payload
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"status {self.status_code}")

    def json(self):
        return self.payload


class FakeSession:
    def __init__(self, payload=None, error=None, status_code=200):
        self.payload = payload or {}
        self.error = error
        self.status_code = status_code
        self.calls = []

    def post(self, url, data=None, timeout=None):
        self.calls.append({"url": url, "data": data, "timeout": timeout})
        if self.error:
            raise self.error
        return FakeResponse(self.payload, self.status_code)

    def put(self, url, data=None, headers=None, timeout=None):
        self.calls.append({"url": url, "data": data, "headers": headers, "timeout": timeout})
        if self.error:
            raise self.error
        return FakeResponse(self.payload, self.status_code)


def sms_provider(session):
    return AliyunSmsProvider(access_key_id="id", access_key_secret="secret", sign_name="CoSync",
                             template_code="SMS_1", session=session)


def test_percent_encode():
    assert percent_encode("a b*c~/") == "a%20b%2Ac~%2F"
    assert percent_encode(5) == "5"


def test_rpc_signature_matches_manual_hmac():
    params = {"Action": "SendSms", "B": "x y", "A": "1"}
    canonical = "A=1&Action=SendSms&B=x%20y"
    string_to_sign = "POST&%2F&" + percent_encode(canonical)
    expected = base64.b64encode(
        hmac.new(b"secret&", string_to_sign.encode("utf-8"), hashlib.sha1).digest()
    ).decode("ascii")
    assert sign_rpc_params(params, "secret") == expected


def test_build_rpc_params_drops_empty_values():
    signed = build_rpc_params("InitSmartVerify", "2019-03-07", "id", "secret",
                              {"CertNo": "1", "ReturnUrl": None},
                              now=datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc), nonce="n1")
    assert signed["Timestamp"] == "2024-01-02T03:04:05Z"
    assert signed["SignatureNonce"] == "n1"
    assert "ReturnUrl" not in signed
    unsigned = {k: v for k, v in signed.items() if k != "Signature"}
    assert signed["Signature"] == sign_rpc_params(unsigned, "secret")


def test_oss_signature_includes_oss_headers():
    plain = sign_oss("secret", "PUT", "", "image/png", "123", "/bucket/key")
    with_header = sign_oss("secret", "PUT", "", "image/png", "123", "/bucket/key", {"X-OSS-Meta-A": "1"})
    assert plain != with_header


def test_dummy_sms_outbox():
    provider = DummySmsProvider()
    provider.send_code("13800138000", "123456")
    provider.send_code("13900139000", "654321")
    assert provider.last_code_for("13800138000") == "123456"
    assert provider.last_code_for("13700137000") is None


def test_aliyun_sms_sends_template_param():
    session = FakeSession({"Code": "OK"})
    sms_provider(session).send_code("13800138000", "123456")

    data = session.calls[0]["data"]
    assert data["Action"] == "SendSms"
    assert data["PhoneNumbers"] == "13800138000"
    assert data["TemplateParam"] == '{"code": "123456"}'
    assert session.calls[0]["timeout"] == 10


@pytest.mark.parametrize("session", [
    FakeSession({"Code": "isv.BUSINESS_LIMIT_CONTROL", "Message": "limited"}),
    FakeSession(error=requests.ConnectionError("down")),
    FakeSession({"Code": "OK"}, status_code=500),
])
def test_aliyun_sms_failures_raise_runtime_error(session):
    with pytest.raises(RuntimeError):
        sms_provider(session).send_code("13800138000", "123456")


def test_aliyun_sms_requires_credentials():
    with pytest.raises(ValueError):
        AliyunSmsProvider(access_key_id="", access_key_secret="s", sign_name="n", template_code="t")


def identity_provider(session):
    return AliyunIdentityProvider(access_key_id="id", access_key_secret="secret", scene_id="1000",
                                  return_url="https://app/return", session=session)


def test_aliyun_identity_init():
    session = FakeSession({"Code": "200", "ResultObject": {"CertifyId": "abc123"}})
    result = identity_provider(session).init_verify("V_1", "张三", "110101199003071234", "{}")

    assert result["certify_id"] == "abc123"
    assert result["certify_url"].endswith("abc123")
    data = session.calls[0]["data"]
    assert data["Action"] == "InitSmartVerify"
    assert data["Mode"] == "LIVENESS"
    assert data["OuterOrderNo"] == "V_1"


def test_aliyun_identity_describe():
    session = FakeSession({"Code": "200", "ResultObject": {"Passed": "T"}})
    assert identity_provider(session).describe_verify("abc123") == {"passed": "T"}


def test_aliyun_identity_rejection():
    session = FakeSession({"Code": "401", "Message": "bad"})
    with pytest.raises(RuntimeError):
        identity_provider(session).describe_verify("abc123")


def test_oss_presign_and_put():
    session = FakeSession()
    provider = AliyunOSSProvider(bucket="b", region="oss-cn-hangzhou", access_key_id="id",
                                 access_key_secret="secret", session=session)

    url = provider.put("images/1/a.png", b"data", "image/png")
    assert url == "https://b.oss-cn-hangzhou.aliyuncs.com/images/1/a.png"
    assert session.calls[0]["headers"]["Authorization"].startswith("OSS id:")

    presigned = urlsplit(provider.presign_put("images/1/a.png", "image/png", 60))
    query = parse_qs(presigned.query)
    assert query["OSSAccessKeyId"] == ["id"]
    assert "Signature" in query
