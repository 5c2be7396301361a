"""Request signing for Aliyun RPC-style APIs (SMS, cloudauth) and OSS."""
import base64
import hashlib
import hmac
import uuid
from datetime import datetime, timezone
from urllib.parse import quote


def percent_encode(value) -> str:
    return quote(str(value), safe="~")


def _hmac_sha1_b64(secret: str, message: str) -> str:
    digest = hmac.new(secret.encode("utf-8"), message.encode("utf-8"), hashlib.sha1).digest()
    return base64.b64encode(digest).decode("ascii")


def sign_rpc_params(params: dict, access_key_secret: str, method: str = "POST") -> str:
    canonical = "&".join(
        f"{percent_encode(k)}={percent_encode(v)}" for k, v in sorted(params.items())
    )
    string_to_sign = f"{method}&{percent_encode('/')}&{percent_encode(canonical)}"
    return _hmac_sha1_b64(access_key_secret + "&", string_to_sign)


def build_rpc_params(action: str, version: str, access_key_id: str, access_key_secret: str,
                     params: dict, method: str = "POST", now: datetime = None, nonce: str = None) -> dict:
    now = now or datetime.now(timezone.utc)
    signed = {
        "Action": action,
        "Version": version,
        "Format": "JSON",
        "AccessKeyId": access_key_id,
        "SignatureMethod": "HMAC-SHA1",
        "SignatureVersion": "1.0",
        "SignatureNonce": nonce or uuid.uuid4().hex,
        "Timestamp": now.strftime("%Y-%m-%dT%H:%M:%SZ"),
    }
    signed.update({k: v for k, v in params.items() if v is not None})
    signed["Signature"] = sign_rpc_params(signed, access_key_secret, method)
    return signed


def sign_oss(access_key_secret: str, verb: str, content_md5: str, content_type: str,
             date_or_expires: str, resource: str, oss_headers: dict = None) -> str:
    canonical_headers = "".join(
        f"{k.lower()}:{v}\n"
        for k, v in sorted((oss_headers or {}).items(), key=lambda kv: kv[0].lower())
        if k.lower().startswith("x-oss-")
    )
    string_to_sign = f"{verb}\n{content_md5}\n{content_type}\n{date_or_expires}\n{canonical_headers}{resource}"
    return _hmac_sha1_b64(access_key_secret, string_to_sign)
