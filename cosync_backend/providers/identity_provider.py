import logging
import uuid
import requests
from core.config import (
    VERIFICATION_MODE, ALIYUN_ACCESS_KEY, ALIYUN_ACCESS_SECRET, ALIYUN_SCENE_ID,
    CLOUDAUTH_ENDPOINT, VERIFY_RETURN_URL, CERTIFY_URL_TEMPLATE, EXTERNAL_TIMEOUT_SECONDS,
)
from utils.aliyun_signer import build_rpc_params

logger = logging.getLogger(__name__)

PASSED = "T"
NOT_PASSED = "F"

class DummyIdentityProvider:
    """Local liveness check. Every certify id passes unless a test sets another outcome."""

    def __init__(self, default_outcome: str = PASSED):
        self.default_outcome = default_outcome
        self.outcomes = {}
        self.requests = []

    def init_verify(self, outer_order_no: str, cert_name: str, cert_no: str, meta_info: str) -> dict:
        certify_id = f"dummy{uuid.uuid4().hex[:24]}"
        self.requests.append({"outer_order_no": outer_order_no, "certify_id": certify_id})
        self.outcomes.setdefault(certify_id, self.default_outcome)
        return {
            "certify_id": certify_id,
            "certify_url": CERTIFY_URL_TEMPLATE.format(certify_id=certify_id),
        }

    def describe_verify(self, certify_id: str) -> dict:
        return {"passed": self.outcomes.get(certify_id, NOT_PASSED)}


class AliyunIdentityProvider:
    API_VERSION = "2019-03-07"

    def __init__(self, access_key_id: str = ALIYUN_ACCESS_KEY, access_key_secret: str = ALIYUN_ACCESS_SECRET,
                 scene_id: str = ALIYUN_SCENE_ID, endpoint: str = CLOUDAUTH_ENDPOINT,
                 return_url: str = VERIFY_RETURN_URL, timeout: float = EXTERNAL_TIMEOUT_SECONDS,
                 session: requests.Session = None):
        for name, value in (("ALIYUN_ACCESS_KEY", access_key_id), ("ALIYUN_ACCESS_SECRET", access_key_secret),
                            ("ALIYUN_SCENE_ID", scene_id)):
            if not value:
                raise ValueError(f"{name} is not set. Add it to .env or switch VERIFICATION_MODE=dummy.")
        self.access_key_id = access_key_id
        self.access_key_secret = access_key_secret
        self.scene_id = scene_id
        self.endpoint = endpoint
        self.return_url = return_url or None
        self.timeout = timeout
        self.session = session or requests.Session()

    def _call(self, action: str, params: dict) -> dict:
        signed = build_rpc_params(
            action=action,
            version=self.API_VERSION,
            access_key_id=self.access_key_id,
            access_key_secret=self.access_key_secret,
            params=params,
        )
        try:
            response = self.session.post(self.endpoint, data=signed, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            logger.error(f"Aliyun cloudauth {action} error: {e}")
            raise RuntimeError("Identity verification service temporarily unavailable") from e

        if str(data.get("Code")) != "200" or not data.get("ResultObject"):
            logger.error(f"Aliyun cloudauth {action} failed: code={data.get('Code')} message={data.get('Message')}")
            raise RuntimeError("Identity verification request was rejected by the provider")
        return data["ResultObject"]

    def init_verify(self, outer_order_no: str, cert_name: str, cert_no: str, meta_info: str) -> dict:
        result = self._call("InitSmartVerify", {
            "SceneId": self.scene_id,
            "OuterOrderNo": outer_order_no,
            "Mode": "LIVENESS",
            "CertType": "IDENTITY_CARD",
            "CertName": cert_name,
            "CertNo": cert_no,
            "MetaInfo": meta_info,
            "ReturnUrl": self.return_url,
        })
        certify_id = result.get("CertifyId")
        if not certify_id:
            raise RuntimeError("Identity verification provider returned no certify id")
        return {
            "certify_id": certify_id,
            "certify_url": CERTIFY_URL_TEMPLATE.format(certify_id=certify_id),
        }

    def describe_verify(self, certify_id: str) -> dict:
        result = self._call("DescribeSmartVerify", {
            "SceneId": self.scene_id,
            "CertifyId": certify_id,
        })
        return {"passed": result.get("Passed")}


def get_identity_provider():
    if VERIFICATION_MODE == "api":
        logger.info("Identity provider: Aliyun cloudauth (real API)")
        return AliyunIdentityProvider()
    logger.info("Identity provider: Dummy (always passes)")
    return DummyIdentityProvider()
