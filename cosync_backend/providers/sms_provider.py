import json
import logging
import requests
from core.config import (
    VERIFICATION_MODE, SMS_ACCESS_KEY_ID, SMS_ACCESS_KEY_SECRET, SMS_SIGN_NAME,
    SMS_TEMPLATE_CODE, SMS_ENDPOINT, EXTERNAL_TIMEOUT_SECONDS,
)
from utils.aliyun_signer import build_rpc_params

logger = logging.getLogger(__name__)

class DummySmsProvider:
    """Keeps sent codes in memory and logs them instead of delivering."""

    def __init__(self):
        self.outbox = []

    def send_code(self, phone: str, code: str) -> None:
        self.outbox.append({"phone": phone, "code": code})
        logger.info(f"[DUMMY SMS] verification code for {phone}: {code}")

    def last_code_for(self, phone: str):
        for item in reversed(self.outbox):
            if item["phone"] == phone:
                return item["code"]
        return None


class AliyunSmsProvider:
    API_VERSION = "2017-05-25"

    def __init__(self, access_key_id: str = SMS_ACCESS_KEY_ID, access_key_secret: str = SMS_ACCESS_KEY_SECRET,
                 sign_name: str = SMS_SIGN_NAME, template_code: str = SMS_TEMPLATE_CODE,
                 endpoint: str = SMS_ENDPOINT, timeout: float = EXTERNAL_TIMEOUT_SECONDS,
                 session: requests.Session = None):
        for name, value in (("SMS_ACCESS_KEY_ID", access_key_id), ("SMS_ACCESS_KEY_SECRET", access_key_secret),
                            ("SMS_SIGN_NAME", sign_name), ("SMS_TEMPLATE_CODE", template_code)):
            if not value:
                raise ValueError(f"{name} is not set. Add it to .env or switch VERIFICATION_MODE=dummy.")
        self.access_key_id = access_key_id
        self.access_key_secret = access_key_secret
        self.sign_name = sign_name
        self.template_code = template_code
        self.endpoint = endpoint
        self.timeout = timeout
        self.session = session or requests.Session()

    def send_code(self, phone: str, code: str) -> None:
        params = build_rpc_params(
            action="SendSms",
            version=self.API_VERSION,
            access_key_id=self.access_key_id,
            access_key_secret=self.access_key_secret,
            params={
                "PhoneNumbers": phone,
                "SignName": self.sign_name,
                "TemplateCode": self.template_code,
                "TemplateParam": json.dumps({"code": code}),
            },
        )
        try:
            response = self.session.post(self.endpoint, data=params, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            logger.error(f"Aliyun SMS API error: {e}")
            raise RuntimeError("SMS service temporarily unavailable") from e

        if data.get("Code") != "OK":
            logger.error(f"Aliyun SMS rejected request: code={data.get('Code')} message={data.get('Message')}")
            raise RuntimeError("SMS delivery was rejected by the provider")


def get_sms_provider():
    if VERIFICATION_MODE == "api":
        logger.info("SMS provider: Aliyun (real API)")
        return AliyunSmsProvider()
    logger.info("SMS provider: Dummy (log only)")
    return DummySmsProvider()
