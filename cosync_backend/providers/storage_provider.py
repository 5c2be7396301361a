import hashlib
import hmac
import logging
import os
import time
from email.utils import formatdate
from urllib.parse import quote, urlencode
import requests
from core.config import (
    VERIFICATION_MODE, UPLOAD_BASE_PATH, PUBLIC_BASE_URL, JWT_SECRET,
    OSS_REGION, OSS_BUCKET, OSS_ACCESS_KEY_ID, OSS_ACCESS_KEY_SECRET, EXTERNAL_TIMEOUT_SECONDS,
)
from utils.aliyun_signer import sign_oss

logger = logging.getLogger(__name__)

class LocalStorageProvider:
    """Writes objects under UPLOAD_BASE_PATH, served by the app at /uploads."""

    supports_direct_upload = True

    def __init__(self, base_path: str = UPLOAD_BASE_PATH, public_base_url: str = PUBLIC_BASE_URL,
                 secret: str = JWT_SECRET):
        self.base_path = base_path
        self.public_base_url = public_base_url.rstrip("/")
        self.secret = secret

    def _path_for(self, key: str) -> str:
        path = os.path.normpath(os.path.join(self.base_path, key))
        if not path.startswith(os.path.normpath(self.base_path) + os.sep):
            raise ValueError("Invalid object key")
        return path

    def public_url(self, key: str) -> str:
        return f"{self.public_base_url}/uploads/{quote(key)}"

    def put(self, key: str, data: bytes, content_type: str) -> str:
        path = self._path_for(key)
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, "wb") as f:
            f.write(data)
        logger.info(f"Stored {len(data)} bytes at {path}")
        return self.public_url(key)

    def _signature(self, key: str, content_type: str, expires: int) -> str:
        message = f"PUT\n{key}\n{content_type}\n{expires}"
        return hmac.new(self.secret.encode("utf-8"), message.encode("utf-8"), hashlib.sha256).hexdigest()

    def presign_put(self, key: str, content_type: str, expires_in: int) -> str:
        expires = int(time.time()) + expires_in
        query = urlencode({"expires": expires, "signature": self._signature(key, content_type, expires)})
        return f"{self.public_base_url}/api/upload/direct/{quote(key)}?{query}"

    def verify_presigned(self, key: str, content_type: str, expires: int, signature: str) -> bool:
        if expires < int(time.time()):
            return False
        return hmac.compare_digest(self._signature(key, content_type, expires), signature)


class AliyunOSSProvider:
    supports_direct_upload = False

    def __init__(self, bucket: str = OSS_BUCKET, region: str = OSS_REGION,
                 access_key_id: str = OSS_ACCESS_KEY_ID, access_key_secret: str = OSS_ACCESS_KEY_SECRET,
                 timeout: float = EXTERNAL_TIMEOUT_SECONDS, session: requests.Session = None):
        for name, value in (("OSS_BUCKET", bucket), ("OSS_ACCESS_KEY_ID", access_key_id),
                            ("OSS_ACCESS_KEY_SECRET", access_key_secret)):
            if not value:
                raise ValueError(f"{name} is not set. Add it to .env or switch VERIFICATION_MODE=dummy.")
        self.bucket = bucket
        self.host = f"https://{bucket}.{region}.aliyuncs.com"
        self.access_key_id = access_key_id
        self.access_key_secret = access_key_secret
        self.timeout = timeout
        self.session = session or requests.Session()

    def public_url(self, key: str) -> str:
        return f"{self.host}/{quote(key)}"

    def put(self, key: str, data: bytes, content_type: str) -> str:
        date = formatdate(usegmt=True)
        signature = sign_oss(self.access_key_secret, "PUT", "", content_type, date, f"/{self.bucket}/{key}")
        try:
            response = self.session.put(
                self.public_url(key),
                data=data,
                headers={
                    "Date": date,
                    "Content-Type": content_type,
                    "Authorization": f"OSS {self.access_key_id}:{signature}",
                },
                timeout=self.timeout,
            )
            response.raise_for_status()
        except requests.RequestException as e:
            logger.error(f"OSS upload error: {e}")
            raise RuntimeError("Object storage temporarily unavailable") from e
        return self.public_url(key)

    def presign_put(self, key: str, content_type: str, expires_in: int) -> str:
        expires = int(time.time()) + expires_in
        signature = sign_oss(self.access_key_secret, "PUT", "", content_type, str(expires), f"/{self.bucket}/{key}")
        query = urlencode({"OSSAccessKeyId": self.access_key_id, "Expires": expires, "Signature": signature})
        return f"{self.public_url(key)}?{query}"


def get_storage_provider():
    if VERIFICATION_MODE == "api":
        logger.info("Storage provider: Aliyun OSS")
        return AliyunOSSProvider()
    logger.info("Storage provider: local disk")
    return LocalStorageProvider()
