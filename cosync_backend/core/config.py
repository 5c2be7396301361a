import os
from dotenv import load_dotenv

load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./cosync.db")
ENVIRONMENT = os.getenv("ENVIRONMENT", "development").lower()
IS_PRODUCTION = ENVIRONMENT in ("production", "prod")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

VERIFICATION_MODE = os.getenv("VERIFICATION_MODE", "dummy").lower()

# Comma separated list of frontend origins
ALLOWED_ORIGINS = [o.strip() for o in os.getenv("ALLOWED_ORIGINS", "http://localhost:3000,http://localhost:8081").split(",") if o.strip()]

# Session
APP_ID = os.getenv("APP_ID", "cosync")
JWT_SECRET = os.getenv("JWT_SECRET", "change_this_secret_in_prod")
JWT_ALGORITHM = "HS256"
SESSION_COOKIE_NAME = os.getenv("SESSION_COOKIE_NAME", "app_session_id")
SESSION_TTL_DAYS = int(os.getenv("SESSION_TTL_DAYS", "365"))

# SMS codes
SMS_CODE_LENGTH = int(os.getenv("SMS_CODE_LENGTH", "6"))
SMS_CODE_TTL_SECONDS = int(os.getenv("SMS_CODE_TTL_SECONDS", "300"))
SMS_MIN_INTERVAL_SECONDS = int(os.getenv("SMS_MIN_INTERVAL_SECONDS", "60"))
SMS_HOURLY_LIMIT = int(os.getenv("SMS_HOURLY_LIMIT", "10"))
SMS_HOURLY_WINDOW_SECONDS = 3600

SMS_ACCESS_KEY_ID = os.getenv("SMS_ACCESS_KEY_ID", "")
SMS_ACCESS_KEY_SECRET = os.getenv("SMS_ACCESS_KEY_SECRET", "")
SMS_SIGN_NAME = os.getenv("SMS_SIGN_NAME", "")
SMS_TEMPLATE_CODE = os.getenv("SMS_TEMPLATE_CODE", "")
SMS_ENDPOINT = os.getenv("SMS_ENDPOINT", "https://dysmsapi.aliyuncs.com/")

# Identity verification (liveness check)
ALIYUN_ACCESS_KEY = os.getenv("ALIYUN_ACCESS_KEY", "")
ALIYUN_ACCESS_SECRET = os.getenv("ALIYUN_ACCESS_SECRET", "")
ALIYUN_SCENE_ID = os.getenv("ALIYUN_SCENE_ID", "")
CLOUDAUTH_ENDPOINT = os.getenv("CLOUDAUTH_ENDPOINT", "https://cloudauth.aliyuncs.com/")
VERIFY_RETURN_URL = os.getenv("VERIFY_RETURN_URL", "")
CERTIFY_URL_TEMPLATE = os.getenv("CERTIFY_URL_TEMPLATE", "https://v.rpns8.com/u/{certify_id}")
VERIFY_INIT_MAX_ATTEMPTS = int(os.getenv("VERIFY_INIT_MAX_ATTEMPTS", "5"))
VERIFY_INIT_COOLDOWN_HOURS = int(os.getenv("VERIFY_INIT_COOLDOWN_HOURS", "24"))

EXTERNAL_TIMEOUT_SECONDS = float(os.getenv("EXTERNAL_TIMEOUT_SECONDS", "10"))

# Object storage
UPLOAD_BASE_PATH = os.getenv("UPLOAD_BASE_PATH", "uploads")
PUBLIC_BASE_URL = os.getenv("PUBLIC_BASE_URL", "http://localhost:8000").rstrip("/")
MAX_UPLOAD_SIZE_MB = int(os.getenv("MAX_UPLOAD_SIZE_MB", "5"))
MAX_UPLOAD_SIZE_BYTES = MAX_UPLOAD_SIZE_MB * 1024 * 1024
PRESIGN_EXPIRES_SECONDS = int(os.getenv("PRESIGN_EXPIRES_SECONDS", "900"))
ALLOWED_IMAGE_EXTENSIONS = [".jpg", ".jpeg", ".png", ".gif", ".webp", ".heic"]

OSS_REGION = os.getenv("OSS_REGION", "oss-cn-hangzhou")
OSS_BUCKET = os.getenv("OSS_BUCKET", "")
OSS_ACCESS_KEY_ID = os.getenv("OSS_ACCESS_KEY_ID", "")
OSS_ACCESS_KEY_SECRET = os.getenv("OSS_ACCESS_KEY_SECRET", "")

# Maintenance
SMS_CODE_RETENTION_DAYS = int(os.getenv("SMS_CODE_RETENTION_DAYS", "7"))
TRACKER_CLEANUP_HOURS = int(os.getenv("TRACKER_CLEANUP_HOURS", "48"))
CLEANUP_INTERVAL_HOURS = int(os.getenv("CLEANUP_INTERVAL_HOURS", "24"))
