import os
from dotenv import load_dotenv

load_dotenv()

BASE_DIR = os.path.abspath(os.path.dirname(__file__))


def _env_bool(name, default=False):
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


def _database_uri():
    if os.environ.get('DATABASE_URL'):
        return os.environ['DATABASE_URL']
    return (
        f"mysql+pymysql://{os.environ.get('DB_USER')}:{os.environ.get('DB_PASSWORD')}"
        f"@{os.environ.get('DB_HOST')}:{os.environ.get('DB_PORT')}/{os.environ.get('DB_NAME')}?charset=utf8mb4"
    )


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev")
    WTF_CSRF_SECRET_KEY = SECRET_KEY
    SQLALCHEMY_DATABASE_URI = _database_uri()
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SESSION_PROTECTION = 'strong'
    FORCE_HTTPS = _env_bool('FORCE_HTTPS', True)
    # reverse proxies in front of the app whose X-Forwarded-* headers are trusted
    TRUSTED_PROXY_COUNT = int(os.environ.get('TRUSTED_PROXY_COUNT', 0))

    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
    LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    # Cloudflare Turnstile
    TURNSTILE_SECRET_KEY = os.environ.get('TURNSTILE_SECRET_KEY', '')
    TURNSTILE_VERIFY_URL = os.environ.get(
        'TURNSTILE_VERIFY_URL', 'https://challenges.cloudflare.com/turnstile/v0/siteverify'
    )
    CAPTCHA_BYPASS = _env_bool('CAPTCHA_BYPASS', False)  # только для локальной разработки
    CAPTCHA_MAX_ATTEMPTS = int(os.environ.get('CAPTCHA_MAX_ATTEMPTS', 2))
    CAPTCHA_BACKOFF_SECONDS = float(os.environ.get('CAPTCHA_BACKOFF_SECONDS', 0.5))
    CAPTCHA_TIMEOUT_SECONDS = float(os.environ.get('CAPTCHA_TIMEOUT_SECONDS', 5))

    # Duplicate detection; tune empirically
    DUPLICATE_WINDOW_DAYS = int(os.environ.get('DUPLICATE_WINDOW_DAYS', 30))
    DUPLICATE_HAMMING_THRESHOLD = int(os.environ.get('DUPLICATE_HAMMING_THRESHOLD', 10))
    # short texts: wider radius, confirmed by word overlap
    DUPLICATE_CANDIDATE_RADIUS = int(os.environ.get('DUPLICATE_CANDIDATE_RADIUS', 24))
    DUPLICATE_MIN_JACCARD = float(os.environ.get('DUPLICATE_MIN_JACCARD', 0.6))

    PROFANITY_SEVERITY_THRESHOLD = int(os.environ.get('PROFANITY_SEVERITY_THRESHOLD', 3))
    PROFANITY_EXTRA_TERMS_FILE = os.environ.get('PROFANITY_EXTRA_TERMS_FILE')

    MANUAL_REVIEW_NEW_AUTHORS = _env_bool('MANUAL_REVIEW_NEW_AUTHORS', False)
    RATE_LIMIT_PER_BROKER = int(os.environ.get('RATE_LIMIT_PER_BROKER', 3))
    REVIEWS_PER_PAGE = int(os.environ.get('REVIEWS_PER_PAGE', 10))

    # memory: single worker process only; redis for anything larger
    CACHE_BACKEND = os.environ.get('CACHE_BACKEND', 'memory')
    REDIS_URL = os.environ.get('REDIS_URL', 'redis://localhost:6379/0')
    CACHE_TTL_SECONDS = int(os.environ.get('CACHE_TTL_SECONDS', 300))
    EAGER_AGGREGATE_REFRESH = _env_bool('EAGER_AGGREGATE_REFRESH', True)


class TestingConfig(Config):
    TESTING = True
    SECRET_KEY = 'test'
    WTF_CSRF_ENABLED = False
    FORCE_HTTPS = False
    SESSION_PROTECTION = None
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_ENGINE_OPTIONS = {'connect_args': {'check_same_thread': False, 'timeout': 30}}
    CACHE_BACKEND = 'memory'
    CAPTCHA_BACKOFF_SECONDS = 0
    LOG_LEVEL = 'DEBUG'
