"""Server-side verification of Cloudflare Turnstile tokens."""
import logging
import time

import requests

from .errors import CaptchaServiceUnavailable

logger = logging.getLogger(__name__)

# error codes that mean "our side or theirs hiccuped", not "bad token"
RETRYABLE_ERROR_CODES = {'internal-error'}


class CaptchaVerifier:
    """Checks a challenge token once against the verification endpoint.

    ``verify`` returns ``False`` when the service rejects the token, which is
    final for the submission. Transport failures, 5xx/429 responses and
    ``internal-error`` are retried ``max_attempts`` times with exponential
    backoff and then raise ``CaptchaServiceUnavailable``. Tokens are single-use;
    replay protection is the service's job, nothing is cached here.
    """

    def __init__(self, secret_key, verify_url, max_attempts=2, backoff_seconds=0.5,
                 timeout=5.0, bypass=False, session=None, sleep=time.sleep):
        self.secret_key = secret_key
        self.verify_url = verify_url
        self.max_attempts = max(1, int(max_attempts))
        self.backoff_seconds = backoff_seconds
        self.timeout = timeout
        self.bypass = bypass
        self.session = session or requests.Session()
        self._sleep = sleep

    @classmethod
    def from_config(cls, config):
        return cls(
            secret_key=config.get('TURNSTILE_SECRET_KEY'),
            verify_url=config['TURNSTILE_VERIFY_URL'],
            max_attempts=config.get('CAPTCHA_MAX_ATTEMPTS', 2),
            backoff_seconds=config.get('CAPTCHA_BACKOFF_SECONDS', 0.5),
            timeout=config.get('CAPTCHA_TIMEOUT_SECONDS', 5),
            bypass=config.get('CAPTCHA_BYPASS', False),
        )

    def verify(self, token, remote_ip=None):
        if not self.secret_key:
            if self.bypass:
                logger.warning("Turnstile secret key not configured, captcha check bypassed")
                return True
            logger.error("Turnstile secret key not configured and CAPTCHA_BYPASS is off")
            raise CaptchaServiceUnavailable()

        payload = {'secret': self.secret_key, 'response': token}
        if remote_ip:
            payload['remoteip'] = remote_ip

        last_problem = None
        for attempt in range(1, self.max_attempts + 1):
            try:
                response = self.session.post(self.verify_url, data=payload, timeout=self.timeout)
                if response.status_code >= 500 or response.status_code == 429:
                    last_problem = f'HTTP {response.status_code}'
                else:
                    response.raise_for_status()
                    result = response.json()
                    error_codes = set(result.get('error-codes') or [])
                    if result.get('success'):
                        return True
                    if not error_codes & RETRYABLE_ERROR_CODES:
                        logger.info("Captcha token rejected: %s", sorted(error_codes))
                        return False
                    last_problem = f'service error {sorted(error_codes)}'
            except (requests.exceptions.RequestException, ValueError) as e:
                last_problem = repr(e)

            logger.warning("Captcha verification attempt %d/%d failed: %s",
                           attempt, self.max_attempts, last_problem)
            if attempt < self.max_attempts:
                self._sleep(self.backoff_seconds * (2 ** (attempt - 1)))

        logger.error("Captcha service unavailable after %d attempts: %s", self.max_attempts, last_problem)
        raise CaptchaServiceUnavailable()
