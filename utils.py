import re
import logging
import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

logger = logging.getLogger(__name__)


def validate_email(email):
    return re.match(r'^[\w\.\+-]+@[\w\.-]+\.\w+$', email) is not None


def validate_phone(phone):
    return re.match(r'^\+?\d{9,15}$', phone) is not None


def normalize_customer_id(customer_id):
    return str(customer_id or "").strip().upper()


def is_blank(value):
    return value is None or not str(value).strip()


def normalize_email(email):
    return None if is_blank(email) else str(email).strip().lower()


def retrying_session(total=3, backoff_factor=1):
    """requests.Session that retries transient HTTP failures."""
    session = requests.Session()
    retry_strategy = Retry(
        total=total,
        backoff_factor=backoff_factor,
        status_forcelist=[429, 500, 502, 503, 504],
        allowed_methods=["GET"],
    )
    adapter = HTTPAdapter(max_retries=retry_strategy)
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    return session


def check_backend_health(base_url, timeout=30):
    """
    Ping the backend health endpoint.
    Returns (ok, message, payload).
    """
    url = f"{base_url.rstrip('/')}/api/health"
    try:
        response = retrying_session().get(url, timeout=timeout)
    except requests.exceptions.Timeout:
        return False, f"Health check timed out after {timeout} seconds", None
    except requests.exceptions.ConnectionError:
        return False, f"Backend not reachable at {url}", None

    if response.status_code != 200:
        return False, f"Health endpoint error: {response.status_code} - {response.text}", None

    payload = response.json()
    if payload.get("status") != "ok":
        logger.warning(f"Backend reported unhealthy status: {payload}")
        return False, "Backend service unhealthy", payload
    return True, "Backend service operational", payload
