# bizpilot/transport/security.py
"""
Access control and response hardening for the HTTP app.

The AI endpoints are public (the dashboard calls them from the browser);
only ``/metrics`` is guarded, by METRICS_TOKEN or, without a token, by
the caller's address being inside INTERNAL_NETWORKS.
"""
import hmac
import ipaddress
from functools import lru_cache

from fastapi import Request, HTTPException, status, Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from bizpilot.config import settings
from bizpilot.infra.logging_config import get_logger

logger = get_logger(__name__)

metrics_bearer_scheme = HTTPBearer(scheme_name="Metrics Token", auto_error=False)

IPNetwork = ipaddress.IPv4Network | ipaddress.IPv6Network

# Set on every response; HSTS is added outside dev
SECURITY_HEADERS = {
    "X-Frame-Options": "DENY",
    "X-Content-Type-Options": "nosniff",
    "Referrer-Policy": "no-referrer",
    "Content-Security-Policy": "default-src 'none'; frame-ancestors 'none'",
}
HSTS_VALUE = "max-age=31536000; includeSubDomains"

# Exception type name -> message shown to clients in prod
PUBLIC_ERROR_MESSAGES = {
    "ValueError": "Invalid input",
    "KeyError": "Invalid request",
    "ConnectionError": "Service temporarily unavailable",
    "TimeoutError": "Request timeout",
}


@lru_cache(maxsize=1)
def _get_internal_networks() -> tuple[IPNetwork, ...]:
    """INTERNAL_NETWORKS parsed once; malformed entries are logged and skipped."""
    networks = []
    for cidr in filter(None, (part.strip() for part in settings.internal_networks.split(","))):
        try:
            networks.append(ipaddress.ip_network(cidr, strict=False))
        except ValueError:
            logger.warning(f"Ignoring invalid CIDR in INTERNAL_NETWORKS: {cidr!r}")
    return tuple(networks)


def _get_client_ip(request: Request) -> str:
    """Peer address, or the first X-Forwarded-For hop when TRUST_PROXY_HEADERS is on."""
    if settings.trust_proxy_headers:
        forwarded = request.headers.get("X-Forwarded-For", "")
        first_hop = forwarded.split(",")[0].strip()
        if first_hop:
            return first_hop
    return request.client.host if request.client else "unknown"


def _is_internal_ip(ip_str: str) -> bool:
    try:
        ip = ipaddress.ip_address(ip_str)
    except ValueError:
        return False
    return any(ip in net for net in _get_internal_networks())


def require_internal_network(request: Request):
    client_ip = _get_client_ip(request)
    if not _is_internal_ip(client_ip):
        logger.warning(f"Metrics access denied for {client_ip}")
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")


def require_metrics_auth(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(metrics_bearer_scheme),
):
    """Bearer METRICS_TOKEN when configured, otherwise internal network only."""
    if not settings.metrics_token:
        require_internal_network(request)
        return

    presented = credentials.credentials if credentials else ""
    if not hmac.compare_digest(presented.encode(), settings.metrics_token.encode()):
        logger.warning("Metrics request with missing or invalid token")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required" if not credentials else "Invalid credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )


class SecurityHeaders:

    @staticmethod
    def add_security_headers(response):
        for name, value in SECURITY_HEADERS.items():
            response.headers[name] = value

        # Generated content is per-request; never let intermediaries cache it
        if "Cache-Control" not in response.headers:
            response.headers["Cache-Control"] = "no-store"

        if settings.is_production or settings.is_staging:
            response.headers["Strict-Transport-Security"] = HSTS_VALUE

        if "Server" in response.headers:
            del response.headers["Server"]

        return response


def sanitize_error_message(error: Exception, is_production: bool) -> str:
    """Full message in dev; a fixed generic one in prod."""
    if not is_production:
        return str(error)
    return PUBLIC_ERROR_MESSAGES.get(type(error).__name__, "An error occurred")
