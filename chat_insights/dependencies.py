"""FastAPI dependencies."""
from fastapi import Request


def get_client_ip(request: Request) -> str:
    """
    Client IP address:
    - first from X-Forwarded-For (reverse proxy),
    - otherwise from request.client.host.
    """
    xff = request.headers.get("x-forwarded-for")
    if xff:
        # may be "ip1, ip2, ip3", the first one is the client
        return xff.split(",")[0].strip()
    if request.client and request.client.host:
        return request.client.host
    return "unknown"
