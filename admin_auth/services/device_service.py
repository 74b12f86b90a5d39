"""
Device fingerprint resolver.

Turns a raw request into a `DeviceInfo`:
- browser / OS / device type from the User-Agent (user-agents)
- a coarse "City, Country" location from the client IP (optional
  ip-api style HTTP lookup via httpx; private and loopback addresses
  resolve to "Local" without a network call)
- a high-risk verdict for IPs inside the configured CIDR blocks

Lookup failures degrade to "Unknown Location"; they never fail a login.
"""

import ipaddress
import logging

import httpx
from fastapi import Request
from user_agents import parse

from admin_auth.core.config import Settings
from admin_auth.models.device_info import LOCAL_LOCATION, UNKNOWN, UNKNOWN_LOCATION, DeviceInfo

logger = logging.getLogger(__name__)


def _parse_ip(value: str | None) -> ipaddress.IPv4Address | ipaddress.IPv6Address | None:
    if not value:
        return None
    try:
        return ipaddress.ip_address(value.strip())
    except ValueError:
        return None


def get_client_ip(request: Request, trust_proxy: bool = False) -> str:
    """
    Client address, honouring proxy headers only when told to.

    Header values that are not a valid IP address are ignored in favour
    of the socket peer.
    """
    peer = request.client.host if request.client else ""
    if trust_proxy:
        forwarded = request.headers.get("X-Forwarded-For")
        real_ip = request.headers.get("X-Real-IP")
        candidate = _parse_ip(forwarded.split(",")[0] if forwarded else None) or _parse_ip(real_ip)
        if candidate is not None:
            return str(candidate)
        if forwarded or real_ip:
            logger.warning("Ignoring malformed proxy address header from %s", peer)
    return peer


def parse_user_agent(user_agent: str | None) -> dict[str, str]:
    if not user_agent:
        return {"browser": UNKNOWN, "os": UNKNOWN, "device_type": UNKNOWN}

    ua = parse(user_agent)
    if ua.is_bot:
        device_type = "Bot"
    elif ua.is_tablet:
        device_type = "Tablet"
    elif ua.is_mobile:
        device_type = "Mobile"
    elif ua.is_pc:
        device_type = "Desktop"
    else:
        device_type = UNKNOWN

    browser = ua.browser.family if ua.browser.family and ua.browser.family != "Other" else UNKNOWN
    os_name = ua.os.family if ua.os.family and ua.os.family != "Other" else UNKNOWN
    return {"browser": browser, "os": os_name, "device_type": device_type}


class DeviceResolver:
    def __init__(
        self,
        *,
        geoip_enabled: bool = False,
        geoip_url: str = "http://ip-api.com/json/{ip}",
        timeout: float = 3.0,
        high_risk_networks: list[str] | None = None,
        trust_proxy: bool = False,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.geoip_enabled = geoip_enabled
        self.geoip_url = geoip_url
        self.timeout = timeout
        self.trust_proxy = trust_proxy
        self._transport = transport
        self._high_risk = []
        for cidr in high_risk_networks or []:
            try:
                self._high_risk.append(ipaddress.ip_network(cidr, strict=False))
            except ValueError:
                logger.warning("Ignoring invalid high-risk network %r", cidr)

    @classmethod
    def from_settings(cls, config: Settings) -> "DeviceResolver":
        return cls(
            geoip_enabled=config.GEOIP_ENABLED,
            geoip_url=config.GEOIP_URL,
            timeout=config.GEOIP_TIMEOUT_SECONDS,
            high_risk_networks=config.HIGH_RISK_NETWORKS,
            trust_proxy=config.TRUST_PROXY_HEADERS,
        )

    def is_high_risk_ip(self, ip: str) -> bool:
        addr = _parse_ip(ip)
        if addr is None:
            return False
        return any(addr in network for network in self._high_risk)

    async def get_location_from_ip(self, ip: str) -> str:
        addr = _parse_ip(ip)
        if addr is None:
            return UNKNOWN_LOCATION
        if addr.is_private or addr.is_loopback or addr.is_link_local:
            return LOCAL_LOCATION
        if not self.geoip_enabled:
            return UNKNOWN_LOCATION

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.get(self.geoip_url.format(ip=ip))
                response.raise_for_status()
                data = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("Geo lookup failed for %s: %s", ip, exc)
            return UNKNOWN_LOCATION

        if data.get("status", "success") != "success":
            return UNKNOWN_LOCATION
        parts = [p for p in (data.get("city"), data.get("country")) if p]
        return ", ".join(parts) if parts else UNKNOWN_LOCATION

    async def resolve(self, ip: str, user_agent: str | None) -> DeviceInfo:
        parsed = parse_user_agent(user_agent)
        return DeviceInfo(
            ip=ip or "",
            user_agent=user_agent or "",
            browser=parsed["browser"],
            os=parsed["os"],
            device_type=parsed["device_type"],
            location=await self.get_location_from_ip(ip),
        )

    async def from_request(self, request: Request) -> DeviceInfo:
        ip = get_client_ip(request, self.trust_proxy)
        return await self.resolve(ip, request.headers.get("User-Agent"))
