import httpx
import pytest
from starlette.requests import Request

from admin_auth.models.device_info import DeviceInfo, is_known_location
from admin_auth.services.device_service import DeviceResolver, get_client_ip, parse_user_agent

CHROME_WINDOWS = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
SAFARI_IPHONE = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.0 Mobile/15E148 Safari/604.1"
)
GOOGLEBOT = "Mozilla/5.0 (compatible; Googlebot/2.1; +http://www.google.com/bot.html)"


def _request(client_host="10.1.2.3", headers=None):
    raw = [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()]
    return Request(
        {"type": "http", "headers": raw, "client": (client_host, 5000), "method": "GET", "path": "/"}
    )


def test_parse_desktop_browser():
    parsed = parse_user_agent(CHROME_WINDOWS)
    assert parsed == {"browser": "Chrome", "os": "Windows", "device_type": "Desktop"}


def test_parse_mobile_and_bot():
    assert parse_user_agent(SAFARI_IPHONE)["device_type"] == "Mobile"
    assert parse_user_agent(SAFARI_IPHONE)["os"] == "iOS"
    assert parse_user_agent(GOOGLEBOT)["device_type"] == "Bot"


@pytest.mark.parametrize("ua", [None, ""])
def test_parse_missing_user_agent(ua):
    assert parse_user_agent(ua) == {"browser": "Unknown", "os": "Unknown", "device_type": "Unknown"}


def test_client_ip_ignores_proxy_headers_unless_trusted():
    request = _request(headers={"X-Forwarded-For": "198.51.100.9, 10.0.0.1", "X-Real-IP": "198.51.100.8"})
    assert get_client_ip(request) == "10.1.2.3"
    assert get_client_ip(request, trust_proxy=True) == "198.51.100.9"
    assert get_client_ip(_request(headers={"X-Real-IP": "198.51.100.8"}), trust_proxy=True) == "198.51.100.8"


def test_client_ip_rejects_malformed_proxy_values():
    overlong = _request(headers={"X-Forwarded-For": "x" * 500})
    assert get_client_ip(overlong, trust_proxy=True) == "10.1.2.3"

    falls_through = _request(headers={"X-Forwarded-For": "not-an-ip", "X-Real-IP": " 2001:db8::1 "})
    assert get_client_ip(falls_through, trust_proxy=True) == "2001:db8::1"


def test_high_risk_networks():
    resolver = DeviceResolver(high_risk_networks=["185.220.100.0/22", "2001:db8::/32", "garbage"])
    assert resolver.is_high_risk_ip("185.220.101.4")
    assert resolver.is_high_risk_ip("2001:db8::1")
    assert not resolver.is_high_risk_ip("8.8.8.8")
    assert not resolver.is_high_risk_ip("not-an-ip")


@pytest.mark.asyncio
@pytest.mark.parametrize("ip", ["127.0.0.1", "192.168.1.20", "10.0.0.7", "::1"])
async def test_private_addresses_are_local(ip):
    resolver = DeviceResolver(geoip_enabled=True, transport=httpx.MockTransport(lambda r: pytest.fail()))
    assert await resolver.get_location_from_ip(ip) == "Local"


@pytest.mark.asyncio
async def test_lookup_disabled_gives_unknown():
    assert await DeviceResolver().get_location_from_ip("8.8.8.8") == "Unknown Location"
    assert await DeviceResolver().get_location_from_ip("") == "Unknown Location"


@pytest.mark.asyncio
async def test_lookup_formats_city_and_country():
    seen = []

    def handler(request):
        seen.append(str(request.url))
        return httpx.Response(200, json={"status": "success", "city": "Accra", "country": "Ghana"})

    resolver = DeviceResolver(
        geoip_enabled=True, geoip_url="http://geo.test/json/{ip}", transport=httpx.MockTransport(handler)
    )
    assert await resolver.get_location_from_ip("41.66.0.1") == "Accra, Ghana"
    assert seen == ["http://geo.test/json/41.66.0.1"]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(500),
        httpx.Response(200, json={"status": "fail", "message": "reserved range"}),
        httpx.Response(200, content=b"not json"),
    ],
)
async def test_lookup_failures_degrade(response):
    resolver = DeviceResolver(geoip_enabled=True, transport=httpx.MockTransport(lambda r: response))
    assert await resolver.get_location_from_ip("41.66.0.1") == "Unknown Location"


@pytest.mark.asyncio
async def test_lookup_network_error_degrades():
    def handler(request):
        raise httpx.ConnectError("unreachable", request=request)

    resolver = DeviceResolver(geoip_enabled=True, transport=httpx.MockTransport(handler))
    assert await resolver.get_location_from_ip("41.66.0.1") == "Unknown Location"


@pytest.mark.asyncio
async def test_from_request_builds_device():
    request = _request(client_host="127.0.0.1", headers={"User-Agent": CHROME_WINDOWS})
    device = await DeviceResolver().from_request(request)

    assert device == DeviceInfo(
        ip="127.0.0.1",
        user_agent=CHROME_WINDOWS,
        browser="Chrome",
        os="Windows",
        device_type="Desktop",
        location="Local",
    )
    assert device.signature == "Chrome-Windows"
    assert not device.has_known_location


def test_known_location_predicate():
    assert is_known_location("Accra, Ghana")
    for value in (None, "", "Unknown", "unknown location", "Local", "  local "):
        assert not is_known_location(value)
