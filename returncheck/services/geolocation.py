# returncheck/services/geolocation.py
from __future__ import annotations
import ipaddress
from dataclasses import dataclass
from typing import Optional

import requests

from ..utils.logging import logger

PRIMARY_URL = "https://ipapi.co/{ip}/json/"
FALLBACK_URL = "http://ip-api.com/json/{ip}?fields=status,countryCode,city,timezone"
USER_AGENT = "returncheck-backend/1.0 (+requests)"

@dataclass(frozen=True)
class Location:
    country: Optional[str] = None
    city: Optional[str] = None
    timezone: Optional[str] = None

EMPTY = Location()

def is_public_ip(ip: str | None) -> bool:
    if not ip or ip == "unknown":
        return False
    try:
        addr = ipaddress.ip_address(ip.strip())
    except ValueError:
        return False
    return addr.is_global

def _primary(ip: str, timeout: float) -> Optional[Location]:
    r = requests.get(PRIMARY_URL.format(ip=ip), headers={"User-Agent": USER_AGENT}, timeout=timeout)
    r.raise_for_status()
    data = r.json()
    if not isinstance(data, dict):
        return None
    if data.get("error"):
        logger.info("ipapi.co refused %s: %s", ip, data.get("reason"))
        return None
    return Location(
        country=data.get("country_code") or None,
        city=data.get("city") or None,
        timezone=data.get("timezone") or None,
    )

def _fallback(ip: str, timeout: float) -> Optional[Location]:
    r = requests.get(FALLBACK_URL.format(ip=ip), headers={"User-Agent": USER_AGENT}, timeout=timeout)
    r.raise_for_status()
    data = r.json()
    if not isinstance(data, dict) or data.get("status") != "success":
        return None
    return Location(
        country=data.get("countryCode") or None,
        city=data.get("city") or None,
        timezone=data.get("timezone") or None,
    )

def lookup_location(ip: str | None, timeout: float = 5.0) -> Location:
    """
    Best-effort coarse location for a reporter IP. Never raises; private,
    loopback and unparseable addresses are skipped without a network call.
    """
    if not is_public_ip(ip):
        logger.debug("Skipping location lookup for non-public IP %s", ip)
        return EMPTY

    for name, provider in (("ipapi.co", _primary), ("ip-api.com", _fallback)):
        try:
            loc = provider(ip, timeout)
        except (requests.RequestException, ValueError) as e:
            logger.warning("Location lookup via %s failed for %s: %s", name, ip, e)
            continue
        if loc is not None:
            return loc

    logger.info("No location data available for %s", ip)
    return EMPTY
