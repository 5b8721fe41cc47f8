"""Prediction of the LSDB a router should advertise, from its static configuration."""

import copy
import logging
import time

from .models import Advertisement, AreaAnalyzer, InterAreaLsa, IntraAreaLsa
from .runtime_lsdb import count_total_links, get_network_address

logger = logging.getLogger(__name__)


def zero_last_octet(ip_address):
    """Replace the last octet of a dotted IPv4 address with 0."""
    parts = ip_address.split(".")
    if len(parts) < 4:
        raise ValueError(f"not a dotted IPv4 address: {ip_address!r}")
    parts[3] = "0"
    return ".".join(parts)


def get_ospf_area(info):
    """Return the backbone area's name, or "0" when none is marked."""
    if info is not None:
        for key, area in info.areas.items():
            if area.backbone:
                return key
    return "0"


def get_static_file_router_data(config, general_ospf_info):
    """Predict the router-LSA links per area.

    Returns ``(is_nssa, lsdb)``; ``lsdb`` is None when no area has links.
    """
    if config is None or config.ospf_config is None:
        logger.debug("Skipping router data parsing - no config or OSPF config")
        return False, None

    start = time.perf_counter()
    ospf = config.ospf_config
    backbone_area = get_ospf_area(general_ospf_info)

    result = IntraAreaLsa(hostname=config.hostname, router_id=ospf.router_id)

    area_links = {}
    virtual = {}
    for iface in config.interfaces:
        if not iface.area:
            continue
        area_links.setdefault(iface.area, [])
        virtual[iface.area] = False

    for area in ospf.area:
        if "virtual-link" in area.type.lower():
            virtual[area.name] = True

    for iface in config.interfaces:
        has_peer = any(p.peer_ip_prefix is not None for p in iface.interface_ip_prefixes)
        if not iface.area:
            continue

        target_area = iface.area
        for if_prefix in iface.interface_ip_prefixes:
            if if_prefix.ip_prefix is None or not if_prefix.ospf:
                continue

            adv = Advertisement(
                interface_address=if_prefix.ip_prefix.ip_address,
                prefix_length=str(if_prefix.ip_prefix.prefix_length),
                ospf=if_prefix.ospf,
                ospf_area=if_prefix.ospf_area,
            )

            if if_prefix.passive:
                adv.link_type = "stub network"
                adv.interface_address = get_network_address(
                    adv.interface_address, if_prefix.ip_prefix.prefix_length
                )
            elif has_peer:
                if if_prefix.peer_ip_prefix is None:
                    raise ValueError(
                        f"interface {iface.name!r} address "
                        f"{if_prefix.ip_prefix.ip_address} has no peer prefix"
                    )
                adv.link_type = "stub network"
                peer_adv = copy.deepcopy(adv)
                peer_adv.interface_address = if_prefix.peer_ip_prefix.ip_address
                area_links.setdefault(target_area, []).append(peer_adv)
                adv.link_type = "point-to-point"
            elif virtual.get(iface.area, False):
                adv.link_type = "transit network"
                area_links.setdefault(target_area, []).append(copy.deepcopy(adv))
                target_area = backbone_area
                adv.link_type = "virtual link"
            else:
                adv.link_type = "unknown"
                adv.interface_address = zero_last_octet(adv.interface_address)
                adv.link_state_id = if_prefix.ip_prefix.ip_address

            area_links.setdefault(target_area, []).append(adv)

    for name, links in area_links.items():
        if links:
            result.areas.append(AreaAnalyzer(
                area_name=name,
                lsa_type="router-LSA",
                area_type="normal",
                links=links,
            ))

    is_nssa = any(area.type == "nssa" for area in ospf.area)
    is_asbr = any(redist.type == "bgp" for redist in ospf.redistribution)

    if not result.areas:
        return False, None
    if len(result.areas) == 1:
        result.router_type = "internal router"
    elif is_asbr:
        result.router_type = "asbr"
    else:
        result.router_type = "abr"

    logger.debug(
        "Completed static router configuration parsing in %.6fs (router_type=%s, links=%d)",
        time.perf_counter() - start, result.router_type, count_total_links(result),
    )
    return is_nssa, result


def _allowed_static_routes(config, access_list, static_route_map):
    """Yield (address, prefix length) of static routes that pass the access lists."""
    known = static_route_map or {}
    for route in config.static_routes:
        address = route.ip_prefix.ip_address
        if address not in known:
            continue
        if not access_list:
            allowed = True
        else:
            allowed = any(
                entry.ip_address == address and entry.is_permit
                for acl in access_list.values()
                if acl is not None
                for entry in acl.acl_entry
            )
        if allowed:
            yield address, route.ip_prefix.prefix_length


def get_static_file_external_data(config, access_list, static_route_map):
    """Predict the AS-external-LSAs (type 5) originated from static routes."""
    if config is None or config.ospf_config is None:
        logger.debug("Skipping external data parsing - no config or OSPF config")
        return None

    area = AreaAnalyzer(lsa_type="AS-external-LSA")
    result = InterAreaLsa(
        hostname=config.hostname,
        router_id=config.ospf_config.router_id,
        areas=[area],
    )
    for address, length in _allowed_static_routes(config, access_list, static_route_map):
        area.links.append(Advertisement(
            link_state_id=address,
            prefix_length=str(length),
            link_type="external",
        ))

    logger.debug("Completed static external route parsing (routes=%d, filtered=%d)",
                 len(area.links), len(config.static_routes) - len(area.links))
    return result


def get_static_file_nssa_external_data(config, access_list, static_route_map):
    """Predict the NSSA-LSAs (type 7) originated from static routes."""
    if config is None or config.ospf_config is None:
        logger.debug("Skipping NSSA external data parsing - no config or OSPF config")
        return None

    nssa_area_id = next(
        (area.name for area in config.ospf_config.area if area.type == "nssa"), ""
    )
    area = AreaAnalyzer(area_name=nssa_area_id, lsa_type="NSSA-LSA")
    result = InterAreaLsa(
        hostname=config.hostname,
        router_id=config.ospf_config.router_id,
        areas=[area],
    )
    for address, length in _allowed_static_routes(config, access_list, static_route_map):
        area.links.append(Advertisement(
            link_state_id=address,
            prefix_length=str(length),
            link_type="nssa-external",
        ))

    logger.debug("Completed static NSSA external route parsing (routes=%d)", len(area.links))
    return result