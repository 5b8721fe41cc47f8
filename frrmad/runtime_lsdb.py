"""Parsing of the router's runtime OSPF link-state database into analyzer form."""

import ipaddress
import logging
import re
import time

from .models import (
    Advertisement,
    AreaAnalyzer,
    InterAreaLsa,
    IntraAreaLsa,
    PeerInterfaceMap,
    RibPrefixes,
)

logger = logging.getLogger(__name__)

# Returned by get_network_address when the prefix or length cannot be used.
INVALID_ADDRESS = "<nil>"

_DECIMAL = re.compile(r"[+-]?\d+")


def mask_to_prefix_length(mask):
    """Turn a dotted netmask into its prefix length, as a string.

    Malformed masks give "32"; well-formed but non-contiguous masks give "0".
    """
    parts = mask.split(".")
    if len(parts) != 4:
        return "32"
    value = 0
    for part in parts:
        if not _DECIMAL.fullmatch(part):
            return "32"
        value = (value << 8) | (int(part) & 0xFF)

    ones = bin(value).count("1")
    canonical = ((0xFFFFFFFF << (32 - ones)) & 0xFFFFFFFF) if ones else 0
    return str(ones) if value == canonical else "0"


def get_network_address(prefix, prefix_length):
    """Return the network address of an IPv4 address under a prefix length."""
    try:
        address = ipaddress.IPv4Address(prefix)
    except ValueError:
        return INVALID_ADDRESS
    if not 0 <= prefix_length <= 32:
        return INVALID_ADDRESS
    network = ipaddress.IPv4Network(f"{address}/{prefix_length}", strict=False)
    return str(network.network_address)


def count_total_links(lsa):
    """Count the links across every area of an LSDB view."""
    return sum(len(area.links) for area in lsa.areas)


def _network_prefix(link_state_id, mask):
    return f"{get_network_address(link_state_id, mask)}/{mask}"


def get_runtime_router_data_self(config, hostname, peer_neighbor):
    """Build the self-originated router-LSA view and the peer address map.

    Stub and transit link types on the input links are normalised in place,
    and point-to-point links to known peers get their P2P address filled in.
    """
    start = time.perf_counter()
    result = IntraAreaLsa(router_id=config.router_id, hostname=hostname)
    p2p_map = PeerInterfaceMap()
    areas = {}

    logger.debug(
        "Starting router LSDB parsing (router_id=%s, areas=%d, peer_neighbors=%d)",
        config.router_id, len(config.router_states), len(peer_neighbor),
    )

    for area_name, router_area in config.router_states.items():
        for lsa_entry in router_area.lsa_entries.values():
            current_area = areas.get(area_name)
            if current_area is None:
                current_area = AreaAnalyzer(area_name=area_name, lsa_type=lsa_entry.lsa_type)
                areas[area_name] = current_area
                result.areas.append(current_area)

            for router_link in lsa_entry.router_links.values():
                lowered = router_link.link_type.lower()
                is_stub = False
                prefix_length = ""
                if "stub network" in lowered:
                    router_link.link_type = "stub network"
                    ip_address = router_link.network_address
                    is_stub = True
                    prefix_length = mask_to_prefix_length(router_link.network_mask)
                elif "transit network" in lowered:
                    router_link.link_type = "transit network"
                    ip_address = router_link.router_interface_address
                elif router_link.router_interface_address:
                    ip_address = router_link.router_interface_address
                elif router_link.network_address:
                    ip_address = router_link.network_address
                else:
                    continue

                adv = Advertisement(interface_address=ip_address)
                if "point-to-point" in router_link.link_type.lower():
                    adv.link_type = "point-to-point"
                    peer_address = peer_neighbor.get(router_link.neighbor_router_id)
                    if ip_address.startswith("0") and peer_address is not None:
                        adv.interface_address = peer_address
                        router_link.p2p_interface_address = peer_address
                        p2p_map.peer_interface_to_address[ip_address] = peer_address
                else:
                    adv.link_type = router_link.link_type

                if is_stub:
                    adv.prefix_length = prefix_length

                current_area.links.append(adv)

    if p2p_map.peer_interface_to_address:
        logger.debug("Created %d peer interface mappings",
                     len(p2p_map.peer_interface_to_address))
    logger.debug(
        "Completed router LSDB parsing in %.6fs (areas=%d, links=%d)",
        time.perf_counter() - start, len(result.areas), count_total_links(result),
    )
    return result, p2p_map


def get_runtime_router_data(config, hostname):
    """Flatten all router-LSAs into a single router-LSA area."""
    if config is None:
        logger.debug("Skipping router data parsing - no input")
        return None

    start = time.perf_counter()
    router_lsdb = AreaAnalyzer(lsa_type="router-LSA")
    result = IntraAreaLsa(hostname=hostname, router_id=config.router_id, areas=[router_lsdb])

    for router_area in config.router_states.values():
        for lsa in router_area.lsa_entries.values():
            for router_link in lsa.router_links.values():
                adv = Advertisement(options=lsa.options)
                if router_link.link_type == "Stub Network":
                    adv.interface_address = router_link.network_address
                    adv.prefix_length = router_link.network_mask
                else:
                    adv.interface_address = router_link.router_interface_address
                router_lsdb.links.append(adv)

    logger.debug("Completed full router LSDB parsing in %.6fs (lsas=%d)",
                 time.perf_counter() - start, len(router_lsdb.links))
    return result


def get_runtime_network_data(config, hostname):
    """Collect network-LSAs as network prefixes."""
    if config is None:
        logger.debug("Skipping network data parsing - no input")
        return None

    start = time.perf_counter()
    network_lsdb = AreaAnalyzer(lsa_type="network-LSA")
    result = IntraAreaLsa(hostname=hostname, router_id=config.router_id, areas=[network_lsdb])

    for net_state in config.net_states.values():
        for lsa in net_state.lsa_entries.values():
            network_lsdb.links.append(Advertisement(
                link_state_id=_network_prefix(lsa.link_state_id, lsa.network_mask),
                prefix_length=str(lsa.network_mask),
                options=lsa.options,
            ))

    logger.debug("Completed network LSDB parsing in %.6fs (lsas=%d)",
                 time.perf_counter() - start, len(network_lsdb.links))
    return result


def get_runtime_summary_data(config, hostname):
    """Collect summary-LSAs as network prefixes."""
    if config is None:
        logger.debug("Skipping summary data parsing - no input")
        return None

    start = time.perf_counter()
    summary_lsdb = AreaAnalyzer(lsa_type="summary-LSA")
    result = InterAreaLsa(hostname=hostname, router_id=config.router_id, areas=[summary_lsdb])

    for summary_state in config.summary_states.values():
        for lsa in summary_state.lsa_entries.values():
            summary_lsdb.links.append(Advertisement(
                link_state_id=_network_prefix(lsa.link_state_id, lsa.network_mask),
                prefix_length=str(lsa.network_mask),
                options=lsa.options,
            ))

    logger.debug("Completed summary LSDB parsing in %.6fs (lsas=%d)",
                 time.perf_counter() - start, len(summary_lsdb.links))
    return result


def get_runtime_external_data_self(config, static_route_map, hostname):
    """Collect self-originated AS-external-LSAs that stem from static routes."""
    if config is None:
        logger.debug("Skipping external data parsing - no input")
        return None

    start = time.perf_counter()
    external_area = AreaAnalyzer(lsa_type="AS-external-LSA")
    result = InterAreaLsa(hostname=hostname, router_id=config.router_id, areas=[external_area])
    static_routes = static_route_map or {}

    for key, lsa in config.as_external_link_states.items():
        if key not in static_routes:
            continue
        external_area.links.append(Advertisement(
            link_state_id=lsa.link_state_id,
            prefix_length=str(lsa.network_mask),
            link_type="external",
            options=lsa.options,
        ))

    logger.debug(
        "Completed self-originated external LSDB parsing in %.6fs (lsas=%d, static_routes=%d)",
        time.perf_counter() - start, len(external_area.links), len(static_routes),
    )
    return result


def get_runtime_external_data(config, hostname):
    """Collect every AS-external-LSA as a network prefix."""
    if config is None:
        logger.debug("Skipping external data parsing - no input")
        return None

    start = time.perf_counter()
    external_area = AreaAnalyzer(lsa_type="AS-external-LSA")
    result = InterAreaLsa(hostname=hostname, router_id=config.router_id, areas=[external_area])

    for lsa in config.as_external_link_states.values():
        external_area.links.append(Advertisement(
            link_state_id=_network_prefix(lsa.link_state_id, lsa.network_mask),
            prefix_length=str(lsa.network_mask),
            link_type="external",
            options=lsa.options,
        ))

    logger.debug("Completed external LSDB parsing in %.6fs (lsas=%d)",
                 time.perf_counter() - start, len(external_area.links))
    return result


def get_nssa_external_data(config, static_route_map, hostname):
    """Collect self-originated NSSA-LSAs from static routes, one area per NSSA area."""
    if config is None:
        logger.debug("Skipping NSSA external data parsing - no input")
        return None

    start = time.perf_counter()
    result = InterAreaLsa(hostname=hostname, router_id=config.router_id)
    static_routes = static_route_map or {}

    for area_id, nssa_area in config.nssa_external_link_states.items():
        area = AreaAnalyzer(area_name=area_id, lsa_type="NSSA-LSA")
        for key, lsa in nssa_area.data.items():
            if key not in static_routes:
                continue
            option_fields = lsa.options.split("|")
            p_bit_set = len(option_fields) > 4 and "P" in option_fields[4]
            logger.info("NSSA route %s/%d has P-bit: %s",
                        lsa.link_state_id, lsa.network_mask, str(p_bit_set).lower())
            area.links.append(Advertisement(
                link_state_id=lsa.link_state_id,
                prefix_length=str(lsa.network_mask),
                link_type="nssa-external",
            ))
        result.areas.append(area)

    logger.debug("Completed NSSA external LSDB parsing in %.6fs (areas=%d, lsas=%d)",
                 time.perf_counter() - start, len(result.areas), count_total_links(result))
    return result


def get_runtime_nssa_external_data(config, hostname):
    """Collect every NSSA-LSA as a network prefix in a single area."""
    if config is None:
        logger.debug("Skipping NSSA external data parsing - no input")
        return None

    start = time.perf_counter()
    external_area = AreaAnalyzer(lsa_type="NSSA-LSA")
    result = InterAreaLsa(hostname=hostname, router_id=config.router_id, areas=[external_area])

    for nssa_area in config.nssa_external_link_states.values():
        for lsa in nssa_area.data.values():
            external_area.links.append(Advertisement(
                link_state_id=_network_prefix(lsa.link_state_id, lsa.network_mask),
                prefix_length=str(lsa.network_mask),
                link_type="nssa-external",
                options=lsa.options,
            ))

    logger.debug("Completed NSSA external LSDB parsing in %.6fs (lsas=%d)",
                 time.perf_counter() - start, len(external_area.links))
    return result


def get_fib(rib):
    """Map each RIB prefix to the route whose next hop is installed in the FIB."""
    if rib is None:
        logger.debug("Skipping FIB parsing - no RIB input")
        return None

    start = time.perf_counter()
    fib_map = {}
    route_count = 0

    for prefix, entry in rib.routes.items():
        for route in entry.routes:
            route_count += 1
            for nexthop in route.nexthops:
                if nexthop.fib:
                    fib_map[prefix] = RibPrefixes(
                        prefix=route.prefix,
                        prefix_length=str(route.prefix_len),
                        next_hop_address=nexthop.ip,
                        protocol=route.protocol,
                    )

    logger.debug("Completed FIB mapping in %.6fs (routes=%d, fib_entries=%d)",
                 time.perf_counter() - start, route_count, len(fib_map))
    return fib_map