"""Comparison of expected and advertised OSPF state, and of the LSDB against the FIB."""

import logging
import re

from .models import AnomalyDetection, Advertisement

logger = logging.getLogger(__name__)
anomaly_logger = logging.getLogger(__name__ + ".report")

_INTEGER = re.compile(r"[+-]?[0-9]+")
_INT64_MIN = -(2 ** 63)
_INT64_MAX = 2 ** 63 - 1
_EXAMPLE_COUNT = 3


def normalize_network_address(address):
    """Lower-case an address and strip surrounding whitespace."""
    return address.strip().lower()


def normalize_prefix_length(prefix_length):
    """Return a prefix length in canonical decimal form; "32" when unusable."""
    if not prefix_length or not _INTEGER.fullmatch(prefix_length):
        return "32"
    value = int(prefix_length)
    if not _INT64_MIN <= value <= _INT64_MAX:
        return "32"
    return str(value)


def _key_with_fallback(primary, fallback, prefix_length):
    address = normalize_network_address(primary)
    if not address:
        address = normalize_network_address(fallback)
    return f"{address}/{normalize_prefix_length(prefix_length)}"


def get_advertisement_key(adv):
    """Return the key under which an advertisement is compared."""
    if adv.link_type == "transit network":
        return normalize_network_address(adv.interface_address)
    if "virtual link" in adv.link_type.lower():
        return adv.interface_address + "/32"
    return _key_with_fallback(adv.interface_address, adv.link_state_id, adv.prefix_length)


def filter_unique(items):
    """Drop repeated items, keeping the first occurrence of each."""
    return list(dict.fromkeys(items))


def lsdb_link_state_ids(lsdb):
    """Return the distinct link-state IDs of an LSDB view, in order of appearance."""
    if lsdb is None:
        return []
    return filter_unique(link.link_state_id for area in lsdb.areas for link in area.links)


def get_lsdb_state_map(lsdb):
    """Index the links of an LSDB view by comparison key.

    Links of type "unknown" are indexed under their interface address and
    link-state ID, each with and without the prefix length.
    """
    result = {}
    if lsdb is None:
        return result
    for area in lsdb.areas:
        for link in area.links:
            adv = Advertisement(
                interface_address=link.interface_address,
                link_state_id=link.link_state_id,
                link_type=link.link_type,
                prefix_length=link.prefix_length,
            )
            if link.link_type.lower() == "unknown":
                suffix = "/" + link.prefix_length
                result[link.interface_address + suffix] = adv
                result[link.link_state_id + suffix] = adv
                result[link.interface_address] = adv
                result[link.link_state_id] = adv
            else:
                result[get_advertisement_key(link)] = adv
    return result


def is_excluded_by_access_list(adv, access_lists):
    """Tell whether a deny entry in any access list covers the advertisement."""
    address = normalize_network_address(adv.interface_address)
    return any(
        not entry.is_permit and (entry.is_any or address == entry.ip_address)
        for acl in (access_lists or {}).values()
        for entry in acl.acl_entry
    )


def _prefix(adv):
    return f"{adv.link_state_id}/{adv.prefix_length}"


def analyze_fib(fib_map, network_lsdb, summary_lsdb, external_lsdb, nssa_external_lsdb):
    """Find LSDB prefixes that have no FIB entry."""
    fib = fib_map or {}
    lsdb_prefixes = []
    for lsdb in (network_lsdb, summary_lsdb, external_lsdb, nssa_external_lsdb):
        lsdb_prefixes.extend(lsdb_link_state_ids(lsdb))
    lsdb_prefixes = sorted(filter_unique(lsdb_prefixes))

    result = AnomalyDetection()
    for entry in lsdb_prefixes:
        if entry in fib:
            continue
        address, sep, length = entry.partition("/")
        if not sep:
            raise ValueError(f"LSDB prefix has no length: {entry!r}")
        result.has_un_advertised_prefixes = True
        result.missing_entries.append(Advertisement(
            link_state_id=address,
            prefix_length=length.split("/")[0],
        ))

    if result.missing_entries:
        anomaly_logger.warning(
            "Found prefixes in LSDB missing from FIB (count=%d, examples=%s)",
            len(result.missing_entries),
            [_prefix(e) for e in result.missing_entries[:_EXAMPLE_COUNT]],
        )
    logger.debug("Completed FIB-LSDB analysis (missing=%d)", len(result.missing_entries))
    return result


def analyze_router_lsdb(should_state, is_state):
    """Compare expected and advertised router links; None when input is missing."""
    if should_state is None or is_state is None:
        logger.error("Skipping router analysis - missing input data")
        return None

    should_map = get_lsdb_state_map(should_state)
    is_map = get_lsdb_state_map(is_state)
    result = AnomalyDetection()

    for key, should_link in should_map.items():
        if should_link.link_type == "unknown":
            suffix = "/" + should_link.prefix_length
            transit = (should_link.link_state_id + suffix in is_map
                       and should_link.link_state_id in is_map)
            stub = (should_link.interface_address + suffix in is_map
                    and should_link.interface_address in is_map)
            if transit and stub:
                result.missing_entries.append(should_link)
        elif key not in is_map:
            result.missing_entries.append(should_link)

    result.superfluous_entries = [link for key, link in is_map.items() if key not in should_map]
    result.has_over_advertised_prefixes = bool(result.superfluous_entries)
    result.has_un_advertised_prefixes = bool(result.missing_entries)

    if result.missing_entries:
        anomaly_logger.warning(
            "Missing router LSAs detected (count=%d, examples=%s)",
            len(result.missing_entries),
            [(e.interface_address, e.link_type) for e in result.missing_entries[:_EXAMPLE_COUNT]],
        )
    if result.superfluous_entries:
        anomaly_logger.warning(
            "Over-advertised router LSAs detected (count=%d, examples=%s)",
            len(result.superfluous_entries),
            [(e.interface_address, e.link_type)
             for e in result.superfluous_entries[:_EXAMPLE_COUNT]],
        )
    logger.info("Completed router LSDB analysis (areas=%d, missing=%d, extra=%d)",
                len(is_state.areas), len(result.missing_entries),
                len(result.superfluous_entries))
    return result


def analyze_external_lsdb(should_state, is_state):
    """Compare expected and advertised AS-external-LSAs; None when input is missing."""
    if should_state is None or is_state is None:
        logger.warning("Skipping external analysis - missing input data")
        return None

    should_map = get_lsdb_state_map(should_state)
    is_map = get_lsdb_state_map(is_state)
    result = AnomalyDetection(
        missing_entries=[link for key, link in should_map.items() if key not in is_map],
        superfluous_entries=[link for key, link in is_map.items() if key not in should_map],
    )
    result.has_over_advertised_prefixes = bool(result.superfluous_entries)
    result.has_un_advertised_prefixes = bool(result.missing_entries)
    result.has_duplicate_prefixes = bool(result.duplicate_entries)

    if result.missing_entries:
        anomaly_logger.warning(
            "Missing external LSAs detected (count=%d, prefixes=%s)",
            len(result.missing_entries),
            [_prefix(e) for e in result.missing_entries[:_EXAMPLE_COUNT]],
        )
    if result.superfluous_entries:
        anomaly_logger.warning(
            "Over-advertised external LSAs detected (count=%d, prefixes=%s)",
            len(result.superfluous_entries),
            [_prefix(e) for e in result.superfluous_entries[:_EXAMPLE_COUNT]],
        )
    logger.info("Completed external LSDB analysis (areas=%d, missing=%d, extra=%d)",
                len(is_state.areas), len(result.missing_entries),
                len(result.superfluous_entries))
    return result


def _nssa_areas(lsdb):
    return (area for area in lsdb.areas if area.lsa_type == "NSSA-LSA")


def analyze_nssa_external(access_list, should_state, is_state, external_state):
    """Compare expected and advertised NSSA-LSAs per area; None when input is missing.

    Links with the P-bit set must also appear among the AS-external-LSAs.
    """
    if should_state is None or is_state is None:
        logger.warning("Skipping NSSA analysis - missing input data")
        return None

    result = AnomalyDetection()
    is_map = {}
    seen = {}
    for area in _nssa_areas(is_state):
        area_links = is_map.setdefault(area.area_name, {})
        counts = seen.setdefault(area.area_name, {})
        for link in area.links:
            key = get_advertisement_key(link)
            area_links[key] = link
            counts[key] = counts.get(key, 0) + 1
            if counts[key] > 1:
                result.duplicate_entries.append(link)

    should_map = {}
    for area in _nssa_areas(should_state):
        area_links = should_map.setdefault(area.area_name, {})
        for link in area.links:
            area_links[get_advertisement_key(link)] = link

    for area_name, routes in should_map.items():
        present = is_map.get(area_name, {})
        for key, route in routes.items():
            if key not in present and not is_excluded_by_access_list(route, access_list):
                result.missing_entries.append(route)

    for area_name, routes in is_map.items():
        expected = should_map.get(area_name, {})
        result.superfluous_entries.extend(
            route for key, route in routes.items() if key not in expected
        )

    if result.missing_entries:
        anomaly_logger.warning(
            "Missing NSSA external LSAs detected (count=%d, routes=%s)",
            len(result.missing_entries),
            [(_prefix(e), e.p_bit) for e in result.missing_entries[:_EXAMPLE_COUNT]],
        )
    if result.superfluous_entries:
        anomaly_logger.warning(
            "Over-advertised NSSA external LSAs detected (count=%d, routes=%s)",
            len(result.superfluous_entries),
            [_prefix(e) for e in result.superfluous_entries[:_EXAMPLE_COUNT]],
        )

    if external_state is not None:
        external_keys = {
            get_advertisement_key(link)
            for area in external_state.areas
            for link in area.links
        }
        for area in _nssa_areas(is_state):
            for link in area.links:
                if link.p_bit and get_advertisement_key(link) not in external_keys:
                    result.missing_entries.append(link)

    result.has_over_advertised_prefixes = bool(result.superfluous_entries)
    result.has_un_advertised_prefixes = bool(result.missing_entries)
    result.has_duplicate_prefixes = bool(result.duplicate_entries)

    logger.info("Completed NSSA external analysis (areas=%d, missing=%d, extra=%d)",
                len(is_state.areas), len(result.missing_entries),
                len(result.superfluous_entries))
    return result