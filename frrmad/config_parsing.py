"""Extraction of access lists, static routes and peer data from the static configuration."""

from .models import ACLEntry, AccessListAnalyzer, StaticList


def get_access_list(config):
    """Map each access-list name to its analyzer form."""
    result = {}
    if config is None or not config.access_list:
        return result

    for name, acl in config.access_list.items():
        if acl is None:
            continue
        entries = []
        for item in acl.access_list_items:
            if item is None:
                continue
            entry = ACLEntry(
                is_permit=item.access_control == "permit",
                sequence=item.sequence,
            )
            if item.is_any:
                entry.ip_address = "any"
                entry.is_any = True
                entry.prefix_length = 0
            elif item.ip_prefix is not None:
                entry.ip_address = item.ip_prefix.ip_address
                entry.prefix_length = item.ip_prefix.prefix_length
            entries.append(entry)
        result[name] = AccessListAnalyzer(access_list=name, acl_entry=entries)

    return result


def get_static_route_list(config, access_list):
    """Map each static route's address to its route; None when there are none.

    The access list is accepted for interface compatibility but not applied.
    """
    if not config.static_routes:
        return None

    result = {}
    for route in config.static_routes:
        prefix = route.ip_prefix
        address = prefix.ip_address if prefix is not None else ""
        length = prefix.prefix_length if prefix is not None else 0
        result[address] = StaticList(
            ip_address=address,
            prefix_length=length,
            next_hop=route.next_hop,
        )
    return result


def get_peer_network_address(config):
    """Map each interface name to its address that has a point-to-point peer."""
    peers = {}
    for iface in config.interfaces:
        for prefix in iface.interface_ip_prefixes:
            if prefix.has_peer:
                peers[iface.name] = prefix.ip_prefix.ip_address
    return peers


def get_peer_neighbor(neighbors, peer_interface):
    """Map neighbor keys on peer interfaces to the local address of that link.

    Neighbor interface names have the form ``<interface>:<address>``.
    """
    result = {}
    for key, neighbor_list in neighbors.neighbors.items():
        for neighbor in neighbor_list.neighbors:
            parts = neighbor.iface_name.split(":")
            if parts[0] in peer_interface:
                if len(parts) < 2:
                    raise ValueError(
                        f"neighbor interface name has no address part: {neighbor.iface_name!r}"
                    )
                result[key] = parts[1]
    return result