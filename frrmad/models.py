"""Data model shared by the analyzer, the exporters and the socket server."""

from dataclasses import dataclass, field, fields, is_dataclass
from collections.abc import Mapping
from typing import Any


# --- static configuration -------------------------------------------------


@dataclass
class IpPrefix:
    """An IPv4 address together with its prefix length."""

    ip_address: str = ""
    prefix_length: int = 0


@dataclass
class AccessListItem:
    """One line of an access list; matches either a prefix or any address."""

    sequence: int = 0
    access_control: str = ""
    ip_prefix: IpPrefix | None = None
    is_any: bool = False


@dataclass
class AccessList:
    access_list_items: list[AccessListItem] = field(default_factory=list)


@dataclass
class StaticRoute:
    ip_prefix: IpPrefix = field(default_factory=IpPrefix)
    next_hop: str = ""


@dataclass
class InterfaceIpPrefix:
    """An address configured on an interface, with its OSPF settings."""

    ip_prefix: IpPrefix | None = None
    peer_ip_prefix: IpPrefix | None = None
    has_peer: bool = False
    passive: bool = False
    ospf: bool = False
    ospf_area: str = ""


@dataclass
class Interface:
    name: str = ""
    area: str = ""
    interface_ip_prefixes: list[InterfaceIpPrefix] = field(default_factory=list)


@dataclass
class OspfArea:
    name: str = ""
    type: str = ""


@dataclass
class Redistribution:
    type: str = ""
    route_map: str = ""
    metric: str = ""


@dataclass
class OspfConfig:
    router_id: str = ""
    area: list[OspfArea] = field(default_factory=list)
    redistribution: list[Redistribution] = field(default_factory=list)


@dataclass
class StaticFRRConfiguration:
    """The router configuration as written in the FRR configuration file."""

    hostname: str = ""
    ospf_config: OspfConfig | None = None
    interfaces: list[Interface] = field(default_factory=list)
    static_routes: list[StaticRoute] = field(default_factory=list)
    access_list: dict[str, AccessList] = field(default_factory=dict)


# --- runtime OSPF state ---------------------------------------------------


@dataclass
class Neighbor:
    address: str = ""
    iface_name: str = ""
    nbr_state: str = ""
    up_time_in_msec: int = 0


@dataclass
class NeighborList:
    neighbors: list[Neighbor] = field(default_factory=list)


@dataclass
class OSPFNeighbors:
    neighbors: dict[str, NeighborList] = field(default_factory=dict)


@dataclass
class RouterLink:
    link_type: str = ""
    network_address: str = ""
    network_mask: str = ""
    router_interface_address: str = ""
    neighbor_router_id: str = ""
    p2p_interface_address: str = ""


@dataclass
class RouterLsa:
    lsa_type: str = ""
    options: str = ""
    num_of_links: int = 0
    router_links: dict[str, RouterLink] = field(default_factory=dict)


@dataclass
class RouterArea:
    lsa_entries: dict[str, RouterLsa] = field(default_factory=dict)


@dataclass
class OSPFRouterData:
    router_id: str = ""
    router_states: dict[str, RouterArea] = field(default_factory=dict)


@dataclass
class NetworkLsa:
    link_state_id: str = ""
    network_mask: int = 0
    options: str = ""
    attached_routers: list[str] = field(default_factory=list)


@dataclass
class NetAreaState:
    lsa_entries: dict[str, NetworkLsa] = field(default_factory=dict)


@dataclass
class OSPFNetworkData:
    router_id: str = ""
    net_states: dict[str, NetAreaState] = field(default_factory=dict)


@dataclass
class SummaryLsa:
    link_state_id: str = ""
    network_mask: int = 0
    options: str = ""
    tos0_metric: int = 0


@dataclass
class SummaryAreaState:
    lsa_entries: dict[str, SummaryLsa] = field(default_factory=dict)


@dataclass
class OSPFSummaryData:
    router_id: str = ""
    summary_states: dict[str, SummaryAreaState] = field(default_factory=dict)


@dataclass
class OSPFAsbrSummaryData:
    router_id: str = ""
    asbr_summary_states: dict[str, SummaryAreaState] = field(default_factory=dict)


@dataclass
class ExternalLsa:
    link_state_id: str = ""
    network_mask: int = 0
    options: str = ""
    metric: int = 0
    metric_type: str = ""


@dataclass
class OSPFExternalData:
    router_id: str = ""
    as_external_link_states: dict[str, ExternalLsa] = field(default_factory=dict)


@dataclass
class NssaExternalLsa:
    link_state_id: str = ""
    network_mask: int = 0
    options: str = ""
    metric: int = 0
    metric_type: str = ""


@dataclass
class NssaExternalArea:
    data: dict[str, NssaExternalLsa] = field(default_factory=dict)


@dataclass
class OSPFNssaExternalData:
    router_id: str = ""
    nssa_external_link_states: dict[str, NssaExternalArea] = field(default_factory=dict)


@dataclass
class DatabaseArea:
    router_link_states_count: int = 0
    network_link_states_count: int = 0
    summary_link_states_count: int = 0
    asbr_summary_link_states_count: int = 0


@dataclass
class OSPFDatabase:
    areas: dict[str, DatabaseArea] = field(default_factory=dict)
    as_external_count: int = 0


@dataclass
class GeneralOspfArea:
    backbone: bool = False


@dataclass
class GeneralOspfInformation:
    router_id: str = ""
    areas: dict[str, GeneralOspfArea] = field(default_factory=dict)


@dataclass
class SingleInterface:
    operational_status: str = ""
    administrative_status: str = ""
    vrf_name: str = ""


@dataclass
class InterfaceList:
    interfaces: dict[str, SingleInterface] = field(default_factory=dict)


@dataclass
class Nexthop:
    ip: str = ""
    fib: bool = False


@dataclass
class Route:
    prefix: str = ""
    prefix_len: int = 0
    protocol: str = ""
    metric: int = 0
    installed: bool = False
    nexthops: list[Nexthop] = field(default_factory=list)


@dataclass
class RouteEntry:
    routes: list[Route] = field(default_factory=list)


@dataclass
class RoutingInformationBase:
    routes: dict[str, RouteEntry] = field(default_factory=dict)


@dataclass
class FullFRRData:
    """Everything collected from the router in one poll cycle."""

    ospf_database: OSPFDatabase | None = None
    ospf_router_data: OSPFRouterData | None = None
    ospf_network_data: OSPFNetworkData | None = None
    ospf_network_data_all: OSPFNetworkData | None = None
    ospf_summary_data: OSPFSummaryData | None = None
    ospf_summary_data_all: OSPFSummaryData | None = None
    ospf_asbr_summary_data: OSPFAsbrSummaryData | None = None
    ospf_external_data: OSPFExternalData | None = None
    ospf_external_all: OSPFExternalData | None = None
    ospf_nssa_external_data: OSPFNssaExternalData | None = None
    ospf_nssa_external_all: OSPFNssaExternalData | None = None
    ospf_neighbors: OSPFNeighbors | None = None
    interfaces: InterfaceList | None = None
    routing_information_base: RoutingInformationBase | None = None
    rib_fib_summary_routes: dict[str, Any] | None = None
    static_frr_configuration: StaticFRRConfiguration | None = None
    general_ospf_information: GeneralOspfInformation | None = None
    frr_router_data: dict[str, Any] | None = None
    system_metrics: dict[str, Any] | None = None


# --- analyzer structures --------------------------------------------------


@dataclass
class ACLEntry:
    ip_address: str = ""
    prefix_length: int = 0
    is_permit: bool = False
    sequence: int = 0
    is_any: bool = False


@dataclass
class AccessListAnalyzer:
    access_list: str = ""
    acl_entry: list[ACLEntry] = field(default_factory=list)


@dataclass
class StaticList:
    ip_address: str = ""
    prefix_length: int = 0
    next_hop: str = ""


@dataclass
class RibPrefixes:
    prefix: str = ""
    prefix_length: str = ""
    next_hop_address: str = ""
    protocol: str = ""


@dataclass
class Advertisement:
    """One advertised (or expected) link or prefix."""

    interface_address: str = ""
    link_state_id: str = ""
    prefix_length: str = ""
    link_type: str = ""
    options: str = ""
    p_bit: bool = False
    ospf: bool = False
    ospf_area: str = ""


@dataclass
class AreaAnalyzer:
    area_name: str = ""
    lsa_type: str = ""
    area_type: str = ""
    links: list[Advertisement] = field(default_factory=list)


@dataclass
class IntraAreaLsa:
    hostname: str = ""
    router_id: str = ""
    router_type: str = ""
    areas: list[AreaAnalyzer] = field(default_factory=list)


@dataclass
class InterAreaLsa:
    hostname: str = ""
    router_id: str = ""
    areas: list[AreaAnalyzer] = field(default_factory=list)


@dataclass
class AnomalyDetection:
    has_over_advertised_prefixes: bool = False
    has_un_advertised_prefixes: bool = False
    has_duplicate_prefixes: bool = False
    has_misconfigured_prefixes: bool = False
    superfluous_entries: list[Advertisement] = field(default_factory=list)
    missing_entries: list[Advertisement] = field(default_factory=list)
    duplicate_entries: list[Advertisement] = field(default_factory=list)


@dataclass
class AnomalyAnalysis:
    router_anomaly: AnomalyDetection | None = None
    external_anomaly: AnomalyDetection | None = None
    nssa_external_anomaly: AnomalyDetection | None = None
    rib_to_fib_anomaly: AnomalyDetection | None = None
    lsdb_to_rib_anomaly: AnomalyDetection | None = None


@dataclass
class PeerInterfaceMap:
    peer_interface_to_address: dict[str, str] = field(default_factory=dict)


@dataclass
class ParsedAnalyzerData:
    should_router_lsdb: IntraAreaLsa = field(default_factory=IntraAreaLsa)
    should_external_lsdb: InterAreaLsa = field(default_factory=InterAreaLsa)
    should_nssa_external_lsdb: InterAreaLsa = field(default_factory=InterAreaLsa)
    p2p_map: PeerInterfaceMap = field(default_factory=PeerInterfaceMap)


# --- socket protocol ------------------------------------------------------


@dataclass
class Message:
    """A request sent to the analyzer socket."""

    service: str = ""
    command: str = ""


@dataclass
class Response:
    """A reply from the analyzer socket; ``kind`` names what ``data`` holds."""

    status: str = ""
    message: str = ""
    kind: str = ""
    data: Any = None


def to_plain(obj):
    """Convert dataclasses, mappings and sequences into plain dicts and lists."""
    if is_dataclass(obj) and not isinstance(obj, type):
        return {f.name: to_plain(getattr(obj, f.name)) for f in fields(obj)}
    if isinstance(obj, Mapping):
        return {key: to_plain(value) for key, value in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [to_plain(item) for item in obj]
    return obj