"""Publication of collected OSPF, interface and routing data as gauges."""

import logging
import threading
import time
from dataclasses import dataclass

from .registry import Gauge, GaugeVec

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _MetricSpec:
    key: str
    name: str
    help: str
    labels: tuple = ()


# Metric group -> (exporter config flag, metrics the group publishes).
_GROUPS = {
    "router": ("ospf_router_data", (
        _MetricSpec("ospf_router_links", "frr_mad_ospf_router_links_total",
                    "Number of router interfaces in OSPF", ("area_id", "link_state_id")),
    )),
    "network": ("ospf_network_data", (
        _MetricSpec("ospf_network_attached_routers",
                    "frr_mad_ospf_network_attached_routers_total",
                    "Number of attached routers announced in network LSA",
                    ("area_id", "link_state_id")),
    )),
    "summary": ("ospf_summary_data", (
        _MetricSpec("ospf_summary_metric", "frr_mad_ospf_summary_metric",
                    "OSPF summary LSA metric", ("area_id", "link_state_id")),
    )),
    "asbr_summary": ("ospf_asbr_summary_data", (
        _MetricSpec("ospf_asbr_summary_metric", "frr_mad_ospf_asbr_summary_metric",
                    "OSPF ASBR summary LSA metric", ("area_id", "link_state_id")),
    )),
    "external": ("ospf_external_data", (
        _MetricSpec("ospf_external_metric", "frr_mad_ospf_external_metric",
                    "OSPF external LSA route metric", ("link_state_id", "metric_type")),
    )),
    "nssa_external": ("ospf_nssa_external_data", (
        _MetricSpec("ospf_nssa_external_metric", "frr_mad_ospf_nssa_external_metric",
                    "OSPF NSSA external LSA route metric",
                    ("area_id", "link_state_id", "metric_type")),
    )),
    "database": ("ospf_database", (
        _MetricSpec("ospf_database_counts", "frr_mad_ospf_database_lsa_count",
                    "Amount of LSDB entries for each LSA type", ("area_id", "lsa_type")),
    )),
    "neighbors": ("ospf_neighbors", (
        _MetricSpec("ospf_neighbor_state", "frr_mad_ospf_neighbor_state",
                    "OSPF neighbor state (1=Full, 0.5=2-Way, 0=Down)",
                    ("neighbor_id", "interface")),
        _MetricSpec("ospf_neighbor_uptime", "frr_mad_ospf_neighbor_uptime",
                    "OSPF neighbor uptime in seconds", ("neighbor_id", "interface")),
    )),
    "interfaces": ("interface_list", (
        _MetricSpec("interface_operational_status", "frr_mad_interface_operational_status",
                    "Network interface operational status (1=Up, 0=Down)",
                    ("interface", "vrf")),
        _MetricSpec("interface_admin_status", "frr_mad_interface_admin_status",
                    "Network interface administrative status (1=Up, 0=Down)",
                    ("interface", "vrf")),
    )),
    "routes": ("route_list", (
        _MetricSpec("installed_ospf_route", "frr_mad_installed_ospf_route",
                    "Routing protocol metric for installed ospf routes",
                    ("prefix", "protocol", "vrf")),
        _MetricSpec("installed_ospf_routes_count", "frr_mad_installed_ospf_routes_count",
                    "Number of installed ospf routes from RIB"),
    )),
}


def _neighbor_state_value(state):
    if "Full" in state:
        return 1.0
    if "2-Way" in state:
        return 0.5
    return 0.0


class MetricExporter:
    """Mirrors the collected router data into the gauges enabled by the config."""

    def __init__(self, data, registry, config):
        logger.debug("Initializing metric exporter")
        self.data = data
        self.config = config
        self.metrics = {}
        self.enabled_metrics = set()
        self._lock = threading.Lock()
        self._updaters = {
            "router": self._update_router,
            "network": self._update_network,
            "summary": self._update_summary,
            "asbr_summary": self._update_asbr_summary,
            "external": self._update_external,
            "nssa_external": self._update_nssa_external,
            "database": self._update_database,
            "neighbors": self._update_neighbors,
            "interfaces": self._update_interfaces,
            "routes": self._update_routes,
        }

        for group, (flag, specs) in _GROUPS.items():
            if not getattr(config, flag):
                continue
            self.enabled_metrics.add(group)
            for spec in specs:
                if spec.labels:
                    collector = GaugeVec(spec.name, spec.help, spec.labels)
                else:
                    collector = Gauge(spec.name, spec.help)
                self.metrics[spec.key] = collector

        for collector in self.metrics.values():
            registry.register(collector)

        logger.info("Metric exporter initialized (enabled=%s, total_metrics=%d)",
                    sorted(self.enabled_metrics), len(self.metrics))

    def update(self):
        """Rebuild every enabled gauge from the current data."""
        with self._lock:
            if self.data is None:
                logger.warning("Skipping metric update - no data available")
                return
            start = time.perf_counter()
            for group in _GROUPS:
                if group in self.enabled_metrics:
                    self._updaters[group]()
            logger.debug("Completed metric update in %.6fs", time.perf_counter() - start)

    def _update_router(self):
        router_data = self.data.ospf_router_data
        if router_data is None:
            return
        vec = self.metrics["ospf_router_links"]
        vec.reset()
        for area_id, area in router_data.router_states.items():
            for link_state_id, lsa in area.lsa_entries.items():
                vec.labels(area_id, link_state_id).set(lsa.num_of_links)

    def _update_network(self):
        network_data = self.data.ospf_network_data
        if network_data is None:
            return
        vec = self.metrics["ospf_network_attached_routers"]
        vec.reset()
        for area_id, area in network_data.net_states.items():
            for link_state_id, lsa in area.lsa_entries.items():
                vec.labels(area_id, link_state_id).set(len(lsa.attached_routers))

    def _update_summary(self):
        summary_data = self.data.ospf_summary_data
        if summary_data is None:
            return
        vec = self.metrics["ospf_summary_metric"]
        vec.reset()
        for area_id, area in summary_data.summary_states.items():
            for link_state_id, lsa in area.lsa_entries.items():
                vec.labels(area_id, link_state_id).set(lsa.tos0_metric)

    def _update_asbr_summary(self):
        asbr_data = self.data.ospf_asbr_summary_data
        if asbr_data is None:
            return
        vec = self.metrics["ospf_asbr_summary_metric"]
        vec.reset()
        for area_id, area in asbr_data.asbr_summary_states.items():
            for link_state_id, lsa in area.lsa_entries.items():
                vec.labels(area_id, link_state_id).set(lsa.tos0_metric)

    def _update_external(self):
        external_data = self.data.ospf_external_data
        if external_data is None:
            return
        vec = self.metrics["ospf_external_metric"]
        vec.reset()
        for link_state_id, lsa in external_data.as_external_link_states.items():
            vec.labels(link_state_id, lsa.metric_type).set(lsa.metric)

    def _update_nssa_external(self):
        nssa_data = self.data.ospf_nssa_external_data
        if nssa_data is None:
            return
        vec = self.metrics["ospf_nssa_external_metric"]
        vec.reset()
        for area_id, area in nssa_data.nssa_external_link_states.items():
            for link_state_id, lsa in area.data.items():
                vec.labels(area_id, link_state_id, lsa.metric_type).set(lsa.metric)

    def _update_database(self):
        database = self.data.ospf_database
        if database is None:
            return
        vec = self.metrics["ospf_database_counts"]
        vec.reset()
        for area_id, area in database.areas.items():
            vec.labels(area_id, "router").set(area.router_link_states_count)
            vec.labels(area_id, "network").set(area.network_link_states_count)
            vec.labels(area_id, "summary").set(area.summary_link_states_count)
            vec.labels(area_id, "asbr_summary").set(area.asbr_summary_link_states_count)
        vec.labels("0", "external").set(database.as_external_count)

    def _update_neighbors(self):
        neighbor_data = self.data.ospf_neighbors
        if neighbor_data is None:
            return
        state_vec = self.metrics["ospf_neighbor_state"]
        uptime_vec = self.metrics["ospf_neighbor_uptime"]
        state_vec.reset()
        uptime_vec.reset()
        for iface, neighbor_list in neighbor_data.neighbors.items():
            for neighbor in neighbor_list.neighbors:
                state_vec.labels(neighbor.address, iface).set(
                    _neighbor_state_value(neighbor.nbr_state))
                uptime_vec.labels(neighbor.address, iface).set(
                    int(neighbor.up_time_in_msec) // 1000)

    def _update_interfaces(self):
        interface_data = self.data.interfaces
        if interface_data is None:
            return
        oper_vec = self.metrics["interface_operational_status"]
        admin_vec = self.metrics["interface_admin_status"]
        oper_vec.reset()
        admin_vec.reset()
        for name, iface in interface_data.interfaces.items():
            oper_vec.labels(name, iface.vrf_name).set(
                1.0 if iface.operational_status == "Up" else 0.0)
            admin_vec.labels(name, iface.vrf_name).set(
                1.0 if iface.administrative_status == "Up" else 0.0)

    def _update_routes(self):
        rib = self.data.routing_information_base
        if rib is None:
            return
        vec = self.metrics["installed_ospf_route"]
        count = self.metrics["installed_ospf_routes_count"]
        vec.reset()
        installed = 0
        for vrf, entry in rib.routes.items():
            for route in entry.routes:
                if route.installed and route.protocol == "ospf":
                    installed += 1
                    vec.labels(route.prefix, route.protocol, vrf).set(route.metric)
        count.set(installed)