"""The analysis cycle: expected state against runtime state, run once or on a timer."""

import copy
import logging
import threading
import time

from .anomalies import (
    analyze_external_lsdb,
    analyze_fib,
    analyze_nssa_external,
    analyze_router_lsdb,
)
from .config_parsing import (
    get_access_list,
    get_peer_neighbor,
    get_peer_network_address,
    get_static_route_list,
)
from .expected_lsdb import (
    get_static_file_external_data,
    get_static_file_nssa_external_data,
    get_static_file_router_data,
)
from .models import (
    AnomalyAnalysis,
    AnomalyDetection,
    InterAreaLsa,
    IntraAreaLsa,
    ParsedAnalyzerData,
    PeerInterfaceMap,
)
from .runtime_lsdb import (
    get_fib,
    get_nssa_external_data,
    get_runtime_external_data,
    get_runtime_external_data_self,
    get_runtime_network_data,
    get_runtime_nssa_external_data,
    get_runtime_router_data_self,
    get_runtime_summary_data,
)

logger = logging.getLogger(__name__)


def init_anomaly_detection():
    """Return an empty anomaly detection result."""
    return AnomalyDetection()


def _apply(target, result, *, with_duplicates):
    target.has_over_advertised_prefixes = result.has_over_advertised_prefixes
    target.has_un_advertised_prefixes = result.has_un_advertised_prefixes
    target.missing_entries = result.missing_entries
    target.superfluous_entries = result.superfluous_entries
    if with_duplicates:
        target.has_duplicate_prefixes = result.has_duplicate_prefixes
        target.duplicate_entries = result.duplicate_entries


class Analyzer:
    """Holds the collected router data and the results of analysing it.

    The result objects are updated in place, so holders of references to
    ``analysis_result`` or ``parsed_analyzer_data`` always see current data.
    """

    def __init__(self, metrics):
        logger.info("Initializing analyzer")
        self.metrics = metrics
        self.analysis_result = AnomalyAnalysis(
            router_anomaly=init_anomaly_detection(),
            external_anomaly=init_anomaly_detection(),
            nssa_external_anomaly=init_anomaly_detection(),
            rib_to_fib_anomaly=init_anomaly_detection(),
            lsdb_to_rib_anomaly=init_anomaly_detection(),
        )
        self.parsed_analyzer_data = ParsedAnalyzerData()
        self.p2p_map = PeerInterfaceMap()
        self._stop_event = None
        self._thread = None

    def anomaly_analysis(self):
        """Run one full analysis cycle and return the updated results."""
        start = time.perf_counter()
        metrics = self.metrics
        static = metrics.static_frr_configuration
        if static is None:
            raise ValueError("no static FRR configuration to analyse")

        access_list = get_access_list(static)
        static_route_map = get_static_route_list(static, access_list)
        peer_interface_map = get_peer_network_address(static)
        peer_neighbor_map = (
            get_peer_neighbor(metrics.ospf_neighbors, peer_interface_map)
            if metrics.ospf_neighbors is not None else {}
        )
        hostname = static.hostname

        is_nssa, should_router = get_static_file_router_data(
            static, metrics.general_ospf_information
        )
        should_external = get_static_file_external_data(static, access_list, static_route_map)
        should_nssa_external = get_static_file_nssa_external_data(
            static, access_list, static_route_map
        )

        fib_map = get_fib(metrics.routing_information_base)
        received_summary = get_runtime_summary_data(metrics.ospf_summary_data_all, hostname)
        received_network = get_runtime_network_data(metrics.ospf_network_data_all, hostname)
        received_external = get_runtime_external_data(metrics.ospf_external_all, hostname)
        received_nssa_external = get_runtime_nssa_external_data(
            metrics.ospf_nssa_external_all, hostname
        )

        if metrics.ospf_router_data is not None:
            is_router, p2p_map = get_runtime_router_data_self(
                metrics.ospf_router_data, hostname, peer_neighbor_map
            )
        else:
            is_router, p2p_map = None, PeerInterfaceMap()
        is_external = get_runtime_external_data_self(
            metrics.ospf_external_data, static_route_map, hostname
        )
        is_nssa_external = get_nssa_external_data(
            metrics.ospf_nssa_external_data, static_route_map, hostname
        )

        logger.debug("Parsed configuration data (access_lists=%d, static_routes=%d)",
                     len(access_list), len(static.static_routes))

        result = self.analysis_result

        router = analyze_router_lsdb(should_router, is_router)
        if router is not None:
            _apply(result.router_anomaly, router, with_duplicates=False)

        external = analyze_external_lsdb(should_external, is_external)
        if external is not None:
            _apply(result.external_anomaly, external, with_duplicates=True)

        if is_nssa:
            nssa = analyze_nssa_external(
                access_list, should_nssa_external, is_nssa_external, is_external
            )
            if nssa is not None:
                _apply(result.nssa_external_anomaly, nssa, with_duplicates=True)

        fib = analyze_fib(
            fib_map, received_network, received_summary, received_external,
            received_nssa_external,
        )
        result.lsdb_to_rib_anomaly.has_un_advertised_prefixes = fib.has_un_advertised_prefixes
        result.lsdb_to_rib_anomaly.missing_entries = fib.missing_entries

        parsed = self.parsed_analyzer_data
        parsed.should_router_lsdb = copy.deepcopy(should_router) or IntraAreaLsa()
        parsed.should_external_lsdb = copy.deepcopy(should_external) or InterAreaLsa()
        parsed.should_nssa_external_lsdb = (
            copy.deepcopy(should_nssa_external) or InterAreaLsa()
        )
        parsed.p2p_map.peer_interface_to_address.update(p2p_map.peer_interface_to_address)
        self.p2p_map.peer_interface_to_address.update(p2p_map.peer_interface_to_address)

        self._log_summary(start)
        return result

    def _log_summary(self, start):
        detections = (
            self.analysis_result.router_anomaly,
            self.analysis_result.external_anomaly,
            self.analysis_result.nssa_external_anomaly,
        )
        logger.info(
            "Completed anomaly analysis in %.6fs (over_advertised=%d, unadvertised=%d, "
            "duplicate=%d)",
            time.perf_counter() - start,
            sum(len(d.superfluous_entries) for d in detections),
            sum(len(d.missing_entries) for d in detections),
            sum(len(d.duplicate_entries) for d in detections),
        )

    def start(self, poll_interval):
        """Run the analysis every ``poll_interval`` seconds in a background thread."""
        if poll_interval <= 0:
            raise ValueError("poll interval must be positive")
        if self._thread is not None and self._thread.is_alive():
            raise RuntimeError("analyzer is already running")
        logger.info("Starting analyzer (interval=%ss)", poll_interval)
        stop_event = threading.Event()

        def run():
            while not stop_event.wait(poll_interval):
                cycle_start = time.perf_counter()
                try:
                    self.anomaly_analysis()
                except Exception:
                    logger.exception("Analysis cycle failed")
                    continue
                logger.debug("Completed analysis cycle in %.6fs",
                             time.perf_counter() - cycle_start)

        self._stop_event = stop_event
        self._thread = threading.Thread(target=run, name="frrmad-analyzer", daemon=True)
        self._thread.start()

    def stop(self):
        """Stop the background analysis and wait for it to finish."""
        if self._stop_event is not None:
            self._stop_event.set()
        if self._thread is not None:
            self._thread.join()
        self._stop_event = None
        self._thread = None