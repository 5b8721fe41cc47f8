"""Publication of anomaly analysis results as gauges."""

import logging
import threading

from .registry import Gauge, GaugeVec

logger = logging.getLogger(__name__)

SOURCES = ("RouterAnomaly", "ExternalAnomaly", "NssaExternalAnomaly", "RibToFib", "LsdbToRib")
FLAG_TYPES = ("overadvertised", "unadvertised", "duplicate", "misconfigured")

DETAIL_LABELS = (
    "anomaly_type",
    "source",
    "interface_address",
    "link_state_id",
    "prefix_length",
    "link_type",
    "p_bit",
    "options",
)

COUNTERS = (
    ("frr_mad_ospf_overadvertised_routes_total", "Total overadvertised routes detected in OSPF"),
    ("frr_mad_ospf_unadvertised_routes_total", "Total unadvertised routes detected in OSPF"),
    ("frr_mad_ospf_duplicate_routes_total", "Total duplicate routes detected in OSPF"),
    ("frr_mad_ospf_misconfigured_routes_total", "Total misconfigured routes detected in OSPF"),
    ("frr_mad_rib_to_fib_anomalies_total", "Total RIB to FIB anomalies detected"),
    ("frr_mad_lsdb_to_rib_anomalies_total", "Total LSDB to RIB anomalies detected"),
)

_DEFAULT_LABELS = {
    "anomaly_type": "none",
    "source": "none",
    "interface_address": "none",
    "link_state_id": "none",
    "prefix_length": "none",
    "link_type": "none",
    "p_bit": "false",
    "options": "none",
}

_OSPF_SOURCES = (
    ("RouterAnomaly", "router_anomaly"),
    ("ExternalAnomaly", "external_anomaly"),
    ("NssaExternalAnomaly", "nssa_external_anomaly"),
)

_ROUTING_SOURCES = (
    ("RibToFib", "rib_to_fib_anomaly", "frr_mad_rib_to_fib_anomalies_total"),
    ("LsdbToRib", "lsdb_to_rib_anomaly", "frr_mad_lsdb_to_rib_anomalies_total"),
)


def _entries(detection):
    return (
        list(detection.superfluous_entries or ()),
        list(detection.missing_entries or ()),
        list(detection.duplicate_entries or ()),
    )


class AnomalyExporter:
    """Mirrors an AnomalyAnalysis into flag, detail and counter gauges."""

    def __init__(self, anomalies, registry):
        logger.debug("Initializing anomaly exporter")
        self.anomalies = anomalies
        self._lock = threading.Lock()

        self.anomaly_details = GaugeVec(
            "frr_mad_anomaly_details",
            "Detailed information about anomalies (1=present, 0=absent)",
            DETAIL_LABELS,
        )
        registry.register(self.anomaly_details)

        self.anomaly_flags = GaugeVec(
            "frr_mad_anomaly_flags",
            "Flag indicators for anomaly types (1=present, 0=absent)",
            ("source", "flag_type"),
        )
        registry.register(self.anomaly_flags)
        self._zero_flags()

        default_labels = dict(_DEFAULT_LABELS)
        self.anomaly_details.with_labels(default_labels).set(0)
        self._known_label_sets = {"default": default_labels}

        self.alert_counters = {}
        for name, help_text in COUNTERS:
            gauge = Gauge(name, help_text)
            registry.register(gauge)
            self.alert_counters[name] = gauge
        logger.debug("Anomaly exporter metrics registered (counters=%d)",
                     len(self.alert_counters))

    def _zero_flags(self):
        for source in SOURCES:
            for flag in FLAG_TYPES:
                self.anomaly_flags.labels(source, flag).set(0)

    def _set_flags(self, source, detection):
        values = (
            detection.has_over_advertised_prefixes,
            detection.has_un_advertised_prefixes,
            detection.has_duplicate_prefixes,
            detection.has_misconfigured_prefixes,
        )
        for flag, present in zip(FLAG_TYPES, values):
            self.anomaly_flags.labels(source, flag).set(1 if present else 0)

    def _set_details(self, source, over, under, dup):
        for anomaly_type, entries in (("overadvertised", over),
                                      ("unadvertised", under),
                                      ("duplicate", dup)):
            for ad in entries:
                self._set_anomaly_detail(anomaly_type, source, ad)

    def update(self):
        """Reset every gauge and set it again from the current analysis."""
        with self._lock:
            for labels in self._known_label_sets.values():
                self.anomaly_details.with_labels(labels).set(0)
            self._known_label_sets = {}
            for counter in self.alert_counters.values():
                counter.set(0)
            self._zero_flags()

            if self.anomalies is None:
                logger.debug("Skipping anomaly update - no anomaly data available")
                return

            logger.debug("Updating anomaly metrics")
            self._process_ospf_sources()

            for source, attr, counter_name in _ROUTING_SOURCES:
                detection = getattr(self.anomalies, attr)
                if detection is None:
                    continue
                over, under, dup = _entries(detection)
                self.alert_counters[counter_name].set(len(over) + len(under) + len(dup))
                self._set_flags(source, detection)
                self._set_details(source, over, under, dup)

    def _process_ospf_sources(self):
        total_over = total_under = total_dup = total_misconfig = 0
        for source, attr in _OSPF_SOURCES:
            detection = getattr(self.anomalies, attr)
            if detection is None:
                logger.debug("Skipping missing detection for source %s", source)
                continue
            self._set_flags(source, detection)
            over, under, dup = _entries(detection)
            logger.debug("Counted anomalies for %s (over=%d, under=%d, dup=%d)",
                         source, len(over), len(under), len(dup))
            total_over += len(over)
            total_under += len(under)
            total_dup += len(dup)
            self._set_details(source, over, under, dup)
            if detection.has_misconfigured_prefixes:
                total_misconfig += 1

        self.alert_counters["frr_mad_ospf_overadvertised_routes_total"].set(total_over)
        self.alert_counters["frr_mad_ospf_unadvertised_routes_total"].set(total_under)
        self.alert_counters["frr_mad_ospf_duplicate_routes_total"].set(total_dup)
        self.alert_counters["frr_mad_ospf_misconfigured_routes_total"].set(total_misconfig)

    def _set_anomaly_detail(self, anomaly_type, source, ad):
        if ad is None:
            logger.warning("Attempted to set anomaly detail without advertisement "
                           "(anomaly_type=%s, source=%s)", anomaly_type, source)
            return
        labels = {
            "anomaly_type": anomaly_type,
            "source": source,
            "interface_address": ad.interface_address,
            "link_state_id": ad.link_state_id,
            "prefix_length": ad.prefix_length,
            "link_type": ad.link_type,
            "p_bit": "true" if ad.p_bit else "false",
            "options": ad.options,
        }
        key = f"{anomaly_type}:{source}:{ad.interface_address}:{ad.link_state_id}"
        self._known_label_sets[key] = labels
        self.anomaly_details.with_labels(labels).set(1)
        logger.debug("Set anomaly detail metric %s", key)