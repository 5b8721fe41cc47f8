import threading

from frrmad.anomaly_exporter import AnomalyExporter
from frrmad.models import Advertisement, AnomalyAnalysis, AnomalyDetection
from frrmad.registry import Registry

COUNTER_NAMES = [
    "frr_mad_ospf_overadvertised_routes_total",
    "frr_mad_ospf_unadvertised_routes_total",
    "frr_mad_ospf_duplicate_routes_total",
    "frr_mad_ospf_misconfigured_routes_total",
    "frr_mad_rib_to_fib_anomalies_total",
    "frr_mad_lsdb_to_rib_anomalies_total",
]


def metric_family(families, name):
    for family in families:
        if family.name == name:
            return family
    return None


def metric_value(families, name):
    family = metric_family(families, name)
    if family is None:
        return -1.0
    return family.samples[0].value if family.samples else 0.0


def metric_value_with_labels(families, name, labels):
    family = metric_family(families, name)
    if family is None:
        return -1.0
    for sample in family.samples:
        if all(sample.labels[key] == value
               for key, value in labels.items() if key in sample.labels):
            return sample.value
    return -1.0


def metric_values(families):
    result = {}
    for family in families:
        for sample in family.samples:
            label_text = ",".join(f"{k}={v}" for k, v in sample.labels.items())
            result[f"{family.name}{{{label_text}}}"] = sample.value
    return result


def test_no_anomalies():
    registry = Registry()
    exporter = AnomalyExporter(AnomalyAnalysis(), registry)
    exporter.update()
    families = registry.gather()

    for name in COUNTER_NAMES:
        assert metric_value(families, name) == 0.0, name

    flags = metric_family(families, "frr_mad_anomaly_flags")
    assert flags is not None
    assert all(sample.value == 0.0 for sample in flags.samples)


def test_with_anomalies():
    registry = Registry()
    anomalies = AnomalyAnalysis(router_anomaly=AnomalyDetection(
        has_over_advertised_prefixes=True,
        has_un_advertised_prefixes=True,
        has_duplicate_prefixes=True,
        has_misconfigured_prefixes=True,
        superfluous_entries=[Advertisement(interface_address="10.0.0.1"),
                             Advertisement(interface_address="192.168.1.1")],
        missing_entries=[Advertisement(interface_address="10.1.0.1")],
        duplicate_entries=[Advertisement(interface_address="172.16.0.1")],
    ))
    exporter = AnomalyExporter(anomalies, registry)
    exporter.update()
    families = registry.gather()

    assert metric_value(families, "frr_mad_ospf_overadvertised_routes_total") == 2.0
    assert metric_value(families, "frr_mad_ospf_unadvertised_routes_total") == 1.0
    assert metric_value(families, "frr_mad_ospf_duplicate_routes_total") == 1.0
    assert metric_value(families, "frr_mad_ospf_misconfigured_routes_total") == 1.0

    for flag in ("overadvertised", "unadvertised", "duplicate", "misconfigured"):
        assert metric_value_with_labels(
            families, "frr_mad_anomaly_flags",
            {"source": "RouterAnomaly", "flag_type": flag}) == 1.0

    details = metric_family(families, "frr_mad_anomaly_details")
    assert details is not None
    assert len(details.samples) > 0


def test_concurrent_updates():
    registry = Registry()
    anomalies = AnomalyAnalysis(router_anomaly=AnomalyDetection(
        has_over_advertised_prefixes=True,
        superfluous_entries=[Advertisement(interface_address="10.0.0.1")],
    ))
    exporter = AnomalyExporter(anomalies, registry)

    threads = [threading.Thread(target=exporter.update) for _ in range(10)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    families = registry.gather()
    assert metric_value(families, "frr_mad_ospf_overadvertised_routes_total") == 1.0


def test_nil_anomalies_does_nothing():
    registry = Registry()
    exporter = AnomalyExporter(None, registry)
    exporter.update()
    before = metric_values(registry.gather())
    exporter.update()
    after = metric_values(registry.gather())

    assert before
    for name, value in before.items():
        assert name in after
        assert after[name] == value
    assert all(value == 0.0 for value in after.values())


def test_toggle_anomalies():
    registry = Registry()
    anomalies = AnomalyAnalysis(router_anomaly=AnomalyDetection(
        has_over_advertised_prefixes=True,
        superfluous_entries=[Advertisement(interface_address="10.0.0.1")],
    ))
    exporter = AnomalyExporter(anomalies, registry)
    exporter.update()

    families = registry.gather()
    assert metric_value(families, "frr_mad_ospf_overadvertised_routes_total") == 1.0
    assert metric_value_with_labels(
        families, "frr_mad_anomaly_flags",
        {"source": "RouterAnomaly", "flag_type": "overadvertised"}) == 1.0

    anomalies.router_anomaly.has_over_advertised_prefixes = False
    anomalies.router_anomaly.superfluous_entries = None
    exporter.update()

    families = registry.gather()
    assert metric_value(families, "frr_mad_ospf_overadvertised_routes_total") == 0.0
    assert metric_value_with_labels(
        families, "frr_mad_anomaly_flags",
        {"source": "RouterAnomaly", "flag_type": "overadvertised"}) == 0.0
    assert metric_value_with_labels(
        families, "frr_mad_anomaly_details",
        {"anomaly_type": "overadvertised", "source": "RouterAnomaly",
         "interface_address": "10.0.0.1"}) == 0.0


def test_no_anomalies_existence():
    registry = Registry()
    exporter = AnomalyExporter(AnomalyAnalysis(), registry)
    exporter.update()
    families = registry.gather()

    required = ["frr_mad_anomaly_details", "frr_mad_anomaly_flags"] + COUNTER_NAMES
    for name in required:
        family = metric_family(families, name)
        assert family is not None, name
        assert family.type == "gauge"

    flags = metric_family(families, "frr_mad_anomaly_flags")
    assert len(flags.samples) == 20
    assert all(sample.value == 0.0 for sample in flags.samples)


def test_mixed_anomalies():
    registry = Registry()
    anomalies = AnomalyAnalysis(
        router_anomaly=AnomalyDetection(
            has_over_advertised_prefixes=True,
            superfluous_entries=[Advertisement(interface_address="10.0.0.1")],
        ),
        lsdb_to_rib_anomaly=AnomalyDetection(
            has_un_advertised_prefixes=True,
            missing_entries=[Advertisement(interface_address="192.168.1.1")],
        ),
    )
    exporter = AnomalyExporter(anomalies, registry)
    exporter.update()
    families = registry.gather()

    assert metric_value(families, "frr_mad_ospf_overadvertised_routes_total") == 1.0
    assert metric_value_with_labels(
        families, "frr_mad_anomaly_flags",
        {"source": "RouterAnomaly", "flag_type": "overadvertised"}) == 1.0

    assert metric_value(families, "frr_mad_lsdb_to_rib_anomalies_total") == 1.0
    assert metric_value_with_labels(
        families, "frr_mad_anomaly_flags",
        {"source": "LsdbToRib", "flag_type": "unadvertised"}) == 1.0

    assert metric_value_with_labels(
        families, "frr_mad_anomaly_details",
        {"anomaly_type": "overadvertised", "source": "RouterAnomaly",
         "interface_address": "10.0.0.1"}) == 1.0
    assert metric_value_with_labels(
        families, "frr_mad_anomaly_details",
        {"anomaly_type": "unadvertised", "source": "LsdbToRib",
         "interface_address": "192.168.1.1"}) == 1.0


def test_detail_without_advertisement_is_skipped():
    registry = Registry()
    anomalies = AnomalyAnalysis(router_anomaly=AnomalyDetection(
        missing_entries=[None, Advertisement(interface_address="10.1.0.1")],
    ))
    exporter = AnomalyExporter(anomalies, registry)
    exporter.update()
    families = registry.gather()
    assert metric_value(families, "frr_mad_ospf_unadvertised_routes_total") == 2.0
    details = metric_family(families, "frr_mad_anomaly_details")
    unadvertised = [s for s in details.samples if s.labels["anomaly_type"] == "unadvertised"]
    assert [s.labels["interface_address"] for s in unadvertised] == ["10.1.0.1"]