import time

import pytest

from frrmad.analyzer import Analyzer, init_anomaly_detection
from frrmad.models import (
    AnomalyDetection,
    ExternalLsa,
    FullFRRData,
    GeneralOspfArea,
    GeneralOspfInformation,
    Interface,
    InterfaceIpPrefix,
    IpPrefix,
    NetAreaState,
    NetworkLsa,
    Nexthop,
    OSPFExternalData,
    OSPFNetworkData,
    OSPFNssaExternalData,
    OSPFRouterData,
    OspfArea,
    OspfConfig,
    Route,
    RouteEntry,
    RouterArea,
    RouterLink,
    RouterLsa,
    RoutingInformationBase,
    StaticFRRConfiguration,
    StaticRoute,
)


def stub_link(address):
    return RouterLink(link_type="Stub Network", network_address=address,
                      network_mask="255.255.255.0")


def base_metrics():
    static = StaticFRRConfiguration(
        hostname="r1",
        ospf_config=OspfConfig(router_id="1.1.1.1"),
        interfaces=[Interface(
            name="eth0",
            area="0.0.0.0",
            interface_ip_prefixes=[InterfaceIpPrefix(
                ip_prefix=IpPrefix("10.0.0.1", 24), passive=True, ospf=True,
            )],
        )],
        static_routes=[StaticRoute(ip_prefix=IpPrefix("172.16.0.0", 16),
                                   next_hop="10.0.0.254")],
    )
    router_data = OSPFRouterData(
        router_id="1.1.1.1",
        router_states={"0.0.0.0": RouterArea(lsa_entries={
            "1.1.1.1": RouterLsa(lsa_type="router-LSA",
                                 router_links={"10.0.0.0": stub_link("10.0.0.0")}),
        })},
    )
    external = OSPFExternalData(
        router_id="1.1.1.1",
        as_external_link_states={
            "172.16.0.0": ExternalLsa(link_state_id="172.16.0.0", network_mask=16),
        },
    )
    network_all = OSPFNetworkData(
        router_id="1.1.1.1",
        net_states={"0.0.0.0": NetAreaState(lsa_entries={
            "10.0.0.0": NetworkLsa(link_state_id="10.0.0.0", network_mask=24),
        })},
    )
    rib = RoutingInformationBase(routes={
        "10.0.0.0/24": RouteEntry(routes=[Route(
            prefix="10.0.0.0", prefix_len=24, protocol="ospf", installed=True,
            nexthops=[Nexthop(ip="10.0.0.254", fib=True)],
        )]),
    })
    return FullFRRData(
        static_frr_configuration=static,
        ospf_router_data=router_data,
        ospf_external_data=external,
        ospf_network_data_all=network_all,
        routing_information_base=rib,
        general_ospf_information=GeneralOspfInformation(
            areas={"0.0.0.0": GeneralOspfArea(backbone=True)}),
    )


def all_detections(analyzer):
    result = analyzer.analysis_result
    return [result.router_anomaly, result.external_anomaly, result.nssa_external_anomaly,
            result.rib_to_fib_anomaly, result.lsdb_to_rib_anomaly]


def test_init_anomaly_detection_is_empty():
    assert init_anomaly_detection() == AnomalyDetection()


def test_new_analyzer_has_empty_results():
    analyzer = Analyzer(base_metrics())
    assert all(d == AnomalyDetection() for d in all_detections(analyzer))
    assert analyzer.parsed_analyzer_data.should_router_lsdb.areas == []
    assert analyzer.p2p_map.peer_interface_to_address == {}


def test_consistent_state_has_no_anomalies():
    analyzer = Analyzer(base_metrics())
    analyzer.anomaly_analysis()
    for detection in all_detections(analyzer):
        assert detection.missing_entries == []
        assert detection.superfluous_entries == []
        assert detection.duplicate_entries == []


def test_superfluous_router_link_detected():
    metrics = base_metrics()
    links = metrics.ospf_router_data.router_states["0.0.0.0"].lsa_entries["1.1.1.1"].router_links
    links["192.168.5.0"] = stub_link("192.168.5.0")
    analyzer = Analyzer(metrics)
    analyzer.anomaly_analysis()
    router = analyzer.analysis_result.router_anomaly
    assert router.has_over_advertised_prefixes
    assert not router.has_un_advertised_prefixes
    assert [e.interface_address for e in router.superfluous_entries] == ["192.168.5.0"]
    assert router.superfluous_entries[0].link_type == "stub network"


def test_missing_router_link_detected():
    metrics = base_metrics()
    metrics.ospf_router_data.router_states = {}
    analyzer = Analyzer(metrics)
    analyzer.anomaly_analysis()
    router = analyzer.analysis_result.router_anomaly
    assert router.has_un_advertised_prefixes
    assert [e.interface_address for e in router.missing_entries] == ["10.0.0.0"]


def test_missing_external_route_detected():
    metrics = base_metrics()
    metrics.ospf_external_data.as_external_link_states = {}
    analyzer = Analyzer(metrics)
    analyzer.anomaly_analysis()
    external = analyzer.analysis_result.external_anomaly
    assert external.has_un_advertised_prefixes
    assert [e.link_state_id for e in external.missing_entries] == ["172.16.0.0"]
    assert external.superfluous_entries == []


def test_lsdb_prefix_missing_from_fib():
    metrics = base_metrics()
    metrics.routing_information_base.routes = {}
    analyzer = Analyzer(metrics)
    analyzer.anomaly_analysis()
    lsdb_to_rib = analyzer.analysis_result.lsdb_to_rib_anomaly
    assert lsdb_to_rib.has_un_advertised_prefixes
    assert [(e.link_state_id, e.prefix_length) for e in lsdb_to_rib.missing_entries] == [
        ("10.0.0.0", "24")
    ]


def test_nssa_analysis_runs_only_for_nssa_config():
    metrics = base_metrics()
    metrics.ospf_nssa_external_data = OSPFNssaExternalData(router_id="1.1.1.1")
    analyzer = Analyzer(metrics)
    analyzer.anomaly_analysis()
    assert analyzer.analysis_result.nssa_external_anomaly == AnomalyDetection()

    metrics.static_frr_configuration.ospf_config.area = [OspfArea(name="0.0.0.1", type="nssa")]
    analyzer.anomaly_analysis()
    nssa = analyzer.analysis_result.nssa_external_anomaly
    assert nssa.has_un_advertised_prefixes
    assert [(e.link_state_id, e.link_type) for e in nssa.missing_entries] == [
        ("172.16.0.0", "nssa-external")
    ]


def test_results_updated_in_place_and_cleared():
    metrics = base_metrics()
    links = metrics.ospf_router_data.router_states["0.0.0.0"].lsa_entries["1.1.1.1"].router_links
    links["192.168.5.0"] = stub_link("192.168.5.0")
    analyzer = Analyzer(metrics)
    router = analyzer.analysis_result.router_anomaly
    parsed = analyzer.parsed_analyzer_data
    analyzer.anomaly_analysis()
    assert router.has_over_advertised_prefixes

    del links["192.168.5.0"]
    analyzer.anomaly_analysis()
    assert analyzer.analysis_result.router_anomaly is router
    assert analyzer.parsed_analyzer_data is parsed
    assert not router.has_over_advertised_prefixes
    assert router.superfluous_entries == []


def test_parsed_data_holds_expected_state():
    analyzer = Analyzer(base_metrics())
    analyzer.anomaly_analysis()
    parsed = analyzer.parsed_analyzer_data
    assert parsed.should_router_lsdb.router_type == "internal router"
    assert parsed.should_router_lsdb.areas[0].links[0].link_type == "stub network"
    assert parsed.should_external_lsdb.areas[0].links[0].link_state_id == "172.16.0.0"


def test_missing_static_configuration_raises():
    metrics = base_metrics()
    metrics.static_frr_configuration = None
    with pytest.raises(ValueError):
        Analyzer(metrics).anomaly_analysis()


def test_start_rejects_non_positive_interval():
    with pytest.raises(ValueError):
        Analyzer(base_metrics()).start(0)


def test_start_runs_periodically_and_stops():
    metrics = base_metrics()
    metrics.ospf_router_data.router_states = {}
    analyzer = Analyzer(metrics)
    analyzer.start(0.01)
    try:
        with pytest.raises(RuntimeError):
            analyzer.start(0.01)
        deadline = time.monotonic() + 5
        while (not analyzer.analysis_result.router_anomaly.missing_entries
               and time.monotonic() < deadline):
            time.sleep(0.01)
    finally:
        analyzer.stop()
    assert analyzer.analysis_result.router_anomaly.has_un_advertised_prefixes