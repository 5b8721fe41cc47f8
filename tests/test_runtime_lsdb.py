import pytest

from frrmad.models import (
    AreaAnalyzer,
    Advertisement,
    ExternalLsa,
    IntraAreaLsa,
    NetAreaState,
    NetworkLsa,
    Nexthop,
    NssaExternalArea,
    NssaExternalLsa,
    OSPFExternalData,
    OSPFNetworkData,
    OSPFNssaExternalData,
    OSPFRouterData,
    OSPFSummaryData,
    Route,
    RouteEntry,
    RouterArea,
    RouterLink,
    RouterLsa,
    RoutingInformationBase,
    StaticList,
    SummaryAreaState,
    SummaryLsa,
)
from frrmad.runtime_lsdb import (
    INVALID_ADDRESS,
    count_total_links,
    get_fib,
    get_network_address,
    get_nssa_external_data,
    get_runtime_external_data,
    get_runtime_external_data_self,
    get_runtime_network_data,
    get_runtime_nssa_external_data,
    get_runtime_router_data,
    get_runtime_router_data_self,
    get_runtime_summary_data,
    mask_to_prefix_length,
)


def _router_data():
    links = {
        "stub": RouterLink(link_type="Stub Network", network_address="10.0.1.0",
                           network_mask="255.255.255.255"),
        "transit": RouterLink(link_type="a Transit Network",
                              router_interface_address="10.0.2.1"),
        "p2p": RouterLink(link_type="another Router (point-to-point)",
                          router_interface_address="0.0.0.3",
                          neighbor_router_id="9.9.9.9"),
        "empty": RouterLink(link_type="virtual"),
    }
    lsa = RouterLsa(lsa_type="router-LSA", options="*|-|-|-|-|-|E|-", router_links=links)
    return OSPFRouterData(router_id="1.1.1.1",
                          router_states={"0.0.0.0": RouterArea(lsa_entries={"1.1.1.1": lsa})})


@pytest.mark.parametrize("mask,expected", [
    ("255.255.255.255", "32"),
    ("0.0.0.0", "0"),
    ("255.0.255.0", "0"),
    ("not-a-mask", "32"),
    ("255.255.x.0", "32"),
])
def test_mask_to_prefix_length(mask, expected):
    assert mask_to_prefix_length(mask) == expected


def test_mask_to_prefix_length_worked_example():
    assert mask_to_prefix_length("255.255.255.0") == "24"


def test_get_network_address_masks_host_bits():
    assert get_network_address("10.1.2.3", 24) == "10.1.2.0"


def test_get_network_address_invariants():
    assert get_network_address("192.168.7.9", 32) == "192.168.7.9"
    assert get_network_address("192.168.7.9", 0) == "0.0.0.0"
    once = get_network_address("172.16.33.44", 20)
    assert get_network_address(once, 20) == once


@pytest.mark.parametrize("prefix,length", [("garbage", 24), ("10.0.0.1", 33), ("10.0.0.1", -1)])
def test_get_network_address_invalid(prefix, length):
    assert get_network_address(prefix, length) == INVALID_ADDRESS


def test_router_data_self_parses_links_and_peers():
    data = _router_data()
    result, p2p = get_runtime_router_data_self(data, "r1", {"9.9.9.9": "192.0.2.1"})

    assert result.hostname == "r1"
    assert result.router_id == "1.1.1.1"
    assert [a.area_name for a in result.areas] == ["0.0.0.0"]
    links = result.areas[0].links
    assert [(l.link_type, l.interface_address) for l in links] == [
        ("stub network", "10.0.1.0"),
        ("transit network", "10.0.2.1"),
        ("point-to-point", "192.0.2.1"),
    ]
    assert links[0].prefix_length == "32"
    assert links[1].prefix_length == ""
    assert p2p.peer_interface_to_address == {"0.0.0.3": "192.0.2.1"}

    source_links = data.router_states["0.0.0.0"].lsa_entries["1.1.1.1"].router_links
    assert source_links["stub"].link_type == "stub network"
    assert source_links["p2p"].p2p_interface_address == "192.0.2.1"
    assert count_total_links(result) == 3


def test_router_data_self_unknown_peer_keeps_address():
    result, p2p = get_runtime_router_data_self(_router_data(), "r1", {})
    p2p_links = [l for l in result.areas[0].links if l.link_type == "point-to-point"]
    assert p2p_links[0].interface_address == "0.0.0.3"
    assert p2p.peer_interface_to_address == {}


def test_router_data_flat():
    data = OSPFRouterData(router_id="1.1.1.1", router_states={"0.0.0.0": RouterArea(lsa_entries={
        "1.1.1.1": RouterLsa(options="opts", router_links={
            "a": RouterLink(link_type="Stub Network", network_address="10.9.0.0",
                            network_mask="255.255.0.0"),
            "b": RouterLink(link_type="Transit Network", router_interface_address="10.8.0.1"),
        }),
    })})
    result = get_runtime_router_data(data, "r1")
    area = result.areas[0]
    assert area.lsa_type == "router-LSA"
    assert [(l.interface_address, l.prefix_length, l.options) for l in area.links] == [
        ("10.9.0.0", "255.255.0.0", "opts"),
        ("10.8.0.1", "", "opts"),
    ]
    assert get_runtime_router_data(None, "r1") is None


def test_network_and_summary_data():
    net = OSPFNetworkData(router_id="2.2.2.2", net_states={"0.0.0.0": NetAreaState(
        lsa_entries={"10.1.2.0": NetworkLsa(link_state_id="10.1.2.0", network_mask=24,
                                            options="o")})})
    result = get_runtime_network_data(net, "r2")
    assert result.areas[0].lsa_type == "network-LSA"
    link = result.areas[0].links[0]
    assert (link.link_state_id, link.prefix_length, link.options) == ("10.1.2.0/24", "24", "o")

    summ = OSPFSummaryData(router_id="2.2.2.2", summary_states={"0.0.0.1": SummaryAreaState(
        lsa_entries={"10.5.0.0": SummaryLsa(link_state_id="10.5.0.0", network_mask=16)})})
    result = get_runtime_summary_data(summ, "r2")
    assert result.areas[0].lsa_type == "summary-LSA"
    assert result.areas[0].links[0].link_state_id == "10.5.0.0/16"
    assert get_runtime_network_data(None, "r2") is None
    assert get_runtime_summary_data(None, "r2") is None


def test_external_data_self_filters_by_static_routes():
    ext = OSPFExternalData(router_id="3.3.3.3", as_external_link_states={
        "192.168.50.0": ExternalLsa(link_state_id="192.168.50.0", network_mask=24, options="x"),
        "192.168.60.0": ExternalLsa(link_state_id="192.168.60.0", network_mask=24),
    })
    static = {"192.168.50.0": StaticList(ip_address="192.168.50.0", prefix_length=24)}
    result = get_runtime_external_data_self(ext, static, "r3")
    area = result.areas[0]
    assert area.lsa_type == "AS-external-LSA"
    assert [(l.link_state_id, l.prefix_length, l.link_type, l.options) for l in area.links] == [
        ("192.168.50.0", "24", "external", "x"),
    ]
    assert get_runtime_external_data_self(ext, None, "r3").areas[0].links == []
    assert get_runtime_external_data_self(None, static, "r3") is None


def test_external_data_all():
    ext = OSPFExternalData(router_id="3.3.3.3", as_external_link_states={
        "192.168.50.0": ExternalLsa(link_state_id="192.168.50.0", network_mask=24),
    })
    result = get_runtime_external_data(ext, "r3")
    assert result.areas[0].links[0].link_state_id == "192.168.50.0/24"
    assert result.areas[0].links[0].link_type == "external"
    assert get_runtime_external_data(None, "r3") is None


def test_nssa_external_data_self():
    nssa = OSPFNssaExternalData(router_id="4.4.4.4", nssa_external_link_states={
        "0.0.0.1": NssaExternalArea(data={
            "172.20.0.0": NssaExternalLsa(link_state_id="172.20.0.0", network_mask=16,
                                          options="*|-|-|-|P|-"),
            "172.21.0.0": NssaExternalLsa(link_state_id="172.21.0.0", network_mask=16),
        }),
        "0.0.0.2": NssaExternalArea(),
    })
    static = {"172.20.0.0": StaticList(ip_address="172.20.0.0", prefix_length=16)}
    result = get_nssa_external_data(nssa, static, "r4")
    assert [a.area_name for a in result.areas] == ["0.0.0.1", "0.0.0.2"]
    assert all(a.lsa_type == "NSSA-LSA" for a in result.areas)
    links = result.areas[0].links
    assert [(l.link_state_id, l.prefix_length, l.link_type) for l in links] == [
        ("172.20.0.0", "16", "nssa-external"),
    ]
    assert count_total_links(result) == 1
    assert get_nssa_external_data(None, static, "r4") is None


def test_nssa_external_data_all():
    nssa = OSPFNssaExternalData(router_id="4.4.4.4", nssa_external_link_states={
        "0.0.0.1": NssaExternalArea(data={
            "172.20.0.0": NssaExternalLsa(link_state_id="172.20.0.0", network_mask=16),
        }),
        "0.0.0.2": NssaExternalArea(data={
            "172.22.0.0": NssaExternalLsa(link_state_id="172.22.0.0", network_mask=16),
        }),
    })
    result = get_runtime_nssa_external_data(nssa, "r4")
    assert len(result.areas) == 1
    assert [l.link_state_id for l in result.areas[0].links] == ["172.20.0.0/16", "172.22.0.0/16"]
    assert get_runtime_nssa_external_data(None, "r4") is None


def test_get_fib():
    rib = RoutingInformationBase(routes={
        "10.0.0.0/24": RouteEntry(routes=[Route(prefix="10.0.0.0", prefix_len=24,
                                                protocol="ospf",
                                                nexthops=[Nexthop(ip="10.0.0.254", fib=True)])]),
        "10.9.0.0/24": RouteEntry(routes=[Route(prefix="10.9.0.0", prefix_len=24,
                                                protocol="ospf",
                                                nexthops=[Nexthop(ip="10.9.0.254")])]),
    })
    fib = get_fib(rib)
    assert list(fib) == ["10.0.0.0/24"]
    entry = fib["10.0.0.0/24"]
    assert (entry.prefix, entry.prefix_length, entry.next_hop_address, entry.protocol) == (
        "10.0.0.0", "24", "10.0.0.254", "ospf")
    assert get_fib(None) is None


def test_count_total_links():
    lsa = IntraAreaLsa(areas=[
        AreaAnalyzer(links=[Advertisement(), Advertisement()]),
        AreaAnalyzer(links=[Advertisement()]),
        AreaAnalyzer(),
    ])
    assert count_total_links(lsa) == 3
    assert count_total_links(IntraAreaLsa()) == 0