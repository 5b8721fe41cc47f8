# frrmad

Monitoring and anomaly detection for OSPF on FRRouting routers.

`frrmad` compares what a router *should* advertise, derived from its static
FRR configuration, with what it *actually* holds in its OSPF link-state
database and routing table. The differences are reported as anomalies:

- **over-advertised** entries: present at runtime but not expected;
- **unadvertised** entries: expected but missing at runtime;
- **duplicate** entries: NSSA-LSAs advertised more than once in an area;
- LSDB prefixes that have no entry in the forwarding table.

The results can be published as gauges over HTTP in the Prometheus text
format, and queried by local clients through a Unix socket.

## Modules

| Module | Purpose |
| --- | --- |
| `frrmad.models` | Dataclasses for router data (`FullFRRData`, `StaticFRRConfiguration`, the OSPF LSDB types, `RoutingInformationBase`) and for analysis results (`AnomalyAnalysis`, `AnomalyDetection`, `Advertisement`, `ParsedAnalyzerData`). `to_plain()` turns any of them into plain dicts and lists. |
| `frrmad.config` | `load_config()` and `load_yaml_config()` read the YAML daemon configuration into a `Config`; problems raise `ConfigError`. |
| `frrmad.config_parsing` | Extracts access lists, static routes and point-to-point peer addresses from the static configuration. |
| `frrmad.expected_lsdb` | Predicts the router-LSAs, AS-external-LSAs and NSSA-LSAs the router should originate. |
| `frrmad.runtime_lsdb` | Converts the runtime LSDB into the same form and builds the FIB view (`get_fib()`). |
| `frrmad.anomalies` | `analyze_router_lsdb()`, `analyze_external_lsdb()`, `analyze_nssa_external()` and `analyze_fib()` do the comparisons. |
| `frrmad.analyzer` | `Analyzer` runs a full analysis cycle once (`anomaly_analysis()`) or every few seconds in a background thread (`start()` / `stop()`). |
| `frrmad.registry` | A small gauge registry: `Gauge`, `GaugeVec`, `Registry` (`gather()`, `render()`); registering a name twice raises `DuplicateMetricError`. |
| `frrmad.anomaly_exporter` | `AnomalyExporter` mirrors an `AnomalyAnalysis` into flag, detail and counter gauges. |
| `frrmad.metric_exporter` | `MetricExporter` mirrors the collected OSPF, interface and route data into the gauges enabled in the configuration. |
| `frrmad.exporter` | `Exporter` serves the gauges on `/metrics` and refreshes them on a timer. |
| `frrmad.socket_server` | `AnalyzerSocket` answers requests on a Unix socket. |

## Running an analysis

`Analyzer` needs at least the static configuration; every runtime table that is
left as `None` is simply skipped.

```python
from frrmad.analyzer import Analyzer
from frrmad.models import FullFRRData, OspfConfig, StaticFRRConfiguration

data = FullFRRData(
    static_frr_configuration=StaticFRRConfiguration(
        hostname="r1",
        ospf_config=OspfConfig(router_id="1.1.1.1"),
    ),
)
analyzer = Analyzer(data)
result = analyzer.anomaly_analysis()     # an AnomalyAnalysis
print(result.router_anomaly.missing_entries)
```

`analysis_result`, `parsed_analyzer_data` and `p2p_map` are updated in place,
so other components can hold on to them. `analyzer.start(5.0)` repeats the
analysis every five seconds until `analyzer.stop()` is called.

## Exporting gauges

```python
from frrmad.config import load_config
from frrmad.exporter import Exporter

config = load_config("/etc/frr-mad/main.yaml")
exporter = Exporter(config.exporter, 5.0, data, analyzer.analysis_result)
exporter.start()       # HTTP on the configured port, refreshed every 5 s
...
exporter.stop()
```

`/metrics` returns the gauges in the Prometheus text format and `/` a small
index page. Gauges can also be read directly:

```python
from frrmad.registry import Registry
from frrmad.anomaly_exporter import AnomalyExporter

registry = Registry()
AnomalyExporter(analyzer.analysis_result, registry).update()
print(registry.render())
```

The anomaly gauges are `frr_mad_anomaly_flags` (per source and flag type),
`frr_mad_anomaly_details` (one series per anomalous entry) and the totals
`frr_mad_ospf_overadvertised_routes_total`,
`frr_mad_ospf_unadvertised_routes_total`, `frr_mad_ospf_duplicate_routes_total`,
`frr_mad_ospf_misconfigured_routes_total`, `frr_mad_rib_to_fib_anomalies_total`
and `frr_mad_lsdb_to_rib_anomalies_total`.

## The socket

```python
from frrmad.socket_server import AnalyzerSocket

server = AnalyzerSocket(config.socket, data, analyzer.analysis_result,
                        analyzer.parsed_analyzer_data)
server.start()         # blocks until close() or an "exit" request
```

Each connection carries one request and one reply. A frame is a 4-byte
little-endian length followed by a JSON document (`encode_frame()`,
`read_frame()`). Requests look like `{"service": "ospf", "command": "router"}`;
replies have `status`, `message`, `kind` and `data`. The services are `frr`
(`routerData`, `rib`, `ribfibSummary`), `ospf` (`database`, `generalInfo`,
`router`, `network`, `networkAll`, `summary`, `asbrSummary`, `externalData`,
`nssaExternalData`, `duplicates`, `neighbors`, `interfaces`, `staticConfig`,
`peerMap`), `analysis` (`router`, `external`, `nssaExternal`, `lsdbToRib`,
`ribToFib`, `shouldParsedLsdb`) and `system` (`allResources`, and `exit`,
which closes the server shortly after replying). Unknown services or commands
get a reply with status `error`.

## Configuration

`load_config(path)` checks that the file exists and then reads the file of the
same name with a `.yaml` extension. The environment variable
`FRR_MAD_CONFFILE` takes precedence over the argument, which takes precedence
over `/etc/frr-mad/main.yaml`.

The YAML file has four sections, with keys matched without regard to case:

- `default`: `tempfiles`, `logpath`, `debuglevel`;
- `socket`: `unixsocketlocation`, `unixsocketname`, `sockettype`;
- `aggregator`: `frrconfigpath`, `pollinterval`, `socketpath`;
- `exporter`: `Port` (0 means 9091; values outside 1–65535 are logged and
  replaced by 9091) and one switch per metric group: `OSPFRouterData`,
  `OSPFNetworkData`, `OSPFSummaryData`, `OSPFAsbrSummaryData`,
  `OSPFExternalData`, `OSPFNssaExternalData`, `OSPFDatabase`, `OSPFNeighbors`,
  `InterfaceList`, `RouteList`. Groups that are switched off are not
  registered at all.

## What the package does not do

- It does not read data from a running FRR router. `FullFRRData` has to be
  filled in by the caller.
- It has no command-line program and no interactive interface; the pieces
  above are started from Python.
- It does not use the `aggregator` and `default` configuration sections beyond
  loading them; logging goes through the standard `logging` module.