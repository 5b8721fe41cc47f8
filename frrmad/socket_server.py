"""Unix-socket server answering requests about collected data and anomalies.

Frames are a 4-byte little-endian length followed by a JSON document.
"""

import contextlib
import json
import logging
import os
import socket
import struct
import threading

from .models import Message, Response, to_plain

logger = logging.getLogger(__name__)

_LENGTH = struct.Struct("<I")
_ACCEPT_POLL_SECONDS = 0.2
_EXIT_DELAY_SECONDS = 0.1

# Serialises command execution across connections.
_exec_lock = threading.Lock()

# command -> (source object, attribute, response kind, message)
_FRR_COMMANDS = {
    "routerData": ("metrics", "frr_router_data", "frr_router_data",
                   "Returning FRR meta data of router itself"),
    "rib": ("metrics", "routing_information_base", "routing_information_base",
            "Returning all routes (RIB)"),
    "ribfibSummary": ("metrics", "rib_fib_summary_routes", "rib_fib_summary_routes",
                      "Returning route summaries of RIB and FIB"),
}

_OSPF_COMMANDS = {
    "database": ("metrics", "ospf_database", "ospf_database", "Returning OSPF database"),
    "generalInfo": ("metrics", "general_ospf_information", "general_ospf_information",
                    "Returning OSPF database"),
    "router": ("metrics", "ospf_router_data", "ospf_router_data",
               "Returning OSPF router data"),
    "network": ("metrics", "ospf_network_data", "ospf_network_data",
                "Returning OSPF network data self"),
    "networkAll": ("metrics", "ospf_network_data_all", "ospf_network_data",
                   "Returning OSPF network data"),
    "summary": ("metrics", "ospf_summary_data", "ospf_summary_data",
                "Returning OSPF summary data"),
    "asbrSummary": ("metrics", "ospf_asbr_summary_data", "ospf_asbr_summary_data",
                    "Returning OSPF ASBR summary data"),
    "externalData": ("metrics", "ospf_external_data", "ospf_external_data",
                     "Returning OSPF external data"),
    "nssaExternalData": ("metrics", "ospf_nssa_external_data", "ospf_nssa_external_data",
                         "Returning OSPF NSSA external data"),
    "duplicates": ("metrics", "ospf_external_all", "ospf_external_all",
                   "Returning OSPF duplicates"),
    "neighbors": ("metrics", "ospf_neighbors", "ospf_neighbors", "Returning OSPF neighbors"),
    "interfaces": ("metrics", "interfaces", "interfaces", "Returning interfaces"),
    "staticConfig": ("metrics", "static_frr_configuration", "static_frr_configuration",
                     "Returning static FRR configuration"),
    "peerMap": ("parsed", "p2p_map", "peer_interface_to_address",
                "Returning compounded P2P OSPF generated Interface Address to static "
                "Interface Address"),
}

_ANALYSIS_COMMANDS = {
    "router": ("anomalies", "router_anomaly", "anomaly",
               "Returning OSPF Router Anomaly Analysis"),
    "external": ("anomalies", "external_anomaly", "anomaly",
                 "Returning OSPF External Anomaly Analysis"),
    "nssaExternal": ("anomalies", "nssa_external_anomaly", "anomaly",
                     "Returning OSPF Nssa External Anomaly Analysis"),
    "lsdbToRib": ("anomalies", "lsdb_to_rib_anomaly", "anomaly",
                  "Returning LSDB to RIB Anomaly Analysis"),
    "ribToFib": ("anomalies", "rib_to_fib_anomaly", "anomaly",
                 "Returning RIB to FIB Anomaly Analysis"),
    "shouldParsedLsdb": ("parsed", None, "parsed_analyzer_data",
                         "Returning parsed should lsdb"),
}

_SYSTEM_COMMANDS = {
    "allResources": ("metrics", "system_metrics", "system_metrics",
                     "Returning system metrics including CPU and memory"),
}

_SERVICES = {
    "frr": _FRR_COMMANDS,
    "ospf": _OSPF_COMMANDS,
    "analysis": _ANALYSIS_COMMANDS,
}


def encode_frame(payload):
    """Prefix a payload with its 4-byte little-endian length."""
    return _LENGTH.pack(len(payload)) + payload


def _read_exact(stream, size):
    buffer = bytearray()
    while len(buffer) < size:
        chunk = stream.read(size - len(buffer))
        if not chunk:
            raise EOFError(f"stream ended after {len(buffer)} of {size} bytes")
        buffer += chunk
    return bytes(buffer)


def read_frame(stream):
    """Read one length-prefixed frame from a binary stream."""
    (size,) = _LENGTH.unpack(_read_exact(stream, _LENGTH.size))
    return _read_exact(stream, size)


def message_from_bytes(data):
    """Decode a request; raises ValueError when it is not a valid message."""
    document = json.loads(data.decode("utf-8"))
    if not isinstance(document, dict):
        raise ValueError("message must be a JSON object")
    service = document.get("service", "")
    command = document.get("command", "")
    if not isinstance(service, str) or not isinstance(command, str):
        raise ValueError("service and command must be strings")
    return Message(service=service, command=command)


def response_to_bytes(response):
    """Encode a response as compact JSON."""
    return json.dumps(to_plain(response), separators=(",", ":")).encode("utf-8")


class AnalyzerSocket:
    """Serves collected metrics, analysis results and control commands."""

    def __init__(self, config, metrics, anomalies, parsed_analyzer_data):
        self.socket_path = f"{config.unix_socket_location}/{config.unix_socket_name}"
        self.metrics = metrics
        self.anomalies = anomalies
        self.parsed_analyzer_data = parsed_analyzer_data
        self.running = True
        self._listener = None
        self._exit_timer = None

    def process_command(self, message):
        """Answer one request."""
        if message.service == "system":
            if message.command == "exit":
                self._schedule_exit()
                return Response(status="success", message="Shutting system down")
            entry = _SYSTEM_COMMANDS.get(message.command)
            if entry is None:
                return Response(status="error",
                                message="There was an error getting system resources")
            return self._respond(*entry)

        commands = _SERVICES.get(message.service)
        if commands is None:
            return Response(status="error", message=f"Unknown service: {message.service}")
        entry = commands.get(message.command)
        if entry is None:
            return Response(status="error", message=f"Unknown command: {message.command}")
        return self._respond(*entry)

    def _respond(self, source, attribute, kind, text):
        holder = {
            "metrics": self.metrics,
            "anomalies": self.anomalies,
            "parsed": self.parsed_analyzer_data,
        }[source]
        if attribute is None or holder is None:
            value = holder
        else:
            value = getattr(holder, attribute)
        return Response(status="success", message=text, kind=kind, data=value)

    def _schedule_exit(self):
        self._exit_timer = threading.Timer(_EXIT_DELAY_SECONDS, self._shutdown)
        self._exit_timer.daemon = True
        self._exit_timer.start()

    def _shutdown(self):
        logger.info("Shutting down socket server...")
        self.close()
        logger.info("Socket server shut down completed")

    def handle_connection(self, conn):
        """Read one request from a connection, answer it and close it."""
        with conn, conn.makefile("rb") as stream:
            try:
                payload = read_frame(stream)
            except (EOFError, OSError) as exc:
                logger.error("Error reading message: %s", exc)
                return
            try:
                message = message_from_bytes(payload)
            except ValueError as exc:
                logger.error("Error unmarshaling message: %s", exc)
                return

            with _exec_lock:
                response = self.process_command(message)
                try:
                    data = response_to_bytes(response)
                except (TypeError, ValueError) as exc:
                    logger.error("Error marshaling response: %s", exc)
                    return
                try:
                    conn.sendall(encode_frame(data))
                except OSError as exc:
                    logger.error("Error sending response: %s", exc)

    def start(self):
        """Listen on the Unix socket and serve clients until closed."""
        with contextlib.suppress(FileNotFoundError):
            os.remove(self.socket_path)

        self.running = True
        listener = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        try:
            listener.bind(self.socket_path)
            listener.listen()
        except OSError:
            listener.close()
            raise
        listener.settimeout(_ACCEPT_POLL_SECONDS)
        self._listener = listener
        logger.info("Listening on %s", self.socket_path)

        while self.running:
            try:
                conn, _addr = listener.accept()
            except TimeoutError:
                continue
            except OSError as exc:
                if not self.running:
                    logger.info("Socket server shutting down...")
                    break
                logger.error("Error accepting connection: %s", exc)
                continue
            conn.settimeout(None)
            logger.info("New client connected")
            self.handle_connection(conn)

    def close(self):
        """Stop serving and remove the socket file."""
        self.running = False
        listener, self._listener = self._listener, None
        if listener is not None:
            listener.close()
            with contextlib.suppress(FileNotFoundError):
                os.remove(self.socket_path)