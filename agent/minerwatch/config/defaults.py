from pathlib import Path

DEFAULT_CONFIG_PATH = Path("/etc/minerwatch/config.yml")
DEFAULT_SOCKET_PATH = Path("/var/run/minerwatch/minerwatch.sock")

DEFAULT_PUSHGATEWAY_URL = "http://localhost:9091"
DEFAULT_JOB_NAME = "log_monitor"
DEFAULT_INSTANCE_NAME = "instance1"

# Sources reachable through the dedicated --<name>-log flags.
KNOWN_SOURCES = {
    "oula": {
        "family": "keyword-column",
        "metric": "oula_total",
        "help": "Total value from oula log",
        "version": "v1",
    },
    "oula_new": {
        "family": "keyword-column",
        "metric": "oula_total",
        "help": "Total value from new version oula log",
        "version": "v2",
    },
    "zkwork": {
        "family": "gpu-rate",
        "metric": "zkwork_gpu",
        "help": "GPU value from zkwork log",
    },
    "cysic": {
        "family": "proof-rate",
        "metric": "cysic_proof_rate",
        "help": "1min-proof-rate from cysic log",
    },
}

AGENT_VERSION = "0.1.0"
