"""
Default values for the emitter loop, exporters and log sink.

Every value here can be overridden from the YAML config file, from environment
variables (see config.py) or from CLI flags.
"""

DEFAULT_SERVICE_NAME = "heartbeat"
DEFAULT_SERVICE_VERSION = "1.0.0"

# Fixed set of endpoint labels the loop draws from.
DEFAULT_ENDPOINTS = ("/foo", "/bar", "/baz")

# Seconds. The root span sleeps REQUEST_DELAY, each child WORK_DELAY, the loop INTERVAL.
DEFAULT_REQUEST_DELAY = 1.0
DEFAULT_WORK_DELAY = 2.0
DEFAULT_INTERVAL = 2.0

DEFAULT_TEMPERATURE_RANGE = (20.0, 30.0)
DEFAULT_LATENCY_RANGE = (0.0, 1.0)

DEFAULT_METRIC_NAMESPACE = "test"
DEFAULT_METRICS_HOST = "0.0.0.0"
DEFAULT_METRICS_PORT = 8080

# Grafana Agent / Tempo OTLP gRPC receiver.
DEFAULT_OTLP_ENDPOINT = "localhost:4317"
DEFAULT_OTLP_PROTOCOL = "grpc"
DEFAULT_CONNECT_TIMEOUT = 10.0

DEFAULT_LOG_FILE = "log/app.log"
DEFAULT_LOG_MAX_MB = 100
DEFAULT_LOG_BACKUPS = 7
DEFAULT_LOG_MAX_AGE_DAYS = 30
