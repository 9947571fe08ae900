"""
Prometheus metrics for the HomeDash sidecar.

These are exposed on ``/metrics`` when HOMEDASH_METRICS_PORT is set. They
observe the poll loop only; no control flow depends on them.
"""

from prometheus_client import Counter, Gauge


# Poll cycles started
cycles_total = Counter(
    'homedash_sidecar_cycles_total',
    'Total number of poll cycles run'
)

cycle_duration_seconds = Gauge(
    'homedash_sidecar_cycle_duration_seconds',
    'Time taken by the last poll cycle'
)

last_cycle_timestamp = Gauge(
    'homedash_sidecar_last_cycle_timestamp_seconds',
    'Unix time the last poll cycle finished'
)

# Applications found in the last enumeration pass
applications_discovered = Gauge(
    'homedash_sidecar_applications_discovered',
    'Number of applications found in the last enumeration pass'
)

enumeration_errors_total = Counter(
    'homedash_sidecar_enumeration_errors_total',
    'Total number of failed container enumerations'
)

service_lookups_total = Counter(
    'homedash_sidecar_service_lookups_total',
    'Total number of swarm service lookups',
    ['outcome']
)

# outcome is one of: success, http_error, transport_error, serialization_error
reports_total = Counter(
    'homedash_sidecar_reports_total',
    'Total number of reports sent to the server',
    ['outcome']
)
