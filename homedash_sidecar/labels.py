"""
Label resolution for discovered workloads.

A workload's application metadata lives in labels carrying a configurable
prefix (``homedash.`` by default). When the workload is a replica of a
swarm service, the service's own labels are merged over the container's so
an operator can override a value once for every replica.
"""

import logging
from typing import Callable, Dict, Mapping, MutableMapping, Optional

from homedash_sidecar import metrics
from homedash_sidecar.models import ApplicationRecord

logger = logging.getLogger(__name__)

# Set by Docker on every container created for a swarm service
SWARM_SERVICE_ID_LABEL = 'com.docker.swarm.service.id'

APPLICATION_FIELDS = ('url', 'icon', 'comment')

ServiceLookup = Callable[[str], Mapping[str, str]]


def filter_prefixed(labels: Optional[Mapping[str, str]], prefix: str) -> Dict[str, str]:
    """
    Keep labels whose key starts with prefix, keyed without it.

    The match is a literal, case-sensitive string prefix.
    """
    if not labels:
        return {}
    return {
        key[len(prefix):]: value
        for key, value in labels.items()
        if key.startswith(prefix)
    }


def get_service_labels(
    service_id: str,
    service_lookup: ServiceLookup,
    service_cache: MutableMapping[str, Mapping[str, str]],
    log: logging.Logger = logger
) -> Mapping[str, str]:
    """
    Return a service's labels, looking it up at most once per cache.

    A failed lookup is logged and cached as an empty mapping, so the
    service is not retried until the next cache.
    """
    if service_id in service_cache:
        return service_cache[service_id]

    try:
        labels = dict(service_lookup(service_id) or {})
        metrics.service_lookups_total.labels(outcome='success').inc()
    except Exception as e:
        log.warning(f"Failed to look up service {service_id}, using container labels only: {e}")
        metrics.service_lookups_total.labels(outcome='error').inc()
        labels = {}

    service_cache[service_id] = labels
    return labels


def resolve_application(
    workload_labels: Optional[Mapping[str, str]],
    prefix: str,
    service_lookup: ServiceLookup,
    service_cache: MutableMapping[str, Mapping[str, str]],
    log: logging.Logger = logger
) -> Optional[ApplicationRecord]:
    """
    Build the application record for one workload.

    Args:
        workload_labels: The container's labels
        prefix: Label prefix including its trailing separator
        service_lookup: Callable returning a swarm service's labels by id
        service_cache: Per-cycle cache of service labels, keyed by id
        log: Logger for lookup failures

    Returns:
        ApplicationRecord, or None when no ``name`` attribute resolves
    """
    attributes = filter_prefixed(workload_labels, prefix)

    service_id = (workload_labels or {}).get(SWARM_SERVICE_ID_LABEL)
    is_clustered = bool(service_id)
    if is_clustered:
        service_labels = get_service_labels(service_id, service_lookup, service_cache, log)
        # Service labels win over container labels
        attributes.update(filter_prefixed(service_labels, prefix))

    name = attributes.get('name')
    if not name:
        return None

    return ApplicationRecord(
        name=name,
        is_clustered=is_clustered,
        **{field: attributes.get(field) or '' for field in APPLICATION_FIELDS}
    )
