"""
Application enumeration.

Lists running workloads from the runtime and resolves each into an
application record. Failures here never propagate: a runtime that cannot
be listed yields an empty cycle.
"""

from typing import Dict, List, Mapping

import requests
from docker.errors import DockerException

from homedash_sidecar import metrics
from homedash_sidecar.config import SidecarContext
from homedash_sidecar.labels import resolve_application
from homedash_sidecar.models import ApplicationRecord


class ApplicationEnumerator:
    """Turns the runtime's running workloads into application records."""

    def __init__(self, runtime, context: SidecarContext):
        """
        Args:
            runtime: Object providing ``list_workloads(status)`` and
                ``get_service_labels(service_id)``, e.g. DockerRuntime
            context: Sidecar configuration and logger
        """
        self.runtime = runtime
        self.prefix = context.config.label_prefix
        self.logger = context.logger.getChild('enumerator')

    def list_applications(self, status: str = 'running') -> List[ApplicationRecord]:
        """
        Enumerate applications for one poll cycle.

        Args:
            status: Container status filter

        Returns:
            Application records in runtime order; empty if listing failed
        """
        try:
            workloads = self.runtime.list_workloads(status=status)
        except (DockerException, requests.RequestException) as e:
            self.logger.error(f"Failed to list containers: {e}")
            metrics.enumeration_errors_total.inc()
            return []

        # Lives for this pass only
        service_cache: Dict[str, Mapping[str, str]] = {}
        applications = []
        for workload in workloads:
            record = resolve_application(
                workload.labels,
                self.prefix,
                self.runtime.get_service_labels,
                service_cache,
                self.logger
            )
            if record is None:
                self.logger.debug(f"Container {workload.name} has no {self.prefix}name label, skipping")
                continue
            applications.append(record)

        self.logger.info(f"Discovered {len(applications)} applications in {len(workloads)} containers")
        metrics.applications_discovered.set(len(applications))
        return applications
