"""
Docker API client for workload discovery.

This module wraps the Docker SDK and exposes only the two read-only
capabilities the sidecar needs: listing running containers with their
labels, and reading a swarm service's labels.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import docker
from docker.errors import DockerException

logger = logging.getLogger(__name__)


@dataclass
class Workload:
    """A running container as reported by the Docker daemon"""
    name: str
    labels: Dict[str, str] = field(default_factory=dict)


class DockerRuntime:
    """Reads containers and swarm services from the Docker daemon."""

    def __init__(self, socket_path: Optional[str] = None):
        """
        Initialize the Docker client.

        Args:
            socket_path: Optional Docker base URL (e.g. unix:///var/run/docker.sock).
                If None, the DOCKER_* environment is used.

        Raises:
            DockerException: if the daemon cannot be reached
        """
        try:
            if socket_path:
                self.client = docker.DockerClient(base_url=socket_path)
            else:
                self.client = docker.from_env()

            # Test connection
            self.client.ping()
            logger.info("Successfully connected to Docker daemon")
        except DockerException as e:
            logger.error(f"Failed to connect to Docker daemon: {e}")
            raise

    def list_workloads(self, status: str = 'running') -> List[Workload]:
        """
        List containers with the given status, in daemon order.

        Labels and names come from the single list call, so a container
        removed while listing cannot fail the whole listing.

        Raises:
            DockerException: if the daemon cannot list containers
        """
        containers = self.client.containers.list(filters={'status': status}, sparse=True)
        logger.debug(f"Found {len(containers)} {status} containers")
        return [self._to_workload(container) for container in containers]

    def get_service_labels(self, service_id: str) -> Dict[str, str]:
        """
        Get the spec-level labels of a swarm service.

        Raises:
            DockerException: if the service cannot be inspected
        """
        service = self.client.services.get(service_id)
        spec = service.attrs.get('Spec') or {}
        return dict(spec.get('Labels') or {})

    def ping(self) -> bool:
        """Return True if the daemon answers."""
        try:
            return bool(self.client.ping())
        except DockerException as e:
            logger.warning(f"Docker ping failed: {e}")
            return False

    def close(self):
        """Close the Docker client connection."""
        try:
            self.client.close()
            logger.info("Docker client connection closed")
        except Exception as e:
            logger.error(f"Error closing Docker client: {e}")

    @staticmethod
    def _to_workload(container) -> Workload:
        attrs: Dict[str, Any] = container.attrs or {}
        names = attrs.get('Names') or []
        name = names[0] if names else (attrs.get('Id') or '')[:12]
        return Workload(
            name=name.lstrip('/'),
            labels=dict(attrs.get('Labels') or {}),
        )
