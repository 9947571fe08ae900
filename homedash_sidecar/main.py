"""
Main HomeDash sidecar application.

Loads configuration, connects to Docker and runs the poll loop. When a
metrics port is configured, the main thread serves ``/metrics`` and
``/health``; otherwise it simply blocks on the loop.
"""

import logging
import signal
import sys
from typing import Optional

from docker.errors import DockerException
from dotenv import load_dotenv
from flask import Flask, Response
from prometheus_client import generate_latest, REGISTRY, CONTENT_TYPE_LATEST

from homedash_sidecar import __version__
from homedash_sidecar.config import ConfigurationError, SidecarConfig, SidecarContext, load_config
from homedash_sidecar.docker_client import DockerRuntime
from homedash_sidecar.enumerator import ApplicationEnumerator
from homedash_sidecar.poller import PollLoop
from homedash_sidecar.reporter import ApplicationReporter

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

logger = logging.getLogger('homedash_sidecar')


def configure_logging(level: int = logging.INFO):
    """Configure root logging to stdout."""
    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        handlers=[
            logging.StreamHandler(sys.stdout)
        ]
    )
    logging.getLogger().setLevel(level)


class Sidecar:
    """Wires the runtime, enumerator, reporter and poll loop together."""

    def __init__(self, config: SidecarConfig, runtime=None):
        """
        Args:
            config: Loaded configuration
            runtime: Optional pre-built runtime (DockerRuntime is created on start otherwise)
        """
        self.config = config
        self.context = SidecarContext(config=config, logger=logger)
        self.runtime = runtime
        self.loop: Optional[PollLoop] = None
        self.app: Optional[Flask] = None

    def create_app(self) -> Flask:
        """Build the Flask app serving /, /health and /metrics."""
        app = Flask(__name__)

        @app.route('/metrics')
        def metrics_endpoint():
            """Prometheus metrics endpoint."""
            return Response(generate_latest(REGISTRY), mimetype=CONTENT_TYPE_LATEST)

        @app.route('/health')
        def health():
            """Health check endpoint."""
            if self.runtime is None:
                return {'status': 'initializing'}, 503
            if not self.runtime.ping():
                return {'status': 'unhealthy', 'docker': 'disconnected'}, 503

            body = {'status': 'healthy', 'docker': 'connected', 'last_cycle': None}
            last = self.loop.last_result if self.loop else None
            if last is not None:
                body['last_cycle'] = {
                    'timestamp': last.timestamp.isoformat(),
                    'applications': last.application_count,
                    'report_success': last.success,
                    'status_code': last.status_code,
                }
            return body, 200

        @app.route('/')
        def root():
            """Root endpoint with information."""
            return {
                'name': 'HomeDash Sidecar',
                'version': __version__,
                'uuid': self.config.sidecar_uuid,
                'server': self.config.endpoint,
                'endpoints': {
                    '/metrics': 'Prometheus metrics',
                    '/health': 'Health check'
                }
            }

        return app

    def build_loop(self) -> PollLoop:
        """Create the poll loop around the current runtime."""
        enumerator = ApplicationEnumerator(self.runtime, self.context)
        reporter = ApplicationReporter(self.context)
        self.loop = PollLoop(self.context, enumerator, reporter)
        return self.loop

    def start(self):
        """
        Connect to Docker and start polling.

        Raises:
            DockerException: if the Docker daemon is unreachable
        """
        logger.info(f"Starting HomeDash sidecar v{__version__} ({self.config.sidecar_uuid})")
        logger.info(f"Reporting to {self.config.endpoint} every {self.config.interval_seconds:g} seconds")

        if self.runtime is None:
            self.runtime = DockerRuntime(self.config.docker_socket_path)

        self.build_loop().start()

    def serve(self):
        """Block the main thread until the loop ends."""
        if self.config.metrics_port:
            logger.info(f"Starting HTTP server on port {self.config.metrics_port}...")
            self.app = self.create_app()
            self.app.run(host='0.0.0.0', port=self.config.metrics_port, threaded=True)
        else:
            self.loop.wait()

    def stop(self):
        """Stop the loop and release the Docker client."""
        logger.info("Stopping HomeDash sidecar...")
        if self.loop:
            self.loop.stop()
        if self.runtime:
            self.runtime.close()
        logger.info("Sidecar stopped")


def main():
    """Main entry point."""
    load_dotenv()
    configure_logging()

    try:
        config = load_config()
    except ConfigurationError as e:
        logger.error(str(e))
        sys.exit(1)

    logging.getLogger().setLevel(config.log_level)

    sidecar = Sidecar(config)

    def handle_signal(signum, frame):
        logger.info(f"Received signal {signum}, shutting down gracefully...")
        sidecar.stop()
        sys.exit(0)

    signal.signal(signal.SIGINT, handle_signal)
    signal.signal(signal.SIGTERM, handle_signal)

    try:
        sidecar.start()
    except DockerException as e:
        logger.error(f"Failed to initialize Docker client: {e}")
        logger.error("Make sure the Docker socket is mounted and accessible")
        sys.exit(1)

    try:
        sidecar.serve()
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        sidecar.stop()
        sys.exit(1)


if __name__ == '__main__':
    main()
