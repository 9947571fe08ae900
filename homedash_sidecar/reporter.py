"""
Reports discovered applications to the HomeDash server
"""
from datetime import datetime, timezone
from typing import List, Optional

import requests
from pydantic import ValidationError

from homedash_sidecar import metrics
from homedash_sidecar.config import SidecarContext
from homedash_sidecar.models import ApplicationRecord, ReportEnvelope, ReportResult


class ApplicationReporter:
    """POSTs the application list to the server, best-effort"""

    def __init__(self, context: SidecarContext, session: Optional[requests.Session] = None):
        config = context.config
        self.endpoint = config.endpoint
        self.identity = config.sidecar_uuid
        self.timeout = config.request_timeout
        self.session = session
        self.logger = context.logger.getChild('reporter')

    def build_payload(self, applications: List[ApplicationRecord]) -> str:
        """
        Serialize the report envelope

        Args:
            applications: Records in enumeration order

        Returns:
            JSON document with ``uuid`` and ``containers``
        """
        envelope = ReportEnvelope(uuid=self.identity, applications=list(applications))
        return envelope.to_json()

    def report(self, applications: List[ApplicationRecord]) -> ReportResult:
        """
        Send one report. Never raises; failures are logged and returned.

        Args:
            applications: Records to report; an empty list is a valid report

        Returns:
            ReportResult
        """
        timestamp = datetime.now(timezone.utc)
        count = len(applications)

        try:
            payload = self.build_payload(applications)
        except (ValidationError, TypeError, ValueError) as e:
            self.logger.error(f"Failed to serialize report: {e}")
            metrics.reports_total.labels(outcome='serialization_error').inc()
            return ReportResult(
                success=False,
                endpoint=self.endpoint,
                application_count=count,
                timestamp=timestamp,
                error=str(e)
            )

        self.logger.debug(f"Sending {count} applications to {self.endpoint}: {payload}")

        try:
            post = self.session.post if self.session is not None else requests.post
            response = post(
                self.endpoint,
                data=payload,
                headers={'Content-Type': 'application/json'},
                timeout=self.timeout
            )
        except requests.RequestException as e:
            self.logger.error(f"Failed to send report to {self.endpoint}: {e}")
            metrics.reports_total.labels(outcome='transport_error').inc()
            return ReportResult(
                success=False,
                endpoint=self.endpoint,
                application_count=count,
                timestamp=timestamp,
                error=str(e)
            )

        success = 200 <= response.status_code < 300
        if success:
            self.logger.info(f"{response.status_code} - {response.text}")
            metrics.reports_total.labels(outcome='success').inc()
        else:
            self.logger.warning(f"Server rejected report: {response.status_code} - {response.text}")
            metrics.reports_total.labels(outcome='http_error').inc()

        return ReportResult(
            success=success,
            endpoint=self.endpoint,
            application_count=count,
            timestamp=timestamp,
            status_code=response.status_code,
            error=None if success else f"HTTP {response.status_code}"
        )
