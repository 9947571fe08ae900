"""
Tests for ApplicationReporter
"""
import json
from unittest.mock import Mock, patch

import pytest
import requests
from prometheus_client import REGISTRY

from homedash_sidecar.models import ApplicationRecord, ReportEnvelope
from homedash_sidecar.reporter import ApplicationReporter


def sample(outcome):
    return REGISTRY.get_sample_value('homedash_sidecar_reports_total', {'outcome': outcome}) or 0


def make_response(status_code=200, text='ok'):
    response = Mock()
    response.status_code = status_code
    response.text = text
    return response


@pytest.fixture
def applications():
    return [
        ApplicationRecord(name='grafana', url='http://g'),
        ApplicationRecord(name='web', icon='i.png', comment='swarm app', is_clustered=True),
        ApplicationRecord(name='grafana', url='http://g2'),
    ]


class TestBuildPayload:
    """Test envelope serialization"""

    def test_round_trip(self, context, applications):
        payload = ApplicationReporter(context).build_payload(applications)

        assert json.loads(payload) == {
            'uuid': 'test-uuid-1234',
            'containers': [
                {'name': 'grafana', 'url': 'http://g', 'icon': '', 'comment': '', 'swarm_container': False},
                {'name': 'web', 'url': '', 'icon': 'i.png', 'comment': 'swarm app', 'swarm_container': True},
                {'name': 'grafana', 'url': 'http://g2', 'icon': '', 'comment': '', 'swarm_container': False},
            ],
        }
        envelope = ReportEnvelope.model_validate_json(payload)
        assert envelope.uuid == 'test-uuid-1234'
        assert envelope.applications == applications

    def test_empty_list_keeps_containers_field(self, context):
        payload = ApplicationReporter(context).build_payload([])

        assert json.loads(payload) == {'uuid': 'test-uuid-1234', 'containers': []}


class TestReport:
    """Test sending reports"""

    @patch('homedash_sidecar.reporter.requests.post')
    def test_posts_json(self, mock_post, context, applications):
        mock_post.return_value = make_response(200, '{"status": "ok"}')

        result = ApplicationReporter(context).report(applications)

        assert result.success is True
        assert result.status_code == 200
        assert result.application_count == 3
        args, kwargs = mock_post.call_args
        assert args[0] == 'http://homedash.test/api/v1/applications'
        assert kwargs['headers'] == {'Content-Type': 'application/json'}
        assert kwargs['timeout'] is None
        assert json.loads(kwargs['data'])['uuid'] == 'test-uuid-1234'

    @patch('homedash_sidecar.reporter.requests.post')
    def test_empty_report_is_sent(self, mock_post, context):
        mock_post.return_value = make_response(201)

        result = ApplicationReporter(context).report([])

        assert result.success is True
        assert json.loads(mock_post.call_args.kwargs['data'])['containers'] == []

    @patch('homedash_sidecar.reporter.requests.post')
    def test_transport_error_is_not_raised(self, mock_post, context, applications):
        mock_post.side_effect = requests.ConnectionError("connection refused")
        before = sample('transport_error')

        result = ApplicationReporter(context).report(applications)

        assert result.success is False
        assert 'connection refused' in result.error
        assert result.status_code is None
        assert sample('transport_error') == before + 1
        assert mock_post.call_count == 1

    @patch('homedash_sidecar.reporter.requests.post')
    def test_error_status_is_not_raised(self, mock_post, context, applications):
        mock_post.return_value = make_response(500, 'internal error')
        before = sample('http_error')

        result = ApplicationReporter(context).report(applications)

        assert result.success is False
        assert result.status_code == 500
        assert result.error == 'HTTP 500'
        assert sample('http_error') == before + 1

    @patch('homedash_sidecar.reporter.requests.post')
    def test_serialization_error_is_not_raised(self, mock_post, context, applications):
        reporter = ApplicationReporter(context)
        before = sample('serialization_error')

        with patch.object(reporter, 'build_payload', side_effect=TypeError("not serializable")):
            result = reporter.report(applications)

        assert result.success is False
        assert 'not serializable' in result.error
        mock_post.assert_not_called()
        assert sample('serialization_error') == before + 1

    def test_uses_session_and_timeout(self, context, config):
        context.config = config.model_copy(update={'request_timeout': 5.0})
        session = Mock()
        session.post.return_value = make_response(204, '')

        result = ApplicationReporter(context, session=session).report([])

        assert result.success is True
        assert session.post.call_args.kwargs['timeout'] == 5.0
