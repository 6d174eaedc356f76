"""Tests for deploy metrics."""

from unittest.mock import patch

import pytest

import s3deploy.utils.metrics as metrics_module
from s3deploy.utils.metrics import DeployMetrics, get_metrics, start_metrics_server


@pytest.fixture
def reset_singleton():
    saved = metrics_module._metrics_instance
    metrics_module._metrics_instance = None
    yield
    metrics_module._metrics_instance = saved


class TestDeployMetrics:
    def test_upload_counters(self):
        metrics = DeployMetrics()

        metrics.record_upload_success(bytes_uploaded=100)
        metrics.record_upload_success(bytes_uploaded=50)
        metrics.record_upload_failure("SlowDown")
        metrics.record_retry()

        sample = metrics.registry.get_sample_value
        assert sample("s3deploy_upload_attempts_total", {"status": "success"}) == 2.0
        assert sample("s3deploy_upload_attempts_total", {"status": "failure"}) == 1.0
        assert sample("s3deploy_upload_bytes_total") == 150.0
        assert sample("s3deploy_upload_retries_total") == 1.0
        assert sample(
            "s3deploy_s3_errors_total", {"operation": "put_object", "error_code": "SlowDown"}
        ) == 1.0

    def test_track_upload_observes_duration(self):
        metrics = DeployMetrics()

        with metrics.track_upload():
            pass

        assert metrics.registry.get_sample_value("s3deploy_upload_duration_seconds_count") == 1.0

    def test_instances_do_not_share_registries(self):
        first, second = DeployMetrics(), DeployMetrics()

        first.record_retry()

        assert second.registry.get_sample_value("s3deploy_upload_retries_total") == 0.0

    def test_disabled_metrics_are_noops(self):
        metrics = DeployMetrics(enabled=False)

        with metrics.track_upload():
            metrics.record_upload_success(10)
            metrics.record_upload_failure("AccessDenied")
            metrics.record_retry()
            metrics.record_s3_error("get_bucket_location", "NoSuchBucket")

        assert metrics.registry.get_sample_value("s3deploy_upload_bytes_total") is None


class TestGlobalMetrics:
    def test_singleton(self, reset_singleton):
        assert get_metrics() is get_metrics()

    def test_disabled_by_environment(self, reset_singleton, monkeypatch):
        monkeypatch.setenv("METRICS_ENABLED", "false")

        assert get_metrics().enabled is False

    @patch("s3deploy.utils.metrics.start_http_server")
    def test_start_metrics_server_uses_private_registry(self, mock_server, reset_singleton):
        start_metrics_server(port=9999)

        mock_server.assert_called_once_with(
            port=9999, addr="0.0.0.0", registry=get_metrics().registry
        )
