"""Integration tests for end-to-end deploy workflows.

These tests verify that all components work together correctly:
- Config file → build → bucket validation → upload
- Real build and hook commands run through subprocess
- Retry and region correction against a fake S3 client
"""

import gzip
import json
import shlex
import sys
from unittest.mock import MagicMock

import pytest

from s3deploy.deployer import BUILD_ENV_VARIABLE, DeployCommand, DeployOptions
from s3deploy.exceptions import BuildError
from s3deploy.storage import ObjectStore
from s3deploy.utils.config_loader import load_deploy_config
from tests.helpers import RecordingUI, client_error

BUILD_SCRIPT = """
import gzip, os, pathlib
out = pathlib.Path("dist")
(out / "css").mkdir(parents=True, exist_ok=True)
(out / "index.html").write_text("<html>" + os.environ["DEPLOY_ENV"] + "</html>")
(out / "css" / "app.css").write_bytes(gzip.compress(b"body { color: red; }"))
(out / "robots.txt").write_text("User-agent: *")
"""


def python_command(code: str) -> str:
    return f"{shlex.quote(sys.executable)} -c {shlex.quote(code)}"


class FakeS3:
    """In-memory S3 with per-region clients and injectable put failures."""

    def __init__(self, bucket_region: str, failures=None):
        self.bucket_region = bucket_region
        self.failures = dict(failures or {})
        self.objects = {}
        self.clients = {}

    def client_for(self, region):
        if region not in self.clients:
            client = MagicMock(name=f"s3-{region}")
            client.get_bucket_location.return_value = {"LocationConstraint": self.bucket_region}
            client.put_object.side_effect = self._put_object(region)
            self.clients[region] = client
        return self.clients[region]

    def _put_object(self, region):
        def put_object(**kwargs):
            if region != self.bucket_region:
                raise client_error("PermanentRedirect")
            key = kwargs["Key"]
            if self.failures.get(key, 0) > 0:
                self.failures[key] -= 1
                raise client_error("InternalError")
            self.objects[key] = {
                "Body": kwargs["Body"].read(),
                **{k: v for k, v in kwargs.items() if k not in ("Body", "Key", "Bucket")},
            }
            return {"ETag": '"etag"'}

        return put_object


@pytest.fixture
def project(tmp_path, monkeypatch, clean_env):
    monkeypatch.setenv(BUILD_ENV_VARIABLE, "")
    (tmp_path / "config").mkdir()
    (tmp_path / "config" / "deploy.yaml").write_text(
        f"""
default:
  bucket: site-staging
  region: us-east-1
  build_command: {json.dumps(python_command(BUILD_SCRIPT))}
  output_path: dist

production:
  bucket: site-prod
  prepend_path: v2
  max_retries: 3
  after_build:
    - command: {json.dumps(python_command("import os; assert os.path.exists('dist/index.html')"))}
  after_deploy:
    - command: {json.dumps(python_command("import sys; print('deployed', *sys.argv[1:])"))}
      include_options: [environment]
"""
    )
    return tmp_path


def run_deploy(fake: FakeS3, environment: str = "production", **option_values):
    config = load_deploy_config(environment=environment)
    ui = RecordingUI()
    options = DeployOptions(environment=environment, **option_values)

    def store_factory(cfg):
        return ObjectStore(
            cfg.bucket,
            region=cfg.region,
            prepend_path=cfg.prepend_path,
            client_factory=fake.client_for,
        )

    report = DeployCommand(config, ui, options, store_factory=store_factory).run()
    return report, ui


class TestDeployWorkflow:
    """Full deploys from a config file."""

    def test_production_deploy(self, project):
        fake = FakeS3(bucket_region="us-east-1")

        report, ui = run_deploy(fake)

        assert sorted(fake.objects) == ["v2/css/app.css", "v2/index.html", "v2/robots.txt"]
        assert fake.objects["v2/index.html"]["Body"] == b"<html>production</html>"
        assert fake.objects["v2/index.html"]["ContentType"] == "text/html"
        assert fake.objects["v2/css/app.css"]["ContentEncoding"] == "gzip"
        assert gzip.decompress(fake.objects["v2/css/app.css"]["Body"]) == b"body { color: red; }"
        assert "ContentEncoding" not in fake.objects["v2/robots.txt"]
        assert all(obj["ACL"] == "public-read" for obj in fake.objects.values())
        assert report.attempts == 3
        assert "deployed --environment=production" in ui.lines("info")

    def test_bucket_in_other_region(self, project):
        fake = FakeS3(bucket_region="eu-west-1")

        report, ui = run_deploy(fake)

        assert len(report.uploaded) == 3
        fake.clients["us-east-1"].put_object.assert_not_called()
        assert fake.clients["eu-west-1"].put_object.call_count == 3

    def test_transient_failures_are_retried(self, project):
        fake = FakeS3(bucket_region="us-east-1", failures={"v2/css/app.css": 2})

        report, ui = run_deploy(fake)

        assert report.attempts == 5
        assert len(ui.lines_starting("Upload error: v2/css/app.css")) == 2
        assert len(fake.objects) == 3

    def test_default_section_deploy(self, project):
        fake = FakeS3(bucket_region="us-east-1")

        run_deploy(fake, environment="staging")

        assert sorted(fake.objects) == ["css/app.css", "index.html", "robots.txt"]

    def test_failed_build_uploads_nothing(self, project):
        config_file = project / "config" / "deploy.yaml"
        config_file.write_text(
            f"default:\n  bucket: site\n  build_command: {json.dumps(python_command('raise SystemExit(3)'))}\n"
        )
        fake = FakeS3(bucket_region="us-east-1")

        with pytest.raises(BuildError) as exc_info:
            run_deploy(fake)

        assert exc_info.value.return_code == 3
        assert fake.clients == {}
        assert not (project / "dist").exists()
