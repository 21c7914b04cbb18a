"""Unit tests for manifest models and loading."""

import pydantic
import pytest

from integration_audit.core.manifest import load_manifest, load_manifests, manifest_from_dict
from integration_audit.models.common import Severity
from integration_audit.models.manifest import ApiKeyAuth, CheckDefinition, Manifest
from integration_audit.utils.errors import ManifestError

import sample_checks

MANIFEST_YAML = """\
id: github
name: GitHub
category: source-control
base_url: https://api.github.com
default_headers:
  Accept: application/vnd.github+json
auth:
  type: api_key
  config:
    name: Authorization
    in: header
    prefix: "token "
variables:
  - id: org
    label: Organization
    required: true
checks:
  - id: repos_private
    name: Repositories are private
    default_severity: high
    run: sample_checks:repos_are_private
  - id: mfa
    name: MFA enforced
    run: sample_checks:always_pass
    variables:
      - id: team
        label: Team
        type: select
        fetch_options: sample_checks:list_teams
"""


class TestManifestModel:
    """Tests for the Manifest model."""

    def test_auth_discriminator(self, make_manifest):
        """Test the auth type selects the strategy model."""
        manifest = make_manifest(auth={"type": "api_key", "config": {"name": "key", "in": "query"}})
        assert isinstance(manifest.auth, ApiKeyAuth)
        assert manifest.auth.config.location == "query"
        assert not manifest.requires_oauth

    def test_unknown_auth_type(self, make_manifest):
        with pytest.raises(pydantic.ValidationError):
            make_manifest(auth={"type": "kerberos"})

    def test_frozen(self, manifest):
        """Test manifests cannot be changed after load."""
        with pytest.raises(pydantic.ValidationError):
            manifest.base_url = "https://evil.example.com"

    def test_get_check(self, manifest):
        assert manifest.get_check("noop").name == "No-op"
        assert manifest.get_check("missing") is None

    def test_display_name(self, make_manifest):
        assert make_manifest(name="").display_name == "github"

    def test_check_defaults(self):
        definition = CheckDefinition(id="c", name="C", run=sample_checks.always_pass)
        assert definition.default_severity == Severity.MEDIUM
        assert definition.variables == []

    def test_run_must_be_callable(self):
        with pytest.raises(pydantic.ValidationError):
            CheckDefinition(id="c", name="C", run=42)

    def test_variables_for_merges(self, make_manifest):
        """Test integration variables come first and check entries win on clashes."""
        manifest = make_manifest(
            variables=[
                {"id": "org", "label": "Org"},
                {"id": "days", "label": "Days", "default": 30},
            ],
            checks=[
                CheckDefinition(
                    id="c",
                    name="C",
                    run=sample_checks.always_pass,
                    variables=[{"id": "days", "label": "Days", "default": 90}],
                )
            ],
        )
        merged = manifest.variables_for(manifest.checks[0])
        assert [v.id for v in merged] == ["org", "days"]
        assert merged[1].default == 90

    def test_dump_excludes_routines(self, manifest):
        """Test check routines are not serialized."""
        data = manifest.model_dump(mode="json")
        assert "run" not in data["checks"][0]


class TestLoadManifest:
    """Tests for loading manifests from YAML."""

    @pytest.fixture
    def manifest_file(self, tmp_path):
        path = tmp_path / "github.yaml"
        path.write_text(MANIFEST_YAML)
        return path

    def test_load(self, manifest_file):
        """Test a YAML manifest loads with its routines resolved."""
        manifest = load_manifest(manifest_file)

        assert manifest.id == "github"
        assert manifest.category == "source-control"
        assert manifest.auth.config.prefix == "token "
        assert [c.id for c in manifest.checks] == ["repos_private", "mfa"]
        assert manifest.checks[0].run is sample_checks.repos_are_private
        assert manifest.checks[0].default_severity == Severity.HIGH
        assert manifest.checks[1].variables[0].fetch_options is sample_checks.list_teams

    def test_missing_file(self, tmp_path):
        with pytest.raises(ManifestError, match="not found"):
            load_manifest(tmp_path / "missing.yaml")

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("id: [unclosed")
        with pytest.raises(ManifestError, match="Invalid YAML"):
            load_manifest(path)

    def test_unresolvable_run(self, tmp_path):
        """Test a bad run reference is reported as a manifest error."""
        path = tmp_path / "bad.yaml"
        path.write_text(MANIFEST_YAML.replace("sample_checks:always_pass", "sample_checks:nope"))
        with pytest.raises(ManifestError) as exc_info:
            load_manifest(path)
        assert exc_info.value.code == "MANIFEST_ERROR"
        assert exc_info.value.details["source"] == str(path)

    def test_not_a_mapping(self):
        with pytest.raises(ManifestError, match="must be a mapping"):
            manifest_from_dict(["id", "github"])

    def test_from_dict(self):
        manifest = manifest_from_dict(
            {"id": "slack", "auth": {"type": "oauth2"}, "checks": [{"id": "c", "name": "C", "run": sample_checks.broken}]}
        )
        assert isinstance(manifest, Manifest)
        assert manifest.checks[0].run is sample_checks.broken

    def test_load_directory(self, tmp_path):
        """Test every YAML file in a directory is loaded in name order."""
        (tmp_path / "b.yaml").write_text(MANIFEST_YAML)
        (tmp_path / "a.yml").write_text("id: slack\nauth:\n  type: oauth2\n")
        (tmp_path / "notes.txt").write_text("ignored")

        manifests = load_manifests(tmp_path)
        assert [m.id for m in manifests] == ["slack", "github"]

    def test_load_directory_missing(self, tmp_path):
        with pytest.raises(ManifestError):
            load_manifests(tmp_path / "nope")
